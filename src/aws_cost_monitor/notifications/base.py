"""Notification sinks."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger(__name__)

BUDGET_ALERT_CATEGORY = "BUDGET_ALERT"
ANOMALY_ALERT_CATEGORY = "ANOMALY_ALERT"


class NotificationError(Exception):
    """A sink failed to deliver a notification."""

    pass


@dataclass(frozen=True)
class Notification:
    """A user-facing alert."""

    title: str
    subtitle: str
    body: str
    category: str
    sound: bool = True


class NotificationSink(ABC):
    """Delivers notifications. Delivery is fire-and-forget for the caller."""

    @abstractmethod
    def permission_granted(self) -> bool:
        """Whether the sink may deliver right now."""
        pass

    @abstractmethod
    def deliver(self, notification: Notification) -> None:
        """
        Deliver a notification.

        Raises:
            NotificationError: If delivery fails.
        """
        pass


class LoggingSink(NotificationSink):
    """Writes notifications to the log."""

    def __init__(self, granted: bool = True):
        self.granted = granted

    def permission_granted(self) -> bool:
        return self.granted

    def deliver(self, notification: Notification) -> None:
        logger.warning(
            "[%s] %s (%s): %s",
            notification.category,
            notification.title,
            notification.subtitle,
            notification.body,
        )
