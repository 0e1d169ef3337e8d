"""Observable per-profile state."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable

from aws_cost_monitor.analysis.engine import CostAnalytics
from aws_cost_monitor.storage.models import CostCacheEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileState:
    """
    What observers see for a profile after an operation.

    At most one of loading, error, rate limited countdown or stale data is
    the headline at a time; a previous entry stays attached for display.
    """

    profile_name: str
    entry: CostCacheEntry | None = None
    analytics: CostAnalytics | None = None
    is_loading: bool = False
    error_message: str | None = None
    is_rate_limited: bool = False
    rate_limit_wait_seconds: int | None = None
    is_stale: bool = False
    updated_at: datetime | None = None


Subscriber = Callable[[ProfileState], None]


class CostMonitorState:
    """Holds the latest ProfileState per profile and notifies subscribers."""

    def __init__(self) -> None:
        self._profiles: dict[str, ProfileState] = {}
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def get(self, profile_name: str) -> ProfileState:
        return self._profiles.get(profile_name) or ProfileState(profile_name=profile_name)

    def snapshot(self) -> dict[str, ProfileState]:
        with self._lock:
            return dict(self._profiles)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback. Returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, state: ProfileState) -> None:
        with self._lock:
            self._profiles[state.profile_name] = state
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(state)
            except Exception:
                logger.exception("State subscriber failed for %s", state.profile_name)

    def update(self, profile_name: str, **changes) -> ProfileState:
        """Publish the current state for a profile with some fields changed."""
        state = replace(self.get(profile_name), **changes)
        self.publish(state)
        return state
