"""Alert decisions with per-type cooldowns."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Callable, Sequence

from aws_cost_monitor.analysis.anomaly_detector import SpendingAnomaly
from aws_cost_monitor.config import AlertsConfig
from aws_cost_monitor.notifications.base import Notification, NotificationError, NotificationSink
from aws_cost_monitor.notifications.formatter import (
    format_anomalies,
    format_budget_exceeded,
    format_threshold,
)
from aws_cost_monitor.storage.base import Storage
from aws_cost_monitor.storage.models import AlertConfiguration, AlertType, BudgetStatus, SentAlert

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class AlertDecision:
    """Outcome of evaluating one alert type."""

    alert_type: AlertType
    notification: Notification | None
    delivered: bool
    reason: str | None = None  # Why it was not delivered


class AlertPolicy:
    """
    Decide which notifications to send for a profile.

    - Budget exceeded: over budget.
    - Threshold: near the alert threshold but not over budget.
    - Anomaly: at least one critical anomaly, or two or more of any severity.

    Each type has its own cooldown per profile. Checks still run when the
    sink has no permission, but nothing is delivered or recorded.
    """

    def __init__(
        self,
        storage: Storage,
        sink: NotificationSink,
        config: AlertsConfig | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.storage = storage
        self.sink = sink
        self.config = config or AlertsConfig()
        self.clock = clock

    # =========================================================================
    # Configuration
    # =========================================================================

    def get_alert_configuration(self, profile_name: str) -> AlertConfiguration:
        stored = self.storage.get_alert_configuration(profile_name)
        if stored is not None:
            return stored
        return AlertConfiguration(
            enable_threshold_alerts=self.config.enable_threshold_alerts,
            enable_budget_exceeded_alerts=self.config.enable_budget_exceeded_alerts,
            enable_anomaly_alerts=self.config.enable_anomaly_alerts,
            cooldown_minutes=self.config.cooldown_minutes,
            sound_enabled=self.config.sound_enabled,
        )

    def update_alert_configuration(self, profile_name: str, configuration: AlertConfiguration) -> None:
        self.storage.put_alert_configuration(profile_name, configuration)

    # =========================================================================
    # Evaluation
    # =========================================================================

    def evaluate_budget(self, profile_name: str, status: BudgetStatus | None) -> list[AlertDecision]:
        """Budget-exceeded and threshold alerts. They never fire together."""
        if status is None or not self.config.enabled:
            return []

        config = self.get_alert_configuration(profile_name)
        decisions = []

        if config.enable_budget_exceeded_alerts and status.is_over_budget:
            notification = format_budget_exceeded(
                profile_name, status.monthly_spent, status.monthly_budget, config.sound_enabled
            )
            decisions.append(
                self._dispatch(profile_name, AlertType.BUDGET_EXCEEDED, notification, config)
            )

        if config.enable_threshold_alerts and status.is_near_threshold and not status.is_over_budget:
            notification = format_threshold(profile_name, status.percentage, config.sound_enabled)
            decisions.append(self._dispatch(profile_name, AlertType.THRESHOLD, notification, config))

        return decisions

    def evaluate_anomalies(
        self,
        profile_name: str,
        anomalies: Sequence[SpendingAnomaly],
    ) -> AlertDecision | None:
        """One anomaly alert summarizing the list, if it is serious enough."""
        if not self.config.enabled or not anomalies:
            return None

        config = self.get_alert_configuration(profile_name)
        if not config.enable_anomaly_alerts:
            return None

        has_critical = any(a.is_critical for a in anomalies)
        if not has_critical and len(anomalies) < 2:
            return None

        notification = format_anomalies(profile_name, anomalies, config.sound_enabled)
        return self._dispatch(profile_name, AlertType.ANOMALY, notification, config)

    def evaluate(
        self,
        profile_name: str,
        status: BudgetStatus | None,
        anomalies: Sequence[SpendingAnomaly] = (),
    ) -> list[AlertDecision]:
        decisions = self.evaluate_budget(profile_name, status)
        anomaly_decision = self.evaluate_anomalies(profile_name, anomalies)
        if anomaly_decision:
            decisions.append(anomaly_decision)
        return decisions

    def should_send(self, profile_name: str, alert_type: AlertType, cooldown_minutes: int) -> bool:
        """False if the same alert type went out for the profile within the cooldown."""
        cutoff = self.clock() - timedelta(minutes=cooldown_minutes)
        return not any(
            alert.alert_type == alert_type and alert.timestamp > cutoff
            for alert in self.storage.get_sent_alerts(profile_name)
        )

    def _dispatch(
        self,
        profile_name: str,
        alert_type: AlertType,
        notification: Notification,
        config: AlertConfiguration,
    ) -> AlertDecision:
        if not self.should_send(profile_name, alert_type, config.cooldown_minutes):
            logger.debug("Suppressed %s alert for %s (cooldown)", alert_type.value, profile_name)
            return AlertDecision(alert_type, notification, delivered=False, reason="cooldown")

        if not self.sink.permission_granted():
            logger.info("Skipped %s alert for %s (no permission)", alert_type.value, profile_name)
            return AlertDecision(alert_type, notification, delivered=False, reason="permission_denied")

        try:
            self.sink.deliver(notification)
        except NotificationError as e:
            logger.error("Error sending %s alert for %s: %s", alert_type.value, profile_name, e)
            return AlertDecision(alert_type, notification, delivered=False, reason="delivery_failed")
        except Exception:
            # A broken sink must not fail a fetch that already succeeded
            logger.exception("Unexpected error sending %s alert for %s", alert_type.value, profile_name)
            return AlertDecision(alert_type, notification, delivered=False, reason="delivery_failed")

        self._record_sent_alert(profile_name, alert_type)
        logger.info("Sent %s alert for %s", alert_type.value, profile_name)
        return AlertDecision(alert_type, notification, delivered=True)

    # =========================================================================
    # History
    # =========================================================================

    def _record_sent_alert(self, profile_name: str, alert_type: AlertType) -> None:
        now = self.clock()
        self.storage.add_sent_alert(
            SentAlert(profile_name=profile_name, alert_type=alert_type, timestamp=now)
        )
        self.storage.prune_sent_alerts(now - timedelta(hours=self.config.history_hours))

    def recent_alerts(self, profile_name: str | None = None, limit: int = 10) -> list[SentAlert]:
        """Most recent alerts first."""
        alerts = sorted(
            self.storage.get_sent_alerts(profile_name), key=lambda a: a.timestamp, reverse=True
        )
        return alerts[:limit]

    def clear_history(self, profile_name: str | None = None) -> None:
        self.storage.clear_sent_alerts(profile_name)
