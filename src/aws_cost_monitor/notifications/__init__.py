"""Notifications for AWS Cost Monitor."""

from aws_cost_monitor.notifications.base import (
    LoggingSink,
    Notification,
    NotificationError,
    NotificationSink,
)
from aws_cost_monitor.notifications.policy import AlertDecision, AlertPolicy
from aws_cost_monitor.notifications.slack import SlackWebhookSink

__all__ = [
    "AlertDecision",
    "AlertPolicy",
    "LoggingSink",
    "Notification",
    "NotificationError",
    "NotificationSink",
    "SlackWebhookSink",
]
