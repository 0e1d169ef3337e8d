"""Slack notification integration."""

from aws_cost_monitor.notifications.slack.webhook import SlackWebhookError, SlackWebhookSink

__all__ = ["SlackWebhookError", "SlackWebhookSink"]
