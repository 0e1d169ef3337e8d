"""Slack webhook notification sink."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib import error, request

import boto3
from botocore.exceptions import ClientError

from aws_cost_monitor.notifications.base import (
    ANOMALY_ALERT_CATEGORY,
    Notification,
    NotificationError,
    NotificationSink,
)

logger = logging.getLogger(__name__)

CATEGORY_EMOJI = {
    ANOMALY_ALERT_CATEGORY: ":rotating_light:",
}
DEFAULT_EMOJI = ":money_with_wings:"


class SlackWebhookError(NotificationError):
    """Error sending Slack webhook."""

    pass


def format_blocks(notification: Notification) -> dict[str, Any]:
    """Slack Block Kit payload for a notification."""
    emoji = CATEGORY_EMOJI.get(notification.category, DEFAULT_EMOJI)
    return {
        "text": f"{notification.title}: {notification.body}",
        "blocks": [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": notification.title, "emoji": True},
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"{emoji} {notification.body}"},
            },
            {
                "type": "context",
                "elements": [
                    {"type": "mrkdwn", "text": f"Profile: *{notification.subtitle}*"},
                ],
            },
        ],
    }


class SlackWebhookSink(NotificationSink):
    """
    Post notifications to Slack via an incoming webhook.

    The webhook URL is stored in AWS Secrets Manager. Permission is granted
    once the URL can be resolved.
    """

    def __init__(
        self,
        secret_name: str,
        secret_key: str,
        region: str = "us-east-1",
        secrets_client: boto3.client | None = None,
        timeout: int = 10,
    ):
        """
        Initialize the Slack webhook sink.

        Args:
            secret_name: Name of the secret in Secrets Manager.
            secret_key: Key within the secret containing the webhook URL.
            region: AWS region for Secrets Manager.
            secrets_client: Optional boto3 Secrets Manager client.
            timeout: HTTP timeout in seconds.
        """
        self.secret_name = secret_name
        self.secret_key = secret_key
        self.region = region
        self.timeout = timeout
        self._secrets_client = secrets_client
        self._webhook_url: str | None = None

    @property
    def secrets_client(self) -> boto3.client:
        """Get or create Secrets Manager client."""
        if self._secrets_client is None:
            self._secrets_client = boto3.client("secretsmanager", region_name=self.region)
        return self._secrets_client

    @property
    def webhook_url(self) -> str:
        """Get the webhook URL from Secrets Manager."""
        if self._webhook_url is None:
            self._webhook_url = self._get_webhook_url()
        return self._webhook_url

    def _get_webhook_url(self) -> str:
        """Retrieve webhook URL from Secrets Manager."""
        try:
            response = self.secrets_client.get_secret_value(SecretId=self.secret_name)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code == "ResourceNotFoundException":
                raise SlackWebhookError(f"Secret '{self.secret_name}' not found") from e
            raise SlackWebhookError(f"Error retrieving secret: {e}") from e

        if "SecretString" not in response:
            raise SlackWebhookError(f"Secret '{self.secret_name}' does not contain a string value")

        try:
            secret_data = json.loads(response["SecretString"])
        except ValueError as e:
            raise SlackWebhookError(f"Secret '{self.secret_name}' is not valid JSON") from e

        if not isinstance(secret_data, dict) or self.secret_key not in secret_data:
            raise SlackWebhookError(
                f"Secret key '{self.secret_key}' not found in secret '{self.secret_name}'"
            )
        return secret_data[self.secret_key]

    def permission_granted(self) -> bool:
        try:
            return bool(self.webhook_url)
        except SlackWebhookError as e:
            logger.warning("Slack notifications unavailable: %s", e)
            return False

    def deliver(self, notification: Notification) -> None:
        self.send(format_blocks(notification))

    def send(self, message: dict[str, Any]) -> None:
        """
        Send a Block Kit payload to Slack.

        Raises:
            SlackWebhookError: If the message fails to send.
        """
        data = json.dumps(message).encode("utf-8")
        req = request.Request(
            self.webhook_url,
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        try:
            with request.urlopen(req, timeout=self.timeout) as response:
                response_body = response.read().decode("utf-8")
                if response.status != 200 or response_body != "ok":
                    raise SlackWebhookError(f"Slack API error: {response.status} - {response_body}")
        except error.HTTPError as e:
            raise SlackWebhookError(f"HTTP error sending to Slack: {e.code} - {e.reason}") from e
        except error.URLError as e:
            raise SlackWebhookError(f"URL error sending to Slack: {e.reason}") from e
        except OSError as e:
            # Read timeouts and connection resets surface outside URLError
            raise SlackWebhookError(f"Network error sending to Slack: {e}") from e
        except UnicodeDecodeError as e:
            raise SlackWebhookError("Slack returned an undecodable response") from e
