"""Tests for the Slack webhook sink."""

import json
import socket

import boto3
import pytest
from botocore.stub import Stubber

from aws_cost_monitor.notifications.base import ANOMALY_ALERT_CATEGORY, Notification
from aws_cost_monitor.notifications.slack.webhook import (
    SlackWebhookError,
    SlackWebhookSink,
    format_blocks,
)

WEBHOOK_URL = "https://hooks.slack.com/services/T000/B000/XXXX"


class FakeResponse:
    def __init__(self, status: int = 200, body: str = "ok"):
        self.status = status
        self.body = body

    def read(self):
        return self.body.encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, *args):
        return False


@pytest.fixture
def notification():
    return Notification(
        title="Unusual Spending Detected",
        subtitle="prod",
        body="Daily spending spike of 80%",
        category=ANOMALY_ALERT_CATEGORY,
    )


@pytest.fixture
def secrets_client():
    return boto3.client(
        "secretsmanager",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def slack_sink(secrets_client):
    return SlackWebhookSink("cost-monitor/test", "webhook_url", secrets_client=secrets_client)


class TestFormatBlocks:
    def test_blocks(self, notification):
        payload = format_blocks(notification)

        assert payload["text"] == "Unusual Spending Detected: Daily spending spike of 80%"
        assert payload["blocks"][0]["text"]["text"] == "Unusual Spending Detected"
        assert payload["blocks"][1]["text"]["text"].startswith(":rotating_light:")
        assert payload["blocks"][2]["elements"][0]["text"] == "Profile: *prod*"


class TestSlackWebhookSink:
    """Tests for secret lookup and delivery."""

    def test_permission_granted_with_secret(self, slack_sink, secrets_client):
        with Stubber(secrets_client) as stubber:
            stubber.add_response(
                "get_secret_value",
                {"SecretString": json.dumps({"webhook_url": WEBHOOK_URL})},
                {"SecretId": "cost-monitor/test"},
            )
            assert slack_sink.permission_granted() is True

    def test_permission_denied_without_secret(self, slack_sink, secrets_client):
        with Stubber(secrets_client) as stubber:
            stubber.add_client_error(
                "get_secret_value", service_error_code="ResourceNotFoundException"
            )
            assert slack_sink.permission_granted() is False

    def test_missing_secret_key(self, slack_sink, secrets_client):
        with Stubber(secrets_client) as stubber:
            stubber.add_response("get_secret_value", {"SecretString": json.dumps({"other": "x"})})
            with pytest.raises(SlackWebhookError):
                slack_sink.webhook_url

    def test_deliver_posts_payload(self, slack_sink, notification, monkeypatch):
        slack_sink._webhook_url = WEBHOOK_URL
        sent = []

        def fake_urlopen(req, timeout):
            sent.append(req)
            return FakeResponse()

        monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
        slack_sink.deliver(notification)

        assert sent[0].full_url == WEBHOOK_URL
        assert json.loads(sent[0].data)["text"].startswith("Unusual Spending Detected")

    def test_deliver_raises_on_error_body(self, slack_sink, notification, monkeypatch):
        slack_sink._webhook_url = WEBHOOK_URL
        monkeypatch.setattr(
            "urllib.request.urlopen", lambda req, timeout: FakeResponse(200, "invalid_payload")
        )

        with pytest.raises(SlackWebhookError):
            slack_sink.deliver(notification)

    def test_malformed_secret(self, slack_sink, secrets_client):
        with Stubber(secrets_client) as stubber:
            stubber.add_response("get_secret_value", {"SecretString": "not json"})
            with pytest.raises(SlackWebhookError):
                slack_sink.webhook_url

    def test_malformed_secret_denies_permission(self, slack_sink, secrets_client):
        with Stubber(secrets_client) as stubber:
            stubber.add_response("get_secret_value", {"SecretString": "[1, 2]"})
            assert slack_sink.permission_granted() is False

    def test_read_timeout_is_wrapped(self, slack_sink, notification, monkeypatch):
        slack_sink._webhook_url = WEBHOOK_URL

        class TimingOutResponse(FakeResponse):
            def read(self):
                raise socket.timeout("The read operation timed out")

        monkeypatch.setattr("urllib.request.urlopen", lambda req, timeout: TimingOutResponse())

        with pytest.raises(SlackWebhookError, match="timed out"):
            slack_sink.deliver(notification)

    def test_connection_reset_is_wrapped(self, slack_sink, notification, monkeypatch):
        slack_sink._webhook_url = WEBHOOK_URL

        def reset(req, timeout):
            raise ConnectionResetError("Connection reset by peer")

        monkeypatch.setattr("urllib.request.urlopen", reset)

        with pytest.raises(SlackWebhookError):
            slack_sink.deliver(notification)
