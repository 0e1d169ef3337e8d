"""Wire configured components into a FetchOrchestrator."""

from __future__ import annotations

import logging

from aws_cost_monitor.collectors import CostExplorerCollector, CostProvider
from aws_cost_monitor.config import Config, get_cached_config
from aws_cost_monitor.notifications import LoggingSink, NotificationSink, SlackWebhookSink
from aws_cost_monitor.orchestrator import FetchOrchestrator
from aws_cost_monitor.storage import DynamoDBStorage, InMemoryStorage, Storage

logger = logging.getLogger(__name__)


def create_storage(config: Config) -> Storage:
    if config.storage.backend == "dynamodb":
        return DynamoDBStorage(
            table_name=config.storage.table_name,
            audit_ttl_days=config.storage.audit_ttl_days,
            api_log_ttl_days=config.storage.api_log_ttl_days,
        )
    return InMemoryStorage(api_log_ttl_days=config.storage.api_log_ttl_days)


def create_sink(config: Config) -> NotificationSink:
    if config.slack.enabled:
        return SlackWebhookSink(
            secret_name=config.slack.secret_name,
            secret_key=config.slack.webhook_secret_key,
            region=config.aws.region,
        )
    return LoggingSink()


def create_cost_monitor(
    config: Config | None = None,
    provider: CostProvider | None = None,
    storage: Storage | None = None,
    sink: NotificationSink | None = None,
) -> FetchOrchestrator:
    """
    Build an orchestrator from configuration.

    Any component passed in is used as is; the rest are created from config.
    """
    config = config or get_cached_config()
    provider = provider or CostExplorerCollector(region=config.aws.region)
    storage = storage or create_storage(config)
    sink = sink or create_sink(config)

    logger.info(
        "Cost monitor created (storage: %s, sink: %s)",
        type(storage).__name__,
        type(sink).__name__,
    )
    return FetchOrchestrator(config=config, provider=provider, storage=storage, sink=sink)
