"""
Cost Refresh Lambda Handler.

Triggered by EventBridge on a schedule (or invoked manually) to:
1. Refresh month-to-date cost for each profile
2. Run analytics and alert evaluation
3. Report per-profile outcomes
"""

import json
import logging
import os
from datetime import UTC, datetime
from typing import Any

from aws_cost_monitor.config import get_cached_config
from aws_cost_monitor.monitor import create_cost_monitor
from aws_cost_monitor.orchestrator import FetchResult

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.getLogger().setLevel(level)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level)


def _summarize(result: FetchResult) -> dict[str, Any]:
    summary: dict[str, Any] = {
        "profile": result.profile_name,
        "success": result.success,
        "status": result.status.value,
    }
    if result.entry is not None:
        summary["mtd_total"] = str(result.entry.mtd_total)
        summary["currency"] = result.entry.currency
    if result.message:
        summary["message"] = result.message
    if result.error_kind is not None:
        summary["error_kind"] = result.error_kind.value
    if result.wait_seconds is not None:
        summary["wait_seconds"] = result.wait_seconds
    if result.alerts:
        summary["alerts_sent"] = sum(1 for decision in result.alerts if decision.delivered)
    return summary


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Lambda handler for cost refresh.

    Environment variables:
    - LOG_LEVEL: Root log level (default INFO)
    - COST_MONITOR_ENV: Environment (dev, staging, prod)
    - COST_MONITOR_PROFILE: Default profile when the event names none

    Event parameters:
    - profiles: list[str] - Profiles to refresh (default: aws.default_profile)
    - force: bool - Bypass cache, circuit breaker and rate limiter
    """
    _configure_logging()
    event = event or {}
    logger.info("Cost refresh invoked at %s", datetime.now(UTC).isoformat())
    logger.debug("Event: %s", json.dumps(event))

    config = get_cached_config()
    force = bool(event.get("force", False))
    profiles = event.get("profiles") or [config.aws.default_profile]

    monitor = create_cost_monitor(config)
    results = [monitor.fetch_cost(profile, force=force) for profile in profiles]
    summaries = [_summarize(result) for result in results]

    failed = [s for s in summaries if not s["success"]]
    for summary in failed:
        logger.warning("Refresh failed for %s: %s", summary["profile"], summary.get("message"))

    return {
        "statusCode": 200 if not failed else 207 if len(failed) < len(summaries) else 500,
        "body": json.dumps(
            {
                "refreshed": len(summaries) - len(failed),
                "failed": len(failed),
                "results": summaries,
            }
        ),
    }
