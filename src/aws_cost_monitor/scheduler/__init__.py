"""Automatic refresh scheduling."""

from aws_cost_monitor.scheduler.refresh import RefreshScheduler

__all__ = ["RefreshScheduler"]
