"""Client-side rate limiter for live Cost Explorer calls."""

from __future__ import annotations

import logging
import math
import threading
import time
from datetime import UTC, datetime
from typing import Callable

logger = logging.getLogger(__name__)

MIN_INTERVAL_SECONDS = 60


def _utc_now() -> datetime:
    return datetime.now(UTC)


def can_call(
    last_call_time: datetime | None,
    now: datetime,
    min_interval_seconds: int = MIN_INTERVAL_SECONDS,
) -> bool:
    """True if there was no prior call or the minimum interval has elapsed."""
    if last_call_time is None:
        return True
    return (now - last_call_time).total_seconds() >= min_interval_seconds


def seconds_until_next_allowed(
    last_call_time: datetime | None,
    now: datetime,
    min_interval_seconds: int = MIN_INTERVAL_SECONDS,
) -> int:
    """Whole seconds to wait before the next call is permitted."""
    if last_call_time is None:
        return 0
    elapsed = (now - last_call_time).total_seconds()
    return max(0, math.ceil(min_interval_seconds - elapsed))


class RateLimiter:
    """
    Tracks the last live call and enforces a minimum interval between calls.

    This is a pre-check that mirrors the provider's throttling; it does not
    replace provider-side throttling errors.
    """

    def __init__(
        self,
        min_interval_seconds: int = MIN_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval_seconds = min_interval_seconds
        self.clock = clock
        self.sleep = sleep
        self._last_call_time: datetime | None = None
        self._lock = threading.Lock()

    @property
    def last_call_time(self) -> datetime | None:
        return self._last_call_time

    def can_call(self, now: datetime | None = None) -> bool:
        return can_call(self._last_call_time, now or self.clock(), self.min_interval_seconds)

    def seconds_until_next_allowed(self, now: datetime | None = None) -> int:
        return seconds_until_next_allowed(
            self._last_call_time, now or self.clock(), self.min_interval_seconds
        )

    def record_call(self, now: datetime | None = None) -> None:
        """Record a live call. Called before the request goes out."""
        with self._lock:
            self._last_call_time = now or self.clock()

    def try_acquire(self, now: datetime | None = None, force: bool = False) -> bool:
        """
        Check the interval and record the call in one step.

        Profiles share the limiter, so the check and the record must not be
        split across threads. ``force`` skips the check but still records.
        """
        now = now or self.clock()
        with self._lock:
            if not force and not can_call(self._last_call_time, now, self.min_interval_seconds):
                return False
            self._last_call_time = now
            return True

    def acquire(self) -> int:
        """Wait until a call is permitted and record it. Returns seconds waited."""
        waited = 0
        while not self.try_acquire():
            waited += self.wait_until_allowed()
        return waited

    def wait_until_allowed(self) -> int:
        """
        Block the calling thread until a call is permitted.

        Only the caller waits; other threads keep using the limiter.

        Returns:
            Seconds waited.
        """
        wait = self.seconds_until_next_allowed()
        if wait > 0:
            logger.warning("Waiting %d seconds before the next API call", wait)
            self.sleep(wait)
        return wait
