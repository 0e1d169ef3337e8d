"""Circuit breaker for the cost provider."""

from __future__ import annotations

import logging
import threading
from typing import Literal

logger = logging.getLogger(__name__)

GLOBAL_KEY = "*"


class CircuitBreaker:
    """
    Counts consecutive provider failures.

    Closed while ``consecutive_failures < failure_threshold``. Once open,
    only a successful call closes it again; a forced call gets through but
    does not reset anything on its own.
    """

    def __init__(self, failure_threshold: int = 3, name: str = GLOBAL_KEY):
        self.failure_threshold = failure_threshold
        self.name = name
        self._consecutive_failures = 0
        self._lock = threading.Lock()

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def is_open(self) -> bool:
        return self._consecutive_failures >= self.failure_threshold

    def allows(self, force: bool = False) -> bool:
        """Whether a live call may proceed."""
        return force or not self.is_open

    def record_failure(self) -> bool:
        """
        Count a failure.

        Returns:
            True if the breaker is open after this failure.
        """
        with self._lock:
            was_open = self.is_open
            self._consecutive_failures += 1
            opened = self.is_open

        if opened and not was_open:
            logger.error(
                "Circuit breaker %s opened after %d consecutive failures",
                self.name,
                self._consecutive_failures,
            )
        return opened

    def record_success(self) -> None:
        with self._lock:
            was_open = self.is_open
            self._consecutive_failures = 0

        if was_open:
            logger.info("Circuit breaker %s closed after a successful call", self.name)


class CircuitBreakerRegistry:
    """Hands out one shared breaker, or one breaker per profile."""

    def __init__(self, failure_threshold: int = 3, scope: Literal["global", "profile"] = "global"):
        self.failure_threshold = failure_threshold
        self.scope = scope
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def get(self, profile_name: str) -> CircuitBreaker:
        key = profile_name if self.scope == "profile" else GLOBAL_KEY
        with self._lock:
            if key not in self._breakers:
                self._breakers[key] = CircuitBreaker(self.failure_threshold, name=key)
            return self._breakers[key]
