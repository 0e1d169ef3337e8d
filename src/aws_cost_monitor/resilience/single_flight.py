"""Duplicate call suppression keyed by profile."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Callable, Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """
    At most one execution per key at a time.

    The first caller for a key runs the function; callers arriving while it
    is in flight block on the same result (or exception) instead of running
    it again.
    """

    def __init__(self) -> None:
        self._calls: dict[Hashable, Future] = {}
        self._lock = threading.Lock()

    def in_flight(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._calls

    def do(self, key: Hashable, fn: Callable[[], T]) -> tuple[T, bool]:
        """
        Run ``fn`` for ``key`` or join the execution already in flight.

        Returns:
            (result, shared) where ``shared`` is True for callers that joined.
        """
        with self._lock:
            future = self._calls.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._calls[key] = future

        if not leader:
            logger.info("Joining in-flight call for %s", key)
            return future.result(), True

        try:
            result = fn()
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(result)
            return result, False
        finally:
            with self._lock:
                del self._calls[key]
