"""Error taxonomy for cost fetching."""

from __future__ import annotations


class CostMonitorError(Exception):
    """Base error carrying a user-facing message."""

    counts_as_failure = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(CostMonitorError):
    """No profile selected, or credentials/config could not be read."""


class RateLimitedError(CostMonitorError):
    """A live call was refused by the client-side rate limiter."""

    def __init__(self, wait_seconds: int):
        super().__init__(f"Rate limited. Please wait {wait_seconds} seconds.")
        self.wait_seconds = wait_seconds


class CircuitOpenError(CostMonitorError):
    """Live calls are blocked after repeated provider failures."""

    def __init__(self, message: str = "API circuit breaker active. Retry with force to bypass."):
        super().__init__(message)


class ProviderError(CostMonitorError):
    """The cost provider failed (network, auth, throttling or no data)."""

    counts_as_failure = True


class ProviderAuthError(ProviderError):
    """Credentials were rejected or have expired."""


class ProviderThrottledError(ProviderError):
    """The provider throttled the request."""


class NoCostDataError(ProviderError):
    """The provider returned no result rows."""

    def __init__(self, message: str = "No data returned"):
        super().__init__(message)
