"""Gates in front of the live cost provider."""

from aws_cost_monitor.resilience.circuit_breaker import CircuitBreaker, CircuitBreakerRegistry
from aws_cost_monitor.resilience.rate_limiter import (
    RateLimiter,
    can_call,
    seconds_until_next_allowed,
)
from aws_cost_monitor.resilience.single_flight import SingleFlight

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "RateLimiter",
    "SingleFlight",
    "can_call",
    "seconds_until_next_allowed",
]
