"""
AWS Cost Monitor - cost data acquisition and caching engine.

A small engine for keeping month-to-date AWS spend fresh without
overspending on the metered Cost Explorer API:
- Budget-aware caching of Cost Explorer results per profile
- Client-side rate limiting and a circuit breaker around live calls
- Trend, projection and anomaly analytics over daily cost series
- Budget and anomaly alerts with per-type cooldowns
"""

__version__ = "0.1.0"
