"""Rate limiting adapters.

The subscribe endpoint depends on the abstract limiter only, so the in-memory
fixed-window implementation can later be replaced by a shared store.
"""

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitResult",
]
