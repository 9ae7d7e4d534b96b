"""
Middleware package for the Kindra insights backend.
"""
from .security import (
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
    rate_limiter,
)

__all__ = [
    "RateLimitMiddleware",
    "SecurityHeadersMiddleware",
    "rate_limiter",
]
