"""
Security middleware for the insights API

Includes:
- Rate limiting
- Security headers
"""
import time
import logging
from typing import Dict, Any, Callable, Optional
from collections import defaultdict

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from kindra.config import settings

logger = logging.getLogger("security-middleware")

UNLIMITED_PATHS = ("/health", "/", "/docs", "/openapi.json")


# ============================================
# Rate Limiting
# ============================================

class RateLimiter:
    """In-memory rate limiter with sliding window."""

    def __init__(self, default_limit: Optional[int] = None):
        self.requests: Dict[str, list] = defaultdict(list)
        self.config = {
            # Default limits: requests per minute
            "default": {"limit": default_limit or settings.RATE_LIMIT_PER_MINUTE, "window": 60},
            # Database-backed endpoints open a connection per call
            "/api/insights/users": {"limit": 30, "window": 60},
        }

    def _get_identifier(self, request: Request) -> str:
        """Get unique identifier for rate limiting (IP + user id if available)."""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
        else:
            ip = request.client.host if request.client else "unknown"

        user_id = request.headers.get("X-User-ID", "")
        return f"{ip}:{user_id}"

    def _get_config(self, path: str) -> Dict[str, int]:
        """Get rate limit config for endpoint."""
        if path in self.config:
            return self.config[path]

        for endpoint, config in self.config.items():
            if path.startswith(endpoint):
                return config

        return self.config["default"]

    def _evict_stale(self, now: float) -> None:
        """Drop identifiers with no request inside the longest window."""
        horizon = max(c["window"] for c in self.config.values())
        stale = [key for key, times in self.requests.items() if not times or now - times[-1] >= horizon]
        for key in stale:
            del self.requests[key]

    def is_allowed(self, request: Request) -> tuple[bool, Dict[str, Any]]:
        """Check if request is allowed under rate limits."""
        identifier = self._get_identifier(request)
        config = self._get_config(request.url.path)

        limit = config["limit"]
        window = config["window"]
        now = time.time()

        self._evict_stale(now)
        self.requests[identifier] = [
            t for t in self.requests.get(identifier, [])
            if now - t < window
        ]

        request_count = len(self.requests[identifier])
        remaining = max(0, limit - request_count - 1)
        reset_time = int(now + window)

        headers = {
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(reset_time),
        }

        if request_count >= limit:
            headers["Retry-After"] = str(window)
            return False, headers

        self.requests[identifier].append(now)
        return True, headers

    def reset(self):
        self.requests.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce rate limiting."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in UNLIMITED_PATHS:
            return await call_next(request)

        allowed, headers = rate_limiter.is_allowed(request)

        if not allowed:
            logger.warning(f"⚠️ Rate limit exceeded for {request.url.path}")
            response = JSONResponse(
                status_code=429,
                content={
                    "detail": "Too many requests. Please slow down.",
                    "retry_after": headers.get("Retry-After", "60")
                }
            )
            for key, value in headers.items():
                response.headers[key] = value
            return response

        response = await call_next(request)

        for key, value in headers.items():
            response.headers[key] = value

        return response


# ============================================
# Security Headers
# ============================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"

        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # JSON only, nothing to load
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"

        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )

        # Insights carry health data
        response.headers["Cache-Control"] = "no-store"

        return response
