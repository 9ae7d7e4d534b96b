"""
Security middleware tests

Tests verify:
1. Rate limiting functionality
2. Security headers in responses
3. Middleware package exports
"""
import pytest


class MockRequest:
    """Minimal stand-in for a Starlette request."""

    class MockClient:
        host = "127.0.0.1"

    class MockUrl:
        def __init__(self, path):
            self.path = path

    def __init__(self, path="/api/insights/analyze", headers=None):
        self.client = self.MockClient()
        self.headers = headers or {}
        self.url = self.MockUrl(path)


class TestRateLimiting:
    """Test rate limiting functionality."""

    def test_rate_limiter_allows_requests(self):
        """Test that rate limiter allows requests within limits."""
        from kindra.middleware.security import RateLimiter

        limiter = RateLimiter()
        allowed, headers = limiter.is_allowed(MockRequest())

        assert allowed is True
        assert "X-RateLimit-Limit" in headers
        assert "X-RateLimit-Remaining" in headers

    def test_rate_limiter_blocks_excess_requests(self):
        """Test that rate limiter blocks requests over limit."""
        from kindra.middleware.security import RateLimiter

        limiter = RateLimiter(default_limit=3)
        request = MockRequest()

        for _ in range(3):
            allowed, _ = limiter.is_allowed(request)
            assert allowed is True

        allowed, headers = limiter.is_allowed(request)
        assert allowed is False
        assert headers["Retry-After"] == "60"

    def test_stored_record_endpoints_have_lower_limit(self):
        """Test prefix matching for database-backed endpoints."""
        from kindra.middleware.security import RateLimiter

        limiter = RateLimiter()
        _, headers = limiter.is_allowed(MockRequest("/api/insights/users/7"))
        assert headers["X-RateLimit-Limit"] == "30"

    def test_clients_are_tracked_separately(self):
        """Test that the X-User-ID header splits the bucket."""
        from kindra.middleware.security import RateLimiter

        limiter = RateLimiter(default_limit=1)
        assert limiter.is_allowed(MockRequest(headers={"X-User-ID": "1"}))[0] is True
        assert limiter.is_allowed(MockRequest(headers={"X-User-ID": "2"}))[0] is True
        assert limiter.is_allowed(MockRequest(headers={"X-User-ID": "1"}))[0] is False

    def test_stale_clients_are_evicted(self):
        """Test that identifiers with no recent requests are dropped."""
        import time
        from kindra.middleware.security import RateLimiter

        limiter = RateLimiter()
        limiter.requests["10.0.0.1:"] = [time.time() - 120]
        limiter.requests["10.0.0.2:"] = []
        limiter.is_allowed(MockRequest())

        assert "10.0.0.1:" not in limiter.requests
        assert "10.0.0.2:" not in limiter.requests
        assert len(limiter.requests["127.0.0.1:"]) == 1

    def test_middleware_returns_429(self, test_client):
        """Test the middleware rejects requests once the bucket is full."""
        from kindra.middleware.security import rate_limiter

        rate_limiter.config["/api/insights/analyze"] = {"limit": 1, "window": 60}
        try:
            first = test_client.post("/api/insights/analyze", json={"moments": []})
            second = test_client.post("/api/insights/analyze", json={"moments": []})
        finally:
            del rate_limiter.config["/api/insights/analyze"]

        assert first.status_code == 200
        assert second.status_code == 429
        assert second.json()["detail"] == "Too many requests. Please slow down."


class TestSecurityHeaders:
    """Test security headers in responses."""

    def test_security_headers_present(self, test_client):
        """Test that security headers are added to responses."""
        response = test_client.get("/health")

        assert response.headers.get("X-Content-Type-Options") == "nosniff"
        assert response.headers.get("X-Frame-Options") == "DENY"
        assert "Content-Security-Policy" in response.headers
        assert response.headers.get("Cache-Control") == "no-store"

    def test_health_is_not_rate_limited(self, test_client):
        """Test that liveness checks skip rate limiting."""
        response = test_client.get("/health")
        assert "X-RateLimit-Limit" not in response.headers

    def test_rate_limit_headers_present(self, test_client):
        """Test that API responses carry rate limit headers."""
        response = test_client.post("/api/insights/analyze", json={"moments": []})
        assert "X-RateLimit-Limit" in response.headers


class TestSecurityMiddlewareIntegration:
    """Test middleware package wiring."""

    def test_middleware_package_exports(self):
        """Test that middleware package exports correctly."""
        from kindra.middleware import (
            RateLimitMiddleware,
            SecurityHeadersMiddleware,
            rate_limiter,
        )

        assert RateLimitMiddleware is not None
        assert SecurityHeadersMiddleware is not None
        assert rate_limiter is not None

    @pytest.mark.parametrize("path", ["/", "/health"])
    def test_liveness_endpoints(self, test_client, path):
        assert test_client.get(path).status_code == 200
