"""Tests for security headers middleware."""

from bender.middleware import SecurityHeadersConfig, SecurityHeadersMiddleware
from bender.testing import TestClient


class TestSecurityHeadersConfig:
    def test_none_skips_header(self) -> None:
        names = [name for name, _ in SecurityHeadersConfig(content_security_policy=None).headers()]
        assert "Content-Security-Policy" not in names
        assert "X-Frame-Options" in names


class TestSecurityHeadersMiddleware:
    async def test_defaults_applied(self, adapter) -> None:
        adapter.use(SecurityHeadersMiddleware())
        adapter.get("/", lambda req, res: {})
        async with TestClient(adapter) as client:
            response = await client.get("/")
            assert response.headers.get("x-frame-options") == "DENY"
            assert response.headers.get("x-content-type-options") == "nosniff"
            assert response.headers.get("referrer-policy") == "no-referrer"

    async def test_custom(self, adapter) -> None:
        adapter.use(SecurityHeadersMiddleware(SecurityHeadersConfig(x_frame_options="SAMEORIGIN")))
        adapter.get("/", lambda req, res: {})
        async with TestClient(adapter) as client:
            assert (await client.get("/")).headers.get("x-frame-options") == "SAMEORIGIN"
