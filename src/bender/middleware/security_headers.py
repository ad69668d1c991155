"""Security headers middleware: X-Frame-Options, X-Content-Type-Options, Referrer-Policy, CSP.

Sets the usual hardening headers on every response, the way helmet does
for Node servers. JSON APIs benefit from ``nosniff`` and a locked-down
CSP as much as HTML pages do.
"""

from dataclasses import dataclass

from bender.http.request import CanonicalRequest
from bender.http.response import CanonicalResponse
from bender.middleware.protocol import Next


@dataclass(frozen=True, slots=True)
class SecurityHeadersConfig:
    """Configuration for security headers.

    All values are applied as-is. ``None`` skips the header.
    """

    x_frame_options: str | None = "DENY"
    x_content_type_options: str | None = "nosniff"
    referrer_policy: str | None = "no-referrer"
    content_security_policy: str | None = (
        "default-src 'self'; base-uri 'self'; frame-ancestors 'none'; object-src 'none'"
    )
    strict_transport_security: str | None = "max-age=15552000; includeSubDomains"
    cross_origin_opener_policy: str | None = "same-origin"
    cross_origin_resource_policy: str | None = "same-origin"

    def headers(self) -> list[tuple[str, str]]:
        pairs = (
            ("X-Frame-Options", self.x_frame_options),
            ("X-Content-Type-Options", self.x_content_type_options),
            ("Referrer-Policy", self.referrer_policy),
            ("Content-Security-Policy", self.content_security_policy),
            ("Strict-Transport-Security", self.strict_transport_security),
            ("Cross-Origin-Opener-Policy", self.cross_origin_opener_policy),
            ("Cross-Origin-Resource-Policy", self.cross_origin_resource_policy),
        )
        return [(name, value) for name, value in pairs if value]


class SecurityHeadersMiddleware:
    """Add security headers to every response.

    Usage::

        from bender.middleware import SecurityHeadersMiddleware

        adapter.use(SecurityHeadersMiddleware())

    Or with custom config::

        adapter.use(SecurityHeadersMiddleware(SecurityHeadersConfig(
            x_frame_options="SAMEORIGIN",
        )))
    """

    __slots__ = ("_headers", "config")

    def __init__(self, config: SecurityHeadersConfig | None = None) -> None:
        self.config = config or SecurityHeadersConfig()
        self._headers = self.config.headers()

    async def __call__(self, request: CanonicalRequest, response: CanonicalResponse, next: Next) -> None:
        for name, value in self._headers:
            response.set_header(name, value)
        await next()
