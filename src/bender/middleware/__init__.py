"""Middleware: Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request, response, next) -> None

Built-in middleware:
    CORSMiddleware -- Cross-Origin Resource Sharing
    CookieMiddleware -- Signed cookies (requires itsdangerous)
    RateLimitMiddleware -- Fixed-window per-client rate limiting
    RequestLogMiddleware -- Access log on the bender.access logger
    SecurityHeadersMiddleware -- X-Frame-Options, X-Content-Type-Options, CSP, ...
"""

from bender.middleware.cookies import CookieConfig, CookieMiddleware
from bender.middleware.cors import CORSConfig, CORSMiddleware
from bender.middleware.protocol import Middleware, Next
from bender.middleware.rate_limit import RateLimitConfig, RateLimitMiddleware
from bender.middleware.request_log import RequestLogConfig, RequestLogMiddleware
from bender.middleware.security_headers import (
    SecurityHeadersConfig,
    SecurityHeadersMiddleware,
)

__all__ = [
    "CORSConfig",
    "CORSMiddleware",
    "CookieConfig",
    "CookieMiddleware",
    "Middleware",
    "Next",
    "RateLimitConfig",
    "RateLimitMiddleware",
    "RequestLogConfig",
    "RequestLogMiddleware",
    "SecurityHeadersConfig",
    "SecurityHeadersMiddleware",
]
