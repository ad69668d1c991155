"""CORS middleware.

Handles preflight requests and adds the appropriate headers to every
cross-origin response, whichever engine is serving it.
"""

from dataclasses import dataclass

from bender.http.request import CanonicalRequest
from bender.http.response import CanonicalResponse
from bender.middleware.protocol import Next


@dataclass(frozen=True, slots=True)
class CORSConfig:
    """CORS middleware configuration.

    All fields have secure defaults (nothing is allowed).
    Override what you need::

        CORSConfig(
            allow_origins=("https://example.com",),
            allow_methods=("GET", "POST"),
        )
    """

    allow_origins: tuple[str, ...] = ()
    allow_methods: tuple[str, ...] = ("GET", "HEAD", "PUT", "PATCH", "POST", "DELETE")
    allow_headers: tuple[str, ...] = ()
    expose_headers: tuple[str, ...] = ()
    allow_credentials: bool = False
    max_age: int = 600  # 10 minutes


class CORSMiddleware:
    """Standards-compliant CORS middleware.

    Handles:
    - Preflight ``OPTIONS`` requests (answered with 204 and CORS headers)
    - Simple and actual requests (CORS headers added, request continues)
    - Credential support (``Access-Control-Allow-Credentials``)
    - Wildcard origins (``"*"``) when credentials are disabled

    Usage::

        adapter.use(CORSMiddleware(CORSConfig(
            allow_origins=("https://example.com",),
            allow_headers=("Content-Type", "Authorization"),
        )))
    """

    __slots__ = ("config",)

    def __init__(self, config: CORSConfig | None = None) -> None:
        self.config = config or CORSConfig()

    def _is_allowed_origin(self, origin: str) -> bool:
        if "*" in self.config.allow_origins:
            return True
        return origin in self.config.allow_origins

    def _add_cors_headers(self, response: CanonicalResponse, origin: str) -> None:
        cfg = self.config

        if "*" in cfg.allow_origins and not cfg.allow_credentials:
            response.set_header("Access-Control-Allow-Origin", "*")
        else:
            response.set_header("Access-Control-Allow-Origin", origin)
            response.set_header("Vary", "Origin")

        if cfg.allow_credentials:
            response.set_header("Access-Control-Allow-Credentials", "true")

        if cfg.expose_headers:
            response.set_header("Access-Control-Expose-Headers", ", ".join(cfg.expose_headers))

    def _preflight(self, request: CanonicalRequest, response: CanonicalResponse, origin: str) -> None:
        cfg = self.config
        self._add_cors_headers(response, origin)
        response.set_header("Access-Control-Allow-Methods", ", ".join(cfg.allow_methods))

        if cfg.allow_headers:
            response.set_header("Access-Control-Allow-Headers", ", ".join(cfg.allow_headers))
        else:
            # Reflect what the browser asked for, as the cors package does.
            requested = request.headers.get("access-control-request-headers")
            if requested:
                response.set_header("Access-Control-Allow-Headers", requested)

        response.set_header("Access-Control-Max-Age", str(cfg.max_age))
        response.set_status(204).end()

    async def __call__(self, request: CanonicalRequest, response: CanonicalResponse, next: Next) -> None:
        origin = request.headers.get("origin")

        # No Origin header or origin not allowed: not our business
        if origin is None or not self._is_allowed_origin(origin):
            await next()
            return

        if request.method == "OPTIONS" and request.headers.get("access-control-request-method"):
            self._preflight(request, response, origin)
            return

        self._add_cors_headers(response, origin)
        await next()
