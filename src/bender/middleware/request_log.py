"""Request logging middleware.

One access-log line per request on the ``bender.access`` logger, in the
compact ``dev`` format (``GET /users 200 1.4ms``) or a ``combined``-style
line with client and user agent.
"""

import logging
import time
from dataclasses import dataclass

from bender.http.request import CanonicalRequest
from bender.http.response import CanonicalResponse
from bender.middleware.protocol import Next


@dataclass(frozen=True, slots=True)
class RequestLogConfig:
    """Configuration for the access log."""

    format: str = "dev"
    logger_name: str = "bender.access"
    skip_paths: tuple[str, ...] = ()


class RequestLogMiddleware:
    """Log method, path, final status, and elapsed time."""

    __slots__ = ("_logger", "config")

    def __init__(self, config: RequestLogConfig | None = None) -> None:
        self.config = config or RequestLogConfig()
        self._logger = logging.getLogger(self.config.logger_name)

    async def __call__(self, request: CanonicalRequest, response: CanonicalResponse, next: Next) -> None:
        if request.path in self.config.skip_paths:
            await next()
            return
        started = time.perf_counter()

        def log(final: CanonicalResponse) -> None:
            elapsed = (time.perf_counter() - started) * 1000
            if self.config.format == "combined":
                self._logger.info(
                    '%s "%s %s" %d %.1fms "%s"',
                    request.client or "-",
                    request.method,
                    request.path,
                    final.status,
                    elapsed,
                    request.headers.get("user-agent", "-"),
                )
            else:
                self._logger.info("%s %s %d %.1fms", request.method, request.path, final.status, elapsed)

        response.on_finish(log)
        await next()
