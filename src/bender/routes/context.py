"""What a route module gets when it is mounted.

A ``RouterContext`` is built once per handler by the loader. It names the
segment being mounted, the segment's node router, the directory the
module came from, and the error log for that directory. ``create_router``
hands out sub-routers whose handlers run inside :func:`capture_errors`.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from bender._internal.invoke import invoke, wants_next
from bender._internal.types import Handler
from bender.errors import HTTPError
from bender.routing.chain import send_error, send_internal_error

if TYPE_CHECKING:
    from bender.adapter import Router
    from bender.routes.errorlog import ErrorLog

logger = logging.getLogger("bender.routes")


def capture_errors(handler: Handler, *, error_log: ErrorLog | None = None) -> Handler:
    """Wrap *handler* so failures become error envelopes.

    ``HTTPError`` is answered with its own status. Anything else is logged,
    answered with a generic 500 and appended to *error_log* in the
    background. The wrapper keeps the handler's arity, so ``next`` is
    still passed to handlers that take it.
    """
    origin = getattr(handler, "__qualname__", None) or type(handler).__name__

    async def call(request, response, *rest):  # type: ignore[no-untyped-def]
        try:
            return await invoke(handler, request, response, *rest)
        except HTTPError as exc:
            send_error(response, exc)
        except Exception as exc:
            logger.exception("Unhandled error in %s (%s %s)", origin, request.method, request.path)
            if error_log is not None:
                error_log.schedule(exc, origin=origin)
            send_internal_error(response)
        return None

    if wants_next(handler):

        async def captured(request, response, next):  # type: ignore[no-untyped-def]  # noqa: A002
            return await call(request, response, next)

    else:

        async def captured(request, response):  # type: ignore[no-untyped-def]
            return await call(request, response)

    captured.__name__ = getattr(handler, "__name__", origin)
    captured.__qualname__ = origin
    captured.__doc__ = getattr(handler, "__doc__", None)
    return captured


@dataclass(frozen=True, slots=True)
class RouterContext:
    """Everything a handler needs to build its routes."""

    segment: str
    router: Router
    directory: Path | None = None
    error_log: ErrorLog | None = None
    response_type: str = "json"
    envelope: str = "raw"

    def create_router(self) -> Router:
        """A fresh router whose handlers are wrapped in error capture."""
        return self.router.create_router(wrap=functools.partial(capture_errors, error_log=self.error_log))
