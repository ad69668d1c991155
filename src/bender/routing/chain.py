"""Route entries and the handler chain.

A ``RouteEntry`` is everything registered for one canonical path on one
router: an ordered list of ``Layer`` objects, one per registration call.
When a native route fires, the binding asks the entry for the layers
matching the request method and runs them through :func:`run_chain`.

Continuation semantics follow the classic ``(req, res, next)`` model:

- a handler that takes ``next`` and calls it hands over to the next
  handler; if it was the last one, to the next layer; if there is no
  next layer, to the not-found fallback.
- a handler that returns without sending and without calling ``next``
  ends the request with the current status and an empty body.
- a non-``None`` return value is sent if nothing was sent yet.

:func:`guard` is the error boundary every chain runs inside: ``HTTPError``
becomes its error envelope, anything else is logged and answered with a
generic 500. Stack traces never reach the client.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from bender._internal.invoke import invoke, wants_next
from bender._internal.types import Handler
from bender.errors import HTTPError
from bender.http.request import CanonicalRequest
from bender.http.response import CanonicalResponse
from bender.http.status import error_body

logger = logging.getLogger("bender.dispatch")

METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

NOT_FOUND_BODY = {"message": "Route not found"}


@dataclass(frozen=True, slots=True)
class Step:
    """A handler plus whether it takes the ``next`` continuation."""

    handler: Handler
    takes_next: bool

    @classmethod
    def of(cls, handler: Handler) -> Step:
        return cls(handler=handler, takes_next=wants_next(handler))


@dataclass(frozen=True, slots=True)
class Layer:
    """One registration: a method, its handler chain, and where it came from.

    ``origin`` is the router the handlers were registered on and
    ``local_path`` the path relative to it; router-level middleware is
    resolved against those.
    """

    method: str
    steps: tuple[Step, ...]
    origin: Any
    local_path: str


@dataclass(slots=True)
class RouteEntry:
    """All layers registered for one path on one router."""

    path: str
    layers: list[Layer] = field(default_factory=list)

    @property
    def methods(self) -> frozenset[str]:
        return frozenset(layer.method for layer in self.layers)

    def select(self, method: str) -> list[Layer]:
        """Layers for *method*; ``HEAD`` falls back to the ``GET`` layers."""
        method = method.upper()
        chosen = [layer for layer in self.layers if layer.method == method]
        if not chosen and method == "HEAD":
            chosen = [layer for layer in self.layers if layer.method == "GET"]
        return chosen


async def not_found(request: CanonicalRequest, response: CanonicalResponse) -> None:
    """Default fallback: 404 ``{"message": "Route not found"}``."""
    response.set_status(404).send_json(NOT_FOUND_BODY)


async def run_chain(
    steps: Sequence[Step],
    request: CanonicalRequest,
    response: CanonicalResponse,
) -> bool:
    """Run *steps* in order. Returns True if the last step called ``next``."""

    async def run(index: int) -> bool:
        if index >= len(steps):
            return True
        step = steps[index]
        called = False
        fell_through = False

        async def next_() -> None:
            nonlocal called, fell_through
            if called:
                logger.warning("next() called twice by %r; ignoring", step.handler)
                return
            called = True
            fell_through = await run(index + 1)

        if step.takes_next:
            result = await invoke(step.handler, request, response, next_)
        else:
            result = await invoke(step.handler, request, response)

        if result is not None and not response.sent:
            response.send(result)
        if not called and not response.sent:
            response.end()
        return fell_through

    return await run(0)


def send_error(response: CanonicalResponse, exc: HTTPError) -> None:
    """Answer with the envelope for *exc* unless something was already sent."""
    if response.sent:
        logger.warning("HTTP %d raised after the response was sent: %s", exc.status, exc)
        return
    for name, value in exc.headers:
        response.set_header(name, value)
    response.set_status(exc.status).send_json(error_body(exc.status, exc.detail or None))


def send_internal_error(response: CanonicalResponse) -> None:
    if not response.sent:
        response.set_status(500).send_json(error_body(500))


async def guard(coro: Any, response: CanonicalResponse, *, where: str) -> None:
    """Await *coro* inside the error boundary."""
    try:
        await coro
    except HTTPError as exc:
        send_error(response, exc)
    except Exception:
        logger.exception("Unhandled error in %s", where)
        send_internal_error(response)
