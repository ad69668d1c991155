"""Middleware protocol and Next type alias.

A middleware is any callable matching::

    async def my_mw(request: CanonicalRequest, response: CanonicalResponse, next: Next) -> None: ...

No base class required. The adapter checks the shape, not the lineage.

Middleware runs before routing and before the body is parsed, so
``request.body`` is ``None`` and ``request.params`` is empty. It either
calls ``next()`` to let the request continue, or sends a response to
stop it. Work that needs the final status goes in
``response.on_finish``.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from bender.http.request import CanonicalRequest
from bender.http.response import CanonicalResponse

# The continuation handed to a middleware
type Next = Callable[[], Awaitable[None]]


class Middleware(Protocol):
    """Protocol for bender middleware.

    Accepts both functions and callable objects::

        # Function middleware
        async def request_id(req, res, next):
            res.set_header("X-Request-Id", uuid.uuid4().hex)
            await next()

        # Class middleware
        class Maintenance:
            async def __call__(self, req, res, next):
                res.set_status(503).send_json({"message": "Back soon"})
    """

    async def __call__(self, request: CanonicalRequest, response: CanonicalResponse, next: Next) -> None: ...
