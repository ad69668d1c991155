"""Handler base class for route modules.

Subclass ``Handler`` and register routes on ``self.router`` in ``setup``::

    class Users(Handler):
        async def setup(self) -> None:
            self.router.get("/", self.index)

        async def index(self, req, res):
            result = await self.tryer(load_users)
            self.responser(res, result.code, result.data)

The loader runs ``start()`` for every handler of a segment together.
``ready`` is set once setup has finished, successfully or not; a failure
is kept on ``error`` and the handler is not mounted.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import anyio

from bender._internal.invoke import invoke
from bender.routes.envelope import TryResult, responser, tryer

if TYPE_CHECKING:
    from bender.adapter import Router
    from bender.http.response import CanonicalResponse
    from bender.routes.context import RouterContext

logger = logging.getLogger("bender.routes")


class Handler(ABC):
    """A unit of routes mounted under one segment."""

    def __init__(self, context: RouterContext) -> None:
        self.context = context
        self.router: Router = context.create_router()
        self.error: BaseException | None = None
        self._ready: anyio.Event | None = None  # Created lazily inside the loop

    def __repr__(self) -> str:
        return f"<{type(self).__name__} segment={self.context.segment!r}>"

    @property
    def ready(self) -> anyio.Event:
        if self._ready is None:
            self._ready = anyio.Event()
        return self._ready

    @property
    def ok(self) -> bool:
        return self.ready.is_set() and self.error is None

    @abstractmethod
    async def setup(self) -> None:
        """Register routes on ``self.router``. May load data first."""

    async def start(self) -> None:
        """Run ``setup`` and set ``ready``. Never raises."""
        try:
            await self.setup()
        except Exception as exc:
            self.error = exc
            logger.exception("Setup failed for %r", self)
        finally:
            self.ready.set()

    def responser(self, res: CanonicalResponse, code: int, payload: Any = None) -> CanonicalResponse:
        return responser(
            res,
            code,
            payload,
            response_type=self.context.response_type,
            envelope=self.context.envelope,
        )

    async def tryer(self, operation: Callable[..., Any], *args: Any, code: int = 200, **kwargs: Any) -> TryResult:
        return await tryer(operation, *args, error_log=self.context.error_log, success_code=code, **kwargs)


@dataclass(frozen=True, slots=True)
class Registrar:
    """Factory for a module-level ``register(router, context)`` function."""

    register: Callable[..., Any]

    @property
    def name(self) -> str:
        return f"{self.register.__module__}.{self.register.__qualname__}"

    def __call__(self, context: RouterContext) -> Handler:
        return FunctionHandler(context, self.register)


class FunctionHandler(Handler):
    """Adapts a ``register`` function to the ``Handler`` lifecycle."""

    def __init__(self, context: RouterContext, register: Callable[..., Any]) -> None:
        self.register = register
        super().__init__(context)

    def __repr__(self) -> str:
        return f"<FunctionHandler {self.register.__module__}.register segment={self.context.segment!r}>"

    async def setup(self) -> None:
        await invoke(self.register, self.router, self.context)
