"""UniversalAdapter: one routing API over whichever engine is bound.

``Router`` is the canonical router handle: route registration, path
scoped middleware, and sub-router mounting, all translated through the
binding. ``UniversalAdapter`` is the root router plus the application
level operations (fallback, baseline middleware, listen).

Usage::

    from bender import UniversalAdapter

    adapter = UniversalAdapter.create()          # detect the engine
    adapter.get("/health", lambda req, res: res.send_json({"ok": True}))

    users = adapter.create_router()

    @users.get("/{id}")
    async def show(req, res):
        res.send_json({"id": req.params["id"]})

    adapter.inject_router("/users", users)
    await adapter.listen(3000, lambda: print("ready"))
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from bender._internal.types import Handler, ReadyCallback
from bender.engines import ENGINE_NAMES, get_engine
from bender.engines.base import EngineBinding
from bender.errors import ConfigurationError
from bender.routing.paths import join_paths

if TYPE_CHECKING:
    from bender.config import AppConfig

logger = logging.getLogger("bender.adapter")


class Router:
    """A router handle bound to one engine.

    ``native`` is the engine's own router object (the application itself
    for the root). An optional *prefix* is prepended to every path
    registered here. *wrap* decorates each route handler before it is
    registered; the route loader uses it for error capture.
    """

    __slots__ = ("_wrap", "binding", "native", "prefix")

    def __init__(
        self,
        binding: EngineBinding,
        native: Any,
        *,
        prefix: str | None = None,
        wrap: Callable[[Handler], Handler] | None = None,
    ) -> None:
        self.binding = binding
        self.native = native
        self.prefix = prefix
        self._wrap = wrap

    def __repr__(self) -> str:
        return f"<{type(self).__name__} engine={self.engine!r} prefix={self.prefix!r}>"

    @property
    def engine(self) -> str:
        return self.binding.name

    def _path(self, path: str) -> str:
        return join_paths(self.prefix, path) if self.prefix else path

    # -- Middleware --

    def use(self, path_or_handler: str | Handler, *handlers: Handler) -> Router:
        """Register middleware, optionally scoped to a path prefix.

        ``use(mw)`` applies to every request; ``use("/api", mw1, mw2)``
        only to ``/api`` and paths beneath it.
        """
        if isinstance(path_or_handler, str):
            path = self._path(path_or_handler)
        else:
            path = self._path("/")
            handlers = (path_or_handler, *handlers)
        if not handlers:
            msg = "use() needs at least one middleware"
            raise ConfigurationError(msg)
        for handler in handlers:
            self.binding.register_middleware(self.native, path, handler)
        return self

    # -- Routes --

    def route(self, method: str, path: str, *handlers: Handler) -> Any:
        """Register *handlers* for *method* and *path*.

        Called without handlers it returns a decorator::

            @router.route("GET", "/ping")
            def ping(req, res):
                return {"pong": True}
        """
        if not handlers:

            def decorator(func: Handler) -> Handler:
                self.route(method, path, func)
                return func

            return decorator
        chain = tuple(self._wrap(handler) for handler in handlers) if self._wrap else handlers
        self.binding.register_handler(self.native, method, self._path(path), chain)
        return self

    def get(self, path: str, *handlers: Handler) -> Any:
        return self.route("GET", path, *handlers)

    def post(self, path: str, *handlers: Handler) -> Any:
        return self.route("POST", path, *handlers)

    def put(self, path: str, *handlers: Handler) -> Any:
        return self.route("PUT", path, *handlers)

    def patch(self, path: str, *handlers: Handler) -> Any:
        return self.route("PATCH", path, *handlers)

    def delete(self, path: str, *handlers: Handler) -> Any:
        return self.route("DELETE", path, *handlers)

    def head(self, path: str, *handlers: Handler) -> Any:
        return self.route("HEAD", path, *handlers)

    def options(self, path: str, *handlers: Handler) -> Any:
        return self.route("OPTIONS", path, *handlers)

    # -- Composition --

    def create_router(
        self,
        prefix: str | None = None,
        *,
        wrap: Callable[[Handler], Handler] | None = None,
    ) -> Router:
        """Create a sub-router bound to the same engine."""
        return Router(self.binding, self.binding.new_router(), prefix=prefix, wrap=wrap)

    def inject_router(self, path: str, router: Router) -> Router:
        """Mount *router* at *path* beneath this router."""
        if not isinstance(router, Router):
            msg = f"inject_router() expects a Router, got {type(router).__name__}"
            raise ConfigurationError(msg)
        if router.binding is not self.binding:
            msg = "Cannot mount a router created for a different engine binding"
            raise ConfigurationError(msg)
        self.binding.mount_router(self.native, self._path(path), router.native)
        return self


class UniversalAdapter(Router):
    """The root router plus application-level operations.

    Raises:
        ConfigurationError: If the binding has no native application,
            no engine name, or an engine name bender doesn't know.
    """

    __slots__ = ()

    def __init__(self, binding: EngineBinding) -> None:
        if binding is None or getattr(binding, "app", None) is None:
            msg = "UniversalAdapter needs a binding with a native application"
            raise ConfigurationError(msg)
        name = getattr(binding, "name", None)
        if not name:
            msg = "UniversalAdapter needs an engine identifier"
            raise ConfigurationError(msg)
        if name not in ENGINE_NAMES:
            msg = f"Unknown engine {name!r}. Known engines: {', '.join(sorted(ENGINE_NAMES))}"
            raise ConfigurationError(msg)
        super().__init__(binding, binding.app)

    @classmethod
    def create(cls, engine: str | None = None, config: AppConfig | None = None) -> UniversalAdapter:
        """Select an engine, bind it, and apply *config*'s baseline if given.

        *engine* overrides ``config.engine``; with neither, the first
        installed engine in priority order is used.
        """
        preferred = engine or (config.engine if config is not None else None)
        descriptor = get_engine(preferred)
        adapter = cls(descriptor.create())
        logger.info("Bound engine %s", descriptor.name)
        if config is not None:
            adapter.setup_baseline_middleware(config)
        return adapter

    @property
    def app(self) -> Any:
        """The engine's native application (ASGI callable or aiohttp app)."""
        return self.binding.app

    def fallback(self, handler: Handler) -> UniversalAdapter:
        """Replace the not-found handler for unmatched paths and methods."""
        self.binding.set_fallback(handler)
        return self

    def setup_baseline_middleware(self, config: AppConfig) -> list[str]:
        """Install the baseline stack described by *config*.

        Returns the names of the steps that were installed.
        """
        from bender.middleware.baseline import install_baseline

        return install_baseline(self, config)

    async def listen(
        self,
        port: int,
        callback: ReadyCallback | None = None,
        host: str | None = None,
    ) -> None:
        """Serve until cancelled; *callback* fires once the port is bound."""
        host = host or "127.0.0.1"
        logger.info("Starting %s on %s:%d", self.engine, host, port)
        await self.binding.serve(host, port, callback)

    def routes(self) -> list[tuple[str, str]]:
        """``(method, path)`` pairs currently served."""
        return self.binding.routes()
