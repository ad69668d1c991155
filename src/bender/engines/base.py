"""EngineBinding: the per-engine translation layer.

One subclass per supported engine. The base class owns everything that
does not depend on the engine: route entries and layers, sub-router
bookkeeping, router-level middleware, the HEAD polyfill, the fallback,
and the error boundary. Subclasses supply the translation in both
directions and the native registration hooks.

Sub-routers hold their layers here and mounting copies them into the
parent at the joined path, so the root always knows every layer for an
absolute path, in mount order. Layers registered on a router after it
was mounted are propagated to its parents too. Dispatch always runs the
root's merged entry, which is what lets ``next()`` reach a sibling
router mounted at the same prefix.

Native registration comes in two styles:

- ``"prefix"``: the engine has no usable sub-application concept for
  our purposes; only the root materializes native routes.
- ``"compose"``: the engine composes sub-applications natively (Quart
  blueprints). Mounting is recorded and the binding builds the native
  tree itself before the first request.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import Any, ClassVar

from bender._internal.invoke import invoke
from bender._internal.types import Handler, ReadyCallback
from bender.errors import ConfigurationError
from bender.http.body import BodyConfig
from bender.http.request import CanonicalRequest
from bender.http.response import CanonicalResponse
from bender.routing.chain import Layer, RouteEntry, Step, guard, not_found, run_chain
from bender.routing.paths import join_paths, normalize_path, path_matches

logger = logging.getLogger("bender.engine")

_RESPONSE_KEY = "response"
_REQUEST_KEY = "request"
_STATE_KEY = "state"


class RouteGroup:
    """Native router stand-in for engines that mount by path prefix."""

    __slots__ = ("label",)

    def __init__(self, label: str = "") -> None:
        self.label = label

    def __repr__(self) -> str:
        return f"<RouteGroup {self.label or hex(id(self))}>"


class EngineBinding(ABC):
    """Binds the canonical API to one engine's native application."""

    name: ClassVar[str]
    mounting: ClassVar[str] = "prefix"

    def __init__(self, app: Any = None) -> None:
        self.app = app if app is not None else self.create_app()
        self.body_config = BodyConfig()
        self._entries: dict[tuple[int, str], RouteEntry] = {}
        self._targets: dict[int, Any] = {id(self.app): self.app}
        self._mounts: dict[int, list[tuple[Any, str]]] = {}
        self._parents: dict[int, tuple[Any, str]] = {}
        self._router_middleware: dict[int, list[tuple[str, Step]]] = {}
        self._middleware: list[tuple[str, Step]] = []
        self._fallback = Step.of(not_found)
        self._static: list[tuple[str, Path]] = []
        self._wire()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} engine={self.name!r}>"

    # -- Engine hooks --

    @abstractmethod
    def create_app(self) -> Any:
        """Build a fresh native application."""

    @abstractmethod
    def _wire(self) -> None:
        """Install the root hooks: fallback handling and response completion."""

    @abstractmethod
    def new_router(self) -> Any:
        """Build a native (or stand-in) sub-router."""

    @abstractmethod
    def _native_route(self, target: Any, path: str, entry: RouteEntry) -> None:
        """Register one native route for *entry* accepting every method."""

    @abstractmethod
    def _native_middleware(self, path: str, step: Step) -> None:
        """Register a root-level middleware using the engine's own hook."""

    @abstractmethod
    async def to_request(
        self,
        native: Any,
        params: dict[str, str],
        *,
        read_body: bool,
    ) -> CanonicalRequest:
        """Translate the engine's request into a CanonicalRequest."""

    @abstractmethod
    def to_native(self, response: CanonicalResponse, native: Any) -> Any:
        """Translate a CanonicalResponse into the engine's response."""

    @abstractmethod
    def request_store(self, native: Any) -> dict[str, Any]:
        """Per-request dict attached to the native request."""

    @abstractmethod
    def serve_static(self, prefix: str, directory: Path) -> None:
        """Serve files under *directory* at *prefix*."""

    @abstractmethod
    async def serve(self, host: str, port: int, on_ready: ReadyCallback | None) -> None:
        """Bind and serve until cancelled; call *on_ready* once listening."""

    def materializes(self, target: Any) -> bool:
        """True if routes on *target* become native routes immediately."""
        return target is self.app

    def _compose(self, parent: Any, path: str, child: Any) -> None:
        """Record a native sub-application mount (``"compose"`` engines only)."""
        raise NotImplementedError

    # -- Registration --

    def _remember(self, target: Any) -> None:
        self._targets.setdefault(id(target), target)

    def register_handler(self, target: Any, method: str, path: str, handlers: Sequence[Handler]) -> None:
        """Append a layer for *method* and *path* on *target*."""
        if not handlers:
            msg = f"No handlers given for {method} {path}"
            raise ConfigurationError(msg)
        for handler in handlers:
            if not callable(handler):
                msg = f"Route handler for {method} {path} is not callable: {handler!r}"
                raise ConfigurationError(msg)
        path = normalize_path(path)
        self._remember(target)
        layer = Layer(
            method=method.upper(),
            steps=tuple(Step.of(handler) for handler in handlers),
            origin=target,
            local_path=path,
        )
        self._add_layer(target, path, layer)

    def _add_layer(self, target: Any, path: str, layer: Layer) -> None:
        key = (id(target), path)
        entry = self._entries.get(key)
        if entry is None:
            entry = RouteEntry(path=path)
            self._entries[key] = entry
            if self.materializes(target):
                self._native_route(target, path, entry)
        entry.layers.append(layer)
        for parent, mount_path in self._mounts.get(id(target), ()):
            self._add_layer(parent, join_paths(mount_path, path), layer)

    def register_middleware(self, target: Any, path: str, handler: Handler) -> None:
        """Root middleware goes native; router middleware stays here."""
        if not callable(handler):
            msg = f"Middleware is not callable: {handler!r}"
            raise ConfigurationError(msg)
        path = normalize_path(path)
        step = Step.of(handler)
        if target is self.app:
            self._middleware.append((path, step))
            self._native_middleware(path, step)
        else:
            self._remember(target)
            self._router_middleware.setdefault(id(target), []).append((path, step))

    def mount_router(self, target: Any, path: str, child: Any) -> None:
        """Mount *child* on *target* at *path*."""
        if child is self.app:
            msg = "The root application cannot be mounted as a sub-router"
            raise ConfigurationError(msg)
        if id(child) in self._parents:
            msg = f"Router {child!r} is already mounted"
            raise ConfigurationError(msg)
        path = normalize_path(path)
        self._remember(target)
        self._remember(child)
        self._parents[id(child)] = (target, path)
        self._mounts.setdefault(id(child), []).append((target, path))
        for (owner, entry_path), entry in list(self._entries.items()):
            if owner != id(child):
                continue
            for layer in entry.layers:
                self._add_layer(target, join_paths(path, entry_path), layer)
        if self.mounting == "compose":
            self._compose(target, path, child)

    def set_fallback(self, handler: Handler) -> None:
        if not callable(handler):
            msg = f"Fallback handler is not callable: {handler!r}"
            raise ConfigurationError(msg)
        self._fallback = Step.of(handler)

    def configure_body_parsing(self, config: BodyConfig) -> None:
        self.body_config = config

    def add_static(self, prefix: str, directory: str | Path) -> None:
        root = Path(directory)
        if not root.is_dir():
            msg = f"Static directory not found: {root}"
            raise ConfigurationError(msg)
        prefix = normalize_path(prefix)
        self._static.append((prefix, root))
        self.serve_static(prefix, root)

    def routes(self) -> list[tuple[str, str]]:
        """``(method, path)`` pairs served by the root, sorted."""
        found = {
            (method, path)
            for (owner, path), entry in self._entries.items()
            if owner == id(self.app)
            for method in entry.methods
        }
        return sorted(found, key=lambda item: (item[1], item[0]))

    # -- Per-request plumbing --

    def response_for(self, native: Any) -> CanonicalResponse:
        store = self.request_store(native)
        response = store.get(_RESPONSE_KEY)
        if response is None:
            response = store[_RESPONSE_KEY] = CanonicalResponse()
        return response

    def shared_state(self, native: Any) -> dict[str, Any]:
        return self.request_store(native).setdefault(_STATE_KEY, {})

    async def middleware_request(self, native: Any) -> CanonicalRequest:
        """The request middleware sees: no route params, body unparsed."""
        store = self.request_store(native)
        request = store.get(_REQUEST_KEY)
        if request is None:
            request = store[_REQUEST_KEY] = await self.to_request(native, {}, read_body=False)
        return request

    def _scoped_middleware(self, layer: Layer) -> list[Step]:
        """Router-level middleware applying to *layer*, outermost router first."""
        levels: list[list[Step]] = []
        router, relative = layer.origin, layer.local_path
        while router is not None and router is not self.app:
            matched = [
                step
                for prefix, step in self._router_middleware.get(id(router), ())
                if path_matches(prefix, relative)
            ]
            levels.append(matched)
            parent = self._parents.get(id(router))
            if parent is None:
                break
            router, mount_path = parent
            relative = join_paths(mount_path, relative)
        steps: list[Step] = []
        for matched in reversed(levels):
            steps.extend(matched)
        return steps

    async def run_middleware(self, native: Any, path: str, step: Step) -> bool:
        """Run one root middleware. Returns True if the request should continue."""
        response = self.response_for(native)
        if response.sent:
            return False

        async def run() -> None:
            request = await self.middleware_request(native)
            if not path_matches(path, request.path):
                outcome["continue"] = True
                return
            fell_through = await run_chain((step,), request, response)
            outcome["continue"] = fell_through and not response.sent

        outcome = {"continue": False}
        await guard(run(), response, where=f"middleware {step.handler!r}")
        return outcome["continue"]

    async def dispatch(self, entry: RouteEntry, native: Any, params: dict[str, str]) -> CanonicalResponse:
        """Run the layers of *entry* matching the request method."""
        response = self.response_for(native)
        if response.sent:
            return response
        head = False

        async def run() -> None:
            nonlocal head
            request = await self.to_request(native, params, read_body=True)
            head = request.method == "HEAD"
            layers = entry.select(request.method)
            for layer in layers:
                steps = [*self._scoped_middleware(layer), *layer.steps]
                if not await run_chain(steps, request, response) or response.sent:
                    return
            await self._run_fallback(request, response)

        await guard(run(), response, where=f"route {entry.path}")
        if head:
            response.body = b""
            response.stream = None
        return response

    async def dispatch_fallback(self, native: Any) -> CanonicalResponse:
        """Answer an unmatched request with the fallback handler."""
        response = self.response_for(native)
        if response.sent:
            return response

        async def run() -> None:
            request = await self.to_request(native, {}, read_body=False)
            await self._run_fallback(request, response)

        await guard(run(), response, where="fallback")
        return response

    async def _run_fallback(self, request: CanonicalRequest, response: CanonicalResponse) -> None:
        if response.sent:
            return
        if self._fallback.takes_next:

            async def _end() -> None:
                await not_found(request, response)

            await invoke(self._fallback.handler, request, response, _end)
        else:
            result = await invoke(self._fallback.handler, request, response)
            if result is not None and not response.sent:
                response.send(result)
        if not response.sent:
            response.end()

    @staticmethod
    def pending_headers(response: CanonicalResponse) -> list[tuple[str, str]]:
        """Headers and Set-Cookie values to merge into a native response."""
        merged = list(response.headers)
        merged.extend(("Set-Cookie", cookie.render()) for cookie in response.cookies)
        return merged

    @staticmethod
    def outgoing_headers(response: CanonicalResponse) -> list[tuple[str, str]]:
        """All headers for a materialized CanonicalResponse, cookies included."""
        headers = EngineBinding.pending_headers(response)
        if response.content_type and not any(name.lower() == "content-type" for name, _ in headers):
            headers.append(("Content-Type", response.content_type))
        return headers
