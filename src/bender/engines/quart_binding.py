"""Quart binding.

Quart composes sub-applications natively, so every router is a
``Blueprint``. Blueprints refuse new rules once registered, so nothing
native is built while routes are being declared: the binding records
layers and mounts like every other engine and builds the Werkzeug rules
and the ``register_blueprint`` tree in ``before_serving``, right before
the first request. Routes declared after that raise
:class:`~bender.errors.ConfigurationError`.

Each router gets one rule per path and method it declared itself, with
``{name}`` rewritten to ``<name>`` and non-strict slashes so ``/users``
and ``/users/`` are the same route. Every rule dispatches the root's
merged entry for its absolute path, so ``next()`` falls through to
sibling blueprints mounted at the same prefix. Canonical middleware runs
as ``before_request`` functions; ``after_request`` merges pending
headers and finishes the response.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import anyio
from hypercorn.asyncio import serve as hypercorn_serve
from hypercorn.config import Config as HypercornConfig
from quart import Blueprint, Quart, Response, g, request, send_from_directory
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import RequestEntityTooLarge

from bender._internal.invoke import invoke
from bender._internal.types import Handler, ReadyCallback
from bender.engines.base import EngineBinding
from bender.errors import ConfigurationError, HTTPError
from bender.http.body import (
    BodyConfig,
    UploadedFile,
    check_length,
    collapse,
    collapse_form,
    decode_body,
    is_multipart,
)
from bender.http.cookies import parse_cookies
from bender.http.headers import Headers
from bender.http.request import CanonicalRequest
from bender.http.response import CanonicalResponse
from bender.routing.chain import RouteEntry, Step
from bender.routing.paths import join_paths, to_angle_syntax

logger = logging.getLogger("bender.engine")

_STORE_KEY = "bender"
_ids = itertools.count(1)
_POLL_INTERVAL = 0.05


def _too_large() -> HTTPError:
    return HTTPError(status=413, detail="Payload Too Large")


async def _wait_until_bound(host: str, port: int, finished: anyio.Event) -> bool:
    """Poll until *port* accepts connections. False if the server exited first.

    Hypercorn runs ``before_serving`` ahead of binding, so readiness is
    observed from outside.
    """
    while not finished.is_set():
        try:
            stream = await anyio.connect_tcp(host, port)
        except OSError:
            await anyio.sleep(_POLL_INTERVAL)
            continue
        await stream.aclose()
        return True
    return False


class QuartBinding(EngineBinding):
    """Bind to a :class:`quart.Quart` app."""

    name = "quart"
    mounting = "compose"

    def create_app(self) -> Quart:
        # No built-in /static rule: static files come from serve_static only
        return Quart("bender", static_folder=None)

    def _wire(self) -> None:
        self._composed: dict[int, list[tuple[str, Blueprint]]] = {}
        self._claimed: set[tuple[str, str]] = set()
        self._built = False
        self.app.url_map.strict_slashes = False
        self.app.config["MAX_CONTENT_LENGTH"] = self.body_config.max_size or None
        self.app.register_error_handler(404, self._handle_unmatched)
        self.app.register_error_handler(405, self._handle_unmatched)
        self.app.before_serving(self.build_native_tree)
        self.app.after_request(self._after_request)

    def new_router(self) -> Blueprint:
        return Blueprint(f"bender_router_{next(_ids)}", __name__)

    def materializes(self, target: Any) -> bool:
        return False

    # -- Registration --

    def _check_open(self, what: str) -> None:
        if self._built:
            msg = f"Cannot {what} after the Quart application has started serving"
            raise ConfigurationError(msg)

    def register_handler(self, target: Any, method: str, path: str, handlers: Sequence[Handler]) -> None:
        self._check_open(f"register {method.upper()} {path}")
        super().register_handler(target, method, path, handlers)

    def mount_router(self, target: Any, path: str, child: Any) -> None:
        self._check_open(f"mount a router at {path}")
        super().mount_router(target, path, child)

    def configure_body_parsing(self, config: BodyConfig) -> None:
        super().configure_body_parsing(config)
        self.app.config["MAX_CONTENT_LENGTH"] = config.max_size or None

    def _native_route(self, target: Any, path: str, entry: RouteEntry) -> None:
        # Rules are built by build_native_tree()
        return

    def _native_middleware(self, path: str, step: Step) -> None:
        async def before_request() -> Response | None:
            native = request._get_current_object()
            if not await self.run_middleware(native, path, step):
                return self.to_native(self.response_for(native), native)
            return None

        self.app.before_request(before_request)

    def _compose(self, parent: Any, path: str, child: Any) -> None:
        self._composed.setdefault(id(parent), []).append((path, child))

    async def build_native_tree(self) -> None:
        """Add every reachable router's rules, then register the blueprints."""
        if self._built:
            return
        self._built = True
        self._populate(self.app, "/")

    def _populate(self, target: Any, prefix: str) -> None:
        for (owner, path), entry in list(self._entries.items()):
            if owner != id(target):
                continue
            own = {layer.method for layer in entry.layers if layer.origin is target}
            self._add_rule(target, path, join_paths(prefix, path), own)
        for mount_path, child in self._composed.get(id(target), ()):
            self._populate(child, join_paths(prefix, mount_path))
            target.register_blueprint(child, url_prefix=None if mount_path == "/" else mount_path)

    def _add_rule(self, target: Any, path: str, absolute: str, methods: set[str]) -> None:
        missing = sorted(method for method in methods if (absolute, method) not in self._claimed)
        if not missing:
            return
        self._claimed.update((absolute, method) for method in missing)
        entry = self._entries[(id(self.app), absolute)]

        async def view(**params: Any) -> Response:
            native = request._get_current_object()
            response = await self.dispatch(entry, native, {key: str(value) for key, value in params.items()})
            return self.to_native(response, native)

        target.add_url_rule(
            to_angle_syntax(path),
            f"route_{next(_ids)}",
            view,
            methods=missing,
            provide_automatic_options=False,
            strict_slashes=False,
        )

    def serve_static(self, prefix: str, directory: Path) -> None:
        root = directory.resolve()

        async def static(filename: str) -> Response:
            return await send_from_directory(root, filename)

        rule = "/<path:filename>" if prefix == "/" else f"{prefix}/<path:filename>"
        self.app.add_url_rule(rule, f"static_{next(_ids)}", static, methods=["GET", "HEAD"])

    # -- Per-request hooks --

    async def _handle_unmatched(self, error: Exception) -> Response:
        native = request._get_current_object()
        response = await self.dispatch_fallback(native)
        return self.to_native(response, native)

    async def _after_request(self, native_response: Response) -> Response:
        response = self.response_for(request._get_current_object())
        if not response.sent:
            for name, value in self.pending_headers(response):
                native_response.headers.add(name, value)
        response.finish(native_response.status_code)
        return native_response

    def request_store(self, native: Any) -> dict[str, Any]:
        return g.setdefault(_STORE_KEY, {})

    async def _read_body(self, native: Any) -> Any:
        content_type = native.headers.get("Content-Type")
        check_length(native.content_length, self.body_config)
        if is_multipart(content_type) and self.body_config.multipart:
            try:
                form = await native.form
                files = await native.files
            except RequestEntityTooLarge as exc:
                raise _too_large() from exc
            fields: list[tuple[str, Any]] = list(form.items(multi=True))
            for key, storage in files.items(multi=True):
                if isinstance(storage, FileStorage):
                    fields.append(
                        (key, UploadedFile(storage.filename or "", storage.content_type or "", storage.read()))
                    )
            return collapse_form(fields, self.body_config)
        try:
            raw = await native.get_data(as_text=False)
        except RequestEntityTooLarge as exc:
            raise _too_large() from exc
        return decode_body(raw, content_type, self.body_config)

    async def to_request(
        self,
        native: Any,
        params: dict[str, str],
        *,
        read_body: bool,
    ) -> CanonicalRequest:
        body = await self._read_body(native) if read_body else None
        return CanonicalRequest(
            method=native.method.upper(),
            path=native.path,
            headers=Headers(native.headers.items()),
            query=collapse(native.args.items(multi=True)),
            params=params,
            body=body,
            cookies=parse_cookies(native.headers.get("Cookie")),
            state=self.shared_state(native),
            client=native.remote_addr,
            engine=self.name,
            native=native,
        )

    def to_native(self, response: CanonicalResponse, native: Any) -> Response:
        body: Any = response.stream if response.stream is not None else response.body
        result = Response(body, status=response.status)
        result.headers.pop("Content-Type", None)
        for name, value in self.outgoing_headers(response):
            result.headers.add(name, value)
        return result

    async def serve(self, host: str, port: int, on_ready: ReadyCallback | None) -> None:
        """Serve with Hypercorn; cancelling shuts it down gracefully."""
        config = HypercornConfig()
        config.bind = [f"{host}:{port}"]
        stop = anyio.Event()
        finished = anyio.Event()

        async def run() -> None:
            try:
                with anyio.CancelScope(shield=True):
                    await hypercorn_serve(self.app, config, shutdown_trigger=stop.wait)
            finally:
                finished.set()

        async with anyio.create_task_group() as tg:
            tg.start_soon(run)
            try:
                if await _wait_until_bound(host, port, finished):
                    logger.info("Listening on http://%s:%d", host, port)
                    if on_ready is not None:
                        await invoke(on_ready)
                await finished.wait()
            finally:
                stop.set()
