"""aiohttp binding.

aiohttp runs its own server loop (``AppRunner`` + ``TCPSite``). Routes
are registered with ``add_route("*", ...)``, once with and once without
a trailing slash. Each canonical middleware becomes one
``web.middleware`` appended to ``app.middlewares``, so they run in
registration order. An outermost root middleware turns native
404/405 errors into the fallback and merges pending headers into
responses the engine produced itself (static files).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import anyio
from aiohttp import web

from bender._internal.invoke import invoke
from bender._internal.types import ReadyCallback
from bender.engines.base import EngineBinding, RouteGroup
from bender.errors import HTTPError
from bender.http.body import UploadedFile, check_length, collapse, collapse_form, decode_body, is_multipart
from bender.http.cookies import parse_cookies
from bender.http.headers import Headers
from bender.http.request import CanonicalRequest
from bender.http.response import CanonicalResponse
from bender.routing.chain import RouteEntry, Step
from bender.routing.paths import slash_variants

logger = logging.getLogger("bender.engine")

_STORE_KEY = "bender"
_Handler = Any


class AiohttpBinding(EngineBinding):
    """Bind to an :class:`aiohttp.web.Application`."""

    name = "aiohttp"

    def create_app(self) -> web.Application:
        return web.Application()

    def _wire(self) -> None:
        self.app.middlewares.append(self._root_middleware)

    def new_router(self) -> RouteGroup:
        return RouteGroup(self.name)

    # -- Registration --

    def _native_route(self, target: Any, path: str, entry: RouteEntry) -> None:
        async def handle(request: web.Request) -> web.StreamResponse:
            response = await self.dispatch(entry, request, dict(request.match_info))
            return await self._materialize(response, request)

        for variant in slash_variants(path):
            self.app.router.add_route("*", variant, handle)

    def _native_middleware(self, path: str, step: Step) -> None:
        @web.middleware
        async def middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
            if not await self.run_middleware(request, path, step):
                return await self._materialize(self.response_for(request), request)
            return await handler(request)

        self.app.middlewares.append(middleware)

    def serve_static(self, prefix: str, directory: Path) -> None:
        self.app.router.add_static(prefix, directory)

    # -- Per-request hooks --

    @web.middleware
    async def _root_middleware(self, request: web.Request, handler: _Handler) -> web.StreamResponse:
        try:
            native = await handler(request)
        except (web.HTTPNotFound, web.HTTPMethodNotAllowed):
            response = await self.dispatch_fallback(request)
            native = await self._materialize(response, request)
        response = self.response_for(request)
        if not response.sent and not native.prepared:
            for name, value in self.pending_headers(response):
                native.headers.add(name, value)
        response.finish(native.status)
        return native

    def request_store(self, native: web.Request) -> dict[str, Any]:
        store = native.get(_STORE_KEY)
        if store is None:
            store = native[_STORE_KEY] = {}
        return store

    async def _read_body(self, native: web.Request) -> Any:
        content_type = native.headers.get("Content-Type")
        check_length(native.content_length, self.body_config)
        if is_multipart(content_type) and self.body_config.multipart:
            try:
                form = await native.post()
            except web.HTTPRequestEntityTooLarge as exc:
                raise HTTPError(status=413, detail="Payload Too Large") from exc
            fields: list[tuple[str, Any]] = []
            for key, value in form.items():
                if isinstance(value, web.FileField):
                    data = value.file.read()
                    fields.append((key, UploadedFile(value.filename, value.content_type, data)))
                else:
                    fields.append((key, value))
            return collapse_form(fields, self.body_config)
        try:
            raw = await native.read()
        except web.HTTPRequestEntityTooLarge as exc:
            raise HTTPError(status=413, detail="Payload Too Large") from exc
        return decode_body(raw, content_type, self.body_config)

    async def to_request(
        self,
        native: web.Request,
        params: dict[str, str],
        *,
        read_body: bool,
    ) -> CanonicalRequest:
        body = await self._read_body(native) if read_body else None
        return CanonicalRequest(
            method=native.method.upper(),
            path=native.path,
            headers=Headers(native.headers.items()),
            query=collapse(native.query.items()),
            params=params,
            body=body,
            cookies=parse_cookies(native.headers.get("Cookie")),
            state=self.shared_state(native),
            client=native.remote,
            engine=self.name,
            native=native,
        )

    def to_native(self, response: CanonicalResponse, native: web.Request) -> web.StreamResponse:
        if response.stream is not None:
            result: web.StreamResponse = web.StreamResponse(status=response.status)
        else:
            result = web.Response(status=response.status, body=response.body)
        for name, value in self.outgoing_headers(response):
            result.headers.add(name, value)
        return result

    async def _materialize(self, response: CanonicalResponse, native: web.Request) -> web.StreamResponse:
        """``to_native`` plus writing out streamed bodies."""
        result = self.to_native(response, native)
        if response.stream is not None:
            await result.prepare(native)
            async for chunk in response.stream:
                await result.write(chunk)
            await result.write_eof()
        return result

    async def serve(self, host: str, port: int, on_ready: ReadyCallback | None) -> None:
        runner = web.AppRunner(self.app)
        await runner.setup()
        try:
            site = web.TCPSite(runner, host, port)
            await site.start()
            logger.info("Listening on http://%s:%d", host, port)
            if on_ready is not None:
                await invoke(on_ready)
            await anyio.sleep_forever()
        finally:
            with anyio.CancelScope(shield=True):
                await runner.cleanup()
