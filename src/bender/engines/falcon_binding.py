"""Falcon (ASGI) binding.

Falcon routes to resources, so each canonical path gets one resource
whose ``on_<method>`` responders all dispatch the same route entry.
Responses are written into Falcon's mutable ``resp`` instead of being
returned. Each canonical middleware becomes a middleware component
whose ``process_request`` short-circuits with ``resp.complete``; a root
component's ``process_response`` merges pending headers and finishes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import falcon
import falcon.asgi

from bender._internal.types import ReadyCallback
from bender.engines._uvicorn import serve_asgi
from bender.engines.base import EngineBinding, RouteGroup
from bender.http.body import UploadedFile, check_length, collapse_form, decode_body, is_multipart
from bender.http.cookies import SetCookie, parse_cookies
from bender.http.headers import Headers
from bender.http.request import CanonicalRequest
from bender.http.response import CanonicalResponse
from bender.routing.chain import RouteEntry, Step


class _EntryResource:
    """A Falcon resource answering every method for one route entry."""

    def __init__(self, binding: FalconBinding, entry: RouteEntry) -> None:
        self._binding = binding
        self._entry = entry

    async def _respond(self, req: falcon.asgi.Request, resp: falcon.asgi.Response, **params: Any) -> None:
        response = await self._binding.dispatch(self._entry, req, {k: str(v) for k, v in params.items()})
        self._binding.to_native(response, resp)

    on_get = on_post = on_put = on_patch = on_delete = on_head = on_options = _respond


class _MiddlewareComponent:
    """One canonical middleware as a Falcon component."""

    def __init__(self, binding: FalconBinding, path: str, step: Step) -> None:
        self._binding = binding
        self._path = path
        self._step = step

    async def process_request(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        if resp.complete:
            return
        if not await self._binding.run_middleware(req, self._path, self._step):
            self._binding.to_native(self._binding.response_for(req), resp)
            resp.complete = True


class _RootComponent:
    """Merges pending headers into engine-made responses and finishes."""

    def __init__(self, binding: FalconBinding) -> None:
        self._binding = binding

    async def process_response(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        resource: object,
        req_succeeded: bool,
    ) -> None:
        response = self._binding.response_for(req)
        if not response.sent:
            for name, value in response.headers:
                resp.append_header(name, value)
            for cookie in response.cookies:
                _apply_cookie(resp, cookie)
        response.finish(falcon.http_status_to_code(resp.status))


def _apply_cookie(resp: falcon.asgi.Response, cookie: SetCookie) -> None:
    # Falcon rejects Set-Cookie through set_header(); cookies go through set_cookie().
    resp.set_cookie(
        cookie.name,
        cookie.value,
        expires=cookie.expires,
        max_age=cookie.max_age,
        domain=cookie.domain,
        path=cookie.path,
        secure=cookie.secure,
        http_only=cookie.httponly,
        same_site=cookie.samesite or None,
    )


class FalconBinding(EngineBinding):
    """Bind to a :class:`falcon.asgi.App`."""

    name = "falcon"

    def create_app(self) -> falcon.asgi.App:
        return falcon.asgi.App()

    def _wire(self) -> None:
        self.app.req_options.strip_url_path_trailing_slash = True
        self.app.req_options.keep_blank_qs_values = True
        self.app.add_middleware(_RootComponent(self))
        self.app.add_error_handler(falcon.HTTPNotFound, self._handle_unmatched)
        self.app.add_error_handler(falcon.HTTPMethodNotAllowed, self._handle_unmatched)

    def new_router(self) -> RouteGroup:
        return RouteGroup(self.name)

    # -- Registration --

    def _native_route(self, target: Any, path: str, entry: RouteEntry) -> None:
        self.app.add_route(path, _EntryResource(self, entry))

    def _native_middleware(self, path: str, step: Step) -> None:
        self.app.add_middleware(_MiddlewareComponent(self, path, step))

    def serve_static(self, prefix: str, directory: Path) -> None:
        self.app.add_static_route(prefix, str(directory.resolve()))

    # -- Per-request hooks --

    async def _handle_unmatched(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        ex: Exception,
        params: dict[str, Any],
    ) -> None:
        response = await self.dispatch_fallback(req)
        self.to_native(response, resp)

    def request_store(self, native: falcon.asgi.Request) -> dict[str, Any]:
        store = getattr(native.context, "bender", None)
        if store is None:
            store = native.context.bender = {}
        return store

    async def _read_body(self, native: falcon.asgi.Request) -> Any:
        check_length(native.content_length, self.body_config)
        if is_multipart(native.content_type) and self.body_config.multipart:
            form = await native.get_media()
            fields: list[tuple[str, Any]] = []
            async for part in form:
                if part.filename:
                    data = await part.get_data()
                    fields.append((part.name, UploadedFile(part.filename, part.content_type or "", data)))
                else:
                    fields.append((part.name, await part.get_text()))
            return collapse_form(fields, self.body_config)
        raw = await native.stream.read()
        return decode_body(raw, native.content_type, self.body_config)

    async def to_request(
        self,
        native: falcon.asgi.Request,
        params: dict[str, str],
        *,
        read_body: bool,
    ) -> CanonicalRequest:
        body = await self._read_body(native) if read_body else None
        return CanonicalRequest(
            method=native.method.upper(),
            path=native.path,
            headers=Headers((name.lower(), value) for name, value in native.headers.items()),
            query=dict(native.params),
            params=params,
            body=body,
            cookies=parse_cookies(native.get_header("Cookie")),
            state=self.shared_state(native),
            client=native.remote_addr,
            engine=self.name,
            native=native,
        )

    def to_native(self, response: CanonicalResponse, native: falcon.asgi.Response) -> falcon.asgi.Response:
        native.status = response.status
        for name, value in response.headers:
            if name.lower() == "content-type":
                native.content_type = value
            else:
                native.append_header(name, value)
        for cookie in response.cookies:
            _apply_cookie(native, cookie)
        if response.content_type:
            native.content_type = response.content_type
        if response.stream is not None:
            native.stream = response.stream
        else:
            native.data = response.body
        return native

    async def serve(self, host: str, port: int, on_ready: ReadyCallback | None) -> None:
        await serve_asgi(self.app, host, port, on_ready)
