"""Starlette binding.

Routes are plain ``Route`` objects accepting every method, registered
with and without a trailing slash (slash redirects are off); middleware
runs inside one ``BaseHTTPMiddleware`` that walks the canonical list in
registration order (``add_middleware`` itself prepends). Unmatched
requests reach the fallback through the 404/405 exception handlers.
"""

from __future__ import annotations

import itertools
from pathlib import Path
from typing import Any

from starlette.applications import Starlette
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response, StreamingResponse
from starlette.routing import BaseRoute, Mount, Route
from starlette.staticfiles import StaticFiles

from bender._internal.types import ReadyCallback
from bender.engines._uvicorn import serve_asgi
from bender.engines.base import EngineBinding, RouteGroup
from bender.http.body import UploadedFile, check_length, collapse, collapse_form, decode_body, is_multipart
from bender.http.cookies import parse_cookies
from bender.http.headers import Headers
from bender.http.request import CanonicalRequest
from bender.http.response import CanonicalResponse
from bender.routing.chain import METHODS, RouteEntry, Step
from bender.routing.paths import slash_variants

_STORE_KEY = "bender"
_route_ids = itertools.count(1)


class StarletteBinding(EngineBinding):
    """Bind to a :class:`starlette.applications.Starlette` app."""

    name = "starlette"

    def create_app(self) -> Starlette:
        app = Starlette()
        app.router.redirect_slashes = False
        return app

    def _wire(self) -> None:
        self.app.add_exception_handler(404, self._handle_unmatched)
        self.app.add_exception_handler(405, self._handle_unmatched)
        self.app.add_middleware(BaseHTTPMiddleware, dispatch=self._run_middleware_stack)

    def new_router(self) -> RouteGroup:
        return RouteGroup(self.name)

    # -- Registration --

    def _place(self, route: BaseRoute) -> None:
        """Insert *route* ahead of static mounts so mounts never shadow it."""
        routes = self.app.router.routes
        for index, existing in enumerate(routes):
            if isinstance(existing, Mount):
                routes.insert(index, route)
                return
        routes.append(route)

    def _endpoint(self, entry: RouteEntry) -> Any:
        async def endpoint(request: Request) -> Response:
            response = await self.dispatch(entry, request, dict(request.path_params))
            return self.to_native(response, request)

        return endpoint

    def _native_route(self, target: Any, path: str, entry: RouteEntry) -> None:
        endpoint = self._endpoint(entry)
        for variant in slash_variants(path):
            self._place(Route(variant, endpoint, methods=list(METHODS), name=f"bender_{next(_route_ids)}"))

    def _native_middleware(self, path: str, step: Step) -> None:
        # Already covered by the single dispatcher installed in _wire().
        return

    def serve_static(self, prefix: str, directory: Path) -> None:
        self.app.router.routes.append(
            Mount(prefix, app=StaticFiles(directory=str(directory)), name=f"static_{next(_route_ids)}")
        )

    # -- Per-request hooks --

    async def _run_middleware_stack(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        for path, step in self._middleware:
            if not await self.run_middleware(request, path, step):
                response = self.response_for(request)
                native = self.to_native(response, request)
                response.finish(native.status_code)
                return native
        native = await call_next(request)
        response = self.response_for(request)
        if not response.sent:
            for name, value in self.pending_headers(response):
                native.headers.append(name, value)
        response.finish(native.status_code)
        return native

    async def _handle_unmatched(self, request: Request, exc: HTTPException) -> Response:
        response = await self.dispatch_fallback(request)
        return self.to_native(response, request)

    def request_store(self, native: Request) -> dict[str, Any]:
        return native.scope.setdefault(_STORE_KEY, {})

    async def _read_body(self, native: Request) -> Any:
        declared = native.headers.get("content-length")
        check_length(int(declared) if declared and declared.isdigit() else None, self.body_config)
        if is_multipart(native.headers.get("content-type")) and self.body_config.multipart:
            form = await native.form()
            fields: list[tuple[str, Any]] = []
            for key, value in form.multi_items():
                if isinstance(value, UploadFile):
                    data = await value.read()
                    fields.append(
                        (key, UploadedFile(value.filename or "", value.content_type or "", data))
                    )
                else:
                    fields.append((key, value))
            return collapse_form(fields, self.body_config)
        raw = await native.body()
        return decode_body(raw, native.headers.get("content-type"), self.body_config)

    async def to_request(
        self,
        native: Request,
        params: dict[str, str],
        *,
        read_body: bool,
    ) -> CanonicalRequest:
        body = await self._read_body(native) if read_body else None
        return CanonicalRequest(
            method=native.method.upper(),
            path=native.url.path,
            headers=Headers(native.headers.items()),
            query=collapse(native.query_params.multi_items()),
            params=params,
            body=body,
            cookies=parse_cookies(native.headers.get("cookie")),
            state=self.shared_state(native),
            client=native.client.host if native.client else None,
            engine=self.name,
            native=native,
        )

    def to_native(self, response: CanonicalResponse, native: Request) -> Response:
        if response.stream is not None:
            result: Response = StreamingResponse(response.stream, status_code=response.status)
        else:
            result = Response(content=response.body, status_code=response.status)
        for name, value in self.outgoing_headers(response):
            result.headers.append(name, value)
        return result

    async def serve(self, host: str, port: int, on_ready: ReadyCallback | None) -> None:
        await serve_asgi(self.app, host, port, on_ready)
