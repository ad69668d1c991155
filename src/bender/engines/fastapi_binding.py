"""FastAPI binding.

FastAPI is Starlette underneath, so request and response translation is
inherited. Registration goes through FastAPI's own entry points:
``add_api_route`` (kept out of the OpenAPI schema), the
``@app.middleware("http")`` hook, and ``@app.exception_handler``.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from bender.engines.starlette_binding import StarletteBinding
from bender.routing.chain import METHODS, RouteEntry
from bender.routing.paths import slash_variants


class FastAPIBinding(StarletteBinding):
    """Bind to a :class:`fastapi.FastAPI` app."""

    name = "fastapi"

    def create_app(self) -> FastAPI:
        # Interactive docs would claim /docs and /redoc ahead of user routes.
        return FastAPI(openapi_url=None, docs_url=None, redoc_url=None, redirect_slashes=False)

    def _wire(self) -> None:
        self.app.exception_handler(404)(self._handle_unmatched)
        self.app.exception_handler(405)(self._handle_unmatched)
        self.app.middleware("http")(self._run_middleware_stack)

    def _native_route(self, target: Any, path: str, entry: RouteEntry) -> None:
        endpoint = self._endpoint(entry)
        for variant in slash_variants(path):
            self.app.add_api_route(
                variant,
                endpoint,
                methods=list(METHODS),
                include_in_schema=False,
                response_model=None,
                name=f"bender:{variant}",
            )
            self._place(self.app.router.routes.pop())
