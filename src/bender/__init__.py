"""Bender: one Express-style routing API over five Python web engines.

Write handlers once as ``(request, response[, next])`` callables and run
them on aiohttp, Quart, FastAPI, Starlette or Falcon, whichever is
installed (or whichever you ask for).

Basic usage::

    from bender import UniversalAdapter

    adapter = UniversalAdapter.create()

    @adapter.get("/hello/{name}")
    def hello(req, res):
        return {"hello": req.params["name"]}

    await adapter.listen(3000)

Route trees (``handlers/<segment>/*.py``)::

    from bender import AppConfig, run
    run(AppConfig(routes_dir="handlers"))
"""

__version__ = "0.1.0"
__all__ = [
    "AppConfig",
    "BadRequest",
    "BenderError",
    "CanonicalRequest",
    "CanonicalResponse",
    "ConfigurationError",
    "DiscoveryError",
    "EngineUnavailable",
    "HTTPError",
    "Handler",
    "NotFound",
    "RouteTable",
    "Router",
    "RouterContext",
    "UniversalAdapter",
    "bootstrap",
    "discover_routes",
    "load_routes",
    "responser",
    "run",
    "serve",
    "tryer",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import bender`` from importing any engine.
    """
    if name in ("UniversalAdapter", "Router"):
        from bender import adapter as _adapter

        return getattr(_adapter, name)

    if name == "AppConfig":
        from bender.config import AppConfig

        return AppConfig

    if name == "CanonicalRequest":
        from bender.http.request import CanonicalRequest

        return CanonicalRequest

    if name == "CanonicalResponse":
        from bender.http.response import CanonicalResponse

        return CanonicalResponse

    if name in (
        "Handler",
        "RouteTable",
        "RouterContext",
        "discover_routes",
        "load_routes",
        "responser",
        "tryer",
    ):
        from bender import routes as _routes

        return getattr(_routes, name)

    if name in ("bootstrap", "serve", "run"):
        from bender import server as _server

        return getattr(_server, name)

    if name in (
        "BadRequest",
        "BenderError",
        "ConfigurationError",
        "DiscoveryError",
        "EngineUnavailable",
        "HTTPError",
        "NotFound",
    ):
        from bender import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
