"""Route tree: discovery, the Handler base, and mounting.

Public API:
    discover_routes -- Walk a handler directory into a RouteTable
    load_routes -- Mount a RouteTable (or directory) on an adapter
    Handler -- Base class for route modules
    RouterContext -- What each handler is given at mount time
    responser / tryer -- Response envelope and fallible-call helpers
    ErrorLog -- Per-directory JSON error log
"""

from bender.routes.context import RouterContext, capture_errors
from bender.routes.discovery import discover_routes
from bender.routes.envelope import TryResult, responser, tryer
from bender.routes.errorlog import ErrorLog, ErrorLogEntry
from bender.routes.handler import FunctionHandler, Handler, Registrar
from bender.routes.loader import LoadFailure, LoadReport, load_routes
from bender.routes.table import RouteTable

__all__ = [
    "ErrorLog",
    "ErrorLogEntry",
    "FunctionHandler",
    "Handler",
    "LoadFailure",
    "LoadReport",
    "Registrar",
    "RouteTable",
    "RouterContext",
    "TryResult",
    "capture_errors",
    "discover_routes",
    "load_routes",
    "responser",
    "tryer",
]
