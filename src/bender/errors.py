"""Bender exception hierarchy.

Shared across the adapter, engine bindings, middleware, and the route
loader so every module raises and catches the same types.
"""

from dataclasses import dataclass


class BenderError(Exception):
    """Base for all bender-specific errors."""


class ConfigurationError(BenderError):
    """Raised when the adapter or app configuration is invalid.

    Fatal at startup: nothing retries a configuration error.
    """


class EngineUnavailable(ConfigurationError):  # noqa: N818
    """No registered engine can be bound in this environment."""


class DiscoveryError(BenderError):
    """A route module could not be imported or instantiated.

    Carries the offending path. The loader records these and keeps going.
    """

    def __init__(self, path: object, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


@dataclass(frozen=True, slots=True)
class HTTPError(BenderError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers, middleware, or body parsing. The dispatch core
    turns it into the standard error envelope with this status.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BadRequest(HTTPError):  # noqa: N818
    """400: the request could not be understood (bad body, bad parameter)."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)
