"""Shared type aliases used across bender modules."""

from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

# Route handler or middleware: (request, response[, next]) -> Any
Handler: TypeAlias = Callable[..., Any]

# The continuation passed to handlers that take three arguments
Next: TypeAlias = Callable[[], Awaitable[None]]

# Called once the server is accepting connections
ReadyCallback: TypeAlias = Callable[[], Any]
