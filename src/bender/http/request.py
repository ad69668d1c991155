"""Canonical HTTP request.

Frozen metadata built by the engine binding from whatever request object
the bound engine produced. Handlers only ever see this type.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from bender.http.headers import Headers


@dataclass(frozen=True, slots=True)
class CanonicalRequest:
    """An immutable, engine-independent HTTP request.

    ``body`` is the parsed payload for route handlers (``{}`` when the
    request has none). Middleware runs ahead of body parsing and sees
    ``body=None``.

    ``state`` is shared between every middleware and handler that sees
    the same request; it is the one mutable part.
    """

    method: str
    path: str
    headers: Headers
    query: Mapping[str, Any] = field(default_factory=dict)
    params: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    cookies: Mapping[str, str] = field(default_factory=dict)
    state: dict[str, Any] = field(default_factory=dict, compare=False)
    client: str | None = None
    engine: str = ""
    native: Any = field(default=None, repr=False, compare=False)

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def is_json(self) -> bool:
        ct = self.content_type or ""
        return ct.startswith("application/json")
