"""Canonical HTTP response builder.

One ``CanonicalResponse`` exists per request and is shared by every
middleware and handler that touches it. Chainable setters mutate it in
place and return ``self``; terminal calls (``send_json``, ``send_raw``,
``send_stream``, ``redirect``) mark it sent. The engine binding then
materializes it into the engine's own response type.

A response is written at most once: a second terminal call is ignored
and logged.
"""

from __future__ import annotations

import dataclasses
import datetime
import json as json_module
import logging
import uuid
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable
from typing import Any

import anyio.to_thread

from bender.errors import ConfigurationError
from bender.http.cookies import SetCookie

logger = logging.getLogger("bender.response")

JSON_TYPE = "application/json"
TEXT_TYPE = "text/plain; charset=utf-8"
HTML_TYPE = "text/html; charset=utf-8"
OCTET_TYPE = "application/octet-stream"

_CHUNK_SIZE = 64 * 1024


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def encode_json(payload: Any) -> bytes:
    """Serialize *payload* to compact UTF-8 JSON."""
    return json_module.dumps(payload, default=_json_default, separators=(",", ":")).encode("utf-8")


def is_readable_stream(value: Any) -> bool:
    """True if *value* can be sent with :meth:`CanonicalResponse.send_stream`.

    Accepts async iterables, file-like objects with ``read()``, and
    iterables of chunks. Plain ``str``/``bytes``/mappings are not streams.
    """
    if isinstance(value, (str, bytes, bytearray, dict)):
        return False
    if isinstance(value, AsyncIterable):
        return True
    if callable(getattr(value, "read", None)):
        return True
    return isinstance(value, Iterable) and not isinstance(value, (list, tuple))


def _to_bytes(chunk: Any) -> bytes:
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    return bytes(chunk)


async def iter_chunks(source: Any) -> AsyncIterator[bytes]:
    """Normalize any readable stream into an async iterator of bytes."""
    if isinstance(source, AsyncIterable):
        async for chunk in source:
            yield _to_bytes(chunk)
        return
    read = getattr(source, "read", None)
    if callable(read):
        while True:
            chunk = await anyio.to_thread.run_sync(read, _CHUNK_SIZE)
            if not chunk:
                break
            yield _to_bytes(chunk)
        return
    for chunk in source:
        yield _to_bytes(chunk)


class CanonicalResponse:
    """Mutable, engine-independent response builder.

    Usage::

        res.set_status(201).set_header("Location", "/users/7").send_json(user)
    """

    __slots__ = (
        "_finished",
        "_listeners",
        "body",
        "content_type",
        "cookies",
        "headers",
        "sent",
        "signer",
        "status",
        "stream",
    )

    def __init__(self) -> None:
        self.status = 200
        self.headers: list[tuple[str, str]] = []
        self.cookies: list[SetCookie] = []
        self.body: bytes = b""
        self.stream: AsyncIterator[bytes] | None = None
        self.content_type: str | None = None
        self.sent = False
        self.signer: Any = None
        self._listeners: list[Callable[[CanonicalResponse], Any]] = []
        self._finished = False

    def __repr__(self) -> str:
        state = "sent" if self.sent else "pending"
        return f"<CanonicalResponse {self.status} {state}>"

    def _writable(self, operation: str) -> bool:
        if self.sent:
            logger.warning("Ignoring %s(): response already sent (status %d)", operation, self.status)
            return False
        return True

    # -- Chainable setters --

    def set_status(self, code: int) -> CanonicalResponse:
        """Set the status code."""
        if self._writable("set_status"):
            self.status = code
        return self

    def set_header(self, name: str, value: str) -> CanonicalResponse:
        """Set a header, replacing any earlier value with the same name."""
        if self._writable("set_header"):
            lowered = name.lower()
            self.headers = [(n, v) for n, v in self.headers if n.lower() != lowered]
            self.headers.append((name, value))
        return self

    def append_header(self, name: str, value: str) -> CanonicalResponse:
        """Add a header without replacing existing values."""
        if self._writable("append_header"):
            self.headers.append((name, value))
        return self

    def get_header(self, name: str) -> str | None:
        lowered = name.lower()
        for n, v in reversed(self.headers):
            if n.lower() == lowered:
                return v
        return None

    def set_cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = None,
        expires: datetime.datetime | None = None,
        path: str = "/",
        domain: str | None = None,
        secure: bool = False,
        httponly: bool = True,
        samesite: str | None = "Lax",
        signed: bool = False,
    ) -> CanonicalResponse:
        """Queue a ``Set-Cookie``.

        ``signed=True`` requires the cookie middleware, which installs
        the signer.
        """
        if not self._writable("set_cookie"):
            return self
        if signed:
            if self.signer is None:
                msg = "Signed cookies need a cookie secret; enable the cookie middleware."
                raise ConfigurationError(msg)
            value = self.signer.sign(value).decode("utf-8")
        self.cookies.append(
            SetCookie(
                name=name,
                value=value,
                max_age=max_age,
                expires=expires,
                path=path,
                domain=domain,
                secure=secure,
                httponly=httponly,
                samesite=samesite,
            )
        )
        return self

    def delete_cookie(self, name: str, path: str = "/", domain: str | None = None) -> CanonicalResponse:
        """Queue a cookie deletion (``Max-Age=0`` and an expiry in the past)."""
        if self._writable("delete_cookie"):
            self.cookies.append(SetCookie.expired(name, path=path, domain=domain))
        return self

    # -- Terminal operations --

    def send_json(self, payload: Any) -> CanonicalResponse:
        """Serialize *payload* as JSON and mark the response sent."""
        if self._writable("send_json"):
            self.body = encode_json(payload)
            self.content_type = JSON_TYPE
            self.sent = True
        return self

    def send_raw(self, data: str | bytes, content_type: str | None = None) -> CanonicalResponse:
        """Send *data* as-is. ``str`` is UTF-8 encoded."""
        if self._writable("send_raw"):
            if isinstance(data, str):
                self.body = data.encode("utf-8")
                self.content_type = content_type or self.content_type or TEXT_TYPE
            else:
                self.body = bytes(data)
                self.content_type = content_type or self.content_type or OCTET_TYPE
            self.sent = True
        return self

    def send_stream(self, source: Any, content_type: str | None = None) -> CanonicalResponse:
        """Stream *source* (async iterable, iterable, or file-like)."""
        if self._writable("send_stream"):
            if not is_readable_stream(source):
                msg = f"{type(source).__name__} is not a readable stream"
                raise TypeError(msg)
            self.stream = iter_chunks(source)
            self.content_type = content_type or self.content_type or OCTET_TYPE
            self.sent = True
        return self

    def redirect(self, url: str, status: int = 302) -> CanonicalResponse:
        """Redirect to *url* (302 by default)."""
        if self._writable("redirect"):
            self.status = status
            self.set_header("Location", url)
            self.body = b""
            self.sent = True
        return self

    def send(self, value: Any) -> CanonicalResponse:
        """Send a handler return value, picking the format from its type.

        ``None`` sends nothing, ``str``/``bytes`` go out raw, streams are
        streamed, everything else is JSON.
        """
        if value is None or value is self:
            return self
        if isinstance(value, (str, bytes, bytearray)):
            return self.send_raw(value)
        if is_readable_stream(value):
            return self.send_stream(value)
        return self.send_json(value)

    def end(self) -> CanonicalResponse:
        """Mark sent with the current status and an empty body."""
        if self._writable("end"):
            self.sent = True
        return self

    # -- Completion --

    def on_finish(self, callback: Callable[[CanonicalResponse], Any]) -> None:
        """Register *callback* to run once the engine commits the response."""
        self._listeners.append(callback)

    def finish(self, status: int | None = None) -> None:
        """Run the finish callbacks once. Called by engine bindings.

        *status* overrides the recorded status when the engine produced
        the final response itself (static files, native errors).
        """
        if self._finished:
            return
        self._finished = True
        if status is not None:
            self.status = status
        for callback in self._listeners:
            try:
                callback(self)
            except Exception:
                logger.exception("Response finish callback failed")
