"""Response envelopes and the ``tryer`` helper.

``responser`` is the one place handler code shapes a reply:

- ``code >= 400`` → ``{"error": <reason phrase>, "message": payload}``
- ``code < 400`` → the payload as-is (or ``{"data": payload}`` with the
  ``"data"`` envelope), encoded per the response type

``tryer`` runs a fallible operation and turns the outcome into a
``TryResult`` ready for ``responser``, logging failures to the error log.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from bender._internal.invoke import invoke
from bender.http.response import HTML_TYPE, TEXT_TYPE, CanonicalResponse, is_readable_stream
from bender.http.status import error_body

if TYPE_CHECKING:
    from bender.routes.errorlog import ErrorLog

logger = logging.getLogger("bender.routes")

RESPONSE_TYPES = ("json", "html", "text", "stream")

INVALID_STREAM = "Invalid stream payload"


@dataclass(frozen=True, slots=True)
class TryResult:
    """Outcome of :func:`tryer`: a status code and its payload."""

    code: int
    data: Any

    @property
    def ok(self) -> bool:
        return self.code < 400


def responser(
    res: CanonicalResponse,
    code: int,
    payload: Any = None,
    *,
    response_type: str = "json",
    envelope: str = "raw",
) -> CanonicalResponse:
    """Send *payload* with status *code* in the standard envelope."""
    if code >= 400:
        return res.set_status(code).send_json(error_body(code, payload))

    res.set_status(code)
    if response_type == "json":
        return res.send_json({"data": payload} if envelope == "data" else payload)
    if response_type == "html":
        return res.send_raw("" if payload is None else str(payload), HTML_TYPE)
    if response_type == "text":
        return res.send_raw("" if payload is None else str(payload), TEXT_TYPE)
    if response_type == "stream":
        if not is_readable_stream(payload):
            logger.error("Stream response requested with a %s payload", type(payload).__name__)
            return res.set_status(500).send_json(error_body(500, INVALID_STREAM))
        return res.send_stream(payload)

    msg = f"Unknown response type {response_type!r}; expected one of {RESPONSE_TYPES}"
    raise ValueError(msg)


async def tryer(
    operation: Callable[..., Any],
    *args: Any,
    error_log: ErrorLog | None = None,
    success_code: int = 200,
    **kwargs: Any,
) -> TryResult:
    """Run *operation* (sync or async) and capture the outcome.

    Success gives ``TryResult(success_code, result)``. Failure schedules
    an error-log append and gives ``TryResult(500, message)``.
    """
    try:
        result = await invoke(operation, *args, **kwargs)
    except Exception as exc:
        name = getattr(operation, "__qualname__", None) or getattr(operation, "__name__", repr(operation))
        logger.warning("%s failed: %s", name, exc)
        if error_log is not None:
            error_log.schedule(exc, origin=name)
        return TryResult(500, str(exc) or type(exc).__name__)
    return TryResult(success_code, result)
