"""Per-directory error log.

Handler failures are appended to ``_error_log.json`` inside the handler's
own directory: a JSON array of ``{timestamp, error, stack}`` objects.
The leading underscore keeps discovery from treating it as a module.

Appends are read-modify-write, so concurrent writers to the same file
are serialized by an in-process lock keyed by the file path. File I/O
runs through ``anyio.Path``. A missing or corrupt file counts as an
empty log. Logging must never take a request down: ``schedule()`` is
fire-and-forget and write failures only reach the process logger.
"""

from __future__ import annotations

import asyncio
import datetime
import json
import logging
import traceback
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import anyio

logger = logging.getLogger("bender.routes")

DEFAULT_NAME = "_error_log.json"

# One lock per log file, created lazily inside the event loop
_locks: dict[Path, anyio.Lock] = {}


def _lock_for(path: Path) -> anyio.Lock:
    lock = _locks.get(path)
    if lock is None:
        lock = _locks[path] = anyio.Lock()
    return lock


@dataclass(frozen=True, slots=True)
class ErrorLogEntry:
    """One persisted failure."""

    timestamp: str
    error: str
    stack: str | None = None

    @classmethod
    def from_exception(cls, exc: BaseException, *, origin: str | None = None) -> ErrorLogEntry:
        message = f"{origin}: {exc}" if origin else f"{type(exc).__name__}: {exc}"
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)) or None
        return cls(
            timestamp=datetime.datetime.now(datetime.UTC).isoformat(),
            error=message,
            stack=stack,
        )


class ErrorLog:
    """Append-only JSON error log for one handler directory."""

    __slots__ = ("_pending", "path")

    def __init__(self, directory: str | Path, name: str = DEFAULT_NAME) -> None:
        self.path = (Path(directory) / name).resolve()
        self._pending: set[asyncio.Task[None]] = set()

    def __repr__(self) -> str:
        return f"ErrorLog({str(self.path)!r})"

    async def read(self) -> list[dict[str, Any]]:
        """Current entries; ``[]`` if the file is missing or unreadable."""
        try:
            text = await anyio.Path(self.path).read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        try:
            entries = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Error log %s is corrupt; starting a new one", self.path)
            return []
        return entries if isinstance(entries, list) else []

    async def append(self, error: BaseException | ErrorLogEntry, *, origin: str | None = None) -> None:
        """Append one entry. Raises on I/O failure; see :meth:`schedule`."""
        entry = error if isinstance(error, ErrorLogEntry) else ErrorLogEntry.from_exception(error, origin=origin)
        async with _lock_for(self.path):
            entries = await self.read()
            entries.append(asdict(entry))
            target = anyio.Path(self.path)
            await target.parent.mkdir(parents=True, exist_ok=True)
            await target.write_text(json.dumps(entries, indent=2), encoding="utf-8")

    async def _append_quietly(self, error: BaseException | ErrorLogEntry, origin: str | None) -> None:
        try:
            await self.append(error, origin=origin)
        except Exception:
            logger.exception("Could not write error log %s", self.path)

    def schedule(self, error: BaseException | ErrorLogEntry, *, origin: str | None = None) -> None:
        """Append in the background without waiting for the write."""
        task = asyncio.get_running_loop().create_task(self._append_quietly(error, origin))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every scheduled write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
