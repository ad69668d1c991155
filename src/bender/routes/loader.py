"""Mount a route table onto an adapter.

For each segment, in order:

1. create the segment's node router
2. instantiate every factory with a :class:`RouterContext`
3. run all the handlers' ``start()`` together and wait for every one
4. mount the handlers that came up on the node, and the node at
   ``/<segment>``

Nothing here raises for a bad handler: instantiation and setup failures
are logged and collected on the returned :class:`LoadReport`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import anyio

from bender.routes.context import RouterContext
from bender.routes.discovery import discover_routes
from bender.routes.errorlog import DEFAULT_NAME, ErrorLog
from bender.routes.handler import Handler
from bender.routes.table import RouteTable, factory_name

if TYPE_CHECKING:
    from bender.adapter import Router

logger = logging.getLogger("bender.routes")


@dataclass(frozen=True, slots=True)
class LoadFailure:
    """A module, factory or setup that did not make it into the tree."""

    segment: str | None
    source: str
    error: str


@dataclass(slots=True)
class LoadReport:
    mounted: list[str] = field(default_factory=list)
    handlers: int = 0
    failures: list[LoadFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        text = f"{self.handlers} handler(s) on {len(self.mounted)} segment(s)"
        if self.failures:
            text += f", {len(self.failures)} failure(s)"
        return text


async def _start_all(handlers: list[Handler]) -> None:
    # start() never raises, so the group always joins cleanly
    async with anyio.create_task_group() as tg:
        for handler in handlers:
            tg.start_soon(handler.start)


async def load_routes(
    adapter: Router,
    source: RouteTable | str | Path,
    *,
    marker: str = "_",
    error_log_name: str = DEFAULT_NAME,
    response_type: str = "json",
    envelope: str = "raw",
) -> LoadReport:
    """Mount *source* (a table, or a directory to discover) on *adapter*."""
    table = source if isinstance(source, RouteTable) else await discover_routes(source, marker=marker)
    report = LoadReport()
    report.failures.extend(
        LoadFailure(segment=None, source=str(failure.path), error=failure.reason) for failure in table.failures
    )

    for segment, factories in table:
        node = adapter.create_router()
        directory = table.directories.get(segment)
        error_log = ErrorLog(directory, error_log_name) if directory is not None else None

        handlers: list[Handler] = []
        for factory in factories:
            context = RouterContext(
                segment=segment,
                router=node,
                directory=directory,
                error_log=error_log,
                response_type=response_type,
                envelope=envelope,
            )
            try:
                handlers.append(factory(context))
            except Exception as exc:
                logger.exception("Could not create %s for /%s", factory_name(factory), segment)
                report.failures.append(LoadFailure(segment, factory_name(factory), f"{type(exc).__name__}: {exc}"))

        await _start_all(handlers)

        mounted = 0
        for handler in handlers:
            if handler.error is not None:
                report.failures.append(
                    LoadFailure(segment, repr(handler), f"{type(handler.error).__name__}: {handler.error}")
                )
                continue
            node.inject_router("/", handler.router)
            mounted += 1

        if not mounted:
            logger.warning("No handlers came up for /%s; segment not mounted", segment)
            continue
        adapter.inject_router(f"/{segment}", node)
        report.mounted.append(segment)
        report.handlers += mounted
        logger.info("Mounted /%s (%d handler(s))", segment, mounted)

    return report
