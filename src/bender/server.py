"""Application bootstrap.

The startup sequence, in order:

1. read configuration (``AppConfig.from_env`` unless one is given)
2. bind an engine and build the ``UniversalAdapter``
3. install the baseline middleware
4. discover and mount the route tree, waiting for every handler
5. report failures, then listen

``bootstrap`` stops after step 4 and returns the adapter, which is what
tests and embedding applications want. ``serve`` runs the whole thing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import anyio

from bender._internal.types import ReadyCallback
from bender.adapter import UniversalAdapter
from bender.config import AppConfig
from bender.routes.loader import LoadReport, load_routes
from bender.routes.table import RouteTable

logger = logging.getLogger("bender.server")


@dataclass(frozen=True, slots=True)
class Application:
    """A bootstrapped adapter plus how it got there."""

    adapter: UniversalAdapter
    config: AppConfig
    report: LoadReport
    middleware: tuple[str, ...]


async def bootstrap(config: AppConfig | None = None, *, table: RouteTable | None = None) -> Application:
    """Build the adapter and mount routes, without listening.

    *table* replaces directory discovery when given.
    """
    config = config if config is not None else AppConfig.from_env()
    adapter = UniversalAdapter.create(config.engine)
    installed = adapter.setup_baseline_middleware(config)

    report = LoadReport()
    source = table if table is not None else config.routes_dir
    if source is not None:
        report = await load_routes(
            adapter,
            source,
            marker=config.exclusion_marker,
            error_log_name=config.error_log_name,
            envelope=config.response_envelope,
        )
    for failure in report.failures:
        where = f"/{failure.segment}" if failure.segment else "discovery"
        logger.error("Route failure (%s) %s: %s", where, failure.source, failure.error)
    logger.info("Routes ready on %s: %s", adapter.engine, report.summary())
    return Application(adapter=adapter, config=config, report=report, middleware=tuple(installed))


async def serve(
    config: AppConfig | None = None,
    *,
    table: RouteTable | None = None,
    on_ready: ReadyCallback | None = None,
) -> None:
    """Bootstrap, then listen until cancelled."""
    app = await bootstrap(config, table=table)

    def ready() -> None:
        logger.info("Listening on http://%s:%d (%s)", app.config.host, app.config.port, app.adapter.engine)
        if on_ready is not None:
            on_ready()

    await app.adapter.listen(app.config.port, ready, host=app.config.host)


def run(config: AppConfig | None = None, *, table: RouteTable | None = None) -> None:
    """Blocking entry point: ``serve`` on a fresh event loop."""
    try:
        anyio.run(lambda: serve(config, table=table))
    except KeyboardInterrupt:
        logger.info("Shutting down")
