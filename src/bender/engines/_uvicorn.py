"""Serve an ASGI application with uvicorn and report readiness."""

import logging
from typing import Any

import anyio
import uvicorn

from bender._internal.invoke import invoke
from bender._internal.types import ReadyCallback

logger = logging.getLogger("bender.engine")

_POLL_INTERVAL = 0.05


async def serve_asgi(app: Any, host: str, port: int, on_ready: ReadyCallback | None) -> None:
    """Run uvicorn on the current event loop until it exits or is cancelled.

    *on_ready* fires once uvicorn reports ``started`` (sockets bound,
    lifespan startup done). It never fires if startup fails. Cancelling
    asks uvicorn to exit and waits for its graceful shutdown.
    """
    config = uvicorn.Config(app, host=host, port=port, log_config=None, lifespan="auto")
    server = uvicorn.Server(config)
    finished = anyio.Event()

    async def run() -> None:
        try:
            with anyio.CancelScope(shield=True):
                await server.serve()
        finally:
            finished.set()

    async with anyio.create_task_group() as tg:
        tg.start_soon(run)
        try:
            while not server.started and not finished.is_set():
                await anyio.sleep(_POLL_INTERVAL)
            if server.started:
                logger.info("Listening on http://%s:%d", host, port)
                if on_ready is not None:
                    await invoke(on_ready)
            await finished.wait()
        finally:
            server.should_exit = True
