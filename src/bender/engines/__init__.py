"""Engine registry.

Native-loop engines come first, then the ASGI engines served by uvicorn.
Each factory imports its binding module lazily so selecting one engine
never imports the others.
"""

from bender.engines.base import EngineBinding
from bender.engines.detect import EngineDescriptor, module_available, select_engine


def _aiohttp() -> type[EngineBinding]:
    from bender.engines.aiohttp_binding import AiohttpBinding

    return AiohttpBinding


def _quart() -> type[EngineBinding]:
    from bender.engines.quart_binding import QuartBinding

    return QuartBinding


def _fastapi() -> type[EngineBinding]:
    from bender.engines.fastapi_binding import FastAPIBinding

    return FastAPIBinding


def _starlette() -> type[EngineBinding]:
    from bender.engines.starlette_binding import StarletteBinding

    return StarletteBinding


def _falcon() -> type[EngineBinding]:
    from bender.engines.falcon_binding import FalconBinding

    return FalconBinding


ENGINES: tuple[EngineDescriptor, ...] = (
    EngineDescriptor("aiohttp", 10, ("aiohttp",), _aiohttp, runtime="native"),
    EngineDescriptor("quart", 20, ("quart", "hypercorn"), _quart, runtime="native"),
    EngineDescriptor("fastapi", 30, ("fastapi", "uvicorn"), _fastapi),
    EngineDescriptor("starlette", 40, ("starlette", "uvicorn"), _starlette),
    EngineDescriptor("falcon", 50, ("falcon", "uvicorn"), _falcon),
)

ENGINE_NAMES = frozenset(descriptor.name for descriptor in ENGINES)


def get_engine(name: str | None = None) -> EngineDescriptor:
    """Select from the built-in registry (see :func:`select_engine`)."""
    return select_engine(ENGINES, name)


def engine_report() -> list[tuple[str, bool]]:
    """``(name, available)`` for every registered engine, by priority."""
    return [(descriptor.name, descriptor.available()) for descriptor in ENGINES]


__all__ = [
    "ENGINES",
    "ENGINE_NAMES",
    "EngineBinding",
    "EngineDescriptor",
    "engine_report",
    "get_engine",
    "module_available",
    "select_engine",
]
