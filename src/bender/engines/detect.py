"""Engine descriptors and selection.

Selection is deliberately boring: an explicitly configured engine wins;
otherwise the available engine with the lowest priority number is used.
Availability is a cheap ``importlib.util.find_spec`` check, so nothing is
imported until a binding is actually built.
"""

from __future__ import annotations

import importlib.util
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bender.errors import ConfigurationError, EngineUnavailable

if TYPE_CHECKING:
    from bender.engines.base import EngineBinding

logger = logging.getLogger("bender.engine")


def module_available(name: str) -> bool:
    """True if *name* can be imported without importing it."""
    try:
        return importlib.util.find_spec(name) is not None
    except (ImportError, ValueError):
        return False


@dataclass(frozen=True, slots=True)
class EngineDescriptor:
    """A bindable engine: identifier, priority, requirements, constructor."""

    name: str
    priority: int
    modules: tuple[str, ...]
    factory: Callable[[], type[EngineBinding]]
    runtime: str = "asgi"

    def available(self) -> bool:
        return all(module_available(module) for module in self.modules)

    def binding_class(self) -> type[EngineBinding]:
        return self.factory()

    def create(self) -> EngineBinding:
        """Build a binding around a fresh native application."""
        return self.factory()()


def select_engine(
    candidates: Iterable[EngineDescriptor],
    preferred: str | None = None,
) -> EngineDescriptor:
    """Pick the engine to bind.

    Args:
        candidates: The known engines.
        preferred: An explicitly configured engine name.

    Raises:
        ConfigurationError: If *preferred* names an unknown engine.
        EngineUnavailable: If the chosen engine (or every engine) is missing.
    """
    ordered = sorted(candidates, key=lambda descriptor: descriptor.priority)
    if preferred:
        for descriptor in ordered:
            if descriptor.name == preferred:
                if not descriptor.available():
                    missing = ", ".join(m for m in descriptor.modules if not module_available(m))
                    msg = f"Engine {preferred!r} is configured but not installed (missing: {missing})"
                    raise EngineUnavailable(msg)
                logger.debug("Using configured engine %s", preferred)
                return descriptor
        known = ", ".join(descriptor.name for descriptor in ordered)
        msg = f"Unknown engine {preferred!r}. Known engines: {known}"
        raise ConfigurationError(msg)

    for descriptor in ordered:
        if descriptor.available():
            logger.debug("Detected engine %s", descriptor.name)
            return descriptor

    known = ", ".join(descriptor.name for descriptor in ordered)
    msg = f"No supported HTTP engine is installed. Install one of: {known}"
    raise EngineUnavailable(msg)
