"""The route table: segment → handler factories.

A table is what the loader mounts. Fill one by hand::

    table = RouteTable()
    table.add("users", UsersHandler)

or let :func:`bender.routes.discover_routes` fill it from a directory.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from bender.errors import ConfigurationError, DiscoveryError

if TYPE_CHECKING:
    from bender.routes.context import RouterContext
    from bender.routes.handler import Handler

type Factory = Callable[[RouterContext], Handler]


def factory_name(factory: Any) -> str:
    """Dotted name for a factory, used in reports and listings."""
    name = getattr(factory, "name", None)
    if isinstance(name, str):
        return name
    module = getattr(factory, "__module__", None)
    qualname = getattr(factory, "__qualname__", None) or type(factory).__qualname__
    return f"{module}.{qualname}" if module else qualname


@dataclass(slots=True)
class RouteTable:
    """Ordered mapping of URL segment to handler factories.

    ``directories`` records where each segment's modules live; the loader
    puts the segment's error log there. ``failures`` collects modules
    that could not be imported.
    """

    entries: dict[str, list[Factory]] = field(default_factory=dict)
    directories: dict[str, Path] = field(default_factory=dict)
    failures: list[DiscoveryError] = field(default_factory=list)

    def add(self, segment: str, factory: Factory, *, directory: str | Path | None = None) -> RouteTable:
        segment = segment.strip("/")
        if not segment or "/" in segment:
            msg = f"Route segment must be a single path component, got {segment!r}"
            raise ConfigurationError(msg)
        if not callable(factory):
            msg = f"Factory for {segment!r} is not callable: {factory!r}"
            raise ConfigurationError(msg)
        self.entries.setdefault(segment, []).append(factory)
        if directory is not None:
            self.directories[segment] = Path(directory)
        return self

    def segments(self) -> list[str]:
        return sorted(self.entries)

    def factories(self, segment: str) -> list[Factory]:
        return list(self.entries.get(segment, ()))

    def __iter__(self) -> Iterator[tuple[str, list[Factory]]]:
        for segment in self.segments():
            yield segment, self.factories(segment)

    def __len__(self) -> int:
        return sum(len(factories) for factories in self.entries.values())

    def describe(self) -> list[tuple[str, list[str]]]:
        """``(segment, [factory name, ...])`` in mount order."""
        return [(segment, [factory_name(f) for f in factories]) for segment, factories in self]
