"""Filesystem route discovery.

Walks a handler directory one level deep::

    handlers/
        users/              → segment "users"
            users.py        → imported; Handler subclasses and register()
            _helpers.py     → skipped (exclusion marker)
            types.pyi       → skipped (declaration only)
            _error_log.json → skipped (not a module)
        _drafts/            → skipped

Subdirectories and files are visited in lexicographic order. Each module
is imported under a name derived from its path, and a module already
imported under that name is reused, so discovering the same tree twice
gives the same factories in the same order.

A module that fails to import is logged, recorded on the table's
``failures`` and skipped; its siblings still load.
"""

from __future__ import annotations

import hashlib
import importlib.util
import inspect
import logging
import re
import sys
from pathlib import Path
from types import ModuleType
from typing import Any

import anyio

from bender.errors import DiscoveryError
from bender.routes.handler import Handler, Registrar
from bender.routes.table import RouteTable

logger = logging.getLogger("bender.routes")

_NON_IDENTIFIER_RE = re.compile(r"\W")


def module_name_for(file: Path) -> str:
    """Deterministic ``sys.modules`` key for a route file."""
    resolved = file.resolve()
    digest = hashlib.sha1(str(resolved.parent).encode("utf-8"), usedforsecurity=False).hexdigest()[:10]
    stem = _NON_IDENTIFIER_RE.sub("_", resolved.stem)
    return f"_bender_routes_{digest}_{stem}"


def _skip_directory(path: Path, marker: str) -> bool:
    name = path.name
    return name.startswith((marker, ".")) or name == "__pycache__"


def _skip_file(path: Path, marker: str) -> bool:
    # .pyi and every other non-.py suffix fall out here
    return path.name.startswith(marker) or path.suffix != ".py"


def _import(file: Path) -> ModuleType:
    file = file.resolve()
    name = module_name_for(file)
    existing = sys.modules.get(name)
    if existing is not None and getattr(existing, "__file__", None) == str(file):
        return existing

    spec = importlib.util.spec_from_file_location(name, file)
    if spec is None or spec.loader is None:
        raise DiscoveryError(file, "not an importable Python file")
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(name, None)
        raise
    return module


def _exported(module: ModuleType) -> list[tuple[str, Any]]:
    names = getattr(module, "__all__", None)
    if names is None:
        names = [name for name in dir(module) if not name.startswith("_")]
    return [(name, getattr(module, name)) for name in names if hasattr(module, name)]


def collect_factories(module: ModuleType) -> list[Any]:
    """Handler subclasses defined in *module*, then its ``register`` function."""
    factories: list[Any] = []
    register = None
    for name, value in _exported(module):
        if (
            inspect.isclass(value)
            and issubclass(value, Handler)
            and not inspect.isabstract(value)
            and value.__module__ == module.__name__
        ):
            factories.append(value)
        elif name == "register" and inspect.isroutine(value):
            register = value
    if register is not None:
        factories.append(Registrar(register))
    return factories


async def discover_routes(
    root: str | Path,
    *,
    marker: str = "_",
    table: RouteTable | None = None,
) -> RouteTable:
    """Walk *root* and fill a :class:`RouteTable`.

    A missing root gives an empty table and a warning.
    """
    table = table if table is not None else RouteTable()
    root = Path(root)
    if not root.is_dir():
        logger.warning("Route directory %s does not exist; no routes discovered", root)
        return table

    for directory in sorted(p for p in root.iterdir() if p.is_dir()):
        if _skip_directory(directory, marker):
            logger.debug("Skipping directory %s", directory)
            continue
        segment = directory.name
        for file in sorted(p for p in directory.iterdir() if p.is_file()):
            if _skip_file(file, marker):
                continue
            try:
                module = _import(file)
            except Exception as exc:
                error = exc if isinstance(exc, DiscoveryError) else DiscoveryError(file, f"{type(exc).__name__}: {exc}")
                logger.error("Failed to import route module %s: %s", file, error.reason)
                table.failures.append(error)
                continue
            factories = collect_factories(module)
            if not factories:
                logger.debug("No handlers exported by %s", file)
            for factory in factories:
                table.add(segment, factory, directory=directory)
            # Let the loop breathe between imports
            await anyio.sleep(0)
    return table
