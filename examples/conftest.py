"""Shared pytest configuration for bender examples.

``example_app`` loads the ``config`` from the ``app.py`` next to the test
and bootstraps it once per installed engine, so every example test runs
against aiohttp, Quart, FastAPI, Starlette and Falcon.
"""

import importlib.util
from dataclasses import replace
from pathlib import Path

import pytest

from bender.engines import ENGINES
from bender.server import bootstrap


@pytest.fixture(params=[descriptor.name for descriptor in ENGINES])
def engine(request: pytest.FixtureRequest) -> str:
    descriptor = next(d for d in ENGINES if d.name == request.param)
    if not descriptor.available():
        pytest.skip(f"{descriptor.name} is not installed")
    return descriptor.name


@pytest.fixture
async def example_app(request: pytest.FixtureRequest, engine: str):
    """Bootstrap the sibling app.py's config on *engine*."""
    app_path = Path(request.path).parent / "app.py"
    module_name = f"example_{app_path.parent.name}"
    spec = importlib.util.spec_from_file_location(module_name, app_path)
    assert spec is not None
    assert spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return await bootstrap(replace(module.config, engine=engine))
