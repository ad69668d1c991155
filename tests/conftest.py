"""Shared fixtures: run adapter tests once per installed engine."""

import pytest

from bender.adapter import UniversalAdapter
from bender.engines import ENGINES


@pytest.fixture(params=[descriptor.name for descriptor in ENGINES])
def engine(request: pytest.FixtureRequest) -> str:
    descriptor = next(d for d in ENGINES if d.name == request.param)
    if not descriptor.available():
        pytest.skip(f"{descriptor.name} is not installed")
    return descriptor.name


@pytest.fixture
def adapter(engine: str) -> UniversalAdapter:
    return UniversalAdapter.create(engine)
