"""Testing utilities for bender adapters.

Provides an async test client that works the same over every engine::

    from bender.testing import TestClient

    async with TestClient(adapter) as client:
        response = await client.get("/users")
"""

from bender.testing.client import TestClient, TestResponse

__all__ = ["TestClient", "TestResponse"]
