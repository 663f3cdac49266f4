"""API test fixtures.

An async HTTP client wired to the FastAPI app with the DI container
overridden by ``test_container``. The lifespan is not run, so no real
container, Redis or metrics port is touched.
"""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ledgerflow.api.deps import get_container


@pytest_asyncio.fixture
async def client(test_container):
    """Async HTTP client with a faked DI container."""
    from ledgerflow.main import app

    app.dependency_overrides[get_container] = lambda: test_container

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
