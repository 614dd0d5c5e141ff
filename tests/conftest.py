"""Fixtures shared by unit and integration suites."""

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app


@pytest.fixture
async def client() -> AsyncClient:
    """ASGI client against the ledger app. Lifespan is not run, so no DB or
    Redis ping happens; tests that touch storage override get_db_session."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Request-ID": "test-request"},
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
