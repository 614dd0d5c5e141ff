"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.
"""

from decimal import Decimal

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.gl_pricing import oracle as oracle_module
from src.gl_pricing.oracle import FixedPriceOracle
from src.main import app

SPOT_PRICE = Decimal("80")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    # Deterministic spot price regardless of GOLD_PRICE_* settings
    oracle_module._oracle = FixedPriceOracle(SPOT_PRICE)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    oracle_module._oracle = None
