"""Reader Protocol for the Balance Aggregator."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_balance.domain.snapshot import SnapshotRow


class SnapshotReaderProtocol(Protocol):
    async def read_rows(self, db: AsyncSession, user_id: str) -> list[SnapshotRow]:
        """All bucket rows of both pools for one user, from a single statement."""
        ...
