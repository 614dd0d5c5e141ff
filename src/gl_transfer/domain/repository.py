"""Repository Protocol for transfer records and batch consumption provenance.

All methods run inside the caller's transaction; none of them commit.
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.gl_transfer.domain.models import BatchConsumption, TransferRecord


class TransferRepositoryProtocol(Protocol):
    async def insert_transfer(self, db: AsyncSession, record: TransferRecord) -> TransferRecord: ...

    async def get_by_idempotency_key(
        self, db: AsyncSession, user_id: str, idempotency_key: str
    ) -> TransferRecord | None: ...

    async def list_transfers(
        self, db: AsyncSession, user_id: str, cursor_seq: int | None, limit: int
    ) -> list[TransferRecord]: ...

    async def insert_consumption(
        self, db: AsyncSession, consumption: BatchConsumption
    ) -> BatchConsumption: ...

    async def list_consumptions(
        self, db: AsyncSession, reference_id: str
    ) -> list[BatchConsumption]: ...

    async def sum_consumptions_by_batch(
        self, db: AsyncSession, owner_id: str
    ) -> dict[str, Decimal]: ...
