"""FIFO draw planning over fixed-price batches.

Pure function: the plan is computed and checked in full before any batch is
touched, so a short balance never leaves a partially consumed walk behind.
"""

from collections.abc import Sequence
from decimal import Decimal

from src.gl_batch.domain.models import GoldBatch
from src.gl_common.enums import WalletType
from src.gl_common.errors import InsufficientFundsError
from src.gl_common.grams import ZERO
from src.gl_transfer.domain.models import FifoDraw


def plan_fifo(batches: Sequence[GoldBatch], grams: Decimal) -> list[FifoDraw]:
    """Draws covering `grams` from `batches`, which must already be oldest first.

    Raises InsufficientFundsError when the batches hold less than `grams` in total.
    """
    available = sum((b.remaining_grams for b in batches), ZERO)
    if available < grams:
        raise InsufficientFundsError(WalletType.FPGW.value, grams, available)

    draws: list[FifoDraw] = []
    outstanding = grams
    for batch in batches:
        if outstanding <= 0:
            break
        if batch.remaining_grams <= 0:
            continue
        take = min(batch.remaining_grams, outstanding)
        draws.append(
            FifoDraw(
                batch_id=batch.id,
                grams=take,
                locked_price_usd_per_gram=batch.locked_price_usd_per_gram,
                exhausts_batch=take == batch.remaining_grams,
            )
        )
        outstanding -= take
    return draws
