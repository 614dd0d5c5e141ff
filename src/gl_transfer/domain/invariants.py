"""Batch ledger invariants, checked against recorded consumptions."""

from collections.abc import Iterable, Mapping
from decimal import Decimal

from src.gl_batch.domain.models import GoldBatch
from src.gl_common.grams import ZERO


def check_batch(batch: GoldBatch, consumed: Decimal) -> list[str]:
    """Violations for one batch given the sum of its recorded consumptions."""
    problems: list[str] = []
    if batch.original_grams <= 0:
        problems.append(f"batch {batch.id}: original_grams={batch.original_grams} is not positive")
    if not ZERO <= batch.remaining_grams <= batch.original_grams:
        problems.append(
            f"batch {batch.id}: remaining_grams={batch.remaining_grams} "
            f"outside [0, {batch.original_grams}]"
        )
    if batch.is_active and batch.remaining_grams == 0:
        problems.append(f"batch {batch.id}: Active with zero remaining")
    if not batch.is_active and batch.remaining_grams != 0:
        problems.append(
            f"batch {batch.id}: {batch.status} with {batch.remaining_grams} remaining"
        )
    if batch.locked_price_usd_per_gram <= 0:
        problems.append(f"batch {batch.id}: locked price {batch.locked_price_usd_per_gram} is not positive")
    if batch.consumed_grams != consumed:
        problems.append(
            f"batch {batch.id}: original - remaining = {batch.consumed_grams} "
            f"but consumptions sum to {consumed}"
        )
    return problems


def verify_batch_invariants(
    batches: Iterable[GoldBatch], consumed_by_batch: Mapping[str, Decimal]
) -> list[str]:
    violations: list[str] = []
    for batch in batches:
        violations.extend(check_batch(batch, consumed_by_batch.get(batch.id, ZERO)))
    return violations
