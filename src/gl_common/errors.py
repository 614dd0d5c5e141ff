"""Unified error codes and custom exceptions.

Error code ranges:
  2xxx: Input validation (rejected before any state access)
  3xxx: Ledger business rules (normal, non-fatal rejections)
  9xxx: System (retryable unless noted)

`retryable` tells the caller whether repeating the whole operation from
validation may succeed. Business-rule rejections are never retried.
"""

from decimal import Decimal


class AppError(Exception):
    """Base application error."""

    retryable: bool = False

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 2xxx: Input validation ---

class InvalidQuantityError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2001, f"Invalid gold quantity: {detail}", 422)


class InvalidPriceError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2002, f"Invalid price: {detail}", 422)


class SameWalletTransferError(AppError):
    def __init__(self, wallet_type: str) -> None:
        super().__init__(2003, f"Cannot transfer from {wallet_type} to itself", 422)


class InvalidBucketTransitionError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2004, f"Invalid bucket transition: {detail}", 422)


# --- 3xxx: Ledger ---

class InsufficientFundsError(AppError):
    def __init__(self, wallet_type: str, required: Decimal, available: Decimal) -> None:
        self.required = required
        self.available = available
        super().__init__(
            3001,
            f"Insufficient {wallet_type} balance: requested {required:f}g, "
            f"available {available:f}g",
            422,
        )


class InsufficientBatchBalanceError(AppError):
    def __init__(self, batch_id: str, requested: Decimal, remaining: Decimal) -> None:
        super().__init__(
            3002,
            f"Batch {batch_id} has {remaining:f}g remaining, cannot consume {requested:f}g",
            422,
        )


class BatchNotActiveError(AppError):
    def __init__(self, batch_id: str, status: str) -> None:
        super().__init__(3003, f"Batch {batch_id} is {status}, not Active", 422)


class BatchNotFoundError(AppError):
    def __init__(self, batch_id: str) -> None:
        super().__init__(3004, f"Batch not found: {batch_id}", 404)


# --- 9xxx: System ---

class ConcurrencyConflictError(AppError):
    retryable = True

    def __init__(self, detail: str = "Concurrent modification, retry the operation") -> None:
        super().__init__(9001, detail, 409)


class StorageUnavailableError(AppError):
    retryable = True

    def __init__(self, detail: str = "Ledger storage is unavailable") -> None:
        super().__init__(9002, detail, 503)


class PriceUnavailableError(AppError):
    retryable = True

    def __init__(self, detail: str = "Gold spot price is unavailable") -> None:
        super().__init__(9003, detail, 503)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9004, detail, 500)
