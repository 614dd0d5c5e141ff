"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class WalletType(str, Enum):
    """MPGW: live market-price pool. FPGW: fixed-price batch pool."""
    MPGW = "MPGW"
    FPGW = "FPGW"


class BalanceBucket(str, Enum):
    """Only AVAILABLE is spendable; the rest are held for other engines."""
    AVAILABLE = "Available"
    PENDING = "Pending"
    LOCKED_BNSL = "Locked_BNSL"
    RESERVED_TRADE = "Reserved_Trade"


class BatchStatus(str, Enum):
    ACTIVE = "Active"
    CONSUMED = "Consumed"
    TRANSFERRED = "Transferred"


class BatchSourceType(str, Enum):
    PURCHASE = "Purchase"
    BNSL_LOCK = "BNSL_Lock"
    TRADE_SETTLEMENT = "TradeSettlement"
    INTERNAL_TRANSFER = "InternalTransfer"
    PEER_TRANSFER = "PeerTransfer"
    BUCKET_SPLIT = "BucketSplit"


class LiveEntryType(str, Enum):
    # External buy/sell/send/receive
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"
    # Internal MPGW <-> FPGW transfers
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"


class ConsumptionReason(str, Enum):
    """Why grams left a batch — reference_type of batch_consumptions."""
    INTERNAL_TRANSFER = "INTERNAL_TRANSFER"
    PEER_SEND = "PEER_SEND"
    BUCKET_SPLIT = "BUCKET_SPLIT"
