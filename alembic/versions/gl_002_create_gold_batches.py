"""002: create gold_batches table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE gold_batches (
            id                          VARCHAR(64)     PRIMARY KEY,
            seq                         BIGSERIAL       NOT NULL UNIQUE,
            owner_id                    VARCHAR(64)     NOT NULL,
            original_grams              NUMERIC(18,6)   NOT NULL,
            remaining_grams             NUMERIC(18,6)   NOT NULL,
            locked_price_usd_per_gram   NUMERIC(18,6)   NOT NULL,
            status                      VARCHAR(20)     NOT NULL DEFAULT 'Active',
            balance_bucket              VARCHAR(20)     NOT NULL DEFAULT 'Available',
            source_type                 VARCHAR(30)     NOT NULL,
            source_transaction_id       VARCHAR(64),
            from_user_id                VARCHAR(64),
            notes                       VARCHAR(500),
            created_at                  TIMESTAMPTZ     NOT NULL DEFAULT clock_timestamp(),
            updated_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_batch_original_gt_0 CHECK (original_grams > 0),
            CONSTRAINT ck_batch_remaining_range CHECK (
                remaining_grams >= 0 AND remaining_grams <= original_grams
            ),
            CONSTRAINT ck_batch_price_gt_0 CHECK (locked_price_usd_per_gram > 0),
            CONSTRAINT ck_batch_status CHECK (status IN ('Active', 'Consumed', 'Transferred')),
            CONSTRAINT ck_batch_terminal_empty CHECK (
                status = 'Active' OR remaining_grams = 0
            ),
            CONSTRAINT ck_batch_bucket CHECK (
                balance_bucket IN ('Available', 'Pending', 'Locked_BNSL', 'Reserved_Trade')
            ),
            CONSTRAINT ck_batch_source_type CHECK (
                source_type IN (
                    'Purchase', 'BNSL_Lock', 'TradeSettlement',
                    'InternalTransfer', 'PeerTransfer', 'BucketSplit'
                )
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_batches_fifo
        ON gold_batches (owner_id, status, balance_bucket, created_at, seq);
    """)
    op.execute("""
        CREATE INDEX idx_batches_source
        ON gold_batches (source_transaction_id)
        WHERE source_transaction_id IS NOT NULL;
    """)
    op.execute("""
        CREATE TRIGGER trg_gold_batches_updated_at
        BEFORE UPDATE ON gold_batches
        FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON TABLE gold_batches IS 'FPGW lots, consumed FIFO by (created_at, seq)';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS gold_batches CASCADE;")
