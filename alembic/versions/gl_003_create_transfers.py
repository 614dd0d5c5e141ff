"""003: create transfer_records and batch_consumptions

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transfer_records (
            id                          VARCHAR(64)     PRIMARY KEY,
            seq                         BIGSERIAL       NOT NULL UNIQUE,
            user_id                     VARCHAR(64)     NOT NULL,
            gold_grams                  NUMERIC(18,6)   NOT NULL,
            from_wallet_type            VARCHAR(10)     NOT NULL,
            to_wallet_type              VARCHAR(10)     NOT NULL,
            spot_price_usd_per_gram     NUMERIC(18,6)   NOT NULL,
            cost_basis_usd              NUMERIC(20,2)   NOT NULL,
            notes                       VARCHAR(500),
            idempotency_key             VARCHAR(128),
            created_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_transfer_grams_gt_0 CHECK (gold_grams > 0),
            CONSTRAINT ck_transfer_wallets CHECK (
                from_wallet_type IN ('MPGW', 'FPGW')
                AND to_wallet_type IN ('MPGW', 'FPGW')
                AND from_wallet_type <> to_wallet_type
            ),
            CONSTRAINT uq_transfer_idempotency UNIQUE (user_id, idempotency_key)
        );
    """)
    op.execute("CREATE INDEX idx_transfers_user_seq ON transfer_records (user_id, seq DESC);")

    op.execute("""
        CREATE TABLE batch_consumptions (
            id                          BIGSERIAL       PRIMARY KEY,
            batch_id                    VARCHAR(64)     NOT NULL REFERENCES gold_batches(id),
            reference_type              VARCHAR(30)     NOT NULL,
            reference_id                VARCHAR(64)     NOT NULL,
            grams                       NUMERIC(18,6)   NOT NULL,
            locked_price_usd_per_gram   NUMERIC(18,6)   NOT NULL,
            created_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_consumption_grams_gt_0 CHECK (grams > 0),
            CONSTRAINT ck_consumption_reason CHECK (
                reference_type IN ('INTERNAL_TRANSFER', 'PEER_SEND', 'BUCKET_SPLIT')
            )
        );
    """)
    op.execute("CREATE INDEX idx_consumptions_batch ON batch_consumptions (batch_id);")
    op.execute("CREATE INDEX idx_consumptions_reference ON batch_consumptions (reference_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS batch_consumptions CASCADE;")
    op.execute("DROP TABLE IF EXISTS transfer_records CASCADE;")
