"""001: create live wallet tables and the updated_at trigger function

Revision ID: 001
Revises: 
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_touch_updated_at()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)

    op.execute("""
        CREATE TABLE live_wallet_balances (
            user_id         VARCHAR(64)     NOT NULL,
            bucket          VARCHAR(20)     NOT NULL,
            grams           NUMERIC(18,6)   NOT NULL DEFAULT 0,
            version         BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            PRIMARY KEY (user_id, bucket),
            CONSTRAINT ck_live_bucket CHECK (
                bucket IN ('Available', 'Pending', 'Locked_BNSL', 'Reserved_Trade')
            ),
            CONSTRAINT ck_live_grams_gte_0 CHECK (grams >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_live_wallet_balances_updated_at
        BEFORE UPDATE ON live_wallet_balances
        FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)

    op.execute("""
        CREATE TABLE live_wallet_entries (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            bucket          VARCHAR(20)     NOT NULL,
            entry_type      VARCHAR(20)     NOT NULL,
            amount          NUMERIC(18,6)   NOT NULL,
            balance_after   NUMERIC(18,6)   NOT NULL,
            reference_type  VARCHAR(30),
            reference_id    VARCHAR(64),
            description     VARCHAR(500),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_live_entry_type CHECK (
                entry_type IN ('CREDIT', 'DEBIT', 'TRANSFER_IN', 'TRANSFER_OUT')
            ),
            CONSTRAINT ck_live_entry_balance_gte_0 CHECK (balance_after >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_live_entries_user ON live_wallet_entries (user_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_live_entries_reference
        ON live_wallet_entries (reference_type, reference_id)
        WHERE reference_id IS NOT NULL;
    """)
    op.execute("COMMENT ON TABLE live_wallet_entries IS 'MPGW movements, append-only, grams';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS live_wallet_entries CASCADE;")
    op.execute("DROP TABLE IF EXISTS live_wallet_balances CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_touch_updated_at();")
