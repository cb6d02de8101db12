"""002: create amm_markets table

Revision ID: 002
Revises: 001
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # NUMERIC without scale: outstanding shares keep full Decimal precision
    op.execute("""
        CREATE TABLE amm_markets (
            id              VARCHAR(64)     PRIMARY KEY,
            status          VARCHAR(20)     NOT NULL DEFAULT 'DRAFT',
            q_yes           NUMERIC         NOT NULL DEFAULT 0,
            q_no            NUMERIC         NOT NULL DEFAULT 0,
            liquidity_b     NUMERIC         NOT NULL,
            version         BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_amm_markets_status CHECK (
                status IN ('DRAFT', 'OPEN', 'CLOSED', 'SETTLED', 'CANCELED')
            ),
            CONSTRAINT ck_amm_markets_q_yes_gte_0 CHECK (q_yes >= 0),
            CONSTRAINT ck_amm_markets_q_no_gte_0 CHECK (q_no >= 0),
            CONSTRAINT ck_amm_markets_b_gt_0 CHECK (liquidity_b > 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_amm_markets_updated_at
            BEFORE UPDATE ON amm_markets
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("CREATE INDEX idx_amm_markets_status ON amm_markets (status);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS amm_markets CASCADE;")
