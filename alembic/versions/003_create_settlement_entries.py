"""003: create settlement_entries table

Revision ID: 003
Revises: 002
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE settlement_entries (
            id              VARCHAR(32)     PRIMARY KEY,
            expense_id      VARCHAR(32)     NOT NULL
                REFERENCES expenses (id) ON DELETE RESTRICT,
            household_id    VARCHAR(64)     NOT NULL,
            member_id       VARCHAR(64)     NOT NULL,
            settled_cents   BIGINT          NOT NULL,
            settled_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_settlement_amount_gt_0 CHECK (settled_cents > 0)
        );
    """)
    op.execute("CREATE INDEX idx_settlements_expense ON settlement_entries (expense_id, settled_at);")
    op.execute("CREATE INDEX idx_settlements_household ON settlement_entries (household_id, settled_at);")
    op.execute("""
        CREATE TRIGGER trg_settlement_entries_append_only
        BEFORE UPDATE ON settlement_entries
        FOR EACH ROW EXECUTE FUNCTION fn_reject_modification();
    """)
    op.execute("COMMENT ON TABLE settlement_entries IS 'Append-only pay-downs of expense shares, in cents';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS settlement_entries CASCADE;")
