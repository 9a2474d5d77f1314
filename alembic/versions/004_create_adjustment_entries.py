"""004: create adjustment_entries, adjustment_lines tables

Revision ID: 004
Revises: 003
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE adjustment_entries (
            id                      VARCHAR(32)     PRIMARY KEY,
            expense_id              VARCHAR(32)     NOT NULL
                REFERENCES expenses (id) ON DELETE RESTRICT,
            household_id            VARCHAR(64)     NOT NULL,
            reason                  VARCHAR(500)    NOT NULL,
            new_description         VARCHAR(500),
            reverts_adjustment_id   VARCHAR(32)
                REFERENCES adjustment_entries (id),
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_adjustments_expense ON adjustment_entries (expense_id, created_at);")
    op.execute("CREATE INDEX idx_adjustments_household ON adjustment_entries (household_id, created_at);")
    op.execute("""
        CREATE UNIQUE INDEX uq_adjustments_reverts
        ON adjustment_entries (reverts_adjustment_id)
        WHERE reverts_adjustment_id IS NOT NULL;
    """)

    # Signed deltas (CONTRIBUTION, SHARE) and non-negative credits (CREDIT).
    op.execute("""
        CREATE TABLE adjustment_lines (
            adjustment_id   VARCHAR(32)     NOT NULL
                REFERENCES adjustment_entries (id) ON DELETE CASCADE,
            line_type       VARCHAR(16)     NOT NULL,
            member_id       VARCHAR(64)     NOT NULL,
            amount_cents    BIGINT          NOT NULL,
            PRIMARY KEY (adjustment_id, line_type, member_id),
            CONSTRAINT ck_adjustment_line_type CHECK (
                line_type IN ('CONTRIBUTION', 'SHARE', 'CREDIT')
            ),
            CONSTRAINT ck_adjustment_credit_gt_0 CHECK (
                line_type <> 'CREDIT' OR amount_cents > 0
            )
        );
    """)
    for table in ("adjustment_entries", "adjustment_lines"):
        op.execute(f"""
            CREATE TRIGGER trg_{table}_append_only
            BEFORE UPDATE ON {table}
            FOR EACH ROW EXECUTE FUNCTION fn_reject_modification();
        """)
    op.execute("COMMENT ON TABLE adjustment_entries IS 'Append-only corrections to expenses with settlements';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS adjustment_lines CASCADE;")
    op.execute("DROP TABLE IF EXISTS adjustment_entries CASCADE;")
