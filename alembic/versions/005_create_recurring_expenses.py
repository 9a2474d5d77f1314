"""005: create recurring_expenses table

Revision ID: 005
Revises: 004
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE recurring_expenses (
            id              VARCHAR(32)     PRIMARY KEY,
            household_id    VARCHAR(64)     NOT NULL,
            description     VARCHAR(480)    NOT NULL,
            total_cents     BIGINT          NOT NULL,
            currency        CHAR(3)         NOT NULL DEFAULT 'USD',
            paid_by         VARCHAR(64)     NOT NULL,
            participant_ids VARCHAR(64)[]   NOT NULL,
            frequency       VARCHAR(16)     NOT NULL,
            day_of_month    SMALLINT,
            next_due_date   DATE            NOT NULL,
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            version         INTEGER         NOT NULL DEFAULT 1,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_recurring_frequency CHECK (
                frequency IN ('WEEKLY', 'BIWEEKLY', 'MONTHLY', 'QUARTERLY', 'YEARLY')
            ),
            CONSTRAINT ck_recurring_total_gt_0 CHECK (total_cents > 0),
            CONSTRAINT ck_recurring_participants CHECK (cardinality(participant_ids) > 0),
            CONSTRAINT ck_recurring_day_of_month CHECK (
                day_of_month IS NULL
                OR (day_of_month BETWEEN 1 AND 31
                    AND frequency IN ('MONTHLY', 'QUARTERLY', 'YEARLY'))
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_recurring_due
        ON recurring_expenses (household_id, next_due_date)
        WHERE is_active;
    """)
    op.execute("""
        CREATE TRIGGER trg_recurring_expenses_updated_at
        BEFORE UPDATE ON recurring_expenses
        FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("""
        CREATE TRIGGER trg_recurring_expenses_version_bump
        BEFORE UPDATE ON recurring_expenses
        FOR EACH ROW EXECUTE FUNCTION fn_require_version_bump();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS recurring_expenses CASCADE;")
