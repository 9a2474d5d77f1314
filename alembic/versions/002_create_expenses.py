"""002: create expenses, expense_contributions, expense_shares tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE expenses (
            id              VARCHAR(32)     PRIMARY KEY,
            household_id    VARCHAR(64)     NOT NULL,
            description     VARCHAR(500)    NOT NULL,
            total_cents     BIGINT          NOT NULL,
            currency        CHAR(3)         NOT NULL DEFAULT 'USD',
            status          VARCHAR(16)     NOT NULL DEFAULT 'ACTIVE',
            version         INTEGER         NOT NULL DEFAULT 1,
            expense_date    DATE,
            client_uuid     VARCHAR(64),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_expenses_status CHECK (
                status IN ('ACTIVE', 'EDITED', 'SETTLED', 'VOIDED')
            ),
            CONSTRAINT ck_expenses_total_gt_0 CHECK (total_cents > 0),
            CONSTRAINT uq_expenses_client_uuid UNIQUE (household_id, client_uuid)
        );
    """)
    op.execute("CREATE INDEX idx_expenses_household_time ON expenses (household_id, created_at);")
    op.execute("""
        CREATE TRIGGER trg_expenses_updated_at
        BEFORE UPDATE ON expenses
        FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("""
        CREATE TRIGGER trg_expenses_version_bump
        BEFORE UPDATE ON expenses
        FOR EACH ROW EXECUTE FUNCTION fn_require_version_bump();
    """)

    op.execute("""
        CREATE TABLE expense_contributions (
            expense_id      VARCHAR(32)     NOT NULL
                REFERENCES expenses (id) ON DELETE CASCADE,
            member_id       VARCHAR(64)     NOT NULL,
            paid_cents      BIGINT          NOT NULL,
            position        SMALLINT        NOT NULL,
            PRIMARY KEY (expense_id, member_id),
            CONSTRAINT ck_contributions_paid_gt_0 CHECK (paid_cents > 0)
        );
    """)
    op.execute("""
        CREATE TABLE expense_shares (
            expense_id      VARCHAR(32)     NOT NULL
                REFERENCES expenses (id) ON DELETE CASCADE,
            member_id       VARCHAR(64)     NOT NULL,
            owed_cents      BIGINT          NOT NULL,
            position        SMALLINT        NOT NULL,
            PRIMARY KEY (expense_id, member_id),
            CONSTRAINT ck_shares_owed_ge_0 CHECK (owed_cents >= 0)
        );
    """)
    op.execute("COMMENT ON TABLE expenses IS 'Original expense records; all amounts in cents';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS expense_shares CASCADE;")
    op.execute("DROP TABLE IF EXISTS expense_contributions CASCADE;")
    op.execute("DROP TABLE IF EXISTS expenses CASCADE;")
