"""LedgerRepository — concrete implementation of LedgerRepositoryProtocol.

Version-guarded writes use `UPDATE ... WHERE version = :expected_version
RETURNING version`. A result of 0 rows means another writer got there first.

Transaction ownership: The CALLER (application service) is responsible for
committing or rolling back.
"""

from collections import defaultdict
from collections.abc import Sequence
from datetime import date

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.hl_common.enums import AdjustmentLineType, ExpenseStatus, RecurringFrequency
from src.hl_common.errors import ConcurrentModificationError
from src.hl_common.money import Money
from src.hl_ledger.domain.models import (
    AdjustmentEntry,
    ExpenseLedger,
    ExpenseRecord,
    MemberCredit,
    ParticipantShare,
    PaymentContribution,
    RecurringExpense,
    SettlementEntry,
)

# ---------------------------------------------------------------------------
# SQL: expenses
# ---------------------------------------------------------------------------

_EXPENSE_COLUMNS = """
    e.id, e.household_id, e.description, e.total_cents, e.currency, e.status,
    e.version, e.expense_date, e.client_uuid, e.created_at, e.updated_at
"""

_GET_EXPENSE_SQL = text(f"""
    SELECT {_EXPENSE_COLUMNS}
    FROM expenses e
    WHERE e.id = :expense_id
""")

_GET_EXPENSE_BY_CLIENT_UUID_SQL = text(f"""
    SELECT {_EXPENSE_COLUMNS}
    FROM expenses e
    WHERE e.household_id = :household_id AND e.client_uuid = :client_uuid
""")

_LIST_HOUSEHOLD_EXPENSES_SQL = text(f"""
    SELECT {_EXPENSE_COLUMNS}
    FROM expenses e
    WHERE e.household_id = :household_id
    ORDER BY e.created_at ASC, e.id ASC
""")

_INSERT_EXPENSE_SQL = text("""
    INSERT INTO expenses
        (id, household_id, description, total_cents, currency, status,
         version, expense_date, client_uuid, created_at, updated_at)
    VALUES
        (:id, :household_id, :description, :total_cents, :currency, :status,
         :version, :expense_date, :client_uuid, :created_at, :updated_at)
""")

_REWRITE_EXPENSE_SQL = text("""
    UPDATE expenses
    SET description = :description,
        total_cents = :total_cents,
        status = :status,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :expense_id AND version = :expected_version
    RETURNING version
""")

_UPDATE_STATUS_SQL = text("""
    UPDATE expenses
    SET status = :status,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :expense_id AND version = :expected_version
    RETURNING version
""")

_DELETE_EXPENSE_SQL = text("""
    DELETE FROM expenses
    WHERE id = :expense_id AND version = :expected_version
    RETURNING id
""")

# ---------------------------------------------------------------------------
# SQL: contributions / shares
# ---------------------------------------------------------------------------

_INSERT_CONTRIBUTION_SQL = text("""
    INSERT INTO expense_contributions (expense_id, member_id, paid_cents, position)
    VALUES (:expense_id, :member_id, :paid_cents, :position)
""")

_INSERT_SHARE_SQL = text("""
    INSERT INTO expense_shares (expense_id, member_id, owed_cents, position)
    VALUES (:expense_id, :member_id, :owed_cents, :position)
""")

_DELETE_CONTRIBUTIONS_SQL = text(
    "DELETE FROM expense_contributions WHERE expense_id = :expense_id"
)
_DELETE_SHARES_SQL = text("DELETE FROM expense_shares WHERE expense_id = :expense_id")

_CONTRIBUTIONS_BY_EXPENSE_SQL = text("""
    SELECT expense_id, member_id, paid_cents
    FROM expense_contributions
    WHERE expense_id = :expense_id
    ORDER BY position ASC
""")

_SHARES_BY_EXPENSE_SQL = text("""
    SELECT expense_id, member_id, owed_cents
    FROM expense_shares
    WHERE expense_id = :expense_id
    ORDER BY position ASC
""")

_CONTRIBUTIONS_BY_HOUSEHOLD_SQL = text("""
    SELECT c.expense_id, c.member_id, c.paid_cents
    FROM expense_contributions c
    JOIN expenses e ON e.id = c.expense_id
    WHERE e.household_id = :household_id
    ORDER BY c.expense_id ASC, c.position ASC
""")

_SHARES_BY_HOUSEHOLD_SQL = text("""
    SELECT s.expense_id, s.member_id, s.owed_cents
    FROM expense_shares s
    JOIN expenses e ON e.id = s.expense_id
    WHERE e.household_id = :household_id
    ORDER BY s.expense_id ASC, s.position ASC
""")

# ---------------------------------------------------------------------------
# SQL: settlements (append-only)
# ---------------------------------------------------------------------------

_INSERT_SETTLEMENT_SQL = text("""
    INSERT INTO settlement_entries
        (id, expense_id, household_id, member_id, settled_cents, settled_at)
    VALUES
        (:id, :expense_id, :household_id, :member_id, :settled_cents, :settled_at)
""")

_SETTLEMENT_COLUMNS = "id, expense_id, household_id, member_id, settled_cents, settled_at"

_SETTLEMENTS_BY_EXPENSE_SQL = text(f"""
    SELECT {_SETTLEMENT_COLUMNS}
    FROM settlement_entries
    WHERE expense_id = :expense_id
    ORDER BY settled_at ASC, id ASC
""")

_SETTLEMENTS_BY_HOUSEHOLD_SQL = text(f"""
    SELECT {_SETTLEMENT_COLUMNS}
    FROM settlement_entries
    WHERE household_id = :household_id
    ORDER BY settled_at ASC, id ASC
""")

# ---------------------------------------------------------------------------
# SQL: adjustments (append-only)
# ---------------------------------------------------------------------------

_INSERT_ADJUSTMENT_SQL = text("""
    INSERT INTO adjustment_entries
        (id, expense_id, household_id, reason, new_description,
         reverts_adjustment_id, created_at)
    VALUES
        (:id, :expense_id, :household_id, :reason, :new_description,
         :reverts_adjustment_id, :created_at)
""")

_INSERT_ADJUSTMENT_LINE_SQL = text("""
    INSERT INTO adjustment_lines (adjustment_id, line_type, member_id, amount_cents)
    VALUES (:adjustment_id, :line_type, :member_id, :amount_cents)
""")

_ADJUSTMENT_COLUMNS = """
    a.id, a.expense_id, a.household_id, a.reason, a.new_description,
    a.reverts_adjustment_id, a.created_at, e.currency
"""

_GET_ADJUSTMENT_SQL = text(f"""
    SELECT {_ADJUSTMENT_COLUMNS}
    FROM adjustment_entries a
    JOIN expenses e ON e.id = a.expense_id
    WHERE a.id = :adjustment_id
""")

_ADJUSTMENTS_BY_EXPENSE_SQL = text(f"""
    SELECT {_ADJUSTMENT_COLUMNS}
    FROM adjustment_entries a
    JOIN expenses e ON e.id = a.expense_id
    WHERE a.expense_id = :expense_id
    ORDER BY a.created_at ASC, a.id ASC
""")

_ADJUSTMENTS_BY_HOUSEHOLD_SQL = text(f"""
    SELECT {_ADJUSTMENT_COLUMNS}
    FROM adjustment_entries a
    JOIN expenses e ON e.id = a.expense_id
    WHERE a.household_id = :household_id
    ORDER BY a.created_at ASC, a.id ASC
""")

_LINES_BY_ADJUSTMENT_SQL = text("""
    SELECT adjustment_id, line_type, member_id, amount_cents
    FROM adjustment_lines
    WHERE adjustment_id = :adjustment_id
    ORDER BY line_type ASC, member_id ASC
""")

_LINES_BY_EXPENSE_SQL = text("""
    SELECT l.adjustment_id, l.line_type, l.member_id, l.amount_cents
    FROM adjustment_lines l
    JOIN adjustment_entries a ON a.id = l.adjustment_id
    WHERE a.expense_id = :expense_id
    ORDER BY l.adjustment_id ASC, l.line_type ASC, l.member_id ASC
""")

_LINES_BY_HOUSEHOLD_SQL = text("""
    SELECT l.adjustment_id, l.line_type, l.member_id, l.amount_cents
    FROM adjustment_lines l
    JOIN adjustment_entries a ON a.id = l.adjustment_id
    WHERE a.household_id = :household_id
    ORDER BY l.adjustment_id ASC, l.line_type ASC, l.member_id ASC
""")

# ---------------------------------------------------------------------------
# SQL: recurring expense templates
# ---------------------------------------------------------------------------

_RECURRING_COLUMNS = """
    id, household_id, description, total_cents, currency, paid_by, participant_ids,
    frequency, day_of_month, next_due_date, is_active, version, created_at, updated_at
"""

_INSERT_RECURRING_SQL = text("""
    INSERT INTO recurring_expenses
        (id, household_id, description, total_cents, currency, paid_by,
         participant_ids, frequency, day_of_month, next_due_date, is_active,
         version, created_at, updated_at)
    VALUES
        (:id, :household_id, :description, :total_cents, :currency, :paid_by,
         :participant_ids, :frequency, :day_of_month, :next_due_date, :is_active,
         :version, :created_at, :updated_at)
""")

_GET_RECURRING_SQL = text(f"""
    SELECT {_RECURRING_COLUMNS}
    FROM recurring_expenses
    WHERE id = :recurring_id
""")

_LIST_RECURRING_SQL = text(f"""
    SELECT {_RECURRING_COLUMNS}
    FROM recurring_expenses
    WHERE household_id = :household_id AND is_active
    ORDER BY next_due_date ASC, id ASC
""")

_LIST_DUE_RECURRING_SQL = text(f"""
    SELECT {_RECURRING_COLUMNS}
    FROM recurring_expenses
    WHERE household_id = :household_id AND is_active AND next_due_date <= :due_on
    ORDER BY next_due_date ASC, id ASC
""")

_UPDATE_RECURRING_SQL = text("""
    UPDATE recurring_expenses
    SET next_due_date = :next_due_date,
        is_active = :is_active,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :recurring_id AND version = :expected_version
    RETURNING version
""")

_REPEATABLE_READ_SQL = text("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_expense(
    row: object,
    contribution_rows: Sequence[object] = (),
    share_rows: Sequence[object] = (),
) -> ExpenseRecord:
    currency = row.currency  # type: ignore[attr-defined]
    return ExpenseRecord(
        id=row.id,  # type: ignore[attr-defined]
        household_id=row.household_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        total=Money(row.total_cents, currency),  # type: ignore[attr-defined]
        contributions=[
            PaymentContribution(c.member_id, Money(c.paid_cents, currency))  # type: ignore[attr-defined]
            for c in contribution_rows
        ],
        shares=[
            ParticipantShare(s.member_id, Money(s.owed_cents, currency))  # type: ignore[attr-defined]
            for s in share_rows
        ],
        created_at=row.created_at,  # type: ignore[attr-defined]
        status=ExpenseStatus(row.status),  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        expense_date=row.expense_date,  # type: ignore[attr-defined]
        client_uuid=row.client_uuid,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_settlement(row: object, currency: str) -> SettlementEntry:
    return SettlementEntry(
        id=row.id,  # type: ignore[attr-defined]
        expense_id=row.expense_id,  # type: ignore[attr-defined]
        household_id=row.household_id,  # type: ignore[attr-defined]
        member_id=row.member_id,  # type: ignore[attr-defined]
        settled=Money(row.settled_cents, currency),  # type: ignore[attr-defined]
        settled_at=row.settled_at,  # type: ignore[attr-defined]
    )


def _row_to_adjustment(row: object, line_rows: Sequence[object]) -> AdjustmentEntry:
    currency = row.currency  # type: ignore[attr-defined]
    paid: list[PaymentContribution] = []
    owed: list[ParticipantShare] = []
    credits: list[MemberCredit] = []
    for line in line_rows:
        amount = Money(line.amount_cents, currency)  # type: ignore[attr-defined]
        line_type = AdjustmentLineType(line.line_type)  # type: ignore[attr-defined]
        member_id = line.member_id  # type: ignore[attr-defined]
        if line_type == AdjustmentLineType.CONTRIBUTION:
            paid.append(PaymentContribution(member_id, amount))
        elif line_type == AdjustmentLineType.SHARE:
            owed.append(ParticipantShare(member_id, amount))
        else:
            credits.append(MemberCredit(member_id, amount))
    return AdjustmentEntry(
        id=row.id,  # type: ignore[attr-defined]
        original_expense_id=row.expense_id,  # type: ignore[attr-defined]
        household_id=row.household_id,  # type: ignore[attr-defined]
        delta_contributions=tuple(paid),
        delta_shares=tuple(owed),
        reason=row.reason,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        credits=tuple(credits),
        new_description=row.new_description,  # type: ignore[attr-defined]
        reverts_adjustment_id=row.reverts_adjustment_id,  # type: ignore[attr-defined]
    )


def _row_to_recurring(row: object) -> RecurringExpense:
    return RecurringExpense(
        id=row.id,  # type: ignore[attr-defined]
        household_id=row.household_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        total=Money(row.total_cents, row.currency),  # type: ignore[attr-defined]
        paid_by=row.paid_by,  # type: ignore[attr-defined]
        participants=list(row.participant_ids),  # type: ignore[attr-defined]
        frequency=RecurringFrequency(row.frequency),  # type: ignore[attr-defined]
        next_due_date=row.next_due_date,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        day_of_month=row.day_of_month,  # type: ignore[attr-defined]
        is_active=row.is_active,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _group_by(rows: Sequence[object], attr: str) -> dict[str, list[object]]:
    grouped: dict[str, list[object]] = defaultdict(list)
    for row in rows:
        grouped[getattr(row, attr)].append(row)
    return grouped


def _assemble_ledgers(
    expense_rows: Sequence[object],
    contribution_rows: Sequence[object],
    share_rows: Sequence[object],
    settlement_rows: Sequence[object],
    adjustment_rows: Sequence[object],
    line_rows: Sequence[object],
) -> list[ExpenseLedger]:
    contributions = _group_by(contribution_rows, "expense_id")
    shares = _group_by(share_rows, "expense_id")
    settlements = _group_by(settlement_rows, "expense_id")
    adjustments = _group_by(adjustment_rows, "expense_id")
    lines = _group_by(line_rows, "adjustment_id")

    ledgers = []
    for row in expense_rows:
        expense_id = row.id  # type: ignore[attr-defined]
        expense = _row_to_expense(row, contributions[expense_id], shares[expense_id])
        ledgers.append(
            ExpenseLedger(
                expense=expense,
                adjustments=[
                    _row_to_adjustment(a, lines[a.id])  # type: ignore[attr-defined]
                    for a in adjustments[expense_id]
                ],
                settlements=[
                    _row_to_settlement(s, expense.currency) for s in settlements[expense_id]
                ],
            )
        )
    return ledgers


def _split_params(expense: ExpenseRecord) -> tuple[list[dict], list[dict]]:
    contributions = [
        {
            "expense_id": expense.id,
            "member_id": c.member_id,
            "paid_cents": c.paid.cents,
            "position": i,
        }
        for i, c in enumerate(expense.contributions)
    ]
    shares = [
        {
            "expense_id": expense.id,
            "member_id": s.member_id,
            "owed_cents": s.owed.cents,
            "position": i,
        }
        for i, s in enumerate(expense.shares)
    ]
    return contributions, shares


class LedgerRepository:
    """Concrete repository — raw SQL, no ORM session state."""

    async def get_expense(self, db: AsyncSession, expense_id: str) -> ExpenseRecord | None:
        result = await db.execute(_GET_EXPENSE_SQL, {"expense_id": expense_id})
        row = result.fetchone()
        if row is None:
            return None
        contributions = (
            await db.execute(_CONTRIBUTIONS_BY_EXPENSE_SQL, {"expense_id": expense_id})
        ).fetchall()
        shares = (
            await db.execute(_SHARES_BY_EXPENSE_SQL, {"expense_id": expense_id})
        ).fetchall()
        return _row_to_expense(row, contributions, shares)

    async def find_expense_by_client_uuid(
        self, db: AsyncSession, household_id: str, client_uuid: str
    ) -> ExpenseRecord | None:
        result = await db.execute(
            _GET_EXPENSE_BY_CLIENT_UUID_SQL,
            {"household_id": household_id, "client_uuid": client_uuid},
        )
        row = result.fetchone()
        if row is None:
            return None
        return await self.get_expense(db, row.id)

    async def load_expense_ledger(
        self, db: AsyncSession, expense_id: str
    ) -> ExpenseLedger | None:
        params = {"expense_id": expense_id}
        expense_rows = (await db.execute(_GET_EXPENSE_SQL, params)).fetchall()
        if not expense_rows:
            return None
        ledgers = _assemble_ledgers(
            expense_rows,
            (await db.execute(_CONTRIBUTIONS_BY_EXPENSE_SQL, params)).fetchall(),
            (await db.execute(_SHARES_BY_EXPENSE_SQL, params)).fetchall(),
            (await db.execute(_SETTLEMENTS_BY_EXPENSE_SQL, params)).fetchall(),
            (await db.execute(_ADJUSTMENTS_BY_EXPENSE_SQL, params)).fetchall(),
            (await db.execute(_LINES_BY_EXPENSE_SQL, params)).fetchall(),
        )
        return ledgers[0]

    async def load_household_ledgers(
        self, db: AsyncSession, household_id: str
    ) -> list[ExpenseLedger]:
        params = {"household_id": household_id}
        return _assemble_ledgers(
            (await db.execute(_LIST_HOUSEHOLD_EXPENSES_SQL, params)).fetchall(),
            (await db.execute(_CONTRIBUTIONS_BY_HOUSEHOLD_SQL, params)).fetchall(),
            (await db.execute(_SHARES_BY_HOUSEHOLD_SQL, params)).fetchall(),
            (await db.execute(_SETTLEMENTS_BY_HOUSEHOLD_SQL, params)).fetchall(),
            (await db.execute(_ADJUSTMENTS_BY_HOUSEHOLD_SQL, params)).fetchall(),
            (await db.execute(_LINES_BY_HOUSEHOLD_SQL, params)).fetchall(),
        )

    async def set_repeatable_read(self, db: AsyncSession) -> None:
        """Must be the first statement of the transaction."""
        await db.execute(_REPEATABLE_READ_SQL)

    async def insert_expense(self, db: AsyncSession, expense: ExpenseRecord) -> None:
        await db.execute(
            _INSERT_EXPENSE_SQL,
            {
                "id": expense.id,
                "household_id": expense.household_id,
                "description": expense.description,
                "total_cents": expense.total.cents,
                "currency": expense.currency,
                "status": expense.status.value,
                "version": expense.version,
                "expense_date": expense.expense_date,
                "client_uuid": expense.client_uuid,
                "created_at": expense.created_at,
                "updated_at": expense.updated_at or expense.created_at,
            },
        )
        contributions, shares = _split_params(expense)
        await db.execute(_INSERT_CONTRIBUTION_SQL, contributions)
        await db.execute(_INSERT_SHARE_SQL, shares)

    async def replace_expense_split(
        self, db: AsyncSession, expense: ExpenseRecord, expected_version: int
    ) -> int:
        result = await db.execute(
            _REWRITE_EXPENSE_SQL,
            {
                "expense_id": expense.id,
                "description": expense.description,
                "total_cents": expense.total.cents,
                "status": expense.status.value,
                "expected_version": expected_version,
            },
        )
        row = result.fetchone()
        if row is None:
            raise ConcurrentModificationError(expense.id)
        await db.execute(_DELETE_CONTRIBUTIONS_SQL, {"expense_id": expense.id})
        await db.execute(_DELETE_SHARES_SQL, {"expense_id": expense.id})
        contributions, shares = _split_params(expense)
        await db.execute(_INSERT_CONTRIBUTION_SQL, contributions)
        await db.execute(_INSERT_SHARE_SQL, shares)
        return row.version

    async def update_expense_status(
        self,
        db: AsyncSession,
        expense_id: str,
        status: ExpenseStatus,
        expected_version: int,
    ) -> int:
        result = await db.execute(
            _UPDATE_STATUS_SQL,
            {
                "expense_id": expense_id,
                "status": status.value,
                "expected_version": expected_version,
            },
        )
        row = result.fetchone()
        if row is None:
            raise ConcurrentModificationError(expense_id)
        return row.version

    async def delete_expense(
        self, db: AsyncSession, expense_id: str, expected_version: int
    ) -> None:
        # Contributions and shares go with it (ON DELETE CASCADE); settlement and
        # adjustment rows RESTRICT the delete.
        result = await db.execute(
            _DELETE_EXPENSE_SQL,
            {"expense_id": expense_id, "expected_version": expected_version},
        )
        if result.fetchone() is None:
            raise ConcurrentModificationError(expense_id)

    async def insert_settlement(self, db: AsyncSession, entry: SettlementEntry) -> None:
        await db.execute(
            _INSERT_SETTLEMENT_SQL,
            {
                "id": entry.id,
                "expense_id": entry.expense_id,
                "household_id": entry.household_id,
                "member_id": entry.member_id,
                "settled_cents": entry.settled.cents,
                "settled_at": entry.settled_at,
            },
        )

    async def insert_adjustment(self, db: AsyncSession, entry: AdjustmentEntry) -> None:
        await db.execute(
            _INSERT_ADJUSTMENT_SQL,
            {
                "id": entry.id,
                "expense_id": entry.original_expense_id,
                "household_id": entry.household_id,
                "reason": entry.reason,
                "new_description": entry.new_description,
                "reverts_adjustment_id": entry.reverts_adjustment_id,
                "created_at": entry.created_at,
            },
        )
        lines = [
            *(
                (AdjustmentLineType.CONTRIBUTION, c.member_id, c.paid.cents)
                for c in entry.delta_contributions
            ),
            *(
                (AdjustmentLineType.SHARE, s.member_id, s.owed.cents)
                for s in entry.delta_shares
            ),
            *(
                (AdjustmentLineType.CREDIT, c.member_id, c.credit.cents)
                for c in entry.credits
            ),
        ]
        if lines:
            await db.execute(
                _INSERT_ADJUSTMENT_LINE_SQL,
                [
                    {
                        "adjustment_id": entry.id,
                        "line_type": line_type.value,
                        "member_id": member_id,
                        "amount_cents": amount,
                    }
                    for line_type, member_id, amount in lines
                ],
            )

    async def get_adjustment(
        self, db: AsyncSession, adjustment_id: str
    ) -> AdjustmentEntry | None:
        result = await db.execute(_GET_ADJUSTMENT_SQL, {"adjustment_id": adjustment_id})
        row = result.fetchone()
        if row is None:
            return None
        lines = (
            await db.execute(_LINES_BY_ADJUSTMENT_SQL, {"adjustment_id": adjustment_id})
        ).fetchall()
        return _row_to_adjustment(row, lines)

    async def insert_recurring_expense(
        self, db: AsyncSession, template: RecurringExpense
    ) -> None:
        await db.execute(
            _INSERT_RECURRING_SQL,
            {
                "id": template.id,
                "household_id": template.household_id,
                "description": template.description,
                "total_cents": template.total.cents,
                "currency": template.total.currency,
                "paid_by": template.paid_by,
                "participant_ids": list(template.participants),
                "frequency": template.frequency.value,
                "day_of_month": template.day_of_month,
                "next_due_date": template.next_due_date,
                "is_active": template.is_active,
                "version": template.version,
                "created_at": template.created_at,
                "updated_at": template.updated_at or template.created_at,
            },
        )

    async def get_recurring_expense(
        self, db: AsyncSession, recurring_id: str
    ) -> RecurringExpense | None:
        result = await db.execute(_GET_RECURRING_SQL, {"recurring_id": recurring_id})
        row = result.fetchone()
        return _row_to_recurring(row) if row is not None else None

    async def list_recurring_expenses(
        self, db: AsyncSession, household_id: str, due_on: date | None = None
    ) -> list[RecurringExpense]:
        if due_on is None:
            result = await db.execute(_LIST_RECURRING_SQL, {"household_id": household_id})
        else:
            result = await db.execute(
                _LIST_DUE_RECURRING_SQL, {"household_id": household_id, "due_on": due_on}
            )
        return [_row_to_recurring(row) for row in result.fetchall()]

    async def update_recurring_expense(
        self, db: AsyncSession, template: RecurringExpense, expected_version: int
    ) -> int:
        result = await db.execute(
            _UPDATE_RECURRING_SQL,
            {
                "recurring_id": template.id,
                "next_due_date": template.next_due_date,
                "is_active": template.is_active,
                "expected_version": expected_version,
            },
        )
        row = result.fetchone()
        if row is None:
            raise ConcurrentModificationError(template.id)
        return row.version
