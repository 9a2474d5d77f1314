"""Repository and indexer Protocols — dependency inversion for testability.

Unit tests inject in-memory doubles that conform to these Protocols.
Infrastructure layer provides the real implementations.

Version-guarded writes raise ConcurrentModificationError when the stored
version no longer matches `expected_version`.
"""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from datetime import date

from src.hl_common.enums import ExpenseStatus
from src.hl_ledger.domain.models import (
    AdjustmentEntry,
    ExpenseLedger,
    ExpenseRecord,
    RecurringExpense,
    SettlementEntry,
)


class LedgerRepositoryProtocol(Protocol):
    async def get_expense(self, db: AsyncSession, expense_id: str) -> ExpenseRecord | None: ...

    async def find_expense_by_client_uuid(
        self, db: AsyncSession, household_id: str, client_uuid: str
    ) -> ExpenseRecord | None: ...

    async def load_expense_ledger(
        self, db: AsyncSession, expense_id: str
    ) -> ExpenseLedger | None: ...

    async def load_household_ledgers(
        self, db: AsyncSession, household_id: str
    ) -> list[ExpenseLedger]: ...

    async def set_repeatable_read(self, db: AsyncSession) -> None: ...

    async def insert_expense(self, db: AsyncSession, expense: ExpenseRecord) -> None: ...

    async def replace_expense_split(
        self, db: AsyncSession, expense: ExpenseRecord, expected_version: int
    ) -> int: ...

    async def update_expense_status(
        self,
        db: AsyncSession,
        expense_id: str,
        status: ExpenseStatus,
        expected_version: int,
    ) -> int: ...

    async def delete_expense(
        self, db: AsyncSession, expense_id: str, expected_version: int
    ) -> None: ...

    async def insert_settlement(self, db: AsyncSession, entry: SettlementEntry) -> None: ...

    async def insert_adjustment(self, db: AsyncSession, entry: AdjustmentEntry) -> None: ...

    async def get_adjustment(
        self, db: AsyncSession, adjustment_id: str
    ) -> AdjustmentEntry | None: ...

    async def insert_recurring_expense(
        self, db: AsyncSession, template: RecurringExpense
    ) -> None: ...

    async def get_recurring_expense(
        self, db: AsyncSession, recurring_id: str
    ) -> RecurringExpense | None: ...

    async def list_recurring_expenses(
        self, db: AsyncSession, household_id: str, due_on: date | None = None
    ) -> list[RecurringExpense]:
        """Active templates by next due date; only those due by `due_on` when given."""
        ...

    async def update_recurring_expense(
        self, db: AsyncSession, template: RecurringExpense, expected_version: int
    ) -> int:
        """Persist next_due_date and is_active."""
        ...


class ExpenseIndexerProtocol(Protocol):
    async def enqueue(
        self,
        expense_id: str,
        household_id: str,
        description: str,
        metadata: dict[str, Any],
    ) -> None: ...
