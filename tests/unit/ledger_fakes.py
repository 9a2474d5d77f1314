"""In-memory stand-ins for the ledger repository, session and indexer."""

import copy
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

from src.hl_common.enums import ExpenseStatus
from src.hl_common.errors import ConcurrentModificationError
from src.hl_ledger.domain.models import (
    AdjustmentEntry,
    ExpenseLedger,
    ExpenseRecord,
    RecurringExpense,
    SettlementEntry,
)


@dataclass
class _State:
    expenses: dict[str, ExpenseRecord] = field(default_factory=dict)
    settlements: list[SettlementEntry] = field(default_factory=list)
    adjustments: list[AdjustmentEntry] = field(default_factory=list)
    recurring: dict[str, RecurringExpense] = field(default_factory=dict)


class InMemoryLedgerRepository:
    """Conforms to LedgerRepositoryProtocol. Writes land in a working copy that
    FakeSession.commit() publishes and FakeSession.rollback() discards."""

    def __init__(self) -> None:
        self._committed = _State()
        self._working = _State()
        self.conflicts_to_inject = 0
        self.repeatable_reads = 0

    # --- transaction hooks used by FakeSession ---

    def commit(self) -> None:
        self._committed = copy.deepcopy(self._working)

    def rollback(self) -> None:
        self._working = copy.deepcopy(self._committed)

    # --- committed-state helpers for assertions ---

    @property
    def committed_expenses(self) -> dict[str, ExpenseRecord]:
        return self._committed.expenses

    @property
    def committed_settlements(self) -> list[SettlementEntry]:
        return self._committed.settlements

    @property
    def committed_adjustments(self) -> list[AdjustmentEntry]:
        return self._committed.adjustments

    @property
    def committed_recurring(self) -> dict[str, RecurringExpense]:
        return self._committed.recurring

    def _cas(self, expense_id: str, expected_version: int) -> ExpenseRecord:
        if self.conflicts_to_inject > 0:
            self.conflicts_to_inject -= 1
            raise ConcurrentModificationError(expense_id)
        current = self._working.expenses.get(expense_id)
        if current is None or current.version != expected_version:
            raise ConcurrentModificationError(expense_id)
        return current

    def _ledger(self, expense: ExpenseRecord) -> ExpenseLedger:
        return ExpenseLedger(
            expense=expense,
            adjustments=[
                a for a in self._working.adjustments if a.original_expense_id == expense.id
            ],
            settlements=[s for s in self._working.settlements if s.expense_id == expense.id],
        )

    # --- LedgerRepositoryProtocol ---

    async def get_expense(self, db: Any, expense_id: str) -> ExpenseRecord | None:
        return self._working.expenses.get(expense_id)

    async def find_expense_by_client_uuid(
        self, db: Any, household_id: str, client_uuid: str
    ) -> ExpenseRecord | None:
        for expense in self._working.expenses.values():
            if expense.household_id == household_id and expense.client_uuid == client_uuid:
                return expense
        return None

    async def load_expense_ledger(self, db: Any, expense_id: str) -> ExpenseLedger | None:
        expense = self._working.expenses.get(expense_id)
        return self._ledger(expense) if expense else None

    async def load_household_ledgers(self, db: Any, household_id: str) -> list[ExpenseLedger]:
        expenses = sorted(
            (e for e in self._working.expenses.values() if e.household_id == household_id),
            key=lambda e: (e.created_at, e.id),
        )
        return [self._ledger(e) for e in expenses]

    async def set_repeatable_read(self, db: Any) -> None:
        self.repeatable_reads += 1

    async def insert_expense(self, db: Any, expense: ExpenseRecord) -> None:
        self._working.expenses[expense.id] = expense

    async def replace_expense_split(
        self, db: Any, expense: ExpenseRecord, expected_version: int
    ) -> int:
        self._cas(expense.id, expected_version)
        self._working.expenses[expense.id] = replace(expense, version=expected_version + 1)
        return expected_version + 1

    async def update_expense_status(
        self, db: Any, expense_id: str, status: ExpenseStatus, expected_version: int
    ) -> int:
        current = self._cas(expense_id, expected_version)
        self._working.expenses[expense_id] = replace(
            current, status=status, version=expected_version + 1
        )
        return expected_version + 1

    async def delete_expense(self, db: Any, expense_id: str, expected_version: int) -> None:
        self._cas(expense_id, expected_version)
        referenced = any(s.expense_id == expense_id for s in self._working.settlements) or any(
            a.original_expense_id == expense_id for a in self._working.adjustments
        )
        assert not referenced, "foreign key would reject this delete"
        del self._working.expenses[expense_id]

    async def insert_settlement(self, db: Any, entry: SettlementEntry) -> None:
        self._working.settlements.append(entry)

    async def insert_adjustment(self, db: Any, entry: AdjustmentEntry) -> None:
        self._working.adjustments.append(entry)

    async def get_adjustment(self, db: Any, adjustment_id: str) -> AdjustmentEntry | None:
        for entry in self._working.adjustments:
            if entry.id == adjustment_id:
                return entry
        return None

    async def insert_recurring_expense(self, db: Any, template: RecurringExpense) -> None:
        self._working.recurring[template.id] = template

    async def get_recurring_expense(self, db: Any, recurring_id: str) -> RecurringExpense | None:
        return self._working.recurring.get(recurring_id)

    async def list_recurring_expenses(
        self, db: Any, household_id: str, due_on: date | None = None
    ) -> list[RecurringExpense]:
        templates = [
            t
            for t in self._working.recurring.values()
            if t.household_id == household_id
            and t.is_active
            and (due_on is None or t.next_due_date <= due_on)
        ]
        return sorted(templates, key=lambda t: (t.next_due_date, t.id))

    async def update_recurring_expense(
        self, db: Any, template: RecurringExpense, expected_version: int
    ) -> int:
        if self.conflicts_to_inject > 0:
            self.conflicts_to_inject -= 1
            raise ConcurrentModificationError(template.id)
        current = self._working.recurring.get(template.id)
        if current is None or current.version != expected_version:
            raise ConcurrentModificationError(template.id)
        self._working.recurring[template.id] = replace(template, version=expected_version + 1)
        return expected_version + 1


class FakeSession:
    def __init__(self, repo: InMemoryLedgerRepository) -> None:
        self._repo = repo
        self.commits = 0
        self.rollbacks = 0

    async def commit(self) -> None:
        self._repo.commit()
        self.commits += 1

    async def rollback(self) -> None:
        self._repo.rollback()
        self.rollbacks += 1

    @asynccontextmanager
    async def begin(self) -> AsyncIterator["FakeSession"]:
        yield self


class RecordingIndexer:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[dict[str, Any]] = []

    async def enqueue(
        self,
        expense_id: str,
        household_id: str,
        description: str,
        metadata: dict[str, Any],
    ) -> None:
        if self.fail:
            raise ConnectionError("redis unavailable")
        self.calls.append(
            {
                "expense_id": expense_id,
                "household_id": household_id,
                "description": description,
                "metadata": metadata,
            }
        )
