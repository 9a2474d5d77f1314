# tests/unit/test_ledger_persistence.py
"""Unit tests for LedgerRepository using MagicMock AsyncSession."""
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.hl_common.enums import ExpenseStatus, RecurringFrequency
from src.hl_common.errors import ConcurrentModificationError
from src.hl_common.money import Money
from src.hl_ledger.domain.models import (
    AdjustmentEntry,
    ExpenseRecord,
    MemberCredit,
    ParticipantShare,
    PaymentContribution,
    RecurringExpense,
)
from src.hl_ledger.infrastructure.persistence import LedgerRepository

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _make_expense_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", "exp_1")
    row.household_id = kwargs.get("household_id", "hh_1")
    row.description = kwargs.get("description", "Dinner")
    row.total_cents = kwargs.get("total_cents", 9000)
    row.currency = kwargs.get("currency", "USD")
    row.status = kwargs.get("status", "ACTIVE")
    row.version = kwargs.get("version", 1)
    row.expense_date = kwargs.get("expense_date")
    row.client_uuid = kwargs.get("client_uuid")
    row.created_at = NOW
    row.updated_at = NOW
    return row


def _make_line_row(expense_id: str, member_id: str, **cents):
    row = MagicMock()
    row.expense_id = expense_id
    row.member_id = member_id
    for name, value in cents.items():
        setattr(row, name, value)
    return row


def _make_adjustment_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", "adj_1")
    row.expense_id = kwargs.get("expense_id", "exp_1")
    row.household_id = "hh_1"
    row.reason = kwargs.get("reason", "receipt was wrong")
    row.new_description = kwargs.get("new_description")
    row.reverts_adjustment_id = kwargs.get("reverts_adjustment_id")
    row.created_at = NOW
    row.currency = "USD"
    return row


def _make_adjustment_line(adjustment_id: str, line_type: str, member_id: str, amount: int):
    row = MagicMock()
    row.adjustment_id = adjustment_id
    row.line_type = line_type
    row.member_id = member_id
    row.amount_cents = amount
    return row


def _result(*, one=None, rows=None) -> MagicMock:
    result = MagicMock()
    result.fetchone.return_value = one
    result.fetchall.return_value = rows or []
    return result


@pytest.fixture
def db():
    return MagicMock()


class TestGetExpense:
    @pytest.mark.asyncio
    async def test_returns_expense_with_split(self, db):
        db.execute = AsyncMock(
            side_effect=[
                _result(one=_make_expense_row(expense_date=date(2026, 2, 28))),
                _result(rows=[_make_line_row("exp_1", "C", paid_cents=9000)]),
                _result(
                    rows=[
                        _make_line_row("exp_1", "A", owed_cents=3000),
                        _make_line_row("exp_1", "B", owed_cents=3000),
                        _make_line_row("exp_1", "C", owed_cents=3000),
                    ]
                ),
            ]
        )

        expense = await LedgerRepository().get_expense(db, "exp_1")

        assert expense is not None
        assert expense.total == Money(9000, "USD")
        assert expense.status == ExpenseStatus.ACTIVE
        assert expense.expense_date == date(2026, 2, 28)
        assert expense.contributions == [PaymentContribution("C", Money(9000))]
        assert [s.member_id for s in expense.shares] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_returns_none_when_missing(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        assert await LedgerRepository().get_expense(db, "exp_missing") is None
        assert db.execute.await_count == 1


class TestLoadHouseholdLedgers:
    @pytest.mark.asyncio
    async def test_groups_rows_by_expense(self, db):
        settlement = MagicMock()
        settlement.id = "stl_1"
        settlement.expense_id = "exp_1"
        settlement.household_id = "hh_1"
        settlement.member_id = "A"
        settlement.settled_cents = 3000
        settlement.settled_at = NOW

        db.execute = AsyncMock(
            side_effect=[
                _result(rows=[_make_expense_row(id="exp_1"), _make_expense_row(id="exp_2")]),
                _result(
                    rows=[
                        _make_line_row("exp_1", "C", paid_cents=9000),
                        _make_line_row("exp_2", "A", paid_cents=9000),
                    ]
                ),
                _result(
                    rows=[
                        _make_line_row("exp_1", "A", owed_cents=4500),
                        _make_line_row("exp_1", "B", owed_cents=4500),
                        _make_line_row("exp_2", "B", owed_cents=9000),
                    ]
                ),
                _result(rows=[settlement]),
                _result(rows=[_make_adjustment_row()]),
                _result(
                    rows=[
                        _make_adjustment_line("adj_1", "CREDIT", "A", 500),
                        _make_adjustment_line("adj_1", "SHARE", "A", -500),
                    ]
                ),
            ]
        )

        ledgers = await LedgerRepository().load_household_ledgers(db, "hh_1")

        assert [lg.expense.id for lg in ledgers] == ["exp_1", "exp_2"]
        first, second = ledgers
        assert [s.id for s in first.settlements] == ["stl_1"]
        assert first.adjustments[0].credits == (MemberCredit("A", Money(500)),)
        assert first.adjustments[0].delta_shares == (ParticipantShare("A", Money(-500)),)
        assert second.settlements == []
        assert second.adjustments == []
        assert second.expense.shares == [ParticipantShare("B", Money(9000))]


class TestVersionGuardedWrites:
    @pytest.mark.asyncio
    async def test_update_status_returns_new_version(self, db):
        row = MagicMock()
        row.version = 4
        db.execute = AsyncMock(return_value=_result(one=row))

        version = await LedgerRepository().update_expense_status(
            db, "exp_1", ExpenseStatus.SETTLED, 3
        )

        assert version == 4
        params = db.execute.call_args[0][1]
        assert params == {"expense_id": "exp_1", "status": "SETTLED", "expected_version": 3}

    @pytest.mark.asyncio
    async def test_update_status_conflict(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        with pytest.raises(ConcurrentModificationError) as exc_info:
            await LedgerRepository().update_expense_status(
                db, "exp_1", ExpenseStatus.SETTLED, 3
            )
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_rewrite_conflict_leaves_split_alone(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        expense = ExpenseRecord(
            id="exp_1",
            household_id="hh_1",
            description="Dinner",
            total=Money(6000),
            contributions=[PaymentContribution("C", Money(6000))],
            shares=[ParticipantShare("C", Money(6000))],
            created_at=NOW,
        )
        with pytest.raises(ConcurrentModificationError):
            await LedgerRepository().replace_expense_split(db, expense, 1)
        assert db.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_delete_conflict(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        with pytest.raises(ConcurrentModificationError):
            await LedgerRepository().delete_expense(db, "exp_1", 2)


class TestInsertAdjustment:
    @pytest.mark.asyncio
    async def test_writes_entry_and_typed_lines(self, db):
        db.execute = AsyncMock()
        entry = AdjustmentEntry(
            id="adj_1",
            original_expense_id="exp_1",
            household_id="hh_1",
            delta_contributions=(PaymentContribution("C", Money(-3000)),),
            delta_shares=(ParticipantShare("A", Money(-1000)),),
            reason="receipt was wrong",
            created_at=NOW,
            credits=(MemberCredit("A", Money(1000)),),
        )

        await LedgerRepository().insert_adjustment(db, entry)

        assert db.execute.await_count == 2
        lines = db.execute.call_args_list[1][0][1]
        assert [(p["line_type"], p["member_id"], p["amount_cents"]) for p in lines] == [
            ("CONTRIBUTION", "C", -3000),
            ("SHARE", "A", -1000),
            ("CREDIT", "A", 1000),
        ]

    @pytest.mark.asyncio
    async def test_get_adjustment_maps_lines(self, db):
        db.execute = AsyncMock(
            side_effect=[
                _result(one=_make_adjustment_row(reverts_adjustment_id="adj_0")),
                _result(
                    rows=[
                        _make_adjustment_line("adj_1", "CONTRIBUTION", "C", 3000),
                        _make_adjustment_line("adj_1", "SHARE", "A", 1000),
                    ]
                ),
            ]
        )

        entry = await LedgerRepository().get_adjustment(db, "adj_1")

        assert entry is not None
        assert entry.original_expense_id == "exp_1"
        assert entry.reverts_adjustment_id == "adj_0"
        assert entry.delta_contributions == (PaymentContribution("C", Money(3000)),)
        assert entry.credits == ()


def _make_recurring_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", "rec_1")
    row.household_id = "hh_1"
    row.description = "Rent"
    row.total_cents = 150000
    row.currency = "USD"
    row.paid_by = "A"
    row.participant_ids = ["A", "B", "C"]
    row.frequency = "MONTHLY"
    row.day_of_month = 31
    row.next_due_date = kwargs.get("next_due_date", date(2026, 1, 31))
    row.is_active = True
    row.version = kwargs.get("version", 1)
    row.created_at = NOW
    row.updated_at = NOW
    return row


class TestRecurringExpenses:
    @pytest.mark.asyncio
    async def test_get_maps_row(self, db):
        db.execute = AsyncMock(return_value=_result(one=_make_recurring_row()))

        template = await LedgerRepository().get_recurring_expense(db, "rec_1")

        assert template is not None
        assert template.frequency == RecurringFrequency.MONTHLY
        assert template.total == Money(150000, "USD")
        assert template.participants == ["A", "B", "C"]
        assert template.next_due_date == date(2026, 1, 31)

    @pytest.mark.asyncio
    async def test_list_due_passes_cutoff(self, db):
        db.execute = AsyncMock(
            return_value=_result(rows=[_make_recurring_row(), _make_recurring_row(id="rec_2")])
        )

        templates = await LedgerRepository().list_recurring_expenses(
            db, "hh_1", due_on=date(2026, 2, 1)
        )

        assert [t.id for t in templates] == ["rec_1", "rec_2"]
        params = db.execute.call_args[0][1]
        assert params == {"household_id": "hh_1", "due_on": date(2026, 2, 1)}

    @pytest.mark.asyncio
    async def test_update_conflict(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        template = RecurringExpense(
            id="rec_1",
            household_id="hh_1",
            description="Rent",
            total=Money(150000),
            paid_by="A",
            participants=["A", "B", "C"],
            frequency=RecurringFrequency.MONTHLY,
            next_due_date=date(2026, 2, 28),
            created_at=NOW,
            day_of_month=31,
        )
        with pytest.raises(ConcurrentModificationError):
            await LedgerRepository().update_recurring_expense(db, template, 1)
        params = db.execute.call_args[0][1]
        assert params["next_due_date"] == date(2026, 2, 28)
        assert params["expected_version"] == 1
