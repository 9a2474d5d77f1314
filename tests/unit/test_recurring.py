"""Tests for recurring expense templates and their schedule."""

from datetime import UTC, date, datetime

import pytest

from src.hl_common.enums import ExpenseStatus, RecurringFrequency
from src.hl_common.errors import (
    BlankDescriptionError,
    EmptyParticipantsError,
    InvalidScheduleError,
    NonPositiveAmountError,
)
from src.hl_common.money import Money
from src.hl_ledger.domain.models import RecurringExpense
from src.hl_ledger.domain.recurring import (
    advance_due_date,
    build_occurrence,
    build_recurring_expense,
    due_dates,
    first_due_date,
)

_NOW = datetime(2026, 1, 1, 9, 0, tzinfo=UTC)


def _rent(
    frequency: RecurringFrequency = RecurringFrequency.MONTHLY,
    start: date = date(2026, 1, 31),
    day_of_month: int | None = None,
    **kwargs: object,
) -> RecurringExpense:
    params: dict = {
        "template_id": "rec_1",
        "household_id": "hh_1",
        "description": "Rent",
        "total": Money(150000),
        "paid_by": "A",
        "participants": ["A", "B", "C"],
        "frequency": frequency,
        "start_date": start,
        "created_at": _NOW,
        "day_of_month": day_of_month,
    }
    params.update(kwargs)
    return build_recurring_expense(**params)


class TestAdvanceDueDate:
    def test_weekly_and_biweekly(self) -> None:
        assert advance_due_date(date(2026, 3, 1), RecurringFrequency.WEEKLY) == date(2026, 3, 8)
        assert advance_due_date(date(2026, 3, 1), RecurringFrequency.BIWEEKLY) == date(2026, 3, 15)

    def test_monthly_clamps_then_returns_to_day(self) -> None:
        feb = advance_due_date(date(2026, 1, 31), RecurringFrequency.MONTHLY, 31)
        assert feb == date(2026, 2, 28)
        assert advance_due_date(feb, RecurringFrequency.MONTHLY, 31) == date(2026, 3, 31)

    def test_quarterly_crosses_year(self) -> None:
        assert advance_due_date(date(2026, 11, 30), RecurringFrequency.QUARTERLY, 30) == date(
            2027, 2, 28
        )

    def test_yearly_from_leap_day(self) -> None:
        assert advance_due_date(date(2028, 2, 29), RecurringFrequency.YEARLY, 29) == date(
            2029, 2, 28
        )


class TestFirstDueDate:
    def test_day_later_in_start_month(self) -> None:
        assert first_due_date(date(2026, 3, 10), RecurringFrequency.MONTHLY, 15) == date(
            2026, 3, 15
        )

    def test_day_already_passed_moves_to_next_month(self) -> None:
        assert first_due_date(date(2026, 3, 10), RecurringFrequency.MONTHLY, 5) == date(
            2026, 4, 5
        )

    def test_weekly_starts_on_start_date(self) -> None:
        assert first_due_date(date(2026, 3, 10), RecurringFrequency.WEEKLY, None) == date(
            2026, 3, 10
        )


class TestBuildRecurringExpense:
    def test_month_based_defaults_day_to_start(self) -> None:
        template = _rent()
        assert template.day_of_month == 31
        assert template.next_due_date == date(2026, 1, 31)
        assert template.is_active is True
        assert template.version == 1

    def test_day_of_month_rejected_for_weekly(self) -> None:
        with pytest.raises(InvalidScheduleError):
            _rent(RecurringFrequency.WEEKLY, day_of_month=5)

    def test_day_of_month_out_of_range(self) -> None:
        with pytest.raises(InvalidScheduleError):
            _rent(day_of_month=32)

    def test_blank_description(self) -> None:
        with pytest.raises(BlankDescriptionError):
            _rent(description="  ")

    def test_split_is_validated_up_front(self) -> None:
        with pytest.raises(EmptyParticipantsError):
            _rent(participants=[])
        with pytest.raises(NonPositiveAmountError):
            _rent(total=Money(0))


class TestDueDates:
    def test_catches_up_missed_months(self) -> None:
        dates, next_due = due_dates(_rent(), date(2026, 4, 15), limit=12)
        assert dates == [date(2026, 1, 31), date(2026, 2, 28), date(2026, 3, 31)]
        assert next_due == date(2026, 4, 30)

    def test_limit(self) -> None:
        dates, next_due = due_dates(_rent(), date(2026, 4, 15), limit=2)
        assert dates == [date(2026, 1, 31), date(2026, 2, 28)]
        assert next_due == date(2026, 3, 31)

    def test_nothing_due(self) -> None:
        dates, next_due = due_dates(_rent(), date(2026, 1, 30), limit=12)
        assert dates == []
        assert next_due == date(2026, 1, 31)


class TestBuildOccurrence:
    def test_occurrence_is_an_ordinary_expense(self) -> None:
        record = build_occurrence(
            _rent(), date(2026, 2, 28), expense_id="exp_1", created_at=_NOW
        )
        assert record.description == "Rent (Recurring)"
        assert record.expense_date == date(2026, 2, 28)
        assert record.client_uuid == "rec_1:2026-02-28"
        assert record.status == ExpenseStatus.ACTIVE
        assert [(c.member_id, c.paid.cents) for c in record.contributions] == [("A", 150000)]
        assert [s.owed.cents for s in record.shares] == [50000, 50000, 50000]
