"""Recurring expense templates and their schedule.

A template is not part of the ledger. On each due date it produces an
ordinary expense (single payer, equal split) that goes through the same
construction path as any other. Every occurrence carries a client_uuid
derived from the template id and the due date, so producing the same
occurrence twice returns the expense that already exists.

Month-based schedules clamp to the last day of short months and always
return to `day_of_month` afterwards (Jan 31 -> Feb 28 -> Mar 31).
"""

import calendar
from datetime import date, datetime, timedelta

from src.hl_common.enums import RecurringFrequency
from src.hl_common.errors import BlankDescriptionError, InvalidScheduleError
from src.hl_common.money import Money
from src.hl_ledger.domain.expense import SplitRequest, build_expense_record, resolve_split
from src.hl_ledger.domain.models import ExpenseRecord, PaymentContribution, RecurringExpense

OCCURRENCE_SUFFIX = " (Recurring)"

_DAY_STEPS = {
    RecurringFrequency.WEEKLY: 7,
    RecurringFrequency.BIWEEKLY: 14,
}
_MONTH_STEPS = {
    RecurringFrequency.MONTHLY: 1,
    RecurringFrequency.QUARTERLY: 3,
    RecurringFrequency.YEARLY: 12,
}


def _clamped(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def _add_months(current: date, months: int, day_of_month: int) -> date:
    index = current.month - 1 + months
    return _clamped(current.year + index // 12, index % 12 + 1, day_of_month)


def advance_due_date(
    current: date, frequency: RecurringFrequency, day_of_month: int | None = None
) -> date:
    if frequency in _DAY_STEPS:
        return current + timedelta(days=_DAY_STEPS[frequency])
    return _add_months(current, _MONTH_STEPS[frequency], day_of_month or current.day)


def first_due_date(
    start: date, frequency: RecurringFrequency, day_of_month: int | None
) -> date:
    """First occurrence on or after `start`."""
    if frequency in _DAY_STEPS or day_of_month is None:
        return start
    candidate = _clamped(start.year, start.month, day_of_month)
    if candidate < start:
        candidate = _add_months(candidate, 1, day_of_month)
    return candidate


def _split(template: RecurringExpense) -> SplitRequest:
    return SplitRequest(
        total=template.total,
        contributions=[PaymentContribution(template.paid_by, template.total)],
        participants=template.participants,
    )


def build_recurring_expense(
    *,
    template_id: str,
    household_id: str,
    description: str,
    total: Money,
    paid_by: str,
    participants: list[str],
    frequency: RecurringFrequency,
    start_date: date,
    created_at: datetime,
    day_of_month: int | None = None,
) -> RecurringExpense:
    """Validate a template. The split is checked now so due dates never fail on it."""
    if not description.strip():
        raise BlankDescriptionError()
    if day_of_month is not None:
        if frequency in _DAY_STEPS:
            raise InvalidScheduleError(f"day_of_month does not apply to {frequency.value}")
        if not 1 <= day_of_month <= 31:
            raise InvalidScheduleError(f"day_of_month must be 1-31, got {day_of_month}")
    elif frequency in _MONTH_STEPS:
        day_of_month = start_date.day

    template = RecurringExpense(
        id=template_id,
        household_id=household_id,
        description=description.strip(),
        total=total,
        paid_by=paid_by,
        participants=list(participants),
        frequency=frequency,
        next_due_date=first_due_date(start_date, frequency, day_of_month),
        created_at=created_at,
        day_of_month=day_of_month,
        updated_at=created_at,
    )
    resolve_split(_split(template))
    return template


def due_dates(
    template: RecurringExpense, as_of: date, limit: int
) -> tuple[list[date], date]:
    """Due dates up to and including `as_of` (at most `limit`), and the next one after them."""
    dates: list[date] = []
    due = template.next_due_date
    while due <= as_of and len(dates) < limit:
        dates.append(due)
        due = advance_due_date(due, template.frequency, template.day_of_month)
    return dates, due


def occurrence_client_uuid(template_id: str, due: date) -> str:
    return f"{template_id}:{due.isoformat()}"


def build_occurrence(
    template: RecurringExpense, due: date, *, expense_id: str, created_at: datetime
) -> ExpenseRecord:
    return build_expense_record(
        expense_id=expense_id,
        household_id=template.household_id,
        description=template.description + OCCURRENCE_SUFFIX,
        split=_split(template),
        created_at=created_at,
        expense_date=due,
        client_uuid=occurrence_client_uuid(template.id, due),
    )
