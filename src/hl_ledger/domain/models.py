"""Domain models for hl_ledger — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime

from src.hl_common.enums import ExpenseStatus, RecurringFrequency
from src.hl_common.money import Money


@dataclass(frozen=True)
class PaymentContribution:
    member_id: str
    paid: Money      # signed inside adjustment deltas


@dataclass(frozen=True)
class ParticipantShare:
    member_id: str
    owed: Money      # signed inside adjustment deltas


@dataclass
class ExpenseRecord:
    id: str
    household_id: str
    description: str
    total: Money
    contributions: list[PaymentContribution]
    shares: list[ParticipantShare]
    created_at: datetime
    status: ExpenseStatus = ExpenseStatus.ACTIVE
    version: int = 1
    expense_date: date | None = None
    client_uuid: str | None = None
    updated_at: datetime | None = None

    @property
    def currency(self) -> str:
        return self.total.currency


@dataclass(frozen=True)
class SettlementEntry:
    """Append-only: a member paid down (part of) their share outside the app."""
    id: str
    expense_id: str
    household_id: str
    member_id: str
    settled: Money
    settled_at: datetime


@dataclass(frozen=True)
class MemberCredit:
    """Settled amount exceeding the member's owed amount after an adjustment."""
    member_id: str
    credit: Money


@dataclass(frozen=True)
class AdjustmentEntry:
    """Append-only signed correction layered on an expense that has settlements."""
    id: str
    original_expense_id: str
    household_id: str
    delta_contributions: tuple[PaymentContribution, ...]
    delta_shares: tuple[ParticipantShare, ...]
    reason: str
    created_at: datetime
    credits: tuple[MemberCredit, ...] = ()
    new_description: str | None = None
    reverts_adjustment_id: str | None = None

    def credit_for(self, member_id: str, currency: str) -> Money:
        for c in self.credits:
            if c.member_id == member_id:
                return c.credit
        return Money.zero(currency)


@dataclass
class ExpenseLedger:
    """One expense together with everything layered on top of it."""
    expense: ExpenseRecord
    adjustments: list[AdjustmentEntry] = field(default_factory=list)
    settlements: list[SettlementEntry] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.adjustments = sorted(self.adjustments, key=lambda a: (a.created_at, a.id))
        self.settlements = sorted(self.settlements, key=lambda s: (s.settled_at, s.id))

    @property
    def has_settlements(self) -> bool:
        return bool(self.settlements)

    def with_settlement(self, entry: SettlementEntry) -> "ExpenseLedger":
        return ExpenseLedger(self.expense, list(self.adjustments), [*self.settlements, entry])

    def with_adjustment(self, entry: AdjustmentEntry) -> "ExpenseLedger":
        return ExpenseLedger(self.expense, [*self.adjustments, entry], list(self.settlements))

    def with_expense(self, expense: ExpenseRecord) -> "ExpenseLedger":
        return ExpenseLedger(expense, list(self.adjustments), list(self.settlements))


@dataclass
class LedgerSnapshot:
    """Self-consistent cut of one household's ledger."""
    household_id: str
    currency: str
    ledgers: list[ExpenseLedger]
    taken_at: datetime

    def replace_ledger(self, ledger: ExpenseLedger) -> "LedgerSnapshot":
        """Copy with `ledger` substituted for (or appended as) its expense."""
        others = [lg for lg in self.ledgers if lg.expense.id != ledger.expense.id]
        return replace(self, ledgers=[*others, ledger])

    def without_expense(self, expense_id: str) -> "LedgerSnapshot":
        return replace(
            self, ledgers=[lg for lg in self.ledgers if lg.expense.id != expense_id]
        )


@dataclass
class RecurringExpense:
    """Template that produces one single-payer, equal-split expense per due date."""
    id: str
    household_id: str
    description: str
    total: Money
    paid_by: str
    participants: list[str]
    frequency: RecurringFrequency
    next_due_date: date
    created_at: datetime
    day_of_month: int | None = None    # month-based frequencies only
    is_active: bool = True
    version: int = 1
    updated_at: datetime | None = None
