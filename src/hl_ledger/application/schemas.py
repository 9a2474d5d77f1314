"""Pydantic schemas for hl_ledger API.

Amounts travel as int cents; every response amount comes with a `_display`
twin. Requests carry no sign or sum constraints: the ledger domain rejects
bad splits with its own error codes.
"""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field

from src.hl_common.datetime_utils import iso_or_none
from src.hl_common.enums import (
    EditMode,
    ExpenseStatus,
    LedgerEventType,
    RecurringFrequency,
)
from src.hl_common.money import Money, cents_to_display
from src.hl_ledger.domain.balances import HouseholdBalances
from src.hl_ledger.domain.expense import EffectiveExpense, SplitRequest
from src.hl_ledger.domain.history import LedgerEvent
from src.hl_ledger.domain.models import (
    AdjustmentEntry,
    ExpenseRecord,
    MemberCredit,
    ParticipantShare,
    PaymentContribution,
    RecurringExpense,
    SettlementEntry,
)
from src.hl_ledger.domain.transfers import Transfer

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ContributionInput(BaseModel):
    member_id: str = Field(..., min_length=1, max_length=64)
    paid_cents: int


class ShareInput(BaseModel):
    member_id: str = Field(..., min_length=1, max_length=64)
    owed_cents: int


class _SplitInput(BaseModel):
    """Exactly one of shares / participants / percentages_bps."""

    total_cents: int
    shares: list[ShareInput] | None = None
    participants: list[str] | None = Field(None, description="Equal split, in order")
    percentages_bps: dict[str, int] | None = Field(
        None, description="Member -> basis points, must sum to 10000"
    )

    def _split_request(
        self, currency: str, contributions: list[PaymentContribution]
    ) -> SplitRequest:
        shares = None
        if self.shares is not None:
            shares = [
                ParticipantShare(s.member_id, Money(s.owed_cents, currency))
                for s in self.shares
            ]
        return SplitRequest(
            total=Money(self.total_cents, currency),
            contributions=contributions,
            shares=shares,
            participants=self.participants,
            percentages=self.percentages_bps,
        )


class _MultiPayerSplitInput(_SplitInput):
    contributions: list[ContributionInput]

    def to_split_request(self, currency: str) -> SplitRequest:
        return self._split_request(
            currency,
            [
                PaymentContribution(c.member_id, Money(c.paid_cents, currency))
                for c in self.contributions
            ],
        )


class CreateExpenseRequest(_SplitInput):
    description: str = Field(..., min_length=1, max_length=500)
    paid_by: str = Field(..., min_length=1, max_length=64)
    expense_date: date | None = None
    client_uuid: str | None = Field(None, max_length=64)

    def to_split_request(self, currency: str) -> SplitRequest:
        # The single payer covers the whole total.
        return self._split_request(
            currency, [PaymentContribution(self.paid_by, Money(self.total_cents, currency))]
        )


class CreateMultiPayerExpenseRequest(_MultiPayerSplitInput):
    description: str = Field(..., min_length=1, max_length=500)
    expense_date: date | None = None
    client_uuid: str | None = Field(None, max_length=64)


class EditExpenseRequest(_MultiPayerSplitInput):
    description: str | None = Field(None, min_length=1, max_length=500)
    reason: str = Field("Expense edited", max_length=500)
    confirm: bool = False
    expected_version: int | None = None


class SettlementRequest(BaseModel):
    member_id: str = Field(..., min_length=1, max_length=64)
    amount_cents: int


class VoidExpenseRequest(BaseModel):
    reason: str = Field("Expense voided", max_length=500)
    confirm: bool = False
    expected_version: int | None = None


class RevertAdjustmentRequest(BaseModel):
    reason: str = Field("Adjustment reverted", max_length=500)
    confirm: bool = False


class CreateRecurringExpenseRequest(BaseModel):
    # Room for the " (Recurring)" suffix each occurrence carries.
    description: str = Field(..., min_length=1, max_length=480)
    total_cents: int
    paid_by: str = Field(..., min_length=1, max_length=64)
    participants: list[str] = Field(..., description="Equal split, in order")
    frequency: RecurringFrequency
    start_date: date
    day_of_month: int | None = Field(
        None, ge=1, le=31, description="MONTHLY / QUARTERLY / YEARLY only"
    )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ContributionItem(BaseModel):
    member_id: str
    paid_cents: int
    paid_display: str

    @classmethod
    def from_money(cls, member_id: str, paid: Money) -> "ContributionItem":
        return cls(member_id=member_id, paid_cents=paid.cents, paid_display=paid.display())


class ShareItem(BaseModel):
    member_id: str
    owed_cents: int
    owed_display: str

    @classmethod
    def from_money(cls, member_id: str, owed: Money) -> "ShareItem":
        return cls(member_id=member_id, owed_cents=owed.cents, owed_display=owed.display())


class CreditItem(BaseModel):
    member_id: str
    credit_cents: int
    credit_display: str

    @classmethod
    def from_credit(cls, credit: MemberCredit) -> "CreditItem":
        return cls(
            member_id=credit.member_id,
            credit_cents=credit.credit.cents,
            credit_display=credit.credit.display(),
        )


class ExpenseResponse(BaseModel):
    id: str
    household_id: str
    description: str
    total_cents: int
    total_display: str
    currency: str
    status: ExpenseStatus
    version: int
    expense_date: date | None
    client_uuid: str | None
    contributions: list[ContributionItem]
    shares: list[ShareItem]
    created_at: str
    updated_at: str | None

    @classmethod
    def from_record(cls, record: ExpenseRecord) -> "ExpenseResponse":
        return cls(
            id=record.id,
            household_id=record.household_id,
            description=record.description,
            total_cents=record.total.cents,
            total_display=record.total.display(),
            currency=record.currency,
            status=record.status,
            version=record.version,
            expense_date=record.expense_date,
            client_uuid=record.client_uuid,
            contributions=[
                ContributionItem.from_money(c.member_id, c.paid) for c in record.contributions
            ],
            shares=[ShareItem.from_money(s.member_id, s.owed) for s in record.shares],
            created_at=record.created_at.isoformat(),
            updated_at=iso_or_none(record.updated_at),
        )


class EffectiveSplitItem(BaseModel):
    description: str
    total_cents: int
    total_display: str
    contributions: list[ContributionItem]
    shares: list[ShareItem]

    @classmethod
    def from_view(cls, view: EffectiveExpense) -> "EffectiveSplitItem":
        return cls(
            description=view.description,
            total_cents=view.total.cents,
            total_display=view.total.display(),
            contributions=[
                ContributionItem.from_money(m, v) for m, v in sorted(view.contributions.items())
            ],
            shares=[ShareItem.from_money(m, v) for m, v in sorted(view.shares.items())],
        )


class SettlementItem(BaseModel):
    id: str
    member_id: str
    settled_cents: int
    settled_display: str
    settled_at: str

    @classmethod
    def from_entry(cls, entry: SettlementEntry) -> "SettlementItem":
        return cls(
            id=entry.id,
            member_id=entry.member_id,
            settled_cents=entry.settled.cents,
            settled_display=entry.settled.display(),
            settled_at=entry.settled_at.isoformat(),
        )


class AdjustmentItem(BaseModel):
    id: str
    reason: str
    new_description: str | None
    reverts_adjustment_id: str | None
    delta_contributions: list[ContributionItem]
    delta_shares: list[ShareItem]
    credits: list[CreditItem]
    created_at: str

    @classmethod
    def from_entry(cls, entry: AdjustmentEntry) -> "AdjustmentItem":
        return cls(
            id=entry.id,
            reason=entry.reason,
            new_description=entry.new_description,
            reverts_adjustment_id=entry.reverts_adjustment_id,
            delta_contributions=[
                ContributionItem.from_money(c.member_id, c.paid)
                for c in entry.delta_contributions
            ],
            delta_shares=[
                ShareItem.from_money(s.member_id, s.owed) for s in entry.delta_shares
            ],
            credits=[CreditItem.from_credit(c) for c in entry.credits],
            created_at=entry.created_at.isoformat(),
        )


class MemberOutstandingItem(BaseModel):
    member_id: str
    outstanding_cents: int
    outstanding_display: str
    credit_cents: int
    credit_display: str

    @classmethod
    def from_signed(cls, member_id: str, signed: Money) -> "MemberOutstandingItem":
        """`signed` is owed minus settled; a negative value is a credit."""
        outstanding = max(signed.cents, 0)
        credit = max(-signed.cents, 0)
        return cls(
            member_id=member_id,
            outstanding_cents=outstanding,
            outstanding_display=cents_to_display(outstanding),
            credit_cents=credit,
            credit_display=cents_to_display(credit),
        )


class OutstandingResponse(MemberOutstandingItem):
    expense_id: str


class ExpenseDetailResponse(BaseModel):
    expense: ExpenseResponse
    effective: EffectiveSplitItem
    settlements: list[SettlementItem]
    adjustments: list[AdjustmentItem]
    outstanding: list[MemberOutstandingItem]


class MemberBalanceChange(BaseModel):
    member_id: str
    before_cents: int
    before_display: str
    after_cents: int
    after_display: str
    change_cents: int
    change_display: str

    @classmethod
    def from_positions(cls, member_id: str, before: Money, after: Money) -> "MemberBalanceChange":
        change = after - before
        return cls(
            member_id=member_id,
            before_cents=before.cents,
            before_display=before.display(),
            after_cents=after.cents,
            after_display=after.display(),
            change_cents=change.cents,
            change_display=change.display(),
        )


class AdjustmentPreview(BaseModel):
    """Returned in the 409 body when an edit needs confirmation."""

    expense_id: str
    delta_contributions: list[ContributionItem]
    delta_shares: list[ShareItem]
    credits: list[CreditItem]
    affected_members: list[MemberBalanceChange]

    @classmethod
    def build(
        cls, entry: AdjustmentEntry, affected: list[MemberBalanceChange]
    ) -> "AdjustmentPreview":
        item = AdjustmentItem.from_entry(entry)
        return cls(
            expense_id=entry.original_expense_id,
            delta_contributions=item.delta_contributions,
            delta_shares=item.delta_shares,
            credits=item.credits,
            affected_members=affected,
        )


class EditExpenseResponse(BaseModel):
    expense_id: str
    mode: EditMode
    status: ExpenseStatus
    version: int
    adjustment_id: str | None = None
    credits: list[CreditItem] = []
    affected_members: list[MemberBalanceChange]


class VoidExpenseResponse(BaseModel):
    expense_id: str
    deleted: bool
    status: ExpenseStatus | None = None
    adjustment_id: str | None = None
    credits: list[CreditItem] = []
    affected_members: list[MemberBalanceChange]


class SettlementResponse(BaseModel):
    settlement_id: str
    expense_id: str
    member_id: str
    settled_cents: int
    settled_display: str
    outstanding_cents: int
    outstanding_display: str
    expense_status: ExpenseStatus
    version: int


class PairBalanceItem(BaseModel):
    from_member: str
    to_member: str
    amount_cents: int
    amount_display: str


class MemberPositionItem(BaseModel):
    member_id: str
    owes_cents: int
    owes_display: str
    is_owed_cents: int
    is_owed_display: str
    net_cents: int
    net_display: str


class HouseholdBalancesResponse(BaseModel):
    household_id: str
    currency: str
    computed_at: str
    pairs: list[PairBalanceItem]
    members: list[MemberPositionItem]

    @classmethod
    def from_balances(cls, balances: HouseholdBalances) -> "HouseholdBalancesResponse":
        owes: dict[str, int] = {}
        is_owed: dict[str, int] = {}
        pairs = []
        for (ower, owed_to), amount in sorted(balances.pairs.items()):
            if amount.is_positive():
                pairs.append(
                    PairBalanceItem(
                        from_member=ower,
                        to_member=owed_to,
                        amount_cents=amount.cents,
                        amount_display=amount.display(),
                    )
                )
                owes[ower] = owes.get(ower, 0) + amount.cents
                is_owed[owed_to] = is_owed.get(owed_to, 0) + amount.cents
        members = []
        for member_id in balances.members():
            o, io = owes.get(member_id, 0), is_owed.get(member_id, 0)
            members.append(
                MemberPositionItem(
                    member_id=member_id,
                    owes_cents=o,
                    owes_display=cents_to_display(o),
                    is_owed_cents=io,
                    is_owed_display=cents_to_display(io),
                    net_cents=o - io,
                    net_display=cents_to_display(o - io),
                )
            )
        return cls(
            household_id=balances.household_id,
            currency=balances.currency,
            computed_at=balances.computed_at.isoformat(),
            pairs=pairs,
            members=members,
        )


class TransferItem(BaseModel):
    from_member: str
    to_member: str
    amount_cents: int
    amount_display: str

    @classmethod
    def from_transfer(cls, transfer: Transfer) -> "TransferItem":
        return cls(
            from_member=transfer.from_member,
            to_member=transfer.to_member,
            amount_cents=transfer.amount.cents,
            amount_display=transfer.amount.display(),
        )


class SettlementSuggestionsResponse(BaseModel):
    household_id: str
    currency: str
    transfers: list[TransferItem]


class LedgerEventItem(BaseModel):
    event_type: LedgerEventType
    occurred_at: str
    expense_id: str
    reference_id: str
    member_ids: list[str]
    amount_cents: int
    amount_display: str
    description: str

    @classmethod
    def from_event(cls, event: LedgerEvent) -> "LedgerEventItem":
        return cls(
            event_type=event.event_type,
            occurred_at=event.occurred_at.isoformat(),
            expense_id=event.expense_id,
            reference_id=event.reference_id,
            member_ids=list(event.member_ids),
            amount_cents=event.amount.cents,
            amount_display=event.amount.display(),
            description=event.description,
        )


class LedgerHistoryResponse(BaseModel):
    household_id: str
    items: list[LedgerEventItem]


class RecurringExpenseResponse(BaseModel):
    id: str
    household_id: str
    description: str
    total_cents: int
    total_display: str
    currency: str
    paid_by: str
    participants: list[str]
    frequency: RecurringFrequency
    day_of_month: int | None
    next_due_date: date
    is_active: bool
    version: int
    created_at: str

    @classmethod
    def from_template(cls, template: RecurringExpense) -> "RecurringExpenseResponse":
        return cls(
            id=template.id,
            household_id=template.household_id,
            description=template.description,
            total_cents=template.total.cents,
            total_display=template.total.display(),
            currency=template.total.currency,
            paid_by=template.paid_by,
            participants=list(template.participants),
            frequency=template.frequency,
            day_of_month=template.day_of_month,
            next_due_date=template.next_due_date,
            is_active=template.is_active,
            version=template.version,
            created_at=template.created_at.isoformat(),
        )


class RecurringExpenseListResponse(BaseModel):
    household_id: str
    items: list[RecurringExpenseResponse]


class ProcessRecurringResponse(BaseModel):
    household_id: str
    as_of: date
    created: list[ExpenseResponse]


def preview_payload(preview: AdjustmentPreview) -> dict[str, Any]:
    return preview.model_dump(mode="json")
