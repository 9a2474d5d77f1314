"""Expense construction and the effective (original + adjustments) view.

Every entry point (single payer, multi payer, edits) funnels through
`resolve_split`, so the sum invariant is checked in exactly one place:

    sum(contributions) == sum(shares) == total
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime

from src.hl_common.enums import ExpenseStatus
from src.hl_common.errors import (
    BlankDescriptionError,
    EmptyParticipantsError,
    LedgerCorruptionError,
    NonPositiveAmountError,
    UnbalancedSplitError,
)
from src.hl_common.money import Money
from src.hl_ledger.domain.allocator import (
    allocate_custom,
    allocate_equal,
    allocate_multi_payer,
    allocate_percentage,
)
from src.hl_ledger.domain.models import (
    AdjustmentEntry,
    ExpenseRecord,
    MemberCredit,
    ParticipantShare,
    PaymentContribution,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitRequest:
    """Requested split before validation.

    Exactly one of `shares`, `percentages` (basis points) or `participants`
    (equal split, in order) describes who owes what.
    """
    total: Money
    contributions: Sequence[PaymentContribution]
    shares: Sequence[ParticipantShare] | None = None
    participants: Sequence[str] | None = None
    percentages: dict[str, int] | None = None


@dataclass(frozen=True)
class ResolvedSplit:
    total: Money
    contributions: list[PaymentContribution]
    shares: list[ParticipantShare]


def _reject_duplicates(member_ids: Iterable[str], side: str) -> None:
    seen: set[str] = set()
    for member_id in member_ids:
        if member_id in seen:
            raise UnbalancedSplitError(f"member {member_id} listed twice among {side}")
        seen.add(member_id)


def _derive_shares(req: SplitRequest) -> list[ParticipantShare]:
    given = [x for x in (req.shares, req.participants, req.percentages) if x is not None]
    if len(given) > 1:
        raise UnbalancedSplitError("give exactly one of shares, participants or percentages")

    if req.shares is not None:
        if not req.shares:
            raise EmptyParticipantsError("participant")
        for s in req.shares:
            if not s.owed.is_positive():
                raise NonPositiveAmountError(f"Share of {s.member_id}", s.owed.cents)
        _reject_duplicates((s.member_id for s in req.shares), "shares")
        owed = allocate_custom(req.total, [s.owed for s in req.shares])
        return [ParticipantShare(s.member_id, o) for s, o in zip(req.shares, owed)]

    if req.percentages is not None:
        if not req.percentages:
            raise EmptyParticipantsError("participant")
        members = list(req.percentages)
        for m in members:
            if req.percentages[m] <= 0:
                raise NonPositiveAmountError(f"Percentage of {m}", req.percentages[m])
        owed = allocate_percentage(req.total, [req.percentages[m] for m in members])
        return [ParticipantShare(m, o) for m, o in zip(members, owed)]

    if not req.participants:
        raise EmptyParticipantsError("participant")
    _reject_duplicates(req.participants, "participants")
    owed = allocate_equal(req.total, len(req.participants))
    return [ParticipantShare(m, o) for m, o in zip(req.participants, owed)]


def resolve_split(req: SplitRequest) -> ResolvedSplit:
    """Validate a requested split. Raises before anything is persisted."""
    if not req.total.is_positive():
        raise NonPositiveAmountError("Expense total", req.total.cents)
    if not req.contributions:
        raise EmptyParticipantsError("payer")
    for c in req.contributions:
        if not c.paid.is_positive():
            raise NonPositiveAmountError(f"Contribution of {c.member_id}", c.paid.cents)
    _reject_duplicates((c.member_id for c in req.contributions), "payers")

    shares = _derive_shares(req)
    paid = allocate_multi_payer(req.total, [c.paid for c in req.contributions])
    contributions = [
        PaymentContribution(c.member_id, p) for c, p in zip(req.contributions, paid)
    ]
    return ResolvedSplit(total=req.total, contributions=contributions, shares=shares)


def build_expense_record(
    *,
    expense_id: str,
    household_id: str,
    description: str,
    split: SplitRequest,
    created_at: datetime,
    expense_date: date | None = None,
    client_uuid: str | None = None,
) -> ExpenseRecord:
    if not description.strip():
        raise BlankDescriptionError()
    resolved = resolve_split(split)
    return ExpenseRecord(
        id=expense_id,
        household_id=household_id,
        description=description.strip(),
        total=resolved.total,
        contributions=resolved.contributions,
        shares=resolved.shares,
        created_at=created_at,
        status=ExpenseStatus.ACTIVE,
        version=1,
        expense_date=expense_date,
        client_uuid=client_uuid,
        updated_at=created_at,
    )


# ---------------------------------------------------------------------------
# Effective view
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EffectiveExpense:
    expense_id: str
    description: str
    total: Money
    contributions: dict[str, Money]
    shares: dict[str, Money]
    # Every member that held a share at any point, zeroed-out ones included.
    share_holders: frozenset[str] = field(default_factory=frozenset)

    def owed_by(self, member_id: str) -> Money:
        return self.shares.get(member_id, Money.zero(self.total.currency))

    def paid_by(self, member_id: str) -> Money:
        return self.contributions.get(member_id, Money.zero(self.total.currency))


def _fold(expense: ExpenseRecord, adjustments: Sequence[AdjustmentEntry]) -> EffectiveExpense:
    currency = expense.currency
    paid: dict[str, int] = {}
    owed: dict[str, int] = {}
    holders: set[str] = set()
    description = expense.description
    for c in expense.contributions:
        paid[c.member_id] = paid.get(c.member_id, 0) + c.paid.cents
    for s in expense.shares:
        owed[s.member_id] = owed.get(s.member_id, 0) + s.owed.cents
        holders.add(s.member_id)
    for adj in adjustments:
        for c in adj.delta_contributions:
            paid[c.member_id] = paid.get(c.member_id, 0) + c.paid.cents
        for s in adj.delta_shares:
            owed[s.member_id] = owed.get(s.member_id, 0) + s.owed.cents
            holders.add(s.member_id)
        if adj.new_description is not None:
            description = adj.new_description
    total = expense.total.cents + sum(
        sum(c.paid.cents for c in adj.delta_contributions) for adj in adjustments
    )
    return EffectiveExpense(
        expense_id=expense.id,
        description=description,
        total=Money(total, currency),
        contributions={m: Money(v, currency) for m, v in paid.items() if v != 0},
        shares={m: Money(v, currency) for m, v in owed.items() if v != 0},
        share_holders=frozenset(holders),
    )


def _problems(view: EffectiveExpense) -> list[str]:
    problems: list[str] = []
    if view.total.is_negative():
        problems.append(f"total is negative ({view.total.cents})")
    problems.extend(
        f"contribution of {m} is negative ({v.cents})"
        for m, v in view.contributions.items() if v.is_negative()
    )
    problems.extend(
        f"share of {m} is negative ({v.cents})"
        for m, v in view.shares.items() if v.is_negative()
    )
    paid_sum = sum(v.cents for v in view.contributions.values())
    owed_sum = sum(v.cents for v in view.shares.values())
    if not (paid_sum == owed_sum == view.total.cents):
        problems.append(
            f"contributions={paid_sum} shares={owed_sum} total={view.total.cents} disagree"
        )
    return problems


def effective_view(
    expense: ExpenseRecord, adjustments: Sequence[AdjustmentEntry]
) -> EffectiveExpense:
    """Original record plus all adjustments. Stored data that breaks the sum
    invariant is corruption, never auto-corrected."""
    view = _fold(expense, adjustments)
    problems = _problems(view)
    if problems:
        logger.error(
            "Ledger corruption on expense=%s household=%s adjustments=%s: %s",
            expense.id,
            expense.household_id,
            [a.id for a in adjustments],
            "; ".join(problems),
        )
        raise LedgerCorruptionError(f"expense {expense.id}: {'; '.join(problems)}")
    return view


def check_proposed_adjustments(
    expense: ExpenseRecord, adjustments: Sequence[AdjustmentEntry]
) -> EffectiveExpense:
    """Validate a not-yet-persisted adjustment chain; rejects as a caller error."""
    view = _fold(expense, adjustments)
    problems = _problems(view)
    if problems:
        raise UnbalancedSplitError("; ".join(problems))
    return view


def split_delta(
    current: EffectiveExpense, target: ResolvedSplit
) -> tuple[tuple[PaymentContribution, ...], tuple[ParticipantShare, ...]]:
    """Signed per-member difference `target - current`, zero rows dropped."""
    currency = current.total.currency
    target_paid = {c.member_id: c.paid.cents for c in target.contributions}
    target_owed = {s.member_id: s.owed.cents for s in target.shares}

    delta_paid = []
    for member_id in sorted(set(target_paid) | set(current.contributions)):
        diff = target_paid.get(member_id, 0) - current.paid_by(member_id).cents
        if diff:
            delta_paid.append(PaymentContribution(member_id, Money(diff, currency)))

    delta_owed = []
    for member_id in sorted(set(target_owed) | set(current.shares)):
        diff = target_owed.get(member_id, 0) - current.owed_by(member_id).cents
        if diff:
            delta_owed.append(ParticipantShare(member_id, Money(diff, currency)))
    return tuple(delta_paid), tuple(delta_owed)


def credits_for(
    view: EffectiveExpense, settled_by_member: dict[str, Money]
) -> tuple[MemberCredit, ...]:
    """Members whose settlements now exceed what they owe keep the excess as credit."""
    credits = []
    for member_id in sorted(settled_by_member):
        excess = settled_by_member[member_id] - view.owed_by(member_id)
        if excess.is_positive():
            credits.append(MemberCredit(member_id, excess))
    return tuple(credits)


def payer_weights(
    view: EffectiveExpense,
    expense: ExpenseRecord,
    adjustments: Sequence[AdjustmentEntry] = (),
) -> list[tuple[str, int]]:
    """Who an ower's outstanding amount is owed to, and in what proportion.

    A voided expense has no effective payers left, so the payers of the last
    split that still had a positive total decide where remaining credits
    flow back from.
    """
    end = len(adjustments)
    while not view.total.is_positive() and end > 0:
        end -= 1
        view = _fold(expense, adjustments[:end])
    return sorted((m, v.cents) for m, v in view.contributions.items() if v.is_positive())
