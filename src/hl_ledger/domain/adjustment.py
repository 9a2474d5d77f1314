"""Adjustment planning for expenses that already carry settlements.

An adjustment is the signed difference between the expense's current
effective split and the requested one. The original record is never
rewritten; the chain original + adjustments must still satisfy the sum
invariant. Members left holding more settled than owed get a credit.
"""

from datetime import datetime

from src.hl_common.errors import (
    AdjustmentAlreadyRevertedError,
    AdjustmentNotFoundError,
)
from src.hl_common.money import Money
from src.hl_ledger.domain.expense import (
    ResolvedSplit,
    check_proposed_adjustments,
    credits_for,
    effective_view,
    split_delta,
)
from src.hl_ledger.domain.models import (
    AdjustmentEntry,
    ExpenseLedger,
    ParticipantShare,
    PaymentContribution,
)
from src.hl_ledger.domain.settlement import SettlementTracker


def zero_split(currency: str) -> ResolvedSplit:
    """Target split of a void: nobody paid, nobody owes."""
    return ResolvedSplit(total=Money.zero(currency), contributions=[], shares=[])


def _with_credits(ledger: ExpenseLedger, candidate: AdjustmentEntry) -> AdjustmentEntry:
    view = check_proposed_adjustments(ledger.expense, [*ledger.adjustments, candidate])
    settled = SettlementTracker(ledger).settled_by_member()
    return AdjustmentEntry(
        id=candidate.id,
        original_expense_id=candidate.original_expense_id,
        household_id=candidate.household_id,
        delta_contributions=candidate.delta_contributions,
        delta_shares=candidate.delta_shares,
        reason=candidate.reason,
        created_at=candidate.created_at,
        credits=credits_for(view, settled),
        new_description=candidate.new_description,
        reverts_adjustment_id=candidate.reverts_adjustment_id,
    )


def plan_adjustment(
    ledger: ExpenseLedger,
    target: ResolvedSplit,
    *,
    adjustment_id: str,
    reason: str,
    created_at: datetime,
    new_description: str | None = None,
) -> AdjustmentEntry:
    current = SettlementTracker(ledger).view
    delta_paid, delta_owed = split_delta(current, target)
    if new_description is not None:
        new_description = new_description.strip() or None
    if new_description == current.description:
        new_description = None
    candidate = AdjustmentEntry(
        id=adjustment_id,
        original_expense_id=ledger.expense.id,
        household_id=ledger.expense.household_id,
        delta_contributions=delta_paid,
        delta_shares=delta_owed,
        reason=reason,
        created_at=created_at,
        new_description=new_description,
    )
    return _with_credits(ledger, candidate)


def plan_revert(
    ledger: ExpenseLedger,
    adjustment_id: str,
    *,
    revert_id: str,
    reason: str,
    created_at: datetime,
) -> AdjustmentEntry:
    """Inverse of an earlier adjustment, appended on top of the chain."""
    position = next(
        (i for i, a in enumerate(ledger.adjustments) if a.id == adjustment_id), None
    )
    if position is None:
        raise AdjustmentNotFoundError(adjustment_id)
    if any(a.reverts_adjustment_id == adjustment_id for a in ledger.adjustments):
        raise AdjustmentAlreadyRevertedError(adjustment_id)
    target = ledger.adjustments[position]

    new_description = None
    if target.new_description is not None:
        before = effective_view(ledger.expense, ledger.adjustments[:position])
        new_description = before.description

    candidate = AdjustmentEntry(
        id=revert_id,
        original_expense_id=ledger.expense.id,
        household_id=ledger.expense.household_id,
        delta_contributions=tuple(
            PaymentContribution(c.member_id, -c.paid) for c in target.delta_contributions
        ),
        delta_shares=tuple(
            ParticipantShare(s.member_id, -s.owed) for s in target.delta_shares
        ),
        reason=reason,
        created_at=created_at,
        new_description=new_description,
        reverts_adjustment_id=adjustment_id,
    )
    return _with_credits(ledger, candidate)
