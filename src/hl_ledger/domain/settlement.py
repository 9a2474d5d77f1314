"""SettlementTracker — who has paid down how much of which share.

Works on one `ExpenseLedger` (expense + adjustments + settlements) in memory.
The tracker never writes; the application service persists what it returns.

Outstanding amount of a share = effective owed - settled. It may only go
negative when an adjustment lowered the share below what was already paid,
and then only by exactly the credit that adjustment recorded.
"""

import logging
from collections.abc import Iterator
from datetime import datetime

from src.hl_common.enums import ExpenseStatus
from src.hl_common.errors import (
    ExpenseVoidedError,
    LedgerCorruptionError,
    NonPositiveAmountError,
    OverSettlementError,
    UnknownShareError,
)
from src.hl_common.money import Money
from src.hl_ledger.domain.allocator import allocate_weighted
from src.hl_ledger.domain.expense import EffectiveExpense, effective_view, payer_weights
from src.hl_ledger.domain.models import ExpenseLedger, SettlementEntry

logger = logging.getLogger(__name__)


class SettlementTracker:
    def __init__(self, ledger: ExpenseLedger) -> None:
        self._ledger = ledger
        self._view = effective_view(ledger.expense, ledger.adjustments)

    @property
    def ledger(self) -> ExpenseLedger:
        return self._ledger

    @property
    def view(self) -> EffectiveExpense:
        return self._view

    @property
    def _currency(self) -> str:
        return self._ledger.expense.currency

    def settled_by_member(self) -> dict[str, Money]:
        totals: dict[str, Money] = {}
        for s in self._ledger.settlements:
            totals[s.member_id] = totals.get(s.member_id, Money.zero(self._currency)) + s.settled
        return totals

    def settled_for(self, member_id: str) -> Money:
        return self.settled_by_member().get(member_id, Money.zero(self._currency))

    def latest_credit(self, member_id: str) -> Money:
        if not self._ledger.adjustments:
            return Money.zero(self._currency)
        return self._ledger.adjustments[-1].credit_for(member_id, self._currency)

    def signed_outstanding(self, member_id: str) -> Money:
        """Owed minus settled, negative when the member holds a credit."""
        remaining = self._view.owed_by(member_id) - self.settled_for(member_id)
        if remaining.is_negative() and -remaining > self.latest_credit(member_id):
            expense = self._ledger.expense
            logger.error(
                "Settlements exceed owed amount without a recorded credit: "
                "expense=%s household=%s member=%s owed=%d settled=%d credit=%d",
                expense.id,
                expense.household_id,
                member_id,
                self._view.owed_by(member_id).cents,
                self.settled_for(member_id).cents,
                self.latest_credit(member_id).cents,
            )
            raise LedgerCorruptionError(
                f"member {member_id} settled more than owed on expense {expense.id}"
            )
        return remaining

    def outstanding_for_share(self, member_id: str) -> Money:
        if member_id not in self._view.share_holders:
            raise UnknownShareError(self._ledger.expense.id, member_id)
        remaining = self.signed_outstanding(member_id)
        if remaining.is_negative():
            return Money.zero(self._currency)
        return remaining

    def prepare_settlement(
        self,
        member_id: str,
        amount: Money,
        *,
        settlement_id: str,
        settled_at: datetime,
    ) -> SettlementEntry:
        """Validate a pay-down and return the entry to append. Writes nothing."""
        expense = self._ledger.expense
        if expense.status == ExpenseStatus.VOIDED:
            raise ExpenseVoidedError(expense.id)
        if not amount.is_positive():
            raise NonPositiveAmountError("Settlement amount", amount.cents)
        outstanding = self.outstanding_for_share(member_id)
        if amount > outstanding:
            raise OverSettlementError(amount.cents, outstanding.cents)
        return SettlementEntry(
            id=settlement_id,
            expense_id=expense.id,
            household_id=expense.household_id,
            member_id=member_id,
            settled=amount,
            settled_at=settled_at,
        )

    def obligations(self) -> Iterator[tuple[str, str, Money]]:
        """Yield (ower, payer, amount) for every non-self slice of outstanding amounts.

        Each member's signed outstanding amount is apportioned across payers by
        contribution weight; a negative amount (credit) flows back the other way.
        """
        weights = payer_weights(self._view, self._ledger.expense, self._ledger.adjustments)
        if not weights:
            return
        payers = [m for m, _ in weights]
        members = sorted(self._view.share_holders | set(self.settled_by_member()))
        for member_id in members:
            outstanding = self.signed_outstanding(member_id)
            if outstanding.is_zero():
                continue
            parts = allocate_weighted(outstanding, [w for _, w in weights])
            for payer_id, part in zip(payers, parts):
                if payer_id != member_id and not part.is_zero():
                    yield member_id, payer_id, part

    def is_fully_settled(self) -> bool:
        """True once nobody owes any other payer anything on this expense."""
        weights = payer_weights(self._view, self._ledger.expense, self._ledger.adjustments)
        if not weights:
            return False
        for member_id in self._view.share_holders:
            outstanding = self.signed_outstanding(member_id)
            if not outstanding.is_positive():
                continue
            parts = allocate_weighted(outstanding, [w for _, w in weights])
            if any(
                payer_id != member_id and part.is_positive()
                for (payer_id, _), part in zip(weights, parts)
            ):
                return False
        return True
