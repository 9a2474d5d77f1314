"""BalanceAggregator — fold a household snapshot into pairwise balances.

balance(A, B) is the net amount A owes B. The fold mirrors every accrual
(A owes B x  <=>  B owes A -x), so the sheet is zero-sum by construction;
the verification pass re-checks that anyway and fails closed rather than
returning wrong numbers.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from src.hl_common.errors import LedgerCorruptionError
from src.hl_common.money import Money
from src.hl_ledger.domain.models import LedgerSnapshot
from src.hl_ledger.domain.settlement import SettlementTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HouseholdBalances:
    household_id: str
    currency: str
    pairs: dict[tuple[str, str], Money]   # (ower, owed_to) -> amount; zero pairs omitted
    computed_at: datetime

    def balance(self, ower: str, owed_to: str) -> Money:
        return self.pairs.get((ower, owed_to), Money.zero(self.currency))

    def members(self) -> list[str]:
        return sorted({m for pair in self.pairs for m in pair})

    def positions(self) -> dict[str, Money]:
        """Member -> sum of what they owe everyone else (negative: they are owed)."""
        totals: dict[str, Money] = {}
        for (ower, _), amount in self.pairs.items():
            totals[ower] = totals.get(ower, Money.zero(self.currency)) + amount
        return totals

    def position(self, member_id: str) -> Money:
        return self.positions().get(member_id, Money.zero(self.currency))


class BalanceAggregator:
    def __init__(self, currency: str) -> None:
        self._currency = currency

    def compute_household_balances(self, snapshot: LedgerSnapshot) -> HouseholdBalances:
        raw: dict[tuple[str, str], int] = {}
        for ledger in snapshot.ledgers:
            expense = ledger.expense
            if expense.household_id != snapshot.household_id or expense.currency != self._currency:
                self._fail(
                    snapshot,
                    f"expense {expense.id} (household={expense.household_id}, "
                    f"currency={expense.currency}) does not belong to this ledger",
                )
            for ower, payer, amount in SettlementTracker(ledger).obligations():
                raw[(ower, payer)] = raw.get((ower, payer), 0) + amount.cents
                raw[(payer, ower)] = raw.get((payer, ower), 0) - amount.cents

        pairs = {
            pair: Money(cents, self._currency) for pair, cents in raw.items() if cents != 0
        }
        self._verify(snapshot, pairs)
        return HouseholdBalances(
            household_id=snapshot.household_id,
            currency=self._currency,
            pairs=pairs,
            computed_at=snapshot.taken_at,
        )

    def _verify(self, snapshot: LedgerSnapshot, pairs: dict[tuple[str, str], Money]) -> None:
        for (a, b), amount in pairs.items():
            if a == b:
                self._fail(snapshot, f"member {a} owes themselves {amount.cents}")
            mirror = pairs.get((b, a), Money.zero(self._currency))
            if mirror != -amount:
                self._fail(
                    snapshot,
                    f"balance({a},{b})={amount.cents} but balance({b},{a})={mirror.cents}",
                )
        grand_total = sum(m.cents for m in pairs.values())
        if grand_total != 0:
            self._fail(snapshot, f"pair balances sum to {grand_total}, expected 0")

    def _fail(self, snapshot: LedgerSnapshot, detail: str) -> None:
        logger.error(
            "Balance aggregation failed for household=%s expenses=%d taken_at=%s: %s",
            snapshot.household_id,
            len(snapshot.ledgers),
            snapshot.taken_at.isoformat(),
            detail,
        )
        raise LedgerCorruptionError(f"household {snapshot.household_id}: {detail}")
