"""Settle-up suggestions: turn member positions into a short list of transfers.

Greedy matching of the largest debtor with the largest creditor. Not
guaranteed minimal, but never more than (members - 1) transfers, and the
transfers always clear every position exactly.
"""

from dataclasses import dataclass

from src.hl_common.money import Money


@dataclass(frozen=True)
class Transfer:
    from_member: str
    to_member: str
    amount: Money


def suggest_transfers(positions: dict[str, Money], currency: str) -> list[Transfer]:
    """positions: member -> net amount owed by that member (negative: is owed)."""
    debtors = sorted(
        ((m, p.cents) for m, p in positions.items() if p.is_positive()),
        key=lambda x: (-x[1], x[0]),
    )
    creditors = sorted(
        ((m, -p.cents) for m, p in positions.items() if p.is_negative()),
        key=lambda x: (-x[1], x[0]),
    )

    transfers: list[Transfer] = []
    i = j = 0
    while i < len(debtors) and j < len(creditors):
        debtor_id, debt = debtors[i]
        creditor_id, credit = creditors[j]
        amount = min(debt, credit)
        transfers.append(Transfer(debtor_id, creditor_id, Money(amount, currency)))
        debt -= amount
        credit -= amount
        if debt == 0:
            i += 1
        else:
            debtors[i] = (debtor_id, debt)
        if credit == 0:
            j += 1
        else:
            creditors[j] = (creditor_id, credit)
    return transfers
