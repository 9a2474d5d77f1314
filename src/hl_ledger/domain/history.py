"""Chronological event feed for a household ledger."""

from dataclasses import dataclass
from datetime import datetime

from src.hl_common.enums import LedgerEventType
from src.hl_common.money import Money
from src.hl_ledger.domain.models import LedgerSnapshot


@dataclass(frozen=True)
class LedgerEvent:
    event_type: LedgerEventType
    occurred_at: datetime
    expense_id: str
    reference_id: str          # expense, settlement or adjustment id
    member_ids: tuple[str, ...]
    amount: Money              # expense total, settled amount, or adjustment delta total
    description: str


def build_history(
    snapshot: LedgerSnapshot, member_id: str | None = None, limit: int = 50
) -> list[LedgerEvent]:
    """Newest first. With `member_id`, only events that involve that member."""
    events: list[LedgerEvent] = []
    for ledger in snapshot.ledgers:
        expense = ledger.expense
        involved = {c.member_id for c in expense.contributions} | {
            s.member_id for s in expense.shares
        }
        events.append(
            LedgerEvent(
                event_type=LedgerEventType.EXPENSE,
                occurred_at=expense.created_at,
                expense_id=expense.id,
                reference_id=expense.id,
                member_ids=tuple(sorted(involved)),
                amount=expense.total,
                description=expense.description,
            )
        )
        for s in ledger.settlements:
            events.append(
                LedgerEvent(
                    event_type=LedgerEventType.SETTLEMENT,
                    occurred_at=s.settled_at,
                    expense_id=expense.id,
                    reference_id=s.id,
                    member_ids=(s.member_id,),
                    amount=s.settled,
                    description=f"Settlement on {expense.description}",
                )
            )
        for adj in ledger.adjustments:
            touched = (
                {c.member_id for c in adj.delta_contributions}
                | {s.member_id for s in adj.delta_shares}
                | {c.member_id for c in adj.credits}
            )
            delta_total = Money.total([c.paid for c in adj.delta_contributions], expense.currency)
            events.append(
                LedgerEvent(
                    event_type=LedgerEventType.ADJUSTMENT,
                    occurred_at=adj.created_at,
                    expense_id=expense.id,
                    reference_id=adj.id,
                    member_ids=tuple(sorted(touched)),
                    amount=delta_total,
                    description=adj.reason,
                )
            )

    if member_id is not None:
        events = [e for e in events if member_id in e.member_ids]
    events.sort(key=lambda e: (e.occurred_at, e.reference_id), reverse=True)
    return events[:limit]
