"""LedgerApplicationService — the transactional front door of the ledger.

Every write:
  1. resolves the expense's household (outside the lock)
  2. takes the per-household asyncio.Lock
  3. re-reads the ledger, validates, persists, commits (rollback on any error)
  4. releases the lock, then runs side effects (expense indexing)

Cross-process races are caught by the expense `version` compare-and-set in the
repository. Those attempts are rolled back and retried, re-reading the latest
settlements and adjustments, up to LEDGER_MAX_RETRIES times.

Reads that aggregate a household run in one REPEATABLE READ transaction.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import date
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.hl_common.datetime_utils import iso_or_none, utc_now
from src.hl_common.enums import EditMode, ExpenseStatus
from src.hl_common.errors import (
    AdjustmentNotFoundError,
    ConcurrentModificationError,
    ExpenseNotFoundError,
    ExpenseVoidedError,
    RecurringExpenseNotFoundError,
    SettledExpenseRequiresConfirmationError,
)
from src.hl_common.id_generator import (
    new_adjustment_id,
    new_expense_id,
    new_recurring_id,
    new_settlement_id,
)
from src.hl_common.money import Money
from src.hl_ledger.application.schemas import (
    AdjustmentItem,
    AdjustmentPreview,
    CreateExpenseRequest,
    CreateMultiPayerExpenseRequest,
    CreateRecurringExpenseRequest,
    CreditItem,
    EditExpenseRequest,
    EditExpenseResponse,
    EffectiveSplitItem,
    ExpenseDetailResponse,
    ExpenseResponse,
    HouseholdBalancesResponse,
    LedgerEventItem,
    LedgerHistoryResponse,
    MemberBalanceChange,
    MemberOutstandingItem,
    OutstandingResponse,
    ProcessRecurringResponse,
    RecurringExpenseListResponse,
    RecurringExpenseResponse,
    RevertAdjustmentRequest,
    SettlementItem,
    SettlementRequest,
    SettlementResponse,
    SettlementSuggestionsResponse,
    TransferItem,
    VoidExpenseRequest,
    VoidExpenseResponse,
    preview_payload,
)
from src.hl_ledger.domain.adjustment import plan_adjustment, plan_revert, zero_split
from src.hl_ledger.domain.balances import BalanceAggregator, HouseholdBalances
from src.hl_ledger.domain.expense import (
    SplitRequest,
    build_expense_record,
    effective_view,
    resolve_split,
)
from src.hl_ledger.domain.history import build_history
from src.hl_ledger.domain.models import (
    AdjustmentEntry,
    ExpenseLedger,
    ExpenseRecord,
    LedgerSnapshot,
    RecurringExpense,
)
from src.hl_ledger.domain.recurring import build_occurrence, build_recurring_expense, due_dates
from src.hl_ledger.domain.repository import (
    ExpenseIndexerProtocol,
    LedgerRepositoryProtocol,
)
from src.hl_ledger.domain.settlement import SettlementTracker
from src.hl_ledger.domain.transfers import suggest_transfers
from src.hl_ledger.infrastructure.indexing import build_indexer
from src.hl_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _ledger_members(ledger: ExpenseLedger) -> set[str]:
    members = {c.member_id for c in ledger.expense.contributions}
    members |= {s.member_id for s in ledger.expense.shares}
    members |= {s.member_id for s in ledger.settlements}
    for adj in ledger.adjustments:
        members |= {c.member_id for c in adj.delta_contributions}
        members |= {s.member_id for s in adj.delta_shares}
    return members


def _affected_members(
    before: HouseholdBalances, after: HouseholdBalances, members: set[str]
) -> list[MemberBalanceChange]:
    """Members of the touched expense plus anyone whose position moved."""
    zero = Money.zero(before.currency)
    before_pos, after_pos = before.positions(), after.positions()
    moved = {
        m
        for m in set(before_pos) | set(after_pos)
        if before_pos.get(m, zero) != after_pos.get(m, zero)
    }
    return [
        MemberBalanceChange.from_positions(m, before_pos.get(m, zero), after_pos.get(m, zero))
        for m in sorted(members | moved)
    ]


class LedgerApplicationService:
    def __init__(
        self,
        repo: LedgerRepositoryProtocol | None = None,
        indexer: ExpenseIndexerProtocol | None = None,
        *,
        currency: str | None = None,
        max_retries: int | None = None,
    ) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()
        self._indexer: ExpenseIndexerProtocol = indexer or build_indexer()
        self._currency = currency or settings.LEDGER_CURRENCY
        self._max_retries = (
            settings.LEDGER_MAX_RETRIES if max_retries is None else max_retries
        )
        self._aggregator = BalanceAggregator(self._currency)
        self._household_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _run_locked(
        self,
        db: AsyncSession,
        household_id: str,
        operation: str,
        work: Callable[[], Awaitable[T]],
    ) -> T:
        attempt = 0
        while True:
            async with self._household_locks[household_id]:
                try:
                    result = await work()
                    await db.commit()
                    return result
                except ConcurrentModificationError as exc:
                    await db.rollback()
                    if not exc.retryable or attempt >= self._max_retries:
                        logger.warning(
                            "%s gave up in household=%s after %d attempt(s): %s",
                            operation,
                            household_id,
                            attempt + 1,
                            exc.message,
                        )
                        raise
                    attempt += 1
                    logger.warning(
                        "%s hit a concurrent modification in household=%s, retry %d/%d",
                        operation,
                        household_id,
                        attempt,
                        self._max_retries,
                    )
                except Exception:
                    await db.rollback()
                    raise

    async def _household_of(self, db: AsyncSession, expense_id: str) -> str:
        expense = await self._repo.get_expense(db, expense_id)
        if expense is None:
            raise ExpenseNotFoundError(expense_id)
        return expense.household_id

    async def _load_ledger(self, db: AsyncSession, expense_id: str) -> ExpenseLedger:
        ledger = await self._repo.load_expense_ledger(db, expense_id)
        if ledger is None:
            raise ExpenseNotFoundError(expense_id)
        return ledger

    async def _snapshot(self, db: AsyncSession, household_id: str) -> LedgerSnapshot:
        ledgers = await self._repo.load_household_ledgers(db, household_id)
        return LedgerSnapshot(
            household_id=household_id,
            currency=self._currency,
            ledgers=ledgers,
            taken_at=utc_now(),
        )

    async def _read_snapshot(self, db: AsyncSession, household_id: str) -> LedgerSnapshot:
        async with db.begin():
            await self._repo.set_repeatable_read(db)
            return await self._snapshot(db, household_id)

    @staticmethod
    def _find(snapshot: LedgerSnapshot, expense_id: str) -> ExpenseLedger:
        for ledger in snapshot.ledgers:
            if ledger.expense.id == expense_id:
                return ledger
        raise ExpenseNotFoundError(expense_id)

    @staticmethod
    def _check_writable(expense: ExpenseRecord, expected_version: int | None) -> None:
        if expense.status == ExpenseStatus.VOIDED:
            raise ExpenseVoidedError(expense.id)
        if expected_version is not None and expected_version != expense.version:
            raise ConcurrentModificationError(expense.id, retryable=False)

    async def _apply_adjustment(
        self,
        db: AsyncSession,
        snapshot: LedgerSnapshot,
        before: HouseholdBalances,
        ledger: ExpenseLedger,
        adjustment: AdjustmentEntry,
        *,
        confirm: bool,
        voiding: bool = False,
    ) -> tuple[ExpenseLedger, list[MemberBalanceChange]]:
        expense = ledger.expense
        new_ledger = ledger.with_adjustment(adjustment)
        after = self._aggregator.compute_household_balances(snapshot.replace_ledger(new_ledger))
        affected = _affected_members(before, after, _ledger_members(new_ledger))

        if not confirm:
            logger.info(
                "Adjustment on expense %s (household=%s) awaits confirmation",
                expense.id,
                expense.household_id,
            )
            raise SettledExpenseRequiresConfirmationError(
                expense.id, preview_payload(AdjustmentPreview.build(adjustment, affected))
            )

        if voiding:
            status = ExpenseStatus.VOIDED
        elif (
            expense.status == ExpenseStatus.SETTLED
            or SettlementTracker(new_ledger).is_fully_settled()
        ):
            # A settled expense stays settled through adjustments.
            status = ExpenseStatus.SETTLED
        else:
            status = ExpenseStatus.EDITED
        version = await self._repo.update_expense_status(db, expense.id, status, expense.version)
        await self._repo.insert_adjustment(db, adjustment)
        logger.info(
            "Applied adjustment %s to expense %s (household=%s) status=%s credits=%d",
            adjustment.id,
            expense.id,
            expense.household_id,
            status.value,
            len(adjustment.credits),
        )
        updated = replace(expense, status=status, version=version, updated_at=adjustment.created_at)
        return new_ledger.with_expense(updated), affected

    async def _index(self, ledger: ExpenseLedger) -> None:
        """Post-commit side effect; never fails the write it follows."""
        expense = ledger.expense
        view = effective_view(expense, ledger.adjustments)
        metadata = {
            "total_cents": view.total.cents,
            "currency": expense.currency,
            "expense_date": iso_or_none(expense.expense_date),
            "payer_ids": sorted(view.contributions),
            "participant_ids": sorted(view.shares),
            "status": expense.status.value,
        }
        try:
            await self._indexer.enqueue(expense.id, expense.household_id, view.description, metadata)
        except Exception:
            logger.exception(
                "Indexing failed for expense %s (household=%s); ledger write kept",
                expense.id,
                expense.household_id,
            )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_expense(
        self, db: AsyncSession, household_id: str, req: CreateExpenseRequest
    ) -> ExpenseResponse:
        return await self._create(
            db,
            household_id,
            req.description,
            req.to_split_request(self._currency),
            req.expense_date,
            req.client_uuid,
        )

    async def create_multi_payer_expense(
        self, db: AsyncSession, household_id: str, req: CreateMultiPayerExpenseRequest
    ) -> ExpenseResponse:
        return await self._create(
            db,
            household_id,
            req.description,
            req.to_split_request(self._currency),
            req.expense_date,
            req.client_uuid,
        )

    async def _create(
        self,
        db: AsyncSession,
        household_id: str,
        description: str,
        split: SplitRequest,
        expense_date: date | None,
        client_uuid: str | None,
    ) -> ExpenseResponse:
        # Validation raises here, before any lock or write.
        expense = build_expense_record(
            expense_id=new_expense_id(),
            household_id=household_id,
            description=description,
            split=split,
            created_at=utc_now(),
            expense_date=expense_date,
            client_uuid=client_uuid,
        )

        async def work() -> tuple[ExpenseRecord, bool]:
            if client_uuid is not None:
                existing = await self._repo.find_expense_by_client_uuid(
                    db, household_id, client_uuid
                )
                if existing is not None:
                    return existing, False
            await self._repo.insert_expense(db, expense)
            return expense, True

        record, created = await self._run_locked(db, household_id, "create_expense", work)
        if created:
            logger.info(
                "Created expense %s in household=%s total=%d payers=%d shares=%d",
                record.id,
                household_id,
                record.total.cents,
                len(record.contributions),
                len(record.shares),
            )
            await self._index(ExpenseLedger(record))
        else:
            logger.info(
                "Duplicate client_uuid=%s in household=%s, returning expense %s",
                client_uuid,
                household_id,
                record.id,
            )
        return ExpenseResponse.from_record(record)

    # ------------------------------------------------------------------
    # Edit / void / revert
    # ------------------------------------------------------------------

    async def edit_expense(
        self, db: AsyncSession, expense_id: str, req: EditExpenseRequest
    ) -> EditExpenseResponse:
        household_id = await self._household_of(db, expense_id)
        # A blank description leaves the current one in place on both edit paths.
        new_description = (req.description or "").strip() or None

        async def work() -> tuple[EditExpenseResponse, ExpenseLedger]:
            snapshot = await self._snapshot(db, household_id)
            ledger = self._find(snapshot, expense_id)
            expense = ledger.expense
            self._check_writable(expense, req.expected_version)
            resolved = resolve_split(req.to_split_request(expense.currency))
            before = self._aggregator.compute_household_balances(snapshot)

            if not ledger.has_settlements:
                rewritten = replace(
                    expense,
                    description=new_description or expense.description,
                    total=resolved.total,
                    contributions=resolved.contributions,
                    shares=resolved.shares,
                    status=ExpenseStatus.EDITED,
                    updated_at=utc_now(),
                )
                version = await self._repo.replace_expense_split(db, rewritten, expense.version)
                new_ledger = ledger.with_expense(replace(rewritten, version=version))
                after = self._aggregator.compute_household_balances(
                    snapshot.replace_ledger(new_ledger)
                )
                logger.info(
                    "Rewrote expense %s (household=%s) version=%d",
                    expense_id,
                    household_id,
                    version,
                )
                response = EditExpenseResponse(
                    expense_id=expense_id,
                    mode=EditMode.REWRITE,
                    status=ExpenseStatus.EDITED,
                    version=version,
                    affected_members=_affected_members(
                        before, after, _ledger_members(ledger) | _ledger_members(new_ledger)
                    ),
                )
                return response, new_ledger

            adjustment = plan_adjustment(
                ledger,
                resolved,
                adjustment_id=new_adjustment_id(),
                reason=req.reason,
                created_at=utc_now(),
                new_description=new_description,
            )
            new_ledger, affected = await self._apply_adjustment(
                db, snapshot, before, ledger, adjustment, confirm=req.confirm
            )
            response = EditExpenseResponse(
                expense_id=expense_id,
                mode=EditMode.ADJUSTMENT,
                status=new_ledger.expense.status,
                version=new_ledger.expense.version,
                adjustment_id=adjustment.id,
                credits=[CreditItem.from_credit(c) for c in adjustment.credits],
                affected_members=affected,
            )
            return response, new_ledger

        response, new_ledger = await self._run_locked(db, household_id, "edit_expense", work)
        await self._index(new_ledger)
        return response

    async def void_expense(
        self, db: AsyncSession, expense_id: str, req: VoidExpenseRequest
    ) -> VoidExpenseResponse:
        """Delete an unreferenced expense; zero out a referenced one and mark it VOIDED."""
        household_id = await self._household_of(db, expense_id)

        async def work() -> VoidExpenseResponse:
            snapshot = await self._snapshot(db, household_id)
            ledger = self._find(snapshot, expense_id)
            expense = ledger.expense
            self._check_writable(expense, req.expected_version)
            before = self._aggregator.compute_household_balances(snapshot)

            if not ledger.has_settlements and not ledger.adjustments:
                await self._repo.delete_expense(db, expense_id, expense.version)
                after = self._aggregator.compute_household_balances(
                    snapshot.without_expense(expense_id)
                )
                logger.info("Deleted unreferenced expense %s (household=%s)", expense_id, household_id)
                return VoidExpenseResponse(
                    expense_id=expense_id,
                    deleted=True,
                    affected_members=_affected_members(before, after, _ledger_members(ledger)),
                )

            adjustment = plan_adjustment(
                ledger,
                zero_split(expense.currency),
                adjustment_id=new_adjustment_id(),
                reason=req.reason,
                created_at=utc_now(),
            )
            new_ledger, affected = await self._apply_adjustment(
                db, snapshot, before, ledger, adjustment, confirm=req.confirm, voiding=True
            )
            return VoidExpenseResponse(
                expense_id=expense_id,
                deleted=False,
                status=new_ledger.expense.status,
                adjustment_id=adjustment.id,
                credits=[CreditItem.from_credit(c) for c in adjustment.credits],
                affected_members=affected,
            )

        return await self._run_locked(db, household_id, "void_expense", work)

    async def revert_adjustment(
        self, db: AsyncSession, adjustment_id: str, req: RevertAdjustmentRequest
    ) -> EditExpenseResponse:
        """Append the inverse of an adjustment, restoring the split it replaced."""
        target = await self._repo.get_adjustment(db, adjustment_id)
        if target is None:
            raise AdjustmentNotFoundError(adjustment_id)
        household_id = target.household_id
        expense_id = target.original_expense_id

        async def work() -> EditExpenseResponse:
            snapshot = await self._snapshot(db, household_id)
            ledger = self._find(snapshot, expense_id)
            expense = ledger.expense
            # Only the void itself can be reverted on a voided expense.
            if expense.status == ExpenseStatus.VOIDED and ledger.adjustments[-1].id != adjustment_id:
                raise ExpenseVoidedError(expense_id)
            before = self._aggregator.compute_household_balances(snapshot)
            revert = plan_revert(
                ledger,
                adjustment_id,
                revert_id=new_adjustment_id(),
                reason=req.reason,
                created_at=utc_now(),
            )
            new_ledger, affected = await self._apply_adjustment(
                db, snapshot, before, ledger, revert, confirm=req.confirm
            )
            return EditExpenseResponse(
                expense_id=expense_id,
                mode=EditMode.ADJUSTMENT,
                status=new_ledger.expense.status,
                version=new_ledger.expense.version,
                adjustment_id=revert.id,
                credits=[CreditItem.from_credit(c) for c in revert.credits],
                affected_members=affected,
            )

        return await self._run_locked(db, household_id, "revert_adjustment", work)

    # ------------------------------------------------------------------
    # Settlements
    # ------------------------------------------------------------------

    async def record_settlement(
        self, db: AsyncSession, expense_id: str, req: SettlementRequest
    ) -> SettlementResponse:
        household_id = await self._household_of(db, expense_id)

        async def work() -> SettlementResponse:
            ledger = await self._load_ledger(db, expense_id)
            expense = ledger.expense
            entry = SettlementTracker(ledger).prepare_settlement(
                req.member_id,
                Money(req.amount_cents, expense.currency),
                settlement_id=new_settlement_id(),
                settled_at=utc_now(),
            )
            tracker = SettlementTracker(ledger.with_settlement(entry))
            status = ExpenseStatus.SETTLED if tracker.is_fully_settled() else expense.status
            version = await self._repo.update_expense_status(db, expense_id, status, expense.version)
            await self._repo.insert_settlement(db, entry)
            outstanding = tracker.outstanding_for_share(req.member_id)
            logger.info(
                "Recorded settlement %s on expense %s member=%s amount=%d outstanding=%d status=%s",
                entry.id,
                expense_id,
                req.member_id,
                entry.settled.cents,
                outstanding.cents,
                status.value,
            )
            return SettlementResponse(
                settlement_id=entry.id,
                expense_id=expense_id,
                member_id=req.member_id,
                settled_cents=entry.settled.cents,
                settled_display=entry.settled.display(),
                outstanding_cents=outstanding.cents,
                outstanding_display=outstanding.display(),
                expense_status=status,
                version=version,
            )

        return await self._run_locked(db, household_id, "record_settlement", work)

    async def get_outstanding(
        self, db: AsyncSession, expense_id: str, member_id: str
    ) -> OutstandingResponse:
        tracker = SettlementTracker(await self._load_ledger(db, expense_id))
        tracker.outstanding_for_share(member_id)  # UnknownShareError for non-holders
        item = MemberOutstandingItem.from_signed(member_id, tracker.signed_outstanding(member_id))
        return OutstandingResponse(expense_id=expense_id, **item.model_dump())

    # ------------------------------------------------------------------
    # Recurring expenses
    # ------------------------------------------------------------------

    async def create_recurring_expense(
        self, db: AsyncSession, household_id: str, req: CreateRecurringExpenseRequest
    ) -> RecurringExpenseResponse:
        template = build_recurring_expense(
            template_id=new_recurring_id(),
            household_id=household_id,
            description=req.description,
            total=Money(req.total_cents, self._currency),
            paid_by=req.paid_by,
            participants=req.participants,
            frequency=req.frequency,
            start_date=req.start_date,
            created_at=utc_now(),
            day_of_month=req.day_of_month,
        )

        async def work() -> None:
            await self._repo.insert_recurring_expense(db, template)

        await self._run_locked(db, household_id, "create_recurring_expense", work)
        logger.info(
            "Created recurring expense %s in household=%s frequency=%s next_due=%s",
            template.id,
            household_id,
            template.frequency.value,
            template.next_due_date.isoformat(),
        )
        return RecurringExpenseResponse.from_template(template)

    async def list_recurring_expenses(
        self, db: AsyncSession, household_id: str
    ) -> RecurringExpenseListResponse:
        templates = await self._repo.list_recurring_expenses(db, household_id)
        return RecurringExpenseListResponse(
            household_id=household_id,
            items=[RecurringExpenseResponse.from_template(t) for t in templates],
        )

    async def deactivate_recurring_expense(
        self, db: AsyncSession, recurring_id: str
    ) -> RecurringExpenseResponse:
        existing = await self._repo.get_recurring_expense(db, recurring_id)
        if existing is None:
            raise RecurringExpenseNotFoundError(recurring_id)

        async def work() -> RecurringExpense:
            template = await self._repo.get_recurring_expense(db, recurring_id)
            if template is None:
                raise RecurringExpenseNotFoundError(recurring_id)
            if not template.is_active:
                return template
            stopped = replace(template, is_active=False)
            version = await self._repo.update_recurring_expense(db, stopped, template.version)
            return replace(stopped, version=version)

        template = await self._run_locked(
            db, existing.household_id, "deactivate_recurring_expense", work
        )
        logger.info(
            "Deactivated recurring expense %s (household=%s)", recurring_id, template.household_id
        )
        return RecurringExpenseResponse.from_template(template)

    async def _produce_due(
        self, db: AsyncSession, household_id: str, recurring_id: str, as_of: date
    ) -> list[ExpenseRecord]:
        """Create one template's due occurrences and advance it, in one transaction."""

        async def work() -> list[ExpenseRecord]:
            template = await self._repo.get_recurring_expense(db, recurring_id)
            if template is None or not template.is_active:
                return []
            dates, next_due = due_dates(template, as_of, settings.RECURRING_MAX_CATCH_UP)
            if not dates:
                return []
            created = []
            for due in dates:
                record = build_occurrence(
                    template, due, expense_id=new_expense_id(), created_at=utc_now()
                )
                existing = await self._repo.find_expense_by_client_uuid(
                    db, household_id, record.client_uuid
                )
                if existing is None:
                    await self._repo.insert_expense(db, record)
                    created.append(record)
            await self._repo.update_recurring_expense(
                db, replace(template, next_due_date=next_due), template.version
            )
            logger.info(
                "Recurring expense %s (household=%s) produced %d expense(s) for %d due date(s), "
                "next due %s",
                recurring_id,
                household_id,
                len(created),
                len(dates),
                next_due.isoformat(),
            )
            return created

        return await self._run_locked(db, household_id, "process_recurring_expense", work)

    async def process_due_recurring_expenses(
        self, db: AsyncSession, household_id: str, as_of: date | None = None
    ) -> ProcessRecurringResponse:
        """Turn every due occurrence into an expense. Safe to run repeatedly."""
        as_of = as_of or utc_now().date()
        templates = await self._repo.list_recurring_expenses(db, household_id, due_on=as_of)
        created: list[ExpenseRecord] = []
        for template in templates:
            created.extend(await self._produce_due(db, household_id, template.id, as_of))
        for record in created:
            await self._index(ExpenseLedger(record))
        return ProcessRecurringResponse(
            household_id=household_id,
            as_of=as_of,
            created=[ExpenseResponse.from_record(r) for r in created],
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_expense(self, db: AsyncSession, expense_id: str) -> ExpenseDetailResponse:
        ledger = await self._load_ledger(db, expense_id)
        tracker = SettlementTracker(ledger)
        members = sorted(tracker.view.share_holders | set(tracker.settled_by_member()))
        return ExpenseDetailResponse(
            expense=ExpenseResponse.from_record(ledger.expense),
            effective=EffectiveSplitItem.from_view(tracker.view),
            settlements=[SettlementItem.from_entry(s) for s in ledger.settlements],
            adjustments=[AdjustmentItem.from_entry(a) for a in ledger.adjustments],
            outstanding=[
                MemberOutstandingItem.from_signed(m, tracker.signed_outstanding(m))
                for m in members
            ],
        )

    async def _balances(self, db: AsyncSession, household_id: str) -> HouseholdBalances:
        snapshot = await self._read_snapshot(db, household_id)
        return self._aggregator.compute_household_balances(snapshot)

    async def get_household_balances(
        self, db: AsyncSession, household_id: str
    ) -> HouseholdBalancesResponse:
        return HouseholdBalancesResponse.from_balances(await self._balances(db, household_id))

    async def get_settlement_suggestions(
        self, db: AsyncSession, household_id: str
    ) -> SettlementSuggestionsResponse:
        balances = await self._balances(db, household_id)
        transfers = suggest_transfers(balances.positions(), self._currency)
        return SettlementSuggestionsResponse(
            household_id=household_id,
            currency=self._currency,
            transfers=[TransferItem.from_transfer(t) for t in transfers],
        )

    async def list_ledger_history(
        self,
        db: AsyncSession,
        household_id: str,
        member_id: str | None = None,
        limit: int | None = None,
    ) -> LedgerHistoryResponse:
        snapshot = await self._read_snapshot(db, household_id)
        events = build_history(
            snapshot,
            member_id=member_id,
            limit=limit or settings.HISTORY_DEFAULT_LIMIT,
        )
        return LedgerHistoryResponse(
            household_id=household_id,
            items=[LedgerEventItem.from_event(e) for e in events],
        )
