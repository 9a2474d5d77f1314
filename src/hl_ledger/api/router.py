"""hl_ledger REST API — expenses, settlements, adjustments, recurring templates
and household reads.

No authentication: member and household ids are opaque strings supplied by
the caller's identity layer.
"""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.hl_common.database import get_db_session
from src.hl_common.response import ApiResponse, success_response
from src.hl_ledger.application.schemas import (
    CreateExpenseRequest,
    CreateMultiPayerExpenseRequest,
    CreateRecurringExpenseRequest,
    EditExpenseRequest,
    RevertAdjustmentRequest,
    SettlementRequest,
    VoidExpenseRequest,
)
from src.hl_ledger.application.service import LedgerApplicationService

router = APIRouter(tags=["ledger"])

_service = LedgerApplicationService()


def _wrap(data: object, request: Request) -> ApiResponse:
    return success_response(data, getattr(request.state, "request_id", None))


@router.post("/households/{household_id}/expenses", status_code=201)
async def create_expense(
    household_id: str,
    body: CreateExpenseRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_expense(db, household_id, body)
    return _wrap(data.model_dump(mode="json"), request)


@router.post("/households/{household_id}/expenses/multi-payer", status_code=201)
async def create_multi_payer_expense(
    household_id: str,
    body: CreateMultiPayerExpenseRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_multi_payer_expense(db, household_id, body)
    return _wrap(data.model_dump(mode="json"), request)


@router.get("/expenses/{expense_id}")
async def get_expense(
    expense_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_expense(db, expense_id)
    return _wrap(data.model_dump(mode="json"), request)


@router.put("/expenses/{expense_id}")
async def edit_expense(
    expense_id: str,
    body: EditExpenseRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.edit_expense(db, expense_id, body)
    return _wrap(data.model_dump(mode="json"), request)


@router.post("/expenses/{expense_id}/void")
async def void_expense(
    expense_id: str,
    body: VoidExpenseRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.void_expense(db, expense_id, body)
    return _wrap(data.model_dump(mode="json"), request)


@router.post("/expenses/{expense_id}/settlements", status_code=201)
async def record_settlement(
    expense_id: str,
    body: SettlementRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.record_settlement(db, expense_id, body)
    return _wrap(data.model_dump(mode="json"), request)


@router.get("/expenses/{expense_id}/members/{member_id}/outstanding")
async def get_outstanding(
    expense_id: str,
    member_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_outstanding(db, expense_id, member_id)
    return _wrap(data.model_dump(mode="json"), request)


@router.post("/adjustments/{adjustment_id}/revert")
async def revert_adjustment(
    adjustment_id: str,
    body: RevertAdjustmentRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.revert_adjustment(db, adjustment_id, body)
    return _wrap(data.model_dump(mode="json"), request)


@router.get("/households/{household_id}/balances")
async def get_household_balances(
    household_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_household_balances(db, household_id)
    return _wrap(data.model_dump(mode="json"), request)


@router.get("/households/{household_id}/settlement-suggestions")
async def get_settlement_suggestions(
    household_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_settlement_suggestions(db, household_id)
    return _wrap(data.model_dump(mode="json"), request)


@router.get("/households/{household_id}/history")
async def list_ledger_history(
    household_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    member_id: str | None = Query(None, description="Only events involving this member"),
    limit: int | None = Query(None, ge=1, le=500, description="Max events, newest first"),
) -> ApiResponse:
    data = await _service.list_ledger_history(db, household_id, member_id, limit)
    return _wrap(data.model_dump(mode="json"), request)


@router.post("/households/{household_id}/recurring-expenses", status_code=201)
async def create_recurring_expense(
    household_id: str,
    body: CreateRecurringExpenseRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_recurring_expense(db, household_id, body)
    return _wrap(data.model_dump(mode="json"), request)


@router.get("/households/{household_id}/recurring-expenses")
async def list_recurring_expenses(
    household_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_recurring_expenses(db, household_id)
    return _wrap(data.model_dump(mode="json"), request)


@router.post("/households/{household_id}/recurring-expenses/process")
async def process_due_recurring_expenses(
    household_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    as_of: date | None = Query(
        None, description="Process due dates up to this day (default: today, UTC)"
    ),
) -> ApiResponse:
    data = await _service.process_due_recurring_expenses(db, household_id, as_of)
    return _wrap(data.model_dump(mode="json"), request)


@router.post("/recurring-expenses/{recurring_id}/deactivate")
async def deactivate_recurring_expense(
    recurring_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.deactivate_recurring_expense(db, recurring_id)
    return _wrap(data.model_dump(mode="json"), request)
