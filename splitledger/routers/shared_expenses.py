from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from splitledger.db import get_db
from splitledger.deps import AuthedUser
from splitledger.schemas.common import make_success_response
from splitledger.schemas.shared_expenses import (
    SharedExpenseCreate,
    SharedExpenseOut,
    SharedExpensePage,
    MarkPaidResponse,
    CancelResponse,
    ParticipationPage,
    SettlementBalanceOut,
)
from splitledger.services.shared_expenses import SharedExpenseService, summarize_expense

router = APIRouter(
    prefix="/api/v1/expenses",
    tags=["Shared Expenses"],
)


@router.post("/shared", status_code=status.HTTP_201_CREATED)
async def create_shared_expense(
    payload: SharedExpenseCreate,
    current_user: AuthedUser,
    db: Session = Depends(get_db),
):
    expense = SharedExpenseService(db).create_shared_expense(
        owner_id=current_user.id,
        amount=payload.amount,
        currency=payload.currency,
        category_id=payload.category_id,
        occurred_on=payload.date,
        description=payload.description,
        participants=[p.model_dump() for p in payload.participants],
        split_type=payload.split_type,
    )
    return make_success_response(SharedExpenseOut.model_validate(summarize_expense(expense)).model_dump(mode="json"))


@router.get("/shared")
async def list_shared_expenses(
    current_user: AuthedUser,
    status: str = Query("all"),
    limit: Optional[int] = Query(None),
    offset: int = Query(0),
    db: Session = Depends(get_db),
):
    page = SharedExpenseService(db).get_shared_expenses_paginated(
        current_user.id, status=status, limit=limit, offset=offset
    )
    data = SharedExpensePage(expenses=page["items"], total=page["total"], has_more=page["has_more"])
    return make_success_response(data.model_dump(mode="json"))


@router.get("/shared-with-me")
async def list_expenses_shared_with_me(
    current_user: AuthedUser,
    limit: Optional[int] = Query(None),
    offset: int = Query(0),
    db: Session = Depends(get_db),
):
    page = SharedExpenseService(db).get_expenses_shared_with_me(current_user.id, limit=limit, offset=offset)
    data = ParticipationPage(participations=page["items"], total=page["total"], has_more=page["has_more"])
    return make_success_response(data.model_dump(mode="json"))


@router.get("/balances")
async def get_settlement_balances(
    current_user: AuthedUser,
    db: Session = Depends(get_db),
):
    balances = SharedExpenseService(db).get_settlement_balances(current_user.id)
    return make_success_response(
        [SettlementBalanceOut.model_validate(b).model_dump(mode="json") for b in balances]
    )


@router.patch("/shares/{participant_id}/paid")
async def mark_share_paid(
    participant_id: UUID,
    current_user: AuthedUser,
    db: Session = Depends(get_db),
):
    result = SharedExpenseService(db).mark_participant_paid(participant_id, current_user.id)
    return make_success_response(MarkPaidResponse.model_validate(result).model_dump(mode="json"))


@router.delete("/shared/{expense_id}")
async def cancel_shared_expense(
    expense_id: UUID,
    current_user: AuthedUser,
    db: Session = Depends(get_db),
):
    result = SharedExpenseService(db).cancel_shared_expense(expense_id, current_user.id)
    return make_success_response(CancelResponse.model_validate(result).model_dump(mode="json"))
