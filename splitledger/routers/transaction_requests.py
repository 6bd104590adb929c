from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from splitledger.db import get_db
from splitledger.deps import AuthedUser
from splitledger.models import RequestStatus
from splitledger.schemas.common import make_success_response
from splitledger.schemas.transaction_requests import TransactionRequestCreate, TransactionRequestResponse
from splitledger.services.guards import ensure_account_access
from splitledger.services.transaction_requests import TransactionRequestService

router = APIRouter(
    prefix="/api/v1/transaction-requests",
    tags=["Transaction Requests"],
)


def _serialize(request) -> dict:
    return TransactionRequestResponse.model_validate(request).model_dump(mode="json")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_transaction_request(
    payload: TransactionRequestCreate,
    current_user: AuthedUser,
    db: Session = Depends(get_db),
):
    # The sending account must be the caller's own
    ensure_account_access(db, payload.from_account_id, current_user.id)

    request = TransactionRequestService(db).create(
        from_account_id=payload.from_account_id,
        to_account_id=payload.to_account_id,
        category_id=payload.category_id,
        amount=payload.amount,
        currency=payload.currency,
        occurred_on=payload.date,
        description=payload.description,
        created_by=current_user.id,
    )
    return make_success_response(_serialize(request))


@router.get("")
async def list_transaction_requests(
    current_user: AuthedUser,
    direction: str = Query("all"),
    status: Optional[RequestStatus] = None,
    db: Session = Depends(get_db),
):
    requests = TransactionRequestService(db).list_for_user(current_user.id, direction=direction, status=status)
    return make_success_response([_serialize(r) for r in requests])


@router.post("/{request_id}/approve")
async def approve_transaction_request(
    request_id: UUID,
    current_user: AuthedUser,
    db: Session = Depends(get_db),
):
    request = TransactionRequestService(db).approve(request_id, current_user.id)
    return make_success_response(_serialize(request))


@router.post("/{request_id}/reject")
async def reject_transaction_request(
    request_id: UUID,
    current_user: AuthedUser,
    db: Session = Depends(get_db),
):
    request = TransactionRequestService(db).reject(request_id, current_user.id)
    return make_success_response(_serialize(request))
