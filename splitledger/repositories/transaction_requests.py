from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update, or_
from sqlalchemy.orm import Session, selectinload

from splitledger.models import TransactionRequest, RequestStatus


class TransactionRequestRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, request_id: UUID) -> Optional[TransactionRequest]:
        return self.db.execute(
            select(TransactionRequest).filter_by(id=request_id)
        ).scalar_one_or_none()

    def reload(self, request: TransactionRequest) -> TransactionRequest:
        self.db.refresh(request)
        return request

    def add(self, request: TransactionRequest) -> TransactionRequest:
        self.db.add(request)
        self.db.flush()
        return request

    def transition(self, request_id: UUID, expected: RequestStatus, new_status: RequestStatus) -> int:
        """Compare-and-set on status. Returns the number of rows changed (0 or 1)."""
        result = self.db.execute(
            update(TransactionRequest)
            .where(TransactionRequest.id == request_id, TransactionRequest.status == expected)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def list_for_accounts(
        self,
        account_ids: Sequence[UUID],
        direction: str = "all",
        status: Optional[RequestStatus] = None,
    ) -> List[TransactionRequest]:
        if not account_ids:
            return []
        if direction == "incoming":
            conditions = [TransactionRequest.to_account_id.in_(account_ids)]
        elif direction == "outgoing":
            conditions = [TransactionRequest.from_account_id.in_(account_ids)]
        else:
            conditions = [or_(
                TransactionRequest.to_account_id.in_(account_ids),
                TransactionRequest.from_account_id.in_(account_ids),
            )]
        if status:
            conditions.append(TransactionRequest.status == status)

        query = (
            select(TransactionRequest)
            .where(*conditions)
            .options(selectinload(TransactionRequest.category))
            .order_by(TransactionRequest.created_at.desc(), TransactionRequest.id.desc())
        )
        return list(self.db.execute(query).scalars().all())
