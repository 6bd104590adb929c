"""Transaction request workflow: PENDING -> APPROVED | REJECTED.

A request is created against the sender's account and decided by the owner of
the receiving account. Approval posts the ledger entry on the receiver's books
in the same database transaction as the status change.
"""
import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from splitledger.core.errors import NotFoundError, ValidationError
from splitledger.models import TransactionRequest, RequestStatus, TransactionType, Currency
from splitledger.repositories.accounts import AccountRepository
from splitledger.repositories.transaction_requests import TransactionRequestRepository
from splitledger.services.audit import log_audit_event
from splitledger.services.guards import ensure_account_access, get_live_account, get_category
from splitledger.services.ledger import post_transaction
from splitledger.services.unit_of_work import atomic
from splitledger.utils.money import to_money

logger = logging.getLogger(__name__)

DIRECTIONS = ("incoming", "outgoing", "all")


def parse_currency(value) -> Currency:
    if isinstance(value, Currency):
        return value
    try:
        return Currency(value)
    except ValueError:
        allowed = ", ".join(c.value for c in Currency)
        raise ValidationError.field("currency", f"Currency must be one of: {allowed}")


def parse_positive_amount(value, field: str = "amount"):
    try:
        amount = to_money(value)
    except ValueError as exc:
        raise ValidationError.field(field, str(exc))
    if amount <= 0:
        raise ValidationError.field(field, "Amount must be greater than 0")
    return amount


class TransactionRequestService:
    def __init__(self, db: Session):
        self.db = db
        self.requests = TransactionRequestRepository(db)

    def create(
        self,
        from_account_id: UUID,
        to_account_id: UUID,
        category_id: UUID,
        amount,
        currency,
        occurred_on: date,
        description: Optional[str] = None,
        created_by: Optional[UUID] = None,
    ) -> TransactionRequest:
        amount = parse_positive_amount(amount)
        currency = parse_currency(currency)
        if from_account_id == to_account_id:
            raise ValidationError.field("to_account_id", "Cannot send a request to the same account")

        get_live_account(self.db, from_account_id)
        get_live_account(self.db, to_account_id)
        get_category(self.db, category_id)

        with atomic(self.db, "createTransactionRequest", created_by):
            request = self.requests.add(
                TransactionRequest(
                    from_account_id=from_account_id,
                    to_account_id=to_account_id,
                    category_id=category_id,
                    amount=amount,
                    currency=currency,
                    date=occurred_on,
                    description=description,
                    status=RequestStatus.PENDING,
                )
            )
            log_audit_event(
                self.db, "transaction_request", request.id, "create", created_by or "system",
                {"amount": str(amount), "currency": currency.value, "to_account_id": str(to_account_id)},
            )

        logger.info(f"Transaction request {request.id} created from account {from_account_id}")
        return request

    def approve(self, request_id: UUID, caller_user_id: UUID) -> TransactionRequest:
        request = self._load_for_recipient(request_id, caller_user_id)
        self._ensure_pending(request, caller_user_id)

        with atomic(self.db, "approveTransactionRequest", caller_user_id):
            if self.requests.transition(request.id, RequestStatus.PENDING, RequestStatus.APPROVED) == 0:
                # Another approve/reject committed between our read and our write
                self.requests.reload(request)
                raise self._already_processed(request, caller_user_id)

            entry = post_transaction(
                self.db,
                account_id=request.to_account_id,
                category_id=request.category_id,
                type=TransactionType.EXPENSE,
                amount=request.amount,
                currency=request.currency,
                occurred_on=request.date,
                description=request.description,
            )
            log_audit_event(
                self.db, "transaction_request", request.id, "approve", caller_user_id,
                {"old_status": RequestStatus.PENDING.value, "new_status": RequestStatus.APPROVED.value,
                 "transaction_id": str(entry.id)},
            )

        self.requests.reload(request)
        logger.info(f"Transaction request {request.id} approved by {caller_user_id}")
        return request

    def reject(self, request_id: UUID, caller_user_id: UUID) -> TransactionRequest:
        request = self._load_for_recipient(request_id, caller_user_id)
        self._ensure_pending(request, caller_user_id)

        with atomic(self.db, "rejectTransactionRequest", caller_user_id):
            if self.requests.transition(request.id, RequestStatus.PENDING, RequestStatus.REJECTED) == 0:
                self.requests.reload(request)
                raise self._already_processed(request, caller_user_id)
            log_audit_event(
                self.db, "transaction_request", request.id, "reject", caller_user_id,
                {"old_status": RequestStatus.PENDING.value, "new_status": RequestStatus.REJECTED.value},
            )

        self.requests.reload(request)
        logger.info(f"Transaction request {request.id} rejected by {caller_user_id}")
        return request

    def list_for_user(
        self, user_id: UUID, direction: str = "all", status: Optional[RequestStatus] = None
    ) -> List[TransactionRequest]:
        if direction not in DIRECTIONS:
            raise ValidationError.field("direction", 'direction must be "incoming", "outgoing", or "all"')
        account_ids = AccountRepository(self.db).ids_for_user(user_id)
        return self.requests.list_for_accounts(account_ids, direction=direction, status=status)

    # --- helpers ---

    def _load_for_recipient(self, request_id: UUID, caller_user_id: UUID) -> TransactionRequest:
        request = self.requests.get(request_id)
        if not request:
            raise NotFoundError("TransactionRequest", request_id)
        ensure_account_access(self.db, request.to_account_id, caller_user_id)
        return request

    def _ensure_pending(self, request: TransactionRequest, caller_user_id: UUID) -> None:
        if request.status != RequestStatus.PENDING:
            raise self._already_processed(request, caller_user_id)

    def _already_processed(self, request: TransactionRequest, caller_user_id: UUID) -> ValidationError:
        logger.warning(
            f"Transaction request {request.id} is {request.status.value}; "
            f"transition by {caller_user_id} refused"
        )
        return ValidationError.field("status", f"Request is already {request.status.value.lower()}")
