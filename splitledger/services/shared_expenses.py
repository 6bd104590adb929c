"""Shared expense settlement.

An owner splits an expense across participants. Each participant share moves
PENDING -> PAID exactly once, and only the owner may record it. The owner may
cancel (soft-delete) the whole expense while nobody has paid yet.
"""
import decimal
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from splitledger.core.errors import NotFoundError, ValidationError
from splitledger.core.settings import settings
from splitledger.models import SharedExpense, ExpenseParticipant, PaymentStatus, SplitType
from splitledger.repositories.accounts import AccountRepository
from splitledger.repositories.shared_expenses import SharedExpenseRepository
from splitledger.services.audit import log_audit_event
from splitledger.services.guards import get_category, require_owner
from splitledger.services.splits import calculate_shares
from splitledger.services.transaction_requests import parse_currency, parse_positive_amount
from splitledger.services.unit_of_work import atomic

logger = logging.getLogger(__name__)

STATUS_FILTERS = ("pending", "settled", "all")
CANNOT_CANCEL_PAID = "Cannot cancel expense when participants have already paid"
ZERO = decimal.Decimal("0.00")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_split_type(value) -> SplitType:
    if isinstance(value, SplitType):
        return value
    try:
        return SplitType(value)
    except ValueError:
        raise ValidationError.field("split_type", "split_type must be EQUAL, PERCENTAGE, or FIXED")


def page_params(limit: Optional[int], offset: Optional[int]) -> Tuple[int, int]:
    if limit is None:
        limit = settings.DEFAULT_PAGE_LIMIT
    if limit < 1:
        raise ValidationError.field("limit", "limit must be a positive integer")
    offset = offset or 0
    if offset < 0:
        raise ValidationError.field("offset", "offset must be a non-negative integer")
    return min(limit, settings.MAX_PAGE_LIMIT), offset


def _user_ref(user) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {"id": user.id, "email": user.email, "display_name": user.display_name}


def summarize_expense(expense: SharedExpense) -> Dict[str, Any]:
    participants = [p for p in expense.participants if p.deleted_at is None]
    total_owed = sum((p.share_amount for p in participants if p.status == PaymentStatus.PENDING), ZERO)
    total_paid = sum((p.share_amount for p in participants if p.status == PaymentStatus.PAID), ZERO)
    return {
        "id": expense.id,
        "owner_id": expense.owner_id,
        "amount": expense.amount,
        "currency": expense.currency,
        "split_type": expense.split_type,
        "category_id": expense.category_id,
        "category_name": expense.category.name if expense.category else None,
        "date": expense.date,
        "description": expense.description,
        "created_at": expense.created_at,
        "participants": [
            {
                "id": p.id,
                "payer": _user_ref(p.payer),
                "share_amount": p.share_amount,
                "share_percentage": p.share_percentage,
                "status": p.status,
                "paid_at": p.paid_at,
            }
            for p in participants
        ],
        "total_owed": total_owed,
        "total_paid": total_paid,
        "all_settled": all(p.status == PaymentStatus.PAID for p in participants),
    }


class SharedExpenseService:
    def __init__(self, db: Session):
        self.db = db
        self.expenses = SharedExpenseRepository(db)

    def create_shared_expense(
        self,
        owner_id: UUID,
        amount,
        currency,
        category_id: UUID,
        occurred_on: date,
        description: Optional[str] = None,
        participants: Sequence[Dict[str, Any]] = (),
        split_type=SplitType.FIXED,
    ) -> SharedExpense:
        amount = parse_positive_amount(amount)
        currency = parse_currency(currency)
        split_type = parse_split_type(split_type)

        if not participants:
            raise ValidationError.field("participants", "At least one participant is required")
        payer_ids = [p["payer_id"] for p in participants]
        if len(set(payer_ids)) != len(payer_ids):
            raise ValidationError.field("participants", "Duplicate participants are not allowed")

        shares = calculate_shares(split_type, amount, participants)
        for share in shares:
            share["share_amount"] = parse_positive_amount(share["share_amount"], field="participants")

        total_shares = sum((s["share_amount"] for s in shares), ZERO)
        if total_shares != amount:
            raise ValidationError.field(
                "participants",
                f"Share amounts ({total_shares:.2f}) must add up to the expense amount ({amount:.2f})",
            )

        get_category(self.db, category_id)
        found = {u.id for u in AccountRepository(self.db).find_users(payer_ids)}
        missing = [str(pid) for pid in payer_ids if pid not in found]
        if missing:
            raise ValidationError.field("participants", f"Users not found: {', '.join(missing)}")

        with atomic(self.db, "createSharedExpense", owner_id):
            expense = self.expenses.add_expense(
                SharedExpense(
                    owner_id=owner_id,
                    amount=amount,
                    currency=currency,
                    split_type=split_type,
                    category_id=category_id,
                    date=occurred_on,
                    description=description,
                ),
                [
                    ExpenseParticipant(
                        payer_id=s["payer_id"],
                        share_amount=s["share_amount"],
                        share_percentage=s["share_percentage"],
                        status=PaymentStatus.PENDING,
                    )
                    for s in shares
                ],
            )
            log_audit_event(
                self.db, "shared_expense", expense.id, "create", owner_id,
                {"amount": str(amount), "currency": currency.value, "participant_count": len(shares),
                 "split_type": split_type.value},
            )

        self.expenses.reload(expense)
        logger.info(f"Shared expense {expense.id} created by {owner_id} with {len(shares)} participants")
        return expense

    def mark_participant_paid(self, participant_id: UUID, caller_user_id: UUID) -> Dict[str, Any]:
        participant = self.expenses.get_live_participant(participant_id)
        if not participant:
            raise NotFoundError("ExpenseParticipant", participant_id)

        require_owner(
            participant.shared_expense.owner_id, caller_user_id,
            "Only the expense owner can mark payments as received",
        )
        if participant.status != PaymentStatus.PENDING:
            raise self._already_settled(participant, caller_user_id)

        paid_at = _utcnow()
        with atomic(self.db, "markParticipantPaid", caller_user_id):
            if self.expenses.mark_participant_paid(participant.id, paid_at) == 0:
                # Lost a race: either another mark-paid or a cancellation committed first
                self.expenses.reload(participant)
                self.expenses.reload(participant.shared_expense)
                if participant.status != PaymentStatus.PENDING:
                    raise self._already_settled(participant, caller_user_id)
                raise NotFoundError("ExpenseParticipant", participant_id)

            log_audit_event(
                self.db, "expense_participant", participant.id, "mark_paid", caller_user_id,
                {"old_status": PaymentStatus.PENDING.value, "new_status": PaymentStatus.PAID.value},
            )

        logger.info(f"Participant {participant_id} marked paid by {caller_user_id}")
        return {"id": participant.id, "status": PaymentStatus.PAID, "paid_at": paid_at}

    def cancel_shared_expense(self, expense_id: UUID, caller_user_id: UUID) -> Dict[str, Any]:
        expense = self.expenses.get_live_expense(expense_id)
        if not expense:
            raise NotFoundError("SharedExpense", expense_id)

        require_owner(expense.owner_id, caller_user_id, "Only the expense owner can cancel sharing")
        if self.expenses.has_paid_participant(expense.id):
            raise ValidationError.field("participants", CANNOT_CANCEL_PAID)

        deleted_at = _utcnow()
        with atomic(self.db, "cancelSharedExpense", caller_user_id):
            if self.expenses.soft_delete_expense(expense.id, caller_user_id, deleted_at) == 0:
                if self.expenses.has_paid_participant(expense.id):
                    raise ValidationError.field("participants", CANNOT_CANCEL_PAID)
                raise NotFoundError("SharedExpense", expense_id)

            cascaded = self.expenses.soft_delete_participants(expense.id, caller_user_id, deleted_at)
            log_audit_event(
                self.db, "shared_expense", expense.id, "cancel", caller_user_id,
                {"participants_deleted": cascaded},
            )

        logger.info(f"Shared expense {expense_id} cancelled by {caller_user_id} ({cascaded} participants)")
        return {"deleted": True}

    def get_shared_expenses_paginated(
        self,
        user_id: UUID,
        status: str = "all",
        limit: Optional[int] = None,
        offset: Optional[int] = 0,
    ) -> Dict[str, Any]:
        if status not in STATUS_FILTERS:
            raise ValidationError.field("status", 'status must be "pending", "settled", or "all"')
        limit, offset = page_params(limit, offset)

        expenses, total = self.expenses.paginate_for_user(user_id, status, limit, offset)
        return {
            "items": [summarize_expense(e) for e in expenses],
            "total": total,
            "has_more": offset + len(expenses) < total,
        }

    def get_expenses_shared_with_me(
        self, user_id: UUID, limit: Optional[int] = None, offset: Optional[int] = 0
    ) -> Dict[str, Any]:
        limit, offset = page_params(limit, offset)
        participations, total = self.expenses.participations_for_user(user_id, limit, offset)
        items = [
            {
                "id": p.id,
                "share_amount": p.share_amount,
                "share_percentage": p.share_percentage,
                "status": p.status,
                "paid_at": p.paid_at,
                "shared_expense": {
                    "id": p.shared_expense.id,
                    "amount": p.shared_expense.amount,
                    "currency": p.shared_expense.currency,
                    "date": p.shared_expense.date,
                    "description": p.shared_expense.description,
                    "created_at": p.shared_expense.created_at,
                    "owner": _user_ref(p.shared_expense.owner),
                },
            }
            for p in participations
        ]
        return {"items": items, "total": total, "has_more": offset + len(items) < total}

    def get_settlement_balances(self, user_id: UUID) -> List[Dict[str, Any]]:
        """Pending balances per counterpart and currency; currencies are never mixed."""
        balances: Dict[Tuple[UUID, Any], Dict[str, Any]] = {}

        for share in self.expenses.pending_shares_involving(user_id):
            expense = share.shared_expense
            they_owe = expense.owner_id == user_id
            other = share.payer if they_owe else expense.owner
            key = (other.id, expense.currency)
            entry = balances.setdefault(key, {
                "user": _user_ref(other),
                "currency": expense.currency,
                "you_owe": ZERO,
                "they_owe": ZERO,
            })
            if they_owe:
                entry["they_owe"] += share.share_amount
            else:
                entry["you_owe"] += share.share_amount

        result = []
        for entry in balances.values():
            entry["net_balance"] = entry["they_owe"] - entry["you_owe"]
            result.append(entry)
        result.sort(key=lambda b: abs(b["net_balance"]), reverse=True)
        return result

    def lookup_user_for_sharing(self, email: str, caller_email: str) -> Dict[str, Any]:
        """Resolve a participant by email so the owner can add them to a split."""
        email = (email or "").strip().lower()
        if not email:
            raise ValidationError.field("email", "Email is required")
        if email == caller_email.strip().lower():
            raise ValidationError.field("email", "Expenses can only be shared with others.")

        user = AccountRepository(self.db).find_user_by_email(email)
        if user is None:
            raise ValidationError.field("email", "No user found with this email")
        return _user_ref(user)

    def _already_settled(self, participant: ExpenseParticipant, caller_user_id: UUID) -> ValidationError:
        logger.warning(
            f"Participant {participant.id} is {participant.status.value}; mark-paid by {caller_user_id} refused"
        )
        return ValidationError.field("status", f"Share is already {participant.status.value.lower()}")
