from datetime import datetime
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import select, update, func, and_, or_
from sqlalchemy.orm import Session, selectinload, contains_eager

from splitledger.models import SharedExpense, ExpenseParticipant, PaymentStatus


def _live_participants_of_expense():
    # Correlated against the enclosing SharedExpense query
    return and_(
        ExpenseParticipant.shared_expense_id == SharedExpense.id,
        ExpenseParticipant.deleted_at.is_(None),
    )


class SharedExpenseRepository:
    """Persistence for the SharedExpense aggregate (expense root + participant rows)."""

    def __init__(self, db: Session):
        self.db = db

    # --- reads ---

    def get_live_expense(self, expense_id: UUID) -> Optional[SharedExpense]:
        return self.db.execute(
            select(SharedExpense).filter(SharedExpense.id == expense_id, SharedExpense.deleted_at.is_(None))
        ).scalar_one_or_none()

    def get_live_participant(self, participant_id: UUID) -> Optional[ExpenseParticipant]:
        return self.db.execute(
            select(ExpenseParticipant)
            .join(ExpenseParticipant.shared_expense)
            .filter(
                ExpenseParticipant.id == participant_id,
                ExpenseParticipant.deleted_at.is_(None),
                SharedExpense.deleted_at.is_(None),
            )
            .options(contains_eager(ExpenseParticipant.shared_expense))
        ).scalar_one_or_none()

    def reload(self, entity):
        self.db.refresh(entity)
        return entity

    def has_paid_participant(self, expense_id: UUID) -> bool:
        return self.db.execute(
            select(ExpenseParticipant.id)
            .filter(
                ExpenseParticipant.shared_expense_id == expense_id,
                ExpenseParticipant.deleted_at.is_(None),
                ExpenseParticipant.status == PaymentStatus.PAID,
            )
            .limit(1)
        ).first() is not None

    def paginate_for_user(
        self, user_id: UUID, status: str, limit: int, offset: int
    ) -> Tuple[List[SharedExpense], int]:
        involved = or_(
            SharedExpense.owner_id == user_id,
            select(ExpenseParticipant.id)
            .where(_live_participants_of_expense(), ExpenseParticipant.payer_id == user_id)
            .exists(),
        )
        has_pending = (
            select(ExpenseParticipant.id)
            .where(_live_participants_of_expense(), ExpenseParticipant.status == PaymentStatus.PENDING)
            .exists()
        )

        conditions = [SharedExpense.deleted_at.is_(None), involved]
        if status == "pending":
            conditions.append(has_pending)
        elif status == "settled":
            conditions.append(~has_pending)

        total = self.db.execute(
            select(func.count()).select_from(SharedExpense).where(*conditions)
        ).scalar_one()

        items = self.db.execute(
            select(SharedExpense)
            .where(*conditions)
            .options(
                selectinload(SharedExpense.participants).selectinload(ExpenseParticipant.payer),
                selectinload(SharedExpense.category),
            )
            .order_by(SharedExpense.created_at.desc(), SharedExpense.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars().all()
        return list(items), total

    def participations_for_user(
        self, user_id: UUID, limit: int, offset: int
    ) -> Tuple[List[ExpenseParticipant], int]:
        conditions = [
            ExpenseParticipant.payer_id == user_id,
            ExpenseParticipant.deleted_at.is_(None),
            SharedExpense.deleted_at.is_(None),
            SharedExpense.owner_id != user_id,
        ]
        total = self.db.execute(
            select(func.count())
            .select_from(ExpenseParticipant)
            .join(ExpenseParticipant.shared_expense)
            .where(*conditions)
        ).scalar_one()

        items = self.db.execute(
            select(ExpenseParticipant)
            .join(ExpenseParticipant.shared_expense)
            .where(*conditions)
            .options(
                contains_eager(ExpenseParticipant.shared_expense).selectinload(SharedExpense.owner),
            )
            .order_by(ExpenseParticipant.created_at.desc(), ExpenseParticipant.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars().all()
        return list(items), total

    def pending_shares_involving(self, user_id: UUID) -> List[ExpenseParticipant]:
        """Live PENDING shares where the user is the owner or the payer, excluding self-shares."""
        return list(
            self.db.execute(
                select(ExpenseParticipant)
                .join(ExpenseParticipant.shared_expense)
                .where(
                    ExpenseParticipant.status == PaymentStatus.PENDING,
                    ExpenseParticipant.deleted_at.is_(None),
                    SharedExpense.deleted_at.is_(None),
                    ExpenseParticipant.payer_id != SharedExpense.owner_id,
                    or_(SharedExpense.owner_id == user_id, ExpenseParticipant.payer_id == user_id),
                )
                .options(
                    contains_eager(ExpenseParticipant.shared_expense).selectinload(SharedExpense.owner),
                    selectinload(ExpenseParticipant.payer),
                )
            ).scalars().all()
        )

    # --- writes ---

    def add_expense(
        self, expense: SharedExpense, participants: Sequence[ExpenseParticipant]
    ) -> SharedExpense:
        self.db.add(expense)
        self.db.flush()
        for participant in participants:
            participant.shared_expense_id = expense.id
            self.db.add(participant)
        self.db.flush()
        return expense

    def mark_participant_paid(self, participant_id: UUID, paid_at: datetime) -> int:
        """PENDING -> PAID, only while the row and its expense are live. Returns rows changed."""
        live_expenses = select(SharedExpense.id).where(SharedExpense.deleted_at.is_(None))
        result = self.db.execute(
            update(ExpenseParticipant)
            .where(
                ExpenseParticipant.id == participant_id,
                ExpenseParticipant.status == PaymentStatus.PENDING,
                ExpenseParticipant.deleted_at.is_(None),
                ExpenseParticipant.shared_expense_id.in_(live_expenses),
            )
            .values(status=PaymentStatus.PAID, paid_at=paid_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def soft_delete_expense(self, expense_id: UUID, deleted_by: UUID, deleted_at: datetime) -> int:
        """Soft-delete the aggregate root unless it is already deleted or has a PAID share."""
        paid_shares = (
            select(ExpenseParticipant.id)
            .where(
                ExpenseParticipant.shared_expense_id == expense_id,
                ExpenseParticipant.deleted_at.is_(None),
                ExpenseParticipant.status == PaymentStatus.PAID,
            )
            .exists()
        )
        result = self.db.execute(
            update(SharedExpense)
            .where(SharedExpense.id == expense_id, SharedExpense.deleted_at.is_(None), ~paid_shares)
            .values(deleted_at=deleted_at, deleted_by=deleted_by)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def soft_delete_participants(self, expense_id: UUID, deleted_by: UUID, deleted_at: datetime) -> int:
        result = self.db.execute(
            update(ExpenseParticipant)
            .where(ExpenseParticipant.shared_expense_id == expense_id, ExpenseParticipant.deleted_at.is_(None))
            .values(deleted_at=deleted_at, deleted_by=deleted_by)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
