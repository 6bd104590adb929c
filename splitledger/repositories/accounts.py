from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from splitledger.models import Account, Category, User


class AccountRepository:
    """Read access to the collaborator entities: users, accounts, categories."""

    def __init__(self, db: Session):
        self.db = db

    def get_live(self, account_id: UUID) -> Optional[Account]:
        return self.db.execute(
            select(Account).filter(Account.id == account_id, Account.deleted_at.is_(None))
        ).scalar_one_or_none()

    def ids_for_user(self, user_id: UUID) -> List[UUID]:
        return list(
            self.db.execute(
                select(Account.id).filter(Account.user_id == user_id, Account.deleted_at.is_(None))
            ).scalars().all()
        )

    def get_category(self, category_id: UUID) -> Optional[Category]:
        return self.db.execute(select(Category).filter_by(id=category_id)).scalar_one_or_none()

    def get_user(self, user_id: UUID) -> Optional[User]:
        return self.db.execute(select(User).filter_by(id=user_id)).scalar_one_or_none()

    def find_user_by_email(self, email: str) -> Optional[User]:
        return self.db.execute(
            select(User).filter(func.lower(User.email) == email.strip().lower())
        ).scalar_one_or_none()

    def find_users(self, user_ids: Iterable[UUID]) -> List[User]:
        user_ids = list(user_ids)
        if not user_ids:
            return []
        return list(self.db.execute(select(User).filter(User.id.in_(user_ids))).scalars().all())

    def list_for_user(self, user_id: UUID) -> List[Account]:
        return list(
            self.db.execute(
                select(Account)
                .filter(Account.user_id == user_id, Account.deleted_at.is_(None))
                .order_by(Account.created_at)
            ).scalars().all()
        )
