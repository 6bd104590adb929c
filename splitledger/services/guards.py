"""Ownership and existence checks shared by the workflows.

Checks that cross a trust boundary (someone else's account) answer with the same
``Access denied`` whether the row is missing or foreign, so callers cannot probe
for other users' resources. Plain existence checks may answer ``NotFound``.
"""
from uuid import UUID

from sqlalchemy.orm import Session

from splitledger.core.errors import ForbiddenError, NotFoundError
from splitledger.models import Account, Category
from splitledger.repositories.accounts import AccountRepository

ACCESS_DENIED = "Access denied"


def ensure_account_access(db: Session, account_id: UUID, user_id: UUID) -> Account:
    account = AccountRepository(db).get_live(account_id)
    if not account or account.user_id != user_id:
        raise ForbiddenError(ACCESS_DENIED)
    return account


def require_owner(owner_id: UUID, caller_user_id: UUID, message: str = ACCESS_DENIED) -> None:
    if owner_id != caller_user_id:
        raise ForbiddenError(message)


def get_live_account(db: Session, account_id: UUID) -> Account:
    account = AccountRepository(db).get_live(account_id)
    if not account:
        raise NotFoundError("Account", account_id)
    return account


def get_category(db: Session, category_id: UUID) -> Category:
    category = AccountRepository(db).get_category(category_id)
    if not category:
        raise NotFoundError("Category", category_id)
    return category
