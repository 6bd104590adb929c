import decimal
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from splitledger.models import Transaction, TransactionType, Currency
from splitledger.repositories.ledger import LedgerRepository
from splitledger.utils.money import month_start


def post_transaction(
    db: Session,
    account_id: UUID,
    category_id: UUID,
    type: TransactionType,
    amount: decimal.Decimal,
    currency: Currency,
    occurred_on: date,
    description: Optional[str] = None,
) -> Transaction:
    """Add a ledger entry to the caller's unit of work. Commit is the caller's job."""
    return LedgerRepository(db).add(
        Transaction(
            account_id=account_id,
            category_id=category_id,
            type=type,
            amount=amount,
            currency=currency,
            date=occurred_on,
            month=month_start(occurred_on),
            description=description,
        )
    )
