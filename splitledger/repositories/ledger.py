from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from splitledger.models import Transaction


class LedgerRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, transaction: Transaction) -> Transaction:
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def list_for_account(self, account_id: UUID) -> List[Transaction]:
        return list(
            self.db.execute(
                select(Transaction)
                .filter(Transaction.account_id == account_id, Transaction.deleted_at.is_(None))
                .order_by(Transaction.date.desc(), Transaction.created_at.desc())
            ).scalars().all()
        )
