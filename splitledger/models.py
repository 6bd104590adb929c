import uuid
import enum
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Date, ForeignKey, Numeric, UniqueConstraint, Index, Text, Uuid, JSON
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Enums ---
class Currency(enum.Enum):
    USD = "USD"
    EUR = "EUR"
    ILS = "ILS"

class TransactionType(enum.Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"

class AccountType(enum.Enum):
    SELF = "SELF"
    PARTNER = "PARTNER"
    OTHER = "OTHER"

class RequestStatus(enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"   # terminal
    REJECTED = "REJECTED"   # terminal

class PaymentStatus(enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"           # terminal

class SplitType(enum.Enum):
    EQUAL = "EQUAL"
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"

# --- Models ---

class User(Base):
    __tablename__ = "users"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String, nullable=False, unique=True)
    display_name = Column(String, nullable=True)
    preferred_currency = Column(SAEnum(Currency, name="currency"), default=Currency.USD, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    accounts = relationship("Account", back_populates="user")

    def __repr__(self):
        return f"<User(email='{self.email}')>"

class Account(Base):
    __tablename__ = "accounts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    type = Column(SAEnum(AccountType, name="account_type"), default=AccountType.SELF, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_account_user_name"),
    )

    user = relationship("User", back_populates="accounts")

    def __repr__(self):
        return f"<Account(name='{self.name}', type='{self.type.value}')>"

class Category(Base):
    __tablename__ = "categories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    type = Column(SAEnum(TransactionType, name="transaction_type"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "name", "type", name="uq_category_user_name_type"),
    )

    def __repr__(self):
        return f"<Category(name='{self.name}', type='{self.type.value}')>"

class Transaction(Base):
    """Ledger entry on one account."""
    __tablename__ = "transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid, ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False)
    category_id = Column(Uuid, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False)
    type = Column(SAEnum(TransactionType, name="transaction_type"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(SAEnum(Currency, name="currency"), nullable=False)
    date = Column(Date, nullable=False)
    month = Column(Date, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_transactions_account_month", "account_id", "month"),
    )

    account = relationship("Account")
    category = relationship("Category")

class TransactionRequest(Base):
    __tablename__ = "transaction_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    from_account_id = Column(Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    to_account_id = Column(Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    category_id = Column(Uuid, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(SAEnum(Currency, name="currency"), nullable=False)
    date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SAEnum(RequestStatus, name="request_status"), default=RequestStatus.PENDING, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=_utcnow, nullable=True)

    __table_args__ = (
        Index("ix_transaction_requests_to_status", "to_account_id", "status"),
    )

    from_account = relationship("Account", foreign_keys=[from_account_id])
    to_account = relationship("Account", foreign_keys=[to_account_id])
    category = relationship("Category")

    def __repr__(self):
        return f"<TransactionRequest(id='{self.id}', status='{self.status.value}')>"

class SharedExpense(Base):
    __tablename__ = "shared_expenses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(SAEnum(Currency, name="currency"), default=Currency.USD, nullable=False)
    split_type = Column(SAEnum(SplitType, name="split_type"), default=SplitType.FIXED, nullable=False)
    category_id = Column(Uuid, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False)
    date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=_utcnow, nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(Uuid, nullable=True)

    __table_args__ = (
        Index("ix_shared_expenses_owner_created", "owner_id", "created_at"),
    )

    owner = relationship("User")
    category = relationship("Category")
    participants = relationship(
        "ExpenseParticipant",
        back_populates="shared_expense",
        order_by="ExpenseParticipant.created_at",
    )

    def __repr__(self):
        return f"<SharedExpense(id='{self.id}', amount='{self.amount}')>"

class ExpenseParticipant(Base):
    __tablename__ = "expense_participants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    shared_expense_id = Column(Uuid, ForeignKey("shared_expenses.id", ondelete="CASCADE"), nullable=False)
    payer_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    share_amount = Column(Numeric(12, 2), nullable=False)
    share_percentage = Column(Numeric(5, 2), nullable=True)
    status = Column(SAEnum(PaymentStatus, name="payment_status"), default=PaymentStatus.PENDING, nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(Uuid, nullable=True)

    __table_args__ = (
        UniqueConstraint("shared_expense_id", "payer_id", name="uq_participant_expense_payer"),
        Index("ix_expense_participants_payer_status", "payer_id", "status"),
    )

    shared_expense = relationship("SharedExpense", back_populates="participants")
    payer = relationship("User")

    def __repr__(self):
        return f"<ExpenseParticipant(id='{self.id}', status='{self.status.value}')>"

class AuditLog(Base):
    __tablename__ = "audit_logs"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_type = Column(String, nullable=False)
    entity_id = Column(Uuid, nullable=False)
    action = Column(String, nullable=False)
    performed_by = Column(String, nullable=False)
    performed_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    details_json = Column(JSON, nullable=True)
