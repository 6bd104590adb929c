import decimal
from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from splitledger.models import Currency, PaymentStatus, SplitType
from splitledger.schemas.common import Money, Timestamp


class ParticipantIn(BaseModel):
    payer_id: UUID
    share_amount: Optional[decimal.Decimal] = None
    share_percentage: Optional[decimal.Decimal] = None  # PERCENTAGE splits only


class SharedExpenseCreate(BaseModel):
    amount: decimal.Decimal
    currency: Currency = Currency.USD
    category_id: UUID
    date: date
    description: Optional[str] = Field(None, max_length=500)
    split_type: SplitType = SplitType.FIXED
    participants: List[ParticipantIn]


class UserRef(BaseModel):
    id: UUID
    email: str
    display_name: Optional[str] = None


class ParticipantOut(BaseModel):
    id: UUID
    payer: Optional[UserRef] = None
    share_amount: Money
    share_percentage: Optional[Money] = None
    status: PaymentStatus
    paid_at: Optional[Timestamp] = None


class SharedExpenseOut(BaseModel):
    id: UUID
    owner_id: UUID
    amount: Money
    currency: Currency
    split_type: SplitType
    category_id: UUID
    category_name: Optional[str] = None
    date: date
    description: Optional[str] = None
    created_at: Timestamp
    participants: List[ParticipantOut]
    total_owed: Money
    total_paid: Money
    all_settled: bool


class SharedExpensePage(BaseModel):
    expenses: List[SharedExpenseOut]
    total: int
    has_more: bool


class MarkPaidResponse(BaseModel):
    id: UUID
    status: PaymentStatus
    paid_at: Timestamp


class CancelResponse(BaseModel):
    deleted: bool


class ParticipationExpense(BaseModel):
    id: UUID
    amount: Money
    currency: Currency
    date: date
    description: Optional[str] = None
    created_at: Timestamp
    owner: Optional[UserRef] = None


class ParticipationOut(BaseModel):
    id: UUID
    share_amount: Money
    share_percentage: Optional[Money] = None
    status: PaymentStatus
    paid_at: Optional[Timestamp] = None
    shared_expense: ParticipationExpense


class ParticipationPage(BaseModel):
    participations: List[ParticipationOut]
    total: int
    has_more: bool


class SettlementBalanceOut(BaseModel):
    user: UserRef
    currency: Currency
    you_owe: Money
    they_owe: Money
    net_balance: Money
