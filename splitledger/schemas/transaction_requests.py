import decimal
from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from splitledger.models import Currency, RequestStatus
from splitledger.schemas.common import Money, Timestamp


class TransactionRequestCreate(BaseModel):
    from_account_id: UUID
    to_account_id: UUID
    category_id: UUID
    amount: decimal.Decimal
    currency: Currency = Currency.USD
    date: date
    description: Optional[str] = Field(None, max_length=500)


class TransactionRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    from_account_id: UUID
    to_account_id: UUID
    category_id: UUID
    amount: Money
    currency: Currency
    date: date
    description: Optional[str] = None
    status: RequestStatus
    created_at: Timestamp
    updated_at: Optional[Timestamp] = None
