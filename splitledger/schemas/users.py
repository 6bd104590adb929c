from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from splitledger.models import AccountType, Currency


class AccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    type: AccountType


class MeResponse(BaseModel):
    id: UUID
    email: str
    display_name: Optional[str] = None
    preferred_currency: Currency
    accounts: List[AccountOut]
