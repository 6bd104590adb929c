from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from splitledger.core.errors import NotFoundError
from splitledger.db import get_db
from splitledger.deps import AuthedUser
from splitledger.repositories.accounts import AccountRepository
from splitledger.schemas.common import make_success_response
from splitledger.schemas.shared_expenses import UserRef
from splitledger.schemas.users import AccountOut, MeResponse
from splitledger.services.shared_expenses import SharedExpenseService

router = APIRouter(
    prefix="/api/v1/users",
    tags=["Users"],
)


@router.get("/me")
async def get_me(current_user: AuthedUser, db: Session = Depends(get_db)):
    repo = AccountRepository(db)
    user = repo.get_user(current_user.id)
    if user is None:
        raise NotFoundError("User", current_user.id)

    data = MeResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        preferred_currency=user.preferred_currency,
        accounts=[AccountOut.model_validate(a) for a in repo.list_for_user(user.id)],
    )
    return make_success_response(data.model_dump(mode="json"))


# Find someone to share an expense with
@router.get("/lookup")
async def lookup_user(
    current_user: AuthedUser,
    email: str = Query(..., max_length=320),
    db: Session = Depends(get_db),
):
    user = SharedExpenseService(db).lookup_user_for_sharing(email, current_user.email)
    return make_success_response({"user": UserRef.model_validate(user).model_dump(mode="json")})
