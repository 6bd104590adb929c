from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, Request, Response
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from sqlalchemy import select

from splitledger.db import get_db
from splitledger.core.errors import UnauthorizedError, RateLimitedError
from splitledger.core.security import decode_access_token
from splitledger.models import User
from splitledger.services.rate_limit import RateLimiter

# OAuth2 Scheme (token issuance lives with the identity provider)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)

# Verified caller passed into the workflows
class CurrentUser:
    def __init__(self, id: UUID, email: str, display_name: Optional[str] = None):
        self.id = id
        self.email = email
        self.display_name = display_name

# --- Validate JWT & Fetch from DB ---
async def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Session = Depends(get_db)
) -> CurrentUser:
    if not token:
        raise UnauthorizedError("Missing Authorization header")

    # 1. Decode JWT Token
    try:
        payload = decode_access_token(token)
        user_id = UUID(str(payload.get("sub")))
    except Exception:
        raise UnauthorizedError()

    # 2. Fetch User from DB
    user = db.execute(select(User).filter(User.id == user_id)).scalar_one_or_none()
    if user is None:
        raise UnauthorizedError("User not found")

    return CurrentUser(id=user.id, email=user.email, display_name=user.display_name)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


async def enforce_rate_limit(
    response: Response,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> CurrentUser:
    result = limiter.check(str(current_user.id))
    if not result.allowed:
        raise RateLimitedError(result.retry_after)
    response.headers["X-RateLimit-Limit"] = str(result.limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    return current_user


# Authenticated and within quota; what most routes depend on
AuthedUser = Annotated[CurrentUser, Depends(enforce_rate_limit)]
