"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to turn the
Authorization header into a live Account. The bearer token is checked
locally (signature + expiry), then the account it names is loaded —
a token for a deleted account is rejected like any other bad session.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from strengths.auth.tokens import TokenService, get_token_service
from strengths.db.engine import get_db
from strengths.db.models import Account
from strengths.services.account_service import (
    AccountNotFoundError,
    AccountService,
    UnauthenticatedError,
)


def get_account_service(
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> AccountService:
    return AccountService(db, tokens)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Extract the token from an `Authorization: Bearer ...` header."""
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        return token or None
    return None


async def get_current_account(
    token: Optional[str] = Depends(bearer_token),
    accounts: AccountService = Depends(get_account_service),
) -> Account:
    """Resolve the caller's account (required — 401 if absent or invalid)."""
    if not token:
        raise _unauthorized("Access token required")
    try:
        return await accounts.verify(token)
    except UnauthenticatedError as e:
        raise _unauthorized(str(e))
    except AccountNotFoundError as e:
        raise _unauthorized(str(e))
