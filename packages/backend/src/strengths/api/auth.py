"""Auth API — registration, login, Google sign-in, profile, account deletion.

Learn: Routes for the account lifecycle:
- POST /auth/register → create a password account, returns {token, account}
- POST /auth/login → email/password → {token, account}
- GET /auth/me → current account
- PATCH /auth/me → change display name
- PUT /auth/password → set or change password
- GET /auth/config → public Google client id for the browser
- GET /auth/google/login → redirect to Google's consent screen
- GET /auth/google/callback → code exchange, then redirect to the app
- DELETE /auth/delete-account → remove the account and its entries

There is no logout route: logout is the client discarding its token.
"""

import json
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse

from strengths.auth.dependencies import get_account_service, get_current_account
from strengths.config import settings
from strengths.db.models import Account
from strengths.schemas.auth import (
    AccountRead,
    AuthResponse,
    LoginRequest,
    OAuthConfig,
    PasswordChange,
    ProfileUpdate,
    RegisterRequest,
)
from strengths.services.account_service import (
    AccountDeletionError,
    AccountNotFoundError,
    AccountService,
    DuplicateAccountError,
    InvalidCredentialsError,
)
from strengths.services.oauth_service import (
    GoogleOAuthClient,
    OAuthExchangeError,
    OAuthService,
    get_oauth_client,
)

router = APIRouter(prefix="/auth")


def _account_json(account: Account) -> dict:
    return AccountRead.model_validate(account).model_dump()


def _frontend_redirect(params: dict) -> RedirectResponse:
    base = settings.frontend_url.rstrip("/")
    return RedirectResponse(
        f"{base}{settings.oauth_callback_path}?{urlencode(params)}",
        status_code=302,
    )


# ─── Register / login ───────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
):
    """Create a password account and sign it in."""
    try:
        result = await accounts.register(body.email, body.password, body.name)
    except DuplicateAccountError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AuthResponse(token=result.token, account=_account_json(result.account))


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    accounts: AccountService = Depends(get_account_service),
):
    try:
        result = await accounts.login(body.email, body.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return AuthResponse(token=result.token, account=_account_json(result.account))


# ─── Current account ────────────────────────────────────


@router.get("/me", response_model=AccountRead)
async def get_me(account: Account = Depends(get_current_account)):
    return account


@router.patch("/me", response_model=AccountRead)
async def update_me(
    body: ProfileUpdate,
    account: Account = Depends(get_current_account),
    accounts: AccountService = Depends(get_account_service),
):
    return await accounts.update_profile(account, name=body.name)


@router.put("/password")
async def change_password(
    body: PasswordChange,
    account: Account = Depends(get_current_account),
    accounts: AccountService = Depends(get_account_service),
):
    """Set or change the password. Tokens already issued stay valid."""
    try:
        await accounts.change_password(
            account, body.new_password, current_password=body.current_password
        )
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return {"updated": True}


@router.delete("/delete-account")
async def delete_account(
    account: Account = Depends(get_current_account),
    accounts: AccountService = Depends(get_account_service),
):
    """Delete the caller's account and all of its personal entries."""
    try:
        removed = await accounts.delete_account(account.id)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AccountDeletionError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"message": "Account deleted successfully", "entries_removed": removed}


# ─── Google OAuth ───────────────────────────────────────


@router.get("/config", response_model=OAuthConfig)
async def oauth_config():
    return OAuthConfig(
        google_client_id=settings.google_client_id or None,
        enabled=settings.google_oauth_enabled,
    )


@router.get("/google/login")
async def google_login(
    state: Optional[str] = None,
    provider: GoogleOAuthClient = Depends(get_oauth_client),
):
    return RedirectResponse(provider.authorization_url(state=state), status_code=302)


@router.get("/google/callback")
async def google_callback(
    code: Optional[str] = None,
    error: Optional[str] = None,
    accounts: AccountService = Depends(get_account_service),
    provider: GoogleOAuthClient = Depends(get_oauth_client),
):
    """Finish Google sign-in and hand the session back to the browser.

    Learn: Every outcome is a redirect. Success carries `token` and a
    JSON `user` profile; failure carries only a short `error` code.
    The token is issued after the account write has committed.
    """
    if error:
        return _frontend_redirect({"error": "access_denied"})
    if not code:
        return _frontend_redirect({"error": "missing_code"})

    try:
        result = await OAuthService(accounts, provider).complete_login(code)
    except OAuthExchangeError as e:
        return _frontend_redirect({"error": e.reason})

    profile = json.dumps(_account_json(result.account), separators=(",", ":"))
    return _frontend_redirect({"token": result.token, "user": profile})
