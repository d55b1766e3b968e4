"""Google sign-in — authorization code → local account → session token.

Learn: The whole exchange is one state transition with four steps:

1. POST the authorization code to Google's token endpoint → access token
2. GET the userinfo endpoint with that token → id, email, name, picture
3. Resolve a local Account by Google id OR email:
   - found  → attach/refresh google_id and picture (account linking —
     a password account with the same email silently gains Google login)
   - absent → create a Google-only account (no password hash)
4. Commit, and only then issue a session token

Any failure in steps 1-3 is an OAuthExchangeError carrying a short,
user-safe reason. Raw provider responses are logged by status only and
never returned to the browser.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx
import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from strengths.config import settings
from strengths.db.models import Account, fold, utcnow
from strengths.services.account_service import AccountService, AuthResult

logger = structlog.get_logger()

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


class OAuthExchangeError(Exception):
    """Raised when the provider exchange cannot produce a usable profile."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class ProviderProfile:
    external_id: str
    email: str
    name: str
    picture: Optional[str] = None


class GoogleOAuthClient:
    """Thin client for Google's OAuth 2.0 code flow."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._transport = transport
        self._timeout = timeout

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    def authorization_url(self, state: Optional[str] = None) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "prompt": "select_account",
        }
        if state:
            params["state"] = state
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> str:
        """Trade an authorization code for an access token."""
        try:
            async with self._http() as http:
                resp = await http.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "code": code,
                        "grant_type": "authorization_code",
                        "redirect_uri": self.redirect_uri,
                    },
                )
        except httpx.HTTPError as e:
            logger.warning("oauth.token_request_failed", error=type(e).__name__)
            raise OAuthExchangeError("provider_unreachable") from e

        if resp.status_code != 200:
            logger.warning("oauth.token_rejected", status=resp.status_code)
            raise OAuthExchangeError("token_exchange_failed")

        try:
            access_token = resp.json().get("access_token")
        except ValueError:
            access_token = None
        if not access_token:
            raise OAuthExchangeError("token_missing")
        return access_token

    async def fetch_profile(self, access_token: str) -> ProviderProfile:
        try:
            async with self._http() as http:
                resp = await http.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.warning("oauth.profile_request_failed", error=type(e).__name__)
            raise OAuthExchangeError("provider_unreachable") from e

        if resp.status_code != 200:
            logger.warning("oauth.profile_rejected", status=resp.status_code)
            raise OAuthExchangeError("profile_fetch_failed")

        try:
            data = resp.json()
        except ValueError:
            data = {}
        external_id = data.get("id")
        email = data.get("email")
        if not external_id or not email:
            raise OAuthExchangeError("profile_incomplete")

        return ProviderProfile(
            external_id=str(external_id),
            email=email,
            name=data.get("name") or email.split("@")[0],
            picture=data.get("picture"),
        )


def get_oauth_client() -> GoogleOAuthClient:
    """FastAPI dependency — overridden in tests with a mock transport."""
    return GoogleOAuthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_redirect_uri,
    )


class OAuthService:
    """Maps a completed provider login onto a local account session."""

    def __init__(self, accounts: AccountService, provider: GoogleOAuthClient):
        self.accounts = accounts
        self.provider = provider

    @property
    def db(self) -> AsyncSession:
        return self.accounts.db

    async def complete_login(self, code: str) -> AuthResult:
        access_token = await self.provider.exchange_code(code)
        profile = await self.provider.fetch_profile(access_token)
        try:
            account = await self.resolve_account(profile)
        except SQLAlchemyError as e:
            # e.g. a concurrent first login claimed the same google_id or email
            await self.db.rollback()
            logger.exception("oauth.account_link_failed", google_id=profile.external_id)
            raise OAuthExchangeError("account_link_failed") from e
        return AuthResult(token=self.accounts.issue_token(account), account=account)

    async def resolve_account(self, profile: ProviderProfile) -> Account:
        """Find-or-create the local account for a provider profile. Commits."""
        result = await self.db.execute(
            select(Account).where(
                or_(
                    Account.google_id == profile.external_id,
                    Account.email_key == fold(profile.email),
                )
            )
        )
        candidates = list(result.scalars().all())
        # A google_id match beats an email match if both exist
        candidates.sort(key=lambda a: 0 if a.google_id == profile.external_id else 1)
        account = candidates[0] if candidates else None

        if account is not None:
            linked = account.google_id is None
            account.google_id = profile.external_id
            account.picture = profile.picture
            account.updated_at = utcnow()
            await self.db.commit()
            await self.db.refresh(account)
            logger.info("oauth.login", account_id=account.id, linked=linked)
            return account

        account = Account(
            email=profile.email,
            name=profile.name,
            google_id=profile.external_id,
            picture=profile.picture,
        )
        self.db.add(account)
        await self.db.commit()
        await self.db.refresh(account)
        logger.info("oauth.account_created", account_id=account.id)
        return account
