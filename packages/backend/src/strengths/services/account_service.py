"""Account service — register, login, verify, profile, and account deletion.

Learn: This is the server side of the session state machine:

    Anonymous ──register/login/oauth──▶ Authenticated ──logout/expiry──▶ Anonymous

Logout has no server-side effect; the client just drops its token. What
the server does own is turning credentials into a token (register, login)
and turning a token back into a live Account (verify). Verification fails
in two distinct ways: the token itself is bad (UnauthenticatedError), or
the token is fine but the account was deleted after it was issued
(AccountNotFoundError). Both mean "sign in again", never "retry".
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from strengths.auth.password import burn_password_check, hash_password, verify_password
from strengths.auth.tokens import InvalidTokenError, TokenService
from strengths.db.errors import is_unique_violation
from strengths.db.models import Account, PersonalEntry, fold

logger = structlog.get_logger()


class DuplicateAccountError(Exception):
    pass


class InvalidCredentialsError(Exception):
    """Deliberately uninformative: unknown email and wrong password look alike."""


class UnauthenticatedError(Exception):
    pass


class AccountNotFoundError(Exception):
    pass


class AccountDeletionError(Exception):
    pass


@dataclass
class AuthResult:
    token: str
    account: Account


class AccountService:
    """Business logic for accounts and password sessions."""

    def __init__(self, db: AsyncSession, tokens: TokenService):
        self.db = db
        self.tokens = tokens

    def issue_token(self, account: Account) -> str:
        return self.tokens.issue(account.id, account.email, account.name)

    async def find_by_email(self, email: str) -> Optional[Account]:
        result = await self.db.execute(
            select(Account).where(Account.email_key == fold(email))
        )
        return result.scalars().first()

    async def get(self, account_id: str) -> Optional[Account]:
        return await self.db.get(Account, account_id)

    # ─── Register / login ──────────────────────────────

    async def register(self, email: str, password: str, name: str) -> AuthResult:
        email = email.strip()
        if await self.find_by_email(email):
            raise DuplicateAccountError("An account with this email already exists")

        account = Account(
            email=email,
            name=name.strip(),
            password_hash=hash_password(password),
        )
        self.db.add(account)
        try:
            await self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent registration for the same email
            await self.db.rollback()
            if is_unique_violation(e):
                raise DuplicateAccountError(
                    "An account with this email already exists"
                ) from e
            raise
        await self.db.refresh(account)

        logger.info("auth.registered", account_id=account.id)
        return AuthResult(token=self.issue_token(account), account=account)

    async def login(self, email: str, password: str) -> AuthResult:
        account = await self.find_by_email(email)
        if account is None:
            burn_password_check(password)
            logger.info("auth.login_failed")
            raise InvalidCredentialsError("Invalid email or password")

        if not account.password_hash:
            # Google-only account: same cost as a wrong password
            burn_password_check(password)
            logger.info("auth.login_failed", account_id=account.id)
            raise InvalidCredentialsError("Invalid email or password")

        if not verify_password(password, account.password_hash):
            logger.info("auth.login_failed", account_id=account.id)
            raise InvalidCredentialsError("Invalid email or password")

        logger.info("auth.login", account_id=account.id)
        return AuthResult(token=self.issue_token(account), account=account)

    # ─── Verification gate ─────────────────────────────

    async def verify(self, token: str) -> Account:
        """Resolve a bearer token to a live Account."""
        try:
            claims = self.tokens.verify(token)
        except InvalidTokenError as e:
            raise UnauthenticatedError(str(e)) from e

        account = await self.get(claims.subject)
        if account is None:
            raise AccountNotFoundError("Account no longer exists")
        return account

    # ─── Profile ───────────────────────────────────────

    async def update_profile(self, account: Account, name: Optional[str] = None) -> Account:
        if name is not None:
            account.name = name.strip()
        await self.db.commit()
        await self.db.refresh(account)
        return account

    async def change_password(
        self,
        account: Account,
        new_password: str,
        current_password: Optional[str] = None,
    ) -> Account:
        """Set or replace the password.

        A Google-only account has no password yet and may set one without
        a current password; otherwise the current one must match.
        Existing tokens stay valid until they expire.
        """
        if account.password_hash and not verify_password(
            current_password or "", account.password_hash
        ):
            raise InvalidCredentialsError("Current password is incorrect")

        account.password_hash = hash_password(new_password)
        await self.db.commit()
        await self.db.refresh(account)
        logger.info("auth.password_changed", account_id=account.id)
        return account

    # ─── Deletion ──────────────────────────────────────

    async def delete_account(self, account_id: str) -> int:
        """Delete an account and everything it owns, in one transaction.

        Personal entries go first, then the account row. Returns the number
        of entries removed. Any failure rolls the whole thing back.
        """
        try:
            entries = await self.db.execute(
                delete(PersonalEntry).where(PersonalEntry.owner_id == account_id)
            )
            accounts = await self.db.execute(
                delete(Account).where(Account.id == account_id)
            )
            if accounts.rowcount == 0:
                raise AccountNotFoundError("Account no longer exists")
            await self.db.commit()
        except AccountNotFoundError:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.exception("account.delete_failed", account_id=account_id)
            raise AccountDeletionError("Account deletion failed; nothing was removed") from e

        removed = entries.rowcount or 0
        logger.info("account.deleted", account_id=account_id, entries_removed=removed)
        return removed
