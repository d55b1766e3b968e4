"""Session token issuance and verification.

Learn: JWT (JSON Web Token) provides stateless authentication. A session
token is a signed assertion of who the caller is:

    sub   — account identity key
    email — account email at issue time
    name  — display name at issue time
    iat   — issued-at
    exp   — expiry (issued-at + 7 days by default)

Verification is a purely local HMAC check — no database, no network.
There is no revocation list: a token stays valid for its full lifetime,
even after logout or a password change.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from strengths.config import settings


class InvalidTokenError(Exception):
    """Raised when a token is malformed, tampered with, or expired."""


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    email: str
    display_name: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """Issues and verifies signed, time-limited session tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(days=7),
    ):
        if not secret:
            raise ValueError("TokenService requires a signing secret")
        self.secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime

    def issue(
        self,
        subject: str,
        email: str,
        display_name: str,
        now: Optional[datetime] = None,
    ) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": subject,
            "email": email,
            "name": display_name,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Verify and decode a token.

        Raises InvalidTokenError on a bad signature, a malformed token,
        missing claims, or an elapsed expiry.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "email", "name", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        return TokenClaims(
            subject=payload["sub"],
            email=payload["email"],
            display_name=payload["name"],
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


def get_token_service() -> TokenService:
    """FastAPI dependency — a TokenService built from settings."""
    return TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        lifetime=timedelta(days=settings.token_expire_days),
    )
