"""Pydantic schemas for accounts and sessions.

Learn: Separate request schemas (input) from read schemas (output).
AccountRead never carries the password hash or the Google id.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def email_has_at(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError("must be an email address")
        return value.strip()

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        return _not_blank(value)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class PasswordChange(BaseModel):
    current_password: Optional[str] = None
    new_password: str = Field(..., min_length=1)


class AccountRead(BaseModel):
    id: str
    email: str
    name: str
    picture: Optional[str] = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    token: str
    account: AccountRead


class OAuthConfig(BaseModel):
    google_client_id: Optional[str] = None
    enabled: bool
