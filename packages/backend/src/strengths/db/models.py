"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).

Three tables:
- accounts: one row per person, password and/or Google sign-in
- personal_entries: a person's own capability list
- community_entries: the shared, anonymous category/capability vocabulary

Every free-text column that must be unique "ignoring case" has a shadow
*_key column holding its lower-cased form. The unique constraints live on
those key columns, and @validates keeps them in sync on every assignment.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_account_id() -> str:
    return f"user_{uuid.uuid4().hex}"


def fold(value: str) -> str:
    """Case-folded comparison key for a label."""
    return value.strip().lower()


class Account(Base):
    """A person who can sign in.

    Learn: an account needs at least one way in — a bcrypt password hash,
    a Google id, or both. Password accounts get linked to Google the first
    time the same email signs in with Google.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            "password_hash IS NOT NULL OR google_id IS NOT NULL",
            name="ck_accounts_login_method",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=new_account_id
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    email_key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    google_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    picture: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=utcnow
    )

    entries: Mapped[list["PersonalEntry"]] = relationship(
        back_populates="owner", passive_deletes=True
    )

    @validates("email")
    def _sync_email_key(self, key, value):
        self.email_key = fold(value)
        return value


class PersonalEntry(Base):
    """One capability on an account's personal list."""

    __tablename__ = "personal_entries"
    __table_args__ = (
        UniqueConstraint("owner_id", "content_key", name="uq_personal_entries_owner_content"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    content_key: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    owner: Mapped["Account"] = relationship(back_populates="entries")

    @validates("content")
    def _sync_content_key(self, key, value):
        self.content_key = fold(value)
        return value


class CommunityEntry(Base):
    """A (category, capability) pair in the shared vocabulary. No owner."""

    __tablename__ = "community_entries"
    __table_args__ = (
        UniqueConstraint(
            "category_key", "capability_key", name="uq_community_entries_pair"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    category_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    capability: Mapped[str] = mapped_column(String(255), nullable=False)
    capability_key: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    @validates("category")
    def _sync_category_key(self, key, value):
        self.category_key = fold(value)
        return value

    @validates("capability")
    def _sync_capability_key(self, key, value):
        self.capability_key = fold(value)
        return value
