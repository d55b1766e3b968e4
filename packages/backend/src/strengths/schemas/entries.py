"""Pydantic schemas for personal and community entries."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


# ─── Personal entries ───────────────────────────────────

class EntryCreate(BaseModel):
    content: str = Field(..., min_length=1)

    @field_validator("content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _not_blank(value)


class EntryBatch(BaseModel):
    items: list[str] = Field(default_factory=list)


class EntryRead(BaseModel):
    id: int
    content: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class EntryBatchResult(BaseModel):
    added: list[EntryRead]
    skipped: list[str]
    notice: Optional[str] = None


# ─── Community entries ──────────────────────────────────

class CommunityEntryCreate(BaseModel):
    category: str = Field(..., min_length=1, max_length=255)
    capability: str = Field(..., min_length=1, max_length=255)

    @field_validator("category", "capability")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _not_blank(value)


class CommunityEntryRead(BaseModel):
    id: int
    category: str
    capability: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CommunitySubmitResult(BaseModel):
    entry: CommunityEntryRead
    created: bool


class CapabilityUpdate(BaseModel):
    capability: str = Field(..., min_length=1, max_length=255)

    @field_validator("capability")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _not_blank(value)


class CapabilityUpdateResult(BaseModel):
    entry: CommunityEntryRead
    merged: bool


class CategoryRename(BaseModel):
    old_category: str = Field(..., min_length=1)
    new_category: str = Field(..., min_length=1, max_length=255)

    @field_validator("old_category", "new_category")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _not_blank(value)


class CategoryRenameResult(BaseModel):
    category: str
    moved: int
    removed: int
    merged: bool
