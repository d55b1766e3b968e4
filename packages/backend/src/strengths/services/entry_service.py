"""Personal entries — an account's own capability list.

Learn: Writes go through merge_capabilities so the list stays unique
ignoring case. The unique (owner_id, content_key) constraint catches the
rare concurrent double-submit; when that fires, the batch is re-merged
against the fresh list once, which turns the loser into a no-op.
"""

from typing import Iterable

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from strengths.db.errors import is_unique_violation
from strengths.db.models import PersonalEntry
from strengths.services.capability_merge import MergeResult, merge_capabilities
from strengths.services.community_service import EntryNotFoundError

logger = structlog.get_logger()


class EntryService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_entries(self, owner_id: str) -> list[PersonalEntry]:
        result = await self.db.execute(
            select(PersonalEntry)
            .where(PersonalEntry.owner_id == owner_id)
            .order_by(PersonalEntry.created_at.desc(), PersonalEntry.id.desc())
        )
        return list(result.scalars().all())

    async def save_batch(
        self, owner_id: str, items: Iterable[str], attempts: int = 2
    ) -> tuple[MergeResult, list[PersonalEntry]]:
        """Merge `items` into the owner's list; returns the result and new rows."""
        items = list(items)
        attempt = 0
        while True:
            attempt += 1
            existing = [e.content for e in await self.list_entries(owner_id)]
            result = merge_capabilities(existing, items)
            created = [PersonalEntry(owner_id=owner_id, content=c) for c in result.added]
            self.db.add_all(created)
            try:
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                if not is_unique_violation(e) or attempt >= attempts:
                    raise
                logger.info("entries.merge_conflict_retry", owner_id=owner_id)
                continue
            for entry in created:
                await self.db.refresh(entry)
            return result, created

    async def delete_entry(self, owner_id: str, entry_id: int) -> None:
        result = await self.db.execute(
            select(PersonalEntry).where(
                PersonalEntry.id == entry_id, PersonalEntry.owner_id == owner_id
            )
        )
        entry = result.scalars().first()
        if entry is None:
            raise EntryNotFoundError("Entry not found or access denied")
        await self.db.delete(entry)
        await self.db.commit()
