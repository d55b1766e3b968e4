"""Community vocabulary — submit, rename, merge, and delete shared labels.

Learn: The community list is open-write: anyone can add a (category,
capability) pair, rename a category, or fix a capability label. The
service keeps it from fragmenting:

- submit: both labels are canonicalized against what's already stored
  (first writer wins); an existing canonical pair makes it a silent no-op.
- rename_category: moving a category onto a name that already exists is
  a merge — everything lands under the existing spelling, and any
  capability that now appears twice in the merged category is collapsed
  to its earliest row.
- rename_capability: same canonicalization and duplicate guard, scoped
  to the entry's own category.

The read-then-write guards are backed by a unique constraint on the
lower-cased pair; a concurrent insert that loses the race is reported
as the same duplicate no-op.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from strengths.db.errors import is_unique_violation
from strengths.db.models import CommunityEntry
from strengths.services.taxonomy import (
    label_key,
    normalize_capability,
    normalize_category,
)

logger = structlog.get_logger()


class EntryNotFoundError(Exception):
    pass


@dataclass
class SubmitResult:
    entry: CommunityEntry
    created: bool


@dataclass
class RenameResult:
    category: str
    moved: int = 0
    removed: int = 0
    merged: bool = False


@dataclass
class CapabilityRenameResult:
    entry: CommunityEntry
    merged: bool = False


class CommunityService:
    """Business logic for the shared category/capability list."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Reads ──────────────────────────────────────────

    async def list_entries(self) -> list[CommunityEntry]:
        result = await self.db.execute(
            select(CommunityEntry).order_by(
                CommunityEntry.created_at.desc(), CommunityEntry.id.desc()
            )
        )
        return list(result.scalars().all())

    async def categories(self) -> list[str]:
        """Distinct stored category spellings, oldest first."""
        result = await self.db.execute(
            select(CommunityEntry.category).order_by(CommunityEntry.id)
        )
        seen: dict[str, str] = {}
        for category in result.scalars():
            seen.setdefault(label_key(category), category)
        return list(seen.values())

    async def entries_in_category(self, category: str) -> list[CommunityEntry]:
        result = await self.db.execute(
            select(CommunityEntry)
            .where(CommunityEntry.category_key == label_key(category))
            .order_by(CommunityEntry.id)
        )
        return list(result.scalars().all())

    async def _find_pair(self, category: str, capability: str) -> CommunityEntry | None:
        result = await self.db.execute(
            select(CommunityEntry).where(
                CommunityEntry.category_key == label_key(category),
                CommunityEntry.capability_key == label_key(capability),
            )
        )
        return result.scalars().first()

    # ─── Submit ─────────────────────────────────────────

    async def submit(self, category: str, capability: str) -> SubmitResult:
        canonical_category = normalize_category(category, await self.categories())
        siblings = await self.entries_in_category(canonical_category)
        canonical_capability = normalize_capability(
            capability, [e.capability for e in siblings]
        )

        existing = await self._find_pair(canonical_category, canonical_capability)
        if existing is not None:
            return SubmitResult(entry=existing, created=False)

        entry = CommunityEntry(category=canonical_category, capability=canonical_capability)
        self.db.add(entry)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if not is_unique_violation(e):
                raise
            # A concurrent writer inserted the same pair first
            existing = await self._find_pair(canonical_category, canonical_capability)
            if existing is None:
                raise
            return SubmitResult(entry=existing, created=False)

        await self.db.refresh(entry)
        return SubmitResult(entry=entry, created=True)

    # ─── Rename / merge ─────────────────────────────────

    async def rename_category(self, old_category: str, new_category: str) -> RenameResult:
        """Rename a category, merging into an existing one on collision."""
        old_key = label_key(old_category)
        others = [c for c in await self.categories() if label_key(c) != old_key]
        target = normalize_category(new_category, others)
        if label_key(target) == old_key or not target:
            return RenameResult(category=old_category)

        moving = await self.entries_in_category(old_category)
        if not moving:
            return RenameResult(category=target)

        staying = await self.entries_in_category(target)
        result = RenameResult(category=target, merged=bool(staying))

        # Earliest row per capability survives; pre-existing target rows first
        seen: set[str] = set()
        keep: list[CommunityEntry] = []
        drop: list[CommunityEntry] = []
        for entry in staying + moving:
            if entry.capability_key in seen:
                drop.append(entry)
            else:
                seen.add(entry.capability_key)
                keep.append(entry)

        for entry in drop:
            await self.db.delete(entry)
        await self.db.flush()

        for entry in keep:
            if entry.category != target:
                entry.category = target
                result.moved += 1
        result.removed = len(drop)
        await self.db.commit()

        logger.info(
            "taxonomy.category_renamed",
            old=old_category,
            new=target,
            merged=result.merged,
            moved=result.moved,
            removed=result.removed,
        )
        return result

    async def rename_capability(self, entry_id: int, new_text: str) -> CapabilityRenameResult:
        entry = await self.db.get(CommunityEntry, entry_id)
        if entry is None:
            raise EntryNotFoundError(f"Community entry {entry_id} not found")

        siblings = [
            e for e in await self.entries_in_category(entry.category) if e.id != entry.id
        ]
        canonical = normalize_capability(new_text, [e.capability for e in siblings])
        if not canonical or label_key(canonical) == entry.capability_key:
            return CapabilityRenameResult(entry=entry)

        duplicate = next(
            (e for e in siblings if e.capability_key == label_key(canonical)), None
        )
        if duplicate is not None:
            # The renamed entry collapses into the one already carrying that label
            await self.db.delete(entry)
            await self.db.commit()
            logger.info(
                "taxonomy.capability_merged", entry_id=entry_id, into=duplicate.id
            )
            return CapabilityRenameResult(entry=duplicate, merged=True)

        entry.capability = canonical
        await self.db.commit()
        await self.db.refresh(entry)
        return CapabilityRenameResult(entry=entry)

    # ─── Deletes ────────────────────────────────────────

    async def delete_entry(self, entry_id: int) -> None:
        entry = await self.db.get(CommunityEntry, entry_id)
        if entry is None:
            raise EntryNotFoundError(f"Community entry {entry_id} not found")
        await self.db.delete(entry)
        await self.db.commit()

    async def delete_category(self, category: str) -> int:
        result = await self.db.execute(
            delete(CommunityEntry).where(
                CommunityEntry.category_key == label_key(category)
            )
        )
        await self.db.commit()
        return result.rowcount or 0
