"""Community entries API — the shared category/capability vocabulary.

Open routes: no authentication, anyone may add, rename, or delete.
"""

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from strengths.db.engine import get_db
from strengths.schemas.entries import (
    CapabilityUpdate,
    CapabilityUpdateResult,
    CategoryRename,
    CategoryRenameResult,
    CommunityEntryCreate,
    CommunityEntryRead,
    CommunitySubmitResult,
)
from strengths.services.community_service import CommunityService, EntryNotFoundError

router = APIRouter(prefix="/community-entries")


def _svc(db: AsyncSession = Depends(get_db)) -> CommunityService:
    return CommunityService(db)


@router.get("", response_model=list[CommunityEntryRead])
async def list_community_entries(svc: CommunityService = Depends(_svc)):
    return await svc.list_entries()


@router.post("", response_model=CommunitySubmitResult)
async def submit_community_entry(
    body: CommunityEntryCreate,
    response: Response,
    svc: CommunityService = Depends(_svc),
):
    """Add a pair. A pair that already exists (ignoring case) is a 200 no-op."""
    result = await svc.submit(body.category, body.capability)
    response.status_code = 201 if result.created else 200
    return CommunitySubmitResult(
        entry=CommunityEntryRead.model_validate(result.entry),
        created=result.created,
    )


# Declared before /{entry_id} so the literal path wins.
@router.put("/update-category", response_model=CategoryRenameResult)
async def update_category(body: CategoryRename, svc: CommunityService = Depends(_svc)):
    result = await svc.rename_category(body.old_category, body.new_category)
    return CategoryRenameResult(
        category=result.category,
        moved=result.moved,
        removed=result.removed,
        merged=result.merged,
    )


@router.delete("/category/{name}")
async def delete_category(name: str, svc: CommunityService = Depends(_svc)):
    removed = await svc.delete_category(name)
    return {"deleted": removed}


@router.put("/{entry_id}", response_model=CapabilityUpdateResult)
async def update_capability(
    entry_id: int,
    body: CapabilityUpdate,
    svc: CommunityService = Depends(_svc),
):
    try:
        result = await svc.rename_capability(entry_id, body.capability)
    except EntryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return CapabilityUpdateResult(
        entry=CommunityEntryRead.model_validate(result.entry),
        merged=result.merged,
    )


@router.delete("/{entry_id}", status_code=204)
async def delete_community_entry(entry_id: int, svc: CommunityService = Depends(_svc)):
    try:
        await svc.delete_entry(entry_id)
    except EntryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)
