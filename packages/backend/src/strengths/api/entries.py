"""Personal entries API.

All routes need a bearer token except GET /entries/guest, which exists so
a guest client can use the same read path and always gets an empty list —
guest lists live in the client and never reach the server.
"""

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from strengths.auth.dependencies import get_current_account
from strengths.db.engine import get_db
from strengths.db.models import Account
from strengths.schemas.entries import EntryBatch, EntryBatchResult, EntryCreate, EntryRead
from strengths.services.community_service import EntryNotFoundError
from strengths.services.entry_service import EntryService

router = APIRouter(prefix="/entries")


def _svc(db: AsyncSession = Depends(get_db)) -> EntryService:
    return EntryService(db)


@router.get("/guest", response_model=list[EntryRead])
async def list_guest_entries():
    return []


@router.get("", response_model=list[EntryRead])
async def list_entries(
    account: Account = Depends(get_current_account),
    svc: EntryService = Depends(_svc),
):
    return await svc.list_entries(account.id)


@router.post("", response_model=EntryBatchResult)
async def add_entry(
    body: EntryCreate,
    response: Response,
    account: Account = Depends(get_current_account),
    svc: EntryService = Depends(_svc),
):
    """Add one entry. 201 if new, 200 with a notice if already on the list."""
    result, created = await svc.save_batch(account.id, [body.content])
    response.status_code = 201 if created else 200
    return EntryBatchResult(
        added=[EntryRead.model_validate(e) for e in created],
        skipped=result.skipped,
        notice=result.notice,
    )


@router.post("/batch", response_model=EntryBatchResult)
async def save_batch(
    body: EntryBatch,
    response: Response,
    account: Account = Depends(get_current_account),
    svc: EntryService = Depends(_svc),
):
    """Merge a batch of capabilities into the list; only net-new items are stored."""
    result, created = await svc.save_batch(account.id, body.items)
    response.status_code = 201 if created else 200
    return EntryBatchResult(
        added=[EntryRead.model_validate(e) for e in created],
        skipped=result.skipped,
        notice=result.notice,
    )


@router.delete("/{entry_id}", status_code=204)
async def delete_entry(
    entry_id: int,
    account: Account = Depends(get_current_account),
    svc: EntryService = Depends(_svc),
):
    try:
        await svc.delete_entry(account.id, entry_id)
    except EntryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)
