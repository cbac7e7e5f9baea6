"""
Run upload, sync and history routes.
"""
from datetime import datetime
from typing import Any, List, Optional
from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.models.user import User
from app.schemas.run import RunDetail, RunSummary, RunUpload, RunUploadResponse, SyncStatusItem
from app.api.dependencies import get_current_user
from app.core.utils import format_response, to_naive_utc
from app.services.run_service import MAX_PAGE_SIZE, RunService

router = APIRouter(prefix="/runs", tags=["runs"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_run(
    run: RunUpload,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Upload a run. Re-uploading the same clientId overwrites it (200)."""
    result = RunService(db).upsert_run(current_user.id, run)
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return format_response(RunUploadResponse(
        run_id=result.server_id,
        client_id=result.client_id,
        created=result.created,
    ).model_dump(by_alias=True))


@router.post("/bulk")
async def bulk_upload_runs(
    runs: List[Any] = Body(..., embed=True),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Upload up to 50 runs; each item reports its own status."""
    results = RunService(db).upsert_batch(current_user.id, runs)
    return format_response(
        results=[r.model_dump(by_alias=True, exclude_none=True) for r in results]
    )


@router.get("")
async def list_runs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    resort: Optional[str] = None,
    since: Optional[datetime] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List my runs, newest first."""
    items, total = RunService(db).list_runs(
        current_user.id, page=page, limit=limit, resort=resort, since=to_naive_utc(since)
    )
    return format_response(
        runs=[RunSummary.model_validate(r).model_dump(by_alias=True) for r in items],
        total=total,
        page=page,
        limit=limit,
        pages=(total + limit - 1) // limit,
    )


@router.get("/sync/status")
async def sync_status(
    since: Optional[datetime] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Runs changed after ``since``, for incremental pull sync."""
    server_time = datetime.utcnow()
    changed = RunService(db).sync_status(current_user.id, to_naive_utc(since))
    return format_response(
        updatedRuns=[SyncStatusItem(**item).model_dump(by_alias=True) for item in changed],
        serverTime=server_time,
    )


@router.get("/{run_id}")
async def get_run(
    run_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a single run including its route data."""
    run = RunService(db).get_run(current_user.id, run_id)
    return format_response(run=RunDetail.model_validate(run).model_dump(by_alias=True))


@router.delete("/{run_id}")
async def delete_run(
    run_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Soft delete a run."""
    RunService(db).soft_delete_run(current_user.id, run_id)
    return format_response(message="Run deleted")
