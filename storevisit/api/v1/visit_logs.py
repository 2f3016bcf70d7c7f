"""Visit log API endpoints."""
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from storevisit.database import get_db
from storevisit.core.exceptions import StoreVisitError, to_http_exception
from storevisit.localization.helpers import get_locale_from_request
from storevisit.services.visit_log_service import visit_log_service
from storevisit.schemas.visit_log import VisitLogCreate, VisitLogProgressUpdate, VisitLogResponse

router = APIRouter()


@router.post("", response_model=VisitLogResponse, status_code=status.HTTP_201_CREATED)
async def record_visit(
    visit_data: VisitLogCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Evaluate and store the answers of a store visit."""
    try:
        return await visit_log_service.record_visit(db, visit_data=visit_data)
    except StoreVisitError as e:
        raise to_http_exception(e, get_locale_from_request(request)) from e


@router.get("", response_model=List[VisitLogResponse])
async def list_visit_logs(
    store_id: str = Query(..., min_length=1),
    form_template_id: UUID = Query(...),
    limit: Optional[int] = None,
    variant: Optional[str] = Query(default=None, pattern="^latest$"),
    db: AsyncSession = Depends(get_db),
):
    """Visit history of a store for a template, newest first.

    ``variant=latest`` returns at most the single most recent visit.
    """
    if variant == "latest":
        latest = await visit_log_service.get_latest(db, store_id=store_id, form_template_id=form_template_id)
        return [latest] if latest else []
    return await visit_log_service.list_history(
        db, store_id=store_id, form_template_id=form_template_id, limit=limit
    )


@router.get("/{visit_log_id}", response_model=VisitLogResponse)
async def get_visit_log(
    visit_log_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Get a visit log by ID."""
    try:
        return await visit_log_service.get_visit_log(db, visit_log_id=visit_log_id)
    except StoreVisitError as e:
        raise to_http_exception(e, get_locale_from_request(request)) from e


@router.patch("/{visit_log_id}", response_model=VisitLogResponse)
async def save_visit_progress(
    visit_log_id: UUID,
    update_data: VisitLogProgressUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Save answers of an in-progress visit; submitted visits are immutable."""
    try:
        return await visit_log_service.save_progress(db, visit_log_id=visit_log_id, update_data=update_data)
    except StoreVisitError as e:
        raise to_http_exception(e, get_locale_from_request(request)) from e
