"""Form template API endpoints: CRUD, lifecycle actions and scope resolution."""
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from storevisit.database import get_db
from storevisit.models.form import TemplateStatus
from storevisit.core.exceptions import StoreVisitError, to_http_exception
from storevisit.localization.helpers import get_locale_from_request
from storevisit.services.form_template_service import form_template_service
from storevisit.schemas.form import (
    ArchiveRequest,
    FormTemplateCreate,
    FormTemplateResponse,
    FormTemplateUpdate,
    NewVersionRequest,
    PublishRequest,
)

router = APIRouter()


def _parse_statuses(raw: Optional[str]) -> Optional[List[TemplateStatus]]:
    """Comma separated statuses; unknown values are ignored."""
    if not raw:
        return None
    valid = {item.value for item in TemplateStatus}
    statuses = [TemplateStatus(item.strip()) for item in raw.split(",") if item.strip() in valid]
    return statuses or None


@router.get("", response_model=List[FormTemplateResponse])
async def list_forms(
    status_filter: Optional[str] = Query(default=None, alias="status", description="e.g. draft,published"),
    scope_kind: Optional[str] = Query(default=None, pattern="^(all|formats|stores)$"),
    format: Optional[str] = None,
    store_id: Optional[str] = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    """List form templates with optional status and scope filters."""
    return await form_template_service.list_templates(
        db,
        statuses=_parse_statuses(status_filter),
        scope_kind=scope_kind,
        store_format=format,
        store_id=store_id,
        skip=skip,
        limit=limit,
    )


@router.post("", response_model=FormTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_form(
    template_data: FormTemplateCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Create a new draft form template."""
    try:
        return await form_template_service.create_template(db, template_data=template_data)
    except StoreVisitError as e:
        raise to_http_exception(e, get_locale_from_request(request)) from e


@router.get("/active", response_model=FormTemplateResponse)
async def get_active_form(
    request: Request,
    store_id: str = Query(..., min_length=1),
    format: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """Resolve the published form template that applies to a store."""
    try:
        return await form_template_service.resolve_active(db, store_id=store_id, store_format=format)
    except StoreVisitError as e:
        raise to_http_exception(e, get_locale_from_request(request)) from e


@router.get("/slug/{slug}", response_model=FormTemplateResponse)
async def get_form_by_slug(
    slug: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Get the latest version of a form template lineage by slug."""
    try:
        return await form_template_service.get_template_by_slug(db, slug=slug)
    except StoreVisitError as e:
        raise to_http_exception(e, get_locale_from_request(request)) from e


@router.get("/{template_id}", response_model=FormTemplateResponse)
async def get_form(
    template_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Get a form template version by ID."""
    try:
        return await form_template_service.get_template(db, template_id=template_id)
    except StoreVisitError as e:
        raise to_http_exception(e, get_locale_from_request(request)) from e


@router.put("/{template_id}", response_model=FormTemplateResponse)
async def update_form(
    template_id: UUID,
    template_data: FormTemplateUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Update a draft form template."""
    try:
        return await form_template_service.update_template(db, template_id=template_id, update_data=template_data)
    except StoreVisitError as e:
        raise to_http_exception(e, get_locale_from_request(request)) from e


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_form(
    template_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Delete a form template version in any status."""
    try:
        await form_template_service.delete_template(db, template_id=template_id)
    except StoreVisitError as e:
        raise to_http_exception(e, get_locale_from_request(request)) from e


@router.post("/{template_id}/publish", response_model=FormTemplateResponse)
async def publish_form(
    template_id: UUID,
    payload: PublishRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Publish a draft, archiving the lineage's previously published version."""
    try:
        return await form_template_service.publish_template(
            db,
            template_id=template_id,
            scope=payload.scope,
            updated_by=payload.updated_by,
        )
    except StoreVisitError as e:
        raise to_http_exception(e, get_locale_from_request(request)) from e


@router.post("/{template_id}/archive", response_model=FormTemplateResponse)
async def archive_form(
    template_id: UUID,
    payload: ArchiveRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Archive a published form template."""
    try:
        return await form_template_service.archive_template(
            db,
            template_id=template_id,
            updated_by=payload.updated_by,
        )
    except StoreVisitError as e:
        raise to_http_exception(e, get_locale_from_request(request)) from e


@router.get("/{template_id}/versions", response_model=List[FormTemplateResponse])
async def list_form_versions(
    template_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Get all versions of a form template lineage, newest first."""
    try:
        return await form_template_service.list_versions(db, template_id=template_id)
    except StoreVisitError as e:
        raise to_http_exception(e, get_locale_from_request(request)) from e


@router.post("/{template_id}/versions", response_model=FormTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_form_version(
    template_id: UUID,
    payload: NewVersionRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Open a new draft version of the lineage, copied from this version."""
    try:
        return await form_template_service.create_version(
            db,
            template_id=template_id,
            created_by=payload.created_by,
        )
    except StoreVisitError as e:
        raise to_http_exception(e, get_locale_from_request(request)) from e
