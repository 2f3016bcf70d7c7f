"""Form template service: creation, draft edits and lifecycle transitions."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from storevisit.config import settings
from storevisit.core.exceptions import ImmutableError, InvalidStateError, NotFoundError, ValidationError
from storevisit.crud.form import form_lineage, form_template
from storevisit.models.form import FormLineage, FormTemplate, StoreFormat, TemplateStatus
from storevisit.schemas.form import (
    FormatsScope,
    FormTemplateCreate,
    FormTemplateResponse,
    FormTemplateUpdate,
    parse_questions,
    parse_scope,
)
from storevisit.services.scope_resolver import resolve_active_template, scope_matches
from storevisit.services.template_lifecycle import LifecycleAction, ensure_editable, next_status, required_status

logger = logging.getLogger(__name__)


class LineageConflict(Exception):
    """The lineage's published pointer changed while a transition was running."""


def _clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("errors.invalid_template", reason="a form template needs a name")
    return cleaned


def _clean_description(description: Optional[str]) -> Optional[str]:
    return (description or "").strip() or None


def _format_value(store_format: Union[StoreFormat, str, None]) -> Optional[str]:
    """Plain format name; unknown formats pass through and simply match no format scope."""
    if isinstance(store_format, StoreFormat):
        return store_format.value
    return (store_format or "").strip() or None


class FormTemplateService:
    """High-level service for form template management."""

    @staticmethod
    async def get_template(db: AsyncSession, *, template_id: UUID) -> FormTemplate:
        """Get a single template by ID or raise NotFoundError."""
        template_obj = await form_template.get(db, id=template_id)
        if template_obj is None:
            raise NotFoundError("errors.template_not_found", template_id=str(template_id))
        return template_obj

    @staticmethod
    async def get_template_by_slug(db: AsyncSession, *, slug: str) -> FormTemplate:
        """Latest version of the lineage with the given slug."""
        lineage = await form_lineage.get_by_slug(db, slug=slug)
        versions = await form_template.get_versions(db, lineage_id=lineage.id) if lineage else []
        if not versions:
            raise NotFoundError("errors.slug_not_found", slug=slug)
        return versions[0]

    @staticmethod
    async def list_versions(db: AsyncSession, *, template_id: UUID) -> List[FormTemplate]:
        """Every version of the template's lineage, newest first."""
        template_obj = await FormTemplateService.get_template(db, template_id=template_id)
        return await form_template.get_versions(db, lineage_id=template_obj.lineage_id)

    @staticmethod
    async def list_templates(
        db: AsyncSession,
        *,
        statuses: Optional[List[TemplateStatus]] = None,
        scope_kind: Optional[str] = None,
        store_format: Union[StoreFormat, str, None] = None,
        store_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[FormTemplateResponse]:
        """List templates, optionally filtered by status and by scope.

        Status is filtered in SQL. Scope filters work on the parsed scope, so
        when one is given paging is applied after filtering.
        """
        format_value = _format_value(store_format)
        scope_filtered = bool(scope_kind or format_value or store_id)
        rows = await form_template.get_filtered(
            db,
            statuses=statuses,
            skip=skip,
            limit=None if scope_filtered else limit,
        )
        templates = [FormTemplateResponse.model_validate(template_obj) for template_obj in rows]

        if scope_kind:
            templates = [t for t in templates if t.scope.kind == scope_kind]
        if format_value:
            templates = [
                t for t in templates
                if isinstance(t.scope, FormatsScope) and format_value in {fmt.value for fmt in t.scope.formats}
            ]
        if store_id:
            # Without a known format, format-scoped templates stay candidates
            templates = [
                t for t in templates
                if scope_matches(t.scope, store_id.strip(), format_value)
                or (format_value is None and isinstance(t.scope, FormatsScope))
            ]
        if scope_filtered:
            templates = templates[skip : skip + limit]
        return templates

    @staticmethod
    async def resolve_active(
        db: AsyncSession,
        *,
        store_id: str,
        store_format: Union[StoreFormat, str, None] = None,
    ) -> FormTemplateResponse:
        """Published template that applies to a store (NotFoundError if none)."""
        published = [FormTemplateResponse.model_validate(t) for t in await form_template.get_published(db)]
        return resolve_active_template(published, store_id, _format_value(store_format))

    @staticmethod
    async def create_template(db: AsyncSession, *, template_data: FormTemplateCreate) -> FormTemplate:
        """Create the first draft of a new lineage."""
        name = _clean_name(template_data.name)
        scope = parse_scope(template_data.scope)
        questions = parse_questions(template_data.questions)

        lineage = await form_lineage.new_lineage(db, name=name)
        template_obj = FormTemplate(
            lineage_id=lineage.id,
            name=name,
            description=_clean_description(template_data.description),
            version=1,
            status=TemplateStatus.DRAFT,
            scope=scope.model_dump(mode="json"),
            questions=[question.model_dump(mode="json") for question in questions],
            created_by=template_data.created_by,
            updated_by=template_data.created_by,
        )
        db.add(template_obj)
        await db.commit()
        await db.refresh(template_obj)
        logger.info("Created form template %s (lineage %s)", template_obj.id, lineage.slug)
        return template_obj

    @staticmethod
    async def create_version(
        db: AsyncSession,
        *,
        template_id: UUID,
        created_by: Optional[str] = None,
    ) -> FormTemplate:
        """Open a new draft version of a lineage, copied from ``template_id``."""
        source = await FormTemplateService.get_template(db, template_id=template_id)
        version = await form_lineage.next_version(db, lineage_id=source.lineage_id)
        if version is None:
            await db.rollback()
            raise InvalidStateError("errors.version_conflict", template_id=str(template_id))

        draft = FormTemplate(
            lineage_id=source.lineage_id,
            name=source.name,
            description=source.description,
            version=version,
            status=TemplateStatus.DRAFT,
            scope=dict(source.scope),
            questions=list(source.questions),
            created_by=created_by,
            updated_by=created_by,
        )
        db.add(draft)
        await db.commit()
        await db.refresh(draft)
        logger.info("Opened version %s of lineage %s from template %s", version, source.lineage_id, source.id)
        return draft

    @staticmethod
    async def update_template(
        db: AsyncSession,
        *,
        template_id: UUID,
        update_data: FormTemplateUpdate,
    ) -> FormTemplate:
        """Edit a draft; published and archived templates raise ImmutableError."""
        template_obj = await FormTemplateService.get_template(db, template_id=template_id)
        ensure_editable(template_obj.status, template_obj.id)

        fields = update_data.model_dump(exclude_unset=True)
        changes: Dict[str, Any] = {}
        if "name" in fields:
            changes["name"] = _clean_name(fields["name"])
        if "description" in fields:
            changes["description"] = _clean_description(fields["description"])
        if fields.get("scope") is not None:
            changes["scope"] = parse_scope(fields["scope"]).model_dump(mode="json")
        if fields.get("questions") is not None:
            changes["questions"] = [q.model_dump(mode="json") for q in parse_questions(fields["questions"])]
        if not changes:
            return template_obj
        if fields.get("updated_by"):
            changes["updated_by"] = fields["updated_by"]

        # The status seen above may be stale; the write itself re-checks it
        updated = await form_template.update_draft(db, template_id=template_obj.id, values=changes)
        if not updated:
            await db.rollback()
            current = await db.execute(select(FormTemplate.status).where(FormTemplate.id == template_id))
            status = current.scalar_one_or_none()
            if status is None:
                raise NotFoundError("errors.template_not_found", template_id=str(template_id))
            raise ImmutableError(template_id=str(template_id), status=TemplateStatus(status).value)
        await db.commit()
        await db.refresh(template_obj)
        logger.info("Updated draft form template %s: %s", template_id, sorted(changes))
        return template_obj

    @staticmethod
    async def publish_template(
        db: AsyncSession,
        *,
        template_id: UUID,
        scope: Optional[Dict[str, Any]] = None,
        updated_by: Optional[str] = None,
    ) -> FormTemplate:
        """Publish a draft and archive the lineage's previously published version.

        Both transitions and the lineage pointer swap commit together or not
        at all. A malformed scope is rejected before anything changes.
        """
        template_obj = await FormTemplateService.get_template(db, template_id=template_id)
        next_status(template_obj.status, LifecycleAction.PUBLISH)
        parsed_scope = parse_scope(scope) if scope is not None else None

        try:
            await FormTemplateService._publish_atomically(
                db,
                template_id=template_obj.id,
                lineage_id=template_obj.lineage_id,
                scope=parsed_scope,
                updated_by=updated_by,
            )
        except LineageConflict:
            raise InvalidStateError("errors.publish_conflict", template_id=str(template_id)) from None
        await db.refresh(template_obj)
        return template_obj

    @staticmethod
    @retry(
        stop=stop_after_attempt(settings.PUBLISH_RETRY_ATTEMPTS),
        retry=retry_if_exception_type(LineageConflict),
        reraise=True,
    )
    async def _publish_atomically(db: AsyncSession, *, template_id: UUID, lineage_id: UUID, scope, updated_by) -> None:
        try:
            revision, _ = await form_lineage.read_pointer(db, lineage_id=lineage_id)
            if scope is not None:
                template_obj = await db.get(FormTemplate, template_id)
                template_obj.scope = scope.model_dump(mode="json")
                await db.flush()

            archived = await form_template.archive_published_siblings(
                db, lineage_id=lineage_id, exclude_id=template_id, updated_by=updated_by
            )
            published = await form_template.transition(
                db,
                template_id=template_id,
                from_status=required_status(LifecycleAction.PUBLISH),
                to_status=TemplateStatus.PUBLISHED,
                updated_by=updated_by,
            )
            if not published:
                raise InvalidStateError(action=LifecycleAction.PUBLISH.value, status="published")

            swapped = await form_lineage.swap_published(
                db, lineage_id=lineage_id, expected_revision=revision, published_template_id=template_id
            )
            if not swapped:
                logger.warning("Lineage %s changed while publishing %s, retrying", lineage_id, template_id)
                raise LineageConflict(str(lineage_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Published form template %s (lineage %s), archived %s",
            template_id,
            lineage_id,
            [str(sibling) for sibling in archived] or "nothing",
        )

    @staticmethod
    async def archive_template(
        db: AsyncSession,
        *,
        template_id: UUID,
        updated_by: Optional[str] = None,
    ) -> FormTemplate:
        """Archive a published template and clear the lineage pointer."""
        template_obj = await FormTemplateService.get_template(db, template_id=template_id)
        next_status(template_obj.status, LifecycleAction.ARCHIVE)

        try:
            await FormTemplateService._archive_atomically(
                db, template_id=template_obj.id, lineage_id=template_obj.lineage_id, updated_by=updated_by
            )
        except LineageConflict:
            raise InvalidStateError("errors.publish_conflict", template_id=str(template_id)) from None
        await db.refresh(template_obj)
        return template_obj

    @staticmethod
    @retry(
        stop=stop_after_attempt(settings.PUBLISH_RETRY_ATTEMPTS),
        retry=retry_if_exception_type(LineageConflict),
        reraise=True,
    )
    async def _archive_atomically(db: AsyncSession, *, template_id: UUID, lineage_id: UUID, updated_by) -> None:
        try:
            revision, current = await form_lineage.read_pointer(db, lineage_id=lineage_id)
            archived = await form_template.transition(
                db,
                template_id=template_id,
                from_status=required_status(LifecycleAction.ARCHIVE),
                to_status=TemplateStatus.ARCHIVED,
                updated_by=updated_by,
            )
            if not archived:
                raise InvalidStateError(action=LifecycleAction.ARCHIVE.value, status="archived")
            if current == template_id:
                swapped = await form_lineage.swap_published(
                    db, lineage_id=lineage_id, expected_revision=revision, published_template_id=None
                )
                if not swapped:
                    raise LineageConflict(str(lineage_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Archived form template %s (lineage %s)", template_id, lineage_id)

    @staticmethod
    async def delete_template(db: AsyncSession, *, template_id: UUID) -> None:
        """Delete a template in any status.

        Visit logs keep their template id and stay valid historical records.
        """
        template_obj = await FormTemplateService.get_template(db, template_id=template_id)
        try:
            await FormTemplateService._delete_atomically(
                db, template_id=template_obj.id, lineage_id=template_obj.lineage_id
            )
        except LineageConflict:
            raise InvalidStateError("errors.publish_conflict", template_id=str(template_id)) from None

    @staticmethod
    @retry(
        stop=stop_after_attempt(settings.PUBLISH_RETRY_ATTEMPTS),
        retry=retry_if_exception_type(LineageConflict),
        reraise=True,
    )
    async def _delete_atomically(db: AsyncSession, *, template_id: UUID, lineage_id: UUID) -> None:
        try:
            revision, current = await form_lineage.read_pointer(db, lineage_id=lineage_id)
            if current == template_id:
                swapped = await form_lineage.swap_published(
                    db, lineage_id=lineage_id, expected_revision=revision, published_template_id=None
                )
                if not swapped:
                    raise LineageConflict(str(lineage_id))
            await db.delete(await db.get(FormTemplate, template_id))
            await db.flush()

            result = await db.execute(
                select(func.count(FormTemplate.id)).where(FormTemplate.lineage_id == lineage_id)
            )
            if result.scalar_one() == 0:
                lineage = await db.get(FormLineage, lineage_id)
                if lineage is not None:
                    await db.delete(lineage)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Deleted form template %s (lineage %s)", template_id, lineage_id)


form_template_service = FormTemplateService()
