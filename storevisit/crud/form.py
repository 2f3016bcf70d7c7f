"""Form template and lineage CRUD operations."""
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from storevisit.crud.base import CRUDBase
from storevisit.models.form import FormLineage, FormTemplate, TemplateStatus
from storevisit.schemas.form import FormTemplateCreate, FormTemplateUpdate
from storevisit.utils.dates import utcnow
from storevisit.utils.slugify import slugify


class CRUDFormTemplate(CRUDBase[FormTemplate, FormTemplateCreate, FormTemplateUpdate]):
    """CRUD operations for FormTemplate."""

    async def get_published(self, db: AsyncSession) -> List[FormTemplate]:
        """All currently published templates, across lineages."""
        result = await db.execute(select(FormTemplate).where(FormTemplate.status == TemplateStatus.PUBLISHED))
        return list(result.scalars().all())

    async def get_versions(self, db: AsyncSession, *, lineage_id: UUID) -> List[FormTemplate]:
        """Get all versions of a lineage, newest first."""
        result = await db.execute(
            select(FormTemplate)
            .where(FormTemplate.lineage_id == lineage_id)
            .order_by(FormTemplate.version.desc())
        )
        return list(result.scalars().all())

    async def get_filtered(
        self,
        db: AsyncSession,
        *,
        statuses: Optional[List[TemplateStatus]] = None,
        skip: int = 0,
        limit: Optional[int] = 100,
    ) -> List[FormTemplate]:
        """Templates newest-updated first; ``limit=None`` returns every match."""
        query = select(FormTemplate)
        if statuses:
            query = query.where(FormTemplate.status.in_(statuses))
        query = query.order_by(FormTemplate.updated_at.desc(), FormTemplate.id)
        if limit is not None:
            query = query.offset(skip).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def update_draft(self, db: AsyncSession, *, template_id: UUID, values: Dict[str, Any]) -> bool:
        """Write ``values`` only if the template is still a draft. Does not commit."""
        return await self.update_where(
            db, id=template_id, criteria={"status": TemplateStatus.DRAFT}, values={**values, "updated_at": utcnow()}
        )

    async def transition(
        self,
        db: AsyncSession,
        *,
        template_id: UUID,
        from_status: TemplateStatus,
        to_status: TemplateStatus,
        updated_by: Optional[str] = None,
    ) -> bool:
        """Conditionally move one template between statuses.

        Returns False when the template was not in ``from_status`` any more.
        Does not commit.
        """
        now = utcnow()
        values = {"status": to_status, "updated_at": now}
        if updated_by:
            values["updated_by"] = updated_by
        if to_status == TemplateStatus.PUBLISHED:
            values["published_at"] = now
        elif to_status == TemplateStatus.ARCHIVED:
            values["archived_at"] = now
        result = await db.execute(
            update(FormTemplate)
            .where(FormTemplate.id == template_id, FormTemplate.status == from_status)
            .values(**values)
        )
        return result.rowcount == 1

    async def archive_published_siblings(
        self,
        db: AsyncSession,
        *,
        lineage_id: UUID,
        exclude_id: UUID,
        updated_by: Optional[str] = None,
    ) -> List[UUID]:
        """Archive every other published version of a lineage. Does not commit."""
        result = await db.execute(
            select(FormTemplate.id).where(
                FormTemplate.lineage_id == lineage_id,
                FormTemplate.status == TemplateStatus.PUBLISHED,
                FormTemplate.id != exclude_id,
            )
        )
        sibling_ids = list(result.scalars().all())
        for sibling_id in sibling_ids:
            await self.transition(
                db,
                template_id=sibling_id,
                from_status=TemplateStatus.PUBLISHED,
                to_status=TemplateStatus.ARCHIVED,
                updated_by=updated_by,
            )
        return sibling_ids


class CRUDFormLineage(CRUDBase[FormLineage, FormTemplateCreate, FormTemplateUpdate]):
    """CRUD operations for FormLineage."""

    async def get_by_slug(self, db: AsyncSession, *, slug: str) -> Optional[FormLineage]:
        result = await db.execute(select(FormLineage).where(FormLineage.slug == slug))
        return result.scalar_one_or_none()

    async def generate_unique_slug(self, db: AsyncSession, base_slug: str) -> str:
        """Ensure slug uniqueness by appending numeric suffix if needed."""
        candidate = base_slug or "form"
        suffix = 1

        while True:
            result = await db.execute(select(FormLineage.id).where(FormLineage.slug == candidate).limit(1))
            if result.scalar_one_or_none() is None:
                return candidate
            suffix += 1
            candidate = f"{base_slug}-{suffix}"

    async def new_lineage(self, db: AsyncSession, *, name: str) -> FormLineage:
        """Add a lineage for a brand new template. Does not commit."""
        lineage = FormLineage(
            name=name,
            slug=await self.generate_unique_slug(db, slugify(name, default="form")),
            latest_version=1,
            revision=0,
        )
        db.add(lineage)
        await db.flush()
        return lineage

    async def swap_published(
        self,
        db: AsyncSession,
        *,
        lineage_id: UUID,
        expected_revision: int,
        published_template_id: Optional[UUID],
    ) -> bool:
        """Compare-and-swap the lineage's published pointer.

        Succeeds only if nobody changed the pointer since ``expected_revision``
        was read. Does not commit.
        """
        result = await db.execute(
            update(FormLineage)
            .where(FormLineage.id == lineage_id, FormLineage.revision == expected_revision)
            .values(published_template_id=published_template_id, revision=expected_revision + 1)
        )
        return result.rowcount == 1

    async def read_pointer(self, db: AsyncSession, *, lineage_id: UUID) -> Tuple[int, Optional[UUID]]:
        """Current revision and published template of a lineage, read from the database."""
        result = await db.execute(
            select(FormLineage.revision, FormLineage.published_template_id).where(FormLineage.id == lineage_id)
        )
        revision, published_template_id = result.one()
        return revision, published_template_id

    async def next_version(self, db: AsyncSession, *, lineage_id: UUID) -> Optional[int]:
        """Hand out the next version number of a lineage. Does not commit.

        Returns None if another writer took the number first.
        """
        result = await db.execute(select(FormLineage.latest_version).where(FormLineage.id == lineage_id))
        current = result.scalar_one()
        result = await db.execute(
            update(FormLineage)
            .where(FormLineage.id == lineage_id, FormLineage.latest_version == current)
            .values(latest_version=current + 1)
        )
        return current + 1 if result.rowcount == 1 else None


form_template = CRUDFormTemplate(FormTemplate)
form_lineage = CRUDFormLineage(FormLineage)
