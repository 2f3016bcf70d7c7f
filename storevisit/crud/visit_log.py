"""Visit log CRUD operations."""
from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from storevisit.crud.base import CRUDBase
from storevisit.models.form import VisitLog, VisitLogStatus
from storevisit.schemas.visit_log import VisitLogCreate, VisitLogProgressUpdate


class CRUDVisitLog(CRUDBase[VisitLog, VisitLogCreate, VisitLogProgressUpdate]):
    """CRUD operations for VisitLog."""

    async def get_history(
        self,
        db: AsyncSession,
        *,
        store_id: str,
        form_template_id: UUID,
        limit: int = 20,
    ) -> List[VisitLog]:
        """Visit logs of a store for one template version, newest first."""
        result = await db.execute(
            select(VisitLog)
            .where(VisitLog.store_id == store_id, VisitLog.form_template_id == form_template_id)
            .order_by(VisitLog.visit_date.desc(), VisitLog.updated_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_latest(self, db: AsyncSession, *, store_id: str, form_template_id: UUID) -> Optional[VisitLog]:
        logs = await self.get_history(db, store_id=store_id, form_template_id=form_template_id, limit=1)
        return logs[0] if logs else None

    async def update_in_progress(self, db: AsyncSession, *, visit_log_id: UUID, values: Dict[str, Any]) -> bool:
        """Write ``values`` only if the visit is still in progress. Does not commit."""
        return await self.update_where(
            db, id=visit_log_id, criteria={"status": VisitLogStatus.IN_PROGRESS}, values=values
        )


visit_log = CRUDVisitLog(VisitLog)
