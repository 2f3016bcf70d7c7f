"""Generic async CRUD helpers."""
from typing import Any, Dict, Generic, Optional, Type, TypeVar
from uuid import UUID
from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from storevisit.database import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """CRUD object with default Read and conditional Update methods."""

    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: UUID) -> Optional[ModelType]:
        return await db.get(self.model, id)

    async def update_where(
        self,
        db: AsyncSession,
        *,
        id: UUID,
        criteria: Dict[str, Any],
        values: Dict[str, Any],
    ) -> bool:
        """Update one row only while its columns still equal ``criteria``.

        Returns False when the row is gone or no longer matches. Does not
        commit; in-session objects are left for the caller to refresh.
        """
        conditions = [self.model.id == id]
        conditions.extend(getattr(self.model, column) == value for column, value in criteria.items())
        result = await db.execute(
            update(self.model)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
