"""Generic async repositories shared by the credential, event and alert stores.

Usage:
    class FraudAlertRepository(BaseRepository[FraudAlert, UUID]):
        ...

    async with session_factory() as session:
        alerts = FraudAlertRepository(session)
        alert = await alerts.get(alert_id)
        await alerts.update(alert, {"status": "reviewed"}, commit=False)
        await session.commit()
"""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from certflow.db.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)
PKType = TypeVar("PKType", bound=UUID | int | str)


class AppendOnlyRepository(Generic[ModelType, PKType]):
    """Primary-key lookup, recency listing and inserts for one model.

    Records written through it are never changed afterwards. The model
    class is taken from the first generic argument of the subclass. Inserts
    commit by default; pass ``commit=False`` to flush only and let the
    caller commit several changes in one transaction.
    """

    model: type[ModelType]

    def __init__(self, db: AsyncSession):
        self.db = db

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        for base in getattr(cls, "__orig_bases__", []):
            model = next(iter(getattr(base, "__args__", ())), None)
            if isinstance(model, type) and issubclass(model, Base):
                cls.model = model
                break

    async def get(self, pk: PKType) -> ModelType | None:
        return await self.db.get(self.model, pk)

    async def list(
        self,
        *,
        limit: int = 100,
        offset: int = 0,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[ModelType]:
        """List records ordered by a column (primary key when not given)."""
        column = getattr(self.model, order_by) if order_by else self._pk_column()
        stmt = (
            select(self.model)
            .order_by(column.desc() if descending else column)
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create(self, obj: ModelType, *, commit: bool = True) -> ModelType:
        self.db.add(obj)
        await self._write(obj, commit)
        return obj

    async def _write(self, obj: ModelType, commit: bool) -> None:
        if commit:
            await self.db.commit()
            await self.db.refresh(obj)
        else:
            await self.db.flush()

    def _pk_column(self):
        return self.model.__mapper__.primary_key[0]


class BaseRepository(AppendOnlyRepository[ModelType, PKType]):
    """Repository whose records may also be updated in place."""

    async def update(
        self, obj: ModelType, updates: dict[str, Any], *, commit: bool = True
    ) -> ModelType:
        """Set mapped attributes on a loaded record; unknown keys are ignored."""
        for field, value in updates.items():
            if hasattr(obj, field):
                setattr(obj, field, value)
        await self._write(obj, commit)
        return obj
