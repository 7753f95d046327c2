"""Generic async repository with pagination and optimistic compare-and-swap updates."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from scm_api.db.base import Base
from scm_api.domain.mixins import utc_now

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Generic repository over one model.

    Hard-delete is intentionally never exposed. Workflow writes go through
    :meth:`compare_and_swap` so a stale read can never overwrite a newer row.
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self._session = session

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_id(self, entity_id: int) -> ModelT | None:
        result = await self._session.execute(
            select(self.model).where(self.model.id == entity_id)
        )
        return result.scalars().first()

    async def list(
        self,
        *,
        offset: int = 0,
        limit: int = 20,
        order_by: str = "id",
        order: str = "desc",
        filters: dict[str, Any] | None = None,
    ) -> tuple[list[ModelT], int]:
        """Return (items, total_count) with pagination and optional column filters."""
        q = select(self.model)

        # Apply simple equality filters
        if filters:
            for col_name, value in filters.items():
                if value is not None and hasattr(self.model, col_name):
                    q = q.where(getattr(self.model, col_name) == value)

        # Count
        count_q = select(func.count()).select_from(q.subquery())
        total = (await self._session.execute(count_q)).scalar_one()

        # Order + paginate
        col = getattr(self.model, order_by, None)
        if col is not None:
            q = q.order_by(col.desc() if order == "desc" else col.asc())
        q = q.offset(offset).limit(limit)

        items = (await self._session.execute(q)).scalars().all()
        return list(items), total

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def create(self, **kwargs: Any) -> ModelT:
        instance = self.model(**kwargs)
        self._session.add(instance)
        await self._session.flush()  # populate id
        await self._session.refresh(instance)
        return instance

    async def compare_and_swap(
        self, instance: ModelT, expected_version: int, **changes: Any
    ) -> ModelT | None:
        """Apply ``changes`` only if the row still carries ``expected_version``.

        Returns the refreshed instance, or ``None`` when another writer got
        there first (the caller reports a conflict).
        """
        changes.pop("id", None)
        changes["version"] = expected_version + 1
        if "updated_at" not in changes and hasattr(self.model, "updated_at"):
            changes["updated_at"] = utc_now()

        result = await self._session.execute(
            update(self.model)
            .where(self.model.id == instance.id)
            .where(self.model.version == expected_version)
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        await self._session.flush()
        await self._session.refresh(instance)
        return instance
