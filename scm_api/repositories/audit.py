"""Audit trail repository — append and read only."""

from __future__ import annotations

from typing import Any

from scm_api.domain.audit import AuditTrail
from scm_api.repositories.base import BaseRepository


class AuditRepository(BaseRepository[AuditTrail]):
    model = AuditTrail

    async def append(self, **kwargs: Any) -> AuditTrail:
        instance = AuditTrail(**kwargs)
        self._session.add(instance)
        await self._session.flush()
        return instance

    async def compare_and_swap(self, *args: Any, **kwargs: Any):
        raise TypeError("Audit entries are immutable")
