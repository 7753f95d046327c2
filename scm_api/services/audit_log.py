"""Audit log service — the append-only record of every state-changing action.

Entries are added to the caller's transaction, so an entry exists exactly
when the change it describes was committed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from scm_api.core.pagination import PaginationParams
from scm_api.domain.audit import AuditTrail
from scm_api.repositories.audit import AuditRepository
from scm_api.workflow.states import Actor

logger = logging.getLogger(__name__)


class AuditLog:
    def __init__(self, session: AsyncSession):
        self._repo = AuditRepository(session)

    async def append(
        self,
        actor: Optional[Actor],
        action: str,
        entity_type: str,
        entity_id: int,
        description: str,
        timestamp: datetime,
        *,
        old_value: Optional[dict[str, Any]] = None,
        new_value: Optional[dict[str, Any]] = None,
    ) -> AuditTrail:
        entry = await self._repo.append(
            actor_id=actor.id if actor else None,
            actor_role=actor.role.value if actor else None,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            old_value=old_value,
            new_value=new_value,
            created_at=timestamp,
        )
        logger.debug("audit %s %s#%s: %s", action, entity_type, entity_id, description)
        return entry

    async def list_entries(
        self,
        pagination: PaginationParams,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
    ) -> tuple[list[AuditTrail], int]:
        return await self._repo.list(
            offset=pagination.offset,
            limit=pagination.limit,
            order_by=pagination.sort,
            order=pagination.order,
            filters={"entity_type": entity_type, "entity_id": entity_id},
        )
