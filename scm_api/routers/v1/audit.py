"""Audit trail router (read only)."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from scm_api.core.actor import get_actor
from scm_api.core.exceptions import ForbiddenError
from scm_api.core.pagination import PaginationParams
from scm_api.core.response import ListResponse, page_of
from scm_api.db.base import get_db
from scm_api.schemas.audit import AuditEntryOut
from scm_api.services.audit_log import AuditLog
from scm_api.workflow.states import Actor

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get("", response_model=ListResponse[AuditEntryOut])
async def list_audit_entries(
    entity_type: Optional[str] = Query(default=None, alias="entityType"),
    entity_id: Optional[int] = Query(default=None, alias="entityId"),
    pagination: PaginationParams = Depends(),
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
):
    """Audit entries, newest first. Internal users only."""
    if actor.is_supplier:
        raise ForbiddenError("Suppliers cannot read the audit trail")
    items, total = await AuditLog(session).list_entries(pagination, entity_type, entity_id)
    return page_of([AuditEntryOut.model_validate(e) for e in items], total, pagination)
