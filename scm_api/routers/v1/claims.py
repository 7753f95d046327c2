"""Claim router — create, list, read and edit claims.

Status changes go through /transitions (see transitions.py).
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from scm_api.core.actor import get_actor, get_notifier
from scm_api.core.pagination import PaginationParams
from scm_api.core.response import DataResponse, ListResponse, page_of
from scm_api.db.base import get_db
from scm_api.schemas.claim import ClaimCreate, ClaimOut, ClaimUpdate
from scm_api.services.claim import ClaimService
from scm_api.services.notifier import Notifier
from scm_api.workflow.states import Actor, ClaimStatus

router = APIRouter(prefix="/claims", tags=["Claims"])


def _svc(session: AsyncSession, notifier: Notifier) -> ClaimService:
    return ClaimService(session, notifier)


@router.get("", response_model=ListResponse[ClaimOut])
async def list_claims(
    filter_status: Optional[ClaimStatus] = Query(default=None, alias="status"),
    supplier_id: Optional[int] = Query(default=None, alias="supplierId"),
    pagination: PaginationParams = Depends(),
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """List claims (paginated). Suppliers only see their own company's claims."""
    items, total = await _svc(session, notifier).list_claims(
        pagination, actor, status=filter_status, supplier_id=supplier_id
    )
    return page_of([ClaimOut.model_validate(c) for c in items], total, pagination)


@router.post("", response_model=DataResponse[ClaimOut], status_code=status.HTTP_201_CREATED)
async def create_claim(
    body: ClaimCreate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Create a claim in status New (purchasing / legal)."""
    claim = await _svc(session, notifier).create_claim(body, actor)
    return {"data": ClaimOut.model_validate(claim)}


@router.get("/{claim_id}", response_model=DataResponse[ClaimOut])
async def get_claim(
    claim_id: int,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    claim = await _svc(session, notifier).get_claim(claim_id, actor)
    return {"data": ClaimOut.model_validate(claim)}


@router.put("/{claim_id}", response_model=DataResponse[ClaimOut])
async def update_claim(
    claim_id: int,
    body: ClaimUpdate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Edit narrative/monetary fields; allowed fields depend on role and status."""
    claim = await _svc(session, notifier).update_claim(claim_id, body, actor)
    return {"data": ClaimOut.model_validate(claim)}
