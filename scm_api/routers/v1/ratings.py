"""Supplier rating router — rating requests, submissions and reads.

Acceptance is a transition: POST /transitions with action "accept".
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from scm_api.core.actor import get_actor, get_notifier
from scm_api.core.pagination import PaginationParams
from scm_api.core.response import DataResponse, ListResponse, page_of
from scm_api.db.base import get_db
from scm_api.schemas.rating import RatingCreate, RatingOut, RatingRequestCreate, RatingRequestOut
from scm_api.services.notifier import Notifier
from scm_api.services.rating import RatingService
from scm_api.workflow.states import Actor

router = APIRouter(prefix="/ratings", tags=["Ratings"])


def _svc(session: AsyncSession, notifier: Notifier) -> RatingService:
    return RatingService(session, notifier)


@router.get("", response_model=ListResponse[RatingOut])
async def list_ratings(
    supplier_id: Optional[int] = Query(default=None, alias="supplierId"),
    pagination: PaginationParams = Depends(),
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    items, total = await _svc(session, notifier).list_ratings(pagination, actor, supplier_id)
    return page_of([RatingOut.model_validate(r) for r in items], total, pagination)


@router.post("", response_model=DataResponse[RatingOut], status_code=status.HTTP_201_CREATED)
async def create_rating(
    body: RatingCreate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Submit a rating (operations / management / engineer). Notifies the supplier."""
    rating = await _svc(session, notifier).create_rating(body, actor)
    return {"data": RatingOut.model_validate(rating)}


@router.get("/requests", response_model=ListResponse[RatingRequestOut])
async def list_rating_requests(
    filter_status: Optional[str] = Query(default=None, alias="status", pattern="^(pending|completed)$"),
    pagination: PaginationParams = Depends(),
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    items, total = await _svc(session, notifier).list_requests(pagination, actor, filter_status)
    return page_of([RatingRequestOut.model_validate(r) for r in items], total, pagination)


@router.post(
    "/requests",
    response_model=DataResponse[RatingRequestOut],
    status_code=status.HTTP_201_CREATED,
)
async def request_rating(
    body: RatingRequestCreate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """A supplier requests a performance rating for a project."""
    request = await _svc(session, notifier).request_rating(body, actor)
    return {"data": RatingRequestOut.model_validate(request)}


@router.get("/{rating_id}", response_model=DataResponse[RatingOut])
async def get_rating(
    rating_id: int,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    rating = await _svc(session, notifier).get_rating(rating_id, actor)
    return {"data": RatingOut.model_validate(rating)}
