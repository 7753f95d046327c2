"""Workflow transition router — the one write path for claim and rating workflow state."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from scm_api.core.actor import get_actor, get_notifier
from scm_api.core.response import DataResponse
from scm_api.db.base import get_db
from scm_api.schemas.claim import ClaimOut
from scm_api.schemas.rating import RatingOut
from scm_api.schemas.workflow import TransitionRequest, WorkflowView
from scm_api.services.coordinator import WorkflowCoordinator
from scm_api.services.notifier import Notifier
from scm_api.workflow.states import Actor, EntityType

router = APIRouter(prefix="/transitions", tags=["Workflow"])


def _svc(session: AsyncSession, notifier: Notifier) -> WorkflowCoordinator:
    return WorkflowCoordinator(session, notifier)


@router.post("", response_model=DataResponse[ClaimOut | RatingOut])
async def apply_transition(
    body: TransitionRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> Any:
    """Apply a workflow action (approve, reject, send_to_supplier, accept, decline)."""
    entity = await _svc(session, notifier).apply_transition(
        body.entity_type, body.entity_id, body.action, actor, body.comment
    )
    schema = ClaimOut if body.entity_type is EntityType.CLAIM else RatingOut
    return {"data": schema.model_validate(entity)}


@router.get("/{entity_type}/{entity_id}", response_model=DataResponse[WorkflowView])
async def describe_workflow(
    entity_type: EntityType,
    entity_id: int,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Current status plus the actions available to the caller."""
    view = await _svc(session, notifier).describe(entity_type, entity_id, actor)
    return {"data": WorkflowView.model_validate(view)}
