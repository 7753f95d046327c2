"""Workflow coordinator — the single entry point for workflow transitions.

``apply_transition`` loads the entity, asks the relevant engine for a pure
decision, and on approval persists the change together with its audit entry
before queueing any notification. ``describe`` answers the read side: what
the given actor may do with the entity right now, computed from the same
engine functions.

Rule: No FastAPI here. Errors are AppException subclasses.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from scm_api.core.config import settings
from scm_api.core.exceptions import InvalidTransitionError, NotFoundError, raise_for_denial
from scm_api.domain.claim import Claim
from scm_api.domain.mixins import utc_now
from scm_api.domain.rating import SupplierRating
from scm_api.repositories.claim import ClaimRepository
from scm_api.repositories.directory import ProjectRepository, SupplierRepository, UserRepository
from scm_api.repositories.rating import SupplierRatingRepository
from scm_api.services.base import Clock, WorkflowService
from scm_api.services.notifier import Notification, NotificationKind, Notifier
from scm_api.workflow import claim_engine, rating_engine
from scm_api.workflow.states import Actor, EntityType, TransitionDenied, WorkflowAction

logger = logging.getLogger(__name__)


class WorkflowCoordinator(WorkflowService):
    def __init__(
        self,
        session: AsyncSession,
        notifier: Notifier,
        clock: Clock = utc_now,
        window_days: Optional[int] = None,
    ):
        super().__init__(session, notifier, clock)
        self._claims = ClaimRepository(session)
        self._ratings = SupplierRatingRepository(session)
        self._suppliers = SupplierRepository(session)
        self._projects = ProjectRepository(session)
        self._users = UserRepository(session)
        self._window_days = (
            window_days if window_days is not None else settings.rating_acceptance_window_days
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def apply_transition(
        self,
        entity_type: EntityType,
        entity_id: int,
        action: WorkflowAction,
        actor: Actor,
        comment: Optional[str] = None,
    ) -> Claim | SupplierRating:
        if entity_type is EntityType.CLAIM:
            return await self._transition_claim(entity_id, action, actor, comment)
        if action is not WorkflowAction.ACCEPT:
            raise InvalidTransitionError(f"Ratings support only '{WorkflowAction.ACCEPT.value}'")
        return await self._accept_rating(entity_id, actor, comment)

    async def _load_claim(self, claim_id: int) -> Claim:
        claim = await self._claims.get_by_id(claim_id)
        if not claim:
            raise NotFoundError("Claim", claim_id)
        return claim

    async def _load_rating(self, rating_id: int) -> SupplierRating:
        rating = await self._ratings.get_by_id(rating_id)
        if not rating:
            raise NotFoundError("Rating", rating_id)
        return rating

    async def _transition_claim(
        self, claim_id: int, action: WorkflowAction, actor: Actor, comment: Optional[str]
    ) -> Claim:
        claim = await self._load_claim(claim_id)
        now = self._clock()
        previous = claim.status

        decision = claim_engine.decide(
            claim.workflow_status,
            action,
            actor,
            comment,
            claim_supplier_id=claim.supplier_id,
            now=now,
        )
        if isinstance(decision, TransitionDenied):
            logger.info(
                "Claim %s: %s by %s denied (%s)",
                claim.claim_number, action.value, actor.role.value, decision.message,
            )
            raise_for_denial(decision)

        description = f"Changed claim {claim.claim_number} status to {decision.next_state.value}"
        if comment and comment.strip():
            description += f" with comment: {comment.strip()}"

        updated = await self._commit_change(
            self._claims,
            claim,
            decision.changes,
            actor=actor,
            action=decision.audit_action,
            entity_type=EntityType.CLAIM.value,
            description=description,
            now=now,
            old_value={"status": previous},
            new_value={"status": decision.next_state.value},
        )
        logger.info(
            "Claim %s: %s -> %s by user %s",
            updated.claim_number, previous, updated.status, actor.id,
        )
        if decision.notify:
            await self._notify(lambda: self._claim_sent_notification(updated, comment))
        return updated

    async def _accept_rating(
        self, rating_id: int, actor: Actor, comment: Optional[str]
    ) -> SupplierRating:
        rating = await self._load_rating(rating_id)
        now = self._clock()

        decision = rating_engine.decide_acceptance(
            rating, actor, comment, now, window_days=self._window_days
        )
        if isinstance(decision, TransitionDenied):
            logger.info(
                "Rating %s: acceptance by user %s denied (%s)", rating.id, actor.id, decision.reason
            )
            raise_for_denial(decision)

        supplier = await self._suppliers.get_by_id(rating.supplier_id)
        supplier_name = supplier.company_name if supplier else "Supplier"
        updated = await self._commit_change(
            self._ratings,
            rating,
            decision.changes,
            actor=actor,
            action=decision.audit_action,
            entity_type=EntityType.RATING.value,
            description=(
                f"{supplier_name} accepted their performance rating of "
                f"{rating.overall_rating}/5"
            ),
            now=now,
            old_value={"accepted_by_supplier": False},
            new_value={"accepted_by_supplier": True},
        )
        await self._notify(lambda: self._rating_accepted_notification(updated, supplier_name))
        return updated

    # ------------------------------------------------------------------
    # Notification builders
    # ------------------------------------------------------------------

    async def _claim_sent_notification(
        self, claim: Claim, comment: Optional[str]
    ) -> Optional[Notification]:
        supplier = await self._suppliers.get_by_id(claim.supplier_id)
        if not supplier or not supplier.notification_address:
            logger.warning(
                "Claim %s sent, but supplier %s has no email address",
                claim.claim_number, claim.supplier_id,
            )
            return None
        return Notification(
            kind=NotificationKind.CLAIM_SENT_TO_SUPPLIER,
            recipient=supplier.notification_address,
            template_data={
                "claim_id": claim.id,
                "claim_number": claim.claim_number,
                "claim_area": claim.claim_area,
                "claim_info": claim.claim_info,
                "damage_amount": str(claim.damage_amount),
                "supplier_id": supplier.id,
                "supplier_name": supplier.company_name,
                "comment": comment.strip() if comment and comment.strip() else None,
            },
        )

    async def _rating_accepted_notification(
        self, rating: SupplierRating, supplier_name: str
    ) -> Optional[Notification]:
        creator = await self._users.get_by_id(rating.created_by) if rating.created_by else None
        if not creator or not creator.email:
            logger.warning("Rating %s accepted, but its creator has no email address", rating.id)
            return None
        project = await self._projects.get_by_id(rating.project_id)
        return Notification(
            kind=NotificationKind.RATING_ACCEPTED,
            recipient=creator.email,
            template_data={
                "rating_id": rating.id,
                "supplier_name": supplier_name,
                "project_name": project.project_name if project else f"Project #{rating.project_id}",
                "overall_rating": str(rating.overall_rating),
                "supplier_comment": rating.supplier_comment,
            },
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def describe(
        self, entity_type: EntityType, entity_id: int, actor: Actor
    ) -> dict[str, Any]:
        """Current state plus what ``actor`` may do with the entity now."""
        now = self._clock()
        view: dict[str, Any] = {
            "entity_type": entity_type.value,
            "entity_id": entity_id,
            "can_approve": False,
            "can_reject": False,
            "can_send_to_supplier": False,
            "can_respond": False,
            "can_edit": False,
            "editable_fields": [],
            "can_accept_rating": False,
            "ineligible_reason": None,
            "days_remaining": None,
        }
        if entity_type is EntityType.CLAIM:
            claim = await self._load_claim(entity_id)
            if actor.is_supplier and claim.supplier_id != actor.company_id:
                raise NotFoundError("Claim", entity_id)
            view["status"] = claim.status
            view["version"] = claim.version
            view.update(
                claim_engine.available_actions(
                    claim.workflow_status, actor, claim.supplier_id, now
                )
            )
            return view

        rating = await self._load_rating(entity_id)
        if actor.is_supplier and rating.supplier_id != actor.company_id:
            raise NotFoundError("Rating", entity_id)
        reason = rating_engine.ineligibility(rating, actor, now, self._window_days)
        view["status"] = "accepted" if rating.accepted_by_supplier else "pending_acceptance"
        view["version"] = rating.version
        view["can_accept_rating"] = reason is None
        view["ineligible_reason"] = reason.value if reason else None
        view["days_remaining"] = rating_engine.days_remaining(rating, now, self._window_days)
        return view
