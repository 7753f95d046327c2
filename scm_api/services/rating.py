"""Supplier rating service — rating requests, rating submission and reads.

Acceptance is a workflow transition and lives in the coordinator.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from scm_api.core.config import settings
from scm_api.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from scm_api.core.pagination import PaginationParams
from scm_api.domain.directory import Project, Supplier
from scm_api.domain.mixins import utc_now
from scm_api.domain.rating import RatingRequest, SupplierRating
from scm_api.repositories.directory import ProjectRepository, SupplierRepository
from scm_api.repositories.rating import RatingRequestRepository, SupplierRatingRepository
from scm_api.schemas.rating import RatingCreate, RatingRequestCreate
from scm_api.services.base import Clock, WorkflowService
from scm_api.services.notifier import Notification, NotificationKind, Notifier
from scm_api.workflow import rating_engine
from scm_api.workflow.states import Actor, EntityType, Role

logger = logging.getLogger(__name__)

RATER_ROLES = frozenset({Role.OPERATIONS, Role.MANAGEMENT, Role.ENGINEER})
REQUEST_ENTITY = "rating_request"


class RatingService(WorkflowService):
    def __init__(self, session: AsyncSession, notifier: Notifier, clock: Clock = utc_now):
        super().__init__(session, notifier, clock)
        self._ratings = SupplierRatingRepository(session)
        self._requests = RatingRequestRepository(session)
        self._suppliers = SupplierRepository(session)
        self._projects = ProjectRepository(session)

    async def _supplier_and_project(
        self, supplier_id: int, project_id: int
    ) -> tuple[Supplier, Project]:
        supplier = await self._suppliers.get_by_id(supplier_id)
        if not supplier:
            raise NotFoundError("Supplier", supplier_id)
        project = await self._projects.get_by_id(project_id)
        if not project:
            raise NotFoundError("Project", project_id)
        return supplier, project

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_ratings(
        self, pagination: PaginationParams, actor: Actor, supplier_id: Optional[int] = None
    ):
        if actor.is_supplier:
            supplier_id = actor.company_id
            if supplier_id is None:
                return [], 0
        return await self._ratings.list(
            offset=pagination.offset,
            limit=pagination.limit,
            order_by=pagination.sort,
            order=pagination.order,
            filters={"supplier_id": supplier_id},
        )

    async def get_rating(self, rating_id: int, actor: Actor) -> SupplierRating:
        rating = await self._ratings.get_by_id(rating_id)
        if not rating or (actor.is_supplier and rating.supplier_id != actor.company_id):
            raise NotFoundError("Rating", rating_id)
        return rating

    async def list_requests(
        self, pagination: PaginationParams, actor: Actor, status: Optional[str] = None
    ):
        supplier_id = actor.company_id if actor.is_supplier else None
        if actor.is_supplier and supplier_id is None:
            return [], 0
        return await self._requests.list(
            offset=pagination.offset,
            limit=pagination.limit,
            order_by=pagination.sort,
            order=pagination.order,
            filters={"supplier_id": supplier_id, "status": status},
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def request_rating(self, data: RatingRequestCreate, actor: Actor) -> RatingRequest:
        """A supplier asks to be rated for its work on a project."""
        if not actor.is_supplier:
            raise ForbiddenError("Only suppliers can request ratings")
        if actor.company_id != data.supplier_id:
            raise ForbiddenError("Suppliers can only request ratings for their own company")
        supplier, project = await self._supplier_and_project(data.supplier_id, data.project_id)

        now = self._clock()
        request = await self._requests.create(
            supplier_id=data.supplier_id,
            project_id=data.project_id,
            description=data.description,
            request_date=now,
            status="pending",
            requested_by=actor.id,
        )
        await self._audit.append(
            actor,
            "Rating requested",
            REQUEST_ENTITY,
            request.id,
            f"{supplier.company_name} requested a rating for {project.project_name}",
            now,
        )
        await self._commit()

        await self._notify(
            lambda: self._supplier_notification(
                NotificationKind.RATING_REQUESTED,
                supplier,
                {"project_name": project.project_name, "request_id": request.id},
            )
        )
        return request

    async def create_rating(self, data: RatingCreate, actor: Actor) -> SupplierRating:
        """Submit a rating. ``overall_rating`` is computed here, once, and never again."""
        if actor.role not in RATER_ROLES:
            raise ForbiddenError("Not authorized to submit ratings")
        supplier, project = await self._supplier_and_project(data.supplier_id, data.project_id)

        request = None
        if data.request_id is not None:
            request = await self._requests.get_by_id(data.request_id)
            if not request:
                raise NotFoundError("Rating request", data.request_id)
            if request.supplier_id != data.supplier_id or request.project_id != data.project_id:
                raise ValidationError("The rating request is for a different supplier or project")
            if request.status != "pending":
                raise ConflictError(f"Rating request {request.id} has already been completed")

        now = self._clock()
        subratings = [getattr(data, name) for name in rating_engine.SUBRATING_FIELDS]
        overall = rating_engine.compute_overall_rating(subratings)

        rating = await self._ratings.create(
            **data.model_dump(),
            overall_rating=overall,
            rating_date=now,
            accepted_by_supplier=False,
            created_by=actor.id,
        )
        if request is not None:
            request.status = "completed"
            await self._session.flush()
        await self._audit.append(
            actor,
            "Rating completed",
            EntityType.RATING.value,
            rating.id,
            f"Rating completed for {supplier.company_name} with score: {overall}/5",
            now,
            new_value={"overall_rating": str(overall)},
        )
        await self._commit()
        logger.info("Rating %s created for supplier %s (%s/5)", rating.id, supplier.id, overall)

        await self._notify(
            lambda: self._supplier_notification(
                NotificationKind.RATING_COMPLETED,
                supplier,
                {
                    "rating_id": rating.id,
                    "project_name": project.project_name,
                    "overall_rating": str(overall),
                    "window_days": settings.rating_acceptance_window_days,
                },
            )
        )
        return rating

    async def _supplier_notification(
        self, kind: NotificationKind, supplier: Supplier, data: dict
    ) -> Optional[Notification]:
        if not supplier.notification_address:
            logger.warning("Supplier %s has no email address; %s not sent", supplier.id, kind.value)
            return None
        return Notification(
            kind=kind,
            recipient=supplier.notification_address,
            template_data={"supplier_name": supplier.company_name, **data},
        )
