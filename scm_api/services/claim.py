"""Claim service — creation, gated edits and reads.

Status changes do not live here; they go through
:class:`scm_api.services.coordinator.WorkflowCoordinator`.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scm_api.core.config import settings
from scm_api.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from scm_api.core.pagination import PaginationParams
from scm_api.domain.claim import Claim
from scm_api.domain.mixins import utc_now
from scm_api.repositories.claim import ClaimRepository
from scm_api.repositories.directory import ProjectRepository, SupplierRepository
from scm_api.schemas.claim import ClaimCreate, ClaimUpdate
from scm_api.services.base import Clock, WorkflowService
from scm_api.services.notifier import Notifier
from scm_api.workflow import claim_engine
from scm_api.workflow.states import Actor, ClaimStatus, EntityType, Role

logger = logging.getLogger(__name__)

CLAIM_CREATOR_ROLES = frozenset({Role.PURCHASING, Role.LEGAL})
REQUIRED_FIELDS = ("claim_area", "claim_info", "damage_text", "damage_amount")

# Names the claim-number constraints carry in driver messages (SQLite lists
# columns, PostgreSQL the constraint or index name)
_NUMBER_CONSTRAINTS = (
    "uq_claims_year_sequence",
    "ix_claims_claim_number",
    "claims.claim_sequence",
    "claims.claim_number",
)


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _is_number_collision(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(name in message for name in _NUMBER_CONSTRAINTS)


class ClaimService(WorkflowService):
    def __init__(
        self,
        session: AsyncSession,
        notifier: Notifier,
        clock: Clock = utc_now,
        max_retries: Optional[int] = None,
    ):
        super().__init__(session, notifier, clock)
        self._repo = ClaimRepository(session)
        self._suppliers = SupplierRepository(session)
        self._projects = ProjectRepository(session)
        self._max_retries = max_retries or settings.claim_number_max_retries

    async def list_claims(
        self,
        pagination: PaginationParams,
        actor: Actor,
        status: Optional[ClaimStatus] = None,
        supplier_id: Optional[int] = None,
    ):
        # suppliers only ever see their own company's claims
        if actor.is_supplier:
            if supplier_id is not None and supplier_id != actor.company_id:
                return [], 0
            supplier_id = actor.company_id
            if supplier_id is None:
                return [], 0
        return await self._repo.list(
            offset=pagination.offset,
            limit=pagination.limit,
            order_by=pagination.sort,
            order=pagination.order,
            filters={"status": _plain(status), "supplier_id": supplier_id},
        )

    async def get_claim(self, claim_id: int, actor: Actor) -> Claim:
        claim = await self._repo.get_by_id(claim_id)
        if not claim or (actor.is_supplier and claim.supplier_id != actor.company_id):
            raise NotFoundError("Claim", claim_id)
        return claim

    async def create_claim(self, data: ClaimCreate, actor: Actor) -> Claim:
        """Create a claim in status ``New`` with the next claim number for this year.

        The number comes from the per-year sequence guarded by a unique
        constraint; a concurrent insert that wins the same number makes this
        one retry with the next value.
        """
        if actor.role not in CLAIM_CREATOR_ROLES:
            raise ForbiddenError("Only purchasing or legal users can create claims")
        if not await self._suppliers.get_by_id(data.supplier_id):
            raise NotFoundError("Supplier", data.supplier_id)
        await self._check_project(data.project_id)

        fields = {k: _plain(v) for k, v in data.model_dump().items()}
        now = self._clock()
        year = now.year

        for attempt in range(1, self._max_retries + 1):
            sequence = await self._repo.last_sequence(year) + 1
            claim_number = claim_engine.format_claim_number(year, sequence)
            try:
                claim = await self._repo.create(
                    **fields,
                    claim_number=claim_number,
                    claim_year=year,
                    claim_sequence=sequence,
                    status=ClaimStatus.NEW.value,
                    date_entered=now,
                    created_by=actor.id,
                )
            except IntegrityError as exc:
                await self._session.rollback()
                if not _is_number_collision(exc):
                    logger.error("Claim %s rejected by the store: %s", claim_number, exc.orig)
                    raise ValidationError("The claim references data that does not exist") from exc
                logger.warning(
                    "Claim number %s taken (attempt %d/%d); retrying",
                    claim_number, attempt, self._max_retries,
                )
                continue

            await self._audit.append(
                actor,
                "Created",
                EntityType.CLAIM.value,
                claim.id,
                f"Created claim {claim_number}",
                now,
                new_value={"status": ClaimStatus.NEW.value},
            )
            await self._commit()
            logger.info("Created claim %s for supplier %s", claim_number, data.supplier_id)
            return claim

        raise ConflictError("Could not allocate a claim number; please retry")

    async def update_claim(self, claim_id: int, data: ClaimUpdate, actor: Actor) -> Claim:
        claim = await self.get_claim(claim_id, actor)
        changes = {k: _plain(v) for k, v in data.model_dump(exclude_unset=True).items()}
        if not changes:
            return claim

        cleared = sorted(f for f in REQUIRED_FIELDS if f in changes and changes[f] is None)
        if cleared:
            raise ValidationError(f"Cannot clear required field(s): {', '.join(cleared)}")

        allowed = claim_engine.editable_fields(claim.workflow_status, actor, claim.supplier_id)
        denied = sorted(set(changes) - allowed)
        if denied:
            raise ForbiddenError(
                f"A {actor.role.value} user cannot edit {', '.join(denied)} "
                f"while the claim is '{claim.status}'"
            )
        if "project_id" in changes:
            await self._check_project(changes["project_id"])

        return await self._commit_change(
            self._repo,
            claim,
            changes,
            actor=actor,
            action="Updated",
            entity_type=EntityType.CLAIM.value,
            description=f"Updated claim {claim.claim_number} ({', '.join(sorted(changes))})",
            now=self._clock(),
        )

    async def _check_project(self, project_id: Optional[int]) -> None:
        if project_id is not None and not await self._projects.get_by_id(project_id):
            raise NotFoundError("Project", project_id)
