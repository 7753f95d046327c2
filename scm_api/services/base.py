"""Shared write path for workflow services.

Every state change follows the same order: compare-and-swap the row, append
the audit entry, commit, and only then hand notifications to the notifier.
Subclasses get that sequence from :meth:`WorkflowService._commit_change`.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scm_api.core.exceptions import ConflictError, StorageError
from scm_api.domain.mixins import utc_now
from scm_api.repositories.base import BaseRepository, ModelT
from scm_api.services.audit_log import AuditLog
from scm_api.services.notifier import Notification, Notifier
from scm_api.workflow.states import Actor

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class WorkflowService:
    def __init__(self, session: AsyncSession, notifier: Notifier, clock: Clock = utc_now):
        self._session = session
        self._notifier = notifier
        self._clock = clock
        self._audit = AuditLog(session)

    async def _commit(self) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Commit failed: %s", exc)
            raise StorageError() from exc

    async def _commit_change(
        self,
        repo: BaseRepository[ModelT],
        instance: ModelT,
        changes: dict[str, Any],
        *,
        actor: Actor,
        action: str,
        entity_type: str,
        description: str,
        now: datetime,
        old_value: Optional[dict[str, Any]] = None,
        new_value: Optional[dict[str, Any]] = None,
    ) -> ModelT:
        """Persist ``changes`` and the audit entry atomically, or nothing at all."""
        expected_version = instance.version
        entity_id = instance.id
        try:
            updated = await repo.compare_and_swap(instance, expected_version, **changes)
            if updated is None:
                await self._session.rollback()
                raise ConflictError(
                    f"{entity_type} {entity_id} was modified concurrently; reload and retry"
                )
            await self._audit.append(
                actor,
                action,
                entity_type,
                entity_id,
                description,
                now,
                old_value=old_value,
                new_value=new_value,
            )
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Storing %s %s failed: %s", entity_type, entity_id, exc)
            raise StorageError() from exc
        await self._commit()
        return updated

    async def _notify(self, build: Callable[[], Awaitable[Optional[Notification]]]) -> None:
        """Build and submit a notification; failures are logged, never raised."""
        try:
            notification = await build()
            if notification is None:
                return
            self._notifier.submit(notification)
        except Exception:
            logger.exception("Could not queue notification")
