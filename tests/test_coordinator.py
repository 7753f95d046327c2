"""Workflow coordinator tests against an in-memory database."""

from __future__ import annotations

import logging
from decimal import Decimal

import pytest
from sqlalchemy import select, update

from conftest import ACME_EMAIL, ACME_ID, ENGINEER_EMAIL, PROJECT_ID, FailingNotifier, first_page
from scm_api.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotEligibleError,
    NotFoundError,
    ValidationError,
)
from scm_api.domain.audit import AuditTrail
from scm_api.domain.claim import Claim
from scm_api.schemas.rating import RatingCreate
from scm_api.services.audit_log import AuditLog
from scm_api.services.coordinator import WorkflowCoordinator
from scm_api.services.notifier import NotificationKind
from scm_api.services.rating import RatingService
from scm_api.workflow.rating_engine import as_utc
from scm_api.workflow.states import ClaimArea, EntityType, WorkflowAction

CLAIM = EntityType.CLAIM
RATING = EntityType.RATING


@pytest.fixture
def coordinator(session, notifier, clock):
    return WorkflowCoordinator(session, notifier, clock)


async def _audit_actions(session, entity_type: str, entity_id: int) -> list[str]:
    rows = await session.execute(
        select(AuditTrail.action)
        .where(AuditTrail.entity_type == entity_type, AuditTrail.entity_id == entity_id)
        .order_by(AuditTrail.id)
    )
    return list(rows.scalars())


async def _rating(session, notifier, clock, actors, **overrides):
    fields = {
        "supplier_id": ACME_ID,
        "project_id": PROJECT_ID,
        "job_description": "Crane boom fabrication and delivery",
        "hse_rating": 5,
        "communication_rating": 4,
        "competency_rating": 5,
        "on_time_rating": 4,
        "service_rating": 5,
    }
    fields.update(overrides)
    service = RatingService(session, notifier, clock)
    return await service.create_rating(RatingCreate(**fields), actors.engineer)


# ---------------------------------------------------------------------------
# Claims
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_claim_happy_path_to_supplier_acceptance(
    session, coordinator, make_claim, notifier, clock, actors
) -> None:
    claim = await make_claim(claim_area=ClaimArea.MATERIAL, damage_amount=Decimal("1500.00"))
    assert claim.status == "New"

    claim = await coordinator.apply_transition(CLAIM, claim.id, WorkflowAction.APPROVE, actors.operations)
    assert claim.status == "Operations approved"

    clock.advance(days=1)
    claim = await coordinator.apply_transition(CLAIM, claim.id, WorkflowAction.APPROVE, actors.legal)
    assert claim.status == "Legal approved"
    assert as_utc(claim.date_approved) == clock.now

    assert notifier.sent == []
    claim = await coordinator.apply_transition(
        CLAIM, claim.id, WorkflowAction.SEND_TO_SUPPLIER, actors.purchasing, "Please respond within 14 days"
    )
    assert claim.status == "Sent to supplier"
    assert len(notifier.sent) == 1
    sent = notifier.sent[0]
    assert sent.kind is NotificationKind.CLAIM_SENT_TO_SUPPLIER
    assert sent.recipient == ACME_EMAIL
    assert sent.template_data["claim_number"] == claim.claim_number
    assert sent.template_data["damage_amount"] == "1500.00"

    claim = await coordinator.apply_transition(
        CLAIM, claim.id, WorkflowAction.ACCEPT, actors.supplier, "Agreed, credit note follows"
    )
    assert claim.status == "Accepted"
    assert claim.accepted_by_supplier is True
    assert claim.accepted_supplier_text == "Agreed, credit note follows"
    assert claim.version == 5

    assert await _audit_actions(session, "claim", claim.id) == [
        "Created",
        "Operations approved",
        "Legal approved",
        "Sent to supplier",
        "Accepted by supplier",
    ]


@pytest.mark.asyncio
async def test_transition_audit_entry_records_status_change(
    session, coordinator, make_claim, actors
) -> None:
    claim = await make_claim()
    await coordinator.apply_transition(
        CLAIM, claim.id, WorkflowAction.REJECT, actors.operations, "Duplicate of an earlier claim"
    )
    entry = (
        await session.execute(
            select(AuditTrail).where(AuditTrail.action == "Rejected", AuditTrail.entity_id == claim.id)
        )
    ).scalar_one()
    assert entry.actor_id == actors.operations.id
    assert entry.actor_role == "operations"
    assert entry.old_value == {"status": "New"}
    assert entry.new_value == {"status": "Rejected"}
    assert "Duplicate of an earlier claim" in entry.description


@pytest.mark.asyncio
async def test_operations_reject_after_legal_approval_is_refused(
    session, coordinator, make_claim, actors
) -> None:
    claim = await make_claim()
    await coordinator.apply_transition(CLAIM, claim.id, WorkflowAction.APPROVE, actors.operations)
    await coordinator.apply_transition(CLAIM, claim.id, WorkflowAction.APPROVE, actors.legal)

    with pytest.raises(InvalidTransitionError):
        await coordinator.apply_transition(
            CLAIM, claim.id, WorkflowAction.REJECT, actors.operations, "Changed my mind"
        )

    reloaded = await session.get(Claim, claim.id)
    assert reloaded.status == "Legal approved"
    assert "Rejected" not in await _audit_actions(session, "claim", claim.id)


@pytest.mark.asyncio
async def test_reject_without_comment_fails_validation(coordinator, make_claim, actors) -> None:
    claim = await make_claim()
    with pytest.raises(ValidationError):
        await coordinator.apply_transition(CLAIM, claim.id, WorkflowAction.REJECT, actors.legal, "  ")


@pytest.mark.asyncio
async def test_supplier_cannot_answer_another_suppliers_claim(coordinator, make_claim, actors) -> None:
    claim = await make_claim()
    for actor, action in (
        (actors.operations, WorkflowAction.APPROVE),
        (actors.legal, WorkflowAction.APPROVE),
        (actors.purchasing, WorkflowAction.SEND_TO_SUPPLIER),
    ):
        await coordinator.apply_transition(CLAIM, claim.id, action, actor)

    with pytest.raises(InvalidTransitionError):
        await coordinator.apply_transition(
            CLAIM, claim.id, WorkflowAction.DECLINE, actors.other_supplier, "Not ours"
        )


@pytest.mark.asyncio
async def test_unknown_claim_is_not_found(coordinator, actors) -> None:
    with pytest.raises(NotFoundError):
        await coordinator.apply_transition(CLAIM, 999, WorkflowAction.APPROVE, actors.operations)


@pytest.mark.asyncio
async def test_stale_version_is_a_conflict(session, coordinator, make_claim, actors) -> None:
    claim = await make_claim()
    claim_id = claim.id
    # another writer bumps the row behind this session's back
    await session.execute(
        update(Claim)
        .where(Claim.id == claim_id)
        .values(version=Claim.version + 1)
        .execution_options(synchronize_session=False)
    )
    await session.commit()

    with pytest.raises(ConflictError):
        await coordinator.apply_transition(CLAIM, claim_id, WorkflowAction.APPROVE, actors.operations)

    # the conflict rolled the session back, so `claim` is expired
    reloaded = (await session.execute(select(Claim).where(Claim.id == claim_id))).scalar_one()
    assert reloaded.status == "New"
    assert reloaded.version == 2


@pytest.mark.asyncio
async def test_notification_failure_does_not_undo_the_transition(
    session, make_claim, clock, actors, caplog
) -> None:
    claim = await make_claim()
    coordinator = WorkflowCoordinator(session, FailingNotifier(), clock)
    await coordinator.apply_transition(CLAIM, claim.id, WorkflowAction.APPROVE, actors.operations)
    await coordinator.apply_transition(CLAIM, claim.id, WorkflowAction.APPROVE, actors.legal)

    with caplog.at_level(logging.ERROR, logger="scm_api.services.base"):
        claim = await coordinator.apply_transition(
            CLAIM, claim.id, WorkflowAction.SEND_TO_SUPPLIER, actors.purchasing
        )

    assert claim.status == "Sent to supplier"
    assert "Could not queue notification" in caplog.text
    assert (await _audit_actions(session, "claim", claim.id))[-1] == "Sent to supplier"


@pytest.mark.asyncio
async def test_describe_claim_for_each_role(coordinator, make_claim, actors) -> None:
    claim = await make_claim()
    view = await coordinator.describe(CLAIM, claim.id, actors.operations)
    assert view["status"] == "New"
    assert view["can_approve"] and view["can_reject"]
    assert not view["can_edit"]

    view = await coordinator.describe(CLAIM, claim.id, actors.purchasing)
    assert not view["can_approve"]
    assert view["can_edit"]
    assert "claim_info" in view["editable_fields"]


@pytest.mark.asyncio
async def test_describe_hides_other_suppliers_claim(coordinator, make_claim, actors) -> None:
    claim = await make_claim()
    view = await coordinator.describe(CLAIM, claim.id, actors.supplier)
    assert view["status"] == "New"
    assert not view["can_respond"]

    with pytest.raises(NotFoundError):
        await coordinator.describe(CLAIM, claim.id, actors.other_supplier)


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_rating_acceptance_notifies_the_rater(
    session, coordinator, notifier, clock, actors
) -> None:
    rating = await _rating(session, notifier, clock, actors)
    assert rating.overall_rating == Decimal("4.60")
    assert notifier.sent[-1].kind is NotificationKind.RATING_COMPLETED

    clock.advance(days=5)
    accepted = await coordinator.apply_transition(
        RATING, rating.id, WorkflowAction.ACCEPT, actors.supplier, "Thank you"
    )
    assert accepted.accepted_by_supplier is True
    assert as_utc(accepted.accepted_date) == clock.now
    assert accepted.supplier_comment == "Thank you"

    last = notifier.sent[-1]
    assert last.kind is NotificationKind.RATING_ACCEPTED
    assert last.recipient == ENGINEER_EMAIL
    assert await _audit_actions(session, "supplier_rating", rating.id) == [
        "Rating completed",
        "Rating accepted",
    ]


@pytest.mark.asyncio
async def test_rating_acceptance_after_window_is_not_eligible(
    session, coordinator, notifier, clock, actors
) -> None:
    rating = await _rating(session, notifier, clock, actors)
    clock.advance(days=6)
    with pytest.raises(NotEligibleError) as exc_info:
        await coordinator.apply_transition(RATING, rating.id, WorkflowAction.ACCEPT, actors.supplier)
    assert exc_info.value.reason == "window_expired"


@pytest.mark.asyncio
async def test_second_rating_acceptance_is_not_eligible(
    session, coordinator, notifier, clock, actors
) -> None:
    rating = await _rating(session, notifier, clock, actors)
    await coordinator.apply_transition(RATING, rating.id, WorkflowAction.ACCEPT, actors.supplier)
    with pytest.raises(NotEligibleError) as exc_info:
        await coordinator.apply_transition(RATING, rating.id, WorkflowAction.ACCEPT, actors.supplier)
    assert exc_info.value.reason == "already_accepted"
    assert (await _audit_actions(session, "supplier_rating", rating.id)).count("Rating accepted") == 1


@pytest.mark.asyncio
async def test_rating_from_other_supplier_or_role_is_not_eligible(
    session, coordinator, notifier, clock, actors
) -> None:
    rating = await _rating(session, notifier, clock, actors)
    with pytest.raises(NotEligibleError) as exc_info:
        await coordinator.apply_transition(RATING, rating.id, WorkflowAction.ACCEPT, actors.other_supplier)
    assert exc_info.value.reason == "wrong_supplier"

    with pytest.raises(NotEligibleError) as exc_info:
        await coordinator.apply_transition(RATING, rating.id, WorkflowAction.ACCEPT, actors.purchasing)
    assert exc_info.value.reason == "wrong_role"


@pytest.mark.asyncio
async def test_ratings_only_support_accept(session, coordinator, notifier, clock, actors) -> None:
    rating = await _rating(session, notifier, clock, actors)
    with pytest.raises(InvalidTransitionError):
        await coordinator.apply_transition(RATING, rating.id, WorkflowAction.APPROVE, actors.operations)


@pytest.mark.asyncio
async def test_describe_rating_reports_window(session, coordinator, notifier, clock, actors) -> None:
    rating = await _rating(session, notifier, clock, actors)
    clock.advance(days=2)
    view = await coordinator.describe(RATING, rating.id, actors.supplier)
    assert view["can_accept_rating"] is True
    assert view["days_remaining"] == 3
    assert view["status"] == "pending_acceptance"

    view = await coordinator.describe(RATING, rating.id, actors.engineer)
    assert view["can_accept_rating"] is False
    assert view["ineligible_reason"] == "wrong_role"


@pytest.mark.asyncio
async def test_describe_hides_other_suppliers_rating(session, coordinator, notifier, clock, actors) -> None:
    rating = await _rating(session, notifier, clock, actors)
    with pytest.raises(NotFoundError):
        await coordinator.describe(RATING, rating.id, actors.other_supplier)


@pytest.mark.asyncio
async def test_audit_log_lists_newest_first(session, coordinator, make_claim, actors) -> None:
    claim = await make_claim()
    await coordinator.apply_transition(CLAIM, claim.id, WorkflowAction.APPROVE, actors.operations)
    entries, total = await AuditLog(session).list_entries(
        first_page(), entity_type="claim", entity_id=claim.id
    )
    assert total == 2
    assert [e.action for e in entries] == ["Operations approved", "Created"]
