"""Claim workflow engine — the decision table for claim status transitions.

Pure functions only: no database, no clock, no notifications. The
coordinator hands in the current state, the requested target, the actor and
the comment; the engine answers with a :class:`TransitionApproved` carrying
the field patch to persist, or a :class:`TransitionDenied` saying why not.

The same table feeds :func:`available_actions`, so the UI's enabled buttons
and the server's validation can never drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from scm_api.workflow.states import (
    AWAITING_OPERATIONS_REVIEW,
    REVIEWER_REJECTABLE,
    Actor,
    ClaimStatus,
    Decision,
    ErrorKind,
    Role,
    TransitionApproved,
    TransitionDenied,
    WorkflowAction,
    is_blank,
    stamp,
)

CLAIM_NUMBER_PREFIX = "CLM"

# Narrative and monetary fields reviewers may edit (status fields excluded)
NARRATIVE_FIELDS = frozenset(
    {
        "project_id",
        "agreement_id",
        "order_number",
        "date_happened",
        "claim_area",
        "claim_info",
        "damage_text",
        "damage_amount",
        "defects_description",
        "demand_type",
        "demand_text",
    }
)
SUPPLIER_RESPONSE_FIELDS = frozenset({"accepted_supplier_text"})

_EDIT_WINDOWS: dict[Role, frozenset[ClaimStatus]] = {
    Role.PURCHASING: frozenset({ClaimStatus.NEW, ClaimStatus.UNDER_REVIEW}),
    Role.OPERATIONS: frozenset({ClaimStatus.UNDER_REVIEW, ClaimStatus.OPERATIONS_APPROVED}),
    Role.LEGAL: frozenset({ClaimStatus.OPERATIONS_APPROVED, ClaimStatus.LEGAL_APPROVED}),
}


@dataclass(frozen=True)
class _Rule:
    roles: frozenset[Role]
    sources: frozenset[ClaimStatus]
    audit_action: str
    comment_required: bool = False
    supplier_owned: bool = False
    notify: bool = False
    changes: Optional[Callable[[datetime, Optional[str]], dict[str, Any]]] = None


def _supplier_response(accepted: bool):
    def changes(now: datetime, comment: Optional[str]) -> dict[str, Any]:
        return {
            **stamp(now, "date_feedback"),
            "accepted_by_supplier": accepted,
            "accepted_supplier_text": comment.strip() if comment else comment,
        }

    return changes


_RULES: dict[ClaimStatus, _Rule] = {
    ClaimStatus.OPERATIONS_APPROVED: _Rule(
        roles=frozenset({Role.OPERATIONS}),
        sources=AWAITING_OPERATIONS_REVIEW,
        audit_action="Operations approved",
    ),
    ClaimStatus.LEGAL_APPROVED: _Rule(
        roles=frozenset({Role.LEGAL}),
        sources=frozenset({ClaimStatus.OPERATIONS_APPROVED}),
        audit_action="Legal approved",
        changes=lambda now, _comment: stamp(now, "date_approved"),
    ),
    ClaimStatus.REJECTED: _Rule(
        roles=frozenset({Role.OPERATIONS, Role.LEGAL}),
        sources=REVIEWER_REJECTABLE,
        audit_action="Rejected",
        comment_required=True,
        changes=lambda _now, comment: {"rejection_reason": comment.strip() if comment else comment},
    ),
    ClaimStatus.SENT_TO_SUPPLIER: _Rule(
        roles=frozenset({Role.PURCHASING}),
        sources=frozenset({ClaimStatus.LEGAL_APPROVED}),
        audit_action="Sent to supplier",
        notify=True,
        changes=lambda now, _comment: stamp(now, "date_sent_to_supplier"),
    ),
    ClaimStatus.ACCEPTED: _Rule(
        roles=frozenset({Role.SUPPLIER}),
        sources=frozenset({ClaimStatus.SENT_TO_SUPPLIER}),
        audit_action="Accepted by supplier",
        comment_required=True,
        supplier_owned=True,
        changes=_supplier_response(True),
    ),
    ClaimStatus.REJECTED_BY_SUPPLIER: _Rule(
        roles=frozenset({Role.SUPPLIER}),
        sources=frozenset({ClaimStatus.SENT_TO_SUPPLIER}),
        audit_action="Rejected by supplier",
        comment_required=True,
        supplier_owned=True,
        changes=_supplier_response(False),
    ),
}


def _roles_text(roles: frozenset[Role]) -> str:
    return " or ".join(sorted(r.value for r in roles))


def attempt_transition(
    current: ClaimStatus,
    requested: ClaimStatus,
    actor: Actor,
    comment: Optional[str],
    *,
    claim_supplier_id: Optional[int],
    now: datetime,
) -> Decision:
    """Decide whether ``actor`` may move a claim from ``current`` to ``requested``.

    Role and state are checked before the comment, so a blank comment on an
    otherwise permitted transition is reported as ``ValidationFailed``.
    """
    rule = _RULES.get(requested)
    if rule is None:
        return TransitionDenied(
            ErrorKind.INVALID_TRANSITION,
            f"No transition leads to '{requested.value}'",
        )
    if actor.role not in rule.roles:
        return TransitionDenied(
            ErrorKind.INVALID_TRANSITION,
            f"Only {_roles_text(rule.roles)} users can move a claim to '{requested.value}'",
        )
    if current not in rule.sources:
        return TransitionDenied(
            ErrorKind.INVALID_TRANSITION,
            f"A claim in status '{current.value}' cannot move to '{requested.value}'",
        )
    if rule.supplier_owned and (
        actor.company_id is None or actor.company_id != claim_supplier_id
    ):
        return TransitionDenied(
            ErrorKind.INVALID_TRANSITION,
            "You are not authorized to respond to this claim",
        )
    if rule.comment_required and is_blank(comment):
        return TransitionDenied(
            ErrorKind.VALIDATION_FAILED,
            f"A comment is required to move a claim to '{requested.value}'",
        )

    changes: dict[str, Any] = {"status": requested.value}
    if rule.changes is not None:
        changes.update(rule.changes(now, comment))
    return TransitionApproved(
        next_state=requested,
        changes=changes,
        audit_action=rule.audit_action,
        notify=rule.notify,
    )


def resolve_action(current: ClaimStatus, action: WorkflowAction) -> ClaimStatus | TransitionDenied:
    """Map a requested action onto the target status it means for ``current``."""
    if action is WorkflowAction.APPROVE:
        if current in AWAITING_OPERATIONS_REVIEW:
            return ClaimStatus.OPERATIONS_APPROVED
        if current is ClaimStatus.OPERATIONS_APPROVED:
            return ClaimStatus.LEGAL_APPROVED
        return TransitionDenied(
            ErrorKind.INVALID_TRANSITION,
            f"A claim in status '{current.value}' has no pending approval",
        )
    targets = {
        WorkflowAction.REJECT: ClaimStatus.REJECTED,
        WorkflowAction.SEND_TO_SUPPLIER: ClaimStatus.SENT_TO_SUPPLIER,
        WorkflowAction.ACCEPT: ClaimStatus.ACCEPTED,
        WorkflowAction.DECLINE: ClaimStatus.REJECTED_BY_SUPPLIER,
    }
    return targets[action]


def decide(
    current: ClaimStatus,
    action: WorkflowAction,
    actor: Actor,
    comment: Optional[str],
    *,
    claim_supplier_id: Optional[int],
    now: datetime,
) -> Decision:
    target = resolve_action(current, action)
    if isinstance(target, TransitionDenied):
        return target
    return attempt_transition(
        current, target, actor, comment, claim_supplier_id=claim_supplier_id, now=now
    )


def _allowed(current, action, actor, supplier_id, now) -> bool:
    # eligibility ignores the comment requirement; that is input validation
    return decide(
        current, action, actor, "-", claim_supplier_id=supplier_id, now=now
    ).ok


def editable_fields(
    current: ClaimStatus, actor: Actor, claim_supplier_id: Optional[int]
) -> frozenset[str]:
    """Fields ``actor`` may edit on a claim in ``current`` (empty when none)."""
    if actor.role is Role.SUPPLIER:
        if current is ClaimStatus.SENT_TO_SUPPLIER and actor.company_id == claim_supplier_id:
            return SUPPLIER_RESPONSE_FIELDS
        return frozenset()
    if current in _EDIT_WINDOWS.get(actor.role, frozenset()):
        return NARRATIVE_FIELDS
    return frozenset()


def available_actions(
    current: ClaimStatus, actor: Actor, claim_supplier_id: Optional[int], now: datetime
) -> dict[str, Any]:
    can_accept = _allowed(current, WorkflowAction.ACCEPT, actor, claim_supplier_id, now)
    can_decline = _allowed(current, WorkflowAction.DECLINE, actor, claim_supplier_id, now)
    fields = editable_fields(current, actor, claim_supplier_id)
    return {
        "can_approve": _allowed(current, WorkflowAction.APPROVE, actor, claim_supplier_id, now),
        "can_reject": _allowed(current, WorkflowAction.REJECT, actor, claim_supplier_id, now),
        "can_send_to_supplier": _allowed(
            current, WorkflowAction.SEND_TO_SUPPLIER, actor, claim_supplier_id, now
        ),
        "can_respond": can_accept or can_decline,
        "can_edit": bool(fields),
        "editable_fields": sorted(fields),
    }


def format_claim_number(year: int, sequence: int) -> str:
    return f"{CLAIM_NUMBER_PREFIX}-{year}-{sequence:03d}"
