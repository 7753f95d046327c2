"""Workflow vocabulary shared by the engines, services and routers.

Roles, claim statuses, requested actions and the decision values the engines
return. Decisions are plain values: the engines never raise, callers inspect
the returned :class:`TransitionApproved` / :class:`TransitionDenied`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union


class Role(str, Enum):
    PURCHASING = "purchasing"
    OPERATIONS = "operations"
    ACCOUNTING = "accounting"
    LEGAL = "legal"
    MANAGEMENT = "management"
    ENGINEER = "engineer"
    SUPPLIER = "supplier"


class ClaimStatus(str, Enum):
    """Claim workflow states (stored values match the legacy status text).

    Forward path: NEW/UNDER_REVIEW -> OPERATIONS_APPROVED -> LEGAL_APPROVED
    -> SENT_TO_SUPPLIER -> ACCEPTED | REJECTED_BY_SUPPLIER.
    REJECTED is the reviewers' terminal branch, REJECTED_BY_SUPPLIER the
    supplier's.
    """

    NEW = "New"
    UNDER_REVIEW = "Under review"
    OPERATIONS_APPROVED = "Operations approved"
    LEGAL_APPROVED = "Legal approved"
    SENT_TO_SUPPLIER = "Sent to supplier"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    REJECTED_BY_SUPPLIER = "Rejected by supplier"


# NEW and UNDER_REVIEW both mean "awaiting operations review"
AWAITING_OPERATIONS_REVIEW = frozenset({ClaimStatus.NEW, ClaimStatus.UNDER_REVIEW})

REVIEWER_REJECTABLE = frozenset(
    {ClaimStatus.NEW, ClaimStatus.UNDER_REVIEW, ClaimStatus.OPERATIONS_APPROVED}
)

TERMINAL_STATUSES = frozenset(
    {ClaimStatus.ACCEPTED, ClaimStatus.REJECTED, ClaimStatus.REJECTED_BY_SUPPLIER}
)


class ClaimArea(str, Enum):
    MATERIAL = "Material"
    SERVICE = "Service"
    HSE = "HSE"


class DemandType(str, Enum):
    COMPENSATION = "Compensation"
    REPLACEMENT = "Replacement"
    REPAIR = "Repair"
    CREDIT_NOTE = "Credit Note"
    OTHER = "Other"


class EntityType(str, Enum):
    CLAIM = "claim"
    RATING = "supplier_rating"


class WorkflowAction(str, Enum):
    """Actions a caller may request through the transition endpoint."""

    APPROVE = "approve"
    REJECT = "reject"
    SEND_TO_SUPPLIER = "send_to_supplier"
    ACCEPT = "accept"      # supplier accepts a claim or a rating
    DECLINE = "decline"    # supplier rejects a claim


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    INVALID_TRANSITION = "InvalidTransition"
    VALIDATION_FAILED = "ValidationFailed"
    NOT_ELIGIBLE = "NotEligible"
    CONFLICT = "Conflict"


class IneligibleReason(str, Enum):
    WRONG_ROLE = "wrong_role"
    WRONG_SUPPLIER = "wrong_supplier"
    ALREADY_ACCEPTED = "already_accepted"
    WINDOW_EXPIRED = "window_expired"


@dataclass(frozen=True)
class Actor:
    """Identity + role + company affiliation a transition is requested under."""

    id: int
    role: Role
    company_id: Optional[int] = None
    email: Optional[str] = None

    @property
    def is_supplier(self) -> bool:
        return self.role is Role.SUPPLIER


@dataclass(frozen=True)
class TransitionApproved:
    """A permitted transition: the next state and the field patch to persist."""

    next_state: Any
    changes: dict[str, Any] = field(default_factory=dict)
    audit_action: str = ""
    notify: bool = False

    ok = True


@dataclass(frozen=True)
class TransitionDenied:
    kind: ErrorKind
    message: str
    reason: Optional[str] = None

    ok = False


Decision = Union[TransitionApproved, TransitionDenied]


def is_blank(text: Optional[str]) -> bool:
    return text is None or not text.strip()


def stamp(now: datetime, *names: str) -> dict[str, datetime]:
    return {name: now for name in names}
