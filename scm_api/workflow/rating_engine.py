"""Supplier-rating acceptance rules.

A rated supplier may accept its rating within a fixed window after the
rating date. The window is evaluated lazily against the caller's ``now``;
nothing ever expires in storage.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from scm_api.workflow.states import (
    Actor,
    Decision,
    ErrorKind,
    IneligibleReason,
    Role,
    TransitionApproved,
    TransitionDenied,
    stamp,
)

DEFAULT_ACCEPTANCE_WINDOW_DAYS = 5

SUBRATING_FIELDS = (
    "hse_rating",
    "communication_rating",
    "competency_rating",
    "on_time_rating",
    "service_rating",
)

_MESSAGES = {
    IneligibleReason.WRONG_ROLE: "Only suppliers can accept a rating",
    IneligibleReason.WRONG_SUPPLIER: "This rating belongs to another supplier",
    IneligibleReason.ALREADY_ACCEPTED: "This rating has already been accepted",
    IneligibleReason.WINDOW_EXPIRED: "The acceptance window for this rating has closed",
}


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as SQLite returns them) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_between(now: datetime, earlier: datetime) -> int:
    """Whole days elapsed from ``earlier`` to ``now`` (partial days truncated)."""
    return (as_utc(now) - as_utc(earlier)).days


def compute_overall_rating(values: Iterable[Optional[int]]) -> Decimal:
    """Mean of the sub-ratings that are present; zero/unset ones are skipped.

    Returns ``Decimal("0")`` when nothing was rated.
    """
    present = [v for v in values if v]
    if not present:
        return Decimal("0")
    mean = Decimal(sum(present)) / Decimal(len(present))
    return mean.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def ineligibility(
    rating: Any,
    actor: Actor,
    now: datetime,
    window_days: int = DEFAULT_ACCEPTANCE_WINDOW_DAYS,
) -> Optional[IneligibleReason]:
    if actor.role is not Role.SUPPLIER:
        return IneligibleReason.WRONG_ROLE
    if actor.company_id is None or actor.company_id != rating.supplier_id:
        return IneligibleReason.WRONG_SUPPLIER
    if rating.accepted_by_supplier:
        return IneligibleReason.ALREADY_ACCEPTED
    if days_between(now, rating.rating_date) > window_days:
        return IneligibleReason.WINDOW_EXPIRED
    return None


def can_accept(
    rating: Any,
    actor: Actor,
    now: datetime,
    window_days: int = DEFAULT_ACCEPTANCE_WINDOW_DAYS,
) -> bool:
    return ineligibility(rating, actor, now, window_days) is None


def days_remaining(
    rating: Any, now: datetime, window_days: int = DEFAULT_ACCEPTANCE_WINDOW_DAYS
) -> int:
    if rating.accepted_by_supplier:
        return 0
    return max(window_days - days_between(now, rating.rating_date), 0)


def decide_acceptance(
    rating: Any,
    actor: Actor,
    comment: Optional[str],
    now: datetime,
    window_days: int = DEFAULT_ACCEPTANCE_WINDOW_DAYS,
) -> Decision:
    reason = ineligibility(rating, actor, now, window_days)
    if reason is not None:
        return TransitionDenied(ErrorKind.NOT_ELIGIBLE, _MESSAGES[reason], reason=reason.value)

    changes: dict[str, Any] = {
        "accepted_by_supplier": True,
        **stamp(now, "accepted_date"),
        "supplier_comment": comment.strip() if comment and comment.strip() else None,
    }
    return TransitionApproved(
        next_state="accepted",
        changes=changes,
        audit_action="Rating accepted",
        notify=True,
    )
