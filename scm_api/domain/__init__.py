"""Domain package — all ORM models are imported here so Alembic autogenerate detects them.

Folder intent:
  claim.py      — supplier claims (approval workflow entity)
  rating.py     — supplier ratings and rating requests (acceptance workflow entity)
  directory.py  — suppliers, projects, users (read by the workflow for recipients)
  audit.py      — Immutable audit trail (never updated or deleted)
  mixins.py     — Shared TimestampMixin, VersionMixin
"""

from scm_api.domain.audit import AuditTrail
from scm_api.domain.claim import Claim
from scm_api.domain.directory import Project, Supplier, User
from scm_api.domain.rating import RatingRequest, SupplierRating

__all__ = [
    "AuditTrail",
    "Claim",
    "Project",
    "RatingRequest",
    "Supplier",
    "SupplierRating",
    "User",
]
