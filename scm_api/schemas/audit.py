"""Audit trail response schema."""


from datetime import datetime
from typing import Any

from scm_api.schemas.common import CamelModel

class AuditEntryOut(CamelModel):
    id: int
    actor_id: int | None = None
    actor_role: str | None = None
    action: str
    entity_type: str
    entity_id: int
    description: str | None = None
    old_value: Any | None = None
    new_value: Any | None = None
    created_at: datetime
