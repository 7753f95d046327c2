"""Transition request and workflow eligibility schemas."""


from pydantic import Field

from scm_api.schemas.common import CamelModel
from scm_api.workflow.states import EntityType, WorkflowAction

class TransitionRequest(CamelModel):
    entity_type: EntityType
    entity_id: int
    action: WorkflowAction
    comment: str | None = Field(default=None, max_length=4000)

class WorkflowView(CamelModel):
    """What the current actor may do with an entity; drives button visibility."""

    entity_type: str
    entity_id: int
    status: str
    version: int
    can_approve: bool = False
    can_reject: bool = False
    can_send_to_supplier: bool = False
    can_respond: bool = False
    can_edit: bool = False
    editable_fields: list[str] = Field(default_factory=list)
    can_accept_rating: bool = False
    ineligible_reason: str | None = None
    days_remaining: int | None = None
