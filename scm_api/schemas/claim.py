"""Claim Pydantic schemas (request DTOs and response models)."""


from datetime import date, datetime
from decimal import Decimal

from pydantic import Field

from scm_api.schemas.common import CamelModel
from scm_api.workflow.states import ClaimArea, DemandType

class ClaimCreate(CamelModel):
    supplier_id: int
    project_id: int | None = None
    agreement_id: int | None = None
    order_number: str | None = Field(default=None, max_length=50)
    date_happened: date | None = None
    claim_area: ClaimArea
    claim_info: str = Field(min_length=5)
    damage_text: str = Field(min_length=5)
    damage_amount: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    defects_description: str | None = None
    demand_type: DemandType | None = None
    demand_text: str | None = None

class ClaimUpdate(CamelModel):
    """Partial edit. Which fields an actor may send depends on role and status."""

    project_id: int | None = None
    agreement_id: int | None = None
    order_number: str | None = Field(default=None, max_length=50)
    date_happened: date | None = None
    claim_area: ClaimArea | None = None
    claim_info: str | None = Field(default=None, min_length=5)
    damage_text: str | None = Field(default=None, min_length=5)
    damage_amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    defects_description: str | None = None
    demand_type: DemandType | None = None
    demand_text: str | None = None
    accepted_supplier_text: str | None = None

class ClaimOut(CamelModel):
    id: int
    claim_number: str
    supplier_id: int
    project_id: int | None = None
    agreement_id: int | None = None
    order_number: str | None = None
    date_happened: date | None = None
    claim_area: str
    claim_info: str
    damage_text: str
    damage_amount: Decimal
    defects_description: str | None = None
    demand_type: str | None = None
    demand_text: str | None = None
    status: str
    date_entered: datetime
    date_approved: datetime | None = None
    date_sent_to_supplier: datetime | None = None
    date_feedback: datetime | None = None
    rejection_reason: str | None = None
    accepted_by_supplier: bool | None = None
    accepted_supplier_text: str | None = None
    created_by: int | None = None
    version: int
    created_at: datetime
    updated_at: datetime
