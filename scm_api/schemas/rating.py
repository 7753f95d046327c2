"""Supplier rating Pydantic schemas."""


from datetime import datetime
from decimal import Decimal

from pydantic import Field

from scm_api.schemas.common import CamelModel

_SCORE = {"default": None, "ge": 1, "le": 5}  # 1 (poor) .. 5 (excellent)

class RatingCreate(CamelModel):
    supplier_id: int
    project_id: int
    request_id: int | None = None
    job_description: str = Field(min_length=5)
    overall_text: str | None = None
    hse_rating: int | None = Field(**_SCORE)
    communication_rating: int | None = Field(**_SCORE)
    competency_rating: int | None = Field(**_SCORE)
    on_time_rating: int | None = Field(**_SCORE)
    service_rating: int | None = Field(**_SCORE)

class RatingRequestCreate(CamelModel):
    supplier_id: int
    project_id: int
    description: str = Field(min_length=5)

class RatingOut(CamelModel):
    id: int
    supplier_id: int
    project_id: int
    request_id: int | None = None
    job_description: str
    overall_text: str | None = None
    hse_rating: int | None = None
    communication_rating: int | None = None
    competency_rating: int | None = None
    on_time_rating: int | None = None
    service_rating: int | None = None
    overall_rating: Decimal
    rating_date: datetime
    accepted_by_supplier: bool
    accepted_date: datetime | None = None
    supplier_comment: str | None = None
    created_by: int | None = None
    version: int

class RatingRequestOut(CamelModel):
    id: int
    supplier_id: int
    project_id: int
    description: str
    request_date: datetime
    status: str
    requested_by: int | None = None
