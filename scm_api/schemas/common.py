"""Schema base shared by every request and response model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python; reads ORM rows directly."""

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        from_attributes=True,
    )


class HealthResponse(CamelModel):
    status: str = "ok"
    app: str
    env: str
    version: str
    mail_delivery: str  # "smtp" | "log"
