"""SQLAlchemy ORM model for supplier claims.

Claims are permanent audit artifacts: there is no delete path. Status and the
workflow timestamps change only through the workflow coordinator.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from scm_api.db.base import Base
from scm_api.domain.mixins import TimestampMixin, VersionMixin, utc_now
from scm_api.workflow.states import ClaimStatus


class Claim(Base, TimestampMixin, VersionMixin):
    __tablename__ = "claims"
    __table_args__ = (
        UniqueConstraint("claim_year", "claim_sequence", name="uq_claims_year_sequence"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    claim_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)
    claim_year: Mapped[int] = mapped_column(Integer, nullable=False)
    claim_sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    # Parties
    supplier_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("suppliers.id"), nullable=False, index=True
    )
    project_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("projects.id"), nullable=True
    )
    agreement_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    order_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Narrative and monetary
    date_happened: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    claim_area: Mapped[str] = mapped_column(String(20), nullable=False)  # Material | Service | HSE
    claim_info: Mapped[str] = mapped_column(Text, nullable=False)
    damage_text: Mapped[str] = mapped_column(Text, nullable=False)
    damage_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    defects_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    demand_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    demand_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Workflow
    status: Mapped[str] = mapped_column(
        String(50), default=ClaimStatus.NEW.value, nullable=False, index=True
    )
    date_entered: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    date_approved: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    date_sent_to_supplier: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    date_feedback: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # None = no answer yet, True = accepted, False = rejected by supplier
    accepted_by_supplier: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    accepted_supplier_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    @property
    def workflow_status(self) -> ClaimStatus:
        return ClaimStatus(self.status)
