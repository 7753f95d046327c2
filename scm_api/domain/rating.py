"""SQLAlchemy ORM models for supplier performance ratings and rating requests."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from scm_api.db.base import Base
from scm_api.domain.mixins import TimestampMixin, VersionMixin, utc_now


class SupplierRating(Base, TimestampMixin, VersionMixin):
    """One submitted rating. Append-only apart from the acceptance fields."""

    __tablename__ = "supplier_ratings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    supplier_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("suppliers.id"), nullable=False, index=True
    )
    project_id: Mapped[int] = mapped_column(Integer, ForeignKey("projects.id"), nullable=False)
    request_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("rating_requests.id"), nullable=True
    )
    job_description: Mapped[str] = mapped_column(Text, nullable=False)
    overall_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # 1-5 each, NULL when not rated
    hse_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    communication_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    competency_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    on_time_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    service_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    overall_rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False, default=0)

    rating_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    accepted_by_supplier: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    accepted_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    supplier_comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class RatingRequest(Base, TimestampMixin):
    """A supplier's request to be rated for its work on a project."""

    __tablename__ = "rating_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    supplier_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("suppliers.id"), nullable=False, index=True
    )
    project_id: Mapped[int] = mapped_column(Integer, ForeignKey("projects.id"), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    request_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    # "pending" | "completed"
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False, index=True)
    requested_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
