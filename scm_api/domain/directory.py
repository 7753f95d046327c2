"""SQLAlchemy ORM models for the directory collaborators: suppliers, projects, users.

These tables are maintained by the wider SCM application. The workflow reads
them to resolve notification recipients and display names.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from scm_api.db.base import Base
from scm_api.domain.mixins import TimestampMixin


class Supplier(Base, TimestampMixin):
    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sap_supplier_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    contact_name_1: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email_1: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    contact_name_2: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email_2: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    @property
    def notification_address(self) -> Optional[str]:
        return self.email_1 or self.email_2


class Project(Base, TimestampMixin):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_number: Mapped[str] = mapped_column(String(50), nullable=False)
    project_name: Mapped[str] = mapped_column(String(255), nullable=False)
    project_area: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    # "purchasing" | "operations" | "accounting" | "legal" | "management" | "engineer" | "supplier"
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    company_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True
    )
