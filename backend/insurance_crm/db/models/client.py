"""
Client model — a customer record (converted lead or directly entered).

Holds personal, contact, financial and business details in one table.
Policy instances and uploaded documents are owned by the client and are
removed with it.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Optional
import uuid

from sqlalchemy import Date, Float, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from insurance_crm.db.models.base import Base, UTCDateTime, generate_uuid, utcnow

if TYPE_CHECKING:
    from insurance_crm.db.models.client_document import ClientDocument
    from insurance_crm.db.models.policy_instance import PolicyInstance


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=generate_uuid)

    # ── Personal ──────────────────────────────
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    middle_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    birth_place: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    height: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # feet
    weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # kg
    education: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    marital_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    relationship_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # ── Contact ───────────────────────────────
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False)
    whatsapp_number: Mapped[str] = mapped_column(String(20), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(
        String(320), unique=True, nullable=True, index=True
    )
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Financial / business ──────────────────
    business_job: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    name_of_business: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    type_of_duty: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    annual_income: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    pan_number: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    gst_number: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    company_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    additional_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Profile image (Cloudinary) ────────────
    profile_image_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    profile_image_id: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # ── Timestamps ────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    # ── Relationships ─────────────────────────
    policy_instances: Mapped[list[PolicyInstance]] = relationship(
        back_populates="client", cascade="all, delete-orphan"
    )
    documents: Mapped[list[ClientDocument]] = relationship(
        back_populates="client", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Client id={self.id} {self.full_name!r}>"
