"""
Lead model — a sales prospect captured from the public form or by the agent.

Status flow:
    New → Contacted → Qualified → Won | Lost

A lead becomes `Won` when it is converted into a Client.
"""

from datetime import date, datetime
from typing import Optional
import uuid

from sqlalchemy import Date, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from insurance_crm.core.constants import LeadPriority, LeadStatus
from insurance_crm.db.models.base import Base, UTCDateTime, generate_uuid, utcnow


class Lead(Base):
    __tablename__ = "leads"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    whatsapp_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    insurance_interest: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LeadStatus.NEW.value, index=True
    )
    priority: Mapped[str] = mapped_column(
        String(10), nullable=False, default=LeadPriority.WARM.value
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Lead id={self.id} {self.name!r} status={self.status}>"
