"""
PolicyTemplate model — master definition of a policy sold by the agent.

A template is identified by its unique policy number and is instantiated
per client as a PolicyInstance.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional
import uuid

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from insurance_crm.db.models.base import Base, UTCDateTime, generate_uuid, utcnow

if TYPE_CHECKING:
    from insurance_crm.db.models.policy_instance import PolicyInstance


class PolicyTemplate(Base):
    __tablename__ = "policy_templates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=generate_uuid)
    policy_number: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True
    )
    policy_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    provider: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    instances: Mapped[list[PolicyInstance]] = relationship(
        back_populates="policy_template", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<PolicyTemplate {self.policy_number} type={self.policy_type} provider={self.provider!r}>"
