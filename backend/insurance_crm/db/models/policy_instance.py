"""
PolicyInstance model — a client's enrolment in a policy template.

Invariants:
    - At most one instance per (template, client) pair
    - expiry_date = start_date + duration_months
    - status is Active until the expiry sweep marks it Expired
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
import uuid

from sqlalchemy import Date, Float, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from insurance_crm.core.constants import PolicyStatus
from insurance_crm.db.models.base import Base, UTCDateTime, generate_uuid, utcnow

if TYPE_CHECKING:
    from insurance_crm.db.models.client import Client
    from insurance_crm.db.models.policy_template import PolicyTemplate


class PolicyInstance(Base):
    __tablename__ = "policy_instances"
    __table_args__ = (
        UniqueConstraint(
            "policy_template_id", "client_id", name="uq_policy_instances_template_client"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=generate_uuid)
    policy_template_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("policy_templates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # ── Terms ─────────────────────────────────
    premium_amount: Mapped[float] = mapped_column(Float, nullable=False)
    commission_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    duration_months: Mapped[int] = mapped_column(Integer, nullable=False)
    expiry_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PolicyStatus.ACTIVE.value, index=True
    )

    # ── Timestamps ────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    # ── Relationships ─────────────────────────
    policy_template: Mapped[PolicyTemplate] = relationship(back_populates="instances")
    client: Mapped[Client] = relationship(back_populates="policy_instances")

    def __repr__(self) -> str:
        return (
            f"<PolicyInstance id={self.id} template={self.policy_template_id} "
            f"client={self.client_id} status={self.status} expires={self.expiry_date}>"
        )
