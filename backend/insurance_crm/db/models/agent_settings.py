"""
AgentSettings model — profile and credentials of the single CRM user.

The table is expected to hold exactly one row.  It is created on demand
by the settings repository and populated by the seed script.
"""

from datetime import datetime
import uuid

from sqlalchemy import String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from insurance_crm.db.models.base import Base, UTCDateTime, generate_uuid, utcnow


class AgentSettings(Base):
    __tablename__ = "settings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=generate_uuid)
    agent_name: Mapped[str] = mapped_column(String(255), nullable=False, default="Agent")
    agent_email: Mapped[str] = mapped_column(String(320), nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<AgentSettings {self.agent_email} name={self.agent_name!r}>"
