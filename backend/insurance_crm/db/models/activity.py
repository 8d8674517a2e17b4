"""
Activity — append-only log of user actions shown on the dashboard feed.
"""

from __future__ import annotations

from sqlalchemy import Column, String, Text, Uuid

from insurance_crm.db.models.base import Base, UTCDateTime, generate_uuid, utcnow


class Activity(Base):
    """One human-readable activity entry."""

    __tablename__ = "activities"

    id = Column(Uuid, primary_key=True, default=generate_uuid)
    action = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Activity {self.action} at={self.created_at}>"
