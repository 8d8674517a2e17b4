"""
MessageAutomation — bookkeeping for each scheduled automation rule.

One row per (message_type, channel, trigger); the daily run stamps
`last_run_at` and `next_run_at`.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, String, UniqueConstraint, Uuid

from insurance_crm.db.models.base import Base, UTCDateTime, generate_uuid, utcnow


class MessageAutomation(Base):
    __tablename__ = "message_automations"
    __table_args__ = (
        UniqueConstraint(
            "message_type", "channel", "trigger", name="uq_message_automations_type_channel_trigger"
        ),
    )

    id = Column(Uuid, primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    message_type = Column(String(30), nullable=False)
    channel = Column(String(20), nullable=False)
    trigger = Column(String(30), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    days_before = Column(Integer, nullable=True)

    last_run_at = Column(UTCDateTime, nullable=True)
    next_run_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<MessageAutomation {self.name!r} last_run={self.last_run_at}>"
