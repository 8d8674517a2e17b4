"""
MessageLog — one row per outbound email or WhatsApp message.

Rows are created PENDING before the provider call and finalised as
SENT or FAILED.  The automation jobs read these rows to avoid sending
the same birthday wish or renewal reminder twice.
"""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, String, Text, Uuid

from insurance_crm.db.models.base import Base, UTCDateTime, generate_uuid, utcnow


class MessageLog(Base):
    """Delivery record of a single email/WhatsApp send."""

    __tablename__ = "message_logs"

    id = Column(Uuid, primary_key=True, default=generate_uuid)

    # ── Message ───────────────────────────────
    channel = Column(String(20), nullable=False, index=True)        # EMAIL | WHATSAPP
    message_type = Column(String(30), nullable=False, index=True)   # BIRTHDAY_WISH | POLICY_RENEWAL | CUSTOM
    recipient = Column(String(320), nullable=False)
    recipient_name = Column(String(255), nullable=False)
    subject = Column(String(500), nullable=True)
    template_name = Column(String(100), nullable=True)

    # ── Delivery ──────────────────────────────
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    provider_message_id = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)
    sent_at = Column(UTCDateTime, nullable=True)

    # ── Links ─────────────────────────────────
    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True, index=True)
    lead_id = Column(Uuid, ForeignKey("leads.id", ondelete="SET NULL"), nullable=True, index=True)
    policy_instance_id = Column(
        Uuid, ForeignKey("policy_instances.id", ondelete="SET NULL"), nullable=True, index=True
    )
    whatsapp_template_id = Column(
        Uuid, ForeignKey("whatsapp_templates.id", ondelete="SET NULL"), nullable=True
    )

    created_at = Column(UTCDateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<MessageLog {self.channel}/{self.message_type} to={self.recipient} status={self.status}>"
