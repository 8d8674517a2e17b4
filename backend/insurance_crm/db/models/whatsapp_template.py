"""
WhatsAppTemplate — an MSG91-approved message template.

`template_name` is the provider-side name (e.g. ``birthday_wish``);
`namespace` is the WhatsApp Business namespace the template belongs to.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, String, UniqueConstraint, Uuid

from insurance_crm.db.models.base import Base, UTCDateTime, generate_uuid, utcnow


class WhatsAppTemplate(Base):
    """Registered WhatsApp template used by automated sends."""

    __tablename__ = "whatsapp_templates"
    __table_args__ = (
        UniqueConstraint("message_type", "template_name", name="uq_whatsapp_templates_type_name"),
    )

    id = Column(Uuid, primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    template_name = Column(String(100), nullable=False)
    namespace = Column(String(100), nullable=False, default="")
    language = Column(String(10), nullable=False, default="en")
    message_type = Column(String(30), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<WhatsAppTemplate {self.template_name} type={self.message_type} active={self.is_active}>"
