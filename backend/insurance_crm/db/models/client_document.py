"""
ClientDocument — metadata for a file stored in Cloudinary.

The binary lives in Cloudinary; this row keeps the delivery URL and
public id needed to serve or destroy it.
"""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from insurance_crm.db.models.base import Base, UTCDateTime, generate_uuid, utcnow


class ClientDocument(Base):
    """One uploaded document belonging to a client."""

    __tablename__ = "client_documents"

    id = Column(Uuid, primary_key=True, default=generate_uuid)
    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)

    # ── File identity ─────────────────────────
    document_type = Column(String(30), nullable=False, index=True)
    file_name = Column(String(500), nullable=False)
    original_name = Column(String(500), nullable=False)
    mime_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False, default=0)

    # ── Storage ───────────────────────────────
    cloudinary_url = Column(String(1000), nullable=False)
    cloudinary_id = Column(String(500), nullable=False)
    resource_type = Column(String(20), nullable=False, default="raw")

    # ── Timestamps ────────────────────────────
    uploaded_at = Column(UTCDateTime, default=utcnow, nullable=False)

    # ── Relationships ─────────────────────────
    client = relationship("Client", back_populates="documents")

    def __repr__(self) -> str:
        return f"<ClientDocument {self.original_name} type={self.document_type} client={self.client_id}>"
