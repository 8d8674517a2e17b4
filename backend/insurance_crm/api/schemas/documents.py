"""Client document schemas."""

from __future__ import annotations

from datetime import datetime
import uuid

from pydantic import BaseModel, ConfigDict, Field

from insurance_crm.api.schemas import RequestModel


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    client_id: uuid.UUID
    document_type: str
    file_name: str
    original_name: str
    mime_type: str
    file_size: int
    cloudinary_url: str
    cloudinary_id: str
    uploaded_at: datetime


class UrlRequest(RequestModel):
    width: int | None = Field(None, ge=1, le=4000)
    height: int | None = Field(None, ge=1, le=4000)
    crop: str | None = Field(None, max_length=20)
