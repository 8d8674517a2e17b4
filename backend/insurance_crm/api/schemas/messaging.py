"""Automation / messaging schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any
import uuid

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from insurance_crm.api.schemas import RequestModel


class RenewalRun(RequestModel):
    days_before: int = Field(30, ge=1, le=365)


class CustomWhatsAppMessage(RequestModel):
    recipient_phone: str = Field(..., min_length=10, max_length=15)
    recipient_name: str = Field(..., min_length=1, max_length=255)
    template_name: str = Field(..., min_length=1, max_length=100)
    components: dict[str, Any] = Field(default_factory=dict)
    client_id: uuid.UUID | None = None
    lead_id: uuid.UUID | None = None


class CustomEmail(RequestModel):
    to: EmailStr
    subject: str = Field(..., min_length=1, max_length=500)
    html: str = Field(..., min_length=1)
    text: str | None = None
    recipient_name: str = Field(..., min_length=1, max_length=255)
    client_id: uuid.UUID | None = None
    lead_id: uuid.UUID | None = None


class MessageLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    channel: str
    message_type: str
    recipient: str
    recipient_name: str
    subject: str | None
    template_name: str | None
    status: str
    provider_message_id: str | None
    error_message: str | None
    client_id: uuid.UUID | None
    lead_id: uuid.UUID | None
    policy_instance_id: uuid.UUID | None
    sent_at: datetime | None
    created_at: datetime


class AutomationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    message_type: str
    channel: str
    trigger: str
    is_active: bool
    days_before: int | None
    last_run_at: datetime | None
    next_run_at: datetime | None
