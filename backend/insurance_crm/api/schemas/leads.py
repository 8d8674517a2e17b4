"""Lead request/response schemas."""

from __future__ import annotations

from datetime import date, datetime
import uuid

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PastDate, field_validator

from insurance_crm.api.schemas import RequestModel
from insurance_crm.core.constants import INDIAN_MOBILE_PATTERN, InsuranceType, LeadPriority, LeadStatus


class LeadCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str = Field(..., pattern=INDIAN_MOBILE_PATTERN)
    whatsapp_number: str | None = Field(None, pattern=INDIAN_MOBILE_PATTERN)
    date_of_birth: PastDate | None = None
    insurance_interest: InsuranceType
    status: LeadStatus = LeadStatus.NEW
    priority: LeadPriority = LeadPriority.WARM
    notes: str | None = Field(None, max_length=1000)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return value.strip()


class LeadUpdate(RequestModel):
    non_nullable = frozenset({"name", "phone", "insurance_interest", "status", "priority"})

    name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(None, pattern=INDIAN_MOBILE_PATTERN)
    whatsapp_number: str | None = Field(None, pattern=INDIAN_MOBILE_PATTERN)
    date_of_birth: PastDate | None = None
    insurance_interest: InsuranceType | None = None
    status: LeadStatus | None = None
    priority: LeadPriority | None = None
    notes: str | None = Field(None, max_length=1000)


class LeadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str | None
    phone: str
    whatsapp_number: str | None
    date_of_birth: date | None
    insurance_interest: str
    status: str
    priority: str
    notes: str | None
    created_at: datetime
    updated_at: datetime
