"""Client request/response schemas."""

from __future__ import annotations

from datetime import date, datetime
import uuid

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PastDate, field_validator

from insurance_crm.api.schemas import RequestModel
from insurance_crm.core.constants import (
    GST_PATTERN,
    INDIAN_MOBILE_PATTERN,
    PAN_PATTERN,
    Gender,
    MaritalStatus,
    Relationship,
)


class _ClientFields(RequestModel):
    middle_name: str | None = Field(None, max_length=100)
    age: int | None = Field(None, ge=1, le=120)
    gender: Gender | None = None
    birth_place: str | None = Field(None, max_length=100)
    height: float | None = Field(None, gt=0, lt=10)
    weight: float | None = Field(None, gt=0, lt=500)
    education: str | None = Field(None, max_length=100)
    marital_status: MaritalStatus | None = None
    relationship_type: Relationship | None = Field(None, alias="relationship")

    email: EmailStr | None = None
    state: str | None = Field(None, max_length=100)
    city: str | None = Field(None, max_length=100)
    address: str | None = Field(None, max_length=500)

    business_job: str | None = Field(None, max_length=100)
    name_of_business: str | None = Field(None, max_length=200)
    type_of_duty: str | None = Field(None, max_length=100)
    annual_income: float | None = Field(None, ge=0)
    pan_number: str | None = Field(None, pattern=PAN_PATTERN)
    gst_number: str | None = Field(None, pattern=GST_PATTERN)
    company_name: str | None = Field(None, max_length=200)
    additional_info: str | None = Field(None, max_length=2000)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("pan_number", "gst_number", mode="before")
    @classmethod
    def _upper(cls, value):
        return value.strip().upper() if isinstance(value, str) else value


class ClientCreate(_ClientFields):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: PastDate
    phone_number: str = Field(..., pattern=INDIAN_MOBILE_PATTERN)
    whatsapp_number: str = Field(..., pattern=INDIAN_MOBILE_PATTERN)


class ClientUpdate(_ClientFields):
    non_nullable = frozenset({"first_name", "last_name", "date_of_birth", "phone_number", "whatsapp_number"})

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    date_of_birth: PastDate | None = None
    phone_number: str | None = Field(None, pattern=INDIAN_MOBILE_PATTERN)
    whatsapp_number: str | None = Field(None, pattern=INDIAN_MOBILE_PATTERN)


class ClientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    first_name: str
    middle_name: str | None
    last_name: str
    date_of_birth: date
    age: int | None
    gender: str | None
    birth_place: str | None
    height: float | None
    weight: float | None
    education: str | None
    marital_status: str | None
    relationship: str | None = Field(None, validation_alias="relationship_type")
    phone_number: str
    whatsapp_number: str
    email: str | None
    state: str | None
    city: str | None
    address: str | None
    business_job: str | None
    name_of_business: str | None
    type_of_duty: str | None
    annual_income: float | None
    pan_number: str | None
    gst_number: str | None
    company_name: str | None
    additional_info: str | None
    profile_image_url: str | None
    created_at: datetime
    updated_at: datetime


class ClientListItem(ClientResponse):
    policy_count: int = 0


class ClientSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str | None
    phone_number: str
    whatsapp_number: str
