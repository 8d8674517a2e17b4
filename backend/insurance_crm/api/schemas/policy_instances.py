"""Policy instance request/response schemas."""

from __future__ import annotations

from datetime import date, datetime
import uuid

from pydantic import BaseModel, ConfigDict, Field

from insurance_crm.api.schemas import RequestModel
from insurance_crm.api.schemas.clients import ClientSummary
from insurance_crm.core.constants import PolicyStatus


class PolicyInstanceCreate(RequestModel):
    policy_template_id: uuid.UUID
    premium_amount: float = Field(..., gt=0)
    start_date: date
    duration_months: int = Field(..., ge=1, le=120)
    commission_amount: float = Field(0.0, ge=0)


class PolicyInstanceUpdate(RequestModel):
    non_nullable = frozenset(
        {"premium_amount", "commission_amount", "start_date", "duration_months", "expiry_date", "status"}
    )

    premium_amount: float | None = Field(None, gt=0)
    commission_amount: float | None = Field(None, ge=0)
    start_date: date | None = None
    duration_months: int | None = Field(None, ge=1, le=120)
    expiry_date: date | None = None
    status: PolicyStatus | None = None


class StatusUpdate(RequestModel):
    status: PolicyStatus


class AssociationCheck(RequestModel):
    policy_template_id: uuid.UUID
    client_id: uuid.UUID


class ExpiryCalculation(RequestModel):
    start_date: date
    duration_months: int = Field(..., ge=1, le=120)


class TemplateSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    policy_number: str
    policy_type: str
    provider: str
    description: str | None


class ClientPolicyInstance(BaseModel):
    """Instance as listed on a client record, with its template."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    policy_template_id: uuid.UUID
    client_id: uuid.UUID
    premium_amount: float
    commission_amount: float
    start_date: date
    duration_months: int
    expiry_date: date
    status: str
    created_at: datetime
    updated_at: datetime
    policy_template: TemplateSummary


class PolicyInstanceResponse(ClientPolicyInstance):
    client: ClientSummary
