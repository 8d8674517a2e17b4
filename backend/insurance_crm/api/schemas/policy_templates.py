"""Policy template request schemas."""

from __future__ import annotations

from pydantic import Field, field_validator

from insurance_crm.api.schemas import RequestModel
from insurance_crm.core.constants import POLICY_NUMBER_PATTERN, InsuranceType


class PolicyTemplateCreate(RequestModel):
    policy_number: str = Field(..., min_length=1, max_length=50, pattern=POLICY_NUMBER_PATTERN)
    policy_type: InsuranceType
    provider: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)

    @field_validator("policy_number", "provider", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class PolicyTemplateUpdate(PolicyTemplateCreate):
    non_nullable = frozenset({"policy_number", "policy_type", "provider"})

    policy_number: str | None = Field(None, min_length=1, max_length=50, pattern=POLICY_NUMBER_PATTERN)
    policy_type: InsuranceType | None = None
    provider: str | None = Field(None, min_length=1, max_length=100)
