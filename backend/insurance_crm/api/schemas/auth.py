"""Authentication and agent settings schemas."""

from __future__ import annotations

from datetime import datetime
import uuid

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from insurance_crm.api.schemas import RequestModel


class LoginRequest(RequestModel):
    """Request payload for login endpoint."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)


class AgentProfile(BaseModel):
    id: uuid.UUID
    email: str
    name: str


class TokenResponse(BaseModel):
    """Bearer access token plus the agent it belongs to."""

    token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., ge=1)
    user: AgentProfile


class AgentSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    agent_name: str
    agent_email: str
    created_at: datetime
    updated_at: datetime


class SettingsUpdate(RequestModel):
    agent_name: str = Field(..., min_length=1, max_length=100)
    agent_email: EmailStr


class PasswordChange(RequestModel):
    current_password: str = Field(..., min_length=1, max_length=256)
    new_password: str = Field(..., min_length=8, max_length=256)
