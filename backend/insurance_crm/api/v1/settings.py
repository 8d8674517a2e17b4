"""Agent settings: profile and password."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.api.deps import get_current_agent, get_db
from insurance_crm.api.responses import ok
from insurance_crm.api.schemas.auth import AgentSettingsResponse, PasswordChange, SettingsUpdate
from insurance_crm.core.errors import ValidationFailed
from insurance_crm.core.security import verify_password
from insurance_crm.repositories import agent_settings as agent_repository
from insurance_crm.repositories.activities import ActivityAction, log_activity

router = APIRouter(prefix="/settings", tags=["Settings"], dependencies=[Depends(get_current_agent)])


@router.get("")
async def get_settings(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    row = await agent_repository.get_or_create_settings(db)
    return ok(AgentSettingsResponse.model_validate(row))


@router.put("")
async def update_settings(payload: SettingsUpdate, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    row = await agent_repository.update_profile(
        db,
        agent_name=payload.agent_name,
        agent_email=payload.agent_email,
    )
    await log_activity(db, ActivityAction.SETTINGS_UPDATED, "Updated agent settings")
    return ok(AgentSettingsResponse.model_validate(row), "Settings updated successfully")


@router.put("/password")
async def change_password(payload: PasswordChange, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    row = await agent_repository.get_or_create_settings(db)
    if not verify_password(payload.current_password, row.password_hash):
        raise ValidationFailed.for_field("current_password", "Current password is incorrect")
    await agent_repository.update_password(db, row, payload.new_password)
    await log_activity(db, ActivityAction.SETTINGS_UPDATED, "Changed account password")
    return ok(None, "Password updated successfully")
