"""Authentication endpoints for login, token verification and profile."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.api.deps import get_current_agent, get_current_token_payload, get_db
from insurance_crm.api.responses import ok
from insurance_crm.api.schemas.auth import AgentProfile, LoginRequest, TokenResponse
from insurance_crm.core.config import settings
from insurance_crm.core.errors import AuthenticationFailed
from insurance_crm.core.logging import get_logger
from insurance_crm.core.security import create_access_token
from insurance_crm.db.models.agent_settings import AgentSettings
from insurance_crm.repositories import agent_settings as agent_repository

router = APIRouter(prefix="/auth", tags=["Auth"])
logger = get_logger(__name__)


def _profile(agent: AgentSettings) -> AgentProfile:
    return AgentProfile(id=agent.id, email=agent.agent_email, name=agent.agent_name)


@router.post("/login")
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    """Authenticate the agent and issue an access token."""
    agent = await agent_repository.authenticate_agent(
        db,
        email=payload.email,
        password=payload.password,
    )
    if agent is None:
        logger.warning("Login failed", email=payload.email)
        raise AuthenticationFailed("Invalid credentials")

    token = create_access_token(
        {
            "sub": str(agent.id),
            "email": agent.agent_email,
            "name": agent.agent_name,
        }
    )
    logger.info("Agent logged in", agent_id=str(agent.id))
    response = TokenResponse(
        token=token,
        token_type="bearer",
        expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=_profile(agent),
    )
    return ok(response, "Login successful")


@router.get("/verify")
async def verify_token(
    agent: AgentSettings = Depends(get_current_agent),
    token_payload: dict[str, Any] = Depends(get_current_token_payload),
) -> dict[str, Any]:
    """Confirm a token is valid and return who it belongs to."""
    return ok({"valid": True, "user": _profile(agent), "expires_at": token_payload.get("exp")})


@router.get("/me")
async def read_current_agent(agent: AgentSettings = Depends(get_current_agent)) -> dict[str, Any]:
    """Return the authenticated agent's profile."""
    return ok(_profile(agent))
