"""Shared dependencies for API routes."""

from __future__ import annotations

from typing import Any, AsyncGenerator
import uuid

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from insurance_crm.core.security import decode_access_token
from insurance_crm.db.models.agent_settings import AgentSettings
from insurance_crm.db.session import get_db as _get_db
from insurance_crm.repositories import agent_settings as agent_repository

security_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session."""
    async for session in _get_db():
        yield session


async def get_current_token_payload(
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
) -> dict[str, Any]:
    """Extract and validate JWT payload from bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication credentials were not provided",
        )

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return payload


async def get_current_agent(
    db: AsyncSession = Depends(get_db),
    token_payload: dict[str, Any] = Depends(get_current_token_payload),
) -> AgentSettings:
    """Resolve the agent account the token was issued for."""
    try:
        agent_id = uuid.UUID(str(token_payload.get("sub")))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
        ) from None

    agent = await agent_repository.get_settings(db)
    if agent is None or agent.id != agent_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or inactive user",
        )
    return agent


class Pagination:
    """`page` / `limit` query parameters."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    ) -> None:
        self.page = page
        self.limit = limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def meta(self, total: int) -> dict[str, int]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": total,
            "total_pages": (total + self.limit - 1) // self.limit,
        }
