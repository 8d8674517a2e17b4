"""
Agent settings repository — the single CRM user's profile and credentials.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.config import settings
from insurance_crm.core.security import hash_password, verify_password
from insurance_crm.db.models.agent_settings import AgentSettings


async def get_settings(db: AsyncSession) -> AgentSettings | None:
    """Fetch the settings row (there is at most one)."""
    stmt = select(AgentSettings).order_by(AgentSettings.created_at).limit(1)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_or_create_settings(db: AsyncSession) -> AgentSettings:
    """Return the settings row, creating a passwordless default if absent."""
    row = await get_settings(db)
    if row is not None:
        return row
    row = AgentSettings(
        agent_name=settings.AGENT_NAME,
        agent_email=settings.AGENT_EMAIL.lower().strip(),
        password_hash="",
    )
    db.add(row)
    await db.flush()
    return row


async def authenticate_agent(
    db: AsyncSession,
    *,
    email: str,
    password: str,
) -> AgentSettings | None:
    """Validate credentials against the settings row."""
    row = await get_settings(db)
    if row is None:
        return None
    if row.agent_email.lower() != email.lower().strip():
        return None
    if not verify_password(password, row.password_hash):
        return None
    return row


async def update_profile(
    db: AsyncSession,
    *,
    agent_name: str,
    agent_email: str,
) -> AgentSettings:
    """Update the agent's display name and login email."""
    row = await get_or_create_settings(db)
    row.agent_name = agent_name.strip()
    row.agent_email = agent_email.lower().strip()
    await db.flush()
    return row


async def update_password(db: AsyncSession, row: AgentSettings, new_password: str) -> AgentSettings:
    """Replace the stored password hash."""
    row.password_hash = hash_password(new_password)
    await db.flush()
    return row


async def upsert_agent(
    db: AsyncSession,
    *,
    name: str,
    email: str,
    password: str,
) -> AgentSettings:
    """Create or overwrite the agent account (seed / credential reset)."""
    row = await get_or_create_settings(db)
    row.agent_name = name.strip()
    row.agent_email = email.lower().strip()
    row.password_hash = hash_password(password)
    await db.flush()
    return row
