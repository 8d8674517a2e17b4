"""Per-channel message log views shared by the email and WhatsApp endpoints."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.db.models.base import utcnow
from insurance_crm.repositories import messages as message_repository
from insurance_crm.services import automation as automation_service

RECENT_LOG_LIMIT = 10


async def channel_stats(db: AsyncSession, channel: str, days: int = 30) -> dict[str, Any]:
    stats = await message_repository.message_stats(db, channel=channel, since=utcnow() - timedelta(days=days))
    return {**stats, "period_days": days}


async def channel_logs(
    db: AsyncSession,
    channel: str,
    *,
    days: int = 7,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Any], int]:
    return await message_repository.list_message_logs(
        db,
        channel=channel,
        since=utcnow() - timedelta(days=days),
        offset=offset,
        limit=limit,
    )


async def channel_dashboard(db: AsyncSession, channel: str) -> dict[str, Any]:
    """Stats, recent logs, automation rules and what is coming up next."""
    recent, _ = await channel_logs(db, channel, days=7, limit=RECENT_LOG_LIMIT)
    birthdays = await automation_service.get_upcoming_birthdays(db, days=7)
    renewals = await automation_service.get_upcoming_renewals(db, days=30)
    return {
        "stats": await channel_stats(db, channel, days=30),
        "recent_logs": recent,
        "automations": await message_repository.list_automations(db, channel=channel),
        "upcoming_birthdays": len(birthdays),
        "upcoming_renewals": len(renewals),
    }
