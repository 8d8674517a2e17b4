"""
Activity repository — append-only dashboard feed.

Recording an activity must never break the operation that triggered it,
so `log_activity` logs and swallows database errors.
"""

from __future__ import annotations

from enum import StrEnum

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.logging import get_logger
from insurance_crm.db.models.activity import Activity

logger = get_logger(__name__)


class ActivityAction(StrEnum):
    LEAD_CREATED = "lead_created"
    LEAD_UPDATED = "lead_updated"
    LEAD_STATUS_UPDATED = "lead_status_updated"
    LEAD_DELETED = "lead_deleted"
    LEAD_CONVERTED = "lead_converted"
    CLIENT_CREATED = "client_created"
    CLIENT_UPDATED = "client_updated"
    CLIENT_DELETED = "client_deleted"
    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_DELETED = "document_deleted"
    POLICY_TEMPLATE_CREATED = "policy_template_created"
    POLICY_TEMPLATE_UPDATED = "policy_template_updated"
    POLICY_TEMPLATE_DELETED = "policy_template_deleted"
    POLICY_INSTANCE_CREATED = "policy_instance_created"
    POLICY_INSTANCE_UPDATED = "policy_instance_updated"
    POLICY_INSTANCE_DELETED = "policy_instance_deleted"
    POLICY_INSTANCE_STATUS_UPDATED = "policy_instance_status_updated"
    POLICIES_EXPIRED = "policies_expired"
    SETTINGS_UPDATED = "settings_updated"


async def log_activity(db: AsyncSession, action: str, description: str) -> Activity | None:
    """Insert one activity row. Returns None if the insert failed."""
    activity = Activity(action=str(action), description=description)
    try:
        db.add(activity)
        await db.flush()
    except SQLAlchemyError as exc:
        logger.warning("Failed to log activity", action=str(action), error=str(exc))
        return None
    return activity


async def list_recent_activities(db: AsyncSession, limit: int = 5) -> list[Activity]:
    """Latest activities, newest first."""
    stmt = select(Activity).order_by(Activity.created_at.desc()).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
