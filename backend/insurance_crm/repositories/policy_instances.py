"""
Policy instance repository.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

from datetime import date
from typing import Any
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from insurance_crm.core.constants import PolicyStatus
from insurance_crm.db.models.base import utcnow
from insurance_crm.db.models.policy_instance import PolicyInstance

UPDATABLE_FIELDS = {
    "premium_amount",
    "commission_amount",
    "start_date",
    "duration_months",
    "expiry_date",
    "status",
}

_WITH_RELATIONS = (
    selectinload(PolicyInstance.policy_template),
    selectinload(PolicyInstance.client),
)


async def create_instance(db: AsyncSession, **fields: Any) -> PolicyInstance:
    instance = PolicyInstance(**fields)
    db.add(instance)
    await db.flush()
    return instance


async def get_instance(db: AsyncSession, instance_id: uuid.UUID) -> PolicyInstance | None:
    """Fetch an instance with its template and client loaded."""
    stmt = select(PolicyInstance).where(PolicyInstance.id == instance_id).options(*_WITH_RELATIONS)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_instance_for_pair(
    db: AsyncSession,
    *,
    policy_template_id: uuid.UUID,
    client_id: uuid.UUID,
) -> PolicyInstance | None:
    stmt = select(PolicyInstance).where(
        PolicyInstance.policy_template_id == policy_template_id,
        PolicyInstance.client_id == client_id,
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_client_instances(db: AsyncSession, client_id: uuid.UUID) -> list[PolicyInstance]:
    """A client's instances, newest first."""
    stmt = (
        select(PolicyInstance)
        .where(PolicyInstance.client_id == client_id)
        .options(*_WITH_RELATIONS)
        .order_by(PolicyInstance.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_template_instances(db: AsyncSession, template_id: uuid.UUID) -> list[PolicyInstance]:
    """A template's instances, latest start date first."""
    stmt = (
        select(PolicyInstance)
        .where(PolicyInstance.policy_template_id == template_id)
        .options(*_WITH_RELATIONS)
        .order_by(PolicyInstance.start_date.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_active_expiring_between(
    db: AsyncSession,
    start: date,
    end: date,
    *,
    client_id: uuid.UUID | None = None,
    template_id: uuid.UUID | None = None,
) -> list[PolicyInstance]:
    """Active instances whose expiry date falls in [start, end], soonest first."""
    stmt = (
        select(PolicyInstance)
        .where(
            PolicyInstance.status == PolicyStatus.ACTIVE.value,
            PolicyInstance.expiry_date >= start,
            PolicyInstance.expiry_date <= end,
        )
        .options(*_WITH_RELATIONS)
        .order_by(PolicyInstance.expiry_date.asc())
    )
    if client_id is not None:
        stmt = stmt.where(PolicyInstance.client_id == client_id)
    if template_id is not None:
        stmt = stmt.where(PolicyInstance.policy_template_id == template_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_instance(db: AsyncSession, instance: PolicyInstance, fields: dict[str, Any]) -> PolicyInstance:
    for key, value in fields.items():
        if key in UPDATABLE_FIELDS:
            setattr(instance, key, value)
    await db.flush()
    return instance


async def delete_instance(db: AsyncSession, instance: PolicyInstance) -> None:
    await db.delete(instance)
    await db.flush()


async def list_overdue_active(db: AsyncSession, as_of: date) -> list[PolicyInstance]:
    """Active instances whose expiry date is before `as_of`."""
    stmt = (
        select(PolicyInstance)
        .where(
            PolicyInstance.status == PolicyStatus.ACTIVE.value,
            PolicyInstance.expiry_date < as_of,
        )
        .options(*_WITH_RELATIONS)
        .order_by(PolicyInstance.expiry_date.asc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def mark_expired(db: AsyncSession, instance_ids: list[uuid.UUID]) -> int:
    """Bulk-flip the given instances to Expired. Returns rows updated."""
    if not instance_ids:
        return 0
    stmt = (
        update(PolicyInstance)
        .where(PolicyInstance.id.in_(instance_ids))
        .values(status=PolicyStatus.EXPIRED.value, updated_at=utcnow())
        .execution_options(synchronize_session="fetch")
    )
    result = await db.execute(stmt)
    await db.flush()
    return result.rowcount or 0
