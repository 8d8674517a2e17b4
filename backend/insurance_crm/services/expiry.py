"""
Expiry tracking for policy instances.

Warning levels by days until expiry:
    critical  <= 7
    warning   <= 30
    info      <= 60
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.cache import CacheKeys, CacheTTL, cache, invalidate_policy_caches
from insurance_crm.core.constants import CRITICAL_DAYS, INFO_DAYS, WARNING_DAYS, PolicyStatus, WarningLevel
from insurance_crm.core.logging import get_logger
from insurance_crm.db.models.base import today
from insurance_crm.db.models.policy_instance import PolicyInstance
from insurance_crm.repositories import policy_instances as instance_repository
from insurance_crm.repositories.activities import ActivityAction, log_activity

logger = get_logger(__name__)


def warning_level(days_until_expiry: int) -> WarningLevel | None:
    if days_until_expiry <= CRITICAL_DAYS:
        return WarningLevel.CRITICAL
    if days_until_expiry <= WARNING_DAYS:
        return WarningLevel.WARNING
    if days_until_expiry <= INFO_DAYS:
        return WarningLevel.INFO
    return None


def build_warning(instance: PolicyInstance, as_of: date) -> dict[str, Any]:
    days = (instance.expiry_date - as_of).days
    template = instance.policy_template
    client = instance.client
    return {
        "policy_instance_id": instance.id,
        "client_id": client.id,
        "client_name": client.full_name,
        "policy_template_id": template.id,
        "policy_number": template.policy_number,
        "policy_type": template.policy_type,
        "provider": template.provider,
        "expiry_date": instance.expiry_date,
        "days_until_expiry": days,
        "premium_amount": instance.premium_amount,
        "commission_amount": instance.commission_amount,
        "warning_level": warning_level(days),
    }


async def get_expiry_warnings(
    db: AsyncSession,
    *,
    days_ahead: int = INFO_DAYS,
    client_id: uuid.UUID | None = None,
    template_id: uuid.UUID | None = None,
) -> list[dict[str, Any]]:
    """Active instances expiring within `days_ahead`, soonest first."""
    scope = f"client:{client_id}" if client_id else f"template:{template_id}" if template_id else "all"
    key = CacheKeys.expiry(f"warnings:{days_ahead}", scope)
    cached = cache.get(key)
    if cached is not None:
        return cached

    current = today()
    instances = await instance_repository.list_active_expiring_between(
        db,
        current,
        current + timedelta(days=days_ahead),
        client_id=client_id,
        template_id=template_id,
    )
    warnings = [build_warning(instance, current) for instance in instances]
    cache.set(key, warnings, ttl=CacheTTL.EXPIRY)
    return warnings


def group_warnings(warnings: list[dict[str, Any]]) -> dict[str, Any]:
    grouped: dict[str, list[dict[str, Any]]] = {level.value: [] for level in WarningLevel}
    for warning in warnings:
        if warning["warning_level"] is not None:
            grouped[warning["warning_level"]].append(warning)
    counts = {level: len(items) for level, items in grouped.items()}
    return {**grouped, "counts": counts, "total": sum(counts.values())}


async def get_expiry_summary(db: AsyncSession) -> dict[str, Any]:
    key = CacheKeys.expiry("summary")
    cached = cache.get(key)
    if cached is not None:
        return cached

    current = today()
    active = PolicyInstance.status == PolicyStatus.ACTIVE.value

    async def expiring_within(days: int) -> int:
        stmt = select(func.count(PolicyInstance.id)).where(
            active,
            PolicyInstance.expiry_date >= current,
            PolicyInstance.expiry_date <= current + timedelta(days=days),
        )
        return (await db.execute(stmt)).scalar_one()

    week = await expiring_within(7)
    month = await expiring_within(30)
    quarter = await expiring_within(90)
    total_active = (
        await db.execute(
            select(func.count(PolicyInstance.id)).where(active, PolicyInstance.expiry_date >= current)
        )
    ).scalar_one()

    at_risk_stmt = select(
        func.coalesce(func.sum(PolicyInstance.premium_amount), 0.0),
        func.coalesce(func.sum(PolicyInstance.commission_amount), 0.0),
    ).where(
        active,
        PolicyInstance.expiry_date >= current,
        PolicyInstance.expiry_date <= current + timedelta(days=90),
    )
    premium, commission = (await db.execute(at_risk_stmt)).one()

    summary = {
        "expiring_this_week": week,
        "expiring_this_month": month,
        "expiring_next_three_months": quarter,
        "total_active_instances": total_active,
        "expiry_rate_week": round(week / total_active * 100, 2) if total_active else 0.0,
        "expiry_rate_month": round(month / total_active * 100, 2) if total_active else 0.0,
        "revenue_at_risk": {
            "premium": round(float(premium), 2),
            "commission": round(float(commission), 2),
            "total": round(float(premium) + float(commission), 2),
        },
    }
    cache.set(key, summary, ttl=CacheTTL.EXPIRY)
    return summary


async def update_expired_statuses(db: AsyncSession) -> dict[str, Any]:
    """Flip every Active instance whose expiry date has passed to Expired."""
    current = today()
    overdue = await instance_repository.list_overdue_active(db, current)
    if not overdue:
        return {"updated_count": 0, "updated_policies": []}

    updated = [
        {
            "id": instance.id,
            "policy_number": instance.policy_template.policy_number,
            "client_name": instance.client.full_name,
            "expiry_date": instance.expiry_date,
        }
        for instance in overdue
    ]
    count = await instance_repository.mark_expired(db, [instance.id for instance in overdue])
    await log_activity(
        db,
        ActivityAction.POLICIES_EXPIRED,
        f"Automatically updated {count} expired policy instance(s)",
    )
    invalidate_policy_caches()
    logger.info("Expired policy statuses updated", updated_count=count)
    return {"updated_count": count, "updated_policies": updated}
