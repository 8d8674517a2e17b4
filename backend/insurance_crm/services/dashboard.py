"""Dashboard figures: headline totals with month-over-month change."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.cache import CacheKeys, CacheTTL, cache
from insurance_crm.core.constants import PolicyStatus
from insurance_crm.db.models.base import utcnow
from insurance_crm.db.models.policy_instance import PolicyInstance
from insurance_crm.repositories import clients as client_repository
from insurance_crm.repositories import leads as lead_repository
from insurance_crm.repositories.activities import list_recent_activities
from insurance_crm.services import template_stats


def percent_change(current: float, previous: float) -> int:
    """Whole-number percent change; 100 when growing from zero."""
    if previous == 0:
        return 100 if current > 0 else 0
    return round((current - previous) / previous * 100)


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Start of the current month and start of the previous month."""
    current_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    previous_start = (current_start - timedelta(days=1)).replace(day=1)
    return current_start, previous_start


async def _commission_between(db: AsyncSession, start: datetime, end: datetime | None) -> float:
    """Commission of instances created in the window, or renewed in it after being created earlier."""
    created = PolicyInstance.created_at >= start
    updated = PolicyInstance.updated_at >= start
    if end is not None:
        created = and_(created, PolicyInstance.created_at < end)
        updated = and_(updated, PolicyInstance.updated_at < end)
    stmt = select(func.coalesce(func.sum(PolicyInstance.commission_amount), 0.0)).where(
        or_(created, and_(updated, PolicyInstance.created_at < start))
    )
    return float((await db.execute(stmt)).scalar_one())


async def _count_instances(db: AsyncSession, *conditions) -> int:
    stmt = select(func.count(PolicyInstance.id)).where(*conditions)
    return (await db.execute(stmt)).scalar_one()


async def get_dashboard_stats(db: AsyncSession) -> dict[str, Any]:
    key = CacheKeys.dashboard("stats")
    cached = cache.get(key)
    if cached is not None:
        return cached

    now = utcnow()
    current = now.date()
    month_start, previous_start = month_bounds(now)

    total_leads = await lead_repository.count_leads(db)
    total_clients = await client_repository.count_clients(db)
    leads_before = await lead_repository.count_leads(db, created_before=month_start)
    clients_before = await client_repository.count_clients(db, created_before=month_start)

    active_policies = await _count_instances(
        db,
        PolicyInstance.status == PolicyStatus.ACTIVE.value,
        PolicyInstance.start_date <= current,
        PolicyInstance.expiry_date > current,
    )
    policies_this_month = await _count_instances(db, PolicyInstance.created_at >= month_start)
    policies_last_month = await _count_instances(
        db,
        PolicyInstance.created_at >= previous_start,
        PolicyInstance.created_at < month_start,
    )

    commission_this_month = await _commission_between(db, month_start, None)
    commission_last_month = await _commission_between(db, previous_start, month_start)

    stats = {
        "total_leads": total_leads,
        "total_clients": total_clients,
        "active_policies": active_policies,
        "commission_this_month": round(commission_this_month, 2),
        "leads_change": percent_change(total_leads - leads_before, leads_before),
        "clients_change": percent_change(total_clients - clients_before, clients_before),
        "policies_change": percent_change(policies_this_month, policies_last_month),
        "commission_change": percent_change(commission_this_month, commission_last_month),
    }
    cache.set(key, stats, ttl=CacheTTL.DASHBOARD)
    return stats


async def get_enhanced_dashboard_stats(db: AsyncSession) -> dict[str, Any]:
    stats = dict(await get_dashboard_stats(db))
    expiry = await template_stats.get_expiry_tracking_stats(db)
    stats["policy_template_stats"] = await template_stats.get_overview_stats(db)
    stats["expiry_warnings"] = {
        "expiring_this_week": expiry["expiring_this_week"],
        "expiring_this_month": expiry["expiring_this_month"],
        "expired_last_month": expiry["expired_last_month"],
    }
    return stats


async def get_leads_chart_data(db: AsyncSession) -> list[dict[str, Any]]:
    counts = await lead_repository.count_leads_by_status(db)
    return [{"status": status, "count": count} for status, count in counts.items()]


async def get_recent_activities(db: AsyncSession, limit: int = 5) -> list[dict[str, Any]]:
    activities = await list_recent_activities(db, limit=limit)
    return [
        {
            "id": activity.id,
            "action": activity.action,
            "description": activity.description,
            "created_at": activity.created_at,
        }
        for activity in activities
    ]


async def get_policy_template_system_stats(db: AsyncSession) -> dict[str, Any]:
    return {
        "overview": await template_stats.get_overview_stats(db),
        "system_metrics": await template_stats.get_system_metrics(db),
        "expiry_tracking": await template_stats.get_expiry_tracking_stats(db),
        "provider_performance": await template_stats.get_provider_performance(db),
        "policy_type_performance": await template_stats.get_policy_type_performance(db),
    }
