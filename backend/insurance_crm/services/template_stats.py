"""
Policy template statistics.

All figures are computed with SQL aggregates and cached per area
(see `CacheTTL`).  Instance "active" means status Active with an expiry
date today or later; the expired-status sweep may lag behind the
calendar, so both conditions are checked.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.cache import CacheKeys, CacheTTL, cache
from insurance_crm.core.constants import PolicyStatus
from insurance_crm.db.models.base import today, utcnow
from insurance_crm.db.models.client import Client
from insurance_crm.db.models.policy_instance import PolicyInstance
from insurance_crm.db.models.policy_template import PolicyTemplate
from insurance_crm.repositories.policy_templates import TemplateFilters


def _pct(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _active_condition():
    return (PolicyInstance.status == PolicyStatus.ACTIVE.value) & (PolicyInstance.expiry_date >= today())


async def _scalar(db: AsyncSession, stmt) -> Any:
    return (await db.execute(stmt)).scalar_one()


# ─── Overview ─────────────────────────────────────────────
async def get_overview_stats(db: AsyncSession, filters: TemplateFilters | None = None) -> dict[str, Any]:
    """Headline numbers for the (optionally filtered) template set."""
    filters = filters or TemplateFilters()
    key = CacheKeys.template_stats("overview", filters.as_dict())
    cached = cache.get(key)
    if cached is not None:
        return cached

    conditions = filters.conditions()
    total_templates = await _scalar(db, select(func.count(PolicyTemplate.id)).where(*conditions))
    instance_stmt = (
        select(
            func.count(PolicyInstance.id),
            func.count(func.distinct(PolicyInstance.client_id)),
        )
        .select_from(PolicyInstance)
        .join(PolicyInstance.policy_template)
        .where(*conditions)
    )
    total_instances, total_clients = (await db.execute(instance_stmt)).one()
    active_instances = await _scalar(
        db,
        select(func.count(PolicyInstance.id))
        .select_from(PolicyInstance)
        .join(PolicyInstance.policy_template)
        .where(*conditions, _active_condition()),
    )

    stats = {
        "total_templates": total_templates,
        "total_instances": total_instances,
        "active_instances": active_instances,
        "total_clients": total_clients,
        "top_providers": await _grouped_counts(db, PolicyTemplate.provider, conditions, limit=5),
        "policy_type_distribution": await _grouped_counts(db, PolicyTemplate.policy_type, conditions),
    }
    cache.set(key, stats, ttl=CacheTTL.TEMPLATE_STATS)
    return stats


async def _grouped_counts(db: AsyncSession, column, conditions: list[Any], limit: int | None = None) -> list[dict[str, Any]]:
    template_count = func.count(func.distinct(PolicyTemplate.id))
    stmt = (
        select(column, template_count, func.count(PolicyInstance.id))
        .select_from(PolicyTemplate)
        .outerjoin(PolicyInstance, PolicyInstance.policy_template_id == PolicyTemplate.id)
        .where(*conditions)
        .group_by(column)
        .order_by(template_count.desc(), column)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    label = "provider" if column is PolicyTemplate.provider else "type"
    return [
        {label: value, "template_count": templates, "instance_count": instances}
        for value, templates, instances in (await db.execute(stmt)).all()
    ]


# ─── Per-template detail ──────────────────────────────────
async def get_detail_stats(db: AsyncSession, template_id: uuid.UUID) -> dict[str, Any]:
    key = CacheKeys.template_detail(str(template_id), "stats")
    cached = cache.get(key)
    if cached is not None:
        return cached

    current = today()
    of_template = PolicyInstance.policy_template_id == template_id
    totals_stmt = select(
        func.count(PolicyInstance.id),
        func.coalesce(func.sum(PolicyInstance.premium_amount), 0.0),
        func.coalesce(func.sum(PolicyInstance.commission_amount), 0.0),
        func.avg(PolicyInstance.premium_amount),
    ).where(of_template)
    total, premium, commission, average = (await db.execute(totals_stmt)).one()

    active = await _scalar(db, select(func.count(PolicyInstance.id)).where(of_template, _active_condition()))
    expired = await _scalar(
        db,
        select(func.count(PolicyInstance.id)).where(of_template, PolicyInstance.expiry_date < current),
    )
    expiring = await _scalar(
        db,
        select(func.count(PolicyInstance.id)).where(
            of_template,
            PolicyInstance.expiry_date >= current,
            PolicyInstance.expiry_date <= current + timedelta(days=30),
        ),
    )

    stats = {
        "total_clients": total,
        "active_instances": active,
        "expired_instances": expired,
        "total_premium": round(float(premium), 2),
        "total_commission": round(float(commission), 2),
        "average_premium": round(float(average or 0), 2),
        "expiring_this_month": expiring,
    }
    cache.set(key, stats, ttl=CacheTTL.TEMPLATE_DETAIL)
    return stats


# ─── Expiry tracking ──────────────────────────────────────
async def get_expiry_tracking_stats(db: AsyncSession) -> dict[str, Any]:
    key = CacheKeys.template_stats("expiry_tracking")
    cached = cache.get(key)
    if cached is not None:
        return cached

    current = today()

    async def count_between(start, end, *extra) -> int:
        return await _scalar(
            db,
            select(func.count(PolicyInstance.id)).where(
                PolicyInstance.expiry_date >= start,
                PolicyInstance.expiry_date <= end,
                *extra,
            ),
        )

    upcoming_stmt = (
        select(PolicyInstance.id, Client.first_name, Client.last_name, PolicyTemplate.policy_number, PolicyInstance.expiry_date)
        .join(PolicyInstance.client)
        .join(PolicyInstance.policy_template)
        .where(
            PolicyInstance.status == PolicyStatus.ACTIVE.value,
            PolicyInstance.expiry_date >= current,
            PolicyInstance.expiry_date <= current + timedelta(days=30),
        )
        .order_by(PolicyInstance.expiry_date.asc())
        .limit(20)
    )
    expiring_instances = [
        {
            "id": instance_id,
            "client_name": f"{first} {last}",
            "policy_number": number,
            "expiry_date": expiry,
            "days_until_expiry": (expiry - current).days,
        }
        for instance_id, first, last, number, expiry in (await db.execute(upcoming_stmt)).all()
    ]

    stats = {
        "expiring_this_week": await count_between(current, current + timedelta(days=7)),
        "expiring_this_month": await count_between(current, current + timedelta(days=30)),
        "expiring_next_month": await count_between(
            current + timedelta(days=31), current + timedelta(days=60)
        ),
        "expired_last_month": await count_between(
            current - timedelta(days=30), current - timedelta(days=1)
        ),
        "expiring_instances": expiring_instances,
    }
    cache.set(key, stats, ttl=CacheTTL.EXPIRY)
    return stats


# ─── System metrics ───────────────────────────────────────
async def get_system_metrics(db: AsyncSession) -> dict[str, Any]:
    key = CacheKeys.template_stats("system_metrics")
    cached = cache.get(key)
    if cached is not None:
        return cached

    now = utcnow()
    current = now.date()

    totals_stmt = select(
        func.count(PolicyInstance.id),
        func.coalesce(func.sum(PolicyInstance.premium_amount), 0.0),
        func.coalesce(func.sum(PolicyInstance.commission_amount), 0.0),
    )
    instance_count, revenue, commission = (await db.execute(totals_stmt)).one()

    # Retention: clients who held an instance created over a year ago
    one_year_ago = now - timedelta(days=365)
    old = PolicyInstance.created_at <= one_year_ago
    clients_then = await _scalar(db, select(func.count(func.distinct(PolicyInstance.client_id))).where(old))
    clients_retained = await _scalar(
        db,
        select(func.count(func.distinct(PolicyInstance.client_id))).where(
            old, PolicyInstance.status == PolicyStatus.ACTIVE.value
        ),
    )

    # Renewal rate is approximated as new instances over recent expiries
    half_year_ago = now - timedelta(days=180)
    expired_recently = await _scalar(
        db,
        select(func.count(PolicyInstance.id)).where(
            PolicyInstance.expiry_date >= half_year_ago.date(),
            PolicyInstance.expiry_date <= current,
        ),
    )
    created_recently = await _scalar(
        db, select(func.count(PolicyInstance.id)).where(PolicyInstance.created_at >= half_year_ago)
    )
    renewal_rate = min(_pct(created_recently, expired_recently), 100.0)

    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    previous_month_start = (month_start - timedelta(days=1)).replace(day=1)
    this_month = await _scalar(
        db, select(func.count(PolicyInstance.id)).where(PolicyInstance.created_at >= month_start)
    )
    last_month = await _scalar(
        db,
        select(func.count(PolicyInstance.id)).where(
            PolicyInstance.created_at >= previous_month_start,
            PolicyInstance.created_at < month_start,
        ),
    )
    growth = _pct(this_month - last_month, last_month)

    instance_total = func.count(PolicyInstance.id)
    top_stmt = (
        select(
            PolicyTemplate.id,
            PolicyTemplate.policy_number,
            instance_total,
            func.coalesce(func.sum(PolicyInstance.premium_amount), 0.0),
        )
        .outerjoin(PolicyInstance, PolicyInstance.policy_template_id == PolicyTemplate.id)
        .group_by(PolicyTemplate.id, PolicyTemplate.policy_number)
        .order_by(instance_total.desc(), PolicyTemplate.policy_number)
        .limit(10)
    )
    top_templates = [
        {
            "id": template_id,
            "policy_number": number,
            "instance_count": count,
            "total_revenue": round(float(total), 2),
            "average_value": round(float(total) / count, 2) if count else 0.0,
        }
        for template_id, number, count, total in (await db.execute(top_stmt)).all()
    ]

    stats = {
        "total_revenue": round(float(revenue), 2),
        "total_commission": round(float(commission), 2),
        "average_instance_value": round(float(revenue) / instance_count, 2) if instance_count else 0.0,
        "client_retention_rate": _pct(clients_retained, clients_then),
        "policy_renewal_rate": renewal_rate,
        "monthly_growth_rate": growth,
        "top_performing_templates": top_templates,
    }
    cache.set(key, stats, ttl=CacheTTL.TEMPLATE_STATS)
    return stats


# ─── Performance breakdowns ───────────────────────────────
async def get_provider_performance(db: AsyncSession) -> list[dict[str, Any]]:
    key = CacheKeys.template_stats("provider_performance")
    cached = cache.get(key)
    if cached is not None:
        return cached

    stmt = (
        select(
            PolicyTemplate.provider,
            func.count(func.distinct(PolicyTemplate.id)),
            func.count(PolicyInstance.id),
            func.coalesce(func.sum(PolicyInstance.premium_amount), 0.0),
            func.count(PolicyInstance.id).filter(PolicyInstance.status == PolicyStatus.ACTIVE.value),
            func.count(PolicyInstance.id).filter(PolicyInstance.status == PolicyStatus.EXPIRED.value),
        )
        .select_from(PolicyTemplate)
        .outerjoin(PolicyInstance, PolicyInstance.policy_template_id == PolicyTemplate.id)
        .group_by(PolicyTemplate.provider)
    )
    metrics = []
    for provider, templates, instances, revenue, active, expired in (await db.execute(stmt)).all():
        metrics.append(
            {
                "provider": provider,
                "template_count": templates,
                "instance_count": instances,
                "total_revenue": round(float(revenue), 2),
                "average_instance_value": round(float(revenue) / instances, 2) if instances else 0.0,
                "active_instances_ratio": _pct(active, instances),
                "expiry_rate": _pct(expired, instances),
            }
        )
    metrics.sort(key=lambda m: (-m["total_revenue"], m["provider"]))
    cache.set(key, metrics, ttl=CacheTTL.TEMPLATE_STATS)
    return metrics


async def get_policy_type_performance(db: AsyncSession) -> list[dict[str, Any]]:
    key = CacheKeys.template_stats("policy_type_performance")
    cached = cache.get(key)
    if cached is not None:
        return cached

    three_months_ago = utcnow() - timedelta(days=90)
    template_count = func.count(func.distinct(PolicyTemplate.id))
    stmt = (
        select(
            PolicyTemplate.policy_type,
            template_count,
            func.count(PolicyInstance.id),
            func.coalesce(func.sum(PolicyInstance.premium_amount), 0.0),
            func.count(PolicyInstance.id).filter(PolicyInstance.created_at >= three_months_ago),
        )
        .select_from(PolicyTemplate)
        .outerjoin(PolicyInstance, PolicyInstance.policy_template_id == PolicyTemplate.id)
        .group_by(PolicyTemplate.policy_type)
        .order_by(template_count.desc(), PolicyTemplate.policy_type)
    )
    metrics = []
    for rank, (policy_type, templates, instances, revenue, recent) in enumerate(
        (await db.execute(stmt)).all(), start=1
    ):
        metrics.append(
            {
                "policy_type": policy_type,
                "template_count": templates,
                "instance_count": instances,
                "total_revenue": round(float(revenue), 2),
                "average_instance_value": round(float(revenue) / instances, 2) if instances else 0.0,
                "popularity_rank": rank,
                "growth_rate": _pct(recent, instances),
            }
        )
    cache.set(key, metrics, ttl=CacheTTL.TEMPLATE_STATS)
    return metrics
