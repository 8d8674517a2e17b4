"""Policy template management: CRUD, cached listing, search and per-template views."""

from __future__ import annotations

from math import ceil
from typing import Any
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.cache import CacheKeys, CacheTTL, cache, invalidate_policy_caches
from insurance_crm.core.errors import ConflictError, NotFoundError
from insurance_crm.core.logging import get_logger
from insurance_crm.db.models.policy_template import PolicyTemplate
from insurance_crm.repositories import policy_instances as instance_repository
from insurance_crm.repositories import policy_templates as template_repository
from insurance_crm.repositories.activities import ActivityAction, log_activity
from insurance_crm.repositories.policy_templates import TemplateFilters
from insurance_crm.services import template_stats

logger = get_logger(__name__)

DUPLICATE_NUMBER_MESSAGE = "Policy template with this policy number already exists"
MAX_SEARCH_RESULTS = 50


def serialize_template(template: PolicyTemplate, **extra: Any) -> dict[str, Any]:
    data = {
        "id": template.id,
        "policy_number": template.policy_number,
        "policy_type": template.policy_type,
        "provider": template.provider,
        "description": template.description,
        "created_at": template.created_at,
        "updated_at": template.updated_at,
    }
    data.update(extra)
    return data


async def get_template_or_404(db: AsyncSession, template_id: uuid.UUID) -> PolicyTemplate:
    template = await template_repository.get_template(db, template_id)
    if template is None:
        raise NotFoundError("Policy template not found")
    return template


async def list_templates(
    db: AsyncSession,
    filters: TemplateFilters,
    *,
    sort_field: str = "policy_number",
    sort_direction: str = "asc",
    page: int = 1,
    limit: int = 50,
) -> dict[str, Any]:
    """One page of templates plus overview stats for the filtered set."""
    params = {
        **filters.as_dict(),
        "sort_field": sort_field,
        "sort_direction": sort_direction,
        "page": page,
        "limit": limit,
    }
    key = CacheKeys.template_list(params)
    cached = cache.get(key)
    if cached is not None:
        return cached

    rows, total = await template_repository.list_templates(
        db,
        filters,
        sort_field=sort_field,
        sort_direction=sort_direction,
        offset=(page - 1) * limit,
        limit=limit,
    )
    result = {
        "templates": [
            serialize_template(template, instance_count=count, active_instance_count=active)
            for template, count, active in rows
        ],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": ceil(total / limit) if total else 0,
        },
        "stats": await template_stats.get_overview_stats(db, filters),
    }
    cache.set(key, result, ttl=CacheTTL.TEMPLATE_LIST)
    return result


async def search_templates(
    db: AsyncSession,
    query: str,
    *,
    exclude_client_id: uuid.UUID | None = None,
    limit: int = 20,
) -> list[dict[str, Any]]:
    limit = max(1, min(limit, MAX_SEARCH_RESULTS))
    key = CacheKeys.template_search(query, str(exclude_client_id) if exclude_client_id else None, limit)
    cached = cache.get(key)
    if cached is not None:
        return cached

    rows = await template_repository.search_templates(
        db, query, exclude_client_id=exclude_client_id, limit=limit
    )
    results = [serialize_template(template, instance_count=count) for template, count in rows]
    cache.set(key, results, ttl=CacheTTL.TEMPLATE_SEARCH)
    return results


async def get_filter_options(db: AsyncSession) -> dict[str, list[str]]:
    key = CacheKeys.template_filters()
    cached = cache.get(key)
    if cached is not None:
        return cached
    options = await template_repository.list_distinct_values(db)
    cache.set(key, options, ttl=CacheTTL.TEMPLATE_FILTERS)
    return options


async def create_template(db: AsyncSession, fields: dict[str, Any]) -> PolicyTemplate:
    if await template_repository.get_template_by_number(db, fields["policy_number"]):
        raise ConflictError(DUPLICATE_NUMBER_MESSAGE)
    template = await template_repository.create_template(db, **fields)
    await log_activity(
        db,
        ActivityAction.POLICY_TEMPLATE_CREATED,
        f"Created policy template: {template.policy_number} ({template.provider})",
    )
    invalidate_policy_caches()
    logger.info("Policy template created", policy_number=template.policy_number)
    return template


async def update_template(db: AsyncSession, template_id: uuid.UUID, fields: dict[str, Any]) -> PolicyTemplate:
    template = await get_template_or_404(db, template_id)
    number = fields.get("policy_number")
    if number and number != template.policy_number:
        if await template_repository.get_template_by_number(db, number, exclude_id=template.id):
            raise ConflictError(DUPLICATE_NUMBER_MESSAGE)
    template = await template_repository.update_template(db, template, fields)
    await log_activity(
        db,
        ActivityAction.POLICY_TEMPLATE_UPDATED,
        f"Updated policy template: {template.policy_number} ({template.provider})",
    )
    invalidate_policy_caches()
    return template


async def delete_template(db: AsyncSession, template_id: uuid.UUID) -> dict[str, int]:
    template = await get_template_or_404(db, template_id)
    impact = await template_repository.get_deletion_impact(db, template.id)
    description = f"Deleted policy template: {template.policy_number} ({template.provider})"
    if impact["affected_clients"]:
        description += f" ({impact['affected_clients']} client associations removed)"

    await template_repository.delete_template(db, template)
    await log_activity(db, ActivityAction.POLICY_TEMPLATE_DELETED, description)
    invalidate_policy_caches()
    logger.info("Policy template deleted", template_id=str(template_id), **impact)
    return impact


async def get_template_clients(db: AsyncSession, template_id: uuid.UUID) -> dict[str, Any]:
    """Template, its instances with client contact details, and detail stats."""
    key = CacheKeys.template_detail(str(template_id), "clients")
    cached = cache.get(key)
    if cached is not None:
        return cached

    template = await get_template_or_404(db, template_id)
    instances = await instance_repository.list_template_instances(db, template.id)
    result = {
        "template": serialize_template(template),
        "instances": [
            {
                "id": instance.id,
                "premium_amount": instance.premium_amount,
                "commission_amount": instance.commission_amount,
                "start_date": instance.start_date,
                "duration_months": instance.duration_months,
                "expiry_date": instance.expiry_date,
                "status": instance.status,
                "client": {
                    "id": instance.client.id,
                    "first_name": instance.client.first_name,
                    "last_name": instance.client.last_name,
                    "email": instance.client.email,
                    "phone_number": instance.client.phone_number,
                },
            }
            for instance in instances
        ],
        "stats": await template_stats.get_detail_stats(db, template.id),
    }
    cache.set(key, result, ttl=CacheTTL.TEMPLATE_DETAIL)
    return result
