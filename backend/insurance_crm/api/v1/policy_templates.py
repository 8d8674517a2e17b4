"""
Policy template endpoints.

The fixed paths (`search`, `filters`, `stats/*`, `expiry/*`) are declared
before `/{template_id}` so they are not captured as ids.
"""

from __future__ import annotations

from typing import Any, Literal
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.api.deps import Pagination, get_current_agent, get_db
from insurance_crm.api.responses import ok
from insurance_crm.api.schemas.policy_instances import PolicyInstanceResponse
from insurance_crm.api.schemas.policy_templates import PolicyTemplateCreate, PolicyTemplateUpdate
from insurance_crm.core.constants import INFO_DAYS
from insurance_crm.repositories.policy_templates import TemplateFilters
from insurance_crm.services import expiry as expiry_service
from insurance_crm.services import policy_instances as instance_service
from insurance_crm.services import policy_templates as template_service
from insurance_crm.services import template_stats

router = APIRouter(prefix="/policy-templates", tags=["Policy Templates"], dependencies=[Depends(get_current_agent)])


def _split(values: list[str] | None) -> list[str]:
    """Accept both `?providers=a,b` and `?providers=a&providers=b`."""
    items: list[str] = []
    for value in values or []:
        items.extend(part.strip() for part in value.split(",") if part.strip())
    return items


def template_filters(
    search: str | None = Query(None, max_length=100),
    policy_types: list[str] | None = Query(None),
    providers: list[str] | None = Query(None),
    has_instances: bool | None = Query(None),
) -> TemplateFilters:
    return TemplateFilters(
        search=search,
        policy_types=_split(policy_types),
        providers=_split(providers),
        has_instances=has_instances,
    )


@router.get("")
async def list_templates(
    filters: TemplateFilters = Depends(template_filters),
    sort_field: Literal["policy_number", "policy_type", "provider", "created_at"] = "policy_number",
    sort_direction: Literal["asc", "desc"] = "asc",
    pagination: Pagination = Depends(),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    result = await template_service.list_templates(
        db,
        filters,
        sort_field=sort_field,
        sort_direction=sort_direction,
        page=pagination.page,
        limit=pagination.limit,
    )
    return ok(result)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_template(payload: PolicyTemplateCreate, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    template = await template_service.create_template(db, payload.model_dump())
    return ok(template_service.serialize_template(template), "Policy template created successfully")


@router.get("/search")
async def search_templates(
    q: str = Query("", max_length=100),
    exclude_client_id: uuid.UUID | None = None,
    limit: int = Query(20, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    results = await template_service.search_templates(
        db, q, exclude_client_id=exclude_client_id, limit=limit
    )
    return ok(results)


@router.get("/filters")
async def filter_options(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    return ok(await template_service.get_filter_options(db))


# ─── Statistics ───────────────────────────────
@router.get("/stats/overview")
async def overview_stats(
    filters: TemplateFilters = Depends(template_filters),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    return ok(await template_stats.get_overview_stats(db, filters))


@router.get("/stats/expiry-tracking")
async def expiry_tracking_stats(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    return ok(await template_stats.get_expiry_tracking_stats(db))


@router.get("/stats/system-metrics")
async def system_metrics(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    return ok(await template_stats.get_system_metrics(db))


@router.get("/stats/provider-performance")
async def provider_performance(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    return ok(await template_stats.get_provider_performance(db))


@router.get("/stats/policy-type-performance")
async def policy_type_performance(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    return ok(await template_stats.get_policy_type_performance(db))


# ─── Expiry ───────────────────────────────────
@router.get("/expiry/warnings")
async def expiry_warnings(
    days_ahead: int = Query(INFO_DAYS, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    warnings = await expiry_service.get_expiry_warnings(db, days_ahead=days_ahead)
    return ok(expiry_service.group_warnings(warnings))


@router.get("/expiry/summary")
async def expiry_summary(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    return ok(await expiry_service.get_expiry_summary(db))


@router.post("/expiry/update-expired")
async def update_expired(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    result = await expiry_service.update_expired_statuses(db)
    return ok(result, f"Updated {result['updated_count']} expired policies")


# ─── Single template ──────────────────────────
@router.get("/{template_id}")
async def get_template(template_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    template = await template_service.get_template_or_404(db, template_id)
    return ok(template_service.serialize_template(template))


@router.put("/{template_id}")
async def update_template(
    template_id: uuid.UUID,
    payload: PolicyTemplateUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    template = await template_service.update_template(db, template_id, payload.changes())
    return ok(template_service.serialize_template(template), "Policy template updated successfully")


@router.delete("/{template_id}")
async def delete_template(template_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    impact = await template_service.delete_template(db, template_id)
    return ok(impact, "Policy template deleted successfully")


@router.get("/{template_id}/clients")
async def template_clients(template_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    return ok(await template_service.get_template_clients(db, template_id))


@router.get("/{template_id}/instances")
async def template_instances(template_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    instances = await instance_service.list_template_instances(db, template_id)
    return ok([PolicyInstanceResponse.model_validate(instance) for instance in instances])


@router.get("/{template_id}/stats")
async def template_detail_stats(template_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    await template_service.get_template_or_404(db, template_id)
    return ok(await template_stats.get_detail_stats(db, template_id))


@router.get("/{template_id}/expiry-warnings")
async def template_expiry_warnings(
    template_id: uuid.UUID,
    days_ahead: int = Query(INFO_DAYS, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await template_service.get_template_or_404(db, template_id)
    warnings = await expiry_service.get_expiry_warnings(db, days_ahead=days_ahead, template_id=template_id)
    return ok(warnings)
