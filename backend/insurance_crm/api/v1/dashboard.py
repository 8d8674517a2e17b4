"""Dashboard endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.api.deps import get_current_agent, get_db
from insurance_crm.api.responses import ok
from insurance_crm.services import dashboard as dashboard_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"], dependencies=[Depends(get_current_agent)])


@router.get("/stats")
async def stats(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    return ok(await dashboard_service.get_dashboard_stats(db))


@router.get("/enhanced-stats")
async def enhanced_stats(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    return ok(await dashboard_service.get_enhanced_dashboard_stats(db))


@router.get("/chart-data")
async def chart_data(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    return ok(await dashboard_service.get_leads_chart_data(db))


@router.get("/activities")
async def recent_activities(
    limit: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    return ok(await dashboard_service.get_recent_activities(db, limit))


@router.get("/policy-template-stats")
async def policy_template_stats(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    return ok(await dashboard_service.get_policy_template_system_stats(db))
