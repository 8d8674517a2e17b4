"""Liveness and readiness probes (unauthenticated, outside the API prefix)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.api.deps import get_db
from insurance_crm.core.config import settings
from insurance_crm.core.logging import get_logger
from insurance_crm.db.models.agent_settings import AgentSettings
from insurance_crm.db.models.base import utcnow

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    body = {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "environment": settings.APP_ENV,
        "version": settings.APP_VERSION,
        "database": "connected",
    }
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Health check failed", error=str(exc))
        body.update(status="unhealthy", database="disconnected", error=str(exc))
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return JSONResponse(content=body)


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """Ready once migrations have created the settings table."""
    try:
        agents = (await db.execute(select(func.count(AgentSettings.id)))).scalar_one()
    except SQLAlchemyError as exc:
        logger.error("Readiness check failed", error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not ready", "error": str(exc)},
        )
    return JSONResponse(content={"status": "ready", "agent_configured": agents > 0})
