"""
Lead endpoints.

`POST /leads` is public so the website capture form can post to it;
every other route requires the agent's token.
"""

from __future__ import annotations

from typing import Any
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.api.deps import Pagination, get_current_agent, get_db
from insurance_crm.api.responses import ok
from insurance_crm.api.schemas.clients import ClientResponse
from insurance_crm.api.schemas.leads import LeadCreate, LeadResponse, LeadUpdate
from insurance_crm.core.constants import LeadStatus
from insurance_crm.repositories import leads as lead_repository
from insurance_crm.services import leads as lead_service

router = APIRouter(prefix="/leads", tags=["Leads"])
protected = [Depends(get_current_agent)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_lead(payload: LeadCreate, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    lead = await lead_service.create_lead(db, payload.model_dump())
    return ok(LeadResponse.model_validate(lead), "Lead created successfully")


@router.get("", dependencies=protected)
async def list_leads(
    pagination: Pagination = Depends(),
    search: str | None = Query(None, max_length=100),
    status_filter: LeadStatus | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    leads, total = await lead_repository.list_leads(
        db,
        search=search,
        status=status_filter,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return ok(
        {
            "leads": [LeadResponse.model_validate(lead) for lead in leads],
            "pagination": pagination.meta(total),
        }
    )


@router.get("/{lead_id}", dependencies=protected)
async def get_lead(lead_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    lead = await lead_service.get_lead_or_404(db, lead_id)
    return ok(LeadResponse.model_validate(lead))


@router.put("/{lead_id}", dependencies=protected)
async def update_lead(lead_id: uuid.UUID, payload: LeadUpdate, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    lead = await lead_service.update_lead(db, lead_id, payload.changes())
    return ok(LeadResponse.model_validate(lead), "Lead updated successfully")


@router.delete("/{lead_id}", dependencies=protected)
async def delete_lead(lead_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    await lead_service.delete_lead(db, lead_id)
    return ok(None, "Lead deleted successfully")


@router.post("/{lead_id}/convert", dependencies=protected)
async def convert_lead(lead_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    lead, client = await lead_service.convert_lead(db, lead_id)
    return ok(
        {
            "lead": LeadResponse.model_validate(lead),
            "client": ClientResponse.model_validate(client),
        },
        "Lead converted to client successfully",
    )
