"""Policy instance endpoints that are not scoped under a client."""

from __future__ import annotations

from typing import Any
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.api.deps import get_current_agent, get_db
from insurance_crm.api.responses import ok
from insurance_crm.api.schemas.policy_instances import (
    AssociationCheck,
    ExpiryCalculation,
    PolicyInstanceResponse,
    PolicyInstanceUpdate,
    StatusUpdate,
)
from insurance_crm.services import policy_instances as instance_service

router = APIRouter(prefix="/policy-instances", tags=["Policy Instances"], dependencies=[Depends(get_current_agent)])


@router.post("/validate-association")
async def validate_association(payload: AssociationCheck, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    result = await instance_service.validate_association(
        db,
        policy_template_id=payload.policy_template_id,
        client_id=payload.client_id,
    )
    return ok(result)


@router.post("/calculate-expiry")
async def calculate_expiry(payload: ExpiryCalculation) -> dict[str, Any]:
    expiry = instance_service.calculate_expiry_date(payload.start_date, payload.duration_months)
    return ok({"expiry_date": expiry})


@router.get("/template/{template_id}")
async def list_template_instances(template_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    instances = await instance_service.list_template_instances(db, template_id)
    return ok([PolicyInstanceResponse.model_validate(instance) for instance in instances])


@router.get("/{instance_id}")
async def get_instance(instance_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    instance = await instance_service.get_instance_or_404(db, instance_id)
    return ok(PolicyInstanceResponse.model_validate(instance))


@router.put("/{instance_id}")
async def update_instance(
    instance_id: uuid.UUID,
    payload: PolicyInstanceUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    instance = await instance_service.update_instance(db, instance_id, payload.changes())
    return ok(PolicyInstanceResponse.model_validate(instance), "Policy instance updated successfully")


@router.patch("/{instance_id}/status")
async def update_status(
    instance_id: uuid.UUID,
    payload: StatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    instance = await instance_service.update_instance_status(db, instance_id, payload.status.value)
    return ok(PolicyInstanceResponse.model_validate(instance), "Policy status updated successfully")


@router.delete("/{instance_id}")
async def delete_instance(instance_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    await instance_service.delete_instance(db, instance_id)
    return ok(None, "Policy instance deleted successfully")
