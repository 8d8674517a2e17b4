"""
Policy instance rules.

Invariants enforced here:
    - a client holds a given template at most once
    - expiry_date = start_date + duration_months, clamped to month end
    - commission never exceeds premium
    - expiry_date is strictly after start_date
"""

from __future__ import annotations

import calendar
from datetime import date
from typing import Any
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.cache import invalidate_policy_caches
from insurance_crm.core.constants import PolicyStatus
from insurance_crm.core.errors import ConflictError, NotFoundError, ValidationFailed
from insurance_crm.core.logging import get_logger
from insurance_crm.db.models.policy_instance import PolicyInstance
from insurance_crm.repositories import clients as client_repository
from insurance_crm.repositories import policy_instances as instance_repository
from insurance_crm.repositories import policy_templates as template_repository
from insurance_crm.repositories.activities import ActivityAction, log_activity

logger = get_logger(__name__)

DUPLICATE_ASSOCIATION_MESSAGE = "Client already has this policy template"


def add_months(start: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month's end.

    >>> add_months(date(2024, 1, 31), 1)
    datetime.date(2024, 2, 29)
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def calculate_expiry_date(start_date: date, duration_months: int) -> date:
    if duration_months < 1:
        raise ValidationFailed.for_field("duration_months", "Duration must be at least 1 month")
    return add_months(start_date, duration_months)


def _check_amounts(premium: float | None, commission: float | None) -> None:
    if premium is not None and commission is not None and commission > premium:
        raise ValidationFailed.for_field(
            "commission_amount", "Commission amount cannot exceed premium amount"
        )


async def get_instance_or_404(db: AsyncSession, instance_id: uuid.UUID) -> PolicyInstance:
    instance = await instance_repository.get_instance(db, instance_id)
    if instance is None:
        raise NotFoundError("Policy instance not found")
    return instance


async def validate_association(
    db: AsyncSession,
    *,
    policy_template_id: uuid.UUID,
    client_id: uuid.UUID,
) -> dict[str, Any]:
    existing = await instance_repository.get_instance_for_pair(
        db, policy_template_id=policy_template_id, client_id=client_id
    )
    if existing is not None:
        return {"is_unique": False, "message": DUPLICATE_ASSOCIATION_MESSAGE}
    return {"is_unique": True, "message": "Association is valid"}


async def create_instance(
    db: AsyncSession,
    client_id: uuid.UUID,
    *,
    policy_template_id: uuid.UUID,
    premium_amount: float,
    start_date: date,
    duration_months: int,
    commission_amount: float = 0.0,
) -> PolicyInstance:
    client = await client_repository.get_client(db, client_id)
    if client is None:
        raise NotFoundError("Client not found")
    template = await template_repository.get_template(db, policy_template_id)
    if template is None:
        raise NotFoundError("Policy template not found")

    check = await validate_association(db, policy_template_id=template.id, client_id=client.id)
    if not check["is_unique"]:
        raise ConflictError(DUPLICATE_ASSOCIATION_MESSAGE)
    _check_amounts(premium_amount, commission_amount)

    instance = await instance_repository.create_instance(
        db,
        policy_template_id=template.id,
        client_id=client.id,
        premium_amount=premium_amount,
        commission_amount=commission_amount,
        start_date=start_date,
        duration_months=duration_months,
        expiry_date=calculate_expiry_date(start_date, duration_months),
        status=PolicyStatus.ACTIVE.value,
    )
    await log_activity(
        db,
        ActivityAction.POLICY_INSTANCE_CREATED,
        f"Added policy instance: {template.policy_number} for {client.full_name}",
    )
    invalidate_policy_caches()
    logger.info(
        "Policy instance created",
        instance_id=str(instance.id),
        template=template.policy_number,
        expiry_date=instance.expiry_date.isoformat(),
    )
    return await get_instance_or_404(db, instance.id)


async def update_instance(
    db: AsyncSession,
    instance_id: uuid.UUID,
    fields: dict[str, Any],
) -> PolicyInstance:
    """Partial update. Start or duration changes recompute expiry unless one is given."""
    instance = await get_instance_or_404(db, instance_id)
    changes = dict(fields)

    start = changes.get("start_date", instance.start_date)
    duration = changes.get("duration_months", instance.duration_months)
    if "expiry_date" not in changes and ("start_date" in changes or "duration_months" in changes):
        changes["expiry_date"] = calculate_expiry_date(start, duration)

    expiry = changes.get("expiry_date", instance.expiry_date)
    if expiry <= start:
        raise ValidationFailed.for_field("expiry_date", "Expiry date must be after start date")

    _check_amounts(
        changes.get("premium_amount", instance.premium_amount),
        changes.get("commission_amount", instance.commission_amount),
    )

    instance = await instance_repository.update_instance(db, instance, changes)
    await log_activity(
        db,
        ActivityAction.POLICY_INSTANCE_UPDATED,
        f"Updated policy instance: {instance.policy_template.policy_number} for {instance.client.full_name}",
    )
    invalidate_policy_caches()
    return instance


async def update_instance_status(db: AsyncSession, instance_id: uuid.UUID, status: str) -> PolicyInstance:
    instance = await get_instance_or_404(db, instance_id)
    old_status = instance.status
    instance = await instance_repository.update_instance(db, instance, {"status": status})
    await log_activity(
        db,
        ActivityAction.POLICY_INSTANCE_STATUS_UPDATED,
        f"Updated policy status: {instance.policy_template.policy_number} "
        f"for {instance.client.full_name} ({old_status} → {status})",
    )
    invalidate_policy_caches()
    return instance


async def delete_instance(db: AsyncSession, instance_id: uuid.UUID) -> None:
    instance = await get_instance_or_404(db, instance_id)
    description = (
        f"Removed policy instance: {instance.policy_template.policy_number} "
        f"from {instance.client.full_name}"
    )
    await instance_repository.delete_instance(db, instance)
    await log_activity(db, ActivityAction.POLICY_INSTANCE_DELETED, description)
    invalidate_policy_caches()


async def list_client_instances(db: AsyncSession, client_id: uuid.UUID) -> list[PolicyInstance]:
    if await client_repository.get_client(db, client_id) is None:
        raise NotFoundError("Client not found")
    return await instance_repository.list_client_instances(db, client_id)


async def list_template_instances(db: AsyncSession, template_id: uuid.UUID) -> list[PolicyInstance]:
    if await template_repository.get_template(db, template_id) is None:
        raise NotFoundError("Policy template not found")
    return await instance_repository.list_template_instances(db, template_id)
