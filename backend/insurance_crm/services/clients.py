"""Client CRUD rules: email uniqueness, cascade reporting and policy stats."""

from __future__ import annotations

from typing import Any
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.cache import invalidate_policy_caches
from insurance_crm.core.constants import PolicyStatus
from insurance_crm.core.errors import ConflictError, NotFoundError
from insurance_crm.core.logging import get_logger
from insurance_crm.db.models.base import today
from insurance_crm.db.models.client import Client
from insurance_crm.db.models.policy_instance import PolicyInstance
from insurance_crm.repositories import clients as client_repository
from insurance_crm.repositories.activities import ActivityAction, log_activity

logger = get_logger(__name__)

DUPLICATE_EMAIL_MESSAGE = "A client with this email already exists"


async def get_client_or_404(db: AsyncSession, client_id: uuid.UUID) -> Client:
    client = await client_repository.get_client(db, client_id)
    if client is None:
        raise NotFoundError("Client not found")
    return client


async def _ensure_email_free(
    db: AsyncSession,
    email: str | None,
    *,
    exclude_id: uuid.UUID | None = None,
) -> None:
    if not email:
        return
    existing = await client_repository.get_client_by_email(db, email, exclude_id=exclude_id)
    if existing is not None:
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)


async def create_client(db: AsyncSession, fields: dict[str, Any]) -> Client:
    await _ensure_email_free(db, fields.get("email"))
    client = await client_repository.create_client(db, **fields)
    await log_activity(db, ActivityAction.CLIENT_CREATED, f"Created new client: {client.full_name}")
    invalidate_policy_caches()
    logger.info("Client created", client_id=str(client.id))
    return client


async def update_client(db: AsyncSession, client_id: uuid.UUID, fields: dict[str, Any]) -> Client:
    client = await get_client_or_404(db, client_id)
    if "email" in fields:
        await _ensure_email_free(db, fields["email"], exclude_id=client.id)
    client = await client_repository.update_client(db, client, fields)
    await log_activity(db, ActivityAction.CLIENT_UPDATED, f"Updated client: {client.full_name}")
    invalidate_policy_caches()
    return client


async def delete_client(db: AsyncSession, client_id: uuid.UUID) -> dict[str, int]:
    client = await get_client_or_404(db, client_id)
    name = client.full_name
    policy_count = await client_repository.count_client_policies(db, client.id)
    await client_repository.delete_client(db, client)

    description = f"Deleted client: {name}"
    if policy_count > 0:
        description += f" ({policy_count} policies removed)"
    await log_activity(db, ActivityAction.CLIENT_DELETED, description)
    invalidate_policy_caches()
    logger.info("Client deleted", client_id=str(client_id), policies_removed=policy_count)
    return {"deleted_policies": policy_count}


def client_policy_stats(instances: list[PolicyInstance]) -> dict[str, Any]:
    current = today()
    active = [
        i for i in instances
        if i.status == PolicyStatus.ACTIVE.value and i.expiry_date >= current
    ]
    return {
        "total_policies": len(instances),
        "active_policies": len(active),
        "total_premium": round(sum(i.premium_amount for i in instances), 2),
        "total_commission": round(sum(i.commission_amount or 0 for i in instances), 2),
    }


async def get_client_detail(db: AsyncSession, client_id: uuid.UUID) -> tuple[Client, dict[str, Any]]:
    """Client with its policy instances loaded, plus the policy totals."""
    client = await client_repository.get_client_with_policies(db, client_id)
    if client is None:
        raise NotFoundError("Client not found")
    return client, client_policy_stats(client.policy_instances)
