"""Lead lifecycle: capture, update, delete and conversion to a client."""

from __future__ import annotations

from typing import Any
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.cache import invalidate_dashboard_cache
from insurance_crm.core.constants import LeadStatus
from insurance_crm.core.errors import ConflictError, NotFoundError, ValidationFailed
from insurance_crm.core.logging import get_logger
from insurance_crm.db.models.client import Client
from insurance_crm.db.models.lead import Lead
from insurance_crm.repositories import clients as client_repository
from insurance_crm.repositories import leads as lead_repository
from insurance_crm.repositories.activities import ActivityAction, log_activity

logger = get_logger(__name__)


async def get_lead_or_404(db: AsyncSession, lead_id: uuid.UUID) -> Lead:
    lead = await lead_repository.get_lead(db, lead_id)
    if lead is None:
        raise NotFoundError("Lead not found")
    return lead


async def create_lead(db: AsyncSession, fields: dict[str, Any]) -> Lead:
    lead = await lead_repository.create_lead(db, **fields)
    await log_activity(db, ActivityAction.LEAD_CREATED, f"Created new lead: {lead.name}")
    invalidate_dashboard_cache()
    logger.info("Lead created", lead_id=str(lead.id), status=lead.status)
    return lead


async def update_lead(db: AsyncSession, lead_id: uuid.UUID, fields: dict[str, Any]) -> Lead:
    lead = await get_lead_or_404(db, lead_id)
    old_status = lead.status
    lead = await lead_repository.update_lead(db, lead, fields)

    if lead.status != old_status:
        await log_activity(
            db,
            ActivityAction.LEAD_STATUS_UPDATED,
            f"Updated lead status: {lead.name} ({old_status} → {lead.status})",
        )
    else:
        await log_activity(db, ActivityAction.LEAD_UPDATED, f"Updated lead: {lead.name}")
    invalidate_dashboard_cache()
    return lead


async def delete_lead(db: AsyncSession, lead_id: uuid.UUID) -> None:
    lead = await get_lead_or_404(db, lead_id)
    name = lead.name
    await lead_repository.delete_lead(db, lead)
    await log_activity(db, ActivityAction.LEAD_DELETED, f"Deleted lead: {name}")
    invalidate_dashboard_cache()


def split_name(full_name: str) -> tuple[str, str]:
    """Split "First Middle Last" into ("First", "Middle Last").

    A single word is used for both parts so the client keeps a last name.
    """
    parts = full_name.strip().split()
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], parts[0]
    return parts[0], " ".join(parts[1:])


async def convert_lead(db: AsyncSession, lead_id: uuid.UUID) -> tuple[Lead, Client]:
    """Create a client from a lead and mark the lead Won.

    Runs inside the caller's transaction, so a failure leaves neither
    the client nor the status change behind.
    """
    lead = await get_lead_or_404(db, lead_id)
    if lead.status == LeadStatus.WON.value:
        raise ValidationFailed("Lead has already been converted")
    if lead.date_of_birth is None:
        raise ValidationFailed.for_field(
            "date_of_birth", "Lead must have a date of birth before conversion"
        )
    if lead.email and await client_repository.get_client_by_email(db, lead.email):
        raise ConflictError("A client with this email already exists")

    first_name, last_name = split_name(lead.name)
    client = await client_repository.create_client(
        db,
        first_name=first_name,
        last_name=last_name,
        email=lead.email,
        phone_number=lead.phone,
        whatsapp_number=lead.whatsapp_number or lead.phone,
        date_of_birth=lead.date_of_birth,
        additional_info=lead.notes,
    )
    lead.status = LeadStatus.WON.value
    await db.flush()

    await log_activity(db, ActivityAction.LEAD_CONVERTED, f"Converted lead to client: {lead.name}")
    invalidate_dashboard_cache()
    logger.info("Lead converted", lead_id=str(lead.id), client_id=str(client.id))
    return lead, client
