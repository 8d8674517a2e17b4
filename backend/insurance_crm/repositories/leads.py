"""
Lead repository containing all data-access operations for the leads table.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

from typing import Any
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.constants import LeadStatus
from insurance_crm.db.models.lead import Lead

UPDATABLE_FIELDS = {
    "name",
    "email",
    "phone",
    "whatsapp_number",
    "date_of_birth",
    "insurance_interest",
    "status",
    "priority",
    "notes",
}


async def create_lead(db: AsyncSession, **fields: Any) -> Lead:
    """Insert a new lead."""
    if fields.get("email"):
        fields["email"] = fields["email"].lower().strip()
    lead = Lead(**fields)
    db.add(lead)
    await db.flush()
    return lead


async def get_lead(db: AsyncSession, lead_id: uuid.UUID) -> Lead | None:
    """Fetch a lead by primary key."""
    return await db.get(Lead, lead_id)


async def list_leads(
    db: AsyncSession,
    *,
    search: str | None = None,
    status: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Lead], int]:
    """List leads newest first with optional name search / status filter."""
    conditions = []
    if search and search.strip():
        conditions.append(Lead.name.ilike(f"%{search.strip()}%"))
    if status:
        conditions.append(Lead.status == status)

    stmt = select(Lead).where(*conditions).order_by(Lead.created_at.desc()).offset(offset).limit(limit)
    count_stmt = select(func.count(Lead.id)).where(*conditions)

    total = (await db.execute(count_stmt)).scalar_one()
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def update_lead(db: AsyncSession, lead: Lead, fields: dict[str, Any]) -> Lead:
    """Apply a partial update; unknown keys are ignored."""
    for key, value in fields.items():
        if key not in UPDATABLE_FIELDS:
            continue
        if key == "email" and isinstance(value, str):
            value = value.lower().strip()
        setattr(lead, key, value)
    await db.flush()
    return lead


async def delete_lead(db: AsyncSession, lead: Lead) -> None:
    await db.delete(lead)
    await db.flush()


async def count_leads(db: AsyncSession, *, created_before=None) -> int:
    stmt = select(func.count(Lead.id))
    if created_before is not None:
        stmt = stmt.where(Lead.created_at < created_before)
    return (await db.execute(stmt)).scalar_one()


async def count_leads_by_status(db: AsyncSession) -> dict[str, int]:
    """Lead count for every status, including statuses with no leads."""
    stmt = select(Lead.status, func.count(Lead.id)).group_by(Lead.status)
    rows = (await db.execute(stmt)).all()
    counts = {status.value: 0 for status in LeadStatus}
    for status, count in rows:
        counts[status] = count
    return counts


async def list_leads_with_birthdays(db: AsyncSession) -> list[Lead]:
    """Leads that have a date of birth on record."""
    stmt = select(Lead).where(Lead.date_of_birth.is_not(None))
    result = await db.execute(stmt)
    return list(result.scalars().all())
