"""
Client repository containing all data-access operations for the clients table.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

from typing import Any
import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from insurance_crm.db.models.client import Client
from insurance_crm.db.models.policy_instance import PolicyInstance

UPDATABLE_FIELDS = {
    "first_name",
    "middle_name",
    "last_name",
    "date_of_birth",
    "age",
    "gender",
    "birth_place",
    "height",
    "weight",
    "education",
    "marital_status",
    "relationship_type",
    "phone_number",
    "whatsapp_number",
    "email",
    "state",
    "city",
    "address",
    "business_job",
    "name_of_business",
    "type_of_duty",
    "annual_income",
    "pan_number",
    "gst_number",
    "company_name",
    "additional_info",
    "profile_image_url",
    "profile_image_id",
}


def _normalise_email(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.lower().strip()
    return value or None


async def create_client(db: AsyncSession, **fields: Any) -> Client:
    """Insert a new client."""
    fields["email"] = _normalise_email(fields.get("email"))
    client = Client(**fields)
    db.add(client)
    await db.flush()
    return client


async def get_client(db: AsyncSession, client_id: uuid.UUID) -> Client | None:
    """Fetch a client by primary key."""
    return await db.get(Client, client_id)


async def get_client_with_policies(db: AsyncSession, client_id: uuid.UUID) -> Client | None:
    """Fetch a client with policy instances and their templates loaded."""
    stmt = (
        select(Client)
        .where(Client.id == client_id)
        .options(selectinload(Client.policy_instances).selectinload(PolicyInstance.policy_template))
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_client_by_email(
    db: AsyncSession,
    email: str,
    *,
    exclude_id: uuid.UUID | None = None,
) -> Client | None:
    """Fetch a client by email (case-insensitive), optionally ignoring one id."""
    stmt = select(Client).where(Client.email == email.lower().strip())
    if exclude_id is not None:
        stmt = stmt.where(Client.id != exclude_id)
    result = await db.execute(stmt)
    return result.scalars().first()


def _policy_count_column():
    return (
        select(func.count(PolicyInstance.id))
        .where(PolicyInstance.client_id == Client.id)
        .correlate(Client)
        .scalar_subquery()
        .label("policy_count")
    )


async def list_clients(
    db: AsyncSession,
    *,
    search: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[tuple[Client, int]], int]:
    """List clients newest first, each paired with its policy count."""
    conditions = []
    if search and search.strip():
        term = f"%{search.strip()}%"
        conditions.append(
            or_(
                Client.first_name.ilike(term),
                Client.last_name.ilike(term),
                (Client.first_name + " " + Client.last_name).ilike(term),
                Client.email.ilike(term),
                Client.phone_number.ilike(term),
            )
        )

    stmt = (
        select(Client, _policy_count_column())
        .where(*conditions)
        .order_by(Client.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    count_stmt = select(func.count(Client.id)).where(*conditions)

    total = (await db.execute(count_stmt)).scalar_one()
    rows = (await db.execute(stmt)).all()
    return [(client, count) for client, count in rows], total


async def update_client(db: AsyncSession, client: Client, fields: dict[str, Any]) -> Client:
    """Apply a partial update; unknown keys are ignored."""
    for key, value in fields.items():
        if key not in UPDATABLE_FIELDS:
            continue
        if key == "email":
            value = _normalise_email(value)
        setattr(client, key, value)
    await db.flush()
    return client


async def count_client_policies(db: AsyncSession, client_id: uuid.UUID) -> int:
    stmt = select(func.count(PolicyInstance.id)).where(PolicyInstance.client_id == client_id)
    return (await db.execute(stmt)).scalar_one()


async def delete_client(db: AsyncSession, client: Client) -> None:
    """Delete a client; instances and documents cascade."""
    await db.delete(client)
    await db.flush()


async def count_clients(db: AsyncSession, *, created_before=None) -> int:
    stmt = select(func.count(Client.id))
    if created_before is not None:
        stmt = stmt.where(Client.created_at < created_before)
    return (await db.execute(stmt)).scalar_one()


async def list_all_clients(db: AsyncSession) -> list[Client]:
    result = await db.execute(select(Client))
    return list(result.scalars().all())
