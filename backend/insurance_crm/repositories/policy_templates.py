"""
Policy template repository.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.constants import PolicyStatus
from insurance_crm.db.models.base import today
from insurance_crm.db.models.policy_instance import PolicyInstance
from insurance_crm.db.models.policy_template import PolicyTemplate

UPDATABLE_FIELDS = {"policy_number", "policy_type", "provider", "description"}

SORT_COLUMNS = {
    "policy_number": PolicyTemplate.policy_number,
    "policy_type": PolicyTemplate.policy_type,
    "provider": PolicyTemplate.provider,
    "created_at": PolicyTemplate.created_at,
}


@dataclass
class TemplateFilters:
    """Filter set shared by the list endpoint and overview stats."""

    search: str | None = None
    policy_types: list[str] = field(default_factory=list)
    providers: list[str] = field(default_factory=list)
    has_instances: bool | None = None

    def conditions(self) -> list[Any]:
        conditions: list[Any] = []
        if self.search and self.search.strip():
            term = f"%{self.search.strip()}%"
            conditions.append(
                or_(
                    PolicyTemplate.policy_number.ilike(term),
                    PolicyTemplate.provider.ilike(term),
                    PolicyTemplate.policy_type.ilike(term),
                )
            )
        if self.policy_types:
            conditions.append(PolicyTemplate.policy_type.in_(self.policy_types))
        if self.providers:
            conditions.append(PolicyTemplate.provider.in_(self.providers))
        if self.has_instances is True:
            conditions.append(PolicyTemplate.instances.any())
        elif self.has_instances is False:
            conditions.append(~PolicyTemplate.instances.any())
        return conditions

    def as_dict(self) -> dict[str, Any]:
        return {
            "search": self.search,
            "policy_types": sorted(self.policy_types),
            "providers": sorted(self.providers),
            "has_instances": self.has_instances,
        }


def _instance_count_column():
    return (
        select(func.count(PolicyInstance.id))
        .where(PolicyInstance.policy_template_id == PolicyTemplate.id)
        .correlate(PolicyTemplate)
        .scalar_subquery()
        .label("instance_count")
    )


def _active_instance_count_column():
    return (
        select(func.count(PolicyInstance.id))
        .where(
            PolicyInstance.policy_template_id == PolicyTemplate.id,
            PolicyInstance.status == PolicyStatus.ACTIVE.value,
            PolicyInstance.expiry_date >= today(),
        )
        .correlate(PolicyTemplate)
        .scalar_subquery()
        .label("active_instance_count")
    )


async def create_template(db: AsyncSession, **fields: Any) -> PolicyTemplate:
    template = PolicyTemplate(**fields)
    db.add(template)
    await db.flush()
    return template


async def get_template(db: AsyncSession, template_id: uuid.UUID) -> PolicyTemplate | None:
    return await db.get(PolicyTemplate, template_id)


async def get_template_by_number(
    db: AsyncSession,
    policy_number: str,
    *,
    exclude_id: uuid.UUID | None = None,
) -> PolicyTemplate | None:
    stmt = select(PolicyTemplate).where(PolicyTemplate.policy_number == policy_number)
    if exclude_id is not None:
        stmt = stmt.where(PolicyTemplate.id != exclude_id)
    result = await db.execute(stmt)
    return result.scalars().first()


async def list_templates(
    db: AsyncSession,
    filters: TemplateFilters,
    *,
    sort_field: str = "policy_number",
    sort_direction: str = "asc",
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[tuple[PolicyTemplate, int, int]], int]:
    """Filtered, sorted page of templates with instance counts."""
    conditions = filters.conditions()
    column = SORT_COLUMNS.get(sort_field, PolicyTemplate.policy_number)
    order = column.desc() if sort_direction == "desc" else column.asc()

    stmt = (
        select(PolicyTemplate, _instance_count_column(), _active_instance_count_column())
        .where(*conditions)
        .order_by(order, PolicyTemplate.id)
        .offset(offset)
        .limit(limit)
    )
    count_stmt = select(func.count(PolicyTemplate.id)).where(*conditions)

    total = (await db.execute(count_stmt)).scalar_one()
    rows = (await db.execute(stmt)).all()
    return [(template, count, active) for template, count, active in rows], total


async def search_templates(
    db: AsyncSession,
    query: str,
    *,
    exclude_client_id: uuid.UUID | None = None,
    limit: int = 20,
) -> list[tuple[PolicyTemplate, int]]:
    """Quick search for the association picker, skipping templates a client already holds."""
    term = f"%{query.strip()}%"
    conditions: list[Any] = [
        or_(
            PolicyTemplate.policy_number.ilike(term),
            PolicyTemplate.provider.ilike(term),
            PolicyTemplate.policy_type.ilike(term),
        )
    ]
    if exclude_client_id is not None:
        conditions.append(~PolicyTemplate.instances.any(PolicyInstance.client_id == exclude_client_id))

    stmt = (
        select(PolicyTemplate, _instance_count_column())
        .where(*conditions)
        .order_by(PolicyTemplate.policy_number.asc())
        .limit(limit)
    )
    rows = (await db.execute(stmt)).all()
    return [(template, count) for template, count in rows]


async def list_distinct_values(db: AsyncSession) -> dict[str, list[str]]:
    providers = await db.execute(
        select(PolicyTemplate.provider).distinct().order_by(PolicyTemplate.provider)
    )
    policy_types = await db.execute(
        select(PolicyTemplate.policy_type).distinct().order_by(PolicyTemplate.policy_type)
    )
    return {
        "providers": list(providers.scalars().all()),
        "policy_types": list(policy_types.scalars().all()),
    }


async def update_template(db: AsyncSession, template: PolicyTemplate, fields: dict[str, Any]) -> PolicyTemplate:
    for key, value in fields.items():
        if key in UPDATABLE_FIELDS:
            setattr(template, key, value)
    await db.flush()
    return template


async def get_deletion_impact(db: AsyncSession, template_id: uuid.UUID) -> dict[str, int]:
    """Instances and distinct clients that a template delete will remove."""
    stmt = select(
        func.count(PolicyInstance.id),
        func.count(func.distinct(PolicyInstance.client_id)),
    ).where(PolicyInstance.policy_template_id == template_id)
    instances, clients = (await db.execute(stmt)).one()
    return {"deleted_instances": instances, "affected_clients": clients}


async def delete_template(db: AsyncSession, template: PolicyTemplate) -> None:
    """Delete a template; its instances cascade."""
    await db.delete(template)
    await db.flush()
