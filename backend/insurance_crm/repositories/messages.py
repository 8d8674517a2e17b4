"""
Messaging repository: delivery logs, automation bookkeeping and
WhatsApp template registry.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.constants import MessageStatus, MessageType
from insurance_crm.db.models.base import utcnow
from insurance_crm.db.models.message_automation import MessageAutomation
from insurance_crm.db.models.message_log import MessageLog
from insurance_crm.db.models.whatsapp_template import WhatsAppTemplate


# ═══════════════════════════════════════════════════════════
#  Message logs
# ═══════════════════════════════════════════════════════════

async def create_message_log(
    db: AsyncSession,
    *,
    channel: str,
    message_type: str,
    recipient: str,
    recipient_name: str,
    subject: str | None = None,
    template_name: str | None = None,
    client_id: uuid.UUID | None = None,
    lead_id: uuid.UUID | None = None,
    policy_instance_id: uuid.UUID | None = None,
    whatsapp_template_id: uuid.UUID | None = None,
) -> MessageLog:
    """Insert a PENDING log row ahead of a provider call."""
    log = MessageLog(
        channel=str(channel),
        message_type=str(message_type),
        recipient=recipient,
        recipient_name=recipient_name,
        subject=subject,
        template_name=template_name,
        status=MessageStatus.PENDING.value,
        client_id=client_id,
        lead_id=lead_id,
        policy_instance_id=policy_instance_id,
        whatsapp_template_id=whatsapp_template_id,
    )
    db.add(log)
    await db.flush()
    return log


async def mark_sent(db: AsyncSession, log: MessageLog, provider_message_id: str | None) -> MessageLog:
    log.status = MessageStatus.SENT.value
    log.provider_message_id = provider_message_id
    log.sent_at = utcnow()
    await db.flush()
    return log


async def mark_failed(db: AsyncSession, log: MessageLog, error: str) -> MessageLog:
    log.status = MessageStatus.FAILED.value
    log.error_message = error[:2000]
    await db.flush()
    return log


async def list_message_logs(
    db: AsyncSession,
    *,
    channel: str,
    since: datetime,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[MessageLog], int]:
    conditions = [MessageLog.channel == str(channel), MessageLog.created_at >= since]
    stmt = (
        select(MessageLog)
        .where(*conditions)
        .order_by(MessageLog.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    total = (await db.execute(select(func.count(MessageLog.id)).where(*conditions))).scalar_one()
    result = await db.execute(stmt)
    return list(result.scalars().all()), total


async def message_stats(db: AsyncSession, *, channel: str, since: datetime) -> dict[str, Any]:
    """Sent/failed totals and per-type sent counts for a channel."""
    stmt = (
        select(MessageLog.status, MessageLog.message_type, func.count(MessageLog.id))
        .where(MessageLog.channel == str(channel), MessageLog.created_at >= since)
        .group_by(MessageLog.status, MessageLog.message_type)
    )
    rows = (await db.execute(stmt)).all()

    sent = failed = birthday = renewal = 0
    for status, message_type, count in rows:
        if status == MessageStatus.SENT.value:
            sent += count
            if message_type == MessageType.BIRTHDAY_WISH.value:
                birthday += count
            elif message_type == MessageType.POLICY_RENEWAL.value:
                renewal += count
        elif status == MessageStatus.FAILED.value:
            failed += count

    attempted = sent + failed
    return {
        "total_sent": sent,
        "total_failed": failed,
        "birthday_wishes": birthday,
        "policy_renewals": renewal,
        "success_rate": round(sent / attempted * 100, 2) if attempted else 0.0,
    }


async def recipients_messaged_since(
    db: AsyncSession,
    *,
    channel: str,
    message_type: str,
    since: datetime,
) -> dict[str, set[uuid.UUID]]:
    """Ids of clients, leads and instances that already have a log since `since`.

    FAILED rows do not count, so a failed send is retried on the next run.
    """
    stmt = select(MessageLog.client_id, MessageLog.lead_id, MessageLog.policy_instance_id).where(
        MessageLog.channel == str(channel),
        MessageLog.message_type == str(message_type),
        MessageLog.created_at >= since,
        MessageLog.status != MessageStatus.FAILED.value,
    )
    seen: dict[str, set[uuid.UUID]] = {"clients": set(), "leads": set(), "policy_instances": set()}
    for client_id, lead_id, instance_id in (await db.execute(stmt)).all():
        if client_id is not None:
            seen["clients"].add(client_id)
        if lead_id is not None:
            seen["leads"].add(lead_id)
        if instance_id is not None:
            seen["policy_instances"].add(instance_id)
    return seen


# ═══════════════════════════════════════════════════════════
#  Automation bookkeeping
# ═══════════════════════════════════════════════════════════

async def upsert_automation(
    db: AsyncSession,
    *,
    name: str,
    message_type: str,
    channel: str,
    trigger: str,
    last_run_at: datetime,
    next_run_at: datetime,
    days_before: int | None = None,
) -> MessageAutomation:
    stmt = select(MessageAutomation).where(
        MessageAutomation.message_type == str(message_type),
        MessageAutomation.channel == str(channel),
        MessageAutomation.trigger == str(trigger),
    )
    row = (await db.execute(stmt)).scalar_one_or_none()
    if row is None:
        row = MessageAutomation(
            name=name,
            message_type=str(message_type),
            channel=str(channel),
            trigger=str(trigger),
            is_active=True,
        )
        db.add(row)
    row.days_before = days_before
    row.last_run_at = last_run_at
    row.next_run_at = next_run_at
    await db.flush()
    return row


async def list_automations(db: AsyncSession, *, channel: str | None = None) -> list[MessageAutomation]:
    stmt = select(MessageAutomation).order_by(MessageAutomation.name)
    if channel is not None:
        stmt = stmt.where(MessageAutomation.channel == str(channel))
    result = await db.execute(stmt)
    return list(result.scalars().all())


# ═══════════════════════════════════════════════════════════
#  WhatsApp templates
# ═══════════════════════════════════════════════════════════

async def get_whatsapp_template(
    db: AsyncSession,
    *,
    message_type: str,
    template_name: str,
) -> WhatsAppTemplate | None:
    stmt = select(WhatsAppTemplate).where(
        WhatsAppTemplate.message_type == str(message_type),
        WhatsAppTemplate.template_name == template_name,
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def upsert_whatsapp_template(
    db: AsyncSession,
    *,
    name: str,
    template_name: str,
    namespace: str,
    message_type: str,
    language: str = "en",
    is_active: bool = True,
) -> tuple[WhatsAppTemplate, bool]:
    """Create or refresh a template. Returns (row, created)."""
    row = await get_whatsapp_template(db, message_type=message_type, template_name=template_name)
    created = row is None
    if created:
        row = WhatsAppTemplate(template_name=template_name, message_type=str(message_type))
        db.add(row)
    row.name = name
    row.namespace = namespace
    row.language = language
    row.is_active = is_active
    await db.flush()
    return row, created
