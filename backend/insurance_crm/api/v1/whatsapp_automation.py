"""WhatsApp (MSG91) automation endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.api.deps import Pagination, get_current_agent, get_db
from insurance_crm.api.responses import ok
from insurance_crm.api.schemas.messaging import (
    AutomationResponse,
    CustomWhatsAppMessage,
    MessageLogResponse,
    RenewalRun,
)
from insurance_crm.core.constants import MessageChannel, MessageType
from insurance_crm.services import automation as automation_service
from insurance_crm.services import messaging as messaging_service
from insurance_crm.services.automation import AutomationService
from insurance_crm.services.whatsapp import WhatsAppService

router = APIRouter(
    prefix="/whatsapp-automation",
    tags=["WhatsApp Automation"],
    dependencies=[Depends(get_current_agent)],
)
CHANNEL = MessageChannel.WHATSAPP.value


def _automation(db: AsyncSession) -> AutomationService:
    return AutomationService(db, channels=(CHANNEL,))


@router.get("/dashboard")
async def dashboard(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    data = await messaging_service.channel_dashboard(db, CHANNEL)
    data["recent_logs"] = [MessageLogResponse.model_validate(log) for log in data["recent_logs"]]
    data["automations"] = [AutomationResponse.model_validate(rule) for rule in data["automations"]]
    return ok(data)


@router.get("/stats")
async def stats(days: int = Query(30, ge=1, le=365), db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    return ok(await messaging_service.channel_stats(db, CHANNEL, days))


@router.get("/logs")
async def logs(
    days: int = Query(7, ge=1, le=365),
    pagination: Pagination = Depends(),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    rows, total = await messaging_service.channel_logs(
        db, CHANNEL, days=days, offset=pagination.offset, limit=pagination.limit
    )
    return ok(
        {
            "logs": [MessageLogResponse.model_validate(log) for log in rows],
            "pagination": pagination.meta(total),
        }
    )


@router.get("/upcoming-birthdays")
async def upcoming_birthdays(days: int = Query(30, ge=1, le=366), db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    return ok(await automation_service.get_upcoming_birthdays(db, days))


@router.get("/upcoming-renewals")
async def upcoming_renewals(days: int = Query(60, ge=1, le=365), db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    return ok(await automation_service.get_upcoming_renewals(db, days))


@router.post("/send-birthday-wishes")
async def send_birthday_wishes(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    result = await _automation(db).process_birthday_wishes()
    return ok(result["whatsapp"], "Birthday wishes processed")


@router.post("/send-renewal-reminders")
async def send_renewal_reminders(
    payload: RenewalRun | None = None,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    days_before = payload.days_before if payload else None
    result = await _automation(db).process_policy_renewals(days_before)
    return ok(result["whatsapp"], "Renewal reminders processed")


@router.post("/run-all")
async def run_all(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    result = await _automation(db).run_automated_tasks()
    return ok(
        {
            "birthday_wishes": result["birthday_wishes"]["whatsapp"],
            "policy_renewals": result["policy_renewals"]["whatsapp"],
        },
        "All WhatsApp automations completed",
    )


@router.post("/send-custom-message")
async def send_custom_message(payload: CustomWhatsAppMessage, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    result = await WhatsAppService(db).send_message(
        to=payload.recipient_phone,
        recipient_name=payload.recipient_name,
        message_type=MessageType.CUSTOM,
        template_name=payload.template_name,
        components=payload.components,
        client_id=payload.client_id,
        lead_id=payload.lead_id,
    )
    message = "Message sent successfully" if result.success else "Failed to send message"
    return ok(result.as_dict(), message)
