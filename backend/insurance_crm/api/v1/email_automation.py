"""Email (SMTP) automation endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.api.deps import Pagination, get_current_agent, get_db
from insurance_crm.api.responses import ok
from insurance_crm.api.schemas.messaging import AutomationResponse, CustomEmail, MessageLogResponse, RenewalRun
from insurance_crm.core.constants import MessageChannel
from insurance_crm.services import automation as automation_service
from insurance_crm.services import messaging as messaging_service
from insurance_crm.services.automation import AutomationService
from insurance_crm.services.mailer import BUILT_IN_TEMPLATES, EmailService

router = APIRouter(
    prefix="/email-automation",
    tags=["Email Automation"],
    dependencies=[Depends(get_current_agent)],
)
CHANNEL = MessageChannel.EMAIL.value


def _automation(db: AsyncSession) -> AutomationService:
    return AutomationService(db, channels=(CHANNEL,))


@router.get("/dashboard")
async def dashboard(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    data = await messaging_service.channel_dashboard(db, CHANNEL)
    data["recent_logs"] = [MessageLogResponse.model_validate(log) for log in data["recent_logs"]]
    data["automations"] = [AutomationResponse.model_validate(rule) for rule in data["automations"]]
    data["cron"] = automation_service.cron_status()
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


@router.get("/templates")
async def templates() -> dict[str, Any]:
    return ok(BUILT_IN_TEMPLATES)


@router.get("/cron-status")
async def cron_status() -> dict[str, Any]:
    return ok(automation_service.cron_status())


@router.post("/send-birthday-wishes")
async def send_birthday_wishes(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    result = await _automation(db).process_birthday_wishes()
    return ok(result["email"], "Birthday emails processed")


@router.post("/send-renewal-reminders")
async def send_renewal_reminders(
    payload: RenewalRun | None = None,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    days_before = payload.days_before if payload else None
    result = await _automation(db).process_policy_renewals(days_before)
    return ok(result["email"], "Renewal reminder emails processed")


@router.post("/run-all")
async def run_all(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    result = await _automation(db).run_automated_tasks()
    return ok(
        {
            "birthday_wishes": result["birthday_wishes"]["email"],
            "policy_renewals": result["policy_renewals"]["email"],
        },
        "All email automations completed",
    )


@router.post("/send-custom-email")
async def send_custom_email(payload: CustomEmail, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    result = await EmailService(db).send_email(
        to=payload.to,
        subject=payload.subject,
        html=payload.html,
        text=payload.text,
        recipient_name=payload.recipient_name,
        client_id=payload.client_id,
        lead_id=payload.lead_id,
    )
    message = "Email sent successfully" if result.success else "Failed to send email"
    return ok(result.as_dict(), message)
