"""
Birthday and renewal automation across email and WhatsApp.

"Today" is the calendar day in ``AUTOMATION_TIMEZONE``.  A recipient is
skipped on a channel when a non-failed log of the same type already
exists for them:

    birthday wishes      since local midnight
    renewal reminders    within REMINDER_DEDUPE_DAYS
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.config import settings
from insurance_crm.core.constants import AutomationTrigger, MessageChannel, MessageType
from insurance_crm.core.logging import get_logger
from insurance_crm.db.models.base import utcnow
from insurance_crm.repositories import clients as client_repository
from insurance_crm.repositories import leads as lead_repository
from insurance_crm.repositories import messages as message_repository
from insurance_crm.repositories import policy_instances as instance_repository
from insurance_crm.services.mailer import EmailService
from insurance_crm.services.whatsapp import SendResult, WhatsAppService

logger = get_logger(__name__)


def local_now() -> datetime:
    return utcnow().astimezone(ZoneInfo(settings.AUTOMATION_TIMEZONE))


def local_midnight(now: datetime) -> datetime:
    """Start of `now`'s local day, as an aware datetime."""
    return datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)


def birthday_in_year(date_of_birth: date, year: int) -> date:
    """The birthday falling in `year`; 29 Feb maps to 28 Feb in common years."""
    try:
        return date_of_birth.replace(year=year)
    except ValueError:
        return date(year, 2, 28)


def is_birthday(date_of_birth: date, on: date) -> bool:
    return birthday_in_year(date_of_birth, on.year) == on


def next_birthday(date_of_birth: date, on: date) -> date:
    upcoming = birthday_in_year(date_of_birth, on.year)
    if upcoming < on:
        upcoming = birthday_in_year(date_of_birth, on.year + 1)
    return upcoming


def next_scheduled_run(now: datetime) -> datetime:
    """Next daily run at AUTOMATION_RUN_HOUR local time."""
    run_today = datetime.combine(now.date(), time(hour=settings.AUTOMATION_RUN_HOUR), tzinfo=now.tzinfo)
    return run_today if now < run_today else run_today + timedelta(days=1)


@dataclass
class ChannelTally:
    sent: int = 0
    failed: int = 0

    def record(self, result: SendResult) -> None:
        if result.success:
            self.sent += 1
        else:
            self.failed += 1


@dataclass
class RunTally:
    email: ChannelTally = field(default_factory=ChannelTally)
    whatsapp: ChannelTally = field(default_factory=ChannelTally)

    def as_dict(self) -> dict[str, dict[str, int]]:
        return {
            "email": {"sent": self.email.sent, "failed": self.email.failed},
            "whatsapp": {"sent": self.whatsapp.sent, "failed": self.whatsapp.failed},
        }


def _present(value: str | None) -> bool:
    return bool(value and value.strip())


ALL_CHANNELS = (MessageChannel.EMAIL.value, MessageChannel.WHATSAPP.value)


class AutomationService:
    """Runs the scheduled messaging jobs against one database session."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        email: EmailService | None = None,
        whatsapp: WhatsAppService | None = None,
        channels: tuple[str, ...] = ALL_CHANNELS,
    ) -> None:
        self.db = db
        self.channels = frozenset(str(channel) for channel in channels)
        self.email = email or EmailService(db)
        self.whatsapp = whatsapp or WhatsAppService(db)

    def _wants(self, channel: MessageChannel, contact: str | None) -> bool:
        return channel.value in self.channels and _present(contact)

    async def _already_messaged(self, message_type: str, since: datetime) -> dict[str, dict[str, set]]:
        return {
            channel: await message_repository.recipients_messaged_since(
                self.db, channel=channel, message_type=message_type, since=since
            )
            for channel in ALL_CHANNELS
        }

    # ─── Birthdays ────────────────────────────────────────
    async def process_birthday_wishes(self) -> dict[str, dict[str, int]]:
        now = local_now()
        on = now.date()
        seen = await self._already_messaged(MessageType.BIRTHDAY_WISH, local_midnight(now))
        tally = RunTally()

        for client in await client_repository.list_all_clients(self.db):
            if not client.date_of_birth or not is_birthday(client.date_of_birth, on):
                continue
            if self._wants(MessageChannel.EMAIL, client.email) and client.id not in seen["EMAIL"]["clients"]:
                tally.email.record(
                    await self.email.send_birthday_wish(
                        to=client.email,
                        name=client.full_name,
                        date_of_birth=client.date_of_birth,
                        on=on,
                        client_id=client.id,
                    )
                )
            if self._wants(MessageChannel.WHATSAPP, client.whatsapp_number) and client.id not in seen["WHATSAPP"]["clients"]:
                tally.whatsapp.record(
                    await self.whatsapp.send_birthday_wish(
                        to=client.whatsapp_number, name=client.full_name, client_id=client.id
                    )
                )

        for lead in await lead_repository.list_leads_with_birthdays(self.db):
            if not is_birthday(lead.date_of_birth, on):
                continue
            if self._wants(MessageChannel.EMAIL, lead.email) and lead.id not in seen["EMAIL"]["leads"]:
                tally.email.record(
                    await self.email.send_birthday_wish(
                        to=lead.email, name=lead.name, date_of_birth=lead.date_of_birth, on=on, lead_id=lead.id
                    )
                )
            if self._wants(MessageChannel.WHATSAPP, lead.whatsapp_number) and lead.id not in seen["WHATSAPP"]["leads"]:
                tally.whatsapp.record(
                    await self.whatsapp.send_birthday_wish(to=lead.whatsapp_number, name=lead.name, lead_id=lead.id)
                )

        result = tally.as_dict()
        logger.info("Birthday wishes processed", **result)
        return result

    # ─── Renewals ─────────────────────────────────────────
    async def process_policy_renewals(self, days_before: int | None = None) -> dict[str, dict[str, int]]:
        days_before = days_before if days_before is not None else settings.RENEWAL_REMINDER_DAYS
        on = local_now().date()
        since = utcnow() - timedelta(days=settings.REMINDER_DEDUPE_DAYS)
        seen = await self._already_messaged(MessageType.POLICY_RENEWAL, since)
        tally = RunTally()

        instances = await instance_repository.list_active_expiring_between(
            self.db, on, on + timedelta(days=days_before)
        )
        for instance in instances:
            client = instance.client
            template = instance.policy_template
            days_left = (instance.expiry_date - on).days

            if self._wants(MessageChannel.EMAIL, client.email) and instance.id not in seen["EMAIL"]["policy_instances"]:
                tally.email.record(
                    await self.email.send_policy_renewal(
                        to=client.email,
                        name=client.full_name,
                        policy_number=template.policy_number,
                        policy_type=template.policy_type,
                        expiry_date=instance.expiry_date,
                        days_until_expiry=days_left,
                        client_id=client.id,
                        policy_instance_id=instance.id,
                    )
                )
            if self._wants(MessageChannel.WHATSAPP, client.whatsapp_number) and instance.id not in seen["WHATSAPP"]["policy_instances"]:
                tally.whatsapp.record(
                    await self.whatsapp.send_policy_renewal(
                        to=client.whatsapp_number,
                        name=client.full_name,
                        policy_type=template.policy_type,
                        policy_number=template.policy_number,
                        provider=template.provider,
                        expiry_date=instance.expiry_date.strftime("%d/%m/%Y"),
                        premium_amount=f"{instance.premium_amount:,.2f}",
                        client_id=client.id,
                        policy_instance_id=instance.id,
                    )
                )

        result = tally.as_dict()
        logger.info("Policy renewal reminders processed", days_before=days_before, **result)
        return result

    # ─── Full run ─────────────────────────────────────────
    async def run_automated_tasks(self) -> dict[str, Any]:
        birthdays = await self.process_birthday_wishes()
        renewals = await self.process_policy_renewals()
        await self._record_run()
        return {"birthday_wishes": birthdays, "policy_renewals": renewals}

    async def _record_run(self) -> None:
        now = utcnow()
        next_run = now + timedelta(days=1)
        rules = [
            ("Birthday Wishes", MessageType.BIRTHDAY_WISH, AutomationTrigger.BIRTHDAY, None),
            ("Policy Renewal Reminders", MessageType.POLICY_RENEWAL, AutomationTrigger.POLICY_EXPIRY, settings.RENEWAL_REMINDER_DAYS),
        ]
        for channel in (MessageChannel.EMAIL, MessageChannel.WHATSAPP):
            if channel.value not in self.channels:
                continue
            prefix = "Email" if channel is MessageChannel.EMAIL else "WhatsApp"
            for name, message_type, trigger, days_before in rules:
                await message_repository.upsert_automation(
                    self.db,
                    name=f"{prefix} {name}",
                    message_type=message_type,
                    channel=channel,
                    trigger=trigger,
                    last_run_at=now,
                    next_run_at=next_run,
                    days_before=days_before,
                )


# ─── Read-only views ──────────────────────────────────────
async def get_upcoming_birthdays(db: AsyncSession, days: int = 30) -> list[dict[str, Any]]:
    on = local_now().date()
    people: list[dict[str, Any]] = []

    def consider(record_id, name, email, whatsapp, date_of_birth, kind):
        if not date_of_birth or not (_present(email) or _present(whatsapp)):
            return
        upcoming = next_birthday(date_of_birth, on)
        days_until = (upcoming - on).days
        if days_until > days:
            return
        people.append(
            {
                "id": record_id,
                "name": name,
                "email": email,
                "whatsapp_number": whatsapp,
                "date_of_birth": date_of_birth,
                "next_birthday": upcoming,
                "days_until": days_until,
                "type": kind,
                "has_email": _present(email),
                "has_whatsapp": _present(whatsapp),
            }
        )

    for client in await client_repository.list_all_clients(db):
        consider(client.id, client.full_name, client.email, client.whatsapp_number, client.date_of_birth, "client")
    for lead in await lead_repository.list_leads_with_birthdays(db):
        consider(lead.id, lead.name, lead.email, lead.whatsapp_number, lead.date_of_birth, "lead")

    people.sort(key=lambda person: (person["days_until"], person["name"]))
    return people


async def get_upcoming_renewals(db: AsyncSession, days: int = 60) -> list[dict[str, Any]]:
    on = local_now().date()
    instances = await instance_repository.list_active_expiring_between(db, on, on + timedelta(days=days))
    return [
        {
            "id": instance.id,
            "expiry_date": instance.expiry_date,
            "days_until_expiry": (instance.expiry_date - on).days,
            "premium_amount": instance.premium_amount,
            "status": instance.status,
            "client": {
                "id": instance.client.id,
                "first_name": instance.client.first_name,
                "last_name": instance.client.last_name,
                "email": instance.client.email,
                "whatsapp_number": instance.client.whatsapp_number,
            },
            "policy_template": {
                "policy_number": instance.policy_template.policy_number,
                "policy_type": instance.policy_template.policy_type,
                "provider": instance.policy_template.provider,
            },
            "has_email": _present(instance.client.email),
            "has_whatsapp": _present(instance.client.whatsapp_number),
        }
        for instance in instances
    ]


def cron_status() -> dict[str, Any]:
    now = local_now()
    return {
        "schedule": f"Daily at {settings.AUTOMATION_RUN_HOUR:02d}:00",
        "timezone": settings.AUTOMATION_TIMEZONE,
        "current_time": now,
        "next_run": next_scheduled_run(now),
        "active": True,
    }
