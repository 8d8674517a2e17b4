"""Birthday and renewal automation with stubbed SMTP and MSG91 transports."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import httpx
import pytest
from sqlalchemy import select

from insurance_crm.core.constants import MessageStatus
from insurance_crm.db.models.message_log import MessageLog
from insurance_crm.repositories import clients as client_repository
from insurance_crm.repositories import leads as lead_repository
from insurance_crm.repositories import messages as message_repository
from insurance_crm.repositories import policy_instances as instance_repository
from insurance_crm.repositories import policy_templates as template_repository
from insurance_crm.services import automation
from insurance_crm.services.automation import AutomationService, birthday_in_year, next_birthday
from insurance_crm.services.mailer import EmailService, SMTPConfig
from insurance_crm.services.whatsapp import WhatsAppService


class Outbox:
    """Collects what the stubbed providers were asked to deliver."""

    def __init__(self, whatsapp_status: int = 200) -> None:
        self.emails: list = []
        self.whatsapp: list[httpx.Request] = []
        self.whatsapp_status = whatsapp_status

    def smtp(self, config, message) -> None:
        self.emails.append(message)

    def msg91(self, request: httpx.Request) -> httpx.Response:
        self.whatsapp.append(request)
        if self.whatsapp_status != 200:
            return httpx.Response(self.whatsapp_status, json={"status": "fail", "message": "Invalid number"})
        return httpx.Response(200, json={"status": "success", "request_id": f"req-{len(self.whatsapp)}"})


@pytest.fixture
def outbox() -> Outbox:
    return Outbox()


def make_service(db, outbox: Outbox, **kwargs) -> AutomationService:
    config = SMTPConfig(
        host="smtp.test",
        port=587,
        user="crm@example.com",
        password="secret",
        use_ssl=False,
        sender_email="crm@example.com",
        sender_name="Test CRM",
    )
    return AutomationService(
        db,
        email=EmailService(db, config=config, sender=outbox.smtp),
        whatsapp=WhatsAppService(
            db,
            auth_key="test-key",
            integrated_number="919000000000",
            namespace="ns",
            transport=httpx.MockTransport(outbox.msg91),
        ),
        **kwargs,
    )


def birthday_today() -> date:
    today = automation.local_now().date()
    # 1988 is a leap year, so 29 Feb is representable
    return date(1988, today.month, today.day)


async def add_client(db, **overrides):
    fields = {
        "first_name": "Priya",
        "last_name": "Sharma",
        "date_of_birth": date(1985, 3, 21),
        "phone_number": "9123456780",
        "whatsapp_number": "9123456780",
        "email": "priya@example.com",
    }
    fields.update(overrides)
    return await client_repository.create_client(db, **fields)


class TestBirthdayDates:
    def test_leap_day_in_common_year(self):
        assert birthday_in_year(date(2000, 2, 29), 2023) == date(2023, 2, 28)
        assert birthday_in_year(date(2000, 2, 29), 2024) == date(2024, 2, 29)

    def test_next_birthday_rolls_over(self):
        assert next_birthday(date(1990, 1, 5), date(2024, 6, 1)) == date(2025, 1, 5)
        assert next_birthday(date(1990, 6, 1), date(2024, 6, 1)) == date(2024, 6, 1)

    def test_next_scheduled_run(self):
        tz = timezone(timedelta(hours=5, minutes=30))
        before = datetime(2024, 6, 1, 7, 0, tzinfo=tz)
        after = datetime(2024, 6, 1, 10, 0, tzinfo=tz)
        assert automation.next_scheduled_run(before) == datetime(2024, 6, 1, 9, 0, tzinfo=tz)
        assert automation.next_scheduled_run(after) == datetime(2024, 6, 2, 9, 0, tzinfo=tz)


class TestBirthdayWishes:
    async def test_sends_once_per_day(self, db, outbox):
        await add_client(db, date_of_birth=birthday_today())
        await add_client(db, first_name="Not", last_name="Today", email="other@example.com",
                         date_of_birth=birthday_today() - timedelta(days=3))
        await lead_repository.create_lead(
            db,
            name="Lead Birthday",
            phone="9876543210",
            email=None,
            whatsapp_number="9876543210",
            insurance_interest="Life",
            date_of_birth=birthday_today(),
        )

        first = await make_service(db, outbox).process_birthday_wishes()
        assert first == {"email": {"sent": 1, "failed": 0}, "whatsapp": {"sent": 2, "failed": 0}}
        assert outbox.emails[0]["To"] == "priya@example.com"

        second = await make_service(db, outbox).process_birthday_wishes()
        assert second == {"email": {"sent": 0, "failed": 0}, "whatsapp": {"sent": 0, "failed": 0}}

    async def test_failed_send_is_retried(self, db):
        await add_client(db, date_of_birth=birthday_today(), email=None)
        failing = Outbox(whatsapp_status=400)
        first = await make_service(db, failing).process_birthday_wishes()
        assert first["whatsapp"] == {"sent": 0, "failed": 1}

        logs = (await db.execute(select(MessageLog))).scalars().all()
        assert [log.status for log in logs] == [MessageStatus.FAILED.value]
        assert "Invalid number" in logs[0].error_message

        retry = await make_service(db, Outbox()).process_birthday_wishes()
        assert retry["whatsapp"] == {"sent": 1, "failed": 0}

    async def test_age_counted_on_local_birthday(self, db, outbox, monkeypatch):
        # 00:30 in Kolkata on 21 Mar, still 20 Mar in UTC
        monkeypatch.setattr(automation, "utcnow", lambda: datetime(2026, 3, 20, 19, 0, tzinfo=timezone.utc))
        await add_client(db, date_of_birth=date(1985, 3, 21))

        result = await make_service(db, outbox, channels=("EMAIL",)).process_birthday_wishes()
        assert result["email"] == {"sent": 1, "failed": 0}
        text = outbox.emails[0].get_payload()[0].get_payload(decode=True).decode()
        assert "41st birthday" in text

    async def test_channel_scope(self, db, outbox):
        await add_client(db, date_of_birth=birthday_today())
        result = await make_service(db, outbox, channels=("EMAIL",)).process_birthday_wishes()
        assert result["whatsapp"] == {"sent": 0, "failed": 0}
        assert result["email"]["sent"] == 1
        assert outbox.whatsapp == []


class TestRenewalReminders:
    async def _expiring(self, db, days: int):
        client = await add_client(db)
        template = await template_repository.create_template(
            db, policy_number="LIC-001", policy_type="Life", provider="LIC"
        )
        on = automation.local_now().date()
        return await instance_repository.create_instance(
            db,
            policy_template_id=template.id,
            client_id=client.id,
            premium_amount=12000.0,
            commission_amount=1200.0,
            start_date=on - timedelta(days=300),
            duration_months=12,
            expiry_date=on + timedelta(days=days),
            status="Active",
        )

    async def test_reminders_within_window(self, db, outbox):
        await self._expiring(db, days=10)
        result = await make_service(db, outbox).process_policy_renewals()
        assert result == {"email": {"sent": 1, "failed": 0}, "whatsapp": {"sent": 1, "failed": 0}}

        payload = outbox.whatsapp[0].read()
        assert b"policy_renewal" in payload
        assert b"12,000.00" in payload

        again = await make_service(db, outbox).process_policy_renewals()
        assert again["email"]["sent"] == 0

    async def test_outside_window(self, db, outbox):
        await self._expiring(db, days=10)
        result = await make_service(db, outbox).process_policy_renewals(days_before=5)
        assert result["email"] == {"sent": 0, "failed": 0}

    async def test_run_records_automation_rules(self, db, outbox):
        await make_service(db, outbox, channels=("WHATSAPP",)).run_automated_tasks()
        rules = await message_repository.list_automations(db)
        assert [rule.name for rule in rules] == [
            "WhatsApp Birthday Wishes",
            "WhatsApp Policy Renewal Reminders",
        ]
        assert all(rule.last_run_at is not None for rule in rules)


class TestUpcoming:
    async def test_upcoming_birthdays_sorted(self, db):
        soon = automation.local_now().date() + timedelta(days=5)
        await add_client(db, date_of_birth=date(1980, soon.month, soon.day))
        await add_client(db, first_name="Asha", email="asha@example.com",
                         date_of_birth=birthday_today())
        people = await automation.get_upcoming_birthdays(db, days=30)
        assert [person["days_until"] for person in people] == [0, 5]
        assert people[0]["name"] == "Asha Sharma"
