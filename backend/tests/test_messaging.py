"""Provider payloads, message logging and the per-channel automation endpoints."""

from __future__ import annotations

from datetime import date
import json

import httpx
import pytest
from conftest import create_client
from sqlalchemy import select

from insurance_crm.db.models.message_log import MessageLog
from insurance_crm.services import automation
from insurance_crm.services.mailer import birthday_email, calculate_age, ordinal, renewal_email
from insurance_crm.services.whatsapp import (
    WhatsAppService,
    build_payload,
    extract_message_id,
    normalize_phone,
    text_components,
)


class TestWhatsAppHelpers:
    def test_normalize_phone(self):
        assert normalize_phone("98765 43210") == "919876543210"
        assert normalize_phone("+91-98765-43210") == "919876543210"

    def test_payload_shape(self):
        payload = build_payload(
            template_name="birthday_wish",
            phone="919876543210",
            components=text_components("Asha"),
            namespace="ns",
            integrated_number="919000000000",
        )
        template = payload["payload"]["template"]
        assert template["to_and_components"] == [
            {"to": ["919876543210"], "components": {"body_1": {"type": "text", "value": "Asha"}}}
        ]

    def test_message_id_lookup(self):
        assert extract_message_id({"data": {"message_id": "m-1"}}) == "m-1"
        assert extract_message_id({"request_id": "r-9"}) == "r-9"
        assert extract_message_id({}) is None


class TestWhatsAppService:
    async def test_success_is_logged_sent(self, db):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            assert request.headers["authkey"] == "key"
            return httpx.Response(200, json={"status": "success", "data": {"message_id": "abc"}})

        service = WhatsAppService(db, auth_key="key", transport=httpx.MockTransport(handler))
        result = await service.send_birthday_wish(to="9876543210", name="Asha")
        assert result.success and result.message_id == "abc"
        assert seen[0]["payload"]["template"]["name"] == "birthday_wish"

        log = (await db.execute(select(MessageLog))).scalar_one()
        assert log.status == "SENT"
        assert log.provider_message_id == "abc"
        assert log.recipient == "919876543210"

    @pytest.mark.parametrize(
        "response, error",
        [
            (httpx.Response(400, json={"status": "fail", "message": "Invalid template"}), "Invalid template"),
            (httpx.Response(200, json={"status": "fail", "message": "Number not on WhatsApp"}), "Number not on WhatsApp"),
            (httpx.Response(200, json=[]), "MSG91 API Error: []"),
            (httpx.Response(502, text="Bad Gateway"), "Bad Gateway"),
        ],
    )
    async def test_rejected_send_is_logged_failed(self, db, response, error):
        service = WhatsAppService(db, auth_key="key", transport=httpx.MockTransport(lambda request: response))
        result = await service.send_birthday_wish(to="9876543210", name="Asha")
        assert not result.success
        assert error in result.error

        log = (await db.execute(select(MessageLog))).scalar_one()
        assert log.status == "FAILED"
        assert error in log.error_message
        assert log.provider_message_id is None

    async def test_missing_auth_key_fails_without_request(self, db):
        def handler(request):
            raise AssertionError("no request expected")

        service = WhatsAppService(db, auth_key="", transport=httpx.MockTransport(handler))
        result = await service.send_birthday_wish(to="9876543210", name="Asha")
        assert not result.success
        assert result.error == "MSG91_AUTH_KEY not configured"


class TestEmailTemplates:
    def test_age_and_ordinal(self):
        assert calculate_age(date(1990, 6, 2), on=date(2024, 6, 1)) == 33
        assert calculate_age(date(1990, 6, 1), on=date(2024, 6, 1)) == 34
        assert [ordinal(n) for n in (1, 2, 3, 4, 11, 12, 13, 21, 112)] == [
            "1st", "2nd", "3rd", "4th", "11th", "12th", "13th", "21st", "112th"
        ]

    def test_renewal_subject(self):
        subject, html, text = renewal_email(
            "Asha",
            policy_number="LIC-001",
            policy_type="Life",
            expiry_date=date(2025, 1, 15),
            days_until_expiry=5,
        )
        assert subject.endswith("LIC-001")
        assert "#dc2626" in html
        assert "15 Jan 2025" in text

    def test_html_bodies_escape_user_input(self):
        _, html, text = birthday_email("<b>Asha</b>", 30)
        assert "&lt;b&gt;Asha&lt;/b&gt;" in html
        assert "<b>Asha</b>" not in html
        assert text.startswith("Happy Birthday <b>Asha</b>!")

        _, html, _ = renewal_email(
            "Tom & Jerry",
            policy_number="A<1>",
            policy_type='Life "Plus"',
            expiry_date=date(2025, 1, 15),
            days_until_expiry=40,
        )
        assert "Dear Tom &amp; Jerry," in html
        assert "A&lt;1&gt;" in html
        assert "Life &quot;Plus&quot;" in html


class TestAutomationEndpoints:
    async def test_unconfigured_channel_logs_failures(self, client, auth_headers):
        today = automation.local_now().date()
        await create_client(client, auth_headers, date_of_birth=date(1988, today.month, today.day).isoformat())

        response = await client.post("/api/v1/whatsapp-automation/send-birthday-wishes", headers=auth_headers)
        assert response.json()["data"] == {"sent": 0, "failed": 1}

        logs = await client.get("/api/v1/whatsapp-automation/logs", headers=auth_headers)
        data = logs.json()["data"]
        assert data["pagination"]["total"] == 1
        assert data["logs"][0]["status"] == "FAILED"

        stats = await client.get("/api/v1/whatsapp-automation/stats", headers=auth_headers)
        assert stats.json()["data"]["total_failed"] == 1

        email_logs = await client.get("/api/v1/email-automation/logs", headers=auth_headers)
        assert email_logs.json()["data"]["pagination"]["total"] == 0

    async def test_dashboard_and_templates(self, client, auth_headers):
        await client.post("/api/v1/email-automation/run-all", headers=auth_headers)
        dashboard = await client.get("/api/v1/email-automation/dashboard", headers=auth_headers)
        data = dashboard.json()["data"]
        assert {rule["channel"] for rule in data["automations"]} == {"EMAIL"}
        assert "next_run" in data["cron"]

        templates = await client.get("/api/v1/email-automation/templates", headers=auth_headers)
        assert [t["name"] for t in templates.json()["data"]] == ["birthday_wish", "policy_renewal"]

    async def test_custom_email_without_smtp(self, client, auth_headers):
        response = await client.post(
            "/api/v1/email-automation/send-custom-email",
            json={"to": "asha@example.com", "subject": "Hi", "html": "<p>Hi</p>", "recipient_name": "Asha"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["success"] is False
