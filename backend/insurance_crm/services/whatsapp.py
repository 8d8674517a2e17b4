"""
WhatsApp delivery through MSG91's bulk outbound template API.

Every send is recorded in MessageLog: the row is inserted PENDING before
the HTTP call and finalised SENT or FAILED afterwards.  Send methods never
raise; callers get a `SendResult`.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Any
import uuid

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.config import settings
from insurance_crm.core.constants import MessageChannel, MessageType
from insurance_crm.core.logging import get_logger
from insurance_crm.repositories import messages as message_repository

logger = get_logger(__name__)

BIRTHDAY_TEMPLATE = "birthday_wish"
RENEWAL_TEMPLATE = "policy_renewal"


@dataclass
class SendResult:
    success: bool
    message_id: str | None = None
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message_id": self.message_id, "error": self.error}


def normalize_phone(phone: str) -> str:
    """Digits only, with the 91 country code prefixed to bare 10-digit numbers."""
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == 10:
        return f"91{digits}"
    return digits


def text_components(*values: Any) -> dict[str, dict[str, str]]:
    """Positional template variables as MSG91 ``body_N`` components."""
    return {
        f"body_{index}": {"type": "text", "value": str(value)}
        for index, value in enumerate(values, start=1)
    }


def build_payload(*, template_name: str, phone: str, components: dict[str, Any], namespace: str, integrated_number: str) -> dict[str, Any]:
    return {
        "integrated_number": integrated_number,
        "content_type": "template",
        "payload": {
            "messaging_product": "whatsapp",
            "type": "template",
            "template": {
                "name": template_name,
                "language": {"code": "en", "policy": "deterministic"},
                "namespace": namespace,
                "to_and_components": [{"to": [phone], "components": components}],
            },
        },
    }


def extract_message_id(body: dict[str, Any]) -> str | None:
    data = body.get("data")
    if isinstance(data, dict) and data.get("message_id"):
        return str(data["message_id"])
    for key in ("request_id", "messageId"):
        if body.get(key):
            return str(body[key])
    return None


class WhatsAppService:
    """Sends MSG91 template messages and records each attempt."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        auth_key: str | None = None,
        integrated_number: str | None = None,
        namespace: str | None = None,
        api_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.db = db
        self.auth_key = auth_key if auth_key is not None else settings.MSG91_AUTH_KEY
        self.integrated_number = integrated_number if integrated_number is not None else settings.MSG91_INTEGRATED_NUMBER
        self.namespace = namespace if namespace is not None else settings.MSG91_NAMESPACE
        self.api_url = api_url or settings.MSG91_API_URL
        self._transport = transport

    async def _template_id(self, message_type: str, template_name: str) -> uuid.UUID:
        template = await message_repository.get_whatsapp_template(
            self.db, message_type=message_type, template_name=template_name
        )
        if template is None:
            template, _ = await message_repository.upsert_whatsapp_template(
                self.db,
                name=f"{str(message_type).lower()}_template",
                template_name=template_name,
                namespace=self.namespace,
                message_type=message_type,
            )
        return template.id

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {"Content-Type": "application/json", "authkey": self.auth_key}
        async with httpx.AsyncClient(timeout=settings.MSG91_TIMEOUT_SECONDS, transport=self._transport) as client:
            response = await client.post(self.api_url, json=payload, headers=headers)
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {"message": response.text}
        if response.is_success and (body.get("status") == "success" or body.get("type") == "success"):
            return body
        detail = body.get("message") or body.get("errors") or "Unknown error"
        raise RuntimeError(f"MSG91 API Error: {detail}")

    async def send_message(
        self,
        *,
        to: str,
        recipient_name: str,
        message_type: str,
        template_name: str,
        components: dict[str, Any],
        client_id: uuid.UUID | None = None,
        lead_id: uuid.UUID | None = None,
        policy_instance_id: uuid.UUID | None = None,
    ) -> SendResult:
        phone = normalize_phone(to)
        log = await message_repository.create_message_log(
            self.db,
            channel=MessageChannel.WHATSAPP,
            message_type=message_type,
            recipient=phone,
            recipient_name=recipient_name,
            template_name=template_name,
            client_id=client_id,
            lead_id=lead_id,
            policy_instance_id=policy_instance_id,
            whatsapp_template_id=await self._template_id(message_type, template_name),
        )

        try:
            if not self.auth_key:
                raise RuntimeError("MSG91_AUTH_KEY not configured")
            body = await self._post(
                build_payload(
                    template_name=template_name,
                    phone=phone,
                    components=components,
                    namespace=self.namespace,
                    integrated_number=self.integrated_number,
                )
            )
        except (httpx.HTTPError, RuntimeError) as exc:
            await message_repository.mark_failed(self.db, log, str(exc))
            logger.warning("WhatsApp send failed", recipient=phone, template=template_name, error=str(exc))
            return SendResult(success=False, error=str(exc))

        message_id = extract_message_id(body)
        await message_repository.mark_sent(self.db, log, message_id)
        logger.info("WhatsApp message sent", recipient=phone, template=template_name, message_id=message_id)
        return SendResult(success=True, message_id=message_id)

    async def send_birthday_wish(
        self,
        *,
        to: str,
        name: str,
        client_id: uuid.UUID | None = None,
        lead_id: uuid.UUID | None = None,
    ) -> SendResult:
        return await self.send_message(
            to=to,
            recipient_name=name,
            message_type=MessageType.BIRTHDAY_WISH,
            template_name=BIRTHDAY_TEMPLATE,
            components=text_components(name),
            client_id=client_id,
            lead_id=lead_id,
        )

    async def send_policy_renewal(
        self,
        *,
        to: str,
        name: str,
        policy_type: str,
        policy_number: str,
        provider: str,
        expiry_date: str,
        premium_amount: str,
        client_id: uuid.UUID | None = None,
        policy_instance_id: uuid.UUID | None = None,
    ) -> SendResult:
        return await self.send_message(
            to=to,
            recipient_name=name,
            message_type=MessageType.POLICY_RENEWAL,
            template_name=RENEWAL_TEMPLATE,
            components=text_components(name, policy_type, policy_number, provider, expiry_date, premium_amount),
            client_id=client_id,
            policy_instance_id=policy_instance_id,
        )
