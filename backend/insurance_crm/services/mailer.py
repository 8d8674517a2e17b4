"""
Email delivery over SMTP (STARTTLS or implicit SSL).

`smtplib` is blocking, so each send runs in a worker thread.  Like the
WhatsApp service, every attempt is recorded in MessageLog and send
methods never raise.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from html import escape
import smtplib
from typing import Any, Callable
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from insurance_crm.core.config import settings
from insurance_crm.core.constants import MessageChannel, MessageType
from insurance_crm.core.logging import get_logger
from insurance_crm.repositories import messages as message_repository
from insurance_crm.services.whatsapp import SendResult

logger = get_logger(__name__)


@dataclass
class SMTPConfig:
    host: str
    port: int
    user: str
    password: str
    use_ssl: bool
    sender_email: str
    sender_name: str

    @classmethod
    def from_settings(cls) -> "SMTPConfig":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            use_ssl=settings.SMTP_USE_SSL,
            sender_email=settings.SENDER_EMAIL or settings.SMTP_USER,
            sender_name=settings.SENDER_NAME,
        )


def smtp_send(config: SMTPConfig, message: MIMEMultipart) -> None:
    """Blocking SMTP delivery of a prepared message."""
    if config.use_ssl:
        with smtplib.SMTP_SSL(config.host, config.port, timeout=30) as server:
            server.login(config.user, config.password)
            server.send_message(message)
        return
    with smtplib.SMTP(config.host, config.port, timeout=30) as server:
        server.starttls()
        server.login(config.user, config.password)
        server.send_message(message)


def calculate_age(date_of_birth: date, on: date | None = None) -> int:
    on = on or date.today()
    age = on.year - date_of_birth.year
    if (on.month, on.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def ordinal(number: int) -> str:
    if 10 <= number % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


def urgency_color(days_until_expiry: int) -> str:
    if days_until_expiry <= 7:
        return "#dc2626"
    if days_until_expiry <= 30:
        return "#f59e0b"
    return "#2563eb"


# ─── Built-in templates ───────────────────────────────────
def birthday_email(name: str, age: int) -> tuple[str, str, str]:
    """(subject, html, text) for a birthday wish."""
    subject = f"🎉 Happy Birthday {name}!"
    safe_name = escape(name)
    html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h1 style="color: #7c3aed;">🎂 Happy Birthday, {safe_name}!</h1>
      <p>Wishing you a wonderful {ordinal(age)} birthday filled with joy, happiness,
      and all your favorite things!</p>
      <p>Thank you for being a valued client. We look forward to protecting what matters
      most to you for many years to come.</p>
      <p>Best wishes,<br>{settings.SENDER_NAME}</p>
    </div>
    """
    text = (
        f"Happy Birthday {name}! Wishing you a wonderful {ordinal(age)} birthday filled with "
        f"joy and happiness. Thank you for being a valued client. Best wishes, {settings.SENDER_NAME}"
    )
    return subject, html, text


def renewal_email(
    name: str,
    *,
    policy_number: str,
    policy_type: str,
    expiry_date: date,
    days_until_expiry: int,
) -> tuple[str, str, str]:
    """(subject, html, text) for a renewal reminder."""
    subject = f"⏰ Policy Renewal Reminder - {policy_number}"
    color = urgency_color(days_until_expiry)
    expiry = expiry_date.strftime("%d %b %Y")
    safe_name, safe_type, safe_number = escape(name), escape(policy_type), escape(policy_number)
    html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Dear {safe_name},</h2>
      <p>Your <strong>{safe_type}</strong> policy is due for renewal.</p>
      <table style="border-collapse: collapse;">
        <tr><td>Policy number</td><td><strong>{safe_number}</strong></td></tr>
        <tr><td>Expiry date</td><td><strong>{expiry}</strong></td></tr>
        <tr><td>Days remaining</td>
            <td><strong style="color: {color};">{days_until_expiry}</strong></td></tr>
      </table>
      <p>Please contact us as soon as possible to renew your policy and ensure continuous
      coverage. Don't let your protection lapse!</p>
      <p>Regards,<br>{settings.SENDER_NAME}</p>
    </div>
    """
    text = (
        f"Dear {name}, your {policy_type} policy {policy_number} expires on {expiry} "
        f"({days_until_expiry} days remaining). Please contact us to renew it. "
        f"Regards, {settings.SENDER_NAME}"
    )
    return subject, html, text


BUILT_IN_TEMPLATES: list[dict[str, Any]] = [
    {
        "name": "birthday_wish",
        "message_type": MessageType.BIRTHDAY_WISH.value,
        "subject": "🎉 Happy Birthday {name}!",
        "variables": ["name", "age"],
        "is_active": True,
    },
    {
        "name": "policy_renewal",
        "message_type": MessageType.POLICY_RENEWAL.value,
        "subject": "⏰ Policy Renewal Reminder - {policy_number}",
        "variables": ["name", "policy_number", "policy_type", "expiry_date", "days_until_expiry"],
        "is_active": True,
    },
]


class EmailService:
    """Builds and sends emails, recording each attempt."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        config: SMTPConfig | None = None,
        sender: Callable[[SMTPConfig, MIMEMultipart], None] = smtp_send,
    ) -> None:
        self.db = db
        self.config = config or SMTPConfig.from_settings()
        self._sender = sender

    def build_message(self, *, to: str, subject: str, html: str, text: str | None) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = formataddr((self.config.sender_name, self.config.sender_email))
        message["To"] = to
        message["Message-ID"] = make_msgid(domain=self.config.sender_email.split("@")[-1] or None)
        if text:
            message.attach(MIMEText(text, "plain", "utf-8"))
        message.attach(MIMEText(html, "html", "utf-8"))
        return message

    async def send_email(
        self,
        *,
        to: str,
        subject: str,
        html: str,
        recipient_name: str,
        message_type: str = MessageType.CUSTOM,
        text: str | None = None,
        client_id: uuid.UUID | None = None,
        lead_id: uuid.UUID | None = None,
        policy_instance_id: uuid.UUID | None = None,
    ) -> SendResult:
        log = await message_repository.create_message_log(
            self.db,
            channel=MessageChannel.EMAIL,
            message_type=message_type,
            recipient=to,
            recipient_name=recipient_name,
            subject=subject,
            client_id=client_id,
            lead_id=lead_id,
            policy_instance_id=policy_instance_id,
        )
        message = self.build_message(to=to, subject=subject, html=html, text=text)

        try:
            if not self.config.user or not self.config.password:
                raise smtplib.SMTPException("SMTP credentials not configured")
            await asyncio.to_thread(self._sender, self.config, message)
        except (smtplib.SMTPException, OSError) as exc:
            await message_repository.mark_failed(self.db, log, str(exc))
            logger.warning("Email send failed", recipient=to, subject=subject, error=str(exc))
            return SendResult(success=False, error=str(exc))

        message_id = message["Message-ID"]
        await message_repository.mark_sent(self.db, log, message_id)
        logger.info("Email sent", recipient=to, subject=subject)
        return SendResult(success=True, message_id=message_id)

    async def send_birthday_wish(
        self,
        *,
        to: str,
        name: str,
        date_of_birth: date,
        on: date | None = None,
        client_id: uuid.UUID | None = None,
        lead_id: uuid.UUID | None = None,
    ) -> SendResult:
        """The age is counted on `on`, the automation day, when given."""
        subject, html, text = birthday_email(name, calculate_age(date_of_birth, on))
        return await self.send_email(
            to=to,
            subject=subject,
            html=html,
            text=text,
            recipient_name=name,
            message_type=MessageType.BIRTHDAY_WISH,
            client_id=client_id,
            lead_id=lead_id,
        )

    async def send_policy_renewal(
        self,
        *,
        to: str,
        name: str,
        policy_number: str,
        policy_type: str,
        expiry_date: date,
        days_until_expiry: int,
        client_id: uuid.UUID | None = None,
        policy_instance_id: uuid.UUID | None = None,
    ) -> SendResult:
        subject, html, text = renewal_email(
            name,
            policy_number=policy_number,
            policy_type=policy_type,
            expiry_date=expiry_date,
            days_until_expiry=days_until_expiry,
        )
        return await self.send_email(
            to=to,
            subject=subject,
            html=html,
            text=text,
            recipient_name=name,
            message_type=MessageType.POLICY_RENEWAL,
            client_id=client_id,
            policy_instance_id=policy_instance_id,
        )
