"""
Register the MSG91 templates used by the automations.
Run: python -m scripts.setup_whatsapp_templates  (from backend/)
"""

import asyncio

from insurance_crm.core.config import settings
from insurance_crm.core.constants import MessageType
from insurance_crm.core.logging import get_logger, setup_logging
from insurance_crm.db.session import async_session
from insurance_crm.repositories.messages import upsert_whatsapp_template
from insurance_crm.services.whatsapp import BIRTHDAY_TEMPLATE, RENEWAL_TEMPLATE

logger = get_logger("scripts.setup_whatsapp_templates")

TEMPLATES = [
    {
        "name": "birthday_wish_template",
        "template_name": BIRTHDAY_TEMPLATE,
        "message_type": MessageType.BIRTHDAY_WISH,
        "preview": "Happy Birthday {{1}}!",
    },
    {
        "name": "policy_renewal_template",
        "template_name": RENEWAL_TEMPLATE,
        "message_type": MessageType.POLICY_RENEWAL,
        "preview": "Hello {{1}}, your {{2}} policy ({{3}}) with {{4}} expires on {{5}}. Premium: ₹{{6}}",
    },
]


async def setup():
    async with async_session() as session:
        for entry in TEMPLATES:
            template, created = await upsert_whatsapp_template(
                session,
                name=entry["name"],
                template_name=entry["template_name"],
                namespace=settings.MSG91_NAMESPACE,
                message_type=entry["message_type"],
            )
            logger.info(
                "WhatsApp template created" if created else "WhatsApp template updated",
                template=template.template_name,
                namespace=template.namespace,
                preview=entry["preview"],
            )
        await session.commit()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(setup())
