"""
Seed the agent account and sample CRM data for development.
Run: python -m scripts.seed_data  (from backend/)

Safe to run repeatedly: existing leads, clients (by email), templates
(by policy number) and client/template pairs are left untouched.
"""

import asyncio
from datetime import date, timedelta

from sqlalchemy import select

from insurance_crm.core.config import settings
from insurance_crm.core.logging import get_logger, setup_logging
from insurance_crm.db.models.base import today
from insurance_crm.db.models.lead import Lead
from insurance_crm.db.session import async_session
from insurance_crm.repositories import agent_settings as agent_repository
from insurance_crm.repositories import clients as client_repository
from insurance_crm.repositories import leads as lead_repository
from insurance_crm.repositories import policy_instances as instance_repository
from insurance_crm.repositories import policy_templates as template_repository
from insurance_crm.services.policy_instances import calculate_expiry_date

logger = get_logger("scripts.seed_data")

SEED_LEADS = [
    {
        "name": "Rahul Verma",
        "email": "rahul.verma@example.com",
        "phone": "9876543210",
        "whatsapp_number": "9876543210",
        "date_of_birth": date(1990, 5, 14),
        "insurance_interest": "Life",
        "status": "New",
        "priority": "Hot",
        "notes": "Asked for a term plan quote",
    },
    {
        "name": "Sneha Iyer",
        "email": "sneha.iyer@example.com",
        "phone": "9812345678",
        "whatsapp_number": None,
        "date_of_birth": date(1987, 11, 2),
        "insurance_interest": "Health",
        "status": "Contacted",
        "priority": "Warm",
        "notes": None,
    },
    {
        "name": "Amit Shah",
        "email": None,
        "phone": "9898989898",
        "whatsapp_number": "9898989898",
        "date_of_birth": None,
        "insurance_interest": "Auto",
        "status": "Qualified",
        "priority": "Cold",
        "notes": "Renewal due next quarter",
    },
]

SEED_CLIENTS = [
    {
        "first_name": "Priya",
        "last_name": "Sharma",
        "date_of_birth": date(1985, 3, 21),
        "gender": "FEMALE",
        "phone_number": "9123456780",
        "whatsapp_number": "9123456780",
        "email": "priya.sharma@example.com",
        "city": "Pune",
        "state": "Maharashtra",
    },
    {
        "first_name": "Vikram",
        "last_name": "Singh",
        "date_of_birth": date(1978, 8, 9),
        "gender": "MALE",
        "phone_number": "9234567801",
        "whatsapp_number": "9234567801",
        "email": "vikram.singh@example.com",
        "city": "Jaipur",
        "state": "Rajasthan",
        "business_job": "Business",
        "company_name": "Singh Traders",
    },
]

SEED_TEMPLATES = [
    {"policy_number": "LIC-TERM-001", "policy_type": "Life", "provider": "LIC", "description": "Term life cover"},
    {"policy_number": "STAR-HLTH-010", "policy_type": "Health", "provider": "Star Health", "description": "Family floater"},
    {"policy_number": "ICICI-AUTO-200", "policy_type": "Auto", "provider": "ICICI Lombard", "description": None},
]

# (client email, policy number, premium, commission, months, days since start)
SEED_INSTANCES = [
    ("priya.sharma@example.com", "LIC-TERM-001", 25000.0, 2500.0, 12, 340),
    ("priya.sharma@example.com", "STAR-HLTH-010", 18000.0, 1800.0, 12, 100),
    ("vikram.singh@example.com", "ICICI-AUTO-200", 9500.0, 950.0, 12, 360),
]


async def seed():
    async with async_session() as session:
        await agent_repository.upsert_agent(
            session,
            name=settings.AGENT_NAME,
            email=settings.AGENT_EMAIL,
            password=settings.AGENT_PASSWORD,
        )
        logger.info("Agent account ready", email=settings.AGENT_EMAIL)

        for data in SEED_LEADS:
            exists = await session.scalar(select(Lead.id).where(Lead.name == data["name"], Lead.phone == data["phone"]))
            if exists is None:
                await lead_repository.create_lead(session, **data)
                logger.info("Created lead", name=data["name"])

        clients = {}
        for data in SEED_CLIENTS:
            client = await client_repository.get_client_by_email(session, data["email"])
            if client is None:
                client = await client_repository.create_client(session, **data)
                logger.info("Created client", name=client.full_name)
            clients[client.email] = client

        templates = {}
        for data in SEED_TEMPLATES:
            template = await template_repository.get_template_by_number(session, data["policy_number"])
            if template is None:
                template = await template_repository.create_template(session, **data)
                logger.info("Created policy template", policy_number=template.policy_number)
            templates[template.policy_number] = template

        for email, number, premium, commission, months, days_ago in SEED_INSTANCES:
            client, template = clients[email], templates[number]
            existing = await instance_repository.get_instance_for_pair(
                session, policy_template_id=template.id, client_id=client.id
            )
            if existing is not None:
                continue
            start = today() - timedelta(days=days_ago)
            await instance_repository.create_instance(
                session,
                policy_template_id=template.id,
                client_id=client.id,
                premium_amount=premium,
                commission_amount=commission,
                start_date=start,
                duration_months=months,
                expiry_date=calculate_expiry_date(start, months),
                status="Active",
            )
            logger.info("Created policy instance", client=client.full_name, policy_number=number)

        await session.commit()
    logger.info("Seed complete")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(seed())
