"""
Celery tasks for scheduled messaging and policy upkeep.

Each task runs its coroutine with `asyncio.run` on a fresh engine, since a
worker process cannot share the web app's event loop or connection pool.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from insurance_crm.core.config import settings
from insurance_crm.db.session import build_engine
from insurance_crm.services import expiry as expiry_service
from insurance_crm.services.automation import AutomationService
from insurance_crm.tasks import celery_app

logger = structlog.get_logger("tasks.automation")


async def run_in_session(job: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
    """Run `job` in one committed transaction on a short-lived engine."""
    engine = build_engine(settings.DATABASE_URL)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with factory() as session:
            async with session.begin():
                return await job(session)
    finally:
        await engine.dispose()


async def _daily_automation(session: AsyncSession) -> dict[str, Any]:
    return await AutomationService(session).run_automated_tasks()


async def _birthday_wishes(session: AsyncSession) -> dict[str, Any]:
    return await AutomationService(session).process_birthday_wishes()


@celery_app.task(bind=True, name="insurance_crm.tasks.automation_tasks.run_daily_automation")
def run_daily_automation(self) -> dict[str, Any]:
    """Birthday wishes and renewal reminders on every channel."""
    task_log = logger.bind(task_id=self.request.id)
    task_log.info("Daily automation started")
    result = asyncio.run(run_in_session(_daily_automation))
    task_log.info("Daily automation finished", **result)
    return result


@celery_app.task(bind=True, name="insurance_crm.tasks.automation_tasks.update_expired_policies")
def update_expired_policies(self) -> dict[str, Any]:
    task_log = logger.bind(task_id=self.request.id)
    result = asyncio.run(run_in_session(expiry_service.update_expired_statuses))
    task_log.info("Expired policies updated", updated_count=result["updated_count"])
    return {"updated_count": result["updated_count"]}


@celery_app.task(bind=True, name="insurance_crm.tasks.automation_tasks.send_birthday_wishes")
def send_birthday_wishes(self) -> dict[str, Any]:
    result = asyncio.run(run_in_session(_birthday_wishes))
    logger.bind(task_id=self.request.id).info("Birthday wishes sent", **result)
    return result


@celery_app.task(bind=True, name="insurance_crm.tasks.automation_tasks.send_renewal_reminders")
def send_renewal_reminders(self, days_before: int | None = None) -> dict[str, Any]:
    async def job(session: AsyncSession) -> dict[str, Any]:
        return await AutomationService(session).process_policy_renewals(days_before)

    result = asyncio.run(run_in_session(job))
    logger.bind(task_id=self.request.id).info("Renewal reminders sent", days_before=days_before, **result)
    return result
