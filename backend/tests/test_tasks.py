"""Celery wiring: schedule, routing and eager task execution."""

from __future__ import annotations

import asyncio

import celeryconfig

from insurance_crm.db.models import Base
from insurance_crm.db.session import build_engine
from insurance_crm.tasks import automation_tasks, celery_app


def test_tasks_registered_and_scheduled():
    names = {entry["task"] for entry in celeryconfig.beat_schedule.values()}
    assert names <= set(celery_app.tasks)
    assert "insurance_crm.tasks.automation_tasks.send_renewal_reminders" in celery_app.tasks


def test_tasks_route_to_automation_queue():
    assert celery_app.conf.task_routes == {"insurance_crm.tasks.automation_tasks.*": {"queue": "automation"}}
    assert celery_app.conf.task_default_queue == "default"


def test_update_expired_runs_eagerly(monkeypatch, tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}"

    async def create_schema():
        engine = build_engine(url)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    asyncio.run(create_schema())
    monkeypatch.setattr(automation_tasks, "build_engine", lambda _url: build_engine(url))

    result = automation_tasks.update_expired_policies.apply().get()
    assert result == {"updated_count": 0}
