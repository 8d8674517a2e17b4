"""
Celery configuration for the CRM automation worker.

Loaded by `celery_app.config_from_object("celeryconfig")` in
insurance_crm/tasks/__init__.py.  Broker/result-backend URLs come from
environment variables, defaulting to localhost for local dev.
"""

import os

from celery.schedules import crontab

# ═══════════════════════════════════════════════════════════
#  Broker & Result Backend
# ═══════════════════════════════════════════════════════════

broker_url = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
result_backend = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")

# ═══════════════════════════════════════════════════════════
#  Serialization
# ═══════════════════════════════════════════════════════════

task_serializer = "json"
result_serializer = "json"
accept_content = ["json"]

# ═══════════════════════════════════════════════════════════
#  Timezone (beat schedule is in local agency time)
# ═══════════════════════════════════════════════════════════

timezone = os.getenv("AUTOMATION_TIMEZONE", "Asia/Kolkata")
enable_utc = True

# ═══════════════════════════════════════════════════════════
#  Task Execution
# ═══════════════════════════════════════════════════════════

task_acks_late = True
task_reject_on_worker_lost = True
worker_prefetch_multiplier = 1

# A daily run sends one SMTP and one MSG91 request per recipient
task_soft_time_limit = 900
task_time_limit = 960

task_default_retry_delay = 60
task_max_retries = 3

result_expires = 86400

worker_max_tasks_per_child = 100
worker_send_task_events = False
task_send_sent_event = False

task_routes = {
    "insurance_crm.tasks.automation_tasks.*": {"queue": "automation"},
}

task_default_queue = "default"

# ═══════════════════════════════════════════════════════════
#  Beat Schedule
# ═══════════════════════════════════════════════════════════

beat_schedule = {
    "daily-automation": {
        "task": "insurance_crm.tasks.automation_tasks.run_daily_automation",
        "schedule": crontab(hour=int(os.getenv("AUTOMATION_RUN_HOUR", "9")), minute=0),
    },
    "update-expired-policies": {
        "task": "insurance_crm.tasks.automation_tasks.update_expired_policies",
        "schedule": crontab(hour=0, minute=30),
    },
}
