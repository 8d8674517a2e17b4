"""
Celery application factory.
"""

from celery import Celery

celery_app = Celery("insurance_crm")
celery_app.config_from_object("celeryconfig")

celery_app.autodiscover_tasks([
    "insurance_crm.tasks.automation_tasks",
])
