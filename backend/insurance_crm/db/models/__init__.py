"""
Models package — re-exports Base and all models.

Import models here so Alembic's `target_metadata = Base.metadata`
picks up every table automatically.

When adding a new model:
    1. Create `insurance_crm/db/models/<table_name>.py`
    2. Import it here
"""

from insurance_crm.db.models.base import Base
from insurance_crm.db.models.activity import Activity
from insurance_crm.db.models.agent_settings import AgentSettings
from insurance_crm.db.models.client import Client
from insurance_crm.db.models.client_document import ClientDocument
from insurance_crm.db.models.lead import Lead
from insurance_crm.db.models.message_automation import MessageAutomation
from insurance_crm.db.models.message_log import MessageLog
from insurance_crm.db.models.policy_instance import PolicyInstance
from insurance_crm.db.models.policy_template import PolicyTemplate
from insurance_crm.db.models.whatsapp_template import WhatsAppTemplate

__all__ = [
    "Base",
    "Activity",
    "AgentSettings",
    "Client",
    "ClientDocument",
    "Lead",
    "MessageAutomation",
    "MessageLog",
    "PolicyInstance",
    "PolicyTemplate",
    "WhatsAppTemplate",
]
