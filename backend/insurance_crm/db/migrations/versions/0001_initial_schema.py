"""Initial CRM schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False))
    return columns


def upgrade() -> None:
    op.create_table(
        "settings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("agent_name", sa.String(255), nullable=False),
        sa.Column("agent_email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "leads",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("whatsapp_number", sa.String(20), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("insurance_interest", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("priority", sa.String(10), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_leads_name", "leads", ["name"])
    op.create_index("ix_leads_status", "leads", ["status"])
    op.create_index("ix_leads_created_at", "leads", ["created_at"])

    op.create_table(
        "clients",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("middle_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=False),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("gender", sa.String(10), nullable=True),
        sa.Column("birth_place", sa.String(100), nullable=True),
        sa.Column("height", sa.Float(), nullable=True),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("education", sa.String(100), nullable=True),
        sa.Column("marital_status", sa.String(20), nullable=True),
        sa.Column("relationship_type", sa.String(20), nullable=True),
        sa.Column("phone_number", sa.String(20), nullable=False),
        sa.Column("whatsapp_number", sa.String(20), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("business_job", sa.String(100), nullable=True),
        sa.Column("name_of_business", sa.String(200), nullable=True),
        sa.Column("type_of_duty", sa.String(100), nullable=True),
        sa.Column("annual_income", sa.Float(), nullable=True),
        sa.Column("pan_number", sa.String(10), nullable=True),
        sa.Column("gst_number", sa.String(15), nullable=True),
        sa.Column("company_name", sa.String(200), nullable=True),
        sa.Column("additional_info", sa.Text(), nullable=True),
        sa.Column("profile_image_url", sa.String(1000), nullable=True),
        sa.Column("profile_image_id", sa.String(500), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_clients_first_name", "clients", ["first_name"])
    op.create_index("ix_clients_last_name", "clients", ["last_name"])
    op.create_index("ix_clients_email", "clients", ["email"], unique=True)
    op.create_index("ix_clients_created_at", "clients", ["created_at"])

    op.create_table(
        "policy_templates",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("policy_number", sa.String(50), nullable=False),
        sa.Column("policy_type", sa.String(20), nullable=False),
        sa.Column("provider", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_policy_templates_policy_number", "policy_templates", ["policy_number"], unique=True)
    op.create_index("ix_policy_templates_policy_type", "policy_templates", ["policy_type"])
    op.create_index("ix_policy_templates_provider", "policy_templates", ["provider"])

    op.create_table(
        "policy_instances",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "policy_template_id",
            sa.Uuid(),
            sa.ForeignKey("policy_templates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("premium_amount", sa.Float(), nullable=False),
        sa.Column("commission_amount", sa.Float(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("duration_months", sa.Integer(), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("policy_template_id", "client_id", name="uq_policy_instances_template_client"),
    )
    op.create_index("ix_policy_instances_policy_template_id", "policy_instances", ["policy_template_id"])
    op.create_index("ix_policy_instances_client_id", "policy_instances", ["client_id"])
    op.create_index("ix_policy_instances_expiry_date", "policy_instances", ["expiry_date"])
    op.create_index("ix_policy_instances_status", "policy_instances", ["status"])
    op.create_index("ix_policy_instances_created_at", "policy_instances", ["created_at"])

    op.create_table(
        "client_documents",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("document_type", sa.String(30), nullable=False),
        sa.Column("file_name", sa.String(500), nullable=False),
        sa.Column("original_name", sa.String(500), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("cloudinary_url", sa.String(1000), nullable=False),
        sa.Column("cloudinary_id", sa.String(500), nullable=False),
        sa.Column("resource_type", sa.String(20), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_client_documents_client_id", "client_documents", ["client_id"])
    op.create_index("ix_client_documents_document_type", "client_documents", ["document_type"])

    op.create_table(
        "activities",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_activities_action", "activities", ["action"])
    op.create_index("ix_activities_created_at", "activities", ["created_at"])

    op.create_table(
        "whatsapp_templates",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("template_name", sa.String(100), nullable=False),
        sa.Column("namespace", sa.String(100), nullable=False),
        sa.Column("language", sa.String(10), nullable=False),
        sa.Column("message_type", sa.String(30), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("message_type", "template_name", name="uq_whatsapp_templates_type_name"),
    )
    op.create_index("ix_whatsapp_templates_message_type", "whatsapp_templates", ["message_type"])

    op.create_table(
        "message_automations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("message_type", sa.String(30), nullable=False),
        sa.Column("channel", sa.String(20), nullable=False),
        sa.Column("trigger", sa.String(30), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("days_before", sa.Integer(), nullable=True),
        sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_run_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "message_type", "channel", "trigger", name="uq_message_automations_type_channel_trigger"
        ),
    )

    op.create_table(
        "message_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("channel", sa.String(20), nullable=False),
        sa.Column("message_type", sa.String(30), nullable=False),
        sa.Column("recipient", sa.String(320), nullable=False),
        sa.Column("recipient_name", sa.String(255), nullable=False),
        sa.Column("subject", sa.String(500), nullable=True),
        sa.Column("template_name", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("provider_message_id", sa.String(255), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True),
        sa.Column("lead_id", sa.Uuid(), sa.ForeignKey("leads.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "policy_instance_id",
            sa.Uuid(),
            sa.ForeignKey("policy_instances.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "whatsapp_template_id",
            sa.Uuid(),
            sa.ForeignKey("whatsapp_templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(updated=False),
    )
    op.create_index("ix_message_logs_channel", "message_logs", ["channel"])
    op.create_index("ix_message_logs_message_type", "message_logs", ["message_type"])
    op.create_index("ix_message_logs_status", "message_logs", ["status"])
    op.create_index("ix_message_logs_client_id", "message_logs", ["client_id"])
    op.create_index("ix_message_logs_lead_id", "message_logs", ["lead_id"])
    op.create_index("ix_message_logs_policy_instance_id", "message_logs", ["policy_instance_id"])
    op.create_index("ix_message_logs_created_at", "message_logs", ["created_at"])


def downgrade() -> None:
    for table in (
        "message_logs",
        "message_automations",
        "whatsapp_templates",
        "activities",
        "client_documents",
        "policy_instances",
        "policy_templates",
        "clients",
        "leads",
        "settings",
    ):
        op.drop_table(table)
