"""Initial DealDesk schema.

Revision ID: 001_dealdesk_initial
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001_dealdesk_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _tenant_column() -> sa.Column:
    return sa.Column(
        "organization_id",
        sa.Uuid(),
        sa.ForeignKey("organization.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "plan",
        *_base_columns(),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("display_name", sa.String(length=100), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("max_users", sa.Integer(), nullable=False),
        sa.Column("max_deals", sa.Integer(), nullable=False),
        sa.Column("max_pipelines", sa.Integer(), nullable=False),
        sa.Column("max_contacts", sa.Integer(), nullable=False),
        sa.Column("max_automations", sa.Integer(), nullable=False),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_plan_name", "plan", ["name"], unique=True)

    op.create_table(
        "organization",
        *_base_columns(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.Column("plan_id", sa.Uuid(), nullable=False),
        sa.Column("logo", sa.String(length=500), nullable=True),
        sa.Column("settings", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["plan_id"], ["plan.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_organization_slug", "organization", ["slug"], unique=True)
    op.create_index("ix_organization_plan_id", "organization", ["plan_id"])

    op.create_table(
        "app_user",
        *_base_columns(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("active_organization_id", sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(["active_organization_id"], ["organization.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_app_user_email", "app_user", ["email"], unique=True)

    op.create_table(
        "organization_member",
        *_base_columns(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        _tenant_column(),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "organization_id", name="uq_member_user_org"),
    )
    op.create_index("ix_organization_member_user_id", "organization_member", ["user_id"])
    op.create_index("ix_organization_member_organization_id", "organization_member", ["organization_id"])

    op.create_table(
        "organization_invite",
        *_base_columns(),
        _tenant_column(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("invited_by_id", sa.Uuid(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["invited_by_id"], ["organization_member.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("organization_id", "email", name="uq_invite_org_email"),
    )
    op.create_index("ix_organization_invite_organization_id", "organization_invite", ["organization_id"])
    op.create_index("ix_organization_invite_email", "organization_invite", ["email"])
    op.create_index("ix_organization_invite_token_hash", "organization_invite", ["token_hash"], unique=True)

    op.create_table(
        "pipeline",
        *_base_columns(),
        _tenant_column(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("visibility", sa.String(length=20), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pipeline_organization_id", "pipeline", ["organization_id"])

    op.create_table(
        "stage",
        *_base_columns(),
        sa.Column("pipeline_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("color", sa.String(length=20), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("is_won", sa.Boolean(), nullable=False),
        sa.Column("is_lost", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["pipeline_id"], ["pipeline.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_stage_pipeline_id", "stage", ["pipeline_id"])

    op.create_table(
        "pipeline_member",
        *_base_columns(),
        sa.Column("pipeline_id", sa.Uuid(), nullable=False),
        sa.Column("member_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(["pipeline_id"], ["pipeline.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["member_id"], ["organization_member.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("pipeline_id", "member_id", name="uq_pipeline_member"),
    )
    op.create_index("ix_pipeline_member_pipeline_id", "pipeline_member", ["pipeline_id"])
    op.create_index("ix_pipeline_member_member_id", "pipeline_member", ["member_id"])

    op.create_table(
        "lead",
        *_base_columns(),
        _tenant_column(),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("temperature", sa.String(length=20), nullable=True),
        sa.Column("source", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("assigned_to_id", sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(["assigned_to_id"], ["organization_member.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("organization_id", "phone", name="uq_lead_org_phone"),
        sa.UniqueConstraint("organization_id", "email", name="uq_lead_org_email"),
    )
    op.create_index("ix_lead_organization_id", "lead", ["organization_id"])
    op.create_index("ix_lead_assigned_to_id", "lead", ["assigned_to_id"])

    op.create_table(
        "contact",
        *_base_columns(),
        _tenant_column(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("company_name", sa.String(length=200), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_contact_organization_id", "contact", ["organization_id"])
    op.create_index("ix_contact_email", "contact", ["email"])

    op.create_table(
        "lost_reason",
        *_base_columns(),
        _tenant_column(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_lost_reason_organization_id", "lost_reason", ["organization_id"])

    op.create_table(
        "deal",
        *_base_columns(),
        _tenant_column(),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("probability", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("lead_id", sa.Uuid(), nullable=False),
        sa.Column("contact_id", sa.Uuid(), nullable=True),
        sa.Column("pipeline_id", sa.Uuid(), nullable=True),
        sa.Column("stage_id", sa.Uuid(), nullable=True),
        sa.Column("assigned_to_id", sa.Uuid(), nullable=True),
        sa.Column("lost_reason_id", sa.Uuid(), nullable=True),
        sa.Column("expected_close_date", sa.Date(), nullable=True),
        sa.Column("stage_entered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["lead_id"], ["lead.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["contact_id"], ["contact.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["pipeline_id"], ["pipeline.id"]),
        sa.ForeignKeyConstraint(["stage_id"], ["stage.id"]),
        sa.ForeignKeyConstraint(["assigned_to_id"], ["organization_member.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["lost_reason_id"], ["lost_reason.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("organization_id", "lead_id", "pipeline_id", "stage_id", "assigned_to_id"):
        op.create_index(f"ix_deal_{column}", "deal", [column])

    op.create_table(
        "deal_event",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("deal_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(length=30), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("member_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["deal_id"], ["deal.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["member_id"], ["organization_member.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_deal_event_deal_id", "deal_event", ["deal_id"])
    op.create_index("ix_deal_event_type", "deal_event", ["type"])
    op.create_index("ix_deal_event_created_at", "deal_event", ["created_at"])

    op.create_table(
        "product",
        *_base_columns(),
        _tenant_column(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("sku", sa.String(length=100), nullable=True),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("cost", sa.Float(), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("organization_id", "sku", name="uq_product_org_sku"),
    )
    op.create_index("ix_product_organization_id", "product", ["organization_id"])

    op.create_table(
        "deal_product",
        *_base_columns(),
        sa.Column("deal_id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Float(), nullable=False),
        sa.Column("discount", sa.Float(), nullable=False),
        sa.Column("total", sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(["deal_id"], ["deal.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["product.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("deal_id", "product_id", name="uq_deal_product"),
    )
    op.create_index("ix_deal_product_deal_id", "deal_product", ["deal_id"])
    op.create_index("ix_deal_product_product_id", "deal_product", ["product_id"])

    op.create_table(
        "activity",
        *_base_columns(),
        _tenant_column(),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deal_id", sa.Uuid(), nullable=True),
        sa.Column("lead_id", sa.Uuid(), nullable=True),
        sa.Column("created_by_id", sa.Uuid(), nullable=True),
        sa.Column("assigned_to_id", sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(["deal_id"], ["deal.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["lead_id"], ["lead.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by_id"], ["organization_member.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["assigned_to_id"], ["organization_member.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("organization_id", "type", "deal_id", "lead_id", "assigned_to_id"):
        op.create_index(f"ix_activity_{column}", "activity", [column])

    op.create_table(
        "automation",
        *_base_columns(),
        _tenant_column(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("trigger", sa.String(length=100), nullable=False),
        sa.Column("config", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_automation_organization_id", "automation", ["organization_id"])

    op.create_table(
        "custom_field",
        *_base_columns(),
        _tenant_column(),
        sa.Column("entity", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("label", sa.String(length=200), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("is_required", sa.Boolean(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("organization_id", "entity", "name", name="uq_custom_field_org_entity_name"),
    )
    op.create_index("ix_custom_field_organization_id", "custom_field", ["organization_id"])

    op.create_table(
        "custom_field_value",
        *_base_columns(),
        sa.Column("custom_field_id", sa.Uuid(), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["custom_field_id"], ["custom_field.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("custom_field_id", "entity_id", name="uq_cfv_field_entity"),
    )
    op.create_index("ix_custom_field_value_custom_field_id", "custom_field_value", ["custom_field_id"])
    op.create_index("ix_custom_field_value_entity_id", "custom_field_value", ["entity_id"])


def downgrade() -> None:
    for table in (
        "custom_field_value",
        "custom_field",
        "automation",
        "activity",
        "deal_product",
        "product",
        "deal_event",
        "deal",
        "lost_reason",
        "contact",
        "lead",
        "pipeline_member",
        "stage",
        "pipeline",
        "organization_invite",
        "organization_member",
        "app_user",
        "organization",
        "plan",
    ):
        op.drop_table(table)
