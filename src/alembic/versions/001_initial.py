"""Initial schema: organizations, users, workflows, executions, job queue, logs, usage, audit

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # 1. Organizations
    op.create_table(
        "organizations",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("slug", sa.String(length=56), nullable=False),
        sa.Column("plan", sa.String(length=20), nullable=False, server_default="free"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        schema="public",
    )
    op.create_index("ix_organizations_name", "organizations", ["name"], schema="public")
    op.create_index(
        "ix_organizations_slug", "organizations", ["slug"], unique=True, schema="public"
    )

    # 2. Users (credentials live with the identity provider)
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_superuser", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        schema="public",
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True, schema="public")

    # 3. Memberships
    op.create_table(
        "organization_memberships",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.String(length=32), nullable=False),
        sa.Column("role", sa.String(length=50), nullable=False, server_default="member"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["public.users.id"]),
        sa.ForeignKeyConstraint(["organization_id"], ["public.organizations.id"]),
        sa.PrimaryKeyConstraint("user_id", "organization_id"),
        schema="public",
    )

    # 4. Workflows
    op.create_table(
        "workflows",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("organization_id", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("slug", sa.String(length=50), nullable=False),
        sa.Column("canvas", JSONB(), nullable=False),
        sa.Column("settings", JSONB(), nullable=False),
        sa.Column("variables", JSONB(), nullable=False),
        sa.Column("input_schema", JSONB(), nullable=True),
        sa.Column("output_schema", JSONB(), nullable=True),
        sa.Column("tags", JSONB(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("published_version", sa.Integer(), nullable=True),
        sa.Column("stats", JSONB(), nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("last_modified_by", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["public.organizations.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["public.users.id"]),
        sa.ForeignKeyConstraint(["last_modified_by"], ["public.users.id"]),
        sa.PrimaryKeyConstraint("id"),
        schema="public",
    )
    op.create_index("ix_workflows_slug", "workflows", ["slug"], unique=True, schema="public")
    op.create_index(
        "ix_workflows_org_status", "workflows", ["organization_id", "status"], schema="public"
    )
    op.create_index(
        "ix_workflows_org_updated", "workflows", ["organization_id", "updated_at"], schema="public"
    )

    # 5. Executions (workflow_id is not a foreign key: history outlives the definition)
    op.create_table(
        "workflow_executions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("workflow_id", sa.String(length=32), nullable=False),
        sa.Column("workflow_version", sa.Integer(), nullable=False),
        sa.Column("organization_id", sa.String(length=32), nullable=False),
        sa.Column("trigger", JSONB(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("current_node_id", sa.String(length=100), nullable=True),
        sa.Column("completed_nodes", JSONB(), nullable=False),
        sa.Column("failed_nodes", JSONB(), nullable=False),
        sa.Column("skipped_nodes", JSONB(), nullable=False),
        sa.Column("context", JSONB(), nullable=False),
        sa.Column("result", JSONB(), nullable=True),
        sa.Column("metrics", JSONB(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["public.organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
        schema="public",
    )
    op.create_index(
        "ix_workflow_executions_workflow_started",
        "workflow_executions",
        ["workflow_id", "started_at"],
        schema="public",
    )
    op.create_index(
        "ix_workflow_executions_org_status",
        "workflow_executions",
        ["organization_id", "status"],
        schema="public",
    )

    # 6. Job queue
    op.create_table(
        "workflow_jobs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("workflow_id", sa.String(length=32), nullable=False),
        sa.Column("execution_id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("trigger", JSONB(), nullable=False),
        sa.Column("run_at", sa.DateTime(), nullable=False),
        sa.Column("locked_at", sa.DateTime(), nullable=True),
        sa.Column("locked_by", sa.String(length=100), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_attempts", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("last_error", sa.String(length=4000), nullable=True),
        sa.Column("result", JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["execution_id"], ["public.workflow_executions.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["organization_id"], ["public.organizations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("execution_id", name="uq_workflow_jobs_execution_id"),
        schema="public",
    )
    op.create_index(
        "ix_workflow_jobs_claim",
        "workflow_jobs",
        ["status", "priority", "run_at"],
        schema="public",
    )
    op.create_index(
        "ix_workflow_jobs_org_status",
        "workflow_jobs",
        ["organization_id", "status"],
        schema="public",
    )
    op.create_index(
        "ix_workflow_jobs_expires_at", "workflow_jobs", ["expires_at"], schema="public"
    )

    # 7. Execution logs
    op.create_table(
        "execution_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("execution_id", sa.Uuid(), nullable=False),
        sa.Column("node_id", sa.String(length=100), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("level", sa.String(length=10), nullable=False, server_default="info"),
        sa.Column("event", sa.String(length=50), nullable=False),
        sa.Column("message", sa.String(length=4000), nullable=False),
        sa.Column("data", JSONB(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["execution_id"], ["public.workflow_executions.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        schema="public",
    )
    op.create_index(
        "ix_execution_logs_execution_timestamp",
        "execution_logs",
        ["execution_id", "timestamp"],
        schema="public",
    )
    op.create_index(
        "ix_execution_logs_expires_at", "execution_logs", ["expires_at"], schema="public"
    )

    # 8. Monthly usage
    op.create_table(
        "organization_usage",
        sa.Column("organization_id", sa.String(length=32), nullable=False),
        sa.Column("period", sa.String(length=7), nullable=False),
        sa.Column("workflow_executions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("successful_executions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failed_executions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("by_workflow", JSONB(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["public.organizations.id"]),
        sa.PrimaryKeyConstraint("organization_id", "period"),
        schema="public",
    )

    # 9. Audit logs
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("organization_id", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=True),
        sa.Column("changes", JSONB(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("request_id", sa.String(length=36), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="success"),
        sa.Column("error_message", sa.String(length=1000), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["public.organizations.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["public.users.id"]),
        sa.PrimaryKeyConstraint("id"),
        schema="public",
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"], schema="public")
    op.create_index(
        "ix_audit_logs_org_created",
        "audit_logs",
        ["organization_id", "created_at"],
        schema="public",
    )
    op.create_index(
        "ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"], schema="public"
    )


def downgrade() -> None:
    op.drop_table("audit_logs", schema="public")
    op.drop_table("organization_usage", schema="public")
    op.drop_table("execution_logs", schema="public")
    op.drop_table("workflow_jobs", schema="public")
    op.drop_table("workflow_executions", schema="public")
    op.drop_table("workflows", schema="public")
    op.drop_table("organization_memberships", schema="public")
    op.drop_table("users", schema="public")
    op.drop_table("organizations", schema="public")
