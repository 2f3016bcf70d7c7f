"""Create form lineage, form template and visit log tables.

Revision ID: form_visits_20261001
Revises:
Create Date: 2026-10-01 00:00:00.000000
"""
from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from alembic import op
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision = "form_visits_20261001"
down_revision = None
branch_labels = None
depends_on = None


template_status = sa.Enum("DRAFT", "PUBLISHED", "ARCHIVED", name="templatestatus")
visit_log_status = sa.Enum("IN_PROGRESS", "SUBMITTED", name="visitlogstatus")


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=None if nullable else sa.text("now()"),
    )


def upgrade() -> None:
    """Create form and visit log tables."""
    bind = op.get_bind()
    inspector = inspect(bind)
    tables = inspector.get_table_names()

    if "form_lineages" not in tables:
        op.create_table(
            "form_lineages",
            sa.Column("id", sa.UUID(), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("slug", sa.String(length=255), nullable=False),
            sa.Column("latest_version", sa.Integer(), nullable=False, server_default=sa.text("1")),
            sa.Column("published_template_id", sa.UUID(), nullable=True),
            sa.Column("revision", sa.Integer(), nullable=False, server_default=sa.text("0")),
            _timestamp("created_at"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_form_lineages_id"), "form_lineages", ["id"], unique=False)
        op.create_index(op.f("ix_form_lineages_slug"), "form_lineages", ["slug"], unique=True)

    if "form_templates" not in tables:
        op.create_table(
            "form_templates",
            sa.Column("id", sa.UUID(), nullable=False),
            sa.Column("lineage_id", sa.UUID(), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
            sa.Column("status", template_status, nullable=False, server_default="DRAFT"),
            sa.Column("scope", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
            sa.Column(
                "questions",
                postgresql.JSONB(astext_type=sa.Text()),
                nullable=False,
                server_default=sa.text("'[]'::jsonb"),
            ),
            sa.Column("created_by", sa.String(length=64), nullable=True),
            sa.Column("updated_by", sa.String(length=64), nullable=True),
            _timestamp("created_at"),
            _timestamp("updated_at"),
            _timestamp("published_at", nullable=True),
            _timestamp("archived_at", nullable=True),
            sa.ForeignKeyConstraint(["lineage_id"], ["form_lineages.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_form_templates_id"), "form_templates", ["id"], unique=False)
        op.create_index(op.f("ix_form_templates_lineage_id"), "form_templates", ["lineage_id"], unique=False)
        op.create_index(op.f("ix_form_templates_name"), "form_templates", ["name"], unique=False)
        op.create_index(op.f("ix_form_templates_status"), "form_templates", ["status"], unique=False)
        # At most one published version per lineage
        op.create_index(
            "uq_form_templates_published_lineage",
            "form_templates",
            ["lineage_id"],
            unique=True,
            postgresql_where=sa.text("status = 'PUBLISHED'"),
            sqlite_where=sa.text("status = 'PUBLISHED'"),
        )

    if "visit_logs" not in tables:
        op.create_table(
            "visit_logs",
            sa.Column("id", sa.UUID(), nullable=False),
            sa.Column("store_id", sa.String(length=64), nullable=False),
            sa.Column("form_template_id", sa.UUID(), nullable=False),
            sa.Column("template_version", sa.Integer(), nullable=False),
            sa.Column("route_id", sa.String(length=64), nullable=True),
            sa.Column("assignee_id", sa.String(length=64), nullable=True),
            sa.Column("created_by", sa.String(length=64), nullable=True),
            sa.Column("visit_date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("status", visit_log_status, nullable=False, server_default="SUBMITTED"),
            sa.Column("compliance_score", sa.Float(), nullable=False, server_default=sa.text("0")),
            sa.Column(
                "answers",
                postgresql.JSONB(astext_type=sa.Text()),
                nullable=False,
                server_default=sa.text("'[]'::jsonb"),
            ),
            sa.Column(
                "history",
                postgresql.JSONB(astext_type=sa.Text()),
                nullable=False,
                server_default=sa.text("'[]'::jsonb"),
            ),
            _timestamp("created_at"),
            _timestamp("updated_at"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_visit_logs_id"), "visit_logs", ["id"], unique=False)
        op.create_index(op.f("ix_visit_logs_store_id"), "visit_logs", ["store_id"], unique=False)
        op.create_index(op.f("ix_visit_logs_form_template_id"), "visit_logs", ["form_template_id"], unique=False)
        op.create_index(op.f("ix_visit_logs_assignee_id"), "visit_logs", ["assignee_id"], unique=False)
        op.create_index(op.f("ix_visit_logs_visit_date"), "visit_logs", ["visit_date"], unique=False)
        op.create_index(op.f("ix_visit_logs_status"), "visit_logs", ["status"], unique=False)


def downgrade() -> None:
    """Drop form and visit log tables."""
    for index in ("status", "visit_date", "assignee_id", "form_template_id", "store_id", "id"):
        op.drop_index(op.f(f"ix_visit_logs_{index}"), table_name="visit_logs")
    op.drop_table("visit_logs")

    op.drop_index("uq_form_templates_published_lineage", table_name="form_templates")
    for index in ("status", "name", "lineage_id", "id"):
        op.drop_index(op.f(f"ix_form_templates_{index}"), table_name="form_templates")
    op.drop_table("form_templates")

    op.drop_index(op.f("ix_form_lineages_slug"), table_name="form_lineages")
    op.drop_index(op.f("ix_form_lineages_id"), table_name="form_lineages")
    op.drop_table("form_lineages")

    visit_log_status.drop(op.get_bind(), checkfirst=True)
    template_status.drop(op.get_bind(), checkfirst=True)
