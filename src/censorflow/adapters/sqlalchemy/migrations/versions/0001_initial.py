"""Create review, task, binding and violation tables.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-01 00:00:00
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from typing import Any

import sqlalchemy as sa
from alembic import op

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

_ID = sa.String(32)
_ENUM = sa.String(32)


def _timestamp(name: str) -> sa.Column[datetime]:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False)


def _biz_columns() -> list[sa.Column[Any]]:
    return [
        sa.Column("biz_type", _ENUM, nullable=False),
        sa.Column("biz_id", sa.String(128), nullable=False),
        sa.Column("field", sa.String(64), nullable=False),
    ]


def _binding_columns() -> list[sa.Column[Any]]:
    return [
        *_biz_columns(),
        sa.Column("resource_id", sa.String(128), nullable=False),
        sa.Column("resource_type", _ENUM, nullable=False),
        sa.Column("content_hash", sa.String(64), nullable=False),
        sa.Column("review_id", _ID, nullable=False),
        sa.Column("decision", _ENUM, nullable=False),
        sa.Column("replace_policy", _ENUM, nullable=False),
        sa.Column("replace_value", sa.Text(), nullable=False),
        sa.Column("violation_ref_id", _ID, nullable=False),
        sa.Column("review_revision", sa.Integer(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "biz_review",
        sa.Column("id", _ID, nullable=False),
        *_biz_columns(),
        sa.Column("submitter_id", sa.String(128), nullable=False),
        sa.Column("trace_id", sa.String(128), nullable=False),
        sa.Column("decision", _ENUM, nullable=False),
        sa.Column("status", _ENUM, nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_biz_review")),
    )
    op.create_index("ix_biz_review_biz", "biz_review", ["biz_type", "biz_id"])

    op.create_table(
        "resource_review",
        sa.Column("id", _ID, nullable=False),
        sa.Column("biz_review_id", _ID, nullable=False),
        sa.Column("resource_id", sa.String(128), nullable=False),
        sa.Column("resource_type", _ENUM, nullable=False),
        sa.Column("content_hash", sa.String(64), nullable=False),
        sa.Column("content_text", sa.Text(), nullable=False),
        sa.Column("content_url", sa.Text(), nullable=False),
        sa.Column("decision", _ENUM, nullable=False),
        sa.Column("outcome", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_resource_review")),
    )
    op.create_index(
        op.f("ix_resource_review_biz_review_id"), "resource_review", ["biz_review_id"]
    )
    op.create_index(op.f("ix_resource_review_content_hash"), "resource_review", ["content_hash"])

    op.create_table(
        "provider_task",
        sa.Column("id", _ID, nullable=False),
        sa.Column("resource_review_id", _ID, nullable=False),
        sa.Column("provider", sa.String(64), nullable=False),
        sa.Column("mode", _ENUM, nullable=False),
        sa.Column("remote_task_id", sa.String(256), nullable=False),
        sa.Column("done", sa.Boolean(), nullable=False),
        sa.Column("result", sa.Text(), nullable=True),
        sa.Column("raw", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_provider_task")),
    )
    op.create_index(
        op.f("ix_provider_task_resource_review_id"), "provider_task", ["resource_review_id"]
    )
    op.create_index("ix_provider_task_remote", "provider_task", ["provider", "remote_task_id"])
    op.create_index(
        "ix_provider_task_pending", "provider_task", ["provider", "mode", "done", "created_at"]
    )

    op.create_table(
        "censor_binding",
        sa.Column("id", _ID, nullable=False),
        *_binding_columns(),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_censor_binding")),
        sa.UniqueConstraint("biz_type", "biz_id", "field", name="uq_censor_binding_biz_field"),
    )

    op.create_table(
        "censor_binding_history",
        sa.Column("id", _ID, nullable=False),
        *_binding_columns(),
        sa.Column("reasons", sa.Text(), nullable=False),
        sa.Column("source", _ENUM, nullable=False),
        sa.Column("reviewer_id", sa.String(128), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_censor_binding_history")),
    )
    op.create_index(
        "ix_censor_binding_history_biz", "censor_binding_history", ["biz_type", "biz_id", "field"]
    )

    op.create_table(
        "violation_snapshot",
        sa.Column("id", _ID, nullable=False),
        *_biz_columns(),
        sa.Column("resource_id", sa.String(128), nullable=False),
        sa.Column("resource_type", _ENUM, nullable=False),
        sa.Column("content_hash", sa.String(64), nullable=False),
        sa.Column("content_text", sa.Text(), nullable=False),
        sa.Column("content_url", sa.Text(), nullable=False),
        sa.Column("outcome", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_violation_snapshot")),
    )
    op.create_index("ix_violation_snapshot_biz", "violation_snapshot", ["biz_type", "biz_id"])


def downgrade() -> None:
    op.drop_index("ix_violation_snapshot_biz", table_name="violation_snapshot")
    op.drop_table("violation_snapshot")
    op.drop_index("ix_censor_binding_history_biz", table_name="censor_binding_history")
    op.drop_table("censor_binding_history")
    op.drop_table("censor_binding")
    op.drop_index("ix_provider_task_pending", table_name="provider_task")
    op.drop_index("ix_provider_task_remote", table_name="provider_task")
    op.drop_index(op.f("ix_provider_task_resource_review_id"), table_name="provider_task")
    op.drop_table("provider_task")
    op.drop_index(op.f("ix_resource_review_content_hash"), table_name="resource_review")
    op.drop_index(op.f("ix_resource_review_biz_review_id"), table_name="resource_review")
    op.drop_table("resource_review")
    op.drop_index("ix_biz_review_biz", table_name="biz_review")
    op.drop_table("biz_review")
