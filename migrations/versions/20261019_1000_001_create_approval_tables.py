"""Create approval tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

Creates the following tables:
- approval_requests: Approval request documents with filter columns
- approval_counters: Per-status and per-type request counters
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Counter keys at the time of this revision
COUNTER_KEYS = [
    "total",
    "status:pending",
    "status:approved",
    "status:rejected",
    "status:cancelled",
    "status:escalated",
    "type:expense",
    "type:purchase_order",
    "type:leave",
    "type:document",
    "type:project",
    "type:other",
]


def upgrade() -> None:
    # ========================================
    # 1. approval_requests table
    # ========================================
    op.create_table(
        "approval_requests",
        # Primary key
        sa.Column("id", sa.String(64), nullable=False),
        # Filter columns
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("priority", sa.String(10), nullable=False),
        sa.Column("requested_by", sa.String(128), nullable=False),
        sa.Column("project_id", sa.String(128), nullable=True),
        sa.Column("entity_id", sa.String(128), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        # Optimistic concurrency
        sa.Column("revision", sa.Integer(), nullable=False),
        # Document
        sa.Column("document", sa.JSON().with_variant(JSONB(), "postgresql"), nullable=False),
        # Timestamps
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        # Constraints
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled', 'escalated')",
            name="approval_request_status",
        ),
        sa.CheckConstraint("revision >= 1", name="approval_request_revision"),
    )
    # Indexes for approval_requests
    op.create_index("ix_approval_requests_type", "approval_requests", ["type"])
    op.create_index("ix_approval_requests_status", "approval_requests", ["status"])
    op.create_index("ix_approval_requests_requested_by", "approval_requests", ["requested_by"])
    op.create_index("ix_approval_requests_project_id", "approval_requests", ["project_id"])
    op.create_index("ix_approval_requests_created_at", "approval_requests", ["created_at"])
    op.create_index("idx_approval_request_entity", "approval_requests", ["entity_type", "entity_id"])

    # ========================================
    # 2. approval_counters table
    # ========================================
    counters = op.create_table(
        "approval_counters",
        sa.Column("key", sa.String(64), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )
    op.bulk_insert(counters, [{"key": key, "count": 0} for key in COUNTER_KEYS])


def downgrade() -> None:
    op.drop_table("approval_counters")
    op.drop_index("idx_approval_request_entity", table_name="approval_requests")
    op.drop_index("ix_approval_requests_created_at", table_name="approval_requests")
    op.drop_index("ix_approval_requests_project_id", table_name="approval_requests")
    op.drop_index("ix_approval_requests_requested_by", table_name="approval_requests")
    op.drop_index("ix_approval_requests_status", table_name="approval_requests")
    op.drop_index("ix_approval_requests_type", table_name="approval_requests")
    op.drop_table("approval_requests")
