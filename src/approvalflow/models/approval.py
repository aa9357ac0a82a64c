"""Approval request and counter models."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from approvalflow.models.base import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
DocumentType = JSON().with_variant(JSONB(), "postgresql")


class ApprovalRequestRecord(Base):
    """Approval request table.

    The full request lives in ``document``; the scalar columns duplicate
    the fields used for filtering and ordering.
    """

    __tablename__ = "approval_requests"

    # Primary key
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Indexed fields
    type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False)
    requested_by: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    project_id: Mapped[Optional[str]] = mapped_column(
        String(128), nullable=True, index=True
    )
    entity_id: Mapped[str] = mapped_column(String(128), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Optimistic concurrency
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Document
    document: Mapped[dict[str, Any]] = mapped_column(DocumentType, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        Index("idx_approval_request_entity", "entity_type", "entity_id"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled', 'escalated')",
            name="approval_request_status",
        ),
        CheckConstraint("revision >= 1", name="approval_request_revision"),
    )


class ApprovalCounter(Base):
    """Aggregate counters maintained alongside each request write."""

    __tablename__ = "approval_counters"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
