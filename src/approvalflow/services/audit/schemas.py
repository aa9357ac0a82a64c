"""Schemas for audit logging service."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class AuditAction(str, Enum):
    """Audited approval actions."""

    APPROVAL_CREATED = "approval.created"
    APPROVAL_APPROVED = "approval.approved"
    APPROVAL_REJECTED = "approval.rejected"
    APPROVAL_CANCELLED = "approval.cancelled"
    APPROVAL_COMMENTED = "approval.commented"


class AuditEntry(BaseModel):
    """Audit log entry."""

    entry_id: str = Field(..., description="Unique entry ID")
    timestamp: datetime = Field(..., description="Event timestamp")
    action: AuditAction = Field(..., description="Audited action")

    # Actor information
    actor_id: str = Field(..., description="User that performed the action")
    actor_name: str = Field(..., description="Display name of the user")

    # Resource information
    entity_type: str = Field(default="approval", description="Type of resource affected")
    entity_id: str = Field(..., description="ID of resource affected")
    entity_name: str | None = Field(None, description="Label of resource affected")

    # Change content
    changes: dict[str, Any] = Field(
        default_factory=dict, description="Before/after values"
    )


class AuditQuery(BaseModel):
    """Query parameters for audit log search."""

    start_time: datetime | None = Field(None, description="Start of time range")
    end_time: datetime | None = Field(None, description="End of time range")
    actions: list[AuditAction] | None = Field(None, description="Filter actions")
    actor_id: str | None = Field(None, description="Filter by actor")
    entity_id: str | None = Field(None, description="Filter by resource ID")
    limit: int = Field(default=100, le=1000, description="Max results")
    offset: int = Field(default=0, ge=0, description="Pagination offset")
