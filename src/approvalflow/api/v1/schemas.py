"""Request bodies for the approvals API."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import Field

from approvalflow.services.approval.schemas import (
    Actor,
    ApprovalPriority,
    ApprovalRequestCreate,
    ApprovalType,
    ApproverAssignment,
    DocumentModel,
)


class ApprovalSubmission(DocumentModel):
    """Create approval request body; the requester is the calling user."""

    type: ApprovalType = Field(..., description="Request classification")
    entity_id: str = Field(..., description="ID of the business object")
    entity_type: str = Field(..., description="Type of the business object")
    entity_name: str = Field(..., description="Display label of the business object")
    priority: ApprovalPriority = Field(
        default=ApprovalPriority.MEDIUM, description="Display priority"
    )
    amount: Decimal | None = Field(None, description="Monetary amount")
    currency: str | None = Field(None, max_length=3, description="Currency code")
    project_id: str | None = Field(None, description="Related project ID")
    description: str = Field(..., max_length=4000, description="Request description")
    approvers: list[ApproverAssignment] = Field(
        default_factory=list, description="Approvers with their levels"
    )
    due_date: datetime | None = Field(None, description="Informational deadline")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Opaque data")

    def for_requester(self, actor: Actor) -> ApprovalRequestCreate:
        """Build engine input with the caller as requester."""
        return ApprovalRequestCreate(
            requested_by=actor.user_id,
            requested_by_name=actor.display_name,
            **self.model_dump(),
        )


class ApproveBody(DocumentModel):
    comments: str | None = Field(None, max_length=1000, description="Comments")


class RejectBody(DocumentModel):
    reason: str = Field(..., max_length=1000, description="Rejection reason")


class CancelBody(DocumentModel):
    reason: str | None = Field(None, max_length=1000, description="Cancellation reason")


class CommentBody(DocumentModel):
    comment: str = Field(..., max_length=2000, description="Comment text")
