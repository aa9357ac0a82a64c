"""Approval workflow schemas.

Pydantic models for the persisted approval request document. Field names
are snake_case in Python and camelCase in the stored JSON document.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApprovalType(str, Enum):
    """Classification of an approval request."""

    EXPENSE = "expense"
    PURCHASE_ORDER = "purchase_order"
    LEAVE = "leave"
    DOCUMENT = "document"
    PROJECT = "project"
    OTHER = "other"


class ApprovalStatus(str, Enum):
    """Approval request lifecycle states.

    State diagram:
        PENDING ──────────────► CANCELLED
          │          │
          │ approve  │ reject
          ▼          ▼
        APPROVED   REJECTED

    ESCALATED is reserved: it may appear in stored documents but no
    transition produces it, and it accepts no approve/reject/cancel.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    ESCALATED = "escalated"

    def can_transition_to(self, target: "ApprovalStatus") -> bool:
        """Check if transition to target state is valid."""
        return target in _APPROVAL_TRANSITIONS.get(self, set())


_APPROVAL_TRANSITIONS: dict[ApprovalStatus, set[ApprovalStatus]] = {
    ApprovalStatus.PENDING: {
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
        ApprovalStatus.CANCELLED,
    },
    ApprovalStatus.APPROVED: set(),
    ApprovalStatus.REJECTED: set(),
    ApprovalStatus.CANCELLED: set(),
    ApprovalStatus.ESCALATED: set(),
}


class ApprovalPriority(str, Enum):
    """Display priority; has no effect on transitions."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ApproverStatus(str, Enum):
    """Decision state of a single approver slot."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class HistoryAction(str, Enum):
    """Actions recorded in the approval history."""

    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMMENTED = "commented"


class DocumentModel(BaseModel):
    """Base for models persisted with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Actor(DocumentModel):
    """Caller identity supplied with every engine call."""

    user_id: str = Field(..., description="Acting user ID")
    display_name: str = Field(..., description="Acting user display name")


class ApproverAssignment(DocumentModel):
    """Approver requested at creation time."""

    user_id: str = Field(..., description="Approver user ID")
    user_name: str = Field(..., description="Approver display name")
    level: int = Field(..., description="Approval level (positive integer)")


class ApproverSlot(DocumentModel):
    """One (user, level) pairing and the user's decision."""

    user_id: str = Field(..., description="Approver user ID")
    user_name: str = Field(..., description="Approver display name")
    level: int = Field(..., ge=1, description="Approval level")
    status: ApproverStatus = Field(
        default=ApproverStatus.PENDING, description="Decision state"
    )
    decided_at: datetime | None = Field(None, description="Decision time")
    comments: str | None = Field(None, description="Decision comments")


class HistoryEntry(DocumentModel):
    """Immutable record appended on every state change or comment."""

    action: HistoryAction = Field(..., description="Recorded action")
    performed_by: str = Field(..., description="Acting user ID")
    performed_by_name: str = Field(..., description="Acting user display name")
    performed_at: datetime = Field(..., description="Action timestamp")
    comments: str | None = Field(None, description="Comments or reason")
    previous_status: ApprovalStatus | None = Field(None, description="Status before")
    new_status: ApprovalStatus | None = Field(None, description="Status after")


class ApprovalRequest(DocumentModel):
    """Approval request document."""

    id: str = Field(..., description="Request ID")
    type: ApprovalType = Field(..., description="Request classification")
    entity_id: str = Field(..., description="ID of the business object")
    entity_type: str = Field(..., description="Type of the business object")
    entity_name: str = Field(..., description="Display label of the business object")
    requested_by: str = Field(..., description="Requester user ID")
    requested_by_name: str = Field(..., description="Requester display name")
    requested_at: datetime = Field(..., description="Submission time")
    status: ApprovalStatus = Field(
        default=ApprovalStatus.PENDING, description="Current status"
    )
    priority: ApprovalPriority = Field(
        default=ApprovalPriority.MEDIUM, description="Display priority"
    )
    amount: Decimal | None = Field(None, description="Monetary amount")
    currency: str | None = Field(None, description="Currency code")
    project_id: str | None = Field(None, description="Related project ID")
    description: str = Field(..., description="Request description")
    approvers: list[ApproverSlot] = Field(
        default_factory=list, description="Ordered approver slots"
    )
    current_approver_level: int = Field(
        default=1, ge=1, description="Level currently awaiting decisions"
    )
    approval_history: list[HistoryEntry] = Field(
        default_factory=list, description="Append-only history"
    )
    due_date: datetime | None = Field(None, description="Informational deadline")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Opaque data")
    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: datetime = Field(..., description="Updated timestamp")
    revision: int = Field(default=1, ge=1, description="Write counter for conditional updates")

    def slots_at_level(self, level: int) -> list[ApproverSlot]:
        """Get approver slots assigned to a level."""
        return [slot for slot in self.approvers if slot.level == level]

    def pending_slot_for(self, user_id: str) -> ApproverSlot | None:
        """Get the user's pending slot at the current level, if it is their turn."""
        for slot in self.approvers:
            if (
                slot.user_id == user_id
                and slot.level == self.current_approver_level
                and slot.status == ApproverStatus.PENDING
            ):
                return slot
        return None

    def is_awaiting(self, user_id: str) -> bool:
        """Check if the request is pending and waiting on this user."""
        return self.status == ApprovalStatus.PENDING and self.pending_slot_for(user_id) is not None

    def to_document(self) -> dict[str, Any]:
        """Serialize to the JSON document shape used by stores."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "ApprovalRequest":
        """Build a request from a stored JSON document."""
        return cls.model_validate(document)


class ApprovalRequestCreate(DocumentModel):
    """Input for creating an approval request."""

    type: ApprovalType = Field(..., description="Request classification")
    entity_id: str = Field(..., description="ID of the business object")
    entity_type: str = Field(..., description="Type of the business object")
    entity_name: str = Field(..., description="Display label of the business object")
    requested_by: str = Field(..., description="Requester user ID")
    requested_by_name: str = Field(..., description="Requester display name")
    priority: ApprovalPriority = Field(
        default=ApprovalPriority.MEDIUM, description="Display priority"
    )
    amount: Decimal | None = Field(None, description="Monetary amount")
    currency: str | None = Field(None, description="Currency code")
    project_id: str | None = Field(None, description="Related project ID")
    description: str = Field(..., description="Request description")
    approvers: list[ApproverAssignment] = Field(
        default_factory=list, description="Approvers with their levels"
    )
    due_date: datetime | None = Field(None, description="Informational deadline")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Opaque data")


class ApprovalFilters(DocumentModel):
    """Equality filters for listing requests."""

    type: ApprovalType | None = Field(None, description="Filter by type")
    status: ApprovalStatus | None = Field(None, description="Filter by status")
    priority: ApprovalPriority | None = Field(None, description="Filter by priority")
    requested_by: str | None = Field(None, description="Filter by requester")
    project_id: str | None = Field(None, description="Filter by project")

    def as_criteria(self) -> dict[str, str]:
        """Get set filters as plain field/value pairs."""
        criteria: dict[str, str] = {}
        for name, value in self:
            if value is None:
                continue
            criteria[name] = value.value if isinstance(value, Enum) else value
        return criteria


class ApprovalStats(DocumentModel):
    """Approval request counts."""

    total: int = Field(default=0, description="Total requests")
    pending: int = Field(default=0, description="Pending requests")
    approved: int = Field(default=0, description="Approved requests")
    rejected: int = Field(default=0, description="Rejected requests")
    cancelled: int = Field(default=0, description="Cancelled requests")
    by_type: dict[str, int] = Field(
        default_factory=lambda: {t.value: 0 for t in ApprovalType},
        description="Count by request type",
    )


class TransitionResult(DocumentModel):
    """Outcome of a mutating engine call, sufficient for an audit entry."""

    request: ApprovalRequest = Field(..., description="Request after the call")
    action: HistoryAction = Field(..., description="Recorded action")
    previous_status: ApprovalStatus | None = Field(None, description="Status before")
    new_status: ApprovalStatus = Field(..., description="Status after")
    previous_level: int | None = Field(None, description="Level before")
    new_level: int = Field(..., description="Level after")

    @property
    def status_changed(self) -> bool:
        return self.previous_status != self.new_status

    @property
    def level_advanced(self) -> bool:
        return self.previous_level is not None and self.new_level > self.previous_level
