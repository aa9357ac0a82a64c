"""Approval workflow service module."""

from approvalflow.services.approval.schemas import (
    Actor,
    ApprovalFilters,
    ApprovalPriority,
    ApprovalRequest,
    ApprovalRequestCreate,
    ApprovalStats,
    ApprovalStatus,
    ApprovalType,
    ApproverAssignment,
    ApproverSlot,
    ApproverStatus,
    HistoryAction,
    HistoryEntry,
    TransitionResult,
)
from approvalflow.services.approval.workflow import (
    ApprovalWorkflowEngine,
    get_approval_workflow_engine,
    reset_approval_workflow_engine,
)

__all__ = [
    # Enums
    "ApprovalType",
    "ApprovalStatus",
    "ApprovalPriority",
    "ApproverStatus",
    "HistoryAction",
    # Document schemas
    "Actor",
    "ApproverAssignment",
    "ApproverSlot",
    "HistoryEntry",
    "ApprovalRequest",
    "ApprovalRequestCreate",
    "ApprovalFilters",
    "ApprovalStats",
    "TransitionResult",
    # Engine
    "ApprovalWorkflowEngine",
    "get_approval_workflow_engine",
    "reset_approval_workflow_engine",
]
