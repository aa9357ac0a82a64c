"""Database models for the approval store."""

from approvalflow.models.approval import ApprovalCounter, ApprovalRequestRecord
from approvalflow.models.base import Base

__all__ = [
    # Base
    "Base",
    # Approval models
    "ApprovalRequestRecord",
    "ApprovalCounter",
]
