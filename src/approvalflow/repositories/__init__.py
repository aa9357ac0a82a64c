"""Repository layer for approval request persistence.

Stores implement ``ApprovalStore``: an in-memory store for tests and
single-process use, and an async SQLAlchemy 2.x store.
"""

from approvalflow.repositories.approval import ApprovalRepository
from approvalflow.repositories.base import ApprovalStore
from approvalflow.repositories.memory import InMemoryApprovalStore

__all__ = [
    "ApprovalStore",
    "ApprovalRepository",
    "InMemoryApprovalStore",
]
