"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from approvalflow.core.config import Settings
from approvalflow.repositories.memory import InMemoryApprovalStore
from approvalflow.services.approval import (
    ApprovalRequestCreate,
    ApprovalType,
    ApprovalWorkflowEngine,
    ApproverAssignment,
)


class FakeClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + timedelta(seconds=1)
        return current


def make_create(
    approvers: list[tuple[str, int]] | None = None,
    **overrides,
) -> ApprovalRequestCreate:
    """Build creation input; approvers are (user_id, level) pairs."""
    if approvers is None:
        approvers = [("mgr", 1)]
    data = {
        "type": ApprovalType.EXPENSE,
        "entity_id": "exp-1",
        "entity_type": "expense",
        "entity_name": "Team offsite",
        "requested_by": "alice",
        "requested_by_name": "Alice",
        "description": "Hotel and travel",
        "approvers": [
            ApproverAssignment(user_id=user, user_name=user.title(), level=level)
            for user, level in approvers
        ],
    }
    data.update(overrides)
    return ApprovalRequestCreate(**data)


@pytest.fixture(scope="function")
def settings():
    """Create settings instance for testing."""
    return Settings(environment="testing", log_format="console")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryApprovalStore:
    return InMemoryApprovalStore()


@pytest.fixture
def engine(store, settings, clock) -> ApprovalWorkflowEngine:
    """Create an engine over a fresh in-memory store."""
    return ApprovalWorkflowEngine(store, settings, clock)


@pytest.fixture
def build_create():
    """Factory for creation input."""
    return make_create
