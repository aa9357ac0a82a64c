"""Tests for audit logging service."""

from datetime import datetime, timedelta, timezone

import pytest

from approvalflow.services.approval import Actor
from approvalflow.services.audit import (
    AuditAction,
    AuditEntry,
    AuditLogger,
    AuditQuery,
    get_audit_logger,
)

ALICE = Actor(user_id="alice", display_name="Alice")
BOB = Actor(user_id="bob", display_name="Bob")


class TestAuditEntry:
    """Tests for audit entry schema."""

    def test_entry_creation(self):
        """Test creating an entry."""
        entry = AuditEntry(
            entry_id="test-123",
            timestamp=datetime.now(timezone.utc),
            action=AuditAction.APPROVAL_CREATED,
            actor_id="alice",
            actor_name="Alice",
            entity_id="apr_1",
        )

        assert entry.entry_id == "test-123"
        assert entry.entity_type == "approval"
        assert entry.changes == {}


class TestAuditLogger:
    """Tests for audit logger."""

    @pytest.fixture
    def logger(self):
        """Create fresh logger."""
        return AuditLogger()

    def test_log_basic(self, logger):
        """Test basic logging."""
        entry = logger.log(
            AuditAction.APPROVAL_CANCELLED,
            actor=ALICE,
            entity_id="apr_1",
            entity_name="Laptops",
        )

        assert entry.action == AuditAction.APPROVAL_CANCELLED
        assert entry.actor_id == "alice"
        assert entry.actor_name == "Alice"
        assert entry.entity_name == "Laptops"

    def test_max_entries(self):
        """Oldest entries are dropped beyond the limit."""
        logger = AuditLogger(max_entries=3)
        for i in range(5):
            logger.log(AuditAction.APPROVAL_COMMENTED, actor=ALICE, entity_id=f"apr_{i}")

        entries = logger.query(AuditQuery())
        assert sorted(e.entity_id for e in entries) == ["apr_2", "apr_3", "apr_4"]

    @pytest.mark.asyncio
    async def test_record_transitions(self, logger, engine, build_create):
        """Engine results map to audit actions with before/after values."""
        created = await engine.create_request(build_create([("bob", 1)]))
        created_entry = logger.record(created, ALICE)

        assert created_entry.action == AuditAction.APPROVAL_CREATED
        assert "before" not in created_entry.changes
        assert created_entry.changes["after"]["status"] == "pending"

        approved = await engine.approve(created.request.id, "bob", "Bob", "lgtm")
        approved_entry = logger.record(approved, BOB)

        assert approved_entry.action == AuditAction.APPROVAL_APPROVED
        assert approved_entry.entity_id == created.request.id
        assert approved_entry.changes == {
            "before": {"status": "pending", "currentApproverLevel": 1},
            "after": {
                "status": "approved",
                "currentApproverLevel": 1,
                "comments": "lgtm",
            },
        }

        commented = await engine.add_comment(created.request.id, "alice", "Alice", "thanks")
        assert logger.record(commented, ALICE).action == AuditAction.APPROVAL_COMMENTED

    def test_query_filters(self, logger):
        """Test filtering by actor, action, entity and time."""
        logger.log(AuditAction.APPROVAL_CREATED, actor=ALICE, entity_id="apr_1")
        logger.log(AuditAction.APPROVAL_APPROVED, actor=BOB, entity_id="apr_1")
        logger.log(AuditAction.APPROVAL_CREATED, actor=ALICE, entity_id="apr_2")

        assert len(logger.query(AuditQuery(actor_id="alice"))) == 2
        assert len(logger.query(AuditQuery(entity_id="apr_1"))) == 2
        assert (
            len(logger.query(AuditQuery(actions=[AuditAction.APPROVAL_APPROVED]))) == 1
        )

        future = datetime.now(timezone.utc) + timedelta(hours=1)
        assert logger.query(AuditQuery(start_time=future)) == []

    def test_query_newest_first_with_paging(self, logger):
        for i in range(4):
            logger.log(AuditAction.APPROVAL_COMMENTED, actor=ALICE, entity_id=f"apr_{i}")

        page = logger.query(AuditQuery(limit=2, offset=1))
        assert [e.entity_id for e in page] == ["apr_2", "apr_1"]

    def test_clear(self, logger):
        logger.log(AuditAction.APPROVAL_CREATED, actor=ALICE, entity_id="apr_1")
        logger.clear()
        assert logger.query(AuditQuery()) == []


class TestAuditSingleton:
    """Tests for singleton access."""

    def test_get_audit_logger_returns_same_instance(self):
        assert get_audit_logger() is get_audit_logger()
