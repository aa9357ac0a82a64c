"""Audit logger service recording approval events.

The approval engine never calls this module. Callers record the
``TransitionResult`` of each engine call they complete.
"""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from approvalflow.services.approval.schemas import (
    Actor,
    HistoryAction,
    TransitionResult,
)
from approvalflow.services.audit.schemas import AuditAction, AuditEntry, AuditQuery

logger = logging.getLogger(__name__)

_ACTION_MAP: dict[HistoryAction, AuditAction] = {
    HistoryAction.SUBMITTED: AuditAction.APPROVAL_CREATED,
    HistoryAction.APPROVED: AuditAction.APPROVAL_APPROVED,
    HistoryAction.REJECTED: AuditAction.APPROVAL_REJECTED,
    HistoryAction.CANCELLED: AuditAction.APPROVAL_CANCELLED,
    HistoryAction.COMMENTED: AuditAction.APPROVAL_COMMENTED,
}


class AuditLogger:
    """Write-only audit sink with in-memory retention."""

    def __init__(self, max_entries: int = 100000):
        """Initialize audit logger.

        Args:
            max_entries: Oldest entries are dropped beyond this count.
        """
        self._entries: list[AuditEntry] = []
        self._max_entries = max_entries

    def log(
        self,
        action: AuditAction,
        *,
        actor: Actor,
        entity_id: str,
        entity_name: str | None = None,
        changes: dict[str, Any] | None = None,
    ) -> AuditEntry:
        """Log an audit event.

        Args:
            action: Audited action
            actor: Identity that performed it
            entity_id: Affected approval request ID
            entity_name: Label of the business object
            changes: Before/after values

        Returns:
            The created audit entry
        """
        entry = AuditEntry(
            entry_id=str(uuid4()),
            timestamp=datetime.now(timezone.utc),
            action=action,
            actor_id=actor.user_id,
            actor_name=actor.display_name,
            entity_id=entity_id,
            entity_name=entity_name,
            changes=changes or {},
        )

        self._entries.append(entry)
        if len(self._entries) > self._max_entries:
            self._entries = self._entries[-self._max_entries:]

        logger.info(
            "[AUDIT] %s on %s by %s",
            action.value,
            entity_id,
            actor.user_id,
            extra={
                "audit_entry_id": entry.entry_id,
                "actor_id": actor.user_id,
                "resource_id": entity_id,
            },
        )
        return entry

    def record(self, result: TransitionResult, actor: Actor) -> AuditEntry:
        """Record the outcome of an approval engine call.

        Args:
            result: Transition returned by the engine
            actor: Identity that made the call

        Returns:
            The created audit entry
        """
        request = result.request
        last = request.approval_history[-1]
        after: dict[str, Any] = {
            "status": result.new_status.value,
            "currentApproverLevel": result.new_level,
        }
        if last.comments:
            after["comments"] = last.comments

        changes: dict[str, Any] = {"after": after}
        if result.previous_status is not None:
            changes["before"] = {
                "status": result.previous_status.value,
                "currentApproverLevel": result.previous_level,
            }

        return self.log(
            _ACTION_MAP[result.action],
            actor=actor,
            entity_id=request.id,
            entity_name=request.entity_name,
            changes=changes,
        )

    def query(self, query: AuditQuery) -> list[AuditEntry]:
        """Query audit entries, newest first.

        Args:
            query: Query parameters

        Returns:
            Matching entries
        """
        results = self._entries.copy()

        if query.start_time:
            results = [e for e in results if e.timestamp >= query.start_time]
        if query.end_time:
            results = [e for e in results if e.timestamp <= query.end_time]
        if query.actions:
            results = [e for e in results if e.action in query.actions]
        if query.actor_id:
            results = [e for e in results if e.actor_id == query.actor_id]
        if query.entity_id:
            results = [e for e in results if e.entity_id == query.entity_id]

        # Newest first; later entries win timestamp ties
        results.reverse()
        results.sort(key=lambda e: e.timestamp, reverse=True)
        return results[query.offset : query.offset + query.limit]

    def clear(self) -> None:
        """Clear all entries (for testing)."""
        self._entries.clear()


# Singleton instance
_audit_logger: AuditLogger | None = None


def get_audit_logger() -> AuditLogger:
    """Get or create audit logger singleton."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger
