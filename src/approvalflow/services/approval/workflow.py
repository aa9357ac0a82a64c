"""Approval workflow engine.

Features:
- Multi-level approval with unanimity required within each level
- Immediate termination on rejection, cancellation while pending
- Append-only history embedded in each request
- Optimistic concurrency: read, apply a pure transition, conditionally
  write, and retry on a lost race
- Counters maintained by the store for cheap statistics

The engine does not write audit entries; every mutation returns a
``TransitionResult`` the caller can record.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from approvalflow.core.config import Settings, get_settings
from approvalflow.core.exceptions import ConcurrentModificationError, NotFoundError
from approvalflow.services.approval import transitions
from approvalflow.services.approval.schemas import (
    ApprovalFilters,
    ApprovalRequest,
    ApprovalRequestCreate,
    ApprovalStats,
    ApprovalStatus,
    ApprovalType,
    TransitionResult,
)

if TYPE_CHECKING:
    from approvalflow.repositories.base import ApprovalStore

logger = logging.getLogger(__name__)

Transition = Callable[[ApprovalRequest, datetime], TransitionResult]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_request_id() -> str:
    return f"apr_{uuid.uuid4().hex}"


class ApprovalWorkflowEngine:
    """Engine for managing multi-level approval requests.

    Uses a pluggable ``ApprovalStore`` for persistence.
    """

    def __init__(
        self,
        store: "ApprovalStore",
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize approval workflow engine.

        @param store - Request store
        @param settings - Settings (uses cached settings if None)
        @param clock - Timestamp source (UTC now if None)
        """
        self.store = store
        self.settings = settings or get_settings()
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_request(self, data: ApprovalRequestCreate) -> TransitionResult:
        """Create a new pending approval request.

        @param data - Request creation data
        @returns Transition result with the stored request
        @raises ValidationError on missing description or bad approvers
        """
        result = transitions.build_request(
            data,
            new_request_id(),
            self._clock(),
            require_approvers=self.settings.require_approvers,
        )
        await self.store.insert(result.request)
        logger.info(
            "Created approval request %s type=%s approvers=%d level=%d",
            result.request.id,
            result.request.type.value,
            len(result.request.approvers),
            result.new_level,
        )
        return result

    async def create(self, data: ApprovalRequestCreate) -> str:
        """Create a new pending approval request.

        @param data - Request creation data
        @returns Created request ID
        """
        result = await self.create_request(data)
        return result.request.id

    async def approve(
        self,
        request_id: str,
        approver_id: str,
        approver_name: str,
        comments: str | None = None,
    ) -> TransitionResult:
        """Record an approval by a current-level approver.

        @param request_id - Request ID
        @param approver_id - Approving user ID
        @param approver_name - Approving user display name
        @param comments - Optional comments
        @returns Transition result
        @raises NotFoundError, InvalidStateError, NotAuthorizedApproverError,
            ConcurrentModificationError
        """
        return await self._mutate(
            request_id,
            lambda request, now: transitions.apply_approve(
                request, approver_id, approver_name, comments, now
            ),
        )

    async def reject(
        self,
        request_id: str,
        rejecter_id: str,
        rejecter_name: str,
        reason: str,
    ) -> TransitionResult:
        """Reject a request; terminates it immediately.

        @param request_id - Request ID
        @param rejecter_id - Rejecting user ID
        @param rejecter_name - Rejecting user display name
        @param reason - Required rejection reason
        @returns Transition result
        """
        return await self._mutate(
            request_id,
            lambda request, now: transitions.apply_reject(
                request, rejecter_id, rejecter_name, reason, now
            ),
        )

    async def cancel(
        self,
        request_id: str,
        cancelled_by: str,
        cancelled_by_name: str,
        reason: str | None = None,
    ) -> TransitionResult:
        """Cancel a pending request.

        @param request_id - Request ID
        @param cancelled_by - Cancelling user ID
        @param cancelled_by_name - Cancelling user display name
        @param reason - Optional cancellation reason
        @returns Transition result
        """
        return await self._mutate(
            request_id,
            lambda request, now: transitions.apply_cancel(
                request, cancelled_by, cancelled_by_name, reason, now
            ),
        )

    async def add_comment(
        self,
        request_id: str,
        user_id: str,
        user_name: str,
        comment: str,
    ) -> TransitionResult:
        """Append a comment to the request history.

        @param request_id - Request ID
        @param user_id - Commenting user ID
        @param user_name - Commenting user display name
        @param comment - Comment text
        @returns Transition result
        """
        return await self._mutate(
            request_id,
            lambda request, now: transitions.apply_comment(
                request, user_id, user_name, comment, now
            ),
        )

    async def _mutate(self, request_id: str, apply: Transition) -> TransitionResult:
        """Run read, transition, conditional write until the write wins."""
        attempts = self.settings.max_conflict_retries
        for attempt in range(1, attempts + 1):
            current = await self.store.get(request_id)
            if current is None:
                raise NotFoundError(request_id)

            result = apply(current, self._clock())

            if await self.store.replace(current, result.request):
                logger.info(
                    "Approval request %s %s: %s -> %s (level %s -> %s)",
                    request_id,
                    result.action.value,
                    result.previous_status.value if result.previous_status else None,
                    result.new_status.value,
                    result.previous_level,
                    result.new_level,
                )
                return result

            logger.debug(
                "Write conflict on approval request %s (attempt %d/%d)",
                request_id,
                attempt,
                attempts,
            )

        logger.warning(
            "Giving up on approval request %s after %d conflicting writes",
            request_id,
            attempts,
        )
        raise ConcurrentModificationError(request_id, attempts)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_by_id(self, request_id: str) -> ApprovalRequest | None:
        """Get request by ID.

        @param request_id - Request ID
        @returns Request or None if not found
        """
        return await self.store.get(request_id)

    async def get(self, request_id: str) -> ApprovalRequest:
        """Get request by ID or raise NotFoundError."""
        request = await self.store.get(request_id)
        if request is None:
            raise NotFoundError(request_id)
        return request

    async def get_all(
        self,
        filters: ApprovalFilters | None = None,
        limit: int | None = None,
    ) -> list[ApprovalRequest]:
        """List requests matching filters, newest first.

        @param filters - Equality filters
        @param limit - Maximum results (settings default if None)
        @returns Matching requests
        """
        criteria = filters.as_criteria() if filters else {}
        return await self.store.find(
            criteria,
            order="desc",
            limit=limit if limit is not None else self.settings.default_page_limit,
        )

    async def get_pending_for_approver(self, approver_id: str) -> list[ApprovalRequest]:
        """Get pending requests whose current level waits on this approver.

        Appearing at a later level, or having already decided, does not
        count. Oldest requests come first.

        @param approver_id - Approver user ID
        @returns Requests awaiting this approver
        """
        pending = await self.store.find(
            {"status": ApprovalStatus.PENDING.value}, order="asc"
        )
        return [request for request in pending if request.is_awaiting(approver_id)]

    async def get_pending_by_user(self, requester_id: str) -> list[ApprovalRequest]:
        """Get the requester's own pending requests, newest first."""
        return await self.store.find(
            {"requested_by": requester_id, "status": ApprovalStatus.PENDING.value},
            order="desc",
        )

    async def get_by_entity(
        self, entity_id: str, entity_type: str
    ) -> ApprovalRequest | None:
        """Get the request for a business entity.

        One request per entity is a convention, not a constraint; the
        newest match wins if several exist.
        """
        matches = await self.store.find(
            {"entity_id": entity_id, "entity_type": entity_type},
            order="desc",
            limit=1,
        )
        return matches[0] if matches else None

    async def get_stats(self) -> ApprovalStats:
        """Get approval statistics from store counters.

        @returns Approval statistics
        """
        counters = await self.store.counters()
        return ApprovalStats(
            total=counters.get("total", 0),
            pending=counters.get("status:pending", 0),
            approved=counters.get("status:approved", 0),
            rejected=counters.get("status:rejected", 0),
            cancelled=counters.get("status:cancelled", 0),
            by_type={t.value: counters.get(f"type:{t.value}", 0) for t in ApprovalType},
        )


def build_store(settings: Settings) -> "ApprovalStore":
    """Create the store selected by settings.

    @param settings - Application settings
    @returns Uninitialized store
    """
    if settings.store_backend == "sql":
        from approvalflow.infrastructure.database import create_async_db_engine
        from approvalflow.repositories.approval import ApprovalRepository

        return ApprovalRepository(create_async_db_engine(settings))

    from approvalflow.repositories.memory import InMemoryApprovalStore

    return InMemoryApprovalStore()


# Singleton instance
_workflow_engine: ApprovalWorkflowEngine | None = None


def get_approval_workflow_engine() -> ApprovalWorkflowEngine:
    """Get or create approval workflow engine singleton.

    @returns ApprovalWorkflowEngine instance
    """
    global _workflow_engine
    if _workflow_engine is None:
        settings = get_settings()
        _workflow_engine = ApprovalWorkflowEngine(build_store(settings), settings)
    return _workflow_engine


def reset_approval_workflow_engine() -> None:
    """Reset approval workflow engine singleton (for testing)."""
    global _workflow_engine
    _workflow_engine = None
