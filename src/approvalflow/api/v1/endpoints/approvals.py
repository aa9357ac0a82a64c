"""Approval Management API endpoints."""

import logging
from datetime import datetime

from fastapi import APIRouter, Query, status

from approvalflow.api.v1.dependencies import Audit, CurrentActor, Engine
from approvalflow.api.v1.schemas import (
    ApprovalSubmission,
    ApproveBody,
    CancelBody,
    CommentBody,
    RejectBody,
)
from approvalflow.services.approval import (
    ApprovalFilters,
    ApprovalPriority,
    ApprovalRequest,
    ApprovalStats,
    ApprovalStatus,
    ApprovalType,
    TransitionResult,
)
from approvalflow.services.audit import AuditAction, AuditEntry, AuditQuery

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/approvals", tags=["Approvals"])


@router.get("", response_model=list[ApprovalRequest])
async def list_approval_requests(
    actor: CurrentActor,
    engine: Engine,
    type: ApprovalType | None = Query(None, description="Filter by type"),
    status: ApprovalStatus | None = Query(None, description="Filter by status"),
    priority: ApprovalPriority | None = Query(None, description="Filter by priority"),
    requested_by: str | None = Query(None, description="Filter by requester"),
    project_id: str | None = Query(None, description="Filter by project"),
    limit: int | None = Query(None, ge=1, le=500, description="Maximum results"),
) -> list[ApprovalRequest]:
    """List approval requests, newest first."""
    filters = ApprovalFilters(
        type=type,
        status=status,
        priority=priority,
        requested_by=requested_by,
        project_id=project_id,
    )
    return await engine.get_all(filters, limit)


@router.get("/pending", response_model=list[ApprovalRequest])
async def list_pending_for_approver(
    actor: CurrentActor,
    engine: Engine,
) -> list[ApprovalRequest]:
    """List pending requests waiting on the current user, oldest first."""
    return await engine.get_pending_for_approver(actor.user_id)


@router.get("/mine", response_model=list[ApprovalRequest])
async def list_my_pending(
    actor: CurrentActor,
    engine: Engine,
) -> list[ApprovalRequest]:
    """List the current user's own pending requests."""
    return await engine.get_pending_by_user(actor.user_id)


@router.get("/stats", response_model=ApprovalStats)
async def get_approval_stats(
    actor: CurrentActor,
    engine: Engine,
) -> ApprovalStats:
    """Get approval request counts."""
    return await engine.get_stats()


@router.get("/audit", response_model=list[AuditEntry])
async def get_audit_log(
    actor: CurrentActor,
    audit: Audit,
    request_id: str | None = Query(None, description="Filter by request ID"),
    actor_id: str | None = Query(None, description="Filter by actor"),
    action: list[AuditAction] | None = Query(None, description="Filter actions"),
    start_time: datetime | None = Query(None, description="Start of time range"),
    end_time: datetime | None = Query(None, description="End of time range"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum entries"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
) -> list[AuditEntry]:
    """Get audit log entries, most recent first."""
    return audit.query(
        AuditQuery(
            start_time=start_time,
            end_time=end_time,
            actions=action,
            actor_id=actor_id,
            entity_id=request_id,
            limit=limit,
            offset=offset,
        )
    )


@router.get(
    "/entity/{entity_type}/{entity_id}", response_model=ApprovalRequest | None
)
async def get_request_for_entity(
    entity_type: str,
    entity_id: str,
    actor: CurrentActor,
    engine: Engine,
) -> ApprovalRequest | None:
    """Get the newest request for a business entity, or null."""
    return await engine.get_by_entity(entity_id, entity_type)


@router.get("/{request_id}", response_model=ApprovalRequest)
async def get_request_detail(
    request_id: str,
    actor: CurrentActor,
    engine: Engine,
) -> ApprovalRequest:
    """Get an approval request with its approvers and history."""
    return await engine.get(request_id)


@router.post(
    "",
    response_model=TransitionResult,
    status_code=status.HTTP_201_CREATED,
)
async def create_approval_request(
    body: ApprovalSubmission,
    actor: CurrentActor,
    engine: Engine,
    audit: Audit,
) -> TransitionResult:
    """Submit a new approval request as the current user."""
    result = await engine.create_request(body.for_requester(actor))
    audit.record(result, actor)
    return result


@router.post("/{request_id}/approve", response_model=TransitionResult)
async def approve_request(
    request_id: str,
    body: ApproveBody,
    actor: CurrentActor,
    engine: Engine,
    audit: Audit,
) -> TransitionResult:
    """Approve at the current level.

    The request advances to the next level once every approver at the
    current level has approved.
    """
    result = await engine.approve(
        request_id, actor.user_id, actor.display_name, body.comments
    )
    audit.record(result, actor)
    return result


@router.post("/{request_id}/reject", response_model=TransitionResult)
async def reject_request(
    request_id: str,
    body: RejectBody,
    actor: CurrentActor,
    engine: Engine,
    audit: Audit,
) -> TransitionResult:
    """Reject the request. A reason is required."""
    result = await engine.reject(
        request_id, actor.user_id, actor.display_name, body.reason
    )
    audit.record(result, actor)
    return result


@router.post("/{request_id}/cancel", response_model=TransitionResult)
async def cancel_request(
    request_id: str,
    body: CancelBody,
    actor: CurrentActor,
    engine: Engine,
    audit: Audit,
) -> TransitionResult:
    """Cancel a pending request."""
    result = await engine.cancel(
        request_id, actor.user_id, actor.display_name, body.reason
    )
    audit.record(result, actor)
    return result


@router.post("/{request_id}/comments", response_model=TransitionResult)
async def add_comment(
    request_id: str,
    body: CommentBody,
    actor: CurrentActor,
    engine: Engine,
    audit: Audit,
) -> TransitionResult:
    """Add a comment to the request history."""
    result = await engine.add_comment(
        request_id, actor.user_id, actor.display_name, body.comment
    )
    audit.record(result, actor)
    return result
