"""Pure transition rules for approval requests.

Functions here take a request snapshot and return a new snapshot wrapped in
a ``TransitionResult``; they never touch a store, a clock or a logger. The
engine applies them inside its optimistic-concurrency loop, so a function
may run more than once for a single call.
"""

from datetime import datetime

from approvalflow.core.exceptions import (
    InvalidStateError,
    NotAuthorizedApproverError,
    ValidationError,
)
from approvalflow.services.approval.schemas import (
    ApprovalRequest,
    ApprovalRequestCreate,
    ApprovalStatus,
    ApproverSlot,
    ApproverStatus,
    HistoryAction,
    HistoryEntry,
    TransitionResult,
)


def _require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(field, f"{field} is required")
    return value


def build_request(
    data: ApprovalRequestCreate,
    request_id: str,
    now: datetime,
    *,
    require_approvers: bool = True,
) -> TransitionResult:
    """Build a new pending request with a single submitted history entry.

    @param data - Creation input
    @param request_id - Identifier to assign
    @param now - Creation timestamp
    @param require_approvers - Reject an empty approver list
    @returns Transition result holding the new request
    @raises ValidationError on missing description or malformed approvers
    """
    _require_text(data.description, "description")

    if require_approvers and not data.approvers:
        raise ValidationError("approvers", "At least one approver is required")

    seen: set[tuple[str, int]] = set()
    for assignment in data.approvers:
        if assignment.level < 1:
            raise ValidationError(
                "approvers",
                f"Approver {assignment.user_id} has non-positive level {assignment.level}",
            )
        key = (assignment.user_id, assignment.level)
        if key in seen:
            raise ValidationError(
                "approvers",
                f"Approver {assignment.user_id} is listed twice at level {assignment.level}",
            )
        seen.add(key)

    slots = [
        ApproverSlot(
            user_id=a.user_id,
            user_name=a.user_name,
            level=a.level,
        )
        for a in data.approvers
    ]
    first_level = min((slot.level for slot in slots), default=1)

    request = ApprovalRequest(
        id=request_id,
        type=data.type,
        entity_id=data.entity_id,
        entity_type=data.entity_type,
        entity_name=data.entity_name,
        requested_by=data.requested_by,
        requested_by_name=data.requested_by_name,
        requested_at=now,
        status=ApprovalStatus.PENDING,
        priority=data.priority,
        amount=data.amount,
        currency=data.currency,
        project_id=data.project_id,
        description=data.description,
        approvers=slots,
        current_approver_level=first_level,
        approval_history=[
            HistoryEntry(
                action=HistoryAction.SUBMITTED,
                performed_by=data.requested_by,
                performed_by_name=data.requested_by_name,
                performed_at=now,
                previous_status=None,
                new_status=ApprovalStatus.PENDING,
            )
        ],
        due_date=data.due_date,
        metadata=dict(data.metadata),
        created_at=now,
        updated_at=now,
        revision=1,
    )
    return TransitionResult(
        request=request,
        action=HistoryAction.SUBMITTED,
        previous_status=None,
        new_status=ApprovalStatus.PENDING,
        previous_level=None,
        new_level=first_level,
    )


def next_level(request: ApprovalRequest) -> int | None:
    """Get the lowest populated level above the current one.

    Levels need not be contiguous, so this is not simply ``current + 1``.
    """
    higher = [
        slot.level
        for slot in request.approvers
        if slot.level > request.current_approver_level
    ]
    return min(higher) if higher else None


def _require_transition(
    request: ApprovalRequest, target: ApprovalStatus, operation: str
) -> None:
    if not request.status.can_transition_to(target):
        raise InvalidStateError(request.id, request.status.value, operation)


def _decide(
    request: ApprovalRequest,
    user_id: str,
    decision: ApproverStatus,
    comments: str | None,
    now: datetime,
) -> ApprovalRequest:
    """Copy the request with the user's current-level slot decided."""
    slot = request.pending_slot_for(user_id)
    if slot is None:
        raise NotAuthorizedApproverError(
            request.id, user_id, request.current_approver_level
        )

    updated = request.model_copy(deep=True)
    index = request.approvers.index(slot)
    updated.approvers[index] = slot.model_copy(
        update={"status": decision, "decided_at": now, "comments": comments}
    )
    return updated


def _finish(
    previous: ApprovalRequest,
    updated: ApprovalRequest,
    entry: HistoryEntry,
    now: datetime,
) -> TransitionResult:
    updated.approval_history.append(entry)
    updated.updated_at = now
    updated.revision = previous.revision + 1
    return TransitionResult(
        request=updated,
        action=entry.action,
        previous_status=previous.status,
        new_status=updated.status,
        previous_level=previous.current_approver_level,
        new_level=updated.current_approver_level,
    )


def apply_approve(
    request: ApprovalRequest,
    approver_id: str,
    approver_name: str,
    comments: str | None,
    now: datetime,
) -> TransitionResult:
    """Record an approval and advance or resolve the request.

    A level completes only when every slot at that level has approved.
    A completed level moves the request to the next populated level, or
    resolves it as approved when no higher level exists.
    """
    # Any approval may be the one that resolves the request
    _require_transition(request, ApprovalStatus.APPROVED, "approve")
    updated = _decide(
        request, approver_id, ApproverStatus.APPROVED, comments or None, now
    )

    level_slots = updated.slots_at_level(updated.current_approver_level)
    if all(slot.status == ApproverStatus.APPROVED for slot in level_slots):
        following = next_level(updated)
        if following is None:
            updated.status = ApprovalStatus.APPROVED
        else:
            updated.current_approver_level = following

    entry = HistoryEntry(
        action=HistoryAction.APPROVED,
        performed_by=approver_id,
        performed_by_name=approver_name,
        performed_at=now,
        comments=comments or None,
        previous_status=request.status,
        new_status=updated.status,
    )
    return _finish(request, updated, entry, now)


def apply_reject(
    request: ApprovalRequest,
    rejecter_id: str,
    rejecter_name: str,
    reason: str,
    now: datetime,
) -> TransitionResult:
    """Record a rejection; a single rejection terminates the request."""
    _require_text(reason, "reason")
    _require_transition(request, ApprovalStatus.REJECTED, "reject")
    updated = _decide(request, rejecter_id, ApproverStatus.REJECTED, reason, now)
    updated.status = ApprovalStatus.REJECTED

    entry = HistoryEntry(
        action=HistoryAction.REJECTED,
        performed_by=rejecter_id,
        performed_by_name=rejecter_name,
        performed_at=now,
        comments=reason,
        previous_status=request.status,
        new_status=ApprovalStatus.REJECTED,
    )
    return _finish(request, updated, entry, now)


def apply_cancel(
    request: ApprovalRequest,
    cancelled_by: str,
    cancelled_by_name: str,
    reason: str | None,
    now: datetime,
) -> TransitionResult:
    """Cancel a pending request. Approver slots are left as they are."""
    _require_transition(request, ApprovalStatus.CANCELLED, "cancel")
    updated = request.model_copy(deep=True)
    updated.status = ApprovalStatus.CANCELLED

    entry = HistoryEntry(
        action=HistoryAction.CANCELLED,
        performed_by=cancelled_by,
        performed_by_name=cancelled_by_name,
        performed_at=now,
        comments=reason or None,
        previous_status=request.status,
        new_status=ApprovalStatus.CANCELLED,
    )
    return _finish(request, updated, entry, now)


def apply_comment(
    request: ApprovalRequest,
    user_id: str,
    user_name: str,
    comment: str,
    now: datetime,
) -> TransitionResult:
    """Append a comment. Allowed in every status."""
    _require_text(comment, "comment")
    updated = request.model_copy(deep=True)

    entry = HistoryEntry(
        action=HistoryAction.COMMENTED,
        performed_by=user_id,
        performed_by_name=user_name,
        performed_at=now,
        comments=comment,
        previous_status=None,
        new_status=None,
    )
    return _finish(request, updated, entry, now)
