"""Request dependencies shared by v1 endpoints."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from approvalflow.services.approval import (
    Actor,
    ApprovalWorkflowEngine,
    get_approval_workflow_engine,
)
from approvalflow.services.audit import AuditLogger, get_audit_logger


async def get_current_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_name: Annotated[str | None, Header()] = None,
) -> Actor:
    """Read the caller identity set by the upstream authenticating proxy.

    Identity is trusted as given; this service does not authenticate.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return Actor(user_id=x_user_id, display_name=x_user_name or x_user_id)


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
Engine = Annotated[ApprovalWorkflowEngine, Depends(get_approval_workflow_engine)]
Audit = Annotated[AuditLogger, Depends(get_audit_logger)]
