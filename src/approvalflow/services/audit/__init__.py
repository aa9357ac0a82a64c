"""Audit logging service module."""

from approvalflow.services.audit.logger import AuditLogger, get_audit_logger
from approvalflow.services.audit.schemas import AuditAction, AuditEntry, AuditQuery

__all__ = [
    # Schemas
    "AuditAction",
    "AuditEntry",
    "AuditQuery",
    # Service
    "AuditLogger",
    "get_audit_logger",
]
