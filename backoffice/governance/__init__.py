"""Governance: append-only audit logging. No FastAPI."""

from backoffice.governance.audit_logger import AuditLogger
from backoffice.governance.audit_models import AuditRecord
from backoffice.governance.audit_repository import AuditRepository

__all__ = [
    "AuditLogger",
    "AuditRecord",
    "AuditRepository",
]
