"""Governance: append-only audit trail. No FastAPI."""

from keyadmin.governance.audit_logger import AuditLogger
from keyadmin.governance.audit_models import AuditRecord
from keyadmin.governance.audit_repository import AuditRepository

__all__ = [
    "AuditLogger",
    "AuditRecord",
    "AuditRepository",
]
