"""Audit repository protocol. Governance layer depends on this; infrastructure implements it."""

from typing import Protocol

from keyadmin.governance.audit_models import AuditRecord


class AuditRepository(Protocol):
    """Protocol for persisting immutable audit records."""

    async def save(self, record: AuditRecord) -> None:
        """Append an audit record. Records are never updated or deleted."""
        ...
