"""Append-only audit trail for customer actions. No FastAPI."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from keyadmin.core.context import correlation_id_ctx
from keyadmin.domain.models.customer import AuditAction
from keyadmin.governance.audit_models import AuditRecord
from keyadmin.governance.audit_repository import AuditRepository

logger = logging.getLogger(__name__)


class AuditLogger:
    """
    Writes immutable audit records via repository, one per mutating action.
    The record is also emitted as a structured log line.
    """

    def __init__(self, repository: AuditRepository) -> None:
        self._repository = repository

    async def log_action(
        self,
        *,
        action: AuditAction,
        customer_id: str,
        meta: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
    ) -> AuditRecord:
        """Write immutable audit record. Timestamp is UTC."""
        record = AuditRecord(
            action=action,
            customer_id=customer_id,
            meta=meta,
            correlation_id=correlation_id or correlation_id_ctx.get(),
            timestamp_utc=datetime.now(timezone.utc),
        )
        await self._repository.save(record)
        logger.info("audit_record", extra={"audit": record.to_dict()})
        return record
