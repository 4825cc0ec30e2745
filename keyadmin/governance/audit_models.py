"""Immutable audit record model. Domain-level immutability."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from keyadmin.domain.models.customer import AuditAction


@dataclass(frozen=True)
class AuditRecord:
    """
    Immutable audit record: what happened to which customer, when (UTC),
    the before/after values and the request correlation_id.
    """

    action: AuditAction
    customer_id: str
    meta: Optional[Dict[str, Any]]
    correlation_id: Optional[str]
    timestamp_utc: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for JSON logging."""
        return {
            "action": self.action.value,
            "customer_id": self.customer_id,
            "meta": self.meta,
            "correlation_id": self.correlation_id,
            "timestamp_utc": self.timestamp_utc.isoformat(),
        }
