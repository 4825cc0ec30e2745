"""Domain model for customers and their access-key lifecycle. No ORM or infrastructure."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional

from keyadmin.domain.exceptions import InvalidStatusTransitionError


class CustomerStatus(str, Enum):
    """Lifecycle status of a customer's access key."""

    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"


class AuditAction(str, Enum):
    """Fixed vocabulary of audited actions."""

    CREATE = "customer.create"
    RENEW = "customer.renew"
    REVOKE = "customer.revoke"
    UPDATE = "customer.update"
    DELETE = "customer.delete"
    EXPIRE = "customer.expire"
    LOCK = "customer.lock"
    UNLOCK = "customer.unlock"


# ACTIVE -> ACTIVE is a renew. Renew is the only way out of EXPIRED or REVOKED.
_STATUS_TRANSITIONS: Dict[CustomerStatus, FrozenSet[CustomerStatus]] = {
    CustomerStatus.ACTIVE: frozenset(
        {CustomerStatus.ACTIVE, CustomerStatus.EXPIRED, CustomerStatus.REVOKED}
    ),
    CustomerStatus.EXPIRED: frozenset({CustomerStatus.ACTIVE}),
    CustomerStatus.REVOKED: frozenset({CustomerStatus.ACTIVE}),
}


def validate_status_transition(current: CustomerStatus, new: CustomerStatus) -> None:
    """Raises InvalidStatusTransitionError if `current -> new` is not allowed."""
    allowed = _STATUS_TRANSITIONS.get(current, frozenset())
    if new not in allowed:
        raise InvalidStatusTransitionError(
            f"Cannot change customer status from {current.value} to {new.value}"
        )


@dataclass
class Customer:
    """
    A customer bound to exactly one remote access key while ACTIVE.
    Status must be changed only via transition_to() to enforce lifecycle rules.
    """

    id: str
    name: str
    plan_days: int
    created_at: datetime
    expires_at: datetime
    status: CustomerStatus
    outline_key_id: str
    outline_access_url: str
    phone: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == CustomerStatus.ACTIVE

    def transition_to(self, new_status: CustomerStatus) -> None:
        validate_status_transition(self.status, new_status)
        self.status = new_status
