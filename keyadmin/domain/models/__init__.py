"""Domain models. Pure business entities."""

from keyadmin.domain.models.customer import (
    AuditAction,
    Customer,
    CustomerStatus,
    validate_status_transition,
)

__all__ = [
    "AuditAction",
    "Customer",
    "CustomerStatus",
    "validate_status_transition",
]
