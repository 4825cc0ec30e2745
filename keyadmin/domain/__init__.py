"""Domain layer: models, schemas, validators, expiry rules, exceptions. Pure business logic only."""

from keyadmin.domain.exceptions import (
    ConflictError,
    CustomerNotFoundError,
    DomainError,
    DomainValidationError,
    InvalidStatusTransitionError,
)
from keyadmin.domain.models import AuditAction, Customer, CustomerStatus

__all__ = [
    "AuditAction",
    "ConflictError",
    "Customer",
    "CustomerNotFoundError",
    "CustomerStatus",
    "DomainError",
    "DomainValidationError",
    "InvalidStatusTransitionError",
]
