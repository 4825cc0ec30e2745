"""Domain-specific exceptions. Pure domain layer — no infrastructure."""


class DomainError(Exception):
    """Base for all domain-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DomainValidationError(DomainError):
    """Raised when input is malformed or missing (name, planDays, update fields)."""


class CustomerNotFoundError(DomainError):
    """Raised when no customer exists for the given id."""


class ConflictError(DomainError):
    """Raised when a business rule forbids the operation (e.g. deleting an active, unexpired plan)."""


class InvalidStatusTransitionError(ConflictError):
    """Raised when a customer status transition is not allowed."""
