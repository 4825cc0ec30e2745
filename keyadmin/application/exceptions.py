"""Application-layer exceptions. Do not reuse domain exceptions."""

from typing import Optional


class ApplicationError(Exception):
    """Base for all application-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(ApplicationError):
    """Raised when a required setting (secret, API URL) is not configured."""


class UpstreamError(ApplicationError):
    """Raised when the remote key API fails or answers with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class CustomerBusyError(ApplicationError):
    """Raised when another operation currently holds the customer's lock."""
