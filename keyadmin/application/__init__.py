# Application layer: services that orchestrate domain and infrastructure.

from keyadmin.application.customer_repository import AccessKey, CustomerRepository, KeyManager
from keyadmin.application.customer_service import CustomerService, SweepResult
from keyadmin.application.exceptions import (
    ApplicationError,
    ConfigurationError,
    CustomerBusyError,
    UpstreamError,
)

__all__ = [
    "AccessKey",
    "ApplicationError",
    "ConfigurationError",
    "CustomerBusyError",
    "CustomerRepository",
    "CustomerService",
    "KeyManager",
    "SweepResult",
    "UpstreamError",
]
