"""Domain schemas. Request/response and validation."""

from keyadmin.domain.schemas.customer import (
    CustomerCreateRequest,
    CustomerEnvelope,
    CustomerListResponse,
    CustomerRenewRequest,
    CustomerResponse,
    CustomerUpdateRequest,
    DashboardSummary,
    DevicePolicyResponse,
    LoginRequest,
    OkResponse,
    SweepResponse,
)

__all__ = [
    "CustomerCreateRequest",
    "CustomerEnvelope",
    "CustomerListResponse",
    "CustomerRenewRequest",
    "CustomerResponse",
    "CustomerUpdateRequest",
    "DashboardSummary",
    "DevicePolicyResponse",
    "LoginRequest",
    "OkResponse",
    "SweepResponse",
]
