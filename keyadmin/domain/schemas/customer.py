"""Pydantic schemas for the customer API. camelCase on the wire, no DB or infrastructure."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from keyadmin.domain.expiry import to_local
from keyadmin.domain.models.customer import Customer, CustomerStatus


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class LoginRequest(BaseModel):
    """Any non-string password is treated as empty and rejected."""

    password: Any = None


class CustomerCreateRequest(_CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    # Checked by validate_plan_days so "1.5" or true get the domain error message.
    plan_days: Any = None


class CustomerUpdateRequest(_CamelModel):
    """Fields left out of the body are untouched; an explicit null phone clears it."""

    name: Optional[str] = None
    phone: Optional[str] = None


class CustomerRenewRequest(_CamelModel):
    # Loosely typed on purpose: anything that is not a positive integer falls back to the stored plan.
    plan_days: Any = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class CustomerResponse(_CamelModel):
    id: str
    name: str
    phone: Optional[str] = None
    plan_days: int
    created_at: datetime
    expires_at: datetime
    expires_at_local: datetime = Field(..., description="expiresAt rendered in the fixed local offset")
    status: CustomerStatus
    outline_key_id: str
    outline_access_url: str

    @classmethod
    def from_domain(cls, customer: Customer) -> "CustomerResponse":
        return cls(
            id=customer.id,
            name=customer.name,
            phone=customer.phone,
            plan_days=customer.plan_days,
            created_at=customer.created_at,
            expires_at=customer.expires_at,
            expires_at_local=to_local(customer.expires_at),
            status=customer.status,
            outline_key_id=customer.outline_key_id,
            outline_access_url=customer.outline_access_url,
        )


class CustomerEnvelope(BaseModel):
    customer: CustomerResponse


class CustomerListResponse(BaseModel):
    customers: List[CustomerResponse]


class OkResponse(BaseModel):
    ok: bool = True


class DevicePolicyResponse(BaseModel):
    success: bool = True
    message: str


class SweepResponse(BaseModel):
    checked: int
    revoked: int
    failed: int
    skipped: int = 0


class DashboardSummary(BaseModel):
    total: int
    active: int
    expired: int
    revoked: int
