"""Customers API router: list, create, read, update, delete, renew, revoke, lock, unlock."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from keyadmin.api.dependencies import get_customer_service, require_session
from keyadmin.application.customer_service import CustomerService
from keyadmin.domain.models.customer import Customer, CustomerStatus
from keyadmin.domain.schemas import (
    CustomerCreateRequest,
    CustomerEnvelope,
    CustomerListResponse,
    CustomerRenewRequest,
    CustomerResponse,
    CustomerUpdateRequest,
    DevicePolicyResponse,
    OkResponse,
)

router = APIRouter(dependencies=[Depends(require_session)])

Service = Annotated[CustomerService, Depends(get_customer_service)]


def _envelope(customer: Customer) -> CustomerEnvelope:
    return CustomerEnvelope(customer=CustomerResponse.from_domain(customer))


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    service: Service,
    search: Annotated[Optional[str], Query()] = None,
    status: Annotated[Optional[CustomerStatus], Query()] = None,
):
    """Newest first. Status is the stored status; overdue customers flip on the next sweep."""
    customers = await service.list_customers(search=search, status=status)
    return CustomerListResponse(customers=[CustomerResponse.from_domain(c) for c in customers])


@router.post("", response_model=CustomerEnvelope)
async def create_customer(body: CustomerCreateRequest, service: Service):
    customer = await service.create_customer(body.name, body.phone, body.plan_days)
    return _envelope(customer)


@router.get("/{customer_id}", response_model=CustomerEnvelope)
async def get_customer(customer_id: str, service: Service):
    return _envelope(await service.get_customer(customer_id))


@router.patch("/{customer_id}", response_model=CustomerEnvelope)
async def update_customer(customer_id: str, body: CustomerUpdateRequest, service: Service):
    customer = await service.update_customer(customer_id, **body.model_dump(exclude_unset=True))
    return _envelope(customer)


@router.delete("/{customer_id}", response_model=OkResponse)
async def delete_customer(customer_id: str, service: Service):
    await service.delete_customer(customer_id)
    return OkResponse()


@router.post("/{customer_id}/renew", response_model=CustomerEnvelope)
async def renew_customer(
    customer_id: str,
    service: Service,
    body: Optional[CustomerRenewRequest] = None,
):
    plan_days = body.plan_days if body is not None else None
    return _envelope(await service.renew_customer(customer_id, plan_days))


@router.post("/{customer_id}/revoke", response_model=CustomerEnvelope)
async def revoke_customer(customer_id: str, service: Service):
    """Revoke an ACTIVE customer's key. Expired or revoked customers get 400, not a second revoke."""
    return _envelope(await service.revoke_customer(customer_id))


@router.post("/{customer_id}/lock", response_model=DevicePolicyResponse)
async def lock_customer(customer_id: str, service: Service):
    await service.lock_customer(customer_id)
    return DevicePolicyResponse(message="Device access locked (data limit set to 0)")


@router.post("/{customer_id}/unlock", response_model=DevicePolicyResponse)
async def unlock_customer(customer_id: str, service: Service):
    await service.unlock_customer(customer_id)
    return DevicePolicyResponse(message="Device access unlocked (data limit removed)")
