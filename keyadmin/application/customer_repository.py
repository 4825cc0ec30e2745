"""Ports the lifecycle service depends on. Infrastructure implements them."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from keyadmin.domain.models.customer import Customer, CustomerStatus


@dataclass(frozen=True)
class AccessKey:
    """A key as returned by the remote key API."""

    id: str
    access_url: str


class CustomerRepository(Protocol):
    """Protocol for customer persistence. Each call is its own unit of work."""

    async def get(self, customer_id: str) -> Optional[Customer]:
        ...

    async def list(
        self, search: Optional[str] = None, status: Optional[CustomerStatus] = None
    ) -> List[Customer]:
        """Newest first. `search` matches name, phone or access URL, case-insensitive."""
        ...

    async def add(self, customer: Customer) -> Customer:
        ...

    async def update(self, customer: Customer) -> Customer:
        ...

    async def delete(self, customer_id: str) -> None:
        ...

    async def list_overdue(self, now: datetime) -> List[Customer]:
        """ACTIVE customers whose expiresAt is at or before `now`."""
        ...

    async def mark_expired(self, customer_ids: Sequence[str]) -> int:
        """Single batched status write; returns the number of rows changed."""
        ...


class KeyManager(Protocol):
    """Protocol for the remote VPN key-management API."""

    async def create_access_key(self) -> AccessKey:
        ...

    async def rename_access_key(self, key_id: str, name: str) -> None:
        ...

    async def delete_access_key(self, key_id: str) -> None:
        ...

    async def set_data_limit(self, key_id: str, limit_bytes: int) -> None:
        ...

    async def remove_data_limit(self, key_id: str) -> None:
        ...
