"""DB-backed customer repository. Persists customers to PostgreSQL (customers table)."""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from keyadmin.domain.exceptions import CustomerNotFoundError
from keyadmin.domain.models.customer import Customer, CustomerStatus
from keyadmin.infrastructure.database.models import CustomerRecord


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_domain(orm: CustomerRecord) -> Customer:
    return Customer(
        id=orm.id,
        name=orm.name,
        phone=orm.phone,
        plan_days=orm.plan_days,
        created_at=_utc(orm.created_at),
        expires_at=_utc(orm.expires_at),
        status=CustomerStatus(orm.status),
        outline_key_id=orm.outline_key_id,
        outline_access_url=orm.outline_access_url,
    )


def _copy_fields(customer: Customer, orm: CustomerRecord) -> None:
    orm.name = customer.name
    orm.phone = customer.phone
    orm.plan_days = customer.plan_days
    orm.status = customer.status.value
    orm.expires_at = customer.expires_at
    orm.outline_key_id = customer.outline_key_id
    orm.outline_access_url = customer.outline_access_url


class DbCustomerRepository:
    """Implements CustomerRepository protocol. Every call commits on its own."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, customer_id: str) -> Optional[Customer]:
        orm = await self._session.get(CustomerRecord, customer_id, populate_existing=True)
        return _to_domain(orm) if orm is not None else None

    async def list(
        self, search: Optional[str] = None, status: Optional[CustomerStatus] = None
    ) -> List[Customer]:
        stmt = select(CustomerRecord).order_by(CustomerRecord.created_at.desc())
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    CustomerRecord.name.ilike(pattern),
                    CustomerRecord.phone.ilike(pattern),
                    CustomerRecord.outline_access_url.ilike(pattern),
                )
            )
        if status is not None:
            stmt = stmt.where(CustomerRecord.status == status.value)
        result = await self._session.execute(stmt)
        return [_to_domain(orm) for orm in result.scalars().all()]

    async def add(self, customer: Customer) -> Customer:
        orm = CustomerRecord(id=customer.id, created_at=customer.created_at)
        _copy_fields(customer, orm)
        self._session.add(orm)
        await self._session.commit()
        await self._session.refresh(orm)
        return _to_domain(orm)

    async def update(self, customer: Customer) -> Customer:
        orm = await self._session.get(CustomerRecord, customer.id)
        if orm is None:
            raise CustomerNotFoundError("Not found")
        _copy_fields(customer, orm)
        await self._session.commit()
        await self._session.refresh(orm)
        return _to_domain(orm)

    async def delete(self, customer_id: str) -> None:
        await self._session.execute(delete(CustomerRecord).where(CustomerRecord.id == customer_id))
        await self._session.commit()

    async def list_overdue(self, now: datetime) -> List[Customer]:
        stmt = select(CustomerRecord).where(
            CustomerRecord.status == CustomerStatus.ACTIVE.value,
            CustomerRecord.expires_at <= now,
        )
        result = await self._session.execute(stmt)
        return [_to_domain(orm) for orm in result.scalars().all()]

    async def mark_expired(self, customer_ids: Sequence[str]) -> int:
        if not customer_ids:
            return 0
        stmt = (
            update(CustomerRecord)
            .where(
                CustomerRecord.id.in_(list(customer_ids)),
                CustomerRecord.status == CustomerStatus.ACTIVE.value,
            )
            .values(status=CustomerStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        await self._session.commit()
        return result.rowcount or 0
