"""Customer lifecycle service: plan lifecycle and device access against the key server.

Each operation is "read record, remote side effect(s), write record, write
audit entry" as independent calls. Operations on an existing customer hold a
per-customer lock for their whole duration.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from keyadmin.application.customer_repository import AccessKey, CustomerRepository, KeyManager
from keyadmin.application.exceptions import CustomerBusyError, UpstreamError
from keyadmin.domain.exceptions import ConflictError, CustomerNotFoundError
from keyadmin.domain.expiry import calculate_expiry, extend_expiry, is_expired, utcnow
from keyadmin.domain.models.customer import (
    AuditAction,
    Customer,
    CustomerStatus,
    validate_status_transition,
)
from keyadmin.domain.validators.customer_validator import (
    resolve_renew_plan_days,
    validate_customer_update,
    validate_new_customer,
)
from keyadmin.governance.audit_logger import AuditLogger
from keyadmin.scalability.distributed_lock import DistributedLock

LOCK_DATA_LIMIT_BYTES = 0
CUSTOMER_LOCK_PREFIX = "customer:"


@dataclass(frozen=True)
class SweepResult:
    checked: int
    revoked: int
    failed: int
    skipped: int = 0


def _lock_key(customer_id: str) -> str:
    return f"{CUSTOMER_LOCK_PREFIX}{customer_id}"


class CustomerService:
    """
    Application-layer orchestration only. No HTTP, no FastAPI.
    Failure policy: remote failures in create/renew/revoke/lock/unlock/update
    propagate; renew compensates by deleting the replacement key; the expiry
    sweep and delete tolerate remote failures.
    """

    def __init__(
        self,
        repository: CustomerRepository,
        key_manager: KeyManager,
        audit_logger: AuditLogger,
        lock: DistributedLock,
        logger: logging.Logger,
        lock_ttl_seconds: int = 60,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repository = repository
        self._keys = key_manager
        self._audit = audit_logger
        self._lock = lock
        self._logger = logger
        self._lock_ttl = lock_ttl_seconds
        self._clock = clock

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _exclusive(self, customer_id: str) -> AsyncIterator[None]:
        async with self._lock.held(_lock_key(customer_id), self._lock_ttl) as acquired:
            if not acquired:
                raise CustomerBusyError("Another operation is in progress for this customer")
            yield

    async def _load(self, customer_id: str) -> Customer:
        customer = await self._repository.get(customer_id)
        if customer is None:
            raise CustomerNotFoundError("Not found")
        return customer

    @staticmethod
    def _require_active(customer: Customer) -> None:
        if not customer.is_active:
            raise ConflictError("Customer is not active")

    async def _discard_replacement_key(self, new_key: AccessKey, customer_id: str) -> None:
        try:
            await self._keys.delete_access_key(new_key.id)
        except Exception as e:
            # The original failure is what the caller sees; this one is only logged.
            self._logger.error(
                "renew_compensation_failed",
                extra={"customer_id": customer_id, "orphaned_key_id": new_key.id, "error": str(e)},
            )

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    async def get_customer(self, customer_id: str) -> Customer:
        return await self._load(customer_id)

    async def list_customers(
        self, search: Optional[str] = None, status: Optional[CustomerStatus] = None
    ) -> List[Customer]:
        """Stored status only; overdue customers stay ACTIVE until the sweep runs."""
        term = search.strip() if search else None
        return await self._repository.list(search=term or None, status=status)

    async def summarize(self) -> Dict[str, int]:
        customers = await self._repository.list()
        counts = {status: 0 for status in CustomerStatus}
        for customer in customers:
            counts[customer.status] += 1
        return {
            "total": len(customers),
            "active": counts[CustomerStatus.ACTIVE],
            "expired": counts[CustomerStatus.EXPIRED],
            "revoked": counts[CustomerStatus.REVOKED],
        }

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def create_customer(self, name: Any, phone: Any, plan_days: Any) -> Customer:
        draft = validate_new_customer(name, phone, plan_days)

        key = await self._keys.create_access_key()
        await self._keys.rename_access_key(key.id, draft.name)

        now = self._clock()
        customer = Customer(
            id=str(uuid.uuid4()),
            name=draft.name,
            phone=draft.phone,
            plan_days=draft.plan_days,
            created_at=now,
            expires_at=calculate_expiry(draft.plan_days, now),
            status=CustomerStatus.ACTIVE,
            outline_key_id=key.id,
            outline_access_url=key.access_url,
        )
        customer = await self._repository.add(customer)

        await self._audit.log_action(
            action=AuditAction.CREATE,
            customer_id=customer.id,
            meta={"outlineKeyId": key.id, "planDays": draft.plan_days},
        )
        self._logger.info(
            "customer_created",
            extra={"customer_id": customer.id, "outline_key_id": key.id},
        )
        return customer

    async def renew_customer(self, customer_id: str, plan_days: Any = None) -> Customer:
        async with self._exclusive(customer_id):
            customer = await self._load(customer_id)
            validate_status_transition(customer.status, CustomerStatus.ACTIVE)
            days = resolve_renew_plan_days(plan_days, customer.plan_days)

            new_key = await self._keys.create_access_key()
            await self._keys.rename_access_key(new_key.id, customer.name)

            try:
                await self._keys.delete_access_key(customer.outline_key_id)
            except UpstreamError as e:
                # An expired or revoked key is normally gone already.
                if customer.is_active or e.status_code != 404:
                    await self._discard_replacement_key(new_key, customer.id)
                    raise
            except Exception:
                await self._discard_replacement_key(new_key, customer.id)
                raise

            previous = {
                "status": customer.status.value,
                "expiresAt": customer.expires_at.isoformat(),
                "outlineKeyId": customer.outline_key_id,
            }
            customer.transition_to(CustomerStatus.ACTIVE)
            customer.expires_at = extend_expiry(customer.expires_at, days, self._clock())
            customer.plan_days = days
            customer.outline_key_id = new_key.id
            customer.outline_access_url = new_key.access_url
            customer = await self._repository.update(customer)

            await self._audit.log_action(
                action=AuditAction.RENEW,
                customer_id=customer.id,
                meta={
                    "oldKeyId": previous["outlineKeyId"],
                    "newKeyId": new_key.id,
                    "previousStatus": previous["status"],
                    "previousExpiresAt": previous["expiresAt"],
                    "newExpiresAt": customer.expires_at.isoformat(),
                    "planDays": days,
                },
            )
            return customer

    async def revoke_customer(self, customer_id: str) -> Customer:
        async with self._exclusive(customer_id):
            customer = await self._load(customer_id)
            validate_status_transition(customer.status, CustomerStatus.REVOKED)

            await self._keys.delete_access_key(customer.outline_key_id)

            customer.transition_to(CustomerStatus.REVOKED)
            customer = await self._repository.update(customer)
            await self._audit.log_action(
                action=AuditAction.REVOKE,
                customer_id=customer.id,
                meta={"outlineKeyId": customer.outline_key_id},
            )
            return customer

    async def expire_overdue(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Move every overdue ACTIVE customer to EXPIRED. Remote deletions run
        concurrently and fail individually; the status write is one batch.
        Customers locked by another operation are skipped until the next run.
        """
        now = now or self._clock()
        candidates = await self._repository.list_overdue(now)
        held = await self._lock.acquire_many([_lock_key(c.id) for c in candidates], self._lock_ttl)
        try:
            batch: List[Customer] = []
            for candidate in candidates:
                if _lock_key(candidate.id) not in held:
                    continue
                # Re-read under the lock: a renew may have landed since the listing.
                fresh = await self._repository.get(candidate.id)
                if fresh is not None and fresh.is_active and is_expired(fresh.expires_at, now):
                    batch.append(fresh)

            results = await asyncio.gather(
                *(self._keys.delete_access_key(c.outline_key_id) for c in batch),
                return_exceptions=True,
            )
            failed = 0
            for customer, result in zip(batch, results):
                if isinstance(result, BaseException):
                    failed += 1
                    self._logger.warning(
                        "expire_key_delete_failed",
                        extra={
                            "customer_id": customer.id,
                            "outline_key_id": customer.outline_key_id,
                            "error": str(result),
                        },
                    )

            if batch:
                await self._repository.mark_expired([c.id for c in batch])
            for customer, result in zip(batch, results):
                await self._audit.log_action(
                    action=AuditAction.EXPIRE,
                    customer_id=customer.id,
                    meta={
                        "outlineKeyId": customer.outline_key_id,
                        "keyDeleted": not isinstance(result, BaseException),
                    },
                )
        finally:
            await self._lock.release_many(held)

        result = SweepResult(
            checked=len(candidates),
            revoked=len(batch) - failed,
            failed=failed,
            skipped=len(candidates) - len(batch),
        )
        self._logger.info("expiry_sweep_completed", extra=asdict(result))
        return result

    async def delete_customer(self, customer_id: str) -> None:
        async with self._exclusive(customer_id):
            customer = await self._load(customer_id)
            if customer.is_active and not is_expired(customer.expires_at, self._clock()):
                raise ConflictError("Only expired plans can be deleted")

            try:
                await self._keys.delete_access_key(customer.outline_key_id)
            except Exception as e:
                # Expired and revoked customers normally have no key left.
                self._logger.warning(
                    "delete_key_cleanup_failed",
                    extra={"customer_id": customer.id, "error": str(e)},
                )

            await self._audit.log_action(
                action=AuditAction.DELETE,
                customer_id=customer.id,
                meta={"status": customer.status.value, "outlineKeyId": customer.outline_key_id},
            )
            await self._repository.delete(customer.id)

    async def lock_customer(self, customer_id: str) -> Customer:
        """Cut the device off by setting the key's data limit to zero bytes."""
        async with self._exclusive(customer_id):
            customer = await self._load(customer_id)
            self._require_active(customer)
            await self._keys.set_data_limit(customer.outline_key_id, LOCK_DATA_LIMIT_BYTES)
            await self._audit.log_action(
                action=AuditAction.LOCK,
                customer_id=customer.id,
                meta={"outlineKeyId": customer.outline_key_id, "dataLimit": LOCK_DATA_LIMIT_BYTES},
            )
            return customer

    async def unlock_customer(self, customer_id: str) -> Customer:
        async with self._exclusive(customer_id):
            customer = await self._load(customer_id)
            self._require_active(customer)
            await self._keys.remove_data_limit(customer.outline_key_id)
            await self._audit.log_action(
                action=AuditAction.UNLOCK,
                customer_id=customer.id,
                meta={"outlineKeyId": customer.outline_key_id, "dataLimit": None},
            )
            return customer

    async def update_customer(self, customer_id: str, **fields: Any) -> Customer:
        changes = validate_customer_update(**fields)
        async with self._exclusive(customer_id):
            customer = await self._load(customer_id)
            before = {"name": customer.name, "phone": customer.phone}

            new_name = changes.get("name", customer.name)
            if customer.is_active and new_name != customer.name:
                await self._keys.rename_access_key(customer.outline_key_id, new_name)

            customer.name = new_name
            if "phone" in changes:
                customer.phone = changes["phone"]
            customer = await self._repository.update(customer)

            await self._audit.log_action(
                action=AuditAction.UPDATE,
                customer_id=customer.id,
                meta={"before": before, "after": {"name": customer.name, "phone": customer.phone}},
            )
            return customer
