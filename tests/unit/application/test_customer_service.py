"""Unit tests for CustomerService: lifecycle, compensation, sweep, locking."""

from datetime import datetime, timedelta, timezone

import pytest

from keyadmin.application.exceptions import CustomerBusyError, UpstreamError
from keyadmin.domain.exceptions import (
    ConflictError,
    CustomerNotFoundError,
    DomainValidationError,
    InvalidStatusTransitionError,
)
from keyadmin.domain.models.customer import CustomerStatus
from tests.factories import NOW, make_customer

# Start of 2026-03-10 local time, expressed in UTC.
LOCAL_MIDNIGHT = datetime(2026, 3, 9, 17, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------

async def test_create_customer_happy_path(customer_service, customer_repository, key_manager, audit_repository):
    customer = await customer_service.create_customer("  Aung Aung ", " 0911 ", 30)

    assert customer.name == "Aung Aung"
    assert customer.phone == "0911"
    assert customer.status == CustomerStatus.ACTIVE
    assert customer.outline_key_id == "new-1"
    assert customer.outline_access_url == "ss://new-1"
    assert customer.expires_at == LOCAL_MIDNIGHT + timedelta(days=30)
    key_manager.rename_access_key.assert_awaited_once_with("new-1", "Aung Aung")
    assert customer.id in customer_repository.rows
    assert audit_repository.actions() == ["customer.create"]


@pytest.mark.parametrize("plan_days", [0, -3, 1.5, "1.5", "abc", "", True, None, float("inf")])
async def test_create_rejects_bad_plan_days_without_remote_calls(customer_service, key_manager, plan_days):
    with pytest.raises(DomainValidationError) as exc:
        await customer_service.create_customer("Name", None, plan_days)
    assert exc.value.message == "Invalid planDays"
    key_manager.create_access_key.assert_not_awaited()


@pytest.mark.parametrize("plan_days", [30, 30.0, "30", " 30 "])
async def test_create_accepts_whole_number_plan_days(customer_service, plan_days):
    customer = await customer_service.create_customer("Name", None, plan_days)
    assert customer.plan_days == 30
    assert isinstance(customer.plan_days, int)
    assert customer.expires_at == LOCAL_MIDNIGHT + timedelta(days=30)


async def test_create_requires_name(customer_service, key_manager):
    with pytest.raises(DomainValidationError, match="Name is required"):
        await customer_service.create_customer("   ", None, 30)
    key_manager.create_access_key.assert_not_awaited()


async def test_create_remote_failure_persists_nothing(customer_service, customer_repository, key_manager, audit_repository):
    key_manager.create_access_key.side_effect = UpstreamError("Outline API error 500: boom", 500, "boom")
    with pytest.raises(UpstreamError):
        await customer_service.create_customer("Name", None, 30)
    assert customer_repository.rows == {}
    assert audit_repository.records == []


# ---------------------------------------------------------------------------
# renew
# ---------------------------------------------------------------------------

async def test_renew_active_extends_from_current_expiry(customer_service, customer_repository, key_manager, audit_repository):
    customer_repository.seed(make_customer(expires_in=timedelta(days=5)))

    renewed = await customer_service.renew_customer("cust-1", 30)

    # Expiry 2026-03-15 05:00 UTC is 11:30 local; rounded to local midnight then +30 days.
    assert renewed.expires_at == LOCAL_MIDNIGHT + timedelta(days=5 + 30)
    assert renewed.outline_key_id == "new-1"
    assert renewed.plan_days == 30
    key_manager.delete_access_key.assert_awaited_once_with("key-cust-1")
    record = audit_repository.records[-1]
    assert record.action.value == "customer.renew"
    assert record.meta["oldKeyId"] == "key-cust-1"
    assert record.meta["newKeyId"] == "new-1"


async def test_renew_expired_counts_from_now_and_deletes_old_key(customer_service, customer_repository, key_manager):
    customer_repository.seed(
        make_customer(status=CustomerStatus.EXPIRED, expires_in=timedelta(days=-40))
    )

    renewed = await customer_service.renew_customer("cust-1", 7)

    assert renewed.status == CustomerStatus.ACTIVE
    assert renewed.expires_at == LOCAL_MIDNIGHT + timedelta(days=7)
    key_manager.delete_access_key.assert_awaited_once_with("key-cust-1")


@pytest.mark.parametrize("status", [CustomerStatus.EXPIRED, CustomerStatus.REVOKED])
async def test_renew_inactive_treats_missing_old_key_as_deleted(customer_service, customer_repository, key_manager, status):
    customer_repository.seed(make_customer(status=status, expires_in=timedelta(days=-3)))
    key_manager.delete_access_key.side_effect = UpstreamError("Outline API error 404: gone", 404, "gone")

    renewed = await customer_service.renew_customer("cust-1", 7)

    assert renewed.status == CustomerStatus.ACTIVE
    assert renewed.outline_key_id == "new-1"
    key_manager.delete_access_key.assert_awaited_once_with("key-cust-1")


async def test_renew_inactive_compensates_on_other_delete_failure(customer_service, customer_repository, key_manager):
    original = customer_repository.seed(make_customer(status=CustomerStatus.EXPIRED, expires_in=timedelta(days=-3)))
    key_manager.delete_access_key.side_effect = [UpstreamError("Outline API error 500: old", 500), None]

    with pytest.raises(UpstreamError, match="old"):
        await customer_service.renew_customer("cust-1", 7)

    assert [c.args[0] for c in key_manager.delete_access_key.await_args_list] == ["key-cust-1", "new-1"]
    stored = customer_repository.rows["cust-1"]
    assert stored.status == CustomerStatus.EXPIRED
    assert stored.outline_key_id == original.outline_key_id


async def test_renew_active_does_not_ignore_missing_old_key(customer_service, customer_repository, key_manager):
    customer_repository.seed(make_customer())
    key_manager.delete_access_key.side_effect = [UpstreamError("Outline API error 404: gone", 404), None]

    with pytest.raises(UpstreamError):
        await customer_service.renew_customer("cust-1", 30)
    assert customer_repository.rows["cust-1"].outline_key_id == "key-cust-1"


async def test_renew_after_failed_sweep_deletion_removes_leftover_key(customer_service, customer_repository, key_manager):
    customer_repository.seed(make_customer(expires_in=timedelta(days=-1)))
    key_manager.delete_access_key.side_effect = [UpstreamError("Outline API request failed: timeout"), None]

    swept = await customer_service.expire_overdue(NOW)
    assert swept.failed == 1
    assert customer_repository.rows["cust-1"].status == CustomerStatus.EXPIRED

    await customer_service.renew_customer("cust-1", 30)

    deleted = [c.args[0] for c in key_manager.delete_access_key.await_args_list]
    assert deleted == ["key-cust-1", "key-cust-1"]


@pytest.mark.parametrize("requested", [None, 0, -1, "abc", 2.5])
async def test_renew_falls_back_to_stored_plan_days(customer_service, customer_repository, requested):
    customer_repository.seed(make_customer(status=CustomerStatus.REVOKED, plan_days=14))
    renewed = await customer_service.renew_customer("cust-1", requested)
    assert renewed.plan_days == 14
    assert renewed.expires_at == LOCAL_MIDNIGHT + timedelta(days=14)


async def test_renew_compensates_when_old_key_delete_fails(customer_service, customer_repository, key_manager, audit_repository):
    original = customer_repository.seed(make_customer())
    key_manager.delete_access_key.side_effect = [UpstreamError("Outline API error 500: old", 500), None]

    with pytest.raises(UpstreamError, match="old"):
        await customer_service.renew_customer("cust-1", 30)

    assert [c.args[0] for c in key_manager.delete_access_key.await_args_list] == ["key-cust-1", "new-1"]
    stored = customer_repository.rows["cust-1"]
    assert stored.outline_key_id == original.outline_key_id
    assert stored.expires_at == original.expires_at
    assert audit_repository.records == []


async def test_renew_compensation_failure_does_not_mask_original(customer_service, customer_repository, key_manager, logger):
    customer_repository.seed(make_customer())
    key_manager.delete_access_key.side_effect = [
        UpstreamError("Outline API error 500: old", 500),
        UpstreamError("Outline API error 500: new", 500),
    ]

    with pytest.raises(UpstreamError, match="old"):
        await customer_service.renew_customer("cust-1", 30)
    logger.error.assert_called_once()
    assert logger.error.call_args[0][0] == "renew_compensation_failed"


async def test_renew_missing_customer(customer_service):
    with pytest.raises(CustomerNotFoundError):
        await customer_service.renew_customer("nope", 30)


# ---------------------------------------------------------------------------
# revoke
# ---------------------------------------------------------------------------

async def test_revoke_active(customer_service, customer_repository, key_manager, audit_repository):
    customer_repository.seed(make_customer())
    revoked = await customer_service.revoke_customer("cust-1")
    assert revoked.status == CustomerStatus.REVOKED
    key_manager.delete_access_key.assert_awaited_once_with("key-cust-1")
    assert audit_repository.actions() == ["customer.revoke"]


async def test_revoke_requires_active(customer_service, customer_repository, key_manager):
    customer_repository.seed(make_customer(status=CustomerStatus.EXPIRED))
    with pytest.raises(InvalidStatusTransitionError):
        await customer_service.revoke_customer("cust-1")
    key_manager.delete_access_key.assert_not_awaited()


async def test_revoke_remote_failure_leaves_record_active(customer_service, customer_repository, key_manager):
    customer_repository.seed(make_customer())
    key_manager.delete_access_key.side_effect = UpstreamError("Outline API error 404: gone", 404)
    with pytest.raises(UpstreamError):
        await customer_service.revoke_customer("cust-1")
    assert customer_repository.rows["cust-1"].status == CustomerStatus.ACTIVE


# ---------------------------------------------------------------------------
# expiry sweep
# ---------------------------------------------------------------------------

async def test_sweep_partial_failure(customer_service, customer_repository, key_manager, audit_repository):
    customer_repository.seed(make_customer("a", expires_in=timedelta(days=-1)))
    customer_repository.seed(make_customer("b", expires_in=timedelta(days=-2)))
    customer_repository.seed(make_customer("c", expires_in=timedelta(0)))
    customer_repository.seed(make_customer("fresh", expires_in=timedelta(days=3)))

    def _delete(key_id):
        if key_id == "key-b":
            raise UpstreamError("Outline API error 500: nope", 500)

    key_manager.delete_access_key.side_effect = _delete

    result = await customer_service.expire_overdue(NOW)

    assert (result.checked, result.revoked, result.failed, result.skipped) == (3, 2, 1, 0)
    assert len(customer_repository.mark_expired_calls) == 1
    assert sorted(customer_repository.mark_expired_calls[0]) == ["a", "b", "c"]
    for customer_id in ("a", "b", "c"):
        assert customer_repository.rows[customer_id].status == CustomerStatus.EXPIRED
    assert customer_repository.rows["fresh"].status == CustomerStatus.ACTIVE
    deleted = {r.customer_id: r.meta["keyDeleted"] for r in audit_repository.records}
    assert deleted == {"a": True, "b": False, "c": True}


async def test_sweep_is_idempotent(customer_service, customer_repository, key_manager):
    customer_repository.seed(make_customer(expires_in=timedelta(days=-1)))
    await customer_service.expire_overdue(NOW)
    second = await customer_service.expire_overdue(NOW)
    assert (second.checked, second.revoked, second.failed) == (0, 0, 0)
    assert key_manager.delete_access_key.await_count == 1


async def test_sweep_skips_customer_held_by_another_operation(customer_service, customer_repository, distributed_lock, key_manager):
    customer_repository.seed(make_customer(expires_in=timedelta(days=-1)))
    assert await distributed_lock.acquire("customer:cust-1", ttl=60) is not None

    result = await customer_service.expire_overdue(NOW)

    assert (result.checked, result.revoked, result.skipped) == (1, 0, 1)
    key_manager.delete_access_key.assert_not_awaited()
    assert customer_repository.rows["cust-1"].status == CustomerStatus.ACTIVE


async def test_sweep_with_nothing_due(customer_service, customer_repository):
    result = await customer_service.expire_overdue(NOW)
    assert (result.checked, result.revoked, result.failed) == (0, 0, 0)
    assert customer_repository.mark_expired_calls == []


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------

async def test_delete_active_unexpired_is_conflict(customer_service, customer_repository, key_manager):
    customer_repository.seed(make_customer())
    with pytest.raises(ConflictError, match="Only expired plans can be deleted"):
        await customer_service.delete_customer("cust-1")
    key_manager.delete_access_key.assert_not_awaited()
    assert "cust-1" in customer_repository.rows


async def test_delete_active_but_past_expiry(customer_service, customer_repository):
    customer_repository.seed(make_customer(expires_in=timedelta(hours=-1)))
    await customer_service.delete_customer("cust-1")
    assert customer_repository.rows == {}


async def test_delete_tolerates_remote_failure(customer_service, customer_repository, key_manager, audit_repository):
    customer_repository.seed(make_customer(status=CustomerStatus.EXPIRED))
    key_manager.delete_access_key.side_effect = UpstreamError("Outline API error 404: missing", 404)

    await customer_service.delete_customer("cust-1")

    assert customer_repository.rows == {}
    assert audit_repository.actions() == ["customer.delete"]


async def test_delete_missing(customer_service):
    with pytest.raises(CustomerNotFoundError):
        await customer_service.delete_customer("nope")


# ---------------------------------------------------------------------------
# lock / unlock / update
# ---------------------------------------------------------------------------

async def test_lock_sets_zero_data_limit(customer_service, customer_repository, key_manager, audit_repository):
    customer_repository.seed(make_customer())
    await customer_service.lock_customer("cust-1")
    key_manager.set_data_limit.assert_awaited_once_with("key-cust-1", 0)
    assert audit_repository.actions() == ["customer.lock"]


async def test_unlock_removes_data_limit(customer_service, customer_repository, key_manager, audit_repository):
    customer_repository.seed(make_customer())
    await customer_service.unlock_customer("cust-1")
    key_manager.remove_data_limit.assert_awaited_once_with("key-cust-1")
    assert audit_repository.actions() == ["customer.unlock"]


@pytest.mark.parametrize("status", [CustomerStatus.EXPIRED, CustomerStatus.REVOKED])
async def test_lock_requires_active(customer_service, customer_repository, key_manager, status):
    customer_repository.seed(make_customer(status=status))
    with pytest.raises(ConflictError):
        await customer_service.lock_customer("cust-1")
    key_manager.set_data_limit.assert_not_awaited()


async def test_update_renames_remote_key(customer_service, customer_repository, key_manager, audit_repository):
    customer_repository.seed(make_customer(name="Old"))
    updated = await customer_service.update_customer("cust-1", name=" New ")
    assert updated.name == "New"
    assert updated.phone == "0912345678"
    key_manager.rename_access_key.assert_awaited_once_with("key-cust-1", "New")
    meta = audit_repository.records[-1].meta
    assert meta == {
        "before": {"name": "Old", "phone": "0912345678"},
        "after": {"name": "New", "phone": "0912345678"},
    }


async def test_update_phone_only_skips_remote(customer_service, customer_repository, key_manager):
    customer_repository.seed(make_customer())
    updated = await customer_service.update_customer("cust-1", phone="")
    assert updated.phone is None
    key_manager.rename_access_key.assert_not_awaited()


async def test_update_requires_a_field(customer_service, customer_repository):
    customer_repository.seed(make_customer())
    with pytest.raises(DomainValidationError, match="Nothing to update"):
        await customer_service.update_customer("cust-1")


async def test_update_rejects_blank_name(customer_service, customer_repository):
    customer_repository.seed(make_customer())
    with pytest.raises(DomainValidationError, match="Name is required"):
        await customer_service.update_customer("cust-1", name="  ")


# ---------------------------------------------------------------------------
# concurrency and reads
# ---------------------------------------------------------------------------

async def test_concurrent_operation_on_same_customer_is_busy(customer_service, customer_repository, distributed_lock, key_manager):
    customer_repository.seed(make_customer())
    token = await distributed_lock.acquire("customer:cust-1", ttl=60)
    assert token is not None

    with pytest.raises(CustomerBusyError):
        await customer_service.renew_customer("cust-1", 30)
    key_manager.create_access_key.assert_not_awaited()

    await distributed_lock.release("customer:cust-1", token)
    await customer_service.renew_customer("cust-1", 30)


async def test_lock_is_released_after_failure(customer_service, customer_repository, key_manager):
    customer_repository.seed(make_customer())
    key_manager.set_data_limit.side_effect = UpstreamError("Outline API error 500: x", 500)
    with pytest.raises(UpstreamError):
        await customer_service.lock_customer("cust-1")
    key_manager.set_data_limit.side_effect = None
    await customer_service.lock_customer("cust-1")


async def test_list_filters_and_reports_stored_status(customer_service, customer_repository):
    customer_repository.seed(make_customer("a", name="Alice", expires_in=timedelta(days=-1)))
    customer_repository.seed(make_customer("b", name="Bob", status=CustomerStatus.REVOKED))

    everyone = await customer_service.list_customers()
    assert {c.id: c.status for c in everyone} == {
        "a": CustomerStatus.ACTIVE,
        "b": CustomerStatus.REVOKED,
    }
    assert [c.id for c in await customer_service.list_customers(search=" ali ")] == ["a"]
    assert [c.id for c in await customer_service.list_customers(status=CustomerStatus.REVOKED)] == ["b"]


async def test_summarize_counts_statuses(customer_service, customer_repository):
    customer_repository.seed(make_customer("a"))
    customer_repository.seed(make_customer("b", status=CustomerStatus.EXPIRED))
    customer_repository.seed(make_customer("c", status=CustomerStatus.EXPIRED))
    assert await customer_service.summarize() == {"total": 3, "active": 1, "expired": 2, "revoked": 0}
