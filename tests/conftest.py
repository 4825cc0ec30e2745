"""Shared fixtures: test settings, in-memory repositories, mock key manager, CustomerService."""

import os

from tests.factories import ADMIN_PASSWORD, CRON_SECRET

# Settings are read on first use; set them before anything imports keyadmin.main.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("ADMIN_PASSWORD", ADMIN_PASSWORD)
os.environ.setdefault("CRON_SECRET", CRON_SECRET)
os.environ.setdefault("OUTLINE_API_URL", "https://outline.test/secret-path")
os.environ.setdefault("OUTLINE_CERT_SHA256", "AA" * 32)

import itertools
from unittest.mock import AsyncMock, MagicMock

import pytest

from keyadmin.application.customer_repository import AccessKey
from keyadmin.application.customer_service import CustomerService
from keyadmin.governance.audit_logger import AuditLogger
from keyadmin.infrastructure.cache.memory_lock_backend import InMemoryLockBackend
from keyadmin.scalability.distributed_lock import DistributedLock
from tests.factories import NOW, FakeAuditRepository, FakeCustomerRepository


@pytest.fixture
def customer_repository():
    return FakeCustomerRepository()


@pytest.fixture
def audit_repository():
    return FakeAuditRepository()


@pytest.fixture
def key_manager():
    """AsyncMock KeyManager; every create returns a fresh key id."""
    counter = itertools.count(1)
    km = AsyncMock()

    def _create():
        n = next(counter)
        return AccessKey(id=f"new-{n}", access_url=f"ss://new-{n}")

    km.create_access_key = AsyncMock(side_effect=_create)
    km.rename_access_key = AsyncMock(return_value=None)
    km.delete_access_key = AsyncMock(return_value=None)
    km.set_data_limit = AsyncMock(return_value=None)
    km.remove_data_limit = AsyncMock(return_value=None)
    return km


@pytest.fixture
def lock_backend():
    return InMemoryLockBackend()


@pytest.fixture
def distributed_lock(lock_backend):
    return DistributedLock(backend=lock_backend)


@pytest.fixture
def logger():
    return MagicMock()


@pytest.fixture
def customer_service(customer_repository, key_manager, audit_repository, distributed_lock, logger):
    return CustomerService(
        repository=customer_repository,
        key_manager=key_manager,
        audit_logger=AuditLogger(repository=audit_repository),
        lock=distributed_lock,
        logger=logger,
        clock=lambda: NOW,
    )
