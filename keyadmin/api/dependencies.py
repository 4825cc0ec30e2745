"""FastAPI dependency injection: lock backend, Outline client, repositories, CustomerService, session."""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from keyadmin.application.customer_repository import CustomerRepository, KeyManager
from keyadmin.application.customer_service import CustomerService
from keyadmin.application.exceptions import ConfigurationError
from keyadmin.config.settings import AppSettings, get_settings
from keyadmin.governance.audit_logger import AuditLogger
from keyadmin.infrastructure.cache.memory_lock_backend import InMemoryLockBackend
from keyadmin.infrastructure.cache.redis_client import RedisClient
from keyadmin.infrastructure.database.audit_repository_db import DbAuditRepository
from keyadmin.infrastructure.database.customer_repository_db import DbCustomerRepository
from keyadmin.infrastructure.database.session import get_db
from keyadmin.infrastructure.outline.client import OutlineClient
from keyadmin.scalability.distributed_lock import DistributedLock, LockBackend
from keyadmin.security import (
    AuthError,
    SessionPayload,
    read_session_token,
    verify_cron_secret,
    verify_session_token,
)


@lru_cache
def get_lock_backend() -> LockBackend:
    """Redis when configured, otherwise an in-process backend (single worker only)."""
    settings = get_settings()
    if settings.redis_url:
        return RedisClient(settings.redis_url)
    logging.getLogger(__name__).warning("redis_url_unset_using_in_memory_locks")
    return InMemoryLockBackend()


@lru_cache
def get_distributed_lock() -> DistributedLock:
    return DistributedLock(get_lock_backend())


@lru_cache
def get_outline_client() -> OutlineClient:
    """Process-wide client, built on first use. Not cached while configuration is missing."""
    settings = get_settings()
    if not settings.outline_api_url:
        raise ConfigurationError("OUTLINE_API_URL is not set")
    return OutlineClient(settings.outline_api_url, cert_sha256=settings.outline_cert_sha256)


class _DeferredKeyManager:
    """Resolves the Outline client on the first remote call, so read-only routes work without it."""

    def __getattr__(self, name: str):
        return getattr(get_outline_client(), name)


def get_key_manager() -> KeyManager:
    return _DeferredKeyManager()


async def get_customer_repository(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CustomerRepository:
    return DbCustomerRepository(db)


async def get_audit_logger(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuditLogger:
    return AuditLogger(DbAuditRepository(db))


async def get_customer_service(
    repository: Annotated[CustomerRepository, Depends(get_customer_repository)],
    key_manager: Annotated[KeyManager, Depends(get_key_manager)],
    audit_logger: Annotated[AuditLogger, Depends(get_audit_logger)],
    lock: Annotated[DistributedLock, Depends(get_distributed_lock)],
    settings: Annotated[AppSettings, Depends(get_settings)],
) -> CustomerService:
    """Build CustomerService with injected repository, key manager, audit logger, lock, logger."""
    return CustomerService(
        repository=repository,
        key_manager=key_manager,
        audit_logger=audit_logger,
        lock=lock,
        logger=logging.getLogger("keyadmin.customers"),
        lock_ttl_seconds=settings.customer_lock_ttl_seconds,
    )


def require_session(
    request: Request,
    settings: Annotated[AppSettings, Depends(get_settings)],
) -> SessionPayload:
    """Route-level session check; same verification as GatekeeperMiddleware."""
    if not settings.session_secret:
        raise ConfigurationError("Server misconfigured")
    session = verify_session_token(read_session_token(request), settings.session_secret)
    if session is None:
        raise AuthError("Unauthorized")
    return session


def require_cron_or_session(
    request: Request,
    settings: Annotated[AppSettings, Depends(get_settings)],
    x_cron_secret: Annotated[str | None, Header(alias="x-cron-secret")] = None,
) -> None:
    if verify_cron_secret(x_cron_secret, settings.cron_secret):
        return
    require_session(request, settings)


def get_correlation_id(request: Request) -> str:
    """Extract correlation_id from request.state (set by middleware)."""
    return getattr(request.state, "correlation_id", "") or ""
