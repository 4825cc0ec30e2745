"""DB-backed audit repository. Insert only."""

from sqlalchemy.ext.asyncio import AsyncSession

from keyadmin.governance.audit_models import AuditRecord
from keyadmin.infrastructure.database.models import AuditLogRecord


class DbAuditRepository:
    """Implements AuditRepository protocol."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save(self, record: AuditRecord) -> None:
        self._session.add(
            AuditLogRecord(
                action=record.action.value,
                customer_id=record.customer_id,
                meta=record.meta,
                correlation_id=record.correlation_id,
                created_at=record.timestamp_utc,
            )
        )
        await self._session.commit()
