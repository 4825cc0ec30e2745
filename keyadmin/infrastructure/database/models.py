# keyadmin/infrastructure/database/models.py

import uuid

from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from keyadmin.infrastructure.database.session import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in local runs).
JsonType = JSON().with_variant(JSONB(), "postgresql")


class CustomerRecord(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    plan_days = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default="ACTIVE", index=True)
    outline_key_id = Column(String, nullable=False)
    outline_access_url = Column(String, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)


class AuditLogRecord(Base):
    """Append-only. customer_id is not a foreign key; entries outlive the customer."""

    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    action = Column(String, nullable=False, index=True)
    customer_id = Column(String(36), nullable=False, index=True)
    meta = Column(JsonType, nullable=True)
    correlation_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
