"""SQLAlchemy table metadata for the document-record store."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
    orm,
)

from driververify.domain.model import DriverVerificationStatus, StatusKind

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _utcnow() -> datetime:
    return datetime.now(UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# ``payload`` keeps the profile's nested document maps (``driver.documents`` and the
# root ``documents``) in the shape the mobile clients write them.
driver_profile_table = Table(
    "driver_profiles",
    mapper_registry.metadata,
    Column("driver_id", String, primary_key=True),
    Column("user_type", String, nullable=False, default="driver"),
    Column("display_name", String, nullable=True),
    Column("payload", JSON, nullable=False, default=dict),
    Column("created_at", UTCDateTime(), nullable=False, default=_utcnow),
    Column("updated_at", UTCDateTime(), nullable=False, default=_utcnow, onupdate=_utcnow),
)

verification_request_table = Table(
    "verification_requests",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("driver_id", String, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False, default=_utcnow),
    Column("status", String, nullable=True),
    Column("documents", JSON, nullable=False, default=dict),
    Index("ix_verification_requests_driver_created", "driver_id", "created_at"),
)

driver_status_table = Table(
    "driver_status",
    mapper_registry.metadata,
    Column("driver_id", String, primary_key=True),
    Column("kind", Enum(StatusKind, native_enum=False), nullable=False),
    Column("value", Enum(DriverVerificationStatus, native_enum=False), nullable=False),
    Column("set_by", String, nullable=True),
    Column("set_at", UTCDateTime(), nullable=True),
    Column("reason", Text, nullable=True),
    Column("updated_at", UTCDateTime(), nullable=False, default=_utcnow, onupdate=_utcnow),
)

driver_status_event_table = Table(
    "driver_status_events",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("driver_id", String, nullable=False),
    Column("event", String, nullable=False),
    Column("kind", Enum(StatusKind, native_enum=False), nullable=False),
    Column("value", Enum(DriverVerificationStatus, native_enum=False), nullable=False),
    Column("actor", String, nullable=False),
    Column("reason", Text, nullable=True),
    Column("recorded_at", UTCDateTime(), nullable=False, default=_utcnow),
    Index("ix_driver_status_events_driver", "driver_id", "recorded_at"),
)


def create_all_tables(engine: Engine) -> None:
    mapper_registry.metadata.create_all(engine, checkfirst=True)
