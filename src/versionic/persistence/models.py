"""
Two tables: the live state of every Record, and the snapshots of its past.
"""

import datetime as dt

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

JSONType = JSON().with_variant(JSONB(), "postgresql")


class UTCDateTime(TypeDecorator):
    """Stores UTC, hands back aware datetimes even where the backend drops tz."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=dt.timezone.utc)
        value = value.astimezone(dt.timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value.astimezone(dt.timezone.utc)


class RecordRow(Base):
    """Current state of a versioned record."""

    __tablename__ = "records"

    id = Column(Uuid(as_uuid=True), primary_key=True)
    kind = Column(String, nullable=False, index=True)
    data = Column(JSONType, nullable=False)


class SnapshotRow(Base):
    """One past state of a record, numbered per owner."""

    __tablename__ = "snapshots"
    __table_args__ = (
        UniqueConstraint("owner_id", "owner_kind", "number", name="uq_snapshot_number"),
        Index("ix_snapshot_owner_uuid_number", "owner_uuid", "number"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String, nullable=False, unique=True)
    owner_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    owner_kind = Column(String, nullable=False)
    owner_uuid = Column(String, nullable=False)
    number = Column(Integer, nullable=False)
    created_at = Column(UTCDateTime, nullable=True)
    updated_at = Column(UTCDateTime, nullable=True)
    versioned_attributes = Column(JSONType, nullable=False, default=dict)
