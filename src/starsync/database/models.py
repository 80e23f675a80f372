"""Database models for the identity cache and the run log."""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, Float, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base


Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncMode(str, Enum):
    """Synchronization modes."""
    FULL = "full"
    INCREMENTAL = "incremental"


class SyncStatus(str, Enum):
    """Outcome of a sync run."""
    COMPLETED = "completed"
    DEGRADED = "degraded"
    FAILED = "failed"
    SKIPPED = "skipped"


class CacheEntryModel(Base):
    """One natural key to target record mapping."""

    __tablename__ = "cache_entries"
    __table_args__ = (
        UniqueConstraint("namespace", "key", name="uq_cache_entries_namespace_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    namespace = Column(String(100), nullable=False, index=True)
    key = Column(String(500), nullable=False)
    value = Column(String(255), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<CacheEntryModel(namespace='{self.namespace}', key='{self.key}', value='{self.value}')>"


class SyncRunModel(Base):
    """Log of one sync run."""

    __tablename__ = "sync_runs"

    id = Column(Integer, primary_key=True, index=True)
    mode = Column(String(20), nullable=False, index=True)
    status = Column(String(20), nullable=False)

    started_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    records_fetched = Column(Integer, default=0, nullable=False)
    records_created = Column(Integer, default=0, nullable=False)
    records_skipped = Column(Integer, default=0, nullable=False)
    records_failed = Column(Integer, default=0, nullable=False)

    error_message = Column(Text, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    def __repr__(self):
        return f"<SyncRunModel(id={self.id}, mode='{self.mode}', status='{self.status}')>"
