"""Durable key-value cache store backed by the database."""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from .database import DatabaseManager, get_db_manager
from .models import SyncMode, SyncStatus
from .operations import CacheEntryRepository, SyncRunRepository
from ..utils.logging import get_logger


logger = get_logger("database.service")


class CacheStore:
    """Namespaced key-value persistence for the identity cache and run log."""

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        self.db_manager = db_manager or get_db_manager()

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        with self.db_manager.session_scope() as session:
            yield session

    def load(self, namespace: str) -> Dict[str, str]:
        """Load every entry of a namespace."""
        with self.transaction() as session:
            mapping = CacheEntryRepository(session).get_namespace(namespace)

        logger.debug("Cache namespace loaded", namespace=namespace, count=len(mapping))
        return mapping

    def save(self, namespace: str, mapping: Dict[str, str]) -> None:
        """Replace a namespace with ``mapping``; the last save wins."""
        with self.transaction() as session:
            changes = CacheEntryRepository(session).replace_namespace(namespace, mapping)

        logger.debug("Cache namespace saved", namespace=namespace, count=len(mapping), **changes)

    def record_sync_run(
        self,
        mode: SyncMode,
        status: SyncStatus,
        started_at: datetime,
        completed_at: datetime,
        **counts: Any
    ) -> int:
        """Append one entry to the run log and return its id."""
        with self.transaction() as session:
            run = SyncRunRepository(session).create(
                mode=mode,
                status=status,
                started_at=started_at,
                completed_at=completed_at,
                **counts
            )
            return run.id

    def get_recent_runs(self, limit: int = 10) -> List[Dict[str, Any]]:
        with self.transaction() as session:
            return [
                {
                    "id": run.id,
                    "mode": run.mode,
                    "status": run.status,
                    "records_fetched": run.records_fetched,
                    "records_created": run.records_created,
                    "records_skipped": run.records_skipped,
                    "records_failed": run.records_failed,
                    "error_message": run.error_message,
                    "duration_seconds": run.duration_seconds,
                }
                for run in SyncRunRepository(session).get_recent(limit)
            ]
