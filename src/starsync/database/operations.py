"""Database operations and repository classes."""

from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from .models import CacheEntryModel, SyncRunModel, SyncMode, SyncStatus
from ..utils.logging import get_logger


logger = get_logger("database.operations")


class CacheEntryRepository:
    """Repository for identity cache entries."""

    def __init__(self, session: Session):
        self.session = session

    def get_namespace(self, namespace: str) -> Dict[str, str]:
        """Return every key/value stored under a namespace."""
        rows = (
            self.session.query(CacheEntryModel)
            .filter(CacheEntryModel.namespace == namespace)
            .all()
        )
        return {row.key: row.value for row in rows}

    def replace_namespace(self, namespace: str, mapping: Dict[str, str]) -> Dict[str, int]:
        """Make the stored namespace equal to ``mapping``.

        Unchanged rows are left alone so a flush after one new entry costs one
        insert.
        """
        rows = {
            row.key: row
            for row in self.session.query(CacheEntryModel)
            .filter(CacheEntryModel.namespace == namespace)
            .all()
        }

        inserted = updated = deleted = 0

        for key, value in mapping.items():
            row = rows.pop(key, None)
            if row is None:
                self.session.add(CacheEntryModel(namespace=namespace, key=key, value=value))
                inserted += 1
            elif row.value != value:
                row.value = value
                updated += 1

        for row in rows.values():
            self.session.delete(row)
            deleted += 1

        self.session.flush()

        return {"inserted": inserted, "updated": updated, "deleted": deleted}


class SyncRunRepository:
    """Repository for the sync run log."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        mode: SyncMode,
        status: SyncStatus,
        started_at: datetime,
        completed_at: datetime,
        records_fetched: int = 0,
        records_created: int = 0,
        records_skipped: int = 0,
        records_failed: int = 0,
        error_message: Optional[str] = None,
        duration_seconds: Optional[float] = None
    ) -> SyncRunModel:
        run = SyncRunModel(
            mode=mode.value,
            status=status.value,
            started_at=started_at,
            completed_at=completed_at,
            records_fetched=records_fetched,
            records_created=records_created,
            records_skipped=records_skipped,
            records_failed=records_failed,
            error_message=error_message,
            duration_seconds=duration_seconds
        )

        self.session.add(run)
        self.session.flush()

        logger.info("Sync run recorded", run_id=run.id, mode=run.mode, status=run.status)

        return run

    def get_recent(self, limit: int = 10) -> List[SyncRunModel]:
        return (
            self.session.query(SyncRunModel)
            .order_by(SyncRunModel.id.desc())
            .limit(limit)
            .all()
        )
