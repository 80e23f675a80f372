"""Run-level control flow for full and incremental synchronization."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .identity_cache import IdentityCache
from .retry import RetryPolicy
from .source_fetcher import SourceFetcher
from .target_writer import TargetWriter, WriteReport
from ..api_clients.base import TargetClient
from ..database.models import SyncMode, SyncStatus
from ..database.service import CacheStore
from ..utils.logging import get_logger


@dataclass
class SyncOptions:
    """Sizes and inventory retry timing used by the orchestrator."""

    page_size: int = 100
    topics_limit: int = 50
    fullsync_limit: int = 2000
    recent_count: int = 10
    inventory_policy: RetryPolicy = field(default_factory=lambda: RetryPolicy(min_delay=5.0))


@dataclass
class SyncResult:
    """Result of a sync run."""

    mode: SyncMode
    success: bool = False
    skipped: bool = False
    records_fetched: int = 0
    write_report: WriteReport = field(default_factory=WriteReport)
    error_message: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    sync_duration: Optional[float] = None

    @property
    def status(self) -> SyncStatus:
        if not self.success:
            return SyncStatus.FAILED
        if self.skipped:
            return SyncStatus.SKIPPED
        if self.write_report.degraded:
            return SyncStatus.DEGRADED
        return SyncStatus.COMPLETED


class SyncOrchestrator:
    """Composes fetching, hydration and writing into sync runs."""

    def __init__(
        self,
        fetcher: SourceFetcher,
        writer: TargetWriter,
        cache: IdentityCache,
        target: TargetClient,
        options: Optional[SyncOptions] = None,
        store: Optional[CacheStore] = None
    ):
        """Initialize the orchestrator.

        Args:
            fetcher: Source fetcher
            writer: Target writer sharing ``cache``
            cache: Identity cache owned by this orchestrator
            target: Target collaborator, used for the inventory scan
            options: Run sizes and inventory retry timing
            store: Optional CacheStore receiving one run log entry per run
        """
        self.fetcher = fetcher
        self.writer = writer
        self.cache = cache
        self.target = target
        self.options = options or SyncOptions()
        self.store = store
        self.logger = get_logger(self.__class__.__name__)

    async def run(self, mode: SyncMode) -> SyncResult:
        """Run one sync in the given mode and record it.

        Raises:
            FetchError: If the source or the target inventory cannot be read
        """
        mode = SyncMode(mode)
        result = SyncResult(mode=mode)

        self.logger.info("Starting sync run", mode=mode.value, cached=len(self.cache))

        try:
            cache_was_empty = self.cache.is_empty
            await self.cache.hydrate_from_target(self.target, self.options.inventory_policy)

            if mode == SyncMode.FULL:
                await self._full_sync(result, cache_was_empty)
            else:
                await self._incremental_sync(result)

            result.success = True

        except Exception as e:
            result.error_message = str(e)
            self.logger.error("Sync run failed", mode=mode.value, error=result.error_message)
            raise

        finally:
            result.completed_at = datetime.now(timezone.utc)
            result.sync_duration = (result.completed_at - result.started_at).total_seconds()
            await self._record_run(result)

            self.logger.info(
                "Sync run finished",
                mode=mode.value,
                status=result.status.value,
                fetched=result.records_fetched,
                created=len(result.write_report.created),
                skipped=len(result.write_report.skipped),
                failed=len(result.write_report.failed),
                duration=f"{result.sync_duration:.2f}s"
            )

        return result

    async def full_sync(self) -> SyncResult:
        return await self.run(SyncMode.FULL)

    async def incremental_sync(self) -> SyncResult:
        return await self.run(SyncMode.INCREMENTAL)

    async def _full_sync(self, result: SyncResult, cache_was_empty: bool):
        if not cache_was_empty:
            self.logger.info("Skipped full sync, identity cache already populated", cached=len(self.cache))
            result.skipped = True
            return

        fetched = await self.fetcher.fetch_all_from_start(
            self.options.page_size,
            self.options.topics_limit,
            self.options.fullsync_limit
        )
        result.records_fetched = len(fetched.records)

        self.logger.info(
            "Full fetch position",
            rounds=fetched.rounds,
            cursor=fetched.cursor.end_cursor,
            has_next_page=fetched.cursor.has_next_page
        )

        result.write_report = await self.writer.create_missing(fetched.records)

    async def _incremental_sync(self, result: SyncResult):
        records = await self.fetcher.fetch_most_recent(
            self.options.recent_count,
            self.options.topics_limit
        )
        result.records_fetched = len(records)
        result.write_report = await self.writer.create_missing(records)

    async def _record_run(self, result: SyncResult):
        """Write the run to the run log without masking the run's own outcome."""
        if self.store is None:
            return

        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, lambda: self.store.record_sync_run(
                mode=result.mode,
                status=result.status,
                started_at=result.started_at,
                completed_at=result.completed_at,
                records_fetched=result.records_fetched,
                records_created=len(result.write_report.created),
                records_skipped=len(result.write_report.skipped),
                records_failed=len(result.write_report.failed),
                error_message=result.error_message,
                duration_seconds=result.sync_duration
            ))
        except Exception as e:
            self.logger.warning("Failed to record sync run", mode=result.mode.value, error=str(e))
