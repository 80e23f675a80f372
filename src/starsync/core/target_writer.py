"""Concurrency-bounded creation of missing target records."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence

from .identity_cache import IdentityCache
from .retry import RetryPolicy, retry_async
from ..api_clients.base import RepositoryRecord, TargetClient
from ..performance import BatchProcessor
from ..utils.logging import get_logger, log_async_execution_time


class WriteStatus(str, Enum):
    """Outcome of one record."""
    CREATED = "created"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class WriteReport:
    """Keys grouped by write outcome."""

    created: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.created) + len(self.skipped) + len(self.failed)

    @property
    def degraded(self) -> bool:
        return bool(self.failed)


class TargetWriter:
    """Creates target records for repositories the cache does not know."""

    def __init__(
        self,
        client: TargetClient,
        cache: IdentityCache,
        write_policy: RetryPolicy,
        batch_size: int = 5
    ):
        """Initialize the writer.

        Args:
            client: Target collaborator
            cache: Shared identity cache, updated as writes succeed
            write_policy: Retry timing for record creation
            batch_size: Maximum concurrent creations
        """
        self.client = client
        self.cache = cache
        self.write_policy = write_policy
        self.batch_processor = BatchProcessor(batch_size=batch_size)
        self.logger = get_logger(self.__class__.__name__)

    @property
    def batch_size(self) -> int:
        return self.batch_processor.batch_size

    @log_async_execution_time
    async def create_missing(self, records: Sequence[RepositoryRecord]) -> WriteReport:
        """Create a target record for every repository not yet in the cache.

        A record whose creation exhausts its retries is logged and skipped;
        the rest of the run continues.
        """
        report = WriteReport()

        unique_records = []
        seen = set()
        for record in records:
            if record.key in seen:
                report.skipped.append(record.key)
                continue
            seen.add(record.key)
            unique_records.append(record)

        pending = [record for record in unique_records if not self.cache.contains(record.key)]
        report.skipped.extend(record.key for record in unique_records if self.cache.contains(record.key))

        self.logger.info(
            "Creating missing target records",
            received=len(records),
            pending=len(pending),
            batch_size=self.batch_size
        )

        result = await self.batch_processor.process(pending, self.create_one)

        for record, status in zip(pending, result.results):
            if status == WriteStatus.CREATED:
                report.created.append(record.key)
            elif status == WriteStatus.SKIPPED:
                report.skipped.append(record.key)
            else:
                if isinstance(status, Exception):
                    self.logger.error(
                        "Unexpected error writing record",
                        repository=record.key,
                        error=str(status)
                    )
                report.failed.append(record.key)

        # Retry any flush that failed after a successful write
        if self.cache.dirty:
            await self.cache.persist()

        self.logger.info(
            "Finished creating target records",
            created=len(report.created),
            skipped=len(report.skipped),
            failed=len(report.failed)
        )

        return report

    async def create_one(self, record: RepositoryRecord) -> WriteStatus:
        """Create one record unless the cache already holds it."""
        if self.cache.contains(record.key):
            return WriteStatus.SKIPPED

        outcome = await retry_async(
            lambda: self.client.create_record(record),
            self.write_policy,
            description="create_target_record",
            repository=record.key
        )

        if not outcome.succeeded:
            self.logger.error(
                "Skipping repository after failed writes",
                repository=record.key,
                attempts=outcome.attempts,
                error=str(outcome.error)
            )
            return WriteStatus.FAILED

        self.cache.put(record.key, outcome.value)
        self.logger.info("Created target record", repository=record.key, record_id=outcome.value)

        try:
            await self.cache.persist()
        except Exception as e:
            # Entry stays in memory and dirty; flushed again after the batch
            self.logger.error("Failed to persist identity cache", repository=record.key, error=str(e))

        return WriteStatus.CREATED
