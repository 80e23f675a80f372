"""Batch processing with bounded in-flight work."""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

from ..utils.logging import get_logger


T = TypeVar('T')


@dataclass
class BatchResult:
    """Result of a batch processing operation."""

    total_items: int
    successful_items: int
    failed_items: int
    processing_time: float
    batch_size: int
    batches: int
    errors: List[str] = field(default_factory=list)
    results: List[Any] = field(default_factory=list)


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    """Split ``items`` into consecutive lists of at most ``size`` elements."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchProcessor:
    """Runs one coroutine per item, batch by batch.

    Items of a batch run concurrently; the next batch starts once every item
    of the current one has settled, so at most ``batch_size`` items are in
    flight.
    """

    def __init__(self, batch_size: int = 5):
        """Initialize batch processor.

        Args:
            batch_size: Items processed concurrently per batch
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self.batch_size = batch_size
        self.logger = get_logger(self.__class__.__name__)

    async def process(
        self,
        items: Sequence[T],
        item_func: Callable[[T], Awaitable[Any]],
        batch_size: Optional[int] = None
    ) -> BatchResult:
        """Process ``items`` with ``item_func``.

        An item whose coroutine raises is counted as failed; it never stops
        its siblings or later batches.

        Returns:
            BatchResult with per-item results in input order (the exception
            object for failed items)
        """
        batch_size = batch_size or self.batch_size
        batches = chunk(items, batch_size)
        start_time = time.time()

        successful_items = 0
        failed_items = 0
        errors: List[str] = []
        results: List[Any] = []

        for batch_index, batch in enumerate(batches):
            batch_results = await asyncio.gather(
                *(item_func(item) for item in batch),
                return_exceptions=True
            )

            for item_result in batch_results:
                if isinstance(item_result, asyncio.CancelledError):
                    raise item_result
                if isinstance(item_result, Exception):
                    failed_items += 1
                    errors.append(str(item_result))
                else:
                    successful_items += 1
                results.append(item_result)

            self.logger.debug(
                "Batch settled",
                batch_index=batch_index,
                batch_size=len(batch),
                total_batches=len(batches)
            )

        return BatchResult(
            total_items=len(items),
            successful_items=successful_items,
            failed_items=failed_items,
            processing_time=time.time() - start_time,
            batch_size=batch_size,
            batches=len(batches),
            errors=errors,
            results=results
        )
