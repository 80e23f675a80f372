"""Persisted natural-key to target-record mapping."""

import asyncio
from typing import Dict, Optional

from .errors import FetchError
from .retry import RetryPolicy, retry_async
from ..api_clients.base import TargetClient
from ..database.service import CacheStore
from ..utils.logging import get_logger


class IdentityCache:
    """Decides whether a repository already has a target record.

    Entries are only ever added. Mutations happen on the event loop thread;
    ``persist`` hands a snapshot to the store in the default executor.
    """

    def __init__(self, store: CacheStore, namespace: str = "notion-page"):
        """Initialize the cache and hydrate it from the store.

        Args:
            store: Durable key-value store
            namespace: Store namespace holding the entries
        """
        self.store = store
        self.namespace = namespace
        self.logger = get_logger(self.__class__.__name__)

        self._entries: Dict[str, str] = {}
        self._dirty = False
        self._persist_lock = asyncio.Lock()

        self.load_all()
        self.logger.info("Restored identity cache", namespace=namespace, count=len(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.contains(key)

    @property
    def is_empty(self) -> bool:
        return not self._entries

    @property
    def dirty(self) -> bool:
        return self._dirty

    def contains(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[str]:
        return self._entries.get(key)

    def put(self, key: str, record_id: str) -> None:
        """Insert or overwrite an entry."""
        if self._entries.get(key) != record_id:
            self._entries[key] = record_id
            self._dirty = True

    def load_all(self) -> Dict[str, str]:
        """Replace in-memory state with the stored namespace."""
        self._entries = dict(self.store.load(self.namespace))
        self._dirty = False
        return dict(self._entries)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._entries)

    async def persist(self) -> None:
        """Flush the full current mapping to the store."""
        async with self._persist_lock:
            if not self._dirty:
                return
            snapshot = dict(self._entries)
            self._dirty = False
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(None, self.store.save, self.namespace, snapshot)
            except Exception:
                self._dirty = True
                raise

        self.logger.debug("Identity cache persisted", count=len(snapshot))

    async def hydrate_from_target(self, target: TargetClient, policy: RetryPolicy) -> int:
        """Seed an empty cache from the records already in the target.

        Skipped entirely when the cache holds any entry.

        Returns:
            Number of entries discovered

        Raises:
            FetchError: If an inventory page exhausts its retries
        """
        if not self.is_empty:
            self.logger.info("Skipped target inventory scan, cache is populated", count=len(self))
            return 0

        self.logger.info("Starting target inventory scan")

        cursor: Optional[str] = None
        has_more = True
        round_number = 0
        discovered = 0

        while has_more:
            page_cursor = cursor
            outcome = await retry_async(
                lambda: target.query_existing(page_cursor),
                policy,
                description="query_target_inventory",
                cursor=page_cursor
            )
            if not outcome.succeeded:
                raise FetchError(f"Failed to scan target inventory: {outcome.error}") from outcome.error

            page = outcome.value
            for item in page.items:
                self.put(item.key, item.record_id)
            discovered += len(page.items)
            await self.persist()

            round_number += 1
            cursor = page.next_cursor
            has_more = page.has_more and bool(cursor)

            self.logger.info(
                "Scanned target inventory page",
                round=round_number,
                count=len(self),
                cursor=cursor,
                has_more=has_more
            )

        self.logger.info("Target inventory scan completed", discovered=discovered, count=len(self))
        return discovered
