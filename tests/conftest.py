"""Shared fakes for the source, target and durable store."""

import asyncio
from typing import Dict, List, Optional, Set

import pytest

from starsync.api_clients.base import (
    SourceClient, TargetClient, RepositoryRecord, ExistingRecord, InventoryPage,
    APIConnectionError, RateLimitError
)
from starsync.core.retry import RetryPolicy


NO_WAIT = RetryPolicy(max_attempts=3, backoff_factor=2.0, min_delay=0.0)


def make_edge(name: str, starred_at: str = "2024-01-01T00:00:00Z", topics: Optional[List[str]] = None) -> Dict:
    return {
        "starredAt": starred_at,
        "node": {
            "nameWithOwner": name,
            "url": f"https://github.com/{name}",
            "description": f"{name} description",
            "primaryLanguage": {"name": "Python"},
            "repositoryTopics": {"nodes": [{"topic": {"name": t}} for t in (topics or [])]},
            "updatedAt": "2024-02-01T00:00:00Z",
            "stargazerCount": 42,
        },
    }


def make_record(name: str) -> RepositoryRecord:
    return RepositoryRecord(name_with_owner=name, url=f"https://github.com/{name}")


class FakeSource(SourceClient):
    """Serves a fixed starred list with opaque integer-offset cursors."""

    def __init__(self, names: List[str], fail_times: int = 0):
        super().__init__()
        self.names = names
        self.fail_times = fail_times
        self.page_calls: List[Dict] = []
        self.tail_calls: List[Dict] = []

    def _maybe_fail(self):
        if self.fail_times > 0:
            self.fail_times -= 1
            raise APIConnectionError("source unavailable")

    async def query_starred(self, cursor, page_size, topic_limit):
        self.page_calls.append({"cursor": cursor, "page_size": page_size, "topic_limit": topic_limit})
        self._maybe_fail()
        start = int(cursor) if cursor else 0
        end = min(start + page_size, len(self.names))
        return {
            "pageInfo": {
                "startCursor": str(start),
                "endCursor": str(end),
                "hasNextPage": end < len(self.names),
            },
            "edges": [make_edge(name) for name in self.names[start:end]],
        }

    async def query_last_starred(self, count, topic_limit):
        self.tail_calls.append({"count": count, "topic_limit": topic_limit})
        self._maybe_fail()
        return {
            "pageInfo": {"startCursor": None, "endCursor": None, "hasNextPage": False},
            "edges": [make_edge(name) for name in self.names[-count:]],
        }


class FakeTarget(TargetClient):
    """Records creations, tracks concurrency and fails selected keys."""

    def __init__(
        self,
        existing: Optional[Dict[str, str]] = None,
        inventory_page_size: int = 2,
        failing_keys: Optional[Set[str]] = None,
        flaky_keys: Optional[Dict[str, int]] = None,
        delay: float = 0.0
    ):
        super().__init__()
        self.existing = dict(existing or {})
        self.inventory_page_size = inventory_page_size
        self.failing_keys = set(failing_keys or ())
        self.flaky_keys = dict(flaky_keys or {})
        self.delay = delay
        self.created: List[str] = []
        self.create_attempts: Dict[str, int] = {}
        self.inventory_calls: List[Optional[str]] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    async def query_existing(self, cursor):
        self.inventory_calls.append(cursor)
        items = [ExistingRecord(key=k, record_id=v) for k, v in self.existing.items()]
        start = int(cursor) if cursor else 0
        end = start + self.inventory_page_size
        return InventoryPage(
            items=items[start:end],
            next_cursor=str(end) if end < len(items) else None,
            has_more=end < len(items),
        )

    async def create_record(self, record):
        key = record.key
        self.create_attempts[key] = self.create_attempts.get(key, 0) + 1
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if key in self.failing_keys:
                raise RateLimitError(f"rate limited writing {key}")
            if self.flaky_keys.get(key, 0) > 0:
                self.flaky_keys[key] -= 1
                raise APIConnectionError(f"transient failure writing {key}")
            record_id = f"page-{key}"
            self.created.append(key)
            self.existing[key] = record_id
            return record_id
        finally:
            self.in_flight -= 1


class FakeStore:
    """In-memory stand-in for CacheStore."""

    def __init__(self, initial: Optional[Dict[str, Dict[str, str]]] = None):
        self.data = {ns: dict(m) for ns, m in (initial or {}).items()}
        self.save_calls = 0
        self.runs: List[Dict] = []

    def load(self, namespace):
        return dict(self.data.get(namespace, {}))

    def save(self, namespace, mapping):
        self.save_calls += 1
        self.data[namespace] = dict(mapping)

    def record_sync_run(self, **kwargs):
        self.runs.append(kwargs)
        return len(self.runs)


@pytest.fixture
def no_wait_policy():
    return NO_WAIT


@pytest.fixture
def fake_store():
    return FakeStore()
