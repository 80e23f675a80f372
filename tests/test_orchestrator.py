"""End-to-end sync runs against fake source, target and store."""

import pytest

from starsync.core import (
    FetchError, IdentityCache, SourceFetcher, SyncOptions, SyncOrchestrator, TargetWriter
)
from starsync.core.retry import RetryPolicy
from starsync.database.models import SyncMode, SyncStatus

from conftest import FakeSource, FakeStore, FakeTarget, NO_WAIT


NAMESPACE = "notion-page"


def build(source, target, store, **option_overrides):
    options = SyncOptions(
        page_size=option_overrides.get("page_size", 2),
        topics_limit=5,
        fullsync_limit=option_overrides.get("fullsync_limit", 2000),
        recent_count=option_overrides.get("recent_count", 10),
        inventory_policy=NO_WAIT
    )
    cache = IdentityCache(store, namespace=NAMESPACE)
    fetcher = SourceFetcher(source, page_policy=NO_WAIT, tail_policy=NO_WAIT)
    writer = TargetWriter(target, cache, write_policy=NO_WAIT, batch_size=5)
    return SyncOrchestrator(fetcher, writer, cache, target, options=options, store=store), cache


class TestFullSync:
    """Test full sync runs."""

    @pytest.mark.asyncio
    async def test_creates_every_starred_repository(self):
        source = FakeSource(["a/x", "a/y", "a/z"])
        target = FakeTarget()
        store = FakeStore()
        orchestrator, cache = build(source, target, store)

        result = await orchestrator.full_sync()

        assert result.success
        assert result.status == SyncStatus.COMPLETED
        assert result.records_fetched == 3
        assert sorted(target.created) == ["a/x", "a/y", "a/z"]
        assert sorted(store.data[NAMESPACE]) == ["a/x", "a/y", "a/z"]

    @pytest.mark.asyncio
    async def test_populated_cache_skips_full_sync(self):
        source = FakeSource(["a/x", "a/y"])
        target = FakeTarget()
        store = FakeStore({NAMESPACE: {"a/x": "page-1"}})
        orchestrator, _ = build(source, target, store)

        result = await orchestrator.full_sync()

        assert result.success
        assert result.skipped
        assert result.status == SyncStatus.SKIPPED
        assert source.page_calls == []
        assert target.created == []
        assert target.inventory_calls == []

    @pytest.mark.asyncio
    async def test_hydrated_records_are_not_recreated(self):
        source = FakeSource(["a/x", "a/y", "a/z"])
        target = FakeTarget(existing={"a/y": "page-y"})
        store = FakeStore()
        orchestrator, cache = build(source, target, store)

        result = await orchestrator.full_sync()

        assert result.status == SyncStatus.COMPLETED
        assert sorted(target.created) == ["a/x", "a/z"]
        assert cache.get("a/y") == "page-y"

    @pytest.mark.asyncio
    async def test_respects_full_sync_limit(self):
        source = FakeSource([f"a/{i}" for i in range(10)])
        target = FakeTarget()
        orchestrator, _ = build(source, target, FakeStore(), page_size=3, fullsync_limit=4)

        result = await orchestrator.full_sync()

        assert result.records_fetched == 4
        assert len(target.created) == 4

    @pytest.mark.asyncio
    async def test_second_full_sync_is_skipped(self):
        source = FakeSource(["a/x", "a/y"])
        target = FakeTarget()
        store = FakeStore()
        first, _ = build(source, target, store)
        await first.full_sync()

        second, _ = build(source, target, store)
        result = await second.full_sync()

        assert result.skipped
        assert sorted(target.created) == ["a/x", "a/y"]


class TestIncrementalSync:
    """Test incremental sync runs."""

    @pytest.mark.asyncio
    async def test_writes_only_uncached_recent_stars(self):
        source = FakeSource(["a/old", "a/x", "a/w"])
        target = FakeTarget()
        store = FakeStore({NAMESPACE: {"a/x": "page-x"}})
        orchestrator, cache = build(source, target, store, recent_count=2)

        result = await orchestrator.incremental_sync()

        assert result.status == SyncStatus.COMPLETED
        assert result.records_fetched == 2
        assert target.created == ["a/w"]
        assert result.write_report.skipped == ["a/x"]
        assert cache.get("a/w") == "page-a/w"

    @pytest.mark.asyncio
    async def test_empty_cache_is_hydrated_first(self):
        source = FakeSource(["a/x", "a/w"])
        target = FakeTarget(existing={"a/x": "page-x"})
        orchestrator, _ = build(source, target, FakeStore(), recent_count=2)

        result = await orchestrator.incremental_sync()

        assert target.inventory_calls == [None]
        assert target.created == ["a/w"]
        assert result.write_report.skipped == ["a/x"]

    @pytest.mark.asyncio
    async def test_write_failure_marks_run_degraded(self):
        source = FakeSource(["a/x", "a/bad"])
        target = FakeTarget(failing_keys={"a/bad"})
        store = FakeStore()
        orchestrator, _ = build(source, target, store, recent_count=2)

        result = await orchestrator.incremental_sync()

        assert result.success
        assert result.status == SyncStatus.DEGRADED
        assert result.write_report.failed == ["a/bad"]
        assert store.runs[-1]["status"] == SyncStatus.DEGRADED
        assert store.runs[-1]["records_failed"] == 1


class TestRunRecording:
    """Test run log entries and fatal errors."""

    @pytest.mark.asyncio
    async def test_successful_run_is_recorded(self):
        store = FakeStore()
        orchestrator, _ = build(FakeSource(["a/x"]), FakeTarget(), store)

        await orchestrator.run(SyncMode.INCREMENTAL)

        assert len(store.runs) == 1
        run = store.runs[0]
        assert run["mode"] == SyncMode.INCREMENTAL
        assert run["status"] == SyncStatus.COMPLETED
        assert run["records_fetched"] == 1
        assert run["records_created"] == 1
        assert run["error_message"] is None

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates_and_is_recorded(self):
        source = FakeSource(["a/x"], fail_times=10)
        target = FakeTarget()
        store = FakeStore()
        orchestrator, _ = build(source, target, store)

        with pytest.raises(FetchError):
            await orchestrator.full_sync()

        assert target.created == []
        assert store.runs[-1]["status"] == SyncStatus.FAILED
        assert store.runs[-1]["error_message"]

    @pytest.mark.asyncio
    async def test_inventory_failure_aborts_before_fetching(self):
        source = FakeSource(["a/x"])
        target = FakeTarget()

        async def broken_inventory(cursor):
            raise ConnectionError("notion down")

        target.query_existing = broken_inventory
        orchestrator, _ = build(source, target, FakeStore())

        with pytest.raises(FetchError):
            await orchestrator.incremental_sync()

        assert source.tail_calls == []

    @pytest.mark.asyncio
    async def test_run_log_failure_does_not_mask_result(self):
        store = FakeStore()

        def broken_record(**kwargs):
            raise RuntimeError("run log unavailable")

        store.record_sync_run = broken_record
        orchestrator, _ = build(FakeSource(["a/x"]), FakeTarget(), store)

        result = await orchestrator.incremental_sync()

        assert result.status == SyncStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_string_mode_is_accepted(self):
        orchestrator, _ = build(FakeSource(["a/x"]), FakeTarget(), FakeStore())

        result = await orchestrator.run("incremental")

        assert result.mode == SyncMode.INCREMENTAL


def test_default_inventory_policy():
    options = SyncOptions()

    assert options.inventory_policy == RetryPolicy(min_delay=5.0)
