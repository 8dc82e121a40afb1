"""
Unit tests for EntityCache.flush.

Tests one batched write per type, explicit deletion of pending removals and
partial-failure reporting.
"""

import logging

import pytest

from batchcache.core.exceptions import FlushError, StoreWriteError
from tests.fixtures.entities import Pool, Swap, Token


@pytest.mark.asyncio
@pytest.mark.unit
class TestFlushWrites:
    async def test_one_write_per_type(self, cache, store):
        cache.upsert([Token(id="t8"), Token(id="t9")])
        cache.upsert(Pool(id="p9", token0="t8"))

        await cache.flush()

        (token_save,) = store.calls_for("save", Token)
        (pool_save,) = store.calls_for("save", Pool)
        assert sorted(t.id for t in token_save.records) == ["t8", "t9"]
        assert [p.id for p in pool_save.records] == ["p9"]
        assert store.calls_for("save", Swap) == []

    async def test_writes_full_snapshot_not_diff(self, cache, store):
        cache.deferred_get(Token, ["t1", "t2"])
        await cache.load()
        cache.get(Token, "t1").symbol = "CHANGED"

        await cache.flush()

        (token_save,) = store.calls_for("save", Token)
        assert len(token_save.records) == 2
        assert store.stored(Token, "t1").symbol == "CHANGED"

    async def test_empty_cache_writes_nothing(self, cache, store):
        await cache.flush()

        assert store.calls == []

    async def test_flush_keeps_resident_state(self, cache):
        cache.upsert(Token(id="t9"))

        await cache.flush()

        assert cache.has(Token, "t9") is True

    async def test_sequential_mode(self, sequential_cache, store):
        sequential_cache.upsert(Token(id="t9"))
        sequential_cache.upsert(Pool(id="p9"))

        await sequential_cache.flush()

        assert len(store.calls_for("save")) == 2


@pytest.mark.asyncio
@pytest.mark.unit
class TestFlushRemovals:
    async def test_pending_removal_is_deleted_from_store(self, cache, store):
        cache.deferred_get(Token, "t1")
        await cache.load()
        cache.deferred_remove(Token, "t1")

        await cache.flush()

        (remove_call,) = store.calls_for("remove", Token)
        assert remove_call.ids == ("t1",)
        assert store.stored(Token, "t1") is None
        assert cache.pending_removals(Token) == frozenset()

    async def test_removal_without_resident_entities(self, cache, store):
        cache.deferred_remove(Swap, ["s1", "s2"])

        await cache.flush()

        assert store.calls_for("save", Swap) == []
        assert set(store.calls_for("remove", Swap)[0].ids) == {"s1", "s2"}
        assert store.tables[Swap] == {}

    async def test_removed_entity_is_not_saved(self, cache, store):
        cache.upsert([Token(id="t8"), Token(id="t9")])
        cache.deferred_remove(Token, "t8")

        await cache.flush()

        (token_save,) = store.calls_for("save", Token)
        assert [t.id for t in token_save.records] == ["t9"]

    async def test_cancelled_removal_is_saved_not_deleted(self, cache, store):
        cache.deferred_remove(Token, "t1")
        cache.upsert(Token(id="t1", symbol="AGAIN"))

        await cache.flush()

        assert store.calls_for("remove", Token) == []
        assert store.stored(Token, "t1").symbol == "AGAIN"


@pytest.mark.asyncio
@pytest.mark.unit
class TestFlushFailure:
    async def test_partial_failure_reports_both_sides(self, cache, store):
        store.fail_on("save", Pool, ConnectionError("write refused"))
        cache.upsert(Token(id="t9"))
        cache.upsert(Pool(id="p9"))

        with pytest.raises(FlushError) as exc_info:
            await cache.flush()

        error = exc_info.value
        assert [f.entity_type for f in error.failures] == [Pool]
        assert error.persisted == [Token]
        assert error.details["failed"] == ["Pool"]
        assert error.details["persisted"] == ["Token"]
        assert isinstance(error.failures[0], StoreWriteError)
        assert isinstance(error.failures[0].__cause__, ConnectionError)

    async def test_other_types_still_persist(self, cache, store):
        store.fail_on("save", Pool, ConnectionError("write refused"))
        cache.upsert(Token(id="t9"))
        cache.upsert(Pool(id="p9"))

        with pytest.raises(FlushError):
            await cache.flush()

        assert store.stored(Token, "t9") is not None
        assert store.stored(Pool, "p9") is None

    async def test_resident_not_rolled_back(self, cache, store):
        store.fail_on("save", Token, ConnectionError("write refused"))
        cache.upsert(Token(id="t9"))

        with pytest.raises(FlushError):
            await cache.flush()

        assert cache.has(Token, "t9") is True
        assert cache.metrics.errors == 1

    async def test_failed_removal_stays_pending(self, cache, store):
        store.fail_on("remove", Token, ConnectionError("delete refused"))
        cache.deferred_remove(Token, "t1")

        with pytest.raises(FlushError) as exc_info:
            await cache.flush()

        assert exc_info.value.failures[0].operation == "flush:remove"
        assert cache.pending_removals(Token) == frozenset({"t1"})

    async def test_flush_is_retryable(self, cache, store):
        store.fail_on("save", Token, ConnectionError("write refused"))
        cache.upsert(Token(id="t9"))
        with pytest.raises(FlushError) as exc_info:
            await cache.flush()

        store.clear_failures()
        await cache.flush()

        assert exc_info.value.is_retryable is True
        assert store.stored(Token, "t9") is not None

    async def test_failure_log_carries_retry_and_alert_flags(self, cache, store, caplog):
        store.fail_on("save", Token, ConnectionError("write refused"))
        cache.upsert(Token(id="t9"))

        with caplog.at_level(logging.ERROR, logger="batchcache"):
            with pytest.raises(FlushError):
                await cache.flush()

        (record,) = [r for r in caplog.records if r.getMessage() == "Cache flush partially failed"]
        assert record.retryable is True
        assert record.alert is True


@pytest.mark.asyncio
@pytest.mark.unit
class TestFlushMetrics:
    async def test_counters(self, cache):
        cache.upsert([Token(id="t8"), Token(id="t9")])
        cache.deferred_remove(Pool, "p1")

        await cache.flush()

        metrics = cache.metrics.get_metrics()
        assert metrics["flushes"] == 1
        assert metrics["store_writes"] == 1
        assert metrics["records_written"] == 2
        assert metrics["store_deletes"] == 1
        assert metrics["records_deleted"] == 1
