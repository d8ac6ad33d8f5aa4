"""
Tests for the keyed TTL cache.
"""

import asyncio
import re

import pytest

from conftest import CountingProducer
from farm_sync.exceptions import BackendError, CacheClosedError
from farm_sync.services import KeyedCacheService


@pytest.fixture
def cache(clock):
    """Create a cache driven by the fake clock."""
    return KeyedCacheService.create(default_ttl_ms=300000, clock=clock)


@pytest.mark.asyncio
async def test_second_call_within_ttl_uses_cache(cache, clock):
    """A fresh entry is served without calling the producer."""
    producer = CountingProducer(value=["feed", "salt"])

    first = await cache.get_or_fetch("api/inventory", producer, ttl_ms=1000)
    clock.advance(999)
    second = await cache.get_or_fetch("api/inventory", producer, ttl_ms=1000)

    assert first == second == ["feed", "salt"]
    assert producer.calls == 1


@pytest.mark.asyncio
async def test_ttl_expiry_scenario(cache, clock):
    """ttl=100: calls at t=0 and t=50 fetch once, t=150 fetches again."""
    producer = CountingProducer(value=[{"id": 1}])

    assert await cache.get_or_fetch("api/animals", producer, ttl_ms=100) == [{"id": 1}]
    assert producer.calls == 1

    clock.advance(50)
    await cache.get_or_fetch("api/animals", producer, ttl_ms=100)
    assert producer.calls == 1

    clock.advance(100)
    await cache.get_or_fetch("api/animals", producer, ttl_ms=100)
    assert producer.calls == 2


@pytest.mark.asyncio
async def test_entry_is_stale_exactly_at_ttl(cache, clock):
    """Freshness is now - stored_at < ttl, so the boundary refetches."""
    producer = CountingProducer(value=1)

    await cache.get_or_fetch("api/finance", producer, ttl_ms=100)
    clock.advance(100)
    await cache.get_or_fetch("api/finance", producer, ttl_ms=100)

    assert producer.calls == 2


@pytest.mark.asyncio
async def test_default_ttl_is_used(clock):
    """Lookups without ttl_ms use the service default."""
    cache = KeyedCacheService.create(default_ttl_ms=10, clock=clock)
    producer = CountingProducer(value="x")

    await cache.get_or_fetch("api/tasks", producer)
    clock.advance(10)
    await cache.get_or_fetch("api/tasks", producer)

    assert producer.calls == 2
    assert cache.default_ttl_ms == 10


@pytest.mark.asyncio
async def test_concurrent_calls_invoke_producer_once(cache):
    """Two lookups before the producer settles share one call."""
    producer = CountingProducer(value={"total": 12}, gated=True)

    first = asyncio.create_task(cache.get_or_fetch("api/reports", producer))
    second = asyncio.create_task(cache.get_or_fetch("api/reports", producer))
    await asyncio.sleep(0)
    producer.release()

    results = await asyncio.gather(first, second)

    assert producer.calls == 1
    assert results == [{"total": 12}, {"total": 12}]
    assert cache.metrics.deduplicated == 1
    assert cache.stats()["in_progress"] == 0


@pytest.mark.asyncio
async def test_different_keys_are_not_deduplicated(cache):
    """Dedupe is per key."""
    producer = CountingProducer(value=[])

    await asyncio.gather(
        cache.get_or_fetch("api/orders", producer),
        cache.get_or_fetch("api/customers", producer),
    )

    assert producer.calls == 2


@pytest.mark.asyncio
async def test_failure_propagates_and_keeps_stale_entry(cache, clock):
    """A failed refetch raises and leaves the previous value untouched."""
    await cache.get_or_fetch("api/mortality", CountingProducer(value=["old"]), ttl_ms=100)
    clock.advance(500)

    failing = CountingProducer(error=BackendError("Failed to fetch mortality", path="/api/mortality", status_code=500))
    with pytest.raises(BackendError):
        await cache.get_or_fetch("api/mortality", failing, ttl_ms=100)

    stale = cache.peek("api/mortality")
    assert stale is not None
    assert stale.value == ["old"]
    assert not cache.is_fresh("api/mortality")
    assert cache.stats()["in_progress"] == 0
    assert cache.metrics.failures == 1


@pytest.mark.asyncio
async def test_failure_does_not_create_entry(cache):
    """Nothing is stored when the first fetch fails, and the next call retries."""
    failing = CountingProducer(error=RuntimeError("network down"))

    with pytest.raises(RuntimeError, match="network down"):
        await cache.get_or_fetch("api/breeding", failing)

    assert cache.peek("api/breeding") is None

    recovered = CountingProducer(value=["pair"])
    assert await cache.get_or_fetch("api/breeding", recovered) == ["pair"]
    assert recovered.calls == 1


@pytest.mark.asyncio
async def test_failure_reaches_every_concurrent_caller(cache):
    """All callers awaiting one failed call see the same error."""
    error = RuntimeError("timeout")
    producer = CountingProducer(error=error, gated=True)

    tasks = [asyncio.create_task(cache.get_or_fetch("api/feeding", producer)) for _ in range(3)]
    await asyncio.sleep(0)
    producer.release()
    results = await asyncio.gather(*tasks, return_exceptions=True)

    assert producer.calls == 1
    assert results == [error, error, error]


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_shared_fetch(cache):
    """Cancelling one waiter leaves the producer running for the others."""
    producer = CountingProducer(value="ok", gated=True)

    first = asyncio.create_task(cache.get_or_fetch("api/weight", producer))
    second = asyncio.create_task(cache.get_or_fetch("api/weight", producer))
    await asyncio.sleep(0)
    first.cancel()
    producer.release()

    results = await asyncio.gather(first, second, return_exceptions=True)

    assert isinstance(results[0], asyncio.CancelledError)
    assert results[1] == "ok"
    assert producer.calls == 1
    assert cache.peek("api/weight").value == "ok"


@pytest.mark.asyncio
async def test_invalidate_prefix(cache):
    """Prefix invalidation removes exactly the matching keys."""
    for key in ["api/animals", "api/inventory", "other/x"]:
        await cache.get_or_fetch(key, CountingProducer(value=key))

    removed = cache.invalidate("api/")

    assert removed == 2
    assert cache.keys() == ["other/x"]


@pytest.mark.asyncio
async def test_invalidate_is_idempotent(cache):
    """Invalidating absent keys is a no-op."""
    await cache.get_or_fetch("other/x", CountingProducer(value=1))

    assert cache.invalidate("api/") == 0
    assert cache.invalidate("api/") == 0
    assert cache.invalidate_key("api/missing") is False
    assert cache.keys() == ["other/x"]


@pytest.mark.asyncio
async def test_invalidate_regex_and_predicate(cache):
    """Compiled patterns and predicates are accepted."""
    for key in ["api/health-records", "api/vaccinations", "api/inventory-loss"]:
        await cache.get_or_fetch(key, CountingProducer(value=key))

    assert cache.invalidate(re.compile(r"inventory")) == 1
    assert cache.invalidate(lambda key: key.endswith("records")) == 1
    assert cache.keys() == ["api/vaccinations"]


def test_invalidate_rejects_empty_prefix(cache):
    """An empty prefix would match everything; use clear() for that."""
    with pytest.raises(ValueError):
        cache.invalidate("")


@pytest.mark.asyncio
async def test_invalidated_key_refetches(cache):
    """After invalidation the next lookup goes back to the producer."""
    producer = CountingProducer(value=[1])

    await cache.get_or_fetch("api/locations", producer)
    assert cache.invalidate_key("api/locations") is True
    await cache.get_or_fetch("api/locations", producer)

    assert producer.calls == 2


@pytest.mark.asyncio
async def test_invalidate_during_fetch_skips_commit(cache):
    """A result fetched before invalidation reaches its caller but is not stored."""
    old = CountingProducer(value="before-reseed", gated=True)

    pending = asyncio.create_task(cache.get_or_fetch("api/animals", old))
    await asyncio.sleep(0)
    cache.invalidate("api/")
    assert cache.stats()["in_progress"] == 0

    fresh = CountingProducer(value="after-reseed")
    assert await cache.get_or_fetch("api/animals", fresh) == "after-reseed"

    old.release()
    assert await pending == "before-reseed"
    assert cache.peek("api/animals").value == "after-reseed"


@pytest.mark.asyncio
async def test_clear_and_stats(cache):
    """clear() drops everything and stats track lookups."""
    producer = CountingProducer(value=0)
    await cache.get_or_fetch("api/a", producer)
    await cache.get_or_fetch("api/a", producer)
    await cache.get_or_fetch("api/b", producer)

    stats = cache.stats()
    assert stats["cache_size"] == 2
    assert stats["metrics"]["hits"] == 1
    assert stats["metrics"]["misses"] == 2

    assert cache.clear() == 2
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_rejects_invalid_arguments(cache):
    """Empty keys and non-positive TTLs are caller errors."""
    producer = CountingProducer(value=1)

    with pytest.raises(ValueError):
        await cache.get_or_fetch("", producer)
    with pytest.raises(ValueError):
        await cache.get_or_fetch("api/x", producer, ttl_ms=0)

    assert producer.calls == 0


@pytest.mark.parametrize("default_ttl_ms", [0, -1])
def test_rejects_non_positive_default_ttl(default_ttl_ms, clock):
    """An explicit zero or negative default is rejected, not replaced by the setting."""
    with pytest.raises(ValueError):
        KeyedCacheService.create(default_ttl_ms=default_ttl_ms, clock=clock)


@pytest.mark.asyncio
async def test_closed_cache_rejects_lookups(cache):
    """The service cannot be used after teardown."""
    await cache.get_or_fetch("api/x", CountingProducer(value=1))
    await cache.aclose()

    assert cache.closed
    assert len(cache) == 0
    with pytest.raises(CacheClosedError):
        await cache.get_or_fetch("api/x", CountingProducer(value=1))


@pytest.mark.asyncio
async def test_aclose_cancels_inflight_fetch(cache):
    """Teardown cancels producers still running."""
    producer = CountingProducer(value=1, gated=True)

    pending = asyncio.create_task(cache.get_or_fetch("api/slow", producer))
    await asyncio.sleep(0)
    await cache.aclose()

    with pytest.raises(asyncio.CancelledError):
        await pending
    assert cache.peek("api/slow") is None


@pytest.mark.asyncio
async def test_async_context_manager_closes(clock):
    """Leaving the context closes the service."""
    async with KeyedCacheService.create(clock=clock) as cache:
        await cache.get_or_fetch("api/x", CountingProducer(value=1))

    assert cache.closed
