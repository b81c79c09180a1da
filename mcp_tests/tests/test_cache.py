import asyncio

import pytest

import core.cache as cache_mod
from core.cache import TTLCache
from core.errors import ValidationError


def test_ttlcache_set_get_and_expire(monkeypatch):
    t = {"now": 0.0}

    def fake_monotonic():
        return t["now"]

    monkeypatch.setattr(cache_mod.time, "monotonic", fake_monotonic)

    c = TTLCache(ttl_seconds=1.0, maxsize=10, auto_cleanup=False)

    c.set("k", "v")
    t["now"] = 0.999
    assert c.get("k") == "v"

    t["now"] = 1.001
    assert c.get("k") is None
    # Expired read removes the entry as a side effect
    assert len(c) == 0


def test_ttlcache_exact_ttl_boundary_is_still_alive(clock):
    c = TTLCache(ttl_seconds=1.0, maxsize=10, auto_cleanup=False, clock=clock)

    c.set("k", "v")
    clock.now = 1.0
    assert c.get("k") == "v"


def test_ttlcache_reads_do_not_extend_ttl(clock):
    c = TTLCache(ttl_seconds=1.0, maxsize=10, auto_cleanup=False, clock=clock)
    c.set("k", "v")

    for step in range(1, 10):
        clock.now = step * 0.1
        assert c.get("k") == "v"

    clock.now = 1.001
    assert c.get("k") is None


def test_ttlcache_lru_evicts_oldest_access(clock):
    c = TTLCache(ttl_seconds=100.0, maxsize=2, auto_cleanup=False, clock=clock)

    c.set("a", 1)
    clock.now = 10.0
    c.set("b", 2)

    clock.now = 20.0
    assert c.get("a") == 1

    clock.now = 30.0
    c.set("c", 3)

    assert c.has("a")
    assert not c.has("b")
    assert c.has("c")
    assert len(c) == 2


def test_ttlcache_overwrite_at_capacity_does_not_evict(clock):
    c = TTLCache(ttl_seconds=100.0, maxsize=2, auto_cleanup=False, clock=clock)

    c.set("a", 1)
    c.set("b", 2)
    c.set("a", 10)

    assert len(c) == 2
    assert c.get("a") == 10
    assert c.get("b") == 2


def test_ttlcache_overwrite_resets_insertion_and_keeps_access_count(clock):
    c = TTLCache(ttl_seconds=1.0, maxsize=10, auto_cleanup=False, clock=clock)

    c.set("a", 1)
    c.get("a")
    c.get("a")

    clock.now = 0.9
    c.set("a", 2)

    clock.now = 1.5
    assert c.get("a") == 2
    assert c.stats().total_accesses == 3


def test_ttlcache_has_does_not_touch_bookkeeping(clock):
    c = TTLCache(ttl_seconds=1.0, maxsize=10, auto_cleanup=False, clock=clock)

    c.set("a", 1)
    assert c.has("a")
    assert "a" in c
    assert c.stats().total_accesses == 0

    clock.now = 2.0
    assert not c.has("a")
    # has() reports liveness only; the entry is left for get() or the sweep
    assert len(c) == 1


def test_ttlcache_remove_and_clear(clock):
    c = TTLCache(ttl_seconds=10.0, maxsize=10, auto_cleanup=False, clock=clock)

    c.set("a", 1)
    c.set("b", 2)
    c.remove("a")
    c.remove("missing")

    assert c.get("a") is None
    assert len(c) == 1

    c.clear()
    assert len(c) == 0


def test_ttlcache_stats(clock):
    c = TTLCache(ttl_seconds=10.0, maxsize=5, auto_cleanup=False, clock=clock)
    assert c.stats().size == 0
    assert c.stats().hit_rate == 0.0

    c.set("a", 1)
    clock.now = 4.0
    c.set("b", 2)
    c.get("a")
    c.get("a")
    c.get("b")

    clock.now = 12.0
    stats = c.stats()

    assert stats.size == 2
    assert stats.maxsize == 5
    assert stats.valid_entries == 1
    assert stats.total_accesses == 3
    assert stats.average_age == pytest.approx((12.0 + 8.0) / 2)
    assert stats.hit_rate == pytest.approx(1.5)


def test_ttlcache_purge_expired(clock):
    c = TTLCache(ttl_seconds=1.0, maxsize=10, auto_cleanup=False, clock=clock)
    c.set("old", 1)
    clock.now = 0.5
    c.set("new", 2)

    clock.now = 1.2
    assert c.purge_expired() == 1
    assert c.has("new")
    assert len(c) == 1


def test_ttlcache_set_many(clock):
    c = TTLCache(ttl_seconds=10.0, maxsize=2, auto_cleanup=False, clock=clock)
    c.set_many([("a", 1), ("b", 2), ("c", 3)])

    assert len(c) == 2
    assert c.get("c") == 3


@pytest.mark.parametrize("kwargs", [{"ttl_seconds": 0}, {"ttl_seconds": -1}, {"maxsize": 0}])
def test_ttlcache_rejects_bad_config(kwargs):
    with pytest.raises(ValidationError):
        TTLCache(**kwargs)


def test_ttlcache_without_loop_has_no_sweeper():
    c = TTLCache(ttl_seconds=1.0, maxsize=10)
    c.set("a", 1)
    assert c.sweeping is False


@pytest.mark.asyncio
async def test_ttlcache_sweeper_removes_expired_entries(clock):
    c = TTLCache(ttl_seconds=0.05, maxsize=10, clock=clock)
    assert c.sweeping is True

    c.set("a", 1)
    clock.now = 1.0

    await asyncio.sleep(0.1)
    assert len(c) == 0

    await c.aclose()
    assert c.sweeping is False


@pytest.mark.asyncio
async def test_ttlcache_sweeper_starts_lazily_inside_loop(clock):
    def build():
        return TTLCache(ttl_seconds=0.05, maxsize=10, clock=clock)

    # Construct outside the running loop, then first set() inside it
    lazy = await asyncio.get_running_loop().run_in_executor(None, build)
    assert lazy.sweeping is False

    lazy.set("a", 1)
    assert lazy.sweeping is True
    await lazy.aclose()


@pytest.mark.asyncio
async def test_ttlcache_closed_cache_never_restarts_sweeper(clock):
    async with TTLCache(ttl_seconds=0.05, maxsize=10, clock=clock) as c:
        assert c.sweeping is True

    c.set("a", 1)
    assert c.sweeping is False


@pytest.mark.asyncio
async def test_ttlcache_auto_cleanup_disabled(clock):
    c = TTLCache(ttl_seconds=0.05, maxsize=10, auto_cleanup=False, clock=clock)
    c.set("a", 1)
    clock.now = 1.0

    await asyncio.sleep(0.1)
    assert c.sweeping is False
    assert len(c) == 1
