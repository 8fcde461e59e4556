"""Tests for QueryCache and cache key helpers."""
from __future__ import annotations

import asyncio

import pytest

from lineage_ledger.cache import (
    QueryCache,
    cs_key,
    cs_prefix,
    cu_key,
    nft_key,
    parse_vd_key,
    tv_key,
    vd_key,
)


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


# =============================================================================
# Value cache
# =============================================================================


class TestQueryCacheValues:
    """Tests for TTL-governed value entries."""

    def test_set_get(self):
        """Test a fresh entry is returned."""
        cache = QueryCache()
        cache.set("tv:0xabc", 3)
        assert cache.get("tv:0xabc", ttl_ms=60_000) == 3

    def test_miss(self):
        """Test missing keys return None."""
        cache = QueryCache()
        assert cache.get("tv:0xmissing", ttl_ms=60_000) is None

    def test_zero_value_is_a_hit(self):
        """Test a cached 0 is distinguishable from a miss."""
        cache = QueryCache()
        cache.set("tv:0xabc", 0)
        assert cache.get("tv:0xabc", ttl_ms=1000) == 0

    def test_expiry(self):
        """Test entries older than the TTL are treated as stale."""
        clock = FakeClock()
        cache = QueryCache(clock=clock)
        cache.set("k", "v")

        clock.advance(1000)
        assert cache.get("k", ttl_ms=1000) == "v"

        clock.advance(1)
        assert cache.get("k", ttl_ms=1000) is None

    def test_non_positive_ttl_never_expires(self):
        """Test ttl <= 0 means never expires."""
        clock = FakeClock()
        cache = QueryCache(clock=clock)
        cache.set("k", "v")
        clock.advance(10 ** 12)
        assert cache.get("k", ttl_ms=0) == "v"
        assert cache.get("k", ttl_ms=-5) == "v"

    def test_set_replaces_whole_entry(self):
        """Test refresh replaces value and timestamp together."""
        clock = FakeClock()
        cache = QueryCache(clock=clock)
        cache.set("k", "old")
        first = cache.get_entry("k")

        clock.advance(500)
        cache.set("k", "new")
        second = cache.get_entry("k")

        assert first.value == "old"
        assert second.value == "new"
        assert second.fetched_at == first.fetched_at + 500


# =============================================================================
# In-flight registry and clearing
# =============================================================================


class TestQueryCacheInflight:
    """Tests for the in-flight registry."""

    @pytest.mark.asyncio
    async def test_inflight_independent_of_values(self):
        """Test in-flight entries do not show up as values."""
        cache = QueryCache()
        future = asyncio.get_running_loop().create_future()
        cache.set_inflight("cu:0xabc", future)

        assert cache.get_inflight("cu:0xabc") is future
        assert cache.get("cu:0xabc", ttl_ms=0) is None
        assert cache.inflight_count() == 1

        cache.delete_inflight("cu:0xabc")
        assert cache.get_inflight("cu:0xabc") is None
        assert cache.inflight_count() == 0
        future.cancel()

    @pytest.mark.asyncio
    async def test_clear_all(self):
        """Test clear() with no prefix empties both maps."""
        cache = QueryCache()
        future = asyncio.get_running_loop().create_future()
        cache.set("tv:0xa", 1)
        cache.set_inflight("cu:0xa", future)

        cache.clear()

        assert len(cache) == 0
        assert cache.inflight_count() == 0
        future.cancel()

    @pytest.mark.asyncio
    async def test_clear_prefix(self):
        """Test clear(prefix) only drops matching keys from both maps."""
        cache = QueryCache()
        future = asyncio.get_running_loop().create_future()
        cache.set(cs_key("0xParent", 1), ["a"])
        cache.set(cs_key("0xparent", 2), ["b"])
        cache.set(cs_key("0xother", 1), ["c"])
        cache.set_inflight(cs_key("0xparent", 3), future)

        cache.clear(prefix=cs_prefix("0xPARENT"))

        assert cache.keys() == [cs_key("0xother", 1)]
        assert cache.inflight_count() == 0
        future.cancel()


# =============================================================================
# Keys
# =============================================================================


class TestCacheKeys:
    """Tests for key formats."""

    def test_key_formats_lowercase_hashes(self):
        """Test every hash-based key is lower-cased."""
        assert tv_key("0xABC") == "tv:0xabc"
        assert cs_key("0xABC", 2) == "cs:0xabc:2"
        assert cu_key("0xABC") == "cu:0xabc"
        assert vd_key("0xABC", 4) == "vd:0xabc:4"
        assert nft_key(17) == "nft:17"
        assert cs_prefix("0xABC") == "cs:0xabc:"

    def test_parse_vd_key(self):
        """Test version-details keys round back to their parts."""
        assert parse_vd_key("vd:0xABC:3") == ("0xabc", 3)

    @pytest.mark.parametrize(
        "key",
        ["", "tv:0xabc", "vd:0xabc", "vd::1", "vd:0xabc:0", "vd:0xabc:-1", "vd:0xabc:x", "vd:0xabc:inf", "vd:a:1:2"],
    )
    def test_parse_vd_key_rejects(self, key):
        """Test anything but a well-formed positive vd key is rejected."""
        assert parse_vd_key(key) is None
