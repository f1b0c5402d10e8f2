"""Tests for the AMI data source and cache.

Covers:
- Lookups against the packaged 2024 tables
- Household-size bracket selection and income limit rounding
- TTL expiry on read with an injected clock
- FIFO and LRU eviction
- Coalescing of concurrent loads for the same key
- Error messages for unknown states and counties, and input validation
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from benefits_engine.reference import (
    AmiCache,
    AmiDataError,
    AmiDataNotFoundError,
    AmiDataSource,
    EvictionPolicy,
)
from benefits_engine.reference.ami_cache import income_limits
from benefits_engine.reference.source import CountyAmi, StateAmiTable

# ── Helpers ──────────────────────────────────────────────────────────


def _table() -> StateAmiTable:
    return StateAmiTable(
        year=2024,
        state="GA",
        counties={
            "Fulton": CountyAmi(ami={1: 70000, 2: 80000, 3: 90000, 4: 100000}),
            "Bibb": CountyAmi(ami={1: 40000, 2: 46000, 4: 57000}),
            "Chatham": CountyAmi(ami={2: 60000, 3: 68000}),
        },
    )


def _loader() -> AsyncMock:
    loader = AsyncMock()
    loader.load_state = AsyncMock(return_value=_table())
    return loader


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


# ── Packaged data ────────────────────────────────────────────────────


class TestPackagedData:
    @pytest.mark.asyncio()
    async def test_los_angeles_family_of_four(self):
        cache = AmiCache()
        entry = await cache.get("CA", "Los Angeles", 4)
        assert entry.ami == 98200
        assert entry.income_limit_50 == 49100
        assert entry.income_limit_60 == 58920
        assert entry.income_limit_80 == 78560
        assert entry.state == "CA"
        assert entry.year == 2024

    @pytest.mark.asyncio()
    async def test_large_household_uses_top_bracket(self):
        cache = AmiCache()
        entry = await cache.get("ca", "Los Angeles", 10)
        assert entry.ami == 129600
        assert entry.household_size == 10

    @pytest.mark.asyncio()
    async def test_county_suffix_and_case_ignored(self):
        cache = AmiCache()
        entry = await cache.get("CA", "los angeles county", 1)
        assert entry.county == "Los Angeles"
        assert entry.ami == 68700

    @pytest.mark.asyncio()
    async def test_unknown_state(self):
        cache = AmiCache()
        with pytest.raises(AmiDataNotFoundError, match="AMI data not found for state ZZ"):
            await cache.get("ZZ", "Anywhere", 2)

    @pytest.mark.asyncio()
    async def test_unknown_county(self):
        cache = AmiCache()
        with pytest.raises(AmiDataNotFoundError) as exc_info:
            await cache.get("FL", "Atlantis", 2)
        assert exc_info.value.state == "FL"
        assert exc_info.value.county == "Atlantis"
        assert "Atlantis" in str(exc_info.value)

    @pytest.mark.asyncio()
    async def test_available_counties(self):
        cache = AmiCache()
        counties = await cache.available_counties("GA")
        assert "Fulton" in counties
        assert await cache.available_counties("ZZ") == []

    @pytest.mark.asyncio()
    async def test_is_available(self):
        cache = AmiCache()
        assert await cache.is_available("FL", "Miami-Dade") is True
        assert await cache.is_available("FL", "Atlantis") is False
        assert await cache.is_available("ZZ", "Anywhere") is False

    def test_available_states(self):
        assert {"CA", "FL", "GA"} <= set(AmiDataSource().available_states())


class TestDataSource:
    @pytest.mark.asyncio()
    async def test_malformed_file(self, tmp_path):
        year_dir = tmp_path / "2024"
        year_dir.mkdir()
        (year_dir / "tx.json").write_text("{not json", encoding="utf-8")
        source = AmiDataSource(data_dir=tmp_path, year=2024)
        with pytest.raises(AmiDataError, match="Malformed"):
            await source.load_state("TX")

    @pytest.mark.asyncio()
    async def test_table_read_once(self, tmp_path):
        year_dir = tmp_path / "2024"
        year_dir.mkdir()
        (year_dir / "tx.json").write_text(
            '{"year": 2024, "state": "TX", "counties": {"Travis": {"ami": {"1": 80000}}}}',
            encoding="utf-8",
        )
        source = AmiDataSource(data_dir=tmp_path, year=2024)
        first = await source.load_state("TX")
        (year_dir / "tx.json").unlink()
        second = await source.load_state("tx")
        assert first is second
        assert second.counties["Travis"].ami == {1: 80000}

    @pytest.mark.asyncio()
    async def test_cancelled_reader_does_not_cancel_shared_read(self, tmp_path):
        year_dir = tmp_path / "2024"
        year_dir.mkdir()
        (year_dir / "tx.json").write_text(
            '{"year": 2024, "state": "TX", "counties": {"Travis": {"ami": {"1": 80000}}}}',
            encoding="utf-8",
        )
        source = AmiDataSource(data_dir=tmp_path, year=2024)
        first = asyncio.ensure_future(source.load_state("TX"))
        second = asyncio.ensure_future(source.load_state("TX"))
        await asyncio.sleep(0)
        first.cancel()

        table = await second
        assert table.counties["Travis"].ami == {1: 80000}
        assert await source.load_state("TX") is table
        assert source._pending == {}


# ── Brackets and limits ──────────────────────────────────────────────


class TestBrackets:
    def test_income_limits_round_down(self):
        assert income_limits(77777) == (38888, 46666, 62221)

    @pytest.mark.asyncio()
    async def test_missing_size_uses_largest_bracket_below(self):
        cache = AmiCache(_loader())
        entry = await cache.get("GA", "Bibb", 3)
        assert entry.ami == 46000

    @pytest.mark.asyncio()
    async def test_size_below_all_brackets_uses_smallest(self):
        cache = AmiCache(_loader())
        entry = await cache.get("GA", "Chatham", 1)
        assert entry.ami == 60000


# ── Validation ───────────────────────────────────────────────────────


class TestValidation:
    @pytest.mark.asyncio()
    @pytest.mark.parametrize(("state", "county", "size"), [
        ("", "Fulton", 2),
        ("GA", "  ", 2),
        ("GA", "Fulton", 0),
    ])
    async def test_invalid_inputs(self, state, county, size):
        cache = AmiCache(_loader())
        with pytest.raises(ValueError):
            await cache.get(state, county, size)

    def test_key_is_lower_case(self):
        assert AmiCache.make_key("GA", "Fulton ", 3) == "ga-fulton-3"


# ── Expiry and eviction ──────────────────────────────────────────────


class TestExpiry:
    @pytest.mark.asyncio()
    async def test_entry_served_until_ttl(self):
        clock = FakeClock()
        loader = _loader()
        cache = AmiCache(loader, ttl_seconds=10, clock=clock)

        await cache.get("GA", "Fulton", 2)
        clock.now = 5
        await cache.get("GA", "Fulton", 2)
        assert loader.load_state.await_count == 1

        clock.now = 11
        entry = await cache.get("GA", "Fulton", 2)
        assert entry.ami == 80000
        assert loader.load_state.await_count == 2

        stats = cache.stats()
        assert stats.hits == 1
        assert stats.misses == 2
        assert stats.loads == 2

    @pytest.mark.asyncio()
    async def test_clear(self):
        loader = _loader()
        cache = AmiCache(loader)
        await cache.get("GA", "Fulton", 2)
        cache.clear()
        assert cache.stats().size == 0
        await cache.get("GA", "Fulton", 2)
        assert loader.load_state.await_count == 2


class TestEviction:
    async def _fill(self, cache: AmiCache) -> None:
        await cache.get("GA", "Fulton", 1)
        await cache.get("GA", "Fulton", 2)
        await cache.get("GA", "Fulton", 1)   # re-read the oldest entry
        await cache.get("GA", "Fulton", 3)

    @pytest.mark.asyncio()
    async def test_fifo_drops_oldest_inserted(self):
        cache = AmiCache(_loader(), max_size=2, eviction=EvictionPolicy.FIFO)
        await self._fill(cache)
        stats = cache.stats()
        assert stats.keys == ["ga-fulton-2", "ga-fulton-3"]
        assert stats.evictions == 1

    @pytest.mark.asyncio()
    async def test_lru_drops_least_recently_read(self):
        cache = AmiCache(_loader(), max_size=2, eviction="lru")
        await self._fill(cache)
        assert cache.stats().keys == ["ga-fulton-1", "ga-fulton-3"]

    def test_default_policy_is_fifo(self):
        assert AmiCache(_loader()).eviction == EvictionPolicy.FIFO


class TestCoalescing:
    @pytest.mark.asyncio()
    async def test_concurrent_requests_share_one_load(self):
        loader = _loader()
        cache = AmiCache(loader)
        first, second = await asyncio.gather(
            cache.get("GA", "Fulton", 4),
            cache.get("GA", "Fulton", 4),
        )
        assert first == second
        assert loader.load_state.await_count == 1
        assert cache.stats().loads == 1

    @pytest.mark.asyncio()
    async def test_failed_load_not_cached(self):
        loader = _loader()
        cache = AmiCache(loader)
        with pytest.raises(AmiDataNotFoundError):
            await cache.get("GA", "Nowhere", 2)
        with pytest.raises(AmiDataNotFoundError):
            await cache.get("GA", "Nowhere", 2)
        assert loader.load_state.await_count == 2
        assert cache.stats().size == 0

    @pytest.mark.asyncio()
    async def test_cancelled_waiter_does_not_cancel_shared_load(self):
        release = asyncio.Event()

        async def slow_load(state):
            await release.wait()
            return _table()

        loader = AsyncMock()
        loader.load_state = AsyncMock(side_effect=slow_load)
        cache = AmiCache(loader)

        first = asyncio.ensure_future(cache.get("GA", "Fulton", 2))
        second = asyncio.ensure_future(cache.get("GA", "Fulton", 2))
        await asyncio.sleep(0)
        first.cancel()
        release.set()

        entry = await second
        assert entry.ami == 80000
        with pytest.raises(asyncio.CancelledError):
            await first
        assert loader.load_state.await_count == 1

    @pytest.mark.asyncio()
    async def test_load_completes_after_all_waiters_cancelled(self):
        release = asyncio.Event()

        async def slow_load(state):
            await release.wait()
            return _table()

        loader = AsyncMock()
        loader.load_state = AsyncMock(side_effect=slow_load)
        cache = AmiCache(loader)

        waiter = asyncio.ensure_future(cache.get("GA", "Fulton", 3))
        await asyncio.sleep(0)
        waiter.cancel()
        release.set()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        entry = await cache.get("GA", "Fulton", 3)
        assert entry.ami == 90000
        assert loader.load_state.await_count == 1
