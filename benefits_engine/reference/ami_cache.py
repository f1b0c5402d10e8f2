"""Area Median Income cache.

Entries are keyed by lower-case "state-county-size" and expire after a fixed
TTL, checked on read. When the cache grows past its maximum size the oldest
entry is dropped: oldest by insertion under the FIFO policy (the default), or
least recently read under LRU.

Concurrent requests for the same key share one in-flight load.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, Field

from benefits_engine.config import settings
from benefits_engine.reference.source import AmiDataNotFoundError, AmiDataSource, StateAmiTable, forget_when_done
from benefits_engine.schemas.reference import AmiEntry

logger = logging.getLogger(__name__)

# Income limits as percentages of AMI
_LIMIT_PERCENTAGES = (50, 60, 80)


class EvictionPolicy(str, Enum):
    """Which entry goes when the cache is full."""

    FIFO = "fifo"   # oldest inserted
    LRU = "lru"     # least recently read


class StateTableLoader(Protocol):
    async def load_state(self, state: str) -> StateAmiTable: ...


class AmiCacheStats(BaseModel):
    """Snapshot of cache counters."""

    size: int
    max_size: int
    eviction: EvictionPolicy
    keys: list[str] = Field(default_factory=list)
    hits: int = 0
    misses: int = 0
    loads: int = 0
    evictions: int = 0


def income_limits(ami: int) -> tuple[int, int, int]:
    """50/60/80% of AMI, rounded down to whole dollars."""
    return tuple(ami * pct // 100 for pct in _LIMIT_PERCENTAGES)  # type: ignore[return-value]


class AmiCache:
    """TTL and size bounded AMI lookup, owned by whoever builds the orchestrator."""

    def __init__(
        self,
        source: StateTableLoader | None = None,
        *,
        ttl_seconds: float | None = None,
        max_size: int | None = None,
        eviction: EvictionPolicy | str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source or AmiDataSource()
        self.ttl_seconds = settings.ami.ami_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.max_size = settings.ami.ami_cache_max_size if max_size is None else max_size
        self.eviction = EvictionPolicy(eviction or settings.ami.ami_eviction)
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, AmiEntry]] = OrderedDict()
        self._inflight: dict[str, asyncio.Task[AmiEntry]] = {}
        self._hits = 0
        self._misses = 0
        self._loads = 0
        self._evictions = 0

    @staticmethod
    def make_key(state: str, county: str, household_size: int) -> str:
        return f"{state.strip()}-{county.strip()}-{household_size}".lower()

    async def get(self, state: str, county: str, household_size: int) -> AmiEntry:
        """AMI entry for a household.

        Raises:
            ValueError: Empty state/county or household size below 1.
            AmiDataNotFoundError: No data for the state or county.
        """
        if not state or not state.strip():
            raise ValueError("State is required")
        if not county or not county.strip():
            raise ValueError("County is required")
        if household_size < 1:
            raise ValueError(f"Household size must be at least 1, got {household_size}")

        key = self.make_key(state, county, household_size)
        cached = self._read(key)
        if cached is not None:
            return cached

        self._misses += 1
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key, state, county, household_size))
            self._inflight[key] = task
            task.add_done_callback(functools.partial(forget_when_done, self._inflight, key))
        else:
            logger.debug("AMI load for %s already in flight; waiting", key)
        # A cancelled or timed-out caller leaves the shared load running for the others.
        return await asyncio.shield(task)

    def _read(self, key: str) -> AmiEntry | None:
        item = self._entries.get(key)
        if item is None:
            return None
        inserted_at, entry = item
        if self._clock() - inserted_at > self.ttl_seconds:
            logger.debug("AMI cache entry %s expired", key)
            del self._entries[key]
            return None
        if self.eviction == EvictionPolicy.LRU:
            self._entries.move_to_end(key)
        self._hits += 1
        logger.debug("AMI cache hit %s", key)
        return entry

    async def _load(self, key: str, state: str, county: str, household_size: int) -> AmiEntry:
        self._loads += 1
        table = await self._source.load_state(state)
        found = table.find_county(county)
        if found is None:
            raise AmiDataNotFoundError(state.strip().upper(), county.strip())
        county_name, county_data = found
        if not county_data.ami:
            raise AmiDataNotFoundError(state.strip().upper(), county.strip())

        bracket = _bracket_for(county_data.ami, household_size)
        ami = county_data.ami[bracket]
        limit_50, limit_60, limit_80 = income_limits(ami)
        entry = AmiEntry(
            state=table.state.upper(),
            county=county_name,
            year=table.year,
            household_size=household_size,
            ami=ami,
            income_limit_50=limit_50,
            income_limit_60=limit_60,
            income_limit_80=limit_80,
            last_updated=datetime.now(UTC),
        )
        self._store(key, entry)
        return entry

    def _store(self, key: str, entry: AmiEntry) -> None:
        self._entries[key] = (self._clock(), entry)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("AMI cache full (%d); evicted %s", self.max_size, evicted)

    def clear(self) -> None:
        """Drop every cached entry. Counters are kept."""
        self._entries.clear()

    def stats(self) -> AmiCacheStats:
        return AmiCacheStats(
            size=len(self._entries),
            max_size=self.max_size,
            eviction=self.eviction,
            keys=list(self._entries),
            hits=self._hits,
            misses=self._misses,
            loads=self._loads,
            evictions=self._evictions,
        )

    async def available_counties(self, state: str) -> list[str]:
        """County names with data for a state; empty if the state has none."""
        try:
            table = await self._source.load_state(state)
        except AmiDataNotFoundError:
            logger.warning("No AMI counties for state %s", state)
            return []
        return list(table.counties)

    async def is_available(self, state: str, county: str) -> bool:
        try:
            table = await self._source.load_state(state)
        except AmiDataNotFoundError:
            return False
        return table.find_county(county) is not None


def _bracket_for(ami_by_size: dict[int, int], household_size: int) -> int:
    """Exact household size if tabulated, else the largest bracket not above it."""
    if household_size in ami_by_size:
        return household_size
    below = [size for size in ami_by_size if size <= household_size]
    return max(below) if below else min(ami_by_size)
