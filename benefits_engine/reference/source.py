"""Per-state Area Median Income data files.

Files live at <data_dir>/<year>/<state>.json, with a lower-case two-letter
state code as the file name:

    {"year": 2024, "state": "CA", "counties": {"Los Angeles": {"ami": {"1": 68700, ..., "8": 129600}}}}

The source never writes; parsed tables are kept for the life of the instance.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from benefits_engine.config import settings

logger = logging.getLogger(__name__)


class AmiDataError(Exception):
    """AMI reference data is missing or malformed."""

    def __init__(self, message: str, state: str, county: str | None = None) -> None:
        super().__init__(message)
        self.state = state
        self.county = county


class AmiDataNotFoundError(AmiDataError, LookupError):
    """No AMI data exists for the requested state or county."""

    def __init__(self, state: str, county: str | None = None) -> None:
        if county:
            message = f"AMI data not found for county {county} in state {state}"
        else:
            message = f"AMI data not found for state {state}"
        super().__init__(message, state, county)


class CountyAmi(BaseModel):
    """AMI by household size ("1".."8") for one county."""

    ami: dict[int, int]


class StateAmiTable(BaseModel):
    """All counties of one state for one year."""

    year: int
    state: str
    counties: dict[str, CountyAmi] = Field(default_factory=dict)

    def find_county(self, county: str) -> tuple[str, CountyAmi] | None:
        """Case-insensitive county lookup; "X County" and "X" are equivalent."""
        wanted = _county_key(county)
        for name, data in self.counties.items():
            if _county_key(name) == wanted:
                return name, data
        return None


def _county_key(county: str) -> str:
    key = county.strip().lower()
    if key.endswith(" county"):
        key = key[: -len(" county")]
    return key


def forget_when_done(pending: dict[str, asyncio.Task], key: str, task: asyncio.Task) -> None:
    """Done callback: drop a finished shared load from its in-flight map.

    The result or error stays on the task for the callers awaiting it; the
    error is marked retrieved so a load nobody waits for any more is not
    reported as unhandled.
    """
    if pending.get(key) is task:
        del pending[key]
    if not task.cancelled():
        task.exception()


class AmiDataSource:
    """Loads AMI tables lazily, one JSON file per state."""

    def __init__(self, data_dir: Path | None = None, year: int | None = None) -> None:
        self.data_dir = data_dir or settings.ami.ami_data_dir
        self.year = year or settings.ami.ami_year
        self._tables: dict[str, StateAmiTable] = {}
        self._pending: dict[str, asyncio.Task[StateAmiTable]] = {}

    def _path_for(self, state: str) -> Path:
        return self.data_dir / str(self.year) / f"{state.lower()}.json"

    def available_states(self) -> list[str]:
        """Upper-case codes of every state with a data file for this year."""
        year_dir = self.data_dir / str(self.year)
        if not year_dir.is_dir():
            return []
        return sorted(p.stem.upper() for p in year_dir.glob("*.json"))

    async def load_state(self, state: str) -> StateAmiTable:
        """Return the parsed table for a state, reading the file on first use.

        Raises:
            AmiDataNotFoundError: No file exists for the state.
            AmiDataError: The file exists but is not a valid AMI table.
        """
        code = state.strip().lower()
        if code in self._tables:
            return self._tables[code]

        # Concurrent first reads of the same state share one file read.
        task = self._pending.get(code)
        if task is None:
            task = asyncio.ensure_future(self._read(code, state))
            self._pending[code] = task
            task.add_done_callback(functools.partial(forget_when_done, self._pending, code))
        # Cancelling one caller must not cancel the read other callers share.
        return await asyncio.shield(task)

    async def _read(self, code: str, state: str) -> StateAmiTable:
        path = self._path_for(code)
        if len(code) != 2 or not code.isalpha() or not path.exists():
            raise AmiDataNotFoundError(state)
        logger.debug("Loading AMI table %s", path)
        raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        try:
            table = StateAmiTable.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Malformed AMI table %s: %s", path, exc)
            raise AmiDataError(f"Malformed AMI data for state {state}", state) from exc
        self._tables[code] = table
        return table
