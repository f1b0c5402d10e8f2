"""Pydantic schemas for reference data (Area Median Income)."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class AmiEntry(BaseModel):
    """AMI figure and derived income limits for one (state, county, size)."""

    model_config = ConfigDict(frozen=True)

    state: str                # two-letter code, upper-case
    county: str
    year: int
    household_size: int
    ami: int                  # annual
    income_limit_50: int      # floor(ami * 0.5)
    income_limit_60: int
    income_limit_80: int
    last_updated: datetime
