"""Household profile fed into the eligibility engine.

Built by the surrounding application from questionnaire answers.
Frozen once constructed: the engine treats it as a read-only snapshot.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from benefits_engine.models.enums import CitizenshipStatus, EmploymentStatus, IncomePeriod


class HouseholdProfile(BaseModel):
    """Aggregated household data for one evaluation run."""

    model_config = ConfigDict(frozen=True)

    profile_id: str = Field(default_factory=lambda: uuid.uuid4().hex)

    # Household
    household_size: int | None = None
    household_income: Decimal | None = Field(default=None, ge=0)
    income_period: IncomePeriod = IncomePeriod.ANNUAL
    household_assets: Decimal | None = Field(default=None, ge=0)

    # Applicant
    date_of_birth: date | None = None
    age: int | None = None
    citizenship: CitizenshipStatus | None = None
    employment_status: EmploymentStatus | None = None

    # Flags: None means "not answered"
    has_disability: bool | None = None
    is_pregnant: bool | None = None
    has_children: bool | None = None

    # Location
    state: str | None = None
    county: str | None = None
