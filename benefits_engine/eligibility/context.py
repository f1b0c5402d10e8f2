"""Evaluation context built from a household profile.

Rules read a flat camelCase mapping. Income is always annual here; the
monthly figure is exposed separately as `monthlyIncome`.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from benefits_engine.calculators.income import age_on, annualize_income, monthly_from_annual
from benefits_engine.schemas.profile import HouseholdProfile
from benefits_engine.schemas.reference import AmiEntry

logger = logging.getLogger(__name__)

# Variables filled from AMI reference data
AMI_VARIABLES = frozenset({"areaMedianIncome", "ami50", "ami60", "ami80"})

# States that adopted the Medicaid expansion (2024)
MEDICAID_EXPANSION_STATES = frozenset({
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "DC", "HI", "ID", "IL", "IN", "IA",
    "KY", "LA", "ME", "MD", "MA", "MI", "MN", "MO", "MT", "NV", "NH", "NJ", "NM", "NY",
    "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SD", "UT", "VT", "VA", "WA", "WV",
})

STATE_NAME_TO_CODE: dict[str, str] = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
    "florida": "FL", "georgia": "GA", "hawaii": "HI", "idaho": "ID",
    "illinois": "IL", "indiana": "IN", "iowa": "IA", "kansas": "KS",
    "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS",
    "missouri": "MO", "montana": "MT", "nebraska": "NE", "nevada": "NV",
    "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM", "new york": "NY",
    "north carolina": "NC", "north dakota": "ND", "ohio": "OH", "oklahoma": "OK",
    "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT",
    "vermont": "VT", "virginia": "VA", "washington": "WA", "west virginia": "WV",
    "wisconsin": "WI", "wyoming": "WY", "district of columbia": "DC",
}

# State-specific flags some rule sets use
_STATE_FLAGS = {"GA": "livesInGeorgia", "CA": "livesInCalifornia", "TX": "livesInTexas", "FL": "livesInFlorida"}


def normalize_state(state: str | None) -> str | None:
    """Two-letter upper-case code for a state code or full name."""
    if not state or not state.strip():
        return None
    value = state.strip()
    if len(value) == 2:
        return value.upper()
    code = STATE_NAME_TO_CODE.get(value.lower())
    if code is None:
        logger.warning("Unrecognized state %r", state)
    return code


def build_context(profile: HouseholdProfile, today: date | None = None) -> dict[str, Any]:
    """Flatten a profile into the variables rules refer to."""
    today = today or date.today()
    annual = annualize_income(profile.household_income, profile.income_period)

    age = profile.age
    if age is None and profile.date_of_birth is not None:
        age = age_on(profile.date_of_birth, today)

    state = normalize_state(profile.state)
    context: dict[str, Any] = {
        "profileId": profile.profile_id,
        "householdSize": profile.household_size,
        "householdIncome": annual,
        "annualIncome": annual,
        "monthlyIncome": monthly_from_annual(annual),
        "incomePeriod": "annual",
        "householdAssets": profile.household_assets,
        "dateOfBirth": profile.date_of_birth.isoformat() if profile.date_of_birth else None,
        "age": age,
        "citizenship": profile.citizenship.value if profile.citizenship else None,
        "employmentStatus": profile.employment_status.value if profile.employment_status else None,
        "hasDisability": profile.has_disability,
        "isPregnant": profile.is_pregnant,
        "hasChildren": profile.has_children,
        "state": state,
        "county": profile.county,
    }
    if state is not None:
        context["stateHasExpanded"] = state in MEDICAID_EXPANSION_STATES
        context["livesInState"] = True
        for code, flag in _STATE_FLAGS.items():
            context[flag] = state == code
    return context


def ami_variables(entry: AmiEntry) -> dict[str, int]:
    """AMI-derived context variables, annual dollars."""
    return {
        "areaMedianIncome": entry.ami,
        "ami50": entry.income_limit_50,
        "ami60": entry.income_limit_60,
        "ami80": entry.income_limit_80,
    }
