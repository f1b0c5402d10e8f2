"""Income normalization and age derivation.

Profiles may report income per month or per year; rules are authored
against annual figures, so everything is converted to annual before
evaluation.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from benefits_engine.models.enums import IncomePeriod

_MONTHS_PER_YEAR = Decimal("12")


def _to_dollars(value: Decimal) -> Decimal:
    """Round to 2 decimal places."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def annualize_income(amount: Decimal | None, period: IncomePeriod) -> Decimal | None:
    """Convert an income figure to its annual equivalent.

    None stays None (income not reported).
    """
    if amount is None:
        return None
    if period == IncomePeriod.MONTHLY:
        return _to_dollars(amount * _MONTHS_PER_YEAR)
    return _to_dollars(amount)


def monthly_from_annual(annual: Decimal | None) -> Decimal | None:
    """Monthly equivalent of an annual figure."""
    if annual is None:
        return None
    return _to_dollars(annual / _MONTHS_PER_YEAR)


def age_on(date_of_birth: date, today: date) -> int:
    """Age in completed years on a given day."""
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age
