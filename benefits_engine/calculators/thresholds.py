"""Poverty-line threshold resolution.

Rules often express an income limit as `householdSize * base`, where `base`
is the one-person poverty-line figure. Real FPL tables are not linear in
household size: each additional person adds a fixed increment that is
smaller than the base. The resolver computes the threshold with, in order:

1. a known per-person increment for the base (packaged table or registered),
2. an increment inferred from dollar figures in the rule's explanation text,
3. naive scaling, base * household size.
"""

from __future__ import annotations

import json
import logging
import re
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from benefits_engine.config import settings
from benefits_engine.rules.evaluator import format_value, var_name
from benefits_engine.schemas.rules import Calculation, RuleDefinition

logger = logging.getLogger(__name__)

HOUSEHOLD_SIZE_VAR = "householdSize"

# "$2,258", "$3,058.50", "$15060"
_DOLLAR_RE = re.compile(r"\$\s?([0-9]{1,3}(?:,[0-9]{3})+(?:\.[0-9]+)?|[0-9]+(?:\.[0-9]+)?)")


class ThresholdResult(BaseModel):
    """A resolved threshold and how it was obtained."""

    amount: Decimal
    base: Decimal
    household_size: int
    strategy: str                     # "table" | "inferred" | "naive"
    increment: Decimal | None = None


@lru_cache(maxsize=4)
def _load_increments(path: Path) -> dict[Decimal, Decimal]:
    """Load the base -> per-person increment table from JSON."""
    if not path.exists():
        logger.warning("FPL increment table not found at %s", path)
        return {}
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    return {Decimal(str(k)): Decimal(str(v)) for k, v in raw.get("increments", {}).items()}


def infer_increment(base: Decimal, text: str | None) -> Decimal | None:
    """Infer the per-person increment from dollar figures in free text.

    Takes the figure closest to `base` and the next larger one; their
    difference is the increment. "$2,258 for 1, $3,058 for 2" gives 800.
    """
    if not text:
        return None
    figures = sorted({Decimal(m.replace(",", "")) for m in _DOLLAR_RE.findall(text)})
    if len(figures) < 2:
        return None
    closest = min(figures, key=lambda f: abs(f - base))
    larger = [f for f in figures if f > closest]
    if not larger:
        return None
    return larger[0] - closest


class ThresholdResolver:
    """Computes household-size-adjusted thresholds from a base amount."""

    def __init__(
        self,
        increments: dict[Decimal, Decimal] | None = None,
        *,
        increments_path: Path | None = None,
    ) -> None:
        if increments is None:
            increments = _load_increments(increments_path or settings.thresholds.fpl_increments_path)
        self._increments: dict[Decimal, Decimal] = dict(increments)

    def register_increment(self, base: Decimal | int | float, increment: Decimal | int | float) -> None:
        """Add or replace the per-person increment for a base amount."""
        self._increments[Decimal(str(base))] = Decimal(str(increment))

    def increment_for(self, base: Decimal) -> Decimal | None:
        return self._increments.get(base)

    def resolve(
        self,
        base_amount: Decimal | int | float,
        household_size: int | None,
        rule: RuleDefinition | None = None,
        context_path: str | None = None,
    ) -> ThresholdResult | None:
        """Resolve a threshold, returning the strategy used alongside the amount.

        Returns None when household size is unknown or below 1.
        """
        base = Decimal(str(base_amount))
        if household_size is None:
            return None
        size = int(household_size)
        if size < 1:
            logger.warning(
                "Household size %d is not positive (base=%s, path=%s); no threshold",
                size, base, context_path or "-",
            )
            return None

        increment = self._increments.get(base)
        if increment is not None:
            strategy = "table"
        else:
            increment = infer_increment(base, rule.explanation if rule else None)
            strategy = "inferred" if increment is not None else "naive"

        if increment is None:
            amount = base * size
        else:
            amount = base + increment * (size - 1)

        logger.debug(
            "Threshold %s for base=%s size=%d via %s (path=%s)",
            amount, base, size, strategy, context_path or "-",
        )
        return ThresholdResult(
            amount=amount, base=base, household_size=size, strategy=strategy, increment=increment,
        )

    def compute_threshold(
        self,
        base_amount: Decimal | int | float,
        household_size: int | None,
        rule: RuleDefinition | None = None,
        context_path: str | None = None,
    ) -> Decimal | None:
        """Threshold amount for a household, or None if size is unknown or invalid."""
        result = self.resolve(base_amount, household_size, rule, context_path)
        return result.amount if result else None

    def resolve_household_multiplication(
        self,
        node: Any,
        context: dict[str, Any],
        rule: RuleDefinition | None = None,
        context_path: str | None = None,
        calculations: list[Calculation] | None = None,
    ) -> Any:
        """Return a copy of `node` with every householdSize * base product resolved.

        Matches {"*": [{"var": "householdSize"}, <number>]} with the operands in
        either order. Unknown household size resolves the node to None. When
        `calculations` is given, one Calculation is appended per substitution.
        """
        if isinstance(node, list):
            return [
                self.resolve_household_multiplication(item, context, rule, context_path, calculations)
                for item in node
            ]
        if not isinstance(node, dict):
            return node

        base = _household_product_base(node)
        if base is None:
            return {
                op: self.resolve_household_multiplication(args, context, rule, context_path, calculations)
                for op, args in node.items()
            }

        size = context.get(HOUSEHOLD_SIZE_VAR)
        result = self.resolve(base, size, rule, context_path)
        if result is None:
            return None
        if calculations is not None:
            calculations.append(_describe(result))
        return result.amount


def _household_product_base(node: dict[str, Any]) -> Decimal | None:
    args = node.get("*") if len(node) == 1 else None
    if not isinstance(args, list) or len(args) != 2:
        return None
    for var_side, const_side in ((args[0], args[1]), (args[1], args[0])):
        if var_name(var_side) == HOUSEHOLD_SIZE_VAR and _is_constant(const_side):
            return Decimal(str(const_side))
    return None


def _is_constant(value: Any) -> bool:
    return isinstance(value, int | float | Decimal) and not isinstance(value, bool)


def _describe(result: ThresholdResult) -> Calculation:
    base = format_value("limit", result.base)
    label = f"Income limit for a household of {result.household_size}"
    if result.increment is None:
        how = f"{base} x {result.household_size} people"
    else:
        extra = result.household_size - 1
        how = f"{base} + {format_value('limit', result.increment)} x {extra} additional people"
    return Calculation(label=label, value=result.amount, comparison=f"{how} ({result.strategy})")
