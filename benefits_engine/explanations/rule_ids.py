"""Reasons guessed from cited rule ids.

A last-resort heuristic: rule ids such as "snap-income-limit-2024" are split
on hyphens and scanned for category words. Callers depend only on
RuleIdReasonSource, so a structured rule-metadata lookup can replace the
parser without touching them.
"""

from __future__ import annotations

from typing import Protocol

from benefits_engine.calculators.income import annualize_income
from benefits_engine.models.enums import ReasonSeverity
from benefits_engine.rules.evaluator import format_value
from benefits_engine.schemas.eligibility import ExplanationReason
from benefits_engine.schemas.profile import HouseholdProfile


class RuleIdReasonSource(Protocol):
    """Maps a cited rule id to a reason, or None if it says nothing useful."""

    def reason_for(
        self, rule_id: str, program_name: str, profile: HouseholdProfile | None
    ) -> ExplanationReason | None: ...


class HyphenatedRuleIdParser:
    """Reads category tokens (income, asset, age, disability) out of rule ids."""

    def reason_for(
        self, rule_id: str, program_name: str, profile: HouseholdProfile | None
    ) -> ExplanationReason | None:
        tokens = set(rule_id.lower().split("-"))

        if "income" in tokens:
            income = annualize_income(profile.household_income, profile.income_period) if profile else None
            if income is not None:
                message = (
                    f"Your household income ({format_value('income', income)}) appears to be above the "
                    f"{program_name} income guidelines. Income limits vary by household size and may include "
                    "deductions for certain expenses."
                )
            else:
                message = (
                    f"Your household income may be above the {program_name} income guidelines. "
                    "Income limits vary by household size."
                )
            return ExplanationReason(
                key="income_rule",
                message=message,
                severity=ReasonSeverity.CRITICAL,
                actionable=True,
                suggestion="Income limits vary by household size and may include deductions",
            )

        if "asset" in tokens or "assets" in tokens:
            assets = profile.household_assets if profile else None
            if assets is not None:
                message = (
                    f"Your household assets ({format_value('asset', assets)}) appear to exceed the "
                    f"{program_name} asset guidelines. Some assets may be excluded from eligibility calculations."
                )
            else:
                message = (
                    f"Your household assets may exceed the {program_name} asset guidelines. "
                    "Some assets may be excluded from eligibility calculations."
                )
            return ExplanationReason(
                key="asset_rule",
                message=message,
                severity=ReasonSeverity.CRITICAL,
                actionable=True,
                suggestion="Some assets may be excluded from eligibility calculations",
            )

        if "age" in tokens:
            age = profile.age if profile else None
            if age is not None:
                message = (
                    f"Your age ({age}) may not meet the {program_name} age requirements. "
                    "Age requirements vary by program and may have exceptions."
                )
            else:
                message = f"You may not meet the {program_name} age requirements. Age requirements vary by program."
            return ExplanationReason(key="age_rule", message=message, severity=ReasonSeverity.CRITICAL)

        if "disability" in tokens:
            return ExplanationReason(
                key="disability_rule",
                message=(
                    f"You indicated you don't have a qualifying disability. "
                    f"{program_name} requires documented disability status for eligibility."
                ),
                severity=ReasonSeverity.CRITICAL,
            )

        return None
