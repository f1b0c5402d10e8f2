"""Explanation generator.

Turns a raw program result into reasons a household can act on. For a
not-qualified result, reasons come from the first source that yields any:

1. unmet criteria and threshold breaches recorded during evaluation,
2. category words in the cited rule ids,
3. the static per-program tables, gated by profile predicates,
4. a generic sentence.

Maybe results get "what to clarify" reasons instead; qualifying results get a
short affirmative sentence only.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from benefits_engine.eligibility.programs import program_display_name, program_kind
from benefits_engine.explanations.reasons import (
    GENERIC_MAYBE_REASON,
    GENERIC_REASON,
    clarification_reasons,
    disqualification_reasons,
)
from benefits_engine.explanations.rule_ids import HyphenatedRuleIdParser, RuleIdReasonSource
from benefits_engine.models.enums import EligibilityStatus, ReasonSeverity
from benefits_engine.rules.evaluator import format_value
from benefits_engine.schemas.eligibility import Explanation, ExplanationReason, RawProgramResult
from benefits_engine.schemas.profile import HouseholdProfile
from benefits_engine.schemas.rules import Calculation, CriterionResult

logger = logging.getLogger(__name__)

_LIMIT_OPERATORS = ("<", "<=")
_MINIMUM_OPERATORS = (">", ">=")

# Context variable -> words used when asking for it
_FIELD_LABELS = {
    "householdIncome": "household income",
    "householdSize": "household size",
    "householdAssets": "household assets",
    "age": "age or date of birth",
    "dateOfBirth": "date of birth",
    "citizenship": "citizenship or immigration status",
    "employmentStatus": "employment status",
    "hasDisability": "disability status",
    "isPregnant": "pregnancy status",
    "hasChildren": "whether you have children",
    "state": "state of residence",
    "county": "county of residence",
    "areaMedianIncome": "county (for area median income)",
}


def _as_number(value: Any) -> Decimal | None:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int | float) and not isinstance(value, bool):
        return Decimal(str(value))
    return None


# ── Evaluation-derived reasons ─────────────────────────────────────────────


def _income_reason(c: CriterionResult, program: str) -> ExplanationReason:
    value = format_value("income", _as_number(c.value) or c.value)
    limit = format_value("income", _as_number(c.threshold) or c.threshold)
    if c.comparison in _LIMIT_OPERATORS:
        message = (
            f"Your household income ({value}) is above the {program} income limit ({limit}). "
            f"{program} has strict income guidelines that vary by household size."
        )
    else:
        message = f"Your household income ({value}) does not meet the {program} income requirements ({limit})."
    return ExplanationReason(
        key="income",
        message=message,
        severity=ReasonSeverity.CRITICAL,
        actionable=True,
        suggestion="Consider reapplying if your income changes or if you have expenses that qualify for deductions",
    )


def _asset_reason(c: CriterionResult, program: str) -> ExplanationReason:
    value = format_value("asset", _as_number(c.value) or c.value)
    limit = format_value("asset", _as_number(c.threshold) or c.threshold)
    if c.comparison in _LIMIT_OPERATORS:
        message = (
            f"Your household assets ({value}) exceed the {program} asset limit ({limit}). "
            "Some assets may be excluded from eligibility calculations."
        )
    else:
        message = f"Your household assets ({value}) do not meet the {program} asset requirements ({limit})."
    return ExplanationReason(
        key="assets",
        message=message,
        severity=ReasonSeverity.CRITICAL,
        actionable=True,
        suggestion="Some assets may be excluded from eligibility calculations; check with the program office",
    )


def _age_reason(c: CriterionResult, program: str) -> ExplanationReason:
    age = format_value("age", c.value)
    required = format_value("age", c.threshold)
    if c.comparison in _MINIMUM_OPERATORS:
        message = f"You are {age} years old, but {program} requires applicants to be at least {required} years old."
    else:
        message = f"Your age ({age}) does not meet the {program} age requirements."
    return ExplanationReason(key="age", message=message, severity=ReasonSeverity.CRITICAL)


def _reason_from_criterion(c: CriterionResult, program: str) -> ExplanationReason | None:
    name = c.criterion.lower()
    if "income" in name:
        return _income_reason(c, program)
    if "asset" in name or "resources" in name:
        return _asset_reason(c, program)
    if "age" in name:
        return _age_reason(c, program)
    if "disability" in name:
        return ExplanationReason(
            key="disability",
            message=(
                f"You indicated you don't have a qualifying disability. "
                f"{program} requires documented disability status for eligibility."
            ),
            severity=ReasonSeverity.CRITICAL,
        )
    if "citizenship" in name or "immigration" in name:
        return ExplanationReason(
            key="citizenship",
            message=(
                "You indicated you are not a U.S. citizen or qualified immigrant. "
                f"{program} requires U.S. citizenship or eligible immigration status."
            ),
            severity=ReasonSeverity.CRITICAL,
        )
    if c.message:
        return ExplanationReason(key="custom", message=c.message, actionable=True)
    return None


def _reason_from_calculation(calc: Calculation) -> ExplanationReason | None:
    comparison = (calc.comparison or "").lower()
    if "exceed" not in comparison and "above" not in comparison:
        return None
    label = calc.label.lower()
    if "income" in label:
        key, suggestion = "income_calculation", "Income limits vary by household size and may include deductions for certain expenses"
    elif "asset" in label:
        key, suggestion = "asset_calculation", "Some assets may be excluded from eligibility calculations"
    else:
        return None
    return ExplanationReason(
        key=key,
        message=f"Your {label} ({format_value(label, _as_number(calc.value) or calc.value)}) {calc.comparison}.",
        severity=ReasonSeverity.CRITICAL,
        actionable=True,
        suggestion=suggestion,
    )


def _add(reasons: list[ExplanationReason], reason: ExplanationReason | None, seen: set[str]) -> None:
    if reason is None or reason.key in seen:
        return
    seen.add(reason.key)
    reasons.append(reason)


def _category(key: str) -> str:
    return key.split("_")[0].rstrip("s")


class ExplanationGenerator:
    """Builds reasons and explanations for categorized results."""

    def __init__(self, rule_id_source: RuleIdReasonSource | None = None) -> None:
        self.rule_id_source = rule_id_source or HyphenatedRuleIdParser()

    # ── Structured reasons ──────────────────────────────────────────────

    def reasons(
        self,
        result: RawProgramResult,
        profile: HouseholdProfile | None,
        status: EligibilityStatus,
    ) -> list[ExplanationReason]:
        """Reasons for a result with the given status.

        Empty for qualified and likely results; never empty otherwise.
        """
        if status in (EligibilityStatus.QUALIFIED, EligibilityStatus.LIKELY):
            return []
        if status == EligibilityStatus.MAYBE:
            return self._clarifications(result, profile)
        return self._disqualifications(result, profile)

    def _disqualifications(
        self, result: RawProgramResult, profile: HouseholdProfile | None
    ) -> list[ExplanationReason]:
        program = self._program_name(result)
        reasons: list[ExplanationReason] = []
        seen: set[str] = set()

        for criterion in result.criteria:
            if not criterion.met:
                _add(reasons, _reason_from_criterion(criterion, program), seen)
        covered = {_category(k) for k in seen}
        for calc in result.calculations:
            reason = _reason_from_calculation(calc)
            if reason is not None and _category(reason.key) not in covered:
                _add(reasons, reason, seen)
        if reasons:
            return reasons

        cited = list(result.rules_cited)
        if result.rule_id and result.rule_id in cited:
            cited.remove(result.rule_id)
            cited.insert(0, result.rule_id)
        for rule_id in cited:
            _add(reasons, self.rule_id_source.reason_for(rule_id, program, profile), seen)
        if reasons:
            return reasons

        if profile is not None:
            for key, message in disqualification_reasons(program_kind(result.program_id), profile):
                _add(reasons, ExplanationReason(key=key, message=message), seen)
        if reasons:
            return reasons

        logger.debug("No specific reason for %s; using generic fallback", result.program_id)
        return [ExplanationReason(key="generic", message=GENERIC_REASON)]

    def _clarifications(
        self, result: RawProgramResult, profile: HouseholdProfile | None
    ) -> list[ExplanationReason]:
        reasons: list[ExplanationReason] = []
        if result.missing_fields:
            labels = [_FIELD_LABELS.get(f, f) for f in result.missing_fields]
            reasons.append(ExplanationReason(
                key="missingInformation",
                message=f"Provide the missing information: {', '.join(labels)}",
                severity=ReasonSeverity.MINOR,
                actionable=True,
            ))
        if profile is not None:
            for key, message in clarification_reasons(program_kind(result.program_id), profile):
                reasons.append(ExplanationReason(
                    key=key, message=message, severity=ReasonSeverity.MINOR, actionable=True,
                ))
        if not reasons:
            reasons.append(ExplanationReason(
                key="generic", message=GENERIC_MAYBE_REASON, severity=ReasonSeverity.MINOR, actionable=True,
            ))
        return reasons

    # ── Explanation ─────────────────────────────────────────────────────

    def explain(
        self,
        result: RawProgramResult,
        profile: HouseholdProfile | None = None,
        status: EligibilityStatus | None = None,
    ) -> Explanation:
        """Canonical explanation for a raw result."""
        if status is None:
            # Local import: the categorizer builds on this module.
            from benefits_engine.eligibility.categorizer import derive_status

            status = derive_status(result)

        program = self._program_name(result)
        reasons = self.reasons(result, profile, status)

        if status == EligibilityStatus.QUALIFIED:
            reason, details = f"You meet the eligibility criteria for {program}", []
        elif status == EligibilityStatus.LIKELY:
            reason = f"You likely meet the eligibility criteria for {program}"
            details = ["Some of your answers could not be fully verified against the program rules"]
        elif status == EligibilityStatus.MAYBE:
            reason = result.reason or "Cannot fully determine eligibility"
            details = [r.message for r in reasons]
        else:
            reason = reasons[0].message
            details = [r.message for r in reasons[1:]]

        return Explanation(
            reason=reason,
            details=details,
            rules_cited=list(result.rules_cited),
            calculations=list(result.calculations),
        )

    @staticmethod
    def _program_name(result: RawProgramResult) -> str:
        return result.program_name or program_display_name(result.program_id)
