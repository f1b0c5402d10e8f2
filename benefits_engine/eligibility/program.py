"""Program evaluator.

Runs every in-force rule of one program against a profile and folds the
outcomes into a single RawProgramResult:

- income rules run first; a definitive failure is a hard stop and the
  remaining rules are recorded as skipped,
- a definitive failure of a fully-answered rule means not eligible (95),
- a malformed rule with no definitive failure gives an error result (0),
- unknown outcomes or missing required fields give an incomplete result (50),
- all gating rules passing means eligible (95).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import Any, NamedTuple

from benefits_engine.calculators.thresholds import ThresholdResolver
from benefits_engine.config import ScoringSettings, settings
from benefits_engine.eligibility.context import AMI_VARIABLES, ami_variables, build_context
from benefits_engine.eligibility.programs import program_description, program_display_name
from benefits_engine.models.enums import GATING_RULE_TYPES, BenefitFrequency, RuleType
from benefits_engine.reference.ami_cache import AmiCache
from benefits_engine.reference.source import AmiDataError
from benefits_engine.rules.classification import is_income_rule
from benefits_engine.rules.evaluator import evaluate, format_value, referenced_variables
from benefits_engine.schemas.eligibility import EstimatedBenefit, RawProgramResult
from benefits_engine.schemas.profile import HouseholdProfile
from benefits_engine.schemas.rules import (
    Calculation,
    DocumentRequirement,
    EvaluationOutcome,
    NextStep,
    ProgramRuleSet,
    RuleDefinition,
)

logger = logging.getLogger(__name__)

REASON_ERROR = "Unable to evaluate eligibility due to an error"
REASON_INCOMPLETE = "Cannot fully determine eligibility - missing required information"
REASON_ELIGIBLE = "You meet the eligibility criteria for this program"
REASON_NOT_ELIGIBLE = "You do not meet the eligibility criteria for this program"
REASON_NO_RULES = "No active eligibility rules for this program"
REASON_BAD_HOUSEHOLD = "Household size must be at least 1"
SKIP_REASON = "Income rule failed - hard stop"

# Labels for limit breaches found in criteria
_BREACH_LABELS = {
    "householdIncome": "Annual household income",
    "annualIncome": "Annual household income",
    "monthlyIncome": "Monthly household income",
    "householdAssets": "Household assets",
}


class RuleRun(NamedTuple):
    """One rule's evaluation inside a program."""

    rule: RuleDefinition
    outcome: EvaluationOutcome
    missing: list[str]
    calculations: list[Calculation]

    @property
    def passed(self) -> bool:
        return self.outcome.success and self.outcome.result is not None and bool(self.outcome.result)

    @property
    def failed(self) -> bool:
        """Definitive failure: evaluated cleanly to a falsy value."""
        return self.outcome.success and self.outcome.result is not None and not self.outcome.result

    @property
    def unknown(self) -> bool:
        return self.outcome.success and self.outcome.result is None


def _missing_fields(rule: RuleDefinition, context: dict[str, Any]) -> list[str]:
    return [f for f in rule.required_fields if context.get(f) is None or context.get(f) == ""]


def _dedupe_documents(rules: list[RuleDefinition]) -> list[DocumentRequirement]:
    seen: dict[str, DocumentRequirement] = {}
    for rule in rules:
        for doc in rule.required_documents:
            seen.setdefault(doc.id, doc)
    return list(seen.values())


def _dedupe_steps(rules: list[RuleDefinition]) -> list[NextStep]:
    seen: dict[str, NextStep] = {}
    for rule in rules:
        for step in rule.next_steps:
            seen.setdefault(step.step, step)
    return list(seen.values())


def _breach_calculations(runs: list[RuleRun]) -> list[Calculation]:
    """A Calculation for each unmet upper limit on a money criterion."""
    calcs: list[Calculation] = []
    for run in runs:
        for c in run.outcome.criteria:
            if c.met or c.comparison not in ("<", "<=") or c.criterion not in _BREACH_LABELS:
                continue
            calcs.append(Calculation(
                label=_BREACH_LABELS[c.criterion],
                value=c.value,
                comparison=f"exceeds the limit of {format_value(c.criterion, c.threshold)}",
            ))
    return calcs


class ProgramEvaluator:
    """Evaluates one program's rule set for one profile."""

    def __init__(
        self,
        *,
        ami_cache: AmiCache | None = None,
        thresholds: ThresholdResolver | None = None,
        scoring: ScoringSettings | None = None,
        max_depth: int | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.ami_cache = ami_cache
        self.thresholds = thresholds or ThresholdResolver()
        self.scoring = scoring or settings.scoring
        self.max_depth = max_depth or settings.evaluator.max_rule_depth
        self._today = today

    async def evaluate(
        self,
        profile: HouseholdProfile,
        rule_set: ProgramRuleSet,
        context: dict[str, Any] | None = None,
    ) -> RawProgramResult:
        """Evaluate a program. `context` may be a prebuilt profile context; it is not mutated."""
        today = self._today()
        context = dict(context) if context is not None else build_context(profile, today)
        rules = sorted(
            (r for r in rule_set.rules if r.is_in_force(today)),
            key=lambda r: -r.priority,
        )
        gating = [r for r in rules if r.rule_type in GATING_RULE_TYPES]

        base = {
            "profile_id": profile.profile_id,
            "program_id": rule_set.program_id,
            "program_name": rule_set.program_name or program_display_name(rule_set.program_id),
            "program_description": rule_set.program_description or program_description(rule_set.program_id),
            "jurisdiction": rule_set.jurisdiction,
            "rules_version": rule_set.version or (rules[0].version if rules else "1.0.0"),
        }

        if not gating:
            logger.warning("Program %s has no active gating rules", rule_set.program_id)
            return RawProgramResult(
                **base, eligible=False, incomplete=True,
                confidence=self.scoring.error_confidence, reason=REASON_NO_RULES,
            )

        size = profile.household_size
        if size is not None and size < 1:
            logger.warning(
                "Household size %d for profile %s is not positive; %s marked ineligible",
                size, profile.profile_id, rule_set.program_id,
            )
            return RawProgramResult(
                **base, eligible=False, incomplete=True,
                confidence=self.scoring.error_confidence, reason=REASON_BAD_HOUSEHOLD,
                missing_fields=("householdSize",),
            )

        ami_missing = await self._merge_ami(context, profile, rules, rule_set.program_id)

        income_rules = [r for r in gating if is_income_rule(r)]
        other_rules = [r for r in gating if not is_income_rule(r)]

        runs: list[RuleRun] = []
        skipped: list[str] = []
        for i, rule in enumerate(income_rules):
            run = self._run_rule(rule, context)
            runs.append(run)
            if run.failed:
                skipped = [r.id for r in income_rules[i + 1:]] + [r.id for r in other_rules]
                logger.debug(
                    "%s (%s, %s); skipping %d rules",
                    SKIP_REASON, rule_set.program_id, rule.id, len(skipped),
                )
                break
        else:
            runs.extend(self._run_rule(rule, context) for rule in other_rules)

        return self._fold(base, runs, skipped, ami_missing, rules, context)

    async def _merge_ami(
        self,
        context: dict[str, Any],
        profile: HouseholdProfile,
        rules: list[RuleDefinition],
        program_id: str,
    ) -> bool:
        """Add AMI variables if any rule reads them. Returns True if they are unavailable."""
        wanted = {v for r in rules for v in referenced_variables(r.logic)} & AMI_VARIABLES
        if not wanted:
            return False
        state, county, size = context.get("state"), profile.county, profile.household_size
        if self.ami_cache is None or not state or not county or not size:
            logger.debug("AMI inputs incomplete for %s (state=%s county=%s size=%s)", program_id, state, county, size)
            return True
        try:
            entry = await self.ami_cache.get(state, county, size)
        except AmiDataError as exc:
            logger.warning("AMI data unavailable for %s: %s", program_id, exc)
            return True
        context.update(ami_variables(entry))
        return False

    def _run_rule(self, rule: RuleDefinition, context: dict[str, Any]) -> RuleRun:
        calculations: list[Calculation] = []
        logic = self.thresholds.resolve_household_multiplication(
            rule.logic, context, rule, context_path=rule.id, calculations=calculations,
        )
        outcome = evaluate(logic, context, max_depth=self.max_depth)
        if not outcome.success:
            logger.warning("Rule %s failed to evaluate: %s", rule.id, outcome.error)
        return RuleRun(rule, outcome, _missing_fields(rule, context), calculations)

    def _fold(
        self,
        base: dict[str, Any],
        runs: list[RuleRun],
        skipped: list[str],
        ami_missing: bool,
        rules: list[RuleDefinition],
        context: dict[str, Any],
    ) -> RawProgramResult:
        missing: dict[str, None] = {}
        for run in runs:
            missing.update(dict.fromkeys(run.missing))
        if ami_missing:
            missing["areaMedianIncome"] = None

        decisive = next((r for r in runs if r.failed and not r.missing), None)
        errored = [r for r in runs if not r.outcome.success]
        undetermined = [r for r in runs if r.unknown or r.missing]

        if decisive is not None:
            eligible, incomplete = False, False
            confidence = self.scoring.complete_confidence
            reason = decisive.rule.explanation or REASON_NOT_ELIGIBLE
        elif errored:
            eligible, incomplete = False, True
            confidence = self.scoring.error_confidence
            reason = REASON_ERROR
        elif undetermined or missing:
            eligible, incomplete = False, True
            confidence = self.scoring.incomplete_confidence
            reason = REASON_INCOMPLETE
        else:
            eligible, incomplete = True, False
            confidence = self.scoring.complete_confidence
            reason = REASON_ELIGIBLE

        lead = decisive or (errored[0] if errored else None) or (undetermined[0] if undetermined else runs[0])
        criteria = [c for r in runs for c in r.outcome.criteria]
        calculations = [c for r in runs for c in r.calculations] + _breach_calculations(runs)

        contributing = [r.rule for r in runs] + [r for r in rules if r.rule_type == RuleType.DOCUMENT_REQUIREMENTS]
        any_passed = any(r.passed for r in runs)
        documents = _dedupe_documents(contributing) if any_passed else []
        steps = _dedupe_steps(contributing) if any_passed else []

        benefit = self._estimate_benefit(rules, context) if eligible else None

        return RawProgramResult(
            **base,
            rule_id=lead.rule.id,
            eligible=eligible,
            confidence=confidence,
            incomplete=incomplete,
            reason=reason,
            criteria=tuple(criteria),
            calculations=tuple(calculations),
            rules_cited=tuple(r.rule.id for r in runs),
            skipped_rules=tuple(skipped),
            missing_fields=tuple(missing),
            required_documents=tuple(documents),
            next_steps=tuple(steps),
            estimated_benefit=benefit,
        )

    def _estimate_benefit(self, rules: list[RuleDefinition], context: dict[str, Any]) -> EstimatedBenefit | None:
        """First benefit_amount rule that yields a number.

        Logic is either an expression, or {"amount": <expression>, "frequency": ..., "description": ...}.
        """
        for rule in rules:
            if rule.rule_type != RuleType.BENEFIT_AMOUNT:
                continue
            logic, frequency, description = rule.logic, BenefitFrequency.MONTHLY, rule.explanation
            if isinstance(logic, dict) and "amount" in logic:
                frequency = BenefitFrequency(logic.get("frequency", BenefitFrequency.MONTHLY))
                description = logic.get("description", description)
                logic = logic["amount"]
            resolved = self.thresholds.resolve_household_multiplication(logic, context, rule, context_path=rule.id)
            outcome = evaluate(resolved, context, max_depth=self.max_depth)
            if not outcome.success:
                logger.warning("Benefit rule %s failed to evaluate: %s", rule.id, outcome.error)
                continue
            if isinstance(outcome.result, Decimal):
                amount = max(outcome.result, Decimal("0")).quantize(Decimal("0.01"))
                return EstimatedBenefit(amount=amount, frequency=frequency, description=description)
        return None
