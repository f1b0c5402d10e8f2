"""Evaluation orchestrator: the entry point for "evaluate this profile".

Runs the ProgramEvaluator for every requested program concurrently. One
program failing, for any reason, never prevents the others from producing
a result; every requested program is present in the output.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import date

from benefits_engine.calculators.thresholds import ThresholdResolver
from benefits_engine.config import ScoringSettings, settings
from benefits_engine.eligibility.categorizer import categorize
from benefits_engine.eligibility.context import build_context
from benefits_engine.eligibility.program import REASON_ERROR, ProgramEvaluator
from benefits_engine.eligibility.programs import program_display_name
from benefits_engine.explanations.generator import ExplanationGenerator
from benefits_engine.reference.ami_cache import AmiCache
from benefits_engine.schemas.eligibility import EligibilityResults, RawProgramResult
from benefits_engine.schemas.profile import HouseholdProfile
from benefits_engine.schemas.rules import ProgramRuleSet

logger = logging.getLogger(__name__)


class EvaluationOrchestrator:
    """Evaluates a profile against a collection of program rule sets.

    The AMI cache and threshold resolver are passed in by the owner; nothing
    here reaches for a process-wide instance.
    """

    def __init__(
        self,
        *,
        ami_cache: AmiCache | None = None,
        thresholds: ThresholdResolver | None = None,
        explainer: ExplanationGenerator | None = None,
        scoring: ScoringSettings | None = None,
    ) -> None:
        self.scoring = scoring or settings.scoring
        self.explainer = explainer or ExplanationGenerator()
        self.program_evaluator = ProgramEvaluator(
            ami_cache=ami_cache,
            thresholds=thresholds,
            scoring=self.scoring,
        )

    async def evaluate(
        self,
        profile: HouseholdProfile,
        rule_sets: Iterable[ProgramRuleSet],
    ) -> dict[str, RawProgramResult]:
        """Raw result per program id, in the order the rule sets were given."""
        unique: dict[str, ProgramRuleSet] = {}
        for rule_set in rule_sets:
            if rule_set.program_id in unique:
                logger.warning("Duplicate rule set for %s ignored", rule_set.program_id)
                continue
            unique[rule_set.program_id] = rule_set

        context = build_context(profile, date.today())
        results = await asyncio.gather(
            *[self._evaluate_one(profile, rule_set, context) for rule_set in unique.values()],
        )
        logger.info("Evaluated %d programs for profile %s", len(results), profile.profile_id)
        return {r.program_id: r for r in results}

    async def _evaluate_one(
        self,
        profile: HouseholdProfile,
        rule_set: ProgramRuleSet,
        context: dict,
    ) -> RawProgramResult:
        try:
            return await self.program_evaluator.evaluate(profile, rule_set, context)
        except Exception:
            logger.exception("Evaluation of %s failed for profile %s", rule_set.program_id, profile.profile_id)
            return RawProgramResult(
                profile_id=profile.profile_id,
                program_id=rule_set.program_id,
                program_name=rule_set.program_name or program_display_name(rule_set.program_id),
                program_description=rule_set.program_description,
                jurisdiction=rule_set.jurisdiction,
                eligible=False,
                incomplete=True,
                confidence=self.scoring.error_confidence,
                reason=REASON_ERROR,
                rules_version=rule_set.version or "1.0.0",
            )

    async def assess(
        self,
        profile: HouseholdProfile,
        rule_sets: Iterable[ProgramRuleSet],
    ) -> EligibilityResults:
        """Evaluate, categorize and explain: the full pipeline for one profile."""
        raw = await self.evaluate(profile, rule_sets)
        return categorize(
            raw.values(),
            profile,
            explainer=self.explainer,
            threshold=self.scoring.qualified_confidence_threshold,
        )
