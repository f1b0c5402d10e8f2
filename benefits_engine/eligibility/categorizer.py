"""Result categorizer.

Maps raw per-program results to statuses and groups them into the four
output buckets. Bucket order is evaluation order; nothing is re-sorted.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from benefits_engine.config import settings
from benefits_engine.eligibility.programs import program_description, program_display_name
from benefits_engine.explanations.generator import ExplanationGenerator
from benefits_engine.models.enums import ConfidenceLevel, EligibilityStatus
from benefits_engine.schemas.eligibility import EligibilityResults, ProgramEligibilityResult, RawProgramResult
from benefits_engine.schemas.profile import HouseholdProfile

logger = logging.getLogger(__name__)

# Every status lands in exactly one bucket; unlikely shares not_qualified.
STATUS_BUCKETS: dict[EligibilityStatus, str] = {
    EligibilityStatus.QUALIFIED: "qualified",
    EligibilityStatus.LIKELY: "likely",
    EligibilityStatus.MAYBE: "maybe",
    EligibilityStatus.UNLIKELY: "not_qualified",
    EligibilityStatus.NOT_QUALIFIED: "not_qualified",
}


def derive_status(result: RawProgramResult, threshold: int | None = None) -> EligibilityStatus:
    """Status from eligibility, confidence and completeness."""
    cutoff = settings.scoring.qualified_confidence_threshold if threshold is None else threshold
    if result.eligible:
        return EligibilityStatus.QUALIFIED if result.confidence >= cutoff else EligibilityStatus.LIKELY
    if result.incomplete or result.confidence < cutoff:
        return EligibilityStatus.MAYBE
    return EligibilityStatus.NOT_QUALIFIED


def confidence_level(score: int, high: int | None = None, medium: int | None = None) -> ConfidenceLevel:
    """Band for a 0-100 confidence score."""
    high = settings.scoring.qualified_confidence_threshold if high is None else high
    medium = settings.scoring.medium_confidence_threshold if medium is None else medium
    if score >= high:
        return ConfidenceLevel.HIGH
    if score >= medium:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def bucket_for(status: EligibilityStatus) -> str:
    return STATUS_BUCKETS[status]


def to_program_result(
    result: RawProgramResult,
    status: EligibilityStatus,
    explainer: ExplanationGenerator,
    profile: HouseholdProfile | None = None,
) -> ProgramEligibilityResult:
    """Externally visible form of one raw result."""
    return ProgramEligibilityResult(
        program_id=result.program_id,
        program_name=result.program_name or program_display_name(result.program_id),
        program_description=result.program_description or program_description(result.program_id),
        jurisdiction=result.jurisdiction,
        status=status,
        confidence=confidence_level(result.confidence),
        confidence_score=result.confidence,
        explanation=explainer.explain(result, profile, status),
        required_documents=list(result.required_documents),
        next_steps=list(result.next_steps),
        estimated_benefit=result.estimated_benefit,
        evaluated_at=result.evaluated_at,
        rules_version=result.rules_version,
    )


def categorize(
    raw_results: Iterable[RawProgramResult],
    profile: HouseholdProfile | None = None,
    *,
    explainer: ExplanationGenerator | None = None,
    threshold: int | None = None,
) -> EligibilityResults:
    """Bucket raw results into qualified / likely / maybe / notQualified.

    Args:
        raw_results: One result per evaluated program, in evaluation order.
        profile: Household profile, used for profile-aware explanations.
        explainer: Explanation generator; a default one is built if omitted.
        threshold: Confidence cut-off; defaults to the configured value.
    """
    explainer = explainer or ExplanationGenerator()
    buckets: dict[str, list[ProgramEligibilityResult]] = {
        "qualified": [], "likely": [], "maybe": [], "not_qualified": [],
    }
    for raw in raw_results:
        status = derive_status(raw, threshold)
        buckets[bucket_for(status)].append(to_program_result(raw, status, explainer, profile))

    total = sum(len(b) for b in buckets.values())
    logger.info(
        "Categorized %d programs: %d qualified, %d likely, %d maybe, %d not qualified",
        total, len(buckets["qualified"]), len(buckets["likely"]),
        len(buckets["maybe"]), len(buckets["not_qualified"]),
    )
    return EligibilityResults(**buckets, total_programs=total)
