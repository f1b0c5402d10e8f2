"""Pydantic schemas for per-program results and the bucketed aggregate.

RawProgramResult is what the ProgramEvaluator produces; the categorizer
turns it into ProgramEligibilityResult and groups those into
EligibilityResults, the record handed to persistence and presentation.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from benefits_engine.models.enums import (
    BenefitFrequency,
    ConfidenceLevel,
    EligibilityStatus,
    ReasonSeverity,
)
from benefits_engine.schemas.rules import Calculation, CriterionResult, DocumentRequirement, NextStep


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Evaluator output
# ---------------------------------------------------------------------------


class EstimatedBenefit(BaseModel):
    """Benefit amount computed by a benefit_amount rule."""

    amount: Decimal
    frequency: BenefitFrequency = BenefitFrequency.MONTHLY
    description: str | None = None


class RawProgramResult(BaseModel):
    """Per-program evaluation output, before categorization."""

    model_config = ConfigDict(frozen=True)

    profile_id: str
    program_id: str
    rule_id: str | None = None          # first gating rule evaluated
    eligible: bool
    confidence: int = Field(ge=0, le=100)
    incomplete: bool = False
    reason: str = ""
    criteria: tuple[CriterionResult, ...] = ()
    calculations: tuple[Calculation, ...] = ()
    rules_cited: tuple[str, ...] = ()
    skipped_rules: tuple[str, ...] = ()  # not evaluated after an income hard stop
    missing_fields: tuple[str, ...] = ()
    required_documents: tuple[DocumentRequirement, ...] = ()
    next_steps: tuple[NextStep, ...] = ()
    estimated_benefit: EstimatedBenefit | None = None
    program_name: str | None = None
    program_description: str = ""
    jurisdiction: str = "US-FEDERAL"
    rules_version: str = "1.0.0"
    evaluated_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Explanations
# ---------------------------------------------------------------------------


class Explanation(BaseModel):
    """Canonical explanation attached to a categorized result."""

    kind: Literal["canonical"] = "canonical"
    reason: str
    details: list[str] = Field(default_factory=list)
    rules_cited: list[str] = Field(default_factory=list)
    calculations: list[Calculation] = Field(default_factory=list)


class LegacyExplanation(BaseModel):
    """Older explanation shape still found in persisted results."""

    kind: Literal["legacy"] = "legacy"
    reasoning: str | list[str] = ""
    confidence: int | None = None
    criteria: list[dict[str, Any]] = Field(default_factory=list)
    factors: list[str] = Field(default_factory=list)


AnyExplanation = Annotated[Explanation | LegacyExplanation, Field(discriminator="kind")]


class ExplanationReason(BaseModel):
    """One structured reason produced by the explanation generator."""

    key: str
    message: str
    severity: ReasonSeverity = ReasonSeverity.MAJOR
    actionable: bool = False
    suggestion: str | None = None


# ---------------------------------------------------------------------------
# Categorized output
# ---------------------------------------------------------------------------


class ProgramEligibilityResult(BaseModel):
    """Externally visible per-program result."""

    program_id: str
    program_name: str
    program_description: str = ""
    jurisdiction: str = "US-FEDERAL"
    status: EligibilityStatus
    confidence: ConfidenceLevel
    confidence_score: int = Field(ge=0, le=100)
    explanation: Explanation
    required_documents: list[DocumentRequirement] = Field(default_factory=list)
    next_steps: list[NextStep] = Field(default_factory=list)
    estimated_benefit: EstimatedBenefit | None = None
    evaluated_at: datetime = Field(default_factory=_utcnow)
    rules_version: str = "1.0.0"

    @field_validator("explanation", mode="before")
    @classmethod
    def coerce_legacy_explanation(cls, v: Any) -> Any:
        """Accept legacy explanation shapes and store the canonical form."""
        # Local import: the adapter module depends on these schemas.
        from benefits_engine.explanations.legacy import normalize_explanation

        return normalize_explanation(v)


class EligibilityResults(BaseModel):
    """Bucketed results for one profile. Terminal artifact of the pipeline."""

    qualified: list[ProgramEligibilityResult] = Field(default_factory=list)
    likely: list[ProgramEligibilityResult] = Field(default_factory=list)
    maybe: list[ProgramEligibilityResult] = Field(default_factory=list)
    not_qualified: list[ProgramEligibilityResult] = Field(default_factory=list, alias="notQualified")
    total_programs: int = Field(default=0, alias="totalPrograms")
    evaluated_at: datetime = Field(default_factory=_utcnow, alias="evaluatedAt")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def check_total(self) -> EligibilityResults:
        """totalPrograms must equal the sum of the bucket lengths."""
        counted = len(self.qualified) + len(self.likely) + len(self.maybe) + len(self.not_qualified)
        if self.total_programs != counted:
            msg = f"total_programs={self.total_programs} but buckets hold {counted} results"
            raise ValueError(msg)
        return self

    def all_results(self) -> list[ProgramEligibilityResult]:
        """Every result, in bucket order."""
        return [*self.qualified, *self.likely, *self.maybe, *self.not_qualified]
