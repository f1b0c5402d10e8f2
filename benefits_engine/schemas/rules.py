"""Pydantic schemas for authored rule sets and evaluator output.

Rule trees are JSON-serializable and validated upstream; these models
only give the engine typed access to the surrounding metadata.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from benefits_engine.models.enums import RuleType, StepPriority

# A rule expression is any JSON value: literal, list, or {operator: operands}
RuleExpression = Any


class DocumentRequirement(BaseModel):
    """Document an applicant must bring."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str | None = None
    required: bool = True
    where: str | None = None


class NextStep(BaseModel):
    """Action the applicant should take next."""

    model_config = ConfigDict(frozen=True)

    step: str
    url: str | None = None
    priority: StepPriority = StepPriority.MEDIUM


class RuleDefinition(BaseModel):
    """One authored eligibility rule."""

    model_config = ConfigDict(frozen=True)

    id: str
    program_id: str
    name: str = ""
    rule_type: RuleType = RuleType.ELIGIBILITY
    logic: RuleExpression
    explanation: str | None = None   # free text, also mined for threshold figures
    required_fields: tuple[str, ...] = ()
    required_documents: tuple[DocumentRequirement, ...] = ()
    next_steps: tuple[NextStep, ...] = ()
    version: str = "1.0.0"
    active: bool = True
    draft: bool = False
    priority: int = 0                # higher = evaluated first
    effective_date: date | None = None
    expiration_date: date | None = None

    def is_in_force(self, on: date) -> bool:
        """True when the rule is active, published, and within its date window."""
        if not self.active or self.draft:
            return False
        if self.effective_date and on < self.effective_date:
            return False
        if self.expiration_date and on > self.expiration_date:
            return False
        return True


class ProgramRuleSet(BaseModel):
    """All rules for one program plus display metadata."""

    model_config = ConfigDict(frozen=True)

    program_id: str
    rules: tuple[RuleDefinition, ...] = ()
    program_name: str | None = None
    program_description: str = ""
    jurisdiction: str = "US-FEDERAL"
    version: str | None = None


class CriterionResult(BaseModel):
    """Outcome of a single comparison inside a rule."""

    criterion: str
    met: bool
    value: Any = None
    threshold: Any = None
    comparison: str | None = None      # operator, e.g. "<="
    message: str | None = None         # e.g. "$3,500 exceeds the limit of $2,888"


class Calculation(BaseModel):
    """A computed figure shown alongside an explanation."""

    label: str
    value: Any
    comparison: str | None = None


class EvaluationOutcome(BaseModel):
    """Result of evaluating one expression tree against a context."""

    success: bool
    result: Any = None
    error: str | None = None
    criteria: list[CriterionResult] = Field(default_factory=list)
