"""Domain enums used across pydantic schemas and the evaluation pipeline.

All enums use the str mixin so results serialize to plain JSON strings.
"""

from __future__ import annotations

from enum import Enum


class IncomePeriod(str, Enum):
    """How the household reported its income."""

    MONTHLY = "monthly"
    ANNUAL = "annual"


class CitizenshipStatus(str, Enum):
    """Citizenship or immigration category; gates most federal programs."""

    US_CITIZEN = "us_citizen"
    PERMANENT_RESIDENT = "permanent_resident"
    REFUGEE = "refugee"
    ASYLEE = "asylee"
    VISA_HOLDER = "visa_holder"
    UNDOCUMENTED = "undocumented"
    OTHER = "other"


# Categories accepted by the federal programs we ship reasons for
ELIGIBLE_CITIZENSHIP: frozenset[CitizenshipStatus] = frozenset({
    CitizenshipStatus.US_CITIZEN,
    CitizenshipStatus.PERMANENT_RESIDENT,
    CitizenshipStatus.REFUGEE,
    CitizenshipStatus.ASYLEE,
})


class EmploymentStatus(str, Enum):
    """Current employment situation of the applicant."""

    EMPLOYED = "employed"
    SELF_EMPLOYED = "self_employed"
    UNEMPLOYED = "unemployed"
    RETIRED = "retired"
    STUDENT = "student"
    DISABLED = "disabled"


class RuleType(str, Enum):
    """What a rule contributes to a program result."""

    ELIGIBILITY = "eligibility"
    CONDITIONAL = "conditional"
    BENEFIT_AMOUNT = "benefit_amount"
    DOCUMENT_REQUIREMENTS = "document_requirements"


# Rule types whose outcome decides eligibility
GATING_RULE_TYPES: frozenset[RuleType] = frozenset({RuleType.ELIGIBILITY, RuleType.CONDITIONAL})


class EligibilityStatus(str, Enum):
    """Categorized outcome for one program."""

    QUALIFIED = "qualified"
    LIKELY = "likely"
    MAYBE = "maybe"
    UNLIKELY = "unlikely"
    NOT_QUALIFIED = "not-qualified"


class ConfidenceLevel(str, Enum):
    """Coarse confidence band shown next to the raw score."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class BenefitFrequency(str, Enum):
    """Payment frequency of an estimated benefit."""

    MONTHLY = "monthly"
    ANNUAL = "annual"
    ONE_TIME = "one-time"


class StepPriority(str, Enum):
    """Priority of a next step."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ReasonSeverity(str, Enum):
    """How strongly an explanation reason weighs against eligibility."""

    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"
