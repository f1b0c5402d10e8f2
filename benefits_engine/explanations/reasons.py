"""Static per-program reason tables.

Used only when an evaluation carries no criterion detail and no cited rule
explains the outcome. Each entry is gated by a predicate over the household
profile; disqualification tables apply to not-qualified results, the
clarification tables to maybe results.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import NamedTuple

from benefits_engine.calculators.income import annualize_income
from benefits_engine.eligibility.programs import ProgramKind
from benefits_engine.models.enums import ELIGIBLE_CITIZENSHIP, EmploymentStatus
from benefits_engine.schemas.profile import HouseholdProfile

GENERIC_REASON = "You may not meet the specific eligibility requirements for this program"
GENERIC_MAYBE_REASON = "You may need to provide additional information or meet certain requirements"

_CITIZENSHIP = "You indicated you are not a U.S. citizen or qualified immigrant"

# Annual income per household member above which a program is probably out of reach
INCOME_PER_PERSON_LIMITS: dict[ProgramKind | None, Decimal] = {
    ProgramKind.SNAP: Decimal("20000"),
    ProgramKind.TANF: Decimal("15000"),
    ProgramKind.SSI: Decimal("12000"),
    ProgramKind.MEDICAID: Decimal("25000"),
    ProgramKind.SECTION8: Decimal("25000"),
    ProgramKind.LIHTC: Decimal("35000"),
    ProgramKind.WIC: Decimal("30000"),
    None: Decimal("30000"),
}


class StaticReason(NamedTuple):
    key: str
    message: str
    applies: Callable[[HouseholdProfile], bool]


# ── Predicates ─────────────────────────────────────────────────────────────


def _income_per_person(profile: HouseholdProfile) -> Decimal | None:
    annual = annualize_income(profile.household_income, profile.income_period)
    if annual is None or not profile.household_size or profile.household_size < 1:
        return None
    return annual / profile.household_size


def _income_above(kind: ProgramKind | None) -> Callable[[HouseholdProfile], bool]:
    def check(profile: HouseholdProfile) -> bool:
        per_person = _income_per_person(profile)
        return per_person is not None and per_person > INCOME_PER_PERSON_LIMITS[kind]
    return check


def _ineligible_citizenship(profile: HouseholdProfile) -> bool:
    return profile.citizenship is not None and profile.citizenship not in ELIGIBLE_CITIZENSHIP


def _minor_without_children(profile: HouseholdProfile) -> bool:
    return profile.age is not None and profile.age < 18 and not profile.has_children


def _retired_or_student(profile: HouseholdProfile) -> bool:
    return profile.employment_status in (EmploymentStatus.RETIRED, EmploymentStatus.STUDENT)


def _income_unknown(profile: HouseholdProfile) -> bool:
    return profile.household_income is None or not profile.household_size


def _always(_profile: HouseholdProfile) -> bool:
    return True


def _citizenship_reason(program: str) -> StaticReason:
    return StaticReason(
        "citizenship",
        f"{_CITIZENSHIP}. {program} requires U.S. citizenship or eligible immigration status.",
        _ineligible_citizenship,
    )


# ── Disqualification tables ────────────────────────────────────────────────

GENERIC_REASONS: tuple[StaticReason, ...] = (
    StaticReason(
        "citizenship",
        f"{_CITIZENSHIP}. Most benefit programs require U.S. citizenship or eligible immigration status.",
        _ineligible_citizenship,
    ),
    StaticReason(
        "incomeTooHigh",
        "Your household income appears to be above the program income guidelines. "
        "Income limits vary by program and household size.",
        _income_above(None),
    ),
)

PROGRAM_REASONS: dict[ProgramKind, tuple[StaticReason, ...]] = {
    ProgramKind.WIC: (
        StaticReason(
            "notPregnant",
            "You indicated you are not pregnant. WIC provides nutrition assistance for pregnant women, "
            "new mothers, and children under 5.",
            lambda p: p.is_pregnant is False,
        ),
        StaticReason(
            "noChildren",
            "You indicated you don't have children under 5 years old. WIC serves pregnant women, "
            "new mothers, and children up to age 5.",
            lambda p: p.has_children is False,
        ),
        StaticReason(
            "noWicCategory",
            "You don't meet the WIC participant categories. WIC serves pregnant women, new mothers "
            "(up to 6 months postpartum), breastfeeding mothers (up to 1 year), and children under 5.",
            lambda p: not p.is_pregnant and not p.has_children,
        ),
        StaticReason(
            "incomeTooHigh",
            "Your household income appears to be above the WIC income guidelines (185% of federal poverty level). "
            "WIC has strict income limits that vary by household size.",
            _income_above(ProgramKind.WIC),
        ),
    ),
    ProgramKind.MEDICAID: (
        StaticReason(
            "incomeTooHigh",
            "Your household income appears to be above the Medicaid income guidelines. "
            "Medicaid income limits vary significantly by state and household size.",
            _income_above(ProgramKind.MEDICAID),
        ),
        StaticReason(
            "noDisability",
            "You indicated you don't have a qualifying disability. Medicaid covers people with disabilities, "
            "but also serves children, pregnant women, and low-income adults in expansion states.",
            lambda p: p.has_disability is False,
        ),
        StaticReason(
            "ageRestriction",
            "You may not meet the age requirements for Medicaid. Medicaid typically covers children under 19, "
            "pregnant women, adults 65+, and people with disabilities. "
            "Some states have expanded coverage for adults 19-64.",
            lambda p: p.age is not None and 19 <= p.age < 65 and not p.is_pregnant,
        ),
        _citizenship_reason("Medicaid"),
    ),
    ProgramKind.SNAP: (
        StaticReason(
            "incomeTooHigh",
            "Your household income appears to be above the SNAP income guidelines (130% of federal poverty level). "
            "SNAP has strict income limits that vary by household size.",
            _income_above(ProgramKind.SNAP),
        ),
        StaticReason(
            "employmentStatus",
            "Your employment status may not meet SNAP work requirements. Able-bodied adults without dependents "
            "must work at least 20 hours per week or take part in work activities.",
            _retired_or_student,
        ),
        _citizenship_reason("SNAP"),
        StaticReason(
            "ageRestriction",
            "You may not meet the age requirements for SNAP. SNAP serves households with children "
            "or adults 18 and older.",
            _minor_without_children,
        ),
    ),
    ProgramKind.TANF: (
        StaticReason(
            "noChildren",
            "You indicated you don't have children under 18 years old. "
            "TANF provides cash assistance to families with dependent children.",
            lambda p: p.has_children is False,
        ),
        StaticReason(
            "incomeTooHigh",
            "Your household income appears to be above the TANF income guidelines. "
            "TANF has very strict income limits that vary by state and household size.",
            _income_above(ProgramKind.TANF),
        ),
        StaticReason(
            "employmentStatus",
            "Your employment status may not meet TANF work requirements. "
            "TANF requires parents to take part in work activities or job search programs.",
            _retired_or_student,
        ),
        _citizenship_reason("TANF"),
    ),
    ProgramKind.SSI: (
        StaticReason(
            "noDisability",
            "You indicated you don't have a qualifying disability. "
            "SSI provides cash assistance to people with disabilities or those 65 and older.",
            lambda p: p.has_disability is False,
        ),
        StaticReason(
            "ageRestriction",
            "You may not meet the age requirements for SSI. "
            "SSI serves people with qualifying disabilities or those 65 and older.",
            lambda p: not p.has_disability and (p.age is None or p.age < 65),
        ),
        StaticReason(
            "incomeTooHigh",
            "Your household income appears to be above the SSI income guidelines. "
            "SSI has very strict income and asset limits.",
            _income_above(ProgramKind.SSI),
        ),
        _citizenship_reason("SSI"),
    ),
    ProgramKind.SECTION8: (
        StaticReason(
            "incomeTooHigh",
            "Your household income appears to be above the Section 8 income guidelines (50% of area median income). "
            "Section 8 income limits vary significantly by location and household size.",
            _income_above(ProgramKind.SECTION8),
        ),
        _citizenship_reason("Section 8"),
        StaticReason(
            "ageRestriction",
            "You may not meet the age requirements for Section 8. "
            "Section 8 serves households with adults 18 and older or families with children.",
            _minor_without_children,
        ),
    ),
    ProgramKind.LIHTC: (
        StaticReason(
            "incomeTooHigh",
            "Your household income appears to be above the LIHTC income guidelines. "
            "LIHTC income limits vary significantly by area and household size.",
            _income_above(ProgramKind.LIHTC),
        ),
        StaticReason(
            "studentStatus",
            "You may be a full-time student, which can affect LIHTC eligibility. "
            "Some LIHTC properties restrict full-time students.",
            lambda p: p.employment_status == EmploymentStatus.STUDENT,
        ),
        _citizenship_reason("LIHTC"),
        StaticReason(
            "ageRestriction",
            "You may not meet the age requirements for LIHTC housing. "
            "LIHTC serves households with adults 18 and older or families with children.",
            _minor_without_children,
        ),
    ),
}


# ── Clarification tables (maybe) ───────────────────────────────────────────

MAYBE_REASONS: dict[ProgramKind, tuple[StaticReason, ...]] = {
    ProgramKind.WIC: (
        StaticReason(
            "pregnancyStatus",
            "Clarify your pregnancy status: WIC serves pregnant women, new mothers (up to 6 months postpartum), "
            "and breastfeeding mothers (up to 1 year)",
            lambda p: p.is_pregnant is None,
        ),
        StaticReason(
            "childrenStatus",
            "Clarify if you have children under 5: WIC provides nutrition assistance for children up to age 5",
            lambda p: p.has_children is None,
        ),
        StaticReason(
            "incomeVerification",
            "Provide detailed income verification: WIC income guidelines (185% of federal poverty level) "
            "vary by household size",
            _income_unknown,
        ),
        StaticReason(
            "nutritionalRisk",
            "Complete a nutritional risk assessment: WIC requires documented nutritional need "
            "assessed by a health professional",
            _always,
        ),
    ),
    ProgramKind.MEDICAID: (
        StaticReason(
            "incomeVerification",
            "Provide detailed income verification: Medicaid income limits vary significantly by state "
            "and household size",
            _income_unknown,
        ),
        StaticReason(
            "disabilityStatus",
            "Clarify disability status: Medicaid covers people with disabilities, children, pregnant women, "
            "and low-income adults in expansion states",
            lambda p: p.has_disability is None,
        ),
        StaticReason(
            "ageVerification",
            "Verify age requirements: Medicaid has different rules for children (under 19), adults (19-64), "
            "and seniors (65+)",
            lambda p: p.age is None and p.date_of_birth is None,
        ),
        StaticReason(
            "stateSpecific",
            "Check state-specific Medicaid expansion: eligibility varies by state, "
            "with some states covering adults 19-64",
            lambda p: not p.state,
        ),
    ),
    ProgramKind.SNAP: (
        StaticReason(
            "incomeVerification",
            "Provide detailed income verification: SNAP income limits (130% of federal poverty level) "
            "vary by household size",
            _income_unknown,
        ),
        StaticReason(
            "workRequirements",
            "Clarify work status: able-bodied adults without dependents must work 20+ hours per week for SNAP",
            lambda p: p.employment_status is None,
        ),
        StaticReason(
            "expenseDeductions",
            "Document allowable expenses: SNAP deducts housing, utilities, medical costs and other expenses "
            "that can lower your countable income",
            _always,
        ),
        StaticReason(
            "citizenshipVerification",
            "Provide citizenship documentation: SNAP requires U.S. citizenship or qualified immigrant status "
            "for all household members",
            lambda p: p.citizenship is None,
        ),
    ),
    ProgramKind.TANF: (
        StaticReason(
            "childrenVerification",
            "Provide children's birth certificates and Social Security numbers: TANF requires dependent children under 18",
            lambda p: p.has_children is None,
        ),
        StaticReason(
            "incomeVerification",
            "Provide detailed income verification: TANF income limits are very strict and vary by state "
            "and household size",
            _income_unknown,
        ),
        StaticReason(
            "workPlan",
            "Develop a work plan: TANF requires work activities, job search, or education and training",
            lambda p: p.employment_status == EmploymentStatus.UNEMPLOYED,
        ),
        StaticReason(
            "timeLimits",
            "Check lifetime limits: most states cap TANF at 60 months, with some hardship exceptions",
            _always,
        ),
    ),
    ProgramKind.SSI: (
        StaticReason(
            "disabilityDocumentation",
            "Provide medical documentation of disability: SSI requires medical evidence and professional assessments",
            lambda p: p.has_disability is None,
        ),
        StaticReason(
            "incomeVerification",
            "Provide detailed income and asset verification: SSI has very strict limits for both income and assets",
            _income_unknown,
        ),
        StaticReason(
            "ageVerification",
            "Verify age requirements: SSI serves people 65 and older or those with qualifying disabilities",
            lambda p: p.age is None and p.date_of_birth is None,
        ),
        StaticReason(
            "workHistory",
            "Provide your employment history: SSI looks at current work, although no work history is required",
            lambda p: p.employment_status is None,
        ),
    ),
    ProgramKind.SECTION8: (
        StaticReason(
            "incomeVerification",
            "Provide detailed income verification: Section 8 income limits are based on area median income",
            _income_unknown,
        ),
        StaticReason(
            "familySize",
            "Verify household size: Section 8 unit size depends on family composition",
            lambda p: not p.household_size,
        ),
        StaticReason(
            "criminalBackground",
            "Complete a criminal background check: Section 8 screens household members",
            _always,
        ),
        StaticReason(
            "rentalHistory",
            "Provide rental history and references: Section 8 requires a good rental record",
            _always,
        ),
    ),
    ProgramKind.LIHTC: (
        StaticReason(
            "incomeVerification",
            "Provide detailed income verification: LIHTC income limits vary by area and household size",
            _income_unknown,
        ),
        StaticReason(
            "studentStatus",
            "Clarify student status: LIHTC restricts full-time students",
            lambda p: p.employment_status == EmploymentStatus.STUDENT,
        ),
        StaticReason(
            "familyComposition",
            "Verify household composition: LIHTC unit size depends on family size and composition",
            lambda p: not p.household_size,
        ),
        StaticReason(
            "waitingList",
            "Join waiting lists early: LIHTC properties have long waiting lists",
            _always,
        ),
    ),
}


def disqualification_reasons(kind: ProgramKind | None, profile: HouseholdProfile) -> list[tuple[str, str]]:
    """(key, message) pairs whose predicate holds. Program entries come first."""
    candidates = (*PROGRAM_REASONS.get(kind, ()), *GENERIC_REASONS) if kind else GENERIC_REASONS
    found: list[tuple[str, str]] = []
    used: set[str] = set()
    for reason in candidates:
        if reason.key in used or not reason.applies(profile):
            continue
        found.append((reason.key, reason.message))
        used.add(reason.key)
    return found


def clarification_reasons(kind: ProgramKind | None, profile: HouseholdProfile) -> list[tuple[str, str]]:
    """(key, message) pairs telling the applicant what to clarify or provide."""
    if kind is None:
        return []
    return [(r.key, r.message) for r in MAYBE_REASONS.get(kind, ()) if r.applies(profile)]
