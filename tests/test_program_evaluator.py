"""Tests for the per-program evaluator.

Covers:
- All gating rules passing (eligible, 95) with documents, steps and benefit
- Income hard stop: later rules skipped, definitive not-eligible result
- Unknown outcomes and missing required fields (incomplete, 50)
- Malformed rules (error, 0) and their interaction with definitive failures
- Rules filtered by active/draft/date window
- AMI variables merged from the cache, and missing AMI data
- Household-size thresholds resolved inside rules
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from benefits_engine.calculators.thresholds import ThresholdResolver
from benefits_engine.eligibility.program import (
    REASON_BAD_HOUSEHOLD,
    REASON_ELIGIBLE,
    REASON_ERROR,
    REASON_INCOMPLETE,
    REASON_NO_RULES,
    ProgramEvaluator,
)
from benefits_engine.models.enums import BenefitFrequency, CitizenshipStatus, IncomePeriod, RuleType
from benefits_engine.reference.ami_cache import AmiCache
from benefits_engine.reference.source import CountyAmi, StateAmiTable
from benefits_engine.schemas.profile import HouseholdProfile
from benefits_engine.schemas.rules import DocumentRequirement, NextStep, ProgramRuleSet, RuleDefinition

TODAY = date(2025, 6, 1)

PROOF_OF_INCOME = DocumentRequirement(id="proof-income", name="Proof of income")
PHOTO_ID = DocumentRequirement(id="photo-id", name="Photo ID")

# ── Helpers ──────────────────────────────────────────────────────────


def _profile(**overrides) -> HouseholdProfile:
    data = {
        "profile_id": "p-1",
        "household_size": 3,
        "household_income": Decimal("30000"),
        "income_period": IncomePeriod.ANNUAL,
        "age": 34,
        "citizenship": CitizenshipStatus.US_CITIZEN,
        "state": "GA",
        "county": "Fulton",
    }
    data.update(overrides)
    return HouseholdProfile(**data)


def _income_rule(**overrides) -> RuleDefinition:
    data = {
        "id": "snap-gross-income",
        "program_id": "snap-federal",
        "name": "Gross income test",
        "logic": {"<=": [{"var": "householdIncome"}, 40000]},
        "explanation": "Gross household income must be at or below $40,000",
        "required_fields": ("householdIncome",),
        "required_documents": (PROOF_OF_INCOME,),
        "next_steps": (NextStep(step="Apply online"),),
        "priority": 10,
    }
    data.update(overrides)
    return RuleDefinition(**data)


def _citizenship_rule(**overrides) -> RuleDefinition:
    data = {
        "id": "snap-citizenship",
        "program_id": "snap-federal",
        "name": "Citizenship",
        "logic": {"in": [{"var": "citizenship"}, ["us_citizen", "permanent_resident"]]},
        "explanation": "Applicants must be citizens or qualified immigrants",
        "required_fields": ("citizenship",),
        "required_documents": (PROOF_OF_INCOME, PHOTO_ID),
        "next_steps": (NextStep(step="Apply online"), NextStep(step="Book an interview")),
        "priority": 5,
    }
    data.update(overrides)
    return RuleDefinition(**data)


def _benefit_rule() -> RuleDefinition:
    return RuleDefinition(
        id="snap-benefit",
        program_id="snap-federal",
        rule_type=RuleType.BENEFIT_AMOUNT,
        logic={
            "amount": {"-": [{"*": [{"var": "householdSize"}, 100]}, 50]},
            "frequency": "monthly",
            "description": "Estimated monthly allotment",
        },
    )


def _rule_set(*rules: RuleDefinition, program_id: str = "snap-federal") -> ProgramRuleSet:
    return ProgramRuleSet(program_id=program_id, rules=rules, version="2024.1")


def _evaluator(ami_cache: AmiCache | None = None) -> ProgramEvaluator:
    return ProgramEvaluator(
        ami_cache=ami_cache,
        thresholds=ThresholdResolver(increments={}),
        today=lambda: TODAY,
    )


def _ami_cache() -> AmiCache:
    loader = AsyncMock()
    loader.load_state = AsyncMock(return_value=StateAmiTable(
        year=2024,
        state="GA",
        counties={"Fulton": CountyAmi(ami={1: 70000, 2: 80000, 3: 90000, 4: 100000})},
    ))
    return AmiCache(loader)


# ── Outcomes ─────────────────────────────────────────────────────────


class TestEligible:
    @pytest.mark.asyncio()
    async def test_all_rules_pass(self):
        rule_set = _rule_set(_income_rule(), _citizenship_rule(), _benefit_rule())
        result = await _evaluator().evaluate(_profile(), rule_set)

        assert result.eligible is True
        assert result.incomplete is False
        assert result.confidence == 95
        assert result.reason == REASON_ELIGIBLE
        assert result.rule_id == "snap-gross-income"
        assert result.rules_cited == ("snap-gross-income", "snap-citizenship")
        assert result.program_name == "SNAP"
        assert result.rules_version == "2024.1"

    @pytest.mark.asyncio()
    async def test_documents_and_steps_deduplicated(self):
        rule_set = _rule_set(_income_rule(), _citizenship_rule())
        result = await _evaluator().evaluate(_profile(), rule_set)
        assert [d.id for d in result.required_documents] == ["proof-income", "photo-id"]
        assert [s.step for s in result.next_steps] == ["Apply online", "Book an interview"]

    @pytest.mark.asyncio()
    async def test_benefit_estimated(self):
        rule_set = _rule_set(_income_rule(), _benefit_rule())
        result = await _evaluator().evaluate(_profile(), rule_set)
        benefit = result.estimated_benefit
        assert benefit.amount == Decimal("250.00")
        assert benefit.frequency == BenefitFrequency.MONTHLY
        assert benefit.description == "Estimated monthly allotment"

    @pytest.mark.asyncio()
    async def test_monthly_income_annualized(self):
        profile = _profile(household_income=Decimal("3000"), income_period=IncomePeriod.MONTHLY)
        result = await _evaluator().evaluate(profile, _rule_set(_income_rule()))
        assert result.eligible is True
        [criterion] = result.criteria
        assert criterion.value == Decimal("36000.00")


class TestHardStop:
    @pytest.mark.asyncio()
    async def test_income_failure_skips_remaining_rules(self):
        rule_set = _rule_set(_income_rule(), _citizenship_rule(), _benefit_rule())
        result = await _evaluator().evaluate(_profile(household_income=Decimal("90000")), rule_set)

        assert result.eligible is False
        assert result.incomplete is False
        assert result.confidence == 95
        assert result.reason == "Gross household income must be at or below $40,000"
        assert result.rules_cited == ("snap-gross-income",)
        assert result.skipped_rules == ("snap-citizenship",)
        assert result.estimated_benefit is None

    @pytest.mark.asyncio()
    async def test_no_documents_when_nothing_passed(self):
        rule_set = _rule_set(_income_rule(), _citizenship_rule())
        result = await _evaluator().evaluate(_profile(household_income=Decimal("90000")), rule_set)
        assert result.required_documents == ()
        assert result.next_steps == ()

    @pytest.mark.asyncio()
    async def test_breach_recorded_as_calculation(self):
        result = await _evaluator().evaluate(
            _profile(household_income=Decimal("90000")), _rule_set(_income_rule()),
        )
        [criterion] = result.criteria
        assert criterion.met is False
        assert criterion.message == "$90,000 exceeds the limit of $40,000"
        breach = result.calculations[-1]
        assert breach.label == "Annual household income"
        assert breach.comparison == "exceeds the limit of $40,000"

    @pytest.mark.asyncio()
    async def test_income_rules_run_before_higher_priority_rules(self):
        rule_set = _rule_set(_citizenship_rule(priority=100), _income_rule(priority=1))
        result = await _evaluator().evaluate(_profile(household_income=Decimal("90000")), rule_set)
        assert result.rules_cited == ("snap-gross-income",)
        assert result.skipped_rules == ("snap-citizenship",)

    @pytest.mark.asyncio()
    async def test_non_income_failure_is_definitive(self):
        rule_set = _rule_set(_income_rule(), _citizenship_rule())
        profile = _profile(citizenship=CitizenshipStatus.UNDOCUMENTED)
        result = await _evaluator().evaluate(profile, rule_set)
        assert result.eligible is False
        assert result.confidence == 95
        assert result.rule_id == "snap-citizenship"
        assert result.skipped_rules == ()


class TestIncomplete:
    @pytest.mark.asyncio()
    async def test_missing_income(self):
        rule_set = _rule_set(_income_rule(), _citizenship_rule())
        result = await _evaluator().evaluate(_profile(household_income=None), rule_set)

        assert result.eligible is False
        assert result.incomplete is True
        assert result.confidence == 50
        assert result.reason == REASON_INCOMPLETE
        assert result.missing_fields == ("householdIncome",)
        # the unknown income rule is not a hard stop
        assert result.rules_cited == ("snap-gross-income", "snap-citizenship")
        assert [d.id for d in result.required_documents] == ["proof-income", "photo-id"]

    @pytest.mark.asyncio()
    async def test_failure_with_missing_required_field_is_not_definitive(self):
        age_rule = RuleDefinition(
            id="snap-age",
            program_id="snap-federal",
            logic={">=": [{"var": ["age", 0]}, 18]},
            required_fields=("age",),
        )
        result = await _evaluator().evaluate(_profile(age=None), _rule_set(age_rule))
        assert result.incomplete is True
        assert result.confidence == 50
        assert result.missing_fields == ("age",)

    @pytest.mark.asyncio()
    async def test_invalid_household_size(self):
        result = await _evaluator().evaluate(_profile(household_size=0), _rule_set(_income_rule()))
        assert result.eligible is False
        assert result.incomplete is True
        assert result.confidence == 0
        assert result.reason == REASON_BAD_HOUSEHOLD
        assert result.missing_fields == ("householdSize",)


class TestErrors:
    @pytest.mark.asyncio()
    async def test_malformed_rule(self):
        broken = RuleDefinition(id="snap-broken", program_id="snap-federal", logic={"frobnicate": [1]})
        result = await _evaluator().evaluate(_profile(), _rule_set(_income_rule(), broken))
        assert result.eligible is False
        assert result.incomplete is True
        assert result.confidence == 0
        assert result.reason == REASON_ERROR
        assert result.rule_id == "snap-broken"

    @pytest.mark.asyncio()
    async def test_definitive_failure_outranks_error(self):
        broken = RuleDefinition(id="snap-broken", program_id="snap-federal", logic={"frobnicate": [1]})
        profile = _profile(citizenship=CitizenshipStatus.UNDOCUMENTED)
        result = await _evaluator().evaluate(profile, _rule_set(broken, _citizenship_rule()))
        assert result.incomplete is False
        assert result.confidence == 95
        assert result.rule_id == "snap-citizenship"

    @pytest.mark.asyncio()
    async def test_no_gating_rules(self):
        result = await _evaluator().evaluate(_profile(), _rule_set(_benefit_rule()))
        assert result.eligible is False
        assert result.incomplete is True
        assert result.confidence == 0
        assert result.reason == REASON_NO_RULES


class TestRuleFiltering:
    @pytest.mark.asyncio()
    @pytest.mark.parametrize("overrides", [
        {"active": False},
        {"draft": True},
        {"effective_date": date(2026, 1, 1)},
        {"expiration_date": date(2025, 1, 1)},
    ])
    async def test_rules_not_in_force_are_ignored(self, overrides):
        failing = _citizenship_rule(id="snap-residency", logic={"==": [{"var": "state"}, "CA"]}, **overrides)
        result = await _evaluator().evaluate(_profile(), _rule_set(_income_rule(), failing))
        assert result.eligible is True
        assert "snap-residency" not in result.rules_cited


# ── AMI and thresholds ───────────────────────────────────────────────


def _ami_rule() -> RuleDefinition:
    return RuleDefinition(
        id="section8-ami-income",
        program_id="section8-ga",
        logic={"<=": [{"var": "householdIncome"}, {"var": "ami50"}]},
        required_fields=("householdIncome",),
    )


class TestAmi:
    @pytest.mark.asyncio()
    async def test_ami_limit_applied(self):
        evaluator = _evaluator(_ami_cache())
        rule_set = _rule_set(_ami_rule(), program_id="section8-ga")
        assert (await evaluator.evaluate(_profile(), rule_set)).eligible is True

        over = await evaluator.evaluate(_profile(household_income=Decimal("50000")), rule_set)
        assert over.eligible is False
        assert over.confidence == 95

    @pytest.mark.asyncio()
    async def test_missing_county_marks_ami_missing(self):
        rule_set = _rule_set(_ami_rule(), program_id="section8-ga")
        result = await _evaluator(_ami_cache()).evaluate(_profile(county=None), rule_set)
        assert result.incomplete is True
        assert result.confidence == 50
        assert "areaMedianIncome" in result.missing_fields

    @pytest.mark.asyncio()
    async def test_unknown_county_marks_ami_missing(self):
        rule_set = _rule_set(_ami_rule(), program_id="section8-ga")
        result = await _evaluator(_ami_cache()).evaluate(_profile(county="Atlantis"), rule_set)
        assert result.incomplete is True
        assert "areaMedianIncome" in result.missing_fields

    @pytest.mark.asyncio()
    async def test_shared_context_not_mutated(self):
        context = {"householdIncome": Decimal("30000"), "householdSize": 3, "state": "GA"}
        rule_set = _rule_set(_ami_rule(), program_id="section8-ga")
        await _evaluator(_ami_cache()).evaluate(_profile(), rule_set, context)
        assert "ami50" not in context


class TestHouseholdThreshold:
    @pytest.mark.asyncio()
    async def test_threshold_from_registered_increment(self):
        thresholds = ThresholdResolver(increments={})
        thresholds.register_increment(2258, 800)
        evaluator = ProgramEvaluator(thresholds=thresholds, today=lambda: TODAY)
        rule = _income_rule(logic={"<=": [{"var": "monthlyIncome"}, {"*": [{"var": "householdSize"}, 2258]}]})

        result = await evaluator.evaluate(_profile(household_income=Decimal("45000")), _rule_set(rule))

        assert result.eligible is True
        assert result.calculations[0].label == "Income limit for a household of 3"
        assert result.calculations[0].value == Decimal("3858")
