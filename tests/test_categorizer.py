"""Tests for status derivation and bucketing.

Covers:
- Status from (eligible, confidence, incomplete) around the threshold
- Confidence bands
- Bucket counts, ordering and the total invariant
- Camel-case serialization of the multi-word fields
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from benefits_engine.eligibility.categorizer import bucket_for, categorize, confidence_level, derive_status
from benefits_engine.models.enums import ConfidenceLevel, EligibilityStatus
from benefits_engine.schemas.eligibility import EligibilityResults, RawProgramResult


def _raw(program_id: str, *, eligible: bool, confidence: int, incomplete: bool = False) -> RawProgramResult:
    return RawProgramResult(
        profile_id="p-1",
        program_id=program_id,
        eligible=eligible,
        confidence=confidence,
        incomplete=incomplete,
        reason="test",
    )


# ── derive_status ────────────────────────────────────────────────────


class TestDeriveStatus:
    def test_eligible_high_confidence_is_qualified(self):
        assert derive_status(_raw("snap", eligible=True, confidence=95)) == EligibilityStatus.QUALIFIED

    def test_eligible_at_threshold_is_qualified(self):
        assert derive_status(_raw("snap", eligible=True, confidence=85)) == EligibilityStatus.QUALIFIED

    def test_eligible_low_confidence_is_likely(self):
        assert derive_status(_raw("snap", eligible=True, confidence=84)) == EligibilityStatus.LIKELY

    def test_ineligible_low_confidence_is_maybe(self):
        assert derive_status(_raw("snap", eligible=False, confidence=60)) == EligibilityStatus.MAYBE

    def test_incomplete_is_maybe_even_at_high_confidence(self):
        raw = _raw("snap", eligible=False, confidence=95, incomplete=True)
        assert derive_status(raw) == EligibilityStatus.MAYBE

    def test_ineligible_high_confidence_is_not_qualified(self):
        assert derive_status(_raw("snap", eligible=False, confidence=90)) == EligibilityStatus.NOT_QUALIFIED

    def test_custom_threshold(self):
        raw = _raw("snap", eligible=True, confidence=80)
        assert derive_status(raw, threshold=75) == EligibilityStatus.QUALIFIED


class TestConfidenceLevel:
    @pytest.mark.parametrize(("score", "level"), [
        (100, ConfidenceLevel.HIGH),
        (85, ConfidenceLevel.HIGH),
        (84, ConfidenceLevel.MEDIUM),
        (60, ConfidenceLevel.MEDIUM),
        (59, ConfidenceLevel.LOW),
        (0, ConfidenceLevel.LOW),
    ])
    def test_bands(self, score, level):
        assert confidence_level(score) == level


# ── categorize ───────────────────────────────────────────────────────


class TestCategorize:
    def test_low_confidence_ineligible_results_are_maybe(self):
        raws = [
            _raw("snap-federal", eligible=False, confidence=60),
            _raw("wic-federal", eligible=False, confidence=65),
            _raw("medicaid-ga", eligible=False, confidence=50, incomplete=True),
            _raw("tanf-ga", eligible=False, confidence=95),
            _raw("ssi-federal", eligible=False, confidence=90),
        ]
        results = categorize(raws)
        assert [r.program_id for r in results.maybe] == ["snap-federal", "wic-federal", "medicaid-ga"]
        assert [r.program_id for r in results.not_qualified] == ["tanf-ga", "ssi-federal"]
        assert results.qualified == []
        assert results.likely == []
        assert results.total_programs == 5

    def test_eligible_results_split_on_confidence(self):
        results = categorize([
            _raw("snap-federal", eligible=True, confidence=95),
            _raw("wic-federal", eligible=True, confidence=70),
        ])
        assert [r.program_id for r in results.qualified] == ["snap-federal"]
        assert [r.program_id for r in results.likely] == ["wic-federal"]
        assert results.likely[0].status == EligibilityStatus.LIKELY
        assert results.likely[0].confidence == ConfidenceLevel.MEDIUM

    def test_every_program_appears_once(self):
        raws = [_raw(f"program-{i}", eligible=i % 2 == 0, confidence=i * 10) for i in range(11)]
        results = categorize(raws)
        ids = [r.program_id for r in results.all_results()]
        assert sorted(ids) == sorted(r.program_id for r in raws)
        assert results.total_programs == len(raws)

    def test_result_fields_filled(self):
        results = categorize([_raw("snap-federal", eligible=True, confidence=95)])
        [result] = results.qualified
        assert result.program_name == "SNAP"
        assert result.program_description.startswith("Supplemental Nutrition")
        assert result.confidence_score == 95
        assert result.explanation.reason == "You meet the eligibility criteria for SNAP"

    def test_empty_input(self):
        results = categorize([])
        assert results.total_programs == 0
        assert results.all_results() == []

    def test_serialized_bucket_name(self):
        results = categorize([_raw("tanf-ga", eligible=False, confidence=95)])
        dumped = results.model_dump(by_alias=True)
        assert len(dumped["notQualified"]) == 1
        assert dumped["notQualified"][0]["status"] == "not-qualified"

    def test_serialized_field_names_are_camel_case(self):
        results = categorize([_raw("snap-federal", eligible=True, confidence=95)])
        dumped = results.model_dump(by_alias=True)
        assert dumped["totalPrograms"] == 1
        assert "evaluatedAt" in dumped
        assert not {"total_programs", "evaluated_at", "not_qualified"} & dumped.keys()

    def test_round_trip_through_alias(self):
        results = categorize([_raw("tanf-ga", eligible=False, confidence=95)])
        restored = EligibilityResults.model_validate(results.model_dump(by_alias=True))
        assert restored.total_programs == 1
        assert restored.not_qualified[0].program_id == "tanf-ga"


class TestEligibilityResultsInvariant:
    def test_total_must_match_buckets(self):
        with pytest.raises(ValidationError, match="total_programs"):
            EligibilityResults(total_programs=2)


class TestBucketRoundTrip:
    def test_status_agrees_with_bucket(self):
        raws = [
            _raw("snap-federal", eligible=True, confidence=95),
            _raw("wic-federal", eligible=True, confidence=60),
            _raw("medicaid-ga", eligible=False, confidence=50, incomplete=True),
            _raw("tanf-ga", eligible=False, confidence=95),
            _raw("ssi-federal", eligible=False, confidence=30),
        ]
        results = categorize(raws)
        placements = {
            "qualified": results.qualified,
            "likely": results.likely,
            "maybe": results.maybe,
            "not_qualified": results.not_qualified,
        }
        seen: list[str] = []
        for bucket, entries in placements.items():
            for entry in entries:
                assert bucket_for(entry.status) == bucket
                seen.append(entry.program_id)
        assert sorted(seen) == sorted(r.program_id for r in raws)
