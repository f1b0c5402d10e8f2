"""Eligibility engine: per-program evaluation, orchestration and categorization."""

from benefits_engine.eligibility.programs import ProgramKind, program_display_name
from benefits_engine.eligibility.categorizer import categorize, confidence_level, derive_status
from benefits_engine.eligibility.program import ProgramEvaluator
from benefits_engine.eligibility.engine import EvaluationOrchestrator

__all__ = [
    "EvaluationOrchestrator",
    "ProgramEvaluator",
    "ProgramKind",
    "categorize",
    "confidence_level",
    "derive_status",
    "program_display_name",
]
