"""Benefits eligibility engine.

Evaluates a household profile against declarative program rules and returns
bucketed, explained results.
"""

from benefits_engine.eligibility import EvaluationOrchestrator, categorize
from benefits_engine.calculators.thresholds import ThresholdResolver
from benefits_engine.explanations import ExplanationGenerator
from benefits_engine.reference import AmiCache
from benefits_engine.rules.evaluator import evaluate
from benefits_engine.schemas.eligibility import EligibilityResults
from benefits_engine.schemas.profile import HouseholdProfile
from benefits_engine.schemas.rules import ProgramRuleSet, RuleDefinition

__all__ = [
    "AmiCache",
    "EligibilityResults",
    "EvaluationOrchestrator",
    "ExplanationGenerator",
    "HouseholdProfile",
    "ProgramRuleSet",
    "RuleDefinition",
    "ThresholdResolver",
    "categorize",
    "evaluate",
]
