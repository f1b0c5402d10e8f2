"""Human-readable explanations for eligibility results."""

from benefits_engine.explanations.generator import ExplanationGenerator
from benefits_engine.explanations.legacy import normalize_explanation
from benefits_engine.explanations.rule_ids import HyphenatedRuleIdParser, RuleIdReasonSource

__all__ = [
    "ExplanationGenerator",
    "HyphenatedRuleIdParser",
    "RuleIdReasonSource",
    "normalize_explanation",
]
