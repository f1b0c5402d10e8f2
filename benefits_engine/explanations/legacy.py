"""Adapter from the legacy explanation shape to the canonical one.

Older persisted results carry explanations as {reasoning, confidence,
criteria, factors}. They are normalized once, where a
ProgramEligibilityResult is built, so the rest of the engine only sees
Explanation.
"""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter

from benefits_engine.schemas.eligibility import AnyExplanation, Explanation, LegacyExplanation

_LEGACY_KEYS = frozenset({"reasoning", "confidence", "criteria", "factors"})
_CANONICAL_KEYS = frozenset({"reason", "details", "rules_cited", "rulesCited", "calculations"})

_explanation_adapter: TypeAdapter[Explanation | LegacyExplanation] = TypeAdapter(AnyExplanation)


def _criterion_text(criterion: dict[str, Any]) -> str | None:
    if criterion.get("message"):
        return str(criterion["message"])
    name = criterion.get("criterion") or criterion.get("name")
    if not name:
        return None
    met = criterion.get("met")
    if met is None:
        return str(name)
    return f"{name}: {'met' if met else 'not met'}"


def from_legacy(legacy: LegacyExplanation) -> Explanation:
    """Convert a legacy explanation to the canonical form."""
    if isinstance(legacy.reasoning, list):
        lines = [str(r) for r in legacy.reasoning if r]
    else:
        lines = [legacy.reasoning] if legacy.reasoning else []
    reason = lines[0] if lines else "No explanation available"

    details = lines[1:]
    details.extend(legacy.factors)
    for criterion in legacy.criteria:
        text = _criterion_text(criterion)
        if text:
            details.append(text)

    rules_cited = [str(c["rule_id"]) for c in legacy.criteria if c.get("rule_id")]
    return Explanation(reason=reason, details=details, rules_cited=rules_cited)


def normalize_explanation(value: Any) -> Explanation:
    """Return a canonical Explanation for any accepted explanation shape.

    Accepts Explanation, LegacyExplanation, or a dict of either (tagged
    with "kind", or untagged and recognized by its keys).
    """
    if isinstance(value, Explanation):
        return value
    if isinstance(value, LegacyExplanation):
        return from_legacy(value)
    if isinstance(value, dict) and "kind" not in value:
        keys = set(value)
        if keys & _LEGACY_KEYS and not keys & _CANONICAL_KEYS:
            value = {**value, "kind": "legacy"}
        else:
            if "rulesCited" in value and "rules_cited" not in value:
                value = {k: v for k, v in value.items() if k != "rulesCited"} | {"rules_cited": value["rulesCited"]}
            value = {**value, "kind": "canonical"}
    parsed = _explanation_adapter.validate_python(value)
    if isinstance(parsed, LegacyExplanation):
        return from_legacy(parsed)
    return parsed
