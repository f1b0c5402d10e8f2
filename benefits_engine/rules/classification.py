"""Rule classification.

Income rules act as hard stops: they are evaluated before every other rule
of a program, and a definitive failure skips the rest.
"""

from __future__ import annotations

import re

from benefits_engine.schemas.rules import RuleDefinition

# Substring match against the lower-cased rule id and name
INCOME_KEYWORDS = (
    "income",
    "snap_income_eligible",
    "householdincome",
    "income-limit",
    "income_eligible",
    "gross-income",
    "net-income",
    "fpl",
    "poverty",
    "threshold",
)

# Too short for substring matching ("ami" is inside "family")
_SHORT_KEYWORDS = re.compile(r"(?<![a-z0-9_])ami(?![a-z0-9_])")


def is_income_rule(rule: RuleDefinition) -> bool:
    """True if the rule's id or name marks it as an income test."""
    for text in (rule.id.lower(), rule.name.lower()):
        if any(keyword in text for keyword in INCOME_KEYWORDS):
            return True
        if _SHORT_KEYWORDS.search(text):
            return True
    return False
