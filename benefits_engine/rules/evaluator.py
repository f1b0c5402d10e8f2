"""Rule expression evaluator.

Evaluates JSON-serializable rule trees ({operator: operands}) against a flat
data context. Pure and synchronous. Missing variables resolve to None, and
None propagates through comparisons and arithmetic as "unknown", which is
distinct from False. Malformed trees never raise out of `evaluate`; they come
back as EvaluationOutcome(success=False, error=...).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from benefits_engine.calculators.income import age_on
from benefits_engine.config import settings
from benefits_engine.schemas.rules import CriterionResult, EvaluationOutcome, RuleExpression

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = settings.evaluator.max_rule_depth

# Criterion names containing these are rendered as dollar amounts
_MONEY_HINTS = ("income", "asset", "ami", "threshold", "limit", "amount", "resources")

# Comparison seen from the variable's side when the variable is the right operand
_FLIPPED = {"<": ">", "<=": ">=", ">": "<", ">=": "<=", "==": "==", "===": "===", "!=": "!=", "!==": "!=="}


class ExpressionError(Exception):
    """Raised inside the evaluator for unsupported operators or type mismatches."""

    def __init__(self, message: str, operator: str | None = None) -> None:
        super().__init__(message)
        self.operator = operator


# ── Value helpers ──────────────────────────────────────────────────────────


def _coerce(value: Any) -> Any:
    """Normalize context and literal values: numbers become Decimal."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int | float):
        return Decimal(str(value))
    if isinstance(value, list | tuple):
        return [_coerce(v) for v in value]
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, Decimal)


def _truthy(value: Any) -> bool:
    """JSON-logic truthiness: 0, "", [] and False are falsy."""
    if isinstance(value, list):
        return len(value) > 0
    return bool(value)


def _require_numbers(op: str, values: list[Any]) -> list[Decimal]:
    for v in values:
        if not _is_number(v):
            raise ExpressionError(f"'{op}' expects numbers, got {type(v).__name__} ({v!r})", op)
    return values


def format_value(criterion: str, value: Any) -> str:
    """Render a compared value for human-readable criterion text."""
    if isinstance(value, Decimal) and any(h in criterion.lower() for h in _MONEY_HINTS):
        if value == value.to_integral_value():
            return f"${value:,.0f}"
        return f"${value:,.2f}"
    if isinstance(value, Decimal):
        return f"{value.normalize():f}"
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def _criterion_message(criterion: str, op: str, met: bool, value: Any, threshold: Any) -> str:
    v = format_value(criterion, value)
    t = format_value(criterion, threshold)
    if op in ("<", "<="):
        return f"{v} is within the limit of {t}" if met else f"{v} exceeds the limit of {t}"
    if op in (">", ">="):
        return f"{v} meets the minimum of {t}" if met else f"{v} is below the minimum of {t}"
    if op in ("==", "==="):
        return f"{v} matches {t}" if met else f"{v} does not match {t}"
    return f"{v} differs from {t}" if met else f"{v} equals {t}"


# ── Evaluation ─────────────────────────────────────────────────────────────


class _Evaluation:
    """One evaluation pass. Holds the context and the captured criteria."""

    def __init__(self, context: dict[str, Any], max_depth: int) -> None:
        self.context = context
        self.max_depth = max_depth
        self.criteria: list[CriterionResult] = []

    def run(self, node: Any, depth: int = 0) -> Any:
        if depth > self.max_depth:
            raise ExpressionError(f"Maximum rule depth {self.max_depth} exceeded")

        if isinstance(node, list):
            return [self.run(item, depth + 1) for item in node]
        if not isinstance(node, dict):
            return _coerce(node)
        if len(node) != 1:
            raise ExpressionError(f"Operator node must have exactly one key, got {sorted(node)}")

        op, args = next(iter(node.items()))
        if not isinstance(args, list):
            args = [args]

        if op in _LAZY:
            return _LAZY[op](self, args, depth + 1)
        if op in _COMPARISONS:
            return self._compare(op, args, depth + 1)
        if op not in _OPERATORS:
            raise ExpressionError(f"Unsupported operator: {op}", op)
        values = [self.run(a, depth + 1) for a in args]
        return _OPERATORS[op](values)

    # Lazy operators receive raw operand nodes.

    def lookup(self, path: Any, default: Any = None) -> Any:
        if path is None or path == "":
            return self.context
        current: Any = self.context
        for part in str(path).split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
                current = current[int(part)]
            else:
                return _coerce(default)
        return _coerce(current) if current is not None else _coerce(default)

    def op_var(self, args: list[Any], depth: int) -> Any:
        if not args:
            return self.context
        path = self.run(args[0], depth)
        default = self.run(args[1], depth) if len(args) > 1 else None
        if isinstance(path, Decimal):
            path = format_value("", path)
        return self.lookup(path, default)

    def op_missing(self, args: list[Any], depth: int) -> list[str]:
        names = [self.run(a, depth) for a in args]
        if len(names) == 1 and isinstance(names[0], list):
            names = names[0]
        return [n for n in names if self.lookup(n) in (None, "")]

    def op_and(self, args: list[Any], depth: int) -> bool | None:
        # Every operand is evaluated so all criteria are captured.
        values = [self.run(a, depth) for a in args]
        if any(v is not None and not _truthy(v) for v in values):
            return False
        if any(v is None for v in values):
            return None
        return True

    def op_or(self, args: list[Any], depth: int) -> bool | None:
        values = [self.run(a, depth) for a in args]
        if any(v is not None and _truthy(v) for v in values):
            return True
        if any(v is None for v in values):
            return None
        return False

    def op_if(self, args: list[Any], depth: int) -> Any:
        for i in range(0, len(args) - 1, 2):
            condition = self.run(args[i], depth)
            if condition is None:
                return None
            if _truthy(condition):
                return self.run(args[i + 1], depth)
        if len(args) % 2 == 1:
            return self.run(args[-1], depth)
        return None

    def _compare(self, op: str, args: list[Any], depth: int) -> bool | None:
        if len(args) not in (2, 3) or (len(args) == 3 and op not in ("<", "<=")):
            raise ExpressionError(f"'{op}' takes two operands ({len(args)} given)", op)
        values = [self.run(a, depth) for a in args]
        if any(v is None for v in values):
            return None

        check = _COMPARISONS[op]
        if len(values) == 3:
            result = check(values[0], values[1]) and check(values[1], values[2])
        else:
            result = check(values[0], values[1])
            self._capture(op, args, values, result)
        return result

    def _capture(self, op: str, args: list[Any], values: list[Any], met: bool) -> None:
        """Record a comparison where exactly one side is a variable reference."""
        left_var = var_name(args[0])
        right_var = var_name(args[1])
        if left_var and not right_var:
            name, value, threshold, seen_op = left_var, values[0], values[1], op
        elif right_var and not left_var:
            name, value, threshold, seen_op = right_var, values[1], values[0], _FLIPPED[op]
        else:
            return
        self.criteria.append(CriterionResult(
            criterion=name,
            met=met,
            value=value,
            threshold=threshold,
            comparison=seen_op,
            message=_criterion_message(name, seen_op, met, value, threshold),
        ))


def var_name(node: Any) -> str | None:
    if isinstance(node, dict) and len(node) == 1 and "var" in node:
        arg = node["var"]
        if isinstance(arg, list):
            arg = arg[0] if arg else None
        if isinstance(arg, str) and arg:
            return arg
    return None


# ── Comparisons ────────────────────────────────────────────────────────────


def _loose_eq(a: Any, b: Any) -> bool:
    if _is_number(a) and isinstance(b, str) or _is_number(b) and isinstance(a, str):
        try:
            return Decimal(str(a)) == Decimal(str(b))
        except InvalidOperation:
            return False
    return a == b


def _strict_eq(a: Any, b: Any) -> bool:
    return type(a) is type(b) and a == b


def _ordered(op: str, check: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def compare(a: Any, b: Any) -> bool:
        if _is_number(a) and _is_number(b) or isinstance(a, str) and isinstance(b, str):
            return check(a, b)
        raise ExpressionError(f"Cannot compare {type(a).__name__} and {type(b).__name__} with '{op}'", op)
    return compare


_COMPARISONS: dict[str, Callable[[Any, Any], bool]] = {
    "==": _loose_eq,
    "===": _strict_eq,
    "!=": lambda a, b: not _loose_eq(a, b),
    "!==": lambda a, b: not _strict_eq(a, b),
    "<": _ordered("<", lambda a, b: a < b),
    "<=": _ordered("<=", lambda a, b: a <= b),
    ">": _ordered(">", lambda a, b: a > b),
    ">=": _ordered(">=", lambda a, b: a >= b),
}


# ── Eager operators ────────────────────────────────────────────────────────


def _op_not(values: list[Any]) -> bool | None:
    if not values or values[0] is None:
        return None
    return not _truthy(values[0])


def _op_double_not(values: list[Any]) -> bool | None:
    if not values or values[0] is None:
        return None
    return _truthy(values[0])


def _op_in(values: list[Any]) -> bool | None:
    if len(values) != 2:
        raise ExpressionError("'in' takes two operands", "in")
    needle, haystack = values
    if needle is None or haystack is None:
        return None
    if isinstance(haystack, list):
        return needle in haystack
    if isinstance(haystack, str) and isinstance(needle, str):
        return needle in haystack
    raise ExpressionError(f"'in' cannot search {type(haystack).__name__}", "in")


def _arith(op: str, fn: Callable[[list[Decimal]], Decimal]) -> Callable[[list[Any]], Decimal | None]:
    def apply(values: list[Any]) -> Decimal | None:
        if any(v is None for v in values):
            return None
        if not values:
            raise ExpressionError(f"'{op}' needs at least one operand", op)
        return fn(_require_numbers(op, values))
    return apply


def _sum(values: list[Decimal]) -> Decimal:
    return sum(values, Decimal("0"))


def _product(values: list[Decimal]) -> Decimal:
    result = Decimal("1")
    for v in values:
        result *= v
    return result


def _minus(values: list[Decimal]) -> Decimal:
    if len(values) == 1:
        return -values[0]
    return values[0] - values[1]


def _divide(values: list[Decimal]) -> Decimal:
    if len(values) != 2:
        raise ExpressionError("'/' takes two operands", "/")
    if values[1] == 0:
        raise ExpressionError("Division by zero", "/")
    return values[0] / values[1]


def _modulo(values: list[Decimal]) -> Decimal:
    if len(values) != 2:
        raise ExpressionError("'%' takes two operands", "%")
    if values[1] == 0:
        raise ExpressionError("Modulo by zero", "%")
    return values[0] % values[1]


def _op_cat(values: list[Any]) -> str:
    return "".join(format_value("", v) if v is not None else "" for v in values)


def _op_between(values: list[Any]) -> bool | None:
    if len(values) != 3:
        raise ExpressionError("'between' takes value, min, max", "between")
    if any(v is None for v in values):
        return None
    value, low, high = _require_numbers("between", values)
    return low <= value <= high


def _op_within_percent(values: list[Any]) -> bool | None:
    if len(values) != 3:
        raise ExpressionError("'within_percent' takes value, target, percent", "within_percent")
    if any(v is None for v in values):
        return None
    value, target, percent = _require_numbers("within_percent", values)
    return abs(value - target) <= abs(target) * percent / 100


def _op_matches_any(values: list[Any]) -> bool | None:
    if len(values) != 2:
        raise ExpressionError("'matches_any' takes value, options", "matches_any")
    value, options = values
    if value is None:
        return None
    if not isinstance(options, list):
        raise ExpressionError("'matches_any' options must be a list", "matches_any")
    if isinstance(value, str):
        return value.lower() in {str(o).lower() for o in options}
    return value in options


def _op_count_true(values: list[Any]) -> Decimal:
    if len(values) == 1 and isinstance(values[0], list):
        values = values[0]
    return Decimal(sum(1 for v in values if v is not None and _truthy(v)))


def _op_age_from_dob(values: list[Any]) -> Decimal | None:
    if not values or values[0] is None:
        return None
    raw = values[0]
    if isinstance(raw, datetime):
        dob = raw.date()
    elif isinstance(raw, date):
        dob = raw
    elif isinstance(raw, str):
        try:
            dob = date.fromisoformat(raw[:10])
        except ValueError as exc:
            raise ExpressionError(f"Invalid date of birth: {raw!r}", "age_from_dob") from exc
    else:
        raise ExpressionError(f"Invalid date of birth: {raw!r}", "age_from_dob")
    return Decimal(age_on(dob, date.today()))


_LAZY: dict[str, Callable[[_Evaluation, list[Any], int], Any]] = {
    "var": _Evaluation.op_var,
    "missing": _Evaluation.op_missing,
    "and": _Evaluation.op_and,
    "or": _Evaluation.op_or,
    "if": _Evaluation.op_if,
}

_OPERATORS: dict[str, Callable[[list[Any]], Any]] = {
    "!": _op_not,
    "not": _op_not,
    "!!": _op_double_not,
    "in": _op_in,
    "+": _arith("+", _sum),
    "-": _arith("-", _minus),
    "*": _arith("*", _product),
    "/": _arith("/", _divide),
    "%": _arith("%", _modulo),
    "min": _arith("min", min),
    "max": _arith("max", max),
    "cat": _op_cat,
    "between": _op_between,
    "within_percent": _op_within_percent,
    "matches_any": _op_matches_any,
    "count_true": _op_count_true,
    "age_from_dob": _op_age_from_dob,
}


# ── Public API ─────────────────────────────────────────────────────────────


def evaluate(
    expression: RuleExpression,
    context: dict[str, Any],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> EvaluationOutcome:
    """Evaluate a rule expression against a data context.

    Args:
        expression: Rule tree, e.g. {"<=": [{"var": "householdIncome"}, 30000]}.
        context: Flat mapping of variable names to values.
        max_depth: Nesting limit; deeper trees fail with a diagnostic.

    Returns:
        EvaluationOutcome. `result` is None when the outcome depends on
        missing data. `criteria` lists every variable-vs-value comparison.
    """
    run = _Evaluation(context, max_depth)
    try:
        result = run.run(expression)
    except (ExpressionError, ArithmeticError) as exc:
        logger.debug("Rule expression failed: %s", exc)
        return EvaluationOutcome(success=False, error=str(exc), criteria=run.criteria)
    return EvaluationOutcome(success=True, result=result, criteria=run.criteria)


def referenced_variables(expression: RuleExpression) -> list[str]:
    """List every variable name a rule tree reads, in first-seen order."""
    found: dict[str, None] = {}

    def walk(node: Any) -> None:
        if isinstance(node, list):
            for item in node:
                walk(item)
        elif isinstance(node, dict):
            for op, args in node.items():
                if op == "var":
                    name = var_name(node)
                    if name:
                        found.setdefault(name, None)
                    walk(args)
                elif op == "missing":
                    names = args if isinstance(args, list) else [args]
                    if len(names) == 1 and isinstance(names[0], list):
                        names = names[0]
                    for n in names:
                        if isinstance(n, str):
                            found.setdefault(n, None)
                        else:
                            walk(n)
                else:
                    walk(args)

    walk(expression)
    return list(found)
