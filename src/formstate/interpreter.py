"""
Expression interpreter: evaluation and static inspection of condition ASTs.

Evaluation is total: it never raises for user data. Comparing values that
cannot be ordered against each other (None > 3, "a" < 2) yields False, so a
half-filled form simply keeps dependent sections hidden.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Set

from formstate.expressions import (
    Expression,
    BinaryExpression,
    BinaryOperator,
    FieldReference,
    Literal,
    UnaryExpression,
    UnaryOperator,
)


_COMPARISONS: Dict[BinaryOperator, Callable[[Any, Any], bool]] = {
    BinaryOperator.EQUALS: operator.eq,
    BinaryOperator.NOT_EQUALS: operator.ne,
    BinaryOperator.GREATER_THAN: operator.gt,
    BinaryOperator.GREATER_EQUAL: operator.ge,
    BinaryOperator.LESS_THAN: operator.lt,
    BinaryOperator.LESS_EQUAL: operator.le,
}

COMPARISON_SYMBOLS: Dict[str, BinaryOperator] = {op.value: op for op in _COMPARISONS}


def compare(op: BinaryOperator, left: Any, right: Any) -> bool:
    """Apply a comparison operator; unorderable operands compare False."""
    left, right = _coerce_numeric_pair(left, right)
    try:
        return bool(_COMPARISONS[op](left, right))
    except TypeError:
        return False


def _coerce_numeric_pair(left: Any, right: Any):
    # Renderers often deliver numbers as strings ("42"); compare them as numbers
    # when the other side is numeric.
    if _is_number(left) and isinstance(right, str):
        right = _to_number(right, right)
    elif _is_number(right) and isinstance(left, str):
        left = _to_number(left, left)
    return left, right


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_number(text: str, fallback: Any) -> Any:
    try:
        number = float(text)
    except ValueError:
        return fallback
    return int(number) if number.is_integer() else number


def evaluate(expr: Expression, lookup: Callable[[FieldReference], Any]) -> Any:
    """
    Evaluate an expression.

    Args:
        expr: Expression AST
        lookup: Returns the current value for a FieldReference

    Returns:
        The expression value (bool for logical/comparison nodes)
    """
    if isinstance(expr, Literal):
        return expr.value

    if isinstance(expr, FieldReference):
        return lookup(expr)

    if isinstance(expr, UnaryExpression):
        if expr.operator == UnaryOperator.NOT:
            return not truthy(evaluate(expr.operand, lookup))
        raise TypeError(f"Unsupported unary operator: {expr.operator}")

    if isinstance(expr, BinaryExpression):
        if expr.operator == BinaryOperator.AND:
            return truthy(evaluate(expr.left, lookup)) and truthy(evaluate(expr.right, lookup))
        if expr.operator == BinaryOperator.OR:
            return truthy(evaluate(expr.left, lookup)) or truthy(evaluate(expr.right, lookup))
        return compare(expr.operator, evaluate(expr.left, lookup), evaluate(expr.right, lookup))

    raise TypeError(f"Unsupported Expression type: {type(expr)}")


def truthy(value: Any) -> bool:
    """Truthiness of a condition value; blank strings count as false."""
    if isinstance(value, str):
        return value.strip() != ""
    return bool(value)


@dataclass
class ExpressionMetrics:
    """Metrics about a single expression tree."""
    depth: int = 0
    node_count: int = 0
    references: Set[FieldReference] = field(default_factory=set)


def analyze_expression(expr: Expression | None) -> ExpressionMetrics:
    """Recursively analyze an expression tree."""
    if expr is None:
        return ExpressionMetrics()

    metrics = ExpressionMetrics(node_count=1)

    if isinstance(expr, BinaryExpression):
        left = analyze_expression(expr.left)
        right = analyze_expression(expr.right)
        metrics.depth = 1 + max(left.depth, right.depth)
        metrics.node_count += left.node_count + right.node_count
        metrics.references.update(left.references)
        metrics.references.update(right.references)

    elif isinstance(expr, UnaryExpression):
        operand = analyze_expression(expr.operand)
        metrics.depth = 1 + operand.depth
        metrics.node_count += operand.node_count
        metrics.references.update(operand.references)

    elif isinstance(expr, FieldReference):
        metrics.references.add(expr)

    return metrics


def collect_references(expr: Expression | None) -> Set[FieldReference]:
    """All field references inside an expression."""
    return analyze_expression(expr).references
