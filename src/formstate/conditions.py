"""
Condition parser (text -> Expression AST).

Designers write visibility conditions as short text:

    billingType == 'different'
    billing.billingType == "different" and not (age < 18)
    newsletter == true || country != null

Syntax Notes:
    - References: `field` or `section.field` (section id or object name)
    - Literals: numbers, 'single' or "double" quoted strings,
      true / false / null (case-insensitive)
    - Logical operators: and / or / not, && / || / !, & / |
    - Comparisons: == != < > <= >=, and a lone `=` as equality
    - Precedence (loosest first): or, and, not, comparison
"""

import re
from typing import List, Tuple

from formstate.errors import ConditionParseError
from formstate.expressions import (
    Expression,
    BinaryExpression,
    BinaryOperator,
    FieldReference,
    Literal,
    UnaryExpression,
    UnaryOperator,
)


_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
      | (?P<number>-?(?:\d+(?:\.\d*)?|\.\d+))
      | (?P<op>==|!=|<=|>=|&&|\|\||<|>|=|!|&|\||\(|\))
      | (?P<name>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)?)
    )
    """,
    re.VERBOSE,
)

_COMPARISON_OPS = {
    "==": BinaryOperator.EQUALS,
    "=": BinaryOperator.EQUALS,
    "!=": BinaryOperator.NOT_EQUALS,
    "<": BinaryOperator.LESS_THAN,
    ">": BinaryOperator.GREATER_THAN,
    "<=": BinaryOperator.LESS_EQUAL,
    ">=": BinaryOperator.GREATER_EQUAL,
}

_KEYWORDS = {"true": True, "false": False, "null": None, "none": None}

Token = Tuple[str, str]


def parse_condition(text: str) -> Expression:
    """
    Parse a textual condition into an Expression AST.

    Args:
        text: Condition source

    Returns:
        Expression AST

    Raises:
        ConditionParseError: If the text is empty or malformed
    """
    if text is None or not text.strip():
        raise ConditionParseError("Condition is empty")

    tokens = _tokenize(text)
    try:
        expr, pos = _parse_or(tokens, 0)
    except IndexError:
        raise ConditionParseError(f"Unexpected end of condition: {text!r}")

    if pos < len(tokens):
        raise ConditionParseError(
            f"Unexpected token {tokens[pos][1]!r} in condition {text!r}"
        )
    return expr


def _tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    stripped = text.rstrip()
    while pos < len(stripped):
        match = _TOKEN_RE.match(stripped, pos)
        if not match:
            raise ConditionParseError(f"Invalid character at {pos} in condition {text!r}")
        kind = match.lastgroup
        value = match.group(kind)
        if kind == "name" and value.lower() in ("and", "or", "not"):
            kind, value = "op", value.lower()
        tokens.append((kind, value))
        pos = match.end()
    return tokens


def _peek_op(tokens: List[Token], pos: int, *ops: str) -> bool:
    return pos < len(tokens) and tokens[pos][0] == "op" and tokens[pos][1] in ops


def _parse_or(tokens: List[Token], pos: int) -> Tuple[Expression, int]:
    """Parse OR expression (lowest precedence)."""
    left, pos = _parse_and(tokens, pos)
    while _peek_op(tokens, pos, "or", "||", "|"):
        right, pos = _parse_and(tokens, pos + 1)
        left = BinaryExpression(BinaryOperator.OR, left, right)
    return left, pos


def _parse_and(tokens: List[Token], pos: int) -> Tuple[Expression, int]:
    """Parse AND expression."""
    left, pos = _parse_not(tokens, pos)
    while _peek_op(tokens, pos, "and", "&&", "&"):
        right, pos = _parse_not(tokens, pos + 1)
        left = BinaryExpression(BinaryOperator.AND, left, right)
    return left, pos


def _parse_not(tokens: List[Token], pos: int) -> Tuple[Expression, int]:
    """Parse unary NOT."""
    if _peek_op(tokens, pos, "not", "!"):
        operand, pos = _parse_not(tokens, pos + 1)
        return UnaryExpression(UnaryOperator.NOT, operand), pos
    return _parse_comparison(tokens, pos)


def _parse_comparison(tokens: List[Token], pos: int) -> Tuple[Expression, int]:
    """Parse comparison expression (==, !=, <, >, <=, >=)."""
    left, pos = _parse_primary(tokens, pos)
    if pos < len(tokens) and tokens[pos][0] == "op" and tokens[pos][1] in _COMPARISON_OPS:
        op = _COMPARISON_OPS[tokens[pos][1]]
        right, pos = _parse_primary(tokens, pos + 1)
        left = BinaryExpression(op, left, right)
    return left, pos


def _parse_primary(tokens: List[Token], pos: int) -> Tuple[Expression, int]:
    """Parse literal, reference or parenthesized expression."""
    kind, value = tokens[pos]

    if kind == "op" and value == "(":
        expr, pos = _parse_or(tokens, pos + 1)
        if not _peek_op(tokens, pos, ")"):
            raise ConditionParseError("Missing closing parenthesis")
        return expr, pos + 1

    if kind == "string":
        body = value[1:-1]
        return Literal(re.sub(r"\\(.)", r"\1", body)), pos + 1

    if kind == "number":
        number = float(value)
        return Literal(int(number) if number.is_integer() and "." not in value else number), pos + 1

    if kind == "name":
        if value.lower() in _KEYWORDS:
            return Literal(_KEYWORDS[value.lower()]), pos + 1
        if "." in value:
            section, field_name = value.split(".", 1)
            return FieldReference(field_name, section=section), pos + 1
        return FieldReference(value), pos + 1

    raise ConditionParseError(f"Unexpected token: {value!r}")


def format_condition(expr: Expression) -> str:
    """Render an Expression back to condition text (fully parenthesized)."""
    if isinstance(expr, BinaryExpression):
        op = expr.operator.value.lower() if expr.operator in (BinaryOperator.AND, BinaryOperator.OR) else expr.operator.value
        return f"({format_condition(expr.left)} {op} {format_condition(expr.right)})"
    if isinstance(expr, UnaryExpression):
        return f"not {format_condition(expr.operand)}"
    if isinstance(expr, FieldReference):
        return expr.dotted
    if isinstance(expr, Literal):
        if expr.value is None:
            return "null"
        if isinstance(expr.value, bool):
            return "true" if expr.value else "false"
        if isinstance(expr.value, str):
            escaped = expr.value.replace("\\", "\\\\").replace("'", "\\'")
            return f"'{escaped}'"
        return str(expr.value)
    raise TypeError(f"Unsupported Expression type: {type(expr)}")
