"""
Expression System for visibility conditions.

Section visibility conditions are represented as Abstract Syntax Trees
(ASTs). Text conditions coming from a config document are parsed into
this form once, at load time (see formstate.conditions).

This ensures:
    - References can be resolved and checked before any field is read
    - The dependency graph can be derived without string heuristics
    - Conditions serialize losslessly to JSON/YAML

ARCHITECTURAL RULE:
    This module is structure only.
    Evaluation lives in formstate.interpreter.
"""

from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Expression(ABC):
    """
    Base class for all AST expressions.

    Intentionally minimal: it exists to give the hierarchy a common type.
    """
    pass


class BinaryOperator(Enum):
    """
    Binary operators supported in visibility conditions.

    Keep this minimal. Every operator must be meaningful on form values.
    """

    # Logical operators
    AND = "AND"
    OR = "OR"

    # Comparison operators
    EQUALS = "=="
    NOT_EQUALS = "!="
    GREATER_THAN = ">"
    GREATER_EQUAL = ">="
    LESS_THAN = "<"
    LESS_EQUAL = "<="


@dataclass(frozen=True)
class BinaryExpression(Expression):
    """
    Represents a binary logical or comparison expression.

    Example:
        billing.billingType == "different" OR giftWrap == true

    Becomes:
        BinaryExpression(
            operator=BinaryOperator.OR,
            left=BinaryExpression(
                operator=BinaryOperator.EQUALS,
                left=FieldReference("billingType", section="billing"),
                right=Literal("different")
            ),
            right=BinaryExpression(
                operator=BinaryOperator.EQUALS,
                left=FieldReference("giftWrap"),
                right=Literal(True)
            )
        )
    """

    operator: BinaryOperator
    left: "Expression"
    right: "Expression"


@dataclass(frozen=True)
class FieldReference(Expression):
    """
    References the value of a form field.

    Properties:
        field: Field name inside its section
        section: Section id or object name owning the field.
                 None means "the only section declaring this field name";
                 the engine resolves it at load time and rejects
                 ambiguous names.

    This object does NOT validate that the field exists.
    """

    field: str
    section: Optional[str] = None

    @property
    def dotted(self) -> str:
        return f"{self.section}.{self.field}" if self.section else self.field


@dataclass(frozen=True)
class Literal(Expression):
    """
    Represents a literal constant value.

    Examples:
        - 1
        - "different"
        - True
        - None (matches unset fields)
    """

    value: Union[int, float, str, bool, None]


class UnaryOperator(Enum):
    """Unary operators."""
    NOT = "NOT"


@dataclass(frozen=True)
class UnaryExpression(Expression):
    """
    Represents a unary operation (e.g., NOT).

    Example:
        NOT (newsletter == true)
    """

    operator: UnaryOperator
    operand: Expression
