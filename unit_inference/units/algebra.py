"""Evaluation rules of the unit algebra.

The combinators ``multiply``, ``power`` and ``derivative`` reduce as far as
their operands allow and otherwise build the corresponding unevaluated node.
``Undefined`` dominates ``Empty``, which dominates well-formed units, and both
propagate to the root eagerly, so an evaluated value is ``Undefined``,
``Empty``, a ``Variable`` or a tree free of ``Undefined``/``Empty``.
"""

import logging
from collections.abc import Iterator, Mapping
from fractions import Fraction

from .core import SECOND, Rational, UnitAlgebraError
from .types import (
    UNDEFINED,
    Derivative,
    Empty,
    Power,
    Product,
    Undefined,
    UnitValue,
    Variable,
    VarId,
    WellFormed,
)

logger = logging.getLogger(__name__)


def multiply(left: UnitValue, right: UnitValue) -> UnitValue:
    """Multiply two unit values."""
    match left, right:
        case (Undefined(), _) | (_, Undefined()):
            return UNDEFINED
        case (Empty(), _):
            return right
        case (_, Empty()):
            return left
        case (WellFormed(left_unit), WellFormed(right_unit)):
            return WellFormed(left_unit * right_unit)
    return Product(left, right)


def power(base: UnitValue, exponent: Rational) -> UnitValue:
    """Raise a unit value to a rational constant power.

    Raises:
        UnitAlgebraError: If a well-formed affine unit is raised to a power
            other than 0 or 1.
    """
    exponent = Fraction(exponent)
    match base:
        case Undefined() | Empty():
            return base
        case WellFormed(unit):
            return WellFormed(unit**exponent)
        case Power(inner, inner_exponent):
            return power(inner, inner_exponent * exponent)
    if exponent == 1:
        return base
    return Power(base, exponent)


def derivative(operand: UnitValue) -> UnitValue:
    """Return the unit of the time derivative of a value with unit ``operand``.

    A unit-less operand stays unit-less, so no seconds are ever introduced into
    a model without units.
    """
    match operand:
        case Undefined() | Empty():
            return operand
        case WellFormed(unit):
            return WellFormed(unit / SECOND)
    return Derivative(operand)


def evaluate(
    value: UnitValue, substitution: Mapping[VarId, UnitValue] | None = None
) -> UnitValue:
    """Reduce a unit value to normal form.

    Args:
        value: The unit meta-expression to reduce.
        substitution: Optional known values for unit variables.

    Returns:
        The reduced value. Powers that have no meaning (such as ``degC^2``)
        reduce to ``Undefined``.
    """
    match value:
        case Variable(var):
            if substitution is not None and var in substitution:
                return evaluate(substitution[var], substitution)
            return value
        case Product(left, right):
            return multiply(evaluate(left, substitution), evaluate(right, substitution))
        case Power(base, exponent):
            reduced = evaluate(base, substitution)
            try:
                return power(reduced, exponent)
            except UnitAlgebraError as exc:
                logger.debug("Power of %s is undefined: %s", reduced, exc)
                return UNDEFINED
        case Derivative(operand):
            return derivative(evaluate(operand, substitution))
    return value


def equivalent(left: UnitValue, right: UnitValue) -> bool:
    """Check whether two unit values denote the same unit.

    ``Empty`` and ``Undefined`` are equivalent to everything; unresolved
    variables are only equivalent to themselves.
    """
    match left, right:
        case (Empty() | Undefined(), _) | (_, Empty() | Undefined()):
            return True
        case (WellFormed(left_unit), WellFormed(right_unit)):
            return left_unit == right_unit
    return left == right


def convertible(left: UnitValue, right: UnitValue) -> bool:
    """Check whether values can be converted between two well-formed units."""
    match left, right:
        case (WellFormed(left_unit), WellFormed(right_unit)):
            return left_unit.convertible(right_unit)
    return False


def iter_variables(value: UnitValue) -> Iterator[VarId]:
    """Yield every variable occurrence in ``value``, with repetitions."""
    match value:
        case Variable(var):
            yield var
        case Product(left, right):
            yield from iter_variables(left)
            yield from iter_variables(right)
        case Power(base, _):
            yield from iter_variables(base)
        case Derivative(operand):
            yield from iter_variables(operand)


def contains(value: UnitValue, var: VarId) -> bool:
    """Occurs check: whether ``var`` appears anywhere in ``value``."""
    return any(occurrence == var for occurrence in iter_variables(value))


def is_ground(value: UnitValue) -> bool:
    """Whether ``value`` contains no unit variables."""
    return next(iter_variables(value), None) is None
