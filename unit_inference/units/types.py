"""Unit meta-expressions: the values the unit solver reasons about.

A ``UnitValue`` is either a leaf (``WellFormed``, ``Empty``, ``Undefined``,
``Variable``) or an unevaluated combinator (``Product``, ``Power``,
``Derivative``). All nodes are immutable and compare structurally, so a
``Variable`` is only ever equal to the same variable.
"""

from dataclasses import dataclass
from fractions import Fraction

from .core import BaseUnitVector, format_exponent


class UnitValue:
    """Base class for all unit meta-expressions."""

    __slots__ = ()


@dataclass(frozen=True)
class WellFormed(UnitValue):
    """A definite unit."""

    unit: BaseUnitVector

    def __str__(self) -> str:
        return str(self.unit)


@dataclass(frozen=True)
class Empty(UnitValue):
    """The transparent unit of literals; combines with anything."""

    def __str__(self) -> str:
        return "<empty>"


@dataclass(frozen=True)
class Undefined(UnitValue):
    """Placeholder for unspecified or erroneous units; absorbs everything."""

    def __str__(self) -> str:
        return "<undefined>"


@dataclass(frozen=True)
class VarId:
    """Identity of a unit unknown.

    Model variables use their (flattened) name; ``fresh`` identifiers are
    introduced by the builder for intermediate expressions.
    """

    name: str
    fresh: bool = False

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Variable(UnitValue):
    """The unknown unit of a variable or intermediate expression."""

    var: VarId

    def __str__(self) -> str:
        return f"unit({self.var})"


@dataclass(frozen=True)
class Product(UnitValue):
    """Unevaluated product of two units."""

    left: UnitValue
    right: UnitValue

    def __str__(self) -> str:
        return f"({self.left} * {self.right})"


@dataclass(frozen=True)
class Power(UnitValue):
    """Unevaluated rational power of a unit."""

    base: UnitValue
    exponent: Fraction

    def __str__(self) -> str:
        return f"{self.base}^{format_exponent(self.exponent) or 1}"


@dataclass(frozen=True)
class Derivative(UnitValue):
    """Unevaluated time derivative of a unit."""

    operand: UnitValue

    def __str__(self) -> str:
        return f"der({self.operand})"


EMPTY = Empty()
UNDEFINED = Undefined()
