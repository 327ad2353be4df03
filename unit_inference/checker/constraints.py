"""Equivalence constraints and deferred checks collected from a model."""

from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import StrEnum

from ..nodes import Condition
from ..units.algebra import evaluate
from ..units.core import BaseUnitVector
from ..units.types import Empty, Undefined, UnitValue, VarId


class ConstraintKind(StrEnum):
    """Where a constraint comes from; decides how a violation is reported."""

    EQUATION = "equation"
    DECLARATION = "declaration"
    ARGUMENT = "argument"
    EXPRESSION = "expression"
    EXPONENT_BASE = "exponent base"


class CheckKind(StrEnum):
    """What a deferred check requires of its unit once resolved."""

    MUST_BE_ONE = "must be one"
    MUST_BE_EMPTY = "must be empty"
    MUST_BE_CONVERTIBLE = "must be convertible"


def _enabled(conditions: tuple[Condition, ...]) -> bool:
    return not any(condition.value is False for condition in conditions)


@dataclass(frozen=True)
class Constraint:
    """Once all ``conditions`` hold, ``left`` must be equivalent to ``right``.

    Attributes:
        kind: Origin of the constraint.
        context: Source text of the originating expression or equation.
        line: Source line of the origin, -1 if unknown.
        subject: Variable or function name the constraint is about, if any.
        position: 1-based argument position for function arguments.
    """

    left: UnitValue
    right: UnitValue
    conditions: tuple[Condition, ...] = ()
    kind: ConstraintKind = ConstraintKind.EQUATION
    context: str = ""
    line: int = -1
    subject: str = ""
    position: int = 0

    @property
    def enabled(self) -> bool:
        """False if any condition is known to be false."""
        return _enabled(self.conditions)

    @property
    def is_trivial(self) -> bool:
        """Whether the constraint holds regardless of any unit variable."""
        return (
            isinstance(self.left, Empty | Undefined)
            or isinstance(self.right, Empty | Undefined)
            or self.left == self.right
        )

    def evaluated(
        self, substitution: Mapping[VarId, UnitValue] | None = None
    ) -> "Constraint":
        """Return a copy with both sides in normal form under ``substitution``."""
        return replace(
            self,
            left=evaluate(self.left, substitution),
            right=evaluate(self.right, substitution),
        )

    def __str__(self) -> str:
        return f"{self.left} == {self.right}"


@dataclass(frozen=True)
class DeferredCheck:
    """A requirement on a unit that is only checked after solving.

    Checking ``sin(x)`` against ``"1"`` eagerly would introduce ``"1"`` into
    the constraint set and pin otherwise unit-less variables, so the argument
    unit is checked once it has been resolved instead.

    Attributes:
        target: The unit to convert into, for ``MUST_BE_CONVERTIBLE``.
    """

    value: UnitValue
    kind: CheckKind
    conditions: tuple[Condition, ...] = ()
    context: str = ""
    line: int = -1
    subject: str = ""
    target: BaseUnitVector | None = None

    @property
    def enabled(self) -> bool:
        """False if any condition is known to be false."""
        return _enabled(self.conditions)
