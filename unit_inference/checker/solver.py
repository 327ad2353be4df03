"""Unification of unit constraints.

Constraints are solved one at a time: each is rewritten under the current
substitution and either checked (both sides definite), used to eliminate a
unit variable, or parked until another substitution makes it solvable.
Parked constraints that never become solvable are discarded, leaving their
variables unknown.
"""

import logging
from collections import deque
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field

from ..units.algebra import contains, evaluate, iter_variables
from ..units.core import SECOND, BaseUnitVector, UnitAlgebraError
from ..units.types import (
    Derivative,
    Power,
    Product,
    UnitValue,
    Variable,
    VarId,
    WellFormed,
)
from .constraints import Constraint
from .errors import UnitError, mismatch_error_factory

logger = logging.getLogger(__name__)


class Substitution(Mapping[VarId, UnitValue]):
    """An acyclic, fully composed mapping from unit variables to unit values.

    No value ever mentions a variable that is itself a key, so a single lookup
    followed by evaluation gives the final value of a variable.
    """

    def __init__(self) -> None:
        """Initialise an empty substitution."""
        self._values: dict[VarId, UnitValue] = {}

    def __getitem__(self, var: VarId) -> UnitValue:
        return self._values[var]

    def __iter__(self) -> Iterator[VarId]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def add(self, var: VarId, value: UnitValue) -> None:
        """Record ``var -> value`` and rewrite all existing entries accordingly.

        Raises:
            ValueError: If ``var`` is already substituted or occurs in ``value``.
        """
        if var in self._values:
            raise ValueError(f"Unit variable {var} is already substituted")
        value = evaluate(value, self)
        if contains(value, var):
            raise ValueError(f"Unit variable {var} occurs in {value}")
        single = {var: value}
        self._values = {
            key: evaluate(existing, single) for key, existing in self._values.items()
        }
        self._values[var] = value

    def __repr__(self) -> str:
        entries = ", ".join(f"{var}: {value}" for var, value in self._values.items())
        return f"Substitution({{{entries}}})"


@dataclass
class SolverResult:
    """Outcome of solving a constraint set.

    Attributes:
        discarded: Constraints that could not be used to eliminate a variable.
    """

    substitution: Substitution
    errors: list[UnitError] = field(default_factory=list)
    discarded: list[Constraint] = field(default_factory=list)


def _invert(
    value: UnitValue, target: BaseUnitVector
) -> tuple[VarId, UnitValue] | None:
    """Solve ``value == target`` for the single variable inside ``value``."""
    try:
        match value:
            case Variable(var):
                return var, WellFormed(target)
            case Product(left, WellFormed(factor)):
                return _invert(left, target / factor)
            case Product(WellFormed(factor), right):
                return _invert(right, target / factor)
            case Power(base, exponent) if exponent != 0:
                return _invert(base, target ** (1 / exponent))
            case Derivative(operand):
                return _invert(operand, target * SECOND)
    except UnitAlgebraError as exc:
        logger.debug("Cannot invert %s == %s: %s", value, target, exc)
    return None


def isolate(constraint: Constraint) -> tuple[VarId, UnitValue] | None:
    """Rewrite an evaluated constraint as ``variable == value``.

    Args:
        constraint: A constraint whose sides are in normal form.

    Returns:
        The variable and its value, or None if no variable can be isolated.
    """
    sides = (
        (constraint.left, constraint.right),
        (constraint.right, constraint.left),
    )
    for side, other in sides:
        if isinstance(side, Variable) and not contains(other, side.var):
            return side.var, other
    for side, other in sides:
        if isinstance(other, WellFormed) and len(list(iter_variables(side))) == 1:
            return _invert(side, other.unit)
    return None


class ConstraintSolver:
    """Solves unit constraints into a substitution and a list of unit errors."""

    def __init__(self) -> None:
        """Initialise a new solver."""
        self.substitution = Substitution()
        self.errors: list[UnitError] = []

    @staticmethod
    def _prepare(constraints: Iterable[Constraint]) -> Iterator[Constraint]:
        """Evaluate constraints, dropping disabled and trivially satisfied ones."""
        for constraint in constraints:
            if not constraint.enabled:
                logger.debug("Dropping disabled constraint: %s", constraint)
                continue
            constraint = constraint.evaluated()
            if not constraint.is_trivial:
                yield constraint

    def solve(self, constraints: Iterable[Constraint]) -> SolverResult:
        """Solve all constraints.

        Args:
            constraints: The constraints collected from a model.

        Returns:
            The final substitution, the unit errors found and the constraints
            that had to be discarded.
        """
        pending = deque(self._prepare(constraints))
        parked: list[Constraint] = []
        while pending:
            constraint = pending.popleft().evaluated(self.substitution)
            if constraint.is_trivial:
                continue
            match constraint.left, constraint.right:
                case (WellFormed(left_unit), WellFormed(right_unit)):
                    if left_unit != right_unit:
                        self.errors.append(
                            mismatch_error_factory(constraint, left_unit, right_unit)
                        )
                    continue

            if (isolated := isolate(constraint)) is None:
                parked.append(constraint)
                continue
            var, value = isolated
            logger.debug("Substituting %s -> %s from %s", var, value, constraint)
            self.substitution.add(var, value)
            # new information may make parked constraints solvable
            pending.extend(parked)
            parked.clear()

        for constraint in parked:
            logger.debug("Discarding unsolvable constraint: %s", constraint)
        return SolverResult(self.substitution, self.errors, parked)
