"""Module for creating errors representing irreconcilable unit requirements."""

from ..units.core import ONE, BaseUnitVector
from ..units.types import Empty, UnitValue, WellFormed
from ..units.units import format_unit
from .constraints import CheckKind, Constraint, ConstraintKind, DeferredCheck


def _describe(unit: BaseUnitVector | None) -> str:
    return "<empty>" if unit is None else f'"{format_unit(unit)}"'


class UnitError:
    """Represents a unit checking error.

    Attributes:
        lhs: The unit that was found.
        rhs: The unit that was required, ``None`` where the requirement is
            not a single unit (e.g. a unit-less argument).
        context: Source text of the originating expression or equation.
    """

    def __init__(
        self,
        code: str,
        lineno: int,
        message: str,
        lhs: BaseUnitVector | None = None,
        rhs: BaseUnitVector | None = None,
        context: str = "",
    ):
        """Initialise a new unit checking error."""
        self.code = code
        self.lineno = lineno
        self.message = message
        self.lhs = lhs
        self.rhs = rhs
        self.context = context

    def __repr__(self) -> str:
        """Return a string representation of the error."""
        return (
            "UnitError"
            f"(code={self.code!r}, lineno={self.lineno!r}, message={self.message!r})"
        )

    def __str__(self) -> str:
        """Return the error as a diagnostic line."""
        return f"{self.code} {self.message}"


def u001_error_factory(
    lineno: int, context: str, left_unit: BaseUnitVector, right_unit: BaseUnitVector
) -> UnitError:
    """Factory for U001: Incompatible units in an equation or expression."""
    return UnitError(
        code="U001",
        lineno=lineno,
        message=(
            f"Incompatible units in '{context}': "
            f"{_describe(left_unit)} and {_describe(right_unit)}"
        ),
        lhs=left_unit,
        rhs=right_unit,
        context=context,
    )


def u002_error_factory(
    lineno: int,
    context: str,
    var_name: str,
    inferred_unit: BaseUnitVector,
    declared_unit: BaseUnitVector,
) -> UnitError:
    """Factory for U002: Unit of a variable does not match its declared unit."""
    return UnitError(
        code="U002",
        lineno=lineno,
        message=(
            f"Unit of '{var_name}' does not match its declaration: "
            f"inferred {_describe(inferred_unit)}, declared {_describe(declared_unit)}"
        ),
        lhs=inferred_unit,
        rhs=declared_unit,
        context=context,
    )


def u003_error_factory(
    lineno: int,
    context: str,
    arg_index: int,
    func_name: str,
    inferred_unit: BaseUnitVector,
    expected_unit: BaseUnitVector,
) -> UnitError:
    """Factory for U003: Argument to function has wrong unit."""
    return UnitError(
        code="U003",
        lineno=lineno,
        message=(
            f"Argument {arg_index} to function '{func_name}' "
            f"has unit {_describe(inferred_unit)}, expected {_describe(expected_unit)}"
        ),
        lhs=inferred_unit,
        rhs=expected_unit,
        context=context,
    )


def u004_error_factory(
    lineno: int, context: str, func_name: str, unit: BaseUnitVector
) -> UnitError:
    """Factory for U004: Argument of a transcendental function is not "1"."""
    return UnitError(
        code="U004",
        lineno=lineno,
        message=(
            f"Argument of '{func_name}' must have unit \"1\", "
            f"found {_describe(unit)} in '{context}'"
        ),
        lhs=unit,
        rhs=ONE,
        context=context,
    )


def u005_error_factory(lineno: int, context: str, unit: BaseUnitVector) -> UnitError:
    """Factory for U005: Base of a power with non-constant exponent is not "1"."""
    return UnitError(
        code="U005",
        lineno=lineno,
        message=(
            "Base of a power with a non-constant exponent must have unit \"1\", "
            f"found {_describe(unit)} in '{context}'"
        ),
        lhs=unit,
        rhs=ONE,
        context=context,
    )


def u006_error_factory(
    lineno: int, context: str, unit: BaseUnitVector | None
) -> UnitError:
    """Factory for U006: Argument to withUnit already has a unit.

    ``unit`` is None when the argument's unit is not definite.
    """
    found = "an undefined unit" if unit is None else _describe(unit)
    return UnitError(
        code="U006",
        lineno=lineno,
        message=(
            f"Argument to 'withUnit' must be unit-less, found {found} "
            f"in '{context}'"
        ),
        lhs=unit,
        context=context,
    )


def u007_error_factory(
    lineno: int,
    context: str,
    operator: str,
    unit: BaseUnitVector | None,
    target_unit: BaseUnitVector,
) -> UnitError:
    """Factory for U007: Argument to a unit conversion is not convertible."""
    return UnitError(
        code="U007",
        lineno=lineno,
        message=(
            f"Cannot convert {_describe(unit)} to {_describe(target_unit)} "
            f"in '{operator}' call '{context}'"
        ),
        lhs=unit,
        rhs=target_unit,
        context=context,
    )


def mismatch_error_factory(
    constraint: Constraint, left_unit: BaseUnitVector, right_unit: BaseUnitVector
) -> UnitError:
    """Create the error for a violated constraint between two well-formed units."""
    match constraint.kind:
        case ConstraintKind.DECLARATION:
            return u002_error_factory(
                constraint.line,
                constraint.context,
                constraint.subject,
                left_unit,
                right_unit,
            )
        case ConstraintKind.ARGUMENT:
            return u003_error_factory(
                constraint.line,
                constraint.context,
                constraint.position,
                constraint.subject,
                left_unit,
                right_unit,
            )
        case ConstraintKind.EXPONENT_BASE:
            return u005_error_factory(constraint.line, constraint.context, left_unit)
    return u001_error_factory(
        constraint.line, constraint.context, left_unit, right_unit
    )


def deferred_check_error(check: DeferredCheck, value: UnitValue) -> UnitError | None:
    """Run a deferred check against an evaluated unit value.

    Only definite units are judged; unresolved or undefined values pass.

    Returns:
        The error if the requirement is violated, otherwise None.
    """
    match check.kind, value:
        case (CheckKind.MUST_BE_ONE, WellFormed(unit)) if unit != ONE:
            return u004_error_factory(check.line, check.context, check.subject, unit)
        case (CheckKind.MUST_BE_EMPTY, WellFormed(unit)):
            return u006_error_factory(check.line, check.context, unit)
        case (CheckKind.MUST_BE_CONVERTIBLE, Empty()) if check.target is not None:
            return u007_error_factory(
                check.line, check.context, check.subject, None, check.target
            )
        case (CheckKind.MUST_BE_CONVERTIBLE, WellFormed(unit)) if (
            check.target is not None and not unit.convertible(check.target)
        ):
            return u007_error_factory(
                check.line, check.context, check.subject, unit, check.target
            )
    return None
