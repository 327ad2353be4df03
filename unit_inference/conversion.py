"""Unit conversion operators ``withUnit``, ``withoutUnit`` and ``inUnit``.

These are used when evaluating expressions numerically. Their preconditions
are unit-algebra preconditions, and a violation raises
``UnitConversionError`` carrying the same ``UnitError`` the checker reports.
"""

from dataclasses import dataclass

from .checker.errors import UnitError, u006_error_factory, u007_error_factory
from .units.core import BaseUnitVector
from .units.types import EMPTY, Empty, UnitValue, WellFormed
from .units.units import UnitRegistry, parse_unit


class UnitConversionError(ValueError):
    """Raised when a conversion operator's unit precondition is violated."""

    def __init__(self, error: UnitError):
        """Initialise from the unit error describing the violation."""
        super().__init__(error.message)
        self.error = error


@dataclass(frozen=True)
class Quantity:
    """A numeric value together with its unit."""

    value: float
    unit: UnitValue = EMPTY

    def __str__(self) -> str:
        if isinstance(self.unit, WellFormed):
            return f"{self.value} {self.unit}"
        return str(self.value)


def _as_unit(
    unit: str | BaseUnitVector, registry: UnitRegistry | None
) -> BaseUnitVector:
    return parse_unit(unit, registry) if isinstance(unit, str) else unit


def with_unit(
    quantity: Quantity,
    unit: str | BaseUnitVector,
    registry: UnitRegistry | None = None,
) -> Quantity:
    """Attach ``unit`` to a unit-less value without changing the number.

    Raises:
        UnitConversionError: If ``quantity`` already has a unit, or its unit
            is not definite.
    """
    target = _as_unit(unit, registry)
    match quantity.unit:
        case Empty():
            return Quantity(quantity.value, WellFormed(target))
        case WellFormed(source):
            found: BaseUnitVector | None = source
        case _:
            found = None
    raise UnitConversionError(u006_error_factory(-1, f"withUnit({quantity})", found))


def _convert(operator: str, quantity: Quantity, target: BaseUnitVector) -> float:
    match quantity.unit:
        case WellFormed(unit) if unit.convertible(target):
            return target.from_si(unit.to_si(quantity.value))
        case WellFormed(unit):
            source: BaseUnitVector | None = unit
        case _:
            source = None
    raise UnitConversionError(
        u007_error_factory(-1, f"{operator}({quantity})", operator, source, target)
    )


def without_unit(
    quantity: Quantity,
    unit: str | BaseUnitVector,
    registry: UnitRegistry | None = None,
) -> Quantity:
    """Express ``quantity`` in ``unit`` and drop the unit.

    Raises:
        UnitConversionError: If the unit of ``quantity`` is not convertible to
            ``unit``.
    """
    target = _as_unit(unit, registry)
    return Quantity(_convert("withoutUnit", quantity, target), EMPTY)


def in_unit(
    quantity: Quantity,
    unit: str | BaseUnitVector,
    registry: UnitRegistry | None = None,
) -> Quantity:
    """Express ``quantity`` in ``unit``, keeping ``unit`` as its unit.

    Raises:
        UnitConversionError: If the unit of ``quantity`` is not convertible to
            ``unit``.
    """
    target = _as_unit(unit, registry)
    return Quantity(_convert("inUnit", quantity, target), WellFormed(target))
