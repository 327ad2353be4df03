"""Units module."""

from .algebra import convertible, derivative, equivalent, evaluate, multiply, power
from .core import ONE, SECOND, BaseUnitVector, UnitAlgebraError
from .types import (
    EMPTY,
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
from .units import (
    DEFAULT_REGISTRY,
    UnitParseError,
    UnitRegistry,
    format_unit,
    parse_unit,
)

__all__ = [
    "BaseUnitVector",
    "DEFAULT_REGISTRY",
    "Derivative",
    "EMPTY",
    "Empty",
    "ONE",
    "Power",
    "Product",
    "SECOND",
    "UNDEFINED",
    "Undefined",
    "UnitAlgebraError",
    "UnitParseError",
    "UnitRegistry",
    "UnitValue",
    "VarId",
    "Variable",
    "WellFormed",
    "convertible",
    "derivative",
    "equivalent",
    "evaluate",
    "format_unit",
    "multiply",
    "parse_unit",
    "power",
]
