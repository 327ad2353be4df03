"""Options controlling unit inference."""

from dataclasses import dataclass, field
from enum import StrEnum

from .units.units import DEFAULT_REGISTRY, UnitRegistry

TRANSCENDENTAL_FUNCTIONS = frozenset(
    {
        "sin",
        "cos",
        "tan",
        "asin",
        "acos",
        "atan",
        "sinh",
        "cosh",
        "tanh",
        "exp",
        "log",
        "log10",
    }
)


class ExponentPolicy(StrEnum):
    """How the unit of a non-constant exponent in ``x ^ y`` is treated."""

    UNCONSTRAINED = "unconstrained"
    DIMENSIONLESS = "dimensionless"


@dataclass
class Options:
    """Options for a unit checking pass.

    Attributes:
        real_exponent_policy: ``DIMENSIONLESS`` requires the exponent of a
            power to resolve to ``"1"`` (checked after solving, like the
            argument of ``sin``); ``UNCONSTRAINED`` ignores its unit.
        transcendental_functions: Built-in functions of one argument whose
            argument must have unit ``"1"`` and whose result has the
            argument's unit.
        registry: Unit symbols used to parse declared unit attributes.
    """

    real_exponent_policy: ExponentPolicy = ExponentPolicy.UNCONSTRAINED
    transcendental_functions: frozenset[str] = TRANSCENDENTAL_FUNCTIONS
    registry: UnitRegistry = field(default=DEFAULT_REGISTRY)
