"""UnitChecker for flattened models.

This module runs unit inference on a flattened model: collecting constraints
from its equations, solving them and reporting the unit of every variable
together with the unit errors found.
"""

import logging

from ..nodes import FlatModel
from ..options import Options
from ..units.core import BaseUnitVector
from ..units.units import format_unit
from .builder import MetaExpressionBuilder
from .errors import UnitError
from .resolver import Resolver
from .solver import ConstraintSolver, Substitution

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


class UnitChecker:
    """Infers and checks the units of flattened models."""

    def __init__(self, options: Options | None = None) -> None:
        """Initialise a new checker.

        Args:
            options: Options of the checking pass, defaults if not given.
        """
        self.options = options or Options()
        self.errors: list[UnitError] = []
        self.units: dict[str, BaseUnitVector | None] = {}
        self.substitution = Substitution()

    @property
    def passed(self) -> bool:
        """Whether no unit errors were found; unknown units are not errors."""
        return not self.errors

    def check(self, model: FlatModel) -> None:
        """Infer the units of all variables of ``model`` and check its equations.

        Results are added to ``units`` and ``errors``.

        Args:
            model: The flattened model to check.
        """
        built = MetaExpressionBuilder(model, self.options).build()
        solved = ConstraintSolver().solve(built.constraints)
        resolver = Resolver(solved.substitution)

        self.substitution = solved.substitution
        self.units.update(
            resolver.resolve(
                {var.name: built.variables.get(var.name) for var in model.variables}
            )
        )
        self.errors.extend(built.errors)
        self.errors.extend(solved.errors)
        self.errors.extend(resolver.check(built.deferred_checks))
        logger.debug(
            "Checked %s: %d errors, %d of %d units resolved",
            model.name,
            len(self.errors),
            sum(unit is not None for unit in self.units.values()),
            len(self.units),
        )

    def unit_strings(self) -> dict[str, str]:
        """Return the unit literal of every variable, ``"unknown"`` if unresolved."""
        return {
            name: UNKNOWN if unit is None else format_unit(unit, self.options.registry)
            for name, unit in self.units.items()
        }
