"""Reading per-variable units and running deferred checks on a solved model."""

import logging
from collections.abc import Iterable, Mapping

from ..units.algebra import evaluate
from ..units.core import BaseUnitVector
from ..units.types import UnitValue, Variable, VarId, WellFormed
from .constraints import DeferredCheck
from .errors import UnitError, deferred_check_error

logger = logging.getLogger(__name__)


class Resolver:
    """Read-only view of a final substitution."""

    def __init__(self, substitution: Mapping[VarId, UnitValue]) -> None:
        """Initialise a resolver over a solved substitution."""
        self.substitution = substitution

    def unit_of(self, var: VarId) -> BaseUnitVector | None:
        """Return the resolved unit of ``var``, or None if it is unknown."""
        match evaluate(Variable(var), self.substitution):
            case WellFormed(unit):
                return unit
        return None

    def resolve(
        self, variables: Mapping[str, VarId | None]
    ) -> dict[str, BaseUnitVector | None]:
        """Resolve the unit of every named variable.

        Args:
            variables: Unit variable per name; None for names without one.

        Returns:
            The unit per name, None where it is unknown.
        """
        return {
            name: None if var is None else self.unit_of(var)
            for name, var in variables.items()
        }

    def check(self, deferred_checks: Iterable[DeferredCheck]) -> list[UnitError]:
        """Run deferred checks against the resolved units."""
        errors = []
        for check in deferred_checks:
            if not check.enabled:
                continue
            value = evaluate(check.value, self.substitution)
            if (error := deferred_check_error(check, value)) is not None:
                errors.append(error)
            else:
                logger.debug("Deferred check passed (%s): %s", check.kind, value)
        return errors
