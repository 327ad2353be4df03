"""Unit inference and checking for flattened equation-based models."""

from contextlib import suppress
from importlib.metadata import PackageNotFoundError, version

from .checker.checker import UnitChecker
from .checker.errors import UnitError
from .conversion import Quantity, UnitConversionError, in_unit, with_unit, without_unit
from .options import ExponentPolicy, Options

with suppress(PackageNotFoundError):
    __version__ = version("unit-inference")

__all__ = [
    "ExponentPolicy",
    "Options",
    "Quantity",
    "UnitChecker",
    "UnitConversionError",
    "UnitError",
    "in_unit",
    "with_unit",
    "without_unit",
]
