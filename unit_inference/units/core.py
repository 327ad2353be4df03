"""Well-formed units as base-dimension vectors with a scale and an offset.

A ``BaseUnitVector`` is the value domain of the unit algebra: the exponents of
the seven SI base dimensions together with the rational factor (``scale``) and
shift (``offset``) that map a value in this unit onto the coherent SI unit,
i.e. ``si = value * scale + offset``.
"""

from dataclasses import dataclass
from fractions import Fraction
from typing import Self

BASE_DIMENSIONS = (
    "length",
    "mass",
    "time",
    "current",
    "temperature",
    "amount",
    "luminous_intensity",
)
BASE_SYMBOLS = ("m", "kg", "s", "A", "K", "mol", "cd")

Rational = Fraction | int


class UnitAlgebraError(ValueError):
    """Raised when an operation has no meaning for the given units."""


def _int_root(value: int, degree: int) -> int | None:
    """Return the exact integer ``degree``-th root of ``value`` if there is one."""
    guess = round(value ** (1 / degree))
    for candidate in (guess - 1, guess, guess + 1):
        if candidate >= 0 and candidate**degree == value:
            return candidate
    return None


def _rational_power(base: Fraction, exponent: Fraction) -> Fraction:
    """Raise a rational to a rational power, exactly where the result is rational."""
    if exponent.denominator == 1:
        return base**exponent.numerator
    if base > 0:
        numerator = _int_root(base.numerator, exponent.denominator)
        denominator = _int_root(base.denominator, exponent.denominator)
        if numerator is not None and denominator is not None:
            return Fraction(numerator, denominator) ** exponent.numerator
    return Fraction(float(base) ** float(exponent))


def format_exponent(exponent: Fraction) -> str:
    """Format a unit exponent the way unit literals write it (``2``, ``(1/2)``)."""
    if exponent == 1:
        return ""
    if exponent.denominator == 1:
        return str(exponent.numerator)
    return f"({exponent.numerator}/{exponent.denominator})"


def format_number(value: Fraction) -> str:
    """Format a rational scale or offset compactly."""
    if value.denominator == 1:
        return str(value.numerator)
    return f"{float(value):g}"


@dataclass(frozen=True)
class BaseUnitVector:
    """Represents a well-formed unit: base-dimension exponents, scale and offset.

    Two instances compare equal iff they are *equivalent* (all three components
    match); :meth:`convertible` compares only the dimension vectors.
    """

    dims: tuple[Fraction, ...] = (Fraction(0),) * len(BASE_DIMENSIONS)
    scale: Fraction = Fraction(1)
    offset: Fraction = Fraction(0)

    def __post_init__(self) -> None:
        """Normalise all components to ``Fraction`` and validate them."""
        if len(self.dims) != len(BASE_DIMENSIONS):
            raise ValueError(
                f"Expected {len(BASE_DIMENSIONS)} dimension exponents, "
                f"got {len(self.dims)}"
            )
        object.__setattr__(self, "dims", tuple(Fraction(d) for d in self.dims))
        object.__setattr__(self, "scale", Fraction(self.scale))
        object.__setattr__(self, "offset", Fraction(self.offset))
        if self.scale == 0:
            raise ValueError("Unit scale must be non-zero")

    @classmethod
    def from_exponents(
        cls, scale: Rational = 1, offset: Rational = 0, **exponents: Rational
    ) -> Self:
        """Create a unit from named base-dimension exponents.

        Args:
            scale: Factor onto the coherent SI unit.
            offset: Shift onto the coherent SI unit (affine units only).
            exponents: Exponents keyed by base dimension name, e.g. ``length=1``.
        """
        unknown = set(exponents) - set(BASE_DIMENSIONS)
        if unknown:
            raise ValueError(f"Unknown base dimensions: {sorted(unknown)}")
        dims = tuple(Fraction(exponents.get(name, 0)) for name in BASE_DIMENSIONS)
        return cls(dims, Fraction(scale), Fraction(offset))

    @property
    def is_dimensionless(self) -> bool:
        """Whether all base-dimension exponents are zero."""
        return not any(self.dims)

    @property
    def is_affine(self) -> bool:
        """Whether the unit has a non-zero offset (e.g. ``degC``)."""
        return self.offset != 0

    @property
    def is_identity(self) -> bool:
        """Whether this is the unit ``"1"``."""
        return self.is_dimensionless and self.scale == 1 and not self.is_affine

    def convertible(self, other: "BaseUnitVector") -> bool:
        """Check whether a value in this unit can be converted into ``other``."""
        return self.dims == other.dims

    def __mul__(self, other: "BaseUnitVector") -> "BaseUnitVector":
        """Multiply two units.

        A product with ``"1"`` is the other operand unchanged. In any other
        product affine operands are treated as differences, i.e. the offset is
        dropped.
        """
        if other.is_identity:
            return self
        if self.is_identity:
            return other
        return BaseUnitVector(
            tuple(a + b for a, b in zip(self.dims, other.dims)),
            self.scale * other.scale,
        )

    def __truediv__(self, other: "BaseUnitVector") -> "BaseUnitVector":
        """Divide two units."""
        return self * other**-1

    def __pow__(self, exponent: Rational) -> "BaseUnitVector":
        """Raise the unit to a rational power.

        Raises:
            UnitAlgebraError: If an affine unit is raised to a power other than
                0 or 1.
        """
        exponent = Fraction(exponent)
        if exponent == 1:
            return self
        if exponent == 0:
            return BaseUnitVector()
        if self.is_affine:
            raise UnitAlgebraError(
                f"Cannot raise unit with offset {format_number(self.offset)} "
                f"to the power {exponent}"
            )
        return BaseUnitVector(
            tuple(d * exponent for d in self.dims),
            _rational_power(self.scale, exponent),
        )

    def to_si(self, value: float) -> float:
        """Convert a value expressed in this unit into the coherent SI unit."""
        return value * float(self.scale) + float(self.offset)

    def from_si(self, value: float) -> float:
        """Convert a value in the coherent SI unit into this unit."""
        return (value - float(self.offset)) / float(self.scale)

    def __str__(self) -> str:
        """Return the unit in base symbols, e.g. ``m.kg/s2``."""
        numerator, denominator = [], []
        for symbol, exponent in zip(BASE_SYMBOLS, self.dims):
            if exponent > 0:
                numerator.append(f"{symbol}{format_exponent(exponent)}")
            elif exponent < 0:
                denominator.append(f"{symbol}{format_exponent(-exponent)}")
        text = ".".join(numerator) if numerator else "1"
        if len(denominator) == 1:
            text += f"/{denominator[0]}"
        elif denominator:
            text += f"/({'.'.join(denominator)})"
        if self.scale != 1:
            text = (
                format_number(self.scale)
                if text == "1"
                else f"{format_number(self.scale)}*{text}"
            )
        if self.is_affine:
            text += f"+{format_number(self.offset)}"
        return text


ONE = BaseUnitVector()
SECOND = BaseUnitVector.from_exponents(time=1)
