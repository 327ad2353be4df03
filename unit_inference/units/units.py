"""Unit literals: registry of named units, parsing and canonical formatting.

Unit strings follow the Modelica unit grammar:

- Multiplication: ``.`` (``kg.m2``)
- Division: a single ``/`` (``m/s2``, ``W.s/mm``, ``1/(s.A)``)
- Powers: an integer directly after the symbol (``m2``, ``s-1``), optionally
  written with ``^``, or a rational in parentheses (``m(1/2)``)
- SI prefixes in front of any unit without an offset (``kN``, ``ms``)

Example:
    from .units import parse_unit

    speed = parse_unit("km/h")
"""

import math
import re
from fractions import Fraction

from .core import ONE, BaseUnitVector, UnitAlgebraError, format_exponent

_SYMBOL_RE = re.compile(r"[A-Za-z_]+")
_EXPONENT_RE = re.compile(r"\^?(?:([+-]?\d+)|\(([+-]?\d+)/(\d+)\))")

PREFIXES: dict[str, Fraction] = {
    "Y": Fraction(10) ** 24,
    "Z": Fraction(10) ** 21,
    "E": Fraction(10) ** 18,
    "P": Fraction(10) ** 15,
    "T": Fraction(10) ** 12,
    "G": Fraction(10) ** 9,
    "M": Fraction(10) ** 6,
    "k": Fraction(10) ** 3,
    "h": Fraction(10) ** 2,
    "da": Fraction(10),
    "d": Fraction(10) ** -1,
    "c": Fraction(10) ** -2,
    "m": Fraction(10) ** -3,
    "u": Fraction(10) ** -6,
    "n": Fraction(10) ** -9,
    "p": Fraction(10) ** -12,
    "f": Fraction(10) ** -15,
    "a": Fraction(10) ** -18,
    "z": Fraction(10) ** -21,
    "y": Fraction(10) ** -24,
}
_SORTED_PREFIXES = sorted(PREFIXES, key=len, reverse=True)


class UnitParseError(ValueError):
    """Raised when a unit literal cannot be parsed."""

    def __init__(self, message: str, text: str, position: int | None = None):
        """Initialise the error, pointing at ``position`` in ``text`` if given."""
        pointer = ""
        if position is not None and 0 <= position <= len(text):
            pointer = f"\n{text}\n{' ' * position}^"
        super().__init__(f"{message}{pointer}")
        self.text = text
        self.position = position


def _render_terms(terms: list[tuple[str, int]]) -> str:
    """Join ``(symbol, exponent)`` terms into a literal such as ``km/h``."""
    numerator = [f"{s}{format_exponent(Fraction(e))}" for s, e in terms if e > 0]
    denominator = [f"{s}{format_exponent(Fraction(-e))}" for s, e in terms if e < 0]
    text = ".".join(numerator) or "1"
    if len(denominator) == 1:
        text += f"/{denominator[0]}"
    elif denominator:
        text += f"/({'.'.join(denominator)})"
    return text


class UnitRegistry:
    """Registry of named units, used to parse and to format unit literals."""

    def __init__(self, defaults: bool = True):
        """Initialise a registry.

        Args:
            defaults: Install the SI base, derived and common non-SI units.
        """
        self._units: dict[str, BaseUnitVector] = {}
        self._terms: dict[BaseUnitVector, tuple[int, str, int]] | None = None
        if defaults:
            self._install_defaults()

    def register(
        self, symbol: str, unit: BaseUnitVector, *, aliases: tuple[str, ...] = ()
    ) -> None:
        """Register ``unit`` under ``symbol`` and any aliases."""
        for key in (symbol, *aliases):
            if not _SYMBOL_RE.fullmatch(key):
                raise ValueError(f"Invalid unit symbol: {key!r}")
            self._units[key] = unit
        self._terms = None

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._units

    def lookup(self, symbol: str) -> BaseUnitVector:
        """Resolve a (possibly prefixed) unit symbol.

        Raises:
            UnitParseError: If the symbol is not known.
        """
        if symbol in self._units:
            return self._units[symbol]
        for prefix in _SORTED_PREFIXES:
            tail = symbol.removeprefix(prefix)
            if tail and tail != symbol and tail in self._units:
                unit = self._units[tail]
                if unit.is_affine:
                    break
                return BaseUnitVector(unit.dims, unit.scale * PREFIXES[prefix])
        raise UnitParseError(f"Unknown unit symbol '{symbol}'", symbol, 0)

    def symbol_for(self, unit: BaseUnitVector) -> str | None:
        """Return a literal naming exactly ``unit`` with a single symbol.

        The symbol may carry a prefix and a power, e.g. ``kN``, ``mg``,
        ``mm2``.
        """
        for symbol, candidate in self._units.items():
            if candidate == unit:
                return symbol
        if unit.is_affine:
            return None
        if (term := self._index().get(unit)) is not None:
            return _render_terms([term[1:]])
        return None

    def literal_for(self, unit: BaseUnitVector) -> str | None:
        """Return a literal for ``unit`` made of at most two symbols, e.g. ``km/h``.

        Among several two-symbol spellings the one with the fewest prefixes
        and powers wins.
        """
        if (symbol := self.symbol_for(unit)) is not None:
            return symbol
        if unit.is_affine:
            return None
        index = self._index()
        best: tuple[int, list[tuple[str, int]]] | None = None
        for term_unit, (cost, symbol, exponent) in index.items():
            rest = index.get(unit / term_unit)
            if rest is not None and (best is None or cost + rest[0] < best[0]):
                best = (cost + rest[0], [(symbol, exponent), rest[1:]])
        return None if best is None else _render_terms(best[1])

    def _is_prefixed(self, symbol: str) -> bool:
        """Whether a registered symbol is a prefixed form of another one (``kg``)."""
        for prefix in _SORTED_PREFIXES:
            tail = symbol.removeprefix(prefix)
            if tail and tail != symbol and tail in self._units:
                unit = self._units[tail]
                scaled = BaseUnitVector(unit.dims, unit.scale * PREFIXES[prefix])
                if scaled == self._units[symbol]:
                    return True
        return False

    def _index(self) -> dict[BaseUnitVector, tuple[int, str, int]]:
        """Map units to the cheapest single-symbol term spelling them.

        Terms are ``(cost, symbol, exponent)``; the cost counts a prefix and a
        power other than 1 or -1.
        """
        if self._terms is not None:
            return self._terms
        plain = [
            (symbol, unit)
            for symbol, unit in self._units.items()
            if not unit.is_affine and not self._is_prefixed(symbol)
        ]
        prefixed = []
        for symbol, unit in plain:
            for prefix, factor in PREFIXES.items():
                text = f"{prefix}{symbol}"
                scaled = BaseUnitVector(unit.dims, unit.scale * factor)
                # "cd" is candela, not centi-day
                if self.lookup(text) == scaled:
                    prefixed.append((text, scaled))
        terms: dict[BaseUnitVector, tuple[int, str, int]] = {}
        for cost, (exponents, bases) in enumerate(
            (
                ((1, -1), plain),
                ((1, -1), prefixed),
                ((2, -2, 3, -3), plain),
                ((2, -2, 3, -3), prefixed),
            )
        ):
            for exponent in exponents:
                for symbol, base in bases:
                    terms.setdefault(base**exponent, (cost, symbol, exponent))
        self._terms = terms
        return terms

    def _install_defaults(self) -> None:
        unit = BaseUnitVector.from_exponents

        self.register("m", unit(length=1))
        self.register("kg", unit(mass=1))
        self.register("g", unit(Fraction(1, 1000), mass=1))
        self.register("s", unit(time=1))
        self.register("A", unit(current=1))
        self.register("K", unit(temperature=1))
        self.register("mol", unit(amount=1))
        self.register("cd", unit(luminous_intensity=1))

        self.register("rad", unit())
        self.register("sr", unit())
        self.register("Hz", unit(time=-1))
        self.register("N", unit(length=1, mass=1, time=-2))
        self.register("Pa", unit(length=-1, mass=1, time=-2))
        self.register("J", unit(length=2, mass=1, time=-2))
        self.register("W", unit(length=2, mass=1, time=-3))
        self.register("C", unit(time=1, current=1))
        self.register("V", unit(length=2, mass=1, time=-3, current=-1))
        self.register("F", unit(length=-2, mass=-1, time=4, current=2))
        self.register("Ohm", unit(length=2, mass=1, time=-3, current=-2))
        self.register("S", unit(length=-2, mass=-1, time=3, current=2))
        self.register("Wb", unit(length=2, mass=1, time=-2, current=-1))
        self.register("T", unit(mass=1, time=-2, current=-1))
        self.register("H", unit(length=2, mass=1, time=-2, current=-2))
        self.register("lm", unit(luminous_intensity=1))
        self.register("lx", unit(length=-2, luminous_intensity=1))
        self.register("Bq", unit(time=-1))
        self.register("Gy", unit(length=2, time=-2))
        self.register("Sv", unit(length=2, time=-2))
        self.register("kat", unit(time=-1, amount=1))

        self.register("degC", unit(offset=Fraction("273.15"), temperature=1))
        self.register(
            "degF",
            unit(
                Fraction(5, 9),
                Fraction("459.67") * Fraction(5, 9),
                temperature=1,
            ),
        )
        self.register("degRk", unit(Fraction(5, 9), temperature=1))

        self.register("deg", unit(Fraction(math.pi) / 180))
        self.register("rev", unit(2 * Fraction(math.pi)))
        self.register("rpm", unit(2 * Fraction(math.pi) / 60, time=-1))
        self.register("min", unit(60, time=1))
        self.register("h", unit(3600, time=1))
        self.register("d", unit(86400, time=1))
        self.register("l", unit(Fraction(1, 1000), length=3), aliases=("L",))
        self.register("bar", unit(100000, length=-1, mass=1, time=-2))
        self.register(
            "eV", unit(Fraction("1.602176634e-19"), length=2, mass=1, time=-2)
        )


DEFAULT_REGISTRY = UnitRegistry()


class _UnitParser:
    """Recursive descent parser for a single unit literal."""

    def __init__(self, text: str, registry: UnitRegistry):
        self.text = text
        self.registry = registry
        self.pos = 0

    def parse(self) -> BaseUnitVector:
        try:
            unit = self._expression()
        except UnitAlgebraError as exc:
            raise UnitParseError(str(exc), self.text) from exc
        if self.pos != len(self.text):
            raise UnitParseError(
                f"Unexpected character '{self._peek()}' in unit", self.text, self.pos
            )
        return unit

    def _peek(self) -> str:
        return self.text[self.pos : self.pos + 1]

    def _expression(self) -> BaseUnitVector:
        unit = self._numerator()
        if self._peek() == "/":
            self.pos += 1
            unit = unit / self._factor()
        return unit

    def _numerator(self) -> BaseUnitVector:
        if self._peek() == "1" and not self.text[self.pos + 1 : self.pos + 2].isdigit():
            self.pos += 1
            return ONE
        unit = self._factor()
        while self._peek() == ".":
            self.pos += 1
            unit = unit * self._factor()
        return unit

    def _factor(self) -> BaseUnitVector:
        if self._peek() == "(":
            self.pos += 1
            unit = self._expression()
            if self._peek() != ")":
                raise UnitParseError("Expected ')'", self.text, self.pos)
            self.pos += 1
        elif match := _SYMBOL_RE.match(self.text, self.pos):
            try:
                unit = self.registry.lookup(match.group())
            except UnitParseError as exc:
                raise UnitParseError(
                    str(exc).splitlines()[0], self.text, self.pos
                ) from exc
            self.pos = match.end()
        else:
            raise UnitParseError("Expected a unit symbol", self.text, self.pos)

        if match := _EXPONENT_RE.match(self.text, self.pos):
            self.pos = match.end()
            integer, numerator, denominator = match.groups()
            if integer is not None:
                exponent = Fraction(int(integer))
            else:
                exponent = Fraction(int(numerator), int(denominator))
            unit = unit**exponent
        return unit


def parse_unit(text: str, registry: UnitRegistry | None = None) -> BaseUnitVector:
    """Parse a unit literal such as ``'kg.m2/s2'`` into a ``BaseUnitVector``.

    Args:
        text: The unit literal.
        registry: Registry of unit symbols, ``DEFAULT_REGISTRY`` if not given.

    Raises:
        UnitParseError: If the literal is malformed or uses unknown symbols.
    """
    stripped = text.strip()
    if not stripped:
        raise UnitParseError("Unit literal is empty", text, 0)
    return _UnitParser(stripped, registry or DEFAULT_REGISTRY).parse()


def format_unit(unit: BaseUnitVector, registry: UnitRegistry | None = None) -> str:
    """Return the canonical unit literal for ``unit``.

    Coherent SI units are written in base symbols (``m.kg/s2``). Scaled or
    affine units are spelled with registered symbols, prefixes and powers
    (``kN``, ``degC``, ``mm2``, ``km/h``).

    A scaled unit that no combination of at most two symbols spells exactly
    has no literal in the registry. It is rendered for display only, with
    its scale in front (``0.3*m``); that text does not parse.
    """
    if unit.is_identity:
        return "1"
    if unit.scale == 1 and not unit.is_affine:
        return str(unit)
    literal = (registry or DEFAULT_REGISTRY).literal_for(unit)
    return literal if literal is not None else str(unit)
