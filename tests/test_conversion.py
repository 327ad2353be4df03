import pytest

from unit_inference import (
    Quantity,
    UnitConversionError,
    in_unit,
    with_unit,
    without_unit,
)
from unit_inference.units import (
    EMPTY,
    UNDEFINED,
    Variable,
    VarId,
    WellFormed,
    parse_unit,
)

m_unit = parse_unit("m")


def test_with_unit():
    q = with_unit(Quantity(0.1), "m")
    assert q.value == 0.1
    assert q.unit == WellFormed(m_unit)
    assert str(q) == "0.1 m"


def test_with_unit_accepts_unit_vector():
    assert with_unit(Quantity(2.0), m_unit).unit == WellFormed(m_unit)


def test_with_unit_requires_unitless_value():
    with pytest.raises(UnitConversionError) as exc_info:
        with_unit(Quantity(1.0, WellFormed(m_unit)), "m")
    assert exc_info.value.error.code == "U006"
    assert exc_info.value.error.lhs == m_unit


@pytest.mark.parametrize("unit", [UNDEFINED, Variable(VarId("x"))])
def test_with_unit_rejects_unknown_unit(unit):
    """A value whose unit is not definite cannot be given a unit."""
    with pytest.raises(UnitConversionError) as exc_info:
        with_unit(Quantity(1.0, unit), "m")
    assert exc_info.value.error.code == "U006"
    assert exc_info.value.error.lhs is None
    assert "undefined unit" in str(exc_info.value)


def test_without_unit_rescales():
    q = without_unit(Quantity(1500.0, WellFormed(m_unit)), "km")
    assert q.value == pytest.approx(1.5)
    assert q.unit == EMPTY


def test_in_unit_rescales():
    q = in_unit(Quantity(2.0, WellFormed(parse_unit("h"))), "min")
    assert q.value == pytest.approx(120.0)
    assert q.unit == WellFormed(parse_unit("min"))


def test_in_unit_affine():
    q = in_unit(Quantity(25.0, WellFormed(parse_unit("degC"))), "K")
    assert q.value == pytest.approx(298.15)
    back = in_unit(q, "degC")
    assert back.value == pytest.approx(25.0)


def test_not_convertible():
    with pytest.raises(UnitConversionError) as exc_info:
        without_unit(Quantity(1.0, WellFormed(m_unit)), "s")
    assert exc_info.value.error.code == "U007"
    assert exc_info.value.error.rhs == parse_unit("s")


def test_unitless_value_not_convertible():
    with pytest.raises(UnitConversionError) as exc_info:
        in_unit(Quantity(1.0), "m")
    assert exc_info.value.error.code == "U007"
    assert exc_info.value.error.lhs is None


def test_conversion_error_is_value_error():
    with pytest.raises(ValueError, match="Cannot convert"):
        in_unit(Quantity(1.0, WellFormed(m_unit)), "kg")
