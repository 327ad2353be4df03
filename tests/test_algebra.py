from fractions import Fraction

import pytest

from unit_inference.units import (
    EMPTY,
    UNDEFINED,
    Derivative,
    Power,
    Product,
    Variable,
    VarId,
    WellFormed,
    convertible,
    derivative,
    equivalent,
    evaluate,
    multiply,
    parse_unit,
    power,
)
from unit_inference.units.algebra import contains, is_ground, iter_variables

m = WellFormed(parse_unit("m"))
s = WellFormed(parse_unit("s"))
deg_c = WellFormed(parse_unit("degC"))
x = Variable(VarId("x"))
y = Variable(VarId("y"))


@pytest.mark.parametrize(
    "left, right, expected",
    [
        (UNDEFINED, m, UNDEFINED),
        (m, UNDEFINED, UNDEFINED),
        (UNDEFINED, EMPTY, UNDEFINED),
        (EMPTY, m, m),
        (m, EMPTY, m),
        (EMPTY, EMPTY, EMPTY),
        (m, s, WellFormed(parse_unit("m.s"))),
        (x, m, Product(x, m)),
        (x, EMPTY, x),
        (UNDEFINED, x, UNDEFINED),
    ],
)
def test_multiply(left, right, expected):
    assert multiply(left, right) == expected


@pytest.mark.parametrize(
    "base, exponent, expected",
    [
        (UNDEFINED, 2, UNDEFINED),
        (EMPTY, 2, EMPTY),
        (m, 2, WellFormed(parse_unit("m2"))),
        (m, 0, WellFormed(parse_unit("1"))),
        (x, 2, Power(x, Fraction(2))),
        (x, 1, x),
        (Power(x, Fraction(2)), Fraction(1, 2), x),
        (Power(x, Fraction(2)), 3, Power(x, Fraction(6))),
    ],
)
def test_power(base, exponent, expected):
    assert power(base, exponent) == expected


@pytest.mark.parametrize(
    "operand, expected",
    [
        (UNDEFINED, UNDEFINED),
        (EMPTY, EMPTY),
        (m, WellFormed(parse_unit("m/s"))),
        (x, Derivative(x)),
    ],
)
def test_derivative(operand, expected):
    assert derivative(operand) == expected


def test_evaluate_nested():
    value = Product(Derivative(x), Power(y, Fraction(-1)))
    substitution = {VarId("x"): m, VarId("y"): s}
    assert evaluate(value, substitution) == WellFormed(parse_unit("m/s2"))


def test_evaluate_partial():
    value = Product(x, Power(y, Fraction(2)))
    assert evaluate(value, {VarId("x"): m}) == Product(m, Power(y, Fraction(2)))


def test_evaluate_undefined_power():
    """Powers of affine units have no meaning and become Undefined."""
    assert evaluate(Power(deg_c, Fraction(2))) == UNDEFINED
    assert evaluate(Power(deg_c, Fraction(1))) == deg_c


def test_evaluate_empty_is_transparent():
    assert evaluate(Product(EMPTY, Power(Product(EMPTY, x), Fraction(-1)))) == Power(
        x, Fraction(-1)
    )


def test_equivalent():
    assert equivalent(m, WellFormed(parse_unit("m")))
    assert not equivalent(m, s)
    assert equivalent(EMPTY, m)
    assert equivalent(UNDEFINED, s)
    assert equivalent(x, x)
    assert not equivalent(x, y)
    assert not equivalent(x, m)


def test_convertible():
    assert convertible(WellFormed(parse_unit("K")), deg_c)
    assert not convertible(m, s)
    assert not convertible(EMPTY, m)
    assert not convertible(x, m)


def test_variables():
    value = Product(x, Power(Product(x, Derivative(y)), Fraction(2)))
    assert list(iter_variables(value)) == [VarId("x"), VarId("x"), VarId("y")]
    assert contains(value, VarId("y"))
    assert not contains(value, VarId("z"))
    assert not is_ground(value)
    assert is_ground(Product(m, s))
