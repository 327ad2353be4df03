from fractions import Fraction

import pytest

from unit_inference.checker.builder import MetaExpressionBuilder, constant_value
from unit_inference.checker.constraints import CheckKind, ConstraintKind
from unit_inference.nodes import (
    CallExpr,
    Equation,
    Expression,
    FlatModel,
    LiteralExpr,
    NameExpr,
    OpExpr,
    StrExpr,
    UnaryExpr,
    Var,
    Variability,
)
from unit_inference.units import (
    EMPTY,
    UNDEFINED,
    Derivative,
    Power,
    Product,
    Variable,
    VarId,
    WellFormed,
    evaluate,
    parse_unit,
)

x = Variable(VarId("x"))
y = Variable(VarId("y"))


def make_builder(*variables: Var, equations: list[Equation] | None = None):
    """Create a builder for a model with the given variables and equations."""
    model = FlatModel("M", list(variables), equations or [])
    return MetaExpressionBuilder(model)


@pytest.mark.parametrize(
    "expr, expected",
    [
        (LiteralExpr(2), Fraction(2)),
        (LiteralExpr(0.5), Fraction(1, 2)),
        (UnaryExpr("-", LiteralExpr(3)), Fraction(-3)),
        (OpExpr("/", LiteralExpr(1), LiteralExpr(3)), Fraction(1, 3)),
        (OpExpr(".*", LiteralExpr(2), LiteralExpr(3)), Fraction(6)),
        (OpExpr("-", LiteralExpr(1), LiteralExpr(3)), Fraction(-2)),
        (OpExpr("/", LiteralExpr(1), LiteralExpr(0)), None),
        (NameExpr("n"), None),
        (LiteralExpr(True), None),
    ],
)
def test_constant_value(expr, expected):
    assert constant_value(expr) == expected


def test_declaration_constraint():
    result = make_builder(Var("x", unit="m", line=3)).build()
    assert result.variables == {"x": VarId("x")}
    [constraint] = result.constraints
    assert constraint.kind is ConstraintKind.DECLARATION
    assert constraint.left == x
    assert constraint.right == WellFormed(parse_unit("m"))
    assert constraint.subject == "x"
    assert constraint.line == 3


def test_unitless_constant_has_no_unit_variable():
    builder = make_builder(Var("k", variability=Variability.CONSTANT))
    result = builder.build()
    assert result.variables == {}
    assert builder.analyse_expression(NameExpr("k")) == EMPTY


def test_literals_are_empty():
    builder = make_builder()
    assert builder.analyse_expression(LiteralExpr(2.5)) == EMPTY
    assert builder.analyse_expression(StrExpr("m")) == EMPTY


def test_names():
    builder = make_builder(Var("x"))
    builder.build()
    assert builder.analyse_expression(NameExpr("x")) == x
    assert builder.analyse_expression(NameExpr("time")) == WellFormed(parse_unit("s"))
    assert builder.analyse_expression(NameExpr("missing")) == UNDEFINED


def test_product_and_quotient():
    builder = make_builder(Var("x"), Var("y"))
    builder.build()
    assert builder.analyse_expression(
        OpExpr("*", NameExpr("x"), NameExpr("y"))
    ) == Product(x, y)
    assert builder.analyse_expression(
        OpExpr("/", NameExpr("x"), NameExpr("y"))
    ) == Product(x, Power(y, Fraction(-1)))


def test_sum_introduces_fresh_variable():
    builder = make_builder(Var("x"), Var("y"))
    builder.build()
    result = builder.analyse_expression(OpExpr("+", NameExpr("x"), NameExpr("y")))
    assert isinstance(result, Variable)
    assert result.var.fresh
    constraints = builder.result.constraints[-2:]
    assert [(c.left, c.right) for c in constraints] == [(result, x), (result, y)]
    assert all(c.kind is ConstraintKind.EXPRESSION for c in constraints)


def test_sum_with_literal_stays_unitless():
    builder = make_builder(Var("x"))
    builder.build()
    builder.analyse_expression(OpExpr("+", NameExpr("x"), LiteralExpr(1)))
    assert builder.result.constraints[-1].evaluated().is_trivial


def test_negation_keeps_unit():
    builder = make_builder(Var("x"))
    builder.build()
    assert builder.analyse_expression(UnaryExpr("-", NameExpr("x"))) == x
    assert builder.analyse_expression(UnaryExpr("not", NameExpr("x"))) == EMPTY


def test_derivative():
    builder = make_builder(Var("x"))
    builder.build()
    assert builder.analyse_expression(CallExpr("der", [NameExpr("x")])) == Derivative(
        x
    )


def test_constant_power():
    builder = make_builder(Var("x"))
    builder.build()
    result = builder.analyse_expression(OpExpr("^", NameExpr("x"), LiteralExpr(2)))
    power_constraint, base_constraint, _ = builder.result.constraints
    assert power_constraint.left == result
    assert power_constraint.right == Power(x, Fraction(2))
    assert base_constraint.kind is ConstraintKind.EXPONENT_BASE
    assert not base_constraint.enabled


def test_non_constant_power():
    builder = make_builder(Var("x"), Var("n", variability=Variability.PARAMETER))
    builder.build()
    builder.analyse_expression(OpExpr("^", NameExpr("x"), NameExpr("n")))
    base_constraint, result_constraint = builder.result.constraints
    assert base_constraint.kind is ConstraintKind.EXPONENT_BASE
    assert base_constraint.enabled
    assert base_constraint.right == WellFormed(parse_unit("1"))
    assert result_constraint.right == x


def test_sign_and_sqrt():
    builder = make_builder(Var("x"))
    builder.build()
    sign = builder.analyse_expression(CallExpr("sign", [NameExpr("x")]))
    root = builder.analyse_expression(CallExpr("sqrt", [NameExpr("x")]))
    assert evaluate(sign, {VarId("x"): WellFormed(parse_unit("m"))}) == WellFormed(
        parse_unit("1")
    )
    assert root == Power(x, Fraction(1, 2))


def test_transcendental_argument_is_deferred():
    builder = make_builder(Var("x"))
    builder.build()
    assert builder.analyse_expression(CallExpr("sin", [NameExpr("x")])) == x
    [check] = builder.result.deferred_checks
    assert check.kind is CheckKind.MUST_BE_ONE
    assert check.subject == "sin"
    assert not builder.result.constraints


def test_ground_transcendental_argument_checked_immediately():
    builder = make_builder()
    builder.analyse_expression(
        CallExpr("exp", [CallExpr("withUnit", [LiteralExpr(1), StrExpr("s")])])
    )
    assert not builder.result.deferred_checks
    [error] = builder.result.errors
    assert error.code == "U004"


def test_unknown_function_is_undefined():
    builder = make_builder()
    assert builder.analyse_expression(CallExpr("myFunc", [LiteralExpr(1)])) == UNDEFINED


def test_conversion_operators():
    builder = make_builder(Var("x"))
    builder.build()
    km = parse_unit("km")
    assert builder.analyse_expression(
        CallExpr("withUnit", [LiteralExpr(1), StrExpr("km")])
    ) == WellFormed(km)
    assert builder.analyse_expression(
        CallExpr("inUnit", [NameExpr("x"), StrExpr("km")])
    ) == WellFormed(km)
    assert (
        builder.analyse_expression(
            CallExpr("withoutUnit", [NameExpr("x"), StrExpr("km")])
        )
        == EMPTY
    )
    assert [check.kind for check in builder.result.deferred_checks] == [
        CheckKind.MUST_BE_CONVERTIBLE,
        CheckKind.MUST_BE_CONVERTIBLE,
    ]
    assert not builder.result.errors


def test_conversion_requires_unit_literal():
    builder = make_builder(Var("x"))
    builder.build()
    with pytest.raises(TypeError):
        builder.analyse_expression(
            CallExpr("withUnit", [LiteralExpr(1), NameExpr("x")])
        )


def test_unsupported_expression():
    with pytest.raises(TypeError):
        make_builder().analyse_expression(Expression())
