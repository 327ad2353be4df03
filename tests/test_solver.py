from fractions import Fraction

import pytest

from unit_inference.checker.constraints import Constraint, ConstraintKind
from unit_inference.checker.resolver import Resolver
from unit_inference.checker.solver import ConstraintSolver, Substitution, isolate
from unit_inference.nodes import Condition
from unit_inference.units import (
    EMPTY,
    Derivative,
    Power,
    Product,
    Variable,
    VarId,
    WellFormed,
    evaluate,
    parse_unit,
)
from unit_inference.units.algebra import contains

m = WellFormed(parse_unit("m"))
s = WellFormed(parse_unit("s"))
a_id, b_id, c_id = VarId("a"), VarId("b"), VarId("c")
a, b, c = Variable(a_id), Variable(b_id), Variable(c_id)


def solve(*constraints: Constraint):
    """Solve the given constraints with a new solver."""
    return ConstraintSolver().solve(constraints)


def test_substitution_composes():
    substitution = Substitution()
    substitution.add(a_id, Product(b, s))
    substitution.add(b_id, m)
    assert substitution[a_id] == WellFormed(parse_unit("m.s"))
    assert len(substitution) == 2


def test_substitution_occurs_check():
    substitution = Substitution()
    with pytest.raises(ValueError):
        substitution.add(a_id, Product(a, s))


def test_substitution_occurs_check_through_existing_entry():
    substitution = Substitution()
    substitution.add(a_id, b)
    with pytest.raises(ValueError):
        substitution.add(b_id, Product(a, s))


def test_substitution_rejects_duplicate():
    substitution = Substitution()
    substitution.add(a_id, m)
    with pytest.raises(ValueError):
        substitution.add(a_id, s)


@pytest.mark.parametrize(
    "left, right, expected",
    [
        (a, m, (a_id, m)),
        (m, a, (a_id, m)),
        (a, Product(b, s), (a_id, Product(b, s))),
        (Power(a, Fraction(2)), WellFormed(parse_unit("m2")), (a_id, m)),
        (Product(a, s), m, (a_id, WellFormed(parse_unit("m/s")))),
        (Product(s, a), m, (a_id, WellFormed(parse_unit("m/s")))),
        (Derivative(a), WellFormed(parse_unit("m/s")), (a_id, m)),
        (Product(a, b), m, None),
        (Power(a, Fraction(0)), m, None),
    ],
)
def test_isolate(left, right, expected):
    assert isolate(Constraint(left, right)) == expected


def test_chain_of_equations():
    result = solve(Constraint(a, b), Constraint(b, c), Constraint(c, m))
    resolver = Resolver(result.substitution)
    assert resolver.resolve({"a": a_id, "b": b_id, "c": c_id}) == {
        "a": m.unit,
        "b": m.unit,
        "c": m.unit,
    }
    assert not result.errors


def test_parked_constraint_is_retried():
    """A product of two unknowns is solvable once one of them is known."""
    result = solve(
        Constraint(Product(a, b), WellFormed(parse_unit("m.s"))), Constraint(b, s)
    )
    assert evaluate(a, result.substitution) == m
    assert not result.discarded


def test_unsolvable_constraint_is_discarded():
    result = solve(Constraint(a, Product(a, b)))
    assert len(result.discarded) == 1
    assert len(result.substitution) == 0
    assert not result.errors


def test_mismatch_reported():
    result = solve(
        Constraint(a, m, kind=ConstraintKind.DECLARATION, subject="a"),
        Constraint(a, s, context="a = t"),
    )
    assert len(result.errors) == 1
    assert result.errors[0].code == "U001"
    assert result.errors[0].lhs == m.unit
    assert result.errors[0].rhs == s.unit


def test_disabled_constraint_is_dropped():
    result = solve(
        Constraint(a, m),
        Constraint(a, s, conditions=(Condition("c", False),)),
    )
    assert not result.errors
    assert evaluate(a, result.substitution) == m


def test_unknown_condition_keeps_constraint():
    result = solve(
        Constraint(a, m),
        Constraint(a, s, conditions=(Condition("c", None),)),
    )
    assert len(result.errors) == 1


def test_empty_constraints_are_trivial():
    result = solve(Constraint(a, EMPTY), Constraint(EMPTY, m))
    assert len(result.substitution) == 0
    assert not result.discarded


def test_resolution_is_idempotent():
    result = solve(Constraint(a, Product(b, s)), Constraint(b, m))
    once = evaluate(a, result.substitution)
    assert evaluate(once, result.substitution) == once
    for var, value in result.substitution.items():
        assert evaluate(value, result.substitution) == value
        assert not contains(value, var)


def test_resolving_twice_gives_same_units():
    result = solve(Constraint(a, Product(b, s)), Constraint(b, m), Constraint(c, a))
    variables = {"a": a_id, "b": b_id, "c": c_id, "k": None}
    first = Resolver(result.substitution).resolve(variables)
    second = Resolver(result.substitution).resolve(variables)
    assert first == second
    assert first["c"] == parse_unit("m.s")
    assert first["k"] is None
    resolver = Resolver(result.substitution)
    assert resolver.resolve(variables) == resolver.resolve(variables) == first


def test_solver_terminates_on_cycles():
    result = solve(
        Constraint(a, Product(b, s)),
        Constraint(b, Product(a, s)),
        Constraint(c, Power(Product(a, c), Fraction(2))),
    )
    assert len(result.discarded) == 2
    assert list(result.substitution) == [a_id]
