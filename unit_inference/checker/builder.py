"""Construction of unit meta-expressions and constraints from a flattened model.

Every expression gets a ``UnitValue``; the rules of each construct emit the
equivalence constraints that tie those values together. Nothing is solved
here: products, powers and derivatives are kept as unevaluated combinators.
"""

import itertools
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from fractions import Fraction

from ..nodes import (
    CallExpr,
    ComparisonExpr,
    Condition,
    ConditionalExpr,
    Equation,
    Expression,
    FlatModel,
    FuncDef,
    LiteralExpr,
    NameExpr,
    Node,
    OpExpr,
    StrExpr,
    UnaryExpr,
    Var,
    Variability,
)
from ..options import ExponentPolicy, Options
from ..units.algebra import evaluate, is_ground
from ..units.core import ONE, SECOND, BaseUnitVector
from ..units.types import (
    EMPTY,
    UNDEFINED,
    Derivative,
    Power,
    Product,
    UnitValue,
    Variable,
    VarId,
    WellFormed,
)
from ..units.units import parse_unit
from .constraints import CheckKind, Constraint, ConstraintKind, DeferredCheck
from .errors import UnitError, deferred_check_error

logger = logging.getLogger(__name__)

ELEMENTWISE_OPERATORS = {".+": "+", ".-": "-", ".*": "*", "./": "/", ".^": "^"}
UNIT_PRESERVING_FUNCTIONS = frozenset(
    {"abs", "pre", "previous", "noEvent", "floor", "ceil"}
)
CONVERSION_OPERATORS = frozenset({"withUnit", "withoutUnit", "inUnit"})


def constant_value(expr: Expression) -> Fraction | None:
    """Return the value of a compile-time constant numeric expression.

    Literals, unary signs and ``+ - * /`` of constants are folded; anything
    else is not evaluated and gives None.
    """
    match expr:
        case LiteralExpr(value) if not isinstance(value, bool):
            return Fraction(str(value)) if isinstance(value, float) else Fraction(value)
        case UnaryExpr("-" | "+", operand):
            value = constant_value(operand)
            if value is None or expr.op == "+":
                return value
            return -value
        case OpExpr(op, left, right):
            left_value, right_value = constant_value(left), constant_value(right)
            if left_value is None or right_value is None:
                return None
            match ELEMENTWISE_OPERATORS.get(op, op):
                case "+":
                    return left_value + right_value
                case "-":
                    return left_value - right_value
                case "*":
                    return left_value * right_value
                case "/" if right_value != 0:
                    return left_value / right_value
    return None


@dataclass
class BuildResult:
    """Everything the builder collected from one model.

    Attributes:
        variables: Unit variable of every model variable that is an unknown.
        errors: Conversion precondition violations detected while building.
    """

    constraints: list[Constraint] = field(default_factory=list)
    deferred_checks: list[DeferredCheck] = field(default_factory=list)
    errors: list[UnitError] = field(default_factory=list)
    variables: dict[str, VarId] = field(default_factory=dict)


class MetaExpressionBuilder:
    """Walks a flattened model and collects unit constraints."""

    def __init__(self, model: FlatModel, options: Options | None = None) -> None:
        """Initialise a builder for ``model``."""
        self.model = model
        self.options = options or Options()
        self.result = BuildResult()
        self._declarations = {var.name: var for var in model.variables}
        self._fresh_ids = itertools.count(1)
        self._conditions: tuple[Condition, ...] = ()
        self._context = ""
        self._line = -1

    def build(self) -> BuildResult:
        """Collect the constraints of all declarations, bindings and equations."""
        for var in self.model.variables:
            self._declare_variable(var)
        for var in self.model.variables:
            if var.binding is not None:
                self._process_binding(var, var.binding)
        for equation in self.model.equations:
            self._process_equation(equation)
        logger.debug(
            "Model %s: %d constraints, %d deferred checks",
            self.model.name,
            len(self.result.constraints),
            len(self.result.deferred_checks),
        )
        return self.result

    @contextmanager
    def _origin(
        self, node: Node, conditions: tuple[Condition, ...] = ()
    ) -> Iterator[None]:
        """Attribute all constraints created inside the block to ``node``."""
        self._context, self._line, self._conditions = str(node), node.line, conditions
        try:
            yield
        finally:
            self._context, self._line, self._conditions = "", -1, ()

    @contextmanager
    def _under(self, condition: Condition) -> Iterator[None]:
        """Guard all constraints created inside the block by ``condition``."""
        saved = self._conditions
        self._conditions = (*saved, condition)
        try:
            yield
        finally:
            self._conditions = saved

    def _line_of(self, node: Node) -> int:
        return node.line if node.line >= 0 else self._line

    def _parse_unit(self, text: str) -> BaseUnitVector:
        return parse_unit(text, self.options.registry)

    def _fresh_variable(self) -> Variable:
        return Variable(VarId(f"${next(self._fresh_ids)}", fresh=True))

    def _add_constraint(
        self,
        left: UnitValue,
        right: UnitValue,
        kind: ConstraintKind,
        node: Node | None = None,
        subject: str = "",
        position: int = 0,
    ) -> None:
        self.result.constraints.append(
            Constraint(
                left,
                right,
                self._conditions,
                kind,
                context=self._context if node is None else str(node),
                line=self._line if node is None else self._line_of(node),
                subject=subject,
                position=position,
            )
        )

    def _defer_check(
        self,
        value: UnitValue,
        kind: CheckKind,
        node: Node,
        subject: str = "",
        target: BaseUnitVector | None = None,
    ) -> None:
        """Check ``value`` now if it is already definite, otherwise after solving."""
        check = DeferredCheck(
            value,
            kind,
            self._conditions,
            str(node),
            self._line_of(node),
            subject,
            target,
        )
        reduced = evaluate(value)
        if not is_ground(reduced):
            self.result.deferred_checks.append(check)
        elif check.enabled and (error := deferred_check_error(check, reduced)):
            self.result.errors.append(error)

    def _declare_variable(self, var: Var) -> None:
        """Create the unit variable of ``var`` and pin it to its declared unit."""
        if var.variability is Variability.CONSTANT and not var.unit:
            # unit-less constants behave like literals
            return
        var_id = VarId(var.name)
        self.result.variables[var.name] = var_id
        if var.unit:
            with self._origin(var):
                self._add_constraint(
                    Variable(var_id),
                    WellFormed(self._parse_unit(var.unit)),
                    ConstraintKind.DECLARATION,
                    subject=var.name,
                )

    def _process_binding(self, var: Var, binding: Expression) -> None:
        with self._origin(var):
            unit = self.analyse_expression(binding)
            if (var_id := self.result.variables.get(var.name)) is not None:
                self._add_constraint(Variable(var_id), unit, ConstraintKind.EQUATION)

    def _process_equation(self, equation: Equation) -> None:
        with self._origin(equation, equation.conditions):
            lhs = self.analyse_expression(equation.lhs)
            rhs = self.analyse_expression(equation.rhs)
            self._add_constraint(lhs, rhs, ConstraintKind.EQUATION)

    def analyse_expression(self, expr: Expression) -> UnitValue:
        """Return the unit meta-expression of ``expr``, collecting its constraints.

        Args:
            expr: The expression node to analyse.

        Returns:
            The (unevaluated) unit meta-expression.
        """
        match expr:
            case LiteralExpr() | StrExpr():
                return EMPTY
            case NameExpr():
                return self._process_name_expr(expr)
            case UnaryExpr():
                return self._process_unary_expr(expr)
            case OpExpr():
                return self._process_op_expr(expr)
            case ComparisonExpr():
                return self._process_comparison_expr(expr)
            case CallExpr():
                return self._process_call_expr(expr)
            case ConditionalExpr():
                return self._process_conditional_expr(expr)
        raise TypeError(f"Unsupported expression node: {type(expr).__name__}")

    def _process_name_expr(self, expr: NameExpr) -> UnitValue:
        if (var_id := self.result.variables.get(expr.name)) is not None:
            return Variable(var_id)
        if expr.name in self._declarations:
            return EMPTY
        if expr.name == "time":
            return WellFormed(SECOND)
        logger.debug("Reference to undeclared variable %s", expr.name)
        return UNDEFINED

    def _process_unary_expr(self, expr: UnaryExpr) -> UnitValue:
        """Unary signs keep the unit of their operand; ``not`` is Boolean."""
        unit = self.analyse_expression(expr.expr)
        return EMPTY if expr.op == "not" else unit

    def _process_op_expr(self, expr: OpExpr) -> UnitValue:
        """Resolve a binary operator, handling + - * / ^ and logical operators."""
        op = ELEMENTWISE_OPERATORS.get(expr.op, expr.op)
        if op == "^":
            return self._process_power_op(expr)

        left = self.analyse_expression(expr.left)
        right = self.analyse_expression(expr.right)
        match op:
            case "+" | "-":
                # a fresh variable lets either side be unit-less
                result = self._fresh_variable()
                self._add_constraint(result, left, ConstraintKind.EXPRESSION, expr)
                self._add_constraint(result, right, ConstraintKind.EXPRESSION, expr)
                return result
            case "*":
                return Product(left, right)
            case "/":
                return Product(left, Power(right, Fraction(-1)))
            case "and" | "or":
                return EMPTY
        raise ValueError(f"Unknown operator '{expr.op}' in '{expr}'")

    def _process_power_op(self, expr: OpExpr) -> UnitValue:
        """Resolve ``base ^ exponent``.

        A constant exponent gives the power of the base unit. Otherwise the
        base must have unit "1", which is a conditional constraint on the
        exponent not being evaluated.
        """
        base = self.analyse_expression(expr.left)
        exponent_unit = self.analyse_expression(expr.right)
        exponent = constant_value(expr.right)

        result = self._fresh_variable()
        if exponent is not None:
            self._add_constraint(
                result, Power(base, exponent), ConstraintKind.EXPRESSION, expr
            )
        not_constant = Condition(
            f"exponent '{expr.right}' is not a constant", exponent is None
        )
        with self._under(not_constant):
            self._add_constraint(
                base, WellFormed(ONE), ConstraintKind.EXPONENT_BASE, expr
            )
            self._add_constraint(result, base, ConstraintKind.EXPRESSION, expr)
            if self.options.real_exponent_policy is ExponentPolicy.DIMENSIONLESS:
                self._defer_check(exponent_unit, CheckKind.MUST_BE_ONE, expr, "^")
        return result

    def _process_comparison_expr(self, expr: ComparisonExpr) -> UnitValue:
        """Both operands of a relation have the same unit; the result is Boolean."""
        left = self.analyse_expression(expr.left)
        right = self.analyse_expression(expr.right)
        self._add_constraint(left, right, ConstraintKind.EXPRESSION, expr)
        return EMPTY

    def _process_conditional_expr(self, expr: ConditionalExpr) -> UnitValue:
        """Both branches share the unit of the result, each under its condition."""
        self.analyse_expression(expr.condition)
        condition = Condition(str(expr.condition), expr.condition_value)
        result = self._fresh_variable()
        with self._under(condition):
            if_unit = self.analyse_expression(expr.if_expr)
            self._add_constraint(result, if_unit, ConstraintKind.EXPRESSION, expr)
        with self._under(condition.negated()):
            else_unit = self.analyse_expression(expr.else_expr)
            self._add_constraint(result, else_unit, ConstraintKind.EXPRESSION, expr)
        return result

    def _process_call_expr(self, expr: CallExpr) -> UnitValue:
        """Resolve a function call to the unit of its result."""
        if expr.callee in CONVERSION_OPERATORS:
            return self._process_conversion_expr(expr)

        args = [self.analyse_expression(arg) for arg in expr.args]
        if (func_def := self.model.functions.get(expr.callee)) is not None:
            return self._process_declared_call(expr, func_def, args)

        if expr.callee in self.options.transcendental_functions and len(args) == 1:
            self._defer_check(args[0], CheckKind.MUST_BE_ONE, expr, expr.callee)
            return args[0]

        match expr.callee, args:
            case ("der", [operand]):
                return Derivative(operand)
            case ("sign", [operand]):
                return Power(operand, Fraction(0))
            case ("atan2", [first, second]):
                self._add_constraint(first, second, ConstraintKind.EXPRESSION, expr)
                return Power(Product(first, second), Fraction(0))
            case ("sqrt", [operand]):
                return Power(operand, Fraction(1, 2))
            case ("min" | "max", [first, second]):
                result = self._fresh_variable()
                self._add_constraint(result, first, ConstraintKind.EXPRESSION, expr)
                self._add_constraint(result, second, ConstraintKind.EXPRESSION, expr)
                return result
            case (name, [operand, *_]) if name in UNIT_PRESERVING_FUNCTIONS:
                return operand
            case ("min" | "max", [operand]):
                return operand
        logger.debug("No unit information for function %s", expr.callee)
        return UNDEFINED

    def _process_declared_call(
        self, expr: CallExpr, func_def: FuncDef, args: list[UnitValue]
    ) -> UnitValue:
        """Check arguments against declared input units; return the output unit."""
        for position, (arg, unit_text) in enumerate(
            zip(args, func_def.input_units), start=1
        ):
            if unit_text:
                self._add_constraint(
                    arg,
                    WellFormed(self._parse_unit(unit_text)),
                    ConstraintKind.ARGUMENT,
                    expr,
                    subject=func_def.name,
                    position=position,
                )
        if func_def.output_unit:
            return WellFormed(self._parse_unit(func_def.output_unit))
        return UNDEFINED

    def _process_conversion_expr(self, expr: CallExpr) -> UnitValue:
        """Resolve ``withUnit``, ``withoutUnit`` and ``inUnit``."""
        match expr.args:
            case [value_expr, StrExpr(unit_text)]:
                pass
            case _:
                raise TypeError(
                    f"'{expr.callee}' expects a value and a unit literal: '{expr}'"
                )
        value = self.analyse_expression(value_expr)
        unit = self._parse_unit(unit_text)
        if expr.callee == "withUnit":
            self._defer_check(value, CheckKind.MUST_BE_EMPTY, expr)
            return WellFormed(unit)
        self._defer_check(
            value, CheckKind.MUST_BE_CONVERTIBLE, expr, expr.callee, target=unit
        )
        return EMPTY if expr.callee == "withoutUnit" else WellFormed(unit)
