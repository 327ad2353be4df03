"""Nodes of a flattened model, the input of unit inference.

The flattening and evaluation front end produces these: every compile-time
evaluable parameter is already reduced to a literal, and every condition the
unit rules depend on carries its evaluated truth value (or ``None`` when it
could not be evaluated).
"""

from dataclasses import dataclass, field
from enum import StrEnum
from fractions import Fraction


@dataclass(frozen=True)
class Condition:
    """A Boolean condition guarding part of a model.

    Attributes:
        description: Source text of the condition.
        value: The evaluated truth value, ``None`` if it was not evaluated.
    """

    description: str
    value: bool | None = None

    def negated(self) -> "Condition":
        """Return the complementary condition."""
        return Condition(
            f"not ({self.description})",
            None if self.value is None else not self.value,
        )

    def __str__(self) -> str:
        return self.description


@dataclass
class Node:
    """Base class for all model nodes."""

    line: int = field(default=-1, kw_only=True)


class Expression(Node):
    """Base class for expressions."""


def _wrap(expr: Expression) -> str:
    if isinstance(expr, OpExpr | ComparisonExpr | ConditionalExpr):
        return f"({expr})"
    return str(expr)


@dataclass
class LiteralExpr(Expression):
    """A numeric or Boolean literal."""

    value: int | float | Fraction | bool

    def __str__(self) -> str:
        if isinstance(self.value, bool):
            return str(self.value).lower()
        return str(self.value)


@dataclass
class StrExpr(Expression):
    """A string literal, e.g. the unit argument of ``withUnit``."""

    value: str

    def __str__(self) -> str:
        return f'"{self.value}"'


@dataclass
class NameExpr(Expression):
    """A reference to a variable by its flattened name."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass
class UnaryExpr(Expression):
    """A unary operation: ``-``, ``+`` or ``not``."""

    op: str
    expr: Expression

    def __str__(self) -> str:
        separator = " " if self.op == "not" else ""
        return f"{self.op}{separator}{_wrap(self.expr)}"


@dataclass
class OpExpr(Expression):
    """A binary arithmetic or logical operation.

    ``op`` is one of ``+ - * / ^``, their element-wise forms ``.+ .- .* ./ .^``,
    ``and`` or ``or``.
    """

    op: str
    left: Expression
    right: Expression

    def __str__(self) -> str:
        return f"{_wrap(self.left)} {self.op} {_wrap(self.right)}"


@dataclass
class ComparisonExpr(Expression):
    """A relational operation: ``== <> < <= > >=``."""

    op: str
    left: Expression
    right: Expression

    def __str__(self) -> str:
        return f"{_wrap(self.left)} {self.op} {_wrap(self.right)}"


@dataclass
class CallExpr(Expression):
    """A call of a built-in or declared function."""

    callee: str
    args: list[Expression] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.callee}({', '.join(str(arg) for arg in self.args)})"


@dataclass
class ConditionalExpr(Expression):
    """An ``if condition then if_expr else else_expr`` expression.

    Attributes:
        condition_value: The evaluated condition, ``None`` if not evaluated.
    """

    condition: Expression
    if_expr: Expression
    else_expr: Expression
    condition_value: bool | None = None

    def __str__(self) -> str:
        return f"if {self.condition} then {self.if_expr} else {self.else_expr}"


class Variability(StrEnum):
    """Component variability of a variable."""

    CONSTANT = "constant"
    PARAMETER = "parameter"
    DISCRETE = "discrete"
    CONTINUOUS = "continuous"


@dataclass
class Var(Node):
    """A flattened variable declaration.

    Attributes:
        name: Flattened variable name, e.g. ``body.frame.r``.
        unit: The declared ``unit`` attribute, ``None`` when not given.
        variability: Component variability of the variable.
        binding: Binding expression of the declaration, if any.
    """

    name: str
    unit: str | None = None
    variability: Variability = Variability.CONTINUOUS
    binding: Expression | None = None

    def __str__(self) -> str:
        text = f"{self.variability} {self.name}"
        if self.unit is not None:
            text += f'(unit="{self.unit}")'
        if self.binding is not None:
            text += f" = {self.binding}"
        return text


class EquationKind(StrEnum):
    """The origin of an equation."""

    EQUALITY = "equality"
    CONNECT = "connect"


@dataclass
class Equation(Node):
    """A flattened equation ``lhs = rhs``.

    Attributes:
        conditions: Conditions under which the equation is part of the model
            (e.g. the branches of enclosing if-equations).
    """

    lhs: Expression
    rhs: Expression
    kind: EquationKind = EquationKind.EQUALITY
    conditions: tuple[Condition, ...] = ()

    def __str__(self) -> str:
        if self.kind is EquationKind.CONNECT:
            return f"connect({self.lhs}, {self.rhs})"
        return f"{self.lhs} = {self.rhs}"


@dataclass
class FuncDef(Node):
    """Declared units of a function's inputs and output."""

    name: str
    input_units: tuple[str | None, ...] = ()
    output_unit: str | None = None


@dataclass
class FlatModel(Node):
    """A flattened model: variables, equations and the functions they call."""

    name: str
    variables: list[Var] = field(default_factory=list)
    equations: list[Equation] = field(default_factory=list)
    functions: dict[str, FuncDef] = field(default_factory=dict)
