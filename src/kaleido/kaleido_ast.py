"""
Defines the abstract syntax tree (AST) for the Kaleido expression language.

Classes:
    NumberExpr, VariableExpr, BinaryExpr, CallExpr:
        The closed set of expression variants. `Expr` is their union.
    Prototype:
        A function's name and parameter names, independent of its body.
    FunctionDef:
        A prototype paired with a body expression. Bare top-level
        expressions are wrapped in an anonymous prototype.

All nodes are frozen: children are owned by exactly one parent and are
never shared or mutated after construction.

Helpers:
    to_dict(node): Serialize any node into plain dictionaries (ASTDict),
        suitable for JSON output or debugging.
    format_expr(expr): Render an expression in fully parenthesized infix form.

Example:
    FunctionDef(Prototype("add", ("x", "y")),
                BinaryExpr("+", VariableExpr("x"), VariableExpr("y")))
"""

from dataclasses import dataclass
from typing import Any, TypedDict, Union

ANONYMOUS_NAME = ""


class ASTDict(TypedDict, total=False):
    """
    Serialized form of a node, as produced by `to_dict`.

    Fields:
        kind (str): "number", "variable", "binary", "call", "prototype" or "function".
        value (Any): The number's value, variable name, operator, or callee.
        params (list[str]): Parameter names of a prototype.
        children (list[ASTDict]): Operands, call arguments, or prototype and body.
    """

    kind: str
    value: Any
    params: list[str]
    children: list["ASTDict"]


@dataclass(frozen=True)
class NumberExpr:
    value: float


@dataclass(frozen=True)
class VariableExpr:
    name: str


@dataclass(frozen=True)
class BinaryExpr:
    op: str
    lhs: "Expr"
    rhs: "Expr"


@dataclass(frozen=True)
class CallExpr:
    callee: str
    args: tuple["Expr", ...] = ()


Expr = Union[NumberExpr, VariableExpr, BinaryExpr, CallExpr]


@dataclass(frozen=True)
class Prototype:
    """
    Name and parameter list of a function.

    Parameter order is declaration order. Duplicate names are kept as written.
    """

    name: str
    params: tuple[str, ...] = ()

    @property
    def is_anonymous(self) -> bool:
        return self.name == ANONYMOUS_NAME and not self.params

    @classmethod
    def anonymous(cls) -> "Prototype":
        return cls(ANONYMOUS_NAME, ())


@dataclass(frozen=True)
class FunctionDef:
    proto: Prototype
    body: Expr

    @property
    def is_anonymous(self) -> bool:
        return self.proto.is_anonymous


Node = Union[NumberExpr, VariableExpr, BinaryExpr, CallExpr, Prototype, FunctionDef]


def to_dict(node: Node) -> ASTDict:
    """Converts a node and all its descendants into nested dictionaries.

    Raises:
        TypeError: If `node` is not a Kaleido AST node.
    """
    if isinstance(node, NumberExpr):
        return {"kind": "number", "value": node.value, "children": []}
    if isinstance(node, VariableExpr):
        return {"kind": "variable", "value": node.name, "children": []}
    if isinstance(node, BinaryExpr):
        return {
            "kind": "binary",
            "value": node.op,
            "children": [to_dict(node.lhs), to_dict(node.rhs)],
        }
    if isinstance(node, CallExpr):
        return {
            "kind": "call",
            "value": node.callee,
            "children": [to_dict(arg) for arg in node.args],
        }
    if isinstance(node, Prototype):
        return {
            "kind": "prototype",
            "value": node.name,
            "params": list(node.params),
            "children": [],
        }
    if isinstance(node, FunctionDef):
        return {
            "kind": "function",
            "value": node.proto.name,
            "children": [to_dict(node.proto), to_dict(node.body)],
        }
    raise TypeError(f"Not an AST node: {node!r}")


def _format_number(value: float) -> str:
    return str(int(value)) if value.is_integer() else repr(value)


def format_expr(expr: Expr) -> str:
    if isinstance(expr, NumberExpr):
        return _format_number(expr.value)
    if isinstance(expr, VariableExpr):
        return expr.name
    if isinstance(expr, BinaryExpr):
        return f"({format_expr(expr.lhs)} {expr.op} {format_expr(expr.rhs)})"
    if isinstance(expr, CallExpr):
        return f"{expr.callee}({', '.join(format_expr(a) for a in expr.args)})"
    raise TypeError(f"Not an expression: {expr!r}")


def format_node(node: Node) -> str:
    """Human-readable one-line rendering used by the REPL in verbose mode."""
    if isinstance(node, Prototype):
        return f"{node.name}({' '.join(node.params)})"
    if isinstance(node, FunctionDef):
        if node.is_anonymous:
            return format_expr(node.body)
        return f"def {format_node(node.proto)} {format_expr(node.body)}"
    return format_expr(node)
