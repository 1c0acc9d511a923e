"""Parse Python-syntax text into expression trees.

Supported syntax:
    u ** 2, u * v, u - v       -> plain calls of symbolic operators
    -u                         -> call("-", u)
    sin(u), d(u, x)            -> plain calls of function symbols
    pow(u, 2), mul(u, v)       -> plain calls of callable operators
    broadcast("**", (u, 2))    -> elementwise call, symbolic operator
    broadcast(pow, (u, 2))     -> elementwise call, callable operator
    (u, v)                     -> tuple grouping
    u[0]                       -> index
    lhs == rhs                 -> equation
"""

import ast
from typing import Any

from pdeforge.expression.nodes import (
    CallableOperator,
    Expr,
    Literal,
    Node,
    Symbol,
    SymbolicOperator,
    equation,
    index,
)
from pdeforge.expression.types import CALLABLE_OPERATORS, Head


class ExpressionSyntaxError(ValueError):
    """Raised when text cannot be parsed into an expression."""

    pass


_BINOP_TOKENS: dict[type, str] = {
    ast.Add: "+",
    ast.Sub: "-",
    ast.Mult: "*",
    ast.Div: "/",
    ast.MatMult: "@",
    ast.Pow: "**",
}


def parse(text: str) -> Node:
    """Parse an expression or equation.

    Args:
        text: Python-syntax expression, e.g. "d(u ** 3, x) == f"

    Returns:
        Root node of the expression tree

    Raises:
        ExpressionSyntaxError: If the text is not a supported expression
    """
    try:
        tree = ast.parse(text.strip(), mode="eval")
    except SyntaxError as e:
        raise ExpressionSyntaxError(f"Invalid expression {text!r}: {e.msg}") from e
    return _convert(tree.body)


def _convert(node: ast.AST) -> Node:
    """Recursively convert a Python AST node."""
    if isinstance(node, ast.Name):
        return Symbol(node.id)

    if isinstance(node, ast.Constant):
        if isinstance(node.value, (bool, int, float, complex)):
            return Literal(node.value)
        raise ExpressionSyntaxError(f"Unsupported constant: {node.value!r}")

    if isinstance(node, ast.UnaryOp):
        operand = _convert(node.operand)
        if isinstance(node.op, ast.UAdd):
            return operand
        if isinstance(node.op, ast.USub):
            # Fold negative numbers into the literal
            if isinstance(operand, Literal) and not isinstance(operand.value, bool):
                return Literal(-operand.value)
            return Expr(Head.CALL, (SymbolicOperator("-"), operand))
        raise ExpressionSyntaxError(f"Unsupported unary operator: {type(node.op).__name__}")

    if isinstance(node, ast.BinOp):
        token = _BINOP_TOKENS.get(type(node.op))
        if token is None:
            raise ExpressionSyntaxError(f"Unsupported operator: {type(node.op).__name__}")
        return Expr(
            Head.CALL,
            (SymbolicOperator(token), _convert(node.left), _convert(node.right)),
        )

    if isinstance(node, ast.Tuple):
        return Expr(Head.TUPLE, tuple(_convert(e) for e in node.elts))

    if isinstance(node, ast.Subscript):
        indices = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
        return index(_convert(node.value), *(_convert(i) for i in indices))

    if isinstance(node, ast.Compare):
        if len(node.ops) != 1 or not isinstance(node.ops[0], ast.Eq):
            raise ExpressionSyntaxError("Only single 'lhs == rhs' comparisons are supported")
        return equation(_convert(node.left), _convert(node.comparators[0]))

    if isinstance(node, ast.Call):
        return _convert_call(node)

    raise ExpressionSyntaxError(f"Unsupported syntax: {type(node).__name__}")


def _convert_call(node: ast.Call) -> Expr:
    if node.keywords:
        raise ExpressionSyntaxError("Keyword arguments are not supported")
    if not isinstance(node.func, ast.Name):
        raise ExpressionSyntaxError("Only named functions can be called")

    name = node.func.id
    if name == "broadcast":
        if len(node.args) != 2:
            raise ExpressionSyntaxError("broadcast() takes an operator and a tuple")
        op = _convert_operator(node.args[0])
        return Expr(Head.BROADCAST, (op, _convert(node.args[1])))

    args = tuple(_convert(a) for a in node.args)
    if name in CALLABLE_OPERATORS:
        return Expr(Head.CALL, (CallableOperator(CALLABLE_OPERATORS[name]), *args))
    return Expr(Head.CALL, (Symbol(name), *args))


def _convert_operator(node: ast.AST) -> Any:
    """Convert the operator argument of broadcast()."""
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        try:
            return SymbolicOperator(node.value)
        except ValueError as e:
            raise ExpressionSyntaxError(str(e)) from e
    if isinstance(node, ast.Name):
        if node.id in CALLABLE_OPERATORS:
            return CallableOperator(CALLABLE_OPERATORS[node.id])
        return Symbol(node.id)
    raise ExpressionSyntaxError("broadcast() operator must be a token string or a name")
