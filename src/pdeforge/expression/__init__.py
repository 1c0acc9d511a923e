"""Expression tree representation for loss equations."""

from pdeforge.expression.types import Head
from pdeforge.expression.nodes import (
    Node,
    Symbol,
    Literal,
    OperatorRef,
    SymbolicOperator,
    CallableOperator,
    Expr,
    call,
    broadcast,
    tuple_,
    index,
    equation,
)
from pdeforge.expression.rewrite import (
    PowerRewriter,
    transform_power_ops,
    find_integer_powers,
)
from pdeforge.expression.parser import parse, ExpressionSyntaxError
from pdeforge.expression.compiler import ExpressionCompiler, CompiledExpression

__all__ = [
    "Head",
    "Node",
    "Symbol",
    "Literal",
    "OperatorRef",
    "SymbolicOperator",
    "CallableOperator",
    "Expr",
    "call",
    "broadcast",
    "tuple_",
    "index",
    "equation",
    "PowerRewriter",
    "transform_power_ops",
    "find_integer_powers",
    "parse",
    "ExpressionSyntaxError",
    "ExpressionCompiler",
    "CompiledExpression",
]
