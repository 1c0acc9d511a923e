"""Compiler for expression trees to vectorized numpy operations.

Converts expression trees to callables evaluated against variable bindings
(name -> numpy array or scalar). Plain calls and broadcast calls both run
through numpy, so integer powers and their multiplication rewrites produce
the same values.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
import inspect
from typing import Any, Callable, Mapping

import numpy as np

from pdeforge.expression.nodes import (
    CallableOperator,
    Expr,
    Literal,
    Node,
    Symbol,
    SymbolicOperator,
    collect_symbols,
)
from pdeforge.expression.types import Head


Bindings = Mapping[str, Any]


# =============================================================================
# CompiledExpression dataclass
# =============================================================================

@dataclass
class CompiledExpression:
    """A compiled expression ready for evaluation.

    Attributes:
        expression: Source expression tree
        evaluate: Function that evaluates the expression on bindings
        required_symbols: Variable names needed in the bindings
    """

    expression: Node
    evaluate: Callable[[Bindings], Any]
    required_symbols: frozenset[str]

    def __call__(self, bindings: Bindings) -> Any:
        """Evaluate the expression on bindings."""
        return self.evaluate(bindings)


# =============================================================================
# ExpressionCompiler class
# =============================================================================

class ExpressionCompiler:
    """Compiles expression trees to executable numpy code.

    Symbolic operators and function names resolve through registries;
    callable operators are invoked directly. Operators given more than two
    operands (multiplication chains from power rewriting) are reduced left
    to right.
    """

    # Operator implementations
    OPERATORS: dict[str, Callable[..., Any]] = {}
    FUNCTIONS: dict[str, Callable[..., Any]] = {}

    def __init__(self) -> None:
        self._register_operators()

    def _register_operators(self) -> None:
        """Register all operator and function implementations."""
        self.OPERATORS = {
            "+": np.add,
            "-": np.subtract,
            "*": np.multiply,
            "/": np.divide,
            "@": np.matmul,
            "**": np.power,
        }

        self.FUNCTIONS = {
            # Elementwise
            "sin": np.sin,
            "cos": np.cos,
            "tan": np.tan,
            "tanh": np.tanh,
            "exp": np.exp,
            "log": np.log,
            "sqrt": np.sqrt,
            "abs": np.abs,

            # Finite-difference derivative along the first axis: d(u, x)
            "d": lambda u, x: np.gradient(u, x),
        }

    def register_function(self, name: str, func: Callable[..., Any]) -> None:
        """Register a custom function callable by name in expressions."""
        self.FUNCTIONS[name] = func

    def compile(self, expression: Node) -> CompiledExpression:
        """Compile an expression tree to executable code.

        Args:
            expression: The expression tree to compile

        Returns:
            CompiledExpression ready for evaluation
        """
        required_symbols = collect_symbols(expression)

        def evaluate(bindings: Bindings) -> Any:
            missing = required_symbols - set(bindings)
            if missing:
                raise ValueError(f"Missing variables: {sorted(missing)}")

            values = {name: np.asarray(bindings[name]) for name in required_symbols}
            return self._evaluate_node(expression, values)

        return CompiledExpression(
            expression=expression,
            evaluate=evaluate,
            required_symbols=required_symbols,
        )

    def _evaluate_node(self, node: Any, values: dict[str, Any]) -> Any:
        """Recursively evaluate a node."""
        if isinstance(node, Symbol):
            return values[node.name]

        if isinstance(node, Literal):
            return node.value

        if isinstance(node, Expr):
            if node.head == Head.CALL:
                op, *operands = node.args
                args = [self._evaluate_node(a, values) for a in operands]
                func = self._resolve(op)
                if isinstance(op, Symbol):
                    _check_arity(op.name, func, len(args))
                return self._apply(func, args)

            if node.head == Head.BROADCAST:
                op, operands = node.args
                args = self._evaluate_node(operands, values)
                if not isinstance(args, tuple):
                    args = (args,)
                func = self._resolve(op)
                if isinstance(op, Symbol):
                    _check_arity(op.name, func, len(args))
                if not isinstance(func, np.ufunc):
                    func = np.vectorize(func)
                return self._apply(func, list(args))

            if node.head == Head.TUPLE:
                return tuple(self._evaluate_node(a, values) for a in node.args)

            if node.head == Head.INDEX:
                target, *indices = [self._evaluate_node(a, values) for a in node.args]
                key = tuple(int(i) for i in indices)
                return target[key if len(key) > 1 else key[0]]

            if node.head == Head.EQUATION:
                lhs, rhs = (self._evaluate_node(a, values) for a in node.args)
                return np.subtract(lhs, rhs)

        raise TypeError(f"Unknown node type: {type(node)}")

    def _resolve(self, op: Any) -> Callable[..., Any]:
        """Get the implementation of an operator or function node."""
        if isinstance(op, SymbolicOperator):
            return self.OPERATORS[op.name]
        if isinstance(op, CallableOperator):
            return op.func
        if isinstance(op, Symbol):
            func = self.FUNCTIONS.get(op.name)
            if func is None:
                raise ValueError(f"Unknown function: {op.name}")
            return func
        raise TypeError(f"Cannot call node: {op!r}")

    @staticmethod
    def _apply(func: Callable[..., Any], args: list[Any]) -> Any:
        """Apply func, reducing chains longer than two operands."""
        if func is np.subtract and len(args) == 1:
            return np.negative(args[0])
        if len(args) > 2:
            return reduce(func, args)
        return func(*args)


def _check_arity(name: str, func: Callable[..., Any], n_args: int) -> None:
    """Raise ValueError if a registered function cannot take n_args operands.

    Ufuncs read extra positional arguments as output arrays, so a wrong
    count would write into the caller's bindings.
    """
    if isinstance(func, np.ufunc):
        if n_args != func.nin:
            raise ValueError(
                f"Wrong number of arguments for {name}: expected {func.nin}, got {n_args}"
            )
        return

    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins without introspectable signatures
        return
    try:
        signature.bind(*range(n_args))
    except TypeError as e:
        raise ValueError(f"Wrong number of arguments for {name}: {e}") from e


# =============================================================================
# Compiler singleton - avoids re-initialization overhead
# =============================================================================

_COMPILER: ExpressionCompiler | None = None


def get_compiler() -> ExpressionCompiler:
    """Get the singleton compiler instance."""
    global _COMPILER
    if _COMPILER is None:
        _COMPILER = ExpressionCompiler()
    return _COMPILER


def compile_expression(expression: Node) -> CompiledExpression:
    """Convenience function to compile an expression using singleton compiler."""
    return get_compiler().compile(expression)


def evaluate_expression(expression: Node, bindings: Bindings) -> Any:
    """Convenience function to evaluate an expression on bindings."""
    compiled = compile_expression(expression)
    return compiled(bindings)
