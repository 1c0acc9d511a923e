"""Expression tree nodes for loss equations.

Implements immutable AST nodes for residual expressions:
- Symbol: Identifiers (e.g., u, x, sin)
- Literal: Numeric constants (e.g., 2, 0.5)
- SymbolicOperator: Operator tokens (e.g., "**", "*")
- CallableOperator: Operator values (e.g., operator.pow, numpy.power)
- Expr: Compound nodes with a Head and ordered arguments

Nodes compare by structure and are never mutated; transforms build new trees.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterator
import numbers

from pdeforge.expression.types import (
    CALLABLE_POWER_TO_MUL,
    MUL_TOKEN,
    POWER_TOKEN,
    Head,
    is_operator_token,
)


@dataclass(frozen=True)
class Node(ABC):
    """Abstract base class for expression tree nodes."""

    @abstractmethod
    def to_string(self) -> str:
        """Convert node to string representation."""
        pass

    def __str__(self) -> str:
        return self.to_string()


@dataclass(frozen=True)
class Symbol(Node):
    """Identifier: a variable or function name."""

    name: str

    def to_string(self) -> str:
        return self.name


@dataclass(frozen=True, eq=False)
class Literal(Node):
    """Literal numeric value.

    Equality includes the value type so that 2 and 2.0 stay distinct
    exponents.
    """

    value: Any

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Literal):
            return NotImplemented
        return type(self.value) is type(other.value) and self.value == other.value

    def __hash__(self) -> int:
        return hash((type(self.value), self.value))

    def to_string(self) -> str:
        if type(self.value) in (int, float, complex, bool):
            text = repr(self.value)
        else:
            text = str(self.value)
        if isinstance(self.value, bool):
            return text
        if isinstance(self.value, numbers.Real) and self.value < 0:
            return f"({text})"
        return text


@dataclass(frozen=True)
class OperatorRef(Node, ABC):
    """Reference to an operator, either symbolic or callable."""

    @abstractmethod
    def is_power(self) -> bool:
        """Check if this references the power operator."""
        pass

    @abstractmethod
    def matching_mul(self) -> "OperatorRef":
        """Get the multiplication operator of the same representation."""
        pass


@dataclass(frozen=True)
class SymbolicOperator(OperatorRef):
    """Operator written as a token, e.g. "**"."""

    name: str

    def __post_init__(self) -> None:
        if not is_operator_token(self.name):
            raise ValueError(f"Unknown operator token: {self.name!r}")

    def is_power(self) -> bool:
        return self.name == POWER_TOKEN

    def matching_mul(self) -> "SymbolicOperator":
        return SymbolicOperator(MUL_TOKEN)

    def to_string(self) -> str:
        return f'"{self.name}"'


@dataclass(frozen=True)
class CallableOperator(OperatorRef):
    """Operator held as a callable value, e.g. operator.pow."""

    func: Callable

    def is_power(self) -> bool:
        try:
            return self.func in CALLABLE_POWER_TO_MUL
        except TypeError:
            # Unhashable callables are never power operators
            return False

    def matching_mul(self) -> "CallableOperator":
        return CallableOperator(CALLABLE_POWER_TO_MUL[self.func])

    def to_string(self) -> str:
        return getattr(self.func, "__name__", repr(self.func))


@dataclass(frozen=True)
class Expr(Node):
    """Compound node: a head and an ordered tuple of arguments.

    For CALL and BROADCAST the first argument is the operator or function.
    """

    head: Head
    args: tuple = ()

    def to_string(self) -> str:
        if self.head == Head.CALL:
            return _call_to_string(self.args)
        if self.head == Head.BROADCAST:
            parts = [_to_string(a) for a in self.args]
            return f"broadcast({', '.join(parts)})"
        if self.head == Head.TUPLE:
            parts = [_to_string(a) for a in self.args]
            if len(parts) == 1:
                return f"({parts[0]},)"
            return f"({', '.join(parts)})"
        if self.head == Head.INDEX:
            target, *indices = [_to_string(a) for a in self.args]
            return f"{target}[{', '.join(indices)}]"
        if self.head == Head.EQUATION:
            return " == ".join(_to_string(a) for a in self.args)
        raise ValueError(f"Unknown head: {self.head}")


def _to_string(value: Any) -> str:
    if isinstance(value, Node):
        return value.to_string()
    return repr(value)


def _call_to_string(args: tuple) -> str:
    if not args:
        return "()"
    op, *operands = args
    parts = [_to_string(a) for a in operands]
    if isinstance(op, SymbolicOperator):
        if len(parts) == 1 and op.name == "-":
            return f"(-{parts[0]})"
        if len(parts) >= 2:
            return "(" + f" {op.name} ".join(parts) + ")"
    return f"{_to_string(op)}({', '.join(parts)})"


# =============================================================================
# Constructors
# =============================================================================

def as_node(value: Any) -> Node:
    """Coerce a Python value into an expression node."""
    if isinstance(value, Node):
        return value
    if isinstance(value, str):
        return Symbol(value)
    if isinstance(value, numbers.Number):
        return Literal(value)
    raise TypeError(f"Cannot convert {type(value).__name__} to expression node")


def as_operator(op: Any) -> Node:
    """Coerce the operator slot of a call.

    Operator tokens become SymbolicOperator, other strings become function
    Symbols and callables become CallableOperator.
    """
    if isinstance(op, Node):
        return op
    if isinstance(op, str):
        return SymbolicOperator(op) if is_operator_token(op) else Symbol(op)
    if callable(op):
        return CallableOperator(op)
    raise TypeError(f"Cannot use {type(op).__name__} as an operator")


def call(op: Any, *args: Any) -> Expr:
    """Build a plain call: op(args...)."""
    return Expr(Head.CALL, (as_operator(op), *(as_node(a) for a in args)))


def tuple_(*items: Any) -> Expr:
    """Build a tuple grouping."""
    return Expr(Head.TUPLE, tuple(as_node(i) for i in items))


def broadcast(op: Any, *args: Any) -> Expr:
    """Build an elementwise call of op over a tuple of operands."""
    return Expr(Head.BROADCAST, (as_operator(op), tuple_(*args)))


def index(target: Any, *indices: Any) -> Expr:
    """Build a subscript: target[indices...]."""
    return Expr(Head.INDEX, (as_node(target), *(as_node(i) for i in indices)))


def equation(lhs: Any, rhs: Any) -> Expr:
    """Build an equation lhs == rhs."""
    return Expr(Head.EQUATION, (as_node(lhs), as_node(rhs)))


# =============================================================================
# Traversal
# =============================================================================

def iter_nodes(node: Any) -> Iterator[Any]:
    """Iterate over all nodes in a subtree (pre-order traversal)."""
    yield node
    if isinstance(node, Expr):
        for child in node.args:
            yield from iter_nodes(child)


def collect_nodes(node: Any) -> list[Any]:
    """Collect all nodes in a subtree (pre-order traversal)."""
    return list(iter_nodes(node))


def count_nodes(node: Any) -> int:
    """Count total nodes in a subtree."""
    if isinstance(node, Expr):
        return 1 + sum(count_nodes(c) for c in node.args)
    return 1


def get_depth(node: Any) -> int:
    """Get the depth of a subtree."""
    if isinstance(node, Expr) and node.args:
        return 1 + max(get_depth(c) for c in node.args)
    return 1


def collect_symbols(node: Any) -> frozenset[str]:
    """Collect free variable names, skipping called function names."""
    names: set[str] = set()
    _collect_symbols(node, names)
    return frozenset(names)


def _collect_symbols(node: Any, names: set[str]) -> None:
    if isinstance(node, Symbol):
        names.add(node.name)
    elif isinstance(node, Expr):
        args = node.args
        if node.head in (Head.CALL, Head.BROADCAST) and args:
            args = args[1:]
        for child in args:
            _collect_symbols(child, names)
