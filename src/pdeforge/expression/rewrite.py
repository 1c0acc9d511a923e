"""Rewrite integer powers in loss expressions to multiplication chains.

E.g., ``u ** 2`` becomes ``u * u`` and ``broadcast("**", (u, 3))`` becomes
``broadcast("*", (u, u, u))``.

GPU pow kernels produce NaN gradients when the base is near zero, which
breaks training for residuals like ``u ** 2`` and ``d(u ** 3, x)``. Explicit
multiplication has a finite derivative everywhere.

Only non-negative integer literal exponents are expanded. Negative,
non-integer and symbolic exponents are left unchanged.
"""

from __future__ import annotations

from typing import Any
import numbers

from pdeforge.expression.nodes import Expr, Literal, OperatorRef
from pdeforge.expression.types import Head


def _literal_exponent(node: Any) -> int | None:
    """Get the exponent if node is a non-negative integer literal."""
    value = node.value if isinstance(node, Literal) else node
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        return None
    if value < 0:
        return None
    return int(value)


def _is_power_op(node: Any) -> bool:
    return isinstance(node, OperatorRef) and node.is_power()


def _match_broadcast_power(ex: Expr) -> tuple[OperatorRef, Any, int] | None:
    """Match broadcast(pow, (base, n))."""
    if ex.head != Head.BROADCAST or len(ex.args) != 2:
        return None
    op, operands = ex.args
    if not _is_power_op(op):
        return None
    if not isinstance(operands, Expr) or operands.head != Head.TUPLE:
        return None
    if len(operands.args) != 2:
        return None
    n = _literal_exponent(operands.args[1])
    if n is None:
        return None
    return op, operands.args[0], n


def _match_call_power(ex: Expr) -> tuple[OperatorRef, Any, int] | None:
    """Match call(pow, base, n)."""
    if ex.head != Head.CALL or len(ex.args) != 3:
        return None
    op, base, exponent = ex.args
    if not _is_power_op(op):
        return None
    n = _literal_exponent(exponent)
    if n is None:
        return None
    return op, base, n


def _expand_power_broadcast(mul: OperatorRef, base: Any, n: int) -> Any:
    """Transform broadcast(pow, (base, n)) to broadcast(mul, (base, ..., base))."""
    if n == 0:
        return Literal(1)
    if n == 1:
        return base
    return Expr(Head.BROADCAST, (mul, Expr(Head.TUPLE, (base,) * n)))


def _expand_power_call(mul: OperatorRef, base: Any, n: int) -> Any:
    """Transform call(pow, base, n) to call(mul, base, ..., base)."""
    if n == 0:
        return Literal(1)
    if n == 1:
        return base
    return Expr(Head.CALL, (mul, *((base,) * n)))


class PowerRewriter:
    """Rewrites integer power nodes bottom-up.

    Children are rewritten before their parent is matched, so nested powers
    (a power inside the base of another, or inside a broadcast tuple) are
    normalized first. Every copy of an expanded base is the same already
    rewritten node.

    Call shapes are preserved: a broadcast power expands to a broadcast
    multiplication and a plain power to a plain call. The multiplication
    operator keeps the representation of the matched power operator.
    """

    def rewrite(self, node: Any) -> Any:
        """Return a new tree with every integer power expanded.

        Never raises: anything that is not an Expr is returned unchanged.
        """
        if not isinstance(node, Expr):
            return node

        # Post-order traversal: recurse first, then check patterns
        ex = Expr(node.head, tuple(self.rewrite(arg) for arg in node.args))

        matched = _match_broadcast_power(ex)
        if matched is not None:
            op, base, n = matched
            return _expand_power_broadcast(op.matching_mul(), base, n)

        matched = _match_call_power(ex)
        if matched is not None:
            op, base, n = matched
            return _expand_power_call(op.matching_mul(), base, n)

        return ex


def is_integer_power(node: Any) -> bool:
    """Check if node is a power the rewriter would expand."""
    if not isinstance(node, Expr):
        return False
    return (
        _match_broadcast_power(node) is not None
        or _match_call_power(node) is not None
    )


def find_integer_powers(node: Any) -> list[Expr]:
    """Collect expandable power nodes in a subtree (pre-order traversal)."""
    found = []
    if is_integer_power(node):
        found.append(node)
    if isinstance(node, Expr):
        for child in node.args:
            found.extend(find_integer_powers(child))
    return found


_REWRITER = PowerRewriter()


def transform_power_ops(expr: Any) -> Any:
    """Rewrite integer powers in a loss expression to multiplication chains."""
    return _REWRITER.rewrite(expr)
