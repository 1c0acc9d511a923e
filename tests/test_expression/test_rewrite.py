"""Tests for integer power rewriting."""

import operator

import numpy as np
import pytest

from pdeforge.expression.nodes import (
    CallableOperator,
    Expr,
    Literal,
    Symbol,
    SymbolicOperator,
    broadcast,
    call,
    collect_nodes,
    equation,
    index,
    tuple_,
)
from pdeforge.expression.parser import parse
from pdeforge.expression.rewrite import (
    PowerRewriter,
    find_integer_powers,
    is_integer_power,
    transform_power_ops,
)
from pdeforge.expression.types import Head


class TestPlainPower:
    """Test rewriting of plain power calls."""

    def test_exponent_zero(self, x):
        """x ** 0 becomes the literal 1."""
        assert transform_power_ops(call("**", x, 0)) == Literal(1)

    def test_exponent_one(self, x):
        """x ** 1 becomes x itself."""
        assert transform_power_ops(call("**", x, 1)) is x

    def test_exponent_three(self, x):
        """x ** 3 becomes x * x * x."""
        result = transform_power_ops(call("**", x, 3))

        assert result == call("*", x, x, x)
        assert result.head == Head.CALL

    def test_copies_share_base(self):
        """Every factor is the same rewritten base node."""
        base = call("+", "u", "v")
        result = transform_power_ops(call("**", base, 4))

        factors = result.args[1:]
        assert len(factors) == 4
        assert all(f is factors[0] for f in factors)

    def test_negative_exponent_unchanged(self, x):
        """Negative exponents are never rewritten."""
        expr = call("**", x, -1)
        assert transform_power_ops(expr) == expr

    def test_symbolic_exponent_unchanged(self, x, y):
        """Variable exponents are never rewritten."""
        expr = call("**", x, y)
        assert transform_power_ops(expr) == expr

    def test_float_exponent_unchanged(self, x):
        """Non-integer exponents are never rewritten, even 2.0."""
        assert transform_power_ops(call("**", x, 2.0)) == call("**", x, 2.0)
        assert transform_power_ops(call("**", x, 0.5)) == call("**", x, 0.5)

    def test_boolean_exponent_unchanged(self, x):
        """Booleans are not integer exponents."""
        expr = call("**", x, True)
        assert transform_power_ops(expr) == expr

    def test_numpy_integer_exponent(self, x):
        """numpy integer literals count as integers."""
        result = transform_power_ops(call("**", x, np.int64(2)))
        assert result == call("*", x, x)

    def test_raw_integer_argument(self, x):
        """Integers placed directly in Expr args are accepted."""
        expr = Expr(Head.CALL, (SymbolicOperator("**"), x, 2))
        assert transform_power_ops(expr) == call("*", x, x)

    def test_computed_exponent_unchanged(self, x):
        """x ** (1 + 1) keeps its power: the exponent is not a literal."""
        expr = call("**", x, call("+", 1, 1))
        assert transform_power_ops(expr) == expr

    def test_wrong_arity_unchanged(self, x):
        """Power calls without exactly two operands pass through."""
        expr = Expr(Head.CALL, (SymbolicOperator("**"), x, Literal(2), Literal(3)))
        assert transform_power_ops(expr) == expr


class TestBroadcastPower:
    """Test rewriting of elementwise power calls."""

    def test_exponent_zero(self, x):
        assert transform_power_ops(broadcast("**", x, 0)) == Literal(1)

    def test_exponent_one(self, x):
        assert transform_power_ops(broadcast("**", x, 1)) is x

    def test_exponent_two(self, x):
        """broadcast(**, (x, 2)) becomes broadcast(*, (x, x))."""
        result = transform_power_ops(broadcast("**", x, 2))

        assert result == broadcast("*", x, x)
        assert result.head == Head.BROADCAST
        assert result.args[1].head == Head.TUPLE

    def test_negative_exponent_unchanged(self, x):
        expr = broadcast("**", x, -2)
        assert transform_power_ops(expr) == expr

    def test_non_tuple_operands_unchanged(self, x):
        """The operands must be a tuple grouping."""
        expr = Expr(Head.BROADCAST, (SymbolicOperator("**"), call("f", x, 2)))
        assert transform_power_ops(expr) == expr

    def test_three_operands_unchanged(self, x):
        expr = broadcast("**", x, 2, 3)
        assert transform_power_ops(expr) == expr

    def test_shapes_not_cross_converted(self, x):
        """Broadcast powers stay broadcast, plain powers stay plain."""
        plain = transform_power_ops(call("**", x, 2))
        elementwise = transform_power_ops(broadcast("**", x, 2))

        assert plain.head == Head.CALL
        assert elementwise.head == Head.BROADCAST


class TestOperatorRepresentation:
    """Test that symbolic and callable operators are both matched and preserved."""

    def test_symbolic_stays_symbolic(self, x):
        result = transform_power_ops(call("**", x, 2))
        assert result.args[0] == SymbolicOperator("*")

    @pytest.mark.parametrize(
        "power, mul",
        [
            (operator.pow, operator.mul),
            (pow, operator.mul),
            (np.power, np.multiply),
        ],
    )
    def test_callable_stays_callable(self, x, power, mul):
        result = transform_power_ops(call(power, x, 2))

        assert result == call(mul, x, x)
        assert isinstance(result.args[0], CallableOperator)

    def test_callable_broadcast(self, x):
        result = transform_power_ops(broadcast(operator.pow, x, 3))
        assert result == broadcast(operator.mul, x, x, x)

    def test_other_callables_unchanged(self, x):
        expr = call(operator.add, x, 2)
        assert transform_power_ops(expr) == expr

    def test_function_named_pow_symbol_unchanged(self, x):
        """A plain Symbol is a function name, not an operator reference."""
        expr = call(Symbol("power"), x, 2)
        assert transform_power_ops(expr) == expr

    def test_mixed_representations(self, x, y):
        """Each power maps to the multiplication of its own kind."""
        expr = call("+", call("**", x, 2), call(operator.pow, y, 2))
        result = transform_power_ops(expr)

        assert result == call("+", call("*", x, x), call(operator.mul, y, y))


class TestNesting:
    """Test bottom-up rewriting of nested expressions."""

    def test_power_of_power(self, x):
        """(x ** 2) ** 3 expands both levels, inner first.

        The result has six factors of x, not nine: (x ** 2) ** 3 is x ** 6.
        Nine factors come from (x ** 3) ** 3, tested below.
        """
        result = transform_power_ops(call("**", call("**", x, 2), 3))
        inner = call("*", x, x)

        assert result == call("*", inner, inner, inner)
        leaves = [n for n in collect_nodes(result) if n == x]
        assert len(leaves) == 6

    def test_nine_factors_when_flattened(self, x):
        """(x ** 3) ** 3 expands to nine factors of x."""
        result = transform_power_ops(call("**", call("**", x, 3), 3))

        leaves = [n for n in collect_nodes(result) if n == x]
        assert len(leaves) == 9

    def test_power_inside_broadcast_tuple(self, x):
        expr = broadcast("**", call("**", x, 2), 2)
        result = transform_power_ops(expr)

        inner = call("*", x, x)
        assert result == broadcast("*", inner, inner)

    def test_power_inside_function(self, x):
        expr = call("d", call("**", "u", 3), x)
        result = transform_power_ops(expr)

        assert result == call("d", call("*", "u", "u", "u"), x)

    def test_power_in_exponent_of_negative_power(self, x):
        """Base is rewritten even when the outer power is kept."""
        expr = call("**", call("**", x, 2), -1)
        result = transform_power_ops(expr)

        assert result == call("**", call("*", x, x), -1)

    def test_power_in_index_and_equation(self):
        expr = equation(index(call("**", "u", 2), 0), call("**", "f", 1))
        result = transform_power_ops(expr)

        assert result == equation(index(call("*", "u", "u"), 0), Symbol("f"))

    def test_argument_order_preserved(self, x, y):
        expr = call("f", y, call("**", x, 2), Literal(3), x)
        result = transform_power_ops(expr)

        assert result == call("f", y, call("*", x, x), Literal(3), x)


class TestRewriterContract:
    """Test totality, purity and idempotence."""

    @pytest.mark.parametrize(
        "text",
        [
            "u + v",
            "sin(u) * cos(v)",
            "u ** v",
            "u ** -2",
            "u ** 0.5",
            "broadcast('+', (u, v))",
            "u[0] == f",
            "(u, v, w)",
        ],
    )
    def test_identity_without_integer_powers(self, text):
        expr = parse(text)
        assert transform_power_ops(expr) == expr

    @pytest.mark.parametrize("leaf", [Symbol("u"), Literal(3), 3, "u", None, [1, 2]])
    def test_leaves_returned_unchanged(self, leaf):
        assert transform_power_ops(leaf) is leaf

    def test_input_not_mutated(self, x):
        expr = call("+", call("**", x, 2), broadcast("**", x, 3))
        snapshot = expr.to_string()

        result = transform_power_ops(expr)

        assert expr.to_string() == snapshot
        assert result is not expr

    @pytest.mark.parametrize(
        "text",
        [
            "u ** 2",
            "(u ** 2) ** 3",
            "broadcast('**', (broadcast('**', (u, 2)), 2))",
            "d(u ** 3, x) + pow(u, 2) - broadcast(pow, (v, 4)) == f ** 0",
        ],
    )
    def test_idempotent(self, text):
        """Rewritten multiplication chains never match the power patterns."""
        once = transform_power_ops(parse(text))

        assert find_integer_powers(once) == []
        assert transform_power_ops(once) == once

    def test_rewriter_instance(self, x):
        rewriter = PowerRewriter()
        assert rewriter.rewrite(call("**", x, 2)) == call("*", x, x)


class TestFindIntegerPowers:
    """Test power detection."""

    def test_counts_nested_powers(self):
        expr = parse("(u ** 2) ** 3 + v ** y + broadcast('**', (w, 2))")
        powers = find_integer_powers(expr)

        assert len(powers) == 3
        assert all(is_integer_power(p) for p in powers)

    def test_ignores_non_matching(self, x, y):
        assert not is_integer_power(call("**", x, y))
        assert not is_integer_power(x)
        assert find_integer_powers(tuple_(x, y)) == []
