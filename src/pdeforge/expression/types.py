"""Node kinds and operator tables for loss expressions.

Operators appear in two representations:
- symbolic tokens, e.g. "**" and "*", as written in source text
- callable values, e.g. operator.pow and numpy.power, as built in code

Power operators of either kind map to the multiplication operator of the
same kind.
"""

from enum import Enum
import operator

import numpy as np


class Head(Enum):
    """Kinds of compound expression nodes."""

    CALL = "call"            # f(a, b)
    BROADCAST = "broadcast"  # elementwise f over a tuple of operands
    TUPLE = "tuple"          # (a, b)
    INDEX = "index"          # u[i]
    EQUATION = "equation"    # lhs == rhs


POWER_TOKEN = "**"
MUL_TOKEN = "*"

OPERATOR_TOKENS: frozenset[str] = frozenset({"+", "-", "*", "/", "@", "**"})

# Callable power operators -> multiplication of the same family
CALLABLE_POWER_TO_MUL: dict = {
    operator.pow: operator.mul,
    pow: operator.mul,
    np.power: np.multiply,
}

# Names the parser resolves to callable operators
CALLABLE_OPERATORS: dict[str, object] = {
    "pow": pow,
    "mul": operator.mul,
    "add": operator.add,
    "sub": operator.sub,
    "truediv": operator.truediv,
}


def is_operator_token(name: str) -> bool:
    """Check if a string is a symbolic operator token."""
    return name in OPERATOR_TOKENS
