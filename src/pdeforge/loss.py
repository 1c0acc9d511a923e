"""Loss function construction from residual equations.

Each equation (``lhs == rhs`` or a bare residual expression) is parsed,
optionally rewritten for GPU safety, and compiled. The loss is the sum over
equations of the mean squared residual.

Integer powers are rewritten to multiplication chains only when the gating
check says the parameters live on a GPU-class device (or the override is
set); otherwise the equations are used exactly as given.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union
import logging

import numpy as np

from pdeforge.config import RewriteSettings
from pdeforge.expression.compiler import (
    CompiledExpression,
    ExpressionCompiler,
    get_compiler,
)
from pdeforge.expression.nodes import Node
from pdeforge.expression.parser import parse
from pdeforge.expression.rewrite import find_integer_powers, transform_power_ops
from pdeforge.gating import should_apply_gpu_transform

logger = logging.getLogger(__name__)

EquationLike = Union[str, Node]


@dataclass
class PreparedEquations:
    """Equations ready for compilation."""

    equations: list[Node]
    rewritten: bool = False  # Whether integer powers were expanded
    powers_expanded: int = 0


@dataclass
class CompiledLoss:
    """A loss function over a set of residual equations.

    Attributes:
        equations: Equations as compiled (after any rewrite)
        compiled: One compiled expression per equation
        rewritten: Whether integer powers were expanded
    """

    equations: list[Node]
    compiled: list[CompiledExpression]
    rewritten: bool = False
    required_symbols: frozenset[str] = field(default_factory=frozenset)

    def residuals(self, bindings: Mapping[str, Any]) -> list[np.ndarray]:
        """Evaluate every equation residual."""
        return [np.asarray(c(bindings)) for c in self.compiled]

    def equation_losses(self, bindings: Mapping[str, Any]) -> list[float]:
        """Mean squared residual per equation."""
        return [float(np.mean(np.square(r))) for r in self.residuals(bindings)]

    def __call__(self, bindings: Mapping[str, Any]) -> float:
        """Evaluate the total loss."""
        return float(sum(self.equation_losses(bindings)))

    def to_dict(self, bindings: Mapping[str, Any]) -> dict:
        """Convert an evaluation to a dictionary for serialization."""
        losses = self.equation_losses(bindings)
        return {
            "loss": float(sum(losses)),
            "rewritten": self.rewritten,
            "equations": [
                {"equation": eq.to_string(), "loss": value}
                for eq, value in zip(self.equations, losses)
            ],
        }


class LossBuilder:
    """Builds loss functions from equations.

    Example:
        >>> builder = LossBuilder(RewriteSettings(force_power_rewrite=True))
        >>> loss = builder.build(["u ** 2 == f"], params=weights)
        >>> loss({"u": u, "f": f})
    """

    def __init__(
        self,
        settings: RewriteSettings | None = None,
        compiler: ExpressionCompiler | None = None,
    ) -> None:
        """
        Initialize the builder.

        Args:
            settings: Rewrite settings. Defaults to RewriteSettings.from_env()
            compiler: Expression compiler. Defaults to the shared compiler
        """
        self.settings = settings if settings is not None else RewriteSettings.from_env()
        self.compiler = compiler if compiler is not None else get_compiler()

    def prepare(
        self,
        equations: EquationLike | Sequence[EquationLike],
        params: Any = None,
    ) -> PreparedEquations:
        """
        Parse equations and rewrite integer powers if gating allows it.

        Args:
            equations: Equation text or nodes
            params: Initial solver parameters used for device detection

        Returns:
            PreparedEquations
        """
        nodes = [parse(eq) if isinstance(eq, str) else eq for eq in _as_list(equations)]

        if not should_apply_gpu_transform(params, self.settings.force_power_rewrite):
            return PreparedEquations(equations=nodes)

        n_powers = sum(len(find_integer_powers(eq)) for eq in nodes)
        rewritten = [transform_power_ops(eq) for eq in nodes]
        logger.info(f"Rewrote {n_powers} integer powers in {len(nodes)} equations")

        return PreparedEquations(
            equations=rewritten,
            rewritten=True,
            powers_expanded=n_powers,
        )

    def build(
        self,
        equations: EquationLike | Sequence[EquationLike],
        params: Any = None,
    ) -> CompiledLoss:
        """
        Build a compiled loss function.

        Args:
            equations: Equation text or nodes
            params: Initial solver parameters used for device detection

        Returns:
            CompiledLoss ready for evaluation
        """
        prepared = self.prepare(equations, params)
        compiled = [self.compiler.compile(eq) for eq in prepared.equations]

        required: frozenset[str] = frozenset()
        for c in compiled:
            required |= c.required_symbols

        return CompiledLoss(
            equations=prepared.equations,
            compiled=compiled,
            rewritten=prepared.rewritten,
            required_symbols=required,
        )


def _as_list(equations: EquationLike | Sequence[EquationLike]) -> list[EquationLike]:
    if isinstance(equations, (str, Node)):
        return [equations]
    return list(equations)
