"""Example: Building a GPU-safe loss for a nonlinear ODE.

This example demonstrates:
- Parsing residual equations
- Device-gated rewriting of integer powers
- Evaluating the loss on collocation points
"""

import numpy as np

from pdeforge import LossBuilder, RewriteSettings, parse, transform_power_ops
from pdeforge.expression.rewrite import find_integer_powers


def main():
    """Run loss construction example."""
    print("=" * 80)
    print("pdeforge Loss Construction")
    print("=" * 80)

    # =========================================================================
    # Step 1: Define Residual Equations
    # =========================================================================
    print("\n[Step 1] Parsing equations...")

    # u' = -u ** 3 and a boundary-energy term
    equations = [
        "d(u, x) + u ** 3 == 0",
        "broadcast('**', (u, 2)) - ub ** 2 == 0",
    ]
    for text in equations:
        node = parse(text)
        print(f"  - {node}  ({len(find_integer_powers(node))} integer powers)")

    # =========================================================================
    # Step 2: Inspect the Rewrite
    # =========================================================================
    print("\n[Step 2] Rewriting integer powers...")

    for text in equations:
        print(f"  - {transform_power_ops(parse(text))}")

    # =========================================================================
    # Step 3: Build Losses
    # =========================================================================
    print("\n[Step 3] Building losses...")

    xs = np.linspace(0.0, 2.0, 201)
    bindings = {
        "x": xs,
        "u": 1.0 / np.sqrt(1.0 + 2.0 * xs),  # exact solution
        "ub": np.ones_like(xs),
    }
    params = {"weight": np.zeros((8, 1)), "bias": np.zeros(8)}

    cpu_loss = LossBuilder(RewriteSettings()).build(equations, params)
    forced_loss = LossBuilder(RewriteSettings(force_power_rewrite=True)).build(equations, params)

    print(f"  CPU parameters:    rewritten={cpu_loss.rewritten}, loss={cpu_loss(bindings):.6e}")
    print(f"  Forced rewrite:    rewritten={forced_loss.rewritten}, loss={forced_loss(bindings):.6e}")


if __name__ == "__main__":
    main()
