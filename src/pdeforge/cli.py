"""
Command-line interface for pdeforge.

Provides commands for:
- Rewriting integer powers in an expression
- Evaluating a loss over residual equations
"""

import json
import logging
import sys
from pathlib import Path

import click
import numpy as np

from pdeforge import __version__

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("pdeforge")


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
def main(verbose: bool) -> None:
    """pdeforge - Loss construction for physics-informed solvers."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@main.command()
@click.argument("expression")
@click.option("--list", "list_powers", is_flag=True, help="List the integer powers found")
def rewrite(expression: str, list_powers: bool) -> None:
    """Rewrite integer powers in EXPRESSION to multiplication chains."""
    from pdeforge.expression.parser import ExpressionSyntaxError, parse
    from pdeforge.expression.rewrite import find_integer_powers, transform_power_ops

    try:
        node = parse(expression)
    except ExpressionSyntaxError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if list_powers:
        powers = find_integer_powers(node)
        click.echo(f"Found {len(powers)} integer powers:")
        for power in powers:
            click.echo(f"  - {power.to_string()}")

    click.echo(transform_power_ops(node).to_string())


@main.command()
@click.argument("equations", nargs=-1, required=True)
@click.option(
    "--bind",
    "-b",
    "binds",
    multiple=True,
    help="Variable values as name=v1,v2,... (repeatable)",
)
@click.option(
    "--gpu-rewrite/--no-gpu-rewrite",
    default=None,
    help="Force power rewriting. Default: PDEFORGE_GPU_POWER_REWRITE",
)
@click.option("--output", "-o", default=None, help="Output file for results")
def loss(equations: tuple[str, ...], binds: tuple[str, ...], gpu_rewrite: bool | None, output: str) -> None:
    """Evaluate the mean squared residual loss of EQUATIONS."""
    from pdeforge.config import RewriteSettings
    from pdeforge.expression.parser import ExpressionSyntaxError
    from pdeforge.loss import LossBuilder

    try:
        bindings = dict(_parse_binding(b) for b in binds)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    settings = RewriteSettings.from_env()
    if gpu_rewrite is not None:
        settings = RewriteSettings(force_power_rewrite=gpu_rewrite)

    builder = LossBuilder(settings=settings)
    try:
        compiled = builder.build(list(equations), params=bindings or None)
        result = compiled.to_dict(bindings)
    except (ExpressionSyntaxError, ValueError, TypeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    # Display results
    click.echo(f"Power rewrite: {'enabled' if result['rewritten'] else 'disabled'}")
    for entry in result["equations"]:
        click.echo(f"  {entry['equation']}: {entry['loss']:.6g}")
    click.echo(f"Loss: {result['loss']:.6g}")

    # Save if output specified
    if output:
        output_path = Path(output)
        output_path.write_text(json.dumps(result, indent=2))
        click.echo(f"\nResults saved to {output}")


def _parse_binding(text: str) -> tuple[str, np.ndarray]:
    """Parse "name=v1,v2,..." into a name and a float array."""
    name, sep, values = text.partition("=")
    if not sep or not name.strip():
        raise ValueError(f"Invalid binding {text!r}, expected name=v1,v2,...")
    try:
        array = np.array([float(v) for v in values.split(",") if v.strip()])
    except ValueError as e:
        raise ValueError(f"Invalid values for {name.strip()!r}: {values}") from e
    return name.strip(), array


if __name__ == "__main__":
    main()
