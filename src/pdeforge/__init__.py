"""
pdeforge: Loss construction for physics-informed numerical solvers.

Residual equations are parsed into immutable expression trees, rewritten for
numerical safety on GPU-class devices, and compiled to numpy callables:
- Integer powers become multiplication chains (finite gradients at zero)
- Rewriting is gated on the device of the solver parameters
"""

__version__ = "0.1.0"

from pdeforge.config import RewriteSettings
from pdeforge.device import Device, get_device
from pdeforge.expression.parser import parse
from pdeforge.expression.rewrite import PowerRewriter, transform_power_ops
from pdeforge.gating import should_apply_gpu_transform
from pdeforge.loss import CompiledLoss, LossBuilder

__all__ = [
    "__version__",
    "RewriteSettings",
    "Device",
    "get_device",
    "parse",
    "PowerRewriter",
    "transform_power_ops",
    "should_apply_gpu_transform",
    "CompiledLoss",
    "LossBuilder",
]
