"""Decide whether GPU-specific expression transforms apply."""

from __future__ import annotations

from typing import Any
import logging

from pdeforge.device import Device, get_device

logger = logging.getLogger(__name__)


def should_apply_gpu_transform(params: Any, force: bool = False) -> bool:
    """Return True if GPU-specific transforms should be applied.

    Args:
        params: Initial solver parameters, or None if not yet known
        force: Explicit override (see RewriteSettings.force_power_rewrite)

    Returns:
        False without parameters; True when forced; otherwise whether the
        parameters live on a GPU-class device. Classification failures count
        as CPU.
    """
    if params is None:
        return False

    if force:
        return True

    try:
        return get_device(params) is Device.GPU
    except Exception as e:
        # If device detection fails, default to CPU mode (no transformation)
        logger.debug(f"Device detection failed, skipping GPU transforms: {e}")
        return False
