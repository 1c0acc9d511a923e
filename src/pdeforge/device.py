"""Device classification for solver parameters.

Determines whether a parameter value (an array, a framework tensor, or a
nested container of them) lives on a CPU or a GPU-class device. Recognizes:
- objects exposing the CUDA array interface (CuPy, Numba device arrays)
- tensors with a ``device`` attribute (PyTorch: ``device.type``)
- arrays with ``devices()`` (JAX: ``device.platform``)
- modules with ``parameters()`` (PyTorch ``nn.Module``)
- numpy arrays and Python numbers (always CPU)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Mapping
import logging
import numbers

import numpy as np
from numba import cuda

logger = logging.getLogger(__name__)


class Device(Enum):
    """Device classes for parameter storage."""

    CPU = "cpu"
    GPU = "gpu"


# Device type / platform names reported by array frameworks
GPU_DEVICE_TYPES: frozenset[str] = frozenset({
    "cuda", "gpu", "rocm", "hip", "mps", "xpu", "metal", "opencl",
})


class DeviceDetectionError(ValueError):
    """Raised when the device of a value cannot be determined."""

    pass


class DeviceMismatchError(DeviceDetectionError):
    """Raised when a container holds values on different device classes."""

    pass


def get_device(value: Any) -> Device:
    """Classify the device holding a parameter value.

    Args:
        value: Array, tensor, module, or a mapping / list / tuple of them

    Returns:
        Device.GPU or Device.CPU

    Raises:
        DeviceDetectionError: If no device can be determined
        DeviceMismatchError: If leaves live on different device classes
    """
    devices = set(_leaf_devices(value))
    if not devices:
        raise DeviceDetectionError("No array values found to classify")
    if len(devices) > 1:
        raise DeviceMismatchError(
            f"Parameters span multiple devices: {sorted(d.value for d in devices)}"
        )
    device = devices.pop()
    logger.debug(f"Classified {type(value).__name__} as {device.value}")
    return device


def _leaf_devices(value: Any) -> Iterable[Device]:
    """Yield the device of every array leaf in value."""
    # Metadata leaves carry no device
    if value is None or isinstance(value, (str, bytes)):
        return

    if isinstance(value, Mapping):
        for item in value.values():
            yield from _leaf_devices(item)
        return

    if isinstance(value, (list, tuple)):
        for item in value:
            yield from _leaf_devices(item)
        return

    if cuda.is_cuda_array(value):
        yield Device.GPU
        return

    if isinstance(value, (np.ndarray, np.generic, numbers.Number)):
        yield Device.CPU
        return

    if hasattr(value, "device"):
        device = value.device
        # JAX 0.4 exposes device() as a method
        if callable(device):
            device = device()
        yield _classify_device_object(device)
        return

    if callable(getattr(value, "devices", None)):
        for device in value.devices():
            yield _classify_device_object(device)
        return

    if callable(getattr(value, "parameters", None)):
        yield from _leaf_devices(list(value.parameters()))
        return

    raise DeviceDetectionError(f"Cannot determine device of {type(value).__name__}")


def _classify_device_object(device: Any) -> Device:
    """Classify a framework device object or device string."""
    if isinstance(device, str):
        kind = device
    else:
        kind = getattr(device, "type", None) or getattr(device, "platform", None)
    if not kind:
        raise DeviceDetectionError(f"Unrecognized device object: {device!r}")

    # "cuda:0" -> "cuda"
    kind = str(kind).lower().split(":")[0]
    if kind == "cpu":
        return Device.CPU
    if kind in GPU_DEVICE_TYPES:
        return Device.GPU
    raise DeviceDetectionError(f"Unsupported device type: {kind}")
