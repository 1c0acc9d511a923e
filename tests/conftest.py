"""
Pytest fixtures for pdeforge tests.

Device tests use small stand-ins for framework tensors: objects exposing the
same attributes (device.type, devices(), __cuda_array_interface__) that the
real libraries do.
"""

from dataclasses import dataclass

import numpy as np
import pytest

from pdeforge.config import GPU_POWER_REWRITE_ENV
from pdeforge.expression.nodes import Symbol


@dataclass
class TensorDevice:
    """Device descriptor shaped like torch.device."""

    type: str
    index: int | None = None


class FakeTensor:
    """Tensor exposing a torch-style device attribute."""

    def __init__(self, device_type: str) -> None:
        self.device = TensorDevice(device_type)


class FakeCudaArray:
    """Array exposing the CUDA array interface, like CuPy arrays."""

    __cuda_array_interface__ = {
        "shape": (3,),
        "typestr": "<f8",
        "data": (0, False),
        "version": 3,
    }


@dataclass(frozen=True)
class PlatformDevice:
    """Device descriptor shaped like jax.Device."""

    platform: str


class FakeJaxArray:
    """Array exposing devices(), like jax.Array."""

    def __init__(self, *platforms: str) -> None:
        self._devices = {PlatformDevice(p) for p in platforms}

    def devices(self) -> set:
        return self._devices


class FakeJaxArrayWithDeviceMethod(FakeJaxArray):
    """Array exposing device() as a method, like jax.Array in JAX 0.4."""

    def device(self) -> PlatformDevice:
        return next(iter(self._devices))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Run every test without the power rewrite override."""
    monkeypatch.delenv(GPU_POWER_REWRITE_ENV, raising=False)


@pytest.fixture
def x() -> Symbol:
    return Symbol("x")


@pytest.fixture
def y() -> Symbol:
    return Symbol("y")


@pytest.fixture
def cpu_params() -> dict:
    """Network weights held in numpy arrays."""
    rng = np.random.default_rng(42)
    return {
        "layer_1": {"weight": rng.normal(size=(4, 2)), "bias": np.zeros(4)},
        "layer_2": {"weight": rng.normal(size=(1, 4)), "bias": np.zeros(1)},
    }


@pytest.fixture
def gpu_params() -> dict:
    """Network weights held in CUDA tensors."""
    return {
        "layer_1": {"weight": FakeTensor("cuda"), "bias": FakeTensor("cuda")},
        "layer_2": [FakeTensor("cuda"), FakeTensor("cuda")],
    }


@pytest.fixture
def grid() -> dict:
    """Collocation points and a field on [0, 1]."""
    xs = np.linspace(0.0, 1.0, 11)
    return {"x": xs, "u": np.sin(np.pi * xs), "f": np.zeros_like(xs)}


@pytest.fixture
def cuda_tensor() -> FakeTensor:
    return FakeTensor("cuda")


@pytest.fixture
def cpu_tensor() -> FakeTensor:
    return FakeTensor("cpu")


@pytest.fixture
def cuda_array() -> FakeCudaArray:
    return FakeCudaArray()


@pytest.fixture
def jax_array():
    """Factory for JAX-style arrays on the given platforms."""
    return FakeJaxArray


@pytest.fixture
def legacy_jax_array():
    """Factory for JAX-style arrays with a device() method."""
    return FakeJaxArrayWithDeviceMethod
