from __future__ import annotations

from typing import Mapping

import numpy as np

from .base import Kernel
from ..errors import InvalidConfiguration


def _require_positive(kernel: str, name: str, value: float) -> None:
    if not np.isfinite(value) or value <= 0:
        raise InvalidConfiguration(f"{kernel}: '{name}' must be a finite value > 0, got {value}")


class LinearKernel(Kernel):
    name = "linear"

    def __init__(self, offset: float = 0.0) -> None:
        super().__init__(offset=offset)

    def evaluate(self, x: np.ndarray, y: np.ndarray) -> float:
        return float(np.dot(x, y)) + self._state["offset"]


class PolynomialKernel(Kernel):
    name = "polynomial"

    def __init__(self, degree: float = 2.0, offset: float = 1.0) -> None:
        super().__init__(degree=degree, offset=offset)

    def _validate_state(self, state: Mapping[str, float]) -> None:
        degree = state["degree"]
        _require_positive(self.name, "degree", degree)
        if degree != int(degree):
            raise InvalidConfiguration(f"{self.name}: 'degree' must be a whole number, got {degree}")
        if state["offset"] < 0:
            raise InvalidConfiguration(f"{self.name}: 'offset' must be >= 0, got {state['offset']}")

    def evaluate(self, x: np.ndarray, y: np.ndarray) -> float:
        return float((np.dot(x, y) + self._state["offset"]) ** int(self._state["degree"]))


class RBFKernel(Kernel):
    """exp(-||x - y||^2 / (2 * bandwidth^2))"""

    name = "rbf"

    def __init__(self, bandwidth: float = 1.0) -> None:
        super().__init__(bandwidth=bandwidth)

    def _validate_state(self, state: Mapping[str, float]) -> None:
        _require_positive(self.name, "bandwidth", state["bandwidth"])

    def evaluate(self, x: np.ndarray, y: np.ndarray) -> float:
        diff = np.asarray(x, dtype=np.float64) - np.asarray(y, dtype=np.float64)
        sigma = self._state["bandwidth"]
        return float(np.exp(-np.dot(diff, diff) / (2.0 * sigma * sigma)))


class LaplacianKernel(Kernel):
    name = "laplacian"

    def __init__(self, bandwidth: float = 1.0) -> None:
        super().__init__(bandwidth=bandwidth)

    def _validate_state(self, state: Mapping[str, float]) -> None:
        _require_positive(self.name, "bandwidth", state["bandwidth"])

    def evaluate(self, x: np.ndarray, y: np.ndarray) -> float:
        diff = np.asarray(x, dtype=np.float64) - np.asarray(y, dtype=np.float64)
        return float(np.exp(-np.sum(np.abs(diff)) / self._state["bandwidth"]))


class ConstantKernel(Kernel):
    name = "constant"

    def __init__(self, value: float = 1.0) -> None:
        super().__init__(value=value)

    def _validate_state(self, state: Mapping[str, float]) -> None:
        _require_positive(self.name, "value", state["value"])

    def evaluate(self, x: np.ndarray, y: np.ndarray) -> float:
        return self._state["value"]


KERNELS: dict[str, type[Kernel]] = {
    cls.name: cls
    for cls in (LinearKernel, PolynomialKernel, RBFKernel, LaplacianKernel, ConstantKernel)
}


def create_kernel(name: str, params: Mapping[str, float] | None = None) -> Kernel:
    if name not in KERNELS:
        raise InvalidConfiguration(f"Unknown kernel '{name}'. Registered: {sorted(KERNELS.keys())}")
    cls = KERNELS[name]
    kernel = cls()
    if params:
        kernel = kernel.with_hyperparameters(params)
    return kernel


def registered_kernels() -> list[str]:
    return sorted(KERNELS.keys())
