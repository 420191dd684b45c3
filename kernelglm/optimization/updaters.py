from __future__ import annotations

from abc import ABC, abstractmethod
import math

import numpy as np

from ..errors import InvalidConfiguration, check_same_length


class Updater(ABC):
    """Applies one regularized step and reports the penalty on the new weights.

    ``iteration`` is 1-based; the effective step size decays as
    ``step_size / sqrt(iteration)``.
    """

    name = ""

    def compute(
        self,
        old_weights: np.ndarray,
        gradient: np.ndarray,
        reg_param: float,
        step_size: float,
        iteration: int,
    ) -> tuple[np.ndarray, float]:
        if iteration < 1:
            raise InvalidConfiguration(f"iteration index must be >= 1, got {iteration}")
        w = np.asarray(old_weights, dtype=np.float64)
        g = np.asarray(gradient, dtype=np.float64)
        check_same_length("gradient", g.shape[0], "weights", w.shape[0])
        eta = step_size / math.sqrt(iteration)
        return self._step(w, g, float(reg_param), eta)

    @abstractmethod
    def _step(self, weights: np.ndarray, gradient: np.ndarray, reg_param: float, eta: float) -> tuple[np.ndarray, float]:
        raise NotImplementedError


class SimpleUpdater(Updater):
    name = "none"

    def _step(self, weights: np.ndarray, gradient: np.ndarray, reg_param: float, eta: float) -> tuple[np.ndarray, float]:
        return weights - eta * gradient, 0.0


class SquaredL2Updater(Updater):
    name = "l2"

    def _step(self, weights: np.ndarray, gradient: np.ndarray, reg_param: float, eta: float) -> tuple[np.ndarray, float]:
        new_weights = weights * (1.0 - eta * reg_param) - eta * gradient
        norm_sq = float(np.dot(new_weights, new_weights))
        return new_weights, 0.5 * reg_param * norm_sq


class L1Updater(Updater):
    name = "l1"

    def _step(self, weights: np.ndarray, gradient: np.ndarray, reg_param: float, eta: float) -> tuple[np.ndarray, float]:
        stepped = weights - eta * gradient
        shrinkage = eta * reg_param
        new_weights = np.sign(stepped) * np.maximum(np.abs(stepped) - shrinkage, 0.0)
        return new_weights, reg_param * float(np.sum(np.abs(new_weights)))


UPDATERS: dict[str, type[Updater]] = {
    cls.name: cls for cls in (SimpleUpdater, SquaredL2Updater, L1Updater)
}


def create_updater(name: str) -> Updater:
    if name not in UPDATERS:
        raise InvalidConfiguration(f"Unknown updater '{name}'. Registered: {sorted(UPDATERS.keys())}")
    return UPDATERS[name]()
