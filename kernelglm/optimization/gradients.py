from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
from scipy.special import expit
from scipy.stats import norm

from ..errors import DimensionMismatch, InvalidConfiguration, check_same_length


def _as_vector(name: str, value: np.ndarray) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64)
    if arr.ndim != 1:
        raise DimensionMismatch(f"{name} must be a 1-d vector, got shape={arr.shape}")
    return arr


class LossGradient(ABC):
    """Per-example loss and its gradient with respect to the weights.

    Every strategy here has a gradient of the form ``multiplier * data``, so
    subclasses only supply the multiplier and the loss. The pure and the
    accumulating variants share that single code path, which keeps their
    outputs identical.
    """

    name = ""

    @abstractmethod
    def _multiplier_and_loss(self, data: np.ndarray, label: float, weights: np.ndarray) -> tuple[float, float]:
        raise NotImplementedError

    def _prepare(self, data: np.ndarray, weights: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        x = _as_vector("data", data)
        w = _as_vector("weights", weights)
        check_same_length("data", x.shape[0], "weights", w.shape[0])
        return x, w

    def compute(self, data: np.ndarray, label: float, weights: np.ndarray) -> tuple[np.ndarray, float]:
        x, w = self._prepare(data, weights)
        multiplier, loss = self._multiplier_and_loss(x, float(label), w)
        if multiplier == 0.0:
            return np.zeros_like(x), float(loss)
        return multiplier * x, float(loss)

    def compute_into(
        self,
        data: np.ndarray,
        label: float,
        weights: np.ndarray,
        cum_gradient: np.ndarray,
    ) -> float:
        x, w = self._prepare(data, weights)
        if not isinstance(cum_gradient, np.ndarray) or cum_gradient.ndim != 1:
            raise DimensionMismatch("cum_gradient must be a 1-d numpy array owned by the caller")
        check_same_length("cum_gradient", cum_gradient.shape[0], "weights", w.shape[0])

        multiplier, loss = self._multiplier_and_loss(x, float(label), w)
        if multiplier != 0.0:
            cum_gradient += multiplier * x
        return float(loss)


class LogisticGradient(LossGradient):
    name = "logistic"

    def _multiplier_and_loss(self, data: np.ndarray, label: float, weights: np.ndarray) -> tuple[float, float]:
        margin = -float(np.dot(weights, data))
        # expit(-margin) == 1 / (1 + exp(margin)) without overflow
        multiplier = float(expit(-margin)) - label
        # log(1 + exp(margin)), stable for large |margin|
        log1p_exp = float(np.logaddexp(0.0, margin))
        if label > 0:
            return multiplier, log1p_exp
        return multiplier, log1p_exp - margin


class ProbitGradient(LossGradient):
    name = "probit"

    def _multiplier_and_loss(self, data: np.ndarray, label: float, weights: np.ndarray) -> tuple[float, float]:
        margin = float(np.dot(weights, data))
        upper_tail = float(norm.sf(margin))
        # inverse Mills ratios in log space; cdf and sf underflow past |margin| ~ 38
        if label > 0:
            multiplier = float(np.exp(norm.logpdf(margin) - norm.logcdf(margin)))
        else:
            multiplier = float(np.exp(norm.logpdf(margin) - norm.logsf(margin)))
        return multiplier, upper_tail


class LeastSquaresGradient(LossGradient):
    """L = 1/2 (y - w.x)^2, the averaged squared error used for regression."""

    name = "least_squares"

    def _multiplier_and_loss(self, data: np.ndarray, label: float, weights: np.ndarray) -> tuple[float, float]:
        diff = label - float(np.dot(weights, data))
        return -diff, diff * diff / 2.0


class HingeGradient(LossGradient):
    """max(0, 1 - (2y - 1) w.x) for labels in {0, 1}."""

    name = "hinge"

    def _multiplier_and_loss(self, data: np.ndarray, label: float, weights: np.ndarray) -> tuple[float, float]:
        dot = float(np.dot(weights, data))
        label_scaled = 2.0 * label - 1.0
        if 1.0 > label_scaled * dot:
            return -label_scaled, 1.0 - label_scaled * dot
        return 0.0, 0.0


class LeastSquaresSVMGradient(LossGradient):
    """L = 1/2 (1 - y w.x)^2 for labels in {-1, +1}."""

    name = "least_squares_svm"

    def _multiplier_and_loss(self, data: np.ndarray, label: float, weights: np.ndarray) -> tuple[float, float]:
        diff = 1.0 - label * float(np.dot(weights, data))
        return -label * diff, diff * diff / 2.0


GRADIENTS: dict[str, type[LossGradient]] = {
    cls.name: cls
    for cls in (
        LogisticGradient,
        ProbitGradient,
        LeastSquaresGradient,
        HingeGradient,
        LeastSquaresSVMGradient,
    )
}


def create_gradient(name: str) -> LossGradient:
    if name not in GRADIENTS:
        raise InvalidConfiguration(f"Unknown loss gradient '{name}'. Registered: {sorted(GRADIENTS.keys())}")
    return GRADIENTS[name]()
