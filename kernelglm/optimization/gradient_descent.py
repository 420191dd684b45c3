from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Iterable

import numpy as np
from loguru import logger

from .gradients import LossGradient
from .updaters import Updater
from ..errors import DimensionMismatch, EmptyDataset, InvalidConfiguration


@dataclass
class GradientDescentConfig:
    num_iterations: int = 100
    step_size: float = 0.001
    reg_param: float = 0.0
    convergence_tol: float | None = None

    def validate(self) -> None:
        if isinstance(self.num_iterations, bool) or not isinstance(self.num_iterations, (int, np.integer)):
            raise InvalidConfiguration(f"num_iterations must be an integer, got {self.num_iterations!r}")
        if self.num_iterations < 1:
            raise InvalidConfiguration(f"num_iterations must be >= 1, got {self.num_iterations}")
        if not math.isfinite(self.step_size) or self.step_size <= 0:
            raise InvalidConfiguration(f"step_size must be a finite value > 0, got {self.step_size}")
        if not math.isfinite(self.reg_param) or self.reg_param < 0:
            raise InvalidConfiguration(f"reg_param must be a finite value >= 0, got {self.reg_param}")
        if self.convergence_tol is not None:
            if not math.isfinite(self.convergence_tol) or self.convergence_tol <= 0:
                raise InvalidConfiguration(
                    f"convergence_tol must be a finite value > 0 when set, got {self.convergence_tol}"
                )

    def to_dict(self) -> dict[str, float | int | None]:
        return {
            "num_iterations": int(self.num_iterations),
            "step_size": float(self.step_size),
            "reg_param": float(self.reg_param),
            "convergence_tol": self.convergence_tol,
        }


@dataclass
class GradientDescent:
    """Full-batch gradient descent over (features, label) pairs.

    Each iteration accumulates per-example gradients into one buffer, averages
    it over the examples and hands the result to the updater. With
    ``convergence_tol`` set, the loop stops once the relative change of the
    total loss between consecutive iterations drops below it.
    """

    gradient: LossGradient
    updater: Updater
    config: GradientDescentConfig = field(default_factory=GradientDescentConfig)
    loss_history: list[float] = field(default_factory=list, init=False)
    iterations_run: int = field(default=0, init=False)

    def set_num_iterations(self, n: int) -> GradientDescent:
        self.config.num_iterations = n
        return self

    def set_step_size(self, alpha: float) -> GradientDescent:
        self.config.step_size = alpha
        return self

    def set_reg_param(self, reg: float) -> GradientDescent:
        self.config.reg_param = reg
        return self

    def set_convergence_tol(self, tol: float | None) -> GradientDescent:
        self.config.convergence_tol = tol
        return self

    def optimize(
        self,
        initial_weights: np.ndarray,
        examples: Iterable[tuple[np.ndarray, float]],
    ) -> np.ndarray:
        self.config.validate()

        weights = np.array(initial_weights, dtype=np.float64, copy=True)
        if weights.ndim != 1:
            raise DimensionMismatch(f"initial_weights must be a 1-d vector, got shape={weights.shape}")

        pairs = [(np.asarray(x, dtype=np.float64), float(y)) for x, y in examples]
        if not pairs:
            raise EmptyDataset("Cannot run gradient descent on an empty dataset")
        for idx, (x, _) in enumerate(pairs):
            if x.ndim != 1 or x.shape[0] != weights.shape[0]:
                raise DimensionMismatch(
                    f"Example {idx} has feature shape {x.shape}, expected ({weights.shape[0]},) to match weights"
                )

        n = len(pairs)
        cfg = self.config
        self.loss_history = []
        self.iterations_run = 0
        previous_loss: float | None = None

        for i in range(1, cfg.num_iterations + 1):
            cum_gradient = np.zeros_like(weights)
            data_loss = 0.0
            for x, y in pairs:
                data_loss += self.gradient.compute_into(x, y, weights, cum_gradient)
            cum_gradient /= n

            weights, reg_loss = self.updater.compute(weights, cum_gradient, cfg.reg_param, cfg.step_size, i)
            loss = data_loss / n + reg_loss
            self.loss_history.append(loss)
            self.iterations_run = i
            logger.debug(f"iteration {i}/{cfg.num_iterations}: loss={loss:.6g}")

            if cfg.convergence_tol is not None and previous_loss is not None:
                rel_change = abs(loss - previous_loss) / max(abs(previous_loss), np.finfo(np.float64).tiny)
                if rel_change < cfg.convergence_tol:
                    logger.info(f"Converged after {i} iterations (relative loss change {rel_change:.3g})")
                    break
            previous_loss = loss

        logger.info(
            f"Gradient descent finished: {self.gradient.name}/{self.updater.name}, "
            f"iterations={self.iterations_run}, n_examples={n}, final_loss={self.loss_history[-1]:.6g}"
        )
        return weights
