from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np
from loguru import logger

from .task import Task, resolve_optimizer
from ..data.store import DatasetStore, store_from_rows
from ..errors import DimensionMismatch, EmptyDataset
from ..evaluation.metrics import BinaryClassificationMetrics
from ..kernels.base import Kernel, KernelConfig
from ..kernels.feature_map import FeatureMap, IdentityFeatureMap, apply_kernel
from ..optimization.gradient_descent import GradientDescentConfig


def linear_score(params: np.ndarray, mapped_point: np.ndarray) -> float:
    """w[:-1] . phi(x) + w[-1]; the bias is always the last parameter."""
    if mapped_point.shape[0] != params.shape[0] - 1:
        raise DimensionMismatch(
            f"Mapped point has length {mapped_point.shape[0]}, parameters expect {params.shape[0] - 1} features"
        )
    return float(np.dot(params[:-1], mapped_point) + params[-1])


class GaussianLinearModel:
    """Linear model whose target is Gaussian with mean w.phi(x).

    A Gaussian prior on the weights shows up as squared-L2 regularization in
    the optimizer. ``phi`` is the identity until :meth:`apply_kernel` swaps
    in a Nystrom feature map.
    """

    def __init__(
        self,
        store: DatasetStore,
        task: Task | str,
        config: GradientDescentConfig | None = None,
    ) -> None:
        if len(store) == 0:
            raise EmptyDataset("Cannot build a model on an empty dataset")
        self.store = store
        self.task = Task.parse(task)
        self.optimizer = resolve_optimizer(self.task, config)
        self.feature_map: FeatureMap = IdentityFeatureMap()
        self.raw_dim = store.raw_dim

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Sequence[float]],
        task: Task | str,
        config: GradientDescentConfig | None = None,
    ) -> GaussianLinearModel:
        logger.info("Creating dataset store from rows")
        store = store_from_rows(rows)
        logger.info(f"Store built with {len(store)} examples, raw_dim={store.raw_dim}; building model")
        return cls(store, task, config)

    def set_max_iterations(self, n: int) -> GaussianLinearModel:
        self.optimizer.set_num_iterations(n)
        return self

    def set_learning_rate(self, alpha: float) -> GaussianLinearModel:
        self.optimizer.set_step_size(alpha)
        return self

    def set_reg_param(self, reg: float) -> GaussianLinearModel:
        self.optimizer.set_reg_param(reg)
        return self

    def set_convergence_tol(self, tol: float | None) -> GaussianLinearModel:
        self.optimizer.set_convergence_tol(tol)
        return self

    def parameters(self) -> np.ndarray:
        return self.store.get_parameter()

    def _mapped(self, point: np.ndarray | Sequence[float]) -> np.ndarray:
        x = np.asarray(point, dtype=np.float64)
        if x.ndim != 1 or x.shape[0] != self.raw_dim:
            raise DimensionMismatch(f"Expected a raw point of length {self.raw_dim}, got shape={x.shape}")
        return self.feature_map(x)

    def score(self, point: np.ndarray | Sequence[float]) -> float:
        return linear_score(self.store.get_parameter(), self._mapped(point))

    def predict(self, point: np.ndarray | Sequence[float]) -> float:
        value = self.score(point)
        if self.task is Task.CLASSIFICATION:
            return float(np.sign(value))
        return value

    def score_rows(self, points: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
        return np.asarray([self.score(p) for p in np.asarray(points, dtype=np.float64)], dtype=np.float64)

    def predict_rows(self, points: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
        return np.asarray([self.predict(p) for p in np.asarray(points, dtype=np.float64)], dtype=np.float64)

    def train(self) -> np.ndarray:
        weights = self.optimizer.optimize(self.store.get_parameter(), self.store.pairs())
        self.store.set_parameter(weights)
        return weights.copy()

    def apply_kernel(
        self,
        kernel: Kernel,
        config: KernelConfig | None = None,
        threshold: float | None = None,
    ) -> np.ndarray:
        """Switch the model to a Nystrom feature space built from the stored raw features.

        Resets the parameters to ones(rank + 1) and rewrites every stored
        feature vector before returning; returns the mapped training matrix.
        """
        raw = self.store.raw_feature_matrix()
        design = np.hstack([raw, np.ones((raw.shape[0], 1), dtype=np.float64)])
        feature_map, mapped = apply_kernel(kernel, design, config=config, threshold=threshold)

        self.feature_map = feature_map
        mapped_dim = feature_map.output_dim(self.raw_dim)
        self.store.set_parameter(np.ones(mapped_dim + 1, dtype=np.float64))

        edges = self.store.parameter_out_edges()
        for edge in edges:
            node = self.store.feature_node_for(edge)
            # mapped rows follow raw_feature_matrix, i.e. example index order
            self.store.set_feature_vector(node.index, mapped[node.index])
        logger.info(f"Rewrote {len(edges)} stored feature vectors to dimension {mapped_dim + 1}")
        return mapped

    def evaluate(self, rows: Iterable[Sequence[float]]) -> BinaryClassificationMetrics:
        logger.info("Calculating test set predictions")
        pairs = []
        for row in rows:
            values = np.asarray(row, dtype=np.float64)
            pairs.append((self.score(values[:-1]), float(values[-1])))
        return BinaryClassificationMetrics(pairs)
