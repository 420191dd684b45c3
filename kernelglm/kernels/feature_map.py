from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
from loguru import logger

from .base import Kernel, KernelConfig
from .gram import EigenDecomposition, as_feature_matrix, build_gram_matrix, eigen_decomposition
from ..errors import DimensionMismatch


class FeatureMap(ABC):
    """Maps a raw feature vector (no bias coordinate) into model space."""

    @abstractmethod
    def __call__(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    @abstractmethod
    def output_dim(self, input_dim: int) -> int:
        raise NotImplementedError

    def map_rows(self, rows: np.ndarray) -> np.ndarray:
        matrix = as_feature_matrix(rows)
        return np.stack([self(row) for row in matrix], axis=0)


class IdentityFeatureMap(FeatureMap):
    def __call__(self, x: np.ndarray) -> np.ndarray:
        arr = np.array(x, dtype=np.float64, copy=True)
        if arr.ndim != 1:
            raise DimensionMismatch(f"Expected a 1-d feature vector, got shape={arr.shape}")
        return arr

    def output_dim(self, input_dim: int) -> int:
        return input_dim

    def __repr__(self) -> str:
        return "IdentityFeatureMap()"


class NystromFeatureMap(FeatureMap):
    """Out-of-sample extension of a kernel eigendecomposition.

    component_k(x) = (1 / sqrt(lambda_k)) * sum_i v_k[i] * k(x, x_i)

    where x_i ranges over the support set the Gram matrix was built from.
    Support vectors and the decomposition are copied, so later changes to the
    training data do not leak into an existing map.
    """

    def __init__(self, kernel: Kernel, support: np.ndarray, decomposition: EigenDecomposition) -> None:
        support = np.array(as_feature_matrix(support), copy=True)
        if decomposition.eigenvectors.shape[0] != support.shape[0]:
            raise DimensionMismatch(
                f"Eigenvectors have {decomposition.eigenvectors.shape[0]} rows but the support set has "
                f"{support.shape[0]} vectors"
            )
        self.kernel = kernel
        self.support = support
        self.decomposition = decomposition
        self._projection = decomposition.eigenvectors / np.sqrt(decomposition.eigenvalues)[None, :]

    @property
    def rank(self) -> int:
        return self.decomposition.rank

    def output_dim(self, input_dim: int) -> int:
        return self.rank

    def kernel_row(self, x: np.ndarray) -> np.ndarray:
        arr = np.asarray(x, dtype=np.float64)
        if arr.ndim != 1 or arr.shape[0] != self.support.shape[1]:
            raise DimensionMismatch(
                f"Expected a feature vector of length {self.support.shape[1]}, got shape={arr.shape}"
            )
        return np.array([self.kernel.evaluate(arr, s) for s in self.support], dtype=np.float64)

    def __call__(self, x: np.ndarray) -> np.ndarray:
        return self.kernel_row(x) @ self._projection

    def project_gram(self, gram: np.ndarray) -> np.ndarray:
        """Map the support set itself from its precomputed Gram matrix."""
        return gram @ self._projection

    def __repr__(self) -> str:
        return f"NystromFeatureMap(kernel={self.kernel!r}, support={self.support.shape[0]}, rank={self.rank})"


def append_bias(matrix: np.ndarray) -> np.ndarray:
    return np.hstack([matrix, np.ones((matrix.shape[0], 1), dtype=np.float64)])


def apply_kernel(
    kernel: Kernel,
    training_features: np.ndarray | list[np.ndarray],
    config: KernelConfig | None = None,
    threshold: float | None = None,
) -> tuple[NystromFeatureMap, np.ndarray]:
    """Build a Nystrom feature map from design vectors that end in a bias coordinate.

    Returns the map and the mapped training matrix of shape (n, rank + 1),
    whose last column is the re-appended bias.
    """
    design = as_feature_matrix(training_features)
    raw = design[:, :-1]

    effective = (config or KernelConfig()).effective_kernel(kernel)
    gram = build_gram_matrix(effective, raw)
    decomposition = eigen_decomposition(gram, threshold=threshold)

    feature_map = NystromFeatureMap(effective, raw, decomposition)
    mapped = append_bias(feature_map.project_gram(gram))
    logger.info(
        f"Applied kernel {effective!r}: n={raw.shape[0]}, raw_dim={raw.shape[1]}, "
        f"mapped_dim={decomposition.rank} (cutoff={decomposition.threshold:.3g})"
    )
    return feature_map, mapped
