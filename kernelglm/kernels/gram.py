from __future__ import annotations

from dataclasses import dataclass
import math

import numpy as np
from loguru import logger

from .base import Kernel, KernelConfig
from ..errors import DegenerateKernel, DimensionMismatch, EmptyDataset, InvalidConfiguration


EIGEN_RTOL = 1e-10
EIGEN_ATOL = 1e-12


@dataclass(frozen=True)
class EigenDecomposition:
    eigenvalues: np.ndarray
    eigenvectors: np.ndarray
    threshold: float

    @property
    def rank(self) -> int:
        return int(self.eigenvalues.shape[0])


def as_feature_matrix(features: np.ndarray | list[np.ndarray]) -> np.ndarray:
    if isinstance(features, np.ndarray):
        matrix = np.asarray(features, dtype=np.float64)
    else:
        rows = [np.asarray(row, dtype=np.float64) for row in features]
        if not rows:
            raise EmptyDataset("No feature vectors supplied")
        lengths = sorted({row.shape[0] if row.ndim == 1 else -1 for row in rows})
        if len(lengths) != 1 or lengths[0] < 0:
            raise DimensionMismatch(f"Feature vectors must be 1-d with equal lengths, got lengths {lengths}")
        matrix = np.stack(rows, axis=0)

    if matrix.ndim != 2:
        raise DimensionMismatch(f"Feature matrix must be 2-d, got shape={matrix.shape}")
    if matrix.shape[0] == 0:
        raise EmptyDataset("No feature vectors supplied")
    return matrix


def build_gram_matrix(
    kernel: Kernel,
    features: np.ndarray | list[np.ndarray],
    config: KernelConfig | None = None,
) -> np.ndarray:
    """Pairwise kernel evaluations, computed once per unordered pair and mirrored."""
    effective = (config or KernelConfig()).effective_kernel(kernel)
    x = as_feature_matrix(features)
    n = x.shape[0]

    gram = np.empty((n, n), dtype=np.float64)
    for i in range(n):
        for j in range(i, n):
            value = effective.evaluate(x[i], x[j])
            gram[i, j] = value
            gram[j, i] = value
    return gram


def default_eigen_threshold(eigenvalues: np.ndarray) -> float:
    largest = float(np.max(eigenvalues)) if eigenvalues.size else 0.0
    return max(EIGEN_RTOL * max(largest, 0.0), EIGEN_ATOL)


def normalize_eigenvector_signs(eigenvectors: np.ndarray) -> np.ndarray:
    """Flip each column so its largest-magnitude entry (first on ties) is positive."""
    if eigenvectors.size == 0:
        return eigenvectors
    pivots = np.argmax(np.abs(eigenvectors), axis=0)
    signs = np.sign(eigenvectors[pivots, np.arange(eigenvectors.shape[1])])
    signs[signs == 0] = 1.0
    return eigenvectors * signs[None, :]


def eigen_decomposition(gram: np.ndarray, threshold: float | None = None) -> EigenDecomposition:
    if gram.ndim != 2 or gram.shape[0] != gram.shape[1]:
        raise DimensionMismatch(f"gram must be square, got shape={gram.shape}")
    if gram.shape[0] == 0:
        raise EmptyDataset("Cannot decompose an empty Gram matrix")

    sym = 0.5 * (gram + gram.T)
    eigvals, eigvecs = np.linalg.eigh(sym)
    order = np.argsort(eigvals)[::-1]
    eigvals = eigvals[order]
    eigvecs = eigvecs[:, order]

    if threshold is None:
        cutoff = default_eigen_threshold(eigvals)
    else:
        cutoff = float(threshold)
        if not math.isfinite(cutoff) or cutoff < 0:
            raise InvalidConfiguration(f"Eigenvalue threshold must be a finite value >= 0, got {threshold}")
    keep = eigvals > cutoff
    if not np.any(keep):
        raise DegenerateKernel(
            f"Gram matrix has no eigenvalues above {cutoff:.3g} (largest={float(eigvals[0]):.3g})"
        )

    retained = int(np.sum(keep))
    logger.debug(f"Retained {retained}/{eigvals.size} eigencomponents above {cutoff:.3g}")
    return EigenDecomposition(
        eigenvalues=eigvals[keep],
        eigenvectors=normalize_eigenvector_signs(eigvecs[:, keep]),
        threshold=cutoff,
    )
