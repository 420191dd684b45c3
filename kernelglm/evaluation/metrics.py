from __future__ import annotations

from typing import Any, Iterable

import numpy as np
from sklearn.metrics import (
    average_precision_score,
    confusion_matrix,
    mean_absolute_error,
    mean_squared_error,
    r2_score,
    roc_auc_score,
    roc_curve,
)

from ..errors import EmptyDataset


def format_metric(value: float | None) -> str:
    if value is None:
        return "N/A"
    return f"{value:.4f}"


def precision_at_k(labels_true: np.ndarray, scores: np.ndarray, k: int) -> float:
    if k <= 0:
        return 0.0
    k = min(k, len(scores))
    idx = np.argsort(scores)[::-1][:k]
    return float(np.mean(labels_true[idx] == 1))


def summarize_scores(scores: np.ndarray) -> dict[str, float]:
    return {
        "mean": float(np.mean(scores)),
        "std": float(np.std(scores)),
        "min": float(np.min(scores)),
        "max": float(np.max(scores)),
        "p50": float(np.percentile(scores, 50)),
        "p90": float(np.percentile(scores, 90)),
    }


def to_binary_labels(labels: np.ndarray) -> np.ndarray:
    """Map {-1, +1} or {0, 1} labels onto {0, 1}; anything > 0 is positive."""
    return (np.asarray(labels, dtype=np.float64) > 0).astype(np.int32)


class BinaryClassificationMetrics:
    """Summary statistics over (score, label) pairs from a scoring model."""

    def __init__(self, scores_and_labels: Iterable[tuple[float, float]]) -> None:
        pairs = [(float(s), float(y)) for s, y in scores_and_labels]
        if not pairs:
            raise EmptyDataset("No (score, label) pairs supplied")
        self.scores = np.asarray([s for s, _ in pairs], dtype=np.float64)
        self.labels = to_binary_labels(np.asarray([y for _, y in pairs]))

    def __len__(self) -> int:
        return int(self.scores.shape[0])

    @property
    def n_positives(self) -> int:
        return int(np.sum(self.labels == 1))

    def _both_classes_present(self) -> bool:
        return 0 < self.n_positives < len(self)

    def predictions(self, threshold: float = 0.0) -> np.ndarray:
        return (self.scores > threshold).astype(np.int32)

    def accuracy(self, threshold: float = 0.0) -> float:
        return float(np.mean(self.predictions(threshold) == self.labels))

    def auroc(self) -> float | None:
        if not self._both_classes_present():
            return None
        return float(roc_auc_score(self.labels, self.scores))

    def auprc(self) -> float | None:
        if not self._both_classes_present():
            return None
        return float(average_precision_score(self.labels, self.scores))

    def roc_curve(self) -> tuple[np.ndarray, np.ndarray, np.ndarray] | None:
        if not self._both_classes_present():
            return None
        fpr, tpr, thresholds = roc_curve(self.labels, self.scores)
        return fpr, tpr, thresholds

    def confusion(self, threshold: float = 0.0) -> dict[str, int]:
        tn, fp, fn, tp = confusion_matrix(self.labels, self.predictions(threshold), labels=[0, 1]).ravel()
        return {"tn": int(tn), "fp": int(fp), "fn": int(fn), "tp": int(tp)}

    def summary(self, threshold: float = 0.0) -> dict[str, Any]:
        positives = self.n_positives
        return {
            "n_samples": len(self),
            "n_positives": positives,
            "threshold": float(threshold),
            "accuracy": self.accuracy(threshold),
            "auroc": self.auroc(),
            "auprc": self.auprc(),
            "precision_at_num_positives": (
                precision_at_k(self.labels, self.scores, positives) if positives > 0 else None
            ),
            "confusion": self.confusion(threshold),
            "score_stats": summarize_scores(self.scores),
        }


def regression_summary(scores: np.ndarray, labels: np.ndarray) -> dict[str, Any]:
    scores = np.asarray(scores, dtype=np.float64)
    labels = np.asarray(labels, dtype=np.float64)
    if scores.size == 0:
        raise EmptyDataset("No predictions supplied")
    out: dict[str, Any] = {
        "n_samples": int(scores.size),
        "mse": float(mean_squared_error(labels, scores)),
        "mae": float(mean_absolute_error(labels, scores)),
        "r2": None,
    }
    if scores.size >= 2 and float(np.var(labels)) > 0:
        out["r2"] = float(r2_score(labels, scores))
    return out
