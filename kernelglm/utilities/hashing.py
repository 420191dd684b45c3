from __future__ import annotations

import hashlib
import json
from typing import Any

import numpy as np


def _stable_json(payload: Any) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def hash_payload(payload: Any) -> str:
    data = _stable_json(payload).encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def compute_dataset_signature(rows: np.ndarray, extra: dict[str, Any] | None = None) -> str:
    matrix = np.ascontiguousarray(rows, dtype=np.float64)
    payload: dict[str, Any] = {
        "shape": list(matrix.shape),
        "data_sha256": hashlib.sha256(matrix.tobytes()).hexdigest(),
    }
    if extra:
        payload["extra"] = extra
    return hash_payload(payload)
