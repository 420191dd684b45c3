from __future__ import annotations

import csv
from pathlib import Path
from typing import Sequence

import numpy as np

from ..errors import DimensionMismatch, EmptyDataset


def read_rows(path: Path, *, has_header: bool = False, delimiter: str = ",") -> list[list[float]]:
    """Read a numeric CSV file; the last column of each row is the label."""
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    rows: list[list[float]] = []
    width: int | None = None
    with open(path, "r", encoding="utf-8", newline="") as f:
        reader = csv.reader(f, delimiter=delimiter)
        if has_header:
            header = next(reader, None)
            if header is not None:
                width = len(header)
        for line_no, line in enumerate(reader, start=2 if has_header else 1):
            if not line or all(not field.strip() for field in line):
                continue
            try:
                values = [float(field) for field in line]
            except ValueError as exc:
                raise ValueError(f"Non-numeric field in {path}:{line_no}: {line}") from exc
            if width is None:
                width = len(values)
            if len(values) != width:
                raise DimensionMismatch(f"Row {path}:{line_no} has {len(values)} fields, expected {width}")
            rows.append(values)
    return rows


def split_rows(rows: Sequence[Sequence[float]]) -> tuple[np.ndarray, np.ndarray]:
    if not rows:
        raise EmptyDataset("No rows supplied")
    matrix = np.asarray(rows, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[1] < 1:
        raise DimensionMismatch(f"Rows must form a 2-d table with a label column, got shape={matrix.shape}")
    return matrix[:, :-1], matrix[:, -1]
