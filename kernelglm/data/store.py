from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Sequence

import numpy as np

from ..errors import DimensionMismatch, EmptyDataset, InvalidConfiguration


PARAMETER_NODE_ID = -1


class EdgeKind(str, Enum):
    CAUSES = "causes"
    CONTROLS = "controls"


@dataclass(frozen=True)
class Edge:
    kind: EdgeKind
    source: int
    target: int


@dataclass(frozen=True)
class FeatureNode:
    index: int
    raw_features: np.ndarray
    features: np.ndarray


@dataclass(frozen=True)
class TargetNode:
    index: int
    label: float


@dataclass(frozen=True)
class Example:
    index: int
    raw_features: np.ndarray
    features: np.ndarray
    label: float


@dataclass
class ParameterNode:
    value: np.ndarray | None = None


def _frozen_copy(vector: np.ndarray | Sequence[float]) -> np.ndarray:
    arr = np.array(vector, dtype=np.float64, copy=True)
    arr.setflags(write=False)
    return arr


@dataclass
class DatasetStore:
    """In-memory store of one parameter slot and labelled examples.

    Relations use integer foreign keys: a ``causes`` edge links feature node
    i to target node i, and a ``controls`` edge links the parameter node to
    target node i. Traversal order is insertion order.
    """

    _parameter: ParameterNode | None = None
    _feature_nodes: list[FeatureNode] = field(default_factory=list)
    _target_nodes: list[TargetNode] = field(default_factory=list)
    _causal_edges: list[Edge] = field(default_factory=list)
    _control_edges: list[Edge] = field(default_factory=list)

    def create_parameter_node(self) -> ParameterNode:
        if self._parameter is None:
            self._parameter = ParameterNode()
        return self._parameter

    def create_example_node(self, raw_features: np.ndarray | Sequence[float], label: float) -> int:
        raw = _frozen_copy(raw_features)
        if raw.ndim != 1:
            raise DimensionMismatch(f"raw_features must be a 1-d vector, got shape={raw.shape}")
        if self._feature_nodes and raw.shape[0] != self.raw_dim:
            raise DimensionMismatch(
                f"Example {len(self._feature_nodes)} has {raw.shape[0]} raw features, expected {self.raw_dim}"
            )
        self.create_parameter_node()

        index = len(self._feature_nodes)
        features = _frozen_copy(np.append(raw, 1.0))
        self._feature_nodes.append(FeatureNode(index=index, raw_features=raw, features=features))
        self._target_nodes.append(TargetNode(index=index, label=float(label)))
        self._causal_edges.append(Edge(kind=EdgeKind.CAUSES, source=index, target=index))
        self._control_edges.append(Edge(kind=EdgeKind.CONTROLS, source=PARAMETER_NODE_ID, target=index))
        return index

    def parameter_out_edges(self) -> list[Edge]:
        return list(self._control_edges)

    def _causal_edge_into(self, target_index: int) -> Edge:
        edge = self._causal_edges[target_index]
        if edge.target != target_index:
            raise InvalidConfiguration(f"Causal edge table is inconsistent at target {target_index}")
        return edge

    def feature_node_for(self, edge: Edge) -> FeatureNode:
        if edge.kind is not EdgeKind.CONTROLS or edge.source != PARAMETER_NODE_ID:
            raise InvalidConfiguration(f"Expected a parameter 'controls' edge, got {edge}")
        causal = self._causal_edge_into(edge.target)
        return self._feature_nodes[causal.source]

    def pair_for(self, edge: Edge) -> tuple[np.ndarray, float]:
        node = self.feature_node_for(edge)
        return node.features, self._target_nodes[edge.target].label

    def pairs(self) -> Iterable[tuple[np.ndarray, float]]:
        for edge in self.parameter_out_edges():
            yield self.pair_for(edge)

    def set_parameter(self, vector: np.ndarray | Sequence[float]) -> None:
        arr = np.array(vector, dtype=np.float64, copy=True)
        if arr.ndim != 1:
            raise DimensionMismatch(f"Parameter must be a 1-d vector, got shape={arr.shape}")
        self.create_parameter_node().value = arr

    def get_parameter(self) -> np.ndarray:
        if self._parameter is None or self._parameter.value is None:
            raise InvalidConfiguration("Parameter vector has not been set")
        return self._parameter.value.copy()

    def set_feature_vector(self, example_index: int, vector: np.ndarray | Sequence[float]) -> None:
        if not 0 <= example_index < len(self._feature_nodes):
            raise IndexError(f"No example with index {example_index} (store holds {len(self._feature_nodes)})")
        arr = _frozen_copy(vector)
        if arr.ndim != 1:
            raise DimensionMismatch(f"Feature vector must be 1-d, got shape={arr.shape}")
        self._feature_nodes[example_index] = replace(self._feature_nodes[example_index], features=arr)

    def __len__(self) -> int:
        return len(self._feature_nodes)

    @property
    def raw_dim(self) -> int:
        if not self._feature_nodes:
            raise EmptyDataset("Store holds no examples")
        return int(self._feature_nodes[0].raw_features.shape[0])

    def examples(self) -> list[Example]:
        return [
            Example(index=f.index, raw_features=f.raw_features, features=f.features, label=t.label)
            for f, t in zip(self._feature_nodes, self._target_nodes)
        ]

    def raw_feature_matrix(self) -> np.ndarray:
        if not self._feature_nodes:
            raise EmptyDataset("Store holds no examples")
        return np.stack([f.raw_features for f in self._feature_nodes], axis=0)

    def feature_matrix(self) -> np.ndarray:
        if not self._feature_nodes:
            raise EmptyDataset("Store holds no examples")
        return np.stack([f.features for f in self._feature_nodes], axis=0)

    def labels(self) -> np.ndarray:
        return np.asarray([t.label for t in self._target_nodes], dtype=np.float64)


def store_from_rows(rows: Iterable[Sequence[float]]) -> DatasetStore:
    """Ingest rows whose last field is the label; parameters start as ones(d + 1)."""
    store = DatasetStore()
    store.create_parameter_node()
    for row in rows:
        values = np.asarray(row, dtype=np.float64)
        if values.ndim != 1 or values.shape[0] < 1:
            raise DimensionMismatch(f"Each row needs at least a label field, got shape={values.shape}")
        store.create_example_node(values[:-1], float(values[-1]))
    if len(store) == 0:
        raise EmptyDataset("No rows supplied")
    store.set_parameter(np.ones(store.raw_dim + 1, dtype=np.float64))
    return store
