from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np

from ..errors import InvalidConfiguration


class Kernel(ABC):
    """A positive-semidefinite kernel k(x, y) with named hyperparameters.

    ``state`` holds the effective hyperparameter values. Kernels are
    immutable: :meth:`with_hyperparameters` returns a new instance, and
    :meth:`evaluate` must be a pure function of its two inputs.
    """

    name = ""

    def __init__(self, **state: float) -> None:
        self._state = {k: float(v) for k, v in state.items()}
        self._validate_state(self._state)

    @property
    def hyperparameters(self) -> list[str]:
        return list(self._state.keys())

    @property
    def state(self) -> dict[str, float]:
        return dict(self._state)

    def _validate_state(self, state: Mapping[str, float]) -> None:
        pass

    @abstractmethod
    def evaluate(self, x: np.ndarray, y: np.ndarray) -> float:
        raise NotImplementedError

    def __call__(self, x: np.ndarray, y: np.ndarray) -> float:
        return self.evaluate(x, y)

    def with_hyperparameters(self, values: Mapping[str, float]) -> Kernel:
        unknown = sorted(set(values) - set(self._state))
        if unknown:
            raise InvalidConfiguration(
                f"Unknown hyperparameters {unknown} for kernel '{self.name}'. Known: {self.hyperparameters}"
            )
        return type(self)(**{**self._state, **{k: float(v) for k, v in values.items()}})

    def gram_matrix(self, xs: Any, config: KernelConfig | None = None) -> np.ndarray:
        from .gram import build_gram_matrix

        return build_gram_matrix(self, xs, config)

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v:g}" for k, v in self._state.items())
        return f"{type(self).__name__}({params})"

    def __eq__(self, other: Any) -> bool:
        return type(self) is type(other) and self._state == other._state

    def __hash__(self) -> int:
        return hash((type(self).__name__, tuple(sorted(self._state.items()))))


@dataclass(frozen=True)
class KernelConfig:
    """Which hyperparameters of a kernel may be tuned and which stay fixed.

    Passed explicitly into Gram matrix construction instead of living as
    mutable state on the kernel instance.
    """

    fixed: frozenset[str] = frozenset()
    overrides: tuple[tuple[str, float], ...] = ()

    @classmethod
    def build(
        cls,
        *,
        fixed: list[str] | None = None,
        overrides: Mapping[str, float] | None = None,
    ) -> KernelConfig:
        return cls(
            fixed=frozenset(fixed or []),
            overrides=tuple(sorted((k, float(v)) for k, v in (overrides or {}).items())),
        )

    def validate_for(self, kernel: Kernel) -> None:
        known = set(kernel.hyperparameters)
        unknown_fixed = sorted(self.fixed - known)
        if unknown_fixed:
            raise InvalidConfiguration(
                f"Cannot fix unknown hyperparameters {unknown_fixed} on kernel '{kernel.name}'. Known: {sorted(known)}"
            )
        blocked = sorted(name for name, _ in self.overrides if name in self.fixed)
        if blocked:
            raise InvalidConfiguration(f"Hyperparameters {blocked} are fixed and cannot be overridden")

    def is_tunable(self, name: str) -> bool:
        return name not in self.fixed

    def tunable(self, kernel: Kernel) -> list[str]:
        return [h for h in kernel.hyperparameters if self.is_tunable(h)]

    def effective_kernel(self, kernel: Kernel) -> Kernel:
        self.validate_for(kernel)
        if not self.overrides:
            return kernel
        return kernel.with_hyperparameters(dict(self.overrides))

    def to_dict(self) -> dict[str, Any]:
        return {"fixed": sorted(self.fixed), "overrides": dict(self.overrides)}
