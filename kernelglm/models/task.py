from __future__ import annotations

from dataclasses import replace
from enum import Enum
from typing import Callable

from ..errors import InvalidConfiguration
from ..optimization.gradient_descent import GradientDescent, GradientDescentConfig
from ..optimization.gradients import LeastSquaresGradient, LeastSquaresSVMGradient
from ..optimization.updaters import SquaredL2Updater


class Task(str, Enum):
    CLASSIFICATION = "classification"
    REGRESSION = "regression"

    @classmethod
    def parse(cls, value: Task | str) -> Task:
        if isinstance(value, Task):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise InvalidConfiguration(
                f"Unknown task '{value}'. Supported: {[t.value for t in cls]}"
            ) from exc


_OPTIMIZER_REGISTRY: dict[Task, Callable[[GradientDescentConfig], GradientDescent]] = {
    Task.CLASSIFICATION: lambda cfg: GradientDescent(LeastSquaresSVMGradient(), SquaredL2Updater(), cfg),
    Task.REGRESSION: lambda cfg: GradientDescent(LeastSquaresGradient(), SquaredL2Updater(), cfg),
}


def resolve_optimizer(task: Task, config: GradientDescentConfig | None = None) -> GradientDescent:
    if task not in _OPTIMIZER_REGISTRY:
        raise InvalidConfiguration(f"No optimizer registered for task {task!r}")
    # each optimizer owns a private copy of the config
    return _OPTIMIZER_REGISTRY[task](replace(config) if config is not None else GradientDescentConfig())
