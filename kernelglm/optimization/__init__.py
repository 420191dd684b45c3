from .gradient_descent import GradientDescent, GradientDescentConfig
from .gradients import (
    GRADIENTS,
    HingeGradient,
    LeastSquaresGradient,
    LeastSquaresSVMGradient,
    LogisticGradient,
    LossGradient,
    ProbitGradient,
    create_gradient,
)
from .updaters import UPDATERS, L1Updater, SimpleUpdater, SquaredL2Updater, Updater, create_updater

__all__ = [
    "GradientDescent",
    "GradientDescentConfig",
    "GRADIENTS",
    "HingeGradient",
    "LeastSquaresGradient",
    "LeastSquaresSVMGradient",
    "LogisticGradient",
    "LossGradient",
    "ProbitGradient",
    "create_gradient",
    "UPDATERS",
    "L1Updater",
    "SimpleUpdater",
    "SquaredL2Updater",
    "Updater",
    "create_updater",
]
