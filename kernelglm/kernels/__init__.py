from .base import Kernel, KernelConfig
from .feature_map import FeatureMap, IdentityFeatureMap, NystromFeatureMap, apply_kernel
from .gram import EigenDecomposition, build_gram_matrix, eigen_decomposition
from .library import (
    KERNELS,
    ConstantKernel,
    LaplacianKernel,
    LinearKernel,
    PolynomialKernel,
    RBFKernel,
    create_kernel,
    registered_kernels,
)

__all__ = [
    "Kernel",
    "KernelConfig",
    "FeatureMap",
    "IdentityFeatureMap",
    "NystromFeatureMap",
    "apply_kernel",
    "EigenDecomposition",
    "build_gram_matrix",
    "eigen_decomposition",
    "KERNELS",
    "ConstantKernel",
    "LaplacianKernel",
    "LinearKernel",
    "PolynomialKernel",
    "RBFKernel",
    "create_kernel",
    "registered_kernels",
]
