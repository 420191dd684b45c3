from __future__ import annotations


class KernelGLMError(Exception):
    """Base class for failures raised by the training and kernel core."""


class InvalidConfiguration(KernelGLMError, ValueError):
    pass


class DimensionMismatch(KernelGLMError, ValueError):
    pass


class DegenerateKernel(KernelGLMError, ArithmeticError):
    pass


class EmptyDataset(KernelGLMError, ValueError):
    pass


def check_same_length(name_a: str, a_len: int, name_b: str, b_len: int) -> None:
    if a_len != b_len:
        raise DimensionMismatch(f"{name_a} length ({a_len}) does not match {name_b} length ({b_len})")
