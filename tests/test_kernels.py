import unittest

import numpy as np

from kernelglm.errors import DegenerateKernel, DimensionMismatch, EmptyDataset, InvalidConfiguration
from kernelglm.kernels import (
    ConstantKernel,
    KernelConfig,
    LinearKernel,
    PolynomialKernel,
    RBFKernel,
    apply_kernel,
    build_gram_matrix,
    create_kernel,
    eigen_decomposition,
)
from kernelglm.kernels.feature_map import IdentityFeatureMap
from kernelglm.kernels.gram import normalize_eigenvector_signs
from kernelglm.utilities import silence_logging


def setUpModule():
    silence_logging()


def with_bias(raw: np.ndarray) -> np.ndarray:
    return np.hstack([raw, np.ones((raw.shape[0], 1))])


def sample_points(n: int = 6, d: int = 2, seed: int = 3) -> np.ndarray:
    return np.random.default_rng(seed).standard_normal((n, d))


class TestKernelLibrary(unittest.TestCase):
    def test_rbf_values(self):
        k = RBFKernel(bandwidth=2.0)
        self.assertAlmostEqual(k.evaluate(np.zeros(2), np.zeros(2)), 1.0)
        self.assertAlmostEqual(k(np.array([0.0, 0.0]), np.array([2.0, 0.0])), np.exp(-0.5))

    def test_polynomial_values(self):
        k = PolynomialKernel(degree=2, offset=1.0)
        self.assertAlmostEqual(k.evaluate(np.array([1.0, 2.0]), np.array([3.0, 1.0])), 36.0)

    def test_invalid_hyperparameters(self):
        with self.assertRaises(InvalidConfiguration):
            RBFKernel(bandwidth=0.0)
        with self.assertRaises(InvalidConfiguration):
            PolynomialKernel(degree=1.5)
        with self.assertRaises(InvalidConfiguration):
            create_kernel("rbf", {"gamma": 1.0})
        with self.assertRaises(InvalidConfiguration):
            create_kernel("sigmoid")

    def test_with_hyperparameters_returns_new_kernel(self):
        k = RBFKernel(bandwidth=1.0)
        k2 = k.with_hyperparameters({"bandwidth": 3.0})
        self.assertEqual(k.state, {"bandwidth": 1.0})
        self.assertEqual(k2.state, {"bandwidth": 3.0})
        self.assertEqual(k2, RBFKernel(bandwidth=3.0))


class TestKernelConfig(unittest.TestCase):
    def test_fixed_parameters_cannot_be_overridden(self):
        config = KernelConfig.build(fixed=["bandwidth"], overrides={"bandwidth": 2.0})
        with self.assertRaises(InvalidConfiguration):
            config.effective_kernel(RBFKernel())

    def test_unknown_fixed_parameter(self):
        with self.assertRaises(InvalidConfiguration):
            KernelConfig.build(fixed=["degree"]).validate_for(RBFKernel())

    def test_tunable_and_overrides(self):
        kernel = PolynomialKernel(degree=2, offset=1.0)
        config = KernelConfig.build(fixed=["degree"], overrides={"offset": 0.0})
        self.assertEqual(config.tunable(kernel), ["offset"])
        self.assertFalse(config.is_tunable("degree"))
        self.assertEqual(config.effective_kernel(kernel).state, {"degree": 2.0, "offset": 0.0})
        # the input kernel is left untouched
        self.assertEqual(kernel.state["offset"], 1.0)


class TestGramAndEigen(unittest.TestCase):
    def test_gram_is_symmetric(self):
        x = sample_points()
        gram = build_gram_matrix(RBFKernel(bandwidth=1.5), x)
        self.assertEqual(gram.shape, (6, 6))
        np.testing.assert_array_equal(gram, gram.T)
        np.testing.assert_allclose(np.diag(gram), np.ones(6))

    def test_kernel_gram_matrix_delegates(self):
        x = sample_points(n=4)
        kernel = RBFKernel(bandwidth=1.5)
        np.testing.assert_array_equal(kernel.gram_matrix(x), build_gram_matrix(kernel, x))

    def test_gram_uses_config_overrides(self):
        x = sample_points(n=3)
        config = KernelConfig.build(overrides={"bandwidth": 0.5})
        np.testing.assert_allclose(
            build_gram_matrix(RBFKernel(), x, config),
            build_gram_matrix(RBFKernel(bandwidth=0.5), x),
        )

    def test_gram_rejects_empty_and_ragged_input(self):
        with self.assertRaises(EmptyDataset):
            build_gram_matrix(RBFKernel(), [])
        with self.assertRaises(DimensionMismatch):
            build_gram_matrix(RBFKernel(), [np.ones(2), np.ones(3)])

    def test_eigenvalues_descending_and_above_threshold(self):
        gram = build_gram_matrix(RBFKernel(), sample_points(n=8))
        decomposition = eigen_decomposition(gram)
        vals = decomposition.eigenvalues
        self.assertTrue(np.all(np.diff(vals) <= 0))
        self.assertTrue(np.all(vals > decomposition.threshold))
        self.assertLessEqual(decomposition.rank, 8)

    def test_sign_normalization(self):
        vecs = np.array([[0.6, -0.1], [-0.8, -0.9]])
        normalized = normalize_eigenvector_signs(vecs)
        np.testing.assert_allclose(normalized, [[-0.6, 0.1], [0.8, 0.9]])

    def test_explicit_threshold_drops_components(self):
        gram = np.diag([3.0, 2.0, 1e-3])
        decomposition = eigen_decomposition(gram, threshold=0.01)
        np.testing.assert_allclose(decomposition.eigenvalues, [3.0, 2.0])

    def test_invalid_explicit_threshold(self):
        collinear = np.array([[1.0, 2.0], [2.0, 4.0], [3.0, 6.0]])
        gram = build_gram_matrix(LinearKernel(), collinear)
        for bad in [-1.0, float("nan"), float("inf")]:
            with self.assertRaises(InvalidConfiguration):
                eigen_decomposition(gram, threshold=bad)
        with self.assertRaises(InvalidConfiguration):
            apply_kernel(LinearKernel(), with_bias(collinear), threshold=-1.0)

        # a zero threshold keeps only strictly positive components
        decomposition = eigen_decomposition(np.diag([2.0, 0.0, -1e-16]), threshold=0.0)
        np.testing.assert_allclose(decomposition.eigenvalues, [2.0])

    def test_degenerate_kernel(self):
        gram = build_gram_matrix(LinearKernel(offset=0.0), np.zeros((4, 2)))
        with self.assertRaises(DegenerateKernel):
            eigen_decomposition(gram)


class TestApplyKernel(unittest.TestCase):
    def test_constant_kernel_is_rank_one(self):
        design = with_bias(sample_points(n=5))
        feature_map, mapped = apply_kernel(ConstantKernel(value=2.0), design)
        self.assertEqual(feature_map.rank, 1)
        self.assertEqual(mapped.shape, (5, 2))
        np.testing.assert_allclose(mapped[:, 1], np.ones(5))

    def test_support_vectors_reproduce_mapped_rows(self):
        raw = sample_points(n=7, d=3)
        feature_map, mapped = apply_kernel(RBFKernel(bandwidth=1.0), with_bias(raw))
        for i, row in enumerate(raw):
            np.testing.assert_allclose(feature_map(row), mapped[i, :-1], atol=1e-8)
        np.testing.assert_allclose(feature_map.map_rows(raw), mapped[:, :-1], atol=1e-8)

    def test_mapped_inner_products_approximate_gram(self):
        raw = sample_points(n=6)
        kernel = RBFKernel(bandwidth=1.0)
        _, mapped = apply_kernel(kernel, with_bias(raw))
        phi = mapped[:, :-1]
        np.testing.assert_allclose(phi @ phi.T, build_gram_matrix(kernel, raw), atol=1e-6)

    def test_rebuilt_map_matches_up_to_normalized_sign(self):
        design = with_bias(sample_points(n=6))
        _, first = apply_kernel(RBFKernel(bandwidth=0.8), design)
        _, second = apply_kernel(RBFKernel(bandwidth=0.8), design.copy())
        np.testing.assert_allclose(first, second, atol=1e-10)

    def test_out_of_sample_dimension_check(self):
        feature_map, _ = apply_kernel(RBFKernel(), with_bias(sample_points(n=4, d=2)))
        with self.assertRaises(DimensionMismatch):
            feature_map(np.ones(3))

    def test_output_dim(self):
        self.assertEqual(IdentityFeatureMap().output_dim(3), 3)
        feature_map, mapped = apply_kernel(RBFKernel(), with_bias(sample_points(n=5, d=2)))
        self.assertEqual(feature_map.output_dim(2), feature_map.rank)
        self.assertEqual(mapped.shape[1], feature_map.output_dim(2) + 1)

    def test_identity_map_copies(self):
        x = np.array([1.0, 2.0])
        out = IdentityFeatureMap()(x)
        out[0] = 5.0
        self.assertEqual(x[0], 1.0)


if __name__ == "__main__":
    unittest.main()
