import unittest

import numpy as np
from scipy.stats import norm

from kernelglm.errors import DimensionMismatch, EmptyDataset, InvalidConfiguration
from kernelglm.optimization import (
    GRADIENTS,
    GradientDescent,
    GradientDescentConfig,
    HingeGradient,
    L1Updater,
    LeastSquaresGradient,
    LogisticGradient,
    ProbitGradient,
    SimpleUpdater,
    SquaredL2Updater,
    create_gradient,
    create_updater,
)
from kernelglm.utilities import silence_logging


SCENARIO_A_ROWS = [
    [0.0, 0.0, 0.0],
    [1.0, 0.0, 1.0],
    [0.0, 1.0, 1.0],
    [1.0, 1.0, 2.0],
]


def setUpModule():
    silence_logging()


def scenario_a_pairs() -> list[tuple[np.ndarray, float]]:
    return [(np.array([r[0], r[1], 1.0]), r[2]) for r in SCENARIO_A_ROWS]


class TestLossGradients(unittest.TestCase):
    def test_pure_and_accumulating_variants_agree(self):
        rng = np.random.default_rng(7)
        for name in sorted(GRADIENTS):
            strategy = create_gradient(name)
            for _ in range(20):
                x = np.append(rng.standard_normal(4), 1.0)
                w = rng.standard_normal(5)
                label = float(rng.choice([-1.0, 0.0, 1.0])) if name != "hinge" else float(rng.choice([0.0, 1.0]))

                gradient, loss = strategy.compute(x, label, w)
                acc = np.full(5, 0.25)
                acc_loss = strategy.compute_into(x, label, w, acc)

                np.testing.assert_allclose(acc - 0.25, gradient, rtol=1e-9, atol=1e-12, err_msg=name)
                self.assertAlmostEqual(acc_loss, loss, delta=1e-9 * max(1.0, abs(loss)), msg=name)

    def test_hinge_zero_gradient_when_margin_satisfied(self):
        hinge = HingeGradient()
        x = np.array([1.0, 2.0, 1.0])
        w = np.array([1.0, 1.0, 0.0])  # dot = 3, label 1 -> scaled margin 3 >= 1
        gradient, loss = hinge.compute(x, 1.0, w)
        self.assertEqual(gradient.shape, (3,))
        self.assertTrue(np.array_equal(gradient, np.zeros(3)))
        self.assertEqual(loss, 0.0)

        acc = np.zeros(3)
        self.assertEqual(hinge.compute_into(x, 1.0, w, acc), 0.0)
        self.assertTrue(np.array_equal(acc, np.zeros(3)))

        # exactly on the margin still counts as satisfied
        gradient, loss = hinge.compute(np.array([1.0, 0.0]), 0.0, np.array([-1.0, 0.0]))
        self.assertTrue(np.array_equal(gradient, np.zeros(2)))
        self.assertEqual(loss, 0.0)

    def test_hinge_violation(self):
        gradient, loss = HingeGradient().compute(np.array([1.0, 1.0]), 0.0, np.array([0.5, 0.0]))
        np.testing.assert_allclose(gradient, [1.0, 1.0])
        self.assertAlmostEqual(loss, 1.5)

    def test_logistic_is_stable_for_large_margins(self):
        logistic = LogisticGradient()
        x = np.array([1.0, 1.0])
        w = np.array([500.0, 500.0])
        gradient, loss_neg = logistic.compute(x, 0.0, w)
        self.assertTrue(np.isfinite(loss_neg))
        self.assertAlmostEqual(loss_neg, 1000.0)
        np.testing.assert_allclose(gradient, [1.0, 1.0])

        _, loss_pos = logistic.compute(x, 1.0, w)
        self.assertAlmostEqual(loss_pos, 0.0)

    def test_probit_values_at_moderate_margin(self):
        probit = ProbitGradient()
        x = np.array([1.0, 0.0])
        w = np.array([0.5, 3.0])
        gradient, loss = probit.compute(x, 1.0, w)
        np.testing.assert_allclose(gradient, [norm.pdf(0.5) / norm.cdf(0.5), 0.0], rtol=1e-9)
        self.assertAlmostEqual(loss, norm.sf(0.5))

        gradient, loss = probit.compute(x, 0.0, w)
        np.testing.assert_allclose(gradient, [norm.pdf(0.5) / norm.sf(0.5), 0.0], rtol=1e-9)
        self.assertAlmostEqual(loss, norm.sf(0.5))

    def test_probit_is_finite_in_the_far_tails(self):
        probit = ProbitGradient()
        x = np.array([1.0])
        for margin in [-60.0, -38.5, 38.5, 60.0]:
            for label in [0.0, 1.0]:
                gradient, loss = probit.compute(x, label, np.array([margin]))
                self.assertTrue(np.all(np.isfinite(gradient)), msg=(margin, label))
                self.assertTrue(np.isfinite(loss), msg=(margin, label))

        # the ratio approaches |margin| on the side where the tail vanishes
        gradient, _ = probit.compute(x, 1.0, np.array([-60.0]))
        self.assertAlmostEqual(gradient[0], 60.0, delta=0.1)
        gradient, _ = probit.compute(x, 0.0, np.array([60.0]))
        self.assertAlmostEqual(gradient[0], 60.0, delta=0.1)

        acc = np.zeros(1)
        probit.compute_into(x, 1.0, np.array([-60.0]), acc)
        self.assertTrue(np.isfinite(acc[0]))

    def test_least_squares_values(self):
        gradient, loss = LeastSquaresGradient().compute(np.array([2.0, 1.0]), 3.0, np.array([1.0, 0.0]))
        np.testing.assert_allclose(gradient, [-2.0, -1.0])
        self.assertAlmostEqual(loss, 0.5)

    def test_dimension_mismatch(self):
        with self.assertRaises(DimensionMismatch):
            LeastSquaresGradient().compute(np.ones(3), 1.0, np.ones(2))
        with self.assertRaises(DimensionMismatch):
            LeastSquaresGradient().compute_into(np.ones(2), 1.0, np.ones(2), np.zeros(3))

    def test_unknown_gradient(self):
        with self.assertRaises(InvalidConfiguration):
            create_gradient("does_not_exist")


class TestUpdaters(unittest.TestCase):
    def test_squared_l2_decay_and_loss(self):
        new, reg_loss = SquaredL2Updater().compute(np.array([1.0, 1.0]), np.zeros(2), 1.0, 0.5, 1)
        np.testing.assert_allclose(new, [0.5, 0.5])
        self.assertAlmostEqual(reg_loss, 0.25)

        # step size decays as step / sqrt(iteration)
        new, _ = SquaredL2Updater().compute(np.array([1.0]), np.array([1.0]), 0.0, 0.5, 4)
        np.testing.assert_allclose(new, [0.75])

    def test_l1_soft_thresholds(self):
        new, reg_loss = L1Updater().compute(np.array([1.0, -1.0, 0.1]), np.zeros(3), 1.0, 0.5, 1)
        np.testing.assert_allclose(new, [0.5, -0.5, 0.0])
        self.assertAlmostEqual(reg_loss, 1.0)

    def test_simple_updater_has_no_penalty(self):
        new, reg_loss = SimpleUpdater().compute(np.array([1.0]), np.array([2.0]), 10.0, 0.1, 1)
        np.testing.assert_allclose(new, [0.8])
        self.assertEqual(reg_loss, 0.0)

    def test_registry(self):
        self.assertIsInstance(create_updater("l2"), SquaredL2Updater)
        with self.assertRaises(InvalidConfiguration):
            create_updater("l3")


class TestGradientDescent(unittest.TestCase):
    def test_zero_iterations_is_invalid(self):
        gd = GradientDescent(LeastSquaresGradient(), SquaredL2Updater(), GradientDescentConfig(num_iterations=0))
        with self.assertRaises(InvalidConfiguration):
            gd.optimize(np.ones(3), scenario_a_pairs())

    def test_non_positive_step_size_is_not_coerced(self):
        for step in [0.0, -0.1]:
            gd = GradientDescent(LeastSquaresGradient(), SquaredL2Updater()).set_step_size(step)
            with self.assertRaises(InvalidConfiguration):
                gd.optimize(np.ones(3), scenario_a_pairs())
            self.assertEqual(gd.config.step_size, step)

    def test_negative_reg_param_is_invalid(self):
        with self.assertRaises(InvalidConfiguration):
            GradientDescentConfig(reg_param=-1.0).validate()

    def test_empty_dataset(self):
        gd = GradientDescent(LeastSquaresGradient(), SquaredL2Updater())
        with self.assertRaises(EmptyDataset):
            gd.optimize(np.ones(3), [])

    def test_dimension_mismatch(self):
        gd = GradientDescent(LeastSquaresGradient(), SquaredL2Updater())
        with self.assertRaises(DimensionMismatch):
            gd.optimize(np.ones(2), scenario_a_pairs())

    def test_least_squares_recovers_plane(self):
        config = GradientDescentConfig(num_iterations=500, step_size=1.0, reg_param=0.0)
        gd = GradientDescent(LeastSquaresGradient(), SquaredL2Updater(), config)
        weights = gd.optimize(np.ones(3), scenario_a_pairs())
        np.testing.assert_allclose(weights, [1.0, 1.0, 0.0], atol=0.05)

    def test_small_step_runs_every_iteration_and_decreases_loss(self):
        config = GradientDescentConfig(num_iterations=200, step_size=0.01, reg_param=0.0)
        gd = GradientDescent(LeastSquaresGradient(), SquaredL2Updater(), config)
        gd.optimize(np.ones(3), scenario_a_pairs())
        self.assertEqual(gd.iterations_run, 200)
        self.assertEqual(len(gd.loss_history), 200)
        self.assertTrue(all(b <= a for a, b in zip(gd.loss_history, gd.loss_history[1:])))

    def test_convergence_tolerance_stops_early(self):
        # bias already optimal and the only feature is zero, so the loss is flat
        pairs = [(np.array([0.0, 1.0]), 0.0), (np.array([0.0, 1.0]), 2.0)]
        config = GradientDescentConfig(num_iterations=50, step_size=0.1, convergence_tol=1e-6)
        gd = GradientDescent(LeastSquaresGradient(), SimpleUpdater(), config)
        weights = gd.optimize(np.ones(2), pairs)
        self.assertEqual(gd.iterations_run, 2)
        np.testing.assert_allclose(weights, [1.0, 1.0])

    def test_inputs_are_not_mutated(self):
        initial = np.ones(3)
        pairs = scenario_a_pairs()
        before = [x.copy() for x, _ in pairs]
        GradientDescent(LeastSquaresGradient(), SquaredL2Updater()).optimize(initial, pairs)
        np.testing.assert_array_equal(initial, np.ones(3))
        for x, (after, _) in zip(before, pairs):
            np.testing.assert_array_equal(x, after)

    def test_updater_is_swappable(self):
        config = GradientDescentConfig(num_iterations=50, step_size=0.5, reg_param=0.01)
        for updater in [SimpleUpdater(), SquaredL2Updater(), L1Updater()]:
            gd = GradientDescent(LeastSquaresGradient(), updater, config)
            weights = gd.optimize(np.ones(3), scenario_a_pairs())
            self.assertEqual(weights.shape, (3,))
            self.assertLess(gd.loss_history[-1], gd.loss_history[0])


if __name__ == "__main__":
    unittest.main()
