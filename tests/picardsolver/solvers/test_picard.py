########################################################################################
##
##                                  TESTS FOR
##                              'solvers/picard.py'
##
########################################################################################

# IMPORTS ==============================================================================

import unittest
import numpy as np

from unittest import mock

from picardsolver.solvers.picard import PicardSolver
from picardsolver.solvers.assembler import CallableAssembler
from picardsolver.solvers.linear import DirectLinearSolver
from picardsolver.solvers._interfaces import FactorizationScheme

from picardsolver.config import SolverConfig
from picardsolver.result import PicardResult, TerminationReason
from picardsolver.exceptions import (
    ConfigurationError,
    LinearSolveFailed,
    MaxIterationsExceeded
    )

from picardsolver._constants import (
    PICARD_TOLERANCE,
    PICARD_ITERATIONS_MAX,
    OPT_HISTORY,
    OPT_BETA
    )


# HELPERS ==============================================================================

def scalar_map():
    """x = 0.5 * x + 3 in picard form, fixed point at 6"""
    return CallableAssembler(jac=1.0, rhs=lambda x: 0.5 * x + 3.0, ndof=1)


class RecordingLinearSolver(DirectLinearSolver):
    """Direct solver that records the factorization hints and
    can be told to fail in a given call"""

    def __init__(self, fail_at=None, fail_with=None):
        super().__init__()
        self.schemes = []
        self.fail_at = fail_at
        self.fail_with = fail_with

    def solve(self, jacobian, residual):
        self.schemes.append(self.factorization_scheme)
        if self.fail_at is not None and len(self.schemes) >= self.fail_at:
            if self.fail_with is not None:
                raise self.fail_with
            return None
        return super().solve(jacobian, residual)


class HookedPicardSolver(PicardSolver):
    """Records hook calls and keeps a handle to the history of the solve"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []
        self.histories = []

    def on_initialization(self):
        self.calls.append("init")
        if self._workspace.history is not None:
            self.histories.append(self._workspace.history)

    def on_step_begin(self):
        self.calls.append("begin")

    def on_step_end(self):
        self.calls.append("end")

    def on_finish(self):
        self.calls.append("finish")


# TESTS ================================================================================

class TestPicardSolverConfig(unittest.TestCase):
    """
    Test configuration handling of the 'PicardSolver' class
    """

    def test_init_default(self):

        S = PicardSolver(scalar_map(), log=False)

        self.assertIsInstance(S.linear_solver, DirectLinearSolver)
        self.assertIsInstance(S.config, SolverConfig)
        self.assertEqual(S.config.tol, PICARD_TOLERANCE)
        self.assertEqual(S.config.max_iter, PICARD_ITERATIONS_MAX)
        self.assertEqual(S.config.num_last_vectors_used, OPT_HISTORY)
        self.assertEqual(S.config.anderson_beta, OPT_BETA)
        self.assertFalse(S.config.anderson_is_on)
        self.assertFalse(S.config.constant_jacobian)
        self.assertIsNone(S.sln_vector)
        self.assertIsNone(S.result)


    def test_init_settings(self):

        S = PicardSolver(scalar_map(), log=False, tol=1e-8, max_iter=10, anderson_is_on=True)

        self.assertEqual(S.config.tol, 1e-8)
        self.assertEqual(S.config.max_iter, 10)
        self.assertTrue(S.config.anderson_is_on)


    def test_init_invalid(self):

        with self.assertRaises(ConfigurationError):
            PicardSolver(scalar_map(), num_last_vectors_used=0)

        with self.assertRaises(ConfigurationError):
            PicardSolver(scalar_map(), num_last_vectors_used=1, anderson_is_on=True)


    def test_configure(self):

        S = PicardSolver(scalar_map(), log=False)
        cfg = S.configure(tol=1e-6, num_last_vectors_used=4, anderson_is_on=True)

        self.assertIs(cfg, S.config)
        self.assertEqual(S.config.tol, 1e-6)
        self.assertEqual(S.config.num_last_vectors_used, 4)
        self.assertTrue(S.config.anderson_is_on)

        #untouched settings kept
        self.assertEqual(S.config.max_iter, PICARD_ITERATIONS_MAX)


    def test_configure_invalid_keeps_old(self):

        S = PicardSolver(scalar_map(), log=False, anderson_is_on=True)
        old = S.config

        with self.assertRaises(ConfigurationError):
            S.configure(num_last_vectors_used=1)

        with self.assertRaises(ConfigurationError):
            S.configure(unknown_setting=3)

        self.assertIs(S.config, old)


    def test_history_depth_one_without_anderson(self):

        S = PicardSolver(scalar_map(), log=False, num_last_vectors_used=1)
        self.assertEqual(S.config.num_last_vectors_used, 1)

        with self.assertRaises(ConfigurationError):
            S.use_Anderson_acceleration(True)


    def test_setters(self):

        S = PicardSolver(scalar_map(), log=False)

        S.set_picard_tol(1e-3)
        S.set_picard_max_iter(7)
        S.set_num_last_vector_used(5)
        S.set_anderson_beta(0.7)
        S.use_Anderson_acceleration(True)
        S.set_constant_jacobian(True)

        self.assertEqual(S.config, SolverConfig(
            tol=1e-3,
            max_iter=7,
            num_last_vectors_used=5,
            anderson_beta=0.7,
            anderson_is_on=True,
            constant_jacobian=True
            ))


class TestPicardSolverScalar(unittest.TestCase):
    """
    Test the picard iteration on the scalar map x = 0.5 * x + 3
    """

    def test_plain_sequence(self):

        seen = []
        S = PicardSolver(
            scalar_map(),
            log=False,
            tol=1e-6,
            callback=lambda it, x, err: seen.append(x[0])
            )

        result = S.solve(np.zeros(1))

        np.testing.assert_allclose(seen[:4], [3.0, 4.5, 5.25, 5.625])

        self.assertIsInstance(result, PicardResult)
        self.assertTrue(result.converged)
        self.assertEqual(result.reason, TerminationReason.CONVERGED)
        self.assertEqual(result.iterations, 20)
        self.assertLess(abs(result.x[0] - 6.0), 1e-5)
        self.assertLess(result.error, 1e-6)
        self.assertEqual(len(result.errors), 20)
        np.testing.assert_array_equal(S.get_sln_vector(), result.x)


    def test_no_initial_guess_starts_from_zero(self):

        seen = []
        S = PicardSolver(
            scalar_map(),
            log=False,
            tol=1e-6,
            callback=lambda it, x, err: seen.append(x[0])
            )
        result = S.solve()

        self.assertEqual(seen[0], 3.0)
        self.assertTrue(result.converged)


    def test_ndof_from_solver(self):

        A = CallableAssembler(jac=1.0, rhs=lambda x: 0.5 * x + 3.0)
        S = PicardSolver(A, ndof=1, log=False)

        self.assertTrue(S.solve().converged)


    def test_ndof_unknown(self):

        A = CallableAssembler(jac=1.0, rhs=lambda x: 0.5 * x + 3.0)
        S = PicardSolver(A, log=False)

        with self.assertRaises(ValueError):
            S.solve()


    def test_anderson_accelerates(self):

        plain = PicardSolver(scalar_map(), log=False, tol=1e-6).solve()

        S = PicardSolver(
            scalar_map(),
            log=False,
            tol=1e-6,
            anderson_is_on=True,
            num_last_vectors_used=3,
            anderson_beta=1.0
            )
        result = S.solve()

        self.assertTrue(result.converged)
        self.assertLess(result.iterations, plain.iterations)
        self.assertAlmostEqual(result.x[0], 6.0, places=10)


    def test_anderson_two_vectors_is_plain(self):

        #M=2 and beta=1 reproduces the plain iteration
        plain = PicardSolver(scalar_map(), log=False, tol=1e-6).solve()
        result = PicardSolver(
            scalar_map(),
            log=False,
            tol=1e-6,
            anderson_is_on=True,
            num_last_vectors_used=2
            ).solve()

        self.assertEqual(result.iterations, plain.iterations)
        np.testing.assert_allclose(result.x, plain.x)


    def test_max_iter_one(self):

        S = PicardSolver(scalar_map(), log=False, tol=1e-9, max_iter=1)
        result = S.solve()

        self.assertFalse(result.converged)
        self.assertFalse(result)
        self.assertEqual(result.reason, TerminationReason.MAX_ITERATIONS_EXCEEDED)
        self.assertEqual(result.iterations, 1)
        self.assertEqual(result.x[0], 3.0)
        self.assertEqual(S.get_sln_vector()[0], 3.0)

        #exception keeps the partial result
        with self.assertRaises(MaxIterationsExceeded) as ctx:
            result.unwrap()

        self.assertIs(ctx.exception.result, result)
        self.assertEqual(ctx.exception.result.x[0], 3.0)


    def test_max_iter_reached(self):

        result = PicardSolver(scalar_map(), log=False, tol=1e-12, max_iter=5).solve()

        self.assertEqual(result.reason, TerminationReason.MAX_ITERATIONS_EXCEEDED)
        self.assertEqual(result.iterations, 5)
        self.assertAlmostEqual(result.x[0], 6.0 * (1.0 - 0.5**5))


    def test_unwrap_converged(self):

        result = PicardSolver(scalar_map(), log=False, tol=1e-6).solve()
        np.testing.assert_array_equal(result.unwrap(), result.x)


    def test_already_at_fixed_point(self):

        result = PicardSolver(scalar_map(), log=False).solve([6.0])

        self.assertTrue(result.converged)
        self.assertEqual(result.iterations, 1)
        self.assertAlmostEqual(result.error, 0.0)


    def test_zero_fixed_point_from_zero(self):

        A = CallableAssembler(jac=np.eye(3), rhs=lambda x: 0.5 * x, ndof=3)
        result = PicardSolver(A, log=False).solve()

        self.assertTrue(result.converged)
        self.assertEqual(result.iterations, 1)
        self.assertEqual(result.error, 0.0)


    def test_initial_guess_not_modified(self):

        x0 = np.array([1.0])
        PicardSolver(scalar_map(), log=False).solve(x0)

        self.assertEqual(x0[0], 1.0)


class TestPicardSolverFactorization(unittest.TestCase):
    """
    Test the factorization reuse hints
    """

    def test_schemes_default(self):

        L = RecordingLinearSolver()
        result = PicardSolver(scalar_map(), L, log=False, tol=1e-6).solve()

        self.assertEqual(len(L.schemes), result.iterations)
        self.assertEqual(L.schemes[0], FactorizationScheme.FACTORIZE_FROM_SCRATCH)
        for s in L.schemes[1:]:
            self.assertEqual(s, FactorizationScheme.REUSE_MATRIX_REORDERING_AND_SCALING)


    def test_schemes_constant_jacobian(self):

        A = scalar_map()
        L = RecordingLinearSolver()
        result = PicardSolver(A, L, log=False, tol=1e-6, constant_jacobian=True).solve()

        self.assertEqual(L.schemes[0], FactorizationScheme.FACTORIZE_FROM_SCRATCH)
        for s in L.schemes[1:]:
            self.assertEqual(s, FactorizationScheme.REUSE_FACTORIZATION_COMPLETELY)

        #jacobian assembled and factorized once
        self.assertEqual(A.n_jac, 1)
        self.assertEqual(A.n_rhs, result.iterations)
        self.assertEqual(L.n_factorizations, 1)


    def test_schemes_reset_per_solve(self):

        L = RecordingLinearSolver()
        S = PicardSolver(scalar_map(), L, log=False, constant_jacobian=True, max_iter=3, tol=1e-12)

        S.solve()
        S.solve()

        self.assertEqual(L.schemes[3], FactorizationScheme.FACTORIZE_FROM_SCRATCH)


    def test_reuse_does_not_change_result(self):

        A = CallableAssembler(
            jac=np.array([[4.0, 1.0], [1.0, 3.0]]),
            rhs=lambda x: np.array([1.0, 2.0]) + np.sin(x),
            ndof=2
            )

        a = PicardSolver(A, log=False, tol=1e-10).solve()
        b = PicardSolver(A, log=False, tol=1e-10, constant_jacobian=True).solve()

        self.assertEqual(a.iterations, b.iterations)
        np.testing.assert_allclose(a.x, b.x, rtol=1e-13)


class TestPicardSolverFailures(unittest.TestCase):
    """
    Test failure handling and release of the per solve buffers
    """

    def test_linear_solve_failure(self):

        L = RecordingLinearSolver(fail_at=3)
        S = HookedPicardSolver(scalar_map(), L, log=False, anderson_is_on=True, tol=1e-12)

        with self.assertRaises(LinearSolveFailed) as ctx:
            S.solve()

        self.assertEqual(ctx.exception.iteration, 3)

        #buffers released, solver reusable
        self.assertTrue(S.histories[0].released)
        self.assertIsNone(S._workspace)
        self.assertEqual(S.calls[-1], "finish")

        #last good iterate retained
        self.assertEqual(S.result.reason, TerminationReason.LINEAR_SOLVE_FAILED)
        self.assertEqual(S.result.iterations, 3)
        np.testing.assert_allclose(S.get_sln_vector(), [6.0])


    def test_linear_solver_raises(self):

        L = RecordingLinearSolver(fail_at=1, fail_with=np.linalg.LinAlgError("singular"))
        S = PicardSolver(scalar_map(), L, log=False)

        with self.assertRaises(LinearSolveFailed) as ctx:
            S.solve()

        self.assertEqual(ctx.exception.iteration, 1)
        self.assertIsInstance(ctx.exception.__cause__, np.linalg.LinAlgError)


    def test_linear_solver_raises_without_iteration(self):

        L = RecordingLinearSolver(fail_at=2, fail_with=LinearSolveFailed())
        S = PicardSolver(scalar_map(), L, log=False)

        with self.assertRaises(LinearSolveFailed) as ctx:
            S.solve()

        self.assertEqual(ctx.exception.iteration, 2)


    def test_singular_jacobian(self):

        A = CallableAssembler(jac=0.0, rhs=lambda x: x + 1.0, ndof=1)

        with self.assertRaises(LinearSolveFailed):
            PicardSolver(A, log=False).solve()


    def test_unwrap_after_linear_solve_failure(self):

        A = CallableAssembler(jac=np.zeros((1, 1)), rhs=lambda x: x + 1.0, ndof=1)
        S = PicardSolver(A, log=False)

        with self.assertRaises(LinearSolveFailed):
            S.solve()

        self.assertEqual(S.result.reason, TerminationReason.LINEAR_SOLVE_FAILED)

        #stored result reports the linear solve failure, not the iteration limit
        with self.assertRaises(LinearSolveFailed) as ctx:
            S.result.unwrap()

        self.assertNotIsInstance(ctx.exception, MaxIterationsExceeded)
        self.assertEqual(ctx.exception.iteration, 1)


    def test_wrong_solution_size(self):

        L = mock.Mock()
        L.solve.return_value = np.ones(3)
        S = PicardSolver(scalar_map(), L, log=False)

        with self.assertRaises(ValueError):
            S.solve()

        self.assertIsNone(S._workspace)


    def test_release_on_converged(self):

        S = HookedPicardSolver(scalar_map(), log=False, anderson_is_on=True)
        self.assertTrue(S.solve().converged)

        self.assertTrue(S.histories[0].released)
        self.assertIsNone(S._workspace)


    def test_release_on_max_iter(self):

        S = HookedPicardSolver(scalar_map(), log=False, anderson_is_on=True, max_iter=1, tol=1e-9)
        self.assertFalse(S.solve().converged)

        self.assertTrue(S.histories[0].released)
        self.assertIsNone(S._workspace)


    def test_release_on_assembler_error(self):

        A = CallableAssembler(jac=1.0, rhs=mock.Mock(side_effect=KeyError("boom")), ndof=1)
        S = HookedPicardSolver(A, log=False, anderson_is_on=True)

        with self.assertRaises(KeyError):
            S.solve()

        self.assertTrue(S.histories[0].released)
        self.assertEqual(S.calls[-1], "finish")


    def test_no_history_without_anderson(self):

        S = HookedPicardSolver(scalar_map(), log=False)
        S.solve()

        self.assertEqual(S.histories, [])


    def test_not_reentrant(self):

        S = PicardSolver(scalar_map(), log=False)

        def nested(it, x, err):
            S.solve()

        S.callback = nested

        with self.assertRaises(RuntimeError):
            S.solve()

        #usable again
        S.callback = None
        self.assertTrue(S.solve().converged)


class TestPicardSolverHooks(unittest.TestCase):
    """
    Test hooks, callback, logging and the configuration snapshot
    """

    def test_hook_order(self):

        S = HookedPicardSolver(scalar_map(), log=False, max_iter=2, tol=1e-12)
        S.solve()

        self.assertEqual(
            S.calls,
            ["init", "begin", "end", "begin", "end", "finish"]
            )


    def test_callback(self):

        calls = []
        S = PicardSolver(
            scalar_map(),
            log=False,
            max_iter=3,
            tol=1e-12,
            callback=lambda it, x, err: calls.append((it, x[0], err))
            )
        result = S.solve()

        self.assertEqual([c[0] for c in calls], [1, 2, 3])
        self.assertEqual([c[2] for c in calls], result.errors)


    def test_config_snapshot(self):

        S = PicardSolver(scalar_map(), log=False, tol=1e-6)

        def change(it, x, err):
            S.configure(max_iter=1)

        S.callback = change
        result = S.solve()

        #the running solve is unaffected
        self.assertTrue(result.converged)
        self.assertEqual(result.iterations, 20)
        self.assertEqual(S.config.max_iter, 1)


    def test_logging(self):

        S = PicardSolver(scalar_map(), tol=1e-6, constant_jacobian=True)

        with self.assertLogs("picardsolver.picard", level="INFO") as logs:
            S.solve()

        out = "\n".join(logs.output)

        self.assertIn("starting from zero vector", out)
        self.assertIn("relative error", out)
        self.assertIn("reusing jacobian", out)
        self.assertIn("solution duration", out)


    def test_logging_disabled(self):

        S = PicardSolver(scalar_map(), log=False)
        S.logger = mock.Mock()
        S.solve()

        S.logger.info.assert_not_called()


    def test_duration(self):

        result = PicardSolver(scalar_map(), log=False).solve()

        self.assertGreaterEqual(result.duration, 0.0)
        self.assertEqual(result.to_dict()["niter"], result.iterations)


class TestPicardSolverVector(unittest.TestCase):
    """
    Test the picard iteration on small vector valued problems
    """

    def test_nonlinear_scaling(self):

        #(1 + 0.1 |x|^2) x = b
        b = np.array([1.0, 2.0])
        A = CallableAssembler(
            jac=lambda x: (1.0 + 0.1 * np.dot(x, x)) * np.eye(2),
            rhs=b,
            ndof=2
            )

        for anderson in [False, True]:
            result = PicardSolver(A, log=False, tol=1e-10, anderson_is_on=anderson).solve()
            x = result.x

            self.assertTrue(result.converged)
            np.testing.assert_allclose((1.0 + 0.1 * np.dot(x, x)) * x, b, atol=1e-8)


    def test_anderson_damped(self):

        b = np.array([1.0, 2.0])
        A = CallableAssembler(
            jac=lambda x: (1.0 + 0.1 * np.dot(x, x)) * np.eye(2),
            rhs=b,
            ndof=2
            )

        result = PicardSolver(
            A,
            log=False,
            tol=1e-10,
            anderson_is_on=True,
            num_last_vectors_used=4,
            anderson_beta=0.8
            ).solve()

        x = result.x
        self.assertTrue(result.converged)
        np.testing.assert_allclose((1.0 + 0.1 * np.dot(x, x)) * x, b, atol=1e-8)


    def test_complex(self):

        J = np.array([[2.0, 1.0j], [-1.0j, 3.0]])
        b0 = np.array([1.0, 1.0j])
        A = CallableAssembler(jac=J, rhs=lambda x: b0 + 0.1 * x, ndof=2)

        x_ref = np.linalg.solve(J - 0.1 * np.eye(2), b0)

        for anderson in [False, True]:
            result = PicardSolver(A, log=False, tol=1e-12, anderson_is_on=anderson).solve()

            self.assertTrue(result.converged)
            self.assertTrue(np.iscomplexobj(result.x))
            np.testing.assert_allclose(result.x, x_ref, atol=1e-10)


# RUN TESTS LOCALLY ====================================================================

if __name__ == '__main__':
    unittest.main(verbosity=2)
