"""Tests for the Newton solver."""

import jax.numpy as jnp
import numpy as np
import pytest

from numroot.config import NewtonSettings
from numroot.solvers import (
    DivergenceError,
    EvaluationError,
    MaxIterationsExceeded,
    NewtonSolver,
    SingularJacobianError,
    newton_solve,
)


def arctan_residual(x):
    return np.arctan(x)


def arctan_jacobian(x):
    return np.array([[1.0 / (1.0 + x[0] ** 2)]])


def exp_residual(x):
    with np.errstate(over="ignore"):
        return np.exp(x) - 1.0


def exp_jacobian(x):
    with np.errstate(over="ignore"):
        return np.array([[np.exp(x[0])]])


class TestNewtonSolver:
    """Convergence on well-posed systems."""

    def test_analytic_jacobian(self, nonlinear_system):
        F, J = nonlinear_system
        solver = NewtonSolver(F, J, ftol=1e-12)
        result = solver.solve([5.0, 2.0])

        np.testing.assert_allclose(result.x, [6.0, 1.0], rtol=0.0, atol=1e-10)
        assert result.fx < 1e-12
        assert result.method == "newton"
        assert result.n_jeval == result.iterations
        assert result.n_feval == result.iterations + 1
        assert solver.n_feval == result.n_feval
        assert solver.n_jeval == result.n_jeval

    def test_finite_difference_jacobian(self, nonlinear_system):
        F, _ = nonlinear_system
        result = NewtonSolver(F, ftol=1e-12).solve([5.0, 2.0])

        np.testing.assert_allclose(result.x, [6.0, 1.0], rtol=0.0, atol=1e-10)
        assert result.n_jeval == result.iterations
        # one residual per iterate plus two per finite-difference Jacobian
        assert result.n_feval == 1 + 3 * result.iterations

    def test_quadratic_convergence(self):
        """Residuals roughly square from one iteration to the next."""

        def F(x):
            return np.array([x[0] ** 3 - 2.0 * x[0] - 5.0])

        def J(x):
            return np.array([[3.0 * x[0] ** 2 - 2.0]])

        result = NewtonSolver(F, J, ftol=1e-13).solve([2.1])
        history = result.residual_history

        assert result.x[0] == pytest.approx(2.09455148154233, abs=1e-13)
        assert len(history) == result.iterations + 1
        for previous, current in zip(history, history[1:]):
            if current > 1e-12:
                assert current <= 10.0 * previous**2

    def test_l2_norm(self, nonlinear_system):
        F, J = nonlinear_system
        result = NewtonSolver(F, J, norm="l2").solve([5.0, 2.0])

        np.testing.assert_allclose(result.x, [6.0, 1.0], atol=1e-9)
        assert result.fx == pytest.approx(np.linalg.norm(F(result.x)))

    def test_already_converged(self, nonlinear_system):
        F, J = nonlinear_system
        result = NewtonSolver(F, J).solve([6.0, 1.0])

        assert result.iterations == 0
        assert result.n_feval == 1
        assert result.n_jeval == 0

    def test_initial_guess_is_not_modified(self, nonlinear_system):
        F, J = nonlinear_system
        x0 = np.array([5.0, 2.0])
        result = NewtonSolver(F, J).solve(x0)

        np.testing.assert_array_equal(x0, [5.0, 2.0])
        with pytest.raises(ValueError):
            result.x[0] = 0.0

    def test_repeated_solves_are_identical(self, nonlinear_system):
        F, J = nonlinear_system
        solver = NewtonSolver(F, J)
        first = solver.solve([5.0, 2.0])
        second = solver.solve([5.0, 2.0])

        np.testing.assert_array_equal(first.x, second.x)
        assert first.n_feval == second.n_feval
        assert first.n_jeval == second.n_jeval

    def test_jax_residual(self):
        def F(x):
            return jnp.cos(x) - x

        def J(x):
            return jnp.diag(-jnp.sin(x) - 1.0)

        result = newton_solve(F, [1.0], J, ftol=1e-14)
        assert result.x[0] == pytest.approx(0.7390851332151607, abs=1e-12)

    def test_settings_object(self, nonlinear_system):
        F, J = nonlinear_system
        settings = NewtonSettings(ftol=1e-6, max_iter=50)
        solver = NewtonSolver(F, J, settings=settings)

        assert solver.settings.max_iter == 50
        assert solver.solve([5.0, 2.0]).fx < 1e-6


class TestNewtonDamping:
    """Backtracking damping and divergence detection."""

    def test_undamped_newton_diverges(self):
        with pytest.raises(DivergenceError, match="diverged") as exc:
            NewtonSolver(arctan_residual, arctan_jacobian).solve([1.5])

        assert exc.value.iterations == 5
        history = exc.value.state.residual_history
        assert all(b > a for a, b in zip(history, history[1:]))

    def test_line_search_converges(self):
        solver = NewtonSolver(arctan_residual, arctan_jacobian)
        result = solver.solve([1.5], line_search=True)

        assert abs(result.x[0]) < 1e-9
        # damping costs extra residual evaluations
        assert result.n_feval > result.iterations + 1

    def test_line_search_from_settings(self):
        result = newton_solve(arctan_residual, [1.5], arctan_jacobian, line_search=True)
        assert abs(result.x[0]) < 1e-9

    def test_overflowing_step_is_divergence(self):
        """A full step from x0=-20 lands near 4.9e8, where exp overflows."""
        with pytest.raises(DivergenceError) as exc:
            NewtonSolver(exp_residual, exp_jacobian).solve([-20.0])

        assert exc.value.iterations == 1
        assert exc.value.state.fx == float("inf")

    def test_line_search_recovers_from_overflow(self):
        solver = NewtonSolver(exp_residual, exp_jacobian, max_iter=100, ls_max_iter=40)
        result = solver.solve([-20.0], line_search=True)

        assert abs(result.x[0]) < 1e-8
        assert result.fx < 1e-9

    def test_line_search_gives_up_on_overflow(self):
        """Ten halvings of a 4.9e8 step still overflow."""
        with pytest.raises(DivergenceError):
            NewtonSolver(exp_residual, exp_jacobian).solve([-20.0], line_search=True)

    def test_divergence_limit(self):
        with pytest.raises(DivergenceError) as exc:
            NewtonSolver(arctan_residual, arctan_jacobian, divergence_limit=1.0).solve([1.5])

        assert exc.value.iterations == 1


class TestNewtonFailures:
    """Singular systems, iteration caps and evaluation failures."""

    def test_singular_jacobian_scalar(self):
        def F(x):
            return x**2 - 4.0

        def J(x):
            return np.array([[2.0 * x[0]]])

        with pytest.raises(SingularJacobianError) as exc:
            NewtonSolver(F, J).solve([0.0])

        assert exc.value.iterations == 0
        assert exc.value.n_jeval == 1

    def test_singular_jacobian_matrix(self):
        def F(x):
            return np.array([x[0] + 2.0 * x[1] - 1.0, 2.0 * x[0] + 4.0 * x[1] - 3.0])

        def J(x):
            return np.array([[1.0, 2.0], [2.0, 4.0]])

        with pytest.raises(SingularJacobianError):
            NewtonSolver(F, J).solve([0.0, 0.0])

    def test_max_iterations_exceeded(self, nonlinear_system):
        F, J = nonlinear_system
        with pytest.raises(MaxIterationsExceeded, match="failed to converge") as exc:
            NewtonSolver(F, J, max_iter=1).solve([5.0, 2.0])

        assert exc.value.iterations == 1

    def test_residual_failure(self):
        def F(x):
            if x[0] < 0.0:
                raise ZeroDivisionError("negative density")
            return np.array([x[0] - 1.0])

        with pytest.raises(EvaluationError) as exc:
            NewtonSolver(F, lambda x: np.array([[1.0]])).solve([-1.0])

        assert isinstance(exc.value.__cause__, ZeroDivisionError)
        assert exc.value.n_feval == 1

    def test_jacobian_shape_is_checked(self, nonlinear_system):
        F, _ = nonlinear_system
        with pytest.raises(EvaluationError, match="shape"):
            NewtonSolver(F, lambda x: np.eye(3)).solve([5.0, 2.0])

    def test_non_finite_residual(self):
        with pytest.raises(EvaluationError, match="non-finite"):
            NewtonSolver(lambda x: np.array([np.inf]), lambda x: np.eye(1)).solve([0.0])

    def test_invalid_initial_guess(self, nonlinear_system):
        F, J = nonlinear_system
        with pytest.raises(ValueError):
            NewtonSolver(F, J).solve([[5.0, 2.0]])
