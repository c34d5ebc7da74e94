"""
Newton's method for systems of nonlinear equations.

Solves ``F(x) = 0`` for ``F: R^n -> R^n`` by iterating

    J(x_k) dx = -F(x_k),    x_{k+1} = x_k + alpha_k dx

where ``J`` is the analytic Jacobian supplied by the caller (or a
forward-difference estimate when none is given) and ``alpha_k`` is ``1``
unless backtracking damping is enabled.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

import numpy as np

from numroot.config.schemas import JacobianCheckSettings, NewtonSettings

from .errors import DivergenceError, MaxIterationsExceeded, SingularJacobianError
from .evaluation import as_vector, evaluate_jacobian, evaluate_vector
from .jacobian import JacobianCheck, JacobianValidator, numerical_jacobian
from .linalg import solve_dense, vector_norm
from .types import ConvergenceResult, JacobianFunction, SolverState, VectorFunction

logger = logging.getLogger(__name__)


class NewtonSolver:
    """Newton solver for ``F(x) = 0``.

    Args:
        residual: Vector function ``F(x) -> (n,)``.
        jacobian: Jacobian function ``J(x) -> (n, n)``. When ``None`` a
            forward-difference Jacobian with relative step ``fd_step`` is used.
        settings: Solver settings; see :class:`NewtonSettings`.
        **overrides: Replacements for individual settings fields.

    Function and Jacobian evaluations are counted separately in ``state``;
    the finite-difference Jacobian counts as one Jacobian evaluation plus the
    residual evaluations it needs.

    Example:
        >>> F = lambda x: np.array([x[0] ** 2 + x[1] - 37.0, x[0] - x[1] ** 2 - 5.0])
        >>> J = lambda x: np.array([[2.0 * x[0], 1.0], [1.0, -2.0 * x[1]]])
        >>> result = NewtonSolver(F, J).solve([5.0, 2.0])
        >>> bool(np.allclose(result.x, [6.0, 1.0]))
        True
    """

    def __init__(
        self,
        residual: VectorFunction,
        jacobian: Optional[JacobianFunction] = None,
        settings: Optional[NewtonSettings] = None,
        **overrides: Any,
    ) -> None:
        self.residual = residual
        self.jacobian = jacobian
        self.settings = (settings or NewtonSettings()).with_overrides(**overrides)
        self.state = SolverState()

    @property
    def n_feval(self) -> int:
        return self.state.n_feval

    @property
    def n_jeval(self) -> int:
        return self.state.n_jeval

    @property
    def iterations(self) -> int:
        return self.state.iterations

    def check_jacobian(
        self,
        x: Any,
        perturbation: Optional[float] = None,
        verbose: Optional[bool] = None,
        settings: Optional[JacobianCheckSettings] = None,
    ) -> JacobianCheck:
        """Validate the analytic Jacobian at ``x`` before solving.

        Uses a separate counter set, so ``state`` of the last ``solve`` is
        left untouched.
        """
        if self.jacobian is None:
            raise ValueError("no analytic Jacobian to check; the solver uses finite differences")
        validator = JacobianValidator(self.residual, self.jacobian, settings)
        return validator.check(x, perturbation=perturbation, verbose=verbose)

    def _evaluate_residual(self, x: np.ndarray, state: SolverState) -> Tuple[np.ndarray, float]:
        fx = evaluate_vector(self.residual, x, state)
        return fx, vector_norm(fx, self.settings.norm)

    def _evaluate_trial(self, x: np.ndarray, state: SolverState) -> Tuple[np.ndarray, float]:
        """Residual at a Newton trial point; an overflowing residual has norm ``inf``."""
        fx = evaluate_vector(self.residual, x, state, allow_non_finite=True)
        if not np.all(np.isfinite(fx)):
            logger.debug("newton trial residual overflowed at x=%s", x)
            return fx, float("inf")
        return fx, vector_norm(fx, self.settings.norm)

    def _evaluate_jacobian(self, x: np.ndarray, fx: np.ndarray, state: SolverState) -> np.ndarray:
        if self.jacobian is not None:
            return evaluate_jacobian(self.jacobian, x, state)
        state.n_jeval += 1
        return numerical_jacobian(
            lambda z: evaluate_vector(self.residual, z, state),
            x,
            self.settings.fd_step,
            relative=True,
            fx=fx,
        )

    def _damped_step(
        self, x: np.ndarray, dx: np.ndarray, fnorm: float, state: SolverState
    ) -> Tuple[float, np.ndarray, np.ndarray, float]:
        """Halve the step until ``||F||`` decreases by the Armijo factor.

        A trial point whose residual overflows counts as no decrease.
        """
        settings = self.settings
        alpha = 1.0
        x_new = x + dx
        fx_new, fn_new = self._evaluate_trial(x_new, state)
        for _ in range(settings.ls_max_iter):
            if fn_new <= (1.0 - settings.ls_armijo * alpha) * fnorm or fn_new < settings.ftol:
                break
            alpha *= 0.5
            x_new = x + alpha * dx
            fx_new, fn_new = self._evaluate_trial(x_new, state)
        return alpha, x_new, fx_new, fn_new

    def solve(self, x0: Any, line_search: Optional[bool] = None) -> ConvergenceResult:
        """Solve ``F(x) = 0`` starting from ``x0``.

        Args:
            x0: Initial guess, shape ``(n,)``. Not modified.
            line_search: Enable backtracking damping. Defaults to the
                ``line_search`` setting.

        Returns:
            Result with the solution as a read-only array in ``x`` and the
            final residual norm in ``fx``.

        Raises:
            SingularJacobianError: If the Newton system cannot be solved.
            DivergenceError: If the residual norm keeps growing or overflows.
            MaxIterationsExceeded: If ``max_iter`` updates do not converge.
            EvaluationError: If ``F`` or ``J`` fails.
        """
        settings = self.settings
        use_line_search = settings.line_search if line_search is None else line_search
        self.state = state = SolverState()
        x = as_vector(x0)

        fx, fnorm = self._evaluate_residual(x, state)
        state.x, state.fx = x, fnorm
        state.residual_history.append(fnorm)
        increases = 0

        while fnorm >= settings.ftol:
            if state.iterations >= settings.max_iter:
                logger.warning(
                    f"Newton stopped after {state.iterations} iterations: ||F||={fnorm:.3e}"
                )
                raise MaxIterationsExceeded(
                    f"Newton's method failed to converge after {settings.max_iter} iterations. "
                    f"||F||={fnorm:.3e}, x={x}",
                    state=state,
                )

            jac = self._evaluate_jacobian(x, fx, state)
            try:
                dx = solve_dense(jac, -fx)
            except SingularJacobianError as exc:
                exc.state = state
                logger.warning(f"Singular Jacobian at iteration {state.iterations}, x={x}: {exc}")
                raise

            if use_line_search:
                alpha, x_new, fx_new, fn_new = self._damped_step(x, dx, fnorm, state)
            else:
                alpha = 1.0
                x_new = x + dx
                fx_new, fn_new = self._evaluate_trial(x_new, state)

            increases = increases + 1 if fn_new > fnorm else 0
            x, fx, fnorm = x_new, fx_new, fn_new
            state.iterations += 1
            state.x, state.fx = x, fnorm
            state.residual_history.append(fnorm)
            logger.debug(
                "newton it=%d ||F||=%.6e alpha=%g |dx|=%.3e",
                state.iterations,
                fnorm,
                alpha,
                vector_norm(dx, settings.norm),
            )

            if fnorm > settings.divergence_limit or increases >= settings.divergence_window:
                logger.warning(
                    f"Newton diverging at iteration {state.iterations}: ||F||={fnorm:.3e}"
                )
                raise DivergenceError(
                    f"Newton's method diverged: ||F|| grew to {fnorm:.3e} "
                    f"({increases} consecutive increases)",
                    state=state,
                )

        logger.debug(
            "newton converged: ||F||=%.3e nit=%d nfeval=%d nJeval=%d",
            fnorm,
            state.iterations,
            state.n_feval,
            state.n_jeval,
        )
        return ConvergenceResult.from_state(state, x, fnorm, "newton")


def newton_solve(
    residual: VectorFunction,
    x0: Any,
    jacobian: Optional[JacobianFunction] = None,
    **kwargs: Any,
) -> ConvergenceResult:
    """Shortcut for ``NewtonSolver(residual, jacobian, **kwargs).solve(x0)``."""
    return NewtonSolver(residual, jacobian, **kwargs).solve(x0)


__all__ = ["NewtonSolver", "newton_solve"]
