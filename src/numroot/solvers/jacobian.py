"""Finite-difference Jacobians and validation of analytic Jacobians.

Newton's method converges quickly only when the Jacobian it is given is
correct; a wrong Jacobian may silently lead to a different point or to erratic
divergence. :class:`JacobianValidator` compares an analytic Jacobian with a
forward-difference estimate and reports the condition number of the analytic
matrix, so that a new problem can be checked before it is handed to
:class:`~numroot.solvers.newton.NewtonSolver`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

import numpy as np

from numroot.config.schemas import JacobianCheckSettings

from .evaluation import as_vector, evaluate_jacobian, evaluate_vector
from .linalg import condition_number
from .types import JacobianFunction, SolverState, VectorFunction

logger = logging.getLogger(__name__)

SCHEMES = ("forward", "central")


def numerical_jacobian(
    residual: Callable[[np.ndarray], np.ndarray],
    x: np.ndarray,
    step: float = 1e-6,
    *,
    scheme: str = "forward",
    relative: bool = False,
    fx: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Finite-difference estimate of the Jacobian of ``residual`` at ``x``.

    Args:
        residual: Vector function returning an ``(n,)`` array.
        x: Point of evaluation, shape ``(n,)``.
        step: Perturbation. With ``relative=True`` coordinate ``j`` is
            perturbed by ``step * (|x_j| + 1)``.
        scheme: ``"forward"`` (``n`` extra evaluations) or ``"central"``
            (``2n`` evaluations, second-order accurate).
        relative: Scale the perturbation with the magnitude of ``x_j``.
        fx: ``residual(x)`` if already known; saves one evaluation for the
            forward scheme.

    Returns:
        ``(n, n)`` matrix whose column ``j`` approximates ``dF/dx_j``.
    """
    if scheme not in SCHEMES:
        raise ValueError(f"scheme must be one of {SCHEMES}, got {scheme!r}")
    x = np.asarray(x, dtype=float)
    n = x.size
    if scheme == "forward" and fx is None:
        fx = np.asarray(residual(x), dtype=float)

    jac = np.empty((n, n), dtype=float)
    for j in range(n):
        h = step * (abs(x[j]) + 1.0) if relative else step
        xp = x.copy()
        xp[j] += h
        if scheme == "forward":
            jac[:, j] = (np.asarray(residual(xp), dtype=float) - fx) / h
        else:
            xm = x.copy()
            xm[j] -= h
            fp = np.asarray(residual(xp), dtype=float)
            fm = np.asarray(residual(xm), dtype=float)
            jac[:, j] = (fp - fm) / (2.0 * h)
    return jac


@dataclass(frozen=True)
class JacobianCheck:
    """Outcome of comparing an analytic Jacobian with a finite-difference one.

    The relative discrepancy of entry ``(i, j)`` is
    ``|numeric - analytic| / max(|analytic|, 1)``, i.e. absolute for small
    entries and relative for large ones.
    """

    condition_number: float
    max_abs_error: float
    max_rel_error: float
    worst_entry: Tuple[int, int]
    analytic: np.ndarray
    numeric: np.ndarray
    tolerance: float
    n_feval: int
    n_jeval: int

    @property
    def passed(self) -> bool:
        return self.max_rel_error <= self.tolerance


class JacobianValidator:
    """Check an analytic Jacobian against forward differences.

    The check is advisory: a large discrepancy is logged and reported in the
    returned :class:`JacobianCheck`, never raised. Failures of the functions
    themselves still raise :class:`~numroot.solvers.errors.EvaluationError`.
    """

    def __init__(
        self,
        residual: VectorFunction,
        jacobian: JacobianFunction,
        settings: Optional[JacobianCheckSettings] = None,
    ) -> None:
        self.residual = residual
        self.jacobian = jacobian
        self.settings = settings or JacobianCheckSettings()
        self.state = SolverState()

    @property
    def n_feval(self) -> int:
        return self.state.n_feval

    @property
    def n_jeval(self) -> int:
        return self.state.n_jeval

    def check(
        self,
        x: Any,
        perturbation: Optional[float] = None,
        verbose: Optional[bool] = None,
        **overrides: Any,
    ) -> JacobianCheck:
        """Compare the analytic and finite-difference Jacobians at ``x``.

        Args:
            x: Point of evaluation.
            perturbation: Forward-difference step applied to each coordinate.
            verbose: Log every entry of the comparison.
            **overrides: Per-call replacement for ``tolerance``.
        """
        settings = self.settings.with_overrides(
            perturbation=perturbation, verbose=verbose, **overrides
        )
        self.state = state = SolverState()
        x = as_vector(x)
        state.x = x

        fx = evaluate_vector(self.residual, x, state)
        analytic = evaluate_jacobian(self.jacobian, x, state)
        numeric = numerical_jacobian(
            lambda z: evaluate_vector(self.residual, z, state),
            x,
            settings.perturbation,
            fx=fx,
        )

        diff = np.abs(numeric - analytic)
        rel = diff / np.maximum(np.abs(analytic), 1.0)
        worst = np.unravel_index(int(np.argmax(rel)), rel.shape)
        cond = condition_number(analytic)

        report = JacobianCheck(
            condition_number=cond,
            max_abs_error=float(diff.max()),
            max_rel_error=float(rel.max()),
            worst_entry=(int(worst[0]), int(worst[1])),
            analytic=analytic,
            numeric=numeric,
            tolerance=settings.tolerance,
            n_feval=state.n_feval,
            n_jeval=state.n_jeval,
        )

        if settings.verbose:
            n = x.size
            for i in range(n):
                for j in range(n):
                    logger.info(
                        f"dF[{i}]/dx[{j}]: analytic={analytic[i, j]:+.10e} "
                        f"numeric={numeric[i, j]:+.10e} diff={diff[i, j]:.3e}"
                    )
            logger.info(
                f"Jacobian check: max |diff|={report.max_abs_error:.3e}, "
                f"max rel={report.max_rel_error:.3e}, cond(J)={cond:.6e}"
            )
        if not report.passed:
            logger.warning(
                f"Analytic Jacobian differs from finite differences at entry "
                f"{report.worst_entry}: rel={report.max_rel_error:.3e} > {settings.tolerance:.3e}"
            )
        return report


def check_jacobian(
    residual: VectorFunction,
    jacobian: JacobianFunction,
    x: Any,
    perturbation: float = 1e-6,
    verbose: bool = False,
    tolerance: float = 1e-4,
) -> JacobianCheck:
    """Shortcut for :meth:`JacobianValidator.check`."""
    settings = JacobianCheckSettings(perturbation=perturbation, verbose=verbose, tolerance=tolerance)
    return JacobianValidator(residual, jacobian, settings).check(x)


__all__ = [
    "JacobianCheck",
    "JacobianValidator",
    "SCHEMES",
    "check_jacobian",
    "numerical_jacobian",
]
