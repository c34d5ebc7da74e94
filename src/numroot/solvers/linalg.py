"""Dense linear algebra used by the Newton solver and the Jacobian check.

The heavy lifting is delegated to LAPACK through :mod:`scipy.linalg`; this
module only maps its failure modes onto :class:`SingularJacobianError`.
"""

from __future__ import annotations

import warnings

import numpy as np
from scipy import linalg as sla

from .errors import SingularJacobianError

NORMS = ("max", "l2")


def vector_norm(v: np.ndarray, kind: str = "max") -> float:
    """Return the max-abs (``"max"``) or Euclidean (``"l2"``) norm of ``v``."""
    if kind == "max":
        return float(np.max(np.abs(v))) if v.size else 0.0
    if kind == "l2":
        return float(np.linalg.norm(v))
    raise ValueError(f"norm must be one of {NORMS}, got {kind!r}")


def solve_dense(matrix: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    """Solve ``matrix @ x = rhs`` with LU factorisation.

    Raises:
        SingularJacobianError: If LAPACK reports an exactly singular matrix,
            flags it as ill-conditioned (reciprocal condition number below
            machine epsilon), or the solution is not finite.
    """
    with warnings.catch_warnings():
        warnings.simplefilter("error", sla.LinAlgWarning)
        try:
            solution = sla.solve(matrix, rhs)
        except sla.LinAlgError as exc:
            raise SingularJacobianError(f"singular matrix: {exc}", rcond=0.0) from exc
        except sla.LinAlgWarning as exc:
            raise SingularJacobianError(f"ill-conditioned matrix: {exc}") from exc
    if not np.all(np.isfinite(solution)):
        raise SingularJacobianError("linear solve produced non-finite values")
    return solution


def condition_number(matrix: np.ndarray) -> float:
    """2-norm condition number, ``inf`` for singular matrices."""
    singular_values = sla.svdvals(matrix)
    smallest = singular_values[-1]
    if smallest == 0.0:
        return float("inf")
    return float(singular_values[0] / smallest)


__all__ = ["NORMS", "condition_number", "solve_dense", "vector_norm"]
