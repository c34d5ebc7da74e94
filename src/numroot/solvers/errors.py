"""Exception hierarchy shared by the scalar and multidimensional solvers.

Every failure a solver can report maps onto one subclass of
:class:`SolverError`.  Errors raised after iteration has started carry the
counters of the call that produced them so that callers can decide on a retry
policy (for example restarting Newton from a different initial guess).
"""

from __future__ import annotations

from typing import Any, Optional


class SolverError(Exception):
    """Base exception for all solver failures."""

    def __init__(self, message: str, *, state: Optional[Any] = None) -> None:
        super().__init__(message)
        self.state = state

    @property
    def iterations(self) -> int:
        return 0 if self.state is None else self.state.iterations

    @property
    def n_feval(self) -> int:
        return 0 if self.state is None else self.state.n_feval

    @property
    def n_jeval(self) -> int:
        return 0 if self.state is None else self.state.n_jeval


class InvalidBracketError(SolverError, ValueError):
    """Raised when ``[a, b]`` does not bracket a root or is an empty interval."""

    def __init__(
        self,
        message: str,
        *,
        a: float,
        b: float,
        fa: Optional[float] = None,
        fb: Optional[float] = None,
        state: Optional[Any] = None,
    ) -> None:
        super().__init__(message, state=state)
        self.a = a
        self.b = b
        self.fa = fa
        self.fb = fb


class ConvergenceError(SolverError):
    """Raised when an iteration stops without satisfying its tolerance."""


class MaxIterationsExceeded(ConvergenceError):
    """The iteration cap was reached before convergence."""


class DivergenceError(ConvergenceError):
    """The residual norm grew without bound across consecutive iterations."""


class SingularJacobianError(SolverError):
    """The Newton linear system ``J dx = -F`` is singular or numerically so."""

    def __init__(
        self,
        message: str,
        *,
        rcond: Optional[float] = None,
        state: Optional[Any] = None,
    ) -> None:
        super().__init__(message, state=state)
        self.rcond = rcond


class EvaluationError(SolverError):
    """A user-supplied function failed or returned an unusable value.

    Functions may raise this exception themselves to signal a domain error;
    it then reaches the caller unchanged.  Any other exception raised by a
    user function is wrapped, with the original kept as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        *,
        x: Any = None,
        state: Optional[Any] = None,
    ) -> None:
        super().__init__(message, state=state)
        self.x = x


__all__ = [
    "ConvergenceError",
    "DivergenceError",
    "EvaluationError",
    "InvalidBracketError",
    "MaxIterationsExceeded",
    "SingularJacobianError",
    "SolverError",
]
