"""Guarded evaluation of user-supplied functions.

All solver calls into user code go through these helpers so that counters are
updated in one place and failures are reported as :class:`EvaluationError`
instead of leaking NaNs into the iteration.
"""

from __future__ import annotations

from typing import Any, Callable

import numpy as np

from .errors import EvaluationError
from .types import SolverState


def _call(func: Callable[[Any], Any], x: Any, state: SolverState, what: str) -> Any:
    try:
        return func(x)
    except EvaluationError as exc:
        if exc.state is None:
            exc.state = state
        raise
    except Exception as exc:
        raise EvaluationError(
            f"{what} evaluation failed at x={x!r}: {exc}", x=x, state=state
        ) from exc


def _to_array(raw: Any, x: np.ndarray, state: SolverState) -> np.ndarray:
    try:
        return np.asarray(raw, dtype=float)
    except (TypeError, ValueError) as exc:
        raise EvaluationError(
            f"could not convert result to a float array at x={x}: {exc}", x=x, state=state
        ) from exc


def evaluate_scalar(f: Callable[[float], Any], x: float, state: SolverState) -> float:
    """Evaluate ``f(x)`` and return a finite ``float``."""
    state.n_feval += 1
    raw = _call(f, x, state, "function")
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise EvaluationError(
            f"function returned a non-scalar value at x={x!r}: {raw!r}", x=x, state=state
        ) from exc
    if not np.isfinite(value):
        raise EvaluationError(f"function returned {value} at x={x!r}", x=x, state=state)
    return value


def evaluate_vector(
    func: Callable[[np.ndarray], Any],
    x: np.ndarray,
    state: SolverState,
    *,
    allow_non_finite: bool = False,
) -> np.ndarray:
    """Evaluate a residual function and check it returns an ``(n,)`` vector.

    Non-finite entries are an :class:`EvaluationError` unless
    ``allow_non_finite`` is set, in which case the caller handles them.
    """
    state.n_feval += 1
    n = x.shape[0]
    values = _to_array(_call(func, x.copy(), state, "residual"), x, state)
    if n == 1 and values.size == 1:
        values = values.reshape(1)
    if values.shape != (n,):
        raise EvaluationError(
            f"residual must return shape ({n},), got {values.shape}", x=x, state=state
        )
    if not allow_non_finite and not np.all(np.isfinite(values)):
        raise EvaluationError(f"residual returned non-finite values at x={x}", x=x, state=state)
    return values


def evaluate_jacobian(
    func: Callable[[np.ndarray], Any], x: np.ndarray, state: SolverState
) -> np.ndarray:
    """Evaluate a Jacobian function and check it returns a finite ``(n, n)`` matrix."""
    state.n_jeval += 1
    n = x.shape[0]
    values = _to_array(_call(func, x.copy(), state, "Jacobian"), x, state)
    if n == 1 and values.size == 1:
        values = values.reshape(1, 1)
    if values.shape != (n, n):
        raise EvaluationError(
            f"Jacobian must return shape ({n}, {n}), got {values.shape}", x=x, state=state
        )
    if not np.all(np.isfinite(values)):
        raise EvaluationError(f"Jacobian returned non-finite values at x={x}", x=x, state=state)
    return values


def as_vector(x0: Any) -> np.ndarray:
    """Copy ``x0`` into a fresh 1-D float array."""
    x = np.array(x0, dtype=float)
    if x.ndim == 0:
        x = x.reshape(1)
    if x.ndim != 1 or x.size == 0:
        raise ValueError(f"x0 must be a non-empty 1-D array-like, got shape {x.shape}")
    return x


__all__ = ["as_vector", "evaluate_jacobian", "evaluate_scalar", "evaluate_vector"]
