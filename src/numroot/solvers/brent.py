"""
Brent's derivative-free methods for scalar functions.

This module provides the two classic algorithms by R. P. Brent
("Algorithms for Minimization without Derivatives", 1973):

- a root finder combining bisection, secant and inverse quadratic
  interpolation, guaranteed to keep a sign-change bracket;
- a minimiser combining golden-section search with parabolic
  interpolation for unimodal functions.

Both are available through the :class:`Brent` solver object, which keeps the
counters of its most recent call, and through the :func:`brent_root` and
:func:`brent_minimize` shortcuts.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional, Tuple

import numpy as np

from numroot.config.schemas import BrentSettings, MinimizeSettings

from .errors import InvalidBracketError, MaxIterationsExceeded
from .evaluation import evaluate_scalar
from .types import ConvergenceResult, MinimizeStep, RootStep, ScalarFunction, SolverState

logger = logging.getLogger(__name__)

EPS = float(np.finfo(float).eps)
SQRT_EPS = math.sqrt(EPS)
# Golden-section fraction, (3 - sqrt(5)) / 2
GOLDEN = (3.0 - math.sqrt(5.0)) / 2.0


def _same_sign(u: float, v: float) -> bool:
    return (u > 0.0 and v > 0.0) or (u < 0.0 and v < 0.0)


def _interpolation_step(
    a: float, b: float, c: float, fa: float, fb: float, fc: float
) -> Tuple[RootStep, float, float]:
    """Candidate step ``p / q`` from ``b`` towards the root, with ``p >= 0``.

    Uses inverse quadratic interpolation through ``a``, ``b``, ``c`` when the
    three points are distinct and the secant through ``a``, ``b`` otherwise.
    """
    cb = c - b
    if a == c:
        kind = RootStep.SECANT
        t1 = fb / fa
        p = cb * t1
        q = 1.0 - t1
    else:
        kind = RootStep.INVERSE_QUADRATIC
        q = fa / fc
        t1 = fb / fc
        t2 = fb / fa
        p = t2 * (cb * q * (q - t1) - (b - a) * (t1 - 1.0))
        q = (q - 1.0) * (t1 - 1.0) * (t2 - 1.0)
    if p > 0.0:
        q = -q
    else:
        p = -p
    return kind, p, q


def _accept_interpolation(p: float, q: float, cb: float, prev_step: float, tol_act: float) -> bool:
    # Stay well inside [b, c] and shrink faster than half the previous step.
    return p < 0.75 * cb * q - abs(tol_act * q) / 2.0 and p < abs(prev_step * q / 2.0)


def _parabolic_step(
    x: float, w: float, v: float, fx: float, fw: float, fv: float
) -> Tuple[float, float]:
    """Minimiser of the parabola through ``(x, w, v)`` as ``x + p / q``, ``q >= 0``."""
    t = (x - w) * (fx - fv)
    q = (x - v) * (fx - fw)
    p = (x - v) * q - (x - w) * t
    q = 2.0 * (q - t)
    if q > 0.0:
        p = -p
    else:
        q = -q
    return p, q


class Brent:
    """Bracketed root finder and minimiser for a scalar function.

    A single instance may be reused for any number of calls; every call starts
    from a fresh :class:`SolverState`, available afterwards as ``state``. An
    instance must not be shared between threads.

    Args:
        f: Scalar function. It signals a domain error by raising; non-finite
            return values are treated as failures.
        settings: Root-finding settings (defaults: ``tol=1e-15``,
            ``ftol=1e-15``, ``max_iter=100``).
        minimize_settings: Minimisation settings (defaults: ``tol=1e-15``,
            ``max_iter=100``).

    Example:
        >>> solver = Brent(lambda x: x**3 - 2*x - 5)
        >>> result = solver.solve(2.0, 3.0)
        >>> abs(result.x - 2.09455148154233) < 1e-14
        True
    """

    def __init__(
        self,
        f: ScalarFunction,
        settings: Optional[BrentSettings] = None,
        minimize_settings: Optional[MinimizeSettings] = None,
    ) -> None:
        self.f = f
        self.settings = settings or BrentSettings()
        self.minimize_settings = minimize_settings or MinimizeSettings()
        self.state = SolverState()

    @property
    def n_feval(self) -> int:
        return self.state.n_feval

    @property
    def iterations(self) -> int:
        return self.state.iterations

    def _finish(self, x: float, fx: float, method: str) -> ConvergenceResult:
        state = self.state
        logger.debug(
            "%s converged: x=%r f(x)=%g nit=%d nfeval=%d",
            method,
            x,
            fx,
            state.iterations,
            state.n_feval,
        )
        return ConvergenceResult.from_state(state, x, fx, method)

    def solve(
        self, a: float, b: float, bisection_only: Optional[bool] = None, **overrides: Any
    ) -> ConvergenceResult:
        """Find a root of ``f`` in the bracket ``[a, b]``.

        Args:
            a: One end of the bracket.
            b: Other end of the bracket; ``f(a)`` and ``f(b)`` must have
                opposite signs unless one of them is already a root.
            bisection_only: Force plain bisection steps. Defaults to the
                ``bisection_only`` setting.
            **overrides: Per-call replacements for ``tol``, ``ftol`` or
                ``max_iter``.

        Returns:
            Result whose ``x`` lies in the original bracket.

        Raises:
            InvalidBracketError: If ``f(a)`` and ``f(b)`` have the same sign.
            MaxIterationsExceeded: If ``max_iter`` steps do not converge.
            EvaluationError: If ``f`` fails.
        """
        settings = self.settings.with_overrides(bisection_only=bisection_only, **overrides)
        self.state = state = SolverState()
        a, b = float(a), float(b)

        fa = evaluate_scalar(self.f, a, state)
        fb = evaluate_scalar(self.f, b, state)
        for x, fx in ((a, fa), (b, fb)):
            if abs(fx) <= settings.ftol:
                state.x, state.fx = x, fx
                return self._finish(x, fx, "brent")

        if a == b or _same_sign(fa, fb):
            raise InvalidBracketError(
                f"f(a) and f(b) must have opposite signs: f({a})={fa}, f({b})={fb}",
                a=a,
                b=b,
                fa=fa,
                fb=fb,
                state=state,
            )

        # b: best estimate, a: previous estimate, c: contrapoint with f(c) of
        # opposite sign to f(b).
        c, fc = a, fa
        while True:
            prev_step = b - a
            if abs(fc) < abs(fb):
                a, b, c = b, c, b
                fa, fb, fc = fb, fc, fb

            tol_act = 2.0 * EPS * abs(b) + settings.tol / 2.0
            new_step = (c - b) / 2.0
            state.x, state.fx = b, fb

            if abs(new_step) <= tol_act or abs(fb) <= settings.ftol:
                return self._finish(b, fb, "brent")

            if state.iterations >= settings.max_iter:
                logger.warning(
                    f"Brent root search stopped after {state.iterations} iterations: "
                    f"x={b}, f(x)={fb}, bracket width={abs(c - b)}"
                )
                raise MaxIterationsExceeded(
                    f"Brent's method failed to converge after {settings.max_iter} iterations. "
                    f"Last value: x={b}, f(x)={fb}",
                    state=state,
                )

            kind = RootStep.BISECTION
            if not settings.bisection_only and abs(prev_step) >= tol_act and abs(fa) > abs(fb):
                candidate, p, q = _interpolation_step(a, b, c, fa, fb, fc)
                if _accept_interpolation(p, q, c - b, prev_step, tol_act):
                    kind, new_step = candidate, p / q

            if abs(new_step) < tol_act:
                new_step = tol_act if new_step > 0.0 else -tol_act

            a, fa = b, fb
            b += new_step
            fb = evaluate_scalar(self.f, b, state)
            state.iterations += 1
            state.record_step(kind)
            logger.debug("brent it=%d %s x=%r f(x)=%g", state.iterations, kind.value, b, fb)

            if _same_sign(fb, fc):
                c, fc = a, fa

    def minimize(self, a: float, b: float, **overrides: Any) -> ConvergenceResult:
        """Locate a local minimum of ``f`` inside ``[a, b]``.

        ``f`` is assumed unimodal on the interval. The search stops once the
        minimiser is known to within ``2 * (sqrt(eps) * |x| + tol / 3)``.

        Args:
            a: One end of the search interval.
            b: Other end of the search interval (``a > b`` is accepted).
            **overrides: Per-call replacements for ``tol`` or ``max_iter``.

        Raises:
            InvalidBracketError: If ``a == b``.
            MaxIterationsExceeded: If ``max_iter`` steps do not converge.
            EvaluationError: If ``f`` fails.
        """
        settings = self.minimize_settings.with_overrides(**overrides)
        self.state = state = SolverState()
        a, b = float(a), float(b)
        if a == b:
            raise InvalidBracketError(f"empty search interval [{a}, {b}]", a=a, b=b, state=state)
        if a > b:
            a, b = b, a

        # x: best point so far, w: second best, v: previous value of w.
        v = a + GOLDEN * (b - a)
        fv = evaluate_scalar(self.f, v, state)
        x = w = v
        fx = fw = fv

        while True:
            middle = (a + b) / 2.0
            tol_act = SQRT_EPS * abs(x) + settings.tol / 3.0
            state.x, state.fx = x, fx

            if abs(x - middle) + (b - a) / 2.0 <= 2.0 * tol_act:
                return self._finish(x, fx, "brent_min")

            if state.iterations >= settings.max_iter:
                logger.warning(
                    f"Brent minimisation stopped after {state.iterations} iterations: "
                    f"x={x}, f(x)={fx}, interval=[{a}, {b}]"
                )
                raise MaxIterationsExceeded(
                    f"Brent's minimisation failed to converge after {settings.max_iter} "
                    f"iterations. Last value: x={x}, f(x)={fx}",
                    state=state,
                )

            # Golden section into the larger of the two sub-intervals.
            kind = MinimizeStep.GOLDEN_SECTION
            new_step = GOLDEN * ((b - x) if x < middle else (a - x))

            if abs(x - w) >= tol_act:
                p, q = _parabolic_step(x, w, v, fx, fw, fv)
                if (
                    abs(p) < abs(new_step * q)
                    and p > q * (a - x + 2.0 * tol_act)
                    and p < q * (b - x - 2.0 * tol_act)
                ):
                    kind, new_step = MinimizeStep.PARABOLIC, p / q

            if abs(new_step) < tol_act:
                new_step = tol_act if new_step > 0.0 else -tol_act

            t = x + new_step
            ft = evaluate_scalar(self.f, t, state)
            state.iterations += 1
            state.record_step(kind)
            logger.debug("brent_min it=%d %s t=%r f(t)=%g", state.iterations, kind.value, t, ft)

            if ft <= fx:
                if t < x:
                    b = x
                else:
                    a = x
                v, w, x = w, x, t
                fv, fw, fx = fw, fx, ft
            else:
                if t < x:
                    a = t
                else:
                    b = t
                if ft <= fw or w == x:
                    v, w = w, t
                    fv, fw = fw, ft
                elif ft <= fv or v == x or v == w:
                    v, fv = t, ft


def brent_root(
    f: ScalarFunction,
    a: float,
    b: float,
    tol: float = 1e-15,
    max_iter: int = 100,
    **kwargs: Any,
) -> ConvergenceResult:
    """
    Find a root of ``f`` in ``[a, b]`` with Brent's method.

    Args:
        f: Function for which to find root
        a: Lower bound of bracket
        b: Upper bound of bracket
        tol: Bracket-width tolerance
        max_iter: Maximum number of iterations
        **kwargs: Further :class:`BrentSettings` fields (``ftol``,
            ``bisection_only``)

    Example:
        >>> abs(brent_root(lambda x: x**2 - 4.0, 0.0, 3.0).x - 2.0) < 1e-12
        True
    """
    settings = BrentSettings(tol=tol, max_iter=max_iter, **kwargs)
    return Brent(f, settings=settings).solve(a, b)


def brent_minimize(
    f: ScalarFunction,
    a: float,
    b: float,
    tol: float = 1e-15,
    max_iter: int = 100,
) -> ConvergenceResult:
    """Find a local minimum of a unimodal ``f`` in ``[a, b]`` with Brent's method."""
    settings = MinimizeSettings(tol=tol, max_iter=max_iter)
    return Brent(f, minimize_settings=settings).minimize(a, b)


__all__ = ["Brent", "EPS", "GOLDEN", "SQRT_EPS", "brent_minimize", "brent_root"]
