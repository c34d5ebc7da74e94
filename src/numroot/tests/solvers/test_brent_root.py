"""Tests for Brent's root finder."""

import math

import numpy as np
import pytest
from pydantic import ValidationError

from numroot.config import BrentSettings
from numroot.solvers import (
    Brent,
    EvaluationError,
    InvalidBracketError,
    MaxIterationsExceeded,
    RootStep,
    brent_root,
)


def cubic(x):
    return x**3 - 2.0 * x - 5.0


class TestBrentRoot:
    """Root finding on bracketed intervals."""

    def test_cubic_reference_root(self):
        """x³ - 2x - 5 on [2, 3] matches the classic reference value."""
        result = Brent(cubic).solve(2.0, 3.0)

        assert result.x == pytest.approx(2.09455148154233, abs=1e-14)
        assert result.converged
        assert result.method == "brent"
        assert result.n_feval == result.iterations + 2

    def test_three_root_cubic(self):
        """x³ - 0.165x² + 3.993e-4 on [0, 0.11] has a single bracketed root."""

        def f(x):
            return x**3 - 0.165 * x**2 + 3.993e-4

        result = Brent(f).solve(0.0, 0.11)

        assert 0.0 <= result.x <= 0.11
        assert abs(f(result.x)) <= 1e-10

    @pytest.mark.parametrize(
        "f, a, b",
        [
            (lambda x: x**2 - 4.0, 0.0, 3.0),
            (lambda x: math.cos(x) - x, 0.0, 1.0),
            (lambda x: math.exp(x) - 10.0, 0.0, 4.0),
            (lambda x: math.tanh(x - 0.3), -5.0, 5.0),
            (cubic, 2.0, 3.0),
        ],
    )
    def test_root_is_contained_in_bracket(self, f, a, b):
        result = Brent(f).solve(a, b)

        assert a <= result.x <= b
        assert abs(f(result.x)) <= 1e-10

    def test_reversed_bracket(self):
        result = Brent(cubic).solve(3.0, 2.0)
        assert result.x == pytest.approx(2.09455148154233, abs=1e-14)

    def test_interpolation_steps_are_used(self):
        result = Brent(cubic).solve(2.0, 3.0)

        interpolated = result.step_counts.get(RootStep.SECANT.value, 0) + result.step_counts.get(
            RootStep.INVERSE_QUADRATIC.value, 0
        )
        assert interpolated > 0
        assert sum(result.step_counts.values()) == result.iterations

    def test_bisection_only(self):
        solver = Brent(cubic)
        fast = solver.solve(2.0, 3.0)
        slow = solver.solve(2.0, 3.0, bisection_only=True)

        assert slow.x == pytest.approx(2.09455148154233, abs=1e-14)
        assert set(slow.step_counts) == {RootStep.BISECTION.value}
        assert slow.iterations > fast.iterations

    def test_bisection_only_from_settings(self):
        result = brent_root(cubic, 2.0, 3.0, bisection_only=True)
        assert set(result.step_counts) == {RootStep.BISECTION.value}


class TestBrentRootBoundaries:
    """Endpoint roots, invalid brackets and iteration caps."""

    def test_root_at_left_endpoint(self):
        solver = Brent(lambda x: x * (x - 1.0))
        result = solver.solve(0.0, 0.5)

        assert result.x == 0.0
        assert result.iterations == 0
        assert result.n_feval == 2

    def test_root_at_right_endpoint(self):
        result = Brent(lambda x: x - 2.0).solve(0.0, 2.0)

        assert result.x == 2.0
        assert result.iterations == 0

    def test_invalid_bracket(self):
        """Both endpoints positive fails before iterating."""
        with pytest.raises(InvalidBracketError, match="opposite signs") as exc:
            Brent(lambda x: x**2 + 1.0).solve(-1.0, 1.0)

        assert isinstance(exc.value, ValueError)
        assert exc.value.fa == pytest.approx(2.0)
        assert exc.value.fb == pytest.approx(2.0)
        assert exc.value.iterations == 0
        assert exc.value.n_feval == 2

    def test_empty_bracket(self):
        with pytest.raises(InvalidBracketError):
            Brent(cubic).solve(2.5, 2.5)

    def test_max_iterations_exceeded(self):
        with pytest.raises(MaxIterationsExceeded, match="failed to converge") as exc:
            Brent(lambda x: x**2 - 4.0).solve(0.0, 3.0, max_iter=2)

        assert exc.value.iterations == 2
        assert exc.value.n_feval == 4

    def test_invalid_override_is_rejected(self):
        with pytest.raises(ValidationError):
            Brent(cubic).solve(2.0, 3.0, max_iter=0)

    def test_settings_object(self):
        settings = BrentSettings(tol=1e-6, ftol=0.0)
        result = Brent(cubic, settings=settings).solve(2.0, 3.0)

        assert result.x == pytest.approx(2.09455148154233, abs=1e-5)


class TestBrentRootState:
    """Counters and evaluation failures."""

    def test_repeated_solves_are_identical(self):
        solver = Brent(cubic)
        first = solver.solve(2.0, 3.0)
        second = solver.solve(2.0, 3.0)

        assert first.x == second.x
        assert first.n_feval == second.n_feval
        assert first.iterations == second.iterations
        assert solver.n_feval == second.n_feval
        assert solver.iterations == second.iterations

    def test_counter_matches_calls(self):
        calls = []

        def f(x):
            calls.append(x)
            return cubic(x)

        result = Brent(f).solve(2.0, 3.0)
        assert result.n_feval == len(calls)

    def test_function_error_is_wrapped(self):
        def f(x):
            if x > 2.5:
                raise ValueError("outside domain")
            return x - 2.0

        with pytest.raises(EvaluationError) as exc:
            Brent(f).solve(0.0, 3.0)

        assert isinstance(exc.value.__cause__, ValueError)
        assert exc.value.x == 3.0
        assert exc.value.n_feval == 2

    def test_evaluation_error_propagates_unchanged(self):
        error = EvaluationError("negative pressure")

        def f(x):
            raise error

        with pytest.raises(EvaluationError) as exc:
            Brent(f).solve(0.0, 1.0)

        assert exc.value is error
        assert exc.value.n_feval == 1

    def test_nan_is_an_evaluation_failure(self):
        with pytest.raises(EvaluationError, match="nan"):
            Brent(lambda x: np.nan if x > 1.0 else x - 1.5).solve(0.0, 2.0)
