"""Shared data types for solver invocations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import numpy as np
from numpy.typing import ArrayLike

ScalarFunction = Callable[[float], float]
VectorFunction = Callable[[np.ndarray], ArrayLike]
JacobianFunction = Callable[[np.ndarray], ArrayLike]


class RootStep(str, Enum):
    """Step kinds taken by Brent's root finder."""

    BISECTION = "bisection"
    SECANT = "secant"
    INVERSE_QUADRATIC = "inverse_quadratic"


class MinimizeStep(str, Enum):
    """Step kinds taken by Brent's minimiser."""

    GOLDEN_SECTION = "golden_section"
    PARABOLIC = "parabolic"


@dataclass
class SolverState:
    """Mutable bookkeeping owned by a single solver call.

    A new instance is created at the start of every ``solve``/``minimize``/
    ``check`` call, so counters always start from zero and are never shared
    between calls.
    """

    iterations: int = 0
    n_feval: int = 0
    n_jeval: int = 0
    x: Any = None
    fx: Optional[float] = None
    last_step: Optional[Enum] = None
    step_counts: Dict[str, int] = field(default_factory=dict)
    residual_history: List[float] = field(default_factory=list)

    def record_step(self, kind: Enum) -> None:
        self.last_step = kind
        self.step_counts[kind.value] = self.step_counts.get(kind.value, 0) + 1


@dataclass(frozen=True)
class ConvergenceResult:
    """Outcome of a successful solver call.

    Attributes:
        x: Solution. A ``float`` for the scalar solvers, a read-only
            ``numpy.ndarray`` for the Newton solver.
        fx: Function value at ``x`` (scalar solvers) or the residual norm
            (Newton).
        iterations: Number of iterations performed.
        n_feval: Number of function evaluations.
        n_jeval: Number of Jacobian evaluations.
        method: Name of the algorithm that produced the result.
        step_counts: How many steps of each kind were taken.
        residual_history: Residual norms per iterate (Newton only).
    """

    x: Union[float, np.ndarray]
    fx: float
    iterations: int
    n_feval: int
    n_jeval: int = 0
    method: str = ""
    converged: bool = True
    step_counts: Mapping[str, int] = field(default_factory=dict)
    residual_history: tuple = ()

    @classmethod
    def from_state(
        cls, state: SolverState, x: Union[float, np.ndarray], fx: float, method: str
    ) -> "ConvergenceResult":
        if isinstance(x, np.ndarray):
            x = x.copy()
            x.setflags(write=False)
        return cls(
            x=x,
            fx=float(fx),
            iterations=state.iterations,
            n_feval=state.n_feval,
            n_jeval=state.n_jeval,
            method=method,
            step_counts=MappingProxyType(dict(state.step_counts)),
            residual_history=tuple(state.residual_history),
        )


__all__ = [
    "ConvergenceResult",
    "JacobianFunction",
    "MinimizeStep",
    "RootStep",
    "ScalarFunction",
    "SolverState",
    "VectorFunction",
]
