"""numroot: bracketed scalar solvers and Newton's method for nonlinear systems."""

from __future__ import annotations

from numroot.config import get_config, init_environment, load_config
from numroot.solvers import (
    Brent,
    ConvergenceResult,
    JacobianValidator,
    NewtonSolver,
    SolverError,
    brent_minimize,
    brent_root,
    check_jacobian,
    newton_solve,
)

__all__ = [
    "Brent",
    "ConvergenceResult",
    "JacobianValidator",
    "NewtonSolver",
    "SolverError",
    "brent_minimize",
    "brent_root",
    "check_jacobian",
    "get_config",
    "init_environment",
    "load_config",
    "newton_solve",
]

__version__ = "0.1.0"
