"""
Numerical solvers for scalar and multidimensional equations.

This package provides derivative-free bracketed solvers for scalar functions
(Brent's root finder and minimiser), Newton's method for nonlinear systems
and a finite-difference check of analytic Jacobians.
"""

from numroot.solvers.brent import Brent, brent_minimize, brent_root
from numroot.solvers.errors import (
    ConvergenceError,
    DivergenceError,
    EvaluationError,
    InvalidBracketError,
    MaxIterationsExceeded,
    SingularJacobianError,
    SolverError,
)
from numroot.solvers.jacobian import (
    JacobianCheck,
    JacobianValidator,
    check_jacobian,
    numerical_jacobian,
)
from numroot.solvers.linalg import condition_number, solve_dense, vector_norm
from numroot.solvers.newton import NewtonSolver, newton_solve
from numroot.solvers.types import ConvergenceResult, MinimizeStep, RootStep, SolverState

__all__ = [
    "Brent",
    "ConvergenceError",
    "ConvergenceResult",
    "DivergenceError",
    "EvaluationError",
    "InvalidBracketError",
    "JacobianCheck",
    "JacobianValidator",
    "MaxIterationsExceeded",
    "MinimizeStep",
    "NewtonSolver",
    "RootStep",
    "SingularJacobianError",
    "SolverError",
    "SolverState",
    "brent_minimize",
    "brent_root",
    "check_jacobian",
    "condition_number",
    "newton_solve",
    "numerical_jacobian",
    "solve_dense",
    "vector_norm",
]
