"""Central configuration access for numroot."""

from __future__ import annotations

from .defaults import ConfigDict, get_config, get_default_config, init_environment, solver_config
from .schemas import (
    BrentSettings,
    JacobianCheckSettings,
    MinimizeSettings,
    NewtonSettings,
    SolverConfig,
    load_config,
)

__all__ = [
    "BrentSettings",
    "ConfigDict",
    "JacobianCheckSettings",
    "MinimizeSettings",
    "NewtonSettings",
    "SolverConfig",
    "get_config",
    "get_default_config",
    "init_environment",
    "load_config",
    "solver_config",
]
