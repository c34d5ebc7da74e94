"""Pydantic-based solver settings and YAML helpers."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


class _Settings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    def with_overrides(self, **overrides: Any):
        """Return a validated copy with the non-``None`` ``overrides`` applied."""
        updates = {key: value for key, value in overrides.items() if value is not None}
        if not updates:
            return self
        return type(self).model_validate({**self.model_dump(), **updates})


class BrentSettings(_Settings):
    """Brent root-finding configuration."""

    tol: float = Field(default=1e-15, ge=0.0, description="Absolute bracket-width tolerance")
    ftol: float = Field(
        default=1e-15, ge=0.0, description="|f(x)| at or below which x is accepted as a root"
    )
    max_iter: int = Field(default=100, gt=0, description="Maximum number of iterations")
    bisection_only: bool = Field(default=False, description="Disable interpolation steps")


class MinimizeSettings(_Settings):
    """Brent minimisation configuration."""

    tol: float = Field(default=1e-15, ge=0.0, description="Absolute tolerance on the minimiser")
    max_iter: int = Field(default=100, gt=0, description="Maximum number of iterations")


class NewtonSettings(_Settings):
    """Newton solver configuration."""

    ftol: float = Field(default=1e-9, gt=0.0, description="Residual-norm tolerance")
    max_iter: int = Field(default=20, gt=0, description="Maximum number of Newton updates")
    line_search: bool = Field(default=False, description="Damp steps that do not reduce ||F||")
    ls_max_iter: int = Field(default=10, gt=0, description="Maximum number of step halvings")
    ls_armijo: float = Field(
        default=1e-4, gt=0.0, lt=1.0, description="Sufficient-decrease coefficient"
    )
    norm: Literal["max", "l2"] = Field(default="max", description="Residual norm")
    divergence_window: int = Field(
        default=5, gt=0, description="Consecutive residual increases treated as divergence"
    )
    divergence_limit: float = Field(
        default=1e150, gt=0.0, description="Residual norm treated as divergence"
    )
    fd_step: float = Field(
        default=1e-7, gt=0.0, description="Relative step of the finite-difference Jacobian"
    )

    @field_validator("norm", mode="before")
    @classmethod
    def validate_norm(cls, value: Any) -> Any:
        if isinstance(value, str):
            canonical = value.lower()
            if canonical in {"inf", "max_abs"}:
                return "max"
            if canonical in {"2", "euclidean"}:
                return "l2"
            return canonical
        return value


class JacobianCheckSettings(_Settings):
    """Finite-difference Jacobian check configuration."""

    perturbation: float = Field(default=1e-6, gt=0.0, description="Forward-difference step")
    tolerance: float = Field(
        default=1e-4, gt=0.0, description="Largest acceptable relative discrepancy"
    )
    verbose: bool = Field(default=False, description="Log the per-entry comparison")


class SolverConfig(BaseModel):
    """Top-level container for all solver settings."""

    model_config = ConfigDict(extra="forbid")

    brent: BrentSettings = Field(default_factory=BrentSettings)
    minimize: MinimizeSettings = Field(default_factory=MinimizeSettings)
    newton: NewtonSettings = Field(default_factory=NewtonSettings)
    jacobian_check: JacobianCheckSettings = Field(default_factory=JacobianCheckSettings)

    @classmethod
    def from_mapping(cls, mapping: Any) -> "SolverConfig":
        """Build settings from a plain mapping or an ``ml_collections.ConfigDict``."""
        if hasattr(mapping, "to_dict"):
            mapping = mapping.to_dict()
        return cls.model_validate(dict(mapping or {}))


def load_config(path: Path | str) -> SolverConfig:
    """Load a YAML file into a :class:`SolverConfig`.

    The file may either hold the sections directly or nest them under a
    top-level ``solvers`` key.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
    if not isinstance(payload, dict):
        raise ValueError(f"Configuration at {path} must contain a mapping")
    if set(payload) == {"solvers"} and isinstance(payload["solvers"], Mapping):
        payload = dict(payload["solvers"])
    return SolverConfig.model_validate(payload)


__all__ = [
    "BrentSettings",
    "JacobianCheckSettings",
    "MinimizeSettings",
    "NewtonSettings",
    "SolverConfig",
    "load_config",
]
