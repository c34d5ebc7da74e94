"""Configure test environment for importing the project package."""
import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[2]
if ROOT.exists() and str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(scope="session", autouse=True)
def numroot_environment():
    """Enable double precision for jax-based test functions."""
    from numroot.config import get_config, init_environment

    return init_environment(get_config({"logging": {"force": False}}))


@pytest.fixture
def nonlinear_system():
    """2-D system with a root at (6, 1) and its analytic Jacobian.

    x^2 + y - 37 = 0
    x - y^2 - 5 = 0
    """

    def residual(x: np.ndarray) -> np.ndarray:
        return np.array([x[0] ** 2 + x[1] - 37.0, x[0] - x[1] ** 2 - 5.0])

    def jacobian(x: np.ndarray) -> np.ndarray:
        return np.array([[2.0 * x[0], 1.0], [1.0, -2.0 * x[1]]])

    return residual, jacobian
