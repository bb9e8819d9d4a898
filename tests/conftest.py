'''
Pytest configuration and fixtures for the STARMAGARCH test suite.

Provides seeded random generators, standard parameter sets, neighbourhood
stacks and simulated lattice series shared across the test modules.
'''

import os
import tempfile

# Keep the suite away from any configuration file in the user's home
os.environ.setdefault("STARMAGARCH_CONFIG_DIR", tempfile.mkdtemp(prefix="starmagarch-test-"))

import numpy as np  # noqa: E402
import pytest  # noqa: E402

from starmagarch.core.config import reset_config  # noqa: E402
from starmagarch.core.parameters import ParameterSet  # noqa: E402
from starmagarch.models.neighbourhood import create_neighbourhood_array  # noqa: E402
from starmagarch.models.simulation import simulate_starmagarch  # noqa: E402


# ---- Configuration isolation ----

@pytest.fixture(autouse=True)
def default_config():
    """Restore default configuration after every test."""
    yield
    reset_config()


# ---- Random number generation ----

@pytest.fixture
def rng() -> np.random.Generator:
    """Provide a seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


# ---- Parameter sets ----

@pytest.fixture
def small_params() -> ParameterSet:
    """STARMAGARCH model with 7 parameters and two spatial orders."""
    return ParameterSet(
        mu=0.0,
        phi=[[0.3], [0.2]],
        omega=0.9,
        alpha=[[0.1], [0.05]],
        beta=[[0.4]],
    )


@pytest.fixture
def full_params() -> ParameterSet:
    """STARMAGARCH model with all terms present (12 parameters)."""
    return ParameterSet(
        mu=0.1,
        phi=[[0.3], [0.2]],
        theta=[[0.2], [0.1]],
        omega=0.9,
        alpha=[[0.1], [0.05]],
        beta=[[0.3, 0.1], [0.1, 0.05]],
    )


# ---- Lattices ----

@pytest.fixture
def grid_shape() -> tuple:
    return (4, 4)


@pytest.fixture
def W(grid_shape) -> np.ndarray:
    """Rook neighbourhood stack with two spatial orders on a 4x4 torus."""
    return create_neighbourhood_array(grid_shape, sp=2, type="rook", torus=True)


@pytest.fixture
def simulated_data(small_params, grid_shape, W) -> np.ndarray:
    """400 time steps of the small model on the 4x4 lattice."""
    return simulate_starmagarch(small_params, n=400, m=grid_shape, W=W, burnin=100, seed=123)


@pytest.fixture
def simulated_full_data(full_params, grid_shape, W) -> np.ndarray:
    """400 time steps of the full model on the 4x4 lattice."""
    return simulate_starmagarch(full_params, n=400, m=grid_shape, W=W, burnin=100, seed=321)
