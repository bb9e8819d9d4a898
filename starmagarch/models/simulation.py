"""
Simulation of STARMAGARCH processes on regular lattices.

The process is started from a zero history of observations, innovations and
conditional variances, run for ``burnin + n`` steps and the first ``burnin``
steps are discarded. Shocks are drawn from ``numpy.random.default_rng`` so a
fixed seed reproduces the series bit for bit.

Functions:
    simulate_starmagarch: Simulate a lattice series (locations x time)
    simulate_starmagarch_paths: Simulate and return series, innovations and variances
"""

import logging
from collections.abc import Mapping
from typing import Optional, Union

import numpy as np

from starmagarch.core.config import get_simulation_config
from starmagarch.core.exceptions import SimulationError, raise_parameter_error
from starmagarch.core.parameters import ParameterSet
from starmagarch.core.results import SimulationResult
from starmagarch.core.types import GridShape, LatticeSeries, NeighbourhoodStack, Topology
from starmagarch.core.validation import validate_grid_shape, validate_neighbourhood_stack
from starmagarch.models._core import starmagarch_simulate
from starmagarch.models.neighbourhood import create_neighbourhood_array

# Set up module-level logger
logger = logging.getLogger("starmagarch.models.simulation")


def as_parameter_set(parameters: Union[ParameterSet, Mapping]) -> ParameterSet:
    """Accept a ParameterSet or a mapping of its fields."""
    if isinstance(parameters, ParameterSet):
        return parameters
    if isinstance(parameters, Mapping):
        return ParameterSet(**parameters)
    raise TypeError(
        f"parameters must be a ParameterSet or a mapping, got {type(parameters).__name__}"
    )


def kernel_arrays(parameters: ParameterSet, W: NeighbourhoodStack) -> dict:
    """Contiguous, writable float64 copies of the arrays the numba kernels read."""
    arrays = {
        name: np.require(getattr(parameters, name), dtype=np.float64, requirements=["C", "W"])
        for name in ("phi", "theta", "alpha", "beta")
    }
    arrays["W"] = np.require(W, dtype=np.float64, requirements=["C", "W"])
    return arrays


def _check_variance_process(parameters: ParameterSet) -> None:
    if parameters.omega <= 0:
        logger.warning(
            f"omega={parameters.omega:g} is not positive; the conditional variance "
            f"path may become negative"
        )
    persistence = parameters.persistence()
    if persistence >= 1:
        logger.warning(
            f"alpha and beta sum to {persistence:g} >= 1; the conditional variance "
            f"path may explode"
        )


def simulate_starmagarch_paths(parameters: Union[ParameterSet, Mapping],
                               n: int,
                               m: GridShape,
                               W: Optional[NeighbourhoodStack] = None,
                               type: Optional[Topology] = None,
                               torus: Optional[bool] = None,
                               burnin: Optional[int] = None,
                               seed: Optional[Union[int, np.random.Generator]] = None
                               ) -> SimulationResult:
    """Simulate a STARMAGARCH process and keep the latent paths.

    Args:
        parameters: Model parameters
        n: Number of time steps to return
        m: Grid shape
        W: Precomputed neighbourhood stack; built from ``type`` and ``torus``
            when omitted
        type: Contiguity rule used when W is built ("rook" or "queen")
        torus: Wrap the grid when W is built
        burnin: Number of initial steps to discard (default from configuration)
        seed: Seed or ``numpy.random.Generator``

    Returns:
        SimulationResult: Series, innovations and conditional variances, each
        of shape (N, n)

    Raises:
        ParameterError: If ``n < 1`` or ``burnin < 0``
        InvalidShapeError: If the grid shape is malformed
        DimensionMismatchError: If W has fewer spatial lags than the parameters
            reference or its size differs from ``prod(m)``
        SimulationError: If the recursion fails
    """
    parameters = as_parameter_set(parameters)
    defaults = get_simulation_config()

    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 1:
        raise_parameter_error(
            "n must be a positive integer",
            param_name="n",
            param_value=n,
            constraint="n >= 1"
        )

    burnin = defaults.burnin if burnin is None else burnin
    if isinstance(burnin, bool) or not isinstance(burnin, (int, np.integer)) or burnin < 0:
        raise_parameter_error(
            "burnin must be a non-negative integer",
            param_name="burnin",
            param_value=burnin,
            constraint="burnin >= 0"
        )

    dims = validate_grid_shape(m, "m")
    n_locations = int(np.prod(dims))

    if W is None:
        W = create_neighbourhood_array(
            dims,
            sp=max(parameters.max_spatial_lag, 1),
            type=type,
            torus=torus
        )
    else:
        W = validate_neighbourhood_stack(W, n_locations, parameters)

    _check_variance_process(parameters)

    if isinstance(seed, np.random.Generator):
        rng = seed
    else:
        rng = np.random.default_rng(seed)

    total = int(n) + int(burnin)
    z = rng.standard_normal((total, n_locations))
    y = np.zeros((total, n_locations))
    e = np.zeros((total, n_locations))
    h = np.zeros((total, n_locations))

    arrays = kernel_arrays(parameters, W)
    try:
        starmagarch_simulate(
            arrays["W"], parameters.mu, arrays["phi"], arrays["theta"],
            parameters.omega, arrays["alpha"], arrays["beta"], z, y, e, h
        )
    except Exception as err:
        raise SimulationError(
            f"Error during simulation: {str(err)}",
            model_type="STARMAGARCH",
            n_periods=n,
            issue=str(err)
        ) from err

    if not np.all(np.isfinite(y[burnin:])):
        logger.warning("Simulated series contains non-finite values; "
                       "the variance recursion is degenerate for these parameters")

    logger.debug(f"Simulated {n} steps on {n_locations} locations (burnin={burnin})")

    return SimulationResult(
        series=y[burnin:].T,
        innovations=e[burnin:].T,
        variances=h[burnin:].T,
        parameters=parameters,
        shape=dims,
        W=W,
        burnin=int(burnin),
    )


def simulate_starmagarch(parameters: Union[ParameterSet, Mapping],
                         n: int,
                         m: GridShape,
                         W: Optional[NeighbourhoodStack] = None,
                         type: Optional[Topology] = None,
                         torus: Optional[bool] = None,
                         burnin: Optional[int] = None,
                         seed: Optional[Union[int, np.random.Generator]] = None
                         ) -> LatticeSeries:
    """Simulate a STARMAGARCH lattice series.

    See :func:`simulate_starmagarch_paths` for the arguments.

    Returns:
        np.ndarray: Series of shape (prod(m), n), rows are locations in C order

    Examples:
        >>> from starmagarch import ParameterSet, simulate_starmagarch
        >>> params = ParameterSet(mu=0.0, phi=[[0.3], [0.2]], omega=0.9,
        ...                       alpha=[[0.1], [0.05]], beta=[[0.4]])
        >>> y = simulate_starmagarch(params, n=200, m=(5, 5), seed=1)
        >>> y.shape
        (25, 200)
    """
    return simulate_starmagarch_paths(
        parameters, n, m, W=W, type=type, torus=torus, burnin=burnin, seed=seed
    ).series
