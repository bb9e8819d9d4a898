"""
Model-object front end for STARMAGARCH processes on a fixed lattice.

:class:`STARMAGARCH` holds a grid shape and its neighbourhood stack and
wraps the functional API (:func:`simulate_starmagarch`,
:func:`create_likelihood`, :func:`fit_starmagarch`) so that repeated
simulations and fits on the same lattice share one stack.

Examples:
    >>> from starmagarch import STARMAGARCH, ParameterSet, ParameterMask
    >>> params = ParameterSet(mu=0.0, phi=[[0.3], [0.2]], omega=0.9,
    ...                       alpha=[[0.1], [0.05]], beta=[[0.4]])
    >>> model = STARMAGARCH((4, 4), sp=2)
    >>> y = model.simulate(params, n=500, seed=7)
    >>> result = model.fit(y, params, mask=ParameterMask(mu=False))  # doctest: +SKIP
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional, Union

import numpy as np

from starmagarch.core.base import ModelBase
from starmagarch.core.config import get_simulation_config
from starmagarch.core.exceptions import raise_dimension_mismatch_error
from starmagarch.core.parameters import ParameterMask, ParameterSet
from starmagarch.core.results import FitResult, SimulationResult
from starmagarch.core.types import (
    GridShape, LatticeData, NeighbourhoodStack, OptimizationMethod, Topology, Vector
)
from starmagarch.core.validation import validate_grid_shape, validate_neighbourhood_stack
from starmagarch.models.estimation import fit_starmagarch
from starmagarch.models.likelihood import DerivativeProvider, STARMAGARCHLikelihood, create_likelihood
from starmagarch.models.neighbourhood import create_neighbourhood_array
from starmagarch.models.simulation import as_parameter_set, simulate_starmagarch_paths

# Set up module-level logger
logger = logging.getLogger("starmagarch.models.starmagarch")


class STARMAGARCH(ModelBase[ParameterSet, FitResult, LatticeData]):
    """STARMAGARCH model on a regular lattice.

    Args:
        shape: Grid shape
        type: Contiguity rule, "rook" or "queen" (default from configuration)
        torus: Wrap the grid at its edges (default from configuration)
        sp: Number of spatial lags of the neighbourhood stack. When omitted
            the stack is built on first use from the parameters' spatial order
        W: Precomputed neighbourhood stack, overrides ``type``, ``torus`` and ``sp``

    Raises:
        InvalidShapeError: If the shape is malformed
        DimensionMismatchError: If W does not match the grid size
    """

    def __init__(self,
                 shape: GridShape,
                 type: Optional[Topology] = None,
                 torus: Optional[bool] = None,
                 sp: Optional[int] = None,
                 W: Optional[NeighbourhoodStack] = None) -> None:
        super().__init__(name="STARMAGARCH")
        defaults = get_simulation_config()
        self.shape = validate_grid_shape(shape)
        self.type = defaults.topology if type is None else type
        self.torus = defaults.torus if torus is None else torus
        self.n_locations = int(np.prod(self.shape))

        if W is not None:
            W = validate_neighbourhood_stack(W, self.n_locations)
        elif sp is not None:
            W = create_neighbourhood_array(self.shape, sp=sp, type=self.type, torus=self.torus)
        self._W = W
        self._fixed_stack = W is not None
        self._likelihood: Optional[STARMAGARCHLikelihood] = None
        self._simulation: Optional[SimulationResult] = None

    @property
    def W(self) -> Optional[NeighbourhoodStack]:
        """Neighbourhood stack, None until it is first needed."""
        return self._W

    @property
    def likelihood(self) -> Optional[STARMAGARCHLikelihood]:
        """Likelihood object of the last fit."""
        return self._likelihood

    @property
    def last_simulation(self) -> Optional[SimulationResult]:
        return self._simulation

    def neighbourhood(self, parameters: Optional[ParameterSet] = None) -> NeighbourhoodStack:
        """Neighbourhood stack covering the spatial order of ``parameters``.

        The stored stack is rebuilt with more lags when the parameters need
        them; a stack fixed at construction (through ``W`` or ``sp``) is never
        rebuilt.

        Raises:
            DimensionMismatchError: If a fixed stack is too short
        """
        needed = max(parameters.max_spatial_lag, 1) if parameters is not None else 1
        if self._W is None or (self._W.shape[0] < needed and not self._fixed_stack):
            self._W = create_neighbourhood_array(
                self.shape, sp=needed, type=self.type, torus=self.torus
            )
        elif self._W.shape[0] < needed:
            raise_dimension_mismatch_error(
                f"Neighbourhood stack has {self._W.shape[0]} spatial lags but the "
                f"parameters reference {needed}",
                array_name="W",
                expected_shape=f"at least {needed} lags",
                actual_shape=self._W.shape
            )
        return self._W

    def simulate(self,
                 parameters: Union[ParameterSet, Mapping],
                 n: int,
                 burnin: Optional[int] = None,
                 seed: Optional[Union[int, np.random.Generator]] = None,
                 **kwargs: Any) -> np.ndarray:
        """Simulate a series on the model's lattice.

        The lattice, including its contiguity rule and edge wrapping, is fixed
        at construction; any other keyword argument raises ``TypeError``.

        Returns:
            np.ndarray: Series of shape (N, n)
        """
        self._check_no_extra_options("simulate", kwargs)
        parameters = as_parameter_set(parameters)
        W = self.neighbourhood(parameters)
        self._simulation = simulate_starmagarch_paths(
            parameters, n, self.shape, W=W, burnin=burnin, seed=seed
        )
        return np.array(self._simulation.series)

    def fit(self,
            data: LatticeData,
            parameters: Union[ParameterSet, Mapping],
            init: Optional[Vector] = None,
            mask: Optional[Union[ParameterMask, Mapping]] = None,
            verbose: bool = False,
            derivatives: Optional[DerivativeProvider] = None,
            method: Optional[OptimizationMethod] = None,
            options: Optional[Dict[str, Any]] = None,
            **kwargs: Any) -> FitResult:
        """Fit the model to a lattice series.

        Args:
            data: Observations, locations in rows and time in columns
            parameters: Starting values, their shapes fix the model orders
            init: Pre-sample conditional variance per location
            mask: Parameter mask pinning entries to fixed values
            verbose: Log optimizer progress
            derivatives: Gradient and Hessian provider
            method: Optimization method
            options: Extra optimizer options

        Raises:
            TypeError: If an unknown keyword argument is given

        Returns:
            FitResult: The estimation results
        """
        self._check_no_extra_options("fit", kwargs)
        parameters = as_parameter_set(parameters)
        W = self.neighbourhood(parameters)
        self._likelihood = create_likelihood(
            data, W, init=init, parameters=parameters, mask=mask, derivatives=derivatives
        )
        self._results = fit_starmagarch(
            self._likelihood, verbose=verbose, method=method, options=options
        )
        self._fitted = True
        logger.debug(f"Fitted {self.name} on grid {self.shape}")
        return self._results

    def __repr__(self) -> str:
        return (f"STARMAGARCH(shape={self.shape}, type='{self.type}', torus={self.torus}, "
                f"fitted={self._fitted})")
