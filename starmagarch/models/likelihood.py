"""
Conditional Gaussian likelihood of the STARMAGARCH model.

:func:`create_likelihood` bundles the observed lattice series, the
neighbourhood stack, the pre-sample variance and a resolved parameter mask
into a :class:`STARMAGARCHLikelihood`. The object evaluates the negative
log-likelihood, its gradient and its Hessian at a vector of free parameters,
which is the interface the optimizer in :mod:`starmagarch.models.estimation`
works against.

The likelihood conditions on the first ``max(p, q, r, s)`` time steps: their
innovations are set to zero and their conditional variances to ``init``, and
they do not contribute to the sum. Every later step contributes

    0.5 * (log(2π) + log h_t + e_t² / h_t)

for every location.
"""

import logging
from collections.abc import Mapping
from typing import Optional, Protocol, Tuple, Union, runtime_checkable

import numpy as np

from starmagarch.core.config import get_numerical_config
from starmagarch.core.exceptions import raise_data_error, raise_dimension_mismatch_error
from starmagarch.core.parameters import ParameterLayout, ParameterMask, ParameterSet
from starmagarch.core.types import (
    LatticeData, Matrix, NeighbourhoodStack, ObjectiveFunction, Vector
)
from starmagarch.core.validation import (
    validate_init_vector, validate_lattice_data, validate_neighbourhood_stack
)
from starmagarch.models._core import gaussian_nll, starmagarch_filter
from starmagarch.models.simulation import as_parameter_set
from starmagarch.utils.differentiation import NumericalDerivatives

# Set up module-level logger
logger = logging.getLogger("starmagarch.models.likelihood")


@runtime_checkable
class DerivativeProvider(Protocol):
    """Anything that can differentiate a scalar function of a vector."""

    def gradient(self, func: ObjectiveFunction, x: Vector) -> Vector:
        ...

    def hessian(self, func: ObjectiveFunction, x: Vector) -> Matrix:
        ...


class STARMAGARCHLikelihood:
    """Negative log-likelihood of a STARMAGARCH model over the free parameters.

    Instances are created by :func:`create_likelihood`. The data, the
    neighbourhood stack and the parameter layout are fixed at construction.

    Attributes:
        data: Observed series of shape (N, T)
        W: Neighbourhood stack of shape (sp, N, N)
        init: Pre-sample conditional variance of length N
        layout: Resolved parameter layout
        mask: Parameter mask the layout was resolved from
        derivatives: Gradient and Hessian provider
        burn: Number of pre-sample time steps
    """

    def __init__(self,
                 data: np.ndarray,
                 W: NeighbourhoodStack,
                 init: np.ndarray,
                 layout: ParameterLayout,
                 mask: ParameterMask,
                 derivatives: DerivativeProvider,
                 invalid_value: float = 1e10) -> None:
        self.data = np.array(data, dtype=np.float64)
        self.data.setflags(write=False)
        self.W = W
        self.init = np.array(init, dtype=np.float64)
        self.init.setflags(write=False)
        self.layout = layout
        self.mask = mask
        self.derivatives = derivatives
        self.invalid_value = float(invalid_value)
        self.burn = layout.template.max_temporal_lag

        # Kernel inputs, time-major and writable
        self._y = np.ascontiguousarray(self.data.T)
        self._W = np.require(W, dtype=np.float64, requirements=["C", "W"])
        self._init = self.init.copy()

    @property
    def n_locations(self) -> int:
        return self.data.shape[0]

    @property
    def n_periods(self) -> int:
        return self.data.shape[1]

    @property
    def nobs(self) -> int:
        """Number of observations contributing to the likelihood."""
        return self.n_locations * (self.n_periods - self.burn)

    @property
    def par(self) -> np.ndarray:
        """Initial free parameter vector."""
        return self.layout.initial

    @property
    def names(self):
        """Names of the free parameters."""
        return self.layout.free_names

    @property
    def n_free(self) -> int:
        return self.layout.n_free

    def unpack(self, x: Vector) -> ParameterSet:
        """Full parameter set for a free parameter vector."""
        return self.layout.unpack(x)

    def _check_layout(self, parameters: ParameterSet) -> None:
        if not parameters.same_layout(self.layout.template):
            raise_dimension_mismatch_error(
                "Parameter set does not match the likelihood's parameter layout",
                array_name="parameters",
                expected_shape=str(self.layout.template.shapes),
                actual_shape=str(parameters.shapes)
            )

    def _filter(self, parameters: ParameterSet) -> Tuple[np.ndarray, np.ndarray]:
        T, N = self._y.shape
        e = np.empty((T, N))
        h = np.empty((T, N))
        starmagarch_filter(
            self._W, parameters.mu,
            np.require(parameters.phi, dtype=np.float64, requirements=["C", "W"]),
            np.require(parameters.theta, dtype=np.float64, requirements=["C", "W"]),
            parameters.omega,
            np.require(parameters.alpha, dtype=np.float64, requirements=["C", "W"]),
            np.require(parameters.beta, dtype=np.float64, requirements=["C", "W"]),
            self._y, self._init, self.burn, e, h
        )
        return e, h

    def filter(self, parameters: Union[ParameterSet, Mapping]) -> Tuple[np.ndarray, np.ndarray]:
        """Innovations and conditional variances implied by ``parameters``.

        Returns:
            Tuple[np.ndarray, np.ndarray]: Innovations and variances, each of
            shape (N, T); the first ``burn`` columns are the pre-sample
        """
        parameters = as_parameter_set(parameters)
        self._check_layout(parameters)
        e, h = self._filter(parameters)
        return e.T.copy(), h.T.copy()

    def loglikelihood(self, parameters: Union[ParameterSet, Mapping]) -> float:
        """Log-likelihood at a full parameter set (``-inf`` for invalid variances)."""
        parameters = as_parameter_set(parameters)
        self._check_layout(parameters)
        e, h = self._filter(parameters)
        return -float(gaussian_nll(e, h, self.burn))

    def fn(self, x: Vector) -> float:
        """Negative log-likelihood at the free vector ``x``.

        Parameter vectors whose variance path is not strictly positive and
        finite evaluate to ``invalid_value``.
        """
        x = np.asarray(x, dtype=np.float64)
        if not np.all(np.isfinite(x)):
            return self.invalid_value
        parameters = self.layout.unpack(x)
        e, h = self._filter(parameters)
        value = float(gaussian_nll(e, h, self.burn))
        if not np.isfinite(value):
            return self.invalid_value
        return value

    def gr(self, x: Vector) -> np.ndarray:
        """Gradient of :meth:`fn` at ``x``."""
        return np.asarray(self.derivatives.gradient(self.fn, np.asarray(x, dtype=np.float64)))

    def he(self, x: Vector) -> np.ndarray:
        """Hessian of :meth:`fn` at ``x``."""
        return np.asarray(self.derivatives.hessian(self.fn, np.asarray(x, dtype=np.float64)))

    def __call__(self, x: Vector) -> float:
        return self.fn(x)

    def __repr__(self) -> str:
        return (f"STARMAGARCHLikelihood(N={self.n_locations}, T={self.n_periods}, "
                f"n_free={self.n_free}, burn={self.burn})")


def create_likelihood(data: LatticeData,
                      W: NeighbourhoodStack,
                      init: Optional[Vector] = None,
                      parameters: Optional[Union[ParameterSet, Mapping]] = None,
                      mask: Optional[Union[ParameterMask, Mapping]] = None,
                      derivatives: Optional[DerivativeProvider] = None) -> STARMAGARCHLikelihood:
    """Build the likelihood object for a lattice series.

    Args:
        data: Observations with locations in rows and time steps in columns
        W: Neighbourhood stack with at least as many spatial lags as the
            parameter matrices reference
        init: Non-negative pre-sample conditional variance per location.
            Defaults to the sample variance of each location
        parameters: Starting values; their matrix shapes fix the model orders
        mask: Parameter mask pinning entries to fixed values
        derivatives: Gradient and Hessian provider, finite differences by default

    Returns:
        STARMAGARCHLikelihood: Callable negative log-likelihood bundle

    Raises:
        ParameterError: If parameters are missing, the mask is invalid or
            ``init`` has negative entries
        DimensionMismatchError: If W or ``init`` do not fit the data or the
            parameters
        DataError: If the data contains non-finite values or is not longer
            than the pre-sample

    Examples:
        >>> from starmagarch import ParameterSet, create_likelihood, create_neighbourhood_array
        >>> from starmagarch import simulate_starmagarch
        >>> params = ParameterSet(mu=0.0, phi=[[0.3], [0.2]], omega=0.9,
        ...                       alpha=[[0.1], [0.05]], beta=[[0.4]])
        >>> W = create_neighbourhood_array((4, 4), parameters=params)
        >>> y = simulate_starmagarch(params, n=300, m=(4, 4), W=W, seed=3)
        >>> lik = create_likelihood(y, W, parameters=params)
        >>> len(lik.names)
        7
    """
    if parameters is None:
        raise TypeError("create_likelihood requires starting parameters")
    parameters = as_parameter_set(parameters)

    values = validate_lattice_data(data)
    n_locations, n_periods = values.shape
    W = validate_neighbourhood_stack(W, n_locations, parameters)

    burn = parameters.max_temporal_lag
    if n_periods <= burn:
        raise_data_error(
            f"data has {n_periods} time steps but the model needs more than {burn}",
            data_name="data",
            issue="too few time steps for the model orders"
        )

    if init is None:
        init = values.var(axis=1)
    init = validate_init_vector(init, n_locations)

    if mask is None:
        mask = ParameterMask()
    elif not isinstance(mask, ParameterMask):
        mask = ParameterMask(mask)
    layout = mask.resolve(parameters)

    config = get_numerical_config()
    if derivatives is None:
        derivatives = NumericalDerivatives(gradient_step=config.finite_difference_step)
    elif not isinstance(derivatives, DerivativeProvider):
        raise TypeError("derivatives must provide gradient(func, x) and hessian(func, x)")

    likelihood = STARMAGARCHLikelihood(
        values, W, init, layout, mask, derivatives,
        invalid_value=config.invalid_likelihood_value
    )
    logger.debug(f"Created likelihood: N={n_locations}, T={n_periods}, burn={burn}, "
                 f"free={layout.n_free}, fixed={len(layout.fixed_names)}")
    return likelihood
