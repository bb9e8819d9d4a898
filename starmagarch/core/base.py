'''
Abstract base class for STARMAGARCH model front ends.

The base class fixes the life cycle shared by model objects: a model is
configured at construction, fitted once (or repeatedly) with :meth:`fit`, and
its results are only available after a successful fit.
'''

import abc
from typing import Any, Dict, Generic, Optional, TypeVar, Union

import numpy as np

from starmagarch.core.exceptions import raise_not_fitted_error

# Type variables for generic base classes
T = TypeVar('T')  # Generic type for parameters
R = TypeVar('R')  # Generic type for results
D = TypeVar('D')  # Generic type for data


class ModelBase(abc.ABC, Generic[T, R, D]):
    """Abstract base class for models.

    Type Parameters:
        T: The parameter type for this model
        R: The result type for this model
        D: The data type this model accepts
    """

    def __init__(self, name: str = "Model"):
        self._name = name
        self._fitted = False
        self._results: Optional[R] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def fitted(self) -> bool:
        """Whether the model has been fitted."""
        return self._fitted

    @property
    def results(self) -> R:
        """Get the model estimation results.

        Raises:
            NotFittedError: If the model has not been fitted
        """
        if not self._fitted or self._results is None:
            raise_not_fitted_error(
                "Model has not been fitted. Call fit() first.",
                model_type=self.name,
                operation="results"
            )
        return self._results

    @abc.abstractmethod
    def fit(self, data: D, parameters: T, **kwargs: Any) -> R:
        """Fit the model to the provided data.

        Args:
            data: The data to fit the model to
            parameters: Starting values
            **kwargs: Additional keyword arguments for model fitting

        Returns:
            R: The model estimation results
        """
        pass

    @abc.abstractmethod
    def simulate(self,
                 parameters: T,
                 n: int,
                 burnin: Optional[int] = None,
                 seed: Optional[Union[int, np.random.Generator]] = None,
                 **kwargs: Any) -> np.ndarray:
        """Simulate data from the model.

        Args:
            parameters: Parameters of the simulated process
            n: Number of periods to simulate
            burnin: Number of initial observations to discard
            seed: Random number generator or seed

        Returns:
            np.ndarray: Simulated data
        """
        pass

    def _check_no_extra_options(self, operation: str, kwargs: Dict[str, Any]) -> None:
        """Reject keyword arguments a concrete model does not understand.

        Raises:
            TypeError: If ``kwargs`` is not empty
        """
        if kwargs:
            unknown = ", ".join(sorted(kwargs))
            raise TypeError(
                f"{self.name}.{operation}() got unexpected keyword argument(s): {unknown}"
            )

    def summary(self) -> str:
        """Text summary of the fitted model.

        Raises:
            NotFittedError: If the model has not been fitted
        """
        return self.results.summary()

    def __str__(self) -> str:
        return f"{self.name} (fitted={self._fitted})"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"
