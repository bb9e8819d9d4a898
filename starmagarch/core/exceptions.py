'''
Custom exception and warning classes for the STARMAGARCH toolkit.

This module defines the exception hierarchy used throughout the package. Every
error carries a primary message plus optional details and a context dictionary
that is rendered into the final message, so that a failing call reports which
array, parameter or optimizer setting was involved.

Shape and dimension problems are raised immediately when a neighbourhood stack,
parameter set or likelihood is constructed. Optimizer-level problems
(non-convergence, singular Hessians) are reported as warnings and recorded on
the result object instead of aborting the fit.
'''

import inspect
import warnings
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np


def _format_message(message: str,
                    details: Optional[str],
                    context: Optional[Dict[str, Any]]) -> str:
    full_message = message
    if details:
        full_message += f"\n\nDetails: {details}"

    if context:
        context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
        full_message += f"\n\nContext:\n{context_str}"

    # First frame outside this module is the code that raised
    frame = inspect.currentframe()
    try:
        caller = frame
        while caller is not None and caller.f_code.co_filename == __file__:
            caller = caller.f_back
        if caller is not None:
            info = inspect.getframeinfo(caller)
            full_message += f"\n\nLocation: {Path(info.filename).name}:{info.lineno}"
    finally:
        del frame

    return full_message


class STARMAGARCHError(Exception):
    """Base exception class for all STARMAGARCH errors.

    Attributes:
        message: The error message
        details: Additional details about the error
        context: Dictionary containing contextual information about the error
    """

    def __init__(self,
                 message: str,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details
        self.context = context or {}
        super().__init__(_format_message(message, details, context))


class ParameterError(STARMAGARCHError):
    """Exception raised when model parameters are malformed or invalid.

    Attributes:
        param_name: The name of the parameter that caused the error
        param_value: The invalid parameter value
        constraint: Description of the constraint that was violated
    """

    def __init__(self,
                 message: str,
                 param_name: Optional[str] = None,
                 param_value: Optional[Any] = None,
                 constraint: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.param_name = param_name
        self.param_value = param_value
        self.constraint = constraint

        context_dict = dict(context or {})
        if param_name:
            context_dict["Parameter"] = param_name
        if param_value is not None:
            context_dict["Value"] = param_value
        if constraint:
            context_dict["Constraint"] = constraint

        super().__init__(message, details, context_dict)


class DimensionError(STARMAGARCHError):
    """Exception raised for errors related to array dimensions.

    Attributes:
        array_name: The name of the array that caused the error
        expected_shape: The expected shape of the array
        actual_shape: The actual shape of the array
    """

    def __init__(self,
                 message: str,
                 array_name: Optional[str] = None,
                 expected_shape: Optional[Union[Tuple[int, ...], str]] = None,
                 actual_shape: Optional[Union[Tuple[int, ...], str]] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.array_name = array_name
        self.expected_shape = expected_shape
        self.actual_shape = actual_shape

        context_dict = dict(context or {})
        if array_name:
            context_dict["Array"] = array_name
        if expected_shape is not None:
            context_dict["Expected Shape"] = expected_shape
        if actual_shape is not None:
            context_dict["Actual Shape"] = actual_shape

        super().__init__(message, details, context_dict)


class InvalidShapeError(DimensionError):
    """Exception raised for a malformed grid shape or spatial lag order."""


class DimensionMismatchError(DimensionError):
    """Exception raised when two inputs have incompatible dimensions.

    Typical causes are a neighbourhood stack with fewer spatial lags than the
    parameter matrices reference, or an initial variance vector whose length
    differs from the number of lattice locations.
    """


class DataError(STARMAGARCHError):
    """Exception raised when observed lattice data is unusable.

    Attributes:
        data_name: The name of the data that caused the error
        issue: Description of the issue with the data
    """

    def __init__(self,
                 message: str,
                 data_name: Optional[str] = None,
                 issue: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.data_name = data_name
        self.issue = issue

        context_dict = dict(context or {})
        if data_name:
            context_dict["Data"] = data_name
        if issue:
            context_dict["Issue"] = issue

        super().__init__(message, details, context_dict)


class ModelSpecificationError(STARMAGARCHError):
    """Exception raised for errors in model specification.

    Attributes:
        model_type: The type of model being specified
        parameter: The option that is incorrectly specified
        valid_options: List of valid options for the parameter
    """

    def __init__(self,
                 message: str,
                 model_type: Optional[str] = None,
                 parameter: Optional[str] = None,
                 valid_options: Optional[List[Any]] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.model_type = model_type
        self.parameter = parameter
        self.valid_options = valid_options

        context_dict = dict(context or {})
        if model_type:
            context_dict["Model Type"] = model_type
        if parameter:
            context_dict["Parameter"] = parameter
        if valid_options:
            context_dict["Valid Options"] = valid_options

        super().__init__(message, details, context_dict)


class EstimationError(STARMAGARCHError):
    """Exception raised when model estimation fails for reasons other than convergence.

    Attributes:
        model_type: The type of model being estimated
        estimation_method: The optimizer being used
        issue: Description of the issue that occurred during estimation
    """

    def __init__(self,
                 message: str,
                 model_type: Optional[str] = None,
                 estimation_method: Optional[str] = None,
                 issue: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.model_type = model_type
        self.estimation_method = estimation_method
        self.issue = issue

        context_dict = dict(context or {})
        if model_type:
            context_dict["Model Type"] = model_type
        if estimation_method:
            context_dict["Estimation Method"] = estimation_method
        if issue:
            context_dict["Issue"] = issue

        super().__init__(message, details, context_dict)


class SimulationError(STARMAGARCHError):
    """Exception raised when a simulation cannot be carried out.

    Attributes:
        model_type: The type of model being simulated
        n_periods: Number of periods requested
        issue: Description of the issue
    """

    def __init__(self,
                 message: str,
                 model_type: Optional[str] = None,
                 n_periods: Optional[int] = None,
                 issue: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.model_type = model_type
        self.n_periods = n_periods
        self.issue = issue

        context_dict = dict(context or {})
        if model_type:
            context_dict["Model Type"] = model_type
        if n_periods is not None:
            context_dict["Periods"] = n_periods
        if issue:
            context_dict["Issue"] = issue

        super().__init__(message, details, context_dict)


class NotFittedError(STARMAGARCHError):
    """Exception raised when results are requested from a model that was never fitted."""

    def __init__(self,
                 message: str,
                 model_type: Optional[str] = None,
                 operation: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.model_type = model_type
        self.operation = operation

        context_dict = dict(context or {})
        if model_type:
            context_dict["Model Type"] = model_type
        if operation:
            context_dict["Operation"] = operation

        super().__init__(message, details, context_dict)


class ConfigurationError(STARMAGARCHError):
    """Exception raised for invalid configuration sections, options or values.

    Attributes:
        section: Configuration section involved
        option: Configuration option involved
        value: The rejected value
    """

    def __init__(self,
                 message: str,
                 section: Optional[str] = None,
                 option: Optional[str] = None,
                 value: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.section = section
        self.option = option
        self.value = value

        context_dict = dict(context or {})
        if section:
            context_dict["Section"] = section
        if option:
            context_dict["Option"] = option
        if value is not None:
            context_dict["Value"] = value

        super().__init__(message, details, context_dict)


class STARMAGARCHWarning(Warning):
    """Base warning class for all STARMAGARCH warnings."""

    def __init__(self,
                 message: str,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details
        self.context = context or {}

        full_message = message
        if details:
            full_message += f"\n\nDetails: {details}"
        if context:
            context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
            full_message += f"\n\nContext:\n{context_str}"

        super().__init__(full_message)


class ConvergenceWarning(STARMAGARCHWarning):
    """Warning issued when the optimizer stops without reporting convergence.

    Attributes:
        iterations: The number of iterations performed
        final_value: The final objective function value
        gradient_norm: The norm of the final gradient
    """

    def __init__(self,
                 message: str,
                 iterations: Optional[int] = None,
                 final_value: Optional[float] = None,
                 gradient_norm: Optional[float] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.iterations = iterations
        self.final_value = final_value
        self.gradient_norm = gradient_norm

        context_dict = dict(context or {})
        if iterations is not None:
            context_dict["Iterations"] = iterations
        if final_value is not None:
            context_dict["Final Value"] = final_value
        if gradient_norm is not None:
            context_dict["Gradient Norm"] = gradient_norm

        super().__init__(message, details, context_dict)


class NumericWarning(STARMAGARCHWarning):
    """Warning for numerical issues that do not prevent computation.

    Attributes:
        operation: The operation where the issue was detected
        issue: Description of the numerical issue
        value: The value that may cause numerical issues
    """

    def __init__(self,
                 message: str,
                 operation: Optional[str] = None,
                 issue: Optional[str] = None,
                 value: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.operation = operation
        self.issue = issue
        self.value = value

        context_dict = dict(context or {})
        if operation:
            context_dict["Operation"] = operation
        if issue:
            context_dict["Issue"] = issue
        if value is not None:
            if isinstance(value, np.ndarray) and value.size > 10:
                # Truncate large arrays for readability
                context_dict["Value"] = f"Array with shape {value.shape}"
            else:
                context_dict["Value"] = value

        super().__init__(message, details, context_dict)


# Helper functions for raising exceptions with consistent formatting

def raise_parameter_error(message: str,
                          param_name: Optional[str] = None,
                          param_value: Optional[Any] = None,
                          constraint: Optional[str] = None,
                          details: Optional[str] = None,
                          context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a ParameterError with consistent formatting.

    Raises:
        ParameterError: The formatted parameter error
    """
    raise ParameterError(message, param_name, param_value, constraint, details, context)


def raise_invalid_shape_error(message: str,
                              array_name: Optional[str] = None,
                              expected_shape: Optional[Union[Tuple[int, ...], str]] = None,
                              actual_shape: Optional[Union[Tuple[int, ...], str]] = None,
                              details: Optional[str] = None,
                              context: Optional[Dict[str, Any]] = None) -> None:
    """Raise an InvalidShapeError with consistent formatting.

    Raises:
        InvalidShapeError: The formatted shape error
    """
    raise InvalidShapeError(message, array_name, expected_shape, actual_shape, details, context)


def raise_dimension_mismatch_error(message: str,
                                   array_name: Optional[str] = None,
                                   expected_shape: Optional[Union[Tuple[int, ...], str]] = None,
                                   actual_shape: Optional[Union[Tuple[int, ...], str]] = None,
                                   details: Optional[str] = None,
                                   context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a DimensionMismatchError with consistent formatting.

    Raises:
        DimensionMismatchError: The formatted dimension error
    """
    raise DimensionMismatchError(message, array_name, expected_shape, actual_shape, details, context)


def raise_data_error(message: str,
                     data_name: Optional[str] = None,
                     issue: Optional[str] = None,
                     details: Optional[str] = None,
                     context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a DataError with consistent formatting.

    Raises:
        DataError: The formatted data error
    """
    raise DataError(message, data_name, issue, details, context)


def raise_not_fitted_error(message: str,
                           model_type: Optional[str] = None,
                           operation: Optional[str] = None,
                           details: Optional[str] = None,
                           context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a NotFittedError with consistent formatting.

    Raises:
        NotFittedError: The formatted not-fitted error
    """
    raise NotFittedError(message, model_type, operation, details, context)


def warn_convergence(message: str,
                     iterations: Optional[int] = None,
                     final_value: Optional[float] = None,
                     gradient_norm: Optional[float] = None,
                     details: Optional[str] = None,
                     context: Optional[Dict[str, Any]] = None) -> None:
    """Issue a ConvergenceWarning with consistent formatting."""
    warnings.warn(
        ConvergenceWarning(message, iterations, final_value, gradient_norm, details, context),
        stacklevel=3
    )


def warn_numeric(message: str,
                 operation: Optional[str] = None,
                 issue: Optional[str] = None,
                 value: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
    """Issue a NumericWarning with consistent formatting."""
    warnings.warn(
        NumericWarning(message, operation, issue, value, details, context),
        stacklevel=3
    )
