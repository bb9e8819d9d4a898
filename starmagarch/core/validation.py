# starmagarch/core/validation.py

"""
Input validation for lattice shapes, lattice series and neighbourhood stacks.

The validators return the normalised input (a tuple of ints, a float64
array) so callers can validate and coerce in one step. Failures raise the
shape, dimension or data errors of :mod:`starmagarch.core.exceptions`.
"""

from typing import Optional, Tuple

import numpy as np
import pandas as pd

from starmagarch.core.exceptions import (
    raise_data_error, raise_dimension_mismatch_error, raise_invalid_shape_error,
    raise_parameter_error
)
from starmagarch.core.parameters import ParameterSet
from starmagarch.core.types import GridShape, LatticeData, NeighbourhoodStack, Vector


def validate_grid_shape(shape: GridShape, shape_name: str = "shape") -> Tuple[int, ...]:
    """Validate a lattice shape.

    Args:
        shape: A positive integer or a sequence of positive integers
        shape_name: Name used in error messages

    Returns:
        Tuple[int, ...]: The shape as a tuple of Python ints

    Raises:
        InvalidShapeError: If the shape is empty, non-integer or has entries < 1
    """
    if isinstance(shape, (int, np.integer)) and not isinstance(shape, bool):
        shape = (shape,)

    try:
        dims = tuple(shape)
    except TypeError:
        raise_invalid_shape_error(
            f"{shape_name} must be an integer or a sequence of integers",
            array_name=shape_name,
            actual_shape=repr(shape)
        )

    if len(dims) == 0:
        raise_invalid_shape_error(
            f"{shape_name} must have at least one dimension",
            array_name=shape_name,
            actual_shape=dims
        )

    result = []
    for dim in dims:
        if isinstance(dim, bool) or not isinstance(dim, (int, np.integer)):
            if isinstance(dim, (float, np.floating)) and float(dim).is_integer():
                dim = int(dim)
            else:
                raise_invalid_shape_error(
                    f"{shape_name} entries must be integers",
                    array_name=shape_name,
                    actual_shape=dims
                )
        if dim < 1:
            raise_invalid_shape_error(
                f"{shape_name} entries must be positive",
                array_name=shape_name,
                expected_shape="all entries >= 1",
                actual_shape=dims
            )
        result.append(int(dim))

    return tuple(result)


def validate_lattice_data(data: LatticeData,
                          n_locations: Optional[int] = None,
                          data_name: str = "data") -> np.ndarray:
    """Validate a lattice series with locations in rows and time in columns.

    Args:
        data: NumPy array or DataFrame of shape (N, T)
        n_locations: Expected number of rows, if known
        data_name: Name used in error messages

    Returns:
        np.ndarray: The data as a float64 array

    Raises:
        TypeError: If data is not an array or DataFrame
        DimensionMismatchError: If the data is not 2-D or has the wrong row count
        DataError: If the data contains NaN or infinite values
    """
    if isinstance(data, pd.DataFrame):
        values = data.to_numpy(dtype=np.float64)
    elif isinstance(data, np.ndarray):
        values = np.asarray(data, dtype=np.float64)
    else:
        raise TypeError(
            f"{data_name} must be a NumPy array or pandas DataFrame, "
            f"got {type(data).__name__}"
        )

    if values.ndim != 2:
        raise_dimension_mismatch_error(
            f"{data_name} must be 2-D (locations x time)",
            array_name=data_name,
            expected_shape="(N, T)",
            actual_shape=values.shape
        )

    if n_locations is not None and values.shape[0] != n_locations:
        raise_dimension_mismatch_error(
            f"{data_name} has {values.shape[0]} locations, expected {n_locations}",
            array_name=data_name,
            expected_shape=(n_locations, values.shape[1]),
            actual_shape=values.shape
        )

    if np.isnan(values).any():
        raise_data_error(
            f"{data_name} contains NaN values",
            data_name=data_name,
            issue="contains NaN values"
        )
    if np.isinf(values).any():
        raise_data_error(
            f"{data_name} contains infinite values",
            data_name=data_name,
            issue="contains infinite values"
        )

    return values


def validate_neighbourhood_stack(W: NeighbourhoodStack,
                                 n_locations: Optional[int] = None,
                                 parameters: Optional[ParameterSet] = None) -> np.ndarray:
    """Validate a neighbourhood stack against the lattice and the parameters.

    Raises:
        DimensionMismatchError: If W is not (sp, N, N), N differs from
            ``n_locations`` or sp is smaller than the spatial lag order the
            parameters reference
    """
    W = np.asarray(W, dtype=np.float64)
    if W.ndim == 2:
        W = W[np.newaxis]

    if W.ndim != 3 or W.shape[1] != W.shape[2]:
        raise_dimension_mismatch_error(
            "Neighbourhood stack must have shape (sp, N, N)",
            array_name="W",
            expected_shape="(sp, N, N)",
            actual_shape=W.shape
        )

    if n_locations is not None and W.shape[1] != n_locations:
        raise_dimension_mismatch_error(
            f"Neighbourhood matrices are {W.shape[1]}x{W.shape[2]} "
            f"but the lattice has {n_locations} locations",
            array_name="W",
            expected_shape=(W.shape[0], n_locations, n_locations),
            actual_shape=W.shape
        )

    if parameters is not None and W.shape[0] < parameters.max_spatial_lag:
        raise_dimension_mismatch_error(
            f"Neighbourhood stack has {W.shape[0]} spatial lags but the parameters "
            f"reference {parameters.max_spatial_lag}",
            array_name="W",
            expected_shape=f"at least {parameters.max_spatial_lag} lags",
            actual_shape=W.shape
        )

    return W


def validate_init_vector(init: Vector, n_locations: int) -> np.ndarray:
    """Validate the pre-sample conditional variance vector.

    Raises:
        DimensionMismatchError: If the length differs from ``n_locations``
        ParameterError: If any entry is negative or non-finite
    """
    init = np.asarray(init, dtype=np.float64)
    if init.ndim == 0:
        init = np.full(n_locations, float(init))
    init = init.ravel()

    if init.shape[0] != n_locations:
        raise_dimension_mismatch_error(
            f"init has length {init.shape[0]} but the lattice has {n_locations} locations",
            array_name="init",
            expected_shape=(n_locations,),
            actual_shape=init.shape
        )

    if not np.all(np.isfinite(init)):
        raise_parameter_error(
            "init contains non-finite values",
            param_name="init",
            constraint="finite and non-negative"
        )

    if np.any(init < 0):
        raise_parameter_error(
            "init must be non-negative",
            param_name="init",
            param_value=init.min(),
            constraint="init >= 0"
        )

    return init
