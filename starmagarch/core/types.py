# starmagarch/core/types.py

"""
Core type annotations for the STARMAGARCH toolkit.

These aliases document the array conventions used across the package. A
lattice series is always stored with locations in rows and time steps in
columns; a neighbourhood stack is a 3-D array indexed by spatial lag.
"""

from typing import Callable, Literal, Sequence, Union

import numpy as np
import pandas as pd

# NumPy array type aliases
Vector = np.ndarray  # 1D array
Matrix = np.ndarray  # 2D array

# (sp, N, N) stack of spatial weight matrices, lag 0 is the identity
NeighbourhoodStack = np.ndarray

# (N, T) observations, rows are lattice locations, columns are time steps
LatticeSeries = np.ndarray
LatticeData = Union[np.ndarray, pd.DataFrame]

GridShape = Union[int, Sequence[int]]
Topology = Literal["rook", "queen"]

# Coefficient matrices: rows are spatial lag orders, columns temporal lags
CoefficientLike = Union[None, float, Sequence[float], Sequence[Sequence[float]], np.ndarray]

# Optimization types
OptimizationMethod = Literal["L-BFGS-B", "BFGS"]
ObjectiveFunction = Callable[[np.ndarray], float]
