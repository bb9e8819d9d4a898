"""
Neighbourhood construction for regular lattices.

A neighbourhood stack holds one weight matrix per spatial lag order. Lag 0 is
the identity. Lag k contains, for every location, the locations at lattice
distance exactly k, where the distance is the number of rook moves (the
Manhattan distance) or king moves (the Chebyshev distance for queen
contiguity) between the two cells. Each non-empty row is normalised to sum to
one so that ``W[k] @ y`` is the average of the k-th order neighbours.

Locations are numbered in C (row-major) order of the grid shape, so a series
on a (rows, cols) grid maps to the lattice vector ``grid.ravel()``.

Functions:
    create_neighbourhood_array: Build the (sp, N, N) neighbourhood stack
    neighbourhood_summary: Tabulate neighbour counts of a stack
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd

from starmagarch.core.config import VALID_TOPOLOGIES, get_simulation_config
from starmagarch.core.exceptions import (
    ModelSpecificationError, raise_invalid_shape_error
)
from starmagarch.core.parameters import ParameterSet
from starmagarch.core.types import GridShape, NeighbourhoodStack, Topology
from starmagarch.core.validation import validate_grid_shape

# Set up module-level logger
logger = logging.getLogger("starmagarch.models.neighbourhood")


def lattice_distances(shape: GridShape,
                      type: str = "rook",
                      torus: bool = True) -> np.ndarray:
    """Pairwise lattice distances between all locations of a grid.

    Args:
        shape: Grid shape
        type: "rook" for the Manhattan distance, "queen" for the Chebyshev distance
        torus: Wrap every axis so opposite edges are adjacent

    Returns:
        np.ndarray: Integer matrix of shape (N, N)
    """
    dims = validate_grid_shape(shape)
    if type not in VALID_TOPOLOGIES:
        raise ModelSpecificationError(
            f"Unknown neighbourhood type: {type}",
            model_type="neighbourhood",
            parameter="type",
            valid_options=list(VALID_TOPOLOGIES)
        )

    n_locations = int(np.prod(dims))
    coords = np.indices(dims).reshape(len(dims), n_locations).T

    offsets = np.abs(coords[:, np.newaxis, :] - coords[np.newaxis, :, :])
    if torus:
        offsets = np.minimum(offsets, np.asarray(dims) - offsets)

    if type == "rook":
        return offsets.sum(axis=2)
    return offsets.max(axis=2)


def create_neighbourhood_array(shape: GridShape,
                               sp: Optional[int] = None,
                               type: Optional[Topology] = None,
                               torus: Optional[bool] = None,
                               parameters: Optional[ParameterSet] = None) -> NeighbourhoodStack:
    """Build a stack of row-normalised spatial weight matrices.

    Args:
        shape: Grid shape, e.g. ``(10, 10)``
        sp: Number of spatial lag orders (including lag 0). Inferred from
            ``parameters.max_spatial_lag`` when omitted
        type: Contiguity rule, "rook" or "queen" (default from configuration)
        torus: Wrap the grid at its edges (default from configuration)
        parameters: Parameter set used to infer ``sp``

    Returns:
        np.ndarray: Read-only array of shape (sp, N, N) with ``W[0]`` the identity

    Raises:
        InvalidShapeError: If the shape is malformed, ``sp < 1`` or ``sp``
            cannot be inferred
        ModelSpecificationError: If ``type`` is not a known contiguity rule

    Examples:
        >>> from starmagarch.models.neighbourhood import create_neighbourhood_array
        >>> W = create_neighbourhood_array((3, 3), sp=2, type="rook", torus=False)
        >>> W.shape
        (2, 9, 9)
        >>> float(W[1, 4].sum())
        1.0
    """
    defaults = get_simulation_config()
    type = defaults.topology if type is None else type
    torus = defaults.torus if torus is None else torus

    if sp is None:
        if parameters is None:
            raise_invalid_shape_error(
                "sp must be given when no parameters are supplied",
                array_name="sp",
                expected_shape="integer >= 1"
            )
        sp = max(parameters.max_spatial_lag, 1)

    if isinstance(sp, bool) or not isinstance(sp, (int, np.integer)) or sp < 1:
        raise_invalid_shape_error(
            f"sp must be a positive integer, got {sp!r}",
            array_name="sp",
            expected_shape="integer >= 1",
            actual_shape=repr(sp)
        )
    sp = int(sp)

    distances = lattice_distances(shape, type=type, torus=torus)
    n_locations = distances.shape[0]

    stack = np.zeros((sp, n_locations, n_locations), dtype=np.float64)
    stack[0] = np.eye(n_locations)

    for k in range(1, sp):
        adjacency = (distances == k).astype(np.float64)
        row_sums = adjacency.sum(axis=1)
        # Rows without neighbours at this distance stay zero
        stack[k] = adjacency / np.where(row_sums == 0, 1.0, row_sums)[:, np.newaxis]

        empty = int((row_sums == 0).sum())
        if empty:
            logger.debug(f"Spatial lag {k}: {empty} of {n_locations} locations have no neighbours")

    logger.debug(f"Built neighbourhood stack: N={n_locations}, sp={sp}, type={type}, torus={torus}")

    stack.setflags(write=False)
    return stack


def neighbourhood_summary(W: NeighbourhoodStack) -> pd.DataFrame:
    """Tabulate the neighbour structure of a neighbourhood stack.

    Args:
        W: Stack of shape (sp, N, N)

    Returns:
        pd.DataFrame: One row per spatial lag with the mean, minimum and
        maximum neighbour count, the number of all-zero rows and the density
        of non-zero weights
    """
    W = np.asarray(W)
    if W.ndim != 3 or W.shape[1] != W.shape[2]:
        raise_invalid_shape_error(
            "Neighbourhood stack must have shape (sp, N, N)",
            array_name="W",
            expected_shape="(sp, N, N)",
            actual_shape=W.shape
        )

    n_locations = W.shape[1]
    counts = (W != 0).sum(axis=2)
    rows = {
        "mean_neighbours": counts.mean(axis=1),
        "min_neighbours": counts.min(axis=1),
        "max_neighbours": counts.max(axis=1),
        "zero_rows": (counts == 0).sum(axis=1),
        "density": counts.sum(axis=1) / float(n_locations * n_locations),
    }
    frame = pd.DataFrame(rows, index=pd.RangeIndex(W.shape[0], name="lag"))
    return frame
