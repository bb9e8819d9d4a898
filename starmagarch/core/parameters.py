# starmagarch/core/parameters.py

"""
Parameter containers and the parameter-masking layer.

A STARMAGARCH(p, q, r, s) model is described by two scalars (``mu`` and
``omega``) and four coefficient matrices (``phi``, ``theta``, ``alpha``,
``beta``). In every matrix the row index is the spatial lag order (row 0
multiplies the identity, row k the k-th neighbourhood matrix) and the column
index is the temporal lag minus one. The temporal orders p, q, r and s are
therefore the column counts of the four matrices.

Parameters are flattened in the fixed field order mu, phi, theta, omega,
alpha, beta, each matrix in column-major order, and individual entries are
named ``"<field>[<spatial order>,<temporal lag>]"``, e.g. ``"phi[1,2]"`` is
the coefficient of ``W^(1) y_{t-2}``.

A :class:`ParameterMask` pins any subset of entries to fixed values. It is
resolved once against an initial :class:`ParameterSet` into a
:class:`ParameterLayout`, which maps between the full parameter vector and
the free vector seen by the optimizer.
"""

import re
from collections.abc import Mapping
from dataclasses import FrozenInstanceError, dataclass, replace
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from starmagarch.core.exceptions import (
    ParameterError, raise_dimension_mismatch_error, raise_parameter_error
)
from starmagarch.core.types import CoefficientLike

FIELD_ORDER: Tuple[str, ...] = ("mu", "phi", "theta", "omega", "alpha", "beta")
SCALAR_FIELDS: Tuple[str, ...] = ("mu", "omega")
MATRIX_FIELDS: Tuple[str, ...] = ("phi", "theta", "alpha", "beta")
MEAN_FIELDS: Tuple[str, ...] = ("mu", "phi", "theta")
VARIANCE_FIELDS: Tuple[str, ...] = ("omega", "alpha", "beta")

_ENTRY_NAME = re.compile(r"^(phi|theta|alpha|beta)\[(\d+),(\d+)\]$")


def _as_coefficient_matrix(value: CoefficientLike, name: str) -> np.ndarray:
    """Coerce a user supplied coefficient specification to a 2-D float array."""
    if value is None:
        return np.zeros((0, 0))

    try:
        matrix = np.array(value, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ParameterError(
            f"Parameter {name} must be a numeric matrix",
            param_name=name,
            details=str(e)
        ) from e

    if matrix.ndim == 0:
        matrix = matrix.reshape(1, 1)
    elif matrix.ndim == 1:
        # A plain sequence is one temporal lag over spatial orders 0..len-1
        matrix = matrix.reshape(-1, 1)
    elif matrix.ndim > 2:
        raise_parameter_error(
            f"Parameter {name} must have at most two dimensions, got {matrix.ndim}",
            param_name=name,
            constraint="rows = spatial lag orders, columns = temporal lags"
        )

    if matrix.size == 0:
        return np.zeros((0, 0))

    if not np.all(np.isfinite(matrix)):
        raise_parameter_error(
            f"Parameter {name} contains non-finite values",
            param_name=name,
            param_value=matrix
        )

    return np.ascontiguousarray(matrix)


def _as_scalar(value: Any, name: str) -> float:
    try:
        scalar = float(value)
    except (TypeError, ValueError) as e:
        raise ParameterError(
            f"Parameter {name} must be a real number",
            param_name=name,
            param_value=value
        ) from e
    if not np.isfinite(scalar):
        raise_parameter_error(
            f"Parameter {name} must be finite",
            param_name=name,
            param_value=scalar
        )
    return scalar


def entry_names(name: str, shape: Tuple[int, int]) -> List[str]:
    """Names of the entries of a coefficient matrix in column-major order."""
    rows, cols = shape
    return [f"{name}[{k},{lag + 1}]" for lag in range(cols) for k in range(rows)]


@dataclass(eq=False)
class ParameterSet:
    """Parameters of a STARMAGARCH model.

    Attributes:
        mu: Intercept of the mean equation
        phi: Autoregressive coefficients (spatial orders x temporal lags)
        theta: Moving-average coefficients (spatial orders x temporal lags)
        omega: Intercept of the conditional variance equation
        alpha: ARCH coefficients on past squared innovations
        beta: GARCH coefficients on past conditional variances

    Matrices may be given as nested sequences, numpy arrays, scalars (a 1x1
    matrix) or ``None`` (term absent). No stationarity condition is enforced.
    """

    mu: float = 0.0
    phi: Any = None
    theta: Any = None
    omega: float = 1.0
    alpha: Any = None
    beta: Any = None

    def __post_init__(self) -> None:
        self.mu = _as_scalar(self.mu, "mu")
        self.omega = _as_scalar(self.omega, "omega")
        for name in MATRIX_FIELDS:
            setattr(self, name, _as_coefficient_matrix(getattr(self, name), name))

    @property
    def shapes(self) -> Dict[str, Tuple[int, int]]:
        """Shape of each coefficient matrix."""
        return {name: getattr(self, name).shape for name in MATRIX_FIELDS}

    @property
    def orders(self) -> Tuple[int, int, int, int]:
        """Temporal orders (p, q, r, s) of phi, theta, alpha and beta."""
        return tuple(getattr(self, name).shape[1] for name in MATRIX_FIELDS)

    @property
    def max_spatial_lag(self) -> int:
        """Number of neighbourhood matrices the coefficient matrices reference."""
        return max(getattr(self, name).shape[0] for name in MATRIX_FIELDS)

    @property
    def max_temporal_lag(self) -> int:
        return max(self.orders)

    @property
    def n_params(self) -> int:
        return len(SCALAR_FIELDS) + sum(getattr(self, name).size for name in MATRIX_FIELDS)

    @property
    def names(self) -> List[str]:
        """Entry names in flattening order."""
        names: List[str] = []
        for name in FIELD_ORDER:
            if name in SCALAR_FIELDS:
                names.append(name)
            else:
                names.extend(entry_names(name, getattr(self, name).shape))
        return names

    def persistence(self) -> float:
        """Sum of the ARCH and GARCH coefficients.

        With row-normalised neighbourhood matrices this is the persistence of
        the variance recursion for spatially constant inputs. Values at or
        above one indicate an explosive variance path.
        """
        return float(self.alpha.sum() + self.beta.sum())

    def to_vector(self) -> np.ndarray:
        """Flatten all parameters into a single vector."""
        pieces = []
        for name in FIELD_ORDER:
            value = getattr(self, name)
            if name in SCALAR_FIELDS:
                pieces.append(np.array([value]))
            else:
                pieces.append(value.ravel(order="F"))
        return np.concatenate(pieces)

    @classmethod
    def from_vector(cls, vector: np.ndarray, like: "ParameterSet") -> "ParameterSet":
        """Rebuild a parameter set with the shapes of ``like`` from a flat vector.

        Raises:
            DimensionMismatchError: If the vector length does not match ``like``
        """
        vector = np.asarray(vector, dtype=np.float64).ravel()
        if vector.shape[0] != like.n_params:
            raise_dimension_mismatch_error(
                "Parameter vector length does not match the parameter layout",
                array_name="vector",
                expected_shape=(like.n_params,),
                actual_shape=vector.shape
            )

        values: Dict[str, Any] = {}
        position = 0
        for name in FIELD_ORDER:
            if name in SCALAR_FIELDS:
                values[name] = vector[position]
                position += 1
            else:
                shape = getattr(like, name).shape
                size = shape[0] * shape[1]
                values[name] = (vector[position:position + size].reshape(shape, order="F")
                                if size else None)
                position += size
        return cls(**values)

    def field_slices(self) -> Dict[str, slice]:
        """Position of each field in the flattened vector."""
        slices = {}
        position = 0
        for name in FIELD_ORDER:
            size = 1 if name in SCALAR_FIELDS else getattr(self, name).size
            slices[name] = slice(position, position + size)
            position += size
        return slices

    def to_dict(self) -> Dict[str, Any]:
        return {name: (getattr(self, name) if name in SCALAR_FIELDS
                       else getattr(self, name).copy())
                for name in FIELD_ORDER}

    def to_series(self) -> pd.Series:
        """All parameters as a pandas Series indexed by entry name."""
        return pd.Series(self.to_vector(), index=self.names, name="value")

    def copy(self) -> "ParameterSet":
        return replace(self)

    def read_only(self) -> "ParameterSet":
        """Copy of the parameter set that can no longer be changed.

        The coefficient matrices of the copy are marked read-only and
        assigning to any field raises :class:`dataclasses.FrozenInstanceError`.
        :meth:`copy` of a read-only set is writable again.
        """
        frozen = self.copy()
        for name in MATRIX_FIELDS:
            getattr(frozen, name).setflags(write=False)
        object.__setattr__(frozen, "_read_only", True)
        return frozen

    @property
    def is_read_only(self) -> bool:
        return getattr(self, "_read_only", False)

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_read_only", False):
            raise FrozenInstanceError(f"cannot assign to field {name!r} of a read-only ParameterSet")
        super().__setattr__(name, value)

    def same_layout(self, other: "ParameterSet") -> bool:
        """Whether both parameter sets have identical matrix shapes."""
        return self.shapes == other.shapes

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParameterSet):
            return NotImplemented
        return self.same_layout(other) and np.array_equal(self.to_vector(), other.to_vector())

    def __repr__(self) -> str:
        p, q, r, s = self.orders
        return (f"ParameterSet(mu={self.mu:g}, omega={self.omega:g}, "
                f"orders=(p={p}, q={q}, r={r}, s={s}), "
                f"spatial_lags={self.max_spatial_lag})")


class Free:
    """Marker for a parameter that is estimated."""

    _instance: Optional["Free"] = None

    def __new__(cls) -> "Free":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "FREE"


FREE = Free()


@dataclass(frozen=True)
class Fixed:
    """Marker for a parameter pinned to ``value``.

    ``value=None`` keeps the value found in the initial parameter set. For a
    whole matrix field the value may be a scalar (broadcast) or a matrix of
    the field's shape.
    """

    value: Any = None


MaskValue = Union[Free, Fixed, bool, float, int]


def _normalise_mask_value(key: str, value: Any) -> Union[Free, Fixed]:
    if isinstance(value, (Free, Fixed)):
        return value
    if isinstance(value, (bool, np.bool_)):
        return FREE if value else Fixed()
    if isinstance(value, (int, float, np.number)):
        return Fixed(float(value))
    if isinstance(value, (np.ndarray, list, tuple)) and key in MATRIX_FIELDS:
        return Fixed(np.asarray(value, dtype=np.float64))
    raise ParameterError(
        f"Invalid mask value for {key}",
        param_name=key,
        param_value=value,
        constraint="FREE, Fixed(value), a bool or a number"
    )


class ParameterMask(Mapping):
    """Immutable mapping from parameter names to FREE or Fixed markers.

    Keys are field names (``"phi"``) or entry names (``"phi[0,1]"``); entry
    keys take precedence over field keys. Names that are not mentioned are
    free.

    Examples:
        >>> mask = ParameterMask(mu=False, phi=False, theta=False)
        >>> mask = ParameterMask({"alpha[1,1]": 0.0, "omega": FREE})
    """

    __slots__ = ("_entries",)

    def __init__(self, mapping: Optional[Mapping[str, MaskValue]] = None,
                 **fields_: MaskValue) -> None:
        combined: Dict[str, Any] = dict(mapping or {})
        combined.update(fields_)

        entries = {}
        for key, value in combined.items():
            if key not in FIELD_ORDER and not _ENTRY_NAME.match(key):
                raise ParameterError(
                    f"Unknown parameter name in mask: {key}",
                    param_name=key,
                    constraint=f"one of {FIELD_ORDER} or an entry name such as 'phi[0,1]'"
                )
            entries[key] = _normalise_mask_value(key, value)
        object.__setattr__(self, "_entries", MappingProxyType(entries))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("ParameterMask is immutable")

    def __getitem__(self, key: str) -> Union[Free, Fixed]:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ParameterMask({dict(self._entries)!r})"

    def resolve(self, initial: ParameterSet) -> "ParameterLayout":
        """Resolve the mask against an initial parameter set.

        Raises:
            ParameterError: If an entry name lies outside the matrix shapes or
                a fixed value cannot be broadcast to its field
        """
        names = initial.names
        index = {name: i for i, name in enumerate(names)}
        values = initial.to_vector().copy()
        free = np.ones(len(names), dtype=bool)
        slices = initial.field_slices()

        field_keys = [k for k in self._entries if k in FIELD_ORDER]
        entry_keys = [k for k in self._entries if k not in FIELD_ORDER]

        for key in field_keys:
            marker = self._entries[key]
            span = slices[key]
            if isinstance(marker, Free):
                free[span] = True
                continue
            free[span] = False
            if marker.value is not None:
                shape = (1,) if key in SCALAR_FIELDS else getattr(initial, key).shape
                try:
                    fixed = np.broadcast_to(np.asarray(marker.value, dtype=np.float64), shape)
                except ValueError as e:
                    raise ParameterError(
                        f"Fixed value for {key} does not fit its shape",
                        param_name=key,
                        param_value=marker.value,
                        constraint=f"scalar or array of shape {shape}"
                    ) from e
                values[span] = fixed.ravel(order="F")

        for key in entry_keys:
            if key not in index:
                raise ParameterError(
                    f"Mask entry {key} is outside the parameter matrices",
                    param_name=key,
                    context={"Shapes": initial.shapes}
                )
            marker = self._entries[key]
            i = index[key]
            if isinstance(marker, Free):
                free[i] = True
            else:
                free[i] = False
                if marker.value is not None:
                    values[i] = _as_scalar(marker.value, key)

        return ParameterLayout(template=initial, values=values, free=free)


@dataclass(frozen=True)
class ParameterLayout:
    """Mapping between full parameter vectors and the optimizer's free vector.

    Attributes:
        template: Parameter set defining the matrix shapes
        values: Full parameter vector holding fixed values and initial free values
        free: Boolean flags marking the free entries of ``values``
    """

    template: ParameterSet
    values: np.ndarray
    free: np.ndarray

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=np.float64)
        free = np.array(self.free, dtype=bool)
        values.setflags(write=False)
        free.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "free", free)

    @property
    def names(self) -> List[str]:
        return self.template.names

    @property
    def free_index(self) -> np.ndarray:
        return np.flatnonzero(self.free)

    @property
    def free_names(self) -> List[str]:
        return [name for name, is_free in zip(self.names, self.free) if is_free]

    @property
    def fixed_names(self) -> List[str]:
        return [name for name, is_free in zip(self.names, self.free) if not is_free]

    @property
    def n_free(self) -> int:
        return int(self.free.sum())

    @property
    def initial(self) -> np.ndarray:
        """Starting free vector."""
        return self.values[self.free].copy()

    def pack(self, parameters: ParameterSet) -> np.ndarray:
        """Extract the free vector from a parameter set with this layout."""
        if not parameters.same_layout(self.template):
            raise_dimension_mismatch_error(
                "Parameter set does not match the likelihood's parameter layout",
                array_name="parameters",
                expected_shape=str(self.template.shapes),
                actual_shape=str(parameters.shapes)
            )
        return parameters.to_vector()[self.free]

    def expand(self, x: Sequence[float]) -> np.ndarray:
        """Full parameter vector with the free entries replaced by ``x``."""
        x = np.asarray(x, dtype=np.float64).ravel()
        if x.shape[0] != self.n_free:
            raise_dimension_mismatch_error(
                "Free parameter vector has the wrong length",
                array_name="x",
                expected_shape=(self.n_free,),
                actual_shape=x.shape
            )
        full = self.values.copy()
        full[self.free] = x
        return full

    def unpack(self, x: Sequence[float]) -> ParameterSet:
        """Rebuild the full parameter set from a free vector."""
        return ParameterSet.from_vector(self.expand(x), self.template)

    def bounds(self, variance_lower_bound: Optional[float] = None,
               nonnegative_garch: bool = False) -> List[Tuple[Optional[float], Optional[float]]]:
        """Box bounds for the free parameters.

        Args:
            variance_lower_bound: Lower bound for omega, None for unbounded
            nonnegative_garch: Bound alpha and beta entries below by zero
        """
        bounds = []
        for name in self.free_names:
            if name == "omega":
                bounds.append((variance_lower_bound, None))
            elif nonnegative_garch and name.startswith(("alpha[", "beta[")):
                bounds.append((0.0, None))
            else:
                bounds.append((None, None))
        return bounds
