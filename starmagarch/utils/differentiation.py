"""
Numerical Differentiation Module

Finite-difference gradients and Hessians used as the default derivative
provider of the likelihood. Any object with ``gradient(func, x)`` and
``hessian(func, x)`` methods (for instance a wrapper around an automatic
differentiation library) can replace :class:`NumericalDerivatives`.

Functions:
    gradient_2sided: Two-sided (central) numerical gradient of a scalar function
    hessian_2sided: Two-sided numerical Hessian of a scalar function
"""

import logging
from typing import Optional, Tuple

import numpy as np

from starmagarch.core.exceptions import raise_dimension_mismatch_error, warn_numeric
from starmagarch.core.types import Matrix, ObjectiveFunction, Vector

# Set up module-level logger
logger = logging.getLogger("starmagarch.utils.differentiation")

_EPS = np.finfo(float).eps


def _step_sizes(x: np.ndarray, relative_step: float) -> np.ndarray:
    # Relative steps for large coordinates, absolute steps near zero
    return relative_step * np.maximum(np.abs(x), 1.0)


def _as_point(x: Vector, operation: str) -> np.ndarray:
    x = np.asarray(x, dtype=float)
    if x.ndim != 1:
        raise_dimension_mismatch_error(
            f"Input to {operation} must be a 1D vector",
            array_name="x",
            expected_shape="(n,)",
            actual_shape=x.shape
        )
    return x


def gradient_2sided(func: ObjectiveFunction,
                    x: Vector,
                    epsilon: Optional[float] = None,
                    args: Tuple = ()) -> Vector:
    """
    Compute two-sided numerical gradient of a function.

    For a function f(x), each partial derivative is approximated by

    ∂f/∂x_i ≈ [f(x + h_i*e_i) - f(x - h_i*e_i)] / (2*h_i)

    with h_i = epsilon * max(|x_i|, 1).

    Args:
        func: Function to differentiate, takes a vector and returns a scalar
        x: Point at which to compute the gradient
        epsilon: Relative step size, defaults to the cube root of machine epsilon
        args: Additional arguments to pass to the function

    Returns:
        Gradient vector of the same shape as x

    Raises:
        DimensionMismatchError: If x is not a 1D array

    Examples:
        >>> import numpy as np
        >>> from starmagarch.utils.differentiation import gradient_2sided
        >>> def f(x): return x[0]**2 + x[1]**2
        >>> np.round(gradient_2sided(f, np.array([1.0, 2.0])), 6)
        array([2., 4.])
    """
    x = _as_point(x, "gradient_2sided")
    if epsilon is None:
        epsilon = np.power(_EPS, 1 / 3)
    h = _step_sizes(x, epsilon)

    n = x.shape[0]
    grad = np.zeros(n, dtype=float)
    x_plus = x.copy()
    x_minus = x.copy()

    for i in range(n):
        x_plus[i] = x[i] + h[i]
        x_minus[i] = x[i] - h[i]
        f_plus = func(x_plus, *args)
        f_minus = func(x_minus, *args)

        grad[i] = (f_plus - f_minus) / (2.0 * h[i])

        if not np.isfinite(grad[i]):
            warn_numeric(
                f"Non-finite gradient detected at index {i}",
                operation="gradient_2sided",
                issue="non_finite_gradient",
                value=grad[i]
            )

        x_plus[i] = x[i]
        x_minus[i] = x[i]

    return grad


def hessian_2sided(func: ObjectiveFunction,
                   x: Vector,
                   epsilon: Optional[float] = None,
                   args: Tuple = ()) -> Matrix:
    """
    Compute two-sided numerical Hessian of a function.

    ∂²f/∂x_i² ≈ [f(x + 2h_i*e_i) - 2f(x) + f(x - 2h_i*e_i)] / (4*h_i²)
    ∂²f/∂x_i∂x_j ≈ [f(x + h_i*e_i + h_j*e_j) - f(x + h_i*e_i - h_j*e_j)
                    - f(x - h_i*e_i + h_j*e_j) + f(x - h_i*e_i - h_j*e_j)] / (4*h_i*h_j)

    Args:
        func: Function to differentiate, takes a vector and returns a scalar
        x: Point at which to compute the Hessian
        epsilon: Relative step size, defaults to the fourth root of machine epsilon
        args: Additional arguments to pass to the function

    Returns:
        Symmetric Hessian matrix of shape (n, n)

    Raises:
        DimensionMismatchError: If x is not a 1D array
    """
    x = _as_point(x, "hessian_2sided")
    if epsilon is None:
        epsilon = np.power(_EPS, 1 / 4)
    h = _step_sizes(x, epsilon)

    n = x.shape[0]
    hess = np.zeros((n, n), dtype=float)
    f0 = func(x, *args)

    for i in range(n):
        x_p = x.copy()
        x_m = x.copy()
        x_p[i] += 2.0 * h[i]
        x_m[i] -= 2.0 * h[i]
        hess[i, i] = (func(x_p, *args) - 2.0 * f0 + func(x_m, *args)) / (4.0 * h[i] * h[i])

    for i in range(n):
        for j in range(i + 1, n):
            x_pp = x.copy()
            x_pm = x.copy()
            x_mp = x.copy()
            x_mm = x.copy()
            x_pp[i] += h[i]
            x_pp[j] += h[j]
            x_pm[i] += h[i]
            x_pm[j] -= h[j]
            x_mp[i] -= h[i]
            x_mp[j] += h[j]
            x_mm[i] -= h[i]
            x_mm[j] -= h[j]

            hess[i, j] = (func(x_pp, *args) - func(x_pm, *args)
                          - func(x_mp, *args) + func(x_mm, *args)) / (4.0 * h[i] * h[j])
            hess[j, i] = hess[i, j]

    if not np.all(np.isfinite(hess)):
        warn_numeric(
            "Non-finite elements detected in the numerical Hessian",
            operation="hessian_2sided",
            issue="non_finite_hessian",
            value=hess
        )

    return hess


class NumericalDerivatives:
    """Finite-difference derivative provider.

    Args:
        gradient_step: Relative step for gradients (None for the default)
        hessian_step: Relative step for Hessians (None for the default)
    """

    def __init__(self,
                 gradient_step: Optional[float] = None,
                 hessian_step: Optional[float] = None) -> None:
        self.gradient_step = gradient_step
        self.hessian_step = hessian_step

    def gradient(self, func: ObjectiveFunction, x: Vector) -> Vector:
        return gradient_2sided(func, x, epsilon=self.gradient_step)

    def hessian(self, func: ObjectiveFunction, x: Vector) -> Matrix:
        return hessian_2sided(func, x, epsilon=self.hessian_step)

    def __repr__(self) -> str:
        return (f"NumericalDerivatives(gradient_step={self.gradient_step}, "
                f"hessian_step={self.hessian_step})")
