import numpy as np
from numba import jit


"""
Numba-accelerated recursions of the STARMAGARCH process.

The kernels work on time-major arrays of shape (T, N) so that the lattice
vector of a single time step is a contiguous row and spatial mixing is a
plain matrix-vector product with one slice of the neighbourhood stack.
Public functions in :mod:`starmagarch.models.simulation` and
:mod:`starmagarch.models.likelihood` transpose to and from the
locations-by-time layout used everywhere else.

Coefficient matrices are indexed [spatial order, temporal lag - 1]. Time
indices before zero refer to the zero initial history.
"""


@jit(nopython=True, cache=True)
def add_spatial_lags(out, W, coef, series, t):
    """Accumulate sum_i sum_k coef[k, i] * W[k] @ series[t - i - 1] into ``out``.

    Args:
        out: Length-N accumulator, updated in place
        W: Neighbourhood stack of shape (sp, N, N)
        coef: Coefficient matrix (spatial orders x temporal lags)
        series: Time-major history of shape (T, N)
        t: Current time index
    """
    n_orders, n_lags = coef.shape
    N = out.shape[0]
    for i in range(n_lags):
        lagged = t - i - 1
        if lagged < 0:
            continue
        for k in range(n_orders):
            c = coef[k, i]
            if c == 0.0:
                continue
            mixed = np.dot(W[k], series[lagged])
            for n in range(N):
                out[n] += c * mixed[n]


@jit(nopython=True, cache=True)
def starmagarch_simulate(W, mu, phi, theta, omega, alpha, beta, z, y, e, h):
    """Run the STARMAGARCH recursion forward from a zero initial state.

    h_t = ω + Σ α[k,i] W^(k) e²_{t-i-1} + Σ β[k,j] W^(k) h_{t-j-1}
    e_t = sqrt(h_t) z_t
    y_t = μ + Σ φ[k,i] W^(k) y_{t-i-1} + Σ θ[k,j] W^(k) e_{t-j-1} + e_t

    Args:
        W: Neighbourhood stack of shape (sp, N, N)
        mu: Mean intercept
        phi: Autoregressive coefficients
        theta: Moving-average coefficients
        omega: Variance intercept
        alpha: ARCH coefficients
        beta: GARCH coefficients
        z: Standard normal shocks of shape (T, N)
        y: Pre-allocated output series of shape (T, N)
        e: Pre-allocated innovations of shape (T, N)
        h: Pre-allocated conditional variances of shape (T, N)
    """
    T = z.shape[0]
    e2 = np.zeros_like(z)

    for t in range(T):
        h[t, :] = omega
        add_spatial_lags(h[t], W, alpha, e2, t)
        add_spatial_lags(h[t], W, beta, h, t)

        # Negative variances propagate as NaN
        e[t, :] = np.sqrt(h[t]) * z[t]
        e2[t, :] = e[t] * e[t]

        y[t, :] = mu
        add_spatial_lags(y[t], W, phi, y, t)
        add_spatial_lags(y[t], W, theta, e, t)
        y[t, :] += e[t]


@jit(nopython=True, cache=True)
def starmagarch_filter(W, mu, phi, theta, omega, alpha, beta, y, init, burn, e, h):
    """Recover innovations and conditional variances from observed data.

    The first ``burn`` time steps form the pre-sample: their innovations are
    zero and their conditional variances equal ``init``.

    Args:
        W: Neighbourhood stack of shape (sp, N, N)
        mu: Mean intercept
        phi: Autoregressive coefficients
        theta: Moving-average coefficients
        omega: Variance intercept
        alpha: ARCH coefficients
        beta: GARCH coefficients
        y: Observed series of shape (T, N)
        init: Pre-sample conditional variance of length N
        burn: Number of pre-sample time steps
        e: Pre-allocated innovations of shape (T, N)
        h: Pre-allocated conditional variances of shape (T, N)
    """
    T, N = y.shape
    e2 = np.zeros_like(y)
    mean = np.zeros(N)

    for t in range(min(burn, T)):
        e[t, :] = 0.0
        h[t, :] = init

    for t in range(burn, T):
        h[t, :] = omega
        add_spatial_lags(h[t], W, alpha, e2, t)
        add_spatial_lags(h[t], W, beta, h, t)

        mean[:] = mu
        add_spatial_lags(mean, W, phi, y, t)
        add_spatial_lags(mean, W, theta, e, t)

        e[t, :] = y[t] - mean
        e2[t, :] = e[t] * e[t]


@jit(nopython=True, cache=True)
def gaussian_nll(e, h, burn):
    """Negative Gaussian log-likelihood of innovations after the pre-sample.

    Returns infinity when any conditional variance is non-positive or
    non-finite.
    """
    T, N = e.shape
    total = 0.0
    log2pi = np.log(2.0 * np.pi)
    for t in range(burn, T):
        for n in range(N):
            variance = h[t, n]
            if not (variance > 0.0) or not np.isfinite(variance):
                return np.inf
            total += 0.5 * (log2pi + np.log(variance) + e[t, n] * e[t, n] / variance)
    return total
