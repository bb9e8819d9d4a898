'''
Result containers for simulations and fits of STARMAGARCH models.

Both containers are frozen dataclasses whose arrays are marked read-only and
whose parameter sets are read-only copies, so a result cannot be changed after
creation. :class:`FitResult` exposes the accessors used after an
estimation run: coefficients, fitted values, the conditional variance (GARCH)
path, standardized residuals, a coefficient table, a text summary and
Ljung-Box residual diagnostics.
'''

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd
from statsmodels.stats.diagnostic import acorr_ljungbox

from starmagarch.core.parameters import ParameterMask, ParameterSet

_STATISTICS = ("estimate", "std_error", "z_value", "p_value")


def _readonly(array: Any) -> np.ndarray:
    array = np.array(array, dtype=np.float64)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class SimulationResult:
    """Simulated STARMAGARCH paths.

    Attributes:
        series: Simulated observations, shape (N, n)
        innovations: Innovations e_t, shape (N, n)
        variances: Conditional variances h_t, shape (N, n)
        parameters: Read-only copy of the parameters used for the simulation
        shape: Grid shape
        W: Neighbourhood stack used for the simulation
        burnin: Number of discarded initial steps
    """

    series: np.ndarray
    innovations: np.ndarray
    variances: np.ndarray
    parameters: ParameterSet
    shape: Tuple[int, ...]
    W: np.ndarray
    burnin: int = 0

    def __post_init__(self) -> None:
        for name in ("series", "innovations", "variances"):
            object.__setattr__(self, name, _readonly(getattr(self, name)))
        if self.W.flags.writeable:
            object.__setattr__(self, "W", _readonly(self.W))
        object.__setattr__(self, "parameters", self.parameters.read_only())

    @property
    def n_locations(self) -> int:
        return self.series.shape[0]

    @property
    def n_periods(self) -> int:
        return self.series.shape[1]

    def to_frame(self) -> pd.DataFrame:
        """Series as a DataFrame with locations as rows and time as columns."""
        return pd.DataFrame(
            self.series,
            index=pd.RangeIndex(self.n_locations, name="location"),
            columns=pd.RangeIndex(self.n_periods, name="time")
        )

    def __repr__(self) -> str:
        return (f"SimulationResult(shape={self.shape}, n={self.n_periods}, "
                f"burnin={self.burnin})")


@dataclass(frozen=True, eq=False)
class FitResult:
    """Result of fitting a STARMAGARCH model.

    Statistics over the free parameters are held in the read-only
    ``statistics`` array, one row per name in ``free_names``; the
    ``estimates``, ``std_errors``, ``z_values`` and ``p_values`` accessors
    return a fresh pandas Series indexed by entry name on every call. Fixed
    parameters appear only in ``parameters`` and :meth:`coef`. The first
    ``burn`` columns of ``residuals`` and ``variances`` are the pre-sample of
    the conditional likelihood.

    Attributes:
        parameters: Full estimated parameter set (free and fixed entries),
            stored as a read-only copy
        free_names: Entry names of the free parameters
        statistics: Estimate, standard error (NaN when unavailable), z-value
            and two-sided normal p-value per free parameter, shape (k, 4)
        covariance: Inverse Hessian of the negative log-likelihood
        loglikelihood: Log-likelihood at the estimates
        aic: Akaike information criterion, 2k - 2LL
        bic: Bayesian information criterion, k log(nobs) - 2LL
        nobs: Number of observations entering the likelihood
        convergence: Whether the optimizer reported convergence
        iterations: Number of optimizer iterations
        message: Optimizer message
        residuals: Innovations e_t, shape (N, T)
        variances: Conditional variances h_t, shape (N, T)
        data: Observed series, shape (N, T)
        burn: Number of pre-sample time steps
        method: Optimization method
        mask: Parameter mask used for the fit
    """

    parameters: ParameterSet
    free_names: Tuple[str, ...]
    statistics: np.ndarray
    covariance: np.ndarray
    loglikelihood: float
    aic: float
    bic: float
    nobs: int
    convergence: bool
    iterations: int
    message: str
    residuals: np.ndarray
    variances: np.ndarray
    data: np.ndarray
    burn: int
    method: str = "L-BFGS-B"
    mask: Optional[ParameterMask] = None

    def __post_init__(self) -> None:
        for name in ("statistics", "covariance", "residuals", "variances", "data"):
            object.__setattr__(self, name, _readonly(getattr(self, name)))
        object.__setattr__(self, "free_names", tuple(self.free_names))
        object.__setattr__(self, "parameters", self.parameters.read_only())

        if self.statistics.shape != (len(self.free_names), len(_STATISTICS)):
            raise ValueError(
                f"statistics must have shape ({len(self.free_names)}, {len(_STATISTICS)}), "
                f"got {self.statistics.shape}"
            )

    def _statistic(self, column: str) -> pd.Series:
        return pd.Series(self.statistics[:, _STATISTICS.index(column)].copy(),
                         index=list(self.free_names), name=column)

    @property
    def estimates(self) -> pd.Series:
        """Estimates of the free parameters."""
        return self._statistic("estimate")

    @property
    def std_errors(self) -> pd.Series:
        return self._statistic("std_error")

    @property
    def z_values(self) -> pd.Series:
        return self._statistic("z_value")

    @property
    def p_values(self) -> pd.Series:
        return self._statistic("p_value")

    @property
    def n_free(self) -> int:
        return len(self.free_names)

    @property
    def names(self):
        return list(self.free_names)

    def coef(self) -> pd.Series:
        """All parameter values, fixed entries included, indexed by entry name."""
        return self.parameters.to_series()

    def fitted_values(self) -> np.ndarray:
        """One-step-ahead conditional means, NaN in the pre-sample."""
        fitted = self.data - self.residuals
        fitted[:, :self.burn] = np.nan
        return fitted

    def garch(self) -> np.ndarray:
        """Fitted conditional variance path, shape (N, T)."""
        return self.variances.copy()

    def standardized_residuals(self) -> np.ndarray:
        """Innovations divided by their conditional standard deviation.

        Pre-sample columns are NaN.
        """
        std_resid = np.full(self.residuals.shape, np.nan)
        std_resid[:, self.burn:] = (self.residuals[:, self.burn:]
                                    / np.sqrt(self.variances[:, self.burn:]))
        return std_resid

    def coefficient_table(self) -> pd.DataFrame:
        """Estimates, standard errors, z-values and p-values of the free parameters."""
        return pd.DataFrame({
            "Estimate": self.estimates,
            "Std. Error": self.std_errors,
            "z value": self.z_values,
            "Pr(>|z|)": self.p_values,
        })

    def diagnostics(self, lags: int = 10) -> pd.DataFrame:
        """Ljung-Box tests on the standardized residuals of every location.

        Args:
            lags: Number of autocorrelation lags tested

        Returns:
            pd.DataFrame: One row per location with the Ljung-Box statistic and
            p-value of the standardized residuals (``lb_stat``, ``lb_pvalue``)
            and of their squares (``lb_stat_sq``, ``lb_pvalue_sq``)
        """
        std_resid = self.standardized_residuals()[:, self.burn:]
        if lags < 1 or lags >= std_resid.shape[1]:
            raise ValueError(
                f"lags must be between 1 and {std_resid.shape[1] - 1}, got {lags}"
            )

        rows = []
        for series in std_resid:
            levels = acorr_ljungbox(series, lags=[lags], return_df=True)
            squares = acorr_ljungbox(series ** 2, lags=[lags], return_df=True)
            rows.append({
                "lb_stat": float(levels["lb_stat"].iloc[0]),
                "lb_pvalue": float(levels["lb_pvalue"].iloc[0]),
                "lb_stat_sq": float(squares["lb_stat"].iloc[0]),
                "lb_pvalue_sq": float(squares["lb_pvalue"].iloc[0]),
            })
        return pd.DataFrame(rows, index=pd.RangeIndex(len(rows), name="location"))

    def summary(self) -> str:
        """Generate a text summary of the fit.

        Returns:
            str: Convergence information, fit statistics and the coefficient table
        """
        header = "STARMAGARCH estimation results\n"
        header += "=" * (len(header) - 1) + "\n\n"

        p, q, r, s = self.parameters.orders
        model_info = (f"Orders: p={p}, q={q}, r={r}, s={s}; "
                      f"spatial lags: {self.parameters.max_spatial_lag}\n")
        model_info += f"Locations: {self.data.shape[0]}, time steps: {self.data.shape[1]}\n\n"

        convergence_info = f"Convergence: {'Yes' if self.convergence else 'No'}\n"
        convergence_info += f"Iterations: {self.iterations}\n"
        convergence_info += f"Method: {self.method}\n"
        if self.message:
            convergence_info += f"Optimizer message: {self.message}\n"
        convergence_info += "\n"

        fit_stats = f"Log-Likelihood: {self.loglikelihood:.6f}\n"
        fit_stats += f"AIC: {self.aic:.6f}\n"
        fit_stats += f"BIC: {self.bic:.6f}\n"
        fit_stats += f"Observations: {self.nobs}\n\n"

        param_table = "Parameter Estimates:\n"
        param_table += "-" * 80 + "\n"
        param_table += f"{'Parameter':<20} {'Estimate':<12} {'Std. Error':<12} "
        param_table += f"{'z value':<12} {'Pr(>|z|)':<12}\n"
        param_table += "-" * 80 + "\n"

        for name, (value, std_err, z_value, p_value) in zip(self.free_names, self.statistics):
            param_table += f"{name:<20} {value:<12.6f} "
            for stat in (std_err, z_value):
                if np.isnan(stat):
                    param_table += f"{'N/A':<12} "
                else:
                    param_table += f"{stat:<12.6f} "

            if not np.isnan(p_value):
                param_table += f"{p_value:<12.6f}"
                # Add significance stars
                if p_value < 0.01:
                    param_table += " ***"
                elif p_value < 0.05:
                    param_table += " **"
                elif p_value < 0.1:
                    param_table += " *"
            else:
                param_table += f"{'N/A':<12}"

            param_table += "\n"

        param_table += "-" * 80 + "\n"
        param_table += "Significance codes: *** 0.01, ** 0.05, * 0.1\n"

        fixed = [name for name in self.parameters.names if name not in self.free_names]
        if fixed:
            values = self.coef()
            param_table += "\nFixed parameters: "
            param_table += ", ".join(f"{name}={values[name]:g}" for name in fixed)
            param_table += "\n"

        return header + model_info + convergence_info + fit_stats + param_table

    def to_dict(self) -> Dict[str, Any]:
        """Plain-Python representation of the fit statistics and estimates."""
        return {
            "parameters": self.parameters.to_dict(),
            "estimates": self.estimates.to_dict(),
            "std_errors": self.std_errors.to_dict(),
            "z_values": self.z_values.to_dict(),
            "p_values": self.p_values.to_dict(),
            "loglikelihood": self.loglikelihood,
            "aic": self.aic,
            "bic": self.bic,
            "nobs": self.nobs,
            "n_free": self.n_free,
            "convergence": self.convergence,
            "iterations": self.iterations,
            "message": self.message,
            "method": self.method,
        }

    def __str__(self) -> str:
        return self.summary()

    def __repr__(self) -> str:
        return (f"FitResult(n_free={self.n_free}, loglikelihood={self.loglikelihood:.4f}, "
                f"convergence={self.convergence})")
