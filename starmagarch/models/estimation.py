"""
Maximum likelihood estimation of STARMAGARCH models.

:func:`fit_starmagarch` minimises the negative log-likelihood of a
:class:`~starmagarch.models.likelihood.STARMAGARCHLikelihood` with
``scipy.optimize.minimize`` and derives inference from the Hessian at the
optimum. Optimizer trouble does not raise: a run that stops without
converging is flagged on the result and reported with a ConvergenceWarning,
and standard errors that cannot be computed are reported as NaN with a
NumericWarning.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from scipy import optimize, stats

from starmagarch.core.config import VALID_METHODS, get_numerical_config
from starmagarch.core.exceptions import (
    EstimationError, ModelSpecificationError, STARMAGARCHError,
    raise_data_error, raise_parameter_error, warn_convergence, warn_numeric
)
from starmagarch.core.results import FitResult
from starmagarch.core.types import LatticeData, OptimizationMethod
from starmagarch.core.validation import validate_lattice_data
from starmagarch.models.likelihood import STARMAGARCHLikelihood

# Set up module-level logger
logger = logging.getLogger("starmagarch.models.estimation")


def _optimizer_options(method: str, options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    config = get_numerical_config()
    defaults: Dict[str, Any] = {
        "maxiter": config.max_iterations,
        "gtol": config.gradient_tolerance,
    }
    if method == "L-BFGS-B":
        defaults["ftol"] = config.function_tolerance
    defaults.update(options or {})
    return defaults


def standard_errors(hessian: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Covariance matrix and standard errors from a Hessian of the negative log-likelihood.

    Entries that cannot be computed (singular Hessian, non-positive variance
    on the diagonal of the inverse) are NaN.

    Returns:
        Tuple[np.ndarray, np.ndarray]: Covariance matrix and standard errors
    """
    n = hessian.shape[0]
    if not np.all(np.isfinite(hessian)):
        warn_numeric(
            "Could not compute standard errors: Hessian contains non-finite values.",
            operation="standard_errors",
            issue="non_finite_hessian"
        )
        return np.full((n, n), np.nan), np.full(n, np.nan)

    try:
        covariance = np.linalg.inv(hessian)
    except np.linalg.LinAlgError:
        warn_numeric(
            "Could not compute standard errors: Hessian is singular.",
            operation="standard_errors",
            issue="singular_hessian"
        )
        return np.full((n, n), np.nan), np.full(n, np.nan)

    variances = np.diag(covariance)
    valid = np.isfinite(variances) & (variances > 0)
    std_errors = np.full(n, np.nan)
    std_errors[valid] = np.sqrt(variances[valid])

    if not np.all(valid):
        warn_numeric(
            f"Standard errors undefined for {int((~valid).sum())} parameter(s): "
            f"inverse Hessian has non-positive diagonal entries.",
            operation="standard_errors",
            issue="non_positive_variance",
            value=variances[~valid]
        )

    return covariance, std_errors


def fit_starmagarch(likelihood: STARMAGARCHLikelihood,
                    data: Optional[LatticeData] = None,
                    verbose: bool = False,
                    method: Optional[OptimizationMethod] = None,
                    options: Optional[Dict[str, Any]] = None) -> FitResult:
    """Fit a STARMAGARCH model by maximum likelihood.

    Args:
        likelihood: Likelihood created with :func:`create_likelihood`
        data: Observed series; when given it must equal the likelihood's data
        verbose: Log the objective value at every optimizer iteration
        method: "L-BFGS-B" (bounded, default from configuration) or "BFGS"
        options: Extra options passed to ``scipy.optimize.minimize``

    Returns:
        FitResult: Estimates, standard errors, z-values, p-values,
        information criteria and the fitted variance path

    Raises:
        ParameterError: If the mask leaves no free parameters
        ModelSpecificationError: If ``method`` is not supported
        DataError: If ``data`` differs from the likelihood's data
        EstimationError: If the optimizer fails with an unexpected error
    """
    config = get_numerical_config()
    method = config.optimization_method if method is None else method
    if method not in VALID_METHODS:
        raise ModelSpecificationError(
            f"Unsupported optimization method: {method}",
            model_type="STARMAGARCH",
            parameter="method",
            valid_options=list(VALID_METHODS)
        )

    if data is not None:
        values = validate_lattice_data(data, n_locations=likelihood.n_locations)
        if values.shape != likelihood.data.shape or not np.array_equal(values, likelihood.data):
            raise_data_error(
                "data differs from the data the likelihood was created with",
                data_name="data",
                issue="data mismatch"
            )

    if likelihood.n_free == 0:
        raise_parameter_error(
            "The parameter mask leaves no free parameters to estimate",
            param_name="mask",
            constraint="at least one free parameter"
        )

    x0 = likelihood.par
    bounds = None
    if method == "L-BFGS-B":
        bounds = likelihood.layout.bounds(
            variance_lower_bound=config.variance_lower_bound,
            nonnegative_garch=config.nonnegative_garch
        )

    start_value = likelihood.fn(x0)
    if start_value >= likelihood.invalid_value:
        logger.warning("Starting values imply an invalid conditional variance path")

    history: List[float] = []

    def callback(xk: np.ndarray, *args: Any) -> None:
        value = likelihood.fn(xk)
        history.append(value)
        if verbose:
            values = ", ".join(f"{name}={v:.6g}" for name, v in zip(likelihood.names, xk))
            logger.info(f"Iteration {len(history)}: objective={value:.6f}; {values}")

    if verbose:
        logger.info(f"Starting {method} optimization over {likelihood.n_free} parameters: "
                    f"objective={start_value:.6f}")

    try:
        opt = optimize.minimize(
            likelihood.fn,
            x0,
            jac=likelihood.gr,
            method=method,
            bounds=bounds,
            options=_optimizer_options(method, options),
            callback=callback
        )
    except STARMAGARCHError:
        raise
    except Exception as e:
        raise EstimationError(
            f"Optimization failed: {str(e)}",
            model_type="STARMAGARCH",
            estimation_method=method,
            issue=str(e)
        ) from e

    iterations = int(getattr(opt, "nit", len(history)))
    convergence = bool(opt.success)
    message = str(opt.message)

    if not convergence:
        jac = getattr(opt, "jac", None)
        gradient_norm = float(np.linalg.norm(jac)) if jac is not None else None
        logger.warning(f"Optimizer did not converge after {iterations} iterations: {message}")
        warn_convergence(
            "Optimization did not converge.",
            iterations=iterations,
            final_value=float(opt.fun),
            gradient_norm=gradient_norm,
            details=message
        )

    x = np.asarray(opt.x, dtype=np.float64)
    estimated = likelihood.unpack(x)
    loglik = likelihood.loglikelihood(estimated)

    try:
        hessian = likelihood.he(x)
    except STARMAGARCHError:
        raise
    except Exception as e:
        raise EstimationError(
            f"Hessian evaluation failed: {str(e)}",
            model_type="STARMAGARCH",
            estimation_method=method,
            issue=str(e)
        ) from e

    covariance, std_err = standard_errors(hessian)

    names = likelihood.names
    with np.errstate(divide="ignore", invalid="ignore"):
        z_values = x / std_err
    p_values = 2.0 * stats.norm.sf(np.abs(z_values))

    k = likelihood.n_free
    nobs = likelihood.nobs
    aic = 2.0 * k - 2.0 * loglik
    bic = k * np.log(nobs) - 2.0 * loglik

    residuals, variances = likelihood.filter(estimated)

    logger.debug(f"Fit finished: loglik={loglik:.6f}, iterations={iterations}, "
                 f"converged={convergence}")

    return FitResult(
        parameters=estimated,
        free_names=names,
        statistics=np.column_stack([x, std_err, z_values, p_values]),
        covariance=covariance,
        loglikelihood=float(loglik),
        aic=float(aic),
        bic=float(bic),
        nobs=int(nobs),
        convergence=convergence,
        iterations=iterations,
        message=message,
        residuals=residuals,
        variances=variances,
        data=likelihood.data,
        burn=likelihood.burn,
        method=method,
        mask=likelihood.mask,
    )
