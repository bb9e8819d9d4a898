'''
Tests for maximum likelihood estimation and the model front end.
'''

import dataclasses
import logging
import warnings

import numpy as np
import pandas as pd
import pytest

from starmagarch.core.exceptions import (
    ConvergenceWarning, DataError, DimensionMismatchError, ModelSpecificationError,
    NotFittedError, NumericWarning, ParameterError
)
from starmagarch.core.parameters import FIELD_ORDER, ParameterMask, ParameterSet
from starmagarch.core.results import FitResult
from starmagarch.models.estimation import fit_starmagarch, standard_errors
from starmagarch.models.likelihood import create_likelihood
from starmagarch.models.simulation import simulate_starmagarch
from starmagarch.models.starmagarch import STARMAGARCH


@pytest.fixture
def likelihood(simulated_data, W, small_params):
    return create_likelihood(simulated_data, W, parameters=small_params)


@pytest.fixture
def result(likelihood, simulated_data):
    return fit_starmagarch(likelihood, data=simulated_data)


class TestFitResults:

    def test_fit_improves_on_start(self, result, likelihood, small_params):
        assert isinstance(result, FitResult)
        assert result.loglikelihood >= likelihood.loglikelihood(small_params) - 1e-8
        assert result.n_free == 7
        assert result.names == small_params.names

    def test_information_criteria(self, result, likelihood):
        k = likelihood.n_free
        assert result.nobs == likelihood.nobs == 16 * 399
        assert result.aic == pytest.approx(2 * k - 2 * result.loglikelihood)
        assert result.bic == pytest.approx(k * np.log(result.nobs) - 2 * result.loglikelihood)

    def test_inference_columns(self, result):
        assert np.all(np.isfinite(result.std_errors))
        assert np.all(result.std_errors > 0)
        assert np.all((result.p_values >= 0) & (result.p_values <= 1))
        np.testing.assert_allclose(result.z_values, result.estimates / result.std_errors)
        assert result.covariance.shape == (7, 7)

        table = result.coefficient_table()
        assert isinstance(table, pd.DataFrame)
        assert list(table.columns) == ["Estimate", "Std. Error", "z value", "Pr(>|z|)"]
        assert list(table.index) == result.names

    def test_estimates_are_plausible(self, result):
        estimates = result.estimates
        assert abs(estimates["phi[0,1]"] - 0.3) < 0.15
        assert abs(estimates["phi[1,1]"] - 0.2) < 0.2
        assert estimates["omega"] > 0
        assert estimates["alpha[0,1]"] >= 0
        assert estimates["beta[0,1]"] >= 0

    def test_fitted_values_and_residuals(self, result, simulated_data):
        fitted = result.fitted_values()
        assert fitted.shape == simulated_data.shape
        assert np.all(np.isnan(fitted[:, :result.burn]))
        np.testing.assert_allclose(
            fitted[:, result.burn:] + result.residuals[:, result.burn:],
            simulated_data[:, result.burn:]
        )

    def test_standardized_residuals(self, result):
        std_resid = result.standardized_residuals()
        assert np.all(np.isnan(std_resid[:, :result.burn]))
        body = std_resid[:, result.burn:]
        assert np.all(np.isfinite(body))
        assert abs(body.std() - 1.0) < 0.1
        np.testing.assert_array_equal(result.garch(), result.variances)

    def test_coef_includes_all_parameters(self, result):
        coef = result.coef()
        assert list(coef.index) == result.parameters.names
        np.testing.assert_allclose(coef[result.names].to_numpy(), result.estimates.to_numpy())

    def test_result_is_immutable(self, result):
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.aic = 0.0
        with pytest.raises(ValueError):
            result.residuals[0, 0] = 0.0
        with pytest.raises(ValueError):
            result.data[0, 0] = 0.0
        with pytest.raises(ValueError):
            result.statistics[0, 0] = 0.0

    def test_result_parameters_are_read_only(self, result):
        coef = result.coef()
        with pytest.raises(ValueError):
            result.parameters.phi[0, 0] = 42.0
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.parameters.mu = 42.0
        pd.testing.assert_series_equal(result.coef(), coef)

    def test_result_estimates_cannot_be_changed(self, result):
        estimates = result.estimates
        estimates["mu"] = 99.0
        assert result.estimates["mu"] != 99.0
        assert result.estimates is not result.estimates
        assert result.std_errors.name == "std_error"

    def test_result_keeps_copy_of_parameters(self, result, likelihood):
        estimated = likelihood.unpack(result.estimates.to_numpy())
        assert result.parameters == estimated
        assert result.parameters.is_read_only
        assert not result.parameters.copy().is_read_only

    def test_summary(self, result):
        text = result.summary()
        assert "STARMAGARCH estimation results" in text
        assert "Log-Likelihood:" in text
        assert "AIC:" in text
        assert "omega" in text
        assert "alpha[1,1]" in text
        assert str(result) == text
        assert "FitResult" in repr(result)

    def test_diagnostics(self, result):
        diagnostics = result.diagnostics(lags=5)
        assert diagnostics.shape == (16, 4)
        assert list(diagnostics.columns) == ["lb_stat", "lb_pvalue", "lb_stat_sq", "lb_pvalue_sq"]
        assert np.all((diagnostics["lb_pvalue"] >= 0) & (diagnostics["lb_pvalue"] <= 1))
        assert np.all(diagnostics["lb_stat"] >= 0)

    @pytest.mark.parametrize("lags", [0, 399])
    def test_diagnostics_invalid_lags(self, result, lags):
        with pytest.raises(ValueError):
            result.diagnostics(lags=lags)

    def test_to_dict(self, result):
        summary = result.to_dict()
        assert summary["n_free"] == 7
        assert summary["method"] == "L-BFGS-B"
        assert set(summary["estimates"]) == set(result.names)
        assert summary["loglikelihood"] == result.loglikelihood


class TestMasking:

    def test_masked_fit(self, simulated_full_data, W, full_params):
        mask = ParameterMask(mu=False, phi=False, theta=False)
        lik = create_likelihood(simulated_full_data, W, parameters=full_params, mask=mask)
        assert full_params.n_params == 12
        assert lik.n_free == 7

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", NumericWarning)
            fit = fit_starmagarch(lik)

        assert fit.n_free == 7
        assert len(fit.coef()) == 12
        assert fit.parameters.mu == full_params.mu
        np.testing.assert_array_equal(fit.parameters.phi, full_params.phi)
        np.testing.assert_array_equal(fit.parameters.theta, full_params.theta)
        assert fit.mask is mask
        assert "Fixed parameters" in fit.summary()

    def test_all_parameters_fixed(self, simulated_data, W, small_params):
        lik = create_likelihood(simulated_data, W, parameters=small_params,
                                mask={name: False for name in FIELD_ORDER})
        with pytest.raises(ParameterError):
            fit_starmagarch(lik)


class TestOptimizerControl:

    def test_iteration_limit_warns(self, likelihood):
        with pytest.warns(ConvergenceWarning):
            fit = fit_starmagarch(likelihood, options={"maxiter": 1})
        assert not fit.convergence
        assert fit.iterations <= 1
        assert "No" in fit.summary()

    def test_bfgs(self, likelihood):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            fit = fit_starmagarch(likelihood, method="BFGS", options={"maxiter": 50})
        assert fit.method == "BFGS"
        assert np.isfinite(fit.loglikelihood)

    def test_unknown_method(self, likelihood):
        with pytest.raises(ModelSpecificationError):
            fit_starmagarch(likelihood, method="Nelder-Mead")

    def test_data_mismatch(self, likelihood, simulated_data):
        with pytest.raises(DataError):
            fit_starmagarch(likelihood, data=simulated_data + 1.0)

    def test_verbose_logs_iterations(self, likelihood, caplog):
        with caplog.at_level(logging.INFO, logger="starmagarch"):
            fit_starmagarch(likelihood, verbose=True, options={"maxiter": 3})
        messages = [record.getMessage() for record in caplog.records]
        assert any(message.startswith("Iteration 1:") for message in messages)


class TestStandardErrors:

    def test_standard_errors_from_singular_hessian(self):
        with pytest.warns(NumericWarning):
            covariance, se = standard_errors(np.zeros((2, 2)))
        assert np.all(np.isnan(covariance))
        assert np.all(np.isnan(se))

    def test_standard_errors_with_negative_variance(self):
        with pytest.warns(NumericWarning):
            covariance, se = standard_errors(np.diag([1.0, -1.0]))
        assert se[0] == pytest.approx(1.0)
        assert np.isnan(se[1])

    def test_standard_errors_non_finite_hessian(self):
        with pytest.warns(NumericWarning):
            _, se = standard_errors(np.array([[np.inf, 0.0], [0.0, 1.0]]))
        assert np.all(np.isnan(se))

    def test_standard_errors_regular(self):
        covariance, se = standard_errors(np.diag([4.0, 16.0]))
        np.testing.assert_allclose(se, [0.5, 0.25])
        np.testing.assert_allclose(covariance, np.diag([0.25, 0.0625]))


class TestParameterRecovery:

    @pytest.mark.slow
    def test_parameter_recovery(self, small_params, W):
        y = simulate_starmagarch(small_params, n=2500, m=(4, 4), W=W, burnin=500, seed=2024)
        start = ParameterSet(mu=0.1, phi=[[0.1], [0.1]], omega=0.5,
                             alpha=[[0.05], [0.05]], beta=[[0.2]])
        lik = create_likelihood(y, W, parameters=start)
        fit = fit_starmagarch(lik)

        truth = small_params.to_series()
        error = np.abs(fit.estimates - truth[fit.names])
        assert np.all(error <= 4 * fit.std_errors + 0.05)
        assert abs(fit.estimates["mu"]) < 0.1
        assert abs(fit.estimates["phi[0,1]"] - 0.3) < 0.1


class TestModelFrontEnd:

    def test_model_not_fitted(self):
        model = STARMAGARCH((4, 4))
        assert not model.fitted
        with pytest.raises(NotFittedError):
            model.results
        with pytest.raises(NotFittedError):
            model.summary()

    def test_model_builds_stack_lazily(self, small_params):
        model = STARMAGARCH((4, 4), type="rook", torus=True)
        assert model.W is None
        y = model.simulate(small_params, n=60, burnin=20, seed=1)
        assert y.shape == (16, 60)
        assert model.W.shape == (2, 16, 16)
        assert model.last_simulation.n_periods == 60

    def test_model_simulate_matches_function(self, small_params, W):
        model = STARMAGARCH((4, 4), W=W)
        from_model = model.simulate(small_params, n=30, burnin=10, seed=9)
        direct = simulate_starmagarch(small_params, n=30, m=(4, 4), W=W, burnin=10, seed=9)
        np.testing.assert_array_equal(from_model, direct)

    def test_model_fit(self, simulated_data, small_params):
        model = STARMAGARCH((4, 4), sp=2, type="rook", torus=True)
        fit = model.fit(simulated_data, small_params, mask=ParameterMask(mu=False))
        assert model.fitted
        assert model.results is fit
        assert fit.n_free == 6
        assert model.likelihood.n_free == 6
        assert model.summary() == fit.summary()

    def test_model_fixed_stack_too_short(self, small_params):
        model = STARMAGARCH((4, 4), sp=1)
        with pytest.raises(DimensionMismatchError):
            model.simulate(small_params, n=10)

    def test_model_stack_for_other_lattice(self, W):
        with pytest.raises(DimensionMismatchError):
            STARMAGARCH((3, 3), W=W)

    def test_model_rejects_unknown_keywords(self, simulated_data, small_params):
        model = STARMAGARCH((4, 4), sp=2)
        with pytest.raises(TypeError, match="torus"):
            model.simulate(small_params, n=10, torus=False)
        with pytest.raises(TypeError, match="maks"):
            model.fit(simulated_data, small_params, maks={"mu": False})
        assert not model.fitted
