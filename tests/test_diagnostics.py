"""Tests for residual diagnostics."""
import numpy as np
import pandas as pd
import pytest

from macrots.analytics.diagnostics import ModelDiagnostics
from macrots.utils.exceptions import InsufficientDataError


def test_white_noise_residuals(white_noise):
    diagnostics = ModelDiagnostics()
    results = diagnostics.analyze(white_noise, lags=12)
    summary = diagnostics.get_diagnostic_summary()

    assert list(results.ljung_box.index) == list(range(1, 13))
    assert summary["overall"]["nobs"] == 300
    assert summary["autocorrelation"]["ljung_box_lag"] == 12
    assert summary["autocorrelation"]["ljung_box_p_value"] > 0.01
    assert summary["autocorrelation"]["durbin_watson"] == pytest.approx(2.0, abs=0.4)
    assert summary["normality"]["jarque_bera_p_value"] > 0.01


def test_autocorrelated_residuals_flagged(ar1_series):
    diagnostics = ModelDiagnostics()
    diagnostics.analyze(ar1_series - ar1_series.mean(), lags=8)
    summary = diagnostics.get_diagnostic_summary()

    assert not summary["autocorrelation"]["is_white_noise"]
    assert summary["autocorrelation"]["durbin_watson"] < 1.0


def test_variance_shift_detected(rng):
    values = np.concatenate([rng.normal(0, 1, 150), rng.normal(0, 4, 150)])
    residuals = pd.Series(values, index=pd.date_range("2000-01-01", periods=300, freq="MS"))

    diagnostics = ModelDiagnostics()
    diagnostics.analyze(residuals)
    summary = diagnostics.get_diagnostic_summary()

    assert summary["heteroscedasticity"]["variance_shift"]
    assert diagnostics.results.heteroscedasticity["variance_ratio"] > 4


def test_burn_in_and_model_df(white_noise):
    diagnostics = ModelDiagnostics()
    results = diagnostics.analyze(white_noise, lags=10, model_df=2, burn_in=13)

    assert len(results.residuals) == 287
    # The statistic has no degrees of freedom left at lags <= model_df
    assert results.ljung_box["lb_pvalue"].iloc[:2].isna().all()
    assert diagnostics.get_diagnostic_summary()["autocorrelation"]["ljung_box_p_value"] > 0.0


def test_too_few_residuals():
    residuals = pd.Series(np.arange(12.0))
    with pytest.raises(InsufficientDataError):
        ModelDiagnostics().analyze(residuals, burn_in=5)


def test_summary_requires_analyze():
    with pytest.raises(ValueError):
        ModelDiagnostics().get_diagnostic_summary()
