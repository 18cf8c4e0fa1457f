"""Tests for decomposition, stationarity tests and seasonal profiles."""
import numpy as np
import pandas as pd
import pytest

from macrots.analytics.decomposition import TimeSeriesDecomposer
from macrots.utils.exceptions import AnalysisError, InsufficientDataError, InvalidConfigurationError


@pytest.fixture
def trending_seasonal(rng):
    n = 144
    t = np.arange(n)
    values = 50 + 0.2 * t + 3 * np.sin(2 * np.pi * t / 12) + rng.normal(0, 0.3, n)
    return pd.Series(values, index=pd.date_range("2005-01-01", periods=n, freq="MS"), name="ts")


class TestDecompose:
    def test_additive_components_sum_to_observed(self, trending_seasonal):
        result = TimeSeriesDecomposer().decompose(trending_seasonal, period=12)
        rebuilt = result.trend + result.seasonal + result.residual
        assert np.allclose(rebuilt, trending_seasonal)
        assert not result.trend.isna().any()

    def test_period_defaults_to_frequency(self, trending_seasonal):
        assert TimeSeriesDecomposer().decompose(trending_seasonal).period == 12

    def test_stl(self, trending_seasonal):
        result = TimeSeriesDecomposer().decompose(trending_seasonal, period=12, method="stl")
        assert result.method == "stl"
        assert list(result.to_frame().columns) == ["observed", "trend", "seasonal", "residual"]

    def test_stl_rejects_multiplicative(self, trending_seasonal):
        with pytest.raises(InvalidConfigurationError):
            TimeSeriesDecomposer().decompose(trending_seasonal, model="multiplicative", method="stl")

    def test_needs_two_cycles(self, trending_seasonal):
        with pytest.raises(InsufficientDataError):
            TimeSeriesDecomposer().decompose(trending_seasonal.iloc[:20], period=12)

    def test_summary_strengths(self, trending_seasonal):
        decomposer = TimeSeriesDecomposer()
        decomposer.decompose(trending_seasonal, period=12)
        summary = decomposer.get_decomposition_summary()

        assert summary["trend"]["direction"] == "increasing"
        assert summary["trend"]["strength"] > 0.9
        assert summary["seasonality"]["strength"] > 0.9
        assert summary["seasonality"]["range"] == pytest.approx(6, abs=1)
        # sin(2*pi*t/12) from January peaks in April and bottoms out in October
        assert summary["seasonality"]["peak_season"] == 4
        assert summary["seasonality"]["trough_season"] == 10

    def test_summary_seasons_are_calendar_quarters(self, rng):
        index = pd.date_range("2000-04-01", periods=80, freq="QS")
        effect = index.quarter.map({1: 0.0, 2: -1.0, 3: 0.0, 4: 3.0}).to_numpy()
        series = pd.Series(2 + effect + rng.normal(0, 0.1, 80), index=index)

        decomposer = TimeSeriesDecomposer()
        decomposer.decompose(series, period=4)
        seasonality = decomposer.get_decomposition_summary()["seasonality"]

        assert seasonality["peak_season"] == 4
        assert seasonality["trough_season"] == 2

    def test_summary_requires_decompose(self):
        with pytest.raises(ValueError):
            TimeSeriesDecomposer().get_decomposition_summary()


class TestStationarity:
    def test_adf_on_white_noise(self, white_noise):
        result = TimeSeriesDecomposer().test_stationarity(white_noise)
        assert result.test == "adf"
        assert result.is_stationary
        assert set(result.critical_values) == {"1%", "5%", "10%"}

    def test_adf_on_random_walk(self, random_walk):
        result = TimeSeriesDecomposer().test_stationarity(random_walk)
        assert result.p_value > 0.01

    def test_kpss_on_random_walk(self, random_walk):
        result = TimeSeriesDecomposer().test_kpss(random_walk)
        assert result.test == "kpss"
        assert not result.is_stationary
        assert 0.01 <= result.p_value <= 0.1

    def test_constant_series_raises_analysis_error(self):
        flat = pd.Series(4.0, index=pd.date_range("2000-01-01", periods=60, freq="MS"))
        with pytest.raises(AnalysisError) as exc:
            TimeSeriesDecomposer().test_stationarity(flat)
        assert exc.value.error_code == "ANALYSIS_TEST_FAILED"


class TestSeasonalProfile:
    def test_monthly_profile(self, seasonal_monthly):
        profile = TimeSeriesDecomposer().seasonal_profile(seasonal_monthly, period=12)

        assert list(profile.index) == list(range(1, 13))
        assert (profile["count"] == 20).all()
        assert (profile["q1"] <= profile["median"]).all()
        assert (profile["median"] <= profile["q3"]).all()
        assert (profile["whisker_low"] >= profile["min"]).all()
        # sin(2*pi*t/12) starting in January peaks in April
        assert profile["mean"].idxmax() in (3, 4, 5)

    def test_quarterly_profile(self, ar1_series):
        profile = TimeSeriesDecomposer().seasonal_profile(ar1_series.iloc[:40], period=4)
        assert list(profile.index) == [1, 2, 3, 4]
        assert profile["count"].sum() == 40

    def test_outliers_counted(self):
        values = np.tile([1.0, 2.0, 3.0], 10)
        values[0] = 50.0
        series = pd.Series(values, index=pd.date_range("2000-01-01", periods=30, freq="D"))
        profile = TimeSeriesDecomposer().seasonal_profile(series, period=3)
        assert profile.loc[1, "n_outliers"] == 1
        assert profile.loc[1, "whisker_high"] == 1.0
