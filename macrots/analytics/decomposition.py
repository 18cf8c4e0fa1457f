"""
Time Series Decomposition Module.
Provides trend, seasonality, and residual analysis, stationarity tests and
seasonal (boxplot) profiles.
"""
import warnings

import pandas as pd
import numpy as np
from typing import Dict, Optional
from dataclasses import dataclass

from statsmodels.tsa.seasonal import seasonal_decompose, STL
from statsmodels.tsa.stattools import adfuller, kpss
from statsmodels.tools.sm_exceptions import InterpolationWarning

from macrots.data.preprocessor import infer_periods_per_year
from macrots.utils.exceptions import AnalysisError, InsufficientDataError, InvalidConfigurationError


def _season_labels(index: pd.Index, period: int) -> np.ndarray:
    """Calendar month (1-12) or quarter (1-4); position in the cycle otherwise."""
    if period == 12 and isinstance(index, pd.DatetimeIndex):
        return np.asarray(index.month)
    if period == 4 and isinstance(index, pd.DatetimeIndex):
        return np.asarray(index.quarter)
    return np.arange(len(index)) % period + 1


def _test_failed(test: str, x: pd.Series, error: Exception) -> AnalysisError:
    return AnalysisError(
        message=f"{test.upper()} test failed on {len(x)} observations: {error}",
        error_code="ANALYSIS_TEST_FAILED",
        user_message=f"The {test.upper()} stationarity test could not be computed: {error}",
        details={"test": test, "nobs": len(x), "reason": str(error)}
    )


@dataclass
class DecompositionResult:
    """Container for decomposition results."""
    trend: pd.Series
    seasonal: pd.Series
    residual: pd.Series
    observed: pd.Series
    period: int
    model: str
    method: str

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "observed": self.observed,
            "trend": self.trend,
            "seasonal": self.seasonal,
            "residual": self.residual,
        })


@dataclass
class StationarityResult:
    """Container for stationarity test results."""
    test: str
    is_stationary: bool
    statistic: float
    p_value: float
    critical_values: Dict[str, float]
    n_lags: int


class TimeSeriesDecomposer:
    """
    Time series decomposition and analysis.
    Extracts trend, seasonality, and residual components.
    """

    def __init__(self, significance: float = 0.05):
        self.significance = significance
        self.decomposition: Optional[DecompositionResult] = None
        self.stationarity: Optional[StationarityResult] = None

    def decompose(
        self,
        series: pd.Series,
        period: int = None,
        model: str = "additive",
        method: str = "classical"
    ) -> DecompositionResult:
        """
        Decompose time series into trend, seasonality, and residual.

        Args:
            series: Series on a regular DatetimeIndex
            period: Seasonal period (defaults to observations per year)
            model: 'additive' or 'multiplicative'
            method: 'classical' (moving averages) or 'stl' (loess)

        Returns:
            DecompositionResult with components
        """
        period = period or infer_periods_per_year(series)
        series = series.interpolate(method="linear")

        if len(series) < 2 * period:
            raise InsufficientDataError("seasonal decomposition", 2 * period, len(series))

        if method == "classical":
            result = seasonal_decompose(
                series,
                period=period,
                model=model,
                extrapolate_trend="freq"
            )
        elif method == "stl":
            if model != "additive":
                raise InvalidConfigurationError("model", model, "STL decomposition is additive only")
            result = STL(series, period=period, robust=True).fit()
        else:
            raise InvalidConfigurationError("method", method, "Use 'classical' or 'stl'")

        self.decomposition = DecompositionResult(
            trend=pd.Series(result.trend, index=series.index, name="trend"),
            seasonal=pd.Series(result.seasonal, index=series.index, name="seasonal"),
            residual=pd.Series(result.resid, index=series.index, name="residual"),
            observed=pd.Series(result.observed, index=series.index, name="observed"),
            period=period,
            model=model,
            method=method
        )

        return self.decomposition

    def test_stationarity(
        self,
        series: pd.Series,
        max_lags: int = None
    ) -> StationarityResult:
        """
        Test for stationarity using Augmented Dickey-Fuller test.

        Null hypothesis: the series has a unit root.

        Args:
            series: The time series
            max_lags: Maximum lags to include in test

        Returns:
            StationarityResult with test statistics
        """
        x = series.dropna()

        try:
            result = adfuller(x, maxlag=max_lags, autolag="AIC")
        except (ValueError, np.linalg.LinAlgError) as e:
            raise _test_failed("adf", x, e) from e

        self.stationarity = StationarityResult(
            test="adf",
            is_stationary=result[1] < self.significance,
            statistic=float(result[0]),
            p_value=float(result[1]),
            critical_values={k: float(v) for k, v in result[4].items()},
            n_lags=int(result[2])
        )

        return self.stationarity

    def test_kpss(
        self,
        series: pd.Series,
        regression: str = "c"
    ) -> StationarityResult:
        """
        KPSS test. Null hypothesis: the series is (level or trend) stationary.

        p-values are truncated to [0.01, 0.10] by the lookup table.
        """
        x = series.dropna()

        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", InterpolationWarning)
                statistic, p_value, n_lags, critical = kpss(x, regression=regression, nlags="auto")
        except (ValueError, OverflowError) as e:
            raise _test_failed("kpss", x, e) from e

        return StationarityResult(
            test="kpss",
            is_stationary=p_value >= self.significance,
            statistic=float(statistic),
            p_value=float(p_value),
            critical_values={k: float(v) for k, v in critical.items()},
            n_lags=int(n_lags)
        )

    def seasonal_profile(self, series: pd.Series, period: int = None) -> pd.DataFrame:
        """
        Boxplot statistics of the series by season (month of year for monthly data).

        Whiskers extend to the most extreme observation within 1.5 IQR of the
        quartiles; observations beyond them are counted as outliers.
        """
        period = period or infer_periods_per_year(series)
        x = series.dropna()

        rows = []
        for key, values in x.groupby(_season_labels(x.index, period)):
            q1, median, q3 = values.quantile([0.25, 0.5, 0.75])
            iqr = q3 - q1
            low_fence, high_fence = q1 - 1.5 * iqr, q3 + 1.5 * iqr
            inside = values[(values >= low_fence) & (values <= high_fence)]
            rows.append({
                "season": int(key),
                "count": int(len(values)),
                "mean": float(values.mean()),
                "std": float(values.std()),
                "min": float(values.min()),
                "q1": float(q1),
                "median": float(median),
                "q3": float(q3),
                "max": float(values.max()),
                "iqr": float(iqr),
                "whisker_low": float(inside.min()),
                "whisker_high": float(inside.max()),
                "n_outliers": int(len(values) - len(inside)),
            })

        return pd.DataFrame(rows).set_index("season")

    def get_decomposition_summary(self) -> Dict:
        """Get summary statistics from decomposition."""
        if self.decomposition is None:
            raise ValueError("Run decompose() first")

        d = self.decomposition

        trend_clean = d.trend.dropna()
        start, end = trend_clean.iloc[0], trend_clean.iloc[-1]
        trend_change = (end - start) / abs(start) * 100 if start != 0 else np.nan

        # Strength of trend and seasonality (Wang, Smith & Hyndman 2006)
        var_residual = d.residual.var()
        var_seasonal_resid = (d.seasonal + d.residual).var()
        var_trend_resid = (d.trend + d.residual).var()
        seasonal_strength = max(0.0, 1 - var_residual / var_seasonal_resid) if var_seasonal_resid > 0 else 0.0
        trend_strength = max(0.0, 1 - var_residual / var_trend_resid) if var_trend_resid > 0 else 0.0

        by_season = d.seasonal.groupby(_season_labels(d.seasonal.index, d.period)).mean()

        return {
            "model": d.model,
            "method": d.method,
            "period": d.period,
            "trend": {
                "start_value": float(start),
                "end_value": float(end),
                "change_percent": float(trend_change),
                "direction": "increasing" if end > start else "decreasing",
                "strength": float(trend_strength)
            },
            "seasonality": {
                "strength": float(seasonal_strength),
                "max_effect": float(d.seasonal.max()),
                "min_effect": float(d.seasonal.min()),
                "range": float(d.seasonal.max() - d.seasonal.min()),
                "peak_season": int(by_season.idxmax()),
                "trough_season": int(by_season.idxmin())
            },
            "residual": {
                "mean": float(d.residual.mean()),
                "std": float(d.residual.std()),
                "max": float(d.residual.max()),
                "min": float(d.residual.min())
            }
        }
