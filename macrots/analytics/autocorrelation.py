"""
Autocorrelation analysis.
ACF/PACF with confidence bands, significant lags and Ljung-Box tests.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.diagnostic import acorr_ljungbox
from statsmodels.tsa.stattools import acf, pacf

from macrots.utils.exceptions import InsufficientDataError

logger = logging.getLogger(__name__)


@dataclass
class AutocorrelationResult:
    """Container for ACF/PACF results."""
    lags: np.ndarray
    acf: np.ndarray
    acf_confint: np.ndarray
    pacf: np.ndarray
    pacf_confint: np.ndarray
    bound: float
    nobs: int
    significant_lags: List[int] = field(default_factory=list)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "acf": self.acf,
            "acf_lower": self.acf_confint[:, 0],
            "acf_upper": self.acf_confint[:, 1],
            "pacf": self.pacf,
            "pacf_lower": self.pacf_confint[:, 0],
            "pacf_upper": self.pacf_confint[:, 1],
        }, index=pd.Index(self.lags, name="lag"))


class AutocorrelationAnalyzer:
    """
    Sample autocorrelation and partial autocorrelation of a series.
    """

    def __init__(self, alpha: float = 0.05):
        self.alpha = alpha
        self.result: Optional[AutocorrelationResult] = None

    def compute(
        self,
        series: pd.Series,
        n_lags: int = 36,
        alpha: float = None
    ) -> AutocorrelationResult:
        """
        Calculate ACF and PACF values.

        Args:
            series: Series to analyze
            n_lags: Number of lags to compute; capped at half the sample
            alpha: Confidence level for the intervals

        Returns:
            AutocorrelationResult; index 0 of each array is lag 0
        """
        alpha = alpha or self.alpha
        x = series.dropna()
        nobs = len(x)
        if nobs < 4:
            raise InsufficientDataError("autocorrelation", 4, nobs)

        # statsmodels' pacf needs nlags < nobs // 2
        max_lags = nobs // 2 - 1
        if n_lags > max_lags:
            logger.info(f"Reducing ACF lags from {n_lags} to {max_lags}")
            n_lags = max_lags

        acf_values, acf_conf = acf(x, nlags=n_lags, alpha=alpha, fft=True)
        pacf_values, pacf_conf = pacf(x, nlags=n_lags, alpha=alpha)

        bound = stats.norm.ppf(1 - alpha / 2) / np.sqrt(nobs)
        lags = np.arange(n_lags + 1)
        significant = [int(lag) for lag in lags[1:] if abs(acf_values[lag]) > bound]

        self.result = AutocorrelationResult(
            lags=lags,
            acf=acf_values,
            acf_confint=acf_conf,
            pacf=pacf_values,
            pacf_confint=pacf_conf,
            bound=float(bound),
            nobs=nobs,
            significant_lags=significant
        )
        return self.result

    def dominant_lag(
        self,
        result: AutocorrelationResult = None,
        min_lag: int = 2,
        max_lag: int = None
    ) -> int:
        """
        Lag with the largest autocorrelation in [min_lag, max_lag].

        For a monthly series with annual seasonality this is close to 12.
        """
        result = result or self.result
        if result is None:
            raise ValueError("Run compute() first")

        max_lag = min(max_lag or len(result.acf) - 1, len(result.acf) - 1)
        if min_lag > max_lag:
            raise ValueError(f"Empty lag window [{min_lag}, {max_lag}]")

        window = result.acf[min_lag:max_lag + 1]
        return int(min_lag + np.argmax(window))

    @staticmethod
    def ljung_box(
        series: pd.Series,
        lags: Union[int, Sequence[int]] = 10,
        model_df: int = 0
    ) -> pd.DataFrame:
        """
        Ljung-Box test for autocorrelation up to each lag.

        Args:
            series: Series or model residuals
            lags: Maximum lag, or explicit lags to test
            model_df: Degrees of freedom used by a fitted model (p + q)

        Returns:
            DataFrame indexed by lag with lb_stat and lb_pvalue
        """
        x = series.dropna()
        if isinstance(lags, int):
            lags = list(range(1, min(lags, len(x) - 1) + 1))
        return acorr_ljungbox(x, lags=list(lags), model_df=model_df)

    @staticmethod
    def lag_correlation(series: pd.Series, lag: int = 1) -> float:
        """Pearson correlation between the series and its `lag`-shifted self."""
        return float(series.autocorr(lag=lag))

    def get_summary(self, result: AutocorrelationResult = None) -> dict:
        result = result or self.result
        if result is None:
            raise ValueError("Run compute() first")

        return {
            "nobs": result.nobs,
            "n_lags": int(result.lags[-1]),
            "bound": result.bound,
            "lag1": float(result.acf[1]),
            "dominant_lag": self.dominant_lag(result),
            "significant_lags": result.significant_lags,
            "pacf_cutoff": self._pacf_cutoff(result),
        }

    @staticmethod
    def _pacf_cutoff(result: AutocorrelationResult) -> int:
        """Last lag before the PACF first falls inside the white-noise band."""
        for lag in result.lags[1:]:
            if abs(result.pacf[lag]) <= result.bound:
                return int(lag - 1)
        return int(result.lags[-1])
