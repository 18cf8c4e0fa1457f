"""
Automatic ARIMA order selection.
Unit-root tests choose the differencing orders, then an information-criterion
grid search chooses the AR and MA orders.
"""
import itertools
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import pandas as pd

from macrots.analytics.decomposition import TimeSeriesDecomposer
from macrots.data.preprocessor import infer_periods_per_year, seasonal_difference
from macrots.models.forecaster import ArimaForecaster
from macrots.utils.config import ArimaConfig, DEFAULT_ARIMA_CONFIG
from macrots.utils.exceptions import InvalidConfigurationError, ModelFitError

logger = logging.getLogger(__name__)

CRITERIA = ("aic", "bic", "hqic")

# Seasonal strength above which a seasonal difference is taken
SEASONAL_STRENGTH_THRESHOLD = 0.64


@dataclass
class OrderSelectionResult:
    """Outcome of an order search."""
    order: Tuple[int, int, int]
    seasonal_order: Tuple[int, int, int, int]
    criterion: str
    score: float
    table: pd.DataFrame
    model: ArimaForecaster
    n_failed: int = 0

    def to_dict(self) -> dict:
        return {
            "order": list(self.order),
            "seasonal_order": list(self.seasonal_order),
            "criterion": self.criterion,
            "score": float(self.score),
            "n_candidates": int(len(self.table)),
            "n_failed": self.n_failed,
        }


class OrderSelector:
    """
    Auto-ARIMA by exhaustive search over a bounded order grid.
    """

    def __init__(self, config: ArimaConfig = None):
        self.config = config or DEFAULT_ARIMA_CONFIG
        if self.config.information_criterion not in CRITERIA:
            raise InvalidConfigurationError(
                "information_criterion", self.config.information_criterion, f"Use one of {CRITERIA}"
            )
        self._decomposer = TimeSeriesDecomposer(significance=self.config.test_alpha)

    def estimate_differencing(
        self,
        series: pd.Series,
        test: str = None,
        alpha: float = None,
        max_d: int = None
    ) -> int:
        """
        Number of first differences needed for stationarity.

        Args:
            series: Series to test
            test: 'kpss' (null: stationary) or 'adf' (null: unit root)
            alpha: Test significance
            max_d: Upper bound on d

        Returns:
            d in [0, max_d]
        """
        test = test or self.config.differencing_test
        alpha = alpha or self.config.test_alpha
        max_d = self.config.max_d if max_d is None else max_d
        if test not in ("kpss", "adf"):
            raise InvalidConfigurationError("differencing_test", test, "Use 'kpss' or 'adf'")

        decomposer = TimeSeriesDecomposer(significance=alpha)
        x = series.dropna()
        d = 0
        while d < max_d and len(x) > 10:
            if test == "kpss":
                stationary = decomposer.test_kpss(x).is_stationary
            else:
                stationary = decomposer.test_stationarity(x).is_stationary
            if stationary:
                break
            x = x.diff().iloc[1:]
            d += 1

        logger.info(f"Estimated d={d} using {test.upper()}")
        return d

    def estimate_seasonal_differencing(
        self,
        series: pd.Series,
        period: int,
        max_D: int = None
    ) -> int:
        """
        Number of seasonal differences, taken while the STL seasonal
        strength is at least 0.64.
        """
        max_D = self.config.max_D if max_D is None else max_D
        x = series.dropna()
        D = 0
        while D < max_D and period > 1 and len(x) >= 2 * period + 1:
            self._decomposer.decompose(x, period=period, method="stl")
            strength = self._decomposer.get_decomposition_summary()["seasonality"]["strength"]
            if strength < SEASONAL_STRENGTH_THRESHOLD:
                break
            x = seasonal_difference(x, period)
            D += 1

        logger.info(f"Estimated D={D} for period {period}")
        return D

    def select(
        self,
        series: pd.Series,
        d: int = None,
        D: int = None,
        period: int = None,
        seasonal: bool = None
    ) -> OrderSelectionResult:
        """
        Search the order grid and keep the best model.

        Args:
            series: Training series
            d: Fixed non-seasonal differencing (estimated if None)
            D: Fixed seasonal differencing (estimated if None)
            period: Seasonal period (defaults to observations per year)
            seasonal: Search seasonal AR/MA terms (defaults to config)

        Returns:
            OrderSelectionResult with the fitted best model and the candidate table
        """
        cfg = self.config
        criterion = cfg.information_criterion
        seasonal = cfg.seasonal if seasonal is None else seasonal
        if seasonal:
            period = period or infer_periods_per_year(series)
            if period <= 1:
                seasonal = False
        period = period if seasonal else 0

        if D is None:
            D = self.estimate_seasonal_differencing(series, period) if seasonal else 0
        if d is None:
            base = seasonal_difference(series, period) if D else series
            d = self.estimate_differencing(base)

        seasonal_grid = (
            itertools.product(range(cfg.max_P + 1), range(cfg.max_Q + 1)) if seasonal else [(0, 0)]
        )
        candidates = [
            (p, q, P, Q)
            for (P, Q) in seasonal_grid
            for p in range(cfg.max_p + 1)
            for q in range(cfg.max_q + 1)
            if p + q + P + Q <= cfg.max_order
        ]

        rows = []
        best: Optional[ArimaForecaster] = None
        best_score = float("inf")
        n_failed = 0

        for p, q, P, Q in candidates:
            order = (p, d, q)
            seasonal_order = (P, D, Q, period) if seasonal else None
            try:
                model = ArimaForecaster(cfg).fit(series, order, seasonal_order)
            except ModelFitError as e:
                n_failed += 1
                logger.debug(f"Skipping ARIMA{order}x{seasonal_order}: {e.details.get('reason')}")
                continue

            r = model.result
            rows.append({
                "p": p, "d": d, "q": q, "P": P, "D": D, "Q": Q, "s": period,
                "aic": float(r.aic), "bic": float(r.bic), "hqic": float(r.hqic),
                "converged": model.converged,
            })
            score = getattr(r, criterion)
            if score < best_score:
                best, best_score = model, score

        if best is None:
            raise ModelFitError(order=(cfg.max_p, d, cfg.max_q), reason="No candidate model could be fitted")

        table = pd.DataFrame(rows).sort_values(criterion).reset_index(drop=True)
        logger.info(
            f"Selected ARIMA{best.order}x{best.seasonal_order} "
            f"({criterion}={best_score:.2f}, {len(rows)} candidates, {n_failed} failed)"
        )

        return OrderSelectionResult(
            order=best.order,
            seasonal_order=best.seasonal_order,
            criterion=criterion,
            score=float(best_score),
            table=table,
            model=best,
            n_failed=n_failed
        )


def auto_arima(series: pd.Series, config: ArimaConfig = None, **kwargs) -> ArimaForecaster:
    """Select an order for `series` and return the fitted model."""
    return OrderSelector(config).select(series, **kwargs).model
