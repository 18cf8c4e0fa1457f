"""
ARIMA forecasting.
Wraps statsmodels' ARIMA with fit/forecast/evaluate, accuracy scoring and
joblib persistence.
"""
import logging
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import joblib
import numpy as np
import pandas as pd
from numpy.linalg import LinAlgError
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from statsmodels.tools.sm_exceptions import ConvergenceWarning
from statsmodels.tsa.arima.model import ARIMA

from macrots.data.preprocessor import rolling_origin_splits
from macrots.utils.config import ArimaConfig, DEFAULT_ARIMA_CONFIG
from macrots.utils.exceptions import (
    ForecastError,
    ModelFitError,
    ModelLoadError,
    ModelNotFittedError,
)

logger = logging.getLogger(__name__)


def calculate_metrics(
    actual,
    predicted,
    train: Optional[pd.Series] = None,
    seasonal_period: int = 1
) -> Dict[str, float]:
    """
    Forecast accuracy metrics.

    Args:
        actual: Observed values
        predicted: Forecast values, aligned with `actual`
        train: In-sample series used to scale MASE
        seasonal_period: Lag of the naive forecast used by MASE

    Returns:
        Dictionary with rmse, mae, mape, smape, r2 and (if train given) mase
    """
    y_true = np.asarray(actual, dtype=float)
    y_pred = np.asarray(predicted, dtype=float)
    if y_true.shape != y_pred.shape:
        raise ValueError(f"Shape mismatch: {y_true.shape} vs {y_pred.shape}")

    # Avoid division by zero in MAPE
    mask = y_true != 0
    if mask.sum() > 0:
        mape = np.mean(np.abs((y_true[mask] - y_pred[mask]) / y_true[mask])) * 100
    else:
        mape = np.nan

    denom = np.abs(y_true) + np.abs(y_pred)
    smape_mask = denom > 0
    smape = (
        np.mean(2 * np.abs(y_pred[smape_mask] - y_true[smape_mask]) / denom[smape_mask]) * 100
        if smape_mask.any() else 0.0
    )

    metrics = {
        "rmse": float(np.sqrt(mean_squared_error(y_true, y_pred))),
        "mae": float(mean_absolute_error(y_true, y_pred)),
        "mape": float(mape),
        "smape": float(smape),
        "r2": float(r2_score(y_true, y_pred)) if len(y_true) > 1 else np.nan,
    }

    if train is not None:
        history = np.asarray(train, dtype=float)
        naive_errors = np.abs(history[seasonal_period:] - history[:-seasonal_period])
        scale = naive_errors.mean() if len(naive_errors) else np.nan
        metrics["mase"] = float(metrics["mae"] / scale) if scale and scale > 0 else np.nan

    return metrics


@dataclass
class ForecastResult:
    """Point forecasts with a (1 - alpha) prediction interval."""
    mean: pd.Series
    lower: pd.Series
    upper: pd.Series
    alpha: float
    metrics: Optional[Dict[str, float]] = None

    @property
    def steps(self) -> int:
        return len(self.mean)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "forecast": self.mean,
            "lower": self.lower,
            "upper": self.upper,
        })


class ArimaForecaster:
    """
    ARIMA(p, d, q)(P, D, Q, s) model for a single series.

    Fitting is delegated to statsmodels; convergence problems are logged and
    recorded on `converged` rather than raised.
    """

    def __init__(self, config: ArimaConfig = None):
        """
        Initialize forecaster.

        Args:
            config: ARIMA configuration (horizon, alpha, fit options).
        """
        self.config = config or DEFAULT_ARIMA_CONFIG
        self.order: Optional[Tuple[int, int, int]] = None
        self.seasonal_order: Tuple[int, int, int, int] = (0, 0, 0, 0)
        self.trend: Optional[str] = None
        self.result = None
        self.train_: Optional[pd.Series] = None
        self.converged: bool = True
        self.fit_warnings: List[str] = []
        self.is_fitted = False

    def fit(
        self,
        series: pd.Series,
        order: Tuple[int, int, int] = (1, 0, 0),
        seasonal_order: Tuple[int, int, int, int] = None,
        trend: str = None
    ) -> "ArimaForecaster":
        """
        Estimate the model by maximum likelihood.

        Args:
            series: Training series on a regular DatetimeIndex.
            order: (p, d, q).
            seasonal_order: (P, D, Q, s); no seasonal part by default.
            trend: statsmodels trend option; default is a constant only when
                the model has no differencing.

        Returns:
            self
        """
        seasonal_order = tuple(int(o) for o in seasonal_order) if seasonal_order else (0, 0, 0, 0)
        if not any(seasonal_order[:3]):
            seasonal_order = (0, 0, 0, 0)
        order = tuple(int(o) for o in order)

        caught = []
        try:
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always", ConvergenceWarning)
                model = ARIMA(series, order=order, seasonal_order=seasonal_order, trend=trend)
                result = model.fit(**self.config.fit_method_kwargs)
        except (ValueError, LinAlgError, IndexError) as e:
            raise ModelFitError(order=order + seasonal_order, reason=str(e)) from e

        self.fit_warnings = [str(w.message) for w in caught if issubclass(w.category, ConvergenceWarning)]
        retvals = getattr(result, "mle_retvals", None) or {}
        self.converged = bool(retvals.get("converged", True)) and not self.fit_warnings
        if not self.converged:
            logger.warning(f"ARIMA{order}x{seasonal_order} did not converge cleanly")

        self.order = order
        self.seasonal_order = seasonal_order
        self.trend = trend
        self.result = result
        self.train_ = series
        self.is_fitted = True

        logger.info(f"Fitted ARIMA{order}x{seasonal_order}: aic={result.aic:.2f}")
        return self

    def _require_fitted(self):
        if not self.is_fitted:
            raise ModelNotFittedError()

    @property
    def params(self) -> pd.Series:
        self._require_fitted()
        return self.result.params

    @property
    def sigma2(self) -> float:
        self._require_fitted()
        return float(self.result.params.get("sigma2", np.nan))

    @property
    def residuals(self) -> pd.Series:
        self._require_fitted()
        return self.result.resid

    @property
    def n_arma_params(self) -> int:
        """Number of AR and MA coefficients (Ljung-Box degrees of freedom)."""
        p, _, q = self.order
        P, _, Q, _ = self.seasonal_order
        return p + q + P + Q

    @property
    def burn_in(self) -> int:
        """Leading residuals affected by differencing start-up."""
        _, d, _ = self.order
        _, D, _, s = self.seasonal_order
        return d + D * s

    def forecast(self, steps: int = None, alpha: float = None) -> ForecastResult:
        """
        Forecast beyond the end of the training sample.

        Args:
            steps: Horizon.
            alpha: Interval significance (0.05 gives 95% intervals).

        Returns:
            ForecastResult with point forecasts and bounds.
        """
        self._require_fitted()
        if steps is None:
            steps = self.config.forecast_horizon
        if alpha is None:
            alpha = self.config.alpha
        if steps < 1:
            raise ForecastError(reason=f"steps must be positive, got {steps}")

        try:
            prediction = self.result.get_forecast(steps=steps)
            conf = prediction.conf_int(alpha=alpha)
        except (ValueError, LinAlgError) as e:
            raise ForecastError(reason=str(e)) from e

        mean = prediction.predicted_mean.rename("forecast")
        return ForecastResult(
            mean=mean,
            lower=pd.Series(conf.iloc[:, 0].values, index=mean.index, name="lower"),
            upper=pd.Series(conf.iloc[:, 1].values, index=mean.index, name="upper"),
            alpha=alpha
        )

    def evaluate(self, test: pd.Series, alpha: float = None) -> ForecastResult:
        """
        Forecast `len(test)` steps and score them against `test`.

        Returns:
            ForecastResult with `metrics` populated.
        """
        result = self.forecast(steps=len(test), alpha=alpha)
        period = self.seasonal_order[3] or 1
        result.metrics = calculate_metrics(test.values, result.mean.values, self.train_, period)

        inside = (test.values >= result.lower.values) & (test.values <= result.upper.values)
        result.metrics["coverage"] = float(inside.mean())

        logger.info(
            f"Holdout ({len(test)} steps): RMSE={result.metrics['rmse']:.3f}, "
            f"MAE={result.metrics['mae']:.3f}"
        )
        return result

    def backtest(
        self,
        series: pd.Series,
        initial: int,
        horizon: int = 1,
        step: int = 1
    ) -> pd.DataFrame:
        """
        Rolling-origin evaluation with the current order.

        The model is re-estimated on each expanding window.

        Returns:
            One row per origin with the origin date and accuracy metrics.
        """
        self._require_fitted()
        rows = []
        for train, test in rolling_origin_splits(series, initial, horizon, step):
            model = ArimaForecaster(self.config).fit(train, self.order, self.seasonal_order, self.trend)
            forecast = model.forecast(steps=len(test))
            metrics = calculate_metrics(test.values, forecast.mean.values)
            rows.append({"origin": train.index[-1], "n_train": len(train), **metrics})
        return pd.DataFrame(rows)

    def summary(self) -> Dict:
        """Key estimation results."""
        self._require_fitted()
        r = self.result
        return {
            "order": list(self.order),
            "seasonal_order": list(self.seasonal_order),
            "nobs": int(r.nobs),
            "params": {k: float(v) for k, v in r.params.items()},
            "sigma2": self.sigma2,
            "aic": float(r.aic),
            "bic": float(r.bic),
            "hqic": float(r.hqic),
            "llf": float(r.llf),
            "converged": self.converged,
        }

    def save(self, filepath: Path):
        """
        Save the fitted model to disk.

        Args:
            filepath: Destination path.
        """
        self._require_fitted()
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        save_data = {
            "result": self.result,
            "order": self.order,
            "seasonal_order": self.seasonal_order,
            "trend": self.trend,
            "train": self.train_,
            "converged": self.converged,
            "config": self.config,
        }
        joblib.dump(save_data, filepath)
        logger.info(f"Saved model to: {filepath}")

    @classmethod
    def load(cls, filepath: Path) -> "ArimaForecaster":
        """
        Load a fitted model from disk.

        Args:
            filepath: Path written by save().

        Returns:
            Loaded ArimaForecaster instance.
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise ModelLoadError(str(filepath), reason="File not found")
        try:
            save_data = joblib.load(filepath)
        except (OSError, EOFError, KeyError, ValueError) as e:
            raise ModelLoadError(str(filepath), reason=str(e)) from e

        forecaster = cls(config=save_data["config"])
        forecaster.result = save_data["result"]
        forecaster.order = save_data["order"]
        forecaster.seasonal_order = save_data["seasonal_order"]
        forecaster.trend = save_data["trend"]
        forecaster.train_ = save_data["train"]
        forecaster.converged = save_data["converged"]
        forecaster.is_fitted = True

        logger.info(f"Loaded model from: {filepath}")
        return forecaster
