"""
End-to-end study pipeline.
Runs acquisition, descriptive statistics, spectral analysis and ARIMA
modelling for one series, in that order.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from macrots.analytics.autocorrelation import AutocorrelationAnalyzer
from macrots.analytics.decomposition import TimeSeriesDecomposer
from macrots.analytics.diagnostics import ModelDiagnostics
from macrots.analytics.spectral import SpectralAnalyzer
from macrots.data.loader import SeriesLoader, create_sample_data
from macrots.data.preprocessor import Preprocessor, difference, train_test_split
from macrots.data.validator import SeriesValidator
from macrots.models.forecaster import ArimaForecaster, ForecastResult
from macrots.models.order_selection import OrderSelector
from macrots.utils.config import StudyConfig, get_series_config, get_study_config
from macrots.utils.exceptions import ModelFitError
from macrots.utils.logging_config import StudyLogger

logger = logging.getLogger(__name__)


@dataclass
class StudyReport:
    """Everything a study computes, step by step."""
    name: str
    series_id: str
    title: str
    transform: str
    validation: Dict[str, Any] = field(default_factory=dict)
    autocorrelation: Dict[str, Any] = field(default_factory=dict)
    stationarity: Dict[str, Any] = field(default_factory=dict)
    decomposition: Optional[Dict[str, Any]] = None
    seasonal_profile: Optional[pd.DataFrame] = None
    spectral: Dict[str, Any] = field(default_factory=dict)
    order_selection: Dict[str, Any] = field(default_factory=dict)
    models: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    diagnostics: Dict[str, Any] = field(default_factory=dict)
    forecast: Optional[pd.DataFrame] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "series_id": self.series_id,
            "title": self.title,
            "transform": self.transform,
            "validation": self.validation,
            "autocorrelation": self.autocorrelation,
            "stationarity": self.stationarity,
            "decomposition": self.decomposition,
            "seasonal_profile": self.seasonal_profile,
            "spectral": self.spectral,
            "order_selection": self.order_selection,
            "models": self.models,
            "diagnostics": self.diagnostics,
            "forecast": self.forecast,
            "warnings": self.warnings,
        }

    def format_text(self) -> str:
        """Human-readable digest of the main statistics."""
        lines = [
            f"{self.title} [{self.series_id}]",
            "=" * 60,
            f"Observations: {self.validation.get('length')} "
            f"({self.validation.get('start')} to {self.validation.get('end')}), transform={self.transform}",
        ]

        acf = self.autocorrelation
        if acf:
            lines.append(
                f"ACF: lag1={acf['lag1']:.3f}, dominant lag={acf['dominant_lag']}, "
                f"significant lags={len(acf['significant_lags'])}"
            )

        for test, res in self.stationarity.items():
            verdict = "stationary" if res["is_stationary"] else "non-stationary"
            lines.append(f"{test.upper()}: stat={res['statistic']:.3f}, p={res['p_value']:.3f} ({verdict})")

        if self.decomposition:
            seas = self.decomposition["seasonality"]
            trend = self.decomposition["trend"]
            lines.append(
                f"Decomposition: trend strength={trend['strength']:.2f} ({trend['direction']}), "
                f"seasonal strength={seas['strength']:.2f}, range={seas['range']:.3f}"
            )

        for peak in self.spectral.get("peaks", []):
            lines.append(
                f"Spectral peak: {peak['cycles_per_year']:.3f} cycles/year "
                f"(period {peak['period_years']:.2f} years), share={peak['power_share']:.1%}"
            )

        if self.order_selection:
            sel = self.order_selection
            lines.append(
                f"Selected ARIMA{tuple(sel['order'])}x{tuple(sel['seasonal_order'])} "
                f"by {sel['criterion'].upper()}={sel['score']:.2f}"
            )

        for label, model in self.models.items():
            m = model.get("holdout_metrics", {})
            if m:
                lines.append(
                    f"{label} ARIMA{tuple(model['order'])}: RMSE={m['rmse']:.3f}, "
                    f"MAE={m['mae']:.3f}, MAPE={m['mape']:.2f}%"
                )

        if self.diagnostics:
            ac = self.diagnostics["autocorrelation"]
            lines.append(
                f"Residuals: Ljung-Box p={ac['ljung_box_p_value']:.3f} "
                f"(lag {ac['ljung_box_lag']}), white noise={ac['is_white_noise']}"
            )

        if self.forecast is not None and not self.forecast.empty:
            last = self.forecast.iloc[-1]
            lines.append(
                f"Forecast {self.forecast.index[-1].date()}: {last['forecast']:.3f} "
                f"[{last['lower']:.3f}, {last['upper']:.3f}]"
            )

        for w in self.warnings:
            lines.append(f"warning: {w}")

        return "\n".join(lines)


class SeriesStudy:
    """
    The two exploratory studies as a linear sequence of steps.

    Later steps reuse the series prepared by earlier ones; nothing is
    mutated in place.
    """

    def __init__(self, config: StudyConfig, loader: SeriesLoader = None):
        self.config = config
        self.series_config = get_series_config(config.series)
        self._loader = loader
        self.log = StudyLogger(logger, self.series_config.series_id)

    @classmethod
    def from_name(cls, name: str, loader: SeriesLoader = None) -> "SeriesStudy":
        return cls(get_study_config(name), loader)

    @property
    def loader(self) -> SeriesLoader:
        if self._loader is None:
            self._loader = SeriesLoader()
        return self._loader

    def acquire(self, sample: bool = False) -> pd.Series:
        """Load the raw series (or its synthetic stand-in)."""
        if sample:
            return create_sample_data(self.config.series)
        return self.loader.load(self.config.series)

    def run(self, series: pd.Series = None, sample: bool = False) -> StudyReport:
        """
        Run every step and collect the results.

        Args:
            series: Raw series; acquired from the loader if omitted.
            sample: Use synthetic data instead of downloading.

        Returns:
            StudyReport
        """
        cfg = self.config
        raw = series if series is not None else self.acquire(sample=sample)
        period = cfg.seasonal_period or self.series_config.periods_per_year

        with self.log.step("validate"):
            self.log.info(f"Validating {len(raw)} observations")
            validation = SeriesValidator().ensure_valid(raw, seasonal_period=period)
            prepared = Preprocessor(seasonal_period=period).prepare(raw, self.series_config.analysis_transform)
        y = prepared.series

        report = StudyReport(
            name=cfg.name,
            series_id=self.series_config.series_id,
            title=self.series_config.title,
            transform=prepared.transform,
            validation=validation.summary,
        )
        report.warnings.extend(str(w) for w in validation.warnings)

        with self.log.step("describe"):
            self._describe(y, period, report)
        with self.log.step("spectral"):
            self._spectral(y, report)
        with self.log.step("model"):
            self._model(y, period, report)

        self.log.info(f"Study {cfg.name} complete")
        return report

    def _describe(self, y: pd.Series, period: int, report: StudyReport):
        cfg = self.config

        acf = AutocorrelationAnalyzer()
        acf.compute(y, n_lags=cfg.acf_lags)
        report.autocorrelation = acf.get_summary()

        if self.series_config.analysis_transform == "level":
            acf_diff = AutocorrelationAnalyzer()
            acf_diff.compute(difference(y), n_lags=cfg.acf_lags)
            report.autocorrelation["differenced"] = acf_diff.get_summary()

        decomposer = TimeSeriesDecomposer()
        adf = decomposer.test_stationarity(y)
        kpss = decomposer.test_kpss(y)
        report.stationarity = {
            "adf": {k: v for k, v in vars(adf).items() if k != "test"},
            "kpss": {k: v for k, v in vars(kpss).items() if k != "test"},
        }

        if len(y) >= 2 * period:
            decomposer.decompose(
                y,
                period=period,
                model=cfg.decomposition_model,
                method=cfg.decomposition_method
            )
            report.decomposition = decomposer.get_decomposition_summary()
        report.seasonal_profile = decomposer.seasonal_profile(y, period=period)

    def _spectral(self, y: pd.Series, report: StudyReport):
        spectral_cfg = self.config.spectral
        self.log.info(f"Estimating {spectral_cfg.method}")

        x = difference(y) if spectral_cfg.difference else y
        analyzer = SpectralAnalyzer(spectral_cfg)
        analyzer.estimate(x, periods_per_year=self.series_config.periods_per_year)
        report.spectral = analyzer.get_summary()
        report.spectral["differenced"] = spectral_cfg.difference

    def _model(self, y: pd.Series, period: int, report: StudyReport):
        arima_cfg = self.config.arima
        self.log.info("Selecting and fitting ARIMA models")

        train, test = train_test_split(y, test_size=arima_cfg.test_size)

        selection = OrderSelector(arima_cfg).select(train, period=period)
        report.order_selection = selection.to_dict()
        auto = selection.model
        report.models["auto"] = self._score(auto, test)

        if self.config.manual_order:
            try:
                manual = ArimaForecaster(arima_cfg).fit(train, self.config.manual_order)
                report.models["manual"] = self._score(manual, test)
            except ModelFitError as e:
                self.log.warning(f"Manual order {self.config.manual_order} failed: {e.message}")
                report.warnings.append(e.user_message)

        diagnostics = ModelDiagnostics()
        diagnostics.analyze(
            auto.residuals,
            lags=2 * period if period > 1 else 10,
            model_df=auto.n_arma_params,
            burn_in=auto.burn_in
        )
        report.diagnostics = diagnostics.get_diagnostic_summary()

        # Refit the selected order on the full sample for the final forecast
        final = ArimaForecaster(arima_cfg).fit(y, auto.order, auto.seasonal_order)
        forecast: ForecastResult = final.forecast(steps=arima_cfg.forecast_horizon)
        report.forecast = forecast.to_frame()

        for label, model in (("auto", auto), ("final", final)):
            if not model.converged:
                report.warnings.append(f"{label} model did not converge cleanly")

    @staticmethod
    def _score(model: ArimaForecaster, test: pd.Series) -> Dict[str, Any]:
        summary = model.summary()
        summary["holdout_metrics"] = model.evaluate(test).metrics
        return summary


def run_study(name: str, sample: bool = False, series: pd.Series = None) -> StudyReport:
    """Run a predefined study by name."""
    return SeriesStudy.from_name(name).run(series=series, sample=sample)
