"""
Configuration and constants for the macrots study engine.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from macrots.utils.exceptions import UnknownSeriesError


@dataclass
class SeriesConfig:
    """A named series in the public database."""
    series_id: str
    title: str
    periods_per_year: int
    units: str = ""
    # How the study analyses the raw series: "level" or "growth"
    analysis_transform: str = "level"
    start: Optional[str] = None


@dataclass
class SpectralConfig:
    """Configuration for spectral estimation."""
    method: str = "periodogram"  # or "welch"
    window: str = "boxcar"
    detrend: str = "linear"
    nperseg: Optional[int] = None  # welch segment length
    n_peaks: int = 3
    # Analyse the first difference of the series before estimating
    difference: bool = False


@dataclass
class ArimaConfig:
    """Configuration for ARIMA order search and forecasting."""
    max_p: int = 3
    max_q: int = 3
    max_d: int = 2
    max_P: int = 1
    max_Q: int = 1
    max_D: int = 1
    max_order: int = 6
    seasonal: bool = True
    information_criterion: str = "aic"
    differencing_test: str = "kpss"
    test_alpha: float = 0.05

    # Evaluation and forecasting
    test_size: int = 24
    forecast_horizon: int = 24
    alpha: float = 0.05
    fit_method_kwargs: Dict = field(default_factory=dict)


@dataclass
class StudyConfig:
    """Configuration for one end-to-end study."""
    name: str
    series: str
    acf_lags: int = 36
    seasonal_period: Optional[int] = None
    decomposition_model: str = "additive"
    decomposition_method: str = "classical"
    spectral: SpectralConfig = field(default_factory=SpectralConfig)
    arima: ArimaConfig = field(default_factory=ArimaConfig)
    # Fixed (p, d, q) to fit alongside the auto-selected model
    manual_order: Optional[Tuple[int, int, int]] = None


SERIES: Dict[str, SeriesConfig] = {
    "unemployment": SeriesConfig(
        series_id="UNRATENSA",
        title="US Civilian Unemployment Rate (not seasonally adjusted)",
        periods_per_year=12,
        units="percent",
        analysis_transform="level",
        start="1948-01-01",
    ),
    "gnp": SeriesConfig(
        series_id="GNPC96",
        title="US Real Gross National Product",
        periods_per_year=4,
        units="billions of chained 2017 dollars",
        analysis_transform="growth",
        start="1947-01-01",
    ),
}


STUDIES: Dict[str, StudyConfig] = {
    "unemployment": StudyConfig(
        name="unemployment",
        series="unemployment",
        acf_lags=48,
        seasonal_period=12,
        spectral=SpectralConfig(method="periodogram", detrend="linear", difference=True),
        arima=ArimaConfig(max_p=2, max_q=2, test_size=24, forecast_horizon=24),
        manual_order=(2, 1, 1),
    ),
    "gnp_growth": StudyConfig(
        name="gnp_growth",
        series="gnp",
        acf_lags=24,
        seasonal_period=4,
        spectral=SpectralConfig(method="periodogram", detrend="constant"),
        arima=ArimaConfig(seasonal=False, max_d=1, test_size=12, forecast_horizon=8),
        manual_order=(1, 0, 0),
    ),
}


def get_series_config(name: str) -> SeriesConfig:
    """Look up a series in the registry."""
    if name not in SERIES:
        raise UnknownSeriesError(name, available=sorted(SERIES))
    return SERIES[name]


def get_study_config(name: str) -> StudyConfig:
    """Look up a predefined study."""
    if name not in STUDIES:
        raise UnknownSeriesError(name, available=sorted(STUDIES))
    return STUDIES[name]


# Default configurations
DEFAULT_SPECTRAL_CONFIG = SpectralConfig()
DEFAULT_ARIMA_CONFIG = ArimaConfig()

FRED_GRAPH_URL = "https://fred.stlouisfed.org/graph/fredgraph.csv"
