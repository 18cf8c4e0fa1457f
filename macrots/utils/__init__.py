"""Utility modules."""
from .config import (
    SeriesConfig,
    SpectralConfig,
    ArimaConfig,
    StudyConfig,
    SERIES,
    STUDIES,
    DEFAULT_SPECTRAL_CONFIG,
    DEFAULT_ARIMA_CONFIG,
    get_series_config,
    get_study_config,
)

__all__ = [
    "SeriesConfig",
    "SpectralConfig",
    "ArimaConfig",
    "StudyConfig",
    "SERIES",
    "STUDIES",
    "DEFAULT_SPECTRAL_CONFIG",
    "DEFAULT_ARIMA_CONFIG",
    "get_series_config",
    "get_study_config",
]
