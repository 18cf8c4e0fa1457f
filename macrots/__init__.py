"""
macrots: classical time-series studies of US macroeconomic series.
Autocorrelation, decomposition, spectral analysis and ARIMA forecasting.
"""
from .pipeline import SeriesStudy, StudyReport, run_study

__version__ = "0.1.0"

__all__ = ["SeriesStudy", "StudyReport", "run_study", "__version__"]
