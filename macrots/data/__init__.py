"""Data loading, validation and transform modules."""
from .loader import FredClient, SeriesLoader, create_sample_data
from .preprocessor import (
    Preprocessor,
    PreparedSeries,
    difference,
    seasonal_difference,
    growth_rate,
    train_test_split,
    rolling_origin_splits,
    periods_per_year,
    infer_periods_per_year,
)
from .validator import SeriesValidator, ValidationResult, ValidationSeverity

__all__ = [
    "FredClient",
    "SeriesLoader",
    "create_sample_data",
    "Preprocessor",
    "PreparedSeries",
    "difference",
    "seasonal_difference",
    "growth_rate",
    "train_test_split",
    "rolling_origin_splits",
    "periods_per_year",
    "infer_periods_per_year",
    "SeriesValidator",
    "ValidationResult",
    "ValidationSeverity",
]
