"""
Series transforms for the analysis steps.
Differencing, growth rates and chronological train/test windowing.
"""
import pandas as pd
import numpy as np
from typing import List, Optional, Tuple, Union
from dataclasses import dataclass, field
import logging

from macrots.utils.exceptions import (
    DataValidationError,
    InsufficientDataError,
    InvalidConfigurationError,
)

logger = logging.getLogger(__name__)

# Observations per year by pandas offset rule code
_PERIODS_BY_RULE = {
    "M": 12, "MS": 12, "ME": 12,
    "SM": 24, "SMS": 24, "SME": 24,
    "Q": 4, "QS": 4, "QE": 4,
    "A": 1, "AS": 1, "Y": 1, "YS": 1, "YE": 1,
    "W": 52,
    "D": 365,
    "B": 252,
}

TRANSFORMS = ("level", "diff", "seasonal_diff", "log", "growth")


def periods_per_year(freq: Union[str, pd.DateOffset]) -> int:
    """
    Number of observations per year for a pandas frequency.

    Args:
        freq: Frequency string ("MS", "QS-OCT", ...) or DateOffset.

    Returns:
        Observations per year (12 for monthly, 4 for quarterly, ...).
    """
    offset = pd.tseries.frequencies.to_offset(freq)
    code = offset.rule_code.split("-")[0]
    if code not in _PERIODS_BY_RULE and code.startswith("B"):
        code = code[1:]
    if code not in _PERIODS_BY_RULE:
        raise InvalidConfigurationError("freq", freq, "Unsupported frequency")
    return max(1, _PERIODS_BY_RULE[code] // max(1, offset.n))


def infer_periods_per_year(series: pd.Series) -> int:
    """Observations per year for a series on a regular DatetimeIndex."""
    freq = series.index.freq or pd.infer_freq(series.index)
    if freq is None:
        raise DataValidationError(
            field="index", reason="Cannot infer a regular frequency from the index"
        )
    return periods_per_year(freq)


def difference(series: pd.Series, lag: int = 1, order: int = 1) -> pd.Series:
    """
    Difference a series `order` times at `lag`.

    The result has len(series) - lag * order observations.
    """
    if lag < 1 or order < 0:
        raise InvalidConfigurationError("lag/order", (lag, order), "lag >= 1, order >= 0")

    result = series.copy()
    for _ in range(order):
        result = result.diff(lag).iloc[lag:]
    return result


def seasonal_difference(series: pd.Series, period: int) -> pd.Series:
    """Lag-`period` difference."""
    return difference(series, lag=period, order=1)


def growth_rate(
    series: pd.Series,
    method: str = "log",
    annualize: bool = False,
    periods: Optional[int] = None
) -> pd.Series:
    """
    Period-on-period growth rate in percent.

    Args:
        series: Strictly positive level series.
        method: "log" (100 * log difference) or "pct" (percent change).
        annualize: Scale to an annual rate.
        periods: Observations per year, inferred from the index if omitted.

    Returns:
        Growth series with one fewer observation than the input.
    """
    if (series <= 0).any():
        raise DataValidationError(
            field=series.name, reason="Growth rates need a strictly positive series"
        )

    if method == "log":
        growth = 100 * np.log(series).diff().iloc[1:]
        if annualize:
            growth = growth * (periods or infer_periods_per_year(series))
    elif method == "pct":
        ratio = series / series.shift(1)
        ratio = ratio.iloc[1:]
        if annualize:
            ratio = ratio ** (periods or infer_periods_per_year(series))
        growth = 100 * (ratio - 1)
    else:
        raise InvalidConfigurationError("method", method, "Use 'log' or 'pct'")

    growth.name = f"{series.name}_growth" if series.name else "growth"
    return growth


def train_test_split(
    series: pd.Series,
    test_size: Union[int, float] = 24,
    min_train_size: int = 10
) -> Tuple[pd.Series, pd.Series]:
    """
    Split a series chronologically.

    Args:
        series: Series to split.
        test_size: Number of trailing observations, or a fraction in (0, 1).
        min_train_size: Minimum observations required in the training window.

    Returns:
        Tuple of (train, test); len(train) + len(test) == len(series).
    """
    n = len(series)
    if isinstance(test_size, float) and 0 < test_size < 1:
        n_test = int(round(n * test_size))
    else:
        n_test = int(test_size)

    if n_test < 1:
        raise InvalidConfigurationError("test_size", test_size, "Must leave at least one test observation")
    if n - n_test < min_train_size:
        raise InsufficientDataError("train/test split", min_train_size + n_test, n)

    train = series.iloc[:n - n_test]
    test = series.iloc[n - n_test:]

    logger.info(f"Train samples: {len(train)}, Test samples: {len(test)}")
    return train, test


def rolling_origin_splits(
    series: pd.Series,
    initial: int,
    horizon: int,
    step: int = 1
) -> List[Tuple[pd.Series, pd.Series]]:
    """
    Expanding-window splits for rolling-origin evaluation.

    Each split trains on the first `initial + k * step` observations and tests
    on the following `horizon`.
    """
    if initial < 1 or horizon < 1 or step < 1:
        raise InvalidConfigurationError("initial/horizon/step", (initial, horizon, step))
    if initial + horizon > len(series):
        raise InsufficientDataError("rolling-origin evaluation", initial + horizon, len(series))

    splits = []
    end = initial
    while end + horizon <= len(series):
        splits.append((series.iloc[:end], series.iloc[end:end + horizon]))
        end += step
    return splits


@dataclass
class PreparedSeries:
    """A transformed view of a series and the steps that produced it."""
    series: pd.Series
    transform: str
    steps: List[str] = field(default_factory=list)
    dropped: int = 0


class Preprocessor:
    """
    Apply a named transform to a raw series.

    Transforms:
    - level: the series as is
    - diff: first difference
    - seasonal_diff: lag-s difference, s = observations per year
    - log: natural log
    - growth: 100 * log difference
    """

    def __init__(self, seasonal_period: Optional[int] = None):
        self.seasonal_period = seasonal_period

    def prepare(self, series: pd.Series, transform: str = "level") -> PreparedSeries:
        """
        Transform `series` without mutating it.

        Args:
            series: Raw series on a DatetimeIndex.
            transform: One of TRANSFORMS.

        Returns:
            PreparedSeries with the new series and a record of applied steps.
        """
        if transform not in TRANSFORMS:
            raise InvalidConfigurationError("transform", transform, f"Use one of {TRANSFORMS}")

        if transform == "level":
            result, steps = series.copy(), []
        elif transform == "diff":
            result, steps = difference(series), ["diff(1)"]
        elif transform == "seasonal_diff":
            period = self.seasonal_period or infer_periods_per_year(series)
            result, steps = seasonal_difference(series, period), [f"diff({period})"]
        elif transform == "log":
            if (series <= 0).any():
                raise DataValidationError(field=series.name, reason="Log needs a strictly positive series")
            result, steps = np.log(series), ["log"]
        else:
            result, steps = growth_rate(series), ["log", "diff(1)", "x100"]

        logger.debug(f"Prepared {series.name} with transform={transform}")
        return PreparedSeries(
            series=result,
            transform=transform,
            steps=steps,
            dropped=len(series) - len(result)
        )
