"""Tests for series validation."""
import numpy as np
import pandas as pd
import pytest

from macrots.data.validator import SeriesValidator, ValidationSeverity
from macrots.utils.exceptions import DataValidationError


def monthly(values, start="2010-01-01"):
    index = pd.date_range(start, periods=len(values), freq="MS")
    return pd.Series(values, index=index, name="x", dtype=float)


class TestSeriesValidator:
    def test_clean_series_passes(self, seasonal_monthly):
        result = SeriesValidator().validate(seasonal_monthly, seasonal_period=12)

        assert result.is_valid
        assert result.issues == []
        assert result.summary["length"] == 240
        assert result.summary["frequency"] == "MS"
        assert result.summary["start"].startswith("2000-01-01")

    def test_empty_series(self):
        result = SeriesValidator().validate(pd.Series([], dtype=float))
        assert not result.is_valid
        assert result.codes == ["DATA_EMPTY"]

    def test_non_numeric(self):
        series = pd.Series(["a", "b", "c"], index=pd.date_range("2020-01-01", periods=3, freq="MS"))
        result = SeriesValidator().validate(series)
        assert "NON_NUMERIC" in result.codes

    def test_integer_index_rejected(self):
        result = SeriesValidator().validate(pd.Series(np.arange(20, dtype=float)))
        assert "INDEX_NOT_DATETIME" in result.codes

    def test_duplicate_timestamps(self):
        index = pd.DatetimeIndex(["2020-01-01", "2020-02-01", "2020-02-01"] + [
            f"2020-{m:02d}-01" for m in range(3, 12)
        ])
        series = pd.Series(np.arange(len(index), dtype=float), index=index)
        assert "DUPLICATE_TIMESTAMPS" in SeriesValidator().validate(series).codes

    def test_unsorted_index(self):
        series = monthly(np.arange(12.0)).iloc[::-1]
        assert "UNSORTED_INDEX" in SeriesValidator().validate(series).codes

    def test_irregular_spacing(self):
        index = pd.DatetimeIndex([
            "2020-01-01", "2020-02-01", "2020-04-01", "2020-05-01",
            "2020-09-01", "2020-10-01", "2020-12-01", "2021-03-01", "2021-04-01",
        ])
        series = pd.Series(np.arange(len(index), dtype=float), index=index)
        assert "IRREGULAR_SPACING" in SeriesValidator().validate(series).codes

    def test_missing_values(self):
        values = np.arange(12.0)
        values[4] = np.nan
        result = SeriesValidator().validate(monthly(values))
        assert "MISSING_VALUES" in result.codes
        assert result.summary["missing"] == 1

    def test_infinite_values(self):
        values = np.arange(12.0)
        values[3] = np.inf
        assert "INFINITE_VALUES" in SeriesValidator().validate(monthly(values)).codes

    def test_constant_series_is_rejected(self):
        result = SeriesValidator().validate(monthly(np.full(24, 3.0)))
        assert not result.is_valid
        assert [e.code for e in result.errors] == ["CONSTANT_SERIES"]
        assert result.errors[0].severity == ValidationSeverity.ERROR

    def test_too_short(self):
        assert "TOO_SHORT" in SeriesValidator().validate(monthly(np.arange(5.0))).codes

    def test_needs_two_seasonal_cycles(self):
        result = SeriesValidator().validate(monthly(np.arange(18.0)), seasonal_period=12)
        assert "TOO_FEW_CYCLES" in result.codes
        assert result.errors[0].details["seasonal_period"] == 12

    def test_ensure_valid_raises_first_error(self):
        with pytest.raises(DataValidationError) as exc:
            SeriesValidator().ensure_valid(monthly(np.arange(5.0)))
        assert exc.value.details["value"] == "TOO_SHORT"

    def test_ensure_valid_returns_result(self, white_noise):
        result = SeriesValidator().ensure_valid(white_noise)
        assert result.summary["name"] == "noise"
