"""Tests for FRED download, caching and file loading."""
import pandas as pd
import pytest
import requests

from macrots.data.loader import FredClient, SeriesLoader, create_sample_data
from macrots.utils.exceptions import (
    DataFetchError,
    DataFormatError,
    DataLoadError,
    UnknownSeriesError,
)

FRED_CSV = """observation_date,UNRATENSA
2020-01-01,4.0
2020-02-01,3.8
2020-03-01,.
2020-04-01,14.4
"""

FRED_CSV_FULL = """DATE,UNRATENSA
2020-01-01,4.0
2020-02-01,3.8
2020-03-01,4.5
2020-04-01,14.4
2020-05-01,13.0
"""


class FakeResponse:
    def __init__(self, text="", status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response

    def close(self):
        pass


class TestFredClient:
    def test_fetch_parses_csv_and_drops_missing(self):
        session = FakeSession(FakeResponse(FRED_CSV))
        client = FredClient(session=session)

        series = client.fetch("UNRATENSA", start="2020-01-01")

        assert series.name == "UNRATENSA"
        assert len(series) == 3
        assert series.iloc[-1] == pytest.approx(14.4)
        assert session.calls[0]["params"] == {"id": "UNRATENSA", "cosd": "2020-01-01"}

    def test_fetch_sets_monthly_frequency(self):
        client = FredClient(session=FakeSession(FakeResponse(FRED_CSV_FULL)))
        series = client.fetch("UNRATENSA")
        assert series.index.freqstr == "MS"

    def test_http_error_is_wrapped(self):
        client = FredClient(session=FakeSession(FakeResponse("", status_code=404)))
        with pytest.raises(DataFetchError) as exc:
            client.fetch("NOPE")
        assert exc.value.details["status_code"] == 404

    def test_network_error_is_wrapped(self):
        client = FredClient(session=FakeSession(error=requests.ConnectionError("offline")))
        with pytest.raises(DataFetchError) as exc:
            client.fetch("UNRATENSA")
        assert isinstance(exc.value.__cause__, requests.ConnectionError)

    def test_unexpected_columns(self):
        with pytest.raises(DataFormatError):
            FredClient.parse_csv("foo,bar\n1,2\n", "UNRATENSA")


class TestSeriesLoader:
    def test_load_downloads_then_uses_cache(self, tmp_path):
        session = FakeSession(FakeResponse(FRED_CSV_FULL))
        loader = SeriesLoader(data_dir=tmp_path, client=FredClient(session=session), use_cache=True)

        first = loader.load("unemployment")
        second = loader.load("unemployment")

        assert len(session.calls) == 1
        assert (tmp_path / "UNRATENSA.csv").exists()
        pd.testing.assert_series_equal(first, second, check_freq=False)

    def test_refresh_bypasses_cache(self, tmp_path):
        session = FakeSession(FakeResponse(FRED_CSV_FULL))
        loader = SeriesLoader(data_dir=tmp_path, client=FredClient(session=session), use_cache=True)

        loader.load("unemployment")
        loader.load("unemployment", refresh=True)

        assert len(session.calls) == 2

    def test_unknown_series(self, tmp_path):
        with pytest.raises(UnknownSeriesError):
            SeriesLoader(data_dir=tmp_path).load("inflation")

    def test_load_csv_finds_columns(self, tmp_path):
        path = tmp_path / "gnp.csv"
        path.write_text("Date,Real GNP\n2000-01-01,100\n2000-04-01,101\n2000-07-01,102.5\n")

        series = SeriesLoader(data_dir=tmp_path).load_csv(path)

        assert series.name == "real_gnp"
        assert list(series.values) == [100.0, 101.0, 102.5]
        assert series.index.freq is not None

    def test_load_csv_missing_file(self, tmp_path):
        with pytest.raises(DataLoadError):
            SeriesLoader(data_dir=tmp_path).load_csv(tmp_path / "missing.csv")

    def test_load_csv_unsupported_format(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{}")
        with pytest.raises(DataLoadError):
            SeriesLoader(data_dir=tmp_path).load_csv(path)


class TestSampleData:
    def test_unemployment_sample_is_monthly(self):
        series = create_sample_data("unemployment", periods=120)
        assert len(series) == 120
        assert series.index.freqstr == "MS"
        assert (series > 0).all()

    def test_gnp_sample_is_positive_quarterly(self):
        series = create_sample_data("gnp", periods=80)
        assert series.index.freqstr.startswith("QS")
        assert (series > 0).all()

    def test_sample_is_deterministic(self):
        a = create_sample_data("unemployment", periods=60, seed=1)
        b = create_sample_data("unemployment", periods=60, seed=1)
        pd.testing.assert_series_equal(a, b)
