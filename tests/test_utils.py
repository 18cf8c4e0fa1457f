"""Tests for settings, logging, errors and export helpers."""
import json
import logging

import numpy as np
import pandas as pd
import pytest

from macrots.utils.config import get_series_config
from macrots.utils.exceptions import (
    ExportFormatError,
    InsufficientDataError,
    InvalidConfigurationError,
    MacroTSError,
    UnknownSeriesError,
)
from macrots.utils.export import export, export_forecast_csv, export_report_json
from macrots.utils.logging_config import JSONFormatter, StudyLogger, setup_logging
from macrots.utils.settings import AppSettings, get_env, get_settings


class TestSettings:
    def test_paths_follow_home(self, isolated_settings, tmp_path):
        assert isolated_settings.project_root == tmp_path
        assert isolated_settings.data_raw_path == tmp_path / "data" / "raw"
        assert isolated_settings.models_path == tmp_path / "models"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("FRED_TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("CACHE_DOWNLOADS", "no")
        monkeypatch.setenv("LOG_FORMAT", "json")
        get_settings.cache_clear()

        settings = get_settings()

        assert settings.fred_timeout_seconds == 5.0
        assert settings.cache_downloads is False
        assert settings.log_format == "json"

    def test_get_env_casts(self, monkeypatch):
        monkeypatch.setenv("MACROTS_TEST_LIST", "a, b,,c")
        assert get_env("MACROTS_TEST_LIST", cast=list) == ["a", "b", "c"]
        assert get_env("MACROTS_TEST_MISSING") is None

    def test_relative_override_resolved_against_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MODELS_PATH", "store/arima")
        get_settings.cache_clear()
        assert get_settings().models_path == tmp_path / "store" / "arima"

    @pytest.mark.parametrize("key,value", [
        ("LOG_FORMAT", "xml"),
        ("LOG_LEVEL", "LOUD"),
        ("FRED_TIMEOUT_SECONDS", "soon"),
        ("FRED_TIMEOUT_SECONDS", "0"),
    ])
    def test_invalid_values_rejected(self, monkeypatch, key, value):
        monkeypatch.setenv(key, value)
        get_settings.cache_clear()
        with pytest.raises(InvalidConfigurationError):
            get_settings()

    def test_defaults_without_env(self):
        settings = AppSettings()
        assert settings.outputs_path == settings.project_root / "outputs"
        assert not settings.is_production


class TestErrors:
    def test_to_dict(self):
        error = InsufficientDataError("spectral estimation", 8, 5)
        data = error.to_dict()

        assert isinstance(error, MacroTSError)
        assert data["error_code"] == "ANALYSIS_INSUFFICIENT_DATA"
        assert data["details"] == {"analysis": "spectral estimation", "required": 8, "available": 5}

    def test_unknown_series_lists_choices(self):
        with pytest.raises(UnknownSeriesError) as exc:
            get_series_config("cpi")
        assert exc.value.details["available"] == ["gnp", "unemployment"]


class TestLogging:
    def test_json_formatter_includes_extras(self):
        record = logging.LogRecord("macrots.pipeline", logging.INFO, __file__, 1, "hello", None, None)
        record.series = "UNRATENSA"
        record.step = "spectral"

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "hello"
        assert data["series"] == "UNRATENSA"
        assert data["step"] == "spectral"

    def test_setup_logging_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        logger = setup_logging(level="DEBUG", log_file=str(log_file), app_name="macrots.test")

        logger.debug("written")
        for handler in logger.handlers:
            handler.flush()

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        assert json.loads(log_file.read_text().splitlines()[-1])["message"] == "written"


class TestExport:
    def test_report_json_handles_numpy_and_pandas(self, tmp_path):
        report = {
            "flag": np.bool_(True),
            "count": np.int64(3),
            "missing": np.nan,
            "array": np.array([1.5, 2.5]),
            "table": pd.DataFrame({"a": [1, 2]}, index=pd.Index(["x", "y"], name="key")),
            "when": pd.Timestamp("2020-01-01"),
        }

        path = export_report_json(report, tmp_path, "r.json")
        data = json.loads(path.read_text())

        assert data["flag"] is True
        assert data["count"] == 3
        assert data["missing"] is None
        assert data["array"] == [1.5, 2.5]
        assert data["table"] == [{"key": "x", "a": 1}, {"key": "y", "a": 2}]
        assert data["when"] == "2020-01-01T00:00:00"

    def test_forecast_csv(self, tmp_path):
        frame = pd.DataFrame(
            {"forecast": [1.0], "lower": [0.5], "upper": [1.5]},
            index=pd.date_range("2024-01-01", periods=1, freq="MS"),
        )
        path = export_forecast_csv(frame, tmp_path, "f.csv")
        assert path.read_text().splitlines()[0] == "date,forecast,lower,upper"

    def test_default_output_dir(self, isolated_settings):
        path = export_report_json({"a": 1}, filename="r.json")
        assert path.parent == isolated_settings.outputs_path

    def test_unsupported_format(self, tmp_path):
        with pytest.raises(ExportFormatError):
            export({"a": 1}, "xlsx", tmp_path)
        with pytest.raises(ExportFormatError):
            export({"a": 1}, "csv", tmp_path)


def test_study_logger_tags_step(caplog):
    log = StudyLogger(logging.getLogger("macrots.tests.study"), "GNPC96")

    with caplog.at_level(logging.INFO, logger="macrots.tests.study"):
        with log.step("spectral"):
            log.info("estimating")

    started, finished = caplog.records
    assert (started.series, started.step) == ("GNPC96", "spectral")
    assert finished.elapsed >= 0
    assert log.extra["step"] == "-"
