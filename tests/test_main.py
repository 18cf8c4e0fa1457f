"""Tests for the command line entry point."""
import json

import pytest

from macrots.__main__ import build_parser, main
from macrots.utils.config import get_study_config
from macrots.utils.exceptions import DataFetchError


def test_parser_rejects_unknown_study():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["inflation"])


def test_sample_run_writes_outputs(tmp_path, capsys):
    out = tmp_path / "out"

    code = main(["gnp_growth", "--sample", "--horizon", "4", "--output", str(out)])

    assert code == 0
    assert "GNPC96" in capsys.readouterr().out
    report = json.loads((out / "gnp_growth_report.json").read_text())
    assert len(report["forecast"]) == 4
    assert (out / "gnp_growth_forecast.csv").read_text().startswith("date,forecast,lower,upper")


@pytest.mark.parametrize("horizon", ["0", "-3", "soon"])
def test_horizon_must_be_positive(horizon, capsys):
    with pytest.raises(SystemExit):
        build_parser().parse_args(["gnp_growth", "--horizon", horizon])
    assert "--horizon" in capsys.readouterr().err


def test_horizon_flag_leaves_registry_untouched():
    main(["gnp_growth", "--sample", "--horizon", "3"])
    assert get_study_config("gnp_growth").arima.forecast_horizon == 8


def test_fetch_failure_exits_nonzero(monkeypatch, capsys):
    def failing_load(self, name, refresh=False):
        raise DataFetchError("GNPC96", reason="offline")

    monkeypatch.setattr("macrots.data.loader.SeriesLoader.load", failing_load)

    assert main(["gnp_growth"]) == 1
    assert "Could not download 'GNPC96'" in capsys.readouterr().err
