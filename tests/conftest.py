"""Shared fixtures: synthetic series with known structure."""
import numpy as np
import pandas as pd
import pytest

from macrots.utils.settings import get_settings


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point every settings path at a temporary directory."""
    monkeypatch.setenv("MACROTS_HOME", str(tmp_path))
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def seasonal_monthly(rng):
    """20 years of monthly data: annual sine cycle plus small noise."""
    n = 240
    t = np.arange(n)
    values = 10 + 2 * np.sin(2 * np.pi * t / 12) + rng.normal(0, 0.5, n)
    index = pd.date_range("2000-01-01", periods=n, freq="MS")
    return pd.Series(values, index=index, name="seasonal")


@pytest.fixture
def white_noise(rng):
    index = pd.date_range("2000-01-01", periods=300, freq="MS")
    return pd.Series(rng.normal(0, 1, 300), index=index, name="noise")


@pytest.fixture
def random_walk(rng):
    index = pd.date_range("1990-01-01", periods=300, freq="MS")
    return pd.Series(np.cumsum(rng.normal(0, 1, 300)), index=index, name="walk")


@pytest.fixture
def ar1_series(rng):
    """Quarterly AR(1) with phi = 0.7 around a mean of 2."""
    n, phi = 500, 0.7
    shocks = rng.normal(0, 1, n)
    x = np.zeros(n)
    for i in range(1, n):
        x[i] = phi * x[i - 1] + shocks[i]
    index = pd.date_range("1900-01-01", periods=n, freq="QS")
    return pd.Series(2 + x, index=index, name="ar1")
