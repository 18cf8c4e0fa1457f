"""
Data loader for economic time series.
Fetches named series from FRED, caches them locally, and reads CSV/Excel files.
"""
import io
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
import pandas as pd
import requests

from macrots.utils.config import SeriesConfig, get_series_config
from macrots.utils.exceptions import (
    DataFetchError,
    DataFormatError,
    DataLoadError,
    MissingDataError,
)

logger = logging.getLogger(__name__)

DATE_COLUMNS = ["observation_date", "date", "datetime", "timestamp", "period", "time"]


def _find_column(df: pd.DataFrame, candidates: List[str]) -> Optional[str]:
    """Find first matching column from candidates."""
    for col in candidates:
        if col in df.columns:
            return col
    return None


def to_regular_series(
    df: pd.DataFrame,
    date_column: str,
    value_column: str,
    name: str = None
) -> pd.Series:
    """
    Build a float series on a DatetimeIndex from two dataframe columns.

    Rows with a missing value are dropped and the index frequency is inferred
    where the remaining observations are evenly spaced.
    """
    frame = df[[date_column, value_column]].copy()
    frame[date_column] = pd.to_datetime(frame[date_column])
    frame[value_column] = pd.to_numeric(frame[value_column], errors="coerce")

    n_missing = int(frame[value_column].isna().sum())
    if n_missing:
        logger.warning(f"Dropping {n_missing} missing observations from {name or value_column}")
    frame = frame.dropna().sort_values(date_column)

    series = pd.Series(
        frame[value_column].astype(float).values,
        index=pd.DatetimeIndex(frame[date_column].values),
        name=name or value_column
    )

    if len(series) >= 3:
        freq = pd.infer_freq(series.index)
        if freq is not None:
            series = series.asfreq(freq)
        else:
            logger.warning(f"Could not infer a regular frequency for {series.name}")

    return series


class FredClient:
    """
    Minimal client for the FRED graph CSV endpoint.

    One HTTP session per client; no API key needed.
    """

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        session: requests.Session = None
    ):
        from macrots.utils.settings import get_settings

        settings = get_settings()
        self.base_url = base_url or settings.fred_base_url
        self.timeout = timeout or settings.fred_timeout_seconds
        self.session = session or requests.Session()

    def fetch(
        self,
        series_id: str,
        start: Optional[str] = None,
        end: Optional[str] = None
    ) -> pd.Series:
        """
        Download a series.

        Args:
            series_id: FRED series identifier (e.g. "UNRATENSA").
            start: Optional first observation date (YYYY-MM-DD).
            end: Optional last observation date (YYYY-MM-DD).

        Returns:
            Float series indexed by observation date.
        """
        params = {"id": series_id}
        if start:
            params["cosd"] = start
        if end:
            params["coed"] = end

        logger.info(f"Fetching {series_id} from {self.base_url}")
        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise DataFetchError(series_id, reason=str(e), status_code=status) from e
        except requests.RequestException as e:
            raise DataFetchError(series_id, reason=str(e)) from e

        return self.parse_csv(response.text, series_id)

    @staticmethod
    def parse_csv(text: str, series_id: str) -> pd.Series:
        """Parse a FRED graph CSV payload; "." marks a missing observation."""
        try:
            df = pd.read_csv(io.StringIO(text), na_values=["."])
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise DataFormatError("FRED CSV", actual_format=str(e)) from e

        df.columns = df.columns.str.strip()
        lower = {c.lower(): c for c in df.columns}
        date_key = next((c for c in DATE_COLUMNS if c in lower), None)

        if date_key is None or series_id not in df.columns:
            raise DataFormatError(
                f"columns [date, {series_id}]",
                actual_format=", ".join(df.columns)
            )

        series = to_regular_series(df, lower[date_key], series_id, name=series_id)
        if series.empty:
            raise MissingDataError(series_id)

        logger.info(f"Fetched {len(series)} observations of {series_id}")
        return series

    def close(self):
        self.session.close()


class SeriesLoader:
    """
    Load configured series, using the local raw-data directory as a cache.
    """

    def __init__(
        self,
        data_dir: Path = None,
        client: FredClient = None,
        use_cache: bool = None
    ):
        """
        Initialize the loader.

        Args:
            data_dir: Directory for cached raw files. Defaults to settings.
            client: FRED client; created lazily when a download is needed.
            use_cache: Read/write cached files. Defaults to settings.
        """
        from macrots.utils.settings import get_settings

        settings = get_settings()
        self.data_dir = Path(data_dir or settings.data_raw_path)
        self.use_cache = settings.cache_downloads if use_cache is None else use_cache
        self._client = client
        self.loaded_data: Dict[str, pd.Series] = {}

    @property
    def client(self) -> FredClient:
        if self._client is None:
            self._client = FredClient()
        return self._client

    def cache_path(self, config: SeriesConfig) -> Path:
        return self.data_dir / f"{config.series_id}.csv"

    def load(self, name: str, refresh: bool = False) -> pd.Series:
        """
        Load a configured series by name.

        Args:
            name: Registry key (e.g. "unemployment", "gnp").
            refresh: Ignore the cache and download again.

        Returns:
            The raw series.
        """
        config = get_series_config(name)
        path = self.cache_path(config)

        if self.use_cache and path.exists() and not refresh:
            logger.info(f"Loading {config.series_id} from cache: {path}")
            series = self.load_csv(path, value_column=config.series_id.lower())
            series.name = config.series_id
        else:
            series = self.client.fetch(config.series_id, start=config.start)
            if self.use_cache:
                self.save(series, path)

        self.loaded_data[name] = series
        return series

    def save(self, series: pd.Series, path: Path):
        """Write a series to CSV."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        series.to_csv(path, index_label="date", header=[series.name])
        logger.info(f"Cached {series.name} to: {path}")

    def _read_file(self, filepath: Path) -> pd.DataFrame:
        """Read a CSV or Excel file."""
        suffix = filepath.suffix.lower()

        if suffix == ".csv":
            df = pd.read_csv(filepath, na_values=["."])
        elif suffix in [".xlsx", ".xls"]:
            df = pd.read_excel(filepath)
        else:
            raise DataLoadError(str(filepath), reason=f"Unsupported file format: {suffix}")

        # Normalize column names (lowercase, strip whitespace)
        df.columns = df.columns.astype(str).str.lower().str.strip().str.replace(" ", "_")
        return df

    def load_csv(
        self,
        filepath: Union[str, Path],
        value_column: str = None
    ) -> pd.Series:
        """
        Load a series from a CSV or Excel file.

        Args:
            filepath: Path to the file.
            value_column: Value column; defaults to the first non-date column.

        Returns:
            Float series indexed by date.
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise DataLoadError(str(filepath), reason="File not found")

        df = self._read_file(filepath)

        date_col = _find_column(df, DATE_COLUMNS)
        if date_col is None:
            raise DataLoadError(str(filepath), reason="No date column found")

        if value_column is not None:
            value_column = value_column.lower()
            if value_column not in df.columns:
                raise DataLoadError(str(filepath), reason=f"Column '{value_column}' not found")
        else:
            others = [c for c in df.columns if c != date_col]
            if not others:
                raise DataLoadError(str(filepath), reason="No value column found")
            value_column = others[0]

        try:
            series = to_regular_series(df, date_col, value_column)
        except (ValueError, TypeError) as e:
            raise DataLoadError(str(filepath), reason=str(e)) from e

        logger.info(f"Loaded {len(series)} observations from: {filepath}")
        return series


def create_sample_data(
    name: str,
    periods: int = None,
    seed: int = 42,
    start: str = "1980-01-01"
) -> pd.Series:
    """
    Create a synthetic stand-in for a configured series.

    Args:
        name: Registry key ("unemployment" or "gnp").
        periods: Number of observations (default 30 years).
        seed: Random seed.
        start: First observation date.

    Returns:
        Series on a regular DatetimeIndex named after the FRED id.
    """
    config = get_series_config(name)
    rng = np.random.default_rng(seed)
    per_year = config.periods_per_year
    periods = periods or 30 * per_year
    freq = {12: "MS", 4: "QS"}.get(per_year, "YS")
    index = pd.date_range(start=start, periods=periods, freq=freq)
    t = np.arange(periods)

    def ar1(phi: float, sigma: float) -> np.ndarray:
        shocks = rng.normal(0, sigma, periods)
        out = np.zeros(periods)
        for i in range(1, periods):
            out[i] = phi * out[i - 1] + shocks[i]
        return out

    if name == "unemployment":
        # Business cycle, annual seasonal pattern and persistent noise
        values = (
            5.5
            + 1.5 * np.sin(2 * np.pi * t / 96)
            + 0.4 * np.sin(2 * np.pi * t / per_year + 0.5)
            + ar1(0.8, 0.15)
        )
        values = np.clip(values, 1.0, None)
    else:
        growth = 0.8 + ar1(0.35, 0.8)
        values = 5000 * np.exp(np.cumsum(growth / 100))

    logger.info(f"Created {periods} sample observations for {config.series_id}")
    return pd.Series(np.round(values, 3), index=index, name=config.series_id)
