"""
Export utilities for study reports and forecast tables.
"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

import numpy as np
import pandas as pd

from macrots.utils.exceptions import ExportFormatError

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ["json", "csv"]


def _default_output_dir() -> Path:
    from macrots.utils.settings import get_settings
    return get_settings().outputs_path


def _to_serializable(value: Any) -> Any:
    """Convert numpy/pandas values into JSON-friendly Python types."""
    if isinstance(value, dict):
        return {str(k): _to_serializable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_serializable(v) for v in value]
    if isinstance(value, pd.DataFrame):
        return _to_serializable(value.reset_index().to_dict(orient="records"))
    if isinstance(value, pd.Series):
        return {str(k): _to_serializable(v) for k, v in value.items()}
    if isinstance(value, (pd.Timestamp, datetime)):
        return value.isoformat()
    if isinstance(value, np.ndarray):
        return _to_serializable(value.tolist())
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, (np.floating, float)):
        return None if np.isnan(value) else float(value)
    return value


def export_report_json(
    report: Dict[str, Any],
    output_dir: Path = None,
    filename: str = None
) -> Path:
    """
    Write a study report dictionary as JSON.

    Args:
        report: Report dictionary (e.g. StudyReport.to_dict()).
        output_dir: Output directory.
        filename: Output filename.

    Returns:
        Path to exported file.
    """
    output_dir = Path(output_dir or _default_output_dir())
    output_dir.mkdir(parents=True, exist_ok=True)

    if filename is None:
        filename = f"report_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"

    filepath = output_dir / filename
    with open(filepath, "w") as f:
        json.dump(_to_serializable(report), f, indent=2)

    logger.info(f"Exported report JSON to: {filepath}")
    return filepath


def export_forecast_csv(
    forecast_df: pd.DataFrame,
    output_dir: Path = None,
    filename: str = None
) -> Path:
    """
    Simple CSV export for forecast data.

    Args:
        forecast_df: Forecast DataFrame indexed by date.
        output_dir: Output directory.
        filename: Output filename.

    Returns:
        Path to exported file.
    """
    output_dir = Path(output_dir or _default_output_dir())
    output_dir.mkdir(parents=True, exist_ok=True)

    if filename is None:
        filename = f"forecast_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"

    filepath = output_dir / filename
    forecast_df.to_csv(filepath, index=True, index_label="date")

    logger.info(f"Exported forecast CSV to: {filepath}")
    return filepath


def export(data: Any, format: str, output_dir: Path = None, filename: str = None) -> Path:
    """Dispatch to the exporter for `format`."""
    format = format.lower()
    if format == "json":
        return export_report_json(data, output_dir, filename)
    if format == "csv":
        if not isinstance(data, pd.DataFrame):
            raise ExportFormatError(format, SUPPORTED_FORMATS)
        return export_forecast_csv(data, output_dir, filename)
    raise ExportFormatError(format, SUPPORTED_FORMATS)
