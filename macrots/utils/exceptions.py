"""
Exception hierarchy for macrots.

Every error carries a stable ``error_code``, a ``details`` dict for logs and
JSON output, and a short ``user_message`` that the command line prints.
"""
from typing import Any, Dict, List, Optional


class MacroTSError(Exception):
    """Root of all macrots errors."""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        user_message: str = None
    ):
        self.message = message
        self.error_code = error_code or "MACROTS_ERROR"
        self.details = details or {}
        self.user_message = user_message or message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
        }


# ===========================================
# Acquisition and input data
# ===========================================

class DataError(MacroTSError):
    """Problems with acquiring or reading a series."""


class DataFetchError(DataError):
    """The remote database request failed."""

    def __init__(self, series_id: str, reason: str = None, status_code: Optional[int] = None):
        super().__init__(
            message=f"Download of {series_id} failed: {reason}",
            error_code="DATA_FETCH_ERROR",
            user_message=f"Could not download '{series_id}'. {reason or 'Check the network connection.'}",
            details={"series_id": series_id, "reason": reason, "status_code": status_code}
        )


class DataLoadError(DataError):
    """A local series file could not be read."""

    def __init__(self, filepath: str, reason: str = None):
        super().__init__(
            message=f"Cannot read series file {filepath}: {reason}",
            error_code="DATA_LOAD_ERROR",
            user_message=f"Could not read '{filepath}'. {reason or ''}".strip(),
            details={"filepath": filepath, "reason": reason}
        )


class DataValidationError(DataError):
    """A series failed validation."""

    def __init__(self, field: str = None, reason: str = None, value: Any = None):
        super().__init__(
            message=f"Series {field!r} failed validation: {reason}",
            error_code="DATA_VALIDATION_ERROR",
            user_message=f"Series {field or ''} is not usable: {reason}",
            details={"field": field, "reason": reason, "value": None if value is None else str(value)}
        )


class MissingDataError(DataError):
    """A download or file held no usable observations."""

    def __init__(self, data_type: str, required_columns: List[str] = None):
        super().__init__(
            message=f"No observations found for {data_type}",
            error_code="DATA_MISSING",
            user_message=f"No observations were found for {data_type}.",
            details={"data_type": data_type, "required_columns": required_columns}
        )


class DataFormatError(DataError):
    """A payload did not have the expected layout."""

    def __init__(self, expected_format: str, actual_format: str = None):
        super().__init__(
            message=f"Expected {expected_format}, got {actual_format}",
            error_code="DATA_FORMAT_ERROR",
            user_message=f"Unexpected data layout; expected {expected_format}.",
            details={"expected_format": expected_format, "actual_format": actual_format}
        )


# ===========================================
# Analysis
# ===========================================

class AnalysisError(MacroTSError):
    """Errors raised by the descriptive and spectral analysis steps."""


class InsufficientDataError(AnalysisError):
    """Series is too short for the requested analysis."""

    def __init__(self, analysis: str, required: int, available: int):
        super().__init__(
            message=f"{analysis} needs at least {required} observations, got {available}",
            error_code="ANALYSIS_INSUFFICIENT_DATA",
            user_message=f"Not enough observations for {analysis}.",
            details={"analysis": analysis, "required": required, "available": available}
        )


# ===========================================
# Models
# ===========================================

class ModelError(MacroTSError):
    """Errors from ARIMA estimation, forecasting and persistence."""


class ModelNotFittedError(ModelError):

    def __init__(self):
        super().__init__(
            message="Model not fitted",
            error_code="MODEL_NOT_FITTED",
            user_message="Fit the model before forecasting or summarising it."
        )


class ModelFitError(ModelError):
    """Maximum likelihood estimation failed for an order."""

    def __init__(self, order: tuple = None, reason: str = None):
        super().__init__(
            message=f"ARIMA{order} could not be estimated: {reason}",
            error_code="MODEL_FIT_ERROR",
            user_message=f"ARIMA{order} could not be estimated. {reason or ''}".strip(),
            details={"order": order, "reason": reason}
        )


class ModelLoadError(ModelError):
    """A saved model or the model registry could not be read."""

    def __init__(self, model_path: str = None, reason: str = None):
        super().__init__(
            message=f"Cannot load model {model_path}: {reason}",
            error_code="MODEL_LOAD_ERROR",
            user_message=f"Could not load model '{model_path}'. Refit it and save again.",
            details={"model_path": model_path, "reason": reason}
        )


class ForecastError(ModelError):

    def __init__(self, reason: str = None):
        super().__init__(
            message=f"Forecast failed: {reason}",
            error_code="FORECAST_ERROR",
            user_message=f"Could not produce a forecast. {reason or ''}".strip(),
            details={"reason": reason}
        )


# ===========================================
# Configuration
# ===========================================

class ConfigurationError(MacroTSError):
    """Bad option values or unknown names."""


class InvalidConfigurationError(ConfigurationError):

    def __init__(self, config_key: str, value: Any = None, reason: str = None):
        super().__init__(
            message=f"Invalid value for {config_key}: {value!r}",
            error_code="CONFIG_INVALID",
            user_message=f"Invalid value for {config_key}. {reason or ''}".strip(),
            details={"config_key": config_key, "value": str(value), "reason": reason}
        )


class UnknownSeriesError(ConfigurationError):
    """Requested series or study is not in the registry."""

    def __init__(self, name: str, available: List[str] = None):
        super().__init__(
            message=f"Unknown series or study: {name}",
            error_code="CONFIG_UNKNOWN_SERIES",
            user_message=f"'{name}' is not configured. Choose one of: {', '.join(available or [])}",
            details={"name": name, "available": available or []}
        )


# ===========================================
# Export
# ===========================================

class ExportError(MacroTSError):
    """Writing a report or table failed."""


class ExportFormatError(ExportError):
    """Unsupported export format."""

    def __init__(self, format: str, supported_formats: list = None):
        super().__init__(
            message=f"Unsupported export format: {format}",
            error_code="EXPORT_FORMAT_ERROR",
            user_message=f"Cannot export as '{format}'.",
            details={"format": format, "supported_formats": supported_formats or ["json", "csv"]}
        )
