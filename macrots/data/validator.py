"""
Data validation module.
Checks that a series is a usable, evenly spaced univariate time series.
"""
import pandas as pd
import numpy as np
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any
from enum import Enum

from macrots.utils.exceptions import DataValidationError


class ValidationSeverity(Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Series cannot be used
    WARNING = "warning"  # Series can be used but may have issues
    INFO = "info"        # Informational message


@dataclass
class ValidationIssue:
    """A single validation issue."""
    severity: ValidationSeverity
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self):
        return f"[{self.severity.value.upper()}] {self.message}"


@dataclass
class ValidationResult:
    """Result of a validation check."""
    is_valid: bool
    issues: List[ValidationIssue] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.WARNING]

    @property
    def codes(self) -> List[str]:
        return [i.code for i in self.issues]

    def add_issue(
        self,
        severity: ValidationSeverity,
        code: str,
        message: str,
        details: Dict = None
    ):
        """Add a validation issue."""
        self.issues.append(ValidationIssue(
            severity=severity,
            code=code,
            message=message,
            details=details or {}
        ))

        if severity == ValidationSeverity.ERROR:
            self.is_valid = False


class SeriesValidator:
    """
    Validates univariate series before analysis.
    """

    MIN_OBSERVATIONS = 8

    def __init__(self):
        self.result = ValidationResult(is_valid=True)

    def validate(
        self,
        series: pd.Series,
        seasonal_period: Optional[int] = None
    ) -> ValidationResult:
        """
        Validate a series.

        Args:
            series: The series to validate
            seasonal_period: When given, require at least two full cycles

        Returns:
            ValidationResult with issues and summary
        """
        self.result = ValidationResult(is_valid=True)

        if series is None or len(series) == 0:
            self.result.add_issue(
                ValidationSeverity.ERROR,
                "DATA_EMPTY",
                "The provided series is empty"
            )
            return self.result

        if not pd.api.types.is_numeric_dtype(series):
            self.result.add_issue(
                ValidationSeverity.ERROR,
                "NON_NUMERIC",
                f"Series must be numeric, got dtype {series.dtype}"
            )
            return self.result

        if isinstance(series.index, pd.DatetimeIndex):
            self._validate_index(series)
        else:
            self.result.add_issue(
                ValidationSeverity.ERROR,
                "INDEX_NOT_DATETIME",
                "Series must be indexed by a DatetimeIndex",
                details={"index_type": type(series.index).__name__}
            )

        self._validate_values(series)
        self._validate_length(series, seasonal_period)

        self.result.summary = self._create_summary(series)
        return self.result

    def _validate_index(self, series: pd.Series):
        """Validate ordering and spacing of the time axis."""
        index = series.index

        if index.has_duplicates:
            self.result.add_issue(
                ValidationSeverity.ERROR,
                "DUPLICATE_TIMESTAMPS",
                f"Found {index.duplicated().sum()} duplicate timestamps"
            )
            return

        if not index.is_monotonic_increasing:
            self.result.add_issue(
                ValidationSeverity.ERROR,
                "UNSORTED_INDEX",
                "Timestamps are not in increasing order"
            )
            return

        if len(index) >= 3 and index.freq is None and pd.infer_freq(index) is None:
            self.result.add_issue(
                ValidationSeverity.ERROR,
                "IRREGULAR_SPACING",
                "Observations are not evenly spaced"
            )

    def _validate_values(self, series: pd.Series):
        """Validate observation values."""
        n_missing = int(series.isna().sum())
        if n_missing > 0:
            self.result.add_issue(
                ValidationSeverity.ERROR,
                "MISSING_VALUES",
                f"Found {n_missing} missing values",
                details={"count": n_missing}
            )

        if not np.isfinite(series.dropna()).all():
            self.result.add_issue(
                ValidationSeverity.ERROR,
                "INFINITE_VALUES",
                "Series contains infinite values"
            )

        if series.dropna().nunique() <= 1:
            self.result.add_issue(
                ValidationSeverity.ERROR,
                "CONSTANT_SERIES",
                "Series is constant; correlations and spectra are undefined"
            )

    def _validate_length(self, series: pd.Series, seasonal_period: Optional[int]):
        """Validate there are enough observations."""
        n = len(series)
        if n < self.MIN_OBSERVATIONS:
            self.result.add_issue(
                ValidationSeverity.ERROR,
                "TOO_SHORT",
                f"Series has {n} observations, need at least {self.MIN_OBSERVATIONS}",
                details={"length": n}
            )
        elif seasonal_period and n < 2 * seasonal_period:
            self.result.add_issue(
                ValidationSeverity.ERROR,
                "TOO_FEW_CYCLES",
                f"Need two full seasonal cycles ({2 * seasonal_period} observations), got {n}",
                details={"length": n, "seasonal_period": seasonal_period}
            )

    def _create_summary(self, series: pd.Series) -> Dict[str, Any]:
        """Create a summary of the series."""
        summary = {
            "name": series.name,
            "length": len(series),
            "missing": int(series.isna().sum()),
            "mean": float(series.mean()),
            "std": float(series.std()),
            "min": float(series.min()),
            "max": float(series.max()),
        }
        if isinstance(series.index, pd.DatetimeIndex) and len(series) > 0:
            summary["start"] = series.index[0].isoformat()
            summary["end"] = series.index[-1].isoformat()
            freq = series.index.freq or (pd.infer_freq(series.index) if len(series) >= 3 else None)
            summary["frequency"] = freq.freqstr if hasattr(freq, "freqstr") else freq
        return summary

    def ensure_valid(
        self,
        series: pd.Series,
        seasonal_period: Optional[int] = None
    ) -> ValidationResult:
        """Validate and raise DataValidationError on the first error."""
        result = self.validate(series, seasonal_period)
        if not result.is_valid:
            issue = result.errors[0]
            raise DataValidationError(
                field=series.name if series is not None else None,
                reason=issue.message,
                value=issue.code
            )
        return result
