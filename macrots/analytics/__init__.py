"""
Descriptive and spectral analytics.
Autocorrelation, decomposition, spectral density and residual diagnostics.
"""
from .autocorrelation import AutocorrelationAnalyzer, AutocorrelationResult
from .decomposition import TimeSeriesDecomposer, DecompositionResult, StationarityResult
from .diagnostics import ModelDiagnostics, DiagnosticResults
from .spectral import SpectralAnalyzer, SpectralEstimate, SpectralPeak

__all__ = [
    "AutocorrelationAnalyzer",
    "AutocorrelationResult",
    "TimeSeriesDecomposer",
    "DecompositionResult",
    "StationarityResult",
    "ModelDiagnostics",
    "DiagnosticResults",
    "SpectralAnalyzer",
    "SpectralEstimate",
    "SpectralPeak",
]
