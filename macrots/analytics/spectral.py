"""
Spectral analysis.
Periodogram and Welch estimates of the spectral density, peak extraction and
band power by numerical integration.

Frequencies are in cycles per observation (fs = 1), so the one-sided density
lives on [0, 0.5] and integrates to the variance of the (detrended) series.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd
from scipy import signal
from scipy.integrate import trapezoid

from macrots.data.preprocessor import infer_periods_per_year
from macrots.utils.config import SpectralConfig, DEFAULT_SPECTRAL_CONFIG
from macrots.utils.exceptions import InsufficientDataError, InvalidConfigurationError

logger = logging.getLogger(__name__)

METHODS = ("periodogram", "welch")


@dataclass
class SpectralEstimate:
    """(frequency, density) pairs of a spectral estimate."""
    frequencies: np.ndarray
    density: np.ndarray
    method: str
    periods_per_year: int
    nobs: int

    @property
    def cycles_per_year(self) -> np.ndarray:
        return self.frequencies * self.periods_per_year

    def to_frame(self) -> pd.DataFrame:
        with np.errstate(divide="ignore"):
            period = np.where(self.frequencies > 0, 1 / self.frequencies, np.inf)
        return pd.DataFrame({
            "frequency": self.frequencies,
            "cycles_per_year": self.cycles_per_year,
            "period": period,
            "density": self.density,
        })


@dataclass
class SpectralPeak:
    """A local maximum of the spectral density."""
    frequency: float
    cycles_per_year: float
    period: float  # observations per cycle
    period_years: float
    density: float
    power_share: float

    def to_dict(self) -> dict:
        return {
            "frequency": self.frequency,
            "cycles_per_year": self.cycles_per_year,
            "period": self.period,
            "period_years": self.period_years,
            "density": self.density,
            "power_share": self.power_share,
        }


class SpectralAnalyzer:
    """
    Estimate and summarise the spectral density of a series.
    """

    def __init__(self, config: SpectralConfig = None):
        self.config = config or DEFAULT_SPECTRAL_CONFIG
        self.estimate_: Optional[SpectralEstimate] = None

    def estimate(
        self,
        series: pd.Series,
        method: str = None,
        window: str = None,
        detrend: str = None,
        nperseg: int = None,
        periods_per_year: int = None
    ) -> SpectralEstimate:
        """
        Estimate the one-sided spectral density.

        Args:
            series: Evenly spaced series
            method: 'periodogram' (raw, optionally tapered) or 'welch' (averaged)
            window: scipy window name ('boxcar' means no taper)
            detrend: 'constant', 'linear' or 'none'
            nperseg: Welch segment length (default: a quarter of the sample)
            periods_per_year: Defaults to the index frequency

        Returns:
            SpectralEstimate
        """
        method = method or self.config.method
        window = window or self.config.window
        detrend = detrend or self.config.detrend
        if method not in METHODS:
            raise InvalidConfigurationError("method", method, f"Use one of {METHODS}")

        x = series.dropna()
        if len(x) < 8:
            raise InsufficientDataError("spectral estimation", 8, len(x))

        if periods_per_year is None:
            periods_per_year = (
                infer_periods_per_year(x) if isinstance(x.index, pd.DatetimeIndex) else 1
            )
        detrend_arg = False if detrend == "none" else detrend
        values = x.to_numpy(dtype=float)

        if method == "periodogram":
            freqs, density = signal.periodogram(
                values, fs=1.0, window=window, detrend=detrend_arg, scaling="density"
            )
        else:
            nperseg = nperseg or self.config.nperseg or max(8, len(values) // 4)
            freqs, density = signal.welch(
                values,
                fs=1.0,
                window="hann" if window == "boxcar" else window,
                nperseg=min(nperseg, len(values)),
                detrend=detrend_arg,
                scaling="density"
            )

        self.estimate_ = SpectralEstimate(
            frequencies=freqs,
            density=density,
            method=method,
            periods_per_year=int(periods_per_year),
            nobs=len(values)
        )
        logger.debug(f"Estimated {method} on {len(values)} observations")
        return self.estimate_

    def find_peaks(
        self,
        estimate: SpectralEstimate = None,
        n_peaks: int = None,
        min_prominence: float = None
    ) -> List[SpectralPeak]:
        """
        Local maxima of the density ranked by height, frequency 0 excluded.

        Args:
            estimate: Spectral estimate (defaults to the last one computed)
            n_peaks: Number of peaks to return
            min_prominence: Optional scipy prominence threshold

        Returns:
            Peaks in descending order of density
        """
        estimate = estimate or self._require_estimate()
        if n_peaks is None:
            n_peaks = self.config.n_peaks

        density = estimate.density
        indices, _ = signal.find_peaks(density, prominence=min_prominence)

        # find_peaks skips the Nyquist edge; its prominence is the rise above
        # the lowest point between it and the nearest higher bin (or the start)
        last = len(density) - 1
        if last > 0 and density[last] > density[last - 1]:
            higher = np.flatnonzero(density[:last] > density[last])
            start = higher[-1] if len(higher) else 0
            prominence = density[last] - density[start:last].min()
            if min_prominence is None or prominence >= min_prominence:
                indices = np.append(indices, last)

        indices = [i for i in indices if estimate.frequencies[i] > 0]
        indices = sorted(indices, key=lambda i: density[i], reverse=True)[:n_peaks]

        total = self.integrate(estimate)
        df = estimate.frequencies[1] - estimate.frequencies[0] if len(estimate.frequencies) > 1 else 1.0

        peaks = []
        for i in indices:
            freq = float(estimate.frequencies[i])
            period = 1.0 / freq
            peaks.append(SpectralPeak(
                frequency=freq,
                cycles_per_year=freq * estimate.periods_per_year,
                period=period,
                period_years=period / estimate.periods_per_year,
                density=float(density[i]),
                power_share=float(density[i] * df / total) if total > 0 else 0.0
            ))
        return peaks

    def dominant_cycle(self, estimate: SpectralEstimate = None) -> Optional[SpectralPeak]:
        """Highest peak of the density, or None for a flat spectrum."""
        peaks = self.find_peaks(estimate, n_peaks=1)
        return peaks[0] if peaks else None

    def integrate(
        self,
        estimate: SpectralEstimate = None,
        fmin: float = None,
        fmax: float = None
    ) -> float:
        """
        Integrate the density over [fmin, fmax] with the trapezoidal rule.

        With no bounds the whole [0, 0.5] range is used, which approximates
        the variance of the detrended series.
        """
        estimate = estimate or self._require_estimate()
        freqs = estimate.frequencies
        fmin = freqs[0] if fmin is None else fmin
        fmax = freqs[-1] if fmax is None else fmax
        if fmin > fmax:
            raise InvalidConfigurationError("band", (fmin, fmax), "fmin must not exceed fmax")

        # Clip the band to the grid and interpolate the density at its edges
        fmin, fmax = max(fmin, freqs[0]), min(fmax, freqs[-1])
        if fmin >= fmax:
            return 0.0
        inner = (freqs > fmin) & (freqs < fmax)
        grid = np.concatenate(([fmin], freqs[inner], [fmax]))
        density = np.interp(grid, freqs, estimate.density)
        return float(trapezoid(density, grid))

    def band_power_share(
        self,
        fmin: float,
        fmax: float,
        estimate: SpectralEstimate = None
    ) -> float:
        """Fraction of total power in [fmin, fmax]."""
        estimate = estimate or self._require_estimate()
        total = self.integrate(estimate)
        if total <= 0:
            return 0.0
        return self.integrate(estimate, fmin, fmax) / total

    def band_power_by_period(
        self,
        min_years: float,
        max_years: float,
        estimate: SpectralEstimate = None
    ) -> float:
        """Share of power in cycles lasting between min_years and max_years."""
        estimate = estimate or self._require_estimate()
        ppy = estimate.periods_per_year
        return self.band_power_share(1 / (max_years * ppy), 1 / (min_years * ppy), estimate)

    def get_summary(self, estimate: SpectralEstimate = None) -> dict:
        estimate = estimate or self._require_estimate()
        peaks = self.find_peaks(estimate)
        summary = {
            "method": estimate.method,
            "nobs": estimate.nobs,
            "n_frequencies": int(len(estimate.frequencies)),
            "total_power": self.integrate(estimate),
            "peaks": [p.to_dict() for p in peaks],
        }
        # Business-cycle band (1.5 to 8 years) versus seasonal/short cycles
        if estimate.nobs >= 8 * estimate.periods_per_year:
            summary["business_cycle_share"] = self.band_power_by_period(1.5, 8, estimate)
        return summary

    def _require_estimate(self) -> SpectralEstimate:
        if self.estimate_ is None:
            raise ValueError("Run estimate() first")
        return self.estimate_
