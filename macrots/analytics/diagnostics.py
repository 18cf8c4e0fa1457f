"""
Model Diagnostics Module.
Residual analysis for fitted ARIMA models: autocorrelation, normality and
changing variance.
"""
import pandas as pd
import numpy as np
from typing import Dict, Optional
from dataclasses import dataclass
from scipy import stats
from statsmodels.stats.diagnostic import acorr_ljungbox, het_arch
from statsmodels.stats.stattools import durbin_watson

from macrots.utils.exceptions import InsufficientDataError


@dataclass
class DiagnosticResults:
    """Container for diagnostic results."""
    residuals: pd.Series
    ljung_box: pd.DataFrame
    normality_test: Dict[str, Dict[str, float]]
    durbin_watson: float
    arch_test: Dict[str, float]
    heteroscedasticity: Dict[str, Optional[float]]


class ModelDiagnostics:
    """
    Diagnostic checks on model residuals.
    """

    def __init__(self, significance: float = 0.05):
        self.significance = significance
        self.results: Optional[DiagnosticResults] = None

    def analyze(
        self,
        residuals: pd.Series,
        lags: int = 12,
        model_df: int = 0,
        burn_in: int = 0
    ) -> DiagnosticResults:
        """
        Perform diagnostic analysis.

        Args:
            residuals: Model residuals
            lags: Maximum Ljung-Box lag
            model_df: Number of estimated ARMA parameters (p + q + P + Q)
            burn_in: Leading residuals to discard (differencing start-up)

        Returns:
            DiagnosticResults with all analysis
        """
        res = residuals.dropna().iloc[burn_in:]
        if len(res) < 10:
            raise InsufficientDataError("residual diagnostics", 10 + burn_in, len(residuals))

        lags = min(lags, len(res) // 2)
        ljung_box = acorr_ljungbox(res, lags=list(range(1, lags + 1)), model_df=model_df)

        jb_stat, jb_p = stats.jarque_bera(res)
        sw_stat, sw_p = stats.shapiro(res.iloc[:5000])  # Limit for performance
        normality_test = {
            "jarque_bera": {"statistic": float(jb_stat), "p_value": float(jb_p)},
            "shapiro": {"statistic": float(sw_stat), "p_value": float(sw_p)},
            "skewness": {"value": float(stats.skew(res))},
            "kurtosis": {"value": float(stats.kurtosis(res, fisher=False))},
        }

        arch_lm, arch_p, _, _ = het_arch(res, nlags=min(lags, len(res) // 4))
        arch_test = {"statistic": float(arch_lm), "p_value": float(arch_p)}

        # Simple check: compare variance in the first and second half
        half = len(res) // 2
        first, second = res.iloc[:half], res.iloc[half:]
        if len(first) > 10 and len(second) > 10:
            _, lev_p = stats.levene(first, second)
            heteroscedasticity = {
                "levene_p_value": float(lev_p),
                "variance_ratio": float(second.var() / first.var()) if first.var() > 0 else None,
            }
        else:
            heteroscedasticity = {"levene_p_value": None, "variance_ratio": None}

        self.results = DiagnosticResults(
            residuals=res,
            ljung_box=ljung_box,
            normality_test=normality_test,
            durbin_watson=float(durbin_watson(res)),
            arch_test=arch_test,
            heteroscedasticity=heteroscedasticity
        )

        return self.results

    def get_diagnostic_summary(self) -> Dict:
        """Get a summary of diagnostic results."""
        if self.results is None:
            raise ValueError("Run analyze() first")

        r = self.results
        alpha = self.significance
        lb_last = r.ljung_box.iloc[-1]
        lb_min_p = r.ljung_box["lb_pvalue"].min()
        levene_p = r.heteroscedasticity["levene_p_value"]

        return {
            "overall": {
                "mean": float(r.residuals.mean()),
                "std": float(r.residuals.std()),
                "nobs": int(len(r.residuals)),
            },
            "autocorrelation": {
                "ljung_box_lag": int(r.ljung_box.index[-1]),
                "ljung_box_stat": float(lb_last["lb_stat"]),
                "ljung_box_p_value": float(lb_last["lb_pvalue"]),
                "is_white_noise": bool(np.nan_to_num(lb_min_p, nan=1.0) > alpha),
                "durbin_watson": r.durbin_watson,
            },
            "normality": {
                "is_normal": r.normality_test["jarque_bera"]["p_value"] > alpha,
                "jarque_bera_p_value": r.normality_test["jarque_bera"]["p_value"],
                "shapiro_p_value": r.normality_test["shapiro"]["p_value"],
                "skewness": r.normality_test["skewness"]["value"],
                "kurtosis": r.normality_test["kurtosis"]["value"],
            },
            "heteroscedasticity": {
                "arch_effects": r.arch_test["p_value"] < alpha,
                "arch_p_value": r.arch_test["p_value"],
                "variance_shift": levene_p is not None and levene_p < alpha,
                "levene_p_value": levene_p,
            },
        }
