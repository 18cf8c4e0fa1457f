"""ARIMA models, order selection and persistence."""
from .forecaster import ArimaForecaster, ForecastResult, calculate_metrics
from .order_selection import OrderSelector, OrderSelectionResult, auto_arima
from .model_manager import ModelManager, ModelMetadata

__all__ = [
    "ArimaForecaster",
    "ForecastResult",
    "calculate_metrics",
    "OrderSelector",
    "OrderSelectionResult",
    "auto_arima",
    "ModelManager",
    "ModelMetadata",
]
