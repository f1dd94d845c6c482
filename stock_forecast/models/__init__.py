"""Forecasting models and the value types they produce."""

from .base_model import BaseForecaster
from .trend_model import LinearTrendModel
from .recurrent_model import LSTMForecaster
from .normalizer import normalize, denormalize
from .types import (
    DISCLAIMER,
    ForecastResult,
    ModelForecast,
    NormalizationParameters,
    Prediction,
    PricePoint,
)

__all__ = [
    'BaseForecaster',
    'LinearTrendModel',
    'LSTMForecaster',
    'normalize',
    'denormalize',
    'DISCLAIMER',
    'ForecastResult',
    'ModelForecast',
    'NormalizationParameters',
    'Prediction',
    'PricePoint',
]
