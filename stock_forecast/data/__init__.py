"""Data access layer for price history and stored predictions."""

from .base import HistoricalDataSource, MarketDataProvider, PredictionSink
from .market_data import MarketDataHistorySource, get_market_data_provider
from .prediction_store import PredictionStore, get_prediction_store

__all__ = [
    'HistoricalDataSource',
    'MarketDataProvider',
    'PredictionSink',
    'MarketDataHistorySource',
    'get_market_data_provider',
    'PredictionStore',
    'get_prediction_store',
]
