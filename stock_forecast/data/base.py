"""Base classes and interfaces for data providers and stores."""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Sequence
import pandas as pd

from ..models.types import PricePoint


class MarketDataProvider(ABC):
    """Abstract interface for market data providers."""

    @abstractmethod
    def get_ohlcv(
        self,
        ticker: str,
        start_date: date,
        end_date: date,
        interval: str = "day"
    ) -> pd.DataFrame:
        """
        Get OHLCV (Open, High, Low, Close, Volume) data.

        Args:
            ticker: Stock ticker symbol
            start_date: Start date
            end_date: End date
            interval: 'day', 'hour', 'minute', etc.

        Returns:
            DataFrame with columns: date, open, high, low, close, volume
        """
        pass


class HistoricalDataSource(ABC):
    """Supplies the closing-price history the forecast engine runs on."""

    @abstractmethod
    def get_price_history(self, ticker: str, limit: int = 365) -> List[PricePoint]:
        """
        Get closing prices for a ticker.

        Args:
            ticker: Stock ticker symbol
            limit: Keep at most this many of the most recent points

        Returns:
            PricePoints ascending by date with unique dates
        """
        pass


class PredictionSink(ABC):
    """Stores forecast rows produced by the engine."""

    @abstractmethod
    def save_predictions(self, records: Sequence[Dict[str, Any]]) -> int:
        """
        Store a batch of prediction rows.

        Each record has: ticker, prediction_date, target_date, predicted_price,
        confidence_lower, confidence_upper, model_version.

        Returns:
            Number of rows written
        """
        pass
