"""Base classes for forecasting models."""

from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import Callable, List, Optional, Sequence

import numpy as np

from .types import ModelForecast, Prediction
from ..exceptions import ForecastCancelledError, InsufficientDataError


class BaseForecaster(ABC):
    """
    Base class for all price forecasters.

    Instances are meant to live for a single forecast call: ``train`` fits on
    one price series and ``predict`` projects from it.
    """

    name: str = 'base'
    min_history: int = 1
    insufficient_data_message: str = 'Insufficient historical data for prediction'

    def __init__(self, should_cancel: Optional[Callable[[], bool]] = None):
        """
        Initialize base forecaster.

        Args:
            should_cancel: Optional callable polled during long loops; when it
                returns True the forecast is aborted
        """
        self.should_cancel = should_cancel
        self.is_trained = False
        self.last_price: Optional[float] = None

    @abstractmethod
    def train(self, prices: Sequence[float]):
        """
        Fit the model on historical closing prices.

        Args:
            prices: Closing prices, oldest first
        """
        pass

    @abstractmethod
    def predict(self, days: int, start_date: Optional[date] = None) -> List[Prediction]:
        """
        Forecast the next ``days`` closes.

        Args:
            days: Number of future days
            start_date: Reference "today"; defaults to date.today()

        Returns:
            One Prediction per day, in date order
        """
        pass

    def forecast(
        self,
        prices: Sequence[float],
        days: int,
        start_date: Optional[date] = None
    ) -> ModelForecast:
        """Train on ``prices`` and return the model's predictions."""
        self.train(prices)
        return ModelForecast(model=self.name, predictions=self.predict(days, start_date))

    def _check_history(self, prices: Sequence[float]) -> np.ndarray:
        values = np.asarray(prices, dtype=float)
        if len(values) < self.min_history:
            raise InsufficientDataError(self.insufficient_data_message)
        return values

    def _check_trained(self):
        if not self.is_trained:
            raise ValueError("Model must be trained before prediction")

    def _check_cancelled(self):
        if self.should_cancel is not None and self.should_cancel():
            raise ForecastCancelledError(f"{self.name} forecast cancelled")

    def _clamp(self, price: float, max_change: float) -> float:
        """Keep ``price`` within ``max_change`` (a fraction) of the last close."""
        bound = self.last_price * max_change
        return max(self.last_price - bound, min(self.last_price + bound, price))

    @staticmethod
    def _make_prediction(target_date: date, price: float, half_width: float) -> Prediction:
        price = max(0.0, float(price))
        return Prediction(
            target_date=target_date,
            predicted_price=price,
            confidence_lower=max(0.0, price - half_width),
            confidence_upper=price + half_width,
        )

    @staticmethod
    def _target_date(start_date: Optional[date], offset: int) -> date:
        return (start_date or date.today()) + timedelta(days=offset)
