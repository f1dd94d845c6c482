"""
Shared pytest fixtures for the stock forecast test suite.

Provides price-series factories and in-memory stand-ins for the
historical-data source and the prediction sink.
"""

from datetime import date, timedelta
from typing import List

import numpy as np
import pytest

from stock_forecast.data.base import HistoricalDataSource, PredictionSink
from stock_forecast.exceptions import DataSourceError
from stock_forecast.models.types import PricePoint

TODAY = date(2024, 3, 1)


def make_series(prices, end: date = date(2024, 2, 29)) -> List[PricePoint]:
    """PricePoints on consecutive days ending at ``end``."""
    n = len(prices)
    return [
        PricePoint(date=end - timedelta(days=n - 1 - i), close=float(p))
        for i, p in enumerate(prices)
    ]


def random_walk(n: int, seed: int = 0, start: float = 100.0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return start * np.cumprod(1 + rng.normal(0.0005, 0.02, n))


class StaticSource(HistoricalDataSource):
    """Returns a fixed series and records the requests it saw."""

    def __init__(self, series=None, error: Exception = None):
        self.series = series or []
        self.error = error
        self.calls = []

    def get_price_history(self, ticker, limit=365):
        self.calls.append((ticker, limit))
        if self.error is not None:
            raise self.error
        return list(self.series)[-limit:]


class RecordingSink(PredictionSink):
    """Collects saved rows in memory, optionally failing every save."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.batches = []

    def save_predictions(self, records):
        if self.fail:
            raise RuntimeError("database unavailable")
        self.batches.append(list(records))
        return len(records)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def short_series() -> List[PricePoint]:
    """30 closes: enough for the trend model, too few for the LSTM."""
    return make_series(random_walk(30, seed=1))


@pytest.fixture
def long_series() -> List[PricePoint]:
    """90 closes: enough for both models."""
    return make_series(random_walk(90, seed=2))


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def failing_source() -> StaticSource:
    return StaticSource(error=DataSourceError("Failed to fetch historical data for XYZ: timeout"))
