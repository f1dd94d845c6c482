"""Runs every forecasting model for a ticker and assembles one response."""

import logging
import numbers
from datetime import date
from typing import Callable, List, Optional, Sequence, Union

from ..data.base import HistoricalDataSource, PredictionSink
from ..exceptions import (
    ForecastCancelledError,
    InsufficientDataError,
    InvalidParameterError,
)
from ..models import LinearTrendModel, LSTMForecaster
from ..models.types import ForecastResult, PricePoint

logger = logging.getLogger(__name__)

LSTM_INSUFFICIENT_DATA_NOTE = 'Insufficient data for LSTM (requires 60+ days)'


class ForecastEngine:
    """
    Multi-model forecast orchestrator.

    The linear trend model is required: if it fails the request fails. The
    LSTM model is best effort: when it cannot run, the result carries a note
    in ``lstm_error`` instead. Writing predictions to the sink never affects
    the returned result.
    """

    min_days = 1
    max_days = 90
    min_history = LinearTrendModel.min_history

    trend_model_cls = LinearTrendModel
    lstm_model_cls = LSTMForecaster

    def __init__(
        self,
        data_source: Optional[HistoricalDataSource] = None,
        sink: Optional[PredictionSink] = None,
        lstm_seed: Optional[int] = None,
        history_limit: int = 365
    ):
        """
        Initialize forecast engine.

        Args:
            data_source: Price history source used by forecast_ticker
            sink: Where predictions are stored; None disables persistence
            lstm_seed: Fixed seed for LSTM weights; None for a fresh seed per call
            history_limit: Most recent closes fetched by forecast_ticker
        """
        self.data_source = data_source
        self.sink = sink
        self.lstm_seed = lstm_seed
        self.history_limit = history_limit

    @staticmethod
    def normalize_ticker(ticker: Optional[str]) -> str:
        """Strip and upper-case a ticker. Empty tickers are rejected."""
        ticker = (ticker or '').strip().upper()
        if not ticker:
            raise InvalidParameterError('Ticker symbol is required')
        return ticker

    def validate_days(self, days) -> int:
        if isinstance(days, bool) or not isinstance(days, numbers.Integral):
            raise InvalidParameterError(f'Days must be an integer, got {days!r}')
        if days < self.min_days or days > self.max_days:
            raise InvalidParameterError(
                f'Days must be between {self.min_days} and {self.max_days}'
            )
        return int(days)

    def forecast_ticker(
        self,
        ticker: str,
        days: int,
        should_cancel: Optional[Callable[[], bool]] = None
    ) -> ForecastResult:
        """
        Fetch price history for ``ticker`` and forecast it.

        Raises:
            InvalidParameterError: bad ticker or days
            DataSourceError: history could not be fetched
            InsufficientDataError: fewer than 10 closes
        """
        ticker = self.normalize_ticker(ticker)
        days = self.validate_days(days)

        if self.data_source is None:
            raise ValueError("No historical data source configured")

        history = self.data_source.get_price_history(ticker, limit=self.history_limit)
        logger.info("Fetched %d closes for %s", len(history), ticker)

        return self.forecast(ticker, history, days, should_cancel=should_cancel)

    def forecast(
        self,
        ticker: str,
        series: Sequence[Union[PricePoint, float]],
        days: int,
        should_cancel: Optional[Callable[[], bool]] = None,
        today: Optional[date] = None
    ) -> ForecastResult:
        """
        Forecast ``days`` ahead from a closing-price series.

        Args:
            ticker: Ticker symbol (case-insensitive)
            series: PricePoints (or bare closes) ascending by date
            days: Horizon, 1 to 90
            should_cancel: Optional cancellation poll passed to the models
            today: Reference date for target dates; defaults to date.today()

        Returns:
            ForecastResult with the trend model first and the LSTM second
            when it ran
        """
        ticker = self.normalize_ticker(ticker)
        days = self.validate_days(days)

        prices = self._closing_prices(series)
        if len(prices) < self.min_history:
            raise InsufficientDataError(
                'Insufficient historical data. Please fetch stock data first.'
            )

        today = today or date.today()
        result = ForecastResult(ticker=ticker, prediction_days=days)

        trend = self.trend_model_cls(should_cancel=should_cancel)
        result.models.append(trend.forecast(prices, days, start_date=today))

        if len(prices) >= self.lstm_model_cls.min_history:
            try:
                lstm = self.lstm_model_cls(seed=self.lstm_seed, should_cancel=should_cancel)
                result.models.append(lstm.forecast(prices, days, start_date=today))
            except ForecastCancelledError:
                raise
            except Exception as e:
                logger.exception("LSTM prediction error for %s", ticker)
                result.lstm_error = str(e) or type(e).__name__
        else:
            result.lstm_error = LSTM_INSUFFICIENT_DATA_NOTE

        logger.info(
            "Forecast %s for %d days: models=%s",
            ticker, days, [m.model for m in result.models]
        )

        self._persist(result, today)
        return result

    def _persist(self, result: ForecastResult, prediction_date: date):
        """Hand predictions to the sink. Failures are logged, never raised."""
        if self.sink is None:
            return

        records = result.to_records(prediction_date)
        try:
            written = self.sink.save_predictions(records)
            logger.debug("Stored %s predictions for %s", written, result.ticker)
        except Exception:
            logger.exception("Failed to store predictions for %s", result.ticker)

    @staticmethod
    def _closing_prices(series: Sequence[Union[PricePoint, float]]) -> List[float]:
        return [
            float(p.close) if isinstance(p, PricePoint) else float(p)
            for p in series
        ]
