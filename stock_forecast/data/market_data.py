"""Market data provider implementations."""

import logging
import time
import zlib
from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import List, Optional

import numpy as np
import pandas as pd
import requests

from .base import HistoricalDataSource, MarketDataProvider
from ..config import get_config
from ..exceptions import DataSourceError
from ..models.types import PricePoint

logger = logging.getLogger(__name__)

OHLCV_COLUMNS = ['date', 'open', 'high', 'low', 'close', 'volume']
MOCK_CACHE_SIZE = 64


class MockMarketDataProvider(MarketDataProvider):
    """Mock market data provider for testing and development."""

    def get_ohlcv(
        self,
        ticker: str,
        start_date: date,
        end_date: date,
        interval: str = "day"
    ) -> pd.DataFrame:
        """Generate mock OHLCV data."""
        return _mock_ohlcv(ticker, start_date, end_date).copy()


@lru_cache(maxsize=MOCK_CACHE_SIZE)
def _mock_ohlcv(ticker: str, start_date: date, end_date: date) -> pd.DataFrame:
    dates = pd.date_range(start_date, end_date, freq='D')
    dates = [d.date() for d in dates if d.weekday() < 5]  # Weekdays only

    # Random walk starting from $100, stable per ticker
    rng = np.random.default_rng(zlib.crc32(ticker.encode()))
    returns = rng.normal(0.001, 0.02, len(dates))
    prices = 100 * (1 + returns).cumprod()

    data = []
    for d, close in zip(dates, prices):
        volatility = rng.uniform(0.5, 1.5)
        data.append({
            'date': d,
            'open': round(close * (1 + rng.uniform(-0.005, 0.005)), 2),
            'high': round(close * (1 + volatility * 0.01), 2),
            'low': round(close * (1 - volatility * 0.01), 2),
            'close': round(close, 2),
            'volume': int(rng.integers(1000000, 10000000))
        })

    return pd.DataFrame(data, columns=OHLCV_COLUMNS)


class PolygonMarketDataProvider(MarketDataProvider):
    """Polygon.io market data provider."""

    def __init__(self, api_key: str, base_url: str = "https://api.polygon.io"):
        """
        Initialize Polygon provider.

        Args:
            api_key: Polygon.io API key
            base_url: Base URL for API
        """
        self.api_key = api_key
        self.base_url = base_url
        self.rate_limit_delay = 1.0 / get_config().get('data_sources.market_data.rate_limit', 5)
        self._last_request_time = 0

    def _rate_limit(self):
        """Enforce rate limiting."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self.rate_limit_delay:
            time.sleep(self.rate_limit_delay - elapsed)
        self._last_request_time = time.time()

    def _make_request_with_retry(self, url: str, params: dict, max_retries: int = 3):
        """Make API request with retry logic."""
        for attempt in range(max_retries):
            try:
                self._rate_limit()
                response = requests.get(url, params=params, timeout=30)

                if response.status_code == 429:
                    logger.warning("Polygon rate limited for %s", url)
                    raise DataSourceError("Polygon rate limit exceeded")

                if response.status_code == 403:
                    try:
                        error_data = response.json()
                        error_msg = error_data.get('error', error_data.get('message', 'Forbidden'))
                    except ValueError:
                        error_msg = 'Forbidden'
                    raise ValueError(f"API access denied (403): {error_msg}. Your Polygon plan may not support this data.")

                response.raise_for_status()
                return response

            except requests.exceptions.RequestException as e:
                if attempt < max_retries - 1:
                    wait_time = 2 ** attempt
                    logger.warning("Request failed: %s. Retrying in %d seconds...", e, wait_time)
                    time.sleep(wait_time)
                    continue
                raise

        raise RuntimeError("Max retries exceeded")

    def get_ohlcv(
        self,
        ticker: str,
        start_date: date,
        end_date: date,
        interval: str = "day"
    ) -> pd.DataFrame:
        """Get OHLCV data from Polygon.io."""
        timespan = interval if interval in ('day', 'hour', 'minute') else 'day'

        url = f"{self.base_url}/v2/aggs/ticker/{ticker}/range/1/{timespan}/{start_date}/{end_date}"
        params = {'apiKey': self.api_key, 'adjusted': 'true', 'sort': 'asc', 'limit': 50000}

        response = self._make_request_with_retry(url, params)
        data = response.json()

        if data.get('status') not in ('OK', 'DELAYED') or 'results' not in data:
            if data.get('resultsCount') == 0:
                return pd.DataFrame(columns=OHLCV_COLUMNS)
            error_msg = data.get('error', data.get('status', 'Unknown'))
            raise ValueError(f"Polygon API error: {error_msg}")

        results = data['results']
        if not results:
            return pd.DataFrame(columns=OHLCV_COLUMNS)

        df = pd.DataFrame(results)
        df['date'] = pd.to_datetime(df['t'], unit='ms').dt.date

        return pd.DataFrame({
            'date': df['date'],
            'open': df['o'],
            'high': df['h'],
            'low': df['l'],
            'close': df['c'],
            'volume': df['v']
        })


class AlphaVantageMarketDataProvider(MarketDataProvider):
    """Alpha Vantage market data provider (free tier available)."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://www.alphavantage.co/query",
        outputsize: str = "compact"
    ):
        """
        Initialize Alpha Vantage provider.

        Args:
            api_key: Alpha Vantage API key
            base_url: Base URL for API
            outputsize: 'compact' (last 100 points, free) or 'full' (premium)
        """
        self.api_key = api_key
        self.base_url = base_url
        self.outputsize = outputsize
        self.rate_limit_delay = 12.0  # Free tier: 5 requests/minute
        self._last_request_time = 0

    def _rate_limit(self):
        """Enforce rate limiting (5 requests/minute for free tier)."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self.rate_limit_delay:
            time.sleep(self.rate_limit_delay - elapsed)
        self._last_request_time = time.time()

    def get_ohlcv(
        self,
        ticker: str,
        start_date: date,
        end_date: date,
        interval: str = "day"
    ) -> pd.DataFrame:
        """Get daily OHLCV data from Alpha Vantage."""
        self._rate_limit()

        params = {
            'function': 'TIME_SERIES_DAILY',
            'symbol': ticker,
            'apikey': self.api_key,
            'outputsize': self.outputsize,
            'datatype': 'json'
        }

        response = requests.get(self.base_url, params=params, timeout=30)
        response.raise_for_status()
        data = response.json()

        if 'Error Message' in data:
            raise ValueError(f"Alpha Vantage error: {data['Error Message']}")
        if 'Note' in data:
            raise ValueError(f"Alpha Vantage rate limit: {data['Note']}")
        if 'Information' in data:
            raise ValueError(f"Alpha Vantage: {data['Information']}")

        time_series_key = 'Time Series (Daily)'
        if time_series_key not in data:
            raise ValueError(f"No time series data in response. Keys: {list(data.keys())}")

        records = []
        for date_str, values in data[time_series_key].items():
            record_date = datetime.strptime(date_str, '%Y-%m-%d').date()
            if record_date < start_date or record_date > end_date:
                continue

            records.append({
                'date': record_date,
                'open': float(values['1. open']),
                'high': float(values['2. high']),
                'low': float(values['3. low']),
                'close': float(values['4. close']),
                'volume': int(values['5. volume'])
            })

        if not records:
            return pd.DataFrame(columns=OHLCV_COLUMNS)

        df = pd.DataFrame(records).sort_values('date').reset_index(drop=True)
        if self.outputsize == 'compact' and len(df) < 60:
            logger.info("Alpha Vantage compact output returned only %d days for %s", len(df), ticker)

        return df[OHLCV_COLUMNS]


class MarketDataHistorySource(HistoricalDataSource):
    """Closing-price history read from a MarketDataProvider."""

    def __init__(self, provider: Optional[MarketDataProvider] = None):
        """
        Args:
            provider: Provider to read from; defaults to the configured one
        """
        self.provider = provider or get_market_data_provider()

    def get_price_history(
        self,
        ticker: str,
        limit: int = 365,
        end_date: Optional[date] = None
    ) -> List[PricePoint]:
        """
        Get up to ``limit`` most recent daily closes, oldest first.

        Raises:
            DataSourceError: if the provider fails
        """
        end_date = end_date or date.today()
        # Trading days are ~5/7 of calendar days; pad for holidays
        start_date = end_date - timedelta(days=int(limit * 7 / 5) + 14)

        try:
            df = self.provider.get_ohlcv(ticker, start_date, end_date)
        except Exception as e:
            raise DataSourceError(f"Failed to fetch historical data for {ticker}: {e}") from e

        if df.empty:
            return []

        df = (
            df.dropna(subset=['close'])
            .drop_duplicates(subset='date', keep='last')
            .sort_values('date')
            .tail(limit)
        )

        return [
            PricePoint(date=pd.Timestamp(d).date(), close=float(c))
            for d, c in zip(df['date'], df['close'])
        ]


def get_market_data_provider() -> MarketDataProvider:
    """
    Factory function to get the configured market data provider.

    Returns:
        MarketDataProvider instance
    """
    config = get_config()
    provider_name = config.market_data_provider
    api_key = config.get('data_sources.market_data.api_key')

    if provider_name == 'mock':
        return MockMarketDataProvider()
    elif provider_name == 'polygon':
        if not api_key or api_key.startswith('${'):
            logger.warning("Polygon API key not set, falling back to mock provider")
            return MockMarketDataProvider()
        return PolygonMarketDataProvider(
            api_key=api_key,
            base_url=config.get('data_sources.market_data.base_url', 'https://api.polygon.io')
        )
    elif provider_name == 'alpha_vantage':
        if not api_key or api_key.startswith('${'):
            logger.warning("Alpha Vantage API key not set, falling back to mock provider")
            return MockMarketDataProvider()
        return AlphaVantageMarketDataProvider(
            api_key=api_key,
            base_url=config.get('data_sources.market_data.base_url', 'https://www.alphavantage.co/query'),
            outputsize=config.get('data_sources.market_data.outputsize', 'compact')
        )
    else:
        raise ValueError(f"Unsupported market data provider: {provider_name}")
