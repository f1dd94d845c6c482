from datetime import date, timedelta

import pandas as pd
import pytest
import requests

from stock_forecast.data import market_data
from stock_forecast.data.market_data import (
    AlphaVantageMarketDataProvider,
    MarketDataHistorySource,
    MockMarketDataProvider,
    PolygonMarketDataProvider,
)
from stock_forecast.exceptions import DataSourceError


class BrokenProvider(MockMarketDataProvider):
    def get_ohlcv(self, ticker, start_date, end_date, interval="day"):
        raise ConnectionError("connection reset")


class DuplicatingProvider(MockMarketDataProvider):
    """Returns rows out of order with a repeated date."""

    def get_ohlcv(self, ticker, start_date, end_date, interval="day"):
        return pd.DataFrame({
            "date": [date(2024, 1, 3), date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)],
            "open": [1, 1, 1, 1],
            "high": [1, 1, 1, 1],
            "low": [1, 1, 1, 1],
            "close": [30.0, 10.0, 20.0, 31.0],
            "volume": [1, 1, 1, 1],
        })


def test_mock_provider_is_deterministic_per_ticker():
    provider = MockMarketDataProvider()
    start, end = date(2024, 1, 1), date(2024, 3, 1)

    first = provider.get_ohlcv("AAPL", start, end)
    again = MockMarketDataProvider().get_ohlcv("AAPL", start, end)
    other = provider.get_ohlcv("MSFT", start, end)

    pd.testing.assert_frame_equal(first, again)
    assert not first["close"].equals(other["close"])
    assert all(d.weekday() < 5 for d in first["date"])


def test_history_source_caps_and_orders():
    source = MarketDataHistorySource(MockMarketDataProvider())
    history = source.get_price_history("AAPL", limit=100, end_date=date(2024, 6, 28))

    assert len(history) == 100
    dates = [p.date for p in history]
    assert dates == sorted(set(dates))
    assert history[-1].date <= date(2024, 6, 28)


def test_history_source_dedupes_dates():
    source = MarketDataHistorySource(DuplicatingProvider())
    history = source.get_price_history("AAPL", limit=10)

    assert [p.close for p in history] == [10.0, 20.0, 31.0]


def test_history_source_wraps_provider_errors():
    source = MarketDataHistorySource(BrokenProvider())
    with pytest.raises(DataSourceError, match="connection reset"):
        source.get_price_history("AAPL")


def test_alpha_vantage_parses_daily_series(monkeypatch):
    payload = {
        "Time Series (Daily)": {
            "2024-01-03": {"1. open": "11", "2. high": "12", "3. low": "10", "4. close": "11.5", "5. volume": "100"},
            "2024-01-02": {"1. open": "10", "2. high": "11", "3. low": "9", "4. close": "10.5", "5. volume": "200"},
            "2023-12-01": {"1. open": "9", "2. high": "9", "3. low": "9", "4. close": "9", "5. volume": "300"},
        }
    }

    class FakeResponse:
        def raise_for_status(self):
            pass

        def json(self):
            return payload

    monkeypatch.setattr(market_data.requests, "get", lambda *a, **kw: FakeResponse())

    provider = AlphaVantageMarketDataProvider(api_key="demo")
    df = provider.get_ohlcv("IBM", date(2024, 1, 1), date(2024, 1, 31))

    assert list(df["date"]) == [date(2024, 1, 2), date(2024, 1, 3)]
    assert list(df["close"]) == [10.5, 11.5]


def test_alpha_vantage_surfaces_api_errors(monkeypatch):
    class FakeResponse:
        def raise_for_status(self):
            pass

        def json(self):
            return {"Error Message": "Invalid API call"}

    monkeypatch.setattr(market_data.requests, "get", lambda *a, **kw: FakeResponse())

    with pytest.raises(ValueError, match="Invalid API call"):
        AlphaVantageMarketDataProvider(api_key="demo").get_ohlcv("BAD", date(2024, 1, 1), date(2024, 1, 31))


def test_factory_returns_mock_by_default():
    assert isinstance(market_data.get_market_data_provider(), MockMarketDataProvider)


def test_mock_provider_cache_is_bounded():
    provider = MockMarketDataProvider()
    market_data._mock_ohlcv.cache_clear()

    end = date(2024, 1, 31)
    for offset in range(market_data.MOCK_CACHE_SIZE + 20):
        provider.get_ohlcv("AAPL", date(2023, 1, 1), end + timedelta(days=offset))

    assert market_data._mock_ohlcv.cache_info().currsize == market_data.MOCK_CACHE_SIZE


def test_mock_provider_returns_independent_frames():
    provider = MockMarketDataProvider()
    start, end = date(2024, 1, 1), date(2024, 2, 1)

    first = provider.get_ohlcv("AAPL", start, end)
    first["close"] = 0.0

    assert (provider.get_ohlcv("AAPL", start, end)["close"] > 0).all()


class PolygonResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload or {}
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


@pytest.fixture
def polygon(monkeypatch):
    """Polygon provider whose HTTP responses are set per test."""
    responses = []
    sleeps = []

    monkeypatch.setattr(market_data.requests, "get", lambda *a, **kw: responses.pop(0))
    monkeypatch.setattr(market_data.time, "sleep", sleeps.append)

    provider = PolygonMarketDataProvider(api_key="demo")
    provider.responses = responses
    provider.sleeps = sleeps
    return provider


def test_polygon_parses_aggregates(polygon):
    polygon.responses.append(PolygonResponse({
        "status": "OK",
        "resultsCount": 2,
        "results": [
            {"t": 1704153600000, "o": 10, "h": 11, "l": 9, "c": 10.5, "v": 200},
            {"t": 1704240000000, "o": 11, "h": 12, "l": 10, "c": 11.5, "v": 100},
        ],
    }))

    df = polygon.get_ohlcv("AAPL", date(2024, 1, 1), date(2024, 1, 31))

    assert list(df.columns) == market_data.OHLCV_COLUMNS
    assert list(df["date"]) == [date(2024, 1, 2), date(2024, 1, 3)]
    assert list(df["close"]) == [10.5, 11.5]


def test_polygon_empty_results(polygon):
    polygon.responses.append(PolygonResponse({"status": "OK", "resultsCount": 0}))

    df = polygon.get_ohlcv("AAPL", date(2024, 1, 1), date(2024, 1, 31))

    assert df.empty
    assert list(df.columns) == market_data.OHLCV_COLUMNS


def test_polygon_access_denied(polygon):
    polygon.responses.append(PolygonResponse({"error": "Not entitled"}, status_code=403))

    with pytest.raises(ValueError, match="403.*Not entitled"):
        polygon.get_ohlcv("AAPL", date(2024, 1, 1), date(2024, 1, 31))


def test_polygon_rate_limit_fails_without_waiting(polygon):
    polygon.responses.append(PolygonResponse(status_code=429))

    with pytest.raises(DataSourceError, match="rate limit"):
        polygon.get_ohlcv("AAPL", date(2024, 1, 1), date(2024, 1, 31))
    assert all(wait < 1 for wait in polygon.sleeps)


def test_polygon_retries_server_errors(polygon):
    polygon.responses.extend([
        PolygonResponse(status_code=502),
        PolygonResponse({"status": "DELAYED", "results": [
            {"t": 1704153600000, "o": 10, "h": 11, "l": 9, "c": 10.5, "v": 200},
        ]}),
    ])

    df = polygon.get_ohlcv("AAPL", date(2024, 1, 1), date(2024, 1, 31))

    assert list(df["close"]) == [10.5]
    assert 1 in polygon.sleeps
