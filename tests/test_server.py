import pytest
from fastapi.testclient import TestClient

from stock_forecast.api.server import app, get_engine
from stock_forecast.exceptions import DataSourceError
from stock_forecast.forecasting import ForecastEngine, LSTM_INSUFFICIENT_DATA_NOTE
from stock_forecast.models.types import DISCLAIMER

from conftest import RecordingSink, StaticSource, make_series, random_walk


class BrokenSource(StaticSource):
    def get_price_history(self, ticker, limit=365):
        raise ZeroDivisionError("unexpected")


@pytest.fixture
def use_engine():
    def _use(engine):
        app.dependency_overrides[get_engine] = lambda: engine
        return engine

    yield _use
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "running"
    health = client.get("/health").json()
    assert health == {"status": "healthy", "market_data_provider": "mock"}


def test_predict_returns_both_models(client, use_engine):
    sink = RecordingSink()
    use_engine(ForecastEngine(
        data_source=StaticSource(make_series(random_walk(90))),
        sink=sink,
        lstm_seed=0,
    ))

    response = client.get("/predict", params={"ticker": "aapl", "days": 5})

    assert response.status_code == 200
    body = response.json()
    assert body["ticker"] == "AAPL"
    assert body["prediction_days"] == 5
    assert [m["model"] for m in body["models"]] == ["linear_regression", "lstm"]
    assert all(len(m["predictions"]) == 5 for m in body["models"])
    assert body["lstm_error"] is None
    assert body["disclaimer"] == DISCLAIMER
    assert len(sink.batches[0]) == 10


def test_predict_defaults_to_thirty_days(client, use_engine):
    use_engine(ForecastEngine(data_source=StaticSource(make_series(random_walk(30)))))

    body = client.get("/predict", params={"ticker": "MSFT"}).json()

    assert body["prediction_days"] == 30
    assert [m["model"] for m in body["models"]] == ["linear_regression"]
    assert body["lstm_error"] == LSTM_INSUFFICIENT_DATA_NOTE


def test_missing_ticker_is_bad_request(client, use_engine):
    use_engine(ForecastEngine(data_source=StaticSource(make_series(random_walk(30)))))

    response = client.get("/predict", params={"days": 5})

    assert response.status_code == 400
    assert response.json() == {"error": "Ticker symbol is required"}


@pytest.mark.parametrize("days", ["0", "91", "abc"])
def test_invalid_days_is_bad_request(client, use_engine, days):
    source = StaticSource(make_series(random_walk(30)))
    use_engine(ForecastEngine(data_source=source))

    response = client.get("/predict", params={"ticker": "AAPL", "days": days})

    assert response.status_code == 400
    assert "error" in response.json()
    assert source.calls == []


def test_insufficient_history_is_bad_request(client, use_engine):
    use_engine(ForecastEngine(data_source=StaticSource(make_series(random_walk(5)))))

    response = client.get("/predict", params={"ticker": "NEW", "days": 5})

    assert response.status_code == 400
    assert "Insufficient historical data" in response.json()["error"]


def test_data_source_failure_is_server_error(client, use_engine):
    use_engine(ForecastEngine(data_source=StaticSource(error=DataSourceError("timeout"))))

    response = client.get("/predict", params={"ticker": "AAPL", "days": 5})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch historical data"}


def test_unexpected_failure_is_generic_server_error(use_engine):
    use_engine(ForecastEngine(data_source=BrokenSource()))
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/predict", params={"ticker": "AAPL", "days": 5})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
