"""FastAPI server for the stock forecast engine."""

import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..config import get_config
from ..data import MarketDataHistorySource, get_prediction_store
from ..exceptions import DataSourceError, ForecastError
from ..forecasting import ForecastEngine
from ..logging_utils import setup_logging

logger = logging.getLogger(__name__)

app = FastAPI(title="Stock Forecast API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Client-Info", "Apikey"],
)


# Response models
class PredictionOut(BaseModel):
    date: str
    predicted_price: float
    confidence_lower: float
    confidence_upper: float


class ModelPredictionsOut(BaseModel):
    model: str
    predictions: List[PredictionOut]


class ForecastResponse(BaseModel):
    ticker: str
    prediction_days: int
    models: List[ModelPredictionsOut]
    lstm_error: Optional[str] = None
    disclaimer: str


# Built on first use; tests replace it through dependency_overrides
_engine: Optional[ForecastEngine] = None


def build_engine() -> ForecastEngine:
    """Create a ForecastEngine wired to the configured source and store."""
    config = get_config()
    sink = get_prediction_store() if config.persist_predictions else None
    return ForecastEngine(
        data_source=MarketDataHistorySource(),
        sink=sink,
        lstm_seed=config.lstm_seed,
        history_limit=config.history_limit,
    )


def get_engine() -> ForecastEngine:
    """Dependency to get the forecast engine."""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


@app.on_event("startup")
async def startup_event():
    """Configure logging on startup."""
    setup_logging(get_config().get('logging.level', 'INFO'))


@app.exception_handler(ForecastError)
async def forecast_error_handler(request: Request, exc: ForecastError):
    if isinstance(exc, DataSourceError):
        logger.error("Data source error: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch historical data"})
    status_code = exc.status_code if exc.status_code < 500 else 500
    return JSONResponse(status_code=status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request parameters"})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Stock Forecast API",
        "version": __version__,
        "status": "running"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "market_data_provider": get_config().market_data_provider
    }


@app.get("/predict", response_model=ForecastResponse)
def predict(
    ticker: Optional[str] = None,
    days: Optional[int] = None,
    engine: ForecastEngine = Depends(get_engine)
):
    """
    Forecast closing prices for a ticker.

    Args:
        ticker: Stock ticker symbol (case-insensitive)
        days: Forecast horizon in days, 1 to 90
        engine: Forecast engine dependency

    Returns:
        Predictions per model with confidence bounds
    """
    if days is None:
        days = get_config().default_days

    result = engine.forecast_ticker(ticker, days)
    return result.to_dict()


def create_app() -> FastAPI:
    """Create and return FastAPI app."""
    return app
