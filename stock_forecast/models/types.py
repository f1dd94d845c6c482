"""Value types passed between the data layer, the models and the API."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

DISCLAIMER = (
    "These predictions are for educational purposes only and should not be "
    "used for actual trading decisions."
)


@dataclass(frozen=True)
class PricePoint:
    """Closing price for one trading date."""

    date: date
    close: float


@dataclass(frozen=True)
class NormalizationParameters:
    """Bounds used to scale a series into [0, 1]."""

    min: float
    max: float

    @property
    def range(self) -> float:
        return self.max - self.min


@dataclass(frozen=True)
class Prediction:
    """One model's forecast for a single future date."""

    target_date: date
    predicted_price: float
    confidence_lower: float
    confidence_upper: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.target_date.isoformat(),
            'predicted_price': self.predicted_price,
            'confidence_lower': self.confidence_lower,
            'confidence_upper': self.confidence_upper,
        }


@dataclass(frozen=True)
class ModelForecast:
    """Ordered predictions produced by one model."""

    model: str
    predictions: List[Prediction]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'model': self.model,
            'predictions': [p.to_dict() for p in self.predictions],
        }


@dataclass
class ForecastResult:
    """
    Response for one forecast request.

    ``models`` is ordered trend model first. A model that did not run is
    absent from ``models``; ``lstm_error`` explains why the recurrent model
    is missing.
    """

    ticker: str
    prediction_days: int
    models: List[ModelForecast] = field(default_factory=list)
    lstm_error: Optional[str] = None
    disclaimer: str = DISCLAIMER

    def get_model(self, name: str) -> Optional[ModelForecast]:
        """Return the forecast for ``name`` or None when it did not run."""
        for model in self.models:
            if model.model == name:
                return model
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ticker': self.ticker,
            'prediction_days': self.prediction_days,
            'models': [m.to_dict() for m in self.models],
            'lstm_error': self.lstm_error,
            'disclaimer': self.disclaimer,
        }

    def to_records(self, prediction_date: date) -> List[Dict[str, Any]]:
        """
        Flatten into rows for the prediction store.

        Args:
            prediction_date: Date the forecast was made

        Returns:
            One dict per (model, target date)
        """
        records = []
        for model in self.models:
            for pred in model.predictions:
                records.append({
                    'ticker': self.ticker,
                    'prediction_date': prediction_date.isoformat(),
                    'target_date': pred.target_date.isoformat(),
                    'predicted_price': pred.predicted_price,
                    'confidence_lower': pred.confidence_lower,
                    'confidence_upper': pred.confidence_upper,
                    'model_version': model.model,
                })
        return records

