"""Linear trend model fitted on a recent window of closes."""

from datetime import date
from typing import List, Optional, Sequence

import numpy as np

from .base_model import BaseForecaster
from .types import Prediction


class LinearTrendModel(BaseForecaster):
    """
    Ordinary least squares line through the most recent closes.

    Predictions are kept within 15% of the last close and carry a confidence
    band that widens with the horizon.
    """

    name = 'linear_regression'
    min_history = 10
    insufficient_data_message = 'Insufficient historical data for prediction'

    max_window = 30
    max_change = 0.15
    z_score = 1.96
    band_growth = 0.5

    def __init__(self, should_cancel=None):
        super().__init__(should_cancel)
        self.window_size: Optional[int] = None
        self.slope_: Optional[float] = None
        self.intercept_: Optional[float] = None
        self.mean_: Optional[float] = None
        self.std_: Optional[float] = None

    def train(self, prices: Sequence[float]):
        """
        Fit slope and intercept on the last ``min(30, n // 3)`` closes.

        Args:
            prices: Closing prices, oldest first (at least 10)
        """
        values = self._check_history(prices)
        n = len(values)

        self.window_size = min(self.max_window, n // 3)
        recent = values[-self.window_size:]
        self.slope_, self.intercept_ = self._fit_line(recent)

        # Population statistics of the fitting window
        self.mean_ = float(recent.mean())
        self.std_ = float(recent.std())
        self.last_price = float(values[-1])
        self.is_trained = True

    @staticmethod
    def _fit_line(values: np.ndarray):
        """Closed-form OLS of value against index 0..len-1."""
        w = len(values)
        x = np.arange(w, dtype=float)
        sum_x = x.sum()
        sum_y = values.sum()
        sum_xy = (x * values).sum()
        sum_x2 = (x * x).sum()

        denominator = w * sum_x2 - sum_x * sum_x
        if denominator == 0:
            # Single point: no trend to fit
            return 0.0, float(sum_y / w)

        slope = (w * sum_xy - sum_x * sum_y) / denominator
        intercept = (sum_y - slope * sum_x) / w
        return float(slope), float(intercept)

    def half_width(self, day: int, days: int) -> float:
        """Confidence half-width for 1-based ``day`` of a ``days`` horizon."""
        multiplier = 1 + (day / days) * self.band_growth
        return self.std_ * multiplier * self.z_score

    def predict(self, days: int, start_date: Optional[date] = None) -> List[Prediction]:
        """Project the fitted line ``days`` steps past the window."""
        self._check_trained()

        predictions = []
        for i in range(1, days + 1):
            self._check_cancelled()
            raw = self.slope_ * (self.window_size + i) + self.intercept_
            price = self._clamp(raw, self.max_change)
            predictions.append(
                self._make_prediction(
                    self._target_date(start_date, i),
                    price,
                    self.half_width(i, days),
                )
            )

        return predictions
