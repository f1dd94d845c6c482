"""
Recurrent (LSTM) forecaster trained online for each request.

The network is a single LSTM cell with a linear readout. Only the readout is
trained: the cell weights keep their random initialization, so the cell acts
as a fixed nonlinear feature extractor over the normalized price history.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, NamedTuple, Optional, Sequence

import numpy as np

from .base_model import BaseForecaster
from .normalizer import denormalize, normalize
from .types import Prediction
from ..exceptions import ForecastCancelledError

logger = logging.getLogger(__name__)


def sigmoid(x: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-x))


class LSTMState(NamedTuple):
    """Hidden and cell state after one step."""

    h: np.ndarray
    c: np.ndarray

    @classmethod
    def zeros(cls, hidden_size: int) -> 'LSTMState':
        return cls(np.zeros(hidden_size), np.zeros(hidden_size))


@dataclass(frozen=True)
class LSTMWeights:
    """Gate weight matrices, each shaped (hidden, input + hidden)."""

    forget: np.ndarray
    input: np.ndarray
    candidate: np.ndarray
    output: np.ndarray

    @property
    def hidden_size(self) -> int:
        return self.forget.shape[0]

    @classmethod
    def initialize(
        cls,
        input_size: int,
        hidden_size: int,
        rng: np.random.Generator
    ) -> 'LSTMWeights':
        """Uniform weights in +/- sqrt(2 / (rows + cols))."""
        rows, cols = hidden_size, input_size + hidden_size
        scale = np.sqrt(2.0 / (rows + cols))

        def init():
            return (rng.random((rows, cols)) - 0.5) * 2 * scale

        return cls(forget=init(), input=init(), candidate=init(), output=init())


def lstm_step(x: float, state: LSTMState, weights: LSTMWeights) -> LSTMState:
    """
    Run one LSTM step.

    Args:
        x: Scalar input for this step
        state: Previous (h, c)
        weights: Gate weights

    Returns:
        New (h, c)
    """
    combined = np.concatenate(([x], state.h))

    f = sigmoid(weights.forget @ combined)
    i = sigmoid(weights.input @ combined)
    c_tilde = np.tanh(weights.candidate @ combined)
    o = sigmoid(weights.output @ combined)

    c = f * state.c + i * c_tilde
    h = o * np.tanh(c)
    return LSTMState(h, c)


class LSTMNetwork:
    """LSTM cell plus a linear readout from the hidden state."""

    def __init__(
        self,
        hidden_size: int = 50,
        rng: Optional[np.random.Generator] = None,
        should_cancel: Optional[Callable[[], bool]] = None
    ):
        self.hidden_size = hidden_size
        self.rng = rng if rng is not None else np.random.default_rng()
        self.should_cancel = should_cancel
        self.weights = LSTMWeights.initialize(1, hidden_size, self.rng)
        self.readout = (self.rng.random(hidden_size) - 0.5) * 0.1

    def _check_cancelled(self):
        if self.should_cancel is not None and self.should_cancel():
            raise ForecastCancelledError("lstm forecast cancelled")

    def output(self, state: LSTMState) -> float:
        return float(self.readout @ state.h)

    def train(self, data: Sequence[float], epochs: int = 50, learning_rate: float = 0.001):
        """
        Fit the readout by online least squares on one-step-ahead targets.

        Each epoch starts from a zero state and walks the series once.
        """
        data = np.asarray(data, dtype=float)

        for epoch in range(epochs):
            self._check_cancelled()
            state = LSTMState.zeros(self.hidden_size)
            squared_error = 0.0

            for t in range(len(data) - 1):
                state = lstm_step(data[t], state, self.weights)
                error = data[t + 1] - self.output(state)
                self.readout = self.readout + learning_rate * error * state.h
                squared_error += error * error

            logger.debug(
                "Epoch %d/%d mse=%.6f",
                epoch + 1, epochs, squared_error / max(1, len(data) - 1)
            )

    def predict(self, last_values: Sequence[float], steps: int) -> np.ndarray:
        """
        Warm up on ``last_values`` then roll forward ``steps`` times, feeding
        each output back in as the next input.
        """
        state = LSTMState.zeros(self.hidden_size)
        for value in last_values:
            state = lstm_step(value, state, self.weights)

        predictions = np.empty(steps)
        last_input = last_values[-1]

        for step in range(steps):
            self._check_cancelled()
            state = lstm_step(last_input, state, self.weights)
            predictions[step] = self.output(state)
            last_input = predictions[step]

        return predictions


class LSTMForecaster(BaseForecaster):
    """
    LSTM price forecaster.

    Raw network output is blended toward the last close, more so further out,
    then kept within 20% of it.
    """

    name = 'lstm'
    min_history = 60
    insufficient_data_message = 'LSTM requires at least 60 days of historical data'

    hidden_size = 50
    epochs = 50
    learning_rate = 0.001
    lookback_window = 60
    volatility_window = 30
    max_change = 0.20
    z_score = 2.0
    band_growth = 0.6

    def __init__(
        self,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        should_cancel: Optional[Callable[[], bool]] = None
    ):
        """
        Initialize LSTM forecaster.

        Args:
            seed: Seed for weight initialization; None draws fresh entropy
            rng: Explicit random generator, takes precedence over ``seed``
            should_cancel: Polled between epochs and prediction steps
        """
        super().__init__(should_cancel)
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.network: Optional[LSTMNetwork] = None
        self.params = None
        self.std_: Optional[float] = None
        self._normalized: Optional[np.ndarray] = None

    def train(self, prices: Sequence[float]):
        """Normalize ``prices`` and train a fresh network on them."""
        values = self._check_history(prices)

        self._normalized, self.params = normalize(values)
        self.network = LSTMNetwork(self.hidden_size, rng=self.rng, should_cancel=self.should_cancel)
        self.network.train(self._normalized, epochs=self.epochs, learning_rate=self.learning_rate)

        self.last_price = float(values[-1])
        self.std_ = float(values[-self.volatility_window:].std())
        self.is_trained = True

    def smoothing_factor(self, day: int) -> float:
        """Weight on the raw prediction for 0-based ``day``."""
        return 0.7 + 0.3 * np.exp(-day / 10)

    def half_width(self, day: int, days: int) -> float:
        """Confidence half-width for 0-based ``day`` of a ``days`` horizon."""
        multiplier = 1 + (day / days) * self.band_growth
        return self.std_ * multiplier * self.z_score

    def predict(self, days: int, start_date: Optional[date] = None) -> List[Prediction]:
        """Roll the network forward and post-process into Predictions."""
        self._check_trained()

        lookback = min(self.lookback_window, len(self._normalized))
        raw = self.network.predict(self._normalized[-lookback:], days)
        raw = denormalize(raw, self.params.min, self.params.max)

        predictions = []
        for i in range(days):
            self._check_cancelled()
            smoothing = self.smoothing_factor(i)
            blended = raw[i] * smoothing + self.last_price * (1 - smoothing)
            price = self._clamp(blended, self.max_change)
            predictions.append(
                self._make_prediction(
                    self._target_date(start_date, i + 1),
                    price,
                    self.half_width(i, days),
                )
            )

        return predictions
