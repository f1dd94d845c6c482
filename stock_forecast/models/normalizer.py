"""Min/max scaling of price series."""

from typing import Sequence, Tuple

import numpy as np

from .types import NormalizationParameters
from ..exceptions import InsufficientDataError

# Value assigned to every point of a constant series
NEUTRAL_VALUE = 0.5


def normalize(series: Sequence[float]) -> Tuple[np.ndarray, NormalizationParameters]:
    """
    Scale a series into [0, 1] using its own min and max.

    A constant series has no range to scale by; every point maps to 0.5.

    Args:
        series: Raw values

    Returns:
        Tuple of (normalized values, bounds used)
    """
    values = np.asarray(series, dtype=float)
    if values.size == 0:
        raise InsufficientDataError("Cannot normalize an empty series")

    params = NormalizationParameters(min=float(values.min()), max=float(values.max()))

    if params.range == 0:
        return np.full(values.shape, NEUTRAL_VALUE), params

    return (values - params.min) / params.range, params


def denormalize(value, min_value: float, max_value: float):
    """Inverse of normalize for the same bounds. Works on scalars and arrays."""
    return value * (max_value - min_value) + min_value
