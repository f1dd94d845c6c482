"""
Stock Forecast Engine

Short-horizon closing-price forecasts from a linear trend model and an
online-trained LSTM, with bounded predictions and confidence intervals.
"""

__version__ = "0.1.0"
