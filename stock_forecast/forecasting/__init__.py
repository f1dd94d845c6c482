"""Multi-model forecast orchestration."""

from .orchestrator import ForecastEngine, LSTM_INSUFFICIENT_DATA_NOTE

__all__ = ['ForecastEngine', 'LSTM_INSUFFICIENT_DATA_NOTE']
