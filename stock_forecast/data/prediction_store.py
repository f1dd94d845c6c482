"""SQLite store for forecast predictions."""

import sqlite3
import pandas as pd
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .base import PredictionSink
from ..config import get_config

PREDICTION_COLUMNS = (
    'ticker',
    'prediction_date',
    'target_date',
    'predicted_price',
    'confidence_lower',
    'confidence_upper',
    'model_version',
)


class PredictionStore(PredictionSink):
    """Database abstraction for stored predictions."""

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize prediction store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path or get_config().db_path

        # Ensure directory exists
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS predictions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                ticker TEXT NOT NULL,
                prediction_date DATE NOT NULL,  -- when the forecast was made
                target_date DATE NOT NULL,  -- day being forecast
                predicted_price REAL NOT NULL,
                confidence_lower REAL NOT NULL,
                confidence_upper REAL NOT NULL,
                model_version TEXT NOT NULL,  -- linear_regression, lstm
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_predictions_ticker_date "
            "ON predictions(ticker, prediction_date)"
        )

        conn.commit()
        conn.close()

    def save_predictions(self, records: Sequence[Dict[str, Any]]) -> int:
        """
        Insert a batch of prediction rows in one transaction.

        Returns:
            Number of rows inserted
        """
        if not records:
            return 0

        rows = [tuple(record[col] for col in PREDICTION_COLUMNS) for record in records]

        conn = self._get_connection()
        try:
            with conn:
                conn.executemany(f"""
                    INSERT INTO predictions ({', '.join(PREDICTION_COLUMNS)})
                    VALUES ({', '.join('?' for _ in PREDICTION_COLUMNS)})
                """, rows)
        finally:
            conn.close()

        return len(rows)

    def get_predictions(
        self,
        ticker: str,
        model_version: Optional[str] = None,
        limit: Optional[int] = None
    ) -> pd.DataFrame:
        """Get stored predictions for a ticker, newest forecast first."""
        conn = self._get_connection()

        query = "SELECT * FROM predictions WHERE ticker = ?"
        params = [ticker]

        if model_version:
            query += " AND model_version = ?"
            params.append(model_version)

        query += " ORDER BY prediction_date DESC, model_version, target_date"

        if limit:
            query += " LIMIT ?"
            params.append(limit)

        df = pd.read_sql_query(query, conn, params=params)
        conn.close()

        return df


def get_prediction_store(db_path: Optional[str] = None) -> PredictionStore:
    """
    Factory function to get prediction store instance.

    Returns:
        PredictionStore instance
    """
    return PredictionStore(db_path)
