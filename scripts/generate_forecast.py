"""Script to forecast closing prices for a ticker."""

import sys
from pathlib import Path
from typing import Optional

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from stock_forecast.config import get_config
from stock_forecast.data import MarketDataHistorySource, get_prediction_store
from stock_forecast.exceptions import ForecastError
from stock_forecast.forecasting import ForecastEngine
from stock_forecast.logging_utils import setup_logging

MODEL_LABELS = {
    'linear_regression': 'Linear Regression',
    'lstm': 'LSTM Neural Network',
}


def main(ticker: str, days: int = 30, seed: Optional[int] = None, save: bool = True):
    """
    Forecast a ticker and print each model's outlook.

    Args:
        ticker: Stock ticker symbol
        days: Forecast horizon in days (1-90)
        seed: Seed for LSTM weights; defaults to the configured one
        save: Whether to store predictions in the database
    """
    config = get_config()
    setup_logging(config.get('logging.level', 'INFO'))

    source = MarketDataHistorySource()
    engine = ForecastEngine(
        data_source=source,
        sink=get_prediction_store() if save else None,
        lstm_seed=seed if seed is not None else config.lstm_seed,
        history_limit=config.history_limit,
    )

    ticker = ticker.upper()
    try:
        history = source.get_price_history(ticker, limit=config.history_limit)
        print(f"Forecasting {ticker} for {days} days ({len(history)} closes, provider: {config.market_data_provider})")
        result = engine.forecast(ticker, history, days)
    except ForecastError as e:
        print(f"\nForecast failed: {e}")
        return 1

    current_price = history[-1].close

    print("\n" + "=" * 80)
    print(f"{ticker} FORECAST  (last close ${current_price:,.2f} on {history[-1].date})")
    print("=" * 80)

    for model in result.models:
        final = model.predictions[-1]
        change = final.predicted_price - current_price
        change_pct = change / current_price * 100 if current_price else 0.0

        print(f"\n{MODEL_LABELS.get(model.model, model.model)}")
        print("-" * 80)
        print(f"{'Date':<12} {'Predicted':>12} {'Lower':>12} {'Upper':>12}")
        for pred in model.predictions:
            print(
                f"{pred.target_date.isoformat():<12} "
                f"${pred.predicted_price:>11,.2f} "
                f"${pred.confidence_lower:>11,.2f} "
                f"${pred.confidence_upper:>11,.2f}"
            )
        print(f"Change by {final.target_date}: ${change:+,.2f} ({change_pct:+.2f}%)")

    if result.lstm_error:
        print(f"\nLSTM not available: {result.lstm_error}")

    print(f"\n{result.disclaimer}")
    return 0


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='Forecast stock closing prices')
    parser.add_argument('--ticker', required=True, help='Stock ticker symbol')
    parser.add_argument('--days', type=int, default=30, help='Days to forecast (1-90)')
    parser.add_argument('--seed', type=int, default=None, help='Seed for LSTM weight initialization')
    parser.add_argument('--no-save', action='store_true', help='Do not store predictions')

    args = parser.parse_args()
    sys.exit(main(args.ticker, args.days, args.seed, save=not args.no_save))
