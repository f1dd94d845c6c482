"""Error types raised by the forecast engine."""


class ForecastError(Exception):
    """Base class for forecast errors. Carries an HTTP-equivalent status."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidParameterError(ForecastError):
    """Request parameter outside its accepted range (days, ticker)."""

    status_code = 400


class InsufficientDataError(ForecastError):
    """Series shorter than a model's required minimum."""

    status_code = 400


class DataSourceError(ForecastError):
    """Historical data could not be fetched."""

    status_code = 500


class ForecastCancelledError(ForecastError):
    """Forecast aborted because the caller asked to cancel."""

    status_code = 499
