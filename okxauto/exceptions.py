"""
Domain exceptions for the trading engine.

Services and the engine raise these instead of fastapi.HTTPException to
avoid coupling the core to the web framework. A global exception handler in
main.py translates them into HTTP responses.
"""

from typing import Optional


class AppError(Exception):
    """Base application error with an HTTP-equivalent status code."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, status_code=404)


class ConfigurationError(AppError):
    """Missing or invalid configuration. Fatal at startup."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class ExchangeError(AppError):
    """
    Failure reported by (or while talking to) the exchange.

    `temporary` marks failures worth retrying (rate limits, timeouts,
    maintenance). None leaves the decision to the message text.
    """

    def __init__(self, message: str, code: Optional[str] = None, temporary: Optional[bool] = None):
        self.code = code
        self.temporary = temporary
        super().__init__(message, status_code=502)


class ResponseDecodeError(ExchangeError):
    """Exchange response could not be parsed. Never retried."""

    def __init__(self, message: str):
        super().__init__(message, temporary=False)


class RetryExhaustedError(ExchangeError):
    """All retry attempts failed; wraps the last underlying failure."""

    def __init__(self, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Max retries reached ({attempts}): {last_error}",
            code=getattr(last_error, "code", None),
            temporary=False,
        )


class InsufficientBalanceError(AppError):
    """Available balance (after reserve) does not cover the requirement."""

    def __init__(self, message: str, required: float = 0.0, available: float = 0.0):
        self.required = required
        self.available = available
        super().__init__(message, status_code=409)


class StrategyNotFoundError(NotFoundError):
    """No strategy registered under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Strategy not found: {name}")


class StrategyInitializationError(AppError):
    """A strategy failed to load its warm-up state."""

    def __init__(self, name: str, symbol: str, cause: Exception):
        self.name = name
        self.symbol = symbol
        self.cause = cause
        super().__init__(f"Strategy {name} for {symbol} failed to initialize: {cause}", status_code=500)


class PositionCloseError(AppError):
    """One or more breached positions could not be closed."""

    def __init__(self, message: str):
        super().__init__(message, status_code=502)


class MarginAdjustmentError(AppError):
    """One or more margin top-ups failed."""

    def __init__(self, message: str):
        super().__init__(message, status_code=502)
