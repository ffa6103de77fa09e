"""
Application Constants

Centralized constants for exchange pacing, retry policy, engine timers
and order conventions.
"""

# OKX REST endpoint
OKX_BASE_URL = "https://www.okx.com"

# OKX allows more, but the engine stays at or below 6 requests per second
OKX_MIN_REQUEST_INTERVAL = 1.0 / 6
OKX_REQUEST_TIMEOUT = 10.0

# Retry policy for every gateway call
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds between attempts

# Substrings that mark an exchange failure as temporary (matched lowercase)
TEMPORARY_ERROR_MARKERS = (
    "upgrading",
    "try again",
    "timeout",
    "too many requests",
)

# Engine timers (seconds)
MARKET_POLL_INTERVAL = 1.0
PNL_CHECK_INTERVAL = 1.0
MARGIN_CHECK_INTERVAL = 5.0

# Signal queue capacity
SIGNAL_QUEUE_SIZE = 100

# Candle interval used for ticks and RSI warm-up
TICK_CANDLE_INTERVAL = "1m"

# Currency used for balance sufficiency checks
SETTLEMENT_CURRENCY = "USDT"

# Instrument suffix for perpetual swaps
SWAP_SUFFIX = "-SWAP"

# Position sides the monitors act on (net-mode positions are left alone)
HEDGE_POS_SIDES = ("long", "short")

# Order sizing conventions (contracts)
DEFAULT_ORDER_QUANTITY = 200
DEFAULT_MIN_CLOSE_QUANTITY = 200
STRATEGY_SIGNAL_AMOUNT = 1.0

# Grid trigger band as a fraction of the bucket width
GRID_TRIGGER_FRACTION = 0.1

# Default number of trade records returned by history queries
DEFAULT_TRADE_HISTORY_LIMIT = 100
