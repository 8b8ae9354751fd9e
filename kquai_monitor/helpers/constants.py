"""Common configuration constants used across the application."""

from decimal import ROUND_HALF_UP, Context

# Window and Chunk Constants
DEFAULT_WINDOW_SIZE = 4000
"""Default number of Prime blocks held in the sliding window"""

DEFAULT_CHUNK_SIZE = 200
"""Default number of samples averaged into one chart point"""

MAX_ITEMS_PER_POST = 2000
"""Largest JSON-RPC batch sent in a single POST when slicing"""

# HTTP and Network Constants
DEFAULT_TIMEOUT = 120.0
"""Default timeout for bulk historical batches in seconds"""

SPLIT_BATCH_TIMEOUT = 180.0
"""Timeout for each half of the two-POST window fetch"""

LOOKUP_TIMEOUT = 12.0
"""Timeout for single-value lookups"""

MARKET_TIMEOUT = 10.0
"""Timeout for conversion-rate lookups"""

# Retry Configuration
DEFAULT_RETRIES = 0
"""Extra attempts after the first failure"""

LOOKUP_RETRIES = 1
"""Extra attempts for the latest block number lookup"""

RETRY_BASE_DELAY = 0.4
"""Base delay for exponential backoff in seconds"""

RETRY_MAX_DELAY = 30.0
"""Maximum delay between retries in seconds"""

# Auto Mode
AUTO_INTERVAL = 10.0
"""Pause between two automatic refresh cycles in seconds"""

# Consensus Constants
MANTISSA_BITS = 64
"""Fractional bits of the fixed-point logarithm"""

SCALE = 1 << MANTISSA_BITS
"""2^64 fixed-point scale used by the node"""

ONE_OVER_ALPHA = 1000
"""Controller constant OneOverAlpha"""

KQUAI_DISCOUNT_MULTIPLIER = 100_000
"""Protocol KQuaiDiscountMultiplier"""

# Denominations
WEI_PER_QUAI = 10**18
"""Smallest units of Quai"""

QITS_PER_QI = 10**3
"""Smallest units of Qi"""

# Decimal Arithmetic
DECIMAL_PRECISION = 40
"""Significant digits kept for ratio and deltaK"""

DECIMAL_CONTEXT = Context(prec=DECIMAL_PRECISION, rounding=ROUND_HALF_UP)
"""Context used for every ratio, deltaK and average computation"""

# HTTP Connection Pooling
MAX_KEEPALIVE_CONNECTIONS = 5
"""Maximum number of keepalive connections in pool"""

MAX_CONNECTIONS = 10
"""Maximum total number of connections"""


__all__ = [
    "AUTO_INTERVAL",
    "DECIMAL_CONTEXT",
    "DECIMAL_PRECISION",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_RETRIES",
    "DEFAULT_TIMEOUT",
    "DEFAULT_WINDOW_SIZE",
    "KQUAI_DISCOUNT_MULTIPLIER",
    "LOOKUP_RETRIES",
    "LOOKUP_TIMEOUT",
    "MANTISSA_BITS",
    "MARKET_TIMEOUT",
    "MAX_CONNECTIONS",
    "MAX_ITEMS_PER_POST",
    "MAX_KEEPALIVE_CONNECTIONS",
    "ONE_OVER_ALPHA",
    "QITS_PER_QI",
    "RETRY_BASE_DELAY",
    "RETRY_MAX_DELAY",
    "SCALE",
    "SPLIT_BATCH_TIMEOUT",
    "WEI_PER_QUAI",
]
