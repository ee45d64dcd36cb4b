"""Centralized constants for the Tradebook journal engine.

This module serves as the single source of truth for the vocabulary and
defaults shared by the repository, the matching engine and the metrics layer.

Design Principles:
- All constants defined once here
- Import from this module, never hardcode values elsewhere
- config.yaml overrides the runtime defaults (iteration ceiling, timezone)

Side Vocabulary:
- BUY and SELL are the canonical execution sides
- LONG and SHORT are accepted on input and folded onto BUY and SELL
  before matching (see SIDE_SYNONYMS)
"""

from datetime import date
import pytz


# ============================================================================
# TIMEZONE
# ============================================================================
DEFAULT_TIMEZONE_NAME = "America/New_York"
DEFAULT_TIMEZONE = pytz.timezone(DEFAULT_TIMEZONE_NAME)


# ============================================================================
# STORAGE FORMATS
# ============================================================================
# Local wall-clock time, no UTC offset suffix
STORAGE_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"
DAY_FORMAT = "%Y-%m-%d"


# ============================================================================
# TRADE VOCABULARY
# ============================================================================
BUY = "BUY"
SELL = "SELL"
LONG = "LONG"
SHORT = "SHORT"

SIDES = (BUY, SELL, LONG, SHORT)
SIDE_SYNONYMS = {
    BUY: BUY,
    LONG: BUY,
    SELL: SELL,
    SHORT: SELL,
}

ASSET_TYPES = ("STOCK", "OPTION", "CRYPTO", "FOREX")
DEFAULT_ASSET_TYPE = "STOCK"

OPTION_TYPES = ("CALL", "PUT")


# ============================================================================
# MATCHING DEFAULTS (overridable via config.yaml)
# ============================================================================
DEFAULT_MAX_MATCH_ITERATIONS = 50

# Quantities closer than this are equal; smaller leftovers are not kept as remainders
QUANTITY_EPSILON = 1e-9

MATCHED_NOTE_TEMPLATE = "Matched BUY #{buy_id} with SELL #{sell_id}"
REMAINDER_NOTE = "remainder after partial match"


# ============================================================================
# METRICS DEFAULTS
# ============================================================================
TOP_TRADES_LIMIT = 10
TOP_SYMBOLS_LIMIT = 10

FIRST_MONTH = 1
LAST_MONTH = 12


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================
def normalize_side(side: str) -> str:
    """Fold an execution side onto BUY or SELL.

    Args:
        side: Side as recorded (case-insensitive), e.g. "buy", "LONG".

    Returns:
        "BUY" or "SELL"

    Raises:
        ValueError: If the side is not one of SIDES.

    Example:
        >>> normalize_side("long")
        'BUY'
        >>> normalize_side("SHORT")
        'SELL'
    """
    try:
        return SIDE_SYNONYMS[side.strip().upper()]
    except (KeyError, AttributeError) as e:
        raise ValueError(
            f"Invalid side: {side!r}. Expected one of {', '.join(SIDES)}"
        ) from e


def validate_month(month: int) -> int:
    """Check a 1-indexed calendar month (1 = January).

    Raises:
        ValueError: If month is outside 1..12.
    """
    if not FIRST_MONTH <= month <= LAST_MONTH:
        raise ValueError(
            f"Invalid month: {month}. Expected {FIRST_MONTH}-{LAST_MONTH} (1 = January)"
        )
    return month


def day_to_str(day: date) -> str:
    """Convert a date to YYYY-MM-DD string."""
    return day.strftime(DAY_FORMAT)
