"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

DEFAULT_WRITE_RETRIES = 3

# Weekday indices follow the center's convention: 0=Sunday .. 6=Saturday.
WEEKDAY_LABELS = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

MONEY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0.00")

UNKNOWN_NAME = "Unknown"
