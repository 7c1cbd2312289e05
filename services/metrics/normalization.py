"""Number and currency normalization shared by the extractors."""
import math
import re
from typing import Any, Optional

from services.metrics.models import Currency, DEFAULT_CURRENCY

SUFFIX_MULTIPLIERS = {
    "k": 1_000,
    "m": 1_000_000,
    "million": 1_000_000,
    "b": 1_000_000_000,
    "billion": 1_000_000_000,
}

# Checked in this order; the first currency found wins
CURRENCY_MARKERS = [
    (Currency.USD, "$", re.compile(r"USD", re.IGNORECASE)),
    (Currency.GBP, "£", re.compile(r"GBP", re.IGNORECASE)),
    (Currency.EUR, "€", re.compile(r"EUR", re.IGNORECASE)),
]

# Larger magnitudes are treated as parse noise (digit runs, overflow)
MAX_METRIC_VALUE = 1e15

_LEADING_NUMBER = re.compile(r"^-?(?:\d+(?:\.\d*)?|\.\d+)")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def is_usable_number(value: Any) -> bool:
    """A real, finite number no larger than MAX_METRIC_VALUE in magnitude."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return abs(value) <= MAX_METRIC_VALUE


def round_half_up(value: float) -> Optional[int]:
    """Round to the nearest integer, halves towards +infinity. None for inf/nan."""
    if not math.isfinite(value):
        return None
    return int(math.floor(value + 0.5))


def round_tenth(value: float) -> Optional[float]:
    """Round to one decimal place, halves towards +infinity. None for inf/nan."""
    if not math.isfinite(value):
        return None
    return math.floor(value * 10 + 0.5) / 10


def normalize_number(value: str, suffix: Optional[str] = None) -> Optional[int]:
    """
    Turn a matched amount like "1,200.5" plus an optional "k"/"M"/"billion"
    suffix into a whole number. Returns None when the digits don't parse
    or the result is not a usable number.
    """
    clean_value = re.sub(r"[,\s]", "", value or "")
    try:
        number = float(clean_value)
    except ValueError:
        return None

    number *= SUFFIX_MULTIPLIERS.get((suffix or "").lower(), 1)
    if not is_usable_number(number):
        return None
    return round_half_up(number)


def coerce_number(value: Any) -> Optional[float]:
    """
    Best-effort numeric coercion for structured inputs.

    Numbers pass through; strings are stripped of everything but digits,
    dots and minus signs and their leading number is parsed ("$12,000" -> 12000).
    Booleans, containers, non-finite numbers and magnitudes above
    MAX_METRIC_VALUE give None.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return value if is_usable_number(value) else None
    if not isinstance(value, str):
        return None

    match = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", value))
    if not match:
        return None
    number = float(match.group(0))
    if not is_usable_number(number):
        return None
    if number.is_integer():
        return int(number)
    return number


def detect_currency(text: str) -> Currency:
    for currency, symbol, code in CURRENCY_MARKERS:
        if symbol in text or code.search(text):
            return currency
    return DEFAULT_CURRENCY
