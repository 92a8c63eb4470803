"""
DyeTracker - Number Parser
Converts human-formatted numbers from game text into exact integers.

    "1,234,567" → 1234567
    "1.5K"      → 1500
    "75M"       → 75000000
    "8.3k"      → 8300

The numeric prefix is parsed as a float and multiplied by the suffix,
then truncated toward zero. Float rounding on large fractional values
is accepted.
"""

import logging
import math
import re
from typing import Optional

logger = logging.getLogger(__name__)

MAGNITUDE_SUFFIXES = {
    "k": 1_000,
    "m": 1_000_000,
    "b": 1_000_000_000,
}

# Plain decimal only; float() alone would also accept "inf", "nan" and "1_000"
DECIMAL_PATTERN = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
GROUPED_INT_PATTERN = re.compile(r"^\d[\d,]*$")


class ParseError(ValueError):
    """Raised when game text does not hold a readable number."""


def parse_magnitude(text: str) -> int:
    """Parse a comma-grouped, optionally K/M/B-suffixed number.

    Raises:
        ParseError: the numeric prefix is not a decimal number.
    """
    if text is None:
        raise ParseError("no text")

    clean = text.replace(",", "").strip()
    multiplier = 1
    if clean and clean[-1].lower() in MAGNITUDE_SUFFIXES:
        multiplier = MAGNITUDE_SUFFIXES[clean[-1].lower()]
        clean = clean[:-1]

    if not DECIMAL_PATTERN.match(clean):
        raise ParseError(f"not a number: {text!r}")

    value = float(clean) * multiplier
    if not math.isfinite(value):
        raise ParseError(f"not a finite number: {text!r}")
    return int(value)


def try_parse_magnitude(text: str) -> Optional[int]:
    """parse_magnitude() that returns None instead of raising."""
    try:
        return parse_magnitude(text)
    except ParseError as e:
        logger.debug(f"Discarding unreadable number: {e}")
        return None


def parse_grouped_int(text: str) -> int:
    """Parse a plain comma-grouped integer such as "1,999" (no suffix)."""
    clean = (text or "").strip()
    if not GROUPED_INT_PATTERN.match(clean):
        raise ParseError(f"not a grouped integer: {text!r}")
    return int(clean.replace(",", ""))
