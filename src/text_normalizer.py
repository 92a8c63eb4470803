"""
DyeTracker - Text Normalizer
Strips the game client's in-band formatting codes (§ + one character)
from chat lines, tooltips, titles and player-list names.
"""

import re

FORMAT_MARKER = "\u00a7"
FORMAT_CODE_PATTERN = re.compile(FORMAT_MARKER + ".", re.DOTALL)


def strip_formatting(text: str) -> str:
    """Remove every §X color/style code. Idempotent."""
    if not text:
        return ""
    if FORMAT_MARKER not in text:
        return text
    return FORMAT_CODE_PATTERN.sub("", text)
