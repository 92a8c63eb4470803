"""
DyeTracker - Chat Handler
Captures slayer RNG meter XP from chat messages.

Two message shapes matter:
    "» Slay 2,400 Combat XP worth of Zombies."   → active slayer becomes REVENANT
    "RNG Meter - 1,234,567 Stored XP"            → stored XP for the active slayer

The XP line does not say which boss it belongs to, so the slayer seen in the
most recent quest line is remembered and used for attribution. That context
never expires; it only changes on the next quest line or an explicit reset.
"""

import logging
import re
from typing import Optional

from number_parser import try_parse_magnitude
from rng_data import SlayerType
from text_normalizer import strip_formatting

logger = logging.getLogger(__name__)

# "RNG Meter - 1,234,567 Stored XP" or "RNG Meter - 1.5M Stored XP"
RNG_XP_PATTERN = re.compile(r"RNG Meter\s*-\s*([\d,.]+[KMBkmb]?)\s*Stored XP")

# Quest start: "Slay X Combat XP worth of <mobs>"
SLAYER_MOB_PATTERNS = {
    SlayerType.REVENANT: re.compile(r"Combat XP worth of.*Zombies", re.IGNORECASE),
    SlayerType.TARANTULA: re.compile(r"Combat XP worth of.*Spiders", re.IGNORECASE),
    SlayerType.SVEN: re.compile(r"Combat XP worth of.*Wolves", re.IGNORECASE),
    SlayerType.VOIDGLOOM: re.compile(r"Combat XP worth of.*Endermen", re.IGNORECASE),
    SlayerType.INFERNO: re.compile(r"Combat XP worth of.*Blazes", re.IGNORECASE),
    SlayerType.RIFTSTALKER: re.compile(r"Combat XP worth of.*Vampires", re.IGNORECASE),
}


def detect_slayer_quest(text: str) -> Optional[SlayerType]:
    """Return the slayer whose quest line this is, or None."""
    for slayer_type, pattern in SLAYER_MOB_PATTERNS.items():
        if pattern.search(text):
            return slayer_type
    return None


class ChatHandler:
    """Feeds chat lines into the RNG data store."""

    def __init__(self, store):
        self._store = store
        self.current_slayer_type: Optional[SlayerType] = None

    def on_chat_message(self, raw_text: str, overlay: bool = False):
        """Process one incoming chat line.

        Args:
            raw_text: Message text as received, formatting codes included
            overlay: True for action-bar messages, which are ignored
        """
        if overlay or not raw_text:
            return

        text = strip_formatting(raw_text)

        slayer_type = detect_slayer_quest(text)
        if slayer_type is not None:
            self.current_slayer_type = slayer_type
            logger.debug(f"Detected slayer quest: {slayer_type.name}")
            return

        match = RNG_XP_PATTERN.search(text)
        if not match:
            return

        xp = try_parse_magnitude(match.group(1))
        if xp is None:
            return

        slayer = self.current_slayer_type
        if slayer is None:
            logger.debug(f"RNG XP detected but no active slayer type: {xp}")
            return

        self._store.update_slayer_xp(slayer, xp)
        logger.info(f"Updated {slayer.name} RNG XP: {xp:,}")

    def reset_slayer_type(self):
        """Forget the active slayer context."""
        self.current_slayer_type = None
