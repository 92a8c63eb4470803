"""
DyeTracker - Tablist Handler
Polls the player list for the Glacite Mineshaft pity counter.

The entry looks like "Glacite Mineshafts: 1,999/2,000" and only appears in
certain areas, so the list is polled every few seconds instead of on events.
"""

import logging
import re
from typing import Callable, Iterable, Optional

from config import TABLIST_POLL_INTERVAL_TICKS
from number_parser import ParseError, parse_grouped_int
from rng_data import MAX_PITY
from text_normalizer import strip_formatting

logger = logging.getLogger(__name__)

MINESHAFT_PATTERN = re.compile(r"Glacite Mineshafts: ([\d,]+)/2,000")


class TablistHandler:
    """Counts host ticks and polls the player list every N ticks."""

    def __init__(self, store, poll_interval_ticks: int = TABLIST_POLL_INTERVAL_TICKS):
        self._store = store
        self.poll_interval_ticks = poll_interval_ticks
        self._tick_counter = 0
        self.last_pity_value: Optional[int] = None

    def on_tick(self, entries_provider: Callable[[], Optional[Iterable[str]]]) -> bool:
        """Advance the tick counter. Returns True when this tick polled."""
        self._tick_counter += 1
        if self._tick_counter < self.poll_interval_ticks:
            return False
        self._tick_counter = 0

        entries = entries_provider()
        if entries is None:
            return True
        self.poll(entries)
        return True

    def poll(self, entries: Iterable[Optional[str]]) -> Optional[int]:
        """Scan player-list display names; commit the first pity match.

        Returns the committed pity value, or None if nothing was committed.
        """
        for entry in entries:
            if not entry:
                continue

            match = MINESHAFT_PATTERN.search(strip_formatting(entry))
            if not match:
                continue

            try:
                pity = parse_grouped_int(match.group(1))
            except ParseError as e:
                logger.debug(f"Unreadable mineshaft pity: {e}")
                return None

            if not 0 <= pity <= MAX_PITY:
                logger.debug(f"Ignoring out-of-range mineshaft pity: {pity}")
                return None

            if pity != self.last_pity_value:
                logger.debug(f"Mineshaft pity updated: {pity}/{MAX_PITY}")
                self.last_pity_value = pity
            self._store.update_mineshaft_pity(pity)
            return pity
        return None

    def reset(self):
        self._tick_counter = 0
        self.last_pity_value = None
