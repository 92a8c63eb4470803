"""
DyeTracker - Data Persistence
Debounced write-through of the RNG data snapshot to a local JSON file.

Rapid bursts of store updates re-arm a single pending timer, so only the
latest snapshot is written once the store has been quiet for the debounce
period. Call flush() at shutdown to write anything still pending.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Optional

from config import SAVE_DEBOUNCE_SECONDS
from rng_data import PlayerRngData

logger = logging.getLogger(__name__)


class DataPersistence:
    """Loads and saves PlayerRngData to `<data_dir>/data.json`."""

    def __init__(self, path: Path, debounce_seconds: float = SAVE_DEBOUNCE_SECONDS):
        self.path = Path(path)
        self.debounce_seconds = debounce_seconds
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.RLock()
        self.save_count = 0

    # ── Load ─────────────────────────────────────────

    def load(self) -> Optional[PlayerRngData]:
        """Read the data file. Returns None if missing or unreadable."""
        logger.info(f"Data path: {self.path}")
        if not self.path.exists():
            logger.info(f"No existing RNG data file found at {self.path}")
            return None

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            data = PlayerRngData.from_dict(raw)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to load RNG data from {self.path}: {e}")
            return None

        logger.info(
            f"RNG data loaded: {len(data.slayer_meters)} slayer meters, "
            f"{len(data.dungeon_meters)} dungeon meters")
        return data

    # ── Save ─────────────────────────────────────────

    def save_immediate(self, data: PlayerRngData):
        """Cancel any pending write and save now."""
        with self._lock:
            self._cancel_pending()
            self._do_save(data)

    def save_debounced(self, data: PlayerRngData):
        """Schedule a save after the debounce period, replacing any pending one."""
        with self._lock:
            self._cancel_pending()
            timer = threading.Timer(self.debounce_seconds, self._scheduled_save, args=(data,))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def on_data_changed(self, data: PlayerRngData):
        """RngDataStore listener."""
        self.save_debounced(data)

    def flush(self, data: PlayerRngData):
        """Write immediately if a save is pending. Call during shutdown."""
        with self._lock:
            if self._timer is not None:
                self._cancel_pending()
                self._do_save(data)

    @property
    def is_save_pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def shutdown(self):
        with self._lock:
            self._cancel_pending()

    # ── Internal ─────────────────────────────────────

    def _scheduled_save(self, data: PlayerRngData):
        with self._lock:
            # A newer schedule replaced this timer after it fired
            if self._timer is not threading.current_thread():
                return
            self._timer = None
            self._do_save(data)

    def _cancel_pending(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _do_save(self, data: PlayerRngData):
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data.to_dict(), indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
            self.save_count += 1
            logger.debug(f"RNG data saved to {self.path}")
        except OSError as e:
            logger.error(f"Failed to save RNG data to {self.path}: {e}")
