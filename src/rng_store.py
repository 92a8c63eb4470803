"""
DyeTracker - RNG Data Store
Authoritative in-memory aggregate of captured RNG meter data.

The chat, inventory and player-list handlers write into the store; the
persistence gateway, the sync manager and the show command read from it.
Every mutation fires the registered listeners with the full resulting
snapshot, synchronously on the caller's thread.
"""

import logging
import threading
from typing import Callable, List, Optional

from rng_data import (
    DungeonFloor,
    MineshaftPity,
    PlayerRngData,
    RngMeter,
    SlayerType,
)

logger = logging.getLogger(__name__)

RngDataListener = Callable[[PlayerRngData], None]


class RngDataStore:
    """Thread-safe store of the player's RNG meters.

    Usage:
        store = RngDataStore()
        store.add_listener(persistence.on_data_changed)
        store.update_slayer_xp(SlayerType.REVENANT, 1_234_567)
        snapshot = store.get_snapshot()
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._slayer_meters: dict = {}
        self._dungeon_meters: dict = {}
        self._nucleus_meter: Optional[RngMeter] = None
        self._experimentation_meter: Optional[RngMeter] = None
        self._mineshaft_pity: Optional[MineshaftPity] = None

        self._listeners: List[RngDataListener] = []
        self._listeners_lock = threading.Lock()

    # ── Listeners ────────────────────────────────────

    def add_listener(self, listener: RngDataListener):
        """Register a callback fired with the full snapshot after each change."""
        with self._listeners_lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: RngDataListener):
        with self._listeners_lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def _notify(self, data: PlayerRngData):
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(data)
            except Exception as e:
                logger.warning(f"RNG data listener {listener!r} failed: {e}", exc_info=True)

    # ── Updates ──────────────────────────────────────

    def update_slayer_xp(self, slayer_type: SlayerType, xp: int):
        """Set stored XP for a slayer. Keeps any existing selection."""
        with self._lock:
            existing = self._slayer_meters.get(slayer_type)
            if existing is not None:
                self._slayer_meters[slayer_type] = existing.with_xp(xp)
            else:
                self._slayer_meters[slayer_type] = RngMeter(stored_xp=xp)
            snapshot = self._snapshot_locked()
        logger.debug(f"Slayer {slayer_type.name} stored XP → {xp:,}")
        self._notify(snapshot)

    def update_slayer_selection(self, slayer_type: SlayerType, item: str, goal_xp: int):
        """Set the selected item and goal for a slayer. Keeps existing XP."""
        with self._lock:
            existing = self._slayer_meters.get(slayer_type)
            if existing is not None:
                self._slayer_meters[slayer_type] = existing.with_selection(item, goal_xp)
            else:
                self._slayer_meters[slayer_type] = RngMeter(
                    stored_xp=0, selected_item=item, goal_xp=goal_xp)
            snapshot = self._snapshot_locked()
        logger.debug(f"Slayer {slayer_type.name} selection → {item} (goal {goal_xp})")
        self._notify(snapshot)

    def update_dungeon_meter(self, floor: DungeonFloor, xp: int,
                             item: Optional[str], goal_xp: Optional[int]):
        with self._lock:
            self._dungeon_meters[floor] = RngMeter(
                stored_xp=xp, selected_item=item, goal_xp=goal_xp)
            snapshot = self._snapshot_locked()
        self._notify(snapshot)

    def update_nucleus_meter(self, xp: int, item: Optional[str], goal_xp: Optional[int]):
        with self._lock:
            self._nucleus_meter = RngMeter(stored_xp=xp, selected_item=item, goal_xp=goal_xp)
            snapshot = self._snapshot_locked()
        self._notify(snapshot)

    def update_experimentation_meter(self, xp: int, item: Optional[str],
                                     goal_xp: Optional[int]):
        with self._lock:
            self._experimentation_meter = RngMeter(
                stored_xp=xp, selected_item=item, goal_xp=goal_xp)
            snapshot = self._snapshot_locked()
        self._notify(snapshot)

    def update_mineshaft_pity(self, pity: int):
        with self._lock:
            self._mineshaft_pity = MineshaftPity(pity_value=pity)
            snapshot = self._snapshot_locked()
        self._notify(snapshot)

    def clear(self):
        """Drop all captured data."""
        with self._lock:
            self._slayer_meters.clear()
            self._dungeon_meters.clear()
            self._nucleus_meter = None
            self._experimentation_meter = None
            self._mineshaft_pity = None
            snapshot = self._snapshot_locked()
        logger.info("RNG data cleared")
        self._notify(snapshot)

    def load_snapshot(self, data: PlayerRngData):
        """Merge a persisted snapshot in at startup. Listeners are not fired."""
        with self._lock:
            self._slayer_meters.update(data.slayer_meters)
            self._dungeon_meters.update(data.dungeon_meters)
            if data.nucleus_meter is not None:
                self._nucleus_meter = data.nucleus_meter
            if data.experimentation_meter is not None:
                self._experimentation_meter = data.experimentation_meter
            if data.mineshaft_pity is not None:
                self._mineshaft_pity = data.mineshaft_pity
        logger.info(
            f"RNG data loaded: {len(data.slayer_meters)} slayer meters, "
            f"{len(data.dungeon_meters)} dungeon meters")

    # ── Reads ────────────────────────────────────────

    def get_snapshot(self) -> PlayerRngData:
        """Immutable point-in-time copy of all RNG data."""
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> PlayerRngData:
        return PlayerRngData(
            slayer_meters=dict(self._slayer_meters),
            dungeon_meters=dict(self._dungeon_meters),
            nucleus_meter=self._nucleus_meter,
            experimentation_meter=self._experimentation_meter,
            mineshaft_pity=self._mineshaft_pity,
        )
