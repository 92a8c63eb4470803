"""
DyeTracker - Inventory Handler
Scans RNG meter containers when they are opened and commits what it finds.

Flow per container open:
1. Classify the title (inventory_parser.detect_inventory_type); ignore others
2. Wait a short settle delay so the host has filled every slot
3. Scan all slots: highest current XP wins, the "selected" slot supplies
   the target item and its goal
4. Commit to the store
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from config import INVENTORY_SCAN_DELAY
from inventory_parser import (
    DungeonMeterScreen,
    ExperimentationMeterScreen,
    InventoryType,
    ItemSlot,
    NucleusMeterScreen,
    SlayerMeterScreen,
    detect_inventory_type,
    extract_current_xp,
    parse_selected_item,
)

logger = logging.getLogger(__name__)


@dataclass
class MeterScan:
    """Aggregated result of scanning one container."""
    stored_xp: int = 0
    selected_item: Optional[str] = None
    goal_xp: Optional[int] = None


def scan_slots(slots: Iterable[ItemSlot]) -> MeterScan:
    """Aggregate every non-empty slot of an RNG meter container.

    Stored XP is the maximum current value across slots, since the meter
    display can spread progress over several status items. The selection
    comes from the slot marked selected (last one wins if several are).
    """
    result = MeterScan()
    for slot in slots:
        if slot.is_empty:
            continue

        current = extract_current_xp(slot.lore)
        if current is not None and current > result.stored_xp:
            result.stored_xp = current

        selected = parse_selected_item(slot)
        if selected is not None:
            result.selected_item = selected.item_name
            result.goal_xp = selected.goal_xp
            logger.debug(f"Found selected item: {selected.item_name} (goal: {selected.goal_xp})")
    return result


class InventoryHandler:
    """Turns container-open events into RNG data store updates."""

    def __init__(self, store, settle_delay: float = INVENTORY_SCAN_DELAY):
        self._store = store
        self.settle_delay = settle_delay
        self._timers: List[threading.Timer] = []
        self._lock = threading.Lock()

    def on_container_open(self, title: str,
                          slots_provider: Callable[[], List[ItemSlot]]) -> Optional[InventoryType]:
        """Schedule a scan of a freshly opened container.

        Args:
            title: Container title as shown by the host
            slots_provider: Returns the container's slots at scan time

        Returns:
            The detected meter type, or None if the container was ignored.
        """
        inventory_type = detect_inventory_type(title)
        if inventory_type is None:
            return None

        logger.debug(f"Detected RNG meter inventory: {title!r} ({inventory_type})")

        if self.settle_delay <= 0:
            self._run_scan(inventory_type, slots_provider)
            return inventory_type

        timer = threading.Timer(
            self.settle_delay, self._run_scan, args=(inventory_type, slots_provider))
        timer.daemon = True
        with self._lock:
            self._timers = [t for t in self._timers if t.is_alive()]
            self._timers.append(timer)
        timer.start()
        return inventory_type

    def _run_scan(self, inventory_type: InventoryType,
                  slots_provider: Callable[[], List[ItemSlot]]):
        try:
            slots = slots_provider()
        except Exception as e:
            logger.warning(f"Could not read container slots: {e}")
            return
        self.process_inventory(inventory_type, slots)

    def process_inventory(self, inventory_type: InventoryType, slots: Iterable[ItemSlot]):
        """Scan slots and commit the result for the given meter type."""
        scan = scan_slots(slots)

        if isinstance(inventory_type, SlayerMeterScreen):
            self._commit_slayer(inventory_type, scan)
        elif isinstance(inventory_type, DungeonMeterScreen):
            self._store.update_dungeon_meter(
                inventory_type.floor, scan.stored_xp, scan.selected_item, scan.goal_xp)
            logger.info(
                f"Updated dungeon meter {inventory_type.floor.name}: "
                f"xp={scan.stored_xp:,}, item={scan.selected_item}")
        elif isinstance(inventory_type, NucleusMeterScreen):
            self._store.update_nucleus_meter(scan.stored_xp, scan.selected_item, scan.goal_xp)
            logger.info(f"Updated nucleus meter: xp={scan.stored_xp:,}, item={scan.selected_item}")
        elif isinstance(inventory_type, ExperimentationMeterScreen):
            self._store.update_experimentation_meter(
                scan.stored_xp, scan.selected_item, scan.goal_xp)
            logger.info(
                f"Updated experimentation meter: xp={scan.stored_xp:,}, "
                f"item={scan.selected_item}")
        return scan

    def _commit_slayer(self, screen: SlayerMeterScreen, scan: MeterScan):
        # XP first then selection: each update keeps the other field
        slayer_type = screen.slayer_type
        if scan.stored_xp > 0:
            self._store.update_slayer_xp(slayer_type, scan.stored_xp)
        if scan.selected_item is not None:
            self._store.update_slayer_selection(
                slayer_type, scan.selected_item, scan.goal_xp or 0)
        logger.info(
            f"Updated slayer meter {slayer_type.name}: "
            f"xp={scan.stored_xp:,}, item={scan.selected_item}")

    def shutdown(self):
        """Cancel scans that have not run yet."""
        with self._lock:
            for timer in self._timers:
                timer.cancel()
            self._timers.clear()
