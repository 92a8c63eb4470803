"""
DyeTracker - Inventory Parser
Recognises RNG meter container screens by title and reads item tooltips.

Container titles (formatting stripped):
    "Revenant Horror RNG Meter"            → slayer meter
    "Catacombs - Master Mode Floor VII RNG Meter" → dungeon meter
    "Crystal Hollows RNG Meter"            → nucleus meter
    "Experimentation Table RNG"            → experimentation meter

Tooltip lines of interest:
    "Progress: 31,900/75M"                 → current / goal
    "Stored Dungeon Score: 804"            → current (nothing selected)
    "SELECTED" / "Click to deselect"       → this item is the meter's target
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Union

from number_parser import try_parse_magnitude
from rng_data import DungeonFloor, SlayerType
from text_normalizer import strip_formatting

logger = logging.getLogger(__name__)


@dataclass
class ItemSlot:
    """One container slot as reported by the host."""
    name: str = ""
    lore: List[str] = field(default_factory=list)
    is_empty: bool = False


@dataclass(frozen=True)
class SlayerMeterScreen:
    slayer_type: SlayerType


@dataclass(frozen=True)
class DungeonMeterScreen:
    floor: DungeonFloor


@dataclass(frozen=True)
class NucleusMeterScreen:
    pass


@dataclass(frozen=True)
class ExperimentationMeterScreen:
    pass


InventoryType = Union[
    SlayerMeterScreen, DungeonMeterScreen, NucleusMeterScreen, ExperimentationMeterScreen,
]


@dataclass
class SelectedItemInfo:
    item_name: str
    goal_xp: Optional[int]


# ─── Title Patterns ──────────────────────────────

SLAYER_TITLE_MAP = {
    "Revenant Horror": SlayerType.REVENANT,
    "Tarantula Broodfather": SlayerType.TARANTULA,
    "Sven Packmaster": SlayerType.SVEN,
    "Voidgloom Seraph": SlayerType.VOIDGLOOM,
    "Inferno Demonlord": SlayerType.INFERNO,
    "Riftstalker Bloodfiend": SlayerType.RIFTSTALKER,
}

# Word-bounded so "Floor VII" is never read as "Floor V"
DUNGEON_TITLE_PATTERNS = [
    (re.compile(r"Master Mode Floor VII\b"), DungeonFloor.M7),
    (re.compile(r"Master Mode Floor V\b"), DungeonFloor.M5),
]

NUCLEUS_TITLE = "Crystal Hollows"
EXPERIMENTATION_TITLE = "Experimentation Table"
RNG_METER_SUFFIX = "RNG Meter"

# ─── Lore Patterns ───────────────────────────────

# "31,900/75M" or "1,812/8.3k"
XP_PROGRESS_PATTERN = re.compile(r"([\d,.]+[KkMm]?)/([\d,.]+[KkMm]?)")
# "Stored Dungeon Score: 804" or "Stored Nucleus XP: 1,000"
STORED_XP_PATTERN = re.compile(r"Stored (?:Dungeon Score|Nucleus XP|.*XP): ([\d,.]+[KkMm]?)")

SELECTED_MARKERS = ("SELECTED", "Click to deselect")


def detect_inventory_type(title: str) -> Optional[InventoryType]:
    """Classify a container by its title. None if it is not an RNG meter."""
    clean = strip_formatting(title)

    # Experimentation table says "RNG", not "RNG Meter"
    if EXPERIMENTATION_TITLE in clean and "RNG" in clean:
        return ExperimentationMeterScreen()

    if RNG_METER_SUFFIX not in clean:
        return None

    slayer_type = parse_slayer_type(clean)
    if slayer_type is not None:
        return SlayerMeterScreen(slayer_type)

    floor = parse_dungeon_floor(clean)
    if floor is not None:
        return DungeonMeterScreen(floor)

    if NUCLEUS_TITLE in clean:
        return NucleusMeterScreen()

    return None


def parse_slayer_type(title: str) -> Optional[SlayerType]:
    clean = strip_formatting(title)
    for name, slayer_type in SLAYER_TITLE_MAP.items():
        if name in clean:
            return slayer_type
    return None


def parse_dungeon_floor(title: str) -> Optional[DungeonFloor]:
    clean = strip_formatting(title)
    for pattern, floor in DUNGEON_TITLE_PATTERNS:
        if pattern.search(clean):
            return floor
    return None


# ─── Lore Parsing ────────────────────────────────

def is_selected(lore: List[str]) -> bool:
    """True if the tooltip marks this item as the meter's target."""
    for line in lore:
        clean = strip_formatting(line)
        if any(marker in clean for marker in SELECTED_MARKERS):
            return True
    return False


def extract_goal_xp(lore: List[str]) -> Optional[int]:
    """Goal side of the first "current/goal" line."""
    for line in lore:
        match = XP_PROGRESS_PATTERN.search(strip_formatting(line))
        if match:
            return try_parse_magnitude(match.group(2))
    return None


def extract_current_xp(lore: List[str]) -> Optional[int]:
    """Current side of the first progress line, or a "Stored ... XP:" value."""
    for line in lore:
        clean = strip_formatting(line)

        match = XP_PROGRESS_PATTERN.search(clean)
        if match:
            return try_parse_magnitude(match.group(1))

        match = STORED_XP_PATTERN.search(clean)
        if match:
            return try_parse_magnitude(match.group(1))
    return None


def parse_selected_item(slot: ItemSlot) -> Optional[SelectedItemInfo]:
    """Name and goal of a selected item, or None if the slot is not selected."""
    if not slot.name or not is_selected(slot.lore):
        return None
    return SelectedItemInfo(
        item_name=strip_formatting(slot.name),
        goal_xp=extract_goal_xp(slot.lore),
    )
