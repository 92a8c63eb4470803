"""
DyeTracker - RNG Data Model
Immutable value types for captured RNG meter progress.

JSON shape (local data file and sync body):
    {
      "slayerMeters": {"REVENANT": {"slayerType": "REVENANT", "storedXp": 1234567,
                                    "selectedItem": "Warden Heart", "goalXp": 75000000}},
      "dungeonMeters": {"M7": {"floor": "M7", "storedXp": 804, ...}},
      "nucleusMeter": {"storedXp": 1000, "selectedItem": null, "goalXp": null},
      "experimentationMeter": null,
      "mineshaftPity": {"pityValue": 1999}
    }
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional

logger = logging.getLogger(__name__)

MAX_PITY = 2000


def _to_int(value, field_name: str) -> int:
    """int() for JSON numbers; overflow (1e999 decodes to inf) is a ValueError."""
    try:
        return int(value)
    except OverflowError as e:
        raise ValueError(f"{field_name} out of range: {value!r}") from e


def _as_map(value, field_name: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{field_name} must be an object, got {type(value).__name__}")
    return value


class SlayerType(Enum):
    REVENANT = "REVENANT"
    TARANTULA = "TARANTULA"
    SVEN = "SVEN"
    VOIDGLOOM = "VOIDGLOOM"
    INFERNO = "INFERNO"
    RIFTSTALKER = "RIFTSTALKER"


class DungeonFloor(Enum):
    M5 = "M5"
    M7 = "M7"


@dataclass(frozen=True)
class RngMeter:
    """One RNG meter: stored XP plus the optional item it is aimed at."""
    stored_xp: int = 0
    selected_item: Optional[str] = None
    goal_xp: Optional[int] = None

    def with_xp(self, xp: int) -> "RngMeter":
        return replace(self, stored_xp=xp)

    def with_selection(self, item: str, goal_xp: Optional[int]) -> "RngMeter":
        return replace(self, selected_item=item, goal_xp=goal_xp)

    @property
    def progress(self) -> Optional[float]:
        """Fraction of the goal reached, or None without a goal."""
        if not self.goal_xp:
            return None
        return min(1.0, self.stored_xp / self.goal_xp)

    def to_dict(self) -> dict:
        return {
            "storedXp": self.stored_xp,
            "selectedItem": self.selected_item,
            "goalXp": self.goal_xp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RngMeter":
        if not isinstance(data, dict):
            raise ValueError(f"meter must be an object, got {type(data).__name__}")
        goal = data.get("goalXp")
        return cls(
            stored_xp=_to_int(data.get("storedXp", 0), "storedXp"),
            selected_item=data.get("selectedItem"),
            goal_xp=_to_int(goal, "goalXp") if goal is not None else None,
        )


@dataclass(frozen=True)
class MineshaftPity:
    """Glacite Mineshaft pity counter (0-2000)."""
    pity_value: int

    def to_dict(self) -> dict:
        return {"pityValue": self.pity_value}

    @classmethod
    def from_dict(cls, data: dict) -> "MineshaftPity":
        if not isinstance(data, dict):
            raise ValueError(f"pity must be an object, got {type(data).__name__}")
        return cls(pity_value=_to_int(data["pityValue"], "pityValue"))


@dataclass(frozen=True)
class PlayerRngData:
    """Point-in-time snapshot of everything captured for the player."""
    slayer_meters: Dict[SlayerType, RngMeter] = field(default_factory=dict)
    dungeon_meters: Dict[DungeonFloor, RngMeter] = field(default_factory=dict)
    nucleus_meter: Optional[RngMeter] = None
    experimentation_meter: Optional[RngMeter] = None
    mineshaft_pity: Optional[MineshaftPity] = None

    def has_data(self) -> bool:
        """True if any RNG data has been captured."""
        return bool(
            self.slayer_meters
            or self.dungeon_meters
            or self.nucleus_meter is not None
            or self.experimentation_meter is not None
            or self.mineshaft_pity is not None
        )

    # ─── Serialization ───────────────────────────

    def to_dict(self) -> dict:
        slayers = {}
        for slayer_type, meter in self.slayer_meters.items():
            entry = {"slayerType": slayer_type.name}
            entry.update(meter.to_dict())
            slayers[slayer_type.name] = entry

        dungeons = {}
        for floor, meter in self.dungeon_meters.items():
            entry = {"floor": floor.name}
            entry.update(meter.to_dict())
            dungeons[floor.name] = entry

        return {
            "slayerMeters": slayers,
            "dungeonMeters": dungeons,
            "nucleusMeter": self.nucleus_meter.to_dict() if self.nucleus_meter else None,
            "experimentationMeter": (
                self.experimentation_meter.to_dict() if self.experimentation_meter else None
            ),
            "mineshaftPity": self.mineshaft_pity.to_dict() if self.mineshaft_pity else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PlayerRngData":
        """Build a snapshot from its JSON shape.

        Unknown keys and unknown enum names are skipped (newer data files
        stay readable). Structurally invalid input raises ValueError.
        """
        if not isinstance(data, dict):
            raise ValueError(f"RNG data must be an object, got {type(data).__name__}")

        slayers = {}
        for name, raw in _as_map(data.get("slayerMeters"), "slayerMeters").items():
            try:
                slayer_type = SlayerType[name]
            except KeyError:
                logger.debug(f"Skipping unknown slayer type in data: {name}")
                continue
            slayers[slayer_type] = RngMeter.from_dict(raw)

        dungeons = {}
        for name, raw in _as_map(data.get("dungeonMeters"), "dungeonMeters").items():
            try:
                floor = DungeonFloor[name]
            except KeyError:
                logger.debug(f"Skipping unknown dungeon floor in data: {name}")
                continue
            dungeons[floor] = RngMeter.from_dict(raw)

        nucleus = data.get("nucleusMeter")
        experimentation = data.get("experimentationMeter")
        pity = data.get("mineshaftPity")

        return cls(
            slayer_meters=slayers,
            dungeon_meters=dungeons,
            nucleus_meter=RngMeter.from_dict(nucleus) if nucleus is not None else None,
            experimentation_meter=(
                RngMeter.from_dict(experimentation) if experimentation is not None else None
            ),
            mineshaft_pity=MineshaftPity.from_dict(pity) if pity is not None else None,
        )
