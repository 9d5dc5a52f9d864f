"""
Status Store - Bounded numeric resources and relationship tracks.

Every value is an integer in [0, 100]. Mutations clamp rather than
reject: out-of-range input is not an error.

Each mutation publishes an event before returning:
- statusChanged{stat, old_value, new_value}
- relationshipChanged{track, old_value, new_value, delta}
"""

from __future__ import annotations
from enum import Enum
from typing import TYPE_CHECKING

from .events import EventBus, EventName
from ..log import get_logger

if TYPE_CHECKING:
    from ..config import EngineConfig

logger = get_logger(__name__)

STAT_MIN = 0
STAT_MAX = 100


class UnknownStatError(ValueError):
    """Raised when a stat, track or phase name cannot be resolved."""


def clamp(value: int, minimum: int = STAT_MIN, maximum: int = STAT_MAX) -> int:
    """Clamp an integer into [minimum, maximum]."""
    return max(minimum, min(maximum, int(value)))


class Stat(Enum):
    """Player resources."""
    FATIGUE = "fatigue"
    CORRUPTION = "corruption"
    HOPE = "hope"

    @classmethod
    def parse(cls, name: str | Stat) -> Stat:
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise UnknownStatError(f"Unknown stat: {name!r}") from None


class Relationship(Enum):
    """Relationship tracks. Indices follow the renderer's 0/1/2 numbering."""
    SISTER = "sister"
    NPC = "npc"
    TOWER = "tower"

    @property
    def index(self) -> int:
        return _RELATIONSHIP_ORDER.index(self)

    @property
    def label(self) -> str:
        return _RELATIONSHIP_LABELS[self]

    @classmethod
    def parse(cls, name: str | int | Relationship) -> Relationship:
        if isinstance(name, cls):
            return name
        if isinstance(name, int) and not isinstance(name, bool):
            if 0 <= name < len(_RELATIONSHIP_ORDER):
                return _RELATIONSHIP_ORDER[name]
            raise UnknownStatError(f"Unknown relationship index: {name}")
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise UnknownStatError(f"Unknown relationship track: {name!r}") from None


_RELATIONSHIP_ORDER = (Relationship.SISTER, Relationship.NPC, Relationship.TOWER)
_RELATIONSHIP_LABELS = {
    Relationship.SISTER: "Sister",
    Relationship.NPC: "NPC",
    Relationship.TOWER: "Tower Dweller",
}


class StatusStore:
    """
    Holds fatigue, corruption, hope and the three relationship tracks.

    Usage:
        store = StatusStore(bus, config)
        store.change(Stat.HOPE, +5)     # -> new value, publishes statusChanged
        store.set(Stat.FATIGUE, 120)    # -> 100
    """

    def __init__(self, bus: EventBus, config: EngineConfig):
        self.bus = bus
        self.config = config
        self._stats: dict[Stat, int] = {}
        self._relationships: dict[Relationship, int] = {}
        self.reset()

    def reset(self) -> None:
        """Restore configured starting values without publishing."""
        self._stats = {
            Stat.FATIGUE: self.config.initial_fatigue,
            Stat.CORRUPTION: self.config.initial_corruption,
            Stat.HOPE: self.config.initial_hope,
        }
        self._relationships = {
            track: self.config.initial_relationship for track in Relationship
        }

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def get(self, stat: Stat) -> int:
        return self._stats[stat]

    def change(self, stat: Stat, delta: int) -> int:
        """Add delta to a stat, clamped. Returns the new value."""
        return self._write(stat, self._stats[stat] + int(delta))

    def set(self, stat: Stat, value: int) -> int:
        """Set a stat, clamped. Returns the new value."""
        return self._write(stat, int(value))

    def _write(self, stat: Stat, raw_value: int) -> int:
        old_value = self._stats[stat]
        new_value = clamp(raw_value)
        self._stats[stat] = new_value
        self.bus.publish(EventName.STATUS_CHANGED, {
            "stat": stat.value,
            "old_value": old_value,
            "new_value": new_value,
        })
        return new_value

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    def get_relationship(self, track: Relationship) -> int:
        return self._relationships[track]

    def change_relationship(self, track: Relationship, delta: int) -> int:
        return self._write_relationship(track, self._relationships[track] + int(delta), int(delta))

    def set_relationship(self, track: Relationship, value: int) -> int:
        old_value = self._relationships[track]
        return self._write_relationship(track, int(value), clamp(value) - old_value)

    def _write_relationship(self, track: Relationship, raw_value: int, delta: int) -> int:
        old_value = self._relationships[track]
        new_value = clamp(raw_value)
        self._relationships[track] = new_value
        self.bus.publish(EventName.RELATIONSHIP_CHANGED, {
            "track": track.value,
            "old_value": old_value,
            "new_value": new_value,
            "delta": delta,
        })
        return new_value

    # ------------------------------------------------------------------
    # Threshold queries
    # ------------------------------------------------------------------

    def has_fatigue_penalty(self) -> bool:
        return self.get(Stat.FATIGUE) >= self.config.fatigue_penalty_threshold

    def fatigue_penalty_rate(self) -> float:
        """
        Multiplier applied to attack/defense by the renderer's battle layer.

        1.0 below the penalty threshold, falling linearly to 0.5 at 100.
        """
        fatigue = self.get(Stat.FATIGUE)
        threshold = self.config.fatigue_penalty_threshold
        if fatigue < threshold:
            return 1.0
        return 1.0 - ((fatigue - threshold) / (STAT_MAX - threshold)) * 0.5

    def has_high_corruption(self) -> bool:
        return self.get(Stat.CORRUPTION) >= self.config.corruption_threshold

    def has_hope_bonus(self) -> bool:
        return self.get(Stat.HOPE) >= self.config.hope_bonus_threshold

    # ------------------------------------------------------------------
    # Snapshots and repair
    # ------------------------------------------------------------------

    def stats(self) -> dict[str, int]:
        return {stat.value: value for stat, value in self._stats.items()}

    def relationships(self) -> dict[str, int]:
        return {track.value: self._relationships[track] for track in _RELATIONSHIP_ORDER}

    def load(self, stats: dict[str, int], relationships: dict[str, int]) -> None:
        """Replace all values without publishing. Values are clamped."""
        for stat in Stat:
            self._stats[stat] = clamp(stats.get(stat.value, self._stats[stat]))
        for track in Relationship:
            self._relationships[track] = clamp(relationships.get(track.value, self._relationships[track]))

    def repair(self) -> list[str]:
        """
        Re-clamp any value found outside [0, 100].

        Idempotent. Returns the names of repaired values.
        """
        repaired = []
        for stat, value in self._stats.items():
            if not STAT_MIN <= value <= STAT_MAX:
                logger.warning("Repairing %s: %s out of range", stat.value, value)
                self.set(stat, value)
                repaired.append(stat.value)
        for track, value in self._relationships.items():
            if not STAT_MIN <= value <= STAT_MAX:
                logger.warning("Repairing %s relationship: %s out of range", track.value, value)
                self.set_relationship(track, value)
                repaired.append(track.value)
        return repaired
