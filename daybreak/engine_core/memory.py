"""
Memory Ledger - Unlock state of the narrative memory catalogue.

Memories are numbered 1..N. A memory record is created lazily the first
time its id is referenced and is never destroyed during a run.

Content (portrait, background, text lines) is appended while a memory
sequence is being authored; unlocking makes it viewable in the log.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import random

from .events import EventBus, EventName
from ..log import get_logger

logger = get_logger(__name__)


class MemoryField:
    """Appendable content fields."""
    PORTRAIT = "portrait"
    BACKGROUND = "background"
    TEXT = "text"

    ALL = (PORTRAIT, BACKGROUND, TEXT)


@dataclass
class Memory:
    """A narrative vignette."""
    memory_id: int
    title: str = ""
    portrait: str = ""
    background: str = ""
    text_lines: list[str] = field(default_factory=list)
    unlocked: bool = False

    def __post_init__(self):
        if not self.title:
            self.title = f"Memory {self.memory_id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.memory_id,
            "title": self.title,
            "portrait": self.portrait,
            "background": self.background,
            "text_lines": list(self.text_lines),
            "unlocked": self.unlocked,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Memory:
        return cls(
            memory_id=int(data["id"]),
            title=str(data.get("title", "")),
            portrait=str(data.get("portrait", "")),
            background=str(data.get("background", "")),
            text_lines=[str(line) for line in data.get("text_lines", [])],
            unlocked=bool(data.get("unlocked", False)),
        )


class MemoryLedger:
    """
    Tracks the memory catalogue for one run.

    The RNG used by the unlock-offer heuristic is injected so runs can be
    replayed deterministically:

        ledger = MemoryLedger(bus, catalogue_size=20, rng=random.Random(7))
    """

    def __init__(
        self,
        bus: EventBus,
        catalogue_size: int = 20,
        rng: random.Random | None = None,
        trigger_chance: float = 0.3,
    ):
        self.bus = bus
        self.catalogue_size = catalogue_size
        self.rng = rng or random.Random()
        self.trigger_chance = trigger_chance
        self._memories: dict[int, Memory] = {}
        self.active_memory_id: int | None = None

    def is_valid_id(self, memory_id: int) -> bool:
        return isinstance(memory_id, int) and 1 <= memory_id <= self.catalogue_size

    def _check_id(self, memory_id: int, operation: str) -> bool:
        if self.is_valid_id(memory_id):
            return True
        logger.warning(
            "Ignoring %s for memory %r: ids run 1..%d",
            operation, memory_id, self.catalogue_size,
        )
        return False

    def get(self, memory_id: int) -> Memory | None:
        return self._memories.get(memory_id)

    def _ensure(self, memory_id: int) -> Memory:
        memory = self._memories.get(memory_id)
        if memory is None:
            memory = Memory(memory_id=memory_id)
            self._memories[memory_id] = memory
        return memory

    # ------------------------------------------------------------------
    # Authoring
    # ------------------------------------------------------------------

    def start(self, memory_id: int) -> Memory | None:
        """Begin a memory sequence, creating the record if needed."""
        if not self._check_id(memory_id, "start"):
            return None
        memory = self._ensure(memory_id)
        self.active_memory_id = memory_id
        self.bus.publish(EventName.MEMORY_STARTED, {"memory_id": memory_id})
        return memory

    def record_append(self, memory_id: int | None, field_name: str, value: str) -> bool:
        """
        Add content to a memory.

        Portrait and background are replaced; text is appended as a new
        line. memory_id None targets the active memory. Returns False when
        there is nothing to write to.
        """
        if memory_id is None:
            memory_id = self.active_memory_id
            if memory_id is None:
                logger.debug("No active memory for %s append", field_name)
                return False
        if not self._check_id(memory_id, f"{field_name} append"):
            return False
        if field_name not in MemoryField.ALL:
            logger.warning("Unknown memory field %r", field_name)
            return False

        memory = self._ensure(memory_id)
        if field_name == MemoryField.PORTRAIT:
            memory.portrait = str(value)
        elif field_name == MemoryField.BACKGROUND:
            memory.background = str(value)
        else:
            memory.text_lines.append(str(value))
        return True

    # ------------------------------------------------------------------
    # Unlocking
    # ------------------------------------------------------------------

    def unlock(self, memory_id: int) -> bool:
        """
        Mark a memory unlocked.

        Idempotent on state; memoryUnlocked is published on every call,
        with already_unlocked telling repeat calls apart. Returns True when
        the memory was newly unlocked.
        """
        if not self._check_id(memory_id, "unlock"):
            return False
        memory = self._ensure(memory_id)
        already_unlocked = memory.unlocked
        memory.unlocked = True
        self.bus.publish(EventName.MEMORY_UNLOCKED, {
            "memory_id": memory_id,
            "already_unlocked": already_unlocked,
        })
        return not already_unlocked

    def is_unlocked(self, memory_id: int) -> bool:
        memory = self._memories.get(memory_id)
        return bool(memory and memory.unlocked)

    def all_unlocked(self) -> list[int]:
        """Unlocked ids, ascending."""
        return sorted(mid for mid, memory in self._memories.items() if memory.unlocked)

    @property
    def unlocked_count(self) -> int:
        return len(self.all_unlocked())

    def maybe_offer_unlock(self, hope_delta: int) -> int | None:
        """
        Pacing heuristic run after a dialogue choice raised hope.

        threshold = unlocked_count // 5 + 1; when hope_delta meets it, a
        random draw below trigger_chance offers the next memory while the
        catalogue is not exhausted. The offered memory is started, not
        unlocked. Returns the offered id or None.
        """
        if hope_delta <= 0:
            return None

        unlocked = self.unlocked_count
        threshold = unlocked // 5 + 1
        if hope_delta < threshold:
            return None

        roll = self.rng.random()
        if roll >= self.trigger_chance:
            return None
        if unlocked >= self.catalogue_size:
            return None

        memory_id = unlocked + 1
        logger.debug("Offering memory %d (roll %.3f, threshold %d)", memory_id, roll, threshold)
        self.start(memory_id)
        self.bus.publish(EventName.MEMORY_OFFERED, {"memory_id": memory_id})
        return memory_id

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def memories(self) -> list[Memory]:
        """All known memories, ascending id."""
        return [self._memories[mid] for mid in sorted(self._memories)]

    def load(self, memories: list[Memory], active_memory_id: int | None) -> None:
        """Replace the ledger contents without publishing."""
        self._memories = {
            m.memory_id: m for m in memories if self.is_valid_id(m.memory_id)
        }
        self.active_memory_id = active_memory_id if self.is_valid_id(active_memory_id) else None

    def reset(self) -> None:
        self._memories = {}
        self.active_memory_id = None
