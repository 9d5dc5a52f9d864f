"""
Run State - Snapshots of one run, and the persisted-state codec.

Two views of the same run:
- StatusReport: the flat query result a renderer polls every frame
- RunState: the full, lossless persisted shape (schema version 1)

Design principles:
- Plain data: no references back into the live engine
- Canonical encoding: dumps(loads(text)) == text for any text dumps produced
- Values inside a well-formed payload are clamped, never rejected
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import json

from .status import Stat, Relationship, clamp
from .clock import Phase
from .memory import Memory
from .ending import EndingOutcome

SCHEMA_VERSION = 1

_SECTIONS = ("clock", "status", "relationships", "memories")


class StateDecodeError(ValueError):
    """Raised when a payload is not the persisted-state shape."""


@dataclass
class RunCounters:
    """Running totals reported to the renderer."""
    total_actions: int = 0
    total_dialogues: int = 0
    total_memories: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total_actions": self.total_actions,
            "total_dialogues": self.total_dialogues,
            "total_memories": self.total_memories,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RunCounters:
        data = data or {}
        return cls(
            total_actions=max(0, int(data.get("total_actions", 0))),
            total_dialogues=max(0, int(data.get("total_dialogues", 0))),
            total_memories=max(0, int(data.get("total_memories", 0))),
        )


@dataclass
class StatusReport:
    """Result of Orchestrator.get_status_report()."""
    day: int
    phase: Phase
    time: int
    max_time: int
    fatigue: int
    corruption: int
    hope: int
    relationships: tuple[int, int, int]
    unlocked_memory_ids: list[int] = field(default_factory=list)
    active_memory_id: int | None = None
    counters: RunCounters = field(default_factory=RunCounters)
    ending: EndingOutcome | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "day": self.day,
            "phase": self.phase.value,
            "phase_name": self.phase.label,
            "time": self.time,
            "max_time": self.max_time,
            "fatigue": self.fatigue,
            "corruption": self.corruption,
            "hope": self.hope,
            "relationships": list(self.relationships),
            "unlocked_memory_ids": list(self.unlocked_memory_ids),
            "active_memory_id": self.active_memory_id,
            "counters": self.counters.to_dict(),
            "ending": self.ending.value if self.ending else None,
        }


@dataclass
class RunState:
    """
    Everything needed to restore a run.

    RNG state is deliberately not captured; a restored run receives a
    fresh (optionally seeded) generator.
    """
    day: int = 1
    phase: Phase = Phase.MORNING
    remaining: int = 10
    max_time: int = 10
    stats: dict[str, int] = field(default_factory=dict)
    relationships: dict[str, int] = field(default_factory=dict)
    memories: list[Memory] = field(default_factory=list)
    active_memory_id: int | None = None
    counters: RunCounters = field(default_factory=RunCounters)
    ending: EndingOutcome | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": SCHEMA_VERSION,
            "clock": {
                "day": self.day,
                "phase": self.phase.key,
                "remaining": self.remaining,
                "max": self.max_time,
            },
            "status": {stat.value: self.stats.get(stat.value, 0) for stat in Stat},
            "relationships": {
                track.value: self.relationships.get(track.value, 0) for track in Relationship
            },
            "memories": [m.to_dict() for m in sorted(self.memories, key=lambda m: m.memory_id)],
            "active_memory_id": self.active_memory_id,
            "counters": self.counters.to_dict(),
            "ending": self.ending.value if self.ending else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunState:
        if not isinstance(data, dict):
            raise StateDecodeError("Persisted state must be a JSON object")

        version = data.get("schema_version")
        if version != SCHEMA_VERSION:
            raise StateDecodeError(
                f"Unsupported schema_version {version!r} (expected {SCHEMA_VERSION})"
            )
        missing = [name for name in _SECTIONS if name not in data]
        if missing:
            raise StateDecodeError(f"Missing section(s): {', '.join(missing)}")

        try:
            clock = data["clock"]
            max_time = max(1, int(clock.get("max", 10)))
            phase = Phase.parse(clock.get("phase", Phase.MORNING.key))
            ending_value = data.get("ending")

            return cls(
                day=max(1, int(clock.get("day", 1))),
                phase=phase,
                remaining=max(0, min(max_time, int(clock.get("remaining", max_time)))),
                max_time=max_time,
                stats={
                    stat.value: clamp(data["status"].get(stat.value, 0)) for stat in Stat
                },
                relationships={
                    track.value: clamp(data["relationships"].get(track.value, 0))
                    for track in Relationship
                },
                memories=[Memory.from_dict(entry) for entry in data["memories"]],
                active_memory_id=_optional_int(data.get("active_memory_id")),
                counters=RunCounters.from_dict(data.get("counters")),
                ending=EndingOutcome(ending_value) if ending_value else None,
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            if isinstance(e, StateDecodeError):
                raise
            raise StateDecodeError(f"Malformed persisted state: {e}") from e


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)


def dumps(state: RunState) -> str:
    """Canonical JSON encoding: sorted keys, two-space indent, UTF-8 safe."""
    return json.dumps(state.to_dict(), sort_keys=True, indent=2, ensure_ascii=False) + "\n"


def loads(text: str) -> RunState:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise StateDecodeError(f"Invalid JSON: {e}") from e
    return RunState.from_dict(data)
