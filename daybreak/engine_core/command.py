"""
Command System - Commands, parameters, and results.

Commands represent every call on the external surface:
1. Clock commands (advance day, set phase, spend or grant time)
2. Status commands (stats and relationship tracks)
3. Memory commands (start, unlock, author content)
4. Dialogue commands (submit an effect spec, commit a parsed choice)

Commands are plain data so scripts, HTTP requests and the CLI can all
drive a run through Orchestrator.apply().
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .state import StatusReport
from .ending import EndingOutcome


class CommandType(Enum):
    """Types of commands accepted by the orchestrator."""
    # Clock
    ADVANCE_DAY = "advance_day"
    SET_PHASE = "set_phase"
    CONSUME_TIME = "consume_time"
    ADD_TIME = "add_time"
    SET_TIME = "set_time"
    RESET_DAILY_TIME = "reset_daily_time"

    # Status
    CHANGE_STAT = "change_stat"
    SET_STAT = "set_stat"
    CHANGE_RELATIONSHIP = "change_relationship"
    SET_RELATIONSHIP = "set_relationship"

    # Memories
    START_MEMORY = "start_memory"
    UNLOCK_MEMORY = "unlock_memory"
    APPEND_MEMORY_TEXT = "append_memory_text"
    APPEND_MEMORY_PORTRAIT = "append_memory_portrait"
    APPEND_MEMORY_BACKGROUND = "append_memory_background"

    # Dialogue
    SUBMIT_DIALOGUE_CHOICE = "submit_dialogue_choice"
    COMMIT_CHOICE = "commit_choice"

    # System
    EVALUATE_ENDING = "evaluate_ending"
    SYNCHRONIZE = "synchronize"
    RESET = "reset"

    @classmethod
    def parse(cls, value: str | CommandType) -> CommandType:
        if isinstance(value, cls):
            return value
        name = str(value).strip()
        # Accept the renderer's camelCase names too: advanceDay -> advance_day
        if "_" not in name and name != name.lower() and name != name.upper():
            name = "".join("_" + c.lower() if c.isupper() else c for c in name).lstrip("_")
        try:
            return cls(name.lower())
        except ValueError:
            raise ValueError(f"Unknown command: {value!r}") from None


@dataclass
class Command:
    """
    A complete command to be applied to a run.

    Commands are:
    - Recorded in the run's command history when they succeed
    - Coerced and validated by the orchestrator, never trusted
    """
    command_type: CommandType
    params: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"command": self.command_type.value, "params": dict(self.params)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Command:
        return cls(
            command_type=CommandType.parse(data["command"]),
            params=dict(data.get("params") or {}),
        )

    # Clock

    @classmethod
    def advance_day(cls) -> Command:
        return cls(CommandType.ADVANCE_DAY)

    @classmethod
    def set_phase(cls, phase: int | str) -> Command:
        return cls(CommandType.SET_PHASE, {"phase": phase})

    @classmethod
    def consume_time(cls, amount: int) -> Command:
        return cls(CommandType.CONSUME_TIME, {"amount": amount})

    @classmethod
    def add_time(cls, amount: int) -> Command:
        return cls(CommandType.ADD_TIME, {"amount": amount})

    @classmethod
    def set_time(cls, value: int) -> Command:
        return cls(CommandType.SET_TIME, {"value": value})

    @classmethod
    def reset_daily_time(cls) -> Command:
        return cls(CommandType.RESET_DAILY_TIME)

    # Status

    @classmethod
    def change_stat(cls, stat: str, delta: int) -> Command:
        return cls(CommandType.CHANGE_STAT, {"stat": stat, "delta": delta})

    @classmethod
    def set_stat(cls, stat: str, value: int) -> Command:
        return cls(CommandType.SET_STAT, {"stat": stat, "value": value})

    @classmethod
    def change_relationship(cls, track: str | int, delta: int) -> Command:
        return cls(CommandType.CHANGE_RELATIONSHIP, {"track": track, "delta": delta})

    @classmethod
    def set_relationship(cls, track: str | int, value: int) -> Command:
        return cls(CommandType.SET_RELATIONSHIP, {"track": track, "value": value})

    # Memories

    @classmethod
    def start_memory(cls, memory_id: int) -> Command:
        return cls(CommandType.START_MEMORY, {"memory_id": memory_id})

    @classmethod
    def unlock_memory(cls, memory_id: int) -> Command:
        return cls(CommandType.UNLOCK_MEMORY, {"memory_id": memory_id})

    @classmethod
    def append_memory_text(cls, memory_id: int | None, value: str) -> Command:
        return cls(CommandType.APPEND_MEMORY_TEXT, {"memory_id": memory_id, "value": value})

    @classmethod
    def append_memory_portrait(cls, memory_id: int | None, value: str) -> Command:
        return cls(CommandType.APPEND_MEMORY_PORTRAIT, {"memory_id": memory_id, "value": value})

    @classmethod
    def append_memory_background(cls, memory_id: int | None, value: str) -> Command:
        return cls(CommandType.APPEND_MEMORY_BACKGROUND, {"memory_id": memory_id, "value": value})

    # Dialogue

    @classmethod
    def submit_dialogue_choice(cls, effect_spec: str) -> Command:
        return cls(CommandType.SUBMIT_DIALOGUE_CHOICE, {"effect_spec": effect_spec})

    @classmethod
    def commit_choice(cls, markup: str) -> Command:
        """Commit a choice given as \\CHOICE[...] markup."""
        return cls(CommandType.COMMIT_CHOICE, {"markup": markup})

    # System

    @classmethod
    def evaluate_ending(cls) -> Command:
        return cls(CommandType.EVALUATE_ENDING)

    @classmethod
    def synchronize(cls) -> Command:
        return cls(CommandType.SYNCHRONIZE)

    @classmethod
    def reset(cls) -> Command:
        return cls(CommandType.RESET)


@dataclass
class CommandResult:
    """
    Result of applying a command.

    Contains:
    - Whether the command succeeded
    - The status report after the command (if succeeded)
    - Error and error code (if failed)
    - Events published and notifications queued while it ran
    """
    success: bool
    report: StatusReport | None = None
    error: str | None = None
    error_code: str | None = None

    events: list[str] = field(default_factory=list)
    notifications: list[str] = field(default_factory=list)
    ending: EndingOutcome | None = None
    value: Any = None

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> CommandResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def ok(
        cls,
        report: StatusReport,
        events: list[str] | None = None,
        notifications: list[str] | None = None,
        ending: EndingOutcome | None = None,
        value: Any = None,
    ) -> CommandResult:
        """Create a success result with the post-command report."""
        return cls(
            success=True,
            report=report,
            events=events or [],
            notifications=notifications or [],
            ending=ending,
            value=value,
        )
