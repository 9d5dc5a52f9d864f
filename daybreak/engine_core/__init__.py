"""
Engine Core - Deterministic narrative state for one run.

The engine is the runtime that:
1. Holds bounded resources and relationship tracks
2. Advances the day/phase cycle and its time budget
3. Tracks the memory catalogue
4. Evaluates endings
5. Routes every mutation through a synchronous event bus

The orchestrator wiring these together depends on the dialogue package
and is imported from daybreak.engine_core.orchestrator directly.
"""

from .events import EventBus, EventName
from .status import StatusStore, Stat, Relationship, UnknownStatError, clamp
from .clock import TimeClock, Phase, DayState
from .memory import Memory, MemoryLedger, MemoryField
from .ending import EndingOutcome, EndingRule, ENDING_RULES, evaluate_ending
from .state import RunState, RunCounters, StatusReport, StateDecodeError, SCHEMA_VERSION, dumps, loads
from .command import Command, CommandType, CommandResult

__all__ = [
    "EventBus",
    "EventName",
    "StatusStore",
    "Stat",
    "Relationship",
    "UnknownStatError",
    "clamp",
    "TimeClock",
    "Phase",
    "DayState",
    "Memory",
    "MemoryLedger",
    "MemoryField",
    "EndingOutcome",
    "EndingRule",
    "ENDING_RULES",
    "evaluate_ending",
    "RunState",
    "RunCounters",
    "StatusReport",
    "StateDecodeError",
    "SCHEMA_VERSION",
    "dumps",
    "loads",
    "Command",
    "CommandType",
    "CommandResult",
]
