"""
Orchestrator - Owns one run and wires its cross-system rules.

The orchestrator is the single mutator of a run. It owns exactly one
StatusStore, TimeClock and MemoryLedger, registers the reaction rules on
the event bus at construction time, and exposes the command/query surface
used by the renderer, the CLI and the HTTP service.

Reaction rules (subscription order per event):
    dayAdvanced         fatigue -20, corruption +2, total_actions +1
    phaseChanged        Morning entry hope +5, Evening entry fatigue +10
    timeConsumed        fatigue +2 x amount, total_actions +1
    timeDepleted        fatigue +15, hope -5
    memoryUnlocked      total_memories +1; when newly unlocked hope +10, corruption -5
    dialogueChoice      total_dialogues +1, memory offer heuristic on hope > 0
    statusChanged       derived alerts (highFatigue, highCorruption, lowHope)
    dayLimitExceeded    evaluate ending, publish endingTriggered

Dispatch is depth-first: a reaction's own publishes complete before the
next subscriber of the outer event runs.
"""

from __future__ import annotations
from typing import Any, Callable, Iterable
import random

from ..config import EngineConfig
from ..dialogue.effect_dsl import ChoiceEffect, DialogueChoice, parse_effects, parse_choice_markup
from ..dialogue.conditions import evaluate_condition
from .events import EventBus, EventName, EventPayload
from .status import StatusStore, Stat, Relationship
from .clock import TimeClock, Phase
from .memory import MemoryLedger, MemoryField, Memory
from .ending import EndingOutcome, evaluate_ending
from .state import RunState, RunCounters, StatusReport, dumps, loads
from .command import Command, CommandType, CommandResult
from ..log import get_logger

logger = get_logger(__name__)

# Reaction amounts
DAILY_FATIGUE_RECOVERY = 20
DAILY_CORRUPTION_DRIFT = 2
MORNING_HOPE_BOOST = 5
EVENING_FATIGUE = 10
FATIGUE_PER_TIME_UNIT = 2
DEPLETION_FATIGUE = 15
DEPLETION_HOPE_LOSS = 5
MEMORY_HOPE_BOOST = 10
MEMORY_CORRUPTION_RELIEF = 5

# Derived alert levels
HIGH_FATIGUE_LEVEL = 80
HIGH_CORRUPTION_LEVEL = 70
LOW_HOPE_LEVEL = 20


class Notice:
    """Player-facing notification strings."""
    NEW_DAY = "A new day begins..."
    EXHAUSTED_DAY = "You're exhausted from the day's activities..."
    MEMORY_SURFACES = "A memory surfaces from the depths of your mind..."
    TIME_LOW = "Time is running short for today..."
    FATIGUE_PENALTY = "You're feeling exhausted..."
    CORRUPTION_HIGH = "The curse's influence grows stronger..."
    HOPE_BONUS = "You feel determined to continue!"

    @staticmethod
    def relationship(track: Relationship, improved: bool) -> str:
        if improved:
            return f"{track.label} relationship improved!"
        return f"{track.label} relationship worsened..."

    @staticmethod
    def ending(outcome: EndingOutcome) -> str:
        return f"{outcome.label} achieved!"


class Orchestrator:
    """
    One game run.

    Usage:
        run = Orchestrator(EngineConfig(), rng=random.Random(7))
        run.consume_time(4)
        run.submit_dialogue_choice("hope:+5,sister:+10")
        report = run.get_status_report()
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        rng: random.Random | None = None,
        bus: EventBus | None = None,
    ):
        self.config = config or EngineConfig()
        self.rng = rng or random.Random()
        self.bus = bus or EventBus(debug=self.config.debug)

        self.status = StatusStore(self.bus, self.config)
        self.clock = TimeClock(
            self.bus,
            max_time=self.config.max_time_per_day,
            max_days=self.config.max_days,
            warning_threshold=self.config.time_warning_threshold,
        )
        self.memories = MemoryLedger(
            self.bus,
            catalogue_size=self.config.memory_catalogue_size,
            rng=self.rng,
            trigger_chance=self.config.memory_trigger_chance,
        )

        self.counters = RunCounters()
        self.ending: EndingOutcome | None = None
        self.command_history: list[Command] = []
        self._notifications: list[str] = []

        self._register_reactions()

    # ------------------------------------------------------------------
    # Reaction rules
    # ------------------------------------------------------------------

    def _register_reactions(self) -> None:
        subscriptions: list[tuple[str, Callable[[EventPayload], None]]] = [
            (EventName.DAY_ADVANCED, self._on_day_advanced),
            (EventName.PHASE_CHANGED, self._on_phase_changed),
            (EventName.TIME_CONSUMED, self._on_time_consumed),
            (EventName.TIME_DEPLETED, self._on_time_depleted),
            (EventName.TIME_LOW, self._on_time_low),
            (EventName.MEMORY_UNLOCKED, self._on_memory_unlocked),
            (EventName.DIALOGUE_CHOICE, self._on_dialogue_choice),
            (EventName.STATUS_CHANGED, self._on_status_changed),
            (EventName.RELATIONSHIP_CHANGED, self._on_relationship_changed),
            (EventName.DAY_LIMIT_EXCEEDED, self._on_day_limit_exceeded),
        ]
        for event_name, handler in subscriptions:
            self.bus.subscribe(event_name, handler)

    def _notify(self, message: str) -> None:
        if self.config.notifications:
            self._notifications.append(message)

    def _on_day_advanced(self, payload: EventPayload) -> None:
        self.status.change(Stat.FATIGUE, -DAILY_FATIGUE_RECOVERY)
        self.status.change(Stat.CORRUPTION, DAILY_CORRUPTION_DRIFT)
        self.counters.total_actions += 1
        self._notify(Notice.NEW_DAY)

    def _on_phase_changed(self, payload: EventPayload) -> None:
        new_phase = Phase.parse(payload["new_phase"])
        if new_phase is Phase.MORNING:
            self.status.change(Stat.HOPE, MORNING_HOPE_BOOST)
        elif new_phase is Phase.EVENING:
            self.status.change(Stat.FATIGUE, EVENING_FATIGUE)

    def _on_time_consumed(self, payload: EventPayload) -> None:
        amount = payload.get("amount", 0)
        if amount:
            self.status.change(Stat.FATIGUE, FATIGUE_PER_TIME_UNIT * amount)
        self.counters.total_actions += 1

    def _on_time_depleted(self, payload: EventPayload) -> None:
        self.status.change(Stat.FATIGUE, DEPLETION_FATIGUE)
        self.status.change(Stat.HOPE, -DEPLETION_HOPE_LOSS)
        self._notify(Notice.EXHAUSTED_DAY)

    def _on_time_low(self, payload: EventPayload) -> None:
        self._notify(Notice.TIME_LOW)

    def _on_memory_unlocked(self, payload: EventPayload) -> None:
        self.counters.total_memories += 1
        self.status.change(Stat.HOPE, MEMORY_HOPE_BOOST)
        self.status.change(Stat.CORRUPTION, -MEMORY_CORRUPTION_RELIEF)
        self._notify(Notice.MEMORY_SURFACES)

    def _on_dialogue_choice(self, payload: EventPayload) -> None:
        self.counters.total_dialogues += 1
        hope_delta = payload.get("effect", {}).get("hope", 0)
        if hope_delta > 0:
            self.memories.maybe_offer_unlock(hope_delta)

    def _on_status_changed(self, payload: EventPayload) -> None:
        stat = Stat.parse(payload["stat"])
        old_value = payload["old_value"]
        value = payload["new_value"]

        if stat is Stat.FATIGUE and value > HIGH_FATIGUE_LEVEL:
            self.bus.publish(EventName.HIGH_FATIGUE, {"level": value})
        elif stat is Stat.CORRUPTION and value > HIGH_CORRUPTION_LEVEL:
            self.bus.publish(EventName.HIGH_CORRUPTION, {"level": value})
        elif stat is Stat.HOPE and value < LOW_HOPE_LEVEL:
            self.bus.publish(EventName.LOW_HOPE, {"level": value})

        # Threshold messages fire when the threshold is crossed upward
        thresholds = {
            Stat.FATIGUE: (self.config.fatigue_penalty_threshold, Notice.FATIGUE_PENALTY),
            Stat.CORRUPTION: (self.config.corruption_threshold, Notice.CORRUPTION_HIGH),
            Stat.HOPE: (self.config.hope_bonus_threshold, Notice.HOPE_BONUS),
        }
        threshold, message = thresholds[stat]
        if old_value < threshold <= value:
            self._notify(message)

    def _on_relationship_changed(self, payload: EventPayload) -> None:
        delta = payload.get("delta", 0)
        if delta:
            self._notify(Notice.relationship(Relationship.parse(payload["track"]), delta > 0))

    def _on_day_limit_exceeded(self, payload: EventPayload) -> None:
        if self.ending is not None:
            return
        outcome = self.evaluate_ending()
        self.ending = outcome
        logger.info("Day limit passed on day %d: %s", payload.get("day", self.clock.day), outcome.label)
        self._notify(Notice.ending(outcome))
        self.bus.publish(EventName.ENDING_TRIGGERED, {"outcome": outcome.value})

    # ------------------------------------------------------------------
    # Clock commands
    # ------------------------------------------------------------------

    def advance_day(self) -> int:
        return self.clock.advance_day()

    def set_phase(self, phase: Phase | int | str) -> Phase:
        return self.clock.set_phase(phase)

    def consume_time(self, amount: int) -> int:
        return self.clock.consume(amount)

    def add_time(self, amount: int) -> int:
        return self.clock.add(amount)

    def set_time(self, value: int) -> int:
        return self.clock.set(value)

    def reset_daily_time(self) -> int:
        return self.clock.reset_daily()

    # ------------------------------------------------------------------
    # Status commands
    # ------------------------------------------------------------------

    def change_stat(self, stat: Stat | str, delta: int) -> int:
        return self.status.change(Stat.parse(stat), delta)

    def set_stat(self, stat: Stat | str, value: int) -> int:
        return self.status.set(Stat.parse(stat), value)

    def change_relationship(self, track: Relationship | str | int, delta: int) -> int:
        return self.status.change_relationship(Relationship.parse(track), delta)

    def set_relationship(self, track: Relationship | str | int, value: int) -> int:
        return self.status.set_relationship(Relationship.parse(track), value)

    # ------------------------------------------------------------------
    # Memory commands
    # ------------------------------------------------------------------

    def start_memory(self, memory_id: int) -> Memory | None:
        return self.memories.start(int(memory_id))

    def unlock_memory(self, memory_id: int) -> bool:
        return self.memories.unlock(int(memory_id))

    def append_memory_text(self, memory_id: int | None, value: str) -> bool:
        return self.memories.record_append(_memory_id(memory_id), MemoryField.TEXT, value)

    def append_memory_portrait(self, memory_id: int | None, value: str) -> bool:
        return self.memories.record_append(_memory_id(memory_id), MemoryField.PORTRAIT, value)

    def append_memory_background(self, memory_id: int | None, value: str) -> bool:
        return self.memories.record_append(_memory_id(memory_id), MemoryField.BACKGROUND, value)

    # ------------------------------------------------------------------
    # Dialogue
    # ------------------------------------------------------------------

    def condition_context(self) -> dict[str, int]:
        """Current values keyed by the names conditions may reference."""
        context = self.status.stats()
        context.update(self.status.relationships())
        return context

    def is_choice_available(self, choice: DialogueChoice) -> bool:
        return evaluate_condition(
            choice.condition,
            self.condition_context(),
            fail_open=self.config.condition_fail_open,
            enabled=self.config.conditional_dialogue,
        )

    def present_choices(self, lines: Iterable[str]) -> list[DialogueChoice]:
        """Parse choice markup lines and keep the choices whose conditions pass."""
        choices = []
        for line in lines:
            choice = parse_choice_markup(line)
            if choice is None:
                continue
            if self.is_choice_available(choice):
                choices.append(choice)
            else:
                logger.debug("Choice %r hidden by condition %r", choice.text, choice.condition)
        return choices

    def submit_dialogue_choice(self, effect_spec: str) -> ChoiceEffect:
        """Parse an effect spec and apply it once."""
        return self._apply_effect(parse_effects(effect_spec))

    def commit_choice(self, choice: DialogueChoice | str) -> ChoiceEffect | None:
        """
        Commit a presented choice.

        Accepts a DialogueChoice or raw choice markup. Returns the applied
        effect, or None when the choice's condition does not pass.
        """
        if isinstance(choice, str):
            parsed = parse_choice_markup(choice)
            if parsed is None:
                raise ValueError(f"No choice markup in {choice!r}")
            choice = parsed
        if not self.is_choice_available(choice):
            logger.info("Choice %r is not available", choice.text)
            return None
        return self._apply_effect(choice.effect)

    def _apply_effect(self, effect: ChoiceEffect) -> ChoiceEffect:
        for stat, delta in effect.stat_deltas().items():
            self.status.change(stat, delta)
        for track, delta in effect.relationship_deltas().items():
            self.status.change_relationship(track, delta)
        self.bus.publish(EventName.DIALOGUE_CHOICE, {"effect": effect.to_dict()})
        return effect

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def evaluate_ending(self) -> EndingOutcome:
        return evaluate_ending(
            day=self.clock.day,
            hope=self.status.get(Stat.HOPE),
            corruption=self.status.get(Stat.CORRUPTION),
            sister_relation=self.status.get_relationship(Relationship.SISTER),
            unlocked_count=self.memories.unlocked_count,
        )

    def get_status_report(self) -> StatusReport:
        relationships = self.status.relationships()
        return StatusReport(
            day=self.clock.day,
            phase=self.clock.phase,
            time=self.clock.remaining,
            max_time=self.clock.max_time,
            fatigue=self.status.get(Stat.FATIGUE),
            corruption=self.status.get(Stat.CORRUPTION),
            hope=self.status.get(Stat.HOPE),
            relationships=(
                relationships[Relationship.SISTER.value],
                relationships[Relationship.NPC.value],
                relationships[Relationship.TOWER.value],
            ),
            unlocked_memory_ids=self.memories.all_unlocked(),
            active_memory_id=self.memories.active_memory_id,
            counters=RunCounters(**self.counters.to_dict()),
            ending=self.ending,
        )

    def drain_notifications(self) -> list[str]:
        """Return queued notifications and clear the queue."""
        drained, self._notifications = self._notifications, []
        return drained

    @property
    def pending_notifications(self) -> list[str]:
        return list(self._notifications)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def synchronize(self) -> list[str]:
        """Consistency pass: re-clamp anything found out of range. Idempotent."""
        repaired = self.status.repair()
        if repaired:
            logger.warning("Consistency pass repaired: %s", ", ".join(repaired))
        return repaired

    def reset(self) -> None:
        """Restore the configured starting state without publishing."""
        self.status.reset()
        self.clock.load(1, Phase.MORNING, self.clock.max_time)
        self.memories.reset()
        self.counters = RunCounters()
        self.ending = None
        self.command_history = []
        self._notifications = []

    # ------------------------------------------------------------------
    # Command dispatch
    # ------------------------------------------------------------------

    def apply(self, command: Command) -> CommandResult:
        """
        Apply a command object.

        Never raises for bad input: coercion errors become INVALID_COMMAND
        failures. Runs the consistency pass after every command.
        """
        handler = self._get_handler(command.command_type)
        if not handler:
            return CommandResult.failure(
                f"No handler for command type: {command.command_type}",
                error_code="NO_HANDLER",
            )

        events: list[str] = []
        observer = lambda name, payload: events.append(name)  # noqa: E731
        notice_mark = len(self._notifications)
        self.bus.observe(observer)
        try:
            value = handler(command.params)
        except (KeyError, TypeError, ValueError) as e:
            return CommandResult.failure(_describe(e), error_code="INVALID_COMMAND")
        except Exception as e:
            logger.exception("Command %s failed", command.command_type.value)
            return CommandResult.failure(str(e), error_code="HANDLER_ERROR")
        finally:
            self.bus.unobserve(observer)

        if command.command_type is not CommandType.RESET:
            self.synchronize()
            self.command_history.append(command)

        return CommandResult.ok(
            self.get_status_report(),
            events=events,
            notifications=self._notifications[notice_mark:],
            ending=self.ending,
            value=_plain(value),
        )

    def _get_handler(self, command_type: CommandType) -> Callable[[dict[str, Any]], Any] | None:
        handlers: dict[CommandType, Callable[[dict[str, Any]], Any]] = {
            CommandType.ADVANCE_DAY: lambda p: self.advance_day(),
            CommandType.SET_PHASE: lambda p: self.set_phase(p["phase"]),
            CommandType.CONSUME_TIME: lambda p: self.consume_time(int(p["amount"])),
            CommandType.ADD_TIME: lambda p: self.add_time(int(p["amount"])),
            CommandType.SET_TIME: lambda p: self.set_time(int(p["value"])),
            CommandType.RESET_DAILY_TIME: lambda p: self.reset_daily_time(),
            CommandType.CHANGE_STAT: lambda p: self.change_stat(p["stat"], int(p["delta"])),
            CommandType.SET_STAT: lambda p: self.set_stat(p["stat"], int(p["value"])),
            CommandType.CHANGE_RELATIONSHIP: lambda p: self.change_relationship(p["track"], int(p["delta"])),
            CommandType.SET_RELATIONSHIP: lambda p: self.set_relationship(p["track"], int(p["value"])),
            CommandType.START_MEMORY: lambda p: self.start_memory(p["memory_id"]),
            CommandType.UNLOCK_MEMORY: lambda p: self.unlock_memory(p["memory_id"]),
            CommandType.APPEND_MEMORY_TEXT: lambda p: self.append_memory_text(p.get("memory_id"), p["value"]),
            CommandType.APPEND_MEMORY_PORTRAIT: lambda p: self.append_memory_portrait(p.get("memory_id"), p["value"]),
            CommandType.APPEND_MEMORY_BACKGROUND: lambda p: self.append_memory_background(p.get("memory_id"), p["value"]),
            CommandType.SUBMIT_DIALOGUE_CHOICE: lambda p: self.submit_dialogue_choice(p.get("effect_spec", "")),
            CommandType.COMMIT_CHOICE: self._handle_commit_choice,
            CommandType.EVALUATE_ENDING: lambda p: self.evaluate_ending(),
            CommandType.SYNCHRONIZE: lambda p: self.synchronize(),
            CommandType.RESET: lambda p: self.reset(),
        }
        return handlers.get(command_type)

    def _handle_commit_choice(self, params: dict[str, Any]) -> ChoiceEffect:
        effect = self.commit_choice(str(params["markup"]))
        if effect is None:
            raise ValueError("Choice is not available in the current state")
        return effect

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> RunState:
        """Capture the full run state."""
        return RunState(
            day=self.clock.day,
            phase=self.clock.phase,
            remaining=self.clock.remaining,
            max_time=self.clock.max_time,
            stats=self.status.stats(),
            relationships=self.status.relationships(),
            memories=[Memory.from_dict(m.to_dict()) for m in self.memories.memories()],
            active_memory_id=self.memories.active_memory_id,
            counters=RunCounters(**self.counters.to_dict()),
            ending=self.ending,
        )

    def restore(self, state: RunState) -> None:
        """Replace the run with a snapshot. Publishes nothing."""
        self.clock.max_time = state.max_time
        self.clock.load(state.day, state.phase, state.remaining)
        self.status.load(state.stats, state.relationships)
        self.memories.load(
            [Memory.from_dict(m.to_dict()) for m in state.memories],
            state.active_memory_id,
        )
        self.counters = RunCounters(**state.counters.to_dict())
        self.ending = state.ending
        self._notifications = []

    def to_json(self) -> str:
        return dumps(self.snapshot())

    @classmethod
    def from_json(
        cls,
        text: str,
        config: EngineConfig | None = None,
        rng: random.Random | None = None,
    ) -> Orchestrator:
        run = cls(config=config, rng=rng)
        run.restore(loads(text))
        return run


def _memory_id(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _describe(error: Exception) -> str:
    if isinstance(error, KeyError):
        return f"Missing parameter: {error.args[0]}"
    return str(error)


def _plain(value: Any) -> Any:
    """Reduce a handler's return value to JSON-friendly data."""
    if isinstance(value, (Phase, EndingOutcome)):
        return value.value
    if isinstance(value, (ChoiceEffect, Memory)):
        return value.to_dict()
    return value
