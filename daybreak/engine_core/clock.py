"""
Time Clock - Day/phase progression with a per-phase time budget.

State machine:
    (day, Morning) -> (day, Day) -> (day, Evening) -> (day + 1, Morning)

Transitions happen only through set_phase() and advance_day(). Depleting
the time budget drives the cycle forward. Exceeding the day limit does not
halt the clock; it publishes dayLimitExceeded for whoever evaluates endings.

The clock knows nothing about fatigue, hope or endings. Phase-entry
effects are reaction rules registered on the bus by the orchestrator.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum

from .events import EventBus, EventName
from .status import UnknownStatError
from ..log import get_logger

logger = get_logger(__name__)


class Phase(IntEnum):
    """Daily sub-periods, numbered as the renderer numbers them."""
    MORNING = 0
    DAY = 1
    EVENING = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def key(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: int | str | Phase) -> Phase:
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise UnknownStatError(f"Unknown phase: {value}") from None
        text = str(value).strip()
        if text.isdigit():
            return cls.parse(int(text))
        try:
            return cls[text.upper()]
        except KeyError:
            raise UnknownStatError(f"Unknown phase: {value!r}") from None


# Depletion policy: phase -> phase entered when the budget runs out.
# Evening has no entry; depleting it advances the day.
_NEXT_PHASE = {
    Phase.MORNING: Phase.DAY,
    Phase.DAY: Phase.EVENING,
}


@dataclass(frozen=True)
class DayState:
    """Position in the day cycle."""
    day: int
    phase: Phase


class TimeClock:
    """
    Day counter, phase and time budget for one run.

    Usage:
        clock = TimeClock(bus, max_time=10, max_days=30)
        clock.consume(4)        # publishes timeConsumed
        clock.consume(6)        # depleted: Morning -> Day, budget reset
    """

    def __init__(
        self,
        bus: EventBus,
        max_time: int = 10,
        max_days: int = 30,
        warning_threshold: int = 3,
    ):
        if max_time <= 0:
            raise ValueError("max_time must be > 0")
        self.bus = bus
        self.max_time = max_time
        self.max_days = max_days
        self.warning_threshold = warning_threshold
        self._day = 1
        self._phase = Phase.MORNING
        self._remaining = max_time

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def day(self) -> int:
        return self._day

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def state(self) -> DayState:
        return DayState(day=self._day, phase=self._phase)

    @property
    def days_exceeded(self) -> bool:
        return self._day > self.max_days

    def time_fraction(self) -> float:
        """Remaining budget as a fraction of max, for gauges."""
        return self._remaining / self.max_time

    # ------------------------------------------------------------------
    # Budget
    # ------------------------------------------------------------------

    def consume(self, amount: int) -> int:
        """
        Spend time. Never drives the budget below zero.

        Publishes timeConsumed, then timeDepleted and the depletion
        transition when the budget reaches zero. Returns the remaining
        budget after any transition.
        """
        amount = self._non_negative(amount, "consume")
        self._set_remaining(max(0, self._remaining - amount))
        self.bus.publish(EventName.TIME_CONSUMED, {
            "amount": amount,
            "remaining": self._remaining,
        })

        if self._remaining == 0:
            depleted_phase = self._phase
            self.bus.publish(EventName.TIME_DEPLETED, {
                "day": self._day,
                "phase": depleted_phase.value,
            })
            self._on_depleted(depleted_phase)

        return self._remaining

    def add(self, amount: int) -> int:
        """Give time back. Never exceeds max."""
        amount = self._non_negative(amount, "add")
        return self._set_remaining(min(self.max_time, self._remaining + amount))

    def set(self, value: int) -> int:
        """Set the budget, clamped to [0, max]. Does not trigger depletion."""
        return self._set_remaining(max(0, min(self.max_time, int(value))))

    def reset_daily(self) -> int:
        return self._set_remaining(self.max_time)

    def _set_remaining(self, value: int) -> int:
        self._remaining = value
        self.bus.publish(EventName.TIME_CHANGED, {
            "remaining": value,
            "max": self.max_time,
        })
        if 0 < value <= self.warning_threshold:
            self.bus.publish(EventName.TIME_LOW, {"remaining": value})
        return value

    def _on_depleted(self, phase: Phase) -> None:
        next_phase = _NEXT_PHASE.get(phase)
        if next_phase is None:
            self.advance_day()
            return
        self.set_phase(next_phase)
        self.reset_daily()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def set_phase(self, phase: Phase | int | str) -> Phase:
        """Enter a phase. Publishes phaseChanged{old_phase, new_phase}."""
        new_phase = Phase.parse(phase)
        old_phase = self._phase
        self._phase = new_phase
        self.bus.publish(EventName.PHASE_CHANGED, {
            "old_phase": old_phase.value,
            "new_phase": new_phase.value,
            "day": self._day,
        })
        return new_phase

    def advance_day(self) -> int:
        """
        Move to the next day's Morning with a full budget.

        Publishes phaseChanged, timeChanged, dayAdvanced and, past the
        limit, dayLimitExceeded - in that order.
        """
        self._day += 1
        self.set_phase(Phase.MORNING)
        self.reset_daily()
        self.bus.publish(EventName.DAY_ADVANCED, {"day": self._day})

        if self.days_exceeded:
            logger.info("Day %d exceeds limit of %d", self._day, self.max_days)
            self.bus.publish(EventName.DAY_LIMIT_EXCEEDED, {
                "day": self._day,
                "max_days": self.max_days,
            })

        return self._day

    def load(self, day: int, phase: Phase | int | str, remaining: int) -> None:
        """Restore position without publishing. Values are clamped."""
        self._day = max(1, int(day))
        self._phase = Phase.parse(phase)
        self._remaining = max(0, min(self.max_time, int(remaining)))

    def _non_negative(self, amount: int, operation: str) -> int:
        amount = int(amount)
        if amount < 0:
            logger.warning("Negative amount %d passed to %s; treated as 0", amount, operation)
            return 0
        return amount
