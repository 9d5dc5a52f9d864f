"""
Ending Evaluation - Classifies a run into one of a closed set of endings.

Rules are checked top-down and the first match wins. BAD has no
predicate: it is the fallback, so evaluation is total.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


class EndingOutcome(Enum):
    TRUE = "true"
    GOOD = "good"
    BAD = "bad"

    @property
    def label(self) -> str:
        return f"{self.name.capitalize()} Ending"


@dataclass(frozen=True)
class EndingRule:
    """
    Predicate for one ending.

    Bounds on day, corruption and unlocked count are inclusive/strict as
    written in the game's ending table: day <= max_day, hope > min_hope,
    corruption < max_corruption, sister > min_sister, memories >= min_memories.
    """
    outcome: EndingOutcome
    max_day: int
    min_hope: int
    max_corruption: int
    min_sister: int
    min_memories: int

    def matches(
        self,
        day: int,
        hope: int,
        corruption: int,
        sister_relation: int,
        unlocked_count: int,
    ) -> bool:
        return (
            day <= self.max_day
            and hope > self.min_hope
            and corruption < self.max_corruption
            and sister_relation > self.min_sister
            and unlocked_count >= self.min_memories
        )


ENDING_RULES: tuple[EndingRule, ...] = (
    EndingRule(EndingOutcome.TRUE, max_day=20, min_hope=70, max_corruption=30, min_sister=80, min_memories=15),
    EndingRule(EndingOutcome.GOOD, max_day=30, min_hope=50, max_corruption=60, min_sister=60, min_memories=10),
)


def evaluate_ending(
    day: int,
    hope: int,
    corruption: int,
    sister_relation: int,
    unlocked_count: int,
    rules: tuple[EndingRule, ...] = ENDING_RULES,
) -> EndingOutcome:
    """Pure evaluation over accumulated state."""
    for rule in rules:
        if rule.matches(day, hope, corruption, sister_relation, unlocked_count):
            return rule.outcome
    return EndingOutcome.BAD
