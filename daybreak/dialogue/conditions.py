"""
Choice Conditions - Gating expressions for dialogue choices.

Grammar:

    condition := stat operator integer
    stat      := hope | corruption | fatigue | sister | npc | tower
    operator  := ">" | "<" | ">=" | "<=" | "=" | "=="

e.g. "hope>50", "sister >= 70".

Failure policy: a condition that cannot be parsed, or names an unknown
stat, evaluates to `fail_open` (True by default, so the choice is shown).
An empty condition means the choice is not gated.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping
import operator as op

from ..log import get_logger

logger = get_logger(__name__)

CONDITION_STATS = ("hope", "corruption", "fatigue", "sister", "npc", "tower")

_OPERATORS = {
    ">": op.gt,
    "<": op.lt,
    ">=": op.ge,
    "<=": op.le,
    "=": op.eq,
    "==": op.eq,
}
_OPERATOR_CHARS = set("<>=!")


@dataclass(frozen=True)
class Condition:
    """A parsed condition."""
    stat: str
    operator: str
    value: int

    @property
    def known_stat(self) -> bool:
        return self.stat in CONDITION_STATS

    def test(self, current: int) -> bool:
        return _OPERATORS[self.operator](current, self.value)

    def __str__(self) -> str:
        return f"{self.stat}{self.operator}{self.value}"


class ConditionSyntaxError(ValueError):
    """Raised by parse_condition(strict=True) for malformed conditions."""


def parse_condition(spec: str, strict: bool = False) -> Condition | None:
    """
    Parse a condition string.

    Returns None for malformed input, or raises ConditionSyntaxError when
    strict is set. Unknown stat names parse successfully; evaluation
    decides what to do with them.
    """
    try:
        return _parse(spec)
    except ConditionSyntaxError:
        if strict:
            raise
        return None


def _parse(spec: str) -> Condition:
    text = (spec or "").strip()
    pos = 0

    while pos < len(text) and (text[pos].isalnum() or text[pos] == "_"):
        pos += 1
    stat = text[:pos].lower()
    if not stat:
        raise ConditionSyntaxError(f"Missing stat name in {spec!r}")

    while pos < len(text) and text[pos].isspace():
        pos += 1

    op_start = pos
    while pos < len(text) and text[pos] in _OPERATOR_CHARS:
        pos += 1
    operator = text[op_start:pos]
    if operator not in _OPERATORS:
        raise ConditionSyntaxError(f"Unsupported operator {operator!r} in {spec!r}")

    value_text = text[pos:].strip()
    if not value_text or not all("0" <= c <= "9" for c in value_text):
        raise ConditionSyntaxError(f"Expected integer in {spec!r}")
    try:
        value = int(value_text)
    except ValueError as e:
        raise ConditionSyntaxError(f"Invalid integer in {spec!r}: {e}") from e

    return Condition(stat=stat, operator=operator, value=value)


def evaluate_condition(
    spec: str | None,
    context: Mapping[str, int],
    *,
    fail_open: bool = True,
    enabled: bool = True,
) -> bool:
    """
    Evaluate a condition against a status snapshot.

    Args:
        spec: Condition string; empty or None means ungated
        context: Current values keyed by stat name
        fail_open: Result for malformed conditions and unknown stats
        enabled: When False every condition passes

    Returns:
        Whether the gated choice is available
    """
    if not enabled:
        return True
    if not spec or not spec.strip():
        return True

    condition = parse_condition(spec)
    if condition is None:
        logger.debug("Malformed condition %r evaluates to %s", spec, fail_open)
        return fail_open

    if not condition.known_stat or condition.stat not in context:
        logger.debug("Unknown stat in condition %r evaluates to %s", spec, fail_open)
        return fail_open

    return condition.test(int(context[condition.stat]))
