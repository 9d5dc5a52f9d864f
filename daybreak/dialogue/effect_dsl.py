"""
Effect DSL - Choice effects and choice markup.

Effect grammar (comma separated pairs):

    effects := pair ("," pair)*
    pair    := key ":" ["+" | "-"] digits
    key     := hope | corruption | fatigue | sister | npc | tower

Examples:
    "hope:+5,corruption:-2"
    "sister:+10"

Parsing never fails. Pairs with unknown keys or a malformed shape are
skipped; an empty spec is the all-zero effect. When a key repeats, the
last pair wins.

Choice markup, as authored in dialogue scripts:

    \\CHOICE[text|effects|condition]

where effects and condition are optional.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict

from ..engine_core.status import Stat, Relationship
from ..log import get_logger

logger = get_logger(__name__)

EFFECT_KEYS = ("hope", "corruption", "fatigue", "sister", "npc", "tower")

CHOICE_OPEN = "\\CHOICE["
CHOICE_CLOSE = "]"
CHOICE_SEPARATOR = "|"


@dataclass(frozen=True)
class ChoiceEffect:
    """Signed deltas applied once when a choice is committed."""
    hope: int = 0
    corruption: int = 0
    fatigue: int = 0
    sister: int = 0
    npc: int = 0
    tower: int = 0

    @property
    def is_zero(self) -> bool:
        return not any(self.to_dict().values())

    def to_dict(self) -> dict[str, int]:
        return asdict(self)

    def stat_deltas(self) -> dict[Stat, int]:
        """Non-zero resource deltas, in application order."""
        deltas = {
            Stat.HOPE: self.hope,
            Stat.CORRUPTION: self.corruption,
            Stat.FATIGUE: self.fatigue,
        }
        return {stat: delta for stat, delta in deltas.items() if delta}

    def relationship_deltas(self) -> dict[Relationship, int]:
        """Non-zero relationship deltas, in application order."""
        deltas = {
            Relationship.SISTER: self.sister,
            Relationship.NPC: self.npc,
            Relationship.TOWER: self.tower,
        }
        return {track: delta for track, delta in deltas.items() if delta}


ZERO_EFFECT = ChoiceEffect()


@dataclass(frozen=True)
class EffectPair:
    """One scanned `key:delta` pair. error is set when the pair is unusable."""
    raw: str
    key: str = ""
    delta: int = 0
    signed: bool = False
    error: str | None = None

    @property
    def known(self) -> bool:
        return self.key in EFFECT_KEYS


def _skip_spaces(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _scan_pair(raw: str) -> EffectPair:
    text = raw.strip()
    pos = 0

    while pos < len(text) and (text[pos].isalnum() or text[pos] == "_"):
        pos += 1
    key = text[:pos]
    if not key:
        return EffectPair(raw=raw, error="missing key")

    pos = _skip_spaces(text, pos)
    if pos >= len(text) or text[pos] != ":":
        return EffectPair(raw=raw, key=key, error="expected ':' after key")
    pos = _skip_spaces(text, pos + 1)

    signed = False
    sign = 1
    if pos < len(text) and text[pos] in "+-":
        signed = True
        sign = -1 if text[pos] == "-" else 1
        pos += 1

    digits_start = pos
    while pos < len(text) and "0" <= text[pos] <= "9":
        pos += 1
    digits = text[digits_start:pos]
    if not digits:
        return EffectPair(raw=raw, key=key, error="expected integer delta")
    if pos != len(text):
        return EffectPair(raw=raw, key=key, error=f"unexpected trailing text {text[pos:]!r}")

    try:
        magnitude = int(digits)
    except ValueError as e:
        return EffectPair(raw=raw, key=key, error=f"invalid integer delta: {e}")

    return EffectPair(raw=raw, key=key.lower(), delta=sign * magnitude, signed=signed)


def tokenize_effects(spec: str | None) -> list[EffectPair]:
    """Split an effect spec into scanned pairs. Blank segments are dropped."""
    if not spec:
        return []
    return [_scan_pair(segment) for segment in spec.split(",") if segment.strip()]


def parse_effects(spec: str | None) -> ChoiceEffect:
    """
    Parse an effect spec into a ChoiceEffect.

    >>> parse_effects("hope:+5,corruption:-2").hope
    5
    """
    values: dict[str, int] = {}
    for pair in tokenize_effects(spec):
        if pair.error:
            logger.debug("Skipping malformed effect pair %r: %s", pair.raw, pair.error)
            continue
        if not pair.known:
            logger.debug("Ignoring unknown effect key %r", pair.key)
            continue
        values[pair.key] = pair.delta
    return ChoiceEffect(**values)


def format_effect_text(effect: ChoiceEffect) -> str:
    """
    Preview suffix appended to a choice label, e.g. " [Hope +5, Corruption -2]".

    Only resources are previewed; relationship shifts stay hidden.
    """
    parts = []
    for label, value in (
        ("Hope", effect.hope),
        ("Corruption", effect.corruption),
        ("Fatigue", effect.fatigue),
    ):
        if value:
            parts.append(f"{label} {value:+d}")
    if not parts:
        return ""
    return " [" + ", ".join(parts) + "]"


@dataclass(frozen=True)
class DialogueChoice:
    """A choice extracted from choice markup."""
    text: str
    effect: ChoiceEffect = field(default_factory=ChoiceEffect)
    effect_spec: str = ""
    condition: str = ""

    def label(self, show_effects: bool = True) -> str:
        if not show_effects:
            return self.text
        return self.text + format_effect_text(self.effect)


def extract_choice_body(line: str) -> str | None:
    """Return the text between \\CHOICE[ and the next ], or None."""
    start = line.find(CHOICE_OPEN)
    if start < 0:
        return None
    body_start = start + len(CHOICE_OPEN)
    end = line.find(CHOICE_CLOSE, body_start)
    if end <= body_start:
        return None
    return line[body_start:end]


def parse_choice_markup(line: str) -> DialogueChoice | None:
    """
    Parse one line of choice markup.

    Returns None when the line holds no choice markup.
    """
    body = extract_choice_body(line)
    if body is None:
        return None

    parts = body.split(CHOICE_SEPARATOR)
    text = parts[0].strip()
    effect_spec = parts[1].strip() if len(parts) > 1 else ""
    condition = parts[2].strip() if len(parts) > 2 else ""

    return DialogueChoice(
        text=text,
        effect=parse_effects(effect_spec),
        effect_spec=effect_spec,
        condition=condition,
    )
