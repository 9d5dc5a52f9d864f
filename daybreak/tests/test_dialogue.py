"""
Tests for dialogue choice markup, effects and conditions.

Tests:
- Effect parsing
- Choice markup
- Condition evaluation and the fail-open policy
- Authoring lint
"""

import pytest

from ..dialogue.effect_dsl import (
    ChoiceEffect,
    DialogueChoice,
    ZERO_EFFECT,
    parse_effects,
    parse_choice_markup,
    format_effect_text,
    tokenize_effects,
)
from ..dialogue.conditions import (
    Condition,
    ConditionSyntaxError,
    parse_condition,
    evaluate_condition,
)
from ..dialogue.validation import (
    MarkupValidationError,
    validate_effect_spec,
    validate_condition,
    validate_choice_markup,
    validate_script,
)
from ..engine_core.status import Stat, Relationship


STATUS = {"hope": 60, "corruption": 20, "fatigue": 10, "sister": 70, "npc": 0, "tower": 5}


class TestParseEffects:
    """key:delta pairs."""

    def test_basic(self):
        effect = parse_effects("hope:+5,corruption:-2")
        assert effect == ChoiceEffect(hope=5, corruption=-2)

    def test_all_keys(self):
        effect = parse_effects("hope:+1,corruption:+2,fatigue:+3,sister:+4,npc:-5,tower:+6")
        assert effect.to_dict() == {
            "hope": 1, "corruption": 2, "fatigue": 3, "sister": 4, "npc": -5, "tower": 6,
        }

    @pytest.mark.parametrize("spec", ["", None, "   ", ","])
    def test_empty_is_zero(self, spec):
        assert parse_effects(spec) == ZERO_EFFECT
        assert parse_effects(spec).is_zero

    def test_unknown_keys_are_skipped(self):
        assert parse_effects("luck:+5,hope:+1") == ChoiceEffect(hope=1)

    @pytest.mark.parametrize("spec", ["hope", "hope:", "hope:+", "hope:abc", ":5", "hope:+5x"])
    def test_malformed_pairs_are_skipped(self, spec):
        assert parse_effects(spec + ",sister:+3") == ChoiceEffect(sister=3)

    @pytest.mark.parametrize("spec", ["hope:+\u00b2", "hope:\u0663", "hope:+1\u00b2"])
    def test_non_ascii_digits_are_skipped(self, spec):
        assert parse_effects(spec + ",sister:+3") == ChoiceEffect(sister=3)
        assert tokenize_effects(spec)[0].error is not None

    def test_oversized_delta_does_not_raise(self):
        effect = parse_effects("hope:+" + "9" * 5000 + ",sister:+3")
        assert effect.sister == 3

    def test_whitespace_and_case(self):
        assert parse_effects(" Hope : +5 , tower:-1 ") == ChoiceEffect(hope=5, tower=-1)

    def test_unsigned_is_positive(self):
        assert parse_effects("hope:7").hope == 7

    def test_last_duplicate_wins(self):
        assert parse_effects("hope:+5,hope:-3").hope == -3

    def test_deltas_skip_zero(self):
        effect = parse_effects("hope:+5,fatigue:+2,npc:-1")

        assert effect.stat_deltas() == {Stat.HOPE: 5, Stat.FATIGUE: 2}
        assert effect.relationship_deltas() == {Relationship.NPC: -1}

    def test_tokenize_reports_errors(self):
        pairs = tokenize_effects("hope:+5,bad")
        assert pairs[0].error is None
        assert pairs[1].error == "expected ':' after key"


class TestEffectText:

    def test_preview(self):
        assert format_effect_text(ChoiceEffect(hope=5, corruption=-2)) == " [Hope +5, Corruption -2]"

    def test_relationships_are_hidden(self):
        assert format_effect_text(ChoiceEffect(sister=10)) == ""

    def test_zero(self):
        assert format_effect_text(ZERO_EFFECT) == ""


class TestChoiceMarkup:
    """\\CHOICE[text|effects|condition]"""

    def test_full_markup(self):
        choice = parse_choice_markup("\\CHOICE[Comfort her|hope:+5,sister:+10|sister>50]")

        assert choice.text == "Comfort her"
        assert choice.effect == ChoiceEffect(hope=5, sister=10)
        assert choice.effect_spec == "hope:+5,sister:+10"
        assert choice.condition == "sister>50"

    def test_text_only(self):
        choice = parse_choice_markup("\\CHOICE[Walk away]")
        assert choice == DialogueChoice(text="Walk away")

    def test_markup_inside_line(self):
        choice = parse_choice_markup("Aria: \\CHOICE[Stay|fatigue:+5] ...")
        assert choice.text == "Stay"
        assert choice.effect.fatigue == 5

    @pytest.mark.parametrize("line", ["Just talking.", "\\CHOICE[unclosed", "\\CHOICE[]"])
    def test_no_markup(self, line):
        assert parse_choice_markup(line) is None

    def test_label(self):
        choice = parse_choice_markup("\\CHOICE[Pray|hope:+5,corruption:-2]")
        assert choice.label() == "Pray [Hope +5, Corruption -2]"
        assert choice.label(show_effects=False) == "Pray"


class TestConditions:
    """stat operator integer."""

    @pytest.mark.parametrize("spec,expected", [
        ("hope>50", True),
        ("hope>60", False),
        ("hope<61", True),
        ("hope>=60", True),
        ("hope<=59", False),
        ("hope=60", True),
        ("hope==60", True),
        ("sister >= 70", True),
        ("Corruption < 20", False),
        ("tower>4", True),
    ])
    def test_operators(self, spec, expected):
        assert evaluate_condition(spec, STATUS) is expected

    @pytest.mark.parametrize("spec", ["", None, "   "])
    def test_empty_is_ungated(self, spec):
        assert evaluate_condition(spec, STATUS, fail_open=False)

    @pytest.mark.parametrize("spec", ["hope", "hope>>5", "hope!=5", "hope>-5", "hope>abc", ">5", "luck>5"])
    def test_fail_open(self, spec):
        assert evaluate_condition(spec, STATUS) is True
        assert evaluate_condition(spec, STATUS, fail_open=False) is False

    @pytest.mark.parametrize("spec", ["hope>\u00b2", "hope>\u0663", "hope>=5\u00b2"])
    def test_non_ascii_digits_fail_open(self, spec):
        assert parse_condition(spec) is None
        assert evaluate_condition(spec, STATUS) is True
        assert evaluate_condition(spec, STATUS, fail_open=False) is False

    def test_oversized_value_does_not_raise(self):
        assert isinstance(evaluate_condition("hope>" + "9" * 5000, STATUS), bool)

    def test_disabled_passes_everything(self):
        assert evaluate_condition("hope>99", STATUS, enabled=False)

    def test_parse(self):
        assert parse_condition("Hope >= 70") == Condition("hope", ">=", 70)
        assert str(Condition("hope", ">=", 70)) == "hope>=70"

    def test_unknown_stat_parses(self):
        condition = parse_condition("luck>5")
        assert condition is not None
        assert not condition.known_stat

    def test_strict_raises(self):
        assert parse_condition("hope>") is None
        with pytest.raises(ConditionSyntaxError):
            parse_condition("hope>", strict=True)


class TestValidation:
    """Authoring lint."""

    def test_clean_effects(self):
        result = validate_effect_spec("hope:+5,corruption:-2")
        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    def test_effect_warnings(self):
        result = validate_effect_spec("luck:+5,hope:5,hope:+1")

        assert result.valid
        assert result.warnings == [
            "Unknown effect key 'luck' is ignored",
            "Effect 'hope:5' has no sign; read as +5",
            "Effect key 'hope' repeats; the last value wins",
        ]

    def test_malformed_effect_is_error(self):
        result = validate_effect_spec("hope:+x")
        assert not result.valid
        assert "hope:+x" in result.errors[0]

    def test_condition_errors(self):
        assert validate_condition("").valid
        assert validate_condition("hope>5").valid
        assert not validate_condition("hope!=5").valid

        unknown = validate_condition("luck>5")
        assert not unknown.valid
        assert "luck" in unknown.errors[0]
        assert "fail-open" in unknown.errors[0]

    def test_choice_markup(self):
        assert validate_choice_markup("No markup here").valid
        assert validate_choice_markup("\\CHOICE[Go|hope:+1|hope>5]").valid
        assert not validate_choice_markup("\\CHOICE[Go|hope:+1").valid
        assert not validate_choice_markup("\\CHOICE[ |hope:+1]").valid

    def test_extra_fields_warn(self):
        result = validate_choice_markup("\\CHOICE[Go|hope:+1|hope>5|extra]")
        assert result.valid
        assert result.warnings == ["Choice has 4 fields; only 3 are read"]

    def test_script_prefixes_line_numbers(self):
        lines = [
            "Narration.",
            "\\CHOICE[Fine|hope:+1]",
            "\\CHOICE[Broken|hope:+1|luck>5]",
        ]
        result = validate_script(lines)

        assert not result.valid
        assert len(result.errors) == 1
        assert result.errors[0].startswith("line 3: ")

    def test_script_reports_non_ascii_digits(self):
        result = validate_script(["\\CHOICE[Go|hope:+\u00b2|hope>\u00b2]"])

        assert not result.valid
        assert len(result.errors) == 2
        assert all(error.startswith("line 1: ") for error in result.errors)

    def test_script_raise_on_error(self):
        with pytest.raises(MarkupValidationError) as exc_info:
            validate_script(["\\CHOICE[unclosed"], raise_on_error=True)
        assert exc_info.value.errors == ["line 1: Choice markup is not closed with ']' or is empty"]
