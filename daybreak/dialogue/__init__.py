"""Dialogue - choice effect DSL, gating conditions and markup lint."""

from .effect_dsl import (
    ChoiceEffect,
    DialogueChoice,
    EFFECT_KEYS,
    parse_effects,
    parse_choice_markup,
    format_effect_text,
)
from .conditions import Condition, ConditionSyntaxError, parse_condition, evaluate_condition
from .validation import (
    ValidationResult,
    MarkupValidationError,
    validate_choice_markup,
    validate_script,
)

__all__ = [
    "ChoiceEffect",
    "DialogueChoice",
    "EFFECT_KEYS",
    "parse_effects",
    "parse_choice_markup",
    "format_effect_text",
    "Condition",
    "ConditionSyntaxError",
    "parse_condition",
    "evaluate_condition",
    "ValidationResult",
    "MarkupValidationError",
    "validate_choice_markup",
    "validate_script",
]
