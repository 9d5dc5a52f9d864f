"""
Markup Validation - Authoring lint for dialogue choice markup.

The runtime never rejects markup: malformed effects fall back to zero and
malformed conditions fall back to the fail-open policy. This module is
where authors find out about those fallbacks before players do.

Checks:
1. Choice markup is closed and has text
2. Effect pairs are well-formed and use known keys
3. Conditions parse and reference known stats
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable

from .effect_dsl import CHOICE_OPEN, CHOICE_SEPARATOR, extract_choice_body, tokenize_effects
from .conditions import parse_condition, ConditionSyntaxError


class MarkupValidationError(Exception):
    """Raised when validation fails and raise_on_error is set."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Markup validation failed with {len(errors)} error(s)")


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def extend(self, other: ValidationResult, prefix: str = "") -> None:
        self.errors.extend(prefix + e for e in other.errors)
        self.warnings.extend(prefix + w for w in other.warnings)
        self.valid = not self.errors


def validate_effect_spec(spec: str) -> ValidationResult:
    errors: list[str] = []
    warnings: list[str] = []
    seen: set[str] = set()

    for pair in tokenize_effects(spec):
        if pair.error:
            errors.append(f"Malformed effect pair '{pair.raw.strip()}': {pair.error}")
            continue
        if not pair.known:
            warnings.append(f"Unknown effect key '{pair.key}' is ignored")
            continue
        if not pair.signed:
            warnings.append(f"Effect '{pair.raw.strip()}' has no sign; read as +{pair.delta}")
        if pair.key in seen:
            warnings.append(f"Effect key '{pair.key}' repeats; the last value wins")
        seen.add(pair.key)

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


def validate_condition(spec: str) -> ValidationResult:
    errors: list[str] = []
    warnings: list[str] = []

    if spec.strip():
        try:
            condition = parse_condition(spec, strict=True)
        except ConditionSyntaxError as e:
            errors.append(f"{e}; the choice is shown only through fail-open")
        else:
            if not condition.known_stat:
                errors.append(
                    f"Condition '{spec.strip()}' references unknown stat "
                    f"'{condition.stat}'; the choice is shown only through fail-open"
                )

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


def validate_choice_markup(line: str) -> ValidationResult:
    """
    Validate one line of \\CHOICE[text|effects|condition] markup.

    Lines without choice markup are valid.
    """
    result = ValidationResult(valid=True)
    if CHOICE_OPEN not in line:
        return result

    body = extract_choice_body(line)
    if body is None:
        result.errors.append("Choice markup is not closed with ']' or is empty")
        result.valid = False
        return result

    parts = body.split(CHOICE_SEPARATOR)
    if not parts[0].strip():
        result.errors.append("Choice has no text")
    if len(parts) > 3:
        result.warnings.append(f"Choice has {len(parts)} fields; only 3 are read")

    if len(parts) > 1:
        result.extend(validate_effect_spec(parts[1]))
    if len(parts) > 2:
        result.extend(validate_condition(parts[2]))

    result.valid = not result.errors
    return result


def validate_script(lines: Iterable[str], raise_on_error: bool = False) -> ValidationResult:
    """
    Validate every line of a dialogue script.

    Messages are prefixed with 1-based line numbers. Raises
    MarkupValidationError when raise_on_error is set and errors exist.
    """
    result = ValidationResult(valid=True)
    for number, line in enumerate(lines, start=1):
        result.extend(validate_choice_markup(line), prefix=f"line {number}: ")

    if raise_on_error and result.errors:
        raise MarkupValidationError(result.errors)
    return result
