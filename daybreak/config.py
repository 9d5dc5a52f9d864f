"""
Engine Configuration.

Policy constants for one run. Every Orchestrator receives its own
EngineConfig; components never read configuration from module globals.

Sources, in order of precedence:
1. Explicit keyword arguments / from_dict()
2. Environment variables (DAYBREAK_*)
3. JSON file named by DAYBREAK_CONFIG
4. Defaults below
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping
import json
import os


_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        return default
    if value is None:
        return default
    return bool(value)


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass
class EngineConfig:
    """
    Policy constants for a single run.

    Defaults mirror the shipped game's plugin parameters.
    """
    # Clock
    max_days: int = 30
    max_time_per_day: int = 10
    time_warning_threshold: int = 3

    # Starting values
    initial_fatigue: int = 0
    initial_corruption: int = 0
    initial_hope: int = 50
    initial_relationship: int = 0

    # Status thresholds
    fatigue_penalty_threshold: int = 50
    corruption_threshold: int = 80
    hope_bonus_threshold: int = 70

    # Memories
    memory_catalogue_size: int = 20
    memory_trigger_chance: float = 0.3

    # Dialogue policy
    conditional_dialogue: bool = True
    condition_fail_open: bool = True

    # Diagnostics / presentation hooks
    debug: bool = False
    notifications: bool = True

    def __post_init__(self):
        self.clamp()

    def clamp(self) -> EngineConfig:
        """Coerce fields into usable ranges. Returns self."""
        self.max_days = max(1, _as_int(self.max_days, 30))
        self.max_time_per_day = max(1, _as_int(self.max_time_per_day, 10))
        self.time_warning_threshold = max(0, _as_int(self.time_warning_threshold, 3))
        self.initial_fatigue = _clamp_stat(self.initial_fatigue, 0)
        self.initial_corruption = _clamp_stat(self.initial_corruption, 0)
        self.initial_hope = _clamp_stat(self.initial_hope, 50)
        self.initial_relationship = _clamp_stat(self.initial_relationship, 0)
        # Penalty rate divides by (100 - threshold)
        self.fatigue_penalty_threshold = min(99, _clamp_stat(self.fatigue_penalty_threshold, 50))
        self.corruption_threshold = _clamp_stat(self.corruption_threshold, 80)
        self.hope_bonus_threshold = _clamp_stat(self.hope_bonus_threshold, 70)
        self.memory_catalogue_size = max(1, _as_int(self.memory_catalogue_size, 20))
        self.memory_trigger_chance = min(1.0, max(0.0, _as_float(self.memory_trigger_chance, 0.3)))
        self.conditional_dialogue = _as_bool(self.conditional_dialogue, True)
        self.condition_fail_open = _as_bool(self.condition_fail_open, True)
        self.debug = _as_bool(self.debug, False)
        self.notifications = _as_bool(self.notifications, True)
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> EngineConfig:
        """Create config from a dictionary. Unknown keys are ignored."""
        if not isinstance(data, Mapping):
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def with_overrides(self, **overrides: Any) -> EngineConfig:
        """Return a copy with some fields replaced."""
        data = self.to_dict()
        data.update(overrides)
        return EngineConfig.from_dict(data)

    @classmethod
    def load(cls, config_path: str | Path) -> EngineConfig:
        """
        Load configuration from a JSON file.

        A missing file yields the defaults.
        """
        path = Path(config_path)
        if not path.exists():
            return cls()
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_dict(data)

    def save(self, config_path: str | Path) -> Path:
        path = Path(config_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, sort_keys=True)
            f.write("\n")
        return path

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """
        Build config from DAYBREAK_* environment variables.

        DAYBREAK_CONFIG names a JSON file loaded first; the remaining
        variables override individual fields.
        """
        env = os.environ if environ is None else environ

        config_file = env.get("DAYBREAK_CONFIG")
        base = cls.load(config_file) if config_file else cls()
        data = base.to_dict()

        for env_key, field_name in _ENV_FIELDS.items():
            if env_key in env:
                data[field_name] = env[env_key]

        return cls.from_dict(data)


_ENV_FIELDS = {
    "DAYBREAK_MAX_DAYS": "max_days",
    "DAYBREAK_MAX_TIME": "max_time_per_day",
    "DAYBREAK_MEMORY_CHANCE": "memory_trigger_chance",
    "DAYBREAK_CONDITIONAL_DIALOGUE": "conditional_dialogue",
    "DAYBREAK_CONDITION_FAIL_OPEN": "condition_fail_open",
    "DAYBREAK_DEBUG": "debug",
    "DAYBREAK_NOTIFICATIONS": "notifications",
}


def _clamp_stat(value: Any, default: int) -> int:
    return max(0, min(100, _as_int(value, default)))


def log_level_from_env(environ: Mapping[str, str] | None = None) -> str:
    """Log level named by DAYBREAK_LOG_LEVEL, defaulting to INFO."""
    env = os.environ if environ is None else environ
    level = str(env.get("DAYBREAK_LOG_LEVEL", "INFO")).upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
        return "INFO"
    return level
