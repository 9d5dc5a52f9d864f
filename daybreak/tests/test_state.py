"""
Tests for the persisted-state codec.
"""

import json

import pytest

from ..engine_core.clock import Phase
from ..engine_core.ending import EndingOutcome
from ..engine_core.memory import Memory
from ..engine_core.state import (
    RunState,
    RunCounters,
    StateDecodeError,
    SCHEMA_VERSION,
    dumps,
    loads,
)


def _payload(**overrides):
    data = {
        "schema_version": SCHEMA_VERSION,
        "clock": {"day": 4, "phase": "day", "remaining": 6, "max": 10},
        "status": {"fatigue": 30, "corruption": 12, "hope": 64},
        "relationships": {"sister": 40, "npc": 5, "tower": 0},
        "memories": [
            {"id": 2, "title": "Memory 2", "portrait": "", "background": "",
             "text_lines": ["Rain."], "unlocked": True},
        ],
        "active_memory_id": 2,
        "counters": {"total_actions": 9, "total_dialogues": 3, "total_memories": 1},
        "ending": None,
    }
    data.update(overrides)
    return data


class TestDecode:

    def test_from_dict(self):
        state = RunState.from_dict(_payload())

        assert state.day == 4
        assert state.phase == Phase.DAY
        assert state.remaining == 6
        assert state.stats == {"fatigue": 30, "corruption": 12, "hope": 64}
        assert state.memories == [Memory(memory_id=2, text_lines=["Rain."], unlocked=True)]
        assert state.counters == RunCounters(9, 3, 1)
        assert state.ending is None

    def test_values_are_clamped(self):
        state = RunState.from_dict(_payload(
            clock={"day": 0, "phase": "evening", "remaining": 40, "max": 10},
            status={"fatigue": -20, "hope": 500},
        ))

        assert state.day == 1
        assert state.remaining == 10
        assert state.stats == {"fatigue": 0, "corruption": 0, "hope": 100}

    def test_ending(self):
        assert RunState.from_dict(_payload(ending="good")).ending is EndingOutcome.GOOD

    @pytest.mark.parametrize("data", [
        [],
        "state",
        _payload(schema_version=2),
        {k: v for k, v in _payload().items() if k != "schema_version"},
        {k: v for k, v in _payload().items() if k != "memories"},
        _payload(clock={"phase": "noon"}),
        _payload(clock="day 1"),
        _payload(memories=[{"title": "no id"}]),
        _payload(ending="secret"),
        _payload(status={"hope": "lots"}),
    ])
    def test_malformed_payloads(self, data):
        with pytest.raises(StateDecodeError):
            RunState.from_dict(data)

    def test_decode_error_is_value_error(self):
        with pytest.raises(ValueError):
            loads("{not json")

    def test_missing_sections_are_named(self):
        data = _payload()
        del data["clock"]
        del data["status"]

        with pytest.raises(StateDecodeError, match="clock, status"):
            RunState.from_dict(data)


class TestEncode:

    def test_dumps_is_canonical(self):
        text = dumps(RunState.from_dict(_payload()))

        assert text.endswith("}\n")
        assert text == json.dumps(json.loads(text), sort_keys=True, indent=2, ensure_ascii=False) + "\n"

    def test_dumps_loads_dumps(self):
        text = dumps(RunState.from_dict(_payload(ending="true")))
        assert dumps(loads(text)) == text

    def test_memories_are_sorted(self):
        state = RunState(memories=[Memory(memory_id=5), Memory(memory_id=1)])
        ids = [m["id"] for m in state.to_dict()["memories"]]
        assert ids == [1, 5]

    def test_shape(self):
        data = RunState().to_dict()

        assert data["schema_version"] == 1
        assert data["clock"] == {"day": 1, "phase": "morning", "remaining": 10, "max": 10}
        assert set(data["status"]) == {"fatigue", "corruption", "hope"}
        assert set(data["relationships"]) == {"sister", "npc", "tower"}

    def test_non_ascii_text_survives(self):
        state = RunState(memories=[Memory(memory_id=1, text_lines=["Ariaの記憶"])])
        text = dumps(state)

        assert "Ariaの記憶" in text
        assert loads(text).memories[0].text_lines == ["Ariaの記憶"]
