"""
Pytest fixtures for Daybreak tests.
"""

import logging
import random

import pytest

from ..config import EngineConfig
from ..log import ROOT_LOGGER
from ..engine_core.events import EventBus
from ..engine_core.orchestrator import Orchestrator


class FixedRandom(random.Random):
    """Random whose draws always return the same value."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


class EventRecorder:
    """Bus observer that records (name, payload) in publish order."""

    def __init__(self, bus: EventBus):
        self.events: list[tuple[str, dict]] = []
        bus.observe(self)

    def __call__(self, name: str, payload: dict):
        self.events.append((name, dict(payload)))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payloads(self, name: str) -> list[dict]:
        return [payload for event_name, payload in self.events if event_name == name]


@pytest.fixture(autouse=True)
def reset_daybreak_logger():
    """Undo setup_logging() calls made by CLI and API tests."""
    logger = logging.getLogger(ROOT_LOGGER)
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def config() -> EngineConfig:
    """Default policy constants."""
    return EngineConfig()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(bus: EventBus) -> EventRecorder:
    return EventRecorder(bus)


@pytest.fixture
def make_run():
    """
    Factory for orchestrators.

    roll fixes every memory-offer draw; the default never offers.
    Keyword arguments override EngineConfig fields.
    """
    def _make(roll: float = 0.99, **overrides) -> Orchestrator:
        return Orchestrator(config=EngineConfig(**overrides), rng=FixedRandom(roll))
    return _make


@pytest.fixture
def run(make_run) -> Orchestrator:
    """A fresh run that never offers memories."""
    return make_run()


@pytest.fixture
def run_recorder(run: Orchestrator) -> EventRecorder:
    return EventRecorder(run.bus)
