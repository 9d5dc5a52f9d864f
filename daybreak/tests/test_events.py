"""
Tests for the event bus.

Tests:
- Subscription order
- Handler failure isolation
- Depth-first nested dispatch
"""

import logging

from ..engine_core.events import EventBus


class TestDispatch:
    """Tests for publish/subscribe."""

    def test_handlers_run_in_subscription_order(self, bus):
        calls = []
        bus.subscribe("ping", lambda p: calls.append("a"))
        bus.subscribe("ping", lambda p: calls.append("b"))
        bus.subscribe("ping", lambda p: calls.append("c"))

        assert bus.publish("ping") == 3
        assert calls == ["a", "b", "c"]

    def test_payload_defaults_to_empty_dict(self, bus):
        seen = []
        bus.subscribe("ping", seen.append)
        bus.publish("ping")
        assert seen == [{}]

    def test_publish_without_subscribers(self, bus):
        assert bus.publish("nobody-listens", {"x": 1}) == 0

    def test_duplicate_subscription_ignored(self, bus):
        calls = []

        def handler(payload):
            calls.append(payload)

        bus.subscribe("ping", handler)
        bus.subscribe("ping", handler)
        bus.publish("ping", {"n": 1})

        assert len(calls) == 1
        assert bus.subscriber_count("ping") == 1

    def test_unsubscribe(self, bus):
        calls = []

        def handler(payload):
            calls.append(payload)

        bus.subscribe("ping", handler)
        bus.unsubscribe("ping", handler)
        bus.unsubscribe("ping", handler)  # unknown handler is ignored
        bus.publish("ping")

        assert calls == []

    def test_subscribe_during_dispatch_applies_next_publish(self, bus):
        calls = []

        def late(payload):
            calls.append("late")

        def first(payload):
            calls.append("first")
            bus.subscribe("ping", late)

        bus.subscribe("ping", first)
        bus.publish("ping")
        assert calls == ["first"]

        bus.publish("ping")
        assert calls == ["first", "first", "late"]


class TestFailureIsolation:
    """A raising handler must not block the others."""

    def test_failing_handler_is_skipped(self, bus, caplog):
        calls = []

        def broken(payload):
            raise RuntimeError("boom")

        bus.subscribe("ping", broken)
        bus.subscribe("ping", lambda p: calls.append("after"))

        with caplog.at_level(logging.ERROR, logger="daybreak.engine_core.events"):
            completed = bus.publish("ping")

        assert completed == 1
        assert calls == ["after"]
        assert bus.failures == 1
        assert "broken" in caplog.text
        assert "boom" in caplog.text

    def test_failing_observer_does_not_block_handlers(self, bus):
        calls = []

        def bad_observer(name, payload):
            raise ValueError("observer failed")

        bus.observe(bad_observer)
        bus.subscribe("ping", lambda p: calls.append("handler"))

        assert bus.publish("ping") == 1
        assert calls == ["handler"]


class TestNestedDispatch:
    """Nested publishes complete before the next outer handler."""

    def test_depth_first_order(self, bus):
        order = []

        def outer_a(payload):
            order.append("outer_a")
            bus.publish("inner")

        bus.subscribe("outer", outer_a)
        bus.subscribe("outer", lambda p: order.append("outer_b"))
        bus.subscribe("inner", lambda p: order.append("inner"))

        bus.publish("outer")

        assert order == ["outer_a", "inner", "outer_b"]

    def test_observer_sees_publish_order(self, bus):
        seen = []
        bus.observe(lambda name, payload: seen.append(name))
        bus.subscribe("outer", lambda p: bus.publish("inner"))

        bus.publish("outer")

        assert seen == ["outer", "inner"]

    def test_clear_removes_everything(self):
        bus = EventBus()
        seen = []
        bus.subscribe("ping", seen.append)
        bus.observe(lambda n, p: seen.append(n))

        bus.clear()
        bus.publish("ping")

        assert seen == []
