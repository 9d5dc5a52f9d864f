"""
Tests for ending evaluation.
"""

import pytest

from ..engine_core.ending import evaluate_ending, EndingOutcome, EndingRule


class TestEvaluateEnding:
    """First matching rule wins; BAD is the fallback."""

    def test_true_ending(self):
        assert evaluate_ending(day=18, hope=75, corruption=20, sister_relation=85, unlocked_count=15) is EndingOutcome.TRUE

    def test_good_ending(self):
        assert evaluate_ending(day=25, hope=60, corruption=40, sister_relation=70, unlocked_count=12) is EndingOutcome.GOOD

    def test_bad_ending(self):
        assert evaluate_ending(day=31, hope=60, corruption=40, sister_relation=70, unlocked_count=12) is EndingOutcome.BAD

    def test_true_qualifies_before_good(self):
        # Satisfies both rules
        assert evaluate_ending(1, 100, 0, 100, 20) is EndingOutcome.TRUE

    @pytest.mark.parametrize("kwargs", [
        dict(day=21, hope=75, corruption=20, sister_relation=85, unlocked_count=15),
        dict(day=18, hope=70, corruption=20, sister_relation=85, unlocked_count=15),
        dict(day=18, hope=75, corruption=30, sister_relation=85, unlocked_count=15),
        dict(day=18, hope=75, corruption=20, sister_relation=80, unlocked_count=15),
        dict(day=18, hope=75, corruption=20, sister_relation=85, unlocked_count=14),
    ])
    def test_true_boundaries_fall_through_to_good(self, kwargs):
        assert evaluate_ending(**kwargs) is EndingOutcome.GOOD

    @pytest.mark.parametrize("kwargs", [
        dict(day=30, hope=51, corruption=59, sister_relation=61, unlocked_count=10),
    ])
    def test_good_inclusive_bounds(self, kwargs):
        assert evaluate_ending(**kwargs) is EndingOutcome.GOOD

    @pytest.mark.parametrize("kwargs", [
        dict(day=25, hope=50, corruption=40, sister_relation=70, unlocked_count=12),
        dict(day=25, hope=60, corruption=60, sister_relation=70, unlocked_count=12),
        dict(day=25, hope=60, corruption=40, sister_relation=60, unlocked_count=12),
        dict(day=25, hope=60, corruption=40, sister_relation=70, unlocked_count=9),
    ])
    def test_good_boundaries_fall_through_to_bad(self, kwargs):
        assert evaluate_ending(**kwargs) is EndingOutcome.BAD

    def test_fresh_run_is_bad(self):
        assert evaluate_ending(1, 50, 0, 0, 0) is EndingOutcome.BAD

    def test_custom_rules(self):
        lenient = (EndingRule(EndingOutcome.GOOD, max_day=99, min_hope=0, max_corruption=101, min_sister=-1, min_memories=0),)
        assert evaluate_ending(1, 1, 0, 0, 0, rules=lenient) is EndingOutcome.GOOD


class TestOutcome:

    def test_labels(self):
        assert EndingOutcome.TRUE.label == "True Ending"
        assert EndingOutcome.GOOD.label == "Good Ending"
        assert EndingOutcome.BAD.label == "Bad Ending"

    def test_values(self):
        assert EndingOutcome("good") is EndingOutcome.GOOD
