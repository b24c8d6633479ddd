# tests/test_sm2.py
from datetime import timedelta

import pytest

from recall_engine.errors import InvalidQuality
from recall_engine.sm2 import advance, apply_review, create_schedule, quality_label
from tests.conftest import T0


def test_sm2_first_review_correct():
    """First correct answer: interval=1, repetitions=1."""
    result = advance(quality=4, ease_factor=2.5, interval=0, repetitions=0)
    assert result.interval == 1
    assert result.repetitions == 1
    assert result.ease_factor == 2.5


def test_sm2_second_review_correct():
    """Second correct answer: interval=6."""
    result = advance(quality=5, ease_factor=2.5, interval=6, repetitions=1)
    assert result.ease_factor == 2.6
    assert result.interval == 6
    assert result.repetitions == 2


def test_sm2_third_review_correct():
    """Third+ correct: interval grows by the ease factor."""
    result = advance(quality=5, ease_factor=2.6, interval=6, repetitions=2)
    assert result.interval == 16
    assert result.repetitions == 3


def test_sm2_quality_four_keeps_ease():
    result = advance(quality=4, ease_factor=2.5, interval=6, repetitions=2)
    assert result.ease_factor == 2.5
    assert result.interval == 15


def test_sm2_quality_three_lowers_ease():
    result = advance(quality=3, ease_factor=2.5, interval=6, repetitions=2)
    assert result.ease_factor == 2.36
    assert result.repetitions == 3


def test_sm2_interval_grows_by_updated_ease():
    """The multiplier is the ease after this review: 6 * 2.36 = 14.16, not 6 * 2.5 = 15."""
    result = advance(quality=3, ease_factor=2.5, interval=6, repetitions=2)
    assert result.ease_factor == 2.36
    assert result.interval == 14


def test_sm2_incorrect_resets():
    result = advance(quality=0, ease_factor=2.5, interval=16, repetitions=3)
    assert result.ease_factor == 2.3
    assert result.interval == 1
    assert result.repetitions == 0


@pytest.mark.parametrize("quality", [0, 1, 2])
def test_sm2_every_failing_quality_takes_same_penalty(quality):
    result = advance(quality=quality, ease_factor=2.0, interval=30, repetitions=5)
    assert result.ease_factor == 1.8
    assert result.interval == 1
    assert result.repetitions == 0


def test_sm2_ease_factor_minimum():
    """Ease factor never drops below 1.3, however many failures."""
    ef = 2.5
    for _ in range(20):
        ef = advance(quality=0, ease_factor=ef, interval=1, repetitions=0).ease_factor
        assert ef >= 1.3
    assert ef == 1.3


def test_sm2_hard_success_respects_floor():
    result = advance(quality=3, ease_factor=1.3, interval=10, repetitions=4)
    assert result.ease_factor == 1.3
    assert result.interval == 13


def test_sm2_intervals_never_shrink_on_perfect_recall():
    ef, interval, reps = 2.5, 0, 0
    intervals = []
    for _ in range(10):
        update = advance(quality=5, ease_factor=ef, interval=interval, repetitions=reps)
        ef, interval, reps = update.ease_factor, update.interval, update.repetitions
        intervals.append(interval)
    grown = intervals[1:]
    assert grown == sorted(grown)
    assert intervals[:2] == [1, 6]


def test_sm2_is_deterministic():
    assert advance(4, 2.2, 9, 3) == advance(4, 2.2, 9, 3)


@pytest.mark.parametrize("quality", [-1, 6, 10, 2.5, "3", None, True])
def test_sm2_rejects_invalid_quality(quality):
    with pytest.raises(InvalidQuality):
        advance(quality=quality, ease_factor=2.5, interval=0, repetitions=0)


def test_invalid_quality_is_value_error():
    with pytest.raises(ValueError):
        advance(quality=7, ease_factor=2.5, interval=0, repetitions=0)


def test_create_schedule_is_due_immediately():
    schedule = create_schedule(42, now=T0)
    assert schedule.card_id == 42
    assert schedule.due_at == T0
    assert schedule.ease_factor == 2.5
    assert schedule.interval == 0
    assert schedule.repetitions == 0
    assert schedule.last_reviewed_at is None


def test_apply_review_sets_due_from_review_time():
    schedule = create_schedule(1, now=T0)
    reviewed_at = T0 + timedelta(hours=3)
    updated = apply_review(schedule, 4, reviewed_at)
    assert updated.last_reviewed_at == reviewed_at
    assert updated.due_at == reviewed_at + timedelta(days=1)
    assert updated.card_id == 1
    # Input schedule is untouched
    assert schedule.repetitions == 0


def test_apply_review_failure_resets_repetitions():
    schedule = apply_review(create_schedule(1, now=T0), 5, T0)
    schedule = apply_review(schedule, 5, T0 + timedelta(days=1))
    failed = apply_review(schedule, 1, T0 + timedelta(days=7))
    assert failed.repetitions == 0
    assert failed.due_at == T0 + timedelta(days=8)


def test_quality_labels():
    assert quality_label(0) == "Blackout"
    assert quality_label(3) == "Good"
    assert quality_label(5) == "Perfect"
    assert quality_label(9) == "Unknown"
