"""Tests for data model classes."""
from dataclasses import FrozenInstanceError

import pytest

from recall_engine.errors import (
    EngineError, InvalidQuality, OutOfOrderOperation, PersistenceFailure, UnknownCard,
)
from recall_engine.models import Flashcard, ReviewSchedule, SessionStats
from tests.conftest import T0


def test_flashcard_default_hint():
    f = Flashcard(id=1, deck_id=1, front="Q?", back="A")
    assert f.hint is None


def test_review_schedule_defaults():
    s = ReviewSchedule(card_id=1, due_at=T0)
    assert s.ease_factor == 2.5
    assert s.interval == 0
    assert s.repetitions == 0
    assert s.last_reviewed_at is None


def test_review_schedule_is_immutable():
    s = ReviewSchedule(card_id=1, due_at=T0)
    with pytest.raises(FrozenInstanceError):
        s.repetitions = 3


def test_session_stats_values():
    stats = SessionStats(total=3, reviewed=2, correct=1, incorrect=1, average_quality=3.5)
    assert stats.reviewed == 2
    assert stats.average_quality == 3.5


def test_errors_share_a_base():
    for error in (InvalidQuality(9), OutOfOrderOperation("rate", "completed"),
                  UnknownCard(4), PersistenceFailure(4, OSError("disk full"))):
        assert isinstance(error, EngineError)


def test_error_messages_carry_context():
    assert "9" in str(InvalidQuality(9))
    assert "rate" in str(OutOfOrderOperation("rate", "completed"))
    assert UnknownCard(4).card_id == 4
    failure = PersistenceFailure(4, OSError("disk full"))
    assert "disk full" in str(failure)
    assert isinstance(failure.cause, OSError)
