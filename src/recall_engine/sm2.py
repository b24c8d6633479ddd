"""SM-2 spaced repetition algorithm."""
import math
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Optional

from recall_engine.config import (
    FAILED_EASE_PENALTY, MAX_QUALITY, MIN_EASE_FACTOR, MIN_QUALITY, PASSING_QUALITY,
)
from recall_engine.errors import InvalidQuality
from recall_engine.models import ReviewSchedule, ScheduleUpdate

QUALITY_LABELS = ["Blackout", "Wrong", "Hard", "Good", "Easy", "Perfect"]


def validate_quality(quality) -> int:
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQuality(quality)
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise InvalidQuality(quality)
    return quality


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def advance(
    quality: int,
    ease_factor: float,
    interval: int,
    repetitions: int,
) -> ScheduleUpdate:
    """Calculate next review parameters using SM-2.

    Args:
        quality: Rating 0-5 (0=complete blackout, 5=perfect)
        ease_factor: Current ease factor (minimum 1.3)
        interval: Current interval in days
        repetitions: Number of consecutive correct reviews

    Returns:
        ScheduleUpdate with the new ease factor, interval and repetitions.

    Raises:
        InvalidQuality: quality is not an integer in 0-5.
    """
    validate_quality(quality)

    if quality < PASSING_QUALITY:
        # Incorrect: reset
        new_ef = max(MIN_EASE_FACTOR, round(ease_factor - FAILED_EASE_PENALTY, 2))
        return ScheduleUpdate(ease_factor=new_ef, interval=1, repetitions=0)

    miss = MAX_QUALITY - quality
    new_ef = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
    new_ef = max(MIN_EASE_FACTOR, round(new_ef, 2))

    if repetitions == 0:
        new_interval = 1
    elif repetitions == 1:
        new_interval = 6
    else:
        new_interval = _round_half_up(interval * new_ef)

    return ScheduleUpdate(
        ease_factor=new_ef,
        interval=new_interval,
        repetitions=repetitions + 1,
    )


def create_schedule(card_id: int, now: Optional[datetime] = None) -> ReviewSchedule:
    """Default schedule for a new card, due immediately."""
    return ReviewSchedule(card_id=card_id, due_at=now or datetime.now(timezone.utc))


def apply_review(schedule: ReviewSchedule, quality: int, reviewed_at: datetime) -> ReviewSchedule:
    """Return the schedule that follows ``schedule`` after one review."""
    update = advance(
        quality=quality,
        ease_factor=schedule.ease_factor,
        interval=schedule.interval,
        repetitions=schedule.repetitions,
    )
    return replace(
        schedule,
        ease_factor=update.ease_factor,
        interval=update.interval,
        repetitions=update.repetitions,
        last_reviewed_at=reviewed_at,
        due_at=reviewed_at + timedelta(days=update.interval),
    )


def quality_label(quality: int) -> str:
    if isinstance(quality, int) and MIN_QUALITY <= quality <= MAX_QUALITY:
        return QUALITY_LABELS[quality]
    return "Unknown"
