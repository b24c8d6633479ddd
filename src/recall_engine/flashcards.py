"""Due-card selection over a deck's review schedules."""
from datetime import datetime
from typing import Iterable

from recall_engine.models import ReviewSchedule


def _queue_order(schedule: ReviewSchedule):
    return (schedule.due_at, schedule.card_id)


def select_due(schedules: Iterable[ReviewSchedule], now: datetime, limit: int) -> list:
    """Card ids due at ``now``, most overdue first, at most ``limit`` of them."""
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    due = sorted((s for s in schedules if s.due_at <= now), key=_queue_order)
    return [s.card_id for s in due[:limit]]


def select_study_queue(
    schedules: Iterable[ReviewSchedule],
    now: datetime,
    limit: int,
    include_new: bool = False,
) -> list:
    """Due cards, optionally topped up with cards that have never been passed."""
    schedules = list(schedules)
    queue = select_due(schedules, now, limit)
    if not include_new or len(queue) >= limit:
        return queue
    queued = set(queue)
    fresh = sorted(
        (s for s in schedules if s.repetitions == 0 and s.card_id not in queued),
        key=_queue_order,
    )
    return queue + [s.card_id for s in fresh[: limit - len(queue)]]
