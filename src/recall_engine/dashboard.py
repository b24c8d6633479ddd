"""Deck statistics derived from scheduling state."""
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from recall_engine.config import (
    MASTERED_MIN_INTERVAL, MASTERED_MIN_REPETITIONS, SECONDS_PER_CARD,
    SETTING_MASTERED_INTERVAL, SETTING_MASTERED_REPETITIONS,
)
from recall_engine.models import DeckStats, ReviewSchedule


@dataclass(frozen=True)
class MasteryPolicy:
    """Thresholds a card must reach on both axes to count as mastered."""
    min_repetitions: int = MASTERED_MIN_REPETITIONS
    min_interval: int = MASTERED_MIN_INTERVAL

    def is_mastered(self, schedule: ReviewSchedule) -> bool:
        return (
            schedule.repetitions >= self.min_repetitions
            and schedule.interval >= self.min_interval
        )


def load_policy(store) -> MasteryPolicy:
    """Build a policy from persisted settings, falling back to the defaults."""
    return MasteryPolicy(
        min_repetitions=int(store.get_setting(
            SETTING_MASTERED_REPETITIONS, str(MASTERED_MIN_REPETITIONS))),
        min_interval=int(store.get_setting(
            SETTING_MASTERED_INTERVAL, str(MASTERED_MIN_INTERVAL))),
    )


def aggregate(
    schedules: Iterable[ReviewSchedule],
    now: datetime,
    policy: MasteryPolicy = MasteryPolicy(),
) -> DeckStats:
    total = due = mastered = new = 0
    ease_sum = 0.0
    for schedule in schedules:
        total += 1
        ease_sum += schedule.ease_factor
        if schedule.due_at <= now:
            due += 1
        if policy.is_mastered(schedule):
            mastered += 1
        if schedule.repetitions == 0:
            new += 1
    return DeckStats(
        total=total,
        due=due,
        mastered=mastered,
        learning=total - mastered,
        new=new,
        average_ease_factor=round(ease_sum / total, 2) if total else 0.0,
    )


def estimate_study_time(card_count: int, seconds_per_card: int = SECONDS_PER_CARD) -> str:
    seconds = card_count * seconds_per_card
    if seconds < 60:
        return f"{seconds}s"
    elif seconds < 3600:
        return f"{round(seconds / 60)} min"
    return f"{round(seconds / 3600)}h"
