"""Data classes for the review engine domain model."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from recall_engine.config import DEFAULT_EASE_FACTOR


@dataclass(frozen=True)
class Flashcard:
    id: int
    deck_id: int
    front: str
    back: str
    hint: Optional[str] = None


@dataclass(frozen=True)
class ScheduleUpdate:
    """Output of one scheduler step."""
    ease_factor: float
    interval: int
    repetitions: int


@dataclass(frozen=True)
class ReviewSchedule:
    card_id: int
    due_at: datetime
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval: int = 0
    repetitions: int = 0
    last_reviewed_at: Optional[datetime] = None


@dataclass(frozen=True)
class ReviewEvent:
    card_id: int
    quality: int
    response_ms: int
    reviewed_at: datetime


@dataclass(frozen=True)
class DeckStats:
    total: int
    due: int
    mastered: int
    learning: int
    new: int = 0
    average_ease_factor: float = 0.0


@dataclass(frozen=True)
class SessionStats:
    total: int
    reviewed: int
    correct: int
    incorrect: int
    average_quality: float
