"""Operations the engine exposes to the surrounding system.

Callers are expected to have already checked that the learner may study the
deck; nothing here performs authorization.
"""
from datetime import datetime
from typing import Callable, Iterable, Optional

import structlog

from recall_engine.config import DEFAULT_SESSION_LIMIT
from recall_engine.dashboard import MasteryPolicy, aggregate, load_policy
from recall_engine.errors import UnknownCard
from recall_engine.flashcards import select_study_queue
from recall_engine.models import DeckStats
from recall_engine.session import RateResult, ReviewSession, utc_now
from recall_engine.sm2 import create_schedule

logger = structlog.get_logger()

__all__ = [
    "create_schedule", "get_due_queue", "start_session", "reveal", "rate", "get_deck_stats",
]


def _aware(now: Optional[datetime]) -> datetime:
    if now is None:
        return utc_now()
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError(f"now must be timezone-aware, got naive {now.isoformat()}")
    return now


def get_due_queue(
    store,
    deck_id: int,
    limit: int = DEFAULT_SESSION_LIMIT,
    now: Optional[datetime] = None,
    include_new: bool = False,
) -> list:
    now = _aware(now)
    queue = select_study_queue(store.list_schedules(deck_id), now, limit, include_new=include_new)
    logger.info("due_queue_selected", deck_id=deck_id, limit=limit, size=len(queue))
    return queue


def start_session(
    store,
    queue: Iterable[int],
    deck_title: str = "",
    clock: Optional[Callable[[], datetime]] = None,
) -> ReviewSession:
    """Resolve card ids and start a session on the first card."""
    cards = []
    for card_id in queue:
        card = store.get_card(card_id)
        if card is None:
            raise UnknownCard(card_id)
        cards.append(card)
    session = ReviewSession(cards, store, deck_title=deck_title, clock=clock)
    session.start()
    return session


def reveal(session: ReviewSession) -> tuple:
    return session.reveal()


def rate(session: ReviewSession, quality: int) -> RateResult:
    return session.rate(quality)


def get_deck_stats(
    store,
    deck_id: int,
    now: Optional[datetime] = None,
    policy: Optional[MasteryPolicy] = None,
) -> DeckStats:
    return aggregate(
        store.list_schedules(deck_id),
        _aware(now),
        policy or load_policy(store),
    )
