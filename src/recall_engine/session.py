"""Review session state machine: show a card, reveal it, rate it, move on."""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Sequence

import structlog

from recall_engine.config import PASSING_QUALITY
from recall_engine.errors import OutOfOrderOperation, PersistenceFailure, StaleSchedule, UnknownCard
from recall_engine.models import Flashcard, ReviewEvent, ReviewSchedule, SessionStats
from recall_engine.sm2 import apply_review, validate_quality

logger = structlog.get_logger()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class CardPrompt:
    """What the learner sees before reveal: the front only."""
    card_id: int
    front: str
    position: int
    total: int
    has_hint: bool


@dataclass(frozen=True)
class RateResult:
    schedule: ReviewSchedule
    next_card: Optional[CardPrompt]
    completed: bool
    stats: SessionStats


class ReviewSession:
    """Walks an ordered queue of cards for one learner and one deck.

    Not safe for concurrent use: one caller drives one session.
    """

    def __init__(
        self,
        cards: Sequence[Flashcard],
        store,
        deck_title: str = "",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.cards = list(cards)
        self.store = store
        self.deck_title = deck_title
        self.clock = clock or utc_now
        self.state = SessionState.NOT_STARTED
        self.index = 0
        self.qualities: list[int] = []
        self._shown_at: Optional[datetime] = None
        self._response_ms: Optional[int] = None
        self._prior: Optional[ReviewSchedule] = None
        self._stored: Optional[ReviewSchedule] = None

    @property
    def total(self) -> int:
        return len(self.cards)

    @property
    def revealed(self) -> bool:
        return self._response_ms is not None

    @property
    def current(self) -> Optional[CardPrompt]:
        if self.state != SessionState.ACTIVE:
            return None
        card = self.cards[self.index]
        return CardPrompt(
            card_id=card.id,
            front=card.front,
            position=self.index + 1,
            total=self.total,
            has_hint=bool(card.hint),
        )

    @property
    def stats(self) -> SessionStats:
        reviewed = len(self.qualities)
        correct = sum(1 for q in self.qualities if q >= PASSING_QUALITY)
        return SessionStats(
            total=self.total,
            reviewed=reviewed,
            correct=correct,
            incorrect=reviewed - correct,
            average_quality=sum(self.qualities) / reviewed if reviewed else 0.0,
        )

    def _require_active(self, operation: str) -> Flashcard:
        if self.state != SessionState.ACTIVE:
            raise OutOfOrderOperation(operation, self.state.value)
        return self.cards[self.index]

    def _show(self, index: int) -> None:
        self.index = index
        self._shown_at = self.clock()
        self._response_ms = None
        self._prior = self._stored = None

    def _complete(self) -> None:
        self.state = SessionState.COMPLETED
        stats = self.stats
        logger.info("session_completed",
            deck_title=self.deck_title,
            total=stats.total,
            reviewed=stats.reviewed,
            correct=stats.correct,
            average_quality=round(stats.average_quality, 2),
        )

    def start(self) -> Optional[CardPrompt]:
        if self.state != SessionState.NOT_STARTED:
            raise OutOfOrderOperation("start", self.state.value)
        logger.info("session_started", deck_title=self.deck_title, total=self.total)
        if not self.cards:
            self._complete()
            return None
        self.state = SessionState.ACTIVE
        self._show(0)
        return self.current

    def hint(self) -> Optional[str]:
        return self._require_active("show hint").hint

    def reveal(self) -> tuple[str, Optional[str]]:
        card = self._require_active("reveal")
        if self._response_ms is None:
            elapsed = self.clock() - self._shown_at
            self._response_ms = max(0, int(elapsed.total_seconds() * 1000))
            logger.debug("card_revealed", card_id=card.id, response_ms=self._response_ms)
        return card.back, card.hint

    def rate(self, quality: int) -> RateResult:
        card = self._require_active("rate")
        if not self.revealed:
            raise OutOfOrderOperation("rate before reveal", self.state.value)
        validate_quality(quality)

        # Keep the pre-review schedule so a retry after a failed save starts from the same state
        if self._prior is None:
            try:
                loaded = self.store.load_schedule(card.id)
            except Exception as exc:
                logger.warning("review_load_failed", card_id=card.id, error=str(exc))
                raise PersistenceFailure(card.id, exc) from exc
            if loaded is None:
                raise UnknownCard(card.id)
            self._prior = self._stored = loaded

        reviewed_at = self.clock()
        updated = apply_review(self._prior, quality, reviewed_at)
        event = ReviewEvent(
            card_id=card.id,
            quality=quality,
            response_ms=self._response_ms,
            reviewed_at=reviewed_at,
        )
        try:
            self.store.save_schedule(updated, expected=self._stored)
            self._stored = updated
            self.store.append_review_event(event)
        except StaleSchedule as exc:
            # Another review got there first; the retry must start from the fresh row
            self._prior = self._stored = None
            logger.warning("review_conflict", card_id=card.id, quality=quality)
            raise PersistenceFailure(card.id, exc) from exc
        except Exception as exc:
            logger.warning("review_persist_failed", card_id=card.id, quality=quality, error=str(exc))
            raise PersistenceFailure(card.id, exc) from exc

        self.qualities.append(quality)
        logger.info("review_recorded",
            card_id=card.id,
            quality=quality,
            response_ms=self._response_ms,
            interval=updated.interval,
            repetitions=updated.repetitions,
            ease_factor=updated.ease_factor,
        )

        if self.index + 1 < self.total:
            self._show(self.index + 1)
        else:
            self._complete()

        return RateResult(
            schedule=updated,
            next_card=self.current,
            completed=self.state == SessionState.COMPLETED,
            stats=self.stats,
        )

    def abandon(self) -> SessionStats:
        if self.state in (SessionState.COMPLETED, SessionState.ABANDONED):
            raise OutOfOrderOperation("abandon", self.state.value)
        self.state = SessionState.ABANDONED
        stats = self.stats
        logger.info("session_abandoned",
            deck_title=self.deck_title,
            total=stats.total,
            reviewed=stats.reviewed,
        )
        return stats
