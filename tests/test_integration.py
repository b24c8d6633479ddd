# tests/test_integration.py
"""End-to-end test of the core workflow."""
from datetime import timedelta

from recall_engine.db import SQLiteStore
from recall_engine.engine import get_deck_stats, get_due_queue, rate, reveal, start_session
from tests.conftest import FakeClock, T0


def study_all(store, deck_id, clock, quality):
    queue = get_due_queue(store, deck_id, now=clock())
    session = start_session(store, queue, clock=clock)
    while session.current is not None:
        reveal(session)
        rate(session, quality)
    return session.stats


def test_deck_graduates_to_mastered(tmp_db):
    """Review a deck on schedule with perfect recall until every card is mastered."""
    store = SQLiteStore(tmp_db)
    clock = FakeClock(T0)
    deck_id = store.add_deck("Capitals")
    for country, city in [("France", "Paris"), ("Japan", "Tokyo"), ("Kenya", "Nairobi")]:
        store.add_card(deck_id, f"Capital of {country}?", city, now=T0)

    assert get_deck_stats(store, deck_id, now=clock()).mastered == 0

    # Day 0, day 1, day 7: intervals 1 then 6 then 17
    stats = study_all(store, deck_id, clock, 5)
    assert stats.reviewed == 3
    clock.tick(days=1)
    study_all(store, deck_id, clock, 5)
    clock.tick(days=6)
    study_all(store, deck_id, clock, 5)

    schedule = store.load_schedule(1)
    assert schedule.repetitions == 3
    assert schedule.interval == 17
    assert get_deck_stats(store, deck_id, now=clock()).mastered == 0

    clock.tick(days=17)
    study_all(store, deck_id, clock, 4)
    deck_stats = get_deck_stats(store, deck_id, now=clock())
    assert deck_stats.mastered == 3
    assert deck_stats.learning == 0
    assert deck_stats.due == 0

    # A blackout sends a card back to learning
    clock.tick(days=store.load_schedule(1).interval)
    queue = get_due_queue(store, deck_id, limit=1, now=clock())
    session = start_session(store, queue, clock=clock)
    reveal(session)
    result = rate(session, 0)
    assert result.schedule.repetitions == 0
    assert result.schedule.due_at == clock() + timedelta(days=1)
    assert get_deck_stats(store, deck_id, now=clock()).mastered == 2
    assert len(store.list_events(queue[0])) == 5
