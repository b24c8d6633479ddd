from datetime import datetime, timedelta, timezone

import pytest

from recall_engine.db import SQLiteStore

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock the tests move by hand."""

    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now

    def tick(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_recall.db")
    return db_path


@pytest.fixture
def store(tmp_db):
    return SQLiteStore(tmp_db)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def deck(store):
    """A deck with three cards created at T0; the second has a hint."""
    deck_id = store.add_deck("Biology")
    cards = [
        store.add_card(deck_id, "Powerhouse of the cell?", "Mitochondria", now=T0),
        store.add_card(deck_id, "Site of photosynthesis?", "Chloroplast", hint="Green", now=T0),
        store.add_card(deck_id, "Protein factory?", "Ribosome", now=T0),
    ]
    return deck_id, cards
