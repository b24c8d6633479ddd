"""SQLite storage for cards, review schedules and review events."""
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

import structlog

from recall_engine.config import DEFAULT_DB_PATH
from recall_engine.errors import StaleSchedule
from recall_engine.models import Flashcard, ReviewEvent, ReviewSchedule
from recall_engine.sm2 import create_schedule

logger = structlog.get_logger()

SCHEMA = """
CREATE TABLE IF NOT EXISTS decks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS flashcards (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    deck_id INTEGER NOT NULL REFERENCES decks(id) ON DELETE CASCADE,
    front TEXT NOT NULL,
    back TEXT NOT NULL,
    hint TEXT
);

CREATE TABLE IF NOT EXISTS review_schedules (
    card_id INTEGER PRIMARY KEY REFERENCES flashcards(id) ON DELETE CASCADE,
    ease_factor REAL NOT NULL DEFAULT 2.5,
    interval INTEGER NOT NULL DEFAULT 0,
    repetitions INTEGER NOT NULL DEFAULT 0,
    due_at TEXT NOT NULL,
    last_reviewed_at TEXT
);

CREATE TABLE IF NOT EXISTS review_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    card_id INTEGER NOT NULL REFERENCES flashcards(id) ON DELETE CASCADE,
    quality INTEGER NOT NULL,
    response_ms INTEGER NOT NULL,
    reviewed_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""


class ReviewStore(Protocol):
    """Persistence the engine consumes. Writes must be atomic per card."""

    def get_card(self, card_id: int) -> Optional[Flashcard]: ...

    def load_schedule(self, card_id: int) -> Optional[ReviewSchedule]: ...

    def save_schedule(self, schedule: ReviewSchedule,
                      expected: Optional[ReviewSchedule] = None) -> None: ...

    def append_review_event(self, event: ReviewEvent) -> None: ...

    def list_schedules(self, deck_id: int) -> list: ...

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]: ...


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def _to_text(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def _from_text(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def _row_to_schedule(row: sqlite3.Row) -> ReviewSchedule:
    return ReviewSchedule(
        card_id=row["card_id"],
        ease_factor=row["ease_factor"],
        interval=row["interval"],
        repetitions=row["repetitions"],
        due_at=_from_text(row["due_at"]),
        last_reviewed_at=_from_text(row["last_reviewed_at"]),
    )


def _row_to_card(row: sqlite3.Row) -> Flashcard:
    return Flashcard(
        id=row["id"], deck_id=row["deck_id"], front=row["front"],
        back=row["back"], hint=row["hint"],
    )


class SQLiteStore:
    """Reference storage collaborator backed by a single SQLite file."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path
        init_db(db_path)

    # Decks and cards

    def add_deck(self, title: str) -> int:
        conn = get_connection(self.db_path)
        cur = conn.execute("INSERT INTO decks (title) VALUES (?)", (title,))
        conn.commit()
        conn.close()
        return cur.lastrowid

    def get_deck_title(self, deck_id: int) -> Optional[str]:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT title FROM decks WHERE id = ?", (deck_id,)).fetchone()
        conn.close()
        return row["title"] if row else None

    def list_decks(self) -> list[dict]:
        conn = get_connection(self.db_path)
        rows = conn.execute(
            """SELECT d.id, d.title, COUNT(f.id) as card_count
            FROM decks d LEFT JOIN flashcards f ON f.deck_id = d.id
            GROUP BY d.id ORDER BY d.id"""
        ).fetchall()
        conn.close()
        return [dict(r) for r in rows]

    def add_card(self, deck_id: int, front: str, back: str, hint: Optional[str] = None,
                 now: Optional[datetime] = None) -> Flashcard:
        """Insert a card and its initial, immediately due schedule in one transaction."""
        conn = get_connection(self.db_path)
        try:
            with conn:
                cur = conn.execute(
                    "INSERT INTO flashcards (deck_id, front, back, hint) VALUES (?, ?, ?, ?)",
                    (deck_id, front, back, hint),
                )
                self._insert_schedule(conn, create_schedule(cur.lastrowid, now=now))
                logger.info("schedule_created", card_id=cur.lastrowid, deck_id=deck_id)
        finally:
            conn.close()
        return Flashcard(id=cur.lastrowid, deck_id=deck_id, front=front, back=back, hint=hint)

    def delete_card(self, card_id: int) -> None:
        conn = get_connection(self.db_path)
        conn.execute("DELETE FROM flashcards WHERE id = ?", (card_id,))
        conn.commit()
        conn.close()

    def get_card(self, card_id: int) -> Optional[Flashcard]:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT * FROM flashcards WHERE id = ?", (card_id,)).fetchone()
        conn.close()
        return _row_to_card(row) if row else None

    # Schedules and events

    @staticmethod
    def _insert_schedule(conn: sqlite3.Connection, schedule: ReviewSchedule) -> None:
        conn.execute(
            """INSERT INTO review_schedules
            (card_id, ease_factor, interval, repetitions, due_at, last_reviewed_at)
            VALUES (?, ?, ?, ?, ?, ?)""",
            (schedule.card_id, schedule.ease_factor, schedule.interval,
             schedule.repetitions, _to_text(schedule.due_at),
             _to_text(schedule.last_reviewed_at)),
        )

    def load_schedule(self, card_id: int) -> Optional[ReviewSchedule]:
        conn = get_connection(self.db_path)
        row = conn.execute(
            "SELECT * FROM review_schedules WHERE card_id = ?", (card_id,)
        ).fetchone()
        conn.close()
        return _row_to_schedule(row) if row else None

    def save_schedule(self, schedule: ReviewSchedule,
                      expected: Optional[ReviewSchedule] = None) -> None:
        """Write ``schedule``.

        With ``expected``, the row is only replaced if it still holds that
        schedule; otherwise StaleSchedule is raised and nothing is written.
        """
        values = (schedule.ease_factor, schedule.interval, schedule.repetitions,
                  _to_text(schedule.due_at), _to_text(schedule.last_reviewed_at),
                  schedule.card_id)
        conn = get_connection(self.db_path)
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            if expected is None:
                cur = conn.execute(
                    """UPDATE review_schedules
                    SET ease_factor=?, interval=?, repetitions=?, due_at=?, last_reviewed_at=?
                    WHERE card_id=?""",
                    values,
                )
                if cur.rowcount == 0:
                    self._insert_schedule(conn, schedule)
            else:
                cur = conn.execute(
                    """UPDATE review_schedules
                    SET ease_factor=?, interval=?, repetitions=?, due_at=?, last_reviewed_at=?
                    WHERE card_id=? AND ease_factor=? AND interval=? AND repetitions=?
                    AND last_reviewed_at IS ?""",
                    values + (expected.ease_factor, expected.interval, expected.repetitions,
                              _to_text(expected.last_reviewed_at)),
                )
                if cur.rowcount == 0:
                    conn.execute("ROLLBACK")
                    raise StaleSchedule(schedule.card_id)
            conn.execute("COMMIT")
        except sqlite3.Error:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()
        logger.debug("schedule_saved", card_id=schedule.card_id, interval=schedule.interval)

    def append_review_event(self, event: ReviewEvent) -> None:
        conn = get_connection(self.db_path)
        try:
            conn.execute(
                "INSERT INTO review_events (card_id, quality, response_ms, reviewed_at) VALUES (?, ?, ?, ?)",
                (event.card_id, event.quality, event.response_ms, _to_text(event.reviewed_at)),
            )
            conn.commit()
        finally:
            conn.close()

    def list_schedules(self, deck_id: int) -> list[ReviewSchedule]:
        conn = get_connection(self.db_path)
        rows = conn.execute(
            """SELECT s.* FROM review_schedules s
            JOIN flashcards f ON s.card_id = f.id
            WHERE f.deck_id = ?""",
            (deck_id,),
        ).fetchall()
        conn.close()
        return [_row_to_schedule(r) for r in rows]

    def list_events(self, card_id: int) -> list[ReviewEvent]:
        conn = get_connection(self.db_path)
        rows = conn.execute(
            "SELECT * FROM review_events WHERE card_id = ? ORDER BY id", (card_id,)
        ).fetchall()
        conn.close()
        return [
            ReviewEvent(
                card_id=r["card_id"], quality=r["quality"],
                response_ms=r["response_ms"], reviewed_at=_from_text(r["reviewed_at"]),
            )
            for r in rows
        ]

    # Settings

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
        conn.close()
        return row["value"] if row else default

    def set_setting(self, key: str, value: str) -> None:
        conn = get_connection(self.db_path)
        conn.execute(
            "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
            (key, value, value),
        )
        conn.commit()
        conn.close()
