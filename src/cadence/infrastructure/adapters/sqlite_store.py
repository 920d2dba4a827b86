"""
SQLite store — Infrastructure adapter persisting cards and review history.

Implements CardStore and ReviewHistoryStore over a single SQLite database.
Memory-state writes are a conditional UPDATE, so two racing reviews of the
same card cannot both apply.
"""

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path

from cadence.domain.errors import CardNotFoundError, ConcurrentReviewError, DeckNotFoundError
from cadence.domain.models import Card, MemoryState, ReviewOutcome
from cadence.domain.ports import CardStore, ReviewHistoryStore

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS decks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id INTEGER NOT NULL,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS cards (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    deck_id INTEGER NOT NULL,
    front TEXT NOT NULL,
    back TEXT NOT NULL,
    ease_factor REAL NOT NULL DEFAULT 2.5,
    interval INTEGER NOT NULL DEFAULT 0,
    repetitions INTEGER NOT NULL DEFAULT 0,
    due_at TEXT NOT NULL,
    FOREIGN KEY (deck_id) REFERENCES decks(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS review_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    card_id INTEGER NOT NULL,
    quality INTEGER NOT NULL,
    ease_factor REAL NOT NULL,
    interval INTEGER NOT NULL,
    reviewed_at TEXT NOT NULL,
    FOREIGN KEY (card_id) REFERENCES cards(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_cards_due ON cards(deck_id, due_at);
CREATE INDEX IF NOT EXISTS idx_decks_owner ON decks(owner_id);
CREATE INDEX IF NOT EXISTS idx_history_card ON review_history(card_id, reviewed_at);
"""

CARD_SELECT = """
SELECT c.id, c.deck_id, d.owner_id, c.front, c.back,
       c.ease_factor, c.interval, c.repetitions, c.due_at, d.name
FROM cards c
JOIN decks d ON c.deck_id = d.id
"""


def _to_db(ts: datetime) -> str:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.isoformat()


def _row_to_card(row: sqlite3.Row) -> Card:
    return Card(
        card_id=row["id"],
        deck_id=row["deck_id"],
        owner_id=row["owner_id"],
        front=row["front"],
        back=row["back"],
        due_at=datetime.fromisoformat(row["due_at"]),
        memory=MemoryState(
            ease_factor=row["ease_factor"],
            interval=row["interval"],
            repetitions=row["repetitions"],
        ),
        deck_name=row["name"],
    )


class SqliteStore(CardStore, ReviewHistoryStore):
    """
    Card and history store backed by SQLite.

    Usable as a context manager; the schema is created on open.
    """

    def __init__(self, db_path: Path | str = ":memory:"):
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.executescript(SCHEMA)
        logger.debug(f"Opened card store at {db_path}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self._conn.close()

    def add_deck(self, owner_id: int, name: str) -> int:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "INSERT INTO decks (owner_id, name) VALUES (?, ?)", (owner_id, name)
            )
        return cur.lastrowid

    def add_card(
        self,
        deck_id: int,
        front: str,
        back: str,
        due_at: datetime | None = None,
        memory: MemoryState | None = None,
        owner_id: int | None = None,
    ) -> int:
        """
        Create a card in a deck.

        Raises:
            DeckNotFoundError: If the deck is missing, or `owner_id` is given
                and does not own it.
        """
        memory = memory or MemoryState()
        due_at = due_at or datetime.now(timezone.utc)
        with self._lock, self._conn:
            deck = self._conn.execute(
                "SELECT owner_id FROM decks WHERE id = ?", (deck_id,)
            ).fetchone()
            if deck is None or (owner_id is not None and deck["owner_id"] != owner_id):
                raise DeckNotFoundError(deck_id)
            cur = self._conn.execute(
                """
                INSERT INTO cards (deck_id, front, back, ease_factor, interval, repetitions, due_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    deck_id,
                    front,
                    back,
                    memory.ease_factor,
                    memory.interval,
                    memory.repetitions,
                    _to_db(due_at),
                ),
            )
        return cur.lastrowid

    def delete_card(self, card_id: int) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM cards WHERE id = ?", (card_id,))

    # --- CardStore ---

    async def get_card(self, card_id: int, owner_id: int) -> Card:
        with self._lock:
            row = self._conn.execute(
                CARD_SELECT + " WHERE c.id = ? AND d.owner_id = ?", (card_id, owner_id)
            ).fetchone()
        if row is None:
            raise CardNotFoundError(card_id)
        return _row_to_card(row)

    async def list_cards(self, owner_id: int, deck_id: int | None = None) -> list[Card]:
        query = CARD_SELECT + " WHERE d.owner_id = ?"
        params: list[int] = [owner_id]
        if deck_id is not None:
            query += " AND c.deck_id = ?"
            params.append(deck_id)

        with self._lock:
            rows = self._conn.execute(query, params).fetchall()
        return [_row_to_card(r) for r in rows]

    async def update_memory_state(
        self,
        card_id: int,
        expected: MemoryState,
        new: MemoryState,
        due_at: datetime,
    ) -> None:
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                UPDATE cards
                SET ease_factor = ?, interval = ?, repetitions = ?, due_at = ?
                WHERE id = ? AND ease_factor = ? AND interval = ? AND repetitions = ?
                """,
                (
                    new.ease_factor,
                    new.interval,
                    new.repetitions,
                    _to_db(due_at),
                    card_id,
                    expected.ease_factor,
                    expected.interval,
                    expected.repetitions,
                ),
            )
            if cur.rowcount == 1:
                return
            exists = self._conn.execute(
                "SELECT 1 FROM cards WHERE id = ?", (card_id,)
            ).fetchone()

        if exists is None:
            raise CardNotFoundError(card_id)
        raise ConcurrentReviewError(card_id)

    # --- ReviewHistoryStore ---

    async def append(self, outcome: ReviewOutcome) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT INTO review_history (card_id, quality, ease_factor, interval, reviewed_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    outcome.card_id,
                    outcome.quality,
                    outcome.ease_factor,
                    outcome.interval,
                    _to_db(outcome.reviewed_at),
                ),
            )

    async def list_for_card(self, card_id: int, limit: int = 50) -> list[ReviewOutcome]:
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT card_id, quality, ease_factor, interval, reviewed_at
                FROM review_history
                WHERE card_id = ?
                ORDER BY reviewed_at DESC, id DESC
                LIMIT ?
                """,
                (card_id, limit),
            ).fetchall()
        return [
            ReviewOutcome(
                card_id=r["card_id"],
                quality=r["quality"],
                ease_factor=r["ease_factor"],
                interval=r["interval"],
                reviewed_at=datetime.fromisoformat(r["reviewed_at"]),
            )
            for r in rows
        ]
