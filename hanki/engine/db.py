"""Database layer for Hanki flashcard application."""

import logging
import sqlite3
import time
import uuid
from pathlib import Path
from typing import Dict, List, Optional

from .models import Card, ReviewState, initial_state, phase_from_record, phase_to_record
from ..utils.study_time import StudyTime

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class Database:
    """SQLite card store for Hanki."""

    def __init__(self, path: str, rollover_hour: int = 4):
        """Initialize database connection.

        Args:
            path: Path to SQLite database file
            rollover_hour: Hour of day when the study day rolls over
        """
        self.path = path
        self.study_time = StudyTime(rollover_hour)
        self._ensure_path_exists()
        self.conn = sqlite3.connect(path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._setup_database()

    def _ensure_path_exists(self) -> None:
        """Ensure the database directory exists."""
        db_path = Path(self.path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

    def _setup_database(self) -> None:
        """Set up database with WAL mode and create tables."""
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self.create_tables()

    def create_tables(self) -> None:
        """Create necessary tables if they don't exist."""
        schema = """
        CREATE TABLE IF NOT EXISTS decks (
            id TEXT PRIMARY KEY,
            name TEXT UNIQUE NOT NULL,
            description TEXT,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        );

        CREATE TABLE IF NOT EXISTS cards (
            id TEXT PRIMARY KEY,
            hanzi TEXT NOT NULL,
            pinyin TEXT NOT NULL,
            english TEXT NOT NULL,
            ease_factor REAL NOT NULL DEFAULT 2.5,
            interval_days INTEGER NOT NULL DEFAULT 0,
            repetitions INTEGER NOT NULL DEFAULT 0,
            lapses INTEGER NOT NULL DEFAULT 0,
            due INTEGER NOT NULL,
            phase TEXT,
            step_index INTEGER,
            suspended INTEGER NOT NULL DEFAULT 0,
            created_at INTEGER NOT NULL,
            updated_at INTEGER NOT NULL
        );

        CREATE TABLE IF NOT EXISTS deck_cards (
            deck_id TEXT NOT NULL,
            card_id TEXT NOT NULL,
            position INTEGER NOT NULL,
            PRIMARY KEY(deck_id, card_id),
            FOREIGN KEY(deck_id) REFERENCES decks(id) ON DELETE CASCADE,
            FOREIGN KEY(card_id) REFERENCES cards(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS review_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            card_id TEXT NOT NULL,
            ts INTEGER NOT NULL,
            grade INTEGER NOT NULL,
            prev_phase TEXT,
            prev_interval INTEGER,
            next_interval INTEGER,
            FOREIGN KEY(card_id) REFERENCES cards(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_cards_due ON cards(suspended, due);
        CREATE INDEX IF NOT EXISTS idx_deck_cards_position ON deck_cards(deck_id, position);
        CREATE INDEX IF NOT EXISTS idx_review_log_ts ON review_log(ts);
        """

        self.conn.executescript(schema)
        self.conn.commit()

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()

    # Decks

    def create_deck(self, name: str, description: Optional[str] = None) -> str:
        """Create a new deck.

        Args:
            name: Deck name (must be unique)
            description: Optional free-form description

        Returns:
            Deck ID
        """
        deck_id = str(uuid.uuid4())
        ts = now_ms()

        self.conn.execute(
            "INSERT INTO decks (id, name, description, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            (deck_id, name, description, ts, ts)
        )
        self.conn.commit()
        return deck_id

    def get_deck(self, deck_id: str) -> Optional[Dict]:
        """Get deck by ID."""
        row = self.conn.execute(
            "SELECT * FROM decks WHERE id = ?", (deck_id,)
        ).fetchone()

        if row:
            return self._row_to_deck_dict(row)
        return None

    def get_deck_by_name(self, name: str) -> Optional[Dict]:
        """Get deck by its unique name."""
        row = self.conn.execute(
            "SELECT * FROM decks WHERE name = ?", (name,)
        ).fetchone()

        if row:
            return self._row_to_deck_dict(row)
        return None

    def list_decks(self) -> List[Dict]:
        """List all decks."""
        rows = self.conn.execute(
            "SELECT * FROM decks ORDER BY name"
        ).fetchall()

        return [self._row_to_deck_dict(row) for row in rows]

    def _row_to_deck_dict(self, row) -> Dict:
        card_ids = [r["card_id"] for r in self.conn.execute(
            "SELECT card_id FROM deck_cards WHERE deck_id = ? ORDER BY position",
            (row["id"],)
        ).fetchall()]
        return {
            "id": row["id"],
            "name": row["name"],
            "description": row["description"],
            "card_ids": card_ids,
            "created_at": row["created_at"],
            "updated_at": row["updated_at"]
        }

    def update_deck(self, deck_id: str, name: Optional[str] = None,
                    description: Optional[str] = None) -> None:
        """Rename a deck or change its description."""
        deck = self.get_deck(deck_id)
        if not deck:
            return

        self.conn.execute(
            "UPDATE decks SET name = ?, description = ?, updated_at = ? WHERE id = ?",
            (name if name is not None else deck["name"],
             description if description is not None else deck["description"],
             now_ms(), deck_id)
        )
        self.conn.commit()

    def delete_deck(self, deck_id: str) -> None:
        """Delete a deck. Its cards are kept."""
        self.conn.execute("DELETE FROM decks WHERE id = ?", (deck_id,))
        self.conn.commit()

    def add_card_to_deck(self, deck_id: str, card_id: str) -> None:
        """Append a card to the end of a deck's card list."""
        if not self.get_card(card_id) or not self.conn.execute(
                "SELECT 1 FROM decks WHERE id = ?", (deck_id,)).fetchone():
            return

        row = self.conn.execute(
            "SELECT COALESCE(MAX(position), -1) + 1 AS next FROM deck_cards WHERE deck_id = ?",
            (deck_id,)
        ).fetchone()
        self.conn.execute(
            "INSERT OR IGNORE INTO deck_cards (deck_id, card_id, position) VALUES (?, ?, ?)",
            (deck_id, card_id, row["next"])
        )
        self.conn.execute("UPDATE decks SET updated_at = ? WHERE id = ?", (now_ms(), deck_id))
        self.conn.commit()

    def remove_card_from_deck(self, deck_id: str, card_id: str) -> None:
        """Remove a card from a deck without deleting the card."""
        self.conn.execute(
            "DELETE FROM deck_cards WHERE deck_id = ? AND card_id = ?",
            (deck_id, card_id)
        )
        self.conn.execute("UPDATE decks SET updated_at = ? WHERE id = ?", (now_ms(), deck_id))
        self.conn.commit()

    # Cards

    def add_card(self, hanzi: str, pinyin: str, english: str,
                 deck_id: Optional[str] = None, now_ts: Optional[int] = None) -> str:
        """Add a new card in its initial learning state.

        Args:
            hanzi: Chinese characters
            pinyin: Romanization
            english: English translation
            deck_id: Optional deck to add the card to
            now_ts: Creation time in epoch ms (defaults to now); the card is due then

        Returns:
            Card ID
        """
        if now_ts is None:
            now_ts = now_ms()

        card = Card(
            id=str(uuid.uuid4()),
            hanzi=hanzi,
            pinyin=pinyin,
            english=english,
            review=initial_state(now_ts),
            created_at=now_ts,
            updated_at=now_ts,
        )
        phase, step_index = phase_to_record(card.review.phase)
        review = card.review

        self.conn.execute("""
            INSERT INTO cards
            (id, hanzi, pinyin, english, ease_factor, interval_days, repetitions,
             lapses, due, phase, step_index, suspended, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (card.id, hanzi, pinyin, english, review.ease_factor, review.interval_days,
              review.repetitions, review.lapses, review.due, phase, step_index,
              int(review.suspended), card.created_at, card.updated_at))
        self.conn.commit()

        if deck_id:
            self.add_card_to_deck(deck_id, card.id)
        return card.id

    def get_card(self, card_id: str) -> Optional[Card]:
        """Get card by ID."""
        row = self.conn.execute(
            "SELECT * FROM cards WHERE id = ?", (card_id,)
        ).fetchone()

        if row:
            return self._row_to_card(row)
        return None

    def update_card_text(self, card_id: str, hanzi: Optional[str] = None,
                         pinyin: Optional[str] = None, english: Optional[str] = None) -> None:
        """Edit a card's content. Review state is left alone."""
        card = self.get_card(card_id)
        if not card:
            return

        self.conn.execute(
            "UPDATE cards SET hanzi = ?, pinyin = ?, english = ?, updated_at = ? WHERE id = ?",
            (hanzi if hanzi is not None else card.hanzi,
             pinyin if pinyin is not None else card.pinyin,
             english if english is not None else card.english,
             now_ms(), card_id)
        )
        self.conn.commit()

    def delete_card(self, card_id: str) -> None:
        """Delete a card along with its deck memberships and review log."""
        self.conn.execute("DELETE FROM deck_cards WHERE card_id = ?", (card_id,))
        self.conn.execute("DELETE FROM review_log WHERE card_id = ?", (card_id,))
        deleted = self.conn.execute("DELETE FROM cards WHERE id = ?", (card_id,)).rowcount
        self.conn.commit()
        if deleted:
            logger.debug("Deleted card %s", card_id)

    def get_cards_in_deck(self, deck_id: str) -> List[Card]:
        """Cards of a deck in deck-list order. Unknown decks have no cards."""
        rows = self.conn.execute("""
            SELECT c.* FROM deck_cards dc
            JOIN cards c ON c.id = dc.card_id
            WHERE dc.deck_id = ?
            ORDER BY dc.position
        """, (deck_id,)).fetchall()
        return [self._row_to_card(row) for row in rows]

    def get_all_cards(self) -> List[Card]:
        """All cards in creation order."""
        rows = self.conn.execute(
            "SELECT * FROM cards ORDER BY created_at, rowid"
        ).fetchall()
        return [self._row_to_card(row) for row in rows]

    def get_due_cards(self, deck_id: Optional[str] = None,
                      now_ts: Optional[int] = None) -> List[Card]:
        """Non-suspended cards due at `now_ts`, optionally limited to a deck."""
        if now_ts is None:
            now_ts = now_ms()
        cards = self.get_cards_in_deck(deck_id) if deck_id else self.get_all_cards()
        return [c for c in cards if c.is_due(now_ts)]

    def _row_to_card(self, row) -> Card:
        """Convert a database row to a Card."""
        review = ReviewState(
            ease_factor=row["ease_factor"],
            interval_days=row["interval_days"],
            repetitions=row["repetitions"],
            lapses=row["lapses"],
            due=row["due"],
            phase=phase_from_record(row["phase"], row["step_index"]),
            suspended=bool(row["suspended"]),
        )
        return Card(
            id=row["id"],
            hanzi=row["hanzi"],
            pinyin=row["pinyin"],
            english=row["english"],
            review=review,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def persist(self, card: Card) -> None:
        """Write a card's review state back to the database."""
        review = card.review
        phase, step_index = phase_to_record(review.phase)
        card.updated_at = now_ms()

        self.conn.execute("""
            UPDATE cards
            SET ease_factor = ?, interval_days = ?, repetitions = ?, lapses = ?,
                due = ?, phase = ?, step_index = ?, suspended = ?, updated_at = ?
            WHERE id = ?
        """, (review.ease_factor, review.interval_days, review.repetitions,
              review.lapses, review.due, phase, step_index, int(review.suspended),
              card.updated_at, card.id))

        self.conn.commit()

    def unsuspend_card(self, card_id: str) -> None:
        """Return a suspended card to scheduling. Lapses are kept."""
        self.conn.execute(
            "UPDATE cards SET suspended = 0, updated_at = ? WHERE id = ?",
            (now_ms(), card_id)
        )
        self.conn.commit()

    # Review log and statistics

    def log_review(self, card_id: str, grade: int, prev_phase: Optional[str],
                   prev_interval: int, next_interval: int,
                   ts: Optional[int] = None) -> None:
        """Log a review in the review log."""
        if ts is None:
            ts = now_ms()

        self.conn.execute("""
            INSERT INTO review_log
            (card_id, ts, grade, prev_phase, prev_interval, next_interval)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (card_id, ts, int(grade), prev_phase, prev_interval, next_interval))

        self.conn.commit()

    def get_review_log(self, card_id: str) -> List[Dict]:
        """Review history of one card, oldest first."""
        rows = self.conn.execute(
            "SELECT * FROM review_log WHERE card_id = ? ORDER BY ts, id", (card_id,)
        ).fetchall()
        return [dict(row) for row in rows]

    def get_review_count(self, now_ts: Optional[int] = None) -> int:
        """Number of reviews logged during the study day containing now_ts."""
        start, end = self.study_time.get_study_day_bounds(now_ts)
        row = self.conn.execute(
            "SELECT COUNT(*) AS count FROM review_log WHERE ts >= ? AND ts < ?", (start, end)
        ).fetchone()
        return row["count"]

    def count_due_today(self, deck_id: Optional[str] = None,
                        now_ts: Optional[int] = None) -> int:
        """Cards that become due before the next study-day rollover."""
        if now_ts is None:
            now_ts = now_ms()
        rollover = self.study_time.get_next_rollover_timestamp(now_ts)
        cards = self.get_cards_in_deck(deck_id) if deck_id else self.get_all_cards()
        return sum(1 for c in cards if not c.review.suspended and c.review.due < rollover)

    def get_deck_stats(self, deck_id: Optional[str] = None,
                       now_ts: Optional[int] = None) -> Dict:
        """Count cards per phase plus due, suspended and total counts."""
        if now_ts is None:
            now_ts = now_ms()
        cards = self.get_cards_in_deck(deck_id) if deck_id else self.get_all_cards()

        stats = {"learning": 0, "graduating": 0, "review": 0, "relearning": 0, "unknown": 0}
        for card in cards:
            stats[card.review.phase_name] += 1

        stats["due"] = sum(1 for c in cards if c.is_due(now_ts))
        stats["suspended"] = sum(1 for c in cards if c.review.suspended)
        stats["total"] = len(cards)
        return stats
