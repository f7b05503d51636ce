from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Sequence

from ..id_factory import generate_card_id, generate_deck_id
from ..logging import logger
from ..models.card import Card, GradeLogEntry
from ..models.deck import Deck, DeckExport, ExportedCard
from ..models.stats import GradeTotals, ReviewStats
from ..srs import (
    GradeBand,
    MissingState,
    ScheduleState,
    SchedulerPolicy,
    classify_grade,
    coerce_grade,
    schedule_review,
)
from .base import (
    CardNotFound,
    CardRepository,
    ConcurrentUpdateError,
    DeckNotFound,
    ReviewOutcome,
)
from .common import (
    day_key,
    dump_tags,
    iso,
    load_tags,
    normalize_non_negative_int,
    normalize_tags,
    utcnow,
)


GRADE_BUCKETS: dict[GradeBand, str] = {
    GradeBand.lapse: "bad",
    GradeBand.good: "good",
    GradeBand.easy: "excellent",
}

_HISTORY_CHUNK = 500


class FlashcardSQLiteStore(CardRepository):
    """SQLite-backed persistence for users, decks, cards and review statistics.

    - every review runs read -> schedule -> write -> counters inside one
      `BEGIN IMMEDIATE` transaction, so concurrent reviews of a card serialise
    - each card carries a `version` bumped on every scheduling write
    - grade history lives in its own append-only table
    """

    def __init__(self, db_path: str, policy: SchedulerPolicy | None = None) -> None:
        self.db_path = db_path
        self.policy = policy or SchedulerPolicy()
        self._ensure_dirs()
        self._init_db()

    # --- low-level helpers ---
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self.db_path, timeout=10.0, isolation_level=None, check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        with conn:  # autocommit on pragma
            conn.execute("pragma journal_mode=WAL;")
            conn.execute("pragma foreign_keys=ON;")
        return conn

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection holding the write lock until commit/rollback."""

        with self._conn() as conn:
            conn.execute("BEGIN IMMEDIATE;")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK;")
                raise
            conn.execute("COMMIT;")

    def _ensure_dirs(self) -> None:
        p = Path(self.db_path)
        if p.parent and not p.parent.exists():
            p.parent.mkdir(parents=True, exist_ok=True)

    def _init_db(self) -> None:
        with self._conn() as conn:
            with conn:
                self._ensure_users_table(conn)
                self._ensure_decks_table(conn)
                self._ensure_cards_table(conn)
                self._ensure_grade_history_table(conn)
                self._ensure_review_stats_table(conn)

    def _ensure_users_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                created_at TEXT NOT NULL
            );
            """
        )

    def _ensure_decks_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS decks (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                reviewed_count INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_decks_user ON decks(user_id);")

    def _ensure_cards_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS cards (
                id TEXT PRIMARY KEY,
                deck_id TEXT NOT NULL,
                question TEXT NOT NULL,
                answer TEXT NOT NULL,
                tags TEXT NOT NULL DEFAULT '[]',
                category TEXT,
                repetitions INTEGER NOT NULL DEFAULT 0,
                interval_days INTEGER NOT NULL DEFAULT 0,
                ease_factor REAL NOT NULL DEFAULT 2.5,
                next_review_at TEXT NOT NULL,
                review_count INTEGER NOT NULL DEFAULT 0,
                last_reviewed_at TEXT,
                version INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                FOREIGN KEY(deck_id) REFERENCES decks(id) ON DELETE CASCADE
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_cards_deck ON cards(deck_id);")
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_cards_next_review_at ON cards(next_review_at);"
        )

    def _ensure_grade_history_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS grade_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                card_id TEXT NOT NULL,
                reviewed_at TEXT NOT NULL,
                grade REAL NOT NULL,
                FOREIGN KEY(card_id) REFERENCES cards(id) ON DELETE CASCADE
            );
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_grade_history_card ON grade_history(card_id, id);"
        )

    def _ensure_review_stats_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS review_stats_daily (
                user_id TEXT NOT NULL,
                day TEXT NOT NULL, -- YYYY-MM-DD (UTC)
                reviews INTEGER NOT NULL DEFAULT 0,
                bad INTEGER NOT NULL DEFAULT 0,
                good INTEGER NOT NULL DEFAULT 0,
                excellent INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY(user_id, day),
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            );
            """
        )

    # --- row mapping ---
    def _load_history(
        self, conn: sqlite3.Connection, card_ids: Sequence[str]
    ) -> dict[str, list[dict[str, Any]]]:
        history: dict[str, list[dict[str, Any]]] = {cid: [] for cid in card_ids}
        for start in range(0, len(card_ids), _HISTORY_CHUNK):
            chunk = list(card_ids[start : start + _HISTORY_CHUNK])
            placeholders = ",".join("?" for _ in chunk)
            cur = conn.execute(
                f"""
                SELECT card_id, reviewed_at, grade FROM grade_history
                WHERE card_id IN ({placeholders})
                ORDER BY id ASC;
                """,
                chunk,
            )
            for row in cur.fetchall():
                history[row["card_id"]].append(
                    {"reviewed_at": row["reviewed_at"], "grade": row["grade"]}
                )
        return history

    @staticmethod
    def _state_from_row(row: sqlite3.Row, history: list[dict[str, Any]]) -> ScheduleState:
        payload = dict(row)
        payload["grade_history"] = history
        return ScheduleState.from_mapping(payload)

    @staticmethod
    def _card_from_state(row: sqlite3.Row, state: ScheduleState) -> Card:
        return Card(
            id=row["id"],
            deck_id=row["deck_id"],
            question=row["question"],
            answer=row["answer"],
            tags=load_tags(row["tags"]),
            category=row["category"],
            repetitions=state.repetitions,
            interval_days=state.interval_days,
            ease_factor=state.ease_factor,
            next_review_at=state.next_review_at,
            review_count=state.review_count,
            last_reviewed_at=state.last_reviewed_at,
            grade_history=[
                GradeLogEntry(reviewed_at=entry.reviewed_at, grade=entry.grade)
                for entry in state.grade_history
            ],
            version=normalize_non_negative_int(row["version"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _cards_from_rows(
        self, conn: sqlite3.Connection, rows: Sequence[sqlite3.Row]
    ) -> list[Card]:
        history = self._load_history(conn, [row["id"] for row in rows])
        return [
            self._card_from_state(row, self._state_from_row(row, history[row["id"]]))
            for row in rows
        ]

    def _fetch_card(self, conn: sqlite3.Connection, card_id: str) -> Card | None:
        row = conn.execute("SELECT * FROM cards WHERE id = ?;", (card_id,)).fetchone()
        if row is None:
            return None
        return self._cards_from_rows(conn, [row])[0]

    def _fetch_deck_row(
        self, conn: sqlite3.Connection, user_id: str, deck_id: str
    ) -> sqlite3.Row:
        row = conn.execute(
            "SELECT * FROM decks WHERE id = ? AND user_id = ?;", (deck_id, user_id)
        ).fetchone()
        if row is None:
            raise DeckNotFound(deck_id)
        return row

    def _deck_from_row(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Deck:
        card_rows = conn.execute(
            "SELECT * FROM cards WHERE deck_id = ? ORDER BY created_at ASC, id ASC;",
            (row["id"],),
        ).fetchall()
        return Deck(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            reviewed_count=normalize_non_negative_int(row["reviewed_count"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            cards=self._cards_from_rows(conn, card_rows),
        )

    def _insert_card(
        self,
        conn: sqlite3.Connection,
        deck_id: str,
        *,
        question: str,
        answer: str,
        tags: Any,
        category: str | None,
        now: datetime,
    ) -> str:
        card_id = generate_card_id()
        state = ScheduleState.initial(now)
        conn.execute(
            """
            INSERT INTO cards(
                id, deck_id, question, answer, tags, category,
                repetitions, interval_days, ease_factor, next_review_at,
                review_count, last_reviewed_at, version, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, NULL, 0, ?);
            """,
            (
                card_id,
                deck_id,
                question or "",
                answer or "",
                dump_tags(normalize_tags(tags)),
                category or None,
                state.repetitions,
                state.interval_days,
                state.ease_factor,
                iso(state.next_review_at),
                iso(now),
            ),
        )
        return card_id

    def _write_state(
        self,
        conn: sqlite3.Connection,
        card_id: str,
        state: ScheduleState,
        *,
        persisted_history: int,
        expected_version: int,
    ) -> None:
        cur = conn.execute(
            """
            UPDATE cards
            SET repetitions = ?, interval_days = ?, ease_factor = ?, next_review_at = ?,
                review_count = ?, last_reviewed_at = ?, version = version + 1
            WHERE id = ? AND version = ?;
            """,
            (
                state.repetitions,
                state.interval_days,
                state.ease_factor,
                iso(state.next_review_at or utcnow()),
                state.review_count,
                iso(state.last_reviewed_at) if state.last_reviewed_at else None,
                card_id,
                expected_version,
            ),
        )
        if cur.rowcount == 0:
            row = conn.execute("SELECT version FROM cards WHERE id = ?;", (card_id,)).fetchone()
            if row is None:
                raise CardNotFound(card_id)
            raise ConcurrentUpdateError(card_id, expected_version, int(row["version"]))
        # history is append-only: only entries beyond the persisted ones are written
        for entry in state.grade_history[persisted_history:]:
            conn.execute(
                "INSERT INTO grade_history(card_id, reviewed_at, grade) VALUES (?, ?, ?);",
                (card_id, iso(entry.reviewed_at), float(entry.grade)),
            )

    def _record_review_stats(
        self, conn: sqlite3.Connection, user_id: str, reviewed_at: datetime, band: GradeBand
    ) -> None:
        bucket = GRADE_BUCKETS[band]
        conn.execute(
            """
            INSERT INTO review_stats_daily(user_id, day, reviews, bad, good, excellent)
            VALUES (?, ?, 1, ?, ?, ?)
            ON CONFLICT(user_id, day) DO UPDATE SET
                reviews = reviews + 1,
                bad = bad + excluded.bad,
                good = good + excluded.good,
                excellent = excellent + excluded.excellent;
            """,
            (
                user_id,
                day_key(reviewed_at),
                int(bucket == "bad"),
                int(bucket == "good"),
                int(bucket == "excellent"),
            ),
        )

    def _ensure_user(self, conn: sqlite3.Connection, user_id: str, now: datetime) -> None:
        conn.execute(
            "INSERT OR IGNORE INTO users(id, created_at) VALUES (?, ?);",
            (user_id, iso(now)),
        )

    # --- CardRepository port ---
    def get(self, card_id: str) -> Card | None:
        with self._conn() as conn:
            return self._fetch_card(conn, card_id)

    def put(
        self,
        card_id: str,
        state: ScheduleState,
        *,
        expected_version: int | None = None,
    ) -> Card:
        """Replace a card's scheduling state.

        History is append-only: a state carrying fewer grade entries than are
        stored raises `MissingState` and nothing is written.
        """

        with self._transaction() as conn:
            row = conn.execute(
                "SELECT version FROM cards WHERE id = ?;", (card_id,)
            ).fetchone()
            if row is None:
                raise CardNotFound(card_id)
            current_version = int(row["version"])
            if expected_version is not None and expected_version != current_version:
                raise ConcurrentUpdateError(card_id, expected_version, current_version)
            persisted = conn.execute(
                "SELECT COUNT(1) AS c FROM grade_history WHERE card_id = ?;", (card_id,)
            ).fetchone()["c"]
            if len(state.grade_history) < int(persisted):
                raise MissingState(
                    "grade_history",
                    f"{len(state.grade_history)} entries, {persisted} already stored",
                )
            self._write_state(
                conn,
                card_id,
                state,
                persisted_history=int(persisted),
                expected_version=current_version,
            )
            card = self._fetch_card(conn, card_id)
        if card is None:  # pragma: no cover - row was written in the same transaction
            raise RuntimeError(f"failed to reload card {card_id}")
        return card

    def update_with_scheduler(
        self,
        card_id: str,
        grade: object,
        *,
        now: datetime | None = None,
    ) -> ReviewOutcome:
        return self._review(card_id, grade, now=now)

    # --- reviews ---
    def submit_review(
        self,
        user_id: str,
        deck_id: str,
        card_id: str,
        grade: object,
        *,
        now: datetime | None = None,
    ) -> ReviewOutcome:
        """Review a card that must belong to the given user's deck."""

        return self._review(card_id, grade, now=now, user_id=user_id, deck_id=deck_id)

    def _review(
        self,
        card_id: str,
        grade: object,
        *,
        now: datetime | None = None,
        user_id: str | None = None,
        deck_id: str | None = None,
    ) -> ReviewOutcome:
        # rejected grades never open a transaction
        q = coerce_grade(grade)
        band = classify_grade(q)
        reviewed_at = now or utcnow()

        with self._transaction() as conn:
            query = (
                "SELECT c.*, d.user_id AS owner_id FROM cards c "
                "JOIN decks d ON d.id = c.deck_id WHERE c.id = ?"
            )
            params: list[Any] = [card_id]
            if deck_id is not None:
                query += " AND d.id = ?"
                params.append(deck_id)
            if user_id is not None:
                query += " AND d.user_id = ?"
                params.append(user_id)
            row = conn.execute(query + ";", params).fetchone()
            if row is None:
                raise CardNotFound(card_id)

            history = self._load_history(conn, [card_id])[card_id]
            state = self._state_from_row(row, history)
            updated = schedule_review(state, q, now=reviewed_at, policy=self.policy)
            self._write_state(
                conn,
                card_id,
                updated,
                persisted_history=len(state.grade_history),
                expected_version=int(row["version"]),
            )
            conn.execute(
                "UPDATE decks SET reviewed_count = reviewed_count + 1 WHERE id = ?;",
                (row["deck_id"],),
            )
            self._record_review_stats(conn, row["owner_id"], reviewed_at, band)
            reviewed_count = conn.execute(
                "SELECT reviewed_count FROM decks WHERE id = ?;", (row["deck_id"],)
            ).fetchone()["reviewed_count"]
            card = self._fetch_card(conn, card_id)

        if card is None:  # pragma: no cover - row was written in the same transaction
            raise RuntimeError(f"failed to reload card {card_id}")
        logger.info(
            "review_scheduled",
            card_id=card_id,
            deck_id=card.deck_id,
            grade=q,
            band=band.value,
            repetitions=card.repetitions,
            interval_days=card.interval_days,
            ease_factor=card.ease_factor,
            next_review_at=card.next_review_at.isoformat(),
        )
        return ReviewOutcome(
            card=card,
            reviewed_count=normalize_non_negative_int(reviewed_count),
            band=band,
        )

    def list_due_cards(
        self,
        user_id: str,
        *,
        deck_id: str | None = None,
        now: datetime | None = None,
        limit: int = 50,
    ) -> list[Card]:
        """Cards whose next review instant has passed, oldest first."""

        cutoff = iso(now or utcnow())
        with self._conn() as conn:
            if deck_id is not None:
                self._fetch_deck_row(conn, user_id, deck_id)
                rows = conn.execute(
                    """
                    SELECT * FROM cards
                    WHERE deck_id = ? AND next_review_at <= ?
                    ORDER BY next_review_at ASC, id ASC
                    LIMIT ?;
                    """,
                    (deck_id, cutoff, limit),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT c.* FROM cards c
                    JOIN decks d ON d.id = c.deck_id
                    WHERE d.user_id = ? AND c.next_review_at <= ?
                    ORDER BY c.next_review_at ASC, c.id ASC
                    LIMIT ?;
                    """,
                    (user_id, cutoff, limit),
                ).fetchall()
            return self._cards_from_rows(conn, rows)

    # --- users & decks ---
    def ensure_user(self, user_id: str) -> None:
        with self._conn() as conn:
            with conn:
                self._ensure_user(conn, user_id, utcnow())

    def create_deck(self, user_id: str, name: str, *, now: datetime | None = None) -> Deck:
        created_at = now or utcnow()
        deck_id = generate_deck_id()
        with self._transaction() as conn:
            self._ensure_user(conn, user_id, created_at)
            conn.execute(
                "INSERT INTO decks(id, user_id, name, reviewed_count, created_at) VALUES (?, ?, ?, 0, ?);",
                (deck_id, user_id, name, iso(created_at)),
            )
            row = self._fetch_deck_row(conn, user_id, deck_id)
            return self._deck_from_row(conn, row)

    def get_deck(self, user_id: str, deck_id: str) -> Deck:
        with self._conn() as conn:
            row = self._fetch_deck_row(conn, user_id, deck_id)
            return self._deck_from_row(conn, row)

    def list_decks(self, user_id: str) -> list[Deck]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT * FROM decks WHERE user_id = ? ORDER BY created_at ASC, id ASC;",
                (user_id,),
            ).fetchall()
            return [self._deck_from_row(conn, row) for row in rows]

    def delete_deck(self, user_id: str, deck_id: str) -> None:
        with self._transaction() as conn:
            self._fetch_deck_row(conn, user_id, deck_id)
            conn.execute("DELETE FROM decks WHERE id = ?;", (deck_id,))

    # --- cards ---
    def add_card(
        self,
        user_id: str,
        deck_id: str,
        *,
        question: str,
        answer: str,
        tags: Any = None,
        category: str | None = None,
        now: datetime | None = None,
    ) -> Card:
        created_at = now or utcnow()
        with self._transaction() as conn:
            self._fetch_deck_row(conn, user_id, deck_id)
            card_id = self._insert_card(
                conn,
                deck_id,
                question=question,
                answer=answer,
                tags=tags,
                category=category,
                now=created_at,
            )
            card = self._fetch_card(conn, card_id)
        if card is None:  # pragma: no cover - row was written in the same transaction
            raise RuntimeError(f"failed to reload card {card_id}")
        return card

    def update_card(
        self,
        user_id: str,
        deck_id: str,
        card_id: str,
        *,
        question: str | None = None,
        answer: str | None = None,
        tags: Any = None,
        category: str | None = None,
    ) -> Card:
        """Edit card content. Scheduling fields are never touched here."""

        with self._transaction() as conn:
            self._fetch_deck_row(conn, user_id, deck_id)
            row = conn.execute(
                "SELECT * FROM cards WHERE id = ? AND deck_id = ?;", (card_id, deck_id)
            ).fetchone()
            if row is None:
                raise CardNotFound(card_id)
            conn.execute(
                """
                UPDATE cards SET question = ?, answer = ?, tags = ?, category = ?
                WHERE id = ?;
                """,
                (
                    row["question"] if question is None else question,
                    row["answer"] if answer is None else answer,
                    row["tags"] if tags is None else dump_tags(normalize_tags(tags)),
                    row["category"] if category is None else (category or None),
                    card_id,
                ),
            )
            card = self._fetch_card(conn, card_id)
        if card is None:  # pragma: no cover - row was written in the same transaction
            raise RuntimeError(f"failed to reload card {card_id}")
        return card

    def delete_card(self, user_id: str, deck_id: str, card_id: str) -> None:
        with self._transaction() as conn:
            self._fetch_deck_row(conn, user_id, deck_id)
            cur = conn.execute(
                "DELETE FROM cards WHERE id = ? AND deck_id = ?;", (card_id, deck_id)
            )
            if cur.rowcount == 0:
                raise CardNotFound(card_id)

    def delete_category(self, user_id: str, deck_id: str, category: str) -> Deck:
        """Delete every card of the deck filed under the given category."""

        with self._transaction() as conn:
            row = self._fetch_deck_row(conn, user_id, deck_id)
            cur = conn.execute(
                "DELETE FROM cards WHERE deck_id = ? AND category = ?;",
                (deck_id, category),
            )
            if cur.rowcount:
                logger.info(
                    "category_deleted",
                    deck_id=deck_id,
                    category=category,
                    deleted=cur.rowcount,
                )
            return self._deck_from_row(conn, row)

    # --- statistics ---
    def get_stats(self, user_id: str) -> ReviewStats:
        with self._conn() as conn:
            rows = conn.execute(
                """
                SELECT day, reviews, bad, good, excellent FROM review_stats_daily
                WHERE user_id = ? ORDER BY day ASC;
                """,
                (user_id,),
            ).fetchall()
        stats = ReviewStats()
        for row in rows:
            day_totals = GradeTotals(bad=row["bad"], good=row["good"], excellent=row["excellent"])
            stats.by_day[row["day"]] = int(row["reviews"])
            stats.grade_by_day[row["day"]] = day_totals
            stats.total_reviews += int(row["reviews"])
            stats.grade_totals.bad += day_totals.bad
            stats.grade_totals.good += day_totals.good
            stats.grade_totals.excellent += day_totals.excellent
        return stats

    def reset_stats(self, user_id: str) -> ReviewStats:
        """Clear aggregate statistics and every deck's reviewed counter.

        Cards keep their scheduling state and grade history.
        """

        with self._transaction() as conn:
            self._ensure_user(conn, user_id, utcnow())
            conn.execute("DELETE FROM review_stats_daily WHERE user_id = ?;", (user_id,))
            conn.execute("UPDATE decks SET reviewed_count = 0 WHERE user_id = ?;", (user_id,))
        logger.info("stats_reset", user_id=user_id)
        return ReviewStats()

    # --- export / import ---
    def export_deck(self, user_id: str, deck_id: str) -> DeckExport:
        deck = self.get_deck(user_id, deck_id)
        return DeckExport(
            name=deck.name,
            cards={
                card.id: ExportedCard(
                    question=card.question,
                    answer=card.answer,
                    tags=card.tags,
                    category=card.category,
                )
                for card in deck.cards
            },
        )

    def import_deck(
        self, user_id: str, payload: DeckExport, *, now: datetime | None = None
    ) -> Deck:
        """Create a new deck from an export; cards start as new cards."""

        created_at = now or utcnow()
        deck_id = generate_deck_id()
        with self._transaction() as conn:
            self._ensure_user(conn, user_id, created_at)
            conn.execute(
                "INSERT INTO decks(id, user_id, name, reviewed_count, created_at) VALUES (?, ?, ?, 0, ?);",
                (deck_id, user_id, payload.name, iso(created_at)),
            )
            for source in payload.cards.values():
                self._insert_card(
                    conn,
                    deck_id,
                    question=source.question,
                    answer=source.answer,
                    tags=source.tags,
                    category=source.category,
                    now=created_at,
                )
            row = self._fetch_deck_row(conn, user_id, deck_id)
            deck = self._deck_from_row(conn, row)
        logger.info("deck_imported", user_id=user_id, deck_id=deck_id, cards=len(deck.cards))
        return deck
