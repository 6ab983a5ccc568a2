# database.py
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional
from config import DATABASE_FILE
from errors import ConflictError, NotFoundError
from models import Interaction, Match, MatchStatus, Message, Profile, ProfileStatus

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    id INTEGER PRIMARY KEY,
    username TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active'
        CHECK (status IN ('active', 'inactive', 'banned')),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS interactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    actor_id INTEGER NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
    target_id INTEGER NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
    kind TEXT NOT NULL CHECK (kind IN ('like', 'pass')),
    created_at TEXT NOT NULL,
    CHECK (actor_id <> target_id),
    UNIQUE (actor_id, target_id)
);

CREATE TABLE IF NOT EXISTS matches (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user1_id INTEGER NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
    user2_id INTEGER NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
    status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'archived')),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    CHECK (user1_id < user2_id),
    UNIQUE (user1_id, user2_id)
);

CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    match_id INTEGER NOT NULL REFERENCES matches(id) ON DELETE CASCADE,
    sender_id INTEGER NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
    content TEXT NOT NULL,
    created_at TEXT NOT NULL,
    read_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_messages_thread
    ON messages (match_id, created_at DESC, id DESC);
"""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ts(value: datetime) -> str:
    # Fixed-width ISO text so lexical order is chronological order.
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _is_unique_violation(exc: sqlite3.IntegrityError) -> bool:
    return "UNIQUE constraint failed" in str(exc)


class Store:
    """SQLite-backed store: profile directory plus interactions, matches and messages.

    Every method opens its own connection and runs as one transaction, so a
    single Store can be shared across request threads.
    """

    def __init__(self, db_file: str = DATABASE_FILE, timeout: float = 5.0):
        self.db_file = db_file
        self.timeout = timeout

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_file, timeout=self.timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create the tables if they don't exist. Call this once at app startup."""
        with self._conn() as conn:
            conn.executescript(SCHEMA)

    # ----------------------
    # Profile directory
    # ----------------------
    def upsert_profile(self, profile_id: int, username: str,
                       status: ProfileStatus = ProfileStatus.active) -> Profile:
        """Insert a new profile or update the username/status of an existing one."""
        now = _ts(utcnow())
        with self._conn() as conn:
            conn.execute("""
                INSERT INTO profiles (id, username, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    username=excluded.username,
                    status=excluded.status,
                    updated_at=excluded.updated_at
            """, (profile_id, username, ProfileStatus(status).value, now, now))
            row = conn.execute("SELECT * FROM profiles WHERE id = ?", (profile_id,)).fetchone()
        return Profile(**dict(row))

    def get_profile(self, profile_id: int) -> Optional[Profile]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM profiles WHERE id = ?", (profile_id,)).fetchone()
        return Profile(**dict(row)) if row else None

    def profile_exists(self, profile_id: int) -> bool:
        with self._conn() as conn:
            row = conn.execute("SELECT 1 FROM profiles WHERE id = ?", (profile_id,)).fetchone()
        return row is not None

    def profile_status(self, profile_id: int) -> Optional[ProfileStatus]:
        profile = self.get_profile(profile_id)
        return profile.status if profile else None

    # ----------------------
    # Interactions
    # ----------------------
    def insert_interaction(self, actor_id: int, target_id: int, kind: str) -> Interaction:
        """Insert one directional interaction.

        Raises ConflictError when (actor_id, target_id) already exists, including
        when a concurrent writer committed the same pair first.
        """
        try:
            with self._conn() as conn:
                cur = conn.execute("""
                    INSERT INTO interactions (actor_id, target_id, kind, created_at)
                    VALUES (?, ?, ?, ?)
                """, (actor_id, target_id, kind, _ts(utcnow())))
                row = conn.execute("SELECT * FROM interactions WHERE id = ?",
                                   (cur.lastrowid,)).fetchone()
        except sqlite3.IntegrityError as exc:
            if _is_unique_violation(exc):
                raise ConflictError("user has already interacted with this profile") from exc
            raise
        return Interaction(**dict(row))

    def find_interaction(self, actor_id: int, target_id: int,
                         kind: Optional[str] = None) -> Optional[Interaction]:
        query = "SELECT * FROM interactions WHERE actor_id = ? AND target_id = ?"
        params: list = [actor_id, target_id]
        if kind is not None:
            query += " AND kind = ?"
            params.append(kind)
        with self._conn() as conn:
            row = conn.execute(query, params).fetchone()
        return Interaction(**dict(row)) if row else None

    # ----------------------
    # Matches
    # ----------------------
    def get_match(self, match_id: int) -> Optional[Match]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM matches WHERE id = ?", (match_id,)).fetchone()
        return Match(**dict(row)) if row else None

    def get_match_by_pair(self, user1_id: int, user2_id: int) -> Optional[Match]:
        """Look up a match by its canonical (min, max) pair."""
        with self._conn() as conn:
            row = conn.execute(
                "SELECT * FROM matches WHERE user1_id = ? AND user2_id = ?",
                (user1_id, user2_id),
            ).fetchone()
        return Match(**dict(row)) if row else None

    def insert_match(self, user1_id: int, user2_id: int) -> Match:
        """Insert an active match for a canonical pair; ConflictError if the pair exists."""
        now = _ts(utcnow())
        try:
            with self._conn() as conn:
                cur = conn.execute("""
                    INSERT INTO matches (user1_id, user2_id, status, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                """, (user1_id, user2_id, MatchStatus.active.value, now, now))
                row = conn.execute("SELECT * FROM matches WHERE id = ?",
                                   (cur.lastrowid,)).fetchone()
        except sqlite3.IntegrityError as exc:
            if _is_unique_violation(exc):
                raise ConflictError(f"match already exists for pair ({user1_id}, {user2_id})") from exc
            raise
        return Match(**dict(row))

    def archive_match(self, match_id: int) -> Match:
        """External trigger: move a match to archived. Already archived matches are left as-is."""
        with self._conn() as conn:
            conn.execute(
                "UPDATE matches SET status = ?, updated_at = ? WHERE id = ? AND status = ?",
                (MatchStatus.archived.value, _ts(utcnow()), match_id, MatchStatus.active.value),
            )
            row = conn.execute("SELECT * FROM matches WHERE id = ?", (match_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"match {match_id} not found")
        logger.info("Match %s archived", match_id)
        return Match(**dict(row))

    def list_user_matches(self, user_id: int,
                          status: Optional[MatchStatus] = MatchStatus.active) -> List[Match]:
        query = "SELECT * FROM matches WHERE (user1_id = ? OR user2_id = ?)"
        params: list = [user_id, user_id]
        if status is not None:
            query += " AND status = ?"
            params.append(MatchStatus(status).value)
        query += " ORDER BY created_at DESC, id DESC"
        with self._conn() as conn:
            rows = conn.execute(query, params).fetchall()
        return [Match(**dict(r)) for r in rows]

    def list_discoverable_profiles(self, user_id: int, limit: int, offset: int) -> List[Profile]:
        """Active profiles other than user_id that user_id has not liked or passed yet, newest first."""
        with self._conn() as conn:
            rows = conn.execute("""
                SELECT p.* FROM profiles p
                WHERE p.id <> ?
                  AND p.status = ?
                  AND NOT EXISTS (
                      SELECT 1 FROM interactions i
                      WHERE i.actor_id = ? AND i.target_id = p.id
                  )
                ORDER BY p.created_at DESC, p.id DESC
                LIMIT ? OFFSET ?
            """, (user_id, ProfileStatus.active.value, user_id, limit, offset)).fetchall()
        return [Profile(**dict(r)) for r in rows]

    # ----------------------
    # Messages
    # ----------------------
    def insert_message(self, match_id: int, sender_id: int, content: str,
                       created_at: Optional[datetime] = None) -> Message:
        with self._conn() as conn:
            cur = conn.execute("""
                INSERT INTO messages (match_id, sender_id, content, created_at, read_at)
                VALUES (?, ?, ?, ?, NULL)
            """, (match_id, sender_id, content, _ts(created_at or utcnow())))
            row = conn.execute("SELECT * FROM messages WHERE id = ?",
                               (cur.lastrowid,)).fetchone()
        return Message(**dict(row))

    def list_messages(self, match_id: int, limit: int, offset: int) -> List[Message]:
        """Return one page of a thread, newest first, id breaking timestamp ties."""
        with self._conn() as conn:
            rows = conn.execute("""
                SELECT * FROM messages
                WHERE match_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ? OFFSET ?
            """, (match_id, limit, offset)).fetchall()
        return [Message(**dict(r)) for r in rows]
