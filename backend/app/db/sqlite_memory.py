# backend/app/db/sqlite_memory.py

import sqlite3
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, List, Iterable
from uuid import uuid4

from app.core.config_loader import settings


# Retry configuration
MAX_RETRIES = 5
RETRY_DELAY = 0.1  # 100ms

ITINERARY_FIELDS = (
    "title", "destination", "start_date", "end_date", "budget", "travelers",
    "interests", "accommodation", "pace", "additional_notes", "content",
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_iso(value) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return str(value)


class SQLiteMemory:
    def __init__(self, db_path: Optional[str] = None):
        path = Path(db_path or settings.DB_PATH)
        path.parent.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(
            str(path),
            check_same_thread=False,
            timeout=30.0  # 30 seconds timeout
        )
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA synchronous=NORMAL")
        self.conn.execute("PRAGMA busy_timeout=30000")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self._init_tables()

    def _execute_with_retry(self, operation, *args, **kwargs):
        """Execute database operation with retry logic for handling locked database"""
        for attempt in range(MAX_RETRIES):
            try:
                return operation(*args, **kwargs)
            except sqlite3.OperationalError as e:
                if "locked" in str(e).lower() and attempt < MAX_RETRIES - 1:
                    time.sleep(RETRY_DELAY * (attempt + 1))
                    continue
                raise

    def close(self):
        self.conn.close()

    # ----------------------------------------------------------------------
    # CREATE TABLES
    # ----------------------------------------------------------------------
    def _init_tables(self):
        cur = self.conn.cursor()

        # USERS TABLE
        cur.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            email TEXT UNIQUE,
            name TEXT,
            hashed_password TEXT,
            created_at TEXT,
            updated_at TEXT
        );
        """)

        # ITINERARIES (conversation state: itinerary text + trip parameters)
        cur.execute("""
        CREATE TABLE IF NOT EXISTS itineraries (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT,
            destination TEXT,
            start_date TEXT,
            end_date TEXT,
            budget TEXT,
            travelers TEXT,
            interests TEXT,
            accommodation TEXT,
            pace TEXT,
            additional_notes TEXT,
            content TEXT,
            created_at TEXT,
            updated_at TEXT
        );
        """)

        # CHAT HISTORY (ordered by position, never by timestamp)
        cur.execute("""
        CREATE TABLE IF NOT EXISTS chat_messages (
            itinerary_id TEXT NOT NULL,
            position INTEGER NOT NULL,
            role TEXT NOT NULL,
            content TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            PRIMARY KEY (itinerary_id, position),
            FOREIGN KEY (itinerary_id) REFERENCES itineraries(id) ON DELETE CASCADE
        );
        """)

        cur.execute("CREATE INDEX IF NOT EXISTS idx_itin_user ON itineraries(user_id);")

        self.conn.commit()

    # ----------------------------------------------------------------------
    # USER CRUD
    # ----------------------------------------------------------------------
    def create_user(self, email: str, name: str, hashed_password: str) -> str:
        def _create_user():
            user_id = uuid4().hex
            now = _now()
            self.conn.execute("""
            INSERT INTO users (id, email, name, hashed_password, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """, (user_id, email, name, hashed_password, now, now))
            self.conn.commit()
            return user_id

        return self._execute_with_retry(_create_user)

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM users WHERE email = ?", (email,))
        row = cur.fetchone()
        return dict(row) if row else None

    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM users WHERE id = ?", (user_id,))
        row = cur.fetchone()
        return dict(row) if row else None

    # ----------------------------------------------------------------------
    # ITINERARIES
    # ----------------------------------------------------------------------
    def insert_itinerary(self, user_id: str, data: Dict[str, Any]) -> str:
        def _insert():
            itinerary_id = uuid4().hex
            now = _now()
            values = [data.get(field) for field in ITINERARY_FIELDS]
            self.conn.execute(f"""
            INSERT INTO itineraries (id, user_id, {", ".join(ITINERARY_FIELDS)}, created_at, updated_at)
            VALUES (?, ?, {", ".join("?" for _ in ITINERARY_FIELDS)}, ?, ?)
            """, (itinerary_id, user_id, *values, now, now))
            self.conn.commit()
            return itinerary_id

        return self._execute_with_retry(_insert)

    def find_itinerary(self, itinerary_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """Itinerary with its chat history, only if owned by user_id."""
        cur = self.conn.cursor()
        cur.execute(
            "SELECT * FROM itineraries WHERE id = ? AND user_id = ?",
            (itinerary_id, user_id),
        )
        row = cur.fetchone()
        if not row:
            return None

        item = dict(row)
        item["chat_history"] = self.get_chat_history(itinerary_id)
        return item

    def list_itineraries(self, user_id: str) -> List[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute("""
        SELECT * FROM itineraries
        WHERE user_id = ?
        ORDER BY created_at DESC
        """, (user_id,))
        items = []
        for r in cur.fetchall():
            item = dict(r)
            item["chat_history"] = self.get_chat_history(item["id"])
            items.append(item)
        return items

    def update_itinerary(
        self,
        itinerary_id: str,
        user_id: str,
        content: Optional[str] = None,
        chat_history: Optional[Iterable[Dict[str, Any]]] = None,
    ) -> bool:
        """Field-level update; returns False when nothing matched."""
        def _update():
            cur = self.conn.cursor()
            cur.execute(
                "UPDATE itineraries SET updated_at = ? WHERE id = ? AND user_id = ?",
                (_now(), itinerary_id, user_id),
            )
            if cur.rowcount == 0:
                self.conn.rollback()
                return False

            if content is not None:
                cur.execute("UPDATE itineraries SET content = ? WHERE id = ?", (content, itinerary_id))
            if chat_history is not None:
                cur.execute("DELETE FROM chat_messages WHERE itinerary_id = ?", (itinerary_id,))
                self._insert_turns(cur, itinerary_id, chat_history, start=0)
            self.conn.commit()
            return True

        return self._execute_with_retry(_update)

    def delete_itinerary(self, itinerary_id: str, user_id: str) -> bool:
        def _delete():
            cur = self.conn.cursor()
            cur.execute(
                "DELETE FROM itineraries WHERE id = ? AND user_id = ?",
                (itinerary_id, user_id),
            )
            self.conn.commit()
            return cur.rowcount > 0

        return self._execute_with_retry(_delete)

    # ----------------------------------------------------------------------
    # CHAT HISTORY
    # ----------------------------------------------------------------------
    def get_chat_history(self, itinerary_id: str) -> List[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute("""
        SELECT role, content, timestamp FROM chat_messages
        WHERE itinerary_id = ?
        ORDER BY position ASC
        """, (itinerary_id,))
        return [dict(r) for r in cur.fetchall()]

    def append_chat_turns(self, itinerary_id: str, turns: Iterable[Dict[str, Any]]):
        """Append turns after the current tail and bump updated_at, in one transaction."""
        turns = list(turns)

        def _append():
            cur = self.conn.cursor()
            try:
                cur.execute(
                    "UPDATE itineraries SET updated_at = ? WHERE id = ?",
                    (_now(), itinerary_id),
                )
                if cur.rowcount == 0:
                    raise sqlite3.IntegrityError(f"Itinerary {itinerary_id} no longer exists")
                cur.execute(
                    "SELECT COALESCE(MAX(position) + 1, 0) FROM chat_messages WHERE itinerary_id = ?",
                    (itinerary_id,),
                )
                start = cur.fetchone()[0]
                self._insert_turns(cur, itinerary_id, turns, start=start)
            except sqlite3.Error:
                self.conn.rollback()
                raise
            self.conn.commit()

        self._execute_with_retry(_append)

    @staticmethod
    def _insert_turns(cur, itinerary_id: str, turns: Iterable[Dict[str, Any]], start: int):
        cur.executemany("""
        INSERT INTO chat_messages (itinerary_id, position, role, content, timestamp)
        VALUES (?, ?, ?, ?, ?)
        """, [
            (itinerary_id, start + offset, t["role"], t["content"], _as_iso(t["timestamp"]))
            for offset, t in enumerate(turns)
        ])
