from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


class SQLiteMemoryDB:
    def __init__(self, db_path: str) -> None:
        self._path = Path(db_path).expanduser().resolve()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_schema()

    @property
    def path(self) -> str:
        return str(self._path)

    @property
    def write_lock(self) -> threading.Lock:
        return self._lock

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._path), timeout=30.0, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._lock, self.connection() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS conversations (
                  id TEXT PRIMARY KEY,
                  user_id TEXT NOT NULL,
                  title TEXT NOT NULL,
                  created_at TEXT NOT NULL,
                  updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS messages (
                  id TEXT PRIMARY KEY,
                  conversation_id TEXT NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
                  seq INTEGER NOT NULL,
                  role TEXT NOT NULL,
                  content TEXT NOT NULL,
                  created_at TEXT NOT NULL,
                  UNIQUE(conversation_id, seq)
                );

                CREATE TABLE IF NOT EXISTS appointments (
                  id TEXT PRIMARY KEY,
                  user_id TEXT NOT NULL,
                  provider_name TEXT NOT NULL,
                  appointment_date TEXT NOT NULL,
                  appointment_type TEXT NOT NULL,
                  notes TEXT NOT NULL DEFAULT '',
                  status TEXT NOT NULL DEFAULT 'scheduled',
                  created_at TEXT NOT NULL,
                  updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS medicine_reminders (
                  id TEXT PRIMARY KEY,
                  user_id TEXT NOT NULL,
                  medicine_name TEXT NOT NULL,
                  dosage TEXT NOT NULL,
                  frequency TEXT NOT NULL,
                  time_of_day TEXT NOT NULL,
                  start_date TEXT NOT NULL,
                  end_date TEXT,
                  notes TEXT NOT NULL DEFAULT '',
                  is_active INTEGER NOT NULL DEFAULT 1,
                  created_at TEXT NOT NULL,
                  updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS feedback (
                  id TEXT PRIMARY KEY,
                  user_id TEXT NOT NULL,
                  name TEXT NOT NULL,
                  email TEXT NOT NULL,
                  message TEXT NOT NULL,
                  rating INTEGER,
                  created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_conversations_user
                  ON conversations(user_id, created_at DESC);
                CREATE INDEX IF NOT EXISTS idx_messages_conversation_seq
                  ON messages(conversation_id, seq);
                CREATE INDEX IF NOT EXISTS idx_appointments_user_date
                  ON appointments(user_id, appointment_date);
                CREATE INDEX IF NOT EXISTS idx_reminders_user_created
                  ON medicine_reminders(user_id, created_at DESC);
                """
            )
