from __future__ import annotations

import uuid
from typing import Any

from .database import SQLiteMemoryDB
from .time_utils import to_iso, utc_now


class ConversationStore:
    def __init__(self, db: SQLiteMemoryDB) -> None:
        self._db = db

    def create_conversation(self, *, user_id: str, title: str = "New Conversation") -> dict[str, Any]:
        now = to_iso(utc_now())
        conversation_id = uuid.uuid4().hex
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO conversations (id, user_id, title, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (conversation_id, user_id, title, now, now),
            )
        return {"id": conversation_id, "user_id": user_id, "title": title, "created_at": now}

    def get_conversation(self, conversation_id: str) -> dict[str, Any] | None:
        with self._db.connection() as conn:
            row = conn.execute(
                "SELECT id, user_id, title, created_at, updated_at FROM conversations WHERE id = ?",
                (conversation_id,),
            ).fetchone()
        return dict(row) if row else None

    def add_message(self, *, conversation_id: str, role: str, content: str) -> dict[str, Any]:
        now = to_iso(utc_now())
        message_id = uuid.uuid4().hex
        # seq allocation and insert share the write lock.
        with self._db.write_lock, self._db.connection() as conn:
            row = conn.execute(
                "SELECT COALESCE(MAX(seq), 0) AS last_seq FROM messages WHERE conversation_id = ?",
                (conversation_id,),
            ).fetchone()
            seq = int(row["last_seq"]) + 1
            conn.execute(
                """
                INSERT INTO messages (id, conversation_id, seq, role, content, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (message_id, conversation_id, seq, role, content, now),
            )
            conn.execute(
                "UPDATE conversations SET updated_at = ? WHERE id = ?",
                (now, conversation_id),
            )
        return {"id": message_id, "seq": seq, "role": role, "content": content, "created_at": now}

    def list_messages(self, conversation_id: str, limit: int | None = None) -> list[dict[str, Any]]:
        with self._db.connection() as conn:
            if limit is None:
                rows = conn.execute(
                    """
                    SELECT id, seq, role, content, created_at
                    FROM messages
                    WHERE conversation_id = ?
                    ORDER BY seq ASC
                    """,
                    (conversation_id,),
                ).fetchall()
                return [dict(row) for row in rows]
            rows = conn.execute(
                """
                SELECT id, seq, role, content, created_at
                FROM messages
                WHERE conversation_id = ?
                ORDER BY seq DESC
                LIMIT ?
                """,
                (conversation_id, max(1, limit)),
            ).fetchall()
        return [dict(row) for row in reversed(rows)]
