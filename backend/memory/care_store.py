from __future__ import annotations

import uuid
from typing import Any

from .database import SQLiteMemoryDB
from .time_utils import to_iso, utc_now


def _reminder_row(row: Any) -> dict[str, Any]:
    record = dict(row)
    record["is_active"] = bool(record["is_active"])
    return record


class CareStore:
    def __init__(self, db: SQLiteMemoryDB) -> None:
        self._db = db

    def create_appointment(
        self,
        *,
        user_id: str,
        provider_name: str,
        appointment_date: str,
        appointment_type: str,
        notes: str = "",
        status: str = "scheduled",
    ) -> dict[str, Any]:
        now = to_iso(utc_now())
        appointment_id = uuid.uuid4().hex
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO appointments (
                  id, user_id, provider_name, appointment_date, appointment_type, notes, status,
                  created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (appointment_id, user_id, provider_name, appointment_date, appointment_type, notes, status, now, now),
            )
        return {
            "id": appointment_id,
            "provider_name": provider_name,
            "appointment_date": appointment_date,
            "appointment_type": appointment_type,
            "notes": notes,
            "status": status,
        }

    def list_appointments(self, user_id: str) -> list[dict[str, Any]]:
        with self._db.connection() as conn:
            rows = conn.execute(
                """
                SELECT id, provider_name, appointment_date, appointment_type, notes, status
                FROM appointments
                WHERE user_id = ?
                ORDER BY appointment_date ASC
                """,
                (user_id,),
            ).fetchall()
            return [dict(row) for row in rows]

    def delete_appointment(self, user_id: str, appointment_id: str) -> bool:
        with self._db.connection() as conn:
            cursor = conn.execute(
                "DELETE FROM appointments WHERE id = ? AND user_id = ?",
                (appointment_id, user_id),
            )
            return cursor.rowcount > 0

    def create_reminder(
        self,
        *,
        user_id: str,
        medicine_name: str,
        dosage: str,
        frequency: str,
        time_of_day: str,
        start_date: str,
        end_date: str | None = None,
        notes: str = "",
    ) -> dict[str, Any]:
        now = to_iso(utc_now())
        reminder_id = uuid.uuid4().hex
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO medicine_reminders (
                  id, user_id, medicine_name, dosage, frequency, time_of_day, start_date, end_date,
                  notes, is_active, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
                """,
                (
                    reminder_id,
                    user_id,
                    medicine_name,
                    dosage,
                    frequency,
                    time_of_day,
                    start_date,
                    end_date,
                    notes,
                    now,
                    now,
                ),
            )
            row = conn.execute(
                """
                SELECT id, medicine_name, dosage, frequency, time_of_day, start_date, end_date, notes, is_active
                FROM medicine_reminders
                WHERE id = ?
                """,
                (reminder_id,),
            ).fetchone()
        return _reminder_row(row)

    def list_reminders(self, user_id: str) -> list[dict[str, Any]]:
        with self._db.connection() as conn:
            rows = conn.execute(
                """
                SELECT id, medicine_name, dosage, frequency, time_of_day, start_date, end_date, notes, is_active
                FROM medicine_reminders
                WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (user_id,),
            ).fetchall()
            return [_reminder_row(row) for row in rows]

    def toggle_reminder(self, user_id: str, reminder_id: str) -> dict[str, Any] | None:
        now = to_iso(utc_now())
        with self._db.connection() as conn:
            cursor = conn.execute(
                """
                UPDATE medicine_reminders
                SET is_active = 1 - is_active, updated_at = ?
                WHERE id = ? AND user_id = ?
                """,
                (now, reminder_id, user_id),
            )
            if cursor.rowcount == 0:
                return None
            row = conn.execute(
                """
                SELECT id, medicine_name, dosage, frequency, time_of_day, start_date, end_date, notes, is_active
                FROM medicine_reminders
                WHERE id = ?
                """,
                (reminder_id,),
            ).fetchone()
        return _reminder_row(row)

    def delete_reminder(self, user_id: str, reminder_id: str) -> bool:
        with self._db.connection() as conn:
            cursor = conn.execute(
                "DELETE FROM medicine_reminders WHERE id = ? AND user_id = ?",
                (reminder_id, user_id),
            )
            return cursor.rowcount > 0

    def add_feedback(
        self,
        *,
        user_id: str,
        name: str,
        email: str,
        message: str,
        rating: int | None,
    ) -> dict[str, Any]:
        feedback_id = uuid.uuid4().hex
        now = to_iso(utc_now())
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO feedback (id, user_id, name, email, message, rating, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (feedback_id, user_id, name, email, message, rating, now),
            )
        return {"id": feedback_id, "rating": rating, "created_at": now}
