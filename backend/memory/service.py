from __future__ import annotations

from typing import Any

from .care_store import CareStore
from .conversation_store import ConversationStore
from .database import SQLiteMemoryDB
from .memory_policy_guard import MemoryPolicyError, MemoryPolicyGuard, RecordNotFoundError


WELCOME_MESSAGE = (
    "Welcome to MediCare+! I'm your personal healthcare assistant. How can I help you today?"
)


class MemoryService:
    def __init__(self, db: SQLiteMemoryDB) -> None:
        self.db = db
        self.guard = MemoryPolicyGuard()
        self.conversation = ConversationStore(db)
        self.care = CareStore(db)

    def start_conversation(self, *, user_id: str, title: str = "New Conversation") -> dict[str, Any]:
        conversation = self.conversation.create_conversation(user_id=user_id, title=title)
        welcome = self.conversation.add_message(
            conversation_id=conversation["id"],
            role="assistant",
            content=WELCOME_MESSAGE,
        )
        return {**conversation, "messages": [welcome]}

    def require_conversation(self, *, user_id: str, conversation_id: str) -> dict[str, Any]:
        conversation = self.conversation.get_conversation(conversation_id)
        if not conversation:
            raise RecordNotFoundError("Conversation not found.")
        self.guard.ensure_user_scope(user_id, conversation["user_id"])
        return conversation

    def record_message(self, *, user_id: str, conversation_id: str, role: str, content: str) -> dict[str, Any]:
        if role not in self.guard.MESSAGE_ROLES:
            raise MemoryPolicyError(f"Unsupported message role: {role}")
        self.require_conversation(user_id=user_id, conversation_id=conversation_id)
        return self.conversation.add_message(conversation_id=conversation_id, role=role, content=content)

    def chat_history(self, *, user_id: str, conversation_id: str, limit: int = 50) -> list[dict[str, str]]:
        self.require_conversation(user_id=user_id, conversation_id=conversation_id)
        return [
            {"role": row["role"], "content": row["content"]}
            for row in self.conversation.list_messages(conversation_id, limit=limit)
        ]

    def book_appointment(self, *, user_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.guard.require_fields(payload, ["provider_name", "appointment_date", "appointment_type"])
        return self.care.create_appointment(
            user_id=user_id,
            provider_name=str(payload["provider_name"]).strip(),
            appointment_date=self.guard.normalize_date(str(payload["appointment_date"]), "appointment date"),
            appointment_type=self.guard.normalize_choice(
                str(payload["appointment_type"]), self.guard.APPOINTMENT_TYPES, "appointment type"
            ),
            notes=str(payload.get("notes") or "").strip(),
        )

    def cancel_appointment(self, *, user_id: str, appointment_id: str) -> None:
        if not self.care.delete_appointment(user_id, appointment_id):
            raise RecordNotFoundError("Appointment not found.")

    def add_reminder(self, *, user_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.guard.require_fields(payload, ["medicine_name", "dosage", "frequency", "time_of_day", "start_date"])
        start_date = self.guard.normalize_date(str(payload["start_date"]), "start date")
        end_date = payload.get("end_date") or None
        if end_date:
            end_date = self.guard.normalize_date(str(end_date), "end date")
            self.guard.ensure_date_order(start_date, end_date)
        return self.care.create_reminder(
            user_id=user_id,
            medicine_name=str(payload["medicine_name"]).strip(),
            dosage=str(payload["dosage"]).strip(),
            frequency=self.guard.normalize_choice(
                str(payload["frequency"]), self.guard.REMINDER_FREQUENCIES, "frequency"
            ),
            time_of_day=str(payload["time_of_day"]).strip(),
            start_date=start_date,
            end_date=end_date,
            notes=str(payload.get("notes") or "").strip(),
        )

    def toggle_reminder(self, *, user_id: str, reminder_id: str) -> dict[str, Any]:
        reminder = self.care.toggle_reminder(user_id, reminder_id)
        if reminder is None:
            raise RecordNotFoundError("Reminder not found.")
        return reminder

    def delete_reminder(self, *, user_id: str, reminder_id: str) -> None:
        if not self.care.delete_reminder(user_id, reminder_id):
            raise RecordNotFoundError("Reminder not found.")

    def submit_feedback(self, *, user_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.guard.require_fields(payload, ["name", "email", "message"])
        return self.care.add_feedback(
            user_id=user_id,
            name=str(payload["name"]).strip(),
            email=self.guard.normalize_email(str(payload["email"])),
            message=str(payload["message"]).strip(),
            rating=self.guard.normalize_rating(payload.get("rating")),
        )
