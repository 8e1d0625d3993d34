from __future__ import annotations

import re
from typing import Any

from .time_utils import parse_iso


class MemoryPolicyError(Exception):
    pass


class RecordScopeError(MemoryPolicyError):
    pass


class RecordNotFoundError(MemoryPolicyError):
    pass


class MemoryPolicyGuard:
    _EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

    APPOINTMENT_TYPES = {"consultation", "checkup", "followup", "emergency"}
    REMINDER_FREQUENCIES = {"once-daily", "twice-daily", "three-times-daily", "as-needed"}
    MESSAGE_ROLES = {"user", "assistant"}

    def ensure_user_scope(self, requested_user_id: str, scoped_user_id: str) -> None:
        if requested_user_id != scoped_user_id:
            raise RecordScopeError("Cross-user access is blocked.")

    def require_fields(self, payload: dict[str, Any], fields: list[str]) -> None:
        missing = [name for name in fields if not str(payload.get(name) or "").strip()]
        if missing:
            raise MemoryPolicyError(f"Please fill in all required fields: {', '.join(missing)}")

    def normalize_choice(self, value: str, allowed: set[str], field_name: str) -> str:
        normalized = value.strip().lower()
        if normalized not in allowed:
            raise MemoryPolicyError(f"Unsupported {field_name}: {value}")
        return normalized

    def normalize_date(self, value: str, field_name: str) -> str:
        parsed = parse_iso(value)
        if parsed is None:
            raise MemoryPolicyError(f"Invalid {field_name}: {value}")
        return value.strip()

    def ensure_date_order(self, start: str, end: str | None) -> None:
        if not end:
            return
        start_dt, end_dt = parse_iso(start), parse_iso(end)
        if start_dt and end_dt and end_dt < start_dt:
            raise MemoryPolicyError("End date cannot be before start date.")

    def normalize_email(self, value: str) -> str:
        cleaned = value.strip()
        if not self._EMAIL_RE.fullmatch(cleaned):
            raise MemoryPolicyError("Please enter a valid email address.")
        return cleaned

    def normalize_rating(self, rating: int | None) -> int | None:
        # 0 means "not rated" on the feedback form.
        if rating is None or rating == 0:
            return None
        if not (1 <= rating <= 5):
            raise MemoryPolicyError("Rating must be between 1 and 5.")
        return rating
