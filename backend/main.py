from __future__ import annotations

import contextlib
import hashlib
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Iterator

import httpx
from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from medicare_chat_core import ERROR_NOTICE, ChatFunctionTransport, StreamDriver, StreamObservers
from memory import MemoryPolicyError, MemoryService, RecordNotFoundError, RecordScopeError, SQLiteMemoryDB

_ENV_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _load_local_env_file(path: Path) -> None:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not _ENV_KEY_RE.fullmatch(key):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        os.environ.setdefault(key, value)


def _bootstrap_local_env() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    for candidate in (repo_root / ".env", repo_root / "backend/.env"):
        if candidate.exists():
            _load_local_env_file(candidate)


def _configure_logging() -> None:
    level_name = (os.getenv("MEDICARE_LOG_LEVEL") or "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


_bootstrap_local_env()
_configure_logging()

logger = logging.getLogger(__name__)

SYMPTOM_SYSTEM_PROMPT = (
    "You are a medical symptom analysis assistant. Analyze the symptoms provided and give a "
    "preliminary assessment. Always remind users to consult with a healthcare professional "
    "for proper diagnosis."
)
_HISTORY_LIMIT = 50


class ConversationCreate(BaseModel):
    title: str = "New Conversation"


class ChatRequest(BaseModel):
    conversation_id: str
    message: str


class SymptomCheckRequest(BaseModel):
    symptoms: str


class AppointmentPayload(BaseModel):
    provider_name: str = ""
    appointment_date: str = ""
    appointment_type: str = ""
    notes: str = ""


class ReminderPayload(BaseModel):
    medicine_name: str = ""
    dosage: str = ""
    frequency: str = ""
    time_of_day: str = ""
    start_date: str = ""
    end_date: str | None = None
    notes: str = ""


class FeedbackPayload(BaseModel):
    name: str = ""
    email: str = ""
    message: str = ""
    rating: int | None = None


class MedicareApp:
    def __init__(self) -> None:
        db_path = os.getenv(
            "MEDICARE_DB_PATH",
            str((Path(__file__).resolve().parent / "medicare.sqlite")),
        )
        self.db = SQLiteMemoryDB(db_path)
        self.memory = MemoryService(self.db)
        # Shared client for the chat function; tests swap in a mock-transport client.
        self.chat_client: httpx.Client | None = None

    def chat_transport(self) -> ChatFunctionTransport:
        url = (os.getenv("MEDICARE_CHAT_FUNCTION_URL") or "").strip()
        if not url:
            raise HTTPException(status_code=503, detail="Chat function is not configured.")
        return ChatFunctionTransport(
            url,
            api_key=(os.getenv("MEDICARE_CHAT_FUNCTION_KEY") or "").strip() or None,
            timeout_seconds=float(os.getenv("MEDICARE_CHAT_TIMEOUT_SECONDS", "60")),
            client=self.chat_client,
        )


container = MedicareApp()
app = FastAPI(title="MediCare+ Backend")

allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in allowed_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_user_id(auth_header: str | None) -> str:
    raw = (auth_header or "").replace("Bearer", "", 1).strip()
    if not raw:
        if os.getenv("ALLOW_ANON", "false").lower() == "true":
            return "guest-user"
        raise HTTPException(status_code=401, detail="Missing Authorization")
    # Opaque token; identity verification belongs to the auth provider.
    if len(raw) > 96:
        return f"token_{hashlib.sha256(raw.encode('utf-8')).hexdigest()[:24]}"
    return raw


def _policy_http_error(exc: MemoryPolicyError) -> HTTPException:
    if isinstance(exc, (RecordNotFoundError, RecordScopeError)):
        # Records owned by someone else look the same as missing ones.
        return HTTPException(status_code=404, detail="Not found.")
    return HTTPException(status_code=400, detail=str(exc))


def _emit_sse(event: str, data: dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


def _relay_stream(driver: StreamDriver, transport: ChatFunctionTransport, messages: list[dict[str, str]]) -> Iterator[str]:
    sent = 0
    try:
        with contextlib.closing(driver.stream_request(transport, messages)) as updates:
            for text in updates:
                delta = text[sent:]
                sent = len(text)
                if delta:
                    yield _emit_sse("token", {"delta": delta})
        result = driver.result
        if result is not None and result.succeeded:
            yield _emit_sse("message", {"text": result.text})
        else:
            yield _emit_sse("error", {"message": driver.error_notice})
    except Exception:
        logger.exception("chat stream relay failed")
        yield _emit_sse("error", {"message": ERROR_NOTICE})
    finally:
        driver.cancel()


@app.get("/health")
def health() -> dict[str, Any]:
    return {"ok": True}


@app.post("/conversations")
def create_conversation(
    payload: ConversationCreate | None = None,
    authorization: str | None = Header(default=None),
):
    user_id = get_user_id(authorization)
    title = (payload.title if payload else "").strip() or "New Conversation"
    return container.memory.start_conversation(user_id=user_id, title=title)


@app.get("/conversations/{conversation_id}/messages")
def get_conversation_messages(conversation_id: str, authorization: str | None = Header(default=None)):
    user_id = get_user_id(authorization)
    try:
        container.memory.require_conversation(user_id=user_id, conversation_id=conversation_id)
    except MemoryPolicyError as exc:
        raise _policy_http_error(exc) from exc
    return {"items": container.memory.conversation.list_messages(conversation_id)}


@app.post("/chat/stream")
def chat_stream(payload: ChatRequest, authorization: str | None = Header(default=None)):
    user_id = get_user_id(authorization)
    message = payload.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message cannot be empty.")
    transport = container.chat_transport()
    try:
        container.memory.record_message(
            user_id=user_id,
            conversation_id=payload.conversation_id,
            role="user",
            content=message,
        )
        history = container.memory.chat_history(
            user_id=user_id,
            conversation_id=payload.conversation_id,
            limit=_HISTORY_LIMIT,
        )
    except MemoryPolicyError as exc:
        raise _policy_http_error(exc) from exc

    def persist_reply(text: str) -> None:
        container.memory.conversation.add_message(
            conversation_id=payload.conversation_id,
            role="assistant",
            content=text,
        )

    observers = StreamObservers()
    observers.add_done(persist_reply)
    driver = StreamDriver(observers)
    return StreamingResponse(_relay_stream(driver, transport, history), media_type="text/event-stream")


@app.post("/symptoms/check")
def symptoms_check(payload: SymptomCheckRequest, authorization: str | None = Header(default=None)):
    get_user_id(authorization)
    symptoms = payload.symptoms.strip()
    if not symptoms:
        raise HTTPException(status_code=400, detail="Please describe your symptoms")
    transport = container.chat_transport()
    messages = [
        {"role": "system", "content": SYMPTOM_SYSTEM_PROMPT},
        {"role": "user", "content": f"Please analyze these symptoms: {symptoms}"},
    ]
    driver = StreamDriver()
    return StreamingResponse(_relay_stream(driver, transport, messages), media_type="text/event-stream")


@app.get("/appointments")
def list_appointments(authorization: str | None = Header(default=None)):
    user_id = get_user_id(authorization)
    return {"items": container.memory.care.list_appointments(user_id)}


@app.post("/appointments")
def book_appointment(payload: AppointmentPayload, authorization: str | None = Header(default=None)):
    user_id = get_user_id(authorization)
    try:
        return container.memory.book_appointment(user_id=user_id, payload=payload.model_dump())
    except MemoryPolicyError as exc:
        raise _policy_http_error(exc) from exc


@app.delete("/appointments/{appointment_id}")
def delete_appointment(appointment_id: str, authorization: str | None = Header(default=None)):
    user_id = get_user_id(authorization)
    try:
        container.memory.cancel_appointment(user_id=user_id, appointment_id=appointment_id)
    except MemoryPolicyError as exc:
        raise _policy_http_error(exc) from exc
    return {"ok": True}


@app.get("/reminders")
def list_reminders(authorization: str | None = Header(default=None)):
    user_id = get_user_id(authorization)
    return {"items": container.memory.care.list_reminders(user_id)}


@app.post("/reminders")
def add_reminder(payload: ReminderPayload, authorization: str | None = Header(default=None)):
    user_id = get_user_id(authorization)
    try:
        return container.memory.add_reminder(user_id=user_id, payload=payload.model_dump())
    except MemoryPolicyError as exc:
        raise _policy_http_error(exc) from exc


@app.post("/reminders/{reminder_id}/toggle")
def toggle_reminder(reminder_id: str, authorization: str | None = Header(default=None)):
    user_id = get_user_id(authorization)
    try:
        return container.memory.toggle_reminder(user_id=user_id, reminder_id=reminder_id)
    except MemoryPolicyError as exc:
        raise _policy_http_error(exc) from exc


@app.delete("/reminders/{reminder_id}")
def delete_reminder(reminder_id: str, authorization: str | None = Header(default=None)):
    user_id = get_user_id(authorization)
    try:
        container.memory.delete_reminder(user_id=user_id, reminder_id=reminder_id)
    except MemoryPolicyError as exc:
        raise _policy_http_error(exc) from exc
    return {"ok": True}


@app.post("/feedback")
def submit_feedback(payload: FeedbackPayload, authorization: str | None = Header(default=None)):
    user_id = get_user_id(authorization)
    try:
        record = container.memory.submit_feedback(user_id=user_id, payload=payload.model_dump())
    except MemoryPolicyError as exc:
        raise _policy_http_error(exc) from exc
    return {"ok": True, **record}
