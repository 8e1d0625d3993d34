from __future__ import annotations

import importlib
import json
import sys
from pathlib import Path
from typing import Any, Callable, Iterable

import httpx
import pytest
from fastapi.testclient import TestClient

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

CHAT_FUNCTION_URL = "https://chat.test/functions/v1/chat"


def completion_frame(content: str | None = None, *, role: str | None = None) -> str:
    delta: dict[str, Any] = {}
    if role is not None:
        delta["role"] = role
    if content is not None:
        delta["content"] = content
    return "data: " + json.dumps({"choices": [{"index": 0, "delta": delta}]}) + "\n"


class FakeChatFunction:
    """Stands in for the hosted chat function behind an httpx MockTransport."""

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.headers: list[httpx.Headers] = []
        self._status_code = 200
        self._chunks: list[bytes] = []
        self._fail_after: int | None = None
        self._body: Any = None

    def reply(self, chunks: Iterable[str | bytes], *, fail_after: int | None = None) -> None:
        self._status_code = 200
        self._chunks = [chunk.encode("utf-8") if isinstance(chunk, str) else chunk for chunk in chunks]
        self._fail_after = fail_after

    def reply_error(self, status_code: int, body: Any) -> None:
        self._status_code = status_code
        self._body = body

    def _stream(self, request: httpx.Request) -> Iterable[bytes]:
        for index, chunk in enumerate(self._chunks):
            if self._fail_after is not None and index >= self._fail_after:
                raise httpx.ReadError("connection reset", request=request)
            yield chunk
        if self._fail_after is not None and self._fail_after >= len(self._chunks):
            raise httpx.ReadError("connection reset", request=request)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        self.headers.append(request.headers)
        if self._status_code >= 400:
            return httpx.Response(self._status_code, json=self._body)
        return httpx.Response(
            200,
            headers={"content-type": "text/event-stream"},
            content=self._stream(request),
        )

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_chat_function() -> FakeChatFunction:
    return FakeChatFunction()


@pytest.fixture
def backend_module(tmp_path, monkeypatch, fake_chat_function):
    db_path = tmp_path / "medicare-test.sqlite"
    monkeypatch.setenv("MEDICARE_DB_PATH", str(db_path))
    monkeypatch.setenv("ALLOW_ANON", "false")
    monkeypatch.setenv("MEDICARE_CHAT_FUNCTION_URL", CHAT_FUNCTION_URL)
    monkeypatch.setenv("MEDICARE_CHAT_FUNCTION_KEY", "anon-key")

    if "main" in sys.modules:
        module = importlib.reload(sys.modules["main"])
    else:
        module = importlib.import_module("main")
    module.container.chat_client = fake_chat_function.client()
    yield module
    module.container.chat_client.close()


@pytest.fixture
def client(backend_module):
    with TestClient(backend_module.app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    def _make(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {user_id}"}

    return _make
