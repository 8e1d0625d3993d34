from __future__ import annotations

import logging
from typing import Any, Iterator

import httpx


logger = logging.getLogger(__name__)


class TransportError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _provider_error_message(response: httpx.Response) -> str:
    message = response.text.strip()
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict):
            msg = err.get("message")
            if isinstance(msg, str) and msg.strip():
                return msg.strip()
        if isinstance(err, str) and err.strip():
            return err.strip()
        msg = payload.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()
    return message or f"HTTP {response.status_code}"


class ChatStreamHandle:
    """Readable byte stream of one chat function response."""

    def __init__(self, response: httpx.Response, owned_client: httpx.Client | None = None) -> None:
        self._response = response
        self._owned_client = owned_client
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    def __iter__(self) -> Iterator[bytes]:
        try:
            for chunk in self._response.iter_bytes():
                if chunk:
                    yield chunk
        except httpx.HTTPError as exc:
            raise TransportError(f"Chat stream interrupted: {exc}") from exc

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._response.close()
        if self._owned_client is not None:
            self._owned_client.close()

    def __enter__(self) -> ChatStreamHandle:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class ChatFunctionTransport:
    """Opens streaming requests against the hosted chat function."""

    def __init__(
        self,
        url: str,
        *,
        api_key: str | None = None,
        timeout_seconds: float = 60.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "text/event-stream",
            "Content-Type": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return headers

    def open(self, messages: list[dict[str, str]]) -> ChatStreamHandle:
        owned_client: httpx.Client | None = None
        client = self._client
        if client is None:
            owned_client = httpx.Client(timeout=httpx.Timeout(self.timeout_seconds, connect=8.0))
            client = owned_client
        try:
            request = client.build_request("POST", self.url, headers=self._headers(), json={"messages": messages})
            response = client.send(request, stream=True)
        except httpx.HTTPError as exc:
            if owned_client is not None:
                owned_client.close()
            logger.warning("chat function unreachable: %s", exc)
            raise TransportError(f"Chat function unreachable: {exc}") from exc

        if not response.is_success:
            try:
                response.read()
                message = _provider_error_message(response)
            except httpx.HTTPError:
                message = f"HTTP {response.status_code}"
            finally:
                response.close()
                if owned_client is not None:
                    owned_client.close()
            logger.warning("chat function returned %s: %s", response.status_code, message)
            raise TransportError(message, status_code=response.status_code)
        return ChatStreamHandle(response, owned_client)
