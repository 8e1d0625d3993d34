from __future__ import annotations

import codecs
import logging
import threading
from typing import Any, Iterable, Iterator, Union

from .accumulator import MessageAccumulator
from .classifier import classify
from .extractor import extract
from .line_splitter import LineSplitter
from .models import TERMINAL_STATES, DataFrame, EndOfStream, StreamResult, UnparseableDelta
from .observers import StreamObservers
from .transport import ChatFunctionTransport, TransportError


logger = logging.getLogger(__name__)

ERROR_NOTICE = "I apologize, but I encountered an error. Please try again."

Chunk = Union[bytes, str]


class StreamLifecycleError(Exception):
    pass


class StreamDriver:
    """Consumes one chat completion SSE response and folds it into a message.

    A driver is single-use: it moves from ``idle`` to ``reading`` when it gets
    a chunk source and ends in ``done``, ``failed`` or ``cancelled``. Update
    observers see the full running text after every applied delta, and the
    same text is yielded from :meth:`stream` so a caller can relay it before
    the next chunk is read. Done observers are the persistence hook and fire
    once with the final text; nothing is committed on failure or cancel.
    """

    _TRANSITIONS = {
        "idle": {"reading", "failed", "cancelled"},
        "reading": {"done", "failed", "cancelled"},
        "done": set(),
        "failed": set(),
        "cancelled": set(),
    }

    def __init__(self, observers: StreamObservers | None = None, *, error_notice: str = ERROR_NOTICE) -> None:
        self.observers = observers or StreamObservers()
        self.error_notice = error_notice
        self._state = "idle"
        self._claimed = False
        self._splitter = LineSplitter()
        self._accumulator = MessageAccumulator()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._cancel_requested = threading.Event()
        self._malformed_frames = 0
        self._result: StreamResult | None = None

    @property
    def state(self) -> str:
        return self._state

    @property
    def text(self) -> str:
        return self._accumulator.text

    @property
    def result(self) -> StreamResult | None:
        return self._result

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    def cancel(self) -> None:
        self._cancel_requested.set()

    def stream(self, source: Iterable[Chunk]) -> StreamUpdates:
        self._claim()
        return StreamUpdates(self, self._read(source), source)

    def run(self, source: Iterable[Chunk]) -> StreamResult:
        for _ in self.stream(source):
            pass
        return self._result or self._build_result(self._state)

    def stream_request(self, transport: ChatFunctionTransport, messages: list[dict[str, str]]) -> StreamUpdates:
        self._claim()
        return StreamUpdates(self, self._open_and_read(transport, messages))

    def run_request(self, transport: ChatFunctionTransport, messages: list[dict[str, str]]) -> StreamResult:
        for _ in self.stream_request(transport, messages):
            pass
        return self._result or self._build_result(self._state)

    def _claim(self) -> None:
        if self._claimed:
            raise StreamLifecycleError("Stream driver instances cannot be reused.")
        self._claimed = True

    def _transition(self, next_state: str) -> None:
        allowed_next = self._TRANSITIONS.get(self._state, set())
        if next_state not in allowed_next:
            raise StreamLifecycleError(f"Invalid transition: {self._state} -> {next_state}")
        logger.debug("stream driver %s -> %s", self._state, next_state)
        self._state = next_state

    def _open_and_read(self, transport: ChatFunctionTransport, messages: list[dict[str, str]]) -> Iterator[str]:
        if self.cancel_requested:
            self._finish("cancelled")
            return
        try:
            handle = transport.open(messages)
        except TransportError as exc:
            self._finish("failed", exc)
            return
        yield from self._read(handle)

    def _read(self, source: Iterable[Chunk]) -> Iterator[str]:
        self._transition("reading")
        iterator = iter(source)
        try:
            while True:
                if self.cancel_requested:
                    self._finish("cancelled")
                    return
                try:
                    chunk = next(iterator)
                except StopIteration:
                    yield from self._process(self._decoder.decode(b"", final=True))
                    self._finish("cancelled" if self.cancel_requested else "done")
                    return
                except TransportError as exc:
                    self._finish("failed", exc)
                    return
                text = chunk if isinstance(chunk, str) else self._decoder.decode(chunk)
                yield from self._process(text)
                if self._accumulator.done:
                    self._finish("done")
                    return
        except GeneratorExit:
            if self._state not in TERMINAL_STATES:
                self._finish("cancelled")
            raise
        except Exception as exc:
            if self._state not in TERMINAL_STATES:
                self._commit("failed", exc)
            raise
        finally:
            self._release(iterator, source)

    def _process(self, text: str) -> Iterator[str]:
        for line in self._splitter.feed(text):
            if self.cancel_requested:
                return
            frame = classify(line)
            if not isinstance(frame, DataFrame):
                continue
            delta = extract(frame.payload)
            if isinstance(delta, UnparseableDelta):
                self._malformed_frames += 1
                self.observers.notify_malformed(delta.raw_payload)
                continue
            current = self._accumulator.apply(delta)
            if isinstance(delta, EndOfStream):
                return
            self.observers.notify_update(current)
            yield current

    def _build_result(self, state: str, exc: Exception | None = None) -> StreamResult:
        return StreamResult(
            state=state,
            text=self._accumulator.text,
            error=str(exc) if exc is not None else None,
            malformed_frames=self._malformed_frames,
        )

    def _finish(self, state: str, exc: Exception | None = None) -> None:
        if state == "done":
            # Done is only committed once every done observer has accepted the text.
            try:
                self.observers.notify_done(self._accumulator.text)
            except Exception as observer_exc:
                self._commit("failed", observer_exc)
                logger.warning("done observer failed: %s", observer_exc)
                raise
        self._commit(state, exc)
        if state == "failed":
            logger.warning("chat stream failed: %s", exc)
            self.observers.notify_error(self.error_notice, exc)

    def _commit(self, state: str, exc: Exception | None = None) -> None:
        self._transition(state)
        leftover = self._splitter.close()
        if leftover.strip():
            logger.debug("discarding unterminated stream tail: %.200s", leftover)
        self._result = self._build_result(state, exc)

    def _abandon(self, source: Any) -> None:
        if self._state != "idle":
            return
        self._commit("cancelled")
        if source is not None:
            self._release(source)

    @staticmethod
    def _release(*resources: Any) -> None:
        seen: set[int] = set()
        for resource in resources:
            if id(resource) in seen:
                continue
            seen.add(id(resource))
            close = getattr(resource, "close", None)
            if callable(close):
                close()


class StreamUpdates:
    """Iterator of running message text returned by ``StreamDriver.stream``.

    Closing it cancels the driver and releases the chunk source, including
    when the caller gives up before the first update was read.
    """

    def __init__(self, driver: StreamDriver, updates: Iterator[str], source: Any = None) -> None:
        self._driver = driver
        self._updates = updates
        self._source = source

    def __iter__(self) -> StreamUpdates:
        return self

    def __next__(self) -> str:
        return next(self._updates)

    def close(self) -> None:
        self._updates.close()
        self._driver._abandon(self._source)
