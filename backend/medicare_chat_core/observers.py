from __future__ import annotations

from typing import Callable


UpdateObserver = Callable[[str], None]
DoneObserver = Callable[[str], None]
ErrorObserver = Callable[[str, "Exception | None"], None]
MalformedObserver = Callable[[str], None]


class StreamObservers:
    def __init__(self) -> None:
        self._update: list[UpdateObserver] = []
        self._done: list[DoneObserver] = []
        self._error: list[ErrorObserver] = []
        self._malformed: list[MalformedObserver] = []

    def add_update(self, observer: UpdateObserver) -> None:
        self._update.append(observer)

    def add_done(self, observer: DoneObserver) -> None:
        self._done.append(observer)

    def add_error(self, observer: ErrorObserver) -> None:
        self._error.append(observer)

    def add_malformed(self, observer: MalformedObserver) -> None:
        self._malformed.append(observer)

    def notify_update(self, text: str) -> None:
        for observer in self._update:
            observer(text)

    def notify_done(self, text: str) -> None:
        for observer in self._done:
            observer(text)

    def notify_error(self, notice: str, exc: Exception | None) -> None:
        for observer in self._error:
            observer(notice, exc)

    def notify_malformed(self, payload: str) -> None:
        for observer in self._malformed:
            observer(payload)
