from __future__ import annotations

from dataclasses import dataclass
from typing import Union


TERMINAL_STATES = {"done", "failed", "cancelled"}


@dataclass(frozen=True)
class CommentFrame:
    text: str


@dataclass(frozen=True)
class BlankFrame:
    pass


@dataclass(frozen=True)
class DataFrame:
    payload: str


@dataclass(frozen=True)
class UnknownFrame:
    line: str


Frame = Union[CommentFrame, BlankFrame, DataFrame, UnknownFrame]


@dataclass(frozen=True)
class TextDelta:
    content: str


@dataclass(frozen=True)
class EndOfStream:
    pass


@dataclass(frozen=True)
class UnparseableDelta:
    raw_payload: str


Delta = Union[TextDelta, EndOfStream, UnparseableDelta]


@dataclass
class StreamResult:
    state: str
    text: str = ""
    error: str | None = None
    malformed_frames: int = 0

    @property
    def succeeded(self) -> bool:
        return self.state == "done"
