from __future__ import annotations

import logging

from .models import Delta, EndOfStream, TextDelta


logger = logging.getLogger(__name__)


class MessageAccumulator:
    """Folds text deltas into the single in-progress assistant message."""

    def __init__(self) -> None:
        self._text = ""
        self._started = False
        self._done = False

    @property
    def text(self) -> str:
        return self._text

    @property
    def started(self) -> bool:
        return self._started

    @property
    def done(self) -> bool:
        return self._done

    def reset(self) -> None:
        self._text = ""
        self._started = False
        self._done = False

    def apply(self, delta: Delta) -> str:
        if isinstance(delta, EndOfStream):
            self._done = True
            return self._text
        if not isinstance(delta, TextDelta):
            return self._text
        if self._done:
            logger.debug("ignoring delta received after end of stream")
            return self._text
        self._started = True
        if delta.content:
            self._text += delta.content
        return self._text
