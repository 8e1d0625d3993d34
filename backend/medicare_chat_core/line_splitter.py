from __future__ import annotations


class LineSplitter:
    """Turns arbitrarily chunked text into complete newline-terminated lines.

    The carry buffer holds at most one unterminated line between calls. It is
    only emitted once its terminating newline arrives, since the transport may
    cut a frame anywhere.
    """

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, chunk: str) -> list[str]:
        if chunk:
            self._buffer += chunk
        lines: list[str] = []
        start = 0
        while True:
            cut = self._buffer.find("\n", start)
            if cut < 0:
                break
            line = self._buffer[start:cut]
            if line.endswith("\r"):
                line = line[:-1]
            lines.append(line)
            start = cut + 1
        if start:
            self._buffer = self._buffer[start:]
        return lines

    def close(self) -> str:
        # Unterminated trailing content never carries a complete frame.
        leftover = self._buffer
        self._buffer = ""
        return leftover
