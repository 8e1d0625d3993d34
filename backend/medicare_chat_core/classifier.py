from __future__ import annotations

from .models import BlankFrame, CommentFrame, DataFrame, Frame, UnknownFrame


DATA_PREFIX = "data: "


def classify(line: str) -> Frame:
    if line.startswith(":"):
        return CommentFrame(text=line[1:])
    if not line.strip():
        return BlankFrame()
    if line.startswith(DATA_PREFIX):
        return DataFrame(payload=line[len(DATA_PREFIX) :].strip())
    # event:, id:, retry: and anything else are metadata we do not act on.
    return UnknownFrame(line=line)
