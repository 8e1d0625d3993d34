from .accumulator import MessageAccumulator
from .classifier import classify
from .driver import ERROR_NOTICE, StreamDriver, StreamLifecycleError, StreamUpdates
from .extractor import DONE_SENTINEL, extract
from .line_splitter import LineSplitter
from .models import (
    TERMINAL_STATES,
    BlankFrame,
    CommentFrame,
    DataFrame,
    EndOfStream,
    StreamResult,
    TextDelta,
    UnknownFrame,
    UnparseableDelta,
)
from .observers import StreamObservers
from .transport import ChatFunctionTransport, ChatStreamHandle, TransportError

__all__ = [
    "DONE_SENTINEL",
    "ERROR_NOTICE",
    "TERMINAL_STATES",
    "BlankFrame",
    "ChatFunctionTransport",
    "ChatStreamHandle",
    "CommentFrame",
    "DataFrame",
    "EndOfStream",
    "LineSplitter",
    "MessageAccumulator",
    "StreamDriver",
    "StreamLifecycleError",
    "StreamObservers",
    "StreamResult",
    "StreamUpdates",
    "TextDelta",
    "TransportError",
    "UnknownFrame",
    "UnparseableDelta",
    "classify",
    "extract",
]
