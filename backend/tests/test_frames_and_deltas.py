from __future__ import annotations

import json
import logging

from medicare_chat_core import (
    BlankFrame,
    CommentFrame,
    DataFrame,
    EndOfStream,
    TextDelta,
    UnknownFrame,
    UnparseableDelta,
    classify,
    extract,
)


def test_classify_comment_and_blank_lines():
    assert classify(": keepalive") == CommentFrame(text=" keepalive")
    assert classify(":") == CommentFrame(text="")
    assert classify("") == BlankFrame()
    assert classify("   \t") == BlankFrame()


def test_classify_data_frame_trims_payload():
    assert classify('data: {"a": 1}  ') == DataFrame(payload='{"a": 1}')
    assert classify("data: [DONE]") == DataFrame(payload="[DONE]")
    assert classify("data:  padded ") == DataFrame(payload="padded")


def test_classify_requires_exact_data_prefix():
    assert classify("data:[DONE]") == UnknownFrame(line="data:[DONE]")
    assert classify("DATA: [DONE]") == UnknownFrame(line="DATA: [DONE]")
    assert classify(" data: x") == UnknownFrame(line=" data: x")
    assert classify("event: message") == UnknownFrame(line="event: message")
    assert classify("id: 7") == UnknownFrame(line="id: 7")


def test_extract_done_sentinel():
    assert extract("[DONE]") == EndOfStream()


def test_extract_text_delta():
    payload = json.dumps({"id": "c1", "choices": [{"index": 0, "delta": {"content": "Hel"}}]})
    assert extract(payload) == TextDelta(content="Hel")


def test_extract_metadata_only_chunks_are_empty_text():
    assert extract('{"choices":[{"delta":{"role":"assistant"}}]}') == TextDelta(content="")
    assert extract('{"choices":[{"delta":{"content":null}}]}') == TextDelta(content="")
    assert extract('{"choices":[{"delta":{},"finish_reason":"stop"}]}') == TextDelta(content="")
    assert extract('{"choices":[{"index":0}]}') == TextDelta(content="")
    assert extract('{"choices":[],"usage":{"total_tokens":12}}') == TextDelta(content="")


def test_extract_malformed_payloads_are_unparseable(caplog):
    caplog.set_level(logging.WARNING, logger="medicare_chat_core.extractor")
    for payload in [
        '{"choices":[{"delta":{"content":"Hel',
        "not json",
        "[1, 2]",
        '{"object":"chat.completion.chunk"}',
        '{"choices":"nope"}',
        '{"choices":["nope"]}',
        '{"choices":[{"delta":"nope"}]}',
        '{"choices":[{"delta":{"content":42}}]}',
    ]:
        assert extract(payload) == UnparseableDelta(raw_payload=payload)
    assert len([record for record in caplog.records if "malformed stream frame" in record.getMessage()]) == 8


def test_extract_deeply_nested_payload_is_unparseable():
    payload = "[" * 200000
    assert extract(payload) == UnparseableDelta(raw_payload=payload)
