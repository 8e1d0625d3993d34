from __future__ import annotations

from medicare_chat_core import EndOfStream, MessageAccumulator, TextDelta, UnparseableDelta


def test_text_deltas_concatenate_in_order():
    accumulator = MessageAccumulator()
    assert accumulator.started is False
    seen = [accumulator.apply(TextDelta(part)) for part in ["He", "l", "", "lo", " there"]]
    assert seen == ["He", "Hel", "Hel", "Hello", "Hello there"]
    assert accumulator.text == "Hello there"
    assert accumulator.started is True


def test_role_only_first_delta_starts_the_message():
    accumulator = MessageAccumulator()
    assert accumulator.apply(TextDelta("")) == ""
    assert accumulator.started is True


def test_unparseable_delta_leaves_state_unchanged():
    accumulator = MessageAccumulator()
    accumulator.apply(TextDelta("Hi"))
    assert accumulator.apply(UnparseableDelta("{bad")) == "Hi"
    assert accumulator.done is False


def test_end_of_stream_freezes_the_message():
    accumulator = MessageAccumulator()
    accumulator.apply(TextDelta("Final"))
    assert accumulator.apply(EndOfStream()) == "Final"
    assert accumulator.done is True
    assert accumulator.apply(TextDelta(" extra")) == "Final"
    assert accumulator.text == "Final"


def test_reset_starts_a_new_message():
    accumulator = MessageAccumulator()
    accumulator.apply(TextDelta("old"))
    accumulator.apply(EndOfStream())
    accumulator.reset()
    assert accumulator.text == ""
    assert accumulator.done is False
    assert accumulator.apply(TextDelta("new")) == "new"
