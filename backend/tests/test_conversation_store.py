from __future__ import annotations

import threading

from memory import SQLiteMemoryDB
from memory.conversation_store import ConversationStore


def test_concurrent_writers_get_distinct_sequence_numbers(tmp_path):
    store = ConversationStore(SQLiteMemoryDB(str(tmp_path / "concurrent.sqlite")))
    conversation = store.create_conversation(user_id="user-a")
    errors: list[Exception] = []
    start = threading.Barrier(8)

    def write(worker: int) -> None:
        start.wait()
        for index in range(30):
            try:
                store.add_message(
                    conversation_id=conversation["id"],
                    role="user" if worker % 2 else "assistant",
                    content=f"worker {worker} message {index}",
                )
            except Exception as exc:  # collected and asserted below
                errors.append(exc)

    threads = [threading.Thread(target=write, args=(worker,)) for worker in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    messages = store.list_messages(conversation["id"])
    assert [message["seq"] for message in messages] == list(range(1, 241))


def test_list_messages_limit_returns_latest_in_order(tmp_path):
    store = ConversationStore(SQLiteMemoryDB(str(tmp_path / "window.sqlite")))
    conversation = store.create_conversation(user_id="user-a")
    for index in range(5):
        store.add_message(conversation_id=conversation["id"], role="user", content=f"m{index}")
    assert [m["content"] for m in store.list_messages(conversation["id"], limit=2)] == ["m3", "m4"]
