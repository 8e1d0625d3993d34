from __future__ import annotations

import json
from typing import Any, Dict, List

from medicare_chat_core import LineSplitter


def parse_sse_events(payload_text: str) -> List[Dict[str, Any]]:
    events: List[Dict[str, Any]] = []
    current: Dict[str, Any] = {}
    for line in LineSplitter().feed(payload_text):
        if line.startswith("event: "):
            current["event"] = line[7:]
        elif line.startswith("data: "):
            current["data"] = json.loads(line[6:])
        elif line == "" and current:
            events.append(current)
            current = {}
    if current:
        events.append(current)
    return events


def token_text(events: List[Dict[str, Any]]) -> str:
    return "".join(event["data"]["delta"] for event in events if event.get("event") == "token")


def event_types(events: List[Dict[str, Any]]) -> List[str]:
    return [str(event.get("event")) for event in events]
