from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any

_MAX_EVENTS = 10_000

_events: list[dict[str, Any]] = []
_lock = threading.Lock()


def record_event(event_type: str, data: dict[str, Any]) -> None:
    """Append a telemetry event (``search`` or ``selection``)."""
    event = {
        "type": event_type,
        "created_at": datetime.now(timezone.utc).isoformat(),
        **data,
    }
    with _lock:
        _events.append(event)
        if len(_events) > _MAX_EVENTS:
            del _events[: len(_events) - _MAX_EVENTS]


def get_events() -> list[dict[str, Any]]:
    with _lock:
        return list(_events)


def clear_events() -> None:
    with _lock:
        _events.clear()
