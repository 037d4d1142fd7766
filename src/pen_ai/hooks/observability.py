from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any

DEFAULT_MAX_EVENTS = 1000


@dataclass
class HookEvent:
    at: datetime
    kind: str
    name: str
    payload: dict[str, Any] = field(default_factory=dict)


class EventLogger:
    """Keeps the most recent ``max_events`` hook events; older ones are dropped."""

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS) -> None:
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._events: deque[HookEvent] = deque(maxlen=max_events)
        self._lock = Lock()

    @property
    def max_events(self) -> int:
        return self._events.maxlen or 0

    def record(self, kind: str, name: str, payload: dict[str, Any] | None = None) -> None:
        event = HookEvent(
            at=datetime.now(timezone.utc),
            kind=kind,
            name=name,
            payload=payload or {},
        )
        with self._lock:
            self._events.append(event)

    def on_provider_config(self, phase: str, **payload: Any) -> None:
        self.record("provider_config", phase, payload)

    def on_routing(self, phase: str, model: str, provider: str | None = None) -> None:
        self.record("routing", phase, {"model": model, "provider": provider})

    def on_llm_call(self, provider: str, model: str, phase: str) -> None:
        self.record("llm_call", phase, {"provider": provider, "model": model})

    def list_events(self, kind: str | None = None) -> list[HookEvent]:
        with self._lock:
            events = list(self._events)
        if kind is None:
            return events
        return [event for event in events if event.kind == kind]

    def drain(self, kind: str | None = None) -> list[HookEvent]:
        with self._lock:
            drained = [event for event in self._events if kind is None or event.kind == kind]
            kept = [event for event in self._events if kind is not None and event.kind != kind]
            self._events.clear()
            self._events.extend(kept)
        return drained
