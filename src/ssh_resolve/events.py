"""
Diagnostic events for config resolution.

Provides structured JSONL event logging of what was loaded and resolved.

Event types:
- FILE_CONFIG: the combined file configuration (reported once per client)
- CONFIG: the final configuration for one resolved address

All events include:
- timestamp: Unix timestamp in milliseconds
- event_type: One of the above types
- data: Event-specific structured data
"""
from __future__ import annotations

import json
import threading
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from ssh_resolve.config import EffectiveConfig
    from ssh_resolve.parser import ConfigFile


class EventType(str, Enum):
    """Resolution event types for structured logging."""
    FILE_CONFIG = "FILE_CONFIG"
    CONFIG = "CONFIG"


@dataclass
class Event:
    """
    A single diagnostic record.

    - event_type: The category of event
    - timestamp: When the event occurred (Unix ms)
    - data: Event-specific structured data
    """
    event_type: str
    timestamp: float = field(default_factory=lambda: time.time() * 1000)
    data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        valid_types = {e.value for e in EventType}
        assert self.event_type in valid_types, \
            f"Invalid event_type '{self.event_type}'. Must be one of: {valid_types}"
        assert self.timestamp > 0, \
            f"Timestamp must be positive, got {self.timestamp}"

    def to_json(self) -> str:
        """Serialise event to JSON string."""
        return json.dumps(asdict(self), default=str)

    @classmethod
    def from_json(cls, json_str: str) -> "Event":
        """Deserialise event from JSON string."""
        data = json.loads(json_str)
        return cls(
            event_type=data["event_type"],
            timestamp=data["timestamp"],
            data=data.get("data", {}),
        )


class EventCollector:
    """Collects events in memory for testing and inspection."""

    def __init__(self) -> None:
        self._events: list[Event] = []
        self._lock = threading.Lock()

    def emit(self, event: Event) -> None:
        assert isinstance(event, Event), f"Expected Event, got {type(event)}"
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[Event]:
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def get_by_type(self, event_type: str | EventType) -> list[Event]:
        """Get all events of a specific type."""
        if isinstance(event_type, EventType):
            event_type = event_type.value
        return [e for e in self.events if e.event_type == event_type]


class JSONLEventWriter:
    """
    Writes events as JSON lines to a file or an open stream.

    Streams passed in are not closed by the writer.
    """

    def __init__(self, path: Path | str | None = None, stream: IO[str] | None = None) -> None:
        assert (path is None) != (stream is None), "Give exactly one of path or stream"
        self._path = Path(path) if path is not None else None
        self._file: IO[str] | None = stream
        self._owns_file = False
        self._lock = threading.Lock()

    def open(self) -> None:
        """Open the log file for appending."""
        if self._path is None or self._file is not None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self._path, "a", encoding="utf-8")
        self._owns_file = True

    def close(self) -> None:
        if self._file and self._owns_file:
            self._file.close()
            self._file = None
            self._owns_file = False

    def emit(self, event: Event) -> None:
        assert self._file is not None, "Writer not opened. Call open() first."
        with self._lock:
            self._file.write(event.to_json() + "\n")
            self._file.flush()

    def __enter__(self) -> "JSONLEventWriter":
        self.open()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class EventEmitter:
    """Dispatches events to an in-memory collector and/or a JSONL sink."""

    def __init__(
        self,
        collector: EventCollector | None = None,
        jsonl_path: Path | str | None = None,
        jsonl_stream: IO[str] | None = None,
    ) -> None:
        self._collector = collector
        self._jsonl_writer: JSONLEventWriter | None = None

        if jsonl_path or jsonl_stream:
            self._jsonl_writer = JSONLEventWriter(jsonl_path, jsonl_stream)
            self._jsonl_writer.open()

    def emit(self, event_type: str | EventType, **data: Any) -> Event:
        """Create and emit an event."""
        if isinstance(event_type, EventType):
            event_type = event_type.value

        event = Event(event_type=event_type, data=data)

        if self._collector:
            self._collector.emit(event)

        if self._jsonl_writer:
            self._jsonl_writer.emit(event)

        return event

    def close(self) -> None:
        if self._jsonl_writer:
            self._jsonl_writer.close()


def _ignore(_: Any) -> None:
    return None


@dataclass
class ClientTrace:
    """
    Hooks called while a client resolves addresses.

    got_file_config receives the combined file configuration (or None if
    no file was loaded) the first time a lookup succeeds; got_config
    receives every successfully resolved config.
    """
    got_file_config: Callable[["ConfigFile | None"], None] = _ignore
    got_config: Callable[["EffectiveConfig"], None] = _ignore

    @classmethod
    def from_emitter(cls, emitter: EventEmitter) -> "ClientTrace":
        """Trace that records both hooks as events."""

        def file_config(config_file: "ConfigFile | None") -> None:
            data = config_file.to_dict() if config_file is not None else {}
            emitter.emit(EventType.FILE_CONFIG, **data)

        def config(effective: "EffectiveConfig") -> None:
            emitter.emit(EventType.CONFIG, **effective.to_dict())

        return cls(got_file_config=file_config, got_config=config)


class RunOnce:
    """
    Runs a callable at most once across threads.

    Callers arriving while the first call is in progress wait for it to
    finish; later callers return immediately.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def run(self, fn: Callable[[], Any]) -> None:
        if self._done:
            return
        with self._lock:
            if self._done:
                return
            try:
                fn()
            finally:
                self._done = True
