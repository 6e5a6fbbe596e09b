"""
Event Log
=========

The user-facing console of a simulator session: an append-only sequence of
timestamped entries. Each append notifies the ``on_log`` callback and is
mirrored to Python logging under this module's logger.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterator, Optional
import logging

logger = logging.getLogger(__name__)


class LogKind(str, Enum):
    """Category of a log entry."""
    SYSTEM = "system"   # Session lifecycle (compiling, started, paused, ...)
    OUTPUT = "output"   # Sketch output (Serial.println)
    ERROR = "error"     # Transformation, runtime and pin errors


@dataclass(frozen=True)
class LogEntry:
    """
    A single log entry.

    Attributes:
        timestamp: When the entry was appended (timezone-aware)
        message: Entry text
        kind: Entry category
    """
    timestamp: datetime
    message: str
    kind: LogKind

    def format(self) -> str:
        """Format as '[HH:MM:SS] message' in local time."""
        return f"[{self.timestamp.astimezone():%H:%M:%S}] {self.message}"


LogCallback = Callable[[LogEntry], None]


class EventLog:
    """
    Append-only log with a notification callback.

    Attributes:
        on_log: Called synchronously with every appended entry
    """

    def __init__(self, on_log: Optional[LogCallback] = None):
        self.on_log = on_log
        self._entries: list[LogEntry] = []

    def append(self, message: str, kind: LogKind = LogKind.OUTPUT) -> LogEntry:
        """
        Append an entry and notify the callback.

        Args:
            message: Entry text
            kind: Entry category (default: output)

        Returns:
            The appended entry
        """
        entry = LogEntry(datetime.now(timezone.utc), str(message), LogKind(kind))
        self._entries.append(entry)

        level = logging.ERROR if entry.kind is LogKind.ERROR else logging.INFO
        logger.log(level, "[%s] %s", entry.kind.value, entry.message)

        if self.on_log:
            self.on_log(entry)
        return entry

    def system(self, message: str) -> LogEntry:
        return self.append(message, LogKind.SYSTEM)

    def error(self, message: str) -> LogEntry:
        return self.append(message, LogKind.ERROR)

    def clear(self) -> None:
        self._entries.clear()

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    def messages(self, kind: Optional[LogKind] = None) -> list[str]:
        """Return entry messages, optionally filtered by kind."""
        return [e.message for e in self._entries if kind is None or e.kind is LogKind(kind)]

    def has_errors(self) -> bool:
        return any(e.kind is LogKind.ERROR for e in self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
