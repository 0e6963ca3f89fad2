"""Capsule-scoped log capture for the viewer API.

Records are keyed by ``record.capsule_id``, which :mod:`capsule.lib.tracing`
attaches to everything logged while a capsule is loaded. The buffer keeps a
bounded history across all capsules and forgets one capsule's lines when that
capsule is deleted.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import islice


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One captured record."""

    created: datetime
    levelno: int
    logger_name: str
    message: str
    capsule_id: str | None = None

    @property
    def level(self) -> str:
        return logging.getLevelName(self.levelno)

    @property
    def timestamp(self) -> str:
        return self.created.isoformat()

    @classmethod
    def from_record(cls, record: logging.LogRecord, message: str) -> LogEntry:
        return cls(
            created=datetime.fromtimestamp(record.created, tz=timezone.utc),
            levelno=record.levelno,
            logger_name=record.name,
            message=message,
            capsule_id=getattr(record, "capsule_id", None),
        )


def _threshold(level: str | None) -> int:
    """Numeric level for a name like ``"warning"``; unknown names filter nothing."""
    if not level:
        return logging.NOTSET
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.NOTSET


class LogBuffer:
    """Bounded, thread-safe history of captured records, oldest dropped first."""

    def __init__(self, maxlen: int = 2000) -> None:
        self._entries: deque[LogEntry] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def append(self, entry: LogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def discard(self, capsule_id: str) -> int:
        """Forget every entry recorded for ``capsule_id``. Returns how many went."""
        with self._lock:
            kept = [e for e in self._entries if e.capsule_id != capsule_id]
            removed = len(self._entries) - len(kept)
            self._entries = deque(kept, maxlen=self._entries.maxlen)
        return removed

    def query(
        self,
        *,
        capsule_id: str | None = None,
        level: str | None = None,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[LogEntry]:
        """Newest-first entries for one capsule (or all), at or above ``level``.

        ``since`` must be timezone-aware.
        """
        threshold = _threshold(level)
        with self._lock:
            matches = (
                e
                for e in reversed(self._entries)
                if (capsule_id is None or e.capsule_id == capsule_id)
                and e.levelno >= threshold
                and (since is None or e.created >= since)
            )
            return list(islice(matches, limit))


class BufferHandler(logging.Handler):
    """Feeds formatted records into a LogBuffer."""

    def __init__(self, buffer: LogBuffer, level: int = logging.DEBUG) -> None:
        super().__init__(level)
        self.buffer = buffer

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.buffer.append(LogEntry.from_record(record, self.format(record)))
        except Exception:
            self.handleError(record)
