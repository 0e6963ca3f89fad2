"""Capsule Registry -- loaded capsule sessions held in memory."""

from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone

from capsule.engine.loader import CapsuleReport
from capsule.lib.archive.zip_source import ZipArchive
from capsule.lib.tracing import bind_capsule

logger = logging.getLogger("engine.capsule_registry")


@dataclass
class CapsuleSession:
    """One uploaded capsule: its archive plus the validation report."""

    capsule_id: str
    archive: ZipArchive
    report: CapsuleReport
    filename: str = ""
    size_bytes: int = 0
    loaded_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


def new_capsule_id() -> str:
    return uuid.uuid4().hex[:12]


class CapsuleRegistry:
    """Keeps uploaded capsules in memory, oldest evicted first.

    Sessions are never persisted; a restart forgets every capsule.
    """

    def __init__(self, max_sessions: int = 8) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self._max_sessions = max_sessions
        self._sessions: OrderedDict[str, CapsuleSession] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def max_sessions(self) -> int:
        return self._max_sessions

    def register(self, session: CapsuleSession) -> CapsuleSession:
        """Add a loaded capsule.

        Raises:
            ValueError: If the capsule id is already registered.
        """
        evicted: list[CapsuleSession] = []
        with self._lock:
            if session.capsule_id in self._sessions:
                raise ValueError(f"Capsule '{session.capsule_id}' already exists")
            self._sessions[session.capsule_id] = session
            while len(self._sessions) > self._max_sessions:
                _, oldest = self._sessions.popitem(last=False)
                evicted.append(oldest)

        for old in evicted:
            old.archive.close()
            bind_capsule(logger, old.capsule_id).info("Evicted capsule (%s)", old.filename)

        bind_capsule(logger, session.capsule_id).info(
            "Registered capsule (%s, %d items)",
            session.filename,
            len(session.report.items),
        )
        return session

    def get(self, capsule_id: str) -> CapsuleSession | None:
        with self._lock:
            return self._sessions.get(capsule_id)

    def list_sessions(self) -> list[CapsuleSession]:
        """All sessions, oldest first."""
        with self._lock:
            return list(self._sessions.values())

    def delete(self, capsule_id: str) -> None:
        """Forget a capsule and close its archive.

        Raises:
            KeyError: If the capsule is not registered.
        """
        with self._lock:
            session = self._sessions.pop(capsule_id, None)
        if session is None:
            raise KeyError(f"Capsule '{capsule_id}' not found")
        session.archive.close()
        bind_capsule(logger, capsule_id).info("Deleted capsule")

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)
