"""Time Capsule engine -- capsule loading, sessions and log capture."""

from capsule.engine.loader import CapsuleReport, load_capsule
from capsule.engine.capsule_registry import CapsuleRegistry, CapsuleSession, new_capsule_id
from capsule.engine.log_buffer import BufferHandler, LogBuffer, LogEntry

__all__ = [
    "CapsuleReport",
    "load_capsule",
    "CapsuleRegistry",
    "CapsuleSession",
    "new_capsule_id",
    "BufferHandler",
    "LogBuffer",
    "LogEntry",
]
