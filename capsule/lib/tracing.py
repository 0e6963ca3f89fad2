"""Capsule-scoped logging.

Validation stages take an optional logger and a ``trace_id``. Binding the two
here renders the id as a ``[capsule:<id>]`` message prefix and attaches it to
every record as ``record.capsule_id``, which is what log capture keys on.
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Union

Log = Union[logging.Logger, logging.LoggerAdapter]


class CapsuleLogAdapter(logging.LoggerAdapter):
    """Logger bound to one capsule id."""

    def __init__(self, logger: logging.Logger, capsule_id: str) -> None:
        super().__init__(logger, {"capsule_id": capsule_id})

    @property
    def capsule_id(self) -> str:
        return self.extra["capsule_id"]

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(kwargs.get("extra") or {}), "capsule_id": self.capsule_id}
        return f"[capsule:{self.capsule_id}] {msg}", kwargs


def bind_capsule(log: Log, trace_id: str | None) -> Log:
    """Return ``log`` bound to ``trace_id``; unchanged when there is no id.

    Rebinding an already bound logger replaces its id instead of stacking
    prefixes.
    """
    if not trace_id:
        return log
    if isinstance(log, CapsuleLogAdapter):
        if log.capsule_id == trace_id:
            return log
        log = log.logger
    return CapsuleLogAdapter(log, trace_id)


def capsule_extra(capsule_id: str | None) -> dict[str, str]:
    """``extra=`` payload for one-off log calls outside a bound logger."""
    return {"capsule_id": capsule_id} if capsule_id else {}
