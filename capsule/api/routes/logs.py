"""Log access routes -- exposes the in-memory log ring buffer."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from capsule.api.deps import get_log_buffer
from capsule.api.models import LogEntryResponse
from capsule.engine.log_buffer import LogBuffer

logger = logging.getLogger("api.logs")

router = APIRouter(prefix="/api/logs", tags=["logs"])


@router.get("", response_model=list[LogEntryResponse])
async def list_logs(
    capsule_id: str | None = None,
    level: str | None = None,
    limit: int = Query(default=100, ge=1, le=2000),
    since: str | None = None,
    log_buffer: LogBuffer = Depends(get_log_buffer),
) -> list[LogEntryResponse]:
    """Query recent log entries from the in-memory ring buffer.

    Args:
        capsule_id: Filter to logs tagged with this capsule.
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        limit: Maximum entries to return (default 100, max 2000).
        since: ISO-8601 timestamp, only entries after this time are returned.
    """
    since_dt: datetime | None = None
    if since:
        try:
            since_dt = datetime.fromisoformat(since)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid timestamp: {since}")
        if since_dt.tzinfo is None:
            since_dt = since_dt.replace(tzinfo=timezone.utc)

    entries = log_buffer.query(
        capsule_id=capsule_id,
        level=level,
        since=since_dt,
        limit=limit,
    )

    return [
        LogEntryResponse(
            timestamp=e.timestamp,
            level=e.level,
            logger_name=e.logger_name,
            message=e.message,
            capsule_id=e.capsule_id,
        )
        for e in entries
    ]
