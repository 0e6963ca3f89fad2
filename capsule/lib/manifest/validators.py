"""Field validators for manifest entries.

Every function here is a pure predicate or normalizer. Validation checks the
shape of a value, not its meaning: ``2024-13-99`` is an accepted date.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable

from capsule.lib.manifest.models import ItemType

DEFAULT_MIN_TAGS = 5

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')

RESERVED_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)

DATE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("YYYY-MM-DD", re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")),
    ("YYYY/MM/DD", re.compile(r"[0-9]{4}/[0-9]{2}/[0-9]{2}")),
    ("DD.MM.YYYY", re.compile(r"[0-9]{2}\.[0-9]{2}\.[0-9]{4}")),
    ("YYYY-MM-DD HH:MM:SS", re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2} [0-9]{2}:[0-9]{2}:[0-9]{2}")),
    ("D:YYYYMMDDHHMMSS", re.compile(r"D:[0-9]{14}")),
)

# Full PDF date, e.g. D:20240115103000+03'00'
_PDF_DATE_FULL = re.compile(
    r"(?:D:)?([0-9]{4})([0-9]{2})([0-9]{2})([0-9]{2})([0-9]{2})([0-9]{2})([+-])([0-9]{2})'([0-9]{2})'"
)
_PDF_DATE_SHORT = re.compile(r"(?:D:)?([0-9]{4})([0-9]{2})([0-9]{2})([0-9]{2})([0-9]{2})([0-9]{2})")


def is_valid_filename(filename: str) -> bool:
    """Check a manifest filename for path traversal, bad characters and device names."""
    if not isinstance(filename, str) or not filename:
        return False

    if "../" in filename or "..\\" in filename:
        return False

    if _INVALID_FILENAME_CHARS.search(filename):
        return False

    stem = filename.split(".", 1)[0].upper()
    if stem in RESERVED_NAMES:
        return False

    return True


def is_valid_type(type_value: str) -> bool:
    return ItemType.parse(type_value) is not ItemType.UNKNOWN


def is_valid_date(date_value: str) -> bool:
    if not isinstance(date_value, str) or not date_value:
        return False
    return any(pattern.fullmatch(date_value) for _, pattern in DATE_PATTERNS)


def parse_tags(raw: str | None) -> list[str]:
    """Split a comma-separated tag field. Empty pieces are dropped, order is kept."""
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def is_valid_tag(tag: str) -> bool:
    if not isinstance(tag, str):
        return False
    trimmed = tag.strip()
    return bool(trimmed) and "," not in trimmed


def has_minimum_tags(tags: Iterable[str], min_count: int = DEFAULT_MIN_TAGS) -> bool:
    return len(list(tags)) >= min_count


@dataclass
class TagValidation:
    """Result of checking an externally supplied tag list."""

    valid: bool
    valid_tags: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def validate_tags(tags: object) -> TagValidation:
    if not isinstance(tags, (list, tuple)):
        return TagValidation(valid=False, errors=["Tags must be a list"])

    valid_tags: list[str] = []
    errors: list[str] = []
    for index, tag in enumerate(tags):
        if is_valid_tag(tag):
            valid_tags.append(tag.strip())
        else:
            errors.append(f"Tag {tag!r} at index {index} is invalid")

    return TagValidation(valid=not errors, valid_tags=valid_tags, errors=errors)


def parse_date(date_value: str) -> datetime | None:
    """Convert an accepted date string to a datetime.

    Returns None for unknown shapes and for values that pass the shape check
    but name an impossible calendar date. Results are naive; PDF dates with
    an offset are converted to UTC first.
    """
    if not isinstance(date_value, str):
        return None
    value = date_value.strip()

    try:
        match = _PDF_DATE_FULL.fullmatch(value)
        if match:
            year, month, day, hour, minute, second, sign, tz_h, tz_m = match.groups()
            offset = timedelta(hours=int(tz_h), minutes=int(tz_m))
            tz = timezone(offset if sign == "+" else -offset)
            aware = datetime(
                int(year), int(month), int(day), int(hour), int(minute), int(second), tzinfo=tz
            )
            return aware.astimezone(timezone.utc).replace(tzinfo=None)

        if value.startswith("D:"):
            match = _PDF_DATE_SHORT.fullmatch(value)
            if not match:
                return None
            parts = [int(g) for g in match.groups()]
            return datetime(*parts)

        for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d", "%Y/%m/%d", "%d.%m.%Y"):
            try:
                return datetime.strptime(value, fmt)
            except ValueError:
                continue
    except ValueError:
        return None

    return None
