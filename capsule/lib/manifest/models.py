"""Data models for manifest parsing and archive validation."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable


class ItemType(str, Enum):
    """Closed vocabulary of capsule item categories."""

    NEWS = "НОВОСТЬ"
    MEDIA = "МЕДИА"
    MEME = "МЕМ"
    PHOTO = "ФОТО"
    VIDEO = "ВИДЕО"
    AUDIO = "АУДИО"
    DOCUMENT = "ДОКУМЕНТ"
    TEXT = "ТЕКСТ"
    IMAGE = "КАРТИНКА"
    LINK = "СЫЛКА"
    EVENT = "СОБЫТИЕ"
    PERSONAL = "ЛИЧНОЕ"
    EDUCATION = "ОБУЧЕНИЕ"
    WORK = "РАБОТА"
    HOBBY = "ХОББИ"
    UNKNOWN = ""

    @classmethod
    def parse(cls, label: str | None) -> ItemType:
        """Case-insensitive lookup. Anything outside the vocabulary is UNKNOWN."""
        if not isinstance(label, str):
            return cls.UNKNOWN
        normalized = label.strip().upper()
        if not normalized:
            return cls.UNKNOWN
        for member in cls:
            if member.value == normalized:
                return member
        return cls.UNKNOWN

    @classmethod
    def known(cls) -> list[ItemType]:
        """All real categories in declaration order (UNKNOWN excluded)."""
        return [member for member in cls if member is not cls.UNKNOWN]

    @property
    def emoji(self) -> str:
        return _TYPE_EMOJI.get(self, "📁")


_TYPE_EMOJI: dict[ItemType, str] = {
    ItemType.NEWS: "📰",
    ItemType.MEDIA: "🎬",
    ItemType.MEME: "😂",
    ItemType.PHOTO: "📸",
    ItemType.VIDEO: "🎥",
    ItemType.AUDIO: "🎵",
    ItemType.DOCUMENT: "📄",
    ItemType.TEXT: "📝",
    ItemType.IMAGE: "🖼️",
    ItemType.LINK: "🔗",
    ItemType.EVENT: "📅",
    ItemType.PERSONAL: "👤",
    ItemType.EDUCATION: "📚",
    ItemType.WORK: "💼",
    ItemType.HOBBY: "🎨",
}

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".svg")
AUDIO_EXTENSIONS = (".mp3", ".wav", ".ogg", ".m4a", ".aac", ".flac")
VIDEO_EXTENSIONS = (".mp4", ".webm", ".avi", ".mov", ".wmv", ".flv")


@dataclass(frozen=True)
class ArchiveItem:
    """One manifest entry, built from a line that passed field validation."""

    filename: str
    type: str
    title: str = ""
    description: str = ""
    date: str = ""
    tags: tuple[str, ...] = ()

    @property
    def item_type(self) -> ItemType:
        return ItemType.parse(self.type)

    @property
    def emoji(self) -> str:
        return self.item_type.emoji

    @property
    def extension(self) -> str:
        """Lower-cased extension with the leading dot, or '' when there is none."""
        stem, dot, suffix = self.filename.rpartition(".")
        return f".{suffix.lower()}" if dot and stem else ""

    @property
    def is_pdf(self) -> bool:
        return self.extension == ".pdf"

    @property
    def is_image(self) -> bool:
        return self.extension in IMAGE_EXTENSIONS

    @property
    def is_audio(self) -> bool:
        return self.extension in AUDIO_EXTENSIONS

    @property
    def is_video(self) -> bool:
        return self.extension in VIDEO_EXTENSIONS

    @property
    def is_text(self) -> bool:
        return self.extension == ".txt"

    @property
    def is_csv(self) -> bool:
        return self.extension == ".csv"

    @property
    def tag_count(self) -> int:
        return len(self.tags)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def has_minimum_tags(self, min_count: int = 5) -> bool:
        return len(self.tags) >= min_count

    def with_metadata(
        self, title: str | None = None, keywords: Iterable[str] = ()
    ) -> ArchiveItem:
        """Return a copy enriched with document metadata.

        An empty title is filled from ``title``; keywords not already
        present are appended to the tags in their original order.
        """
        tags = list(self.tags)
        for keyword in keywords:
            cleaned = keyword.strip()
            if cleaned and cleaned not in tags:
                tags.append(cleaned)
        new_title = self.title or (title or "").strip()
        return replace(self, title=new_title, tags=tuple(tags))

    def manifest_line(self) -> str:
        """Re-synthesize the canonical six-field manifest line."""
        return " | ".join(
            [self.filename, self.type, self.title, self.description, self.date, ",".join(self.tags)]
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "date": self.date,
            "tags": list(self.tags),
        }


class ErrorCategory(str, Enum):
    CRITICAL = "critical"
    FORMAT = "format"
    DATE = "date"
    TAG = "tag"
    TYPE = "type"
    FILENAME = "filename"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ErrorKind(str, Enum):
    """Which check produced a diagnostic. Category and severity derive from it."""

    MALFORMED_DELIMITER = "malformed_delimiter"
    INSUFFICIENT_FIELDS = "insufficient_fields"
    INVALID_FILENAME = "invalid_filename"
    INVALID_TYPE = "invalid_type"
    INVALID_DATE = "invalid_date"
    INSUFFICIENT_TAGS = "insufficient_tags"
    MISSING_FILE = "missing_file"
    MISSING_MANIFEST = "missing_manifest"
    REQUIREMENT_UNMET = "requirement_unmet"

    @property
    def category(self) -> ErrorCategory:
        return _KIND_CATEGORY[self]

    @property
    def severity(self) -> Severity:
        if self.category is ErrorCategory.CRITICAL:
            return Severity.ERROR
        return Severity.WARNING


_KIND_CATEGORY: dict[ErrorKind, ErrorCategory] = {
    ErrorKind.MALFORMED_DELIMITER: ErrorCategory.FORMAT,
    ErrorKind.INSUFFICIENT_FIELDS: ErrorCategory.FORMAT,
    ErrorKind.INVALID_FILENAME: ErrorCategory.FILENAME,
    ErrorKind.INVALID_TYPE: ErrorCategory.TYPE,
    ErrorKind.INVALID_DATE: ErrorCategory.DATE,
    ErrorKind.INSUFFICIENT_TAGS: ErrorCategory.TAG,
    ErrorKind.MISSING_FILE: ErrorCategory.CRITICAL,
    ErrorKind.MISSING_MANIFEST: ErrorCategory.CRITICAL,
    ErrorKind.REQUIREMENT_UNMET: ErrorCategory.CRITICAL,
}

CANONICAL_FORMAT = "filename | type | title | description | date | tag1,tag2,tag3"
DATE_FORMATS = "YYYY-MM-DD, YYYY/MM/DD, DD.MM.YYYY, YYYY-MM-DD HH:MM:SS or D:YYYYMMDDHHMMSS"


@dataclass(frozen=True)
class ProblematicPart:
    """Field-level annotation pinpointing a token on an offending line."""

    index: int
    part: str
    field: str
    is_empty: bool = False
    is_problematic: bool = True
    expected: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "part": self.part,
            "field": self.field,
            "is_empty": self.is_empty,
            "is_problematic": self.is_problematic,
            "expected": self.expected,
        }


def _single_part(value: str, field_name: str) -> tuple[ProblematicPart, ...]:
    return (ProblematicPart(index=0, part=value, field=field_name, is_empty=value == ""),)


@dataclass(frozen=True)
class ValidationError:
    """One line-addressable diagnostic.

    ``line_number`` is the 1-based manifest line, or a synthetic index for
    archive-level checks.
    """

    line_number: int
    line: str
    error: str
    expected_format: str
    kind: ErrorKind
    problematic_parts: tuple[ProblematicPart, ...] = field(default_factory=tuple)

    @property
    def category(self) -> ErrorCategory:
        return self.kind.category

    @property
    def severity(self) -> Severity:
        return self.kind.severity

    @property
    def is_critical(self) -> bool:
        return self.category is ErrorCategory.CRITICAL

    @property
    def summary(self) -> str:
        return f"Line {self.line_number}: {self.error}"

    @property
    def has_problematic_parts(self) -> bool:
        return len(self.problematic_parts) > 0

    @property
    def has_empty_fields(self) -> bool:
        return any(p.is_empty for p in self.problematic_parts)

    def problematic_fields(self) -> list[ProblematicPart]:
        return [p for p in self.problematic_parts if p.is_problematic]

    def empty_fields(self) -> list[ProblematicPart]:
        return [p for p in self.problematic_parts if p.is_empty]

    def to_dict(self) -> dict[str, Any]:
        return {
            "line_number": self.line_number,
            "line": self.line,
            "error": self.error,
            "expected_format": self.expected_format,
            "kind": self.kind.value,
            "category": self.category.value,
            "severity": self.severity.value,
            "problematic_parts": [p.to_dict() for p in self.problematic_parts],
        }

    # ── Factories ─────────────────────────────────────────────────────

    @classmethod
    def malformed_delimiter(
        cls, line: str, line_number: int, parts: tuple[ProblematicPart, ...] = ()
    ) -> ValidationError:
        return cls(
            line_number=line_number,
            line=line,
            error='Malformed delimiters. Use "field1 | field2 | field3" with spaces around "|"',
            expected_format=f"{CANONICAL_FORMAT} (spaces around |)",
            kind=ErrorKind.MALFORMED_DELIMITER,
            problematic_parts=parts,
        )

    @classmethod
    def insufficient_fields(
        cls,
        line: str,
        line_number: int,
        found: int,
        required: int,
        parts: tuple[ProblematicPart, ...] = (),
    ) -> ValidationError:
        return cls(
            line_number=line_number,
            line=line,
            error=f"Not enough fields: found {found}, at least {required} required",
            expected_format=CANONICAL_FORMAT,
            kind=ErrorKind.INSUFFICIENT_FIELDS,
            problematic_parts=parts,
        )

    @classmethod
    def invalid_filename(
        cls, filename: str, line_number: int = 1, line: str | None = None,
        parts: tuple[ProblematicPart, ...] = (),
    ) -> ValidationError:
        return cls(
            line_number=line_number,
            line=filename if line is None else line,
            error=f"Invalid filename: {filename!r}",
            expected_format=(
                'A plain file name without "..", any of <>:"/\\|?* '
                "or a reserved device name (CON, PRN, AUX, NUL, COM1-9, LPT1-9)"
            ),
            kind=ErrorKind.INVALID_FILENAME,
            problematic_parts=parts or _single_part(filename, "filename"),
        )

    @classmethod
    def invalid_type(
        cls, type_value: str, line_number: int = 1, line: str | None = None,
        parts: tuple[ProblematicPart, ...] = (),
    ) -> ValidationError:
        allowed = ", ".join(t.value for t in ItemType.known())
        return cls(
            line_number=line_number,
            line=type_value if line is None else line,
            error=f"Invalid item type: {type_value!r}",
            expected_format=f"Allowed types: {allowed}",
            kind=ErrorKind.INVALID_TYPE,
            problematic_parts=parts or _single_part(type_value, "type"),
        )

    @classmethod
    def invalid_date(
        cls, date_value: str, line_number: int = 1, line: str | None = None,
        parts: tuple[ProblematicPart, ...] = (),
    ) -> ValidationError:
        return cls(
            line_number=line_number,
            line=date_value if line is None else line,
            error=f"Invalid date format: {date_value!r}",
            expected_format=DATE_FORMATS,
            kind=ErrorKind.INVALID_DATE,
            problematic_parts=parts or _single_part(date_value, "date"),
        )

    @classmethod
    def insufficient_tags(
        cls, tag_count: int, min_required: int, line_number: int = 1,
        line: str | None = None, parts: tuple[ProblematicPart, ...] = (),
    ) -> ValidationError:
        return cls(
            line_number=line_number,
            line=f"tags: {tag_count}" if line is None else line,
            error=f"Not enough tags: {tag_count}, at least {min_required} required",
            expected_format=f"At least {min_required} comma-separated tags",
            kind=ErrorKind.INSUFFICIENT_TAGS,
            problematic_parts=parts or _single_part(str(tag_count), "tags"),
        )

    @classmethod
    def missing_file(
        cls, filename: str, line_number: int = 1, line: str | None = None
    ) -> ValidationError:
        return cls(
            line_number=line_number,
            line=filename if line is None else line,
            error=f"File {filename} not found in archive",
            expected_format="The file must exist in the archive",
            kind=ErrorKind.MISSING_FILE,
            problematic_parts=_single_part(filename, "filename"),
        )

    @classmethod
    def missing_manifest(cls, manifest_name: str) -> ValidationError:
        return cls(
            line_number=1,
            line=manifest_name,
            error=f"File {manifest_name} not found in archive",
            expected_format=f"{manifest_name} is required in the archive root",
            kind=ErrorKind.MISSING_MANIFEST,
            problematic_parts=_single_part(manifest_name, "required_file"),
        )

    @classmethod
    def requirement_unmet(
        cls, description: str, actual: int, required: int, line_number: int = 1
    ) -> ValidationError:
        return cls(
            line_number=line_number,
            line=f"{description}: {actual}/{required}",
            error=f"Archive requirement not met: {description} ({actual} of {required})",
            expected_format=f"At least {required}",
            kind=ErrorKind.REQUIREMENT_UNMET,
            problematic_parts=_single_part(str(actual), "requirement"),
        )
