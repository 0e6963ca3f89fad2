"""Manifest library -- tokenizing, field validation and parsing of capsule manifests.

Deterministic functions only: text in, typed items and diagnostics out.
No I/O and no shared state.
"""

from capsule.lib.manifest.models import (
    ArchiveItem,
    ErrorCategory,
    ErrorKind,
    ItemType,
    ProblematicPart,
    Severity,
    ValidationError,
)
from capsule.lib.manifest.tokenizer import (
    ManifestLine,
    iter_manifest_lines,
    has_proper_spacing,
    split_fields,
    tokenize,
)
from capsule.lib.manifest.validators import (
    DEFAULT_MIN_TAGS,
    has_minimum_tags,
    is_valid_date,
    is_valid_filename,
    is_valid_tag,
    is_valid_type,
    parse_date,
    parse_tags,
    validate_tags,
)
from capsule.lib.manifest.parser import (
    ManifestFormatCheck,
    ManifestParseResult,
    parse_line,
    parse_manifest,
    validate_manifest_format,
)

__all__ = [
    "ArchiveItem",
    "ErrorCategory",
    "ErrorKind",
    "ItemType",
    "ProblematicPart",
    "Severity",
    "ValidationError",
    "ManifestLine",
    "iter_manifest_lines",
    "has_proper_spacing",
    "split_fields",
    "tokenize",
    "DEFAULT_MIN_TAGS",
    "has_minimum_tags",
    "is_valid_date",
    "is_valid_filename",
    "is_valid_tag",
    "is_valid_type",
    "parse_date",
    "parse_tags",
    "validate_tags",
    "ManifestFormatCheck",
    "ManifestParseResult",
    "parse_line",
    "parse_manifest",
    "validate_manifest_format",
]
