"""Explanation files for personal and meme items.

A personal item or meme ships with a text file explaining it, named after the
item (``05_ЛИЧНОЕ.jpg`` -> ``05_ЛИЧНОЕ_объяснение.txt``). Personal
explanations need 100 words, meme explanations 50.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable

from capsule.lib.archive.zip_source import ArchiveError, ZipArchive
from capsule.lib.manifest.models import ArchiveItem, ItemType
from capsule.lib.tracing import Log, bind_capsule

logger = logging.getLogger("capsule.archive.explanations")

EXPLANATION_SUFFIXES = ("_объяснение", "_explanation", "_info", "_description", "_details")
PERSONAL_MIN_WORDS = 100
MEME_MIN_WORDS = 50

_SUFFIX_RE = re.compile(
    "(" + "|".join(re.escape(s) for s in EXPLANATION_SUFFIXES) + r")$", re.IGNORECASE
)


@dataclass
class ExplanationDetail:
    filename: str
    type: str
    title: str
    explanation_file: str | None
    word_count: int
    required_words: int
    is_valid: bool
    error: str | None = None


@dataclass
class ExplanationSummary:
    valid_personal: int = 0
    valid_memes: int = 0
    total_personal: int = 0
    total_memes: int = 0
    details: list[ExplanationDetail] = field(default_factory=list)


def count_words(text: str | None) -> int:
    if not text or not isinstance(text, str):
        return 0
    return len(text.split())


def _stem(filename: str) -> str:
    stem, dot, _ = filename.rpartition(".")
    return stem if dot and stem else filename


def _candidates(base: str) -> list[str]:
    return [f"{base}{suffix}.txt" for suffix in EXPLANATION_SUFFIXES]


def find_explanation_file(filename: str, archive: ZipArchive) -> str | None:
    """Locate the explanation file for ``filename``.

    Lookup order: exact ``<stem><suffix>.txt``, then progressively shorter
    ``_``-separated prefixes of the stem, then any explanation file whose
    name contains the stem (or the reverse). All comparisons ignore case.
    """
    base = _stem(filename)

    for candidate in _candidates(base):
        found = archive.find_case_insensitive(candidate)
        if found:
            return found

    pieces = base.split("_")
    for end in range(len(pieces), 0, -1):
        partial = "_".join(pieces[:end])
        for candidate in _candidates(partial):
            found = archive.find_case_insensitive(candidate)
            if found:
                return found

    base_lower = base.lower()
    for name in archive.file_list():
        name_base = _stem(name)
        if not _SUFFIX_RE.search(name_base) or not name.lower().endswith(".txt"):
            continue
        name_lower = name_base.lower()
        without_suffix = _SUFFIX_RE.sub("", name_lower)
        if base_lower in name_lower or (without_suffix and without_suffix in base_lower):
            return name

    logger.debug("No explanation file for %s", filename)
    return None


def validate_explanation(
    item: ArchiveItem,
    archive: ZipArchive,
    *,
    personal_words: int = PERSONAL_MIN_WORDS,
    meme_words: int = MEME_MIN_WORDS,
    log: Log | None = None,
) -> ExplanationDetail:
    """Check one personal or meme item's explanation file.

    An explanation that is listed but cannot be read is reported on the
    detail (``error`` set, ``is_valid`` false) rather than raised.
    """
    log = log or logger
    needed = personal_words if item.item_type is ItemType.PERSONAL else meme_words
    detail = ExplanationDetail(
        filename=item.filename,
        type=item.type.upper(),
        title=item.title or item.filename,
        explanation_file=None,
        word_count=0,
        required_words=needed,
        is_valid=False,
    )

    explanation = find_explanation_file(item.filename, archive)
    if explanation is None:
        detail.error = "Explanation file not found"
        return detail

    detail.explanation_file = explanation
    try:
        text = archive.read_text(explanation)
    except (ArchiveError, OSError) as e:
        log.warning("Failed to read explanation file %s: %s", explanation, e)
        detail.error = str(e)
        return detail

    detail.word_count = count_words(text)
    detail.is_valid = detail.word_count >= needed
    return detail


def validate_explanations(
    items: Iterable[ArchiveItem],
    archive: ZipArchive,
    *,
    personal_words: int = PERSONAL_MIN_WORDS,
    meme_words: int = MEME_MIN_WORDS,
    log: Log | None = None,
    trace_id: str | None = None,
) -> ExplanationSummary:
    """Validate explanation files for every personal and meme item."""
    log = bind_capsule(log or logger, trace_id)
    summary = ExplanationSummary()

    for item in items:
        item_type = item.item_type
        if item_type not in (ItemType.PERSONAL, ItemType.MEME):
            continue

        detail = validate_explanation(
            item,
            archive,
            personal_words=personal_words,
            meme_words=meme_words,
            log=log,
        )
        summary.details.append(detail)

        if item_type is ItemType.PERSONAL:
            summary.total_personal += 1
            summary.valid_personal += int(detail.is_valid)
        else:
            summary.total_memes += 1
            summary.valid_memes += int(detail.is_valid)

    log.info(
        "Explanations checked: personal %d/%d, memes %d/%d",
        summary.valid_personal,
        summary.total_personal,
        summary.valid_memes,
        summary.total_memes,
    )
    return summary
