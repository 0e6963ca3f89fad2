"""Tests for the manifest library: tokenizer, field validators and parser."""

from __future__ import annotations

import logging
from datetime import datetime

import pytest

from capsule.lib.manifest import (
    ArchiveItem,
    ErrorCategory,
    ErrorKind,
    ItemType,
    ManifestLine,
    Severity,
    ValidationError,
    has_minimum_tags,
    has_proper_spacing,
    is_valid_date,
    is_valid_filename,
    is_valid_tag,
    is_valid_type,
    iter_manifest_lines,
    parse_date,
    parse_line,
    parse_manifest,
    parse_tags,
    tokenize,
    validate_manifest_format,
    validate_tags,
)


GOOD_LINE = "a.jpg | ФОТО | T | D | 2024-01-01 | x,y,z,w,v"


def _manifest(*lines: str) -> str:
    return "\n".join(lines)


# ── ItemType ──────────────────────────────────────────────────────────────


class TestItemType:
    def test_fifteen_known_types(self):
        assert len(ItemType.known()) == 15
        assert ItemType.UNKNOWN not in ItemType.known()

    def test_parse_is_case_insensitive(self):
        assert ItemType.parse("фото") is ItemType.PHOTO
        assert ItemType.parse("  Новость ") is ItemType.NEWS

    def test_parse_unknown(self):
        assert ItemType.parse("UNKNOWNTYPE") is ItemType.UNKNOWN
        assert ItemType.parse("") is ItemType.UNKNOWN
        assert ItemType.parse(None) is ItemType.UNKNOWN

    def test_link_keeps_single_s_spelling(self):
        assert ItemType.parse("СЫЛКА") is ItemType.LINK
        assert ItemType.parse("ССЫЛКА") is ItemType.UNKNOWN

    def test_emoji(self):
        assert ItemType.NEWS.emoji == "📰"
        assert ItemType.UNKNOWN.emoji == "📁"


# ── Field validators ──────────────────────────────────────────────────────


class TestFilenameValidation:
    @pytest.mark.parametrize("name", ["a.jpg", "05_ЛИЧНОЕ.jpg", "photo..jpg", "console.log"])
    def test_valid(self, name):
        assert is_valid_filename(name)

    @pytest.mark.parametrize(
        "name",
        ["", "../etc/passwd", "..\\boot.ini", "dir/a.jpg", "a:b.jpg", "what?.png", "CON", "nul.txt", "LPT3.doc"],
    )
    def test_invalid(self, name):
        assert not is_valid_filename(name)


class TestTypeValidation:
    def test_valid_any_case(self):
        assert is_valid_type("МЕМ")
        assert is_valid_type("мем")

    def test_invalid(self):
        assert not is_valid_type("MEME")
        assert not is_valid_type("")


class TestDateValidation:
    @pytest.mark.parametrize(
        "value",
        ["2024-01-15", "2024/01/15", "15.01.2024", "2024-01-15 10:30:00", "D:20240115103000"],
    )
    def test_accepted_shapes(self, value):
        assert is_valid_date(value)

    def test_out_of_range_date_passes_shape_check(self):
        assert is_valid_date("2024-13-99")

    @pytest.mark.parametrize(
        "value", ["", "2024-1-15", "15/01/2024", "January 2024", "2024-01-15T10:30:00", "D:2024"]
    )
    def test_rejected_shapes(self, value):
        assert not is_valid_date(value)


class TestParseDate:
    def test_iso(self):
        assert parse_date("2024-01-15") == datetime(2024, 1, 15)

    def test_dotted(self):
        assert parse_date("15.01.2024") == datetime(2024, 1, 15)

    def test_pdf_short(self):
        assert parse_date("D:20240115103000") == datetime(2024, 1, 15, 10, 30, 0)

    def test_pdf_with_offset_normalized_to_utc(self):
        assert parse_date("D:20240115103000+03'00'") == datetime(2024, 1, 15, 7, 30, 0)

    def test_impossible_date_is_none(self):
        assert parse_date("2024-13-99") is None

    def test_garbage_is_none(self):
        assert parse_date("yesterday") is None


class TestTags:
    def test_parse_tags_trims_and_drops_empty(self):
        assert parse_tags(" a, b ,,c , ") == ["a", "b", "c"]

    def test_parse_tags_empty(self):
        assert parse_tags("") == []
        assert parse_tags(None) == []

    def test_is_valid_tag(self):
        assert is_valid_tag("история")
        assert not is_valid_tag("  ")
        assert not is_valid_tag("a,b")

    def test_has_minimum_tags(self):
        assert has_minimum_tags(["a", "b", "c", "d", "e"])
        assert not has_minimum_tags(["a", "b"])
        assert has_minimum_tags(["a", "b"], min_count=2)

    def test_validate_tags(self):
        result = validate_tags(["a", " b ", ""])
        assert not result.valid
        assert result.valid_tags == ["a", "b"]
        assert len(result.errors) == 1

    def test_validate_tags_rejects_non_list(self):
        result = validate_tags("a,b")
        assert not result.valid
        assert result.errors == ["Tags must be a list"]


# ── Tokenizer ─────────────────────────────────────────────────────────────


class TestTokenizer:
    def test_skips_blank_and_comment_lines(self):
        lines = list(iter_manifest_lines("# header\n\n  \n" + GOOD_LINE + "\n"))
        assert lines == [ManifestLine(line_number=4, raw=GOOD_LINE)]

    def test_spacing_rule(self):
        assert has_proper_spacing("a | b")
        assert not has_proper_spacing("a|b")

    def test_tokenize_trims_fields(self):
        parts = tokenize(ManifestLine(1, "a.jpg |  ФОТО | T |2024-01-01"))
        assert parts == ["a.jpg", "ФОТО", "T", "2024-01-01"]

    def test_unspaced_delimiters(self):
        error = tokenize(ManifestLine(3, "a|b|c|d"))
        assert isinstance(error, ValidationError)
        assert error.kind is ErrorKind.MALFORMED_DELIMITER
        assert error.line_number == 3
        assert all(p.is_problematic for p in error.problematic_parts)

    def test_too_few_fields(self):
        error = tokenize(ManifestLine(2, "a.jpg | ФОТО | T"))
        assert isinstance(error, ValidationError)
        assert error.kind is ErrorKind.INSUFFICIENT_FIELDS
        fields = [p.field for p in error.problematic_parts]
        assert fields == ["filename", "type", "title", "date"]
        assert error.problematic_parts[-1].is_empty

    def test_line_without_delimiter(self):
        error = tokenize(ManifestLine(1, "just a file name"))
        assert isinstance(error, ValidationError)
        assert error.kind is ErrorKind.INSUFFICIENT_FIELDS


# ── Parser ────────────────────────────────────────────────────────────────


class TestParseManifest:
    def test_well_formed_line(self):
        result = parse_manifest(GOOD_LINE)
        assert result.errors == []
        assert result.items == [
            ArchiveItem(
                filename="a.jpg",
                type="ФОТО",
                title="T",
                description="D",
                date="2024-01-01",
                tags=("x", "y", "z", "w", "v"),
            )
        ]
        assert result.ok

    def test_four_fields_kept_with_tag_warning(self):
        result = parse_manifest("a.jpg | ФОТО | T | 2024-01-01")
        assert len(result.items) == 1
        assert result.items[0].tags == ()
        assert result.items[0].description == ""
        assert len(result.errors) == 1
        warning = result.errors[0]
        assert warning.kind is ErrorKind.INSUFFICIENT_TAGS
        assert warning.category is ErrorCategory.TAG
        assert warning.severity is Severity.WARNING
        assert warning.problematic_parts[-1].field == "tags"
        assert warning.problematic_parts[-1].is_empty

    def test_five_fields_include_description(self):
        result = parse_manifest("a.jpg | ФОТО | T | About it | 2024-01-01")
        assert result.items[0].description == "About it"
        assert result.items[0].date == "2024-01-01"

    def test_five_fields_end_with_the_date(self):
        # Dropping the description while keeping tags leaves tags in the date slot
        result = parse_manifest("a.jpg | ФОТО | T | 2024-01-01 | x,y,z,w,v")
        assert result.items == []
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.kind is ErrorKind.INVALID_DATE
        assert "x,y,z,w,v" in error.error
        flagged = error.problematic_fields()
        assert [(p.field, p.part) for p in flagged] == [("date", "x,y,z,w,v")]

    def test_extra_fields_ignored(self):
        result = parse_manifest(GOOD_LINE + " | extra | more")
        assert len(result.items) == 1
        assert result.items[0].tags == ("x", "y", "z", "w", "v")
        assert result.errors == []

    def test_malformed_delimiter_rejects_line(self):
        result = parse_manifest("a|b|c|d")
        assert result.items == []
        assert len(result.errors) == 1
        assert result.errors[0].category is ErrorCategory.FORMAT

    def test_unknown_type(self):
        result = parse_manifest("a.jpg | UNKNOWNTYPE | T | 2024-01-01")
        assert result.items == []
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.category is ErrorCategory.TYPE
        for item_type in ItemType.known():
            assert item_type.value in error.expected_format

    def test_invalid_filename(self):
        result = parse_manifest("../x.jpg | ФОТО | T | 2024-01-01 | a,b,c,d,e")
        assert result.items == []
        error = result.errors[0]
        assert error.kind is ErrorKind.INVALID_FILENAME
        assert [p.field for p in error.problematic_fields()] == ["filename"]

    def test_invalid_date(self):
        result = parse_manifest("a.jpg | ФОТО | T | D | Jan 2024 | a,b,c,d,e")
        assert result.items == []
        assert result.errors[0].kind is ErrorKind.INVALID_DATE

    def test_out_of_range_date_accepted(self):
        result = parse_manifest("a.jpg | ФОТО | T | D | 2024-13-99 | a,b,c,d,e")
        assert len(result.items) == 1
        assert result.errors == []

    def test_first_failure_wins(self):
        result = parse_manifest("../x.jpg | BAD | T | D | never | a")
        assert len(result.errors) == 1
        assert result.errors[0].kind is ErrorKind.INVALID_FILENAME

    def test_type_preserved_as_written(self):
        result = parse_manifest("a.jpg | фото | T | D | 2024-01-01 | a,b,c,d,e")
        assert result.items[0].type == "фото"
        assert result.items[0].item_type is ItemType.PHOTO

    def test_line_numbers_are_physical(self):
        text = _manifest("# comment", "", "a|b", GOOD_LINE)
        result = parse_manifest(text)
        assert result.errors[0].line_number == 3
        assert result.errors[0].summary.startswith("Line 3:")

    def test_every_rejected_line_has_one_error(self):
        text = _manifest(GOOD_LINE, "a|b|c|d", "x | y", "b.jpg | ЛИЧНОЕ | T | 2024-01-01")
        result = parse_manifest(text)
        assert len(result.items) == 2
        assert len(result.errors) == 3

    def test_counts_never_shrink_as_lines_are_added(self):
        lines = [GOOD_LINE, "a|b", "c.jpg | МЕМ | T | 2024-01-01", "", "bad"]
        previous = 0
        for end in range(1, len(lines) + 1):
            result = parse_manifest(_manifest(*lines[:end]))
            total = len(result.items) + len(result.errors)
            assert total >= previous
            previous = total

    def test_idempotent(self):
        text = _manifest(GOOD_LINE, "a|b|c|d", "c.jpg | МЕМ | T | 2024-01-01")
        first = parse_manifest(text)
        second = parse_manifest(text)
        assert first.items == second.items
        assert len(first.errors) == len(second.errors)

    def test_min_tags_override(self):
        result = parse_manifest("a.jpg | ФОТО | T | D | 2024-01-01 | a,b", min_tags=2)
        assert result.errors == []

    def test_crlf_line_endings(self):
        result = parse_manifest(GOOD_LINE + "\r\n" + GOOD_LINE + "\r\n")
        assert len(result.items) == 2
        assert result.errors == []

    def test_non_string_is_fatal(self):
        result = parse_manifest(None)  # type: ignore[arg-type]
        assert result.fatal_error == "Manifest must be a string"
        assert result.items == []
        assert result.errors == []
        assert not result.ok

    def test_works_with_silenced_logger(self):
        silent = logging.getLogger("tests.silent")
        silent.disabled = True
        loud = parse_manifest(GOOD_LINE)
        quiet = parse_manifest(GOOD_LINE, log=silent)
        assert loud.items == quiet.items

    def test_trace_id_in_log_messages(self, caplog):
        with caplog.at_level(logging.INFO, logger="capsule.manifest"):
            parse_manifest(GOOD_LINE, trace_id="abc123")
        assert "[capsule:abc123]" in caplog.text


class TestParseLine:
    def test_returns_item_and_warning(self):
        item, error = parse_line(ManifestLine(1, "a.jpg | ФОТО | T | D | 2024-01-01 | a"))
        assert item is not None
        assert error is not None and error.kind is ErrorKind.INSUFFICIENT_TAGS

    def test_returns_error_only(self):
        item, error = parse_line(ManifestLine(1, "a|b"))
        assert item is None
        assert error is not None


class TestValidateManifestFormat:
    def test_counts(self):
        check = validate_manifest_format(_manifest(GOOD_LINE, "a|b", "x | y", "bad.jpg | ? | ? | ?"))
        assert not check.valid
        assert check.valid_count == 2
        assert check.invalid_count == 2
        assert check.total == 4

    def test_values_not_checked(self):
        check = validate_manifest_format("a.jpg | NOPE | T | not a date")
        assert check.valid

    def test_non_string(self):
        assert not validate_manifest_format(42).valid  # type: ignore[arg-type]


# ── Models ────────────────────────────────────────────────────────────────


class TestArchiveItem:
    def test_media_kind_by_extension(self):
        assert ArchiveItem("a.JPG", "ФОТО").is_image
        assert ArchiveItem("a.mp3", "АУДИО").is_audio
        assert ArchiveItem("a.mov", "ВИДЕО").is_video
        assert ArchiveItem("a.pdf", "ДОКУМЕНТ").is_pdf
        assert ArchiveItem("noext", "ТЕКСТ").extension == ""

    def test_manifest_line_round_trips(self):
        item = parse_manifest(GOOD_LINE).items[0]
        assert item.manifest_line() == GOOD_LINE

    def test_with_metadata(self):
        item = ArchiveItem("a.pdf", "ДОКУМЕНТ", tags=("x",))
        enriched = item.with_metadata(title="From PDF", keywords=["x", " y ", ""])
        assert enriched.title == "From PDF"
        assert enriched.tags == ("x", "y")
        assert item.tags == ("x",)

    def test_with_metadata_keeps_existing_title(self):
        item = ArchiveItem("a.pdf", "ДОКУМЕНТ", title="Mine")
        assert item.with_metadata(title="Other").title == "Mine"


class TestValidationError:
    def test_missing_file_is_critical(self):
        error = ValidationError.missing_file("x.jpg", 2)
        assert error.is_critical
        assert error.severity is Severity.ERROR
        assert "x.jpg" in error.error

    def test_to_dict(self):
        data = ValidationError.invalid_date("nope", 4).to_dict()
        assert data["kind"] == "invalid_date"
        assert data["category"] == "date"
        assert data["severity"] == "warning"
        assert data["problematic_parts"][0]["field"] == "date"

    def test_every_kind_has_a_category(self):
        for kind in ErrorKind:
            assert isinstance(kind.category, ErrorCategory)
