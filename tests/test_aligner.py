"""Tests for locating translated counterparts and locale tags."""

import pytest

from scriptsheet.aligner import (
    LocaleTagCache,
    Untranslated,
    extract_locale_tag,
    find_counterpart,
    is_locale_tag,
)
from scriptsheet.errors import LocaleTagError, MultipleCandidatesWarning
from scriptsheet.structures import content_hash

SOURCE_LINE = "@say Hello"


@pytest.fixture
def source_line(script_parser):
    return script_parser.parse_line(SOURCE_LINE, number=3)


def test_counterpart_follows_marker(make_script, source_line):
    translation = make_script(
        "; <ja>\n"
        f"# {content_hash(SOURCE_LINE)}\n"
        f"; {SOURCE_LINE}\n"
        "@say こんにちは\n"
        "# other\n"
        "@say ignored\n"
    )

    counterpart = find_counterpart(source_line, translation)

    assert counterpart.text == "@say こんにちは"


def test_marker_region_ends_at_next_label(make_script, source_line):
    translation = make_script(
        "; <ja>\n"
        f"# {content_hash(SOURCE_LINE)}\n"
        "# next\n"
        "@say too late\n"
    )

    counterpart = find_counterpart(source_line, translation)

    assert isinstance(counterpart, Untranslated)
    assert counterpart.marker.identifier == content_hash(SOURCE_LINE)


def test_missing_marker(make_script, source_line):
    assert find_counterpart(source_line, make_script("; <ja>\n@say hi\n")) is None


def test_multiple_candidates_warn_and_use_first(make_script, source_line):
    translation = make_script(
        f"# {content_hash(SOURCE_LINE)}\n"
        "@say first\n"
        "Alice: second\n"
    )

    with pytest.warns(MultipleCandidatesWarning):
        counterpart = find_counterpart(source_line, translation)

    assert counterpart.text == "@say first"


def test_record_counterpart_matches_identifier(make_records, record_parser):
    translation = make_records("; <es>\nfarewell=Adiós\ngreeting=Hola\n")

    counterpart = find_counterpart(record_parser.parse_line("greeting=Hello"), translation)

    assert counterpart.text == "greeting=Hola"


def test_duplicate_record_identifiers_warn(make_records, record_parser):
    translation = make_records("greeting=Hola\ngreeting=Buenas\n")

    with pytest.warns(MultipleCandidatesWarning):
        counterpart = find_counterpart(record_parser.parse_line("greeting=Hello"), translation)

    assert counterpart.text == "greeting=Hola"


def test_extract_locale_tag(make_script):
    assert extract_locale_tag(make_script("\n; <ja> Localization of chapter1\n")) == "ja"


def test_comment_after_marker_is_not_the_header(make_script):
    document = make_script("# 1f0c2ad8e41b\n; <xx>\n; <pt-BR>\n")

    assert extract_locale_tag(document) == "pt-BR"


@pytest.mark.parametrize("text", ["; just a comment\n", "@say hi\n", ""])
def test_missing_locale_tag(make_script, text):
    with pytest.raises(LocaleTagError):
        extract_locale_tag(make_script(text))


def test_is_locale_tag():
    assert is_locale_tag("ja")
    assert is_locale_tag("zh-Hans")
    assert not is_locale_tag("not a tag")
    assert not is_locale_tag("")


def test_locale_tag_cache_memoizes_by_key(make_script):
    cache = LocaleTagCache()
    japanese = make_script("; <ja>\n")
    french = make_script("; <fr>\n")

    assert cache.get("ja/chapter1.nani", japanese) == "ja"
    assert cache.get("ja/chapter1.nani", french) == "ja"
    assert "ja/chapter1.nani" in cache
    assert len(cache) == 1

    cache.clear()
    assert cache.get("ja/chapter1.nani", french) == "fr"
