"""Tests for building sheets from documents and reversing them."""

import pytest

from scriptsheet.aligner import LocaleTagCache
from scriptsheet.errors import (
    AlignmentError,
    LocaleTagError,
    MissingLocalizationError,
    SheetFormatError,
)
from scriptsheet.sheet import Sheet, build_sheet, reverse_sheet
from scriptsheet.structures import DocumentFormat, content_hash

DIALOGUE = "Alice: Hi [wait 1]there."


def japanese(body):
    return f"; <ja>\n# {content_hash(DIALOGUE)}\n; {DIALOGUE}\n{body}\n"


def test_zero_argument_lines_are_coalesced(make_script):
    source = make_script(f"; one\n; two\n; three\n{DIALOGUE}\n")

    sheet = build_sheet(source)

    assert sheet.template.values == [f"; one\n; two\n; three\nAlice: {{0}}[wait 1]{{1}}\n", ""]
    assert sheet.arguments.values == ["Hi ", "there."]
    assert sheet.row_count == 2


def test_trailing_lines_become_a_template_only_row(make_script):
    sheet = build_sheet(make_script("@say Hello\n# end\n@stop\n"))

    assert sheet.template.values == ["@say {0}\n", "# end\n@stop\n"]
    assert sheet.arguments.values == ["Hello"]


def test_document_without_arguments(make_script):
    sheet = build_sheet(make_script("# a\n; b\n"))

    assert sheet.template.values == ["# a\n; b\n"]
    assert sheet.arguments.values == []


def test_source_round_trip_is_exact(make_script):
    text = "# start\r\nAlice: Hi {name}\r\n\r\n@say \"a\\b\"\r\n; end {x}"

    result = reverse_sheet(build_sheet(make_script(text)))

    assert result.source_text == text
    assert result.locale_texts == {}


def test_locale_arguments_share_rows(make_script):
    source = make_script(f"# start\n{DIALOGUE}\n")
    translation = make_script(japanese("Alice: やあ[wait 1]そこ。"), name="ja/chapter1.nani")

    sheet = build_sheet(source, [translation])

    assert list(sheet.locales) == ["ja"]
    assert sheet.locales["ja"].values == ["やあ", "そこ。"]


def test_argument_count_mismatch(make_script):
    source = make_script(f"{DIALOGUE}\n")
    translation = make_script(japanese("Alice: やあ"), name="ja/chapter1.nani")

    with pytest.raises(AlignmentError) as info:
        build_sheet(source, [translation])

    error = info.value
    assert (error.document, error.line_number) == ("chapter1.nani", 1)
    assert (error.expected, error.actual) == (2, 1)
    assert error.translation == "ja/chapter1.nani"


def test_missing_counterpart(make_script):
    source = make_script(f"{DIALOGUE}\n")
    translation = make_script("; <ja>\n", name="ja/chapter1.nani")

    with pytest.raises(MissingLocalizationError) as info:
        build_sheet(source, [translation])

    assert info.value.document == "ja/chapter1.nani"
    assert info.value.line_number == 1


def test_translation_without_header(make_script):
    with pytest.raises(LocaleTagError):
        build_sheet(make_script("@say Hi\n"), [make_script("@say Hola\n")])


def test_tag_cache_is_used(make_script):
    cache = LocaleTagCache()
    translation = make_script(japanese("Alice: やあ[wait 1]そこ。"), name="ja/chapter1.nani")

    build_sheet(make_script(f"{DIALOGUE}\n"), [translation], tag_cache=cache)

    assert "ja/chapter1.nani" in cache


def test_script_locale_reconstruction(make_script):
    translated = japanese("Alice: やあ[wait 1]そこ。")
    source = make_script(f"# start\n{DIALOGUE}\n@stop\n")
    sheet = build_sheet(source, [make_script(translated, name="ja/chapter1.nani")])

    result = reverse_sheet(sheet)

    assert result.locale_texts == {"ja": translated}


def test_reconstructed_locale_builds_the_same_sheet(make_script):
    source = make_script(f"{DIALOGUE}\n@say \"Bye\" who=Alice\n")
    sheet = Sheet()
    sheet.template.extend(["Alice: {0}[wait 1]{1}\n", "", "@say \"{0}\" who=Alice\n"])
    sheet.arguments.extend(["Hi ", "there.", "Bye"])
    sheet.add_locale("ja").extend(["やあ", "そこ。", "じゃ"])

    locale_text = reverse_sheet(sheet).locale_texts["ja"]
    rebuilt = build_sheet(source, [make_script(locale_text, name="ja/chapter1.nani")])

    assert rebuilt.locales["ja"].values == ["やあ", "そこ。", "じゃ"]


def test_blank_locale_slice_emits_marker_and_source_comment():
    sheet = Sheet()
    sheet.template.append("@say {0}\n")
    sheet.arguments.append("Hello")
    sheet.add_locale("ja").append("")

    result = reverse_sheet(sheet)

    assert result.locale_texts["ja"] == (
        f"; <ja>\n# {content_hash('@say Hello')}\n; @say Hello\n"
    )


def test_untranslated_locale_document_builds_a_blank_column(make_script):
    source = make_script("# start\n@say Hello\nAlice: Hi [wait 1]there.\n")
    sheet = build_sheet(source)
    sheet.add_locale("ja").extend(["", "やあ", "そこ。"])

    locale_text = reverse_sheet(sheet).locale_texts["ja"]
    rebuilt = build_sheet(source, [make_script(locale_text, name="ja/chapter1.nani")])

    assert rebuilt.locales["ja"].values == ["", "やあ", "そこ。"]
    assert reverse_sheet(rebuilt).locale_texts["ja"] == locale_text


def test_record_locale_reconstruction(make_records):
    source = make_records("; UI\ngreeting=Hello\nfarewell=Bye\n")
    translation = make_records("; <es>\ngreeting=Hola\nfarewell=Adiós\n", name="es/ui.txt")

    sheet = build_sheet(source, [translation])
    result = reverse_sheet(sheet, DocumentFormat.RECORDS)

    assert sheet.template.values == ["; UI\ngreeting={0}\n", "farewell={0}\n"]
    assert result.source_text == "; UI\ngreeting=Hello\nfarewell=Bye\n"
    assert result.locale_texts["es"] == "; <es>\n; UI\ngreeting=Hola\nfarewell=Adiós\n"


def test_missing_record_translation(make_records):
    source = make_records("greeting=Hello\nfarewell=Bye\n")
    translation = make_records("; <es>\ngreeting=Hola\n", name="es/ui.txt")

    with pytest.raises(MissingLocalizationError) as info:
        build_sheet(source, [translation])

    assert info.value.line_number == 2


def test_values_before_first_template_are_rejected():
    sheet = Sheet()
    sheet.arguments.append("orphan")

    with pytest.raises(SheetFormatError):
        list(sheet.runs())


def test_runs_pad_short_columns():
    sheet = Sheet()
    sheet.template.extend(["{0} {1}\n"])
    sheet.arguments.append("only")

    with pytest.raises(IndexError):
        reverse_sheet(sheet)

    sheet.template.values = ["{0}\n", "", "tail"]
    result = reverse_sheet(sheet)
    assert result.source_text == "only\ntail"


@pytest.mark.parametrize("tag", ["Template", "Arguments"])
def test_reserved_locale_ids(tag):
    with pytest.raises(SheetFormatError):
        Sheet().add_locale(tag)


def test_duplicate_locale_ids():
    sheet = Sheet()
    sheet.add_locale("ja")

    with pytest.raises(SheetFormatError):
        sheet.add_locale("ja")
