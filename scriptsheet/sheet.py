"""Row-aligned sheets built from a source document and its translations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence

from .aligner import LocaleTagCache, Untranslated, find_counterpart
from .composite import PLACEHOLDER_PATTERN, Composite, rebuild
from .documents import Document
from .errors import AlignmentError, MissingLocalizationError, SheetFormatError
from .parser import COMMENT_LITERAL, LABEL_LITERAL, split_lines
from .structures import DocumentFormat, ScriptLine, content_hash

TEMPLATE_COLUMN = "Template"
ARGUMENTS_COLUMN = "Arguments"
RESERVED_COLUMNS = (TEMPLATE_COLUMN, ARGUMENTS_COLUMN)


@dataclass
class Column:
    """An ordered, append-only sequence of cell strings."""

    id: str
    values: List[str] = field(default_factory=list)

    def append(self, value: str) -> None:
        self.values.append(value)

    def extend(self, values: Sequence[str]) -> None:
        self.values.extend(values)

    def get(self, row: int) -> str:
        return self.values[row] if row < len(self.values) else ""

    def slice(self, start: int, stop: int) -> List[str]:
        """Return rows ``start..stop-1``, padding missing cells with ``""``."""

        return [self.get(row) for row in range(start, stop)]

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class Run:
    """Rows belonging to one source line or one coalesced block."""

    start: int
    stop: int
    template: str

    @property
    def has_arguments(self) -> bool:
        return any(
            match.group("index") is not None
            for match in PLACEHOLDER_PATTERN.finditer(self.template)
        )


class Sheet:
    """Columns sharing one row index space: Template, Arguments, then locales."""

    def __init__(self) -> None:
        self.template = Column(TEMPLATE_COLUMN)
        self.arguments = Column(ARGUMENTS_COLUMN)
        self.locales: Dict[str, Column] = {}

    @property
    def columns(self) -> List[Column]:
        return [self.template, self.arguments, *self.locales.values()]

    @property
    def row_count(self) -> int:
        return max(len(column) for column in self.columns)

    def add_locale(self, tag: str) -> Column:
        if tag in RESERVED_COLUMNS or tag in self.locales:
            raise SheetFormatError(f"Duplicate or reserved column id `{tag}`.")
        column = Column(tag)
        self.locales[tag] = column
        return column

    def runs(self) -> Iterator[Run]:
        """Yield runs: each non-empty Template cell opens one."""

        start: Optional[int] = None
        for row in range(self.row_count):
            if not self.template.get(row):
                if start is None and any(column.get(row) for column in self.columns):
                    raise SheetFormatError(
                        f"Sheet row {row + 1} holds values outside of any template run."
                    )
                continue
            if start is not None:
                yield Run(start=start, stop=row, template=self.template.get(start))
            start = row
        if start is not None:
            yield Run(start=start, stop=self.row_count, template=self.template.get(start))


def _locale_arguments(
    source: Document,
    line: ScriptLine,
    composite: Composite,
    translation: Document,
) -> Sequence[str]:
    counterpart = find_counterpart(line, translation)
    if counterpart is None:
        raise MissingLocalizationError(
            document=translation.name,
            line_number=line.number,
            line_text=line.text,
        )
    if isinstance(counterpart, Untranslated):
        return [""] * len(composite.arguments)
    translated = Composite.from_script_line(counterpart, translation.separator)
    if len(translated.arguments) != len(composite.arguments):
        raise AlignmentError(
            document=source.name,
            line_number=line.number,
            expected=len(composite.arguments),
            actual=len(translated.arguments),
            translation=translation.name,
        )
    return translated.arguments


def build_sheet(
    source: Document,
    translations: Sequence[Document] = (),
    *,
    tag_cache: Optional[LocaleTagCache] = None,
) -> Sheet:
    """Build a sheet with one run per localizable source line.

    Lines without arguments are buffered and prefixed onto the next
    localizable line's Template cell; a trailing buffer becomes a final
    Template-only row. Each template keeps its line ending so the runs
    concatenate back into the exact source text.
    """

    tags = tag_cache if tag_cache is not None else LocaleTagCache()
    sheet = Sheet()
    locale_columns = [
        (translation, sheet.add_locale(tags.get(translation.key, translation)))
        for translation in translations
    ]

    pending: List[str] = []
    for line in source.lines:
        composite = Composite.from_script_line(line, source.separator)
        cell = composite.template + line.ending
        if not composite.arguments:
            pending.append(cell)
            continue

        sheet.template.append("".join(pending) + cell)
        pending = []
        sheet.template.extend([""] * (len(composite.arguments) - 1))
        sheet.arguments.extend(composite.arguments)
        for translation, column in locale_columns:
            column.extend(_locale_arguments(source, line, composite, translation))

    if pending:
        sheet.template.append("".join(pending))
    return sheet


@dataclass
class ReversedSheet:
    """Reconstructed source text plus one text per locale tag."""

    source_text: str
    locale_texts: Dict[str, str] = field(default_factory=dict)


def _is_blank(values: Sequence[str]) -> bool:
    return all(not value.strip() for value in values)


def locale_header(tag: str) -> str:
    return f"{COMMENT_LITERAL} <{tag}>\n"


def untranslated_block(source_line: str) -> str:
    """Marker label carrying the source hash followed by the source value."""

    return (
        f"{LABEL_LITERAL} {content_hash(source_line)}\n"
        f"{COMMENT_LITERAL} {source_line}\n"
    )


def _script_locale_run(run: Run, arguments: Sequence[str], localized: Sequence[str]) -> str:
    if not run.has_arguments:
        return ""
    line_template, _ = split_lines(run.template)[-1]
    source_line = rebuild(line_template, arguments)
    block = untranslated_block(source_line)
    if _is_blank(localized):
        return block
    return block + rebuild(line_template, localized) + "\n"


def reverse_sheet(
    sheet: Sheet,
    document_format: DocumentFormat = DocumentFormat.SCRIPT,
) -> ReversedSheet:
    """Reconstruct the source text and one document per locale column."""

    source_parts: List[str] = []
    locale_parts: Dict[str, List[str]] = {
        tag: [locale_header(tag)] for tag in sheet.locales
    }
    for run in sheet.runs():
        arguments = sheet.arguments.slice(run.start, run.stop)
        source_parts.append(Composite.from_template_and_args(run.template, arguments).value)
        for tag, column in sheet.locales.items():
            localized = column.slice(run.start, run.stop)
            if document_format is DocumentFormat.SCRIPT:
                locale_parts[tag].append(_script_locale_run(run, arguments, localized))
            else:
                locale_parts[tag].append(
                    Composite.from_template_and_args(run.template, localized).value
                )
    return ReversedSheet(
        source_text="".join(source_parts),
        locale_texts={tag: "".join(parts) for tag, parts in locale_parts.items()},
    )
