"""Document loading, rendering and path to sheet-name mapping."""

from __future__ import annotations

import pathlib
from dataclasses import dataclass, field
from typing import Hashable, List, Optional, Tuple

from .errors import ParseError, UnsupportedFileTypeError
from .metadata import MetadataCatalog
from .parser import DEFAULT_RECORD_SEPARATOR, RecordParser, ScriptParser
from .structures import DocumentFormat, ScriptLine

SCRIPT_EXTENSION = ".nani"
RECORD_EXTENSION = ".txt"
SCRIPTS_CATEGORY = "Scripts"
TEXT_CATEGORY = "Text"
SHEET_PATH_SEPARATOR = ">"


@dataclass
class Document:
    """A parsed document: ordered lines that render back to the exact source text."""

    name: str
    format: DocumentFormat
    lines: List[ScriptLine] = field(default_factory=list)
    separator: str = DEFAULT_RECORD_SEPARATOR
    identity: Optional[Hashable] = None

    @property
    def key(self) -> Hashable:
        """Stable identifier used to memoize per-document results."""

        return self.identity if self.identity is not None else self.name

    @property
    def text(self) -> str:
        return "".join(line.raw for line in self.lines)

    @property
    def is_script(self) -> bool:
        return self.format is DocumentFormat.SCRIPT


def parse_document(
    text: str,
    *,
    name: str,
    document_format: DocumentFormat,
    catalog: MetadataCatalog,
    separator: str = DEFAULT_RECORD_SEPARATOR,
) -> Document:
    """Parse text into a ``Document``; parse failures name the document."""

    if document_format is DocumentFormat.RECORDS:
        lines = RecordParser(separator).parse(text)
    else:
        try:
            lines = ScriptParser(catalog).parse(text)
        except ParseError as exc:
            raise ParseError(
                f"Failed to parse `{name}`",
                line_text=exc.line_text,
                line_number=exc.line_number,
            ) from exc
    return Document(name=name, format=document_format, lines=lines, separator=separator)


def detect_format(path: pathlib.Path) -> DocumentFormat:
    """Select the document format from the file extension."""

    suffix = path.suffix.lower()
    if suffix == SCRIPT_EXTENSION:
        return DocumentFormat.SCRIPT
    if suffix == RECORD_EXTENSION:
        return DocumentFormat.RECORDS
    raise UnsupportedFileTypeError(
        f"This file type isn't supported, please use {SCRIPT_EXTENSION} or "
        f"{RECORD_EXTENSION}: {path.name}"
    )


def load_document(
    path: pathlib.Path,
    *,
    catalog: MetadataCatalog,
    separator: str = DEFAULT_RECORD_SEPARATOR,
    name: Optional[str] = None,
) -> Document:
    """Read and parse a document from disk, keeping its exact line endings."""

    document_format = detect_format(path)
    with path.open("r", encoding="utf-8", newline="") as handle:
        text = handle.read()
    return parse_document(
        text,
        name=name or path.name,
        document_format=document_format,
        catalog=catalog,
        separator=separator,
    )


def write_text(path: pathlib.Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(text)


def category_for(local_path: pathlib.PurePath) -> str:
    return SCRIPTS_CATEGORY if local_path.suffix.lower() == SCRIPT_EXTENSION else TEXT_CATEGORY


def local_path_to_sheet_name(local_path: pathlib.PurePath) -> str:
    """``dir/chapter1.nani`` becomes ``Scripts>dir>chapter1``."""

    parts = list(local_path.parts[:-1]) + [local_path.stem]
    return SHEET_PATH_SEPARATOR.join([category_for(local_path)] + parts)


def sheet_name_to_local_path(sheet_name: str) -> Optional[pathlib.PurePosixPath]:
    """Reverse ``local_path_to_sheet_name``; unknown names yield ``None``."""

    category, _, rest = sheet_name.partition(SHEET_PATH_SEPARATOR)
    if not rest:
        return None
    if category == SCRIPTS_CATEGORY:
        extension = SCRIPT_EXTENSION
    elif category == TEXT_CATEGORY:
        extension = RECORD_EXTENSION
    else:
        return None
    parts = rest.split(SHEET_PATH_SEPARATOR)
    if any(not part for part in parts):
        return None
    return pathlib.PurePosixPath(*parts[:-1], parts[-1] + extension)


def discover_documents(folder: pathlib.Path, extension: str) -> List[Tuple[pathlib.Path, pathlib.PurePosixPath]]:
    """Return ``(full path, local path)`` pairs for every document below ``folder``."""

    if not folder.is_dir():
        return []
    found = []
    for path in sorted(folder.rglob(f"*{extension}")):
        if path.is_file():
            local = pathlib.PurePosixPath(*path.relative_to(folder).parts)
            found.append((path, local))
    return found
