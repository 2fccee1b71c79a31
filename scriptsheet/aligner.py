"""Locate translated counterparts of source lines inside locale documents."""

from __future__ import annotations

import re
import warnings
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Hashable, List, Optional, Union

from .errors import LocaleTagError, MultipleCandidatesWarning
from .structures import DocumentFormat, LineKind, ScriptLine

if TYPE_CHECKING:  # pragma: no cover
    from .documents import Document

LOCALE_TAG_PATTERN = re.compile(r"<(?P<tag>[A-Za-z0-9][A-Za-z0-9_\-]*)>")
LOCALE_TAG_SHAPE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-]*$")


@dataclass(frozen=True)
class Untranslated:
    """A marker whose region holds no translated line yet."""

    marker: ScriptLine


Counterpart = Union[ScriptLine, Untranslated]


def is_locale_tag(value: str) -> bool:
    return bool(LOCALE_TAG_SHAPE.match(value))


def _warn_multiple(document: "Document", source_line: ScriptLine, count: int) -> None:
    warnings.warn(
        MultipleCandidatesWarning(
            f"`{document.name}` holds {count} candidate lines for source line "
            f"{source_line.number}; using the first one."
        ),
        stacklevel=3,
    )


def _script_counterpart(
    source_line: ScriptLine,
    document: "Document",
) -> Optional[Counterpart]:
    lines = document.lines
    for position, line in enumerate(lines):
        if line.kind is not LineKind.LABEL or line.identifier != source_line.content_hash:
            continue
        candidates: List[ScriptLine] = []
        for candidate in lines[position + 1:]:
            if candidate.kind is LineKind.LABEL:
                break
            if candidate.is_translatable:
                candidates.append(candidate)
        if not candidates:
            return Untranslated(marker=line)
        if len(candidates) > 1:
            _warn_multiple(document, source_line, len(candidates))
        return candidates[0]
    return None


def _record_counterpart(
    source_line: ScriptLine,
    document: "Document",
) -> Optional[ScriptLine]:
    candidates = [
        line
        for line in document.lines
        if line.kind is LineKind.RECORD and line.identifier == source_line.identifier
    ]
    if not candidates:
        return None
    if len(candidates) > 1:
        _warn_multiple(document, source_line, len(candidates))
    return candidates[0]


def find_counterpart(
    source_line: ScriptLine,
    document: "Document",
) -> Optional[Counterpart]:
    """Return the translated line matching ``source_line`` or ``None``.

    Script documents are searched for a marker label carrying the source
    line's content hash; the region it opens ends at the next label. A
    marker whose region holds no translatable line yields ``Untranslated``.
    Record documents are matched on the record identifier.
    """

    if document.format is DocumentFormat.RECORDS:
        return _record_counterpart(source_line, document)
    return _script_counterpart(source_line, document)


def extract_locale_tag(document: "Document") -> str:
    """Read the locale tag from the first freestanding comment line."""

    previous: Optional[ScriptLine] = None
    for line in document.lines:
        if line.kind is LineKind.COMMENT and (
            previous is None or previous.kind is not LineKind.LABEL
        ):
            match = LOCALE_TAG_PATTERN.search(line.identifier)
            if match is None:
                raise LocaleTagError(
                    f"`{document.name}` header comment {line.text!r} carries no "
                    "<tag> locale identifier."
                )
            return match.group("tag")
        if line.kind is not LineKind.EMPTY:
            previous = line
    raise LocaleTagError(
        f"`{document.name}` has no header comment with a <tag> locale identifier."
    )


class LocaleTagCache:
    """Memoizes locale tags per caller-supplied document identity for one run."""

    def __init__(self) -> None:
        self._tags: Dict[Hashable, str] = {}

    def get(self, document_id: Hashable, document: "Document") -> str:
        tag = self._tags.get(document_id)
        if tag is None:
            tag = extract_locale_tag(document)
            self._tags[document_id] = tag
        return tag

    def __contains__(self, document_id: Hashable) -> bool:
        return document_id in self._tags

    def __len__(self) -> int:
        return len(self._tags)

    def clear(self) -> None:
        self._tags.clear()
