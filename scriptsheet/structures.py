"""Core data structures for ScriptSheet."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple


class LineKind(Enum):
    """Discriminates the structural kind of a document line."""

    EMPTY = "empty"
    LABEL = "label"
    COMMENT = "comment"
    COMMAND = "command"
    GENERIC_TEXT = "generic-text"
    RECORD = "record"


class DocumentFormat(Enum):
    """Script-like documents use markers; record documents use identifiers."""

    SCRIPT = "script"
    RECORDS = "records"


@dataclass(frozen=True)
class LocalizableSpan:
    """A range of one line's raw text holding translatable content."""

    start: int
    length: int
    text: str

    @property
    def end(self) -> int:
        return self.start + self.length


@dataclass(frozen=True)
class InlineCommand:
    """A command nested in a generic text line, e.g. ``[wait 1]``."""

    command_id: str
    start: int
    length: int
    spans: Tuple[LocalizableSpan, ...] = ()


@dataclass
class ScriptLine:
    """Represents a single parsed line of a document."""

    number: int
    kind: LineKind
    text: str
    ending: str = ""
    content_hash: str = ""
    identifier: str = ""
    command_id: str | None = None
    spans: List[LocalizableSpan] = field(default_factory=list)
    inlined: List[InlineCommand] = field(default_factory=list)

    @property
    def is_translatable(self) -> bool:
        """Command and generic text lines may carry a counterpart."""

        return self.kind in (LineKind.COMMAND, LineKind.GENERIC_TEXT)

    @property
    def raw(self) -> str:
        return self.text + self.ending


def content_hash(text: str) -> str:
    """Return the stable content hash identifying a source line."""

    digest = hashlib.sha1(text.strip().encode("utf-8")).hexdigest()
    return digest[:12]
