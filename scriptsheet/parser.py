"""Line analyzers turning raw document text into structured lines with spans."""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from .errors import ParseError
from .metadata import NAMELESS_PARAMETER, MetadataCatalog
from .structures import (
    InlineCommand,
    LineKind,
    LocalizableSpan,
    ScriptLine,
    content_hash,
)

LABEL_LITERAL = "#"
COMMENT_LITERAL = ";"
COMMAND_LITERAL = "@"
DEFAULT_RECORD_SEPARATOR = "="

LINE_BREAK_PATTERN = re.compile(r"\r\n|\n|\r")
COMMAND_ID_PATTERN = re.compile(r"^[A-Za-z_][\w]*$")
AUTHOR_PATTERN = re.compile(r"(?P<author>[^\s:\[\]\\\"]+): ")


def split_lines(text: str) -> List[Tuple[str, str]]:
    """Split text into ``(body, ending)`` pairs without losing line endings."""

    lines: List[Tuple[str, str]] = []
    cursor = 0
    for match in LINE_BREAK_PATTERN.finditer(text):
        lines.append((text[cursor:match.start()], match.group()))
        cursor = match.end()
    if cursor < len(text):
        lines.append((text[cursor:], ""))
    return lines


def _tokenise(
    text: str,
    start: int,
    end: int,
    *,
    line_number: Optional[int],
) -> List[Tuple[int, int]]:
    """Return ``(start, end)`` ranges of whitespace separated tokens."""

    tokens: List[Tuple[int, int]] = []
    index = start
    while index < end:
        if text[index].isspace():
            index += 1
            continue
        token_start = index
        in_quotes = False
        while index < end:
            char = text[index]
            if char == "\\" and index + 1 < end:
                index += 2
                continue
            if char == '"':
                in_quotes = not in_quotes
            elif char.isspace() and not in_quotes:
                break
            index += 1
        if in_quotes:
            raise ParseError(
                "Unterminated quoted value",
                line_text=text,
                line_number=line_number,
            )
        tokens.append((token_start, index))
    return tokens


def _find_assignment(text: str, start: int, end: int) -> Optional[int]:
    """Locate an unquoted ``=`` preceding any quote inside a token."""

    index = start
    while index < end:
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char == '"':
            return None
        if char == "=":
            return index
        index += 1
    return None


class ScriptParser:
    """Parses script lines and reports their localizable spans."""

    def __init__(self, catalog: MetadataCatalog) -> None:
        self.catalog = catalog

    def parse(self, text: str) -> List[ScriptLine]:
        """Parse a whole document, keeping every line ending."""

        return [
            self.parse_line(body, number=number, ending=ending)
            for number, (body, ending) in enumerate(split_lines(text), start=1)
        ]

    def parse_line(
        self,
        text: str,
        *,
        number: int = 0,
        ending: str = "",
    ) -> ScriptLine:
        stripped = text.lstrip()
        offset = len(text) - len(stripped)
        line = ScriptLine(
            number=number,
            kind=LineKind.EMPTY,
            text=text,
            ending=ending,
            content_hash=content_hash(text),
        )
        line_number = number or None

        if not stripped.strip():
            return line
        if stripped.startswith(LABEL_LITERAL):
            line.kind = LineKind.LABEL
            line.identifier = stripped[len(LABEL_LITERAL):].strip()
            return line
        if stripped.startswith(COMMENT_LITERAL):
            line.kind = LineKind.COMMENT
            line.identifier = stripped[len(COMMENT_LITERAL):].strip()
            return line
        if stripped.startswith(COMMAND_LITERAL):
            line.kind = LineKind.COMMAND
            command_id, spans = self._parse_command(
                text,
                offset + len(COMMAND_LITERAL),
                len(text),
                line_number=line_number,
            )
            line.command_id = command_id
            line.spans = spans
            return line

        line.kind = LineKind.GENERIC_TEXT
        line.spans, line.inlined = self._parse_generic(
            text, offset, line_number=line_number
        )
        return line

    # --- Internal helpers -------------------------------------------------

    def _parse_command(
        self,
        text: str,
        start: int,
        end: int,
        *,
        line_number: Optional[int],
    ) -> Tuple[str, List[LocalizableSpan]]:
        tokens = _tokenise(text, start, end, line_number=line_number)
        if not tokens:
            raise ParseError(
                "Command identifier is missing",
                line_text=text,
                line_number=line_number,
            )
        id_start, id_end = tokens[0]
        command_id = text[id_start:id_end]
        if not COMMAND_ID_PATTERN.match(command_id):
            raise ParseError(
                f"Invalid command identifier `{command_id}`",
                line_text=text,
                line_number=line_number,
            )

        parameters: List[Tuple[str, int, int]] = []
        if self.catalog.command(command_id).expression:
            if len(tokens) > 1:
                parameters.append((NAMELESS_PARAMETER, tokens[1][0], tokens[-1][1]))
        else:
            parameters.extend(
                self._split_parameter(text, token_start, token_end, line_number=line_number)
                for token_start, token_end in tokens[1:]
            )

        spans: List[LocalizableSpan] = []
        for parameter_id, value_start, value_end in parameters:
            if not self.catalog.is_translatable(command_id, parameter_id):
                continue
            if (
                value_end - value_start >= 2
                and text[value_start] == '"'
                and text[value_end - 1] == '"'
            ):
                value_start += 1
                value_end -= 1
            if value_end > value_start:
                spans.append(
                    LocalizableSpan(
                        start=value_start,
                        length=value_end - value_start,
                        text=text[value_start:value_end],
                    )
                )
        return command_id, spans

    @staticmethod
    def _split_parameter(
        text: str,
        start: int,
        end: int,
        *,
        line_number: Optional[int],
    ) -> Tuple[str, int, int]:
        """Return ``(parameter id, value start, value end)`` for one token."""

        assignment = _find_assignment(text, start, end)
        if assignment is None:
            return NAMELESS_PARAMETER, start, end
        parameter_id = text[start:assignment]
        if not parameter_id:
            raise ParseError(
                "Parameter identifier is missing",
                line_text=text,
                line_number=line_number,
            )
        return parameter_id, assignment + 1, end

    def _find_closing_bracket(
        self,
        text: str,
        start: int,
        *,
        line_number: Optional[int],
    ) -> int:
        index = start + 1
        in_quotes = False
        while index < len(text):
            char = text[index]
            if char == "\\":
                index += 2
                continue
            if char == '"':
                in_quotes = not in_quotes
            elif char == "]" and not in_quotes:
                return index
            index += 1
        raise ParseError(
            "Unclosed inline command",
            line_text=text,
            line_number=line_number,
        )

    def _parse_generic(
        self,
        text: str,
        offset: int,
        *,
        line_number: Optional[int],
    ) -> Tuple[List[LocalizableSpan], List[InlineCommand]]:
        spans: List[LocalizableSpan] = []
        inlined: List[InlineCommand] = []

        author = AUTHOR_PATTERN.match(text, offset)
        body_start = author.end() if author else offset

        def add_fragment(start: int, end: int) -> None:
            fragment = text[start:end]
            if fragment.strip():
                spans.append(LocalizableSpan(start=start, length=end - start, text=fragment))

        fragment_start = body_start
        index = body_start
        while index < len(text):
            char = text[index]
            if char == "\\" and index + 1 < len(text):
                index += 2
                continue
            if char != "[":
                index += 1
                continue
            close = self._find_closing_bracket(text, index, line_number=line_number)
            add_fragment(fragment_start, index)
            command_id, command_spans = self._parse_command(
                text, index + 1, close, line_number=line_number
            )
            inlined.append(
                InlineCommand(
                    command_id=command_id,
                    start=index,
                    length=close + 1 - index,
                    spans=tuple(command_spans),
                )
            )
            spans.extend(command_spans)
            index = close + 1
            fragment_start = index
        add_fragment(fragment_start, len(text))
        return spans, inlined


class RecordParser:
    """Parses flat ``identifier<SEP>value`` record documents."""

    def __init__(self, separator: str = DEFAULT_RECORD_SEPARATOR) -> None:
        if not separator:
            raise ValueError("Record separator must not be empty.")
        self.separator = separator

    def parse(self, text: str) -> List[ScriptLine]:
        return [
            self.parse_line(body, number=number, ending=ending)
            for number, (body, ending) in enumerate(split_lines(text), start=1)
        ]

    def parse_line(self, text: str, *, number: int = 0, ending: str = "") -> ScriptLine:
        stripped = text.strip()
        line = ScriptLine(
            number=number,
            kind=LineKind.EMPTY,
            text=text,
            ending=ending,
            content_hash=content_hash(text),
        )
        if not stripped:
            return line
        if stripped.startswith(COMMENT_LITERAL):
            line.kind = LineKind.COMMENT
            line.identifier = stripped[len(COMMENT_LITERAL):].strip()
            return line
        if self.separator not in text:
            line.kind = LineKind.GENERIC_TEXT
            return line

        identifier, _ = text.split(self.separator, 1)
        value_start = len(identifier) + len(self.separator)
        line.kind = LineKind.RECORD
        line.identifier = identifier.strip()
        line.content_hash = line.identifier
        line.spans = [
            LocalizableSpan(
                start=value_start,
                length=len(text) - value_start,
                text=text[value_start:],
            )
        ]
        return line
