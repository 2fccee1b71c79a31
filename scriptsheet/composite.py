"""Templates with indexed placeholders and their argument lists."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from .errors import ParseError, PlaceholderIndexError
from .parser import DEFAULT_RECORD_SEPARATOR
from .structures import LineKind, LocalizableSpan, ScriptLine

PLACEHOLDER_PATTERN = re.compile(r"\\(?P<escaped>[{}\\])|\{(?P<index>\d+)\}")
ESCAPE_PATTERN = re.compile(r"([{}\\])")


def build_placeholder(index: int) -> str:
    return f"{{{index}}}"


def escape_literal(text: str) -> str:
    """Escape braces and backslashes so literal text never reads as a placeholder."""

    return ESCAPE_PATTERN.sub(r"\\\1", text)


def rebuild(template: str, arguments: Sequence[str]) -> str:
    """Substitute unescaped placeholders and unescape literal characters.

    Besides `\\{` and `\\}`, `\\\\` also reads as one literal backslash.
    Templates escape every backslash of non-argument text, so a template cell
    shows doubled backslashes even for a line without arguments, and a
    backslash that ends literal text cannot escape the placeholder after it.
    """

    def _replace(match: re.Match[str]) -> str:
        escaped = match.group("escaped")
        if escaped is not None:
            return escaped
        index = int(match.group("index"))
        if index >= len(arguments):
            raise PlaceholderIndexError(
                f"Placeholder {{{index}}} is out of range for "
                f"{len(arguments)} argument(s) in template {template!r}."
            )
        return arguments[index]

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def _order_spans(
    line_text: str,
    spans: Sequence[LocalizableSpan],
) -> List[Tuple[int, LocalizableSpan]]:
    """Assign placeholder indices in document order and validate the ranges."""

    ordered = sorted(spans, key=lambda span: (span.start, span.length))
    previous_end = 0
    for span in ordered:
        if span.start < previous_end:
            raise ParseError(
                f"Localizable spans overlap at offset {span.start}",
                line_text=line_text,
            )
        if span.start < 0 or span.end > len(line_text) or span.length < 0:
            raise ParseError(
                f"Localizable span {span.start}+{span.length} is outside the line",
                line_text=line_text,
            )
        if line_text[span.start:span.end] != span.text:
            raise ParseError(
                f"Localizable span text does not match the line at offset {span.start}",
                line_text=line_text,
            )
        previous_end = span.end
    return list(enumerate(ordered))


class Composite:
    """Represents a string template associated with arguments.

    ``rebuild(template, arguments) == value`` holds for every instance,
    whichever constructor produced it.
    """

    __slots__ = ("value", "template", "arguments")

    def __init__(self, value: str, template: str, arguments: Sequence[str]) -> None:
        self.value = value
        self.template = template
        self.arguments: Tuple[str, ...] = tuple(arguments)

    def __repr__(self) -> str:
        return (
            f"Composite(template={self.template!r}, arguments={list(self.arguments)!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Composite):
            return NotImplemented
        return (self.value, self.template, self.arguments) == (
            other.value,
            other.template,
            other.arguments,
        )

    @classmethod
    def from_line(
        cls,
        line_text: str,
        spans: Sequence[LocalizableSpan] = (),
    ) -> "Composite":
        """Replace each span with ``{i}``, ``i`` being its left-to-right position.

        Indices are assigned first; the text is then rewritten back to front
        over the untouched input so earlier offsets stay valid.
        """

        indexed = _order_spans(line_text, spans)
        pieces: List[str] = []
        cursor = len(line_text)
        for index, span in reversed(indexed):
            pieces.append(escape_literal(line_text[span.end:cursor]))
            pieces.append(build_placeholder(index))
            cursor = span.start
        pieces.append(escape_literal(line_text[:cursor]))
        template = "".join(reversed(pieces))
        arguments = [span.text for _, span in indexed]
        return cls(line_text, template, arguments)

    @classmethod
    def from_template_and_args(
        cls,
        template: str,
        arguments: Sequence[str],
    ) -> "Composite":
        return cls(rebuild(template, arguments), template, arguments)

    @classmethod
    def from_record(
        cls,
        line: str,
        separator: str = DEFAULT_RECORD_SEPARATOR,
    ) -> "Composite":
        """Build ``identifier<SEP>{0}`` for a flat key/value record line."""

        if separator not in line:
            return cls.from_line(line)
        identifier, value = line.split(separator, 1)
        template = escape_literal(identifier + separator) + build_placeholder(0)
        return cls(line, template, [value])

    @classmethod
    def from_script_line(
        cls,
        line: ScriptLine,
        separator: Optional[str] = None,
    ) -> "Composite":
        """Dispatch on the parsed line kind."""

        if line.kind is LineKind.RECORD:
            return cls.from_record(line.text, separator or DEFAULT_RECORD_SEPARATOR)
        return cls.from_line(line.text, line.spans)
