"""Error definitions and policy helpers for ScriptSheet."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Categorises runtime errors to apply policy thresholds."""

    FILE_IO = auto()
    SCHEMA = auto()
    PARSE = auto()
    ALIGNMENT = auto()
    LOCALIZATION = auto()
    LOCALE_TAG = auto()
    OTHER = auto()


class ScriptSheetError(Exception):
    """Base exception for all custom errors."""


class AbortRequested(ScriptSheetError):
    """Raised when the user elects to abort processing."""


class NonInteractiveAbort(ScriptSheetError):
    """Raised when non-interactive policy dictates termination."""


class UnsupportedFileTypeError(ScriptSheetError):
    """Raised when a given file extension is not supported."""


class ConfigurationError(ScriptSheetError):
    """Raised when settings are missing or invalid."""


class SchemaError(ScriptSheetError):
    """Raised when a command or parameter is absent from the metadata catalog."""

    def __init__(self, message: str, *, command_id: str, parameter_id: str | None = None):
        super().__init__(message)
        self.command_id = command_id
        self.parameter_id = parameter_id


class ParseError(ScriptSheetError):
    """Raised when a line fails structural tokenization."""

    def __init__(self, message: str, *, line_text: str, line_number: int | None = None):
        location = f" (line {line_number})" if line_number is not None else ""
        super().__init__(f"{message}{location}: {line_text!r}")
        self.line_text = line_text
        self.line_number = line_number


class AlignmentError(ScriptSheetError):
    """Raised when a translated line does not carry the source argument count."""

    def __init__(
        self,
        *,
        document: str,
        line_number: int,
        expected: int,
        actual: int,
        translation: Optional[str] = None,
    ) -> None:
        origin = f" in `{translation}`" if translation else ""
        super().__init__(
            f"`{document}` line {line_number}: translated counterpart{origin} has "
            f"{actual} localizable argument(s), expected {expected}."
        )
        self.document = document
        self.line_number = line_number
        self.expected = expected
        self.actual = actual
        self.translation = translation


class MissingLocalizationError(ScriptSheetError):
    """Raised when no counterpart marker exists in a translated document."""

    def __init__(self, *, document: str, line_number: int, line_text: str) -> None:
        super().__init__(
            f"`{document}` has no localization for source line {line_number}: "
            f"{line_text!r}"
        )
        self.document = document
        self.line_number = line_number
        self.line_text = line_text


class LocaleTagError(ScriptSheetError):
    """Raised when a translated document header carries no `<tag>`."""


class PlaceholderIndexError(ScriptSheetError, IndexError):
    """Raised when a template placeholder points past the argument list."""


class SheetFormatError(ScriptSheetError):
    """Raised when a sheet does not follow the Template/Arguments layout."""


class MultipleCandidatesWarning(UserWarning):
    """Issued when a marker region holds more than one translatable line."""


@dataclass
class ErrorRecord:
    """Stores context for a handled error."""

    category: ErrorCategory
    message: str
    details: Optional[str] = None


class ErrorTracker:
    """Tracks consecutive and aggregate errors to satisfy policy rules."""

    CONSECUTIVE_LIMIT = 3
    TOTAL_LIMIT = 10

    def __init__(self) -> None:
        self.last_category: Optional[ErrorCategory] = None
        self.consecutive: int = 0
        self.total: int = 0

    def register(self, category: ErrorCategory) -> tuple[int, int, bool]:
        """Register a new error and return counters."""

        if self.last_category == category:
            self.consecutive += 1
        else:
            self.last_category = category
            self.consecutive = 1

        self.total += 1

        threshold_reached = (
            self.consecutive >= self.CONSECUTIVE_LIMIT
            or self.total >= self.TOTAL_LIMIT
        )

        return self.consecutive, self.total, threshold_reached

    def reset_consecutive(self) -> None:
        """Reset the consecutive counter after successful work."""

        self.consecutive = 0
        self.last_category = None


def categorise(exc: BaseException) -> ErrorCategory:
    """Map an exception raised while converting a document to its category."""

    if isinstance(exc, SchemaError):
        return ErrorCategory.SCHEMA
    if isinstance(exc, (ParseError, SheetFormatError)):
        return ErrorCategory.PARSE
    if isinstance(exc, AlignmentError):
        return ErrorCategory.ALIGNMENT
    if isinstance(exc, MissingLocalizationError):
        return ErrorCategory.LOCALIZATION
    if isinstance(exc, LocaleTagError):
        return ErrorCategory.LOCALE_TAG
    if isinstance(exc, OSError):
        return ErrorCategory.FILE_IO
    return ErrorCategory.OTHER
