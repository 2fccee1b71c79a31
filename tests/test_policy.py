"""Tests for the per-document error policy."""

import builtins

import pytest

from scriptsheet.errors import (
    AbortRequested,
    ErrorCategory,
    NonInteractiveAbort,
    ParseError,
    SchemaError,
    categorise,
)
from scriptsheet.policy import ErrorPolicy


def test_non_interactive_consecutive_limit():
    policy = ErrorPolicy(interactive=False)

    assert policy.handle_error(ErrorCategory.PARSE, "first") == "continue"
    assert policy.handle_error(ErrorCategory.PARSE, "second") == "continue"
    with pytest.raises(NonInteractiveAbort):
        policy.handle_error(ErrorCategory.PARSE, "third")

    assert [record.message for record in policy.records] == ["first", "second", "third"]


def test_success_resets_consecutive_errors():
    policy = ErrorPolicy(interactive=False)

    for _ in range(2):
        policy.handle_error(ErrorCategory.SCHEMA, "failed")
    policy.record_success()
    for _ in range(2):
        assert policy.handle_error(ErrorCategory.SCHEMA, "failed") == "continue"


def test_total_limit():
    policy = ErrorPolicy(interactive=False)
    categories = [ErrorCategory.PARSE, ErrorCategory.ALIGNMENT] * 5

    for category in categories[:-1]:
        policy.handle_error(category, "failed")
    with pytest.raises(NonInteractiveAbort):
        policy.handle_error(categories[-1], "failed")


@pytest.mark.parametrize("answer, expected", [("c", "continue"), ("Retry", "retry")])
def test_interactive_answers(monkeypatch, answer, expected):
    monkeypatch.setattr(builtins, "input", lambda prompt: answer)
    policy = ErrorPolicy(interactive=True)
    for _ in range(2):
        policy.handle_error(ErrorCategory.FILE_IO, "failed")

    assert policy.handle_error(ErrorCategory.FILE_IO, "failed") == expected


def test_interactive_abort_after_invalid_answer(monkeypatch):
    answers = iter(["maybe", "a"])
    monkeypatch.setattr(builtins, "input", lambda prompt: next(answers))
    policy = ErrorPolicy(interactive=True)
    for _ in range(2):
        policy.handle_error(ErrorCategory.OTHER, "failed")

    with pytest.raises(AbortRequested):
        policy.handle_error(ErrorCategory.OTHER, "failed")


def test_categorise():
    assert categorise(SchemaError("x", command_id="x")) is ErrorCategory.SCHEMA
    assert categorise(ParseError("x", line_text="@")) is ErrorCategory.PARSE
    assert categorise(FileNotFoundError()) is ErrorCategory.FILE_IO
    assert categorise(ValueError()) is ErrorCategory.OTHER
