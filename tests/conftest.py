"""Shared fixtures for the ScriptSheet tests."""

import pytest

from scriptsheet.documents import parse_document
from scriptsheet.metadata import default_catalog
from scriptsheet.parser import RecordParser, ScriptParser
from scriptsheet.structures import DocumentFormat


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def script_parser(catalog):
    return ScriptParser(catalog)


@pytest.fixture
def record_parser():
    return RecordParser("=")


@pytest.fixture
def make_script(catalog):
    """Parse script text into a named document."""

    def _make(text, name="chapter1.nani"):
        return parse_document(
            text,
            name=name,
            document_format=DocumentFormat.SCRIPT,
            catalog=catalog,
        )

    return _make


@pytest.fixture
def make_records(catalog):
    """Parse record text into a named document."""

    def _make(text, name="ui.txt"):
        return parse_document(
            text,
            name=name,
            document_format=DocumentFormat.RECORDS,
            catalog=catalog,
        )

    return _make
