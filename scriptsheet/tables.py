"""Tabular stores and the binding between sheets and cells."""

from __future__ import annotations

import pathlib
import re
from typing import Callable, Collection, Dict, List, Optional, Protocol, Tuple

from .aligner import is_locale_tag
from .errors import ScriptSheetError, SheetFormatError
from .sheet import RESERVED_COLUMNS, Sheet

HEADER_ROW = 1

# OOXML `_xHHHH_` escapes. XML parsing turns a raw "\r" into "\n", so carriage
# returns and literal `_xHHHH_` look-alikes are escaped in workbook cells.
CELL_ESCAPE_PATTERN = re.compile(r"\r|_(?=x[0-9A-Fa-f]{4}(?:_|\r))")
CELL_UNESCAPE_PATTERN = re.compile(r"_x(?P<code>[0-9A-Fa-f]{4})_")


def escape_cell(text: str) -> str:
    return CELL_ESCAPE_PATTERN.sub(
        lambda match: "_x000D_" if match.group() == "\r" else "_x005F_",
        text,
    )


def unescape_cell(text: str) -> str:
    return CELL_UNESCAPE_PATTERN.sub(lambda match: chr(int(match.group("code"), 16)), text)


class TableStore(Protocol):
    """Cell-addressed storage; columns and rows are 1-based, headers on row 1."""

    def set_cell(self, column: int, row: int, text: str) -> None: ...

    def get_cell(self, column: int, row: int) -> Optional[str]: ...

    def row_count(self) -> int: ...


class MemoryTable:
    """Dictionary-backed store, handy for tests and previews."""

    def __init__(self) -> None:
        self.cells: Dict[Tuple[int, int], str] = {}

    def set_cell(self, column: int, row: int, text: str) -> None:
        if text:
            self.cells[(column, row)] = text
        else:
            self.cells.pop((column, row), None)

    def get_cell(self, column: int, row: int) -> Optional[str]:
        return self.cells.get((column, row))

    def row_count(self) -> int:
        return max((row for _, row in self.cells), default=0)


def _import_openpyxl():
    try:
        import openpyxl  # type: ignore
    except ImportError as exc:  # pragma: no cover - import guard
        raise ScriptSheetError(
            "openpyxl is required to read and write .xlsx spreadsheets. "
            "Install it with `pip install openpyxl`."
        ) from exc
    return openpyxl


class WorkbookTable:
    """Store over one openpyxl worksheet; values are always string cells."""

    def __init__(self, worksheet) -> None:
        self.worksheet = worksheet

    def set_cell(self, column: int, row: int, text: str) -> None:
        cell = self.worksheet.cell(row=row, column=column)
        if not text:
            cell.value = None
            return
        cell.value = escape_cell(text)
        # Text starting with "=" must not turn into a formula.
        cell.data_type = "s"

    def get_cell(self, column: int, row: int) -> Optional[str]:
        value = self.worksheet.cell(row=row, column=column).value
        if value is None:
            return None
        return unescape_cell(value) if isinstance(value, str) else str(value)

    def row_count(self) -> int:
        return self.worksheet.max_row

    def clear(self) -> None:
        if self.worksheet.max_row:
            self.worksheet.delete_rows(1, self.worksheet.max_row)


class Workbook:
    """An ``.xlsx`` file holding one worksheet per document."""

    def __init__(self, path: pathlib.Path) -> None:
        self.path = path
        openpyxl = _import_openpyxl()
        if path.exists():
            self.book = openpyxl.load_workbook(str(path))
            self._created = False
        else:
            self.book = openpyxl.Workbook()
            self._created = True

    def sheet_names(self) -> List[str]:
        return list(self.book.sheetnames)

    def has_sheet(self, name: str) -> bool:
        return name in self.book.sheetnames

    def sheet(self, name: str) -> WorkbookTable:
        """Return the named worksheet, adding it when missing."""

        if name in self.book.sheetnames:
            return WorkbookTable(self.book[name])
        if self._created and len(self.book.sheetnames) == 1:
            # Reuse the blank default sheet of a fresh workbook.
            worksheet = self.book.active
            worksheet.title = name
            self._created = False
            return WorkbookTable(worksheet)
        return WorkbookTable(self.book.create_sheet(title=name))

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.book.save(str(self.path))


def write_sheet(sheet: Sheet, store: TableStore) -> None:
    """Write header ids on row 1 and column values below."""

    for column_index, column in enumerate(sheet.columns, start=1):
        store.set_cell(column_index, HEADER_ROW, column.id)
        for row_offset, value in enumerate(column.values):
            store.set_cell(column_index, HEADER_ROW + 1 + row_offset, value)


def read_sheet(
    store: TableStore,
    known_tags: Optional[Collection[str]] = None,
) -> Sheet:
    """Read a sheet back, stopping at the first unrecognized locale header."""

    for column_index, expected in enumerate(RESERVED_COLUMNS, start=1):
        header = store.get_cell(column_index, HEADER_ROW)
        if header != expected:
            raise SheetFormatError(
                f"Column {column_index} header must be `{expected}`, found {header!r}."
            )

    recognised: Callable[[str], bool]
    if known_tags is not None:
        recognised = set(known_tags).__contains__
    else:
        recognised = is_locale_tag

    sheet = Sheet()
    columns = [sheet.template, sheet.arguments]
    column_index = len(RESERVED_COLUMNS) + 1
    while True:
        header = store.get_cell(column_index, HEADER_ROW)
        if not header or header in RESERVED_COLUMNS or not recognised(header):
            break
        columns.append(sheet.add_locale(header))
        column_index += 1

    last_row = store.row_count()
    for column_index, column in enumerate(columns, start=1):
        values = [
            store.get_cell(column_index, row) or ""
            for row in range(HEADER_ROW + 1, last_row + 1)
        ]
        while values and not values[-1]:
            values.pop()
        column.extend(values)
    return sheet

