"""High-level orchestration of spreadsheet export and import."""

from __future__ import annotations

import json
import pathlib
import sys
import time
import warnings
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .aligner import LocaleTagCache
from .documents import (
    RECORD_EXTENSION,
    SCRIPT_EXTENSION,
    Document,
    category_for,
    detect_format,
    discover_documents,
    load_document,
    local_path_to_sheet_name,
    sheet_name_to_local_path,
    write_text,
)
from .errors import (
    ConfigurationError,
    ErrorCategory,
    LocaleTagError,
    ScriptSheetError,
    categorise,
)
from .metadata import MetadataCatalog, default_catalog
from .parser import DEFAULT_RECORD_SEPARATOR
from .policy import ErrorPolicy
from .sheet import build_sheet, reverse_sheet
from .tables import Workbook, WorkbookTable, read_sheet, write_sheet

WORKBOOK_EXTENSION = ".xlsx"


@dataclass
class Parameters:
    """Locations and options for one processor run."""

    spreadsheet_path: pathlib.Path
    single_spreadsheet: bool = False
    script_folder: Optional[pathlib.Path] = None
    text_folder: Optional[pathlib.Path] = None
    localization_folder: Optional[pathlib.Path] = None
    record_separator: str = DEFAULT_RECORD_SEPARATOR
    catalog: MetadataCatalog = field(default_factory=default_catalog)


@dataclass
class ProcessSummary:
    """Report returned after an export or import run."""

    operation: str
    spreadsheet_path: pathlib.Path
    total_documents: int
    converted_documents: int
    failed_documents: int
    files_written: int
    locales: List[str]
    elapsed_seconds: float
    warnings: List[str] = field(default_factory=list)
    error_messages: List[str] = field(default_factory=list)


class SpreadsheetProcessor:
    """Coordinates document loading, sheet building and persistence."""

    def __init__(
        self,
        parameters: Parameters,
        *,
        interactive: bool = False,
        verbose: bool = False,
        debug: bool = False,
    ) -> None:
        self.parameters = parameters
        self.verbose = verbose
        self.debug = debug
        self.error_policy = ErrorPolicy(interactive=interactive)
        self.tag_cache = LocaleTagCache()
        self.notes: List[str] = []
        self.locales: set[str] = set()
        self._workbooks: Dict[pathlib.Path, Workbook] = {}
        self._files_written = 0

    # --- Export -----------------------------------------------------------

    def export(self) -> ProcessSummary:
        start_time = time.time()
        jobs: List[Tuple[pathlib.Path, pathlib.PurePosixPath]] = []
        if self.parameters.script_folder:
            jobs.extend(discover_documents(self.parameters.script_folder, SCRIPT_EXTENSION))
        if self.parameters.text_folder:
            jobs.extend(discover_documents(self.parameters.text_folder, RECORD_EXTENSION))
        if self.verbose:
            print(f"Found {len(jobs)} documents to export.")

        converted = 0
        for index, (full_path, local_path) in enumerate(jobs):
            self._notify_progress(str(local_path), index, len(jobs))
            if self._run_document(
                str(local_path),
                lambda: self._export_document(full_path, local_path),
            ):
                converted += 1

        return self._summary("export", start_time, len(jobs), converted)

    def _export_document(
        self,
        full_path: pathlib.Path,
        local_path: pathlib.PurePosixPath,
    ) -> None:
        source = self._load(full_path, name=str(local_path))
        translations: List[Document] = []
        for locale_dir, path in self._localizations_for(local_path, skip_missing=True):
            document = self._load(path, name=f"{locale_dir.name}/{local_path}")
            tag = self._locale_tag(document)
            if tag is not None:
                translations.append(document)

        sheet = build_sheet(source, translations, tag_cache=self.tag_cache)
        self._log_debug(
            "export.sheet",
            {
                "document": str(local_path),
                "rows": sheet.row_count,
                "arguments": len(sheet.arguments),
                "locales": list(sheet.locales),
            },
        )

        workbook = self._workbook_for(local_path)
        table = workbook.sheet(local_path_to_sheet_name(local_path))
        table.clear()
        write_sheet(sheet, table)
        workbook.save()
        self._files_written += 1
        self.locales.update(sheet.locales)

    # --- Import -----------------------------------------------------------

    def import_(self) -> ProcessSummary:
        start_time = time.time()
        spreadsheet_path = self.parameters.spreadsheet_path
        if self.parameters.single_spreadsheet:
            if not spreadsheet_path.is_file():
                raise FileNotFoundError(
                    f"Spreadsheet not found: {spreadsheet_path}. Export first or fix the path."
                )
            workbook_paths = [spreadsheet_path]
        else:
            workbook_paths = (
                sorted(spreadsheet_path.rglob(f"*{WORKBOOK_EXTENSION}"))
                if spreadsheet_path.is_dir()
                else []
            )

        jobs: List[Tuple[Workbook, str, pathlib.PurePosixPath]] = []
        for path in workbook_paths:
            workbook = Workbook(path)
            for sheet_name in workbook.sheet_names():
                local_path = sheet_name_to_local_path(sheet_name)
                if local_path is None:
                    self.notes.append(
                        f"Sheet `{sheet_name}` in `{path}` is not recognized and will be ignored."
                    )
                    continue
                jobs.append((workbook, sheet_name, local_path))
        if self.verbose:
            print(f"Found {len(jobs)} sheets to import.")

        converted = 0
        for index, (workbook, sheet_name, local_path) in enumerate(jobs):
            self._notify_progress(sheet_name, index, len(jobs))
            if self._run_document(
                sheet_name,
                lambda: self._import_sheet(workbook.sheet(sheet_name), local_path),
            ):
                converted += 1

        return self._summary("import", start_time, len(jobs), converted)

    def _import_sheet(
        self,
        table: WorkbookTable,
        local_path: pathlib.PurePosixPath,
    ) -> None:
        folder = self._document_folder(local_path)
        if folder is None:
            raise ConfigurationError(
                f"No {category_for(local_path).lower()} folder configured for `{local_path}`."
            )

        targets = self._locale_targets(local_path)
        known_tags = targets.keys() if self.parameters.localization_folder else None
        sheet = read_sheet(table, known_tags=known_tags)
        result = reverse_sheet(sheet, detect_format(pathlib.Path(local_path.name)))

        outputs: List[Tuple[pathlib.Path, str]] = [(folder / local_path, result.source_text)]
        for tag, text in result.locale_texts.items():
            if tag not in targets:
                self.notes.append(
                    f"No localization folder configured; locale `{tag}` of "
                    f"`{local_path}` was not written."
                )
                continue
            outputs.append((targets[tag], text))
        for path, text in outputs:
            write_text(path, text)
            self._files_written += 1
        self.locales.update(tag for tag in result.locale_texts if tag in targets)

    def _locale_targets(self, local_path: pathlib.PurePosixPath) -> Dict[str, pathlib.Path]:
        """Map locale tags to the documents they are written to."""

        targets: Dict[str, pathlib.Path] = {}
        for locale_dir, path in self._localizations_for(local_path, skip_missing=False):
            tag: Optional[str] = locale_dir.name
            if path.exists():
                tag = self._locale_tag(
                    self._load(path, name=f"{locale_dir.name}/{local_path}")
                )
            if tag is not None:
                targets.setdefault(tag, path)
        return targets

    # --- Shared helpers ---------------------------------------------------

    def _run_document(self, label: str, work: Callable[[], None]) -> bool:
        """Convert one document; failures are recorded and the run goes on."""

        while True:
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always")
                try:
                    work()
                except (ScriptSheetError, OSError, ValueError) as exc:
                    action = self.error_policy.handle_error(
                        categorise(exc),
                        f"Could not convert `{label}`. Skipping this document. ({exc})",
                    )
                    if action == "retry":
                        continue
                    return False
                finally:
                    self.notes.extend(f"{label}: {warning.message}" for warning in caught)
            self.error_policy.record_success()
            return True

    def _load(self, path: pathlib.Path, *, name: str) -> Document:
        document = load_document(
            path,
            catalog=self.parameters.catalog,
            separator=self.parameters.record_separator,
            name=name,
        )
        document.identity = path.resolve()
        return document

    def _locale_tag(self, document: Document) -> Optional[str]:
        """Return the cached locale tag; an unreadable tag drops that locale."""

        try:
            return self.tag_cache.get(document.key, document)
        except LocaleTagError as exc:
            self.error_policy.handle_error(
                ErrorCategory.LOCALE_TAG,
                f"Ignoring locale document `{document.name}`. ({exc})",
            )
            return None

    def _document_folder(self, local_path: pathlib.PurePosixPath) -> Optional[pathlib.Path]:
        if local_path.suffix == SCRIPT_EXTENSION:
            return self.parameters.script_folder
        return self.parameters.text_folder

    def _localizations_for(
        self,
        local_path: pathlib.PurePosixPath,
        *,
        skip_missing: bool,
    ) -> List[Tuple[pathlib.Path, pathlib.Path]]:
        root = self.parameters.localization_folder
        if root is None or not root.is_dir():
            return []

        found: List[Tuple[pathlib.Path, pathlib.Path]] = []
        for locale_dir in sorted(path for path in root.iterdir() if path.is_dir()):
            path = locale_dir / category_for(local_path) / local_path
            if skip_missing and not path.is_file():
                self.notes.append(
                    f"Missing localization resource for `{local_path}` (expected in `{path}`)."
                )
                continue
            found.append((locale_dir, path))
        return found

    def _workbook_for(self, local_path: pathlib.PurePosixPath) -> Workbook:
        if self.parameters.single_spreadsheet:
            path = self.parameters.spreadsheet_path
        else:
            path = (
                self.parameters.spreadsheet_path
                / category_for(local_path)
                / local_path.parent
                / f"{local_path.stem}{WORKBOOK_EXTENSION}"
            )
        workbook = self._workbooks.get(path)
        if workbook is None:
            workbook = Workbook(path)
            self._workbooks[path] = workbook
        return workbook

    def _notify_progress(self, name: str, index: int, total: int) -> None:
        if not self.verbose:
            return
        progress = index / total if total else 1.0
        print(f"Processing `{name}`... ({progress:.0%})")

    def _summary(
        self,
        operation: str,
        start_time: float,
        total: int,
        converted: int,
    ) -> ProcessSummary:
        return ProcessSummary(
            operation=operation,
            spreadsheet_path=self.parameters.spreadsheet_path,
            total_documents=total,
            converted_documents=converted,
            failed_documents=total - converted,
            files_written=self._files_written,
            locales=sorted(self.locales),
            elapsed_seconds=time.time() - start_time,
            warnings=list(self.notes),
            error_messages=[record.message for record in self.error_policy.records],
        )

    def _log_debug(self, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not self.debug:
            return
        try:
            message = json.dumps(payload, ensure_ascii=False, indent=2)
        except (TypeError, ValueError):
            message = repr(payload)
        print(f"[scriptsheet][debug] {label}:\n{message}", file=sys.stderr)
