"""Command line interface for ScriptSheet."""

from __future__ import annotations

import argparse
import pathlib
import sys
from typing import Iterable, Optional

from .configuration import get_settings, validation_messages
from .errors import (
    AbortRequested,
    ConfigurationError,
    NonInteractiveAbort,
    ScriptSheetError,
)
from .metadata import default_catalog, load_catalog
from .processor import Parameters, ProcessSummary, SpreadsheetProcessor


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scriptsheet",
        description=(
            "Export scenario scripts, record text and their localizations to "
            "spreadsheets, and import the edited spreadsheets back."
        ),
    )
    parser.add_argument(
        "operation",
        choices=("export", "import"),
        help="Export documents to spreadsheets or import spreadsheets into documents.",
    )
    parser.add_argument(
        "-s",
        "--spreadsheet",
        help="Spreadsheet file (with --single) or folder of per-document workbooks.",
    )
    parser.add_argument(
        "--scripts",
        help="Folder containing .nani script documents.",
    )
    parser.add_argument(
        "--text",
        help="Folder containing .txt record documents.",
    )
    parser.add_argument(
        "--localization",
        help="Folder with one sub-folder per locale holding translated documents.",
    )
    parser.add_argument(
        "--single",
        action="store_true",
        default=None,
        help="Keep every document as a sheet of one spreadsheet file.",
    )
    parser.add_argument(
        "--metadata",
        help="YAML or JSON command catalog replacing the built-in one.",
    )
    parser.add_argument(
        "--separator",
        help="Separator between record identifiers and values (default: '=').",
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Disable prompts and enforce automatic decisions (suitable for CI).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Dump sheet statistics to stderr for troubleshooting.",
    )
    return parser


def _optional_path(value: Optional[str]) -> Optional[pathlib.Path]:
    if not value:
        return None
    return pathlib.Path(value).expanduser().resolve()


def resolve_parameters(args: argparse.Namespace) -> tuple[Parameters, bool]:
    """Merge command line flags over configured settings."""

    settings = get_settings()
    spreadsheet = args.spreadsheet or settings.SCRIPTSHEET_SPREADSHEET_PATH
    if not spreadsheet:
        raise ConfigurationError(
            "A spreadsheet location is required: pass -s/--spreadsheet or set "
            "SCRIPTSHEET_SPREADSHEET_PATH."
        )
    separator = args.separator or settings.SCRIPTSHEET_RECORD_SEPARATOR
    metadata = args.metadata or settings.SCRIPTSHEET_METADATA_PATH
    problems = validation_messages(record_separator=separator, metadata_path=metadata)
    if problems:
        raise ConfigurationError(
            "Configuration validation errors detected:\n"
            + "\n".join(f"- {message}" for message in problems)
        )

    single = args.single if args.single is not None else settings.SCRIPTSHEET_SINGLE_SPREADSHEET
    parameters = Parameters(
        spreadsheet_path=pathlib.Path(spreadsheet).expanduser().resolve(),
        single_spreadsheet=bool(single),
        script_folder=_optional_path(args.scripts or settings.SCRIPTSHEET_SCRIPT_FOLDER),
        text_folder=_optional_path(args.text or settings.SCRIPTSHEET_TEXT_FOLDER),
        localization_folder=_optional_path(
            args.localization or settings.SCRIPTSHEET_LOCALIZATION_FOLDER
        ),
        record_separator=separator,
        catalog=load_catalog(_optional_path(metadata)) if metadata else default_catalog(),
    )
    return parameters, bool(args.debug or settings.SCRIPTSHEET_DEBUG)


def execute(
    *,
    operation: str,
    parameters: Parameters,
    non_interactive: bool,
    verbose: bool,
    debug: bool,
) -> tuple[int, ProcessSummary | None, str | None]:
    """Run an export or import and return the exit code, summary, and message."""

    if operation == "export" and not (parameters.script_folder or parameters.text_folder):
        return 1, None, "Nothing to export: pass --scripts and/or --text."

    processor = SpreadsheetProcessor(
        parameters,
        interactive=not non_interactive,
        verbose=verbose,
        debug=debug,
    )
    try:
        summary = processor.export() if operation == "export" else processor.import_()
    except NonInteractiveAbort as exc:
        return 2, None, str(exc)
    except AbortRequested:
        return 2, None, "Processing aborted at your request."
    except FileNotFoundError as exc:
        return 1, None, str(exc)
    except ScriptSheetError as exc:
        return 1, None, str(exc)
    except KeyboardInterrupt:
        return 2, None, "Processing interrupted by user."

    exit_code = 1 if summary.failed_documents else 0
    return exit_code, summary, None


def print_summary(summary: ProcessSummary) -> None:
    """Output a friendly report once processing completes."""

    print(f"\n{summary.operation.capitalize()} complete.")
    print(f"  Spreadsheet:     {summary.spreadsheet_path}")
    print(
        "  Documents:       "
        f"{summary.converted_documents} converted / {summary.total_documents} total "
        f"({summary.failed_documents} failed)"
    )
    print(f"  Files written:   {summary.files_written}")
    if summary.locales:
        print(f"  Locales:         {', '.join(summary.locales)}")
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")
    if summary.warnings or summary.error_messages:
        print("  Notes:")
        for message in [*summary.warnings, *summary.error_messages]:
            print(f"    - {message}")


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        parameters, debug = resolve_parameters(args)
    except ConfigurationError as exc:
        print(exc)
        return 1

    exit_code, summary, message = execute(
        operation=args.operation,
        parameters=parameters,
        non_interactive=args.non_interactive,
        verbose=args.verbose,
        debug=debug,
    )

    if message:
        print(message)
    if summary:
        print_summary(summary)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
