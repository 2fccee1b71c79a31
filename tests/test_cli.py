"""Tests for the command line interface."""

import pathlib
from types import SimpleNamespace

import pytest

from scriptsheet import cli
from scriptsheet.errors import ConfigurationError


def settings(**overrides):
    values = dict(
        SCRIPTSHEET_SPREADSHEET_PATH=None,
        SCRIPTSHEET_SCRIPT_FOLDER=None,
        SCRIPTSHEET_TEXT_FOLDER=None,
        SCRIPTSHEET_LOCALIZATION_FOLDER=None,
        SCRIPTSHEET_SINGLE_SPREADSHEET=False,
        SCRIPTSHEET_METADATA_PATH=None,
        SCRIPTSHEET_RECORD_SEPARATOR="=",
        SCRIPTSHEET_DEBUG=False,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def configured(monkeypatch):
    def _configure(**overrides):
        monkeypatch.setattr(cli, "get_settings", lambda: settings(**overrides))

    _configure()
    return _configure


def resolve(argv):
    return cli.resolve_parameters(cli.build_parser().parse_args(argv))


def test_spreadsheet_location_is_required(configured):
    with pytest.raises(ConfigurationError, match="spreadsheet"):
        resolve(["export"])


def test_flags_build_parameters(configured, tmp_path):
    parameters, debug = resolve(
        ["export", "-s", str(tmp_path / "out"), "--scripts", str(tmp_path), "--separator", ":"]
    )

    assert parameters.spreadsheet_path == (tmp_path / "out").resolve()
    assert parameters.script_folder == tmp_path.resolve()
    assert parameters.text_folder is None
    assert parameters.record_separator == ":"
    assert parameters.single_spreadsheet is False
    assert "say" in parameters.catalog
    assert debug is False


def test_settings_fill_in_missing_flags(configured, tmp_path):
    configured(
        SCRIPTSHEET_SPREADSHEET_PATH=str(tmp_path / "all.xlsx"),
        SCRIPTSHEET_TEXT_FOLDER=str(tmp_path),
        SCRIPTSHEET_SINGLE_SPREADSHEET=True,
        SCRIPTSHEET_DEBUG=True,
    )

    parameters, debug = resolve(["import"])

    assert parameters.spreadsheet_path == (tmp_path / "all.xlsx").resolve()
    assert parameters.text_folder == tmp_path.resolve()
    assert parameters.single_spreadsheet is True
    assert debug is True


def test_invalid_separator(configured, tmp_path):
    with pytest.raises(ConfigurationError, match="SEPARATOR"):
        resolve(["export", "-s", str(tmp_path), "--separator", " "])


def test_metadata_catalog_flag(configured, tmp_path):
    catalog = tmp_path / "catalog.yaml"
    catalog.write_text("commands:\n  line:\n    parameters:\n      _: true\n", encoding="utf-8")

    parameters, _ = resolve(["export", "-s", str(tmp_path), "--metadata", str(catalog)])

    assert "line" in parameters.catalog
    assert "say" not in parameters.catalog


def test_nothing_to_export(configured, tmp_path, capsys):
    assert cli.main(["export", "-s", str(tmp_path)]) == 1
    assert "Nothing to export" in capsys.readouterr().out


def test_configuration_errors_exit_with_one(configured, capsys):
    assert cli.main(["import"]) == 1
    assert "SCRIPTSHEET_SPREADSHEET_PATH" in capsys.readouterr().out


def test_export_and_summary(configured, tmp_path, capsys):
    scripts = tmp_path / "scripts"
    scripts.mkdir()
    (scripts / "intro.nani").write_text("@say Hello\n", encoding="utf-8")

    code = cli.main(["export", "-s", str(tmp_path / "sheets"), "--scripts", str(scripts)])

    assert code == 0
    assert (tmp_path / "sheets" / "Scripts" / "intro.xlsx").is_file()
    output = capsys.readouterr().out
    assert "Export complete." in output
    assert "1 converted / 1 total (0 failed)" in output


def test_failed_documents_exit_with_one(configured, tmp_path):
    scripts = tmp_path / "scripts"
    scripts.mkdir()
    (scripts / "broken.nani").write_text("@teleport home\n", encoding="utf-8")

    code = cli.main(
        ["export", "-s", str(tmp_path / "sheets"), "--scripts", str(scripts), "--non-interactive"]
    )

    assert code == 1


def test_missing_single_spreadsheet(tmp_path):
    parameters = cli.Parameters(
        spreadsheet_path=pathlib.Path(tmp_path / "none.xlsx"),
        single_spreadsheet=True,
        script_folder=tmp_path,
    )

    code, summary, message = cli.execute(
        operation="import",
        parameters=parameters,
        non_interactive=True,
        verbose=False,
        debug=False,
    )

    assert (code, summary) == (1, None)
    assert "Spreadsheet not found" in message
