"""Prepper-backed configuration loader for ScriptSheet."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterator, Mapping, Sequence, Tuple

from dotenv import dotenv_values
from prepper import (
    Field,
    IoError,
    SchemaError as ConfigSchemaError,
    SchemaModel,
    ValidationError,
    model_validator,
)
from prepper.config import ConfigInstance
from prepper.loaders import _parse_file, _path_to_source, discover_file_paths
from prepper.merge import merge_layer
from prepper.provenance import ProvenanceRecorder

from .errors import ConfigurationError
from .parser import DEFAULT_RECORD_SEPARATOR

APP_NAME = "ScriptSheet"


class ScriptSheetConfig(SchemaModel):
    """Schema describing all supported configuration options."""

    SCRIPTSHEET_SPREADSHEET_PATH: str | None = Field(
        default=None,
        description="Spreadsheet file (single mode) or folder holding per-document workbooks.",
    )
    SCRIPTSHEET_SCRIPT_FOLDER: str | None = Field(default=None)
    SCRIPTSHEET_TEXT_FOLDER: str | None = Field(default=None)
    SCRIPTSHEET_LOCALIZATION_FOLDER: str | None = Field(default=None)
    SCRIPTSHEET_SINGLE_SPREADSHEET: bool = Field(default=False)
    SCRIPTSHEET_METADATA_PATH: str | None = Field(
        default=None,
        description="YAML or JSON command catalog replacing the built-in one.",
    )
    SCRIPTSHEET_RECORD_SEPARATOR: str = Field(default=DEFAULT_RECORD_SEPARATOR)
    SCRIPTSHEET_DEBUG: bool = Field(default=False)

    @model_validator(mode="before")
    def _normalise_paths(data: Any) -> Any:
        if isinstance(data, dict):
            for key, raw_value in list(data.items()):
                if key.endswith(("_PATH", "_FOLDER")) and isinstance(raw_value, str):
                    data[key] = raw_value.strip() or None
        return data


Layer = Tuple[str, str, Mapping[str, Any]]


@lru_cache(maxsize=1)
def _load_config_instance(app_dir: Path | None = None) -> ConfigInstance:
    """Merge every configuration layer once and cache the immutable instance."""

    provenance = ProvenanceRecorder()
    combined: dict[str, Any] = {}
    try:
        for layer, source, values in _layers(app_dir or Path.cwd()):
            merge_layer(combined, values, provenance=provenance, source=source, layer=layer)
        model = ScriptSheetConfig.validate(combined, provenance=provenance)
    except IoError as exc:
        raise ConfigurationError(f"Configuration files could not be read: {exc}") from exc
    except ConfigSchemaError as exc:
        raise ConfigurationError(f"Configuration schema error: {exc}") from exc
    except ValidationError as exc:
        raise ConfigurationError(_format_validation_errors(exc.to_dict())) from exc

    _validate_settings(model)
    return ConfigInstance(
        model=model,
        provenance=provenance,
        env_prefix=None,
        schema_cls=ScriptSheetConfig,
    )


def _layers(app_dir: Path) -> Iterator[Layer]:
    """Yield ``(layer, source, values)`` from lowest to highest precedence.

    Discovered YAML files come first, then ``.env`` in ``app_dir``, then the
    process environment. Only ``SCRIPTSHEET_*`` fields are taken from
    environment sources.
    """

    for path, label in discover_file_paths(APP_NAME, "yaml", app_dir=app_dir, extra_paths=None):
        parsed = _parse_file(path, "yaml")
        if not isinstance(parsed, Mapping):
            raise IoError(f"Invalid configuration file {path}: expected a mapping at the root.")
        yield "file", _path_to_source(label, "yaml", path), parsed

    fields = set(ScriptSheetConfig.__field_infos__)
    environments: list[tuple[str, Mapping[str, str | None]]] = []
    dotenv_path = app_dir / ".env"
    if dotenv_path.is_file():
        environments.append((".env", dotenv_values(dotenv_path)))
    environments.append(("process", os.environ))

    for origin, variables in environments:
        for key in sorted(fields.intersection(variables)):
            value = variables[key]
            if value is not None:
                yield "env", f"env:{origin}:{key}", {key: value}


def _validate_settings(settings: ScriptSheetConfig) -> None:
    errors = validation_messages(
        record_separator=settings.SCRIPTSHEET_RECORD_SEPARATOR,
        metadata_path=settings.SCRIPTSHEET_METADATA_PATH,
    )
    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise ConfigurationError(
            "Configuration validation errors detected:\n" + bullet_list
        )


def validation_messages(
    *,
    record_separator: str,
    metadata_path: str | None,
) -> list[str]:
    """Return human readable problems with the effective settings."""

    errors: list[str] = []
    if not record_separator or not record_separator.strip():
        errors.append("SCRIPTSHEET_RECORD_SEPARATOR must contain a visible character.")
    elif "\n" in record_separator or "\r" in record_separator:
        errors.append("SCRIPTSHEET_RECORD_SEPARATOR must not contain line breaks.")
    if metadata_path:
        suffix = Path(metadata_path).suffix.lower()
        if suffix not in {".yaml", ".yml", ".json"}:
            errors.append(
                "SCRIPTSHEET_METADATA_PATH must point to a .yaml, .yml or .json catalog."
            )
    return errors


def _format_validation_errors(entries: Sequence[dict[str, Any]]) -> str:
    details: list[str] = []
    for entry in entries:
        path = entry.get("path") or []
        if isinstance(path, (list, tuple)):
            location = ".".join(str(part) for part in path if part not in {None, ""})
        else:
            location = str(path)
        message = str(entry.get("message") or entry.get("msg") or "Invalid value")
        source = entry.get("source")
        origin = f" (source: {source})" if source else ""
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}{origin}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


def get_config(app_dir: Path | None = None) -> ConfigInstance:
    """Return the immutable configuration instance."""

    return _load_config_instance(app_dir=app_dir)


def get_settings(app_dir: Path | None = None) -> ScriptSheetConfig:
    """Return the validated schema model for typed access."""

    return get_config(app_dir=app_dir).model()
