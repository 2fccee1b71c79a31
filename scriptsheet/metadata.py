"""Declarative catalog describing which commands and parameters are translatable."""

from __future__ import annotations

import json
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional

import yaml

from .errors import ConfigurationError, SchemaError

NAMELESS_PARAMETER = "_"


@dataclass
class CommandSchema:
    """Maps the parameters of one command to their translatable flag.

    An ``expression`` command takes everything after its identifier as the
    nameless value, so `@set score=5` is not read as a `score` parameter.
    """

    command_id: str
    parameters: Dict[str, bool] = field(default_factory=dict)
    aliases: tuple[str, ...] = ()
    parameter_aliases: Dict[str, str] = field(default_factory=dict)
    expression: bool = False

    @property
    def is_translatable(self) -> bool:
        return any(self.parameters.values())

    def resolve_parameter(self, parameter_id: str) -> str:
        """Return the canonical parameter id or raise ``SchemaError``."""

        key = parameter_id or NAMELESS_PARAMETER
        if key in self.parameters:
            return key
        if key in self.parameter_aliases:
            return self.parameter_aliases[key]
        raise SchemaError(
            f"Command `{self.command_id}` has no parameter `{key}` in the catalog.",
            command_id=self.command_id,
            parameter_id=key,
        )


class MetadataCatalog:
    """Lookup table of command schemas keyed by id and alias."""

    def __init__(self, commands: Iterable[CommandSchema] = ()) -> None:
        self._commands: Dict[str, CommandSchema] = {}
        self._aliases: Dict[str, str] = {}
        for schema in commands:
            self.register(schema)

    def register(self, schema: CommandSchema) -> None:
        key = schema.command_id.lower()
        self._commands[key] = schema
        for alias in schema.aliases:
            self._aliases[alias.lower()] = key

    def command(self, command_id: str) -> CommandSchema:
        key = command_id.lower()
        key = self._aliases.get(key, key)
        try:
            return self._commands[key]
        except KeyError:
            raise SchemaError(
                f"Command `{command_id}` is not present in the metadata catalog.",
                command_id=command_id,
            ) from None

    def is_translatable(self, command_id: str, parameter_id: Optional[str] = None) -> bool:
        schema = self.command(command_id)
        if parameter_id is None:
            return schema.is_translatable
        return schema.parameters[schema.resolve_parameter(parameter_id)]

    def __contains__(self, command_id: object) -> bool:
        if not isinstance(command_id, str):
            return False
        key = command_id.lower()
        return key in self._commands or key in self._aliases

    def __len__(self) -> int:
        return len(self._commands)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MetadataCatalog":
        """Build a catalog from the ``commands:`` mapping used by catalog files."""

        commands = data.get("commands")
        if not isinstance(commands, Mapping):
            raise ConfigurationError(
                "Metadata catalog must contain a `commands` mapping at the root."
            )
        catalog = cls()
        for command_id, entry in commands.items():
            entry = entry or {}
            if not isinstance(entry, Mapping):
                raise ConfigurationError(
                    f"Catalog entry for `{command_id}` must be a mapping."
                )
            parameters: Dict[str, bool] = {}
            parameter_aliases: Dict[str, str] = {}
            for parameter_id, options in (entry.get("parameters") or {}).items():
                if isinstance(options, bool):
                    options = {"translatable": options}
                options = options or {}
                parameters[str(parameter_id)] = bool(options.get("translatable", False))
                for alias in options.get("aliases") or ():
                    parameter_aliases[str(alias)] = str(parameter_id)
            catalog.register(
                CommandSchema(
                    command_id=str(command_id),
                    parameters=parameters,
                    aliases=tuple(str(alias) for alias in entry.get("aliases") or ()),
                    parameter_aliases=parameter_aliases,
                    expression=bool(entry.get("expression", False)),
                )
            )
        return catalog


def load_catalog(path: pathlib.Path) -> MetadataCatalog:
    """Load a catalog from a YAML or JSON file."""

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Metadata catalog could not be read: {exc}") from exc

    suffix = path.suffix.lower()
    try:
        if suffix == ".json":
            data = json.loads(raw)
        elif suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(raw)
        else:
            raise ConfigurationError(
                f"Unsupported metadata catalog format `{suffix}`; use .yaml or .json."
            )
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Metadata catalog {path} is malformed: {exc}") from exc

    if not isinstance(data, Mapping):
        raise ConfigurationError(
            f"Invalid metadata catalog {path}: expected a mapping at the root."
        )
    return MetadataCatalog.from_mapping(data)


DEFAULT_COMMANDS: Dict[str, Any] = {
    "commands": {
        "print": {
            "aliases": ["say"],
            "parameters": {
                "_": {"translatable": True, "aliases": ["text"]},
                "author": {"translatable": False, "aliases": ["who"]},
                "speed": False,
                "reset": False,
                "waitInput": False,
            },
        },
        "choice": {
            "parameters": {
                "_": {"translatable": True, "aliases": ["text"]},
                "goto": False,
                "set": False,
                "button": False,
                "pos": False,
            },
        },
        "title": {"parameters": {"_": True}},
        "i": {"parameters": {}},
        "br": {"parameters": {"_": False}},
        "wait": {"parameters": {"_": False}},
        "char": {
            "parameters": {
                "_": False,
                "pose": False,
                "pos": False,
                "look": False,
                "visible": False,
                "tint": False,
                "time": False,
            },
        },
        "back": {
            "parameters": {"_": False, "pos": False, "time": False, "id": False},
        },
        "bgm": {"parameters": {"_": False, "loop": False, "volume": False}},
        "sfx": {"parameters": {"_": False, "loop": False, "volume": False}},
        "stopBgm": {"parameters": {"_": False, "fade": False}},
        "goto": {"parameters": {"_": False}},
        "gosub": {"parameters": {"_": False}},
        "return": {"parameters": {}},
        "set": {"expression": True, "parameters": {"_": False}},
        "if": {"expression": True, "parameters": {"_": False}},
        "else": {"expression": True, "parameters": {"_": False}},
        "endif": {"parameters": {}},
        "stop": {"parameters": {}},
        "hidePrinter": {"parameters": {"_": False}},
        "showUI": {"parameters": {"_": False}},
        "hideUI": {"parameters": {"_": False}},
    }
}


def default_catalog() -> MetadataCatalog:
    """Return a catalog describing the built-in command set."""

    return MetadataCatalog.from_mapping(DEFAULT_COMMANDS)
